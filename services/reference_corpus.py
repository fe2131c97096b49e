"""
Reference corpora of ATC exchanges.

Each example pairs a controller instruction with its correct readback and a
few typical incorrect readbacks. Used for rule-table self-validation and the
training-data export. Read-only.
"""

from dataclasses import dataclass, field
from typing import Optional, Tuple, Dict

from models.readback import ErrorType, FlightPhase


@dataclass(frozen=True)
class CommonError:
    error: str
    type: ErrorType
    missing: Optional[str] = None


@dataclass(frozen=True)
class CorpusExample:
    atc: str
    correct_readback: str
    phase: Optional[FlightPhase]
    critical_elements: Tuple[str, ...]
    common_errors: Tuple[CommonError, ...] = field(default_factory=tuple)


DEPARTURE_CORPUS: Tuple[CorpusExample, ...] = (
    # Radar contact
    CorpusExample(
        atc="PAL456 radar contact, climb and maintain flight level one two zero",
        correct_readback="Radar contact, climb and maintain flight level one two zero, PAL456",
        phase=FlightPhase.INITIAL_DEPARTURE,
        critical_elements=("radar contact", "altitude", "callsign"),
        common_errors=(
            CommonError("Roger, climbing", ErrorType.INCOMPLETE_READBACK, "altitude"),
            CommonError("Climb flight level one zero two, PAL456", ErrorType.TRANSPOSITION),
        ),
    ),
    # SID clearance
    CorpusExample(
        atc="CEB789 cleared BOREG one alpha departure runway two four, climb and maintain five thousand, "
            "squawk two three four one",
        correct_readback="Cleared BOREG one alpha departure runway two four, climb and maintain five thousand, "
                         "squawk two three four one, CEB789",
        phase=FlightPhase.GROUND,
        critical_elements=("sid", "runway", "altitude", "squawk", "callsign"),
        common_errors=(
            CommonError("BOREG departure runway two four, CEB789", ErrorType.MISSING_ELEMENT, "altitude, squawk"),
            CommonError("Cleared BOREG one alpha, climb five thousand, CEB789", ErrorType.MISSING_ELEMENT,
                        "runway, squawk"),
        ),
    ),
    # Runway heading
    CorpusExample(
        atc="PAL123 runway two four, fly runway heading, cleared for takeoff",
        correct_readback="Runway two four, fly runway heading, cleared for takeoff, PAL123",
        phase=FlightPhase.LINEUP,
        critical_elements=("runway", "runway heading", "cleared takeoff", "callsign"),
        common_errors=(
            CommonError("Runway two four cleared for takeoff, PAL123", ErrorType.MISSING_ELEMENT, "runway heading"),
            CommonError("Roger", ErrorType.ROGER_SUBSTITUTION),
        ),
    ),
    # Expedite climb
    CorpusExample(
        atc="PAL456 expedite climb flight level two five zero",
        correct_readback="Expedite climb flight level two five zero, PAL456",
        phase=FlightPhase.DEPARTURE_CLIMB,
        critical_elements=("expedite", "altitude", "callsign"),
        common_errors=(
            CommonError("Roger", ErrorType.INCOMPLETE_READBACK),
            CommonError("Expedite climb flight level two five five, PAL456", ErrorType.WRONG_VALUE),
        ),
    ),
    # Conditional climb
    CorpusExample(
        atc="CEB456 after passing LUBOG climb flight level two eight zero",
        correct_readback="After passing LUBOG climb flight level two eight zero, CEB456",
        phase=FlightPhase.DEPARTURE_CLIMB,
        critical_elements=("condition", "waypoint", "altitude", "callsign"),
        common_errors=(
            CommonError("Climb flight level two eight zero, CEB456", ErrorType.CONDITION_OMITTED, "conditional"),
        ),
    ),
    # Departure turn
    CorpusExample(
        atc="PAL789 turn right heading zero nine zero, climb and maintain eight thousand",
        correct_readback="Right heading zero nine zero, climb and maintain eight thousand, PAL789",
        phase=FlightPhase.INITIAL_DEPARTURE,
        critical_elements=("direction", "heading", "altitude", "callsign"),
        common_errors=(
            CommonError("Right heading zero nine zero, PAL789", ErrorType.MISSING_ELEMENT, "altitude"),
            CommonError("Left heading zero nine zero, climb eight thousand, PAL789", ErrorType.WRONG_VALUE),
        ),
    ),
    # Handoff
    CorpusExample(
        atc="PAL123 contact manila departure one two four decimal one",
        correct_readback="Manila departure one two four decimal one, PAL123",
        phase=FlightPhase.INITIAL_DEPARTURE,
        critical_elements=("facility", "frequency", "callsign"),
        common_errors=(
            CommonError("Contact departure, PAL123", ErrorType.MISSING_ELEMENT, "frequency"),
            CommonError("One two four decimal four, PAL123", ErrorType.WRONG_VALUE),
        ),
    ),
    # Noise abatement
    CorpusExample(
        atc="CEB123 noise abatement departure, maintain runway heading until passing three thousand",
        correct_readback="Noise abatement departure, maintain runway heading until passing three thousand, CEB123",
        phase=FlightPhase.INITIAL_DEPARTURE,
        critical_elements=("noise abatement", "runway heading", "altitude restriction", "callsign"),
        common_errors=(
            CommonError("Runway heading, CEB123", ErrorType.CONDITION_OMITTED, "until passing three thousand"),
        ),
    ),
)


APPROACH_CORPUS: Tuple[CorpusExample, ...] = (
    # Approach clearance
    CorpusExample(
        atc="PAL456 descend and maintain four thousand, cleared ILS approach runway two four",
        correct_readback="Descend and maintain four thousand, cleared ILS approach runway two four, PAL456",
        phase=FlightPhase.APPROACH,
        critical_elements=("altitude", "approach type", "runway", "callsign"),
        common_errors=(
            CommonError("Cleared ILS approach runway two four, PAL456", ErrorType.MISSING_ELEMENT, "altitude"),
            CommonError("Descend four thousand, cleared ILS approach runway two six, PAL456", ErrorType.WRONG_RUNWAY),
        ),
    ),
    # STAR with crossing restriction
    CorpusExample(
        atc="CEB789 descend via TONDO one alpha arrival, cross LANAS at and maintain flight level one two zero",
        correct_readback="Descend via TONDO one alpha arrival, cross LANAS at and maintain flight level one two zero, "
                         "CEB789",
        phase=FlightPhase.DESCENT,
        critical_elements=("star", "waypoint", "crossing restriction", "altitude", "callsign"),
        common_errors=(
            CommonError("TONDO arrival, descend flight level one two zero, CEB789", ErrorType.MISSING_ELEMENT,
                        "crossing restriction"),
        ),
    ),
    # Vectors to final
    CorpusExample(
        atc="PAL123 turn left heading two seven zero, vectors for ILS runway two four",
        correct_readback="Left heading two seven zero, vectors for ILS runway two four, PAL123",
        phase=FlightPhase.APPROACH,
        critical_elements=("direction", "heading", "approach type", "runway", "callsign"),
        common_errors=(
            CommonError("Right heading two seven zero, vectors ILS runway two four, PAL123", ErrorType.WRONG_VALUE),
        ),
    ),
    # Speed restriction
    CorpusExample(
        atc="PAL789 reduce speed one eight zero knots, descend and maintain three thousand",
        correct_readback="Reduce speed one eight zero knots, descend and maintain three thousand, PAL789",
        phase=FlightPhase.APPROACH,
        critical_elements=("speed", "altitude", "callsign"),
        common_errors=(
            CommonError("Descend three thousand, PAL789", ErrorType.MISSING_ELEMENT, "speed"),
        ),
    ),
    # QNH on final
    CorpusExample(
        atc="PAL456 descend to three thousand feet QNH one zero one three",
        correct_readback="Descend to three thousand feet QNH one zero one three, PAL456",
        phase=FlightPhase.FINAL_APPROACH,
        critical_elements=("altitude", "qnh", "callsign"),
        common_errors=(
            CommonError("Descend three thousand, PAL456", ErrorType.MISSING_ELEMENT, "QNH"),
            CommonError("Three thousand feet QNH one zero three one, PAL456", ErrorType.TRANSPOSITION),
        ),
    ),
    # Go around
    CorpusExample(
        atc="PAL123 go around, climb and maintain three thousand, turn right heading zero nine zero",
        correct_readback="Going around, climb and maintain three thousand, right heading zero nine zero, PAL123",
        phase=FlightPhase.GO_AROUND,
        critical_elements=("go around", "altitude", "direction", "heading", "callsign"),
        common_errors=(
            CommonError("Going around, PAL123", ErrorType.MISSING_ELEMENT, "altitude, heading"),
        ),
    ),
    # Visual approach
    CorpusExample(
        atc="PAL456 cleared visual approach runway two four",
        correct_readback="Cleared visual approach runway two four, PAL456",
        phase=FlightPhase.APPROACH,
        critical_elements=("visual approach", "runway", "callsign"),
        common_errors=(
            CommonError("Visual approach, PAL456", ErrorType.MISSING_ELEMENT, "runway"),
        ),
    ),
    # Landing clearance
    CorpusExample(
        atc="PAL123 runway two four, cleared to land",
        correct_readback="Runway two four, cleared to land, PAL123",
        phase=FlightPhase.FINAL_APPROACH,
        critical_elements=("runway", "cleared to land", "callsign"),
        common_errors=(
            CommonError("Roger, PAL123", ErrorType.ROGER_SUBSTITUTION),
            CommonError("Runway two six, cleared to land, PAL123", ErrorType.WRONG_RUNWAY),
        ),
    ),
)


GENERAL_CORPUS: Tuple[CorpusExample, ...] = (
    CorpusExample(
        atc="PAL123 climb and maintain flight level three five zero",
        correct_readback="Climb and maintain flight level three five zero, PAL123",
        phase=None,
        critical_elements=("altitude", "callsign"),
        common_errors=(
            CommonError("Roger", ErrorType.INCOMPLETE_READBACK),
            CommonError("Climb and maintain flight level three four zero, PAL123", ErrorType.WRONG_VALUE),
            CommonError("Heading three five zero, PAL123", ErrorType.PARAMETER_CONFUSION),
        ),
    ),
    CorpusExample(
        atc="PAL456 altimeter one zero one three",
        correct_readback="Altimeter one zero one three, PAL456",
        phase=None,
        critical_elements=("altimeter", "callsign"),
        common_errors=(
            CommonError("Altimeter one zero three one, PAL456", ErrorType.TRANSPOSITION),
        ),
    ),
    CorpusExample(
        atc="PAL789 squawk four five two one",
        correct_readback="Squawk four five two one, PAL789",
        phase=None,
        critical_elements=("squawk", "callsign"),
        common_errors=(
            CommonError("Squawk four five one two, PAL789", ErrorType.TRANSPOSITION),
        ),
    ),
    CorpusExample(
        atc="CEB789 when passing flight level two five zero descend flight level one eight zero",
        correct_readback="When passing flight level two five zero descend flight level one eight zero, CEB789",
        phase=None,
        critical_elements=("condition", "altitude", "callsign"),
        common_errors=(
            CommonError("Descend flight level one eight zero, CEB789", ErrorType.CONDITION_OMITTED),
        ),
    ),
    CorpusExample(
        atc="PAL123 line up and wait runway two four",
        correct_readback="Line up and wait runway two four, PAL123",
        phase=None,
        critical_elements=("lineup", "runway", "callsign"),
        common_errors=(
            CommonError("Cleared for takeoff runway two four, PAL123", ErrorType.CRITICAL_CONFUSION),
        ),
    ),
)


CORPORA: Dict[str, Tuple[CorpusExample, ...]] = {
    "departure": DEPARTURE_CORPUS,
    "approach": APPROACH_CORPUS,
    "general": GENERAL_CORPUS,
}
