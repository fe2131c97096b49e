"""
Phase-Specific Error Detectors

Departure and approach rule sets behind one ErrorDetector interface. Each
detector declares the flight phases it covers; the engine runs every
detector whose phases include the detected phase (a phase may belong to
neither set).
"""

import re
import logging
from typing import List, Optional, FrozenSet, Tuple

from models.readback import ErrorType, Severity, FlightPhase, PhaseErrorType
from services.readback_errors import PhaseSpecificError
from services.number_normalizer import strip_callsign, extract_value, extract_all_values, format_value

logger = logging.getLogger(__name__)


class ErrorDetector:
    """Base class: a named rule set gated by flight phase"""

    name = "base"
    phases: FrozenSet[FlightPhase] = frozenset()

    def applies_to(self, phase: FlightPhase) -> bool:
        return phase in self.phases

    def detect(self, instruction: str, readback: str, callsign: Optional[str] = None) -> List[PhaseSpecificError]:
        atc = strip_callsign(instruction or "", callsign)
        pilot = strip_callsign(readback or "", callsign)
        errors: List[PhaseSpecificError] = []
        for check in self._checks():
            finding = check(atc, pilot)
            if finding is None:
                continue
            if isinstance(finding, list):
                errors.extend(finding)
            else:
                errors.append(finding)
        if errors:
            logger.debug(f"PHASE DETECTOR | detector={self.name} | findings={[e.phase_error_type.value for e in errors]}")
        return errors

    def _checks(self):
        return []

    @staticmethod
    def _finding(phase_error_type: PhaseErrorType, error_type: ErrorType, parameter: str,
                 expected: Optional[str], actual: Optional[str], severity: Severity, description: str,
                 correction: str, reference: str, impact: str) -> PhaseSpecificError:
        return PhaseSpecificError(
            type=error_type,
            parameter=parameter,
            expected_value=expected,
            actual_value=actual,
            severity=severity,
            explanation=description,
            reference_code=reference,
            phase_error_type=phase_error_type,
            correction=correction,
            icao_reference=reference,
            flight_safety_impact=impact,
        )


# ============================================================
# DEPARTURE
# ============================================================

_SID_PATTERNS: Tuple[str, ...] = (
    r"\b([a-z]{4,6})\s*(\d)\s*([a-z]+)?\s+departure\b",
    r"\bcleared\s+(\w+\s+\w+)\s+departure\b",
)


class DepartureErrorDetector(ErrorDetector):
    name = "departure"
    phases = frozenset({
        FlightPhase.INITIAL_DEPARTURE,
        FlightPhase.DEPARTURE_CLIMB,
        FlightPhase.TAKEOFF_ROLL,
        FlightPhase.LINEUP,
        FlightPhase.TAXI,
    })

    def _checks(self):
        return [
            self._check_sid,
            self._check_runway_heading,
            self._check_expedite,
            self._check_conditional,
            self._check_noise_abatement,
            self._check_handoff_frequency,
            self._check_direct_to,
            self._check_continue_climb,
        ]

    def _check_sid(self, atc: str, pilot: str):
        for pattern in _SID_PATTERNS:
            match = re.search(pattern, atc)
            if not match:
                continue
            name = match.group(1)
            if name in pilot:
                return None
            sid = re.sub(r"\s+departure$", "", match.group(0)).upper()
            return self._finding(
                PhaseErrorType.SID_MISSED, ErrorType.MISSING_ELEMENT, "sid", sid, None, Severity.HIGH,
                f'SID "{sid}" not read back',
                f'Include SID name: "{sid}" in readback',
                "ICAO Doc 4444 Section 4.5.7.5",
                "May result in incorrect departure routing",
            )
        return None

    def _check_runway_heading(self, atc: str, pilot: str):
        if re.search(r"runway\s+heading", atc) and not re.search(r"runway\s*heading", pilot):
            return self._finding(
                PhaseErrorType.RUNWAY_HEADING_ERROR, ErrorType.MISSING_ELEMENT, "runway_heading",
                "runway heading", None, Severity.CRITICAL,
                "Runway heading instruction not read back",
                'Include "runway heading" in readback',
                "ICAO Doc 4444",
                "May result in premature turn after takeoff",
            )
        return None

    def _check_expedite(self, atc: str, pilot: str):
        if "expedite" in atc and "expedite" not in pilot:
            return self._finding(
                PhaseErrorType.EXPEDITE_NOT_ACKNOWLEDGED, ErrorType.MISSING_ELEMENT, "expedite",
                "expedite", None, Severity.HIGH,
                "Expedite instruction not acknowledged",
                'Include "expedite" in readback to confirm urgency',
                "ICAO Doc 4444 Section 8.6.5.2",
                "Traffic separation may be compromised",
            )
        return None

    def _check_conditional(self, atc: str, pilot: str):
        match = re.search(r"(after\s+passing\s+\w+|when\s+ready|after\s+(?:departure|takeoff))", atc)
        if match and "after" not in pilot and "when" not in pilot:
            return self._finding(
                PhaseErrorType.CONDITIONAL_CLEARANCE_MISSED, ErrorType.CONDITION_OMITTED, "condition",
                match.group(1), None, Severity.CRITICAL,
                f'Conditional phrase "{match.group(1)}" not read back',
                "Include the conditional phrase to confirm understanding",
                "ICAO Doc 4444 Section 4.5.7.4",
                "May execute clearance prematurely",
            )
        return None

    def _check_noise_abatement(self, atc: str, pilot: str):
        if re.search(r"noise\s+abatement", atc) and not re.search(r"noise\s*abatement", pilot):
            return self._finding(
                PhaseErrorType.NOISE_ABATEMENT_IGNORED, ErrorType.MISSING_ELEMENT, "noise_abatement",
                "noise abatement", None, Severity.MEDIUM,
                "Noise abatement procedure not acknowledged",
                "Acknowledge noise abatement departure procedure",
                "ICAO Doc 8168",
                "May violate noise restrictions",
            )
        return None

    def _check_handoff_frequency(self, atc: str, pilot: str):
        if not re.search(r"\b(?:contact|monitor)\b", atc):
            return None
        expected = extract_value(atc, "frequency")
        if expected is None:
            return None
        actual = extract_all_values(pilot, "frequency")
        if not actual or expected in actual:
            return None
        return self._finding(
            PhaseErrorType.FREQUENCY_CONFUSION, ErrorType.WRONG_VALUE, "frequency",
            str(expected), str(actual[0]), Severity.HIGH,
            f"Handoff frequency read back as {actual[0]} instead of {expected}",
            f"Read back the frequency digit by digit: {expected}",
            "ICAO Doc 4444 Section 4.5.7.5",
            "Wrong frequency may cause loss of communication after handoff",
        )

    def _check_direct_to(self, atc: str, pilot: str):
        match = re.search(r"\bdirect\s+(?:to\s+)?([a-z]{5})\b", atc)
        if match and not re.search(rf"\b{match.group(1)}\b", pilot):
            fix = match.group(1).upper()
            return self._finding(
                PhaseErrorType.DIRECT_TO_MISSED, ErrorType.MISSING_ELEMENT, "waypoint",
                fix, None, Severity.HIGH,
                f"Direct-to waypoint {fix} not read back",
                f'Read back "direct {fix}"',
                "ICAO Doc 4444 Section 4.5.7.5",
                "Aircraft may proceed to the wrong fix",
            )
        return None

    def _check_continue_climb(self, atc: str, pilot: str):
        match = re.search(r"\bcontinue\s+climb\b.*", atc)
        if not match:
            return None
        expected = extract_value(match.group(0), "altitude")
        actual = extract_all_values(pilot, "altitude")
        if expected is None or not actual or expected in actual:
            return None
        return self._finding(
            PhaseErrorType.INITIAL_ALTITUDE_WRONG, ErrorType.WRONG_VALUE, "altitude",
            format_value("altitude", expected), format_value("altitude", actual[0]), Severity.CRITICAL,
            f"Climb altitude read back as {format_value('altitude', actual[0])} "
            f"instead of {format_value('altitude', expected)}",
            f"Confirm climb to {format_value('altitude', expected)}",
            "ICAO Doc 4444 Section 4.5.7.5",
            "Level bust during climb-out may cause loss of separation",
        )


# ============================================================
# APPROACH
# ============================================================

class ApproachErrorDetector(ErrorDetector):
    name = "approach"
    phases = frozenset({
        FlightPhase.APPROACH,
        FlightPhase.FINAL_APPROACH,
        FlightPhase.GO_AROUND,
        FlightPhase.DESCENT,
        FlightPhase.ARRIVAL,
    })

    def _checks(self):
        return [
            self._check_approach_type,
            self._check_crossing,
            self._check_qnh,
            self._check_go_around,
            self._check_visual_traffic,
        ]

    def _check_approach_type(self, atc: str, pilot: str):
        cleared = re.search(r"cleared\s+(ils|rnav|vor|visual|ndb|rnp)\s+approach", atc)
        read = re.search(r"\b(ils|rnav|vor|visual|ndb|rnp)\b", pilot)
        if cleared and read and cleared.group(1) != read.group(1):
            expected, actual = cleared.group(1).upper(), read.group(1).upper()
            return self._finding(
                PhaseErrorType.APPROACH_TYPE_CONFUSION, ErrorType.WRONG_VALUE, "approach_type",
                expected, actual, Severity.CRITICAL,
                f"Approach type mismatch: ATC cleared {expected}, pilot read {actual}",
                f"Correct approach type: {expected}",
                "ICAO Doc 4444 Section 6.5.3",
                "Wrong approach procedure could lead to CFIT",
            )
        return None

    def _check_crossing(self, atc: str, pilot: str):
        match = re.search(
            r"\bcross\s+([a-z]{3,6})\s+at\s+(?:or\s+(?:above|below)\s+)?(?:and\s+)?(?:maintain\s+)?"
            r"((?:flight\s*level|fl)\s*\d{2,3}|\d{1,2}\s*thousand(?:\s*\d\s*hundred)?|\d{3,5}(?:\s*feet)?)",
            atc,
        )
        if not match:
            return None
        fix = match.group(1)
        altitude = extract_value(match.group(2), "altitude", strict=True)
        confirmed = re.search(rf"\b{fix}\b", pilot) and (
            altitude is None or altitude in extract_all_values(pilot, "altitude")
        )
        if confirmed:
            return None
        shown = format_value("altitude", altitude) if altitude is not None else match.group(2)
        return self._finding(
            PhaseErrorType.CROSSING_ALTITUDE_ERROR, ErrorType.CONSTRAINT_MISSING, "crossing_restriction",
            f"{fix.upper()} at {shown}", None, Severity.CRITICAL,
            f'Crossing restriction "{fix.upper()} at {shown}" not confirmed',
            f"Confirm: Cross {fix.upper()} at {shown}",
            "ICAO Doc 4444 Section 6.3.2",
            "Altitude bust at waypoint may cause separation loss",
        )

    def _check_qnh(self, atc: str, pilot: str):
        if not re.search(r"\b(?:qnh|altimeter)\s+\d", atc):
            return None
        expected = extract_value(atc, "altimeter")
        if re.search(r"\b(?:qnh|altimeter)\b", pilot) or (expected and expected in extract_all_values(pilot, "altimeter")):
            return None
        return self._finding(
            PhaseErrorType.QNH_NOT_CONFIRMED, ErrorType.MISSING_ELEMENT, "altimeter",
            str(expected) if expected else None, None, Severity.CRITICAL,
            "QNH/altimeter setting not confirmed",
            "Include QNH value in readback",
            "ICAO Doc 4444 Section 7.2.4",
            "Wrong altimeter setting can cause altitude deviation",
        )

    def _check_go_around(self, atc: str, pilot: str):
        if not re.search(r"go\s*-?\s*around|missed\s+approach", atc):
            return None

        findings = []
        if not re.search(r"go(?:ing)?\s*-?\s*around|missed\s+approach", pilot):
            findings.append(self._finding(
                PhaseErrorType.MISSED_APPROACH_INCOMPLETE, ErrorType.INCOMPLETE_READBACK, "go_around",
                "going around", None, Severity.CRITICAL,
                "Go around/missed approach not acknowledged",
                'Start readback with "Going around" or "Missed approach"',
                "ICAO Doc 4444 Section 6.5.3.4",
                "Unclear if go around is being executed",
            ))

        expected_altitude = extract_value(atc, "altitude")
        if expected_altitude is not None and not extract_all_values(pilot, "altitude"):
            findings.append(self._finding(
                PhaseErrorType.GO_AROUND_ALTITUDE_WRONG, ErrorType.MISSING_ELEMENT, "altitude",
                format_value("altitude", expected_altitude), None, Severity.CRITICAL,
                "Go around altitude not confirmed",
                "Include altitude in go around readback",
                "ICAO Doc 4444",
                "May climb to wrong altitude during go around",
            ))

        if re.search(r"\b(?:heading|turn)\b", atc) and not re.search(r"\b(?:heading|left|right)\b", pilot):
            findings.append(self._finding(
                PhaseErrorType.GO_AROUND_HEADING_WRONG, ErrorType.MISSING_ELEMENT, "heading",
                "heading", None, Severity.HIGH,
                "Go around heading not confirmed",
                "Include heading/turn in go around readback",
                "ICAO Doc 4444",
                "May turn wrong direction during go around",
            ))
        return findings

    def _check_visual_traffic(self, atc: str, pilot: str):
        if re.search(r"visual\s+approach", atc) and re.search(r"\b(?:traffic|follow)\b", atc):
            if not re.search(r"\btraffic\b|in\s+sight", pilot):
                return self._finding(
                    PhaseErrorType.VISUAL_APPROACH_TRAFFIC_MISSED, ErrorType.MISSING_ELEMENT, "traffic",
                    "traffic in sight", None, Severity.HIGH,
                    "Traffic to follow not acknowledged for visual approach",
                    'Acknowledge "traffic in sight" for visual separation',
                    "ICAO Doc 4444 Section 6.5.3.1",
                    "Visual separation cannot be applied without traffic in sight",
                )
        return None


DETECTORS: Tuple[ErrorDetector, ...] = (DepartureErrorDetector(), ApproachErrorDetector())


def detect_phase_errors(instruction: str, readback: str, phase: FlightPhase,
                        callsign: Optional[str] = None) -> Tuple[List[PhaseSpecificError], List[PhaseSpecificError]]:
    """(departure findings, approach findings) for the detected phase"""
    departure: List[PhaseSpecificError] = []
    approach: List[PhaseSpecificError] = []
    for detector in DETECTORS:
        if not detector.applies_to(phase):
            continue
        findings = detector.detect(instruction, readback, callsign)
        if detector.name == "departure":
            departure.extend(findings)
        else:
            approach.extend(findings)
    return departure, approach
