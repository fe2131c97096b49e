"""
Readback Semantic Validator

Compares a pilot readback with the controller instruction through an
ordered sequence of checks:

1. Acknowledgment adequacy   (short-circuits, quality "missing")
2. Parameter confusion       (short-circuits, critical)
3. Value match               (transposition, wrong value, magnitude, turn and
                              vertical direction, runway, waypoint, extra
                              values, runway-incursion confusions)
4. Required elements per instruction type
5. Multi-part completeness fold
6. Structured validation     (roger substitution, condition omitted/violated,
                              constraint missing, callsign)

Every check returns findings; none raises. Callsigns are stripped from both
sides before any numeric extraction, and conditional clauses are stripped
before values are compared.
"""

import re
import logging
from typing import List, Optional, Dict, Any, Set
from dataclasses import dataclass, field

from models.readback import ErrorType, Severity, ReadbackQuality, InstructionType
from services.readback_errors import ReadbackError, TranspositionError, MagnitudeError
from services.instruction_classifier import classify
from services.command_parser import (
    parse_command,
    strip_conditions,
    extract_waypoints,
    condition_present,
    constraint_present,
    detect_immediacy,
    StructuredCommand,
)
from services.multipart_analyzer import analyze_multipart, MultiPartInstructionAnalysis
from services.number_normalizer import (
    strip_callsign,
    contains_callsign,
    extract_all_values,
    format_value,
    is_transposition,
    jaro_winkler,
)
from services.phraseology_detector import detect_runway_incursion
from services.expected_readback import generate_expected_readback

logger = logging.getLogger(__name__)


# ============================================================
# RESULT
# ============================================================

@dataclass
class AnalysisResult:
    is_correct: bool
    quality: ReadbackQuality
    confidence: float
    errors: List[ReadbackError] = field(default_factory=list)
    expected_response: str = ""
    actual_response: str = ""
    corrections: List[str] = field(default_factory=list)
    instruction_type: InstructionType = InstructionType.UNKNOWN

    def to_dict(self) -> Dict[str, Any]:
        return {
            "is_correct": self.is_correct,
            "quality": self.quality.value,
            "confidence": self.confidence,
            "errors": [e.to_dict() for e in self.errors],
            "expected_response": self.expected_response,
            "actual_response": self.actual_response,
            "corrections": self.corrections,
            "instruction_type": self.instruction_type.value,
        }


# ============================================================
# TABLES
# ============================================================

ACK_WORDS = {
    "roger", "wilco", "copy", "copied", "ok", "okay", "understood", "affirmative",
    "affirm", "got", "it", "sure", "will", "comply", "thanks", "thank", "you",
}

RUNWAY_SAFETY_TYPES = {
    InstructionType.TAKEOFF_CLEARANCE,
    InstructionType.LANDING_CLEARANCE,
    InstructionType.LINEUP_WAIT,
    InstructionType.HOLD_INSTRUCTION,
}

# Instructions that must never be answered with Roger/Wilco alone
SAFETY_CRITICAL_PATTERNS = [
    r"cleared\s+(?:for\s+)?take\s*-?off",
    r"cleared\s+to\s+land",
    r"line\s*up",
    r"hold\s+short",
    r"\b(?:climb|descend)\b",
    r"\bheading\b|\bturn\s+(?:left|right)\b",
    r"\b(?:reduce|increase)\s+speed\b|\bknots\b",
    r"\bcontact\b",
    r"\bcleared\s+\w+\s+approach\b",
    r"go\s*-?\s*around",
    r"\bexpedite\b|\bimmediately\b",
]

INCORRECT_TYPES = {
    ErrorType.WRONG_VALUE,
    ErrorType.TRANSPOSITION,
    ErrorType.PARAMETER_CONFUSION,
    ErrorType.CONDITION_VIOLATED,
    ErrorType.ROGER_SUBSTITUTION,
    ErrorType.WRONG_DIRECTION,
    ErrorType.CRITICAL_CONFUSION,
    ErrorType.WRONG_RUNWAY,
    ErrorType.HEARBACK_ERROR,
}

VALUE_PARAMETERS = ("altitude", "heading", "speed", "altimeter", "squawk", "frequency")

TRANSPOSITION_SEVERITY = {
    "altitude": Severity.CRITICAL,
    "heading": Severity.CRITICAL,
    "speed": Severity.HIGH,
    "altimeter": Severity.CRITICAL,
    "squawk": Severity.HIGH,
    "frequency": Severity.HIGH,
}

WRONG_VALUE_SEVERITY = {
    "altitude": Severity.CRITICAL,
    "heading": Severity.HIGH,
    "speed": Severity.HIGH,
    "altimeter": Severity.CRITICAL,
    "squawk": Severity.HIGH,
    "frequency": Severity.HIGH,
}

ELEMENT_SEVERITY = {
    "altitude": Severity.CRITICAL,
    "runway": Severity.CRITICAL,
    "altimeter": Severity.CRITICAL,
    "runway_heading": Severity.CRITICAL,
    "takeoff_clearance": Severity.CRITICAL,
    "landing_clearance": Severity.CRITICAL,
    "lineup_clearance": Severity.CRITICAL,
    "hold": Severity.CRITICAL,
    "heading": Severity.HIGH,
    "squawk": Severity.HIGH,
    "frequency": Severity.HIGH,
    "approach_type": Severity.HIGH,
}

READBACK_REFERENCE = "ICAO Doc 4444 4.5.7.5"
CONDITION_REFERENCE = "ICAO Doc 9432 - Conditional clearances must be read back"
CONDITION_VIOLATION_REFERENCE = "FAA 7110.65 4-3-1"
CONSTRAINT_REFERENCE = "FAA 7110.65 4-5-7"

_ALTITUDE_WORDS = re.compile(r"\b(?:flight\s*level|thousand|feet|fl\s*\d)")
_HEADING_WORDS = re.compile(r"\b(?:heading|degrees)\b|\b(?:left|right)\s+\d{3}\b")
_SPEED_WORDS = re.compile(r"\b(?:speed|knots|kts|mach)\b")

_CLIMB = re.compile(r"\bclimb(?:ing)?\b")
_DESCEND = re.compile(r"\b(?:descend(?:ing)?|descent)\b")
_TURN_DIRECTION = re.compile(
    r"\bturn(?:ing)?\s+(left|right)\b|\b(left|right)\s+(?:heading\b|turn\b|(?=\d{3}\b))"
)

ELEMENT_PATTERNS = {
    "takeoff_clearance": r"cleared\s+(?:for\s+)?take\s*-?off",
    "landing_clearance": r"cleared\s+to\s+land",
    "lineup_clearance": r"\bl(?:ine|ining)\s*up\b",
    "hold": r"\bhold(?:ing)?\b",
    "expedite": r"\bexpedit",
    "runway_heading": r"\brunway\s+heading\b",
}


# ============================================================
# HELPERS
# ============================================================

def _tokens(text: str) -> List[str]:
    return re.findall(r"[a-z0-9.]+", text)


def meaningful_tokens(text: str) -> List[str]:
    """Tokens left after removing acknowledgment words"""
    return [t for t in _tokens(text) if t not in ACK_WORDS]


def is_pure_acknowledgment(readback_core: str) -> bool:
    tokens = _tokens(readback_core)
    return bool(tokens) and not meaningful_tokens(readback_core)


def turn_direction(text: str) -> Optional[str]:
    match = _TURN_DIRECTION.search(text)
    if not match:
        return None
    return match.group(1) or match.group(2)


def vertical_direction(text: str) -> Optional[str]:
    climb, descend = bool(_CLIMB.search(text)), bool(_DESCEND.search(text))
    if climb and not descend:
        return "climb"
    if descend and not climb:
        return "descend"
    return None


def _display(parameter: str, value) -> str:
    return format_value(parameter, value) or str(value)


def _error(error_type: ErrorType, parameter: str, expected, actual, severity: Severity,
           explanation: str, reference: Optional[str] = READBACK_REFERENCE, cls=ReadbackError) -> ReadbackError:
    return cls(
        type=error_type,
        parameter=parameter,
        expected_value=None if expected is None else str(expected),
        actual_value=None if actual is None else str(actual),
        severity=severity,
        explanation=explanation,
        reference_code=reference,
    )


def _critical_element_present(instruction_type: InstructionType, instruction_core: str, readback_core: str) -> bool:
    """Number-plus-keyword evidence that the readback carries the instruction's key item"""
    def has(parameter: str) -> bool:
        return bool(extract_all_values(readback_core, parameter))

    if instruction_type == InstructionType.ALTITUDE_CHANGE:
        return has("altitude") or bool(re.search(ELEMENT_PATTERNS["runway_heading"], readback_core))
    if instruction_type == InstructionType.HEADING_CHANGE:
        return has("heading")
    if instruction_type == InstructionType.SPEED_CHANGE:
        return has("speed")
    if instruction_type == InstructionType.ALTIMETER_SETTING:
        return has("altimeter")
    if instruction_type == InstructionType.SQUAWK_CODE:
        return has("squawk") or bool(re.search(r"\b(?:squawk|ident)\w*\b", readback_core))
    if instruction_type == InstructionType.FREQUENCY_CHANGE:
        return has("frequency")
    if instruction_type == InstructionType.APPROACH_CLEARANCE:
        return has("approach") or has("runway")
    if instruction_type in (InstructionType.TAKEOFF_CLEARANCE, InstructionType.LANDING_CLEARANCE,
                            InstructionType.LINEUP_WAIT):
        return has("runway") or any(
            re.search(ELEMENT_PATTERNS[e], readback_core)
            for e in ("takeoff_clearance", "landing_clearance", "lineup_clearance")
        )
    if instruction_type == InstructionType.DIRECT_TO:
        return bool(extract_waypoints(readback_core))
    if instruction_type == InstructionType.HOLD_INSTRUCTION:
        return has("runway") or bool(re.search(ELEMENT_PATTERNS["hold"], readback_core))
    if instruction_type == InstructionType.TAXI_INSTRUCTION:
        return has("runway") or bool(re.search(r"\btaxi", readback_core))

    # Unknown: any shared content word
    instruction_words = set(meaningful_tokens(instruction_core))
    if not instruction_words:
        return True
    return bool(instruction_words & set(meaningful_tokens(readback_core)))


# ============================================================
# CHECKS
# ============================================================

def check_acknowledgment(instruction_type: InstructionType, instruction_core: str,
                         readback_core: str) -> Optional[ReadbackError]:
    """Step 1: too little content to count as a readback"""
    if instruction_type == InstructionType.INFORMATION_ONLY:
        return None
    if len(meaningful_tokens(readback_core)) >= 3:
        return None
    if _critical_element_present(instruction_type, instruction_core, readback_core):
        return None

    if instruction_type in RUNWAY_SAFETY_TYPES and is_pure_acknowledgment(readback_core):
        return _roger_substitution_error(readback_core)

    return _error(
        ErrorType.INCOMPLETE_READBACK,
        "readback",
        None,
        readback_core or None,
        Severity.HIGH,
        "Acknowledgment only - the instruction content was not read back",
    )


def _roger_substitution_error(readback_core: str) -> ReadbackError:
    return _error(
        ErrorType.ROGER_SUBSTITUTION,
        "readback",
        "full readback",
        readback_core,
        Severity.CRITICAL,
        f'"{readback_core}" is not a readback - safety-critical clearances must be read back in full',
        "ICAO Doc 4444 4.5.7.5.1",
    )


def check_parameter_confusion(instruction_type: InstructionType, instruction_core: str,
                              readback_core: str) -> Optional[ReadbackError]:
    """Step 2: wrong category vocabulary present, right category absent"""
    rb_altitude = bool(_ALTITUDE_WORDS.search(readback_core))
    rb_heading = bool(_HEADING_WORDS.search(readback_core))
    rb_speed = bool(_SPEED_WORDS.search(readback_core))
    in_altitude = bool(_ALTITUDE_WORDS.search(instruction_core))
    in_heading = bool(_HEADING_WORDS.search(instruction_core))

    confused_with = None
    if instruction_type == InstructionType.HEADING_CHANGE:
        if rb_altitude and not rb_heading and not in_altitude:
            confused_with = "altitude"
    elif instruction_type == InstructionType.ALTITUDE_CHANGE:
        if rb_heading and not rb_altitude and not in_heading:
            confused_with = "heading"
    elif instruction_type == InstructionType.SPEED_CHANGE:
        if (rb_altitude and not in_altitude) or (rb_heading and not in_heading):
            if not rb_speed:
                confused_with = "altitude" if rb_altitude else "heading"

    if confused_with is None:
        return None

    expected_parameter = instruction_type.value.replace("_change", "")
    return _error(
        ErrorType.PARAMETER_CONFUSION,
        expected_parameter,
        expected_parameter,
        confused_with,
        Severity.CRITICAL,
        f"Read back as {confused_with} instead of {expected_parameter} - parameter confusion",
    )


def _compare_values(parameter: str, instruction_core: str, readback_core: str) -> List[ReadbackError]:
    expected_values = extract_all_values(instruction_core, parameter)
    if not expected_values:
        return []
    actual_values = extract_all_values(readback_core, parameter)
    if not actual_values:
        return []

    unmatched_expected = [v for v in expected_values if v not in actual_values]
    unmatched_actual = [v for v in actual_values if v not in expected_values]

    errors = []
    for expected, actual in zip(unmatched_expected, unmatched_actual):
        shown_expected = _display(parameter, expected)
        shown_actual = _display(parameter, actual)

        if parameter == "altitude":
            factor = _magnitude_factor(int(expected), int(actual))
            if factor:
                direction = "larger" if int(actual) > int(expected) else "smaller"
                errors.append(MagnitudeError(
                    type=ErrorType.WRONG_VALUE,
                    parameter="altitude (magnitude)",
                    expected_value=shown_expected,
                    actual_value=shown_actual,
                    severity=Severity.CRITICAL,
                    explanation=(
                        f"Magnitude error: {shown_actual} is {factor}x {direction} than the cleared "
                        f"{shown_expected} - thousands/hundreds misread"
                    ),
                    reference_code=READBACK_REFERENCE,
                    factor=factor,
                ))
                continue

        if is_transposition(str(expected), str(actual)):
            errors.append(_error(
                ErrorType.TRANSPOSITION, parameter, shown_expected, shown_actual,
                TRANSPOSITION_SEVERITY[parameter],
                f"Digits transposed in {parameter}: expected {shown_expected}, read back {shown_actual}",
                cls=TranspositionError,
            ))
            continue

        errors.append(_error(
            ErrorType.WRONG_VALUE, parameter, shown_expected, shown_actual,
            WRONG_VALUE_SEVERITY[parameter],
            f"Wrong {parameter}: expected {shown_expected}, read back {shown_actual}",
        ))
    return errors


def _magnitude_factor(expected: int, actual: int) -> Optional[int]:
    for factor in (10, 100):
        if expected * factor == actual or actual * factor == expected:
            return factor
    return None


def _compare_runway(instruction_core: str, readback_core: str) -> List[ReadbackError]:
    expected_values = extract_all_values(instruction_core, "runway")
    actual_values = extract_all_values(readback_core, "runway")
    if not expected_values or not actual_values:
        return []

    unmatched_expected = [v for v in expected_values if v not in actual_values]
    unmatched_actual = [v for v in actual_values if v not in expected_values]

    errors = []
    for expected, actual in zip(unmatched_expected, unmatched_actual):
        expected_number, expected_side = re.match(r"(\d+)(\D?)", expected).groups()
        actual_number, actual_side = re.match(r"(\d+)(\D?)", actual).groups()

        if expected_number == actual_number and expected_side and not actual_side:
            errors.append(_error(
                ErrorType.MISSING_DESIGNATOR, "runway", expected, actual, Severity.HIGH,
                "Missing runway designator (L/R/C) - WRONG RUNWAY POSSIBLE",
                "ICAO Annex 14 - Parallel runway designators are mandatory",
            ))
        elif expected_number != actual_number and is_transposition(expected_number, actual_number):
            errors.append(_error(
                ErrorType.TRANSPOSITION, "runway", expected, actual, Severity.CRITICAL,
                f"Runway digits transposed: expected {expected}, read back {actual}",
                cls=TranspositionError,
            ))
        else:
            errors.append(_error(
                ErrorType.WRONG_RUNWAY, "runway", expected, actual, Severity.CRITICAL,
                f"Wrong runway read back: expected {expected}, read back {actual}",
                "ICAO Doc 4444 - Runway must be verified",
            ))
    return errors


def _compare_approach(instruction_core: str, readback_core: str) -> List[ReadbackError]:
    expected_values = extract_all_values(instruction_core, "approach")
    actual_values = extract_all_values(readback_core, "approach")
    if not expected_values or not actual_values:
        return []
    unmatched_actual = [v for v in actual_values if v not in expected_values]
    errors = []
    for expected in expected_values:
        if expected in actual_values or not unmatched_actual:
            continue
        actual = unmatched_actual.pop(0)
        errors.append(_error(
            ErrorType.WRONG_VALUE, "approach_type", expected, actual, Severity.CRITICAL,
            f"Approach type mismatch: cleared {expected}, read back {actual}",
        ))
    return errors


def _compare_waypoints(instruction_core: str, readback_core: str) -> List[ReadbackError]:
    expected_fixes = extract_waypoints(instruction_core)
    if not expected_fixes:
        return []
    actual_fixes = extract_waypoints(readback_core)
    candidates = [f for f in actual_fixes if f not in expected_fixes]

    errors = []
    for fix in expected_fixes:
        if re.search(rf"\b{fix.lower()}\b", readback_core):
            continue
        similar = [c for c in candidates if jaro_winkler(fix, c) >= 0.85]
        if similar:
            errors.append(_error(
                ErrorType.WRONG_VALUE, "waypoint", fix, similar[0], Severity.HIGH,
                f"Waypoint read back as {similar[0]} instead of {fix}",
            ))
    return errors


def _check_directions(instruction_core: str, readback_core: str) -> List[ReadbackError]:
    errors = []

    expected_turn = turn_direction(instruction_core)
    actual_turn = turn_direction(readback_core)
    if expected_turn and actual_turn and expected_turn != actual_turn:
        errors.append(_error(
            ErrorType.WRONG_VALUE, "turn direction", expected_turn, actual_turn, Severity.CRITICAL,
            f"Turn direction reversed: cleared {expected_turn}, read back {actual_turn}",
        ))

    expected_vertical = vertical_direction(instruction_core)
    actual_vertical = vertical_direction(readback_core)
    if expected_vertical and actual_vertical and expected_vertical != actual_vertical:
        errors.append(_error(
            ErrorType.WRONG_DIRECTION, "vertical direction", expected_vertical, actual_vertical, Severity.CRITICAL,
            f"Read back {actual_vertical} when cleared to {expected_vertical}",
        ))
    return errors


def _check_extra_elements(instruction_core: str, readback_core: str) -> List[ReadbackError]:
    errors = []
    for parameter in ("heading", "squawk", "frequency"):
        if extract_all_values(instruction_core, parameter):
            continue
        extra = extract_all_values(readback_core, parameter, strict=True)
        if extra:
            errors.append(_error(
                ErrorType.EXTRA_ELEMENT, parameter, None, _display(parameter, extra[0]), Severity.LOW,
                f"Readback contains a {parameter} that was not in the instruction",
            ))
    return errors


def check_values(instruction: str, readback: str, instruction_core: str, readback_core: str) -> List[ReadbackError]:
    """Step 3"""
    errors: List[ReadbackError] = []
    for parameter in VALUE_PARAMETERS:
        errors.extend(_compare_values(parameter, instruction_core, readback_core))
    errors.extend(_check_directions(instruction_core, readback_core))
    errors.extend(_compare_runway(instruction_core, readback_core))
    errors.extend(_compare_approach(instruction_core, readback_core))
    errors.extend(_compare_waypoints(instruction_core, readback_core))
    errors.extend(_check_extra_elements(instruction_core, readback_core))
    errors.extend(detect_runway_incursion(instruction, readback))
    return errors


def _element_present(element: str, instruction_core: str, readback_core: str) -> Optional[bool]:
    """None when the instruction does not carry the element"""
    if element == "action":
        expected = vertical_direction(instruction_core)
        if expected is None:
            return None
        return bool((_CLIMB if expected == "climb" else _DESCEND).search(readback_core))

    if element == "direction":
        if turn_direction(instruction_core) is None:
            return None
        return bool(re.search(r"\b(?:left|right)\b", readback_core))

    if element in ELEMENT_PATTERNS:
        pattern = ELEMENT_PATTERNS[element]
        if not re.search(pattern, instruction_core):
            return None
        return bool(re.search(pattern, readback_core))

    if element == "waypoint":
        if not extract_waypoints(instruction_core):
            return None
        return bool(extract_waypoints(readback_core))

    parameter = "approach" if element == "approach_type" else element
    if parameter not in ("altitude", "heading", "speed", "altimeter", "squawk", "frequency", "runway", "approach"):
        return None
    if not extract_all_values(instruction_core, parameter):
        return None
    return bool(extract_all_values(readback_core, parameter))


def check_required_elements(required: List[str], instruction_core: str, readback_core: str,
                            reported: Set[str]) -> List[ReadbackError]:
    """Step 4"""
    errors = []
    for element in required:
        if element in reported:
            continue
        present = _element_present(element, instruction_core, readback_core)
        if present is None or present:
            continue
        errors.append(_error(
            ErrorType.MISSING_ELEMENT, element, element.replace("_", " "), None,
            ELEMENT_SEVERITY.get(element, Severity.MEDIUM),
            f"Required element missing from readback: {element.replace('_', ' ')}",
        ))
        reported.add(element)
    return errors


def fold_multipart(analysis: MultiPartInstructionAnalysis, reported: Set[str]) -> List[ReadbackError]:
    """Step 5: missing components not already reported. Conditions belong to step 6."""
    errors = []
    for component in analysis.components:
        if component.is_present or component.type == "condition" or component.type in reported:
            continue
        errors.append(_error(
            ErrorType.MISSING_ELEMENT, component.type, component.value, None, component.severity,
            f"Instruction component not read back: {component.type.replace('_', ' ')} {component.value}",
        ))
        reported.add(component.type)
    return errors


def validate_structured(command: StructuredCommand, instruction_core: str, readback_text: str,
                        readback_core: str, errors: List[ReadbackError],
                        callsign: Optional[str] = None, raw_readback: str = "") -> List[ReadbackError]:
    """Step 6"""
    found: List[ReadbackError] = []

    already_substituted = any(e.type == ErrorType.ROGER_SUBSTITUTION for e in errors)
    if not already_substituted and is_pure_acknowledgment(readback_core):
        if any(re.search(p, instruction_core) for p in SAFETY_CRITICAL_PATTERNS):
            found.append(_roger_substitution_error(readback_core))

    condition = command.condition
    if condition is not None:
        if not condition_present(condition, readback_text):
            found.append(_error(
                ErrorType.CONDITION_OMITTED, "condition", condition.phrase, None, Severity.HIGH,
                f'Conditional clause "{condition.phrase}" not read back',
                CONDITION_REFERENCE,
            ))
        if not command.is_immediate and detect_immediacy(readback_text):
            found.append(_error(
                ErrorType.CONDITION_VIOLATED, "condition", condition.phrase, "immediate", Severity.CRITICAL,
                f'Readback signals immediate action although the instruction is conditional ("{condition.phrase}")',
                CONDITION_VIOLATION_REFERENCE,
            ))

    constraint = command.constraint
    if constraint is not None and not constraint_present(constraint, readback_text):
        found.append(_error(
            ErrorType.CONSTRAINT_MISSING, "constraint", constraint.phrase, None, Severity.HIGH,
            f'Altitude constraint "{constraint.phrase}" not read back',
            CONSTRAINT_REFERENCE,
        ))

    if callsign and not contains_callsign(raw_readback, callsign):
        found.append(_error(
            ErrorType.MISSING_CALLSIGN, "callsign", callsign.upper(), None, Severity.LOW,
            "Readback does not include the aircraft callsign",
            "ICAO Doc 4444 4.5.7.5.3",
        ))
    return found


# ============================================================
# RESULT DERIVATION
# ============================================================

def derive_quality(errors: List[ReadbackError]) -> ReadbackQuality:
    """complete > partial (omissions only) > incorrect (mismatch, confusion, violation)"""
    if not errors:
        return ReadbackQuality.COMPLETE
    if any(e.type in INCORRECT_TYPES for e in errors):
        return ReadbackQuality.INCORRECT
    return ReadbackQuality.PARTIAL


def derive_confidence(quality: ReadbackQuality, instruction_type: InstructionType) -> float:
    if quality == ReadbackQuality.COMPLETE:
        confidence = 1.0
    elif quality == ReadbackQuality.PARTIAL:
        confidence = 0.9
    else:
        confidence = 0.95
    if instruction_type == InstructionType.UNKNOWN:
        confidence = min(confidence, 0.7)
    return confidence


def correction_for(error: ReadbackError) -> str:
    if error.type in (ErrorType.INCOMPLETE_READBACK, ErrorType.ROGER_SUBSTITUTION):
        return "Read back the full instruction, not just an acknowledgment"
    if error.type == ErrorType.MISSING_CALLSIGN:
        return f"End the readback with your callsign {error.expected_value}"
    if error.type == ErrorType.EXTRA_ELEMENT:
        return f"Do not add a {error.parameter} that was not issued"
    if error.type == ErrorType.CONDITION_VIOLATED:
        return f'Do not act until the condition is met: "{error.expected_value}"'
    if error.expected_value and error.actual_value:
        return f'Say "{error.expected_value}" instead of "{error.actual_value}"'
    if error.expected_value:
        return f'Include "{error.expected_value}" in the readback'
    return error.explanation


def _result(errors: List[ReadbackError], instruction_type: InstructionType, expected: str,
            readback: str, quality: Optional[ReadbackQuality] = None) -> AnalysisResult:
    quality = quality or derive_quality(errors)
    corrections = []
    for error in errors:
        correction = correction_for(error)
        if correction not in corrections:
            corrections.append(correction)
    return AnalysisResult(
        is_correct=not errors,
        quality=quality,
        confidence=derive_confidence(quality, instruction_type),
        errors=errors,
        expected_response=expected,
        actual_response=readback or "",
        corrections=corrections,
        instruction_type=instruction_type,
    )


# ============================================================
# ENTRY POINT
# ============================================================

def analyze_readback(instruction: str, readback: str, callsign: Optional[str] = None) -> AnalysisResult:
    """
    Validate a readback against its instruction.

    An empty instruction yields a minimal unknown-type result with
    confidence 0.3.
    """
    if not instruction or not instruction.strip():
        return AnalysisResult(
            is_correct=True,
            quality=ReadbackQuality.COMPLETE,
            confidence=0.3,
            expected_response="",
            actual_response=readback or "",
            instruction_type=InstructionType.UNKNOWN,
        )

    classification = classify(instruction)
    instruction_type = classification.instruction_type
    expected = generate_expected_readback(instruction, callsign)

    instruction_text = strip_callsign(instruction, callsign)
    readback_text = strip_callsign(readback or "", callsign)
    instruction_core = strip_conditions(instruction_text)
    readback_core = strip_conditions(readback_text)

    # 1. Acknowledgment adequacy
    ack_error = check_acknowledgment(instruction_type, instruction_core, readback_text)
    if ack_error is not None:
        quality = ReadbackQuality.MISSING if ack_error.type == ErrorType.INCOMPLETE_READBACK else None
        result = _result([ack_error], instruction_type, expected, readback, quality)
        _log_result(result)
        return result

    # 2. Parameter confusion
    confusion = check_parameter_confusion(instruction_type, instruction_core, readback_core)
    if confusion is not None:
        result = _result([confusion], instruction_type, expected, readback)
        _log_result(result)
        return result

    # 3. Values
    errors = check_values(instruction, readback or "", instruction_core, readback_core)
    reported = {e.base_parameter for e in errors}

    # 4. Required elements, 5. multi-part fold
    if instruction_type != InstructionType.INFORMATION_ONLY:
        errors.extend(check_required_elements(
            classification.required_elements, instruction_core, readback_core, reported
        ))
        errors.extend(fold_multipart(analyze_multipart(instruction, readback or "", callsign), reported))

    # 6. Structured command
    command = parse_command(instruction_text)
    errors.extend(validate_structured(
        command, instruction_core, readback_text, readback_core, errors, callsign, readback or ""
    ))

    result = _result(errors, instruction_type, expected, readback)
    _log_result(result)
    return result


def _log_result(result: AnalysisResult) -> None:
    logger.info(
        f"READBACK ANALYSIS | type={result.instruction_type.value} | quality={result.quality.value} | "
        f"errors={[e.type.value for e in result.errors]} | confidence={result.confidence}"
    )
