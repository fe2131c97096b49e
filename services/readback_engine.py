"""
Readback Engine

Single entry point for one ATC/pilot exchange. Runs the semantic validator
and, in phase mode, layers on phase detection, multi-part analysis,
phase-specific detectors, safety vectors, contextual severity, sequence
state, confidence scores, training recommendations and feedback.
"""

import re
import logging
from typing import List, Optional, Dict, Any, Iterable
from dataclasses import dataclass, field

from config import get_settings
from models.readback import ErrorType, Severity, FlightPhase
from services.readback_errors import ReadbackError, PhaseSpecificError, PhraseologyFinding
from services.readback_validator import analyze_readback, AnalysisResult
from services.phase_detector import detect_phase, PhaseDetection
from services.multipart_analyzer import analyze_multipart, MultiPartInstructionAnalysis
from services.phase_error_detectors import detect_phase_errors
from services.safety_scorer import (
    SafetyVector,
    ModelConfidence,
    calculate_safety_vectors,
    contextual_severity,
    model_confidence,
)
from services.sequence_tracker import track_sequence, SequenceState
from services.phraseology_detector import detect_phraseology_issues
from services.number_normalizer import range_warnings, strip_callsign, normalize

logger = logging.getLogger(__name__)

MAX_RECOMMENDATIONS = 5

ERROR_RECOMMENDATIONS = {
    ErrorType.INCOMPLETE_READBACK: "Practice full readback format: [Key elements] + [Callsign]",
    ErrorType.WRONG_VALUE: "Focus on number accuracy and ICAO pronunciation (NINER, TREE, FIFE)",
    ErrorType.TRANSPOSITION: "Practice digit-by-digit readback to prevent transposition errors",
    ErrorType.PARAMETER_CONFUSION: "Clearly distinguish between altitude/heading/speed context words",
    ErrorType.MISSING_ELEMENT: "Use systematic checklist approach for multi-part instructions",
}

DEPARTURE_RECOMMENDATIONS = (
    "Review departure procedures and SID readback requirements",
    "Practice radar contact and initial climb scenarios",
)

APPROACH_RECOMMENDATIONS = (
    "Review approach clearance format and required elements",
    "Practice go-around scenarios with altitude and heading",
    "Always confirm QNH/altimeter setting on approach",
)

MULTIPART_RECOMMENDATIONS = (
    "Practice handling complex clearances with multiple instructions",
    "Use write-down technique for multi-part clearances",
)


@dataclass
class ExchangeAnalysis:
    """Base result plus the phase-mode extension"""
    result: AnalysisResult
    phase: Optional[PhaseDetection] = None
    multi_part: Optional[MultiPartInstructionAnalysis] = None
    departure_errors: List[PhaseSpecificError] = field(default_factory=list)
    approach_errors: List[PhaseSpecificError] = field(default_factory=list)
    safety_vectors: List[SafetyVector] = field(default_factory=list)
    contextual_severity: Optional[Severity] = None
    sequence: Optional[SequenceState] = None
    model_confidence: Optional[ModelConfidence] = None
    training_recommendations: List[str] = field(default_factory=list)
    phraseology_findings: List[PhraseologyFinding] = field(default_factory=list)
    range_warnings: List[str] = field(default_factory=list)
    feedback: str = ""

    @property
    def phase_errors(self) -> List[PhaseSpecificError]:
        return self.departure_errors + self.approach_errors

    def to_dict(self) -> Dict[str, Any]:
        data = self.result.to_dict()
        data.update({
            "phase": self.phase.phase.value if self.phase else None,
            "phase_confidence": self.phase.confidence if self.phase else None,
            "contextual_severity": self.contextual_severity.value if self.contextual_severity else None,
            "multi_part": self.multi_part.to_dict() if self.multi_part else None,
            "phase_errors": [e.to_dict() for e in self.phase_errors],
            "safety_vectors": [v.to_dict() for v in self.safety_vectors],
            "sequence": self.sequence.to_dict() if self.sequence else None,
            "model_confidence": self.model_confidence.to_dict() if self.model_confidence else None,
            "training_recommendations": self.training_recommendations,
            "phraseology_findings": [f.to_dict() for f in self.phraseology_findings],
            "range_warnings": self.range_warnings,
            "feedback": self.feedback,
        })
        return data


# ============================================================
# FEEDBACK
# ============================================================

# (pattern, element name, critical)
COMPLETENESS_ELEMENTS = (
    (r"runway\s+\d+", "runway", True),
    (r"flight\s*level\s+\d+|\bfl\s*\d+", "flight level", True),
    (r"\d+\s*(?:thousand|feet)", "altitude", True),
    (r"cleared\s+(?:for\s+)?take\s*-?off", "takeoff clearance", True),
    (r"cleared\s+to\s+land", "landing clearance", True),
    (r"cleared\s+\w+\s+approach", "approach clearance", True),
    (r"hold\s+short", "hold short", True),
    (r"line\s*up\s+(?:and\s+)?wait", "line up and wait", True),
    (r"heading\s+\d+", "heading", False),
    (r"speed\s+\d+|knots", "speed", False),
    (r"squawk\s+\d+", "squawk", False),
    (r"\d+\s*(?:decimal|point|\.)\s*\d+", "frequency", False),
    (r"qnh|altimeter", "altimeter setting", False),
)

CRITICAL_ELEMENT_WEIGHT = 20
STANDARD_ELEMENT_WEIGHT = 10


def readback_completeness(instruction: str, readback: str) -> Dict[str, Any]:
    """Weighted element coverage: critical elements count double"""
    instruction_lower = normalize(instruction or "")
    readback_lower = normalize(readback or "")
    missing, present = [], []
    total = achieved = 0
    critical_missing = False

    for pattern, name, critical in COMPLETENESS_ELEMENTS:
        weight = CRITICAL_ELEMENT_WEIGHT if critical else STANDARD_ELEMENT_WEIGHT
        if not re.search(pattern, instruction_lower):
            continue
        total += weight
        if re.search(pattern, readback_lower):
            present.append(name)
            achieved += weight
        else:
            missing.append(name)
            critical_missing = critical_missing or critical

    return {
        "score": round(100 * achieved / total) if total else 100,
        "missing_elements": missing,
        "present_elements": present,
        "critical_missing": critical_missing,
    }


def generate_feedback(errors: List[ReadbackError], completeness: Optional[Dict[str, Any]] = None) -> str:
    """Human-readable summary of the findings"""
    if not errors:
        return "Readback correct. All required elements properly acknowledged."

    parts = []
    for error in errors:
        if error.type == ErrorType.WRONG_VALUE:
            parts.append(f'Incorrect {error.parameter}: read back "{error.actual_value}" instead of "{error.expected_value}"')

    missing = [e.parameter for e in errors if e.type == ErrorType.MISSING_ELEMENT]
    if missing:
        parts.append(f"Missing: {', '.join(missing)}")

    types = {e.type for e in errors}
    if ErrorType.TRANSPOSITION in types:
        parts.append("Digit transposition detected - use digit-by-digit readback")
    if ErrorType.PARAMETER_CONFUSION in types:
        parts.append("Parameter confusion - clearly distinguish altitude, heading, and speed")
    if ErrorType.INCOMPLETE_READBACK in types:
        parts.append("Readback too brief - include all instruction elements")

    if completeness and completeness["missing_elements"]:
        parts.append(f"Completeness {completeness['score']}%")

    critical = [e for e in errors if e.severity == Severity.CRITICAL]
    if critical:
        parts.append(f"Reference: {critical[0].reference_code or 'ICAO Doc 4444 12.3.1'}")

    return ". ".join(parts) if parts else errors[0].explanation


def training_recommendations(errors: List[ReadbackError], phase: FlightPhase,
                             departure_errors: List[PhaseSpecificError],
                             approach_errors: List[PhaseSpecificError],
                             multi_part: MultiPartInstructionAnalysis) -> List[str]:
    recommendations = [ERROR_RECOMMENDATIONS[e.type] for e in errors if e.type in ERROR_RECOMMENDATIONS]

    if phase in (FlightPhase.INITIAL_DEPARTURE, FlightPhase.DEPARTURE_CLIMB) and departure_errors:
        recommendations.extend(DEPARTURE_RECOMMENDATIONS)
    if phase in (FlightPhase.APPROACH, FlightPhase.FINAL_APPROACH, FlightPhase.GO_AROUND) and approach_errors:
        recommendations.extend(APPROACH_RECOMMENDATIONS)
    if multi_part.is_multi_part and multi_part.critical_parts_missing:
        recommendations.extend(MULTIPART_RECOMMENDATIONS)

    # Dedupe, keep first-seen order
    return list(dict.fromkeys(recommendations))[:MAX_RECOMMENDATIONS]


# ============================================================
# ENTRY POINT
# ============================================================

def analyze(instruction: str, readback: str, callsign: Optional[str] = None,
            history: Optional[Iterable[Any]] = None, include_phase: bool = True) -> ExchangeAnalysis:
    """
    Analyze one exchange.

    With include_phase the result carries the phase extension. An empty
    instruction never runs the phase detectors.
    """
    settings = get_settings()
    instruction = instruction or ""
    readback = readback or ""

    result = analyze_readback(instruction, readback, callsign)
    analysis = ExchangeAnalysis(result=result)

    if settings.phraseology_checks_enabled:
        analysis.phraseology_findings = detect_phraseology_issues(readback)
    analysis.range_warnings = range_warnings(strip_callsign(instruction, callsign))

    completeness = readback_completeness(instruction, readback)
    analysis.feedback = generate_feedback(result.errors, completeness)

    if include_phase or history:
        analysis.sequence = track_sequence(history, result.is_correct, settings.history_window)

    if not include_phase or not instruction.strip():
        return analysis

    detection = detect_phase(instruction, readback)
    multi_part = analyze_multipart(instruction, readback, callsign)
    departure, approach = detect_phase_errors(instruction, readback, detection.phase, callsign)
    phase_errors = departure + approach

    analysis.phase = detection
    analysis.multi_part = multi_part
    analysis.departure_errors = departure
    analysis.approach_errors = approach
    analysis.safety_vectors = calculate_safety_vectors(result.errors, detection.phase, multi_part, phase_errors)
    analysis.contextual_severity = contextual_severity(detection.phase, result.errors + phase_errors)
    analysis.model_confidence = model_confidence(detection.confidence, result.errors)
    analysis.training_recommendations = training_recommendations(
        result.errors, detection.phase, departure, approach, multi_part
    )

    logger.info(
        f"PHASE ANALYSIS | phase={detection.phase.value} | confidence={detection.confidence} | "
        f"phase_errors={len(phase_errors)} | severity={analysis.contextual_severity.value}"
    )
    return analysis
