"""
Severity & Safety-Vector Scorer

Turns a readback analysis into five weighted safety factors, one contextual
severity label and a set of heuristic confidence scores.
"""

import re
import logging
from typing import List, Optional, Dict, Any
from dataclasses import dataclass

from models.readback import ErrorType, Severity, FlightPhase
from services.readback_errors import ReadbackError, PhaseSpecificError
from services.multipart_analyzer import MultiPartInstructionAnalysis

logger = logging.getLogger(__name__)


@dataclass
class SafetyVector:
    factor: str
    score: int
    weight: float
    description: str
    mitigation_required: bool

    def to_dict(self) -> Dict[str, Any]:
        return {
            "factor": self.factor,
            "score": self.score,
            "weight": self.weight,
            "description": self.description,
            "mitigation_required": self.mitigation_required,
        }


@dataclass
class ModelConfidence:
    phase_detection: float
    instruction_classification: float
    error_detection: float
    severity_assessment: float
    overall: float

    def to_dict(self) -> Dict[str, float]:
        return {
            "phase_detection": self.phase_detection,
            "instruction_classification": self.instruction_classification,
            "error_detection": self.error_detection,
            "severity_assessment": self.severity_assessment,
            "overall": self.overall,
        }


# Phases where phase compliance carries the boosted weight
SAFETY_CRITICAL_PHASES = {FlightPhase.INITIAL_DEPARTURE, FlightPhase.FINAL_APPROACH, FlightPhase.GO_AROUND}

CRITICAL_PARAMETER_PENALTY = 25
PHASE_ERROR_PENALTY = 20
COMPLETENESS_THRESHOLD = 80
PHASE_COMPLIANCE_THRESHOLD = 70
CRITICAL_PARTS_MISSING_SCORE = 40
CONFUSION_SCORE = 30


def calculate_safety_vectors(
    errors: List[ReadbackError],
    phase: FlightPhase,
    multi_part: MultiPartInstructionAnalysis,
    phase_errors: List[PhaseSpecificError],
) -> List[SafetyVector]:
    """Always five vectors, in fixed order"""
    critical = [
        e for e in errors
        if e.severity == Severity.CRITICAL or e.type in (ErrorType.WRONG_VALUE, ErrorType.TRANSPOSITION)
    ]
    phase_score = max(0, 100 - len(phase_errors) * PHASE_ERROR_PENALTY)
    confusion = [e for e in errors if e.type == ErrorType.PARAMETER_CONFUSION]
    completeness = multi_part.readback_completeness

    return [
        SafetyVector(
            factor="Critical Parameter Accuracy",
            score=max(0, 100 - len(critical) * CRITICAL_PARAMETER_PENALTY),
            weight=0.25,
            description="Accuracy of safety-critical values (altitude, heading, runway)",
            mitigation_required=len(critical) > 0,
        ),
        SafetyVector(
            factor="Readback Completeness",
            score=completeness,
            weight=0.20,
            description="Percentage of required elements included in readback",
            mitigation_required=completeness < COMPLETENESS_THRESHOLD,
        ),
        SafetyVector(
            factor="Phase-Specific Compliance",
            score=phase_score,
            weight=0.25 if phase in SAFETY_CRITICAL_PHASES else 0.15,
            description=f"Compliance with {phase.value.replace('_', ' ')} phase requirements",
            mitigation_required=phase_score < PHASE_COMPLIANCE_THRESHOLD,
        ),
        SafetyVector(
            factor="Multi-Part Instruction Handling",
            score=CRITICAL_PARTS_MISSING_SCORE if multi_part.critical_parts_missing else completeness,
            weight=0.15,
            description="Ability to handle complex, multi-element instructions",
            mitigation_required=multi_part.critical_parts_missing,
        ),
        SafetyVector(
            factor="Parameter Confusion Risk",
            score=CONFUSION_SCORE if confusion else 100,
            weight=0.15,
            description="Risk of confusing one parameter type for another (heading vs altitude)",
            mitigation_required=bool(confusion),
        ),
    ]


def weighted_safety_score(vectors: List[SafetyVector]) -> int:
    """Weight-normalized mean of the vector scores, 100 for no vectors"""
    total_weight = sum(v.weight for v in vectors)
    if not total_weight:
        return 100
    return round(sum(v.score * v.weight for v in vectors) / total_weight)


# ============================================================
# CONTEXTUAL SEVERITY
# ============================================================

COARSE_PHASE = {
    FlightPhase.GROUND: "ground",
    FlightPhase.TAXI: "ground",
    FlightPhase.LINEUP: "ground",
    FlightPhase.ROLLOUT: "ground",
    FlightPhase.TAKEOFF_ROLL: "departure",
    FlightPhase.INITIAL_DEPARTURE: "departure",
    FlightPhase.DEPARTURE_CLIMB: "climb",
    FlightPhase.ENROUTE_CLIMB: "climb",
    FlightPhase.CRUISE: "cruise",
    FlightPhase.DESCENT: "descent",
    FlightPhase.ARRIVAL: "descent",
    FlightPhase.APPROACH: "approach",
    FlightPhase.GO_AROUND: "approach",
    FlightPhase.FINAL_APPROACH: "landing",
    FlightPhase.LANDING: "landing",
}

# Critical regardless of phase
ALWAYS_CRITICAL_TYPES = {
    ErrorType.ROGER_SUBSTITUTION,
    ErrorType.CRITICAL_CONFUSION,
    ErrorType.PARAMETER_CONFUSION,
    ErrorType.CONDITION_VIOLATED,
}

# (coarse phases, pattern over "<type> <parameter>", label)
SEVERITY_LOOKUP = (
    (("ground", "landing"), r"runway|takeoff|landing", Severity.CRITICAL),
    (("approach", "departure"), r"altitude|runway", Severity.CRITICAL),
    (("approach", "departure"), r"heading", Severity.HIGH),
    (None, r"missing|wrong|transposition", Severity.HIGH),
    (None, r"incomplete", Severity.MEDIUM),
)


def coarse_phase(phase: Optional[FlightPhase]) -> str:
    return COARSE_PHASE.get(phase, "cruise")


def _label(coarse: str, error: ReadbackError) -> Severity:
    if error.type in ALWAYS_CRITICAL_TYPES:
        return Severity.CRITICAL
    key = f"{error.type.value} {error.base_parameter}".lower()
    for phases, pattern, label in SEVERITY_LOOKUP:
        if phases is not None and coarse not in phases:
            continue
        if re.search(pattern, key):
            return label
    return Severity.LOW


def contextual_severity(phase: Optional[FlightPhase], errors: List[ReadbackError]) -> Severity:
    """
    Severity of the exchange in its phase context.

    Looks up the most severe error(s) against the coarse phase; when several
    errors share the top base severity the more severe label wins.
    """
    if not errors:
        return Severity.LOW

    coarse = coarse_phase(phase)
    top = max(e.severity.weight for e in errors)
    labels = [_label(coarse, e) for e in errors if e.severity.weight == top]
    label = max(labels, key=lambda s: s.weight)
    logger.debug(f"CONTEXTUAL SEVERITY | phase={coarse} | label={label.value}")
    return label


# ============================================================
# MODEL CONFIDENCE
# ============================================================

def model_confidence(phase_confidence: float, errors: List[ReadbackError]) -> ModelConfidence:
    """Heuristic confidence per analysis stage; overall is the plain mean"""
    classification = 0.85 if errors else 0.9
    ambiguous = any(
        e.type == ErrorType.HEARBACK_ERROR or "unclear" in e.explanation.lower()
        for e in errors
    )
    error_detection = 0.7 if ambiguous else 0.9
    severity = 0.85
    overall = round((phase_confidence + classification + error_detection + severity) / 4, 2)
    return ModelConfidence(
        phase_detection=phase_confidence,
        instruction_classification=classification,
        error_detection=error_detection,
        severity_assessment=severity,
        overall=overall,
    )
