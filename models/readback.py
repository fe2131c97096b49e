"""
Readback Analysis Models

Shared enums for the readback engine plus the request/response models
exposed by the /api/readback routes.

The engine itself works on dataclasses (see services/); these pydantic
models are the HTTP contract only.
"""

from pydantic import BaseModel, Field
from typing import Optional, List, Dict, Any
from enum import Enum


# ============================================================
# ENUMS
# ============================================================

class ErrorType(str, Enum):
    """Closed set of readback findings"""
    WRONG_VALUE = "wrong_value"
    MISSING_ELEMENT = "missing_element"
    INCOMPLETE_READBACK = "incomplete_readback"
    PARAMETER_CONFUSION = "parameter_confusion"
    TRANSPOSITION = "transposition"
    HEARBACK_ERROR = "hearback_error"
    EXTRA_ELEMENT = "extra_element"
    CONDITION_OMITTED = "condition_omitted"
    CONDITION_VIOLATED = "condition_violated"
    CONSTRAINT_MISSING = "constraint_missing"
    ROGER_SUBSTITUTION = "roger_substitution"
    WRONG_DIRECTION = "wrong_direction"
    MISSING_CALLSIGN = "missing_callsign"
    CRITICAL_CONFUSION = "critical_confusion"
    WRONG_RUNWAY = "wrong_runway"
    MISSING_DESIGNATOR = "missing_designator"
    NON_NATIVE_PRONUNCIATION = "non_native_pronunciation"
    NON_NATIVE_GRAMMAR = "non_native_grammar"
    NON_NATIVE_WORD_ORDER = "non_native_word_order"
    NON_NATIVE_STRESS = "non_native_stress"


class Severity(str, Enum):
    CRITICAL = "critical"
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"

    @property
    def weight(self) -> int:
        return SEVERITY_WEIGHTS[self]


SEVERITY_WEIGHTS = {
    Severity.CRITICAL: 4,
    Severity.HIGH: 3,
    Severity.MEDIUM: 2,
    Severity.LOW: 1,
}


class ReadbackQuality(str, Enum):
    COMPLETE = "complete"
    PARTIAL = "partial"
    MISSING = "missing"
    INCORRECT = "incorrect"


class InstructionType(str, Enum):
    """Instruction categories assigned by the classifier"""
    ALTITUDE_CHANGE = "altitude_change"
    HEADING_CHANGE = "heading_change"
    SPEED_CHANGE = "speed_change"
    ALTIMETER_SETTING = "altimeter_setting"
    SQUAWK_CODE = "squawk_code"
    FREQUENCY_CHANGE = "frequency_change"
    APPROACH_CLEARANCE = "approach_clearance"
    TAKEOFF_CLEARANCE = "takeoff_clearance"
    LANDING_CLEARANCE = "landing_clearance"
    LINEUP_WAIT = "lineup_wait"
    DIRECT_TO = "direct_to"
    HOLD_INSTRUCTION = "hold_instruction"
    TAXI_INSTRUCTION = "taxi_instruction"
    INFORMATION_ONLY = "information_only"
    UNKNOWN = "unknown"


class FlightPhase(str, Enum):
    """Flight phases, in operational order"""
    GROUND = "ground"
    TAXI = "taxi"
    LINEUP = "lineup"
    TAKEOFF_ROLL = "takeoff_roll"
    INITIAL_DEPARTURE = "initial_departure"
    DEPARTURE_CLIMB = "departure_climb"
    ENROUTE_CLIMB = "enroute_climb"
    CRUISE = "cruise"
    DESCENT = "descent"
    ARRIVAL = "arrival"
    APPROACH = "approach"
    FINAL_APPROACH = "final_approach"
    GO_AROUND = "go_around"
    LANDING = "landing"
    ROLLOUT = "rollout"


class ConditionType(str, Enum):
    WHEN = "WHEN"
    UNTIL = "UNTIL"
    AFTER = "AFTER"
    AT = "AT"
    ONCE = "ONCE"
    BEFORE = "BEFORE"
    UPON = "UPON"


class SpeakerRole(str, Enum):
    ATC = "ATC"
    PILOT = "PILOT"
    UNKNOWN = "UNKNOWN"


class ErrorTrend(str, Enum):
    IMPROVING = "improving"
    STABLE = "stable"
    DECLINING = "declining"


class PhaseErrorType(str, Enum):
    """Departure and approach specific findings"""
    # Departure
    SID_MISSED = "sid_missed"
    INITIAL_ALTITUDE_WRONG = "initial_altitude_wrong"
    RUNWAY_HEADING_ERROR = "runway_heading_error"
    FREQUENCY_CONFUSION = "frequency_confusion"
    CONDITIONAL_CLEARANCE_MISSED = "conditional_clearance_missed"
    EXPEDITE_NOT_ACKNOWLEDGED = "expedite_not_acknowledged"
    NOISE_ABATEMENT_IGNORED = "noise_abatement_ignored"
    DIRECT_TO_MISSED = "direct_to_missed"
    # Approach
    APPROACH_TYPE_CONFUSION = "approach_type_confusion"
    CROSSING_ALTITUDE_ERROR = "crossing_altitude_error"
    QNH_NOT_CONFIRMED = "qnh_not_confirmed"
    MISSED_APPROACH_INCOMPLETE = "missed_approach_incomplete"
    GO_AROUND_ALTITUDE_WRONG = "go_around_altitude_wrong"
    GO_AROUND_HEADING_WRONG = "go_around_heading_wrong"
    VISUAL_APPROACH_TRAFFIC_MISSED = "visual_approach_traffic_missed"


# ============================================================
# REQUEST MODELS
# ============================================================

class HistoryEntry(BaseModel):
    """One prior exchange outcome for the same session"""
    type: str = Field(..., description="Error type of the prior exchange")
    severity: Severity = Field(..., description="Severity of the prior exchange")
    timestamp: float = Field(..., description="Epoch seconds of the prior exchange")


class AnalyzeRequest(BaseModel):
    instruction: str = Field(..., description="Controller instruction as transcribed text")
    readback: str = Field(..., description="Pilot readback as transcribed text")
    callsign: Optional[str] = Field(None, description="Aircraft callsign, e.g. PAL123")
    history: List[HistoryEntry] = Field(default_factory=list, description="Prior outcomes, oldest first")
    include_phase: bool = Field(default=True, description="Attach phase, safety and sequence analysis")


class BatchAnalyzeRequest(BaseModel):
    exchanges: List[AnalyzeRequest]


class InstructionRequest(BaseModel):
    instruction: str = Field(..., description="Controller instruction as transcribed text")
    callsign: Optional[str] = Field(None, description="Aircraft callsign")


class PhaseRequest(BaseModel):
    instruction: str
    readback: Optional[str] = None


class ExchangeInput(BaseModel):
    atc: str = Field(..., description="Controller line")
    pilot: str = Field(..., description="Pilot line")
    expected_phase: Optional[FlightPhase] = Field(None, alias="expectedPhase")

    class Config:
        populate_by_name = True


class EvaluateRequest(BaseModel):
    exchanges: List[ExchangeInput]


class TranscriptLine(BaseModel):
    text: str
    speaker: Optional[str] = Field(None, description="ATC, PILOT or UNKNOWN")


class TranscriptRequest(BaseModel):
    lines: List[TranscriptLine] = Field(default_factory=list)
    text: Optional[str] = Field(None, description="Raw transcript, one utterance per line")
    validation_confidence: float = Field(default=1.0, ge=0.0, le=1.0, description="Extraction confidence")


# ============================================================
# RESPONSE MODELS
# ============================================================

class ReadbackErrorResponse(BaseModel):
    type: ErrorType
    parameter: str
    expected_value: Optional[str] = None
    actual_value: Optional[str] = None
    severity: Severity
    explanation: str
    reference_code: Optional[str] = None
    details: Dict[str, Any] = Field(default_factory=dict)


class AnalysisResponse(BaseModel):
    """Readback analysis, with optional phase extension"""
    is_correct: bool
    quality: ReadbackQuality
    confidence: float = Field(..., ge=0.0, le=1.0)
    instruction_type: InstructionType
    errors: List[ReadbackErrorResponse]
    expected_response: str
    actual_response: str
    corrections: List[str]
    phase: Optional[FlightPhase] = None
    phase_confidence: Optional[float] = Field(None, ge=0.0, le=1.0)
    contextual_severity: Optional[Severity] = None
    multi_part: Optional[Dict[str, Any]] = None
    phase_errors: List[ReadbackErrorResponse] = Field(default_factory=list)
    safety_vectors: List[Dict[str, Any]] = Field(default_factory=list)
    sequence: Optional[Dict[str, Any]] = None
    model_confidence: Optional[Dict[str, float]] = None
    training_recommendations: List[str] = Field(default_factory=list)
    phraseology_findings: List[ReadbackErrorResponse] = Field(default_factory=list)
    range_warnings: List[str] = Field(default_factory=list)
    feedback: Optional[str] = None


class ExpectedReadbackResponse(BaseModel):
    instruction: str
    instruction_type: InstructionType
    expected_readback: str


class ClassificationResponse(BaseModel):
    instruction: str
    normalized: str
    instruction_type: InstructionType
    required_elements: List[str]
    command: Dict[str, Any]


class PhaseResponse(BaseModel):
    phase: FlightPhase
    confidence: float = Field(..., ge=0.0, le=1.0)
    scores: Dict[str, int] = Field(default_factory=dict)


class EvaluationResponse(BaseModel):
    total_exchanges: int
    correct_readbacks: int
    phase_accuracy: int
    departure_error_rate: int
    approach_error_rate: int
    average_completeness: int
    critical_error_count: int


class TrainingRecordResponse(BaseModel):
    instruction: str
    correct_response: str
    label: str
    phase: Optional[FlightPhase] = None
    error_type: Optional[str] = None
    critical_elements: List[str] = Field(default_factory=list)


class TranscriptExchangeResponse(BaseModel):
    atc: str
    pilot: str
    atc_speaker: SpeakerRole
    pilot_speaker: SpeakerRole
    callsign: Optional[str] = None
    analysis: AnalysisResponse


class TranscriptResponse(BaseModel):
    exchanges: List[TranscriptExchangeResponse]
    unpaired_lines: List[str]
    validation_confidence: float
    warnings: List[str] = Field(default_factory=list)
