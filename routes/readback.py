"""
Readback Analysis Routes

Thin async wrappers over the synchronous readback engine.
"""

from fastapi import APIRouter, HTTPException, status
from typing import List, Optional

from config import get_settings
from models.readback import (
    AnalyzeRequest, AnalysisResponse, BatchAnalyzeRequest,
    InstructionRequest, ExpectedReadbackResponse, ClassificationResponse,
    PhaseRequest, PhaseResponse, EvaluateRequest, EvaluationResponse,
    TrainingRecordResponse, TranscriptRequest, TranscriptResponse,
    ErrorType, FlightPhase,
)
from services.readback_engine import analyze
from services.expected_readback import generate_expected_readback
from services.instruction_classifier import classify
from services.command_parser import parse_command
from services.phase_detector import detect_phase
from services.number_normalizer import normalize
from services.corpus_evaluator import evaluate, export_training_records, validate_rule_tables, corpus_stats
from services.reference_corpus import CORPORA
from services.transcript_pairing import pair_exchanges, split_transcript, LOW_CONFIDENCE_THRESHOLD
import logging

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/readback", tags=["readback"])

ERROR_CATEGORIES = {
    "core": [
        ErrorType.WRONG_VALUE, ErrorType.MISSING_ELEMENT, ErrorType.INCOMPLETE_READBACK,
        ErrorType.PARAMETER_CONFUSION, ErrorType.TRANSPOSITION, ErrorType.HEARBACK_ERROR,
        ErrorType.EXTRA_ELEMENT,
    ],
    "conditional": [
        ErrorType.CONDITION_OMITTED, ErrorType.CONDITION_VIOLATED, ErrorType.CONSTRAINT_MISSING,
        ErrorType.ROGER_SUBSTITUTION,
    ],
    "direction": [ErrorType.WRONG_DIRECTION, ErrorType.MISSING_CALLSIGN],
    "runway": [ErrorType.CRITICAL_CONFUSION, ErrorType.WRONG_RUNWAY, ErrorType.MISSING_DESIGNATOR],
    "non_native": [
        ErrorType.NON_NATIVE_PRONUNCIATION, ErrorType.NON_NATIVE_GRAMMAR,
        ErrorType.NON_NATIVE_WORD_ORDER, ErrorType.NON_NATIVE_STRESS,
    ],
}


def _analysis_response(request: AnalyzeRequest) -> AnalysisResponse:
    result = analyze(
        request.instruction,
        request.readback,
        callsign=request.callsign,
        history=[entry.model_dump() for entry in request.history],
        include_phase=request.include_phase,
    )
    return AnalysisResponse(**result.to_dict())


@router.post("/analyze", response_model=AnalysisResponse)
async def analyze_exchange(request: AnalyzeRequest):
    """Analyze one instruction/readback exchange"""
    return _analysis_response(request)


@router.post("/analyze/batch", response_model=List[AnalysisResponse])
async def analyze_batch(request: BatchAnalyzeRequest):
    """Analyze several independent exchanges"""
    settings = get_settings()
    if len(request.exchanges) > settings.max_batch_size:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Batch too large: {len(request.exchanges)} exchanges (max {settings.max_batch_size})"
        )

    logger.info(f"BATCH ANALYSIS | exchanges={len(request.exchanges)}")
    return [_analysis_response(exchange) for exchange in request.exchanges]


@router.post("/expected", response_model=ExpectedReadbackResponse)
async def expected_readback(request: InstructionRequest):
    """ICAO readback expected for an instruction"""
    return ExpectedReadbackResponse(
        instruction=request.instruction,
        instruction_type=classify(request.instruction).instruction_type,
        expected_readback=generate_expected_readback(request.instruction, request.callsign),
    )


@router.post("/classify", response_model=ClassificationResponse)
async def classify_instruction(request: InstructionRequest):
    """Instruction type, required readback elements and structured command"""
    classification = classify(request.instruction)
    return ClassificationResponse(
        instruction=request.instruction,
        normalized=normalize(request.instruction),
        instruction_type=classification.instruction_type,
        required_elements=list(classification.required_elements),
        command=parse_command(request.instruction).to_dict(),
    )


@router.post("/phase", response_model=PhaseResponse)
async def flight_phase(request: PhaseRequest):
    detection = detect_phase(request.instruction, request.readback)
    return PhaseResponse(phase=detection.phase, confidence=detection.confidence, scores=detection.scores)


@router.post("/evaluate", response_model=EvaluationResponse)
async def evaluate_exchanges(request: EvaluateRequest):
    """Corpus-style evaluation of {atc, pilot, expectedPhase} exchanges"""
    settings = get_settings()
    if len(request.exchanges) > settings.max_batch_size:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Batch too large: {len(request.exchanges)} exchanges (max {settings.max_batch_size})"
        )
    return EvaluationResponse(**evaluate(request.exchanges).to_dict())


@router.post("/transcript", response_model=TranscriptResponse)
async def analyze_transcript(request: TranscriptRequest):
    """Pair transcript lines into exchanges and analyze each one"""
    if request.lines:
        lines = [line.model_dump() for line in request.lines]
    elif request.text:
        lines = split_transcript(request.text)
    else:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Provide transcript lines or text"
        )

    pairing = pair_exchanges(lines)
    warnings = []
    if request.validation_confidence < LOW_CONFIDENCE_THRESHOLD:
        warnings.append(
            f"Low extraction confidence ({request.validation_confidence:.2f}); speaker labels may be unreliable"
        )
    if not pairing.exchanges:
        warnings.append("No ATC/pilot exchange could be paired")

    exchanges = []
    for exchange in pairing.exchanges:
        result = analyze(exchange.atc.text, exchange.pilot.text, callsign=exchange.callsign)
        exchanges.append({
            "atc": exchange.atc.text,
            "pilot": exchange.pilot.text,
            "atc_speaker": exchange.atc.speaker,
            "pilot_speaker": exchange.pilot.speaker,
            "callsign": exchange.callsign,
            "analysis": result.to_dict(),
        })

    return TranscriptResponse(
        exchanges=exchanges,
        unpaired_lines=[u.text for u in pairing.unpaired],
        validation_confidence=request.validation_confidence,
        warnings=warnings,
    )


@router.get("/export", response_model=List[TrainingRecordResponse])
async def export_training_data(
    corpus: Optional[str] = None,
    label: Optional[str] = None,
    phase: Optional[str] = None
):
    """Flattened training records from the reference corpora"""
    if corpus is not None and corpus not in CORPORA:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Corpus not found: {corpus}"
        )
    if label is not None and label not in ("correct", "incorrect"):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="label must be 'correct' or 'incorrect'"
        )
    phase_filter = None
    if phase is not None:
        try:
            phase_filter = FlightPhase(phase)
        except ValueError:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=f"Unknown flight phase: {phase}"
            )

    records = export_training_records(corpus)
    if label:
        records = [r for r in records if r.label == label]
    if phase_filter:
        records = [r for r in records if r.phase == phase_filter]
    return [r.to_dict() for r in records]


@router.get("/corpus/stats")
async def get_corpus_stats():
    return corpus_stats()


@router.get("/corpus/validate")
async def validate_corpus():
    """Run the reference corpora through the engine"""
    return validate_rule_tables()


@router.get("/error-types")
async def list_error_types(category: Optional[str] = None):
    """Error taxonomy, optionally one category"""
    if category is not None and category not in ERROR_CATEGORIES:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Unknown category: {category}"
        )

    categories = {category: ERROR_CATEGORIES[category]} if category else ERROR_CATEGORIES
    return {
        name: [error_type.value for error_type in types]
        for name, types in categories.items()
    }
