"""
Corpus Evaluation

Batch evaluation of exchanges, training-data export and rule-table
self-validation against the reference corpora.
"""

import time
import logging
from collections import Counter
from typing import List, Optional, Dict, Any, Iterable
from dataclasses import dataclass, field

from models.readback import ErrorType, Severity, FlightPhase, ReadbackQuality
from services.readback_engine import analyze
from services.readback_validator import analyze_readback
from services.reference_corpus import CORPORA, CorpusExample

logger = logging.getLogger(__name__)

ENGINE_VERSION = "2.0.0-departure-approach"


@dataclass
class EvaluationSummary:
    total_exchanges: int
    correct_readbacks: int
    phase_accuracy: int
    departure_error_rate: int
    approach_error_rate: int
    average_completeness: int
    critical_error_count: int

    def to_dict(self) -> Dict[str, int]:
        return {
            "total_exchanges": self.total_exchanges,
            "correct_readbacks": self.correct_readbacks,
            "phase_accuracy": self.phase_accuracy,
            "departure_error_rate": self.departure_error_rate,
            "approach_error_rate": self.approach_error_rate,
            "average_completeness": self.average_completeness,
            "critical_error_count": self.critical_error_count,
        }


@dataclass
class TrainingRecord:
    instruction: str
    correct_response: str
    label: str
    phase: Optional[FlightPhase] = None
    error_type: Optional[str] = None
    critical_elements: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "instruction": self.instruction,
            "correct_response": self.correct_response,
            "label": self.label,
            "phase": self.phase.value if self.phase else None,
            "error_type": self.error_type,
            "critical_elements": self.critical_elements,
        }


def _exchange_field(exchange: Any, *names: str) -> Any:
    for name in names:
        value = exchange.get(name) if isinstance(exchange, dict) else getattr(exchange, name, None)
        if value is not None:
            return value
    return None


def _phase_label(phase: Any) -> str:
    return phase.value if isinstance(phase, FlightPhase) else str(phase).strip().lower()


def _percent(part: int, total: int) -> int:
    return round(100 * part / total) if total else 0


def evaluate(exchanges: Iterable[Any]) -> EvaluationSummary:
    """
    Run phase-mode analysis over {atc, pilot, expected_phase?} exchanges.

    Rates are rounded percentages of the exchange count; error rates count
    phase-specific findings per exchange and may exceed 100.
    """
    total = correct = phase_hits = departure = approach = completeness = critical = 0

    for exchange in exchanges:
        total += 1
        atc = _exchange_field(exchange, "atc") or ""
        pilot = _exchange_field(exchange, "pilot") or ""
        expected_phase = _exchange_field(exchange, "expected_phase", "expectedPhase")

        analysis = analyze(atc, pilot)
        if analysis.result.is_correct:
            correct += 1
        # Unknown labels count as misses
        if expected_phase and analysis.phase and analysis.phase.phase.value == _phase_label(expected_phase):
            phase_hits += 1
        departure += len(analysis.departure_errors)
        approach += len(analysis.approach_errors)
        completeness += analysis.multi_part.readback_completeness if analysis.multi_part else 100
        if analysis.contextual_severity == Severity.CRITICAL:
            critical += 1

    summary = EvaluationSummary(
        total_exchanges=total,
        correct_readbacks=correct,
        phase_accuracy=_percent(phase_hits, total),
        departure_error_rate=_percent(departure, total),
        approach_error_rate=_percent(approach, total),
        average_completeness=round(completeness / total) if total else 100,
        critical_error_count=critical,
    )
    logger.info(f"CORPUS EVALUATION | total={total} | correct={correct} | critical={critical}")
    return summary


# ============================================================
# EXPORT
# ============================================================

def export_training_records(corpus: Optional[str] = None) -> List[TrainingRecord]:
    """One correct record per example plus one incorrect record per common error"""
    names = [corpus] if corpus else list(CORPORA)
    records: List[TrainingRecord] = []
    for name in names:
        for example in CORPORA[name]:
            records.append(TrainingRecord(
                instruction=example.atc,
                correct_response=example.correct_readback,
                label="correct",
                phase=example.phase,
                critical_elements=list(example.critical_elements),
            ))
            for error in example.common_errors:
                records.append(TrainingRecord(
                    instruction=example.atc,
                    correct_response=error.error,
                    label="incorrect",
                    phase=example.phase,
                    error_type=error.type.value,
                    critical_elements=list(example.critical_elements),
                ))
    return records


# ============================================================
# SELF-VALIDATION
# ============================================================

def _type_detected(expected: ErrorType, analysis) -> bool:
    found = {e.type for e in analysis.result.errors} | {e.type for e in analysis.phase_errors}
    return expected in found


def validate_rule_tables() -> Dict[str, Any]:
    """
    Run every corpus example through the engine.

    Correct readbacks must come back clean; common errors must be flagged,
    ideally with their labelled error type.
    """
    started = time.perf_counter()
    matrix = {"true_positives": 0, "true_negatives": 0, "false_positives": 0, "false_negatives": 0}
    samples = detections = type_hits = phase_hits = phase_samples = 0
    per_corpus: Dict[str, int] = {}

    for name, examples in CORPORA.items():
        corpus_samples = corpus_hits = 0
        for example in examples:
            analysis = analyze(example.atc, example.correct_readback)
            samples += 1
            corpus_samples += 1
            if analysis.result.is_correct:
                detections += 1
                corpus_hits += 1
                matrix["true_negatives"] += 1
            else:
                matrix["false_positives"] += 1
                logger.debug(f"SELF-VALIDATION FALSE POSITIVE | corpus={name} | atc={example.atc}")

            if example.phase is not None:
                phase_samples += 1
                if analysis.phase and analysis.phase.phase == example.phase:
                    phase_hits += 1

            for error in example.common_errors:
                error_analysis = analyze(example.atc, error.error)
                samples += 1
                corpus_samples += 1
                if error_analysis.result.is_correct:
                    matrix["false_negatives"] += 1
                    logger.debug(f"SELF-VALIDATION MISSED | corpus={name} | readback={error.error}")
                    continue
                detections += 1
                corpus_hits += 1
                matrix["true_positives"] += 1
                if _type_detected(error.type, error_analysis):
                    type_hits += 1

        per_corpus[name] = _percent(corpus_hits, corpus_samples)

    error_samples = matrix["true_positives"] + matrix["false_negatives"]
    report = {
        "total_samples": samples,
        "correct_detections": detections,
        "accuracy": _percent(detections, samples),
        "phase_accuracy": _percent(phase_hits, phase_samples),
        "error_type_accuracy": _percent(type_hits, error_samples),
        "corpus_accuracy": per_corpus,
        "confusion_matrix": matrix,
        "elapsed_ms": round((time.perf_counter() - started) * 1000, 1),
        "model_version": ENGINE_VERSION,
    }
    logger.info(f"SELF-VALIDATION | samples={samples} | accuracy={report['accuracy']} | version={ENGINE_VERSION}")
    return report


def corpus_stats() -> Dict[str, Any]:
    examples: List[CorpusExample] = [e for corpus in CORPORA.values() for e in corpus]
    error_patterns = sum(len(e.common_errors) for e in examples)
    error_types = sorted({err.type.value for e in examples for err in e.common_errors})
    phases = sorted({e.phase.value for e in examples if e.phase is not None})
    return {
        "total_examples": len(examples),
        "examples_per_corpus": {name: len(corpus) for name, corpus in CORPORA.items()},
        "total_error_patterns": error_patterns,
        "unique_error_types": error_types,
        "covered_phases": phases,
        "average_errors_per_example": round(error_patterns / len(examples), 1) if examples else 0.0,
    }


def analyze_corpus(exchanges: Iterable[Any]) -> Dict[str, Any]:
    """Quality counts, per-type error breakdown and the ten most common explanations"""
    quality_counts = Counter()
    breakdown = {error_type.value: 0 for error_type in ErrorType}
    messages = Counter()
    total = 0

    for exchange in exchanges:
        total += 1
        result = analyze_readback(_exchange_field(exchange, "atc") or "", _exchange_field(exchange, "pilot") or "")
        quality_counts[result.quality] += 1
        for error in result.errors:
            breakdown[error.type.value] += 1
            messages[error.explanation] += 1

    return {
        "total_exchanges": total,
        "correct_readbacks": quality_counts[ReadbackQuality.COMPLETE],
        "incorrect_readbacks": quality_counts[ReadbackQuality.INCORRECT],
        "missing_readbacks": quality_counts[ReadbackQuality.MISSING],
        "partial_readbacks": quality_counts[ReadbackQuality.PARTIAL],
        "error_breakdown": breakdown,
        "most_common_errors": [{"error": msg, "count": count} for msg, count in messages.most_common(10)],
        "overall_accuracy": 100 * quality_counts[ReadbackQuality.COMPLETE] / total if total else 0.0,
    }
