"""
Sequence/Trend Tracker

Derives a session trend from the caller-supplied history of prior outcomes
(oldest first). Ordering is the caller's responsibility; nothing is stored.
"""

import math
import logging
from collections import Counter
from typing import List, Optional, Dict, Any, Iterable
from dataclasses import dataclass

from config import get_settings
from models.readback import Severity, ErrorTrend

logger = logging.getLogger(__name__)

TREND_DEAD_BAND = 0.5


@dataclass(frozen=True)
class HistoryRecord:
    type: str
    severity: Severity
    timestamp: float = 0.0

    @classmethod
    def coerce(cls, entry: Any) -> "HistoryRecord":
        """Accepts a HistoryRecord, a dict or any object with the same fields"""
        if isinstance(entry, cls):
            return entry
        if isinstance(entry, dict):
            get = entry.get
        else:
            get = lambda name, default=None: getattr(entry, name, default)
        severity = get("severity", Severity.LOW)
        try:
            severity = Severity(severity)
        except ValueError:
            severity = Severity.LOW
        return cls(type=str(get("type", "") or ""), severity=severity, timestamp=float(get("timestamp", 0) or 0))


@dataclass
class SequenceState:
    total_instructions: int
    correct_sequence: bool
    consecutive_errors: int
    error_trend: ErrorTrend
    escalating: bool
    recurring_error_type: Optional[str]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "total_instructions": self.total_instructions,
            "correct_sequence": self.correct_sequence,
            "consecutive_errors": self.consecutive_errors,
            "error_trend": self.error_trend.value,
            "escalating": self.escalating,
            "recurring_error_type": self.recurring_error_type,
        }


def consecutive_errors(history: List[HistoryRecord]) -> int:
    """Entries counted back from the most recent while severity is not low"""
    count = 0
    for entry in reversed(history):
        if entry.severity == Severity.LOW:
            break
        count += 1
    return count


def _mean_weight(entries: List[HistoryRecord]) -> float:
    return sum(e.severity.weight for e in entries) / len(entries)


def error_trend(history: List[HistoryRecord]) -> ErrorTrend:
    """Newer half vs older half mean severity weight; stable under two entries"""
    if len(history) < 2:
        return ErrorTrend.STABLE

    recent = history[-math.ceil(len(history) / 2):]
    older = history[:len(history) // 2]
    recent_avg = _mean_weight(recent)
    older_avg = _mean_weight(older)

    if recent_avg < older_avg - TREND_DEAD_BAND:
        return ErrorTrend.IMPROVING
    if recent_avg > older_avg + TREND_DEAD_BAND:
        return ErrorTrend.DECLINING
    return ErrorTrend.STABLE


def recurring_error_type(history: List[HistoryRecord]) -> Optional[str]:
    """Most frequent error type seen at least twice, first seen on ties"""
    counts = Counter(e.type for e in history if e.type)
    if not counts:
        return None
    error_type, count = counts.most_common(1)[0]
    return error_type if count >= 2 else None


def track_sequence(history: Optional[Iterable[Any]], current_correct: bool = True,
                   window: Optional[int] = None) -> SequenceState:
    """Sequence state for the current exchange given the prior history"""
    records = [HistoryRecord.coerce(entry) for entry in (history or [])]
    total = len(records) + 1

    window = window if window is not None else get_settings().history_window
    if window > 0:
        records = records[-window:]

    consecutive = consecutive_errors(records)
    trend = error_trend(records)
    state = SequenceState(
        total_instructions=total,
        correct_sequence=current_correct,
        consecutive_errors=consecutive,
        error_trend=trend,
        escalating=trend == ErrorTrend.DECLINING and consecutive >= 2,
        recurring_error_type=recurring_error_type(records),
    )
    if state.escalating:
        logger.info(f"ESCALATING ERRORS | consecutive={consecutive} | recurring={state.recurring_error_type}")
    return state
