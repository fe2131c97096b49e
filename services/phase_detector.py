"""
Flight Phase Detector

Scores an exchange against weighted phase signatures. Each matching pattern
adds the signature weight, each context clue found in the text adds 2.
Highest score wins (first signature on ties); nothing scoring above zero
means cruise.
"""

import re
import logging
from typing import Dict, Optional, Tuple
from dataclasses import dataclass, field

from models.readback import FlightPhase
from services.number_normalizer import normalize

logger = logging.getLogger(__name__)

CONTEXT_CLUE_BONUS = 2
# Score of a strong, unambiguous match
CONFIDENCE_NORMALIZER = 20


@dataclass(frozen=True)
class PhaseSignature:
    phase: FlightPhase
    patterns: Tuple[str, ...]
    weight: int
    context_clues: Tuple[str, ...]


@dataclass
class PhaseDetection:
    phase: FlightPhase
    confidence: float
    scores: Dict[str, int] = field(default_factory=dict)

    def to_dict(self):
        return {"phase": self.phase.value, "confidence": self.confidence, "scores": self.scores}


PHASE_SIGNATURES: Tuple[PhaseSignature, ...] = (
    # Ground
    PhaseSignature(
        FlightPhase.TAXI,
        (r"taxi\s+(?:to|via)", r"push\s*back", r"start\s*up", r"clearance\s+delivery"),
        10,
        ("ground", "apron", "gate", "ramp"),
    ),
    PhaseSignature(
        FlightPhase.LINEUP,
        (r"line\s*up\s+(?:and\s+)?wait", r"hold\s+short\s+(?:of\s+)?runway", r"behind\s+\w+.*line\s*up"),
        10,
        ("runway", "holding point"),
    ),
    # Takeoff and initial departure
    PhaseSignature(
        FlightPhase.TAKEOFF_ROLL,
        (r"cleared\s+(?:for\s+)?take\s*-?off", r"runway\s+\d+.*cleared"),
        10,
        ("takeoff", "departure"),
    ),
    PhaseSignature(
        FlightPhase.INITIAL_DEPARTURE,
        (
            r"radar\s+contact",
            r"identified",
            r"after\s+departure",
            r"when\s+airborne",
            r"maintain\s+runway\s+heading",
            r"noise\s+abatement",
        ),
        9,
        ("departure", "airborne", "initial"),
    ),
    PhaseSignature(
        FlightPhase.DEPARTURE_CLIMB,
        (
            r"climb\s+(?:and\s+)?maintain",
            r"expedite\s+climb",
            r"cleared\s+\w+\s+departure",
            r"proceed\s+direct\s+\w+",
            r"after\s+passing\s+\w+\s+climb",
        ),
        8,
        ("climb", "departure", "altitude"),
    ),
    # Enroute
    PhaseSignature(
        FlightPhase.CRUISE,
        (r"maintain\s+flight\s+level\s+\d{3}", r"cruise\s+climb", r"when\s+able\s+higher", r"request\s+higher"),
        6,
        ("cruise", "level", "flight level"),
    ),
    # Descent and arrival
    PhaseSignature(
        FlightPhase.DESCENT,
        (
            r"descend\s+(?:and\s+)?maintain",
            r"descend\s+via\s+star",
            r"expect\s+\w+\s+arrival",
            r"cleared\s+\w+\s+arrival",
        ),
        8,
        ("descend", "arrival", "star"),
    ),
    PhaseSignature(
        FlightPhase.ARRIVAL,
        (r"\w+\s+arrival", r"cross\s+\w+\s+at", r"expect\s+runway", r"expect\s+\w+\s+approach"),
        8,
        ("arrival", "approach", "expect"),
    ),
    # Approach
    PhaseSignature(
        FlightPhase.APPROACH,
        (
            r"cleared\s+(?:ils|rnav|vor|visual|ndb)\s+approach",
            r"vectors\s+(?:for|to)",
            r"intercept\s+(?:the\s+)?(?:localizer|final)",
            r"turn\s+\w+\s+heading.*final",
            r"base\s+leg",
            r"downwind",
        ),
        9,
        ("approach", "vectors", "final", "ils", "rnav"),
    ),
    PhaseSignature(
        FlightPhase.FINAL_APPROACH,
        (
            r"cleared\s+to\s+land",
            r"continue\s+approach",
            r"report\s+established",
            r"glide\s*slope",
            r"on\s+final",
            r"\d+\s+miles?\s+final",
            r"qnh\s+\d",
        ),
        10,
        ("final", "landing", "glideslope", "qnh"),
    ),
    # Go-around
    PhaseSignature(
        FlightPhase.GO_AROUND,
        (r"go\s*-?\s*around", r"missed\s+approach", r"execute\s+missed", r"climb\s+runway\s+heading", r"pull\s+up"),
        10,
        ("go around", "missed", "abort"),
    ),
    # Landing
    PhaseSignature(
        FlightPhase.LANDING,
        (r"vacate", r"exit\s+(?:runway|via)", r"hold\s+position", r"cross\s+runway"),
        10,
        ("landing", "rollout", "vacate"),
    ),
)


def _compile_signatures():
    compiled = []
    for signature in PHASE_SIGNATURES:
        patterns = []
        for pattern in signature.patterns:
            try:
                patterns.append(re.compile(pattern))
            except re.error as e:
                logger.warning(f"Regex error for pattern '{pattern}': {e}")
        compiled.append((signature, patterns))
    return compiled


_COMPILED_SIGNATURES = _compile_signatures()


def score_phases(text: str) -> Dict[str, int]:
    """Raw score per signature over already-combined exchange text"""
    scores: Dict[str, int] = {}
    for signature, patterns in _COMPILED_SIGNATURES:
        score = sum(signature.weight for pattern in patterns if pattern.search(text))
        score += sum(CONTEXT_CLUE_BONUS for clue in signature.context_clues if clue in text)
        scores[signature.phase.value] = score
    return scores


def detect_phase(instruction: str, readback: Optional[str] = None) -> PhaseDetection:
    """
    Detect the flight phase of an exchange.

    Returns cruise with confidence 0.0 when no signature scores.
    """
    text = normalize(f"{instruction or ''} {readback or ''}")
    scores = score_phases(text)

    best_phase = FlightPhase.CRUISE
    best_score = 0
    for signature, _ in _COMPILED_SIGNATURES:
        score = scores[signature.phase.value]
        if score > best_score:
            best_phase, best_score = signature.phase, score

    confidence = round(min(best_score / CONFIDENCE_NORMALIZER, 1.0), 2)

    logger.debug(f"PHASE DETECTION | phase={best_phase.value} | score={best_score} | confidence={confidence}")
    return PhaseDetection(phase=best_phase, confidence=confidence, scores=scores)
