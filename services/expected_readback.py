"""
Expected readback generation.

A correct readback repeats the safety-relevant content of the clearance in
ICAO number pronunciation and ends with the callsign. Controller-only
phrases (radar contact, courtesy words) are dropped.
"""

import re
import logging
from typing import Optional

from models.readback import InstructionType
from services.instruction_classifier import classify_instruction
from services.number_normalizer import strip_callsign, detect_callsign, spell_numbers

logger = logging.getLogger(__name__)

# Phrases the pilot does not repeat
CONTROLLER_ONLY_PATTERNS = [
    r"\bradar\s+contact\b",
    r"\bidentified\b",
    r"\bgood\s+(?:day|morning|afternoon|evening)\b",
    r"\bplease\b",
]

_UPPERCASE_TOKENS = re.compile(r"\b(qnh|qfe|ils|rnav|rnp|vor|ndb|gps|loc|sid|star|vfr|ifr)\b")


def _with_callsign(phrase: str, callsign: Optional[str]) -> str:
    phrase = phrase.strip(" ,")
    if not callsign:
        return phrase
    if not phrase:
        return callsign
    return f"{phrase}, {callsign}"


def generate_expected_readback(instruction: str, callsign: Optional[str] = None) -> str:
    """
    ICAO readback for an instruction, e.g.
    "climb and maintain FL350" -> "climb and maintain flight level tree fife zero, PAL123"
    """
    if not instruction or not instruction.strip():
        return callsign or ""

    callsign = (callsign or detect_callsign(instruction) or "").upper() or None
    instruction_type = classify_instruction(instruction)

    if instruction_type == InstructionType.INFORMATION_ONLY:
        return _with_callsign("roger", callsign)

    phrase = strip_callsign(instruction, callsign)
    for pattern in CONTROLLER_ONLY_PATTERNS:
        phrase = re.sub(pattern, " ", phrase)
    phrase = re.sub(r"\s*,\s*(?:,\s*)+", ", ", phrase)
    phrase = re.sub(r"\s+", " ", phrase).strip(" ,.;")

    phrase = spell_numbers(phrase)
    phrase = _UPPERCASE_TOKENS.sub(lambda m: m.group(1).upper(), phrase)

    expected = _with_callsign(phrase, callsign)
    logger.debug(f"EXPECTED READBACK | type={instruction_type.value} | expected={expected}")
    return expected
