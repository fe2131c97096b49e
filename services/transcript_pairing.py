"""
Transcript pairing.

Turns best-effort labelled transcript lines into (ATC, PILOT) exchanges.
Missing or unrecognised speaker labels become UNKNOWN and are inferred from
callsign position: controllers lead with the callsign, pilots end with it.
"""

import re
import logging
from typing import List, Optional, Any, Iterable
from dataclasses import dataclass, field

from models.readback import SpeakerRole
from services.number_normalizer import normalize, detect_callsign, NON_CALLSIGN_WORDS

logger = logging.getLogger(__name__)

LOW_CONFIDENCE_THRESHOLD = 0.5

SPEAKER_ALIASES = {
    "atc": SpeakerRole.ATC,
    "controller": SpeakerRole.ATC,
    "tower": SpeakerRole.ATC,
    "ground": SpeakerRole.ATC,
    "approach": SpeakerRole.ATC,
    "departure": SpeakerRole.ATC,
    "center": SpeakerRole.ATC,
    "pilot": SpeakerRole.PILOT,
    "aircraft": SpeakerRole.PILOT,
    "unknown": SpeakerRole.UNKNOWN,
}

_LABEL_PREFIX = re.compile(r"^\s*([A-Za-z]+)\s*:\s*(.*)$")
_LEADING_CALLSIGN = re.compile(r"^\s*([a-z]{2,4})\s?(\d{2,4})\b")
_TRAILING_CALLSIGN = re.compile(r"\b([a-z]{2,4})\s?(\d{2,4})\s*[.!]?\s*$")


@dataclass(frozen=True)
class Utterance:
    text: str
    speaker: SpeakerRole = SpeakerRole.UNKNOWN
    callsign: Optional[str] = None


@dataclass
class PairedExchange:
    atc: Utterance
    pilot: Utterance

    @property
    def callsign(self) -> Optional[str]:
        return self.atc.callsign or self.pilot.callsign


@dataclass
class PairingResult:
    exchanges: List[PairedExchange] = field(default_factory=list)
    unpaired: List[Utterance] = field(default_factory=list)


def speaker_role(label: Optional[str]) -> SpeakerRole:
    if not label:
        return SpeakerRole.UNKNOWN
    return SPEAKER_ALIASES.get(str(label).strip().lower(), SpeakerRole.UNKNOWN)


def _callsign_shaped(match: Optional[re.Match]) -> bool:
    return bool(match) and match.group(1) not in NON_CALLSIGN_WORDS


def infer_speaker(text: str) -> SpeakerRole:
    """ATC when the line leads with a callsign, PILOT when it ends with one"""
    normalized = normalize(text or "").strip(" ,.;")
    if _callsign_shaped(_LEADING_CALLSIGN.search(normalized)):
        return SpeakerRole.ATC
    if _callsign_shaped(_TRAILING_CALLSIGN.search(normalized)):
        return SpeakerRole.PILOT
    return SpeakerRole.UNKNOWN


def to_utterance(line: Any) -> Utterance:
    """Accepts an Utterance, a {text, speaker} dict/object or a plain string"""
    if isinstance(line, Utterance):
        text, speaker = line.text, line.speaker
    elif isinstance(line, str):
        text, speaker = line, None
        prefixed = _LABEL_PREFIX.match(line)
        if prefixed and speaker_role(prefixed.group(1)) != SpeakerRole.UNKNOWN:
            speaker, text = prefixed.group(1), prefixed.group(2)
    elif isinstance(line, dict):
        text, speaker = line.get("text", ""), line.get("speaker")
    else:
        text, speaker = getattr(line, "text", ""), getattr(line, "speaker", None)

    role = speaker if isinstance(speaker, SpeakerRole) else speaker_role(speaker)
    if role == SpeakerRole.UNKNOWN:
        role = infer_speaker(text)
    return Utterance(text=text.strip(), speaker=role, callsign=detect_callsign(text))


def split_transcript(text: str) -> List[Utterance]:
    """One utterance per non-empty line; "ATC:"/"PILOT:" prefixes become labels"""
    return [to_utterance(line) for line in (text or "").splitlines() if line.strip()]


def pair_exchanges(lines: Iterable[Any]) -> PairingResult:
    """
    Pair the nearest preceding ATC line with the following PILOT line.

    A line whose speaker cannot be inferred answers a pending ATC line, or
    opens a new exchange when none is pending.
    """
    result = PairingResult()
    pending: Optional[Utterance] = None

    for raw in lines:
        utterance = to_utterance(raw)
        if not utterance.text:
            continue

        role = utterance.speaker
        if role == SpeakerRole.UNKNOWN:
            role = SpeakerRole.PILOT if pending is not None else SpeakerRole.ATC

        if role == SpeakerRole.ATC:
            if pending is not None:
                result.unpaired.append(pending)
            pending = utterance
        elif pending is not None:
            result.exchanges.append(PairedExchange(atc=pending, pilot=utterance))
            pending = None
        else:
            result.unpaired.append(utterance)

    if pending is not None:
        result.unpaired.append(pending)

    logger.debug(f"TRANSCRIPT PAIRING | exchanges={len(result.exchanges)} | unpaired={len(result.unpaired)}")
    return result
