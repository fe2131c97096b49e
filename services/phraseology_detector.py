"""
Phraseology Detector

Two rule tables run against the pilot side of an exchange:

1. Runway-incursion confusions: instruction/readback pairs where the pilot
   read back a different, more permissive runway clearance.
2. Non-native speaker patterns: pronunciation spellings, grammar, word order
   and stress. "tree", "fower", "fife", "niner" and "ait" are correct ICAO
   pronunciations and are never flagged.
"""

import re
import logging
from typing import List, Optional, Tuple
from dataclasses import dataclass

from models.readback import ErrorType, Severity
from services.readback_errors import ReadbackError, PhraseologyFinding

logger = logging.getLogger(__name__)


# ============================================================
# RUNWAY INCURSION
# ============================================================

@dataclass(frozen=True)
class IncursionRule:
    instruction_pattern: str
    readback_pattern: str
    explanation: str
    reference: str


RUNWAY_INCURSION_RULES: Tuple[IncursionRule, ...] = (
    IncursionRule(
        r"line\s*up\s+(?:and\s+)?wait",
        r"cleared\s+(?:for\s+)?take\s*-?off",
        "Confused line up and wait with takeoff clearance - RUNWAY INCURSION RISK",
        "ICAO Doc 4444 - Line up and wait is NOT a takeoff clearance",
    ),
    IncursionRule(
        r"hold\s+short\s+(?:of\s+)?runway",
        r"cross(?:ing)?\s+runway",
        "Confused hold short with runway crossing - RUNWAY INCURSION RISK",
        "FAA 7110.65 - Hold short means do not enter runway",
    ),
)


def detect_runway_incursion(instruction: str, readback: str) -> List[ReadbackError]:
    """critical_confusion findings for permissive runway readbacks"""
    instruction_lower = (instruction or "").lower()
    readback_lower = (readback or "").lower()
    errors: List[ReadbackError] = []

    for rule in RUNWAY_INCURSION_RULES:
        try:
            if not re.search(rule.instruction_pattern, instruction_lower):
                continue
            if re.search(rule.readback_pattern, instruction_lower):
                continue
            match = re.search(rule.readback_pattern, readback_lower)
        except re.error as e:
            logger.warning(f"Regex error for pattern '{rule.readback_pattern}': {e}")
            continue
        if match:
            errors.append(
                ReadbackError(
                    type=ErrorType.CRITICAL_CONFUSION,
                    parameter="runway clearance",
                    expected_value=re.search(rule.instruction_pattern, instruction_lower).group(0),
                    actual_value=match.group(0),
                    severity=Severity.CRITICAL,
                    explanation=rule.explanation,
                    reference_code=rule.reference,
                )
            )
            logger.warning(f"RUNWAY INCURSION RISK | expected={errors[-1].expected_value} | actual={match.group(0)}")

    return errors


# ============================================================
# NON-NATIVE SPEAKER PATTERNS
# ============================================================

@dataclass(frozen=True)
class SpeakerPattern:
    pattern: str
    error_type: ErrorType
    severity: Severity
    issue: str
    correction: str
    native_languages: Tuple[str, ...] = ()
    case_sensitive: bool = False


NON_NATIVE_PATTERNS: Tuple[SpeakerPattern, ...] = (
    # Digit pronunciation
    SpeakerPattern(r"\bsero\b", ErrorType.NON_NATIVE_PRONUNCIATION, Severity.LOW,
                   'Non-standard pronunciation of "zero"', 'Pronounce as "ZEE-ro" with emphasis on first syllable',
                   ("tagalog", "spanish", "portuguese")),
    SpeakerPattern(r"\bziro\b", ErrorType.NON_NATIVE_PRONUNCIATION, Severity.LOW,
                   'Non-standard pronunciation of "zero" (short vowel)', 'Pronounce as "ZEE-ro" with long "ee" sound',
                   ("japanese", "korean")),
    SpeakerPattern(r"\bwan\b", ErrorType.NON_NATIVE_PRONUNCIATION, Severity.LOW,
                   'Non-standard pronunciation of "one"', 'Pronounce as "WUN" with clear "w" start',
                   ("chinese", "korean", "vietnamese")),
    SpeakerPattern(r"\btee\b", ErrorType.NON_NATIVE_PRONUNCIATION, Severity.MEDIUM,
                   'Dropped "th" sound in "three"', 'Pronounce as "TREE" (ICAO standard)',
                   ("tagalog", "chinese", "japanese", "korean")),
    SpeakerPattern(r"\bsree\b", ErrorType.NON_NATIVE_PRONUNCIATION, Severity.MEDIUM,
                   '"S" substitution for "th" in "three"', 'Pronounce as "TREE" (ICAO standard)',
                   ("hindi", "urdu", "bengali")),
    SpeakerPattern(r"\bpor\b", ErrorType.NON_NATIVE_PRONUNCIATION, Severity.MEDIUM,
                   '"P" substitution for "f" in "four"', 'Pronounce as "FOW-er" (ICAO standard)',
                   ("arabic", "korean")),
    SpeakerPattern(r"\bfo\b", ErrorType.NON_NATIVE_PRONUNCIATION, Severity.MEDIUM,
                   'Shortened pronunciation of "four"', 'Pronounce as "FOW-er" (ICAO standard)',
                   ("chinese", "vietnamese")),
    SpeakerPattern(r"\bpive\b", ErrorType.NON_NATIVE_PRONUNCIATION, Severity.MEDIUM,
                   '"P" substitution for "f" in "five"', 'Pronounce as "FIFE" (ICAO standard)',
                   ("arabic",)),
    SpeakerPattern(r"\bsicks\b", ErrorType.NON_NATIVE_PRONUNCIATION, Severity.LOW,
                   'Extended "six" pronunciation', 'Pronounce as "SIX" with short "i"',
                   ("spanish", "portuguese")),
    SpeakerPattern(r"\bseben\b", ErrorType.NON_NATIVE_PRONUNCIATION, Severity.MEDIUM,
                   '"B" substitution for "v" in "seven"', 'Pronounce as "SEV-en" with clear "v" sound',
                   ("tagalog", "spanish", "arabic", "chinese")),
    SpeakerPattern(r"\bsewen\b", ErrorType.NON_NATIVE_PRONUNCIATION, Severity.MEDIUM,
                   '"W" substitution for "v" in "seven"', 'Pronounce as "SEV-en" with clear "v" sound',
                   ("german", "polish")),
    SpeakerPattern(r"\beyt\b", ErrorType.NON_NATIVE_PRONUNCIATION, Severity.LOW,
                   'Non-standard pronunciation of "eight"', 'Pronounce as "AIT" (ICAO acceptable)',
                   ("spanish", "portuguese")),
    SpeakerPattern(r"\bnain\b", ErrorType.NON_NATIVE_PRONUNCIATION, Severity.LOW,
                   'Non-standard pronunciation of "nine"', 'Pronounce as "NINER" (ICAO standard)',
                   ("german", "dutch")),
    # Grammar
    SpeakerPattern(r"\bclearing\s+for\b", ErrorType.NON_NATIVE_GRAMMAR, Severity.MEDIUM,
                   'Incorrect tense: "clearing for" instead of "cleared for"', 'Use past tense "cleared for"',
                   ("chinese", "korean", "japanese")),
    SpeakerPattern(r"\bwe\s+are\s+(?:climbing|descending|turning)\b", ErrorType.NON_NATIVE_GRAMMAR, Severity.LOW,
                   "Verbose construction - use direct form", 'Say "climbing" not "we are climbing"',
                   ("spanish", "portuguese", "french")),
    SpeakerPattern(r"\bplease\s+(?:climb|descend|turn|contact|squawk)\b", ErrorType.NON_NATIVE_GRAMMAR, Severity.LOW,
                   "Unnecessary politeness marker in readback", 'Omit "please" in operational readbacks',
                   ("japanese", "korean", "thai")),
    # Word order
    SpeakerPattern(
        r"\b(?:one|two|three|tree|four|fower|five|fife|six|seven|eight|nine|niner|zero|\d+)\s+(?:heading|altitude|speed)\b",
        ErrorType.NON_NATIVE_WORD_ORDER, Severity.HIGH,
        'Number before parameter type (should be "heading 270" not "270 heading")',
        "Say parameter type first, then value",
        ("japanese", "korean", "turkish"),
    ),
    # L/R confusion
    SpeakerPattern(r"\brunway\s+\w+(?:\s+\w+)?\s+(?:reft|leight)\b", ErrorType.NON_NATIVE_PRONUNCIATION, Severity.CRITICAL,
                   "L/R confusion in runway designator - CRITICAL SAFETY ISSUE",
                   'Practice clear distinction between "LEFT" and "RIGHT"',
                   ("chinese", "japanese", "korean")),
    SpeakerPattern(r"\b(?:reft|leight)\s+heading\b", ErrorType.NON_NATIVE_PRONUNCIATION, Severity.HIGH,
                   "L/R confusion in turn direction", 'Practice clear distinction between "LEFT" and "RIGHT"',
                   ("chinese", "japanese", "korean")),
    # Stress, only visible when the transcript marks it in capitals
    SpeakerPattern(r"\bDEpart", ErrorType.NON_NATIVE_STRESS, Severity.LOW,
                   'Wrong stress pattern on "departure"', "Stress on second syllable: de-PAR-ture",
                   ("french", "spanish"), case_sensitive=True),
)


def _explanation(pattern: SpeakerPattern) -> str:
    if pattern.native_languages:
        return f"Non-native speaker pattern (common in {', '.join(pattern.native_languages)} speakers)."
    return "Non-native speaker pronunciation pattern detected."


def detect_phraseology_issues(readback: Optional[str]) -> List[PhraseologyFinding]:
    """Non-native findings in a readback. Critical patterns are reported as high."""
    if not readback:
        return []

    findings: List[PhraseologyFinding] = []
    for pattern in NON_NATIVE_PATTERNS:
        flags = 0 if pattern.case_sensitive else re.IGNORECASE
        try:
            match = re.search(pattern.pattern, readback, flags)
        except re.error as e:
            logger.warning(f"Regex error for pattern '{pattern.pattern}': {e}")
            continue
        if not match:
            continue

        severity = Severity.HIGH if pattern.severity == Severity.CRITICAL else pattern.severity
        findings.append(
            PhraseologyFinding(
                type=pattern.error_type,
                parameter="phraseology",
                expected_value=None,
                actual_value=match.group(0),
                severity=severity,
                explanation=_explanation(pattern),
                reference_code="ICAO Doc 9432",
                issue=pattern.issue,
                correction=pattern.correction,
            )
        )

    if findings:
        logger.debug(f"PHRASEOLOGY CHECK | findings={len(findings)} | types={[f.type.value for f in findings]}")
    return findings
