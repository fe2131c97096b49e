"""
Structured Command Parser

Turns a controller instruction into a StructuredCommand: action verb,
parameter, canonical value, unit and modifier, plus three independent
extraction stages run against the same text:

- condition   WHEN / UNTIL / AFTER / AT / ONCE / BEFORE / UPON
- constraint  at or above / at or below / not above / not below / cross X at
- immediacy   now / immediately / no delay

Immediacy is tracked apart from the condition: a conditional instruction
read back with an immediacy marker is a condition violation.
"""

import re
import logging
from typing import List, Optional, Dict, Any, Tuple
from dataclasses import dataclass, asdict

from models.readback import ConditionType
from services.number_normalizer import (
    normalize,
    strip_callsign,
    extract_value,
    extract_all_values,
    format_value,
)

logger = logging.getLogger(__name__)


# ============================================================
# TYPES
# ============================================================

@dataclass(frozen=True)
class Condition:
    type: ConditionType
    phrase: str
    trigger_value: Optional[str] = None

    def keywords(self) -> List[str]:
        """Phrase words a readback must echo, number vocabulary excluded"""
        words = re.findall(r"[a-z]+", self.phrase)
        return [w for w in words if w not in CONDITION_STOP_WORDS]

    def to_dict(self) -> Dict[str, Any]:
        return {"type": self.type.value, "phrase": self.phrase, "trigger_value": self.trigger_value}


@dataclass(frozen=True)
class Constraint:
    type: str
    phrase: str
    value: Optional[str] = None
    fix: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class StructuredCommand:
    action: Optional[str]
    parameter: Optional[str]
    value: Optional[str]
    unit: Optional[str] = None
    modifier: Optional[str] = None
    condition: Optional[Condition] = None
    constraint: Optional[Constraint] = None
    is_immediate: bool = False
    raw_text: str = ""

    @property
    def is_conditional(self) -> bool:
        return self.condition is not None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "action": self.action,
            "parameter": self.parameter,
            "value": self.value,
            "unit": self.unit,
            "modifier": self.modifier,
            "condition": self.condition.to_dict() if self.condition else None,
            "constraint": self.constraint.to_dict() if self.constraint else None,
            "is_immediate": self.is_immediate,
            "raw_text": self.raw_text,
        }


# ============================================================
# PATTERN TABLES
# ============================================================

ACTION_PATTERN = re.compile(
    r"\b(climb|descend|maintain|turn|fly|reduce|increase|hold|cross|contact|squawk|cleared|"
    r"line\s*up|taxi|proceed|direct|expedite|monitor|intercept|join|continue|go\s*around|vacate)\b"
)

CONDITION_PATTERNS: List[Tuple[ConditionType, str]] = [
    (ConditionType.WHEN, r"\bwhen\s+(?:you\s+)?(?:reach|reaching|pass|passing|at|clear\s+of|abeam|established|ready|able|airborne)\b"),
    (ConditionType.UNTIL, r"\buntil\s+(?:further\s+(?:advised|notice)|established|reaching|passing|clear|advised)\b"),
    (ConditionType.UNTIL, r"\buntil\s+(?:\d|flight\s+level|(?!further\b)[a-z]{5}\b)"),
    (ConditionType.AFTER, r"\bafter\s+(?:passing|departure|takeoff|take\s+off|reaching|landing|the\s+landing)\b"),
    (ConditionType.AFTER, r"\bafter\s+(?:the\s+)?\w+\s+(?:departure|takeoff|landing)\b"),
    (ConditionType.AFTER, r"\bafter\s+(?!(?:which|there|these|those|that)\b)[a-z]{5}\b"),
    (ConditionType.AT, r"\bat\s+(?:time\s+)?\d{4}\s*(?:z|zulu)?\s+(?=climb|descend|turn|contact|reduce|increase|proceed)"),
    (ConditionType.AT, r"\bat\s+(?!(?:or|and|the)\b)[a-z]{5}\s+(?=climb|descend|turn|contact|reduce|increase|proceed|maintain)"),
    (ConditionType.ONCE, r"\bonce\s+(?:established|clear|airborne|passing|past|reaching)\b"),
    (ConditionType.BEFORE, r"\bbefore\s+(?:reaching|passing|entering|crossing|[a-z]{5}\b)"),
    (ConditionType.UPON, r"\bupon\s+(?:reaching|passing|entering|crossing|leaving)\b"),
]

# A condition phrase ends before the next clause separator or action verb
CONDITION_BOUNDARY = re.compile(
    r"\s*[,;.]|\s+(?=(?:then|climb|descend|turn|maintain|contact|reduce|increase|proceed|fly|"
    r"cleared|squawk|expect|hold|cross|direct|join|intercept|continue|monitor|taxi|"
    r"line\s*up|go\s*around)\b)"
)

CONDITION_STOP_WORDS = {
    "flight", "level", "feet", "ft", "thousand", "hundred", "the", "on", "you",
    "of", "and", "a", "to", "at", "fl",
}

_ALT = r"(?:(?:flight\s*level|fl)\s*\d{2,3}|\d{1,2}\s*thousand(?:\s*\d\s*hundred)?|\d{3,5}(?:\s*(?:feet|ft))?)"

CONSTRAINT_PATTERNS: List[Tuple[str, str]] = [
    ("cross_at", rf"\bcross(?:ing)?\s+(?P<fix>[a-z]{{5}})\s+at\s+(?:and\s+maintain\s+)?(?P<alt>{_ALT})"),
    ("cross_constraint", rf"\bcross(?:ing)?\s+(?P<fix>[a-z]{{5}})\s+(?:at\s+or\s+above|at\s+or\s+below|above|below)\s+(?P<alt>{_ALT})"),
    ("at_or_above", rf"\bat\s+or\s+above\s+(?P<alt>{_ALT})"),
    ("at_or_below", rf"\bat\s+or\s+below\s+(?P<alt>{_ALT})"),
    ("not_below", rf"\bnot\s+below\s+(?P<alt>{_ALT})"),
    ("not_above", rf"\bnot\s+above\s+(?P<alt>{_ALT})"),
]

# Readback markers that confirm each constraint kind
CONSTRAINT_MARKERS = {
    "at_or_above": r"\b(?:or\s+above|not\s+below)\b",
    "not_below": r"\b(?:or\s+above|not\s+below)\b",
    "at_or_below": r"\b(?:or\s+below|not\s+above)\b",
    "not_above": r"\b(?:or\s+below|not\s+above)\b",
    "cross_constraint": r"\b(?:above|below)\b",
}

IMMEDIATE_PATTERNS = [
    r"\bnow\b",
    r"\bimmediately\b",
    r"\bright\s+now\b",
    r"\bno\s+delay\b",
    r"\bwithout\s+delay\b",
]

PARAMETER_PRIORITY = ("altitude", "heading", "speed", "altimeter", "squawk", "frequency", "runway")
PARAMETER_UNITS = {"altitude": "feet", "speed": "knots"}

WAYPOINT_STOP_WORDS = {
    "climb", "level", "speed", "tower", "delay", "leave", "after", "flaps", "until",
    "field", "final", "their", "there", "right", "radar", "alpha", "bravo", "delta",
    "hotel", "india", "oscar", "tango", "ready", "below", "above", "knots", "north",
    "south", "point", "check", "break", "cross", "reach", "heavy", "miles", "apron",
    "abeam", "again", "being", "first", "local", "clear", "short", "sight", "later",
    "which", "these", "those", "water", "cross", "vacate", "trees", "start", "taxi",
    "leaving", "track", "inner", "outer", "glide", "slope", "least", "zulu", "lima",
    "kilo", "golf", "papa", "romeo", "sierra", "whisky", "yankee", "quebec", "juliet",
    "mike", "echo", "victor", "charlie", "foxtrot", "november", "uniform", "xray",
    "three", "seven", "eight", "niner", "fower", "hours", "today", "speak", "times",
    "thank", "thanks", "roger", "wilco", "affirm", "maybe", "never", "other", "traffic",
    "metres", "meter", "while", "where", "about", "airbus", "boeing", "stand", "holds",
    "turns", "sector", "center", "centre", "manila", "davao", "cebu", "clark", "ident",
}

# Published fixes recognised even without a fix keyword
KNOWN_FIXES = {
    "BOREG", "ELBIS", "GUAVA", "PANAS", "RENAS", "TAVER", "AKLAN", "NINOY", "SUBIC",
    "TALON", "OSIAS", "CAPIN", "MAPLA", "ERLAS", "TAROS", "MACTA", "BANAT", "MASBA",
    "LINOG", "UBINA", "TOROD", "POLOG", "BOHOL", "PANAY", "SAMAR", "LEYTE", "BATAN",
    "SANGA", "LUBOG", "TONDO", "LANAS", "IPUMY",
}

_FIX_CONTEXT = re.compile(
    r"\b(?:direct(?:\s+to)?|proceed(?:\s+direct)?(?:\s+to)?|to|via|cross(?:ing)?|passing|pass|over|abeam|"
    r"at|until|after|before|reaching|hold(?:ing)?\s+(?:at|over)|upon\s+reaching)\s+([a-z]{5})\b"
)


def _compile_table(table):
    compiled = []
    for kind, pattern in table:
        try:
            compiled.append((kind, re.compile(pattern)))
        except re.error as e:
            logger.warning(f"Regex error for pattern '{pattern}': {e}")
    return compiled


_CONDITIONS = _compile_table(CONDITION_PATTERNS)
_CONSTRAINTS = _compile_table(CONSTRAINT_PATTERNS)
_IMMEDIATE = [re.compile(p) for p in IMMEDIATE_PATTERNS]


# ============================================================
# WAYPOINTS
# ============================================================

def extract_waypoints(text: str) -> List[str]:
    """
    Five-letter fix names: published fixes anywhere in the text, other
    five-letter words only after a fix keyword (direct, cross, passing, ...).
    """
    normalized = normalize(text)
    fixes: List[str] = []

    for token in re.findall(r"\b[a-z]{5}\b", normalized):
        if token.upper() in KNOWN_FIXES and token.upper() not in fixes:
            fixes.append(token.upper())

    for match in _FIX_CONTEXT.finditer(normalized):
        token = match.group(1)
        if token in WAYPOINT_STOP_WORDS or token.upper() in fixes:
            continue
        fixes.append(token.upper())

    return fixes


# ============================================================
# EXTRACTION STAGES
# ============================================================

def _condition_spans(text: str) -> List[Tuple[int, int, ConditionType]]:
    spans = []
    for condition_type, pattern in _CONDITIONS:
        for match in pattern.finditer(text):
            boundary = CONDITION_BOUNDARY.search(text, match.end())
            end = boundary.start() if boundary else len(text)
            spans.append((match.start(), end, condition_type))

    # Keep the earliest, longest span where spans overlap
    spans.sort(key=lambda span: (span[0], -(span[1] - span[0])))
    merged: List[Tuple[int, int, ConditionType]] = []
    for span in spans:
        if merged and span[0] < merged[-1][1]:
            continue
        merged.append(span)
    return merged


def _trigger_value(phrase: str) -> Optional[str]:
    altitude = extract_value(phrase, "altitude", strict=True)
    if altitude is not None:
        return f"FL{altitude // 100:03d}" if re.search(r"\b(?:flight\s*level|fl)\b", phrase) else str(altitude)

    waypoints = extract_waypoints(phrase)
    if waypoints:
        return waypoints[0]

    if "established" in phrase:
        return "established"
    return None


def extract_condition(text: str) -> Optional[Condition]:
    """First conditional clause in the instruction, bounded before the next action"""
    normalized = strip_callsign(text)
    spans = _condition_spans(normalized)
    if not spans:
        return None

    start, end, condition_type = spans[0]
    phrase = normalized[start:end].strip(" ,;.")
    return Condition(type=condition_type, phrase=phrase, trigger_value=_trigger_value(phrase))


def strip_conditions(text: str) -> str:
    """Remove every conditional clause so trigger values are not read as targets"""
    normalized = normalize(text)
    spans = _condition_spans(normalized)
    if not spans:
        return normalized

    pieces = []
    cursor = 0
    for start, end, _ in spans:
        pieces.append(normalized[cursor:start])
        cursor = end
    pieces.append(normalized[cursor:])
    return re.sub(r"\s+", " ", " ".join(pieces)).strip(" ,;")


def extract_constraint(text: str) -> Optional[Constraint]:
    """First altitude constraint in the instruction"""
    normalized = strip_callsign(text)
    best: Optional[Tuple[int, str, re.Match]] = None

    for kind, pattern in _CONSTRAINTS:
        match = pattern.search(normalized)
        if match and (best is None or match.start() < best[0]):
            best = (match.start(), kind, match)

    if best is None:
        return None

    _, kind, match = best
    groups = match.groupdict()
    altitude = extract_value(groups.get("alt") or "", "altitude", strict=True)
    return Constraint(
        type=kind,
        phrase=match.group(0).strip(),
        value=str(altitude) if altitude is not None else None,
        fix=groups["fix"].upper() if groups.get("fix") else None,
    )


def detect_immediacy(text: str) -> bool:
    normalized = normalize(text)
    return any(pattern.search(normalized) for pattern in _IMMEDIATE)


# ============================================================
# PRESENCE CHECKS (used against readbacks)
# ============================================================

def condition_present(condition: Condition, readback: str) -> bool:
    """A readback keeps a condition if it echoes a phrase keyword or the trigger"""
    normalized = normalize(readback)
    words = set(re.findall(r"[a-z]+", normalized))

    if any(keyword in words for keyword in condition.keywords()):
        return True

    trigger = condition.trigger_value
    if not trigger:
        return False
    if trigger.startswith("FL") and trigger[2:].isdigit():
        return int(trigger[2:]) * 100 in extract_all_values(normalized, "altitude")
    if trigger.isdigit():
        return int(trigger) in extract_all_values(normalized, "altitude")
    return trigger.lower() in words


def constraint_present(constraint: Constraint, readback: str) -> bool:
    normalized = normalize(readback)

    if constraint.fix and not re.search(rf"\b{constraint.fix.lower()}\b", normalized):
        return False

    marker = CONSTRAINT_MARKERS.get(constraint.type)
    if marker and not re.search(marker, normalized):
        return False

    if constraint.value is not None:
        return int(constraint.value) in extract_all_values(normalized, "altitude")
    return True


# ============================================================
# COMMAND
# ============================================================

def parse_command(text: str) -> StructuredCommand:
    """
    Parse an instruction into a StructuredCommand.

    Parameter priority: altitude > heading > speed > altimeter > squawk >
    frequency > runway > fix. Values come from the instruction with its
    conditional clauses removed.
    """
    normalized = strip_callsign(text)
    condition = extract_condition(normalized)
    constraint = extract_constraint(normalized)
    is_immediate = detect_immediacy(normalized)
    core = strip_conditions(normalized)

    action_match = ACTION_PATTERN.search(core) or ACTION_PATTERN.search(normalized)
    action = re.sub(r"\s+", " ", action_match.group(1)) if action_match else None

    parameter = None
    value = None
    for candidate in PARAMETER_PRIORITY:
        found = extract_value(core, candidate)
        if found is not None:
            parameter = candidate
            value = format_value(candidate, found)
            break

    if parameter is None:
        fixes = extract_waypoints(core)
        if fixes:
            parameter, value = "fix", fixes[0]

    modifier = None
    if re.search(r"\band\s+maintain\b", core):
        modifier = "and maintain"
    elif re.search(r"\bexpedite\b", core):
        modifier = "expedite"

    command = StructuredCommand(
        action=action,
        parameter=parameter,
        value=value,
        unit=PARAMETER_UNITS.get(parameter),
        modifier=modifier,
        condition=condition,
        constraint=constraint,
        is_immediate=is_immediate,
        raw_text=text,
    )
    logger.debug(
        f"COMMAND PARSE | action={action} | parameter={parameter} | value={value} | "
        f"condition={condition.type.value if condition else None} | "
        f"constraint={constraint.type if constraint else None} | immediate={is_immediate}"
    )
    return command
