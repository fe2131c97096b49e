"""
Spoken Number Normalizer for ATC Readback Analysis

Converts radiotelephony number words ("niner", "tree", "fife", "one two zero")
to digit strings and back, strips callsigns before numeric extraction, and
extracts canonical parameter values (altitude, heading, speed, ...) from
transcribed text.

All functions are pure. Extraction helpers return None / [] when nothing
can be read; callers treat that as "cannot verify", never as "absent".
"""

import re
import logging
from typing import List, Optional, Dict, Any, Tuple, Union

from rapidfuzz.distance import JaroWinkler

logger = logging.getLogger(__name__)

Value = Union[int, str]


# ============================================================
# NUMBER WORD TABLES
# ============================================================

# Single digits, ICAO variants included. Applied longest first.
SPOKEN_DIGITS = [
    ("niner", "9"),
    ("fower", "4"),
    ("three", "3"),
    ("seven", "7"),
    ("eight", "8"),
    ("zero", "0"),
    ("tree", "3"),
    ("four", "4"),
    ("five", "5"),
    ("fife", "5"),
    ("nine", "9"),
    ("one", "1"),
    ("two", "2"),
    ("six", "6"),
    ("ait", "8"),
    ("wun", "1"),
]

TEEN_WORDS = [
    ("seventeen", "17"),
    ("thirteen", "13"),
    ("fourteen", "14"),
    ("eighteen", "18"),
    ("nineteen", "19"),
    ("fifteen", "15"),
    ("sixteen", "16"),
    ("eleven", "11"),
    ("twelve", "12"),
    ("ten", "10"),
]

TENS_WORDS = [
    ("seventy", "7"),
    ("twenty", "2"),
    ("thirty", "3"),
    ("eighty", "8"),
    ("ninety", "9"),
    ("forty", "4"),
    ("fifty", "5"),
    ("sixty", "6"),
]

# ICAO pronunciation used when spelling digits back out
DIGIT_WORDS = {
    "0": "zero",
    "1": "one",
    "2": "two",
    "3": "tree",
    "4": "fower",
    "5": "fife",
    "6": "six",
    "7": "seven",
    "8": "eight",
    "9": "niner",
    ".": "decimal",
}

_UNIT_ALTERNATION = "|".join(word for word, _ in SPOKEN_DIGITS if word != "zero")
_UNIT_VALUES = {word: digit for word, digit in SPOKEN_DIGITS}
_TENS_VALUES = {word: digit for word, digit in TENS_WORDS}
_TENS_ALTERNATION = "|".join(word for word, _ in TENS_WORDS)

_COMPOUND_PATTERN = re.compile(rf"\b({_TENS_ALTERNATION})[\s-]+({_UNIT_ALTERNATION})\b")
_TENS_PATTERN = re.compile(rf"\b({_TENS_ALTERNATION})\b")
_TEEN_PATTERNS = [(re.compile(rf"\b{word}\b"), digits) for word, digits in TEEN_WORDS]
_DIGIT_PATTERNS = [
    (re.compile(rf"\b{word}\b"), digit)
    for word, digit in sorted(SPOKEN_DIGITS, key=lambda item: len(item[0]), reverse=True)
]
_DIGIT_GAP_PATTERN = re.compile(r"(\d)[ \t]*-?[ \t]*(?=\d)")


def normalize(text: str) -> str:
    """
    Normalize transcribed radiotelephony text.

    - Lowercase, collapse whitespace
    - Compound numbers first ("twenty five" -> "25", "fifteen" -> "15")
    - Spoken digits, longest words first ("niner" before "nine")
    - Adjacent digits joined ("1 2 0" -> "120")

    "thousand", "hundred" and "decimal" stay as words. Idempotent.
    """
    if not text:
        return ""

    normalized = re.sub(r"\s+", " ", text.lower()).strip()

    normalized = _COMPOUND_PATTERN.sub(
        lambda m: _TENS_VALUES[m.group(1)] + _UNIT_VALUES[m.group(2)], normalized
    )
    normalized = _TENS_PATTERN.sub(lambda m: _TENS_VALUES[m.group(1)] + "0", normalized)
    for pattern, digits in _TEEN_PATTERNS:
        normalized = pattern.sub(digits, normalized)
    for pattern, digit in _DIGIT_PATTERNS:
        normalized = pattern.sub(digit, normalized)

    normalized = _DIGIT_GAP_PATTERN.sub(r"\1", normalized)
    return normalized


def to_spoken(digits: str) -> str:
    """Spell a digit string in ICAO pronunciation: '350' -> 'tree fife zero'"""
    return " ".join(DIGIT_WORDS[ch] for ch in str(digits) if ch in DIGIT_WORDS)


def spell_numbers(text: str) -> str:
    """
    Replace every standalone number in text with its ICAO spelling.
    Digits glued to letters (callsigns, procedure names) are left alone.
    """
    text = re.sub(r"\bfl\s*(?=\d)", "flight level ", text, flags=re.IGNORECASE)
    text = re.sub(r"\b(qnh|rwy)(?=\d)", r"\1 ", text, flags=re.IGNORECASE)
    text = re.sub(
        r"\b(\d{1,2})([lrc])\b",
        lambda m: f"{m.group(1)} {RUNWAY_DESIGNATORS[m.group(2).lower()]}",
        text,
        flags=re.IGNORECASE,
    )
    return re.sub(
        r"(?<![A-Za-z\d])(\d+(?:\.\d+)?)(?![A-Za-z\d])",
        lambda m: to_spoken(m.group(1)),
        text,
    )


# ============================================================
# SIMILARITY
# ============================================================

def is_transposition(a: str, b: str) -> bool:
    """
    True when b is a reordering of a's characters that differs in at least
    two aligned positions. Symmetric; false for identical strings.
    """
    a, b = str(a), str(b)
    if len(a) != len(b) or a == b:
        return False
    if sorted(a) != sorted(b):
        return False
    differences = sum(1 for x, y in zip(a, b) if x != y)
    return differences >= 2


def jaro_winkler(a: str, b: str, prefix_scale: float = 0.1) -> float:
    """Jaro-Winkler similarity with a common-prefix bonus of up to 4 chars"""
    if not a or not b:
        return 1.0 if a == b else 0.0
    return JaroWinkler.similarity(a, b, prefix_weight=prefix_scale)


def phonetic_similarity(a: str, b: str) -> float:
    """Jaro-Winkler over digit-normalized, space-free strings"""
    left = normalize(a).replace(" ", "")
    right = normalize(b).replace(" ", "")
    return round(jaro_winkler(left, right), 4)


# ============================================================
# CALLSIGNS
# ============================================================

# Words that look like "XX 123" but are never callsigns
NON_CALLSIGN_WORDS = {
    "fl", "qnh", "qfe", "rwy", "hdg", "alt", "spd", "kts", "ft", "nm", "sqk",
    "to", "at", "or", "and", "for", "via", "the", "of", "on", "by", "is", "be",
    "we", "are", "its", "now", "then", "than", "from", "when", "with", "till",
    "left", "turn", "fly", "keep", "next", "over", "past", "cont", "this",
    "ils", "vor", "ndb", "dme", "rnav", "rnp", "gps", "loc", "mach", "wind",
    "gate", "exit", "taxi", "hold", "back", "time", "info", "freq", "bay",
    "stand", "abm", "dct", "above", "one", "two", "sid", "star", "code",
    "zulu", "hpa", "mile", "miles", "min", "flap", "gear", "vfr", "ifr",
    "cebu", "atis", "ctaf", "twr", "gnd", "dep", "app", "apch", "ctr", "del",
    "down", "up", "wait", "land", "pass", "join",
}

_CALLSIGN_PATTERN = re.compile(r"\b([a-z]{2,4})\s?(\d{2,4})\b", re.IGNORECASE)
_RP_REGISTRATION_PATTERN = re.compile(r"\brp-?c\s?\d{3,5}\b", re.IGNORECASE)


def _callsign_variants(callsign: str) -> List[str]:
    cs = callsign.strip().lower()
    if not cs:
        return []
    variants = {cs, normalize(cs)}
    split = re.match(r"^([a-z]+)[\s-]*(\d+)$", normalize(cs))
    if split:
        variants.add(f"{split.group(1)} {split.group(2)}")
        variants.add(f"{split.group(1)}{split.group(2)}")
    return sorted(variants, key=len, reverse=True)


def strip_callsign(text: str, callsign: Optional[str] = None) -> str:
    """
    Remove callsigns from normalized text before numeric extraction so
    flight-number digits are never read as instruction values.
    """
    stripped = normalize(text)

    if callsign:
        for variant in _callsign_variants(callsign):
            stripped = re.sub(rf"(?<![a-z\d]){re.escape(variant)}(?![a-z\d])", " ", stripped)

    stripped = _RP_REGISTRATION_PATTERN.sub(" ", stripped)

    def _drop(match: re.Match) -> str:
        if match.group(1).lower() in NON_CALLSIGN_WORDS:
            return match.group(0)
        return " "

    stripped = _CALLSIGN_PATTERN.sub(_drop, stripped)
    stripped = re.sub(r"\s+", " ", stripped).strip(" ,.;")
    return stripped


def detect_callsign(text: str) -> Optional[str]:
    """Return the first callsign-shaped token, upper-cased (e.g. 'PAL123')"""
    normalized = normalize(text)

    registration = _RP_REGISTRATION_PATTERN.search(normalized)
    if registration:
        return re.sub(r"[\s-]", "", registration.group(0)).upper()

    for match in _CALLSIGN_PATTERN.finditer(normalized):
        if match.group(1).lower() in NON_CALLSIGN_WORDS:
            continue
        return f"{match.group(1)}{match.group(2)}".upper()
    return None


def contains_callsign(text: str, callsign: str) -> bool:
    normalized = normalize(text)
    for variant in _callsign_variants(callsign):
        if re.search(rf"(?<![a-z\d]){re.escape(variant)}(?![a-z\d])", normalized):
            return True
    return False


# ============================================================
# VALUE EXTRACTION
# ============================================================

RUNWAY_DESIGNATORS = {"l": "left", "r": "right", "c": "center"}
_DESIGNATOR_LETTERS = {"left": "L", "right": "R", "center": "C", "centre": "C", "l": "L", "r": "R", "c": "C"}

# Wind reports carry speeds and directions that are not instructions
_ADVISORY_PATTERNS = [
    re.compile(
        r"\bwind\s+(?:calm|variable|\d{3}\s*(?:degrees\s*)?(?:at\s*)?\d{1,2}"
        r"(?:\s*(?:knots|kts))?(?:\s*gusting\s*\d{1,2}(?:\s*(?:knots|kts))?)?)"
    ),
]

# Keywords that reveal a number belongs to a specific parameter. Positional
# fallbacks only run when none of the other parameters' keywords are present.
PARAMETER_KEYWORDS = {
    "altitude": r"\b(?:flight\s*level|fl|feet|ft|thousand|hundred|altitude|climb\w*|descend\w*)\b",
    "heading": r"\b(?:heading|degrees|left|right)\b",
    "speed": r"\b(?:speed|knots|kts|mach)\b",
    "altimeter": r"\b(?:altimeter|qnh|qfe|hectopascals?|hpa|millibars?)\b",
    "squawk": r"\b(?:squawk\w*|transponder|code)\b",
    "frequency": r"\b(?:decimal|point|frequency|contact|monitor)\b|\d\.\d",
    "runway": r"\b(?:runway|rwy)\b",
}

FACILITY_WORDS = r"\b(?:departure|approach|tower|ground|control|center|centre|radar|delivery|director|information|radio)\b"


def _altitude_from_flight_level(m: re.Match) -> int:
    return int(m.group(1)) * 100


def _altitude_from_thousands(m: re.Match) -> int:
    value = int(m.group(1)) * 1000
    if m.group(2):
        value += int(m.group(2)) * 100
    return value


def _altitude_from_hundreds(m: re.Match) -> int:
    return int(m.group(1)) * 100


def _plain_int(m: re.Match) -> int:
    return int(m.group(1))


def _plain_str(m: re.Match) -> str:
    return m.group(1)


def _joined_str(m: re.Match) -> str:
    return m.group(1) + m.group(2)


def _frequency(m: re.Match) -> str:
    decimals = m.group(2).rstrip("0") or "0"
    return f"{m.group(1)}.{decimals}"


def _runway(m: re.Match) -> str:
    designator = _DESIGNATOR_LETTERS.get((m.group(2) or "").lower(), "")
    return f"{int(m.group(1)):02d}{designator}"


def _approach(m: re.Match) -> str:
    kind = m.group(1).upper()
    return "LOC" if kind == "LOCALIZER" else kind


# (regex, converter, tier). Tiers: keyword > contextual > positional.
EXTRACTION_PATTERNS: Dict[str, List[Tuple[str, Any, str]]] = {
    "altitude": [
        (r"\b(?:flight\s*level|fl)\s*(\d{2,3})\b", _altitude_from_flight_level, "keyword"),
        (r"\b(\d{1,2})\s*thousand(?:\s*(?:and\s*)?(\d)\s*hundred)?\b", _altitude_from_thousands, "keyword"),
        (r"\b(\d{1,2})\s*hundred\b", _altitude_from_hundreds, "keyword"),
        (r"\b(\d{3,5})\s*(?:feet|ft)\b", _plain_int, "keyword"),
        (
            r"\b(?:climb|climbing|descend|descending|maintain|maintaining|altitude|leaving|passing|reaching|above|below)"
            r"\s+(?:and\s+maintain\s+)?(?:to\s+)?(\d{4,5})\b(?!\s*(?:knots|kts|decimal|point|\.\d))",
            _plain_int,
            "contextual",
        ),
        (r"\b(\d{4,5})\b", _plain_int, "positional"),
    ],
    "heading": [
        (r"\bheading\s*(\d{1,3})\b", _plain_int, "keyword"),
        (r"\b(?:left|right)\s+(?:heading\s+)?(\d{3})\b", _plain_int, "contextual"),
    ],
    "speed": [
        (r"\bspeed\s*(\d{2,3})\b", _plain_int, "keyword"),
        (r"\b(\d{2,3})\s*(?:knots|kts)\b", _plain_int, "keyword"),
        (
            r"\b(?:reduce|reducing|increase|increasing|maintain|maintaining)\s+(?:speed\s+)?(?:to\s+)?"
            r"(\d{2,3})\b(?!\s*(?:thousand|hundred|feet|ft))",
            _plain_int,
            "contextual",
        ),
    ],
    "altimeter": [
        (r"\b(?:altimeter|qnh|qfe)\s*(\d{4})\b", _plain_str, "keyword"),
        (r"\b(?:altimeter|qnh)\s*(\d{2})\s*(?:decimal|point|\.)\s*(\d{2})\b", _joined_str, "keyword"),
        (r"\b(\d{4})\s*(?:hectopascals?|hpa|millibars?)\b", _plain_str, "keyword"),
        (r"\b(\d{4})\b", _plain_str, "positional"),
    ],
    "squawk": [
        (r"\b(?:squawk|squawking|transponder|code)\s*(\d{4})\b", _plain_str, "keyword"),
        (r"\b([0-7]{4})\b", _plain_str, "positional"),
    ],
    "frequency": [
        (r"\b(1[1-3]\d)\s*(?:decimal|point|\.)\s*(\d{1,3})\b", _frequency, "keyword"),
        (r"\b(1[1-3]\d)(\d{1,2})\b", _frequency, "positional"),
    ],
    "runway": [
        (r"\b(?:runway|rwy)\s*(\d{1,2})\s*(left|right|center|centre|l|r|c)?\b", _runway, "keyword"),
    ],
    "approach": [
        (r"\b(ils|rnav|rnp|vor|ndb|visual|gps|circling|loc)\s*(?:[a-z]\s+)?approach\b", _approach, "keyword"),
        (r"\bcleared\s+(ils|rnav|rnp|vor|ndb|visual|gps|circling|loc)\b", _approach, "contextual"),
        (r"\b(ils|rnav|rnp|vor|ndb|visual|gps|localizer)\b", _approach, "positional"),
    ],
}

_COMPILED_PATTERNS: Dict[str, List[Tuple[re.Pattern, Any, str]]] = {}
for _parameter, _patterns in EXTRACTION_PATTERNS.items():
    _compiled = []
    for _pattern, _converter, _tier in _patterns:
        try:
            _compiled.append((re.compile(_pattern), _converter, _tier))
        except re.error as e:
            logger.warning(f"Regex error for {_parameter} pattern '{_pattern}': {e}")
    _COMPILED_PATTERNS[_parameter] = _compiled

PARAMETERS = tuple(EXTRACTION_PATTERNS.keys())


def strip_advisories(text: str) -> str:
    """Remove wind reports, which contain numbers that are not instructions"""
    stripped = normalize(text)
    for pattern in _ADVISORY_PATTERNS:
        stripped = pattern.sub(" ", stripped)
    return re.sub(r"\s+", " ", stripped).strip()


def _positional_allowed(text: str, parameter: str) -> bool:
    if parameter == "approach":
        return True
    if parameter == "frequency":
        return bool(re.search(FACILITY_WORDS, text)) and not re.search(
            PARAMETER_KEYWORDS["altitude"] + "|" + PARAMETER_KEYWORDS["squawk"], text
        )
    for other, keywords in PARAMETER_KEYWORDS.items():
        if other == parameter:
            continue
        if re.search(keywords, text):
            return False
    return True


def _iter_values(text: str, parameter: str, strict: bool) -> List[Tuple[int, Value]]:
    prepared = strip_advisories(text)
    found: List[Tuple[int, int, Value]] = []
    taken: List[Tuple[int, int]] = []

    for pattern, converter, tier in _COMPILED_PATTERNS.get(parameter, []):
        # Lower tiers only run when higher tiers found nothing
        if tier != "keyword" and found:
            break
        if tier == "positional" and (strict or not _positional_allowed(prepared, parameter)):
            continue
        for m in pattern.finditer(prepared):
            if any(m.start() < end and start < m.end() for start, end in taken):
                continue
            try:
                value = converter(m)
            except (ValueError, TypeError):
                continue
            taken.append((m.start(), m.end()))
            found.append((m.start(), m.end(), value))

    return [(start, value) for start, _, value in found]


def extract_value(text: str, parameter: str, strict: bool = False) -> Optional[Value]:
    """
    Canonical value of a parameter: keyword-adjacent first, then
    contextual, then positional. strict=True skips positional guesses.
    Within the winning tier the earliest mention wins.
    """
    values = _iter_values(text, parameter, strict)
    if not values:
        return None
    return min(values, key=lambda item: item[0])[1]


def extract_all_values(text: str, parameter: str, strict: bool = False) -> List[Value]:
    """Every value of a parameter, in order of appearance, without duplicates"""
    values = sorted(_iter_values(text, parameter, strict), key=lambda item: item[0])
    unique: List[Value] = []
    for _, value in values:
        if value not in unique:
            unique.append(value)
    return unique


def format_value(parameter: str, value: Optional[Value]) -> Optional[str]:
    """Human-readable rendering used in explanations"""
    if value is None:
        return None
    if parameter == "altitude":
        return format_altitude(int(value))
    if parameter == "heading":
        return f"{int(value):03d}"
    if parameter == "speed":
        return f"{value} knots"
    return str(value)


def format_altitude(feet: int) -> str:
    if feet >= 18000 and feet % 100 == 0:
        return f"FL{feet // 100:03d}"
    return f"{feet} ft"


def spoken_altitude(feet: int) -> str:
    """'flight level tree fife zero' / 'fife thousand' / 'one thousand fife hundred'"""
    if feet >= 18000 and feet % 100 == 0:
        return f"flight level {to_spoken(f'{feet // 100:03d}')}"
    thousands, remainder = divmod(feet, 1000)
    parts = []
    if thousands:
        parts.append(f"{to_spoken(str(thousands))} thousand")
    if remainder:
        if remainder % 100 == 0:
            parts.append(f"{to_spoken(str(remainder // 100))} hundred")
        else:
            parts = [to_spoken(str(feet))]
    return " ".join(parts) if parts else "zero"


# ============================================================
# VALUE RANGE VALIDATORS
# ============================================================

SPEED_RANGES = {
    "approach": (100, 250),
    "departure": (150, 300),
    "cruise": (200, 500),
    "default": (60, 500),
}

EMERGENCY_SQUAWKS = {"7500": "hijack", "7600": "radio failure", "7700": "emergency"}


def validate_heading_range(heading: int) -> Dict[str, Any]:
    if heading < 1 or heading > 360:
        return {"valid": False, "error": f"Invalid heading {heading} - must be 001-360"}
    return {"valid": True}


def validate_speed_range(speed: int, phase: Optional[str] = None) -> Dict[str, Any]:
    low, high = SPEED_RANGES.get(phase or "default", SPEED_RANGES["default"])
    if speed < low or speed > high:
        return {
            "valid": False,
            "error": f"Unusual speed {speed}kts for {phase or 'flight'} phase (expected {low}-{high})",
        }
    return {"valid": True}


def validate_altitude_range(altitude: int) -> Dict[str, Any]:
    if altitude < 0 or altitude > 60000:
        return {"valid": False, "error": f"Invalid altitude value {altitude}"}
    return {"valid": True}


def validate_squawk_code(squawk: str) -> Dict[str, Any]:
    if not re.fullmatch(r"[0-7]{4}", squawk):
        return {"valid": False, "error": f"Invalid squawk code {squawk} - must be 4 octal digits (0-7)"}
    if squawk in EMERGENCY_SQUAWKS:
        return {"valid": True, "error": f"Warning: {squawk} is the {EMERGENCY_SQUAWKS[squawk]} code"}
    return {"valid": True}


def validate_frequency_range(frequency: str) -> Dict[str, Any]:
    try:
        mhz = float(frequency)
    except ValueError:
        return {"valid": False, "error": f"Invalid frequency {frequency}"}
    if mhz < 118.0 or mhz > 136.975:
        return {"valid": False, "error": f"Frequency {frequency} outside VHF COM band 118.000-136.975"}
    return {"valid": True}


def validate_runway_number(runway: str) -> Dict[str, Any]:
    number = int(re.match(r"\d+", runway).group(0))
    if number < 1 or number > 36:
        return {"valid": False, "error": f"Invalid runway {runway} - must be 01-36"}
    return {"valid": True}


def validate_altimeter_setting(setting: str) -> Dict[str, Any]:
    value = int(setting)
    if 2700 <= value <= 3100 or 900 <= value <= 1100:
        return {"valid": True}
    return {"valid": False, "error": f"Unusual altimeter setting {setting}"}


RANGE_VALIDATORS = {
    "heading": lambda v: validate_heading_range(int(v)),
    "speed": lambda v: validate_speed_range(int(v)),
    "altitude": lambda v: validate_altitude_range(int(v)),
    "squawk": lambda v: validate_squawk_code(str(v)),
    "frequency": lambda v: validate_frequency_range(str(v)),
    "runway": lambda v: validate_runway_number(str(v)),
    "altimeter": lambda v: validate_altimeter_setting(str(v)),
}


def range_warnings(text: str) -> List[str]:
    """Warnings for values outside their operational range"""
    warnings = []
    for parameter, validator in RANGE_VALIDATORS.items():
        value = extract_value(text, parameter, strict=True)
        if value is None:
            continue
        outcome = validator(value)
        if outcome.get("error"):
            warnings.append(outcome["error"])
    return warnings
