"""
Instruction Classifier for ATC Readback Analysis

Assigns a controller instruction to one instruction type using a
priority-ordered rule table. Rules are tested in descending priority against
both the raw and the digit-normalized text; the first rule with any matching
pattern wins. Specific, safety-critical clearances (takeoff, landing, line up)
sit at the top because other types share their vocabulary.
"""

import re
import logging
from typing import List, Dict, Any, Tuple
from dataclasses import dataclass

from models.readback import InstructionType
from services.number_normalizer import normalize

logger = logging.getLogger(__name__)

_N = r"(?:one|two|three|tree|four|fower|five|fife|six|seven|eight|nine|niner|zero|\d)"


@dataclass(frozen=True)
class InstructionRule:
    """One classifier rule: patterns, priority and mandatory readback elements"""
    type: InstructionType
    patterns: Tuple[str, ...]
    priority: int
    required_elements: Tuple[str, ...]
    description: str


@dataclass
class ClassificationResult:
    """Result of instruction classification"""
    instruction_type: InstructionType
    priority: int
    matched_pattern: str
    required_elements: List[str]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "instruction_type": self.instruction_type.value,
            "priority": self.priority,
            "matched_pattern": self.matched_pattern,
            "required_elements": self.required_elements,
        }


# Rule table. Order among equal priorities is preserved.
INSTRUCTION_RULES: Tuple[InstructionRule, ...] = (
    # Runway clearances
    InstructionRule(
        InstructionType.TAKEOFF_CLEARANCE,
        (r"cleared\s+(?:for\s+)?take\s*-?off", r"runway\s+\S+.*cleared\s+(?:for\s+)?take\s*-?off"),
        100,
        ("runway", "takeoff_clearance"),
        "Takeoff clearance",
    ),
    InstructionRule(
        InstructionType.LANDING_CLEARANCE,
        (r"cleared\s+to\s+land", r"runway\s+\S+.*cleared\s+to\s+land"),
        100,
        ("runway", "landing_clearance"),
        "Landing clearance",
    ),
    InstructionRule(
        InstructionType.LINEUP_WAIT,
        (r"line\s*up\s+(?:and\s+)?wait",),
        100,
        ("runway", "lineup_clearance"),
        "Line up and wait",
    ),
    # Go-around / missed approach
    InstructionRule(
        InstructionType.ALTITUDE_CHANGE,
        (r"go\s*-?\s*around", r"missed\s+approach", r"execute\s+missed"),
        95,
        ("altitude", "direction", "heading", "runway_heading"),
        "Go-around or missed approach",
    ),
    # Altitude combined with QNH
    InstructionRule(
        InstructionType.ALTITUDE_CHANGE,
        (r"(?:descend|climb)\s+.*qnh", r"(?:descend|climb)\s+.*altimeter"),
        93,
        ("action", "altitude", "altimeter"),
        "Altitude change with altimeter setting",
    ),
    InstructionRule(
        InstructionType.ALTIMETER_SETTING,
        (rf"altimeter\s+{_N}", rf"qnh\s+{_N}"),
        92,
        ("altimeter",),
        "Altimeter setting",
    ),
    InstructionRule(
        InstructionType.ALTITUDE_CHANGE,
        (r"expedite\s+(?:climb|descent)",),
        91,
        ("expedite", "altitude"),
        "Expedite climb or descent",
    ),
    InstructionRule(
        InstructionType.ALTITUDE_CHANGE,
        (
            r"(?:climb|descend)\s+(?:and\s+)?maintain",
            r"(?:climb|descend)\s+(?:to\s+)?(?:flight\s+level|fl\s*\d|\d+\s*(?:thousand|hundred|feet))",
            r"maintain\s+(?:flight\s+level|fl\s*\d|\d+\s*(?:thousand|hundred|feet))",
            r"stop\s+(?:climb|descent)",
        ),
        90,
        ("action", "altitude"),
        "Altitude change",
    ),
    InstructionRule(
        InstructionType.HOLD_INSTRUCTION,
        (r"hold\s+short", r"hold\s+(?:at|over|position)", r"hold\s+(?:north|south|east|west)"),
        90,
        ("hold", "runway", "waypoint"),
        "Hold short or holding",
    ),
    InstructionRule(
        InstructionType.ALTITUDE_CHANGE,
        (
            r"climb\s+unrestricted",
            r"maintain\s+runway\s+heading",
            r"radar\s+contact\s*,?\s*(?:climb|maintain)",
            r"identified\s*,?\s*(?:climb|maintain)",
            r"after\s+(?:passing|reaching)\s+\w+\s+(?:climb|descend)",
            r"when\s+(?:ready|able)\s+(?:climb|descend)",
        ),
        89,
        ("altitude", "runway_heading"),
        "Departure climb",
    ),
    InstructionRule(
        InstructionType.HEADING_CHANGE,
        (
            r"turn\s+(?:left|right)\s+heading",
            rf"turn\s+(?:left|right)\s+{_N}",
            r"fly\s+heading",
            rf"heading\s+{_N}",
            r"steer\s+heading",
        ),
        88,
        ("direction", "heading"),
        "Heading change",
    ),
    InstructionRule(
        InstructionType.ALTITUDE_CHANGE,
        (
            r"cleared\s+\w+\s+(?:\w+\s+)?(?:alpha|bravo|charlie|delta|\d\w?)?\s*departure",
            r"\w+\s+departure\s+runway",
        ),
        88,
        ("runway", "altitude"),
        "SID clearance",
    ),
    InstructionRule(
        InstructionType.APPROACH_CLEARANCE,
        (r"cleared\s+straight\s*-?in", r"cleared\s+circling", r"maintain\s+\S+\s+until\s+established"),
        88,
        ("approach_type", "runway"),
        "Approach clearance with restriction",
    ),
    InstructionRule(
        InstructionType.APPROACH_CLEARANCE,
        (
            r"descend\s+via\s+(?:the\s+)?\w+",
            r"expect\s+\w+\s+arrival",
            r"cross\s+\w+\s+at\s+",
            r"intercept\s+(?:the\s+)?(?:localizer|ils|loc|final)",
            r"join\s+(?:the\s+)?localizer",
        ),
        87,
        ("approach_type", "runway", "waypoint"),
        "Arrival, crossing restriction or intercept",
    ),
    InstructionRule(
        InstructionType.APPROACH_CLEARANCE,
        (
            r"cleared\s+\w+\s+(?:\w+\s+)?arrival",
            r"\w+\s+arrival",
            r"cleared\s+visual\s+approach",
            r"follow\s+(?:the\s+)?\w+",
            r"traffic\s+to\s+follow",
            r"number\s+(?:one|two|three|four|five|\d)\b",
            r"continue\s+approach",
        ),
        86,
        ("approach_type", "runway"),
        "Arrival or visual approach",
    ),
    InstructionRule(
        InstructionType.APPROACH_CLEARANCE,
        (
            r"cleared\s+(?:ils|rnav|rnp|vor|visual|ndb|gps|loc)\s*(?:\w\s+)?approach",
            r"expect\s+(?:ils|rnav|rnp|vor|visual|ndb)\s+approach",
            r"vectors\s+(?:for|to)\s+(?:the\s+)?(?:ils|rnav|rnp|vor|visual|ndb)",
        ),
        85,
        ("approach_type", "runway"),
        "Approach clearance",
    ),
    InstructionRule(
        InstructionType.SPEED_CHANGE,
        (
            r"(?:reduce|increase)\s+speed",
            r"maintain\s+speed",
            r"speed\s+\d+\s*knots?",
            rf"speed\s+{_N}",
            r"maintain\s+\d+\s*knots?",
            r"\d+\s*knots?",
        ),
        80,
        ("speed",),
        "Speed change",
    ),
    InstructionRule(
        InstructionType.SPEED_CHANGE,
        (
            r"no\s+speed\s+restrictions?",
            r"minimum\s+(?:clean\s+)?speed",
            r"minimum\s+approach\s+speed",
            r"mach\s+(?:zero\s+)?point",
        ),
        79,
        ("speed",),
        "Speed restriction",
    ),
    InstructionRule(
        InstructionType.SQUAWK_CODE,
        (r"squawk\s+\d{4}", r"transponder\s+\d{4}", rf"squawk\s+{_N}"),
        75,
        ("squawk",),
        "Squawk code",
    ),
    InstructionRule(
        InstructionType.FREQUENCY_CHANGE,
        (r"contact\s+\w+(?:\s+\w+)?\s+(?:on\s+)?\d{3}", r"frequency\s+\d{3}", r"contact\s+\w+\s+\w+\s+\d"),
        75,
        ("frequency",),
        "Frequency change",
    ),
    InstructionRule(
        InstructionType.FREQUENCY_CHANGE,
        (r"monitor\s+\w+",),
        74,
        ("frequency",),
        "Monitor frequency",
    ),
    InstructionRule(
        InstructionType.SQUAWK_CODE,
        (r"radar\s+service\s+terminated", r"squawk\s+vfr", r"squawk\s+ident", r"reset\s+transponder"),
        72,
        ("squawk",),
        "Transponder instruction",
    ),
    InstructionRule(
        InstructionType.DIRECT_TO,
        (r"proceed\s+direct\s+(?:to\s+)?\w+", r"cleared\s+direct\s+\w+", r"direct\s+(?:to\s+)?\w+"),
        70,
        ("waypoint",),
        "Direct to fix",
    ),
    InstructionRule(
        InstructionType.TAXI_INSTRUCTION,
        (
            r"taxi\s+(?:to|via)",
            r"taxi\s+(?:runway|gate|ramp|holding)",
            r"cross\s+runway",
            r"give\s+way",
            r"continue\s+taxi",
            r"push\s*back",
        ),
        70,
        ("runway",),
        "Taxi instruction",
    ),
    InstructionRule(
        InstructionType.INFORMATION_ONLY,
        (r"traffic\s+\d+\s*o'?\s*clock", r"caution\s+wake\s+turbulence", r"caution\s+jet\s+blast"),
        50,
        (),
        "Traffic information",
    ),
    InstructionRule(
        InstructionType.INFORMATION_ONLY,
        (r"report\s+(?:passing|reaching|leaving)", r"report\s+\w+$", r"^\s*(?:wind|information)\b"),
        45,
        (),
        "Report request or information",
    ),
)

_SORTED_RULES = sorted(INSTRUCTION_RULES, key=lambda rule: rule.priority, reverse=True)

_RULE_BY_TYPE: Dict[InstructionType, InstructionRule] = {}
for _rule in _SORTED_RULES:
    _RULE_BY_TYPE.setdefault(_rule.type, _rule)


def _matches(pattern: str, texts: List[str]) -> bool:
    try:
        return any(re.search(pattern, text, re.IGNORECASE) for text in texts)
    except re.error as e:
        logger.warning(f"Regex error for pattern '{pattern}': {e}")
        return False


def classify(instruction: str) -> ClassificationResult:
    """
    Classify a controller instruction.

    Tests every rule in descending priority against the raw and the
    digit-normalized text; falls back to UNKNOWN.
    """
    if not instruction or not instruction.strip():
        return ClassificationResult(InstructionType.UNKNOWN, 0, "", [])

    texts = [instruction.lower(), normalize(instruction)]

    for rule in _SORTED_RULES:
        for pattern in rule.patterns:
            if _matches(pattern, texts):
                logger.debug(
                    f"INSTRUCTION CLASSIFICATION | type={rule.type.value} | "
                    f"priority={rule.priority} | rule={rule.description}"
                )
                return ClassificationResult(
                    instruction_type=rule.type,
                    priority=rule.priority,
                    matched_pattern=pattern,
                    required_elements=list(rule.required_elements),
                )

    return ClassificationResult(InstructionType.UNKNOWN, 0, "", [])


def classify_instruction(instruction: str) -> InstructionType:
    return classify(instruction).instruction_type


def required_elements_for(instruction_type: InstructionType) -> List[str]:
    """Mandatory readback elements of the highest-priority rule for a type"""
    rule = _RULE_BY_TYPE.get(instruction_type)
    return list(rule.required_elements) if rule else []
