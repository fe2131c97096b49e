"""
Multi-Part Instruction Analyzer

Splits an instruction into independent components (altitude, heading,
runway heading, speed, squawk, frequency, runway, approach type, waypoint,
altimeter, condition) and checks each one against the readback.

Values are read from the instruction with its conditional clauses removed,
so a trigger altitude ("when passing FL250") is not a component of its own;
the condition is its own component instead.
"""

import re
import math
import logging
from typing import List, Optional, Dict, Any
from dataclasses import dataclass, field

from models.readback import Severity
from services.number_normalizer import (
    strip_callsign,
    extract_all_values,
    to_spoken,
    spoken_altitude,
    format_value,
)
from services.command_parser import (
    extract_condition,
    condition_present,
    strip_conditions,
    extract_waypoints,
)

logger = logging.getLogger(__name__)


@dataclass
class InstructionComponent:
    type: str
    value: str
    expected_readback: str
    actual_readback: Optional[str]
    is_present: bool
    is_critical: bool
    severity: Severity

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": self.type,
            "value": self.value,
            "expected_readback": self.expected_readback,
            "actual_readback": self.actual_readback,
            "is_present": self.is_present,
            "is_critical": self.is_critical,
            "severity": self.severity.value,
        }


@dataclass
class MultiPartInstructionAnalysis:
    components: List[InstructionComponent] = field(default_factory=list)
    is_multi_part: bool = False
    missing_parts: List[str] = field(default_factory=list)
    readback_completeness: int = 100
    critical_parts_missing: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "components": [c.to_dict() for c in self.components],
            "is_multi_part": self.is_multi_part,
            "missing_parts": self.missing_parts,
            "readback_completeness": self.readback_completeness,
            "critical_parts_missing": self.critical_parts_missing,
        }


@dataclass(frozen=True)
class ComponentSpec:
    type: str
    is_critical: bool
    severity: Severity


# Ordered component table
COMPONENT_SPECS = (
    ComponentSpec("altitude", True, Severity.CRITICAL),
    ComponentSpec("heading", True, Severity.HIGH),
    ComponentSpec("runway_heading", True, Severity.CRITICAL),
    ComponentSpec("speed", False, Severity.MEDIUM),
    ComponentSpec("squawk", True, Severity.HIGH),
    ComponentSpec("frequency", True, Severity.HIGH),
    ComponentSpec("runway", True, Severity.CRITICAL),
    ComponentSpec("approach_type", True, Severity.HIGH),
    ComponentSpec("waypoint", False, Severity.MEDIUM),
    ComponentSpec("altimeter", True, Severity.CRITICAL),
    ComponentSpec("condition", False, Severity.HIGH),
)

# Component type -> extraction parameter of the normalizer
EXTRACTION_PARAMETER = {
    "altitude": "altitude",
    "heading": "heading",
    "speed": "speed",
    "squawk": "squawk",
    "frequency": "frequency",
    "runway": "runway",
    "approach_type": "approach",
    "altimeter": "altimeter",
}

_RUNWAY_HEADING = re.compile(r"\brunway\s+heading\b")


def _spoken_component(component_type: str, value: str) -> str:
    if component_type == "altitude":
        return spoken_altitude(int(value))
    if component_type == "heading":
        return f"heading {to_spoken(f'{int(value):03d}')}"
    if component_type == "speed":
        return f"{to_spoken(value)} knots"
    if component_type == "squawk":
        return f"squawk {to_spoken(value)}"
    if component_type == "frequency":
        return to_spoken(value)
    if component_type == "runway":
        number, designator = re.match(r"(\d+)([LRC]?)", value).groups()
        suffix = {"L": " left", "R": " right", "C": " center"}.get(designator, "")
        return f"runway {to_spoken(number)}{suffix}"
    if component_type == "altimeter":
        return f"QNH {to_spoken(value)}" if value.startswith(("9", "10")) else f"altimeter {to_spoken(value)}"
    if component_type == "approach_type":
        return f"{value} approach"
    return value


def _frequency_present(value: str, readback: str) -> bool:
    if value in extract_all_values(readback, "frequency"):
        return True
    # Decimal spoken as nothing: "one two four one" for 124.1
    digits = value.replace(".", "")
    return any(run.startswith(digits) for run in re.findall(r"\d+", readback))


def _value_present(component_type: str, value: str, readback: str) -> bool:
    if component_type == "frequency":
        return _frequency_present(value, readback)
    parameter = EXTRACTION_PARAMETER[component_type]
    found = [str(v) for v in extract_all_values(readback, parameter)]
    return value in found


def _components_of(core: str) -> List[tuple]:
    """(type, value) pairs in table order"""
    pairs = []
    for rule in COMPONENT_SPECS:
        if rule.type in EXTRACTION_PARAMETER:
            for value in extract_all_values(core, EXTRACTION_PARAMETER[rule.type]):
                pairs.append((rule, str(value)))
        elif rule.type == "runway_heading":
            if _RUNWAY_HEADING.search(core):
                pairs.append((rule, "runway heading"))
        elif rule.type == "waypoint":
            for fix in extract_waypoints(core):
                pairs.append((rule, fix))
    return pairs


def analyze_multipart(instruction: str, readback: str, callsign: Optional[str] = None) -> MultiPartInstructionAnalysis:
    """
    Check every instruction component against the readback.

    readback_completeness = round-half-up(100 * present / total), 100 when
    the instruction has no extractable component.
    """
    instruction_text = strip_callsign(instruction or "", callsign)
    readback_text = strip_callsign(readback or "", callsign)

    core = strip_conditions(instruction_text)
    readback_core = strip_conditions(readback_text)

    components: List[InstructionComponent] = []

    for rule, value in _components_of(core):
        if rule.type == "runway_heading":
            present = bool(_RUNWAY_HEADING.search(readback_text))
        elif rule.type == "waypoint":
            present = bool(re.search(rf"\b{value.lower()}\b", readback_text))
        else:
            present = _value_present(rule.type, value, readback_core)

        parameter = EXTRACTION_PARAMETER.get(rule.type)
        display = format_value(parameter, int(value) if rule.type in ("altitude", "heading") else value) if parameter else value
        components.append(
            InstructionComponent(
                type=rule.type,
                value=display,
                expected_readback=_spoken_component(rule.type, value),
                actual_readback=display if present else None,
                is_present=present,
                is_critical=rule.is_critical,
                severity=rule.severity,
            )
        )

    condition = extract_condition(instruction_text)
    if condition is not None:
        condition_spec = COMPONENT_SPECS[-1]
        present = condition_present(condition, readback_text)
        components.append(
            InstructionComponent(
                type="condition",
                value=condition.phrase,
                expected_readback=condition.phrase,
                actual_readback=condition.phrase if present else None,
                is_present=present,
                is_critical=condition_spec.is_critical,
                severity=condition_spec.severity,
            )
        )

    total = len(components)
    present_count = sum(1 for c in components if c.is_present)
    completeness = math.floor(100 * present_count / total + 0.5) if total else 100

    analysis = MultiPartInstructionAnalysis(
        components=components,
        is_multi_part=total > 1,
        missing_parts=[c.type for c in components if not c.is_present],
        readback_completeness=completeness,
        critical_parts_missing=any(c.is_critical and not c.is_present for c in components),
    )
    logger.debug(
        f"MULTIPART ANALYSIS | components={total} | present={present_count} | "
        f"completeness={completeness} | critical_missing={analysis.critical_parts_missing}"
    )
    return analysis

