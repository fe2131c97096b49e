"""
Readback findings.

Findings are values, never exceptions: every check returns a list of these.
The base ReadbackError is tagged by ErrorType; kind-specific payload lives
on the subclasses and is exported under "details".
"""

from dataclasses import dataclass, fields
from typing import Optional, Dict, Any

from models.readback import ErrorType, Severity, PhaseErrorType


@dataclass(frozen=True)
class ReadbackError:
    type: ErrorType
    parameter: str
    expected_value: Optional[str]
    actual_value: Optional[str]
    severity: Severity
    explanation: str
    reference_code: Optional[str] = None

    @property
    def base_parameter(self) -> str:
        """'altitude (magnitude)' -> 'altitude'"""
        return self.parameter.split(" (")[0]

    def details(self) -> Dict[str, Any]:
        base = {f.name for f in fields(ReadbackError)}
        extra = {}
        for f in fields(self):
            if f.name in base:
                continue
            value = getattr(self, f.name)
            extra[f.name] = value.value if hasattr(value, "value") else value
        return extra

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": self.type.value,
            "parameter": self.parameter,
            "expected_value": self.expected_value,
            "actual_value": self.actual_value,
            "severity": self.severity.value,
            "explanation": self.explanation,
            "reference_code": self.reference_code,
            "details": self.details(),
        }


@dataclass(frozen=True)
class TranspositionError(ReadbackError):
    """Same digits, at least two swapped positions"""


@dataclass(frozen=True)
class MagnitudeError(ReadbackError):
    """Readback value is 10x or 100x the cleared value (or the inverse)"""
    factor: int = 10


@dataclass(frozen=True)
class PhaseSpecificError(ReadbackError):
    phase_error_type: Optional[PhaseErrorType] = None
    correction: str = ""
    icao_reference: str = ""
    flight_safety_impact: str = ""


@dataclass(frozen=True)
class PhraseologyFinding(ReadbackError):
    issue: str = ""
    correction: str = ""
