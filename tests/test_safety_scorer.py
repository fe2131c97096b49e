"""
Test Safety Scorer - Safety vectors, contextual severity and confidence

Tests for:
- calculate_safety_vectors() always returns five weighted factors
- Penalties for critical errors, phase errors, missing parts and confusion
- weighted_safety_score()
- contextual_severity() per coarse phase
- model_confidence() heuristics
"""

import pytest

from models.readback import ErrorType, Severity, FlightPhase
from services.readback_errors import ReadbackError
from services.multipart_analyzer import MultiPartInstructionAnalysis
from services.safety_scorer import (
    calculate_safety_vectors,
    weighted_safety_score,
    contextual_severity,
    coarse_phase,
    model_confidence,
)


def _error(error_type, parameter="altitude", severity=Severity.HIGH, explanation="test finding"):
    return ReadbackError(
        type=error_type,
        parameter=parameter,
        expected_value=None,
        actual_value=None,
        severity=severity,
        explanation=explanation,
    )


class TestSafetyVectors:
    """Tests for the five safety vectors"""

    def test_clean_exchange(self):
        """Test a clean exchange scores 100 on every factor"""
        vectors = calculate_safety_vectors([], FlightPhase.CRUISE, MultiPartInstructionAnalysis(), [])

        assert [v.factor for v in vectors] == [
            "Critical Parameter Accuracy",
            "Readback Completeness",
            "Phase-Specific Compliance",
            "Multi-Part Instruction Handling",
            "Parameter Confusion Risk",
        ]
        assert all(v.score == 100 for v in vectors)
        assert not any(v.mitigation_required for v in vectors)
        assert [v.weight for v in vectors] == [0.25, 0.20, 0.15, 0.15, 0.15]
        assert weighted_safety_score(vectors) == 100
        print("✅ Clean exchange scores 100")

    def test_phase_weight_boosted_in_critical_phases(self):
        for phase in [FlightPhase.INITIAL_DEPARTURE, FlightPhase.FINAL_APPROACH, FlightPhase.GO_AROUND]:
            vectors = calculate_safety_vectors([], phase, MultiPartInstructionAnalysis(), [])
            assert vectors[2].weight == 0.25, f"Phase compliance weight should be 0.25 in {phase.value}"

    def test_critical_parameter_penalty(self):
        """Test wrong values count as critical regardless of severity"""
        errors = [_error(ErrorType.WRONG_VALUE, severity=Severity.HIGH), _error(ErrorType.MISSING_ELEMENT)]
        vectors = calculate_safety_vectors(errors, FlightPhase.CRUISE, MultiPartInstructionAnalysis(), [])
        assert vectors[0].score == 75
        assert vectors[0].mitigation_required

    def test_critical_parts_missing(self):
        multi_part = MultiPartInstructionAnalysis(
            is_multi_part=True, missing_parts=["heading"], readback_completeness=50, critical_parts_missing=True
        )
        vectors = calculate_safety_vectors([], FlightPhase.CRUISE, multi_part, [])

        assert vectors[1].score == 50 and vectors[1].mitigation_required
        assert vectors[3].score == 40 and vectors[3].mitigation_required

    def test_phase_errors_floor_at_zero(self):
        phase_errors = [_error(ErrorType.MISSING_ELEMENT) for _ in range(6)]
        vectors = calculate_safety_vectors([], FlightPhase.APPROACH, MultiPartInstructionAnalysis(), phase_errors)
        assert vectors[2].score == 0
        assert vectors[2].mitigation_required

    def test_parameter_confusion(self):
        errors = [_error(ErrorType.PARAMETER_CONFUSION, parameter="heading", severity=Severity.CRITICAL)]
        vectors = calculate_safety_vectors(errors, FlightPhase.CRUISE, MultiPartInstructionAnalysis(), [])
        assert vectors[4].score == 30
        assert vectors[4].mitigation_required

    def test_weighted_score_empty(self):
        assert weighted_safety_score([]) == 100


class TestContextualSeverity:
    """Tests for phase-aware severity labels"""

    def test_no_errors_is_low(self):
        assert contextual_severity(FlightPhase.APPROACH, []) == Severity.LOW

    def test_labels(self):
        """Test the lookup per coarse phase"""
        test_cases = [
            (FlightPhase.CRUISE, _error(ErrorType.ROGER_SUBSTITUTION, "readback"), Severity.CRITICAL),
            (FlightPhase.APPROACH, _error(ErrorType.MISSING_ELEMENT, "altitude"), Severity.CRITICAL),
            (FlightPhase.DEPARTURE_CLIMB, _error(ErrorType.MISSING_ELEMENT, "altitude"), Severity.HIGH),
            (FlightPhase.CRUISE, _error(ErrorType.MISSING_ELEMENT, "heading"), Severity.HIGH),
            (FlightPhase.INITIAL_DEPARTURE, _error(ErrorType.MISSING_ELEMENT, "heading"), Severity.HIGH),
            (FlightPhase.FINAL_APPROACH, _error(ErrorType.WRONG_RUNWAY, "runway"), Severity.CRITICAL),
            (FlightPhase.CRUISE, _error(ErrorType.INCOMPLETE_READBACK, "readback"), Severity.MEDIUM),
            (FlightPhase.CRUISE, _error(ErrorType.EXTRA_ELEMENT, "squawk", Severity.LOW), Severity.LOW),
        ]

        for phase, error, expected in test_cases:
            result = contextual_severity(phase, [error])
            assert result == expected, \
                f"Expected {expected.value} for {error.type.value}/{error.parameter} in {phase.value}, got {result.value}"

        print(f"✅ {len(test_cases)} contextual severities correct")

    def test_only_top_severity_errors_count(self):
        """Test a low-severity always-critical type does not outrank a higher finding"""
        errors = [
            _error(ErrorType.MISSING_ELEMENT, "heading", Severity.HIGH),
            _error(ErrorType.CONDITION_VIOLATED, "condition", Severity.MEDIUM),
        ]
        assert contextual_severity(FlightPhase.CRUISE, errors) == Severity.HIGH

    def test_coarse_phase(self):
        assert coarse_phase(FlightPhase.GO_AROUND) == "approach"
        assert coarse_phase(FlightPhase.FINAL_APPROACH) == "landing"
        assert coarse_phase(None) == "cruise"


class TestModelConfidence:
    """Tests for heuristic confidence scores"""

    def test_clean(self):
        confidence = model_confidence(0.6, [])
        assert confidence.instruction_classification == 0.9
        assert confidence.error_detection == 0.9
        assert confidence.severity_assessment == 0.85
        assert confidence.overall == pytest.approx(0.81)

    def test_with_errors(self):
        confidence = model_confidence(0.5, [_error(ErrorType.WRONG_VALUE)])
        assert confidence.instruction_classification == 0.85
        assert confidence.error_detection == 0.9

    def test_ambiguous_errors(self):
        """Test hearback or unclear findings lower error-detection confidence"""
        confidence = model_confidence(0.5, [_error(ErrorType.HEARBACK_ERROR)])
        assert confidence.error_detection == 0.7

        confidence = model_confidence(0.5, [_error(ErrorType.MISSING_ELEMENT, explanation="Readback unclear")])
        assert confidence.error_detection == 0.7

    def test_to_dict(self):
        data = model_confidence(1.0, []).to_dict()
        assert set(data) == {
            "phase_detection", "instruction_classification", "error_detection", "severity_assessment", "overall",
        }
