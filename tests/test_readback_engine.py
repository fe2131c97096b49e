"""
Test Readback Engine - Phase-mode analysis of one exchange

Tests for:
- analyze() base result plus phase extension
- Safety vectors, contextual severity and recommendations on a go-around
- Sequence state from history
- include_phase=False and empty instructions
- Feedback text and weighted readback completeness
"""

from models.readback import ErrorType, Severity, FlightPhase, ErrorTrend
from services.readback_engine import (
    analyze,
    readback_completeness,
    generate_feedback,
    APPROACH_RECOMMENDATIONS,
    ERROR_RECOMMENDATIONS,
    MAX_RECOMMENDATIONS,
)


class TestAnalyze:
    """Tests for the engine entry point"""

    def test_go_around_acknowledged_with_roger(self):
        """Test a roger to a go-around is critical in the approach phase"""
        analysis = analyze("go around, climb and maintain three thousand", "roger")

        assert analysis.result.errors[0].type == ErrorType.INCOMPLETE_READBACK
        assert analysis.phase.phase == FlightPhase.GO_AROUND
        assert analysis.departure_errors == []
        assert len(analysis.approach_errors) == 2
        assert analysis.contextual_severity == Severity.CRITICAL

        assert len(analysis.safety_vectors) == 5
        compliance = analysis.safety_vectors[2]
        assert compliance.weight == 0.25, "go-around is a safety-critical phase"
        assert compliance.score == 60
        assert compliance.mitigation_required

        assert ERROR_RECOMMENDATIONS[ErrorType.INCOMPLETE_READBACK] in analysis.training_recommendations
        assert APPROACH_RECOMMENDATIONS[0] in analysis.training_recommendations
        assert len(analysis.training_recommendations) <= MAX_RECOMMENDATIONS
        print("✅ Go-around roger analysed")

    def test_correct_readback(self):
        analysis = analyze(
            "PAL123 climb and maintain flight level three five zero",
            "climb and maintain flight level three five zero, PAL123",
            callsign="PAL123",
        )

        assert analysis.result.is_correct
        assert analysis.contextual_severity == Severity.LOW
        assert analysis.phase_errors == []
        assert all(v.score == 100 for v in analysis.safety_vectors)
        assert analysis.feedback == "Readback correct. All required elements properly acknowledged."
        assert analysis.model_confidence.instruction_classification == 0.9

    def test_history(self):
        """Test prior outcomes feed the sequence state"""
        history = [
            {"type": "", "severity": "low", "timestamp": 1},
            {"type": "wrong_value", "severity": "high", "timestamp": 2},
            {"type": "wrong_value", "severity": "critical", "timestamp": 3},
        ]
        analysis = analyze("turn left heading two seven zero", "turn right heading two seven zero", history=history)

        assert analysis.sequence.total_instructions == 4
        assert analysis.sequence.consecutive_errors == 2
        assert analysis.sequence.error_trend == ErrorTrend.DECLINING
        assert analysis.sequence.escalating
        assert analysis.sequence.recurring_error_type == "wrong_value"
        assert not analysis.sequence.correct_sequence

    def test_without_phase(self):
        analysis = analyze("turn left heading two seven zero", "turn left heading two seven zero", include_phase=False)

        assert analysis.result.is_correct
        assert analysis.phase is None
        assert analysis.sequence is None
        assert analysis.safety_vectors == []

        data = analysis.to_dict()
        assert data["phase"] is None
        assert data["multi_part"] is None

    def test_empty_instruction(self):
        analysis = analyze("", "roger")
        assert analysis.result.confidence == 0.3
        assert analysis.phase is None
        assert analysis.safety_vectors == []

    def test_phraseology_findings_kept_apart(self):
        """Test non-native findings never change the base result"""
        analysis = analyze("cleared for takeoff runway two four", "clearing for takeoff runway two four")
        assert [f.type for f in analysis.phraseology_findings] == [ErrorType.NON_NATIVE_GRAMMAR]
        assert ErrorType.NON_NATIVE_GRAMMAR not in [e.type for e in analysis.result.errors]

    def test_range_warnings(self):
        analysis = analyze("squawk seven seven zero zero", "squawk seven seven zero zero")
        assert len(analysis.range_warnings) == 1
        assert "emergency" in analysis.range_warnings[0]

    def test_to_dict(self):
        data = analyze("go around, climb and maintain three thousand", "roger").to_dict()
        assert data["phase"] == "go_around"
        assert data["contextual_severity"] == "critical"
        assert len(data["phase_errors"]) == 2
        assert data["phase_errors"][0]["details"]["phase_error_type"] == "missed_approach_incomplete"
        assert data["sequence"]["total_instructions"] == 1


class TestFeedback:
    """Tests for feedback and weighted completeness"""

    def test_completeness(self):
        completeness = readback_completeness("cleared for takeoff runway two four", "roger")
        assert completeness["score"] == 0
        assert completeness["missing_elements"] == ["runway", "takeoff clearance"]
        assert completeness["critical_missing"]

    def test_weighted_completeness(self):
        """Test critical elements count double"""
        completeness = readback_completeness(
            "descend flight level one two zero, squawk four five two one", "descend flight level one two zero"
        )
        assert completeness["present_elements"] == ["flight level"]
        assert completeness["missing_elements"] == ["squawk"]
        assert completeness["score"] == 67
        assert not completeness["critical_missing"]

    def test_completeness_without_elements(self):
        assert readback_completeness("good morning", "good morning")["score"] == 100

    def test_feedback_mentions_missing(self):
        analysis = analyze("cleared for takeoff runway two four", "roger")
        assert "Reference:" in analysis.feedback

    def test_no_errors(self):
        assert generate_feedback([]) == "Readback correct. All required elements properly acknowledged."
