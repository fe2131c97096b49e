"""
Test Multi-Part Analyzer - Component extraction and completeness

Tests for:
- analyze_multipart() component split and presence
- Completeness percentage and critical-part flag
- Condition as its own component
- Instructions without components
"""

from models.readback import Severity
from services.multipart_analyzer import analyze_multipart


class TestAnalyzeMultipart:
    """Tests for multi-part instruction analysis"""

    def test_missing_heading(self):
        """Test a dropped heading is reported as a critical missing part"""
        analysis = analyze_multipart(
            "PAL123 climb and maintain flight level three five zero, turn right heading two seven zero",
            "climb flight level three five zero, PAL123",
            "PAL123",
        )

        types = [c.type for c in analysis.components]
        assert types == ["altitude", "heading"], f"Unexpected components {types}"
        assert analysis.is_multi_part
        assert analysis.missing_parts == ["heading"]
        assert analysis.readback_completeness == 50
        assert analysis.critical_parts_missing

        altitude, heading = analysis.components
        assert altitude.is_present and altitude.value == "FL350"
        assert not heading.is_present and heading.actual_readback is None
        assert heading.expected_readback == "heading two seven zero"
        assert heading.severity == Severity.HIGH
        print("✅ Missing heading detected")

    def test_complete_readback(self):
        analysis = analyze_multipart(
            "climb and maintain flight level three five zero, turn right heading two seven zero",
            "climb and maintain flight level three five zero, right heading two seven zero",
        )
        assert analysis.missing_parts == []
        assert analysis.readback_completeness == 100
        assert not analysis.critical_parts_missing

    def test_condition_component(self):
        """Test the trigger altitude is a condition, not an altitude component"""
        analysis = analyze_multipart(
            "when passing flight level two five zero descend flight level one eight zero",
            "descend flight level one eight zero",
        )

        types = [c.type for c in analysis.components]
        assert types == ["altitude", "condition"], f"Unexpected components {types}"
        assert analysis.components[0].value == "FL180"
        assert analysis.missing_parts == ["condition"]
        assert not analysis.critical_parts_missing, "condition is not a critical part"
        assert analysis.readback_completeness == 50

    def test_single_component(self):
        analysis = analyze_multipart("squawk four five two one", "squawk four five two one")
        assert not analysis.is_multi_part
        assert analysis.readback_completeness == 100

    def test_no_components(self):
        """Test completeness is 100 when nothing can be extracted"""
        analysis = analyze_multipart("", "roger")
        assert analysis.components == []
        assert analysis.readback_completeness == 100
        assert not analysis.is_multi_part

    def test_to_dict(self):
        data = analyze_multipart("squawk four five two one", "roger").to_dict()
        assert data["missing_parts"] == ["squawk"]
        assert data["components"][0]["severity"] == "high"
