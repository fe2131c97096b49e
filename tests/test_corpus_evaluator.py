"""
Test Corpus Evaluator - Batch evaluation, export and self-validation

Tests for:
- evaluate() summary over {atc, pilot, expectedPhase} exchanges
- export_training_records() correct/incorrect labels
- validate_rule_tables() report structure
- corpus_stats() counts
- analyze_corpus() quality breakdown
"""

from models.readback import FlightPhase
from services.reference_corpus import CORPORA
from services.corpus_evaluator import (
    evaluate,
    export_training_records,
    validate_rule_tables,
    corpus_stats,
    analyze_corpus,
    ENGINE_VERSION,
)


def _error_patterns(corpus=None):
    names = [corpus] if corpus else list(CORPORA)
    return sum(len(example.common_errors) for name in names for example in CORPORA[name])


class TestEvaluate:
    """Tests for batch evaluation"""

    def test_empty(self):
        summary = evaluate([])
        assert summary.total_exchanges == 0
        assert summary.phase_accuracy == 0
        assert summary.average_completeness == 100
        assert summary.critical_error_count == 0

    def test_go_around_exchange(self):
        """Test camelCase expectedPhase and approach error rate"""
        summary = evaluate([
            {"atc": "go around, climb and maintain three thousand", "pilot": "roger", "expectedPhase": "go_around"},
        ])

        assert summary.total_exchanges == 1
        assert summary.correct_readbacks == 0
        assert summary.phase_accuracy == 100
        assert summary.departure_error_rate == 0
        assert summary.approach_error_rate == 200, "rates count findings per exchange"
        assert summary.critical_error_count == 1
        print("✅ Go-around exchange evaluated")

    def test_correct_exchange(self):
        summary = evaluate([
            {
                "atc": "PAL123 climb and maintain flight level three five zero",
                "pilot": "climb and maintain flight level three five zero, PAL123",
                "expected_phase": "departure_climb",
            },
        ])
        assert summary.correct_readbacks == 1
        assert summary.phase_accuracy == 100
        assert summary.average_completeness == 100
        assert summary.critical_error_count == 0

    def test_unknown_expected_phase_is_a_miss(self):
        """Test an unrecognised phase label is scored as a miss, not an error"""
        summary = evaluate([
            {"atc": "climb flight level three five zero", "pilot": "climb flight level three five zero",
             "expectedPhase": "climbout"},
            {"atc": "go around, climb and maintain three thousand", "pilot": "roger", "expectedPhase": "go_around"},
        ])

        assert summary.total_exchanges == 2
        assert summary.phase_accuracy == 50, "only the go-around label should match"

    def test_expected_phase_enum(self):
        summary = evaluate([
            {"atc": "go around, climb and maintain three thousand", "pilot": "roger",
             "expected_phase": FlightPhase.GO_AROUND},
        ])
        assert summary.phase_accuracy == 100

    def test_to_dict(self):
        data = evaluate([]).to_dict()
        assert set(data) == {
            "total_exchanges", "correct_readbacks", "phase_accuracy", "departure_error_rate",
            "approach_error_rate", "average_completeness", "critical_error_count",
        }


class TestExport:
    """Tests for training-data export"""

    def test_all_corpora(self):
        records = export_training_records()
        examples = sum(len(corpus) for corpus in CORPORA.values())

        assert len(records) == examples + _error_patterns()
        assert len([r for r in records if r.label == "correct"]) == examples
        assert all(r.error_type for r in records if r.label == "incorrect")
        assert all(r.error_type is None for r in records if r.label == "correct")

    def test_single_corpus(self):
        records = export_training_records("departure")
        assert len(records) == len(CORPORA["departure"]) + _error_patterns("departure")

    def test_to_dict(self):
        record = export_training_records("approach")[0]
        data = record.to_dict()
        assert data["label"] == "correct"
        assert data["phase"] == (record.phase.value if record.phase else None)


class TestSelfValidation:
    """Tests for rule-table self-validation"""

    def test_report_structure(self):
        report = validate_rule_tables()
        stats = corpus_stats()

        assert report["total_samples"] == stats["total_examples"] + stats["total_error_patterns"]
        assert sum(report["confusion_matrix"].values()) == report["total_samples"]
        assert report["correct_detections"] == (
            report["confusion_matrix"]["true_positives"] + report["confusion_matrix"]["true_negatives"]
        )
        assert set(report["corpus_accuracy"]) == set(CORPORA)
        assert 0 <= report["accuracy"] <= 100
        assert report["model_version"] == ENGINE_VERSION
        print(f"✅ Self-validation accuracy {report['accuracy']}%")


class TestCorpusStats:
    """Tests for corpus statistics"""

    def test_counts(self):
        stats = corpus_stats()
        assert stats["examples_per_corpus"] == {"departure": 8, "approach": 8, "general": 5}
        assert stats["total_examples"] == 21
        assert stats["total_error_patterns"] == _error_patterns()
        assert FlightPhase.GO_AROUND.value in stats["covered_phases"]


class TestAnalyzeCorpus:
    """Tests for quality breakdown"""

    def test_breakdown(self):
        report = analyze_corpus([
            {"atc": "cleared for takeoff runway two four", "pilot": "roger"},
            {"atc": "turn left heading two seven zero", "pilot": "turn left heading two seven zero"},
        ])

        assert report["total_exchanges"] == 2
        assert report["correct_readbacks"] == 1
        assert report["incorrect_readbacks"] == 1
        assert report["error_breakdown"]["roger_substitution"] == 1
        assert report["overall_accuracy"] == 50.0

    def test_empty(self):
        report = analyze_corpus([])
        assert report["overall_accuracy"] == 0.0
