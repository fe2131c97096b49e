"""
Test Readback API - HTTP surface of the readback engine

Tests for:
- POST /api/readback/analyze and /analyze/batch (batch size limit)
- POST /api/readback/expected, /classify, /phase
- POST /api/readback/evaluate with camelCase expectedPhase
- POST /api/readback/transcript (text, lines, warnings)
- GET /api/readback/export filters and error paths
- GET /api/readback/corpus/stats and /error-types
"""

from fastapi.testclient import TestClient

from server import app

client = TestClient(app)

ATC_LINE = "PAL123 climb and maintain flight level three five zero"
PILOT_LINE = "climb and maintain flight level three five zero, PAL123"


class TestServer:
    def test_health(self):
        response = client.get("/health")
        assert response.status_code == 200
        assert response.json() == {"status": "healthy"}

    def test_api_root_lists_endpoints(self):
        data = client.get("/api").json()
        assert data["endpoints"]["analyze"] == "/api/readback/analyze"


class TestAnalyzeEndpoint:
    """Tests for single and batch analysis"""

    def test_roger_substitution(self):
        response = client.post("/api/readback/analyze", json={
            "instruction": "cleared for takeoff runway two four",
            "readback": "roger",
        })

        assert response.status_code == 200, response.text
        data = response.json()
        assert data["is_correct"] is False
        assert data["quality"] == "incorrect"
        assert data["errors"][0]["type"] == "roger_substitution"
        assert data["errors"][0]["severity"] == "critical"
        assert len(data["safety_vectors"]) == 5
        print("✅ Analyze endpoint flags roger substitution")

    def test_correct_with_callsign(self):
        response = client.post("/api/readback/analyze", json={
            "instruction": ATC_LINE,
            "readback": PILOT_LINE,
            "callsign": "PAL123",
        })
        data = response.json()
        assert data["is_correct"] is True
        assert data["instruction_type"] == "altitude_change"
        assert data["contextual_severity"] == "low"

    def test_without_phase(self):
        response = client.post("/api/readback/analyze", json={
            "instruction": "turn left heading two seven zero",
            "readback": "turn left heading two seven zero",
            "include_phase": False,
        })
        data = response.json()
        assert data["phase"] is None
        assert data["sequence"] is None
        assert data["safety_vectors"] == []

    def test_history(self):
        response = client.post("/api/readback/analyze", json={
            "instruction": "turn left heading two seven zero",
            "readback": "turn right heading two seven zero",
            "history": [
                {"type": "wrong_value", "severity": "high", "timestamp": 1},
                {"type": "wrong_value", "severity": "critical", "timestamp": 2},
            ],
        })
        assert response.status_code == 200, response.text
        assert response.json()["sequence"]["total_instructions"] == 3

    def test_missing_field(self):
        response = client.post("/api/readback/analyze", json={"instruction": "turn left heading two seven zero"})
        assert response.status_code == 422

    def test_batch(self):
        response = client.post("/api/readback/analyze/batch", json={"exchanges": [
            {"instruction": "cleared for takeoff runway two four", "readback": "roger"},
            {"instruction": ATC_LINE, "readback": PILOT_LINE, "callsign": "PAL123"},
        ]})
        assert response.status_code == 200, response.text
        assert [r["is_correct"] for r in response.json()] == [False, True]

    def test_batch_too_large(self):
        exchange = {"instruction": "turn left heading two seven zero", "readback": "roger"}
        response = client.post("/api/readback/analyze/batch", json={"exchanges": [exchange] * 101})

        assert response.status_code == 400
        assert "Batch too large" in response.json()["detail"]


class TestInstructionEndpoints:
    """Tests for expected readback, classification and phase"""

    def test_expected(self):
        response = client.post("/api/readback/expected", json={"instruction": ATC_LINE})
        data = response.json()
        assert data["instruction_type"] == "altitude_change"
        assert data["expected_readback"] == "climb and maintain flight level tree fife zero, PAL123"

    def test_classify(self):
        response = client.post("/api/readback/classify", json={"instruction": "turn left heading two seven zero"})
        data = response.json()
        assert data["instruction_type"] == "heading_change"
        assert data["normalized"] == "turn left heading 270"
        assert isinstance(data["command"], dict)

    def test_phase(self):
        response = client.post("/api/readback/phase", json={
            "instruction": "go around, climb and maintain three thousand",
        })
        data = response.json()
        assert data["phase"] == "go_around"
        assert 0 < data["confidence"] <= 1


class TestEvaluateEndpoint:
    def test_evaluate(self):
        response = client.post("/api/readback/evaluate", json={"exchanges": [
            {"atc": "go around, climb and maintain three thousand", "pilot": "roger", "expectedPhase": "go_around"},
        ]})

        assert response.status_code == 200, response.text
        data = response.json()
        assert data["total_exchanges"] == 1
        assert data["phase_accuracy"] == 100
        assert data["critical_error_count"] == 1

    def test_unknown_phase(self):
        response = client.post("/api/readback/evaluate", json={"exchanges": [
            {"atc": "turn left heading two seven zero", "pilot": "roger", "expectedPhase": "hovering"},
        ]})
        assert response.status_code == 422


class TestTranscriptEndpoint:
    """Tests for transcript pairing and analysis"""

    def test_text_transcript(self):
        response = client.post("/api/readback/transcript", json={
            "text": f"ATC: {ATC_LINE}\nPILOT: {PILOT_LINE}",
        })

        assert response.status_code == 200, response.text
        data = response.json()
        assert len(data["exchanges"]) == 1
        exchange = data["exchanges"][0]
        assert exchange["callsign"] == "PAL123"
        assert exchange["atc_speaker"] == "ATC"
        assert exchange["analysis"]["is_correct"] is True
        assert data["warnings"] == []
        print("✅ Transcript exchange analysed")

    def test_lines_with_low_confidence(self):
        response = client.post("/api/readback/transcript", json={
            "lines": [
                {"text": "cleared for takeoff runway two four", "speaker": "ATC"},
                {"text": "roger", "speaker": "PILOT"},
            ],
            "validation_confidence": 0.3,
        })
        data = response.json()
        assert len(data["exchanges"]) == 1
        assert data["exchanges"][0]["analysis"]["errors"][0]["type"] == "roger_substitution"
        assert any("Low extraction confidence" in w for w in data["warnings"])

    def test_nothing_paired(self):
        response = client.post("/api/readback/transcript", json={"lines": [{"text": PILOT_LINE, "speaker": "PILOT"}]})
        data = response.json()
        assert data["exchanges"] == []
        assert data["unpaired_lines"] == [PILOT_LINE]
        assert "No ATC/pilot exchange could be paired" in data["warnings"]

    def test_empty_transcript(self):
        response = client.post("/api/readback/transcript", json={})
        assert response.status_code == 400


class TestCorpusEndpoints:
    """Tests for export, stats and taxonomy"""

    def test_export_filters(self):
        correct = client.get("/api/readback/export", params={"label": "correct"}).json()
        assert len(correct) == 21
        assert all(r["label"] == "correct" for r in correct)

        departure = client.get("/api/readback/export", params={"corpus": "departure", "label": "incorrect"}).json()
        assert departure and all(r["error_type"] for r in departure)

        go_around = client.get("/api/readback/export", params={"phase": "go_around"}).json()
        assert all(r["phase"] == "go_around" for r in go_around)

    def test_export_errors(self):
        test_cases = [
            ({"corpus": "enroute"}, 404),
            ({"label": "maybe"}, 400),
            ({"phase": "hovering"}, 400),
        ]

        for params, expected_status in test_cases:
            response = client.get("/api/readback/export", params=params)
            assert response.status_code == expected_status, f"Expected {expected_status} for {params}"

    def test_corpus_stats(self):
        data = client.get("/api/readback/corpus/stats").json()
        assert data["total_examples"] == 21
        assert data["examples_per_corpus"]["departure"] == 8

    def test_error_types(self):
        data = client.get("/api/readback/error-types").json()
        assert set(data) == {"core", "conditional", "direction", "runway", "non_native"}

        runway = client.get("/api/readback/error-types", params={"category": "runway"}).json()
        assert runway == {"runway": ["critical_confusion", "wrong_runway", "missing_designator"]}

        assert client.get("/api/readback/error-types", params={"category": "weather"}).status_code == 400
