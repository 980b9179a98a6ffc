"""Tests for the HTTP routes."""
import json
import os
import sys
from unittest.mock import AsyncMock, patch

from fastapi.testclient import TestClient

sys.path.insert(0, os.path.dirname(os.path.dirname(__file__)))

import app as app_module
from errors import EngineNotFoundError, EngineTimeoutError, InvalidInputError

client = TestClient(app_module.app)

FEN = "rnbqkbnr/pppppppp/8/8/8/8/PPPPPPPP/RNBQKBNR w KQkq - 0 1"
EVALUATION = {
    "bestMove": "e2e4",
    "score": {"type": "cp", "value": 30},
    "depth": 14,
    "pv": ["e2e4", "e7e5"],
    "lines": [{"move": "e2e4", "score": {"type": "cp", "value": 30}, "pv": ["e2e4", "e7e5"]}],
}


def test_healthz():
    res = client.get("/healthz")
    assert res.status_code == 200
    assert res.json()["ok"] is True
    assert "configured" in res.json()["engine"]


class TestEvaluateRoute:
    def test_returns_evaluation(self):
        with patch.object(app_module, "evaluate_fen", AsyncMock(return_value=EVALUATION)) as mock_eval:
            res = client.post("/api/review/evaluate", json={"fen": FEN, "depth": 16})
        assert res.status_code == 200
        assert res.json() == EVALUATION
        mock_eval.assert_awaited_once_with(FEN, 16)

    def test_depth_is_optional(self):
        with patch.object(app_module, "evaluate_fen", AsyncMock(return_value=EVALUATION)) as mock_eval:
            client.post("/api/review/evaluate", json={"fen": FEN})
        mock_eval.assert_awaited_once_with(FEN, None)

    def test_fractional_depth_is_accepted(self):
        with patch.object(app_module, "evaluate_fen", AsyncMock(return_value=EVALUATION)) as mock_eval:
            res = client.post("/api/review/evaluate", json={"fen": FEN, "depth": 30.5})
        assert res.status_code == 200
        mock_eval.assert_awaited_once_with(FEN, 30.5)

    def test_unexpected_failure_is_logged_and_reported(self, caplog):
        quiet_client = TestClient(app_module.app, raise_server_exceptions=False)
        with patch.object(app_module, "evaluate_fen", AsyncMock(side_effect=RuntimeError("boom"))):
            res = quiet_client.post("/api/review/evaluate", json={"fen": FEN})
        assert res.status_code == 500
        assert res.json() == {"error": "Internal server error"}
        assert any("failed unexpectedly" in record.getMessage() for record in caplog.records)

    def test_missing_fen(self):
        res = client.post("/api/review/evaluate", json={})
        assert res.status_code == 400
        assert res.json() == {"error": "fen is required"}

    def test_non_string_fen(self):
        res = client.post("/api/review/evaluate", json={"fen": 42})
        assert res.status_code == 400
        assert "fen" in res.json()["error"]

    def test_invalid_fen(self):
        with patch.object(app_module, "evaluate_fen", AsyncMock(side_effect=InvalidInputError("Invalid FEN format"))):
            res = client.post("/api/review/evaluate", json={"fen": "nope"})
        assert res.status_code == 400
        assert res.json() == {"error": "Invalid FEN format"}

    def test_engine_not_found(self):
        with patch.object(app_module, "evaluate_fen", AsyncMock(side_effect=EngineNotFoundError("stockfish"))):
            res = client.post("/api/review/evaluate", json={"fen": FEN})
        assert res.status_code == 500
        assert "STOCKFISH_PATH" in res.json()["error"]

    def test_timeout(self):
        with patch.object(app_module, "evaluate_fen", AsyncMock(side_effect=EngineTimeoutError("Stockfish analysis timed out"))):
            res = client.post("/api/review/evaluate", json={"fen": FEN})
        assert res.status_code == 500
        assert res.json() == {"error": "Stockfish analysis timed out"}


class TestAnalyzeRoute:
    def test_passes_options(self):
        analysis = {
            "summary": {"totalMoves": 2, "requested": 1, "sampled": 1, "depth": 12},
            "timeline": [
                {"ply": 1, "moveNumber": 1, "san": "e4", "uci": "e2e4", "color": "white", "fen": FEN},
                {"ply": 2, "moveNumber": 1, "san": "e5", "uci": "e7e5", "color": "black", "fen": FEN},
            ],
            "samples": [
                {"ply": 2, "moveNumber": 1, "san": "e5", "uci": "e7e5", "color": "black", "fen": FEN, "evaluation": EVALUATION},
            ],
        }
        with patch.object(app_module, "analyze_game", AsyncMock(return_value=analysis)) as mock_analyze:
            res = client.post("/api/review/analyze", json={"pgn": "1. e4 e5", "depth": 12, "samples": 1})
        assert res.status_code == 200
        body = res.json()
        assert body["summary"]["sampled"] == 1
        assert body["samples"][0]["evaluation"]["bestMove"] == "e2e4"
        mock_analyze.assert_awaited_once_with("1. e4 e5", 1, 12)

    def test_missing_pgn(self):
        res = client.post("/api/review/analyze", json={"depth": 12})
        assert res.status_code == 400
        assert res.json() == {"error": "pgn is required"}

    def test_unparseable_pgn(self):
        res = client.post("/api/review/analyze", json={"pgn": "1. e4 e5 2. Ke3"})
        assert res.status_code == 400
        assert "Invalid PGN" in res.json()["error"]


def read_events(res):
    return [json.loads(chunk[len("data: "):]) for chunk in res.text.split("\n\n") if chunk.startswith("data: ")]


class TestStreamRoute:
    def test_event_stream(self):
        async def fake_stream(fen, depth):
            yield {"evaluation": EVALUATION}
            yield {"done": True}

        with patch.object(app_module, "stream_evaluation", fake_stream):
            res = client.get("/api/review/stream", params={"fen": FEN, "depth": 20})
        assert res.status_code == 200
        assert res.headers["content-type"].startswith("text/event-stream")
        assert read_events(res) == [{"evaluation": EVALUATION}, {"done": True}]

    def test_invalid_fen_is_an_error_event(self):
        res = client.get("/api/review/stream", params={"fen": "garbage"})
        assert res.status_code == 200
        events = read_events(res)
        assert len(events) == 1
        assert "error" in events[0]

    def test_missing_fen(self):
        res = client.get("/api/review/stream")
        assert res.status_code == 400
        assert res.json() == {"error": "fen is required"}
