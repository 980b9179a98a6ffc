import os
import sys

sys.path.insert(0, os.path.dirname(os.path.dirname(__file__)))

from scores import normalize_evaluation, side_to_move


def make_evaluation(score, line_scores):
    return {
        "bestMove": "e2e4",
        "score": score,
        "depth": 12,
        "pv": ["e2e4"],
        "lines": [{"move": "e2e4", "score": s, "pv": ["e2e4"]} for s in line_scores],
    }


def test_side_to_move():
    assert side_to_move("8/8/8/8/8/8/8/K6k w - - 0 1") == "w"
    assert side_to_move("8/8/8/8/8/8/8/K6k b - - 0 1") == "b"
    assert side_to_move("8/8/8/8/8/8/8/K6k") is None
    assert side_to_move("8/8/8/8/8/8/8/K6k x - - 0 1") is None


def test_white_to_move_is_unchanged():
    evaluation = make_evaluation({"type": "cp", "value": 35}, [{"type": "cp", "value": 35}])
    result = normalize_evaluation(evaluation, "8/8/8/8/8/8/8/K6k w - - 0 1")
    assert result == evaluation


def test_black_to_move_negates_every_score():
    evaluation = make_evaluation(
        {"type": "cp", "value": 35},
        [{"type": "cp", "value": 35}, {"type": "mate", "value": -3}, None],
    )
    result = normalize_evaluation(evaluation, "8/8/8/8/8/8/8/K6k b - - 0 1")
    assert result["score"] == {"type": "cp", "value": -35}
    assert [line["score"] for line in result["lines"]] == [
        {"type": "cp", "value": -35},
        {"type": "mate", "value": 3},
        None,
    ]


def test_input_is_not_mutated():
    evaluation = make_evaluation({"type": "cp", "value": 35}, [{"type": "cp", "value": 35}])
    normalize_evaluation(evaluation, "8/8/8/8/8/8/8/K6k b - - 0 1")
    assert evaluation["score"]["value"] == 35
    assert evaluation["lines"][0]["score"]["value"] == 35


def test_missing_score_stays_missing():
    evaluation = make_evaluation(None, [])
    assert normalize_evaluation(evaluation, "8/8/8/8/8/8/8/K6k b - - 0 1")["score"] is None


def test_unreadable_turn_passes_through():
    evaluation = make_evaluation({"type": "cp", "value": 35}, [{"type": "cp", "value": 35}])
    assert normalize_evaluation(evaluation, "not a fen") is evaluation
