"""Whole-game review: evaluate the closing positions of a game."""
import logging
import math
from typing import Awaitable, Callable, TypedDict

from engine import clamp_depth, evaluate_fen
from errors import EngineError
from positions import MoveSnapshot, build_timeline
from settings import settings
from uci import Evaluation

logger = logging.getLogger(__name__)

MIN_SAMPLES = 1
MAX_SAMPLES = 10
DEFAULT_SAMPLES = 5


class Sample(MoveSnapshot, total=False):
    evaluation: Evaluation | None
    error: str


class GameSummary(TypedDict):
    totalMoves: int
    requested: int
    sampled: int
    depth: int


class GameAnalysis(TypedDict):
    summary: GameSummary
    timeline: list[MoveSnapshot]
    samples: list[Sample]


def clamp_samples(samples: float | None) -> int:
    if samples is None or math.isnan(samples):
        return DEFAULT_SAMPLES
    return int(max(MIN_SAMPLES, min(MAX_SAMPLES, samples)))


async def analyze_game(
    pgn: str,
    sample_count: float | None = None,
    depth: float | None = None,
    evaluate: Callable[..., Awaitable[Evaluation]] = evaluate_fen,
) -> GameAnalysis:
    """Evaluate the last ``sample_count`` positions of a game, one at a time.

    Samples run strictly in sequence so a review never holds more than one
    engine process. The first failing sample records its error and ends the
    run: later positions are left out of ``samples`` entirely.

    Raises:
        InvalidInputError: The PGN is unreadable or has no moves.
    """
    timeline = build_timeline(pgn)
    requested = clamp_samples(sample_count)
    depth = clamp_depth(depth, settings.stockfish_depth)

    samples: list[Sample] = []
    for snapshot in timeline[-min(requested, len(timeline)):]:
        try:
            evaluation = await evaluate(snapshot["fen"], depth)
        except EngineError as e:
            logger.warning(f"Sampling stopped at ply {snapshot['ply']}: {e}")
            samples.append({**snapshot, "evaluation": None, "error": str(e) or "Engine error"})
            break
        samples.append({**snapshot, "evaluation": evaluation})

    return {
        "summary": {
            "totalMoves": len(timeline),
            "requested": requested,
            "sampled": len(samples),
            "depth": depth,
        },
        "timeline": timeline,
        "samples": samples,
    }
