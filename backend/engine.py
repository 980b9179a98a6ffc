import logging
import math
import os
import shutil

from positions import require_fen
from scores import normalize_evaluation
from session import EngineSession
from settings import settings
from uci import Evaluation

logger = logging.getLogger(__name__)

MIN_DEPTH = 8
MAX_DEPTH = 25


def is_configured() -> bool:
    """Check if Stockfish is properly configured and accessible."""
    if not settings.stockfish_path:
        return False
    # Check if path exists directly or is in system PATH
    return os.path.isfile(settings.stockfish_path) or shutil.which(settings.stockfish_path) is not None


def clamp_depth(depth: float | None, default: int, low: int = MIN_DEPTH, high: int = MAX_DEPTH) -> int:
    """Clamp a requested depth into ``[low, high]``; None or NaN selects ``default``."""
    if depth is None or math.isnan(depth):
        depth = default
    return int(max(low, min(high, depth)))


async def evaluate_fen(fen: str, depth: float | None = None, **session_options) -> Evaluation:
    """Evaluate one position with a fresh engine process.

    Args:
        fen: The FEN string of the position to evaluate.
        depth: Requested search depth, clamped to [8, 25].
        **session_options: Passed through to ``EngineSession`` (timeout_ms,
            engine_path, spawn).

    Returns:
        The evaluation with scores oriented so that positive favors White.

    Raises:
        InvalidInputError: The FEN is malformed. No process is started.
        EngineError: Any engine failure, see ``errors``.
    """
    fen = require_fen(fen)
    depth = clamp_depth(depth, settings.stockfish_depth)
    session_options.setdefault("multipv", settings.stockfish_multipv)

    session = EngineSession(fen, depth, **session_options)
    evaluation = await session.run()
    logger.debug(f"Evaluated {fen} at depth {evaluation['depth']}: {evaluation['score']}")
    return normalize_evaluation(evaluation, fen)
