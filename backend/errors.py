"""Failure kinds surfaced by the evaluation services.

Process-level problems (missing binary, broken pipes, early exits) are
caught at the engine session boundary and re-raised as one of these, so
routes only ever need to know about ``EngineError``.
"""

ENGINE_NOT_FOUND_MESSAGE = (
    "Stockfish engine not found on server. "
    "Install Stockfish and ensure it's on PATH or set STOCKFISH_PATH."
)


class EngineError(Exception):
    """Base class for every evaluation failure."""

    kind = "engine-error"
    status_code = 500


class InvalidInputError(EngineError, ValueError):
    """Malformed FEN or PGN, rejected before any process is spawned."""

    kind = "invalid-input"
    status_code = 400


class EngineNotFoundError(EngineError):
    """The configured engine executable could not be located."""

    kind = "engine-not-found"

    def __init__(self, path: str):
        super().__init__(ENGINE_NOT_FOUND_MESSAGE)
        self.path = path


class EngineTimeoutError(EngineError):
    kind = "timed-out"


class EngineStreamError(EngineError):
    """The engine exited early or wrote something we could not read."""

    kind = "engine-stream-error"
