"""Live evaluation: push improving results while the engine searches."""
import asyncio
import logging
from typing import AsyncIterator

from engine import clamp_depth
from errors import EngineError
from positions import require_fen
from scores import normalize_evaluation
from session import EngineSession
from settings import settings
from uci import Evaluation, InfoUpdate, is_primary

logger = logging.getLogger(__name__)

MAX_STREAM_DEPTH = 24

_END = object()


class DepthGate:
    """Admit a progress update only when the primary line reaches a new depth.

    Multi-PV output interleaves ranks and repeats depths; without the gate a
    client would see duplicate or out-of-order pushes.
    """

    def __init__(self):
        self.last_depth = 0

    def admit(self, info: InfoUpdate) -> bool:
        if not is_primary(info) or "depth" not in info:
            return False
        if "score" not in info and "pv" not in info:
            return False
        if info["depth"] <= self.last_depth:
            return False
        self.last_depth = info["depth"]
        return True


async def stream_evaluation(fen: str, depth: float | None = None, **session_options) -> AsyncIterator[dict]:
    """Yield ``{"evaluation"}`` events as the search deepens.

    The sequence ends with either one final ``{"evaluation"}`` followed by
    ``{"done": True}``, or a single ``{"error"}``. Closing the generator
    early (the consumer went away) tears the engine session down.
    """
    try:
        fen = require_fen(fen)
    except EngineError as e:
        yield {"error": str(e)}
        return

    depth = clamp_depth(depth, settings.stockfish_stream_depth, high=MAX_STREAM_DEPTH)
    session_options.setdefault("multipv", settings.stockfish_multipv)
    session_options.setdefault("timeout_ms", settings.stockfish_stream_timeout_ms)
    session = EngineSession(fen, depth, **session_options)

    events: asyncio.Queue = asyncio.Queue()
    gate = DepthGate()

    def on_progress(info: InfoUpdate, partial: Evaluation) -> None:
        if gate.admit(info):
            events.put_nowait({"evaluation": normalize_evaluation(partial, fen)})

    async def run() -> None:
        try:
            evaluation = await session.run(on_progress)
        except EngineError as e:
            logger.warning(f"Streaming evaluation failed: {e}")
            events.put_nowait({"error": str(e)})
        except Exception:
            logger.exception("Streaming evaluation crashed")
            events.put_nowait({"error": "Streaming evaluation failed"})
        else:
            events.put_nowait({"evaluation": normalize_evaluation(evaluation, fen)})
            events.put_nowait({"done": True})
        finally:
            events.put_nowait(_END)

    task = asyncio.create_task(run())
    try:
        while True:
            event = await events.get()
            if event is _END:
                return
            yield event
            if "error" in event or "done" in event:
                return
    finally:
        session.close()
        if not task.done():
            task.cancel()
        await asyncio.gather(task, return_exceptions=True)
