"""One engine process, one evaluation.

An ``EngineSession`` spawns a fresh engine, walks it through the UCI
handshake, runs a single ``go depth`` search and tears the process down
again. Processes are never pooled or reused: every concurrent request owns
exactly one OS process for as long as it runs.
"""
import asyncio
import logging
from enum import Enum
from typing import Awaitable, Callable

from errors import EngineNotFoundError, EngineStreamError, EngineTimeoutError
from settings import settings
from uci import Evaluation, InfoUpdate, SearchState, parse_bestmove, parse_info

logger = logging.getLogger(__name__)

IDENTIFY_ACK = "uciok"
READY_ACK = "readyok"

ProgressCallback = Callable[[InfoUpdate, Evaluation], None]


class SessionState(Enum):
    AWAITING_IDENTIFY_ACK = "awaiting_identify_ack"
    AWAITING_READY_ACK = "awaiting_ready_ack"
    AWAITING_OPTION_ACK = "awaiting_option_ack"
    SEARCHING = "searching"
    DONE = "done"


class HandshakeSequencer:
    """State machine for the command side of the protocol.

    ``start`` yields the first command; ``on_line`` consumes one output line
    and returns the commands to send next (usually none). Lines that are not
    the current state's acknowledgement are ignored, so ``id``/``option``
    chatter never advances the handshake.

        uci -> uciok -> isready -> readyok
            [-> setoption MultiPV, isready -> readyok]
            -> position, go -> ... -> bestmove
    """

    def __init__(self, fen: str, depth: int, multipv: int = 1):
        self.fen = fen
        self.depth = depth
        self.multipv = multipv
        self.state: SessionState | None = None

    def start(self) -> list[str]:
        self.state = SessionState.AWAITING_IDENTIFY_ACK
        return ["uci"]

    def _search_commands(self) -> list[str]:
        self.state = SessionState.SEARCHING
        return [f"position fen {self.fen}", f"go depth {self.depth}"]

    def on_line(self, line: str) -> list[str]:
        tokens = line.split()
        if not tokens:
            return []

        if self.state is SessionState.AWAITING_IDENTIFY_ACK:
            if IDENTIFY_ACK in tokens:
                self.state = SessionState.AWAITING_READY_ACK
                return ["isready"]
        elif self.state is SessionState.AWAITING_READY_ACK:
            if READY_ACK in tokens:
                if self.multipv > 1:
                    self.state = SessionState.AWAITING_OPTION_ACK
                    return [f"setoption name MultiPV value {self.multipv}", "isready"]
                return self._search_commands()
        elif self.state is SessionState.AWAITING_OPTION_ACK:
            if READY_ACK in tokens:
                return self._search_commands()
        elif self.state is SessionState.SEARCHING:
            if tokens[0] == "bestmove":
                self.state = SessionState.DONE
        return []


class EngineSession:
    """Drive a single evaluation against a freshly spawned engine.

    Args:
        fen: Position to evaluate. Validated by the caller.
        depth: Search depth for ``go depth``.
        multipv: Number of candidate lines to request.
        timeout_ms: Deadline for the whole session, handshake included.
        engine_path: Executable to spawn. Defaults to ``settings.stockfish_path``.
        spawn: Coroutine function with the signature of
            ``asyncio.create_subprocess_exec``.
    """

    def __init__(
        self,
        fen: str,
        depth: int,
        *,
        multipv: int = 1,
        timeout_ms: int | None = None,
        engine_path: str | None = None,
        spawn: Callable[..., Awaitable[asyncio.subprocess.Process]] | None = None,
    ):
        self.fen = fen
        self.depth = depth
        self.engine_path = engine_path or settings.stockfish_path
        self.timeout_ms = timeout_ms if timeout_ms is not None else settings.stockfish_timeout_ms
        self.sequencer = HandshakeSequencer(fen, depth, multipv)
        self.search = SearchState(depth)
        self._spawn = spawn or asyncio.create_subprocess_exec
        self._process: asyncio.subprocess.Process | None = None
        self._stderr_task: asyncio.Task | None = None
        self._deadline: asyncio.Timeout | None = None
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    async def run(self, on_progress: ProgressCallback | None = None) -> Evaluation:
        """Run the handshake and search; return the raw (side-relative) result.

        ``on_progress`` is called with every parsed ``info`` line of the search
        and a snapshot of the evaluation so far.

        Raises:
            EngineNotFoundError: The executable does not exist.
            EngineTimeoutError: No result before the deadline.
            EngineStreamError: The engine died or wrote unreadable output.
        """
        try:
            async with asyncio.timeout(self.timeout_ms / 1000) as deadline:
                self._deadline = deadline
                try:
                    await self._start()
                    return await self._drive(on_progress)
                finally:
                    self.close()
                    await self._reap()
        except TimeoutError as e:
            logger.warning(f"Engine timed out after {self.timeout_ms}ms (state={self.sequencer.state})")
            raise EngineTimeoutError("Stockfish analysis timed out") from e

    async def _start(self) -> None:
        try:
            self._process = await self._spawn(
                self.engine_path,
                stdin=asyncio.subprocess.PIPE,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except FileNotFoundError as e:
            raise EngineNotFoundError(self.engine_path) from e
        except OSError as e:
            raise EngineStreamError(f"Unable to start Stockfish: {e}") from e

        if self._closed:
            # Closed while the spawn was in flight
            self._process.kill()
            return
        if self._process.stderr is not None:
            self._stderr_task = asyncio.create_task(self._log_stderr(self._process.stderr))
        await self._send(*self.sequencer.start())

    async def _drive(self, on_progress: ProgressCallback | None) -> Evaluation:
        while True:
            line = await self._readline()
            searching = self.sequencer.state is SessionState.SEARCHING
            commands = self.sequencer.on_line(line)
            if commands:
                logger.debug(f"Handshake advanced to {self.sequencer.state.value}")
                await self._send(*commands)
                continue
            if not searching:
                continue

            if self.sequencer.state is SessionState.DONE:
                return self.search.finish(parse_bestmove(line) or "")
            info = parse_info(line)
            if info is None:
                continue
            self.search.update(info)
            if on_progress is not None:
                on_progress(info, self.search.snapshot())

    async def _send(self, *commands: str) -> None:
        assert self._process is not None and self._process.stdin is not None
        try:
            for command in commands:
                logger.debug(f"> {command}")
                self._process.stdin.write(f"{command}\n".encode())
            await self._process.stdin.drain()
        except (BrokenPipeError, ConnectionResetError) as e:
            raise EngineStreamError(f"Engine closed its input: {e}") from e

    async def _readline(self) -> str:
        assert self._process is not None and self._process.stdout is not None
        try:
            raw = await self._process.stdout.readline()
        except ValueError as e:
            # StreamReader reports a line over its buffer limit as ValueError
            raise EngineStreamError(f"Engine output line too long: {e}") from e
        if not raw:
            code = self._process.returncode
            raise EngineStreamError(f"Stockfish exited unexpectedly (code {code})")
        try:
            return raw.decode("utf-8").strip()
        except UnicodeDecodeError as e:
            raise EngineStreamError(f"Unreadable engine output: {e}") from e

    async def _log_stderr(self, stream: asyncio.StreamReader) -> None:
        while True:
            raw = await stream.readline()
            if not raw:
                return
            logger.warning(f"[Stockfish stderr] {raw.decode('utf-8', 'replace').rstrip()}")

    def close(self) -> None:
        """Release the process. Safe to call any number of times, from any path."""
        if self._closed:
            return
        self._closed = True

        if self._stderr_task is not None:
            self._stderr_task.cancel()
        process = self._process
        if process is not None:
            if process.stdin is not None and not process.stdin.is_closing():
                process.stdin.close()
            if process.returncode is None:
                try:
                    process.kill()
                except ProcessLookupError:
                    pass
        if self._deadline is not None and not self._deadline.expired():
            self._deadline.reschedule(None)

    async def _reap(self) -> None:
        if self._process is not None:
            await self._process.wait()
