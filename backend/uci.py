"""UCI output parsing.

Turns the engine's ``info`` and ``bestmove`` lines into typed records and
folds a search's progress lines into a single evaluation.
"""
from typing import TypedDict

MAX_LINES = 3
NO_MOVE = "(none)"

# Keywords followed by a single integer argument
_INT_FIELDS = ("depth", "seldepth", "multipv")


class Score(TypedDict):
    """Engine score. ``type`` is ``"cp"`` or ``"mate"``."""

    type: str
    value: int


class EngineLine(TypedDict):
    move: str
    score: Score | None
    pv: list[str]


class Evaluation(TypedDict):
    bestMove: str
    score: Score | None
    depth: int
    pv: list[str]
    lines: list[EngineLine]


class InfoUpdate(TypedDict, total=False):
    """Fields carried by one ``info`` line. Absent keys were not reported."""

    depth: int
    seldepth: int
    multipv: int
    score: Score
    pv: list[str]


def _to_int(token: str) -> int | None:
    try:
        return int(token)
    except ValueError:
        return None


def parse_score(tokens: list[str]) -> Score | None:
    """Parse the ``<kind> <value>`` pair following a ``score`` keyword."""
    if len(tokens) < 2 or tokens[0] not in ("cp", "mate"):
        return None
    value = _to_int(tokens[1])
    if value is None:
        return None
    return {"type": tokens[0], "value": value}


def parse_info(line: str) -> InfoUpdate | None:
    """Parse an ``info`` line, or return None for any other line.

    Unknown keywords and truncated or non-numeric arguments are skipped
    rather than rejected, so a partially garbled line still yields whatever
    fields could be read.
    """
    tokens = line.split()
    if not tokens or tokens[0] != "info":
        return None

    info: InfoUpdate = {}
    i = 1
    while i < len(tokens):
        key = tokens[i]
        if key == "string":
            break
        if key == "pv":
            if len(tokens) > i + 1:
                info["pv"] = tokens[i + 1:]
            break
        if key == "score":
            score = parse_score(tokens[i + 1:i + 3])
            if score is not None:
                info["score"] = score
                i += 3
                continue
        elif key in _INT_FIELDS and i + 1 < len(tokens):
            value = _to_int(tokens[i + 1])
            if value is not None and (key != "multipv" or value >= 1):
                info[key] = value
                i += 2
                continue
        i += 1
    return info


def parse_bestmove(line: str) -> str | None:
    """Return the move named by a ``bestmove`` line, or None for other lines.

    A bare ``bestmove`` and ``bestmove (none)`` both give an empty string.
    """
    tokens = line.split()
    if not tokens or tokens[0] != "bestmove":
        return None
    if len(tokens) < 2 or tokens[1] == NO_MOVE:
        return ""
    return tokens[1]


def is_primary(info: InfoUpdate) -> bool:
    return info.get("multipv", 1) == 1


class SearchState:
    """Accumulates progress lines for one ``go`` command.

    Progress lines are cumulative: a line without a score keeps the last
    known score. Lines for each multi-PV rank are kept separately and merged
    by rank, whatever order they arrive in. Only rank 1 moves the top-level
    depth, score and principal variation.
    """

    def __init__(self, depth: int):
        self.depth = depth
        self.score: Score | None = None
        self.pv: list[str] = []
        self._ranked: dict[int, EngineLine] = {}

    def update(self, info: InfoUpdate) -> None:
        rank = info.get("multipv", 1)
        previous = self._ranked.get(rank)
        pv = info.get("pv")
        if pv:
            score = info["score"] if "score" in info else (previous["score"] if previous else None)
            self._ranked[rank] = {"move": pv[0], "score": score, "pv": list(pv)}
        elif previous is not None and "score" in info:
            self._ranked[rank] = {**previous, "score": info["score"]}

        if not is_primary(info):
            return
        if "depth" in info:
            self.depth = info["depth"]
        if "score" in info:
            self.score = info["score"]
        if pv:
            self.pv = list(pv)

    def lines(self) -> list[EngineLine]:
        return [
            {**self._ranked[rank], "pv": list(self._ranked[rank]["pv"])}
            for rank in sorted(self._ranked)[:MAX_LINES]
        ]

    def snapshot(self) -> Evaluation:
        """Evaluation of the search so far, before any ``bestmove``."""
        return {
            "bestMove": self.pv[0] if self.pv else "",
            "score": self.score,
            "depth": self.depth,
            "pv": list(self.pv),
            "lines": self.lines(),
        }

    def finish(self, best_move: str) -> Evaluation:
        """Build the final evaluation once ``bestmove`` has been read."""
        lines = self.lines()
        primary = self._ranked.get(1)
        if primary is not None:
            score, pv = primary["score"], list(primary["pv"])
        else:
            score, pv = self.score, list(self.pv)
            if best_move:
                # Rank 1 never reported a pv (instant answer from book or
                # tablebase): lines[0] is still the chosen move.
                pv = [best_move]
                lines = [{"move": best_move, "score": score, "pv": list(pv)}, *lines][:MAX_LINES]
        return {
            "bestMove": best_move,
            "score": score,
            "depth": self.depth,
            "pv": pv,
            "lines": lines,
        }
