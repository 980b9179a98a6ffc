"""Score orientation.

UCI engines report scores relative to the side to move. Everything the
service returns is absolute instead: positive always favors White.
"""
from uci import EngineLine, Evaluation, Score


def side_to_move(fen: str) -> str | None:
    """Return ``"w"`` or ``"b"`` from the FEN's active-color field, or None."""
    fields = fen.split()
    if len(fields) < 2 or fields[1] not in ("w", "b"):
        return None
    return fields[1]


def orient_score(score: Score | None, sign: int) -> Score | None:
    if score is None:
        return None
    return {"type": score["type"], "value": score["value"] * sign}


def normalize_evaluation(evaluation: Evaluation, fen: str) -> Evaluation:
    """Return a copy of ``evaluation`` with every score oriented to White.

    An unreadable side-to-move field leaves the scores as reported.
    """
    turn = side_to_move(fen)
    if turn is None:
        return evaluation
    sign = 1 if turn == "w" else -1

    lines: list[EngineLine] = [
        {**line, "score": orient_score(line["score"], sign)} for line in evaluation["lines"]
    ]
    return {**evaluation, "score": orient_score(evaluation["score"], sign), "lines": lines}
