import io
from typing import TypedDict

import chess
import chess.pgn

from errors import InvalidInputError


class MoveSnapshot(TypedDict):
    """One half-move of a game and the position it produced."""

    ply: int
    moveNumber: int
    san: str
    uci: str
    color: str
    fen: str


def validate_fen(fen: str) -> tuple[bool, str | None]:
    """Validate a FEN string for correctness.

    Checks that the FEN is parseable by python-chess and that both kings
    are present on the board.

    Args:
        fen: The FEN string to validate.

    Returns:
        A tuple of (is_valid, error_message). If valid, error_message is None.
    """
    try:
        board = chess.Board(fen)
    except ValueError as e:
        return False, f"Invalid FEN format: {e}"

    if board.king(chess.WHITE) is None:
        return False, "Invalid position: White king is missing"
    if board.king(chess.BLACK) is None:
        return False, "Invalid position: Black king is missing"

    return True, None


def require_fen(fen: object) -> str:
    """Return ``fen`` stripped, or raise InvalidInputError."""
    if not isinstance(fen, str) or not fen.strip():
        raise InvalidInputError("fen is required")
    is_valid, error = validate_fen(fen.strip())
    if not is_valid:
        raise InvalidInputError(error)
    return fen.strip()


def build_timeline(pgn: str) -> list[MoveSnapshot]:
    """Replay a PGN's main line and snapshot the board after every ply.

    Raises:
        InvalidInputError: The PGN cannot be read, contains an illegal move,
            or has no moves at all.
    """
    if not isinstance(pgn, str) or not pgn.strip():
        raise InvalidInputError("pgn is required")

    game = chess.pgn.read_game(io.StringIO(pgn))
    if game is None:
        raise InvalidInputError("Invalid PGN supplied")
    if game.errors:
        raise InvalidInputError(f"Invalid PGN supplied: {game.errors[0]}")

    board = game.board()
    timeline: list[MoveSnapshot] = []
    for ply, move in enumerate(game.mainline_moves(), start=1):
        color = "white" if board.turn == chess.WHITE else "black"
        san = board.san(move)
        board.push(move)
        timeline.append({
            "ply": ply,
            "moveNumber": (ply + 1) // 2,
            "san": san,
            "uci": move.uci(),
            "color": color,
            "fen": board.fen(),
        })

    if not timeline:
        raise InvalidInputError("Game must contain at least one move")
    return timeline
