from typing import Literal

from pydantic import BaseModel, Field


class EvaluateRequest(BaseModel):
    fen: str = Field(..., description="FEN string of the position to evaluate")
    depth: int | float | None = Field(None, description="Search depth, clamped to [8, 25]")


class AnalyzeRequest(BaseModel):
    pgn: str = Field(..., description="Full game in PGN")
    depth: int | float | None = Field(None, description="Search depth, clamped to [8, 25]")
    samples: int | float | None = Field(None, description="How many closing positions to evaluate, clamped to [1, 10]")


class EngineScore(BaseModel):
    type: Literal["cp", "mate"]
    value: int


class EngineLine(BaseModel):
    move: str
    score: EngineScore | None
    pv: list[str]


class EngineEvaluation(BaseModel):
    bestMove: str
    score: EngineScore | None
    depth: int
    pv: list[str]
    lines: list[EngineLine]


class MoveSnapshot(BaseModel):
    ply: int
    moveNumber: int
    san: str
    uci: str
    color: Literal["white", "black"]
    fen: str


class EngineSample(MoveSnapshot):
    evaluation: EngineEvaluation | None
    error: str | None = None


class GameSummary(BaseModel):
    totalMoves: int
    requested: int
    sampled: int
    depth: int


class GameAnalysisResponse(BaseModel):
    summary: GameSummary
    timeline: list[MoveSnapshot]
    samples: list[EngineSample]
