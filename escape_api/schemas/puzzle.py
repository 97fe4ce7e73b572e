"""Pydantic schemas for puzzles and answer validation."""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

PuzzleType = Literal["riddle", "cipher", "math"]
PUZZLE_TYPES: tuple[str, ...] = ("riddle", "cipher", "math")


class Puzzle(BaseModel):
    """A puzzle including its solution. Never returned to clients as-is."""

    id: str
    type: PuzzleType
    question: str
    answer: str

    def to_public(self) -> "PublicPuzzle":
        return PublicPuzzle(id=self.id, type=self.type, question=self.question)


class PublicPuzzle(BaseModel):
    """Puzzle as served to the player (no answer)."""

    id: str
    type: PuzzleType
    question: str


class PuzzleRequest(BaseModel):
    """Body of POST /api/puzzle."""

    count: int = Field(1, ge=1, description="Number of puzzles to return.")
    type: PuzzleType | None = Field(
        None, description="Puzzle type to generate; random when omitted."
    )
    topic: str | None = Field(
        None, max_length=100, description="Optional topic to bias generated content."
    )
    exclude_ids: list[str] = Field(
        default_factory=list,
        description="Puzzle ids the player has already seen.",
    )


class PuzzleResponse(BaseModel):
    puzzles: list[PublicPuzzle]


class ValidateRequest(BaseModel):
    """Body of POST /api/validate."""

    model_config = ConfigDict(populate_by_name=True)

    puzzle_id: str = Field(..., alias="puzzleId", min_length=1)
    answer: str = Field(..., max_length=500)


class ValidationResult(BaseModel):
    """Outcome of answer validation (internal; clients only see ``correct``)."""

    correct: bool
    method: Literal["local", "ai", "ai_unavailable"]
    confidence: float | None = Field(None, ge=0, le=1)
    explanation: str | None = None


# Served when neither the LLM nor storage can provide a puzzle.
FALLBACK_PUZZLES: tuple[Puzzle, ...] = (
    Puzzle(
        id="p1",
        type="riddle",
        question="I speak without a mouth and hear without ears. What am I?",
        answer="echo",
    ),
    Puzzle(
        id="p2",
        type="cipher",
        question="Solve: URYYB -> (Caesar shift 13)",
        answer="hello",
    ),
    Puzzle(id="p3", type="math", question="What is 7 * 6?", answer="42"),
)


def find_fallback_puzzle(puzzle_id: str) -> Puzzle | None:
    return next((p for p in FALLBACK_PUZZLES if p.id == puzzle_id), None)
