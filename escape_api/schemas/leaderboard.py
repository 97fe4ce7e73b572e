"""Pydantic schemas for the leaderboard."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field


class LeaderboardEntry(BaseModel):
    """A stored completion time."""

    id: int
    name: str
    time_seconds: int = Field(..., description="Completion time in whole seconds.")
    created_at: datetime


class LeaderboardPage(BaseModel):
    """Response of GET /api/leaderboard."""

    total: int = 0
    data: list[LeaderboardEntry] = Field(default_factory=list)


class LeaderboardSubmission(BaseModel):
    """Body of POST /api/leaderboard.

    Fields are loosely typed; the anti-cheat validator checks them and
    reports the rejection reason.
    """

    name: Any = None
    time_seconds: Any = None


class SubmissionResponse(BaseModel):
    success: bool
    error: str | None = None
