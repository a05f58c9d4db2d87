"""
Group request/response schemas.

A schedule is a tagged variant: ``{"type": "recurring", "day", "time"}`` or
``{"type": "oneoff", "date", "time"}``.
"""
from datetime import datetime
from typing import Annotated, Literal, Union

from pydantic import BaseModel, Field

from app.schemas.movies import MovieResponse, UserPreview

# 24h clock, zero-padded
TIME_PATTERN = r"^([01]\d|2[0-3]):[0-5]\d$"


class RecurringSchedule(BaseModel):
    """Weekly movie night; day 0 = Sunday."""

    type: Literal["recurring"] = "recurring"
    day: int = Field(..., ge=0, le=6)
    time: str = Field(..., pattern=TIME_PATTERN)


class OneOffSchedule(BaseModel):
    """A single dated movie night."""

    type: Literal["oneoff"] = "oneoff"
    date: datetime
    time: str = Field(..., pattern=TIME_PATTERN)


Schedule = Annotated[Union[RecurringSchedule, OneOffSchedule], Field(discriminator="type")]


class CreateGroupRequest(BaseModel):
    """Payload for POST /groups."""

    name: str = Field(..., min_length=1, max_length=100)
    schedule: Schedule
    member_ids: list[int] = Field(default_factory=list)


class UpdateGroupRequest(BaseModel):
    """Payload for PATCH /groups/{group_id}. Omitted fields are left alone."""

    name: str | None = Field(default=None, min_length=1, max_length=100)
    schedule: Schedule | None = None
    member_ids: list[int] | None = None


class DecideMovieRequest(BaseModel):
    """
    Payload for PATCH /groups/{group_id}/decide.

    movie_id is required but may be null, which clears the decision.
    """

    movie_id: int | None = Field(...)


class GroupResponse(BaseModel):
    id: int
    name: str
    schedule: Schedule
    current_proposer_index: int
    current_proposer: UserPreview | None = None
    last_movie_night: datetime | None = None
    decided_movie_id: int | None = None
    decided_movie: MovieResponse | None = None
    members: list[UserPreview]
    created_at: datetime


class AutoDecideResponse(BaseModel):
    """Outcome of an engine-driven decision; decided is False when nothing qualified."""

    decided: bool
    group: GroupResponse


class CandidateResponse(BaseModel):
    """One ranked decision candidate."""

    movie: MovieResponse
    score: float
    average_interest: float
    rating_count: int
