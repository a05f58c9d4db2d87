"""
Movie request/response schemas.
"""
from datetime import datetime

from pydantic import BaseModel, Field, field_validator


class UserPreview(BaseModel):
    """Minimal public profile embedded in movies and groups."""

    id: int
    username: str
    name: str | None = None
    avatar: str | None = None


class ProposeMovieRequest(BaseModel):
    """Payload for POST /movies."""

    title: str = Field(..., min_length=1, max_length=500)
    group_id: int
    proposal_intent: int = Field(..., ge=1, le=4)
    tmdb_id: int | None = None
    poster_path: str | None = Field(default=None, max_length=255)

    @field_validator("title")
    @classmethod
    def title_not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("Title cannot be blank")
        return v


class RateMovieRequest(BaseModel):
    """Payload for PATCH /movies/{movie_id}/rate."""

    interest_score: int = Field(..., ge=1, le=4)


class WatchMovieRequest(BaseModel):
    """Payload for PATCH /movies/{movie_id}/watch."""

    notes: str | None = Field(default=None, max_length=2000)
    personal_rating: int | None = Field(default=None, ge=1, le=5)


class MovieResponse(BaseModel):
    id: int
    title: str
    tmdb_id: int | None = None
    poster_path: str | None = None
    poster_url: str | None = None
    proposer_id: int
    proposer: UserPreview | None = None
    proposed_at: datetime
    proposal_intent: int
    interest_score: int | None = None
    watched: bool = False
    watched_at: datetime | None = None
    notes: str | None = None
    personal_rating: int | None = None
    group_id: int | None = None
