"""
Movies API — /movies
─────────────────────
Proposals, peer ratings and watch completion.

Endpoints:
  GET    /movies                 — Unwatched movies visible to me
  POST   /movies                 — Propose a movie to one of my groups
  GET    /movies/top-pick        — Dashboard highlight (or null)
  PATCH  /movies/{id}/rate       — Record my interest (1-4)
  PATCH  /movies/{id}/watch      — Mark watched; rotates the group's proposer
  DELETE /movies/{id}            — Remove my own unwatched proposal
"""
from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from app.api.errors import to_http_exception
from app.db.models import User
from app.db.session import get_db
from app.deps.auth import get_current_user
from app.schemas.movies import (
    MovieResponse,
    ProposeMovieRequest,
    RateMovieRequest,
    WatchMovieRequest,
)
from app.services.errors import MovieNightError
from app.services.movie_service import (
    delete_movie,
    get_top_pick,
    list_unwatched_movies,
    mark_watched,
    propose_movie,
    rate_movie,
)

router = APIRouter()


# ── Routes ────────────────────────────────────────────────────────────────────


@router.get("", response_model=list[MovieResponse])
def list_movies(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> list[dict]:
    """Own, friends' and own-group proposals that have not been watched yet."""
    return list_unwatched_movies(db, current_user.id)


@router.post("", response_model=MovieResponse, status_code=status.HTTP_201_CREATED)
def create_movie(
    payload: ProposeMovieRequest,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> dict:
    try:
        return propose_movie(
            db,
            current_user.id,
            title=payload.title,
            group_id=payload.group_id,
            proposal_intent=payload.proposal_intent,
            tmdb_id=payload.tmdb_id,
            poster_path=payload.poster_path,
        )
    except MovieNightError as exc:
        raise to_http_exception(exc) from exc


@router.get("/top-pick", response_model=MovieResponse | None)
def top_pick(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> dict | None:
    return get_top_pick(db, current_user.id)


@router.patch("/{movie_id}/rate", response_model=MovieResponse)
def rate(
    movie_id: int,
    payload: RateMovieRequest,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> dict:
    try:
        return rate_movie(db, movie_id, current_user.id, payload.interest_score)
    except MovieNightError as exc:
        raise to_http_exception(exc) from exc


@router.patch("/{movie_id}/watch", response_model=MovieResponse)
def watch(
    movie_id: int,
    payload: WatchMovieRequest,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> dict:
    """
    Mark the movie watched. For group movies this also ends the current
    proposer's turn: their other unwatched proposals are removed, the next
    member becomes proposer and the group's decision is cleared.
    """
    try:
        return mark_watched(
            db,
            movie_id,
            current_user.id,
            notes=payload.notes,
            personal_rating=payload.personal_rating,
        )
    except MovieNightError as exc:
        raise to_http_exception(exc) from exc


@router.delete("/{movie_id}", status_code=status.HTTP_204_NO_CONTENT)
def remove_movie(
    movie_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> None:
    try:
        delete_movie(db, movie_id, current_user.id)
    except MovieNightError as exc:
        raise to_http_exception(exc) from exc
