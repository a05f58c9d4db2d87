"""
Groups API — /groups
─────────────────────
Movie-night groups, proposer rotation state and the decided movie.

Endpoints:
  GET    /groups                      — Groups I belong to
  POST   /groups                      — Create a group (I become first proposer)
  GET    /groups/{id}                 — Group detail with members + decided movie
  PATCH  /groups/{id}                 — Update name / schedule / members
  PATCH  /groups/{id}/decide          — Set or clear the decided movie
  POST   /groups/{id}/decide/auto     — Let the scoring engine decide
  GET    /groups/{id}/candidates      — Unwatched movies ranked by decision score
"""
from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from app.api.errors import to_http_exception
from app.db.models import User
from app.db.session import get_db
from app.deps.auth import get_current_user
from app.schemas.groups import (
    AutoDecideResponse,
    CandidateResponse,
    CreateGroupRequest,
    DecideMovieRequest,
    GroupResponse,
    UpdateGroupRequest,
)
from app.services.errors import MovieNightError
from app.services.group_service import (
    create_group,
    get_group_detail,
    hydrate_group,
    list_candidates,
    list_my_groups,
    update_group,
)
from app.services.rotation_service import auto_decide, decide_movie

router = APIRouter()


# ── Routes ────────────────────────────────────────────────────────────────────


@router.get("", response_model=list[GroupResponse])
def list_groups(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> list[dict]:
    return list_my_groups(db, current_user.id)


@router.post("", response_model=GroupResponse, status_code=status.HTTP_201_CREATED)
def create(
    payload: CreateGroupRequest,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> dict:
    try:
        return create_group(
            db,
            current_user.id,
            name=payload.name,
            schedule=payload.schedule.model_dump(),
            member_ids=payload.member_ids,
        )
    except MovieNightError as exc:
        raise to_http_exception(exc) from exc


@router.get("/{group_id}", response_model=GroupResponse)
def get_group(
    group_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> dict:
    try:
        return get_group_detail(db, group_id, current_user.id)
    except MovieNightError as exc:
        raise to_http_exception(exc) from exc


@router.patch("/{group_id}", response_model=GroupResponse)
def patch_group(
    group_id: int,
    payload: UpdateGroupRequest,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> dict:
    try:
        return update_group(db, group_id, current_user.id, payload.model_dump(exclude_unset=True))
    except MovieNightError as exc:
        raise to_http_exception(exc) from exc


@router.patch("/{group_id}/decide", response_model=GroupResponse)
def decide(
    group_id: int,
    payload: DecideMovieRequest,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> dict:
    """Set the decided movie, or pass null to let the group choose again."""
    try:
        group = decide_movie(db, group_id, current_user.id, payload.movie_id)
    except MovieNightError as exc:
        raise to_http_exception(exc) from exc
    return hydrate_group(db, group)


@router.post("/{group_id}/decide/auto", response_model=AutoDecideResponse)
def decide_automatically(
    group_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> dict:
    """
    Score every unwatched group movie and persist the winner. When there is
    nothing to choose from the current decision is kept and decided=false.
    """
    try:
        group, winner = auto_decide(db, group_id, current_user.id)
    except MovieNightError as exc:
        raise to_http_exception(exc) from exc
    return {"decided": winner is not None, "group": hydrate_group(db, group)}


@router.get("/{group_id}/candidates", response_model=list[CandidateResponse])
def candidates(
    group_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> list[dict]:
    try:
        return list_candidates(db, group_id, current_user.id)
    except MovieNightError as exc:
        raise to_http_exception(exc) from exc
