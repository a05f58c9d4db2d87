"""
Group business logic — create, list, detail, metadata and membership updates,
ranked decision candidates.

Rotation and decision transitions live in rotation_service; this module only
reads that state (and hydrates it for the API).
"""
import logging

from sqlalchemy.orm import Session

from app.db.models import Group, GroupMember, Movie, ScheduleTypeEnum, User
from app.db.transaction import run_in_transaction
from app.services.decision_math import DecisionMath
from app.services.errors import UserNotFoundError, ValidationError
from app.services.membership import (
    assert_member,
    get_group_or_raise,
    lock_group_or_raise,
    ordered_member_ids,
)
from app.services.movie_service import movie_payload, user_preview
from app.services.rotation_service import (
    interest_scores_for,
    resolve_proposer_id,
    unwatched_group_movies,
)

logger = logging.getLogger(__name__)


# ── Schedule mapping ─────────────────────────────────────────────────────────


def schedule_to_columns(schedule: dict) -> dict:
    """
    Flatten a tagged schedule into Group columns.

    recurring → {day, time};  oneoff → {date, time}
    """
    kind = schedule.get("type")
    if kind == ScheduleTypeEnum.RECURRING.value:
        return {
            "schedule_type": kind,
            "schedule_day": schedule["day"],
            "schedule_time": schedule["time"],
            "schedule_date": None,
        }
    if kind == ScheduleTypeEnum.ONEOFF.value:
        return {
            "schedule_type": kind,
            "schedule_day": None,
            "schedule_time": schedule["time"],
            "schedule_date": schedule["date"],
        }
    raise ValidationError(f"Unknown schedule type {kind!r}")


def schedule_from_group(group: Group) -> dict:
    if group.schedule_type == ScheduleTypeEnum.RECURRING.value:
        return {"type": group.schedule_type, "day": group.schedule_day, "time": group.schedule_time}
    return {"type": group.schedule_type, "date": group.schedule_date, "time": group.schedule_time}


# ── Hydration ────────────────────────────────────────────────────────────────


def _members(db: Session, group_id: int) -> list[User]:
    return [
        user
        for _, user in (
            db.query(GroupMember, User)
            .join(User, GroupMember.user_id == User.id)
            .filter(GroupMember.group_id == group_id)
            .order_by(GroupMember.id.asc())
            .all()
        )
    ]


def hydrate_group(db: Session, group: Group) -> dict:
    """Build a dict matching the GroupResponse schema."""
    members = _members(db, group.id)
    proposer_id = resolve_proposer_id([m.id for m in members], group.current_proposer_index)
    by_id = {m.id: m for m in members}

    decided = None
    if group.decided_movie_id is not None:
        movie = db.query(Movie).filter(Movie.id == group.decided_movie_id).first()
        if movie is not None:
            proposer = db.query(User).filter(User.id == movie.proposer_id).first()
            decided = movie_payload(movie, proposer)

    return {
        "id": group.id,
        "name": group.name,
        "schedule": schedule_from_group(group),
        "current_proposer_index": group.current_proposer_index,
        "current_proposer": user_preview(by_id.get(proposer_id)),
        "last_movie_night": group.last_movie_night,
        "decided_movie_id": group.decided_movie_id,
        "decided_movie": decided,
        "members": [user_preview(m) for m in members],
        "created_at": group.created_at,
    }


def _assert_users_exist(db: Session, user_ids: list[int]) -> None:
    if not user_ids:
        return
    found = {row.id for row in db.query(User.id).filter(User.id.in_(user_ids)).all()}
    missing = [uid for uid in user_ids if uid not in found]
    if missing:
        logger.info("Unknown user ids in membership request: %s", missing)
        raise UserNotFoundError("One or more users were not found")


def _dedupe(ids: list[int]) -> list[int]:
    seen: set[int] = set()
    ordered = []
    for uid in ids:
        if uid not in seen:
            seen.add(uid)
            ordered.append(uid)
    return ordered


# ── Read operations ──────────────────────────────────────────────────────────


def list_my_groups(db: Session, caller_id: int) -> list[dict]:
    groups = (
        db.query(Group)
        .join(GroupMember, GroupMember.group_id == Group.id)
        .filter(GroupMember.user_id == caller_id)
        .order_by(Group.created_at.asc(), Group.id.asc())
        .all()
    )
    return [hydrate_group(db, group) for group in groups]


def get_group_detail(db: Session, group_id: int, caller_id: int) -> dict:
    group = get_group_or_raise(db, group_id)
    assert_member(db, group_id, caller_id)
    return hydrate_group(db, group)


def list_candidates(db: Session, group_id: int, caller_id: int) -> list[dict]:
    """Unwatched group movies ranked by decision score, best first."""
    get_group_or_raise(db, group_id)
    assert_member(db, group_id, caller_id)

    movies = unwatched_group_movies(db, group_id)
    scores = interest_scores_for(db, [m.id for m in movies])
    proposer_ids = {m.proposer_id for m in movies}
    proposers = {
        user.id: user
        for user in db.query(User).filter(User.id.in_(proposer_ids)).all()
    }

    ranked = DecisionMath.rank_candidates(movies, group_id, scores)
    return [
        {
            "movie": movie_payload(movie, proposers.get(movie.proposer_id)),
            "score": float(score),
            "average_interest": float(DecisionMath.average_interest(scores.get(movie.id, []))),
            "rating_count": len(scores.get(movie.id, [])),
        }
        for movie, score in ranked
    ]


# ── Write operations ─────────────────────────────────────────────────────────


def create_group(
    db: Session,
    caller_id: int,
    *,
    name: str,
    schedule: dict,
    member_ids: list[int] | None = None,
) -> dict:
    """Create a group; the creator is the first member (and first proposer)."""
    ordered_ids = _dedupe([caller_id, *(member_ids or [])])
    _assert_users_exist(db, ordered_ids)

    group = Group(name=name.strip(), current_proposer_index=0, **schedule_to_columns(schedule))
    db.add(group)
    db.flush()

    for uid in ordered_ids:
        db.add(GroupMember(group_id=group.id, user_id=uid))
        # Flush one at a time so ids follow the requested rotation order
        db.flush()

    db.commit()
    db.refresh(group)
    logger.info("User %s created group %s with %d member(s)", caller_id, group.id, len(ordered_ids))
    return hydrate_group(db, group)


def update_group(db: Session, group_id: int, caller_id: int, updates: dict) -> dict:
    """
    Apply partial updates: name, schedule, member_ids.

    member_ids replaces the membership; the caller always stays. Existing
    members keep their rotation slot, new ones are appended. The proposer
    index is not renormalised; it keeps resolving modulo the member count.
    """

    def work() -> Group:
        group = lock_group_or_raise(db, group_id)
        assert_member(db, group_id, caller_id)

        if updates.get("name") is not None:
            group.name = updates["name"].strip()
        if updates.get("schedule") is not None:
            for column, value in schedule_to_columns(updates["schedule"]).items():
                setattr(group, column, value)

        if updates.get("member_ids") is not None:
            wanted = _dedupe([caller_id, *updates["member_ids"]])
            _assert_users_exist(db, wanted)
            current = ordered_member_ids(db, group_id)

            removed = [uid for uid in current if uid not in wanted]
            added = [uid for uid in wanted if uid not in current]
            if removed:
                db.query(GroupMember).filter(
                    GroupMember.group_id == group_id,
                    GroupMember.user_id.in_(removed),
                ).delete(synchronize_session="fetch")
            for uid in added:
                db.add(GroupMember(group_id=group_id, user_id=uid))
                db.flush()
            if removed or added:
                logger.info(
                    "Group %s membership changed: +%s -%s (proposer index stays %s)",
                    group_id,
                    added,
                    removed,
                    group.current_proposer_index,
                )

        db.add(group)
        return group

    group = run_in_transaction(db, work)
    return hydrate_group(db, group)

