"""
Turn rotation and group decision state.

A group's rotation state is (current_proposer_index, decided_movie_id).
Two transitions change it:

  advance  — a movie night is over: purge the outgoing proposer's unwatched
             proposals, move the index one slot, clear the decision.
  decide   — set or clear decided_movie_id; the index is untouched.

The *_locked / advance_rotation helpers never commit. Public entry points
wrap them in run_in_transaction so each transition is all-or-nothing and
serialised per group (row lock + Group.version).
"""
import logging
from collections import defaultdict
from datetime import datetime, timezone

from sqlalchemy.orm import Session

from app.db.models import Group, Movie, MovieInterest
from app.db.transaction import run_in_transaction
from app.services.decision_math import DecisionMath
from app.services.errors import InvariantViolationError, ValidationError
from app.services.membership import assert_member, lock_group_or_raise, ordered_member_ids

logger = logging.getLogger(__name__)


# ── Index arithmetic ─────────────────────────────────────────────────────────


def resolve_proposer_id(member_ids: list[int], proposer_index: int) -> int | None:
    """Member whose turn it is, or None for an empty group."""
    if not member_ids:
        return None
    return member_ids[proposer_index % len(member_ids)]


def next_proposer_index(proposer_index: int, member_count: int) -> int:
    """(index + 1) mod count; an empty group keeps its index."""
    if member_count == 0:
        return proposer_index
    return (proposer_index + 1) % member_count


# ── Interest lookups ─────────────────────────────────────────────────────────


def interest_scores_for(db: Session, movie_ids: list[int]) -> dict[int, list[int]]:
    """movie id → every recorded peer rating, oldest first."""
    scores: dict[int, list[int]] = defaultdict(list)
    if not movie_ids:
        return scores
    rows = (
        db.query(MovieInterest.movie_id, MovieInterest.interest_score)
        .filter(MovieInterest.movie_id.in_(movie_ids))
        .order_by(MovieInterest.id.asc())
        .all()
    )
    for row in rows:
        scores[row.movie_id].append(row.interest_score)
    return scores


def unwatched_group_movies(db: Session, group_id: int) -> list[Movie]:
    """Decision candidates in proposal order (oldest first breaks ties)."""
    return (
        db.query(Movie)
        .filter(Movie.group_id == group_id, Movie.watched.is_(False))
        .order_by(Movie.proposed_at.asc(), Movie.id.asc())
        .all()
    )


# ── Transitions (no commit) ──────────────────────────────────────────────────


def advance_rotation(db: Session, group: Group, now: datetime | None = None) -> dict:
    """
    Hand the turn to the next member. *group* must be locked by the caller.

    Returns a summary of what changed; purged_movie_ids is empty when the
    group has no members.
    """
    # Pending changes (the movie just marked watched) must be visible to the
    # bulk delete below.
    db.flush()

    member_ids = ordered_member_ids(db, group.id)
    previous_index = group.current_proposer_index

    if not member_ids:
        logger.info("Group %s has no members; rotation skipped", group.id)
        group.decided_movie_id = None
        db.flush()
        return {
            "group_id": group.id,
            "previous_proposer_id": None,
            "next_proposer_id": None,
            "proposer_index": previous_index,
            "purged_movie_ids": [],
        }

    outgoing_id = resolve_proposer_id(member_ids, previous_index)
    next_index = next_proposer_index(previous_index, len(member_ids))
    incoming_id = member_ids[next_index]

    stale_ids = [
        row.id
        for row in (
            db.query(Movie.id)
            .filter(
                Movie.group_id == group.id,
                Movie.proposer_id == outgoing_id,
                Movie.watched.is_(False),
            )
            .all()
        )
    ]

    group.current_proposer_index = next_index
    group.last_movie_night = now or datetime.now(timezone.utc)
    group.decided_movie_id = None
    db.flush()

    if stale_ids:
        db.query(MovieInterest).filter(MovieInterest.movie_id.in_(stale_ids)).delete(
            synchronize_session=False
        )
        db.query(Movie).filter(Movie.id.in_(stale_ids)).delete(synchronize_session="fetch")

    logger.info(
        "Group %s rotated proposer %s -> %s (index %s -> %s), purged %d proposal(s)",
        group.id,
        outgoing_id,
        incoming_id,
        previous_index,
        next_index,
        len(stale_ids),
    )

    return {
        "group_id": group.id,
        "previous_proposer_id": outgoing_id,
        "next_proposer_id": incoming_id,
        "proposer_index": next_index,
        "purged_movie_ids": stale_ids,
    }


def set_decided_movie(db: Session, group: Group, movie_id: int | None) -> Group:
    """
    Validate and apply a decision. *group* must be locked by the caller.

    Raises:
        ValidationError: movie_id does not reference a movie.
        InvariantViolationError: the movie is watched or from another group.
    """
    if movie_id is None:
        group.decided_movie_id = None
        return group

    movie = db.query(Movie).filter(Movie.id == movie_id).first()
    if movie is None:
        logger.info("Group %s decide rejected: movie %s does not exist", group.id, movie_id)
        raise ValidationError("Invalid movie id")
    if movie.group_id != group.id:
        logger.info(
            "Group %s decide rejected: movie %s belongs to group %s",
            group.id,
            movie_id,
            movie.group_id,
        )
        raise InvariantViolationError("Movie does not belong to this group")
    if movie.watched:
        raise InvariantViolationError("Movie has already been watched")

    group.decided_movie_id = movie.id
    return group


# ── Public entry points ──────────────────────────────────────────────────────


def decide_movie(db: Session, group_id: int, caller_id: int, movie_id: int | None) -> Group:
    """Set (or clear, with None) the group's decided movie."""

    def work() -> Group:
        group = lock_group_or_raise(db, group_id)
        assert_member(db, group_id, caller_id)
        return set_decided_movie(db, group, movie_id)

    group = run_in_transaction(db, work)
    logger.info("Group %s decided movie set to %s by user %s", group_id, movie_id, caller_id)
    return group


def auto_decide(db: Session, group_id: int, caller_id: int) -> tuple[Group, Movie | None]:
    """
    Let the decision engine pick among the group's unwatched movies.

    With no candidates the existing decision is left as it is and the
    returned movie is None.
    """

    def work() -> tuple[Group, Movie | None]:
        group = lock_group_or_raise(db, group_id)
        assert_member(db, group_id, caller_id)

        candidates = unwatched_group_movies(db, group_id)
        scores = interest_scores_for(db, [m.id for m in candidates])
        winner = DecisionMath.decide(candidates, group_id, scores)
        if winner is not None:
            set_decided_movie(db, group, winner.id)
        return group, winner

    group, winner = run_in_transaction(db, work)
    if winner is None:
        logger.info("Group %s has no candidates; decision unchanged", group_id)
    else:
        logger.info("Group %s auto-decided movie %s", group_id, winner.id)
    return group, winner
