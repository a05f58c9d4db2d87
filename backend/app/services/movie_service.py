"""
Movie business logic — proposals, peer ratings, watch completion, top pick.

Marking a grouped movie watched hands the turn to the next proposer inside
the same transaction (see rotation_service.advance_rotation).
"""
import logging
from datetime import datetime, timezone
from urllib.parse import quote_plus

from sqlalchemy import or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.core.config import settings
from app.db.models import Friend, GroupMember, Movie, MovieInterest, User
from app.db.transaction import run_in_transaction
from app.services.decision_math import DecisionMath
from app.services.errors import (
    InvariantViolationError,
    MovieNotFoundError,
    NotGroupMemberError,
    NotProposerError,
)
from app.services.membership import assert_member, get_group_or_raise, lock_group_or_raise
from app.services.rotation_service import advance_rotation

logger = logging.getLogger(__name__)


# ── Presentation helpers ─────────────────────────────────────────────────────


def _avatar_from_user(user: User) -> str:
    if user.avatar:
        return user.avatar
    return f"https://api.dicebear.com/8.x/thumbs/svg?seed={quote_plus(user.username)}"


def user_preview(user: User | None) -> dict | None:
    if user is None:
        return None
    return {
        "id": user.id,
        "username": user.username,
        "name": user.name,
        "avatar": _avatar_from_user(user),
    }


def poster_url(poster_path: str | None) -> str | None:
    if not poster_path:
        return None
    return f"{settings.TMDB_IMAGE_BASE_URL}{poster_path}"


def movie_payload(movie: Movie, proposer: User | None = None) -> dict:
    """Build a dict matching the MovieResponse schema."""
    return {
        "id": movie.id,
        "title": movie.title,
        "tmdb_id": movie.tmdb_id,
        "poster_path": movie.poster_path,
        "poster_url": poster_url(movie.poster_path),
        "proposer_id": movie.proposer_id,
        "proposer": user_preview(proposer),
        "proposed_at": movie.proposed_at,
        "proposal_intent": movie.proposal_intent,
        "interest_score": movie.interest_score,
        "watched": bool(movie.watched),
        "watched_at": movie.watched_at,
        "notes": movie.notes,
        "personal_rating": movie.personal_rating,
        "group_id": movie.group_id,
    }


# ── Lookups ──────────────────────────────────────────────────────────────────


def _movie_or_raise(db: Session, movie_id: int) -> Movie:
    movie = db.query(Movie).filter(Movie.id == movie_id).first()
    if movie is None:
        raise MovieNotFoundError("Movie not found")
    return movie


def _proposer_of(db: Session, movie: Movie) -> User | None:
    return db.query(User).filter(User.id == movie.proposer_id).first()


def _are_friends(db: Session, user_id: int, other_id: int) -> bool:
    return (
        db.query(Friend.id)
        .filter(Friend.user_id == user_id, Friend.friend_id == other_id)
        .first()
        is not None
    )


def _assert_can_view(db: Session, movie: Movie, caller_id: int) -> None:
    """Grouped movies are visible to members; others to the proposer and friends."""
    if movie.group_id is not None:
        assert_member(db, movie.group_id, caller_id)
        return
    if movie.proposer_id == caller_id or _are_friends(db, caller_id, movie.proposer_id):
        return
    raise NotGroupMemberError("You cannot access this movie")


def _visible_unwatched_movies(db: Session, caller_id: int) -> list[tuple[Movie, User]]:
    friend_ids = select(Friend.friend_id).where(Friend.user_id == caller_id)
    group_ids = select(GroupMember.group_id).where(GroupMember.user_id == caller_id)
    return (
        db.query(Movie, User)
        .join(User, Movie.proposer_id == User.id)
        .filter(
            Movie.watched.is_(False),
            or_(
                Movie.proposer_id == caller_id,
                Movie.proposer_id.in_(friend_ids),
                Movie.group_id.in_(group_ids),
            ),
        )
        .order_by(Movie.proposed_at.desc(), Movie.id.desc())
        .all()
    )


# ── Read operations ──────────────────────────────────────────────────────────


def list_unwatched_movies(db: Session, caller_id: int) -> list[dict]:
    """Unwatched movies proposed by the caller, their friends, or in their groups."""
    return [
        movie_payload(movie, proposer)
        for movie, proposer in _visible_unwatched_movies(db, caller_id)
    ]


def get_top_pick(db: Session, caller_id: int) -> dict | None:
    """Dashboard highlight over the caller's visible, rated, unwatched movies."""
    rows = _visible_unwatched_movies(db, caller_id)
    # Oldest first so that ties go to the longest-waiting proposal
    rows.reverse()
    proposers = {movie.id: proposer for movie, proposer in rows}
    top = DecisionMath.top_pick(movie for movie, _ in rows)
    if top is None:
        return None
    return movie_payload(top, proposers[top.id])


# ── Write operations ─────────────────────────────────────────────────────────


def propose_movie(
    db: Session,
    caller_id: int,
    *,
    title: str,
    group_id: int,
    proposal_intent: int,
    tmdb_id: int | None = None,
    poster_path: str | None = None,
) -> dict:
    """Any member of the group may propose; the movie starts unwatched."""
    get_group_or_raise(db, group_id)
    assert_member(db, group_id, caller_id)

    movie = Movie(
        title=title.strip(),
        group_id=group_id,
        proposer_id=caller_id,
        proposal_intent=proposal_intent,
        tmdb_id=tmdb_id,
        poster_path=poster_path,
        watched=False,
    )
    db.add(movie)
    db.commit()
    db.refresh(movie)

    logger.info("User %s proposed movie %s to group %s", caller_id, movie.id, group_id)
    return movie_payload(movie, _proposer_of(db, movie))


def _save_interest(db: Session, movie: Movie, caller_id: int, interest_score: int) -> None:
    """Insert or update the caller's MovieInterest and mirror it onto the movie."""
    interest = (
        db.query(MovieInterest)
        .filter(MovieInterest.movie_id == movie.id, MovieInterest.user_id == caller_id)
        .first()
    )
    if interest is None:
        interest = MovieInterest(movie_id=movie.id, user_id=caller_id, interest_score=interest_score)
    else:
        interest.interest_score = interest_score
    db.add(interest)

    movie.interest_score = interest_score
    db.add(movie)


def rate_movie(db: Session, movie_id: int, caller_id: int, interest_score: int) -> dict:
    """
    Record the caller's interest in someone else's proposal.

    Re-rating replaces the caller's previous score. Movie.interest_score
    always holds the latest rating.
    """
    movie = _movie_or_raise(db, movie_id)
    _assert_can_view(db, movie, caller_id)
    if movie.proposer_id == caller_id:
        raise InvariantViolationError("You cannot rate your own proposal")
    if movie.watched:
        raise InvariantViolationError("Watched movies cannot be rated")

    _save_interest(db, movie, caller_id, interest_score)
    try:
        db.commit()
    except IntegrityError:
        # A concurrent first rating from the same user won the insert
        db.rollback()
        logger.info("Rating race on movie %s for user %s; updating instead", movie_id, caller_id)
        _save_interest(db, movie, caller_id, interest_score)
        db.commit()
    db.refresh(movie)

    return movie_payload(movie, _proposer_of(db, movie))


def mark_watched(
    db: Session,
    movie_id: int,
    caller_id: int,
    *,
    notes: str | None = None,
    personal_rating: int | None = None,
) -> dict:
    """
    Flag a movie as watched and, for group movies, rotate the proposer.

    The group row is locked before the movie is re-read, so two concurrent
    requests for the same movie cannot both rotate: the second one sees
    watched=True and is rejected.
    """

    def work() -> Movie:
        movie = _movie_or_raise(db, movie_id)
        group = None
        if movie.group_id is not None:
            group = lock_group_or_raise(db, movie.group_id)
            assert_member(db, group.id, caller_id)
            db.refresh(movie)
        elif movie.proposer_id != caller_id:
            raise NotProposerError("Only the proposer can mark this movie as watched")

        if movie.watched:
            raise InvariantViolationError("Movie has already been watched")

        movie.watched = True
        movie.watched_at = datetime.now(timezone.utc)
        movie.notes = notes
        movie.personal_rating = personal_rating
        db.add(movie)

        if group is not None:
            advance_rotation(db, group, now=movie.watched_at)
        return movie

    movie = run_in_transaction(db, work)
    logger.info("User %s marked movie %s watched", caller_id, movie_id)
    return movie_payload(movie, _proposer_of(db, movie))


def delete_movie(db: Session, movie_id: int, caller_id: int) -> None:
    """
    Remove an unwatched proposal. Only its proposer may do this; a group that
    had decided on it goes back to undecided in the same transaction.
    """

    def work() -> None:
        movie = _movie_or_raise(db, movie_id)
        if movie.proposer_id != caller_id:
            raise NotProposerError("Only the proposer can delete this movie")
        if movie.watched:
            raise InvariantViolationError("Cannot delete movies that have been watched")

        if movie.group_id is not None:
            group = lock_group_or_raise(db, movie.group_id)
            if group.decided_movie_id == movie.id:
                group.decided_movie_id = None
                db.flush()

        db.delete(movie)

    run_in_transaction(db, work)
    logger.info("User %s deleted movie %s", caller_id, movie_id)

