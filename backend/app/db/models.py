"""
SQLAlchemy ORM models.

Column names and constraints match alembic revision 0001. CHECK constraints
only use SQL understood by both Postgres and SQLite so the test-suite can
build the schema with ``Base.metadata.create_all`` on an in-memory database.

groups.decided_movie_id → movies.id and movies.group_id → groups.id form a
cycle; the group side is created with use_alter and flushed with post_update.
"""
from datetime import datetime, timezone
from enum import Enum as PyEnum

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    DateTime,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import DeclarativeBase, relationship


# ── Base ──────────────────────────────────────────────────────────────────────

class Base(DeclarativeBase):
    pass


# ── Enums ─────────────────────────────────────────────────────────────────────

class ScheduleTypeEnum(str, PyEnum):
    RECURRING = "recurring"
    ONEOFF = "oneoff"


class FriendRequestStatusEnum(str, PyEnum):
    PENDING = "pending"
    ACCEPTED = "accepted"
    REJECTED = "rejected"


# ── Timestamp helper ──────────────────────────────────────────────────────────

def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


# ── Models ────────────────────────────────────────────────────────────────────

class User(Base):
    """
    Application user.

    username is stored lower-cased; the auth service normalises on write and
    on lookup.
    """
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, autoincrement=True)
    username = Column(String(32), unique=True, nullable=False, index=True)
    email = Column(String(255), unique=True, nullable=True)
    name = Column(String(60), nullable=True)
    avatar = Column(String(500), nullable=True)
    password_hash = Column(String, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime(timezone=True), default=_utcnow, nullable=False)

    # Relationships
    proposals = relationship(
        "Movie",
        back_populates="proposer",
        foreign_keys="Movie.proposer_id",
        lazy="dynamic",
    )
    memberships = relationship("GroupMember", back_populates="user")

    def __repr__(self) -> str:
        return f"<User id={self.id} username={self.username!r}>"


class Group(Base):
    """
    A movie-night group.

    current_proposer_index points into the member list ordered by
    GroupMember.id; it is resolved modulo the member count whenever it is
    read, because membership can shrink after the index was written.

    version is the optimistic-lock counter; every UPDATE of a group row checks
    and bumps it.
    """
    __tablename__ = "groups"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(100), nullable=False)
    schedule_type = Column(String(16), nullable=False)
    schedule_day = Column(Integer, nullable=True)
    schedule_time = Column(String(5), nullable=False)
    schedule_date = Column(DateTime(timezone=True), nullable=True)
    current_proposer_index = Column(Integer, nullable=False, default=0)
    last_movie_night = Column(DateTime(timezone=True), nullable=True)
    decided_movie_id = Column(
        Integer,
        ForeignKey(
            "movies.id",
            ondelete="SET NULL",
            use_alter=True,
            name="fk_groups_decided_movie_id",
        ),
        nullable=True,
    )
    version = Column(Integer, nullable=False, default=1)
    created_at = Column(DateTime(timezone=True), default=_utcnow, nullable=False)

    __table_args__ = (
        CheckConstraint(
            "schedule_type IN ('recurring', 'oneoff')",
            name="chk_group_schedule_type",
        ),
        CheckConstraint(
            "schedule_day IS NULL OR schedule_day BETWEEN 0 AND 6",
            name="chk_group_schedule_day",
        ),
        CheckConstraint(
            "current_proposer_index >= 0",
            name="chk_group_proposer_index",
        ),
        CheckConstraint(
            "length(trim(name)) >= 1",
            name="chk_group_name",
        ),
    )

    __mapper_args__ = {"version_id_col": version}

    # Relationships
    members = relationship(
        "GroupMember",
        back_populates="group",
        cascade="all, delete-orphan",
        order_by="GroupMember.id",
    )
    decided_movie = relationship(
        "Movie",
        foreign_keys=[decided_movie_id],
        post_update=True,
    )

    def __repr__(self) -> str:
        return (
            f"<Group id={self.id} name={self.name!r} "
            f"proposer_index={self.current_proposer_index}>"
        )


class Movie(Base):
    """
    A movie proposed to a group.

    interest_score mirrors the most recent peer rating; every rating is kept
    in MovieInterest. tmdb_id / poster_path are carried as opaque metadata.
    """
    __tablename__ = "movies"

    id = Column(Integer, primary_key=True, autoincrement=True)
    title = Column(String(500), nullable=False)
    tmdb_id = Column(Integer, nullable=True)
    poster_path = Column(String(255), nullable=True)
    proposer_id = Column(
        Integer,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    proposed_at = Column(DateTime(timezone=True), default=_utcnow, nullable=False)
    proposal_intent = Column(Integer, nullable=False)
    interest_score = Column(Integer, nullable=True)
    watched = Column(Boolean, default=False, nullable=False)
    watched_at = Column(DateTime(timezone=True), nullable=True)
    notes = Column(Text, nullable=True)
    personal_rating = Column(Integer, nullable=True)
    group_id = Column(
        Integer,
        ForeignKey("groups.id", ondelete="CASCADE"),
        nullable=True,
        index=True,
    )

    __table_args__ = (
        CheckConstraint(
            "proposal_intent BETWEEN 1 AND 4",
            name="chk_movie_proposal_intent",
        ),
        CheckConstraint(
            "interest_score IS NULL OR interest_score BETWEEN 1 AND 4",
            name="chk_movie_interest_score",
        ),
        CheckConstraint(
            "personal_rating IS NULL OR personal_rating BETWEEN 1 AND 5",
            name="chk_movie_personal_rating",
        ),
    )

    # Relationships
    proposer = relationship("User", foreign_keys=[proposer_id], back_populates="proposals")
    group = relationship("Group", foreign_keys=[group_id])
    interests = relationship(
        "MovieInterest",
        back_populates="movie",
        cascade="all, delete-orphan",
    )

    def __repr__(self) -> str:
        return f"<Movie id={self.id} title={self.title!r} group={self.group_id}>"


class MovieInterest(Base):
    """One peer's interest rating (1-4) for one movie."""
    __tablename__ = "movie_interests"

    id = Column(Integer, primary_key=True, autoincrement=True)
    movie_id = Column(
        Integer,
        ForeignKey("movies.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    user_id = Column(
        Integer,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
    )
    interest_score = Column(Integer, nullable=False)
    created_at = Column(DateTime(timezone=True), default=_utcnow, nullable=False)
    updated_at = Column(
        DateTime(timezone=True),
        default=_utcnow,
        onupdate=_utcnow,
        nullable=False,
    )

    __table_args__ = (
        UniqueConstraint("movie_id", "user_id", name="uq_movie_interest"),
        CheckConstraint(
            "interest_score BETWEEN 1 AND 4",
            name="chk_movie_interest_range",
        ),
    )

    # Relationships
    movie = relationship("Movie", back_populates="interests")
    user = relationship("User")


class GroupMember(Base):
    """Join table; ascending id is the proposer rotation order."""
    __tablename__ = "group_members"

    id = Column(Integer, primary_key=True, autoincrement=True)
    group_id = Column(
        Integer,
        ForeignKey("groups.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    user_id = Column(
        Integer,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    joined_at = Column(DateTime(timezone=True), default=_utcnow, nullable=False)

    __table_args__ = (
        UniqueConstraint("group_id", "user_id", name="uq_group_member"),
    )

    # Relationships
    group = relationship("Group", back_populates="members")
    user = relationship("User", back_populates="memberships")


class FriendRequest(Base):
    """Pending / answered friend request. Schema only: no endpoint or service reads or writes it."""
    __tablename__ = "friend_requests"

    id = Column(Integer, primary_key=True, autoincrement=True)
    from_user_id = Column(
        Integer,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    to_user_id = Column(
        Integer,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    status = Column(String(16), nullable=False, default=FriendRequestStatusEnum.PENDING.value)
    created_at = Column(DateTime(timezone=True), default=_utcnow, nullable=False)

    __table_args__ = (
        CheckConstraint(
            "status IN ('pending', 'accepted', 'rejected')",
            name="chk_friend_request_status",
        ),
        CheckConstraint("from_user_id <> to_user_id", name="chk_no_self_friend_request"),
    )


class Friend(Base):
    """
    Accepted friendship, one row per direction (user → friend).
    Consulted when deciding which ungrouped movies a user can see.
    """
    __tablename__ = "friends"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(
        Integer,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    friend_id = Column(
        Integer,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
    )

    __table_args__ = (
        UniqueConstraint("user_id", "friend_id", name="uq_friend"),
        CheckConstraint("user_id <> friend_id", name="chk_no_self_friend"),
    )

    def __repr__(self) -> str:
        return f"<Friend {self.user_id} → {self.friend_id}>"
