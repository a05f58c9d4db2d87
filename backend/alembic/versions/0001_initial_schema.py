"""Initial schema — users, groups, group_members, movies, movie_interests, friends

Revision ID: 0001
Revises: —
Create Date: 2026-10-01 00:00:00
"""
from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op

revision: str = "0001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # ── users ─────────────────────────────────────────────────────────────────
    op.create_table(
        "users",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("username", sa.String(32), nullable=False),
        sa.Column("email", sa.String(255), nullable=True),
        sa.Column("name", sa.String(60), nullable=True),
        sa.Column("avatar", sa.String(500), nullable=True),
        sa.Column("password_hash", sa.String, nullable=False),
        sa.Column("is_active", sa.Boolean, nullable=False, server_default=sa.text("true")),
        sa.Column("created_at", sa.DateTime(timezone=True),
                  nullable=False, server_default=sa.text("now()")),
        sa.CheckConstraint(
            r"username ~ '^[a-z0-9_]{3,32}$'",
            name="chk_username_format",
        ),
        sa.UniqueConstraint("username", name="uq_users_username"),
        sa.UniqueConstraint("email", name="uq_users_email"),
    )
    op.create_index("ix_users_username", "users", ["username"])

    # ── groups ────────────────────────────────────────────────────────────────
    # decided_movie_id FK is added after movies exists (the two tables
    # reference each other).
    op.create_table(
        "groups",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("name", sa.String(100), nullable=False),
        sa.Column("schedule_type", sa.String(16), nullable=False),
        sa.Column("schedule_day", sa.Integer, nullable=True),
        sa.Column("schedule_time", sa.String(5), nullable=False),
        sa.Column("schedule_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("current_proposer_index", sa.Integer, nullable=False, server_default="0"),
        sa.Column("last_movie_night", sa.DateTime(timezone=True), nullable=True),
        sa.Column("decided_movie_id", sa.Integer, nullable=True),
        sa.Column("version", sa.Integer, nullable=False, server_default="1"),
        sa.Column("created_at", sa.DateTime(timezone=True),
                  nullable=False, server_default=sa.text("now()")),
        sa.CheckConstraint(
            "schedule_type IN ('recurring', 'oneoff')",
            name="chk_group_schedule_type",
        ),
        sa.CheckConstraint(
            "schedule_day IS NULL OR schedule_day BETWEEN 0 AND 6",
            name="chk_group_schedule_day",
        ),
        sa.CheckConstraint("current_proposer_index >= 0", name="chk_group_proposer_index"),
        sa.CheckConstraint("length(trim(name)) >= 1", name="chk_group_name"),
        # A one-off night needs a date, a recurring one a weekday
        sa.CheckConstraint(
            "(schedule_type = 'recurring' AND schedule_day IS NOT NULL) OR "
            "(schedule_type = 'oneoff' AND schedule_date IS NOT NULL)",
            name="chk_group_schedule_shape",
        ),
    )

    # ── group_members ─────────────────────────────────────────────────────────
    op.create_table(
        "group_members",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("group_id", sa.Integer,
                  sa.ForeignKey("groups.id", ondelete="CASCADE"), nullable=False),
        sa.Column("user_id", sa.Integer,
                  sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("joined_at", sa.DateTime(timezone=True),
                  nullable=False, server_default=sa.text("now()")),
        sa.UniqueConstraint("group_id", "user_id", name="uq_group_member"),
    )
    # Rotation order scan: members of a group by ascending id
    op.create_index("ix_group_members_group_id", "group_members", ["group_id", "id"])
    op.create_index("ix_group_members_user_id", "group_members", ["user_id"])

    # ── movies ────────────────────────────────────────────────────────────────
    op.create_table(
        "movies",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("title", sa.String(500), nullable=False),
        sa.Column("tmdb_id", sa.Integer, nullable=True),
        sa.Column("poster_path", sa.String(255), nullable=True),
        sa.Column("proposer_id", sa.Integer,
                  sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("proposed_at", sa.DateTime(timezone=True),
                  nullable=False, server_default=sa.text("now()")),
        sa.Column("proposal_intent", sa.Integer, nullable=False),
        sa.Column("interest_score", sa.Integer, nullable=True),
        sa.Column("watched", sa.Boolean, nullable=False, server_default=sa.text("false")),
        sa.Column("watched_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("notes", sa.Text, nullable=True),
        sa.Column("personal_rating", sa.Integer, nullable=True),
        sa.Column("group_id", sa.Integer,
                  sa.ForeignKey("groups.id", ondelete="CASCADE"), nullable=True),
        sa.CheckConstraint("proposal_intent BETWEEN 1 AND 4", name="chk_movie_proposal_intent"),
        sa.CheckConstraint(
            "interest_score IS NULL OR interest_score BETWEEN 1 AND 4",
            name="chk_movie_interest_score",
        ),
        sa.CheckConstraint(
            "personal_rating IS NULL OR personal_rating BETWEEN 1 AND 5",
            name="chk_movie_personal_rating",
        ),
    )
    op.create_index("ix_movies_proposer_id", "movies", ["proposer_id"])
    op.create_index("ix_movies_group_id", "movies", ["group_id"])
    # Rotation purge: unwatched proposals of one member in one group
    op.create_index(
        "idx_movies_group_proposer_unwatched",
        "movies",
        ["group_id", "proposer_id"],
        postgresql_where=sa.text("NOT watched"),
    )

    op.create_foreign_key(
        "fk_groups_decided_movie_id",
        "groups",
        "movies",
        ["decided_movie_id"],
        ["id"],
        ondelete="SET NULL",
    )

    # ── movie_interests ───────────────────────────────────────────────────────
    op.create_table(
        "movie_interests",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("movie_id", sa.Integer,
                  sa.ForeignKey("movies.id", ondelete="CASCADE"), nullable=False),
        sa.Column("user_id", sa.Integer,
                  sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("interest_score", sa.Integer, nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True),
                  nullable=False, server_default=sa.text("now()")),
        sa.Column("updated_at", sa.DateTime(timezone=True),
                  nullable=False, server_default=sa.text("now()")),
        sa.UniqueConstraint("movie_id", "user_id", name="uq_movie_interest"),
        sa.CheckConstraint("interest_score BETWEEN 1 AND 4", name="chk_movie_interest_range"),
    )
    op.create_index("ix_movie_interests_movie_id", "movie_interests", ["movie_id"])

    # ── friend_requests / friends ─────────────────────────────────────────────
    op.create_table(
        "friend_requests",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("from_user_id", sa.Integer,
                  sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("to_user_id", sa.Integer,
                  sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("status", sa.String(16), nullable=False, server_default="pending"),
        sa.Column("created_at", sa.DateTime(timezone=True),
                  nullable=False, server_default=sa.text("now()")),
        sa.CheckConstraint(
            "status IN ('pending', 'accepted', 'rejected')",
            name="chk_friend_request_status",
        ),
        sa.CheckConstraint("from_user_id <> to_user_id", name="chk_no_self_friend_request"),
    )
    op.create_index("ix_friend_requests_from_user_id", "friend_requests", ["from_user_id"])
    op.create_index("ix_friend_requests_to_user_id", "friend_requests", ["to_user_id"])

    op.create_table(
        "friends",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("user_id", sa.Integer,
                  sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("friend_id", sa.Integer,
                  sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.UniqueConstraint("user_id", "friend_id", name="uq_friend"),
        sa.CheckConstraint("user_id <> friend_id", name="chk_no_self_friend"),
    )
    op.create_index("ix_friends_user_id", "friends", ["user_id"])


def downgrade() -> None:
    op.drop_table("friends")
    op.drop_table("friend_requests")
    op.drop_table("movie_interests")
    op.drop_constraint("fk_groups_decided_movie_id", "groups", type_="foreignkey")
    op.drop_table("movies")
    op.drop_table("group_members")
    op.drop_table("groups")
    op.drop_table("users")
