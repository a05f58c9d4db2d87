"""
SQLite databases and row builders for service-level tests.
"""
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from app.db.models import Base, Group, GroupMember, Movie, MovieInterest, User


def make_session() -> Session:
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    return session_factory(engine)()


def make_file_engine(path: str) -> Engine:
    """SQLite file database, so separate sessions get separate connections."""
    engine = create_engine(f"sqlite:///{path}", connect_args={"check_same_thread": False})
    Base.metadata.create_all(engine)
    return engine


def session_factory(engine: Engine) -> sessionmaker:
    return sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)


def add_user(db: Session, username: str) -> User:
    user = User(username=username, password_hash="x")
    db.add(user)
    db.commit()
    return user


def add_group(db: Session, members: list[User], *, name: str = "Friday Flicks", index: int = 0) -> Group:
    group = Group(
        name=name,
        schedule_type="recurring",
        schedule_day=5,
        schedule_time="20:00",
        current_proposer_index=index,
    )
    db.add(group)
    db.flush()
    for user in members:
        db.add(GroupMember(group_id=group.id, user_id=user.id))
        db.flush()
    db.commit()
    return group


def add_movie(
    db: Session,
    proposer: User,
    group: Group | None,
    *,
    title: str = "Arrival",
    intent: int = 3,
    watched: bool = False,
    interest: int | None = None,
) -> Movie:
    movie = Movie(
        title=title,
        proposer_id=proposer.id,
        group_id=group.id if group is not None else None,
        proposal_intent=intent,
        interest_score=interest,
        watched=watched,
    )
    db.add(movie)
    db.commit()
    return movie


def add_interest(db: Session, movie: Movie, user: User, score: int) -> MovieInterest:
    interest = MovieInterest(movie_id=movie.id, user_id=user.id, interest_score=score)
    db.add(interest)
    db.commit()
    return interest
