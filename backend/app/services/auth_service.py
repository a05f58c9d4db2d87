"""
Auth business logic — signup, login, token issuance.

Identity is an external collaborator for the movie-night core; this module
only exists so the API can tell who is calling.
"""
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.core.security import create_access_token, hash_password, verify_password
from app.db.models import User


class DuplicateUserError(Exception):
    """Raised when signup conflicts with an existing username or email."""

    def __init__(self, field: str) -> None:
        self.field = field
        super().__init__(f"A user with that {field} already exists")


def create_user(
    db: Session,
    username: str,
    password: str,
    email: str | None = None,
    name: str | None = None,
) -> User:
    """
    Register a new user.

    Username and email are lower-cased and stripped before insert; the
    unique constraints turn duplicates into DuplicateUserError.
    """
    user = User(
        username=username.strip().lower(),
        email=email.strip().lower() if email else None,
        name=(name or "").strip() or None,
        password_hash=hash_password(password),
    )
    db.add(user)

    try:
        db.flush()
    except IntegrityError as exc:
        db.rollback()
        error_str = str(exc.orig).lower()
        if "email" in error_str:
            raise DuplicateUserError("email") from exc
        raise DuplicateUserError("username") from exc

    db.commit()
    db.refresh(user)
    return user


def authenticate_user(db: Session, username: str, password: str) -> User | None:
    """Verify credentials and return the User, or None on failure."""
    user = (
        db.query(User)
        .filter(User.username == username.strip().lower(), User.is_active.is_(True))
        .first()
    )
    if user is None or not verify_password(password, user.password_hash):
        return None
    return user


def issue_access_token(user: User) -> str:
    return create_access_token(user.id)
