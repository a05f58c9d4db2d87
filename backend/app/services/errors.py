"""
Service-layer exceptions.

Routers map each family to one HTTP status; messages are safe to show to the
caller, details go to the log.
"""


class MovieNightError(Exception):
    """Base class for every error raised by the service layer."""

    code = "ERROR"


# ── 400 ───────────────────────────────────────────────────────────────────────

class ValidationError(MovieNightError):
    """Malformed or out-of-range input."""

    code = "VALIDATION_ERROR"


class InvariantViolationError(MovieNightError):
    """The request would break group/movie consistency (cross-group, watched)."""

    code = "INVARIANT_VIOLATION"


# ── 403 ───────────────────────────────────────────────────────────────────────

class AuthorizationError(MovieNightError):
    code = "FORBIDDEN"


class NotGroupMemberError(AuthorizationError):
    code = "NOT_GROUP_MEMBER"


class NotProposerError(AuthorizationError):
    code = "NOT_PROPOSER"


# ── 404 ───────────────────────────────────────────────────────────────────────

class NotFoundError(MovieNightError):
    code = "NOT_FOUND"


class GroupNotFoundError(NotFoundError):
    code = "GROUP_NOT_FOUND"


class MovieNotFoundError(NotFoundError):
    code = "MOVIE_NOT_FOUND"


class UserNotFoundError(NotFoundError):
    code = "USER_NOT_FOUND"


# ── 503 ───────────────────────────────────────────────────────────────────────

class ConcurrencyConflictError(MovieNightError):
    """Optimistic-lock retries exhausted."""

    code = "CONCURRENCY_CONFLICT"
