"""
Transaction boundary for group mutations.

Service functions that touch a group's rotation state pass their work to
*run_in_transaction*. The work callable performs reads and writes but never
commits; this module commits once, rolls back on any failure, and replays the
whole unit when the optimistic lock on Group.version detects a concurrent
writer.
"""
import logging
from collections.abc import Callable
from typing import TypeVar

from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from app.core.config import settings
from app.services.errors import ConcurrencyConflictError

logger = logging.getLogger(__name__)

T = TypeVar("T")


def run_in_transaction(
    db: Session,
    work: Callable[[], T],
    *,
    max_attempts: int | None = None,
) -> T:
    """
    Run *work* and commit, all-or-nothing.

    Raises:
        ConcurrencyConflictError: every attempt lost the optimistic-lock race.
        Anything *work* raises, after rolling back.
    """
    attempts = max_attempts or settings.TRANSACTION_MAX_RETRIES
    for attempt in range(1, attempts + 1):
        try:
            result = work()
            db.commit()
            return result
        except StaleDataError as exc:
            db.rollback()
            logger.warning(
                "Concurrent group update detected (attempt %d/%d): %s",
                attempt,
                attempts,
                exc,
            )
        except Exception:
            db.rollback()
            raise

    raise ConcurrencyConflictError("The group was changed by another request, please retry")
