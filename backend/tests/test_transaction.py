import unittest
from unittest.mock import MagicMock

from sqlalchemy.orm.exc import StaleDataError

from app.db.transaction import run_in_transaction
from app.services.errors import ConcurrencyConflictError, InvariantViolationError


class TestRunInTransaction(unittest.TestCase):
    def test_commits_once_on_success(self) -> None:
        db = MagicMock()
        result = run_in_transaction(db, lambda: "done")

        self.assertEqual(result, "done")
        db.commit.assert_called_once()
        db.rollback.assert_not_called()

    def test_retries_after_stale_data(self) -> None:
        db = MagicMock()
        db.commit.side_effect = [StaleDataError("version mismatch"), None]
        work = MagicMock(return_value=42)

        result = run_in_transaction(db, work, max_attempts=3)

        self.assertEqual(result, 42)
        self.assertEqual(work.call_count, 2)
        self.assertEqual(db.rollback.call_count, 1)

    def test_gives_up_after_max_attempts(self) -> None:
        db = MagicMock()
        work = MagicMock(side_effect=StaleDataError("version mismatch"))

        with self.assertRaises(ConcurrencyConflictError):
            run_in_transaction(db, work, max_attempts=2)

        self.assertEqual(work.call_count, 2)
        self.assertEqual(db.rollback.call_count, 2)
        db.commit.assert_not_called()

    def test_rolls_back_and_propagates_service_errors(self) -> None:
        db = MagicMock()
        work = MagicMock(side_effect=InvariantViolationError("watched"))

        with self.assertRaises(InvariantViolationError):
            run_in_transaction(db, work)

        work.assert_called_once()
        db.rollback.assert_called_once()
        db.commit.assert_not_called()
