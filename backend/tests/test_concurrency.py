import os
import tempfile
import unittest
from unittest.mock import patch

from sqlalchemy import event

from factories import add_group, add_movie, add_user, make_file_engine, session_factory

from app.db.models import Group, MovieInterest
from app.db.transaction import run_in_transaction
from app.services.membership import lock_group_or_raise
from app.services.movie_service import mark_watched, rate_movie
from app.services.rotation_service import advance_rotation


class TwoSessionTestCase(unittest.TestCase):
    """Two sessions on one SQLite file, each with its own connection."""

    def setUp(self) -> None:
        fd, self.path = tempfile.mkstemp(suffix=".db")
        os.close(fd)
        self.engine = make_file_engine(self.path)
        self.make_session = session_factory(self.engine)
        self.db1 = self.make_session()
        self.db2 = self.make_session()

        self.alice = add_user(self.db1, "alice")
        self.bob = add_user(self.db1, "bob")
        self.carol = add_user(self.db1, "carol")
        self.group = add_group(self.db1, [self.alice, self.bob, self.carol])

    def tearDown(self) -> None:
        self.db1.close()
        self.db2.close()
        self.engine.dispose()
        os.remove(self.path)


class TestConcurrentFirstRating(TwoSessionTestCase):
    def test_losing_insert_updates_the_winning_row(self) -> None:
        movie = add_movie(self.db1, self.alice, self.group)
        movie_id = movie.id
        raced = []

        def rate_from_other_request(session, flush_context, instances) -> None:
            if not raced:
                raced.append(True)
                rate_movie(self.db2, movie_id, self.bob.id, 4)

        event.listen(self.db1, "before_flush", rate_from_other_request)
        payload = rate_movie(self.db1, movie_id, self.bob.id, 2)

        self.assertEqual(raced, [True])
        self.assertEqual(payload["interest_score"], 2)

        check = self.make_session()
        rows = check.query(MovieInterest).filter(MovieInterest.movie_id == movie_id).all()
        self.assertEqual([(r.user_id, r.interest_score) for r in rows], [(self.bob.id, 2)])
        check.close()


class TestConcurrentRotation(TwoSessionTestCase):
    def test_stale_writer_retries_against_fresh_index(self) -> None:
        tonight = add_movie(self.db1, self.bob, self.group, title="Tonight")
        group_id = self.group.id
        seen_indexes = []

        def lock_while_another_request_advances(db, locked_group_id):
            group = lock_group_or_raise(db, locked_group_id)
            seen_indexes.append(group.current_proposer_index)
            if len(seen_indexes) == 1:
                run_in_transaction(
                    self.db2,
                    lambda: advance_rotation(self.db2, lock_group_or_raise(self.db2, locked_group_id)),
                )
            return group

        with patch(
            "app.services.movie_service.lock_group_or_raise",
            side_effect=lock_while_another_request_advances,
        ):
            payload = mark_watched(self.db1, tonight.id, self.alice.id)

        self.assertTrue(payload["watched"])
        self.assertEqual(seen_indexes, [0, 1])

        check = self.make_session()
        group = check.get(Group, group_id)
        self.assertEqual(group.current_proposer_index, 2)
        self.assertEqual(group.version, 3)
        check.close()
