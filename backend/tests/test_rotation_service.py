import unittest

from factories import add_group, add_interest, add_movie, add_user, make_session

from app.db.models import Group, Movie, MovieInterest
from app.services.errors import (
    GroupNotFoundError,
    InvariantViolationError,
    NotGroupMemberError,
    ValidationError,
)
from app.services.rotation_service import (
    advance_rotation,
    auto_decide,
    decide_movie,
    next_proposer_index,
    resolve_proposer_id,
)


class TestIndexArithmetic(unittest.TestCase):
    def test_resolve_wraps_modulo_member_count(self) -> None:
        self.assertEqual(resolve_proposer_id([7, 8, 9], 0), 7)
        self.assertEqual(resolve_proposer_id([7, 8, 9], 4), 8)

    def test_resolve_empty_group(self) -> None:
        self.assertIsNone(resolve_proposer_id([], 3))

    def test_next_index_wraps(self) -> None:
        self.assertEqual(next_proposer_index(0, 3), 1)
        self.assertEqual(next_proposer_index(2, 3), 0)
        self.assertEqual(next_proposer_index(5, 3), 0)

    def test_next_index_without_members_is_unchanged(self) -> None:
        self.assertEqual(next_proposer_index(2, 0), 2)


class TestAdvanceRotation(unittest.TestCase):
    def setUp(self) -> None:
        self.db = make_session()
        self.alice = add_user(self.db, "alice")
        self.bob = add_user(self.db, "bob")
        self.carol = add_user(self.db, "carol")
        self.group = add_group(self.db, [self.alice, self.bob, self.carol])

    def tearDown(self) -> None:
        self.db.close()

    def test_purges_only_outgoing_proposers_unwatched_movies(self) -> None:
        stale_a = add_movie(self.db, self.alice, self.group, title="Heat")
        stale_b = add_movie(self.db, self.alice, self.group, title="Ronin")
        watched = add_movie(self.db, self.alice, self.group, title="Alien", watched=True)
        kept = add_movie(self.db, self.bob, self.group, title="Tenet")
        add_interest(self.db, stale_a, self.bob, 4)
        add_interest(self.db, kept, self.alice, 2)
        stale_ids = {stale_a.id, stale_b.id}

        summary = advance_rotation(self.db, self.group)
        self.db.commit()

        self.assertEqual(summary["previous_proposer_id"], self.alice.id)
        self.assertEqual(summary["next_proposer_id"], self.bob.id)
        self.assertEqual(set(summary["purged_movie_ids"]), stale_ids)

        remaining = {m.id for m in self.db.query(Movie).all()}
        self.assertEqual(remaining, {watched.id, kept.id})
        interests = self.db.query(MovieInterest).all()
        self.assertEqual([i.movie_id for i in interests], [kept.id])

    def test_moves_index_and_clears_decision(self) -> None:
        movie = add_movie(self.db, self.bob, self.group)
        self.group.decided_movie_id = movie.id
        self.db.commit()

        advance_rotation(self.db, self.group)
        self.db.commit()

        group = self.db.get(Group, self.group.id)
        self.assertEqual(group.current_proposer_index, 1)
        self.assertIsNone(group.decided_movie_id)
        self.assertIsNotNone(group.last_movie_night)

    def test_last_member_wraps_to_first(self) -> None:
        self.group.current_proposer_index = 2
        self.db.commit()

        summary = advance_rotation(self.db, self.group)

        self.assertEqual(summary["previous_proposer_id"], self.carol.id)
        self.assertEqual(summary["next_proposer_id"], self.alice.id)
        self.assertEqual(self.group.current_proposer_index, 0)

    def test_index_beyond_member_count_resolves_modulo(self) -> None:
        self.group.current_proposer_index = 4
        self.db.commit()
        bobs = add_movie(self.db, self.bob, self.group)
        alices = add_movie(self.db, self.alice, self.group)

        summary = advance_rotation(self.db, self.group)
        self.db.commit()

        self.assertEqual(summary["previous_proposer_id"], self.bob.id)
        self.assertEqual(self.group.current_proposer_index, 2)
        self.assertIsNone(self.db.get(Movie, bobs.id))
        self.assertIsNotNone(self.db.get(Movie, alices.id))

    def test_empty_group_only_clears_decision(self) -> None:
        empty = add_group(self.db, [], name="Ghost town", index=1)
        movie = add_movie(self.db, self.alice, empty)
        empty.decided_movie_id = movie.id
        self.db.commit()

        summary = advance_rotation(self.db, empty)
        self.db.commit()

        self.assertEqual(summary["purged_movie_ids"], [])
        self.assertIsNone(summary["next_proposer_id"])
        self.assertEqual(empty.current_proposer_index, 1)
        self.assertIsNone(empty.decided_movie_id)
        self.assertIsNone(empty.last_movie_night)
        self.assertIsNotNone(self.db.get(Movie, movie.id))

    def test_clearing_decision_then_advancing_rotates_normally(self) -> None:
        movie = add_movie(self.db, self.bob, self.group)
        decide_movie(self.db, self.group.id, self.alice.id, movie.id)
        decide_movie(self.db, self.group.id, self.alice.id, None)

        advance_rotation(self.db, self.group)
        self.db.commit()

        self.assertEqual(self.group.current_proposer_index, 1)
        self.assertIsNone(self.group.decided_movie_id)


class TestDecideMovie(unittest.TestCase):
    def setUp(self) -> None:
        self.db = make_session()
        self.alice = add_user(self.db, "alice")
        self.bob = add_user(self.db, "bob")
        self.mallory = add_user(self.db, "mallory")
        self.group = add_group(self.db, [self.alice, self.bob])
        self.other = add_group(self.db, [self.mallory], name="Elsewhere")

    def tearDown(self) -> None:
        self.db.close()

    def test_sets_and_clears_decision(self) -> None:
        movie = add_movie(self.db, self.bob, self.group)

        group = decide_movie(self.db, self.group.id, self.alice.id, movie.id)
        self.assertEqual(group.decided_movie_id, movie.id)

        group = decide_movie(self.db, self.group.id, self.alice.id, None)
        self.assertIsNone(group.decided_movie_id)
        self.assertEqual(group.current_proposer_index, 0)

    def test_repeating_same_decision_does_not_write(self) -> None:
        movie = add_movie(self.db, self.bob, self.group)

        first = decide_movie(self.db, self.group.id, self.alice.id, movie.id)
        version = first.version
        second = decide_movie(self.db, self.group.id, self.bob.id, movie.id)

        self.assertEqual(second.decided_movie_id, movie.id)
        self.assertEqual(second.version, version)

    def test_rejects_movie_from_other_group(self) -> None:
        foreign = add_movie(self.db, self.mallory, self.other)
        with self.assertRaises(InvariantViolationError):
            decide_movie(self.db, self.group.id, self.alice.id, foreign.id)
        self.assertIsNone(self.db.get(Group, self.group.id).decided_movie_id)

    def test_rejects_watched_movie(self) -> None:
        watched = add_movie(self.db, self.bob, self.group, watched=True)
        with self.assertRaises(InvariantViolationError):
            decide_movie(self.db, self.group.id, self.alice.id, watched.id)

    def test_rejects_unknown_movie(self) -> None:
        with self.assertRaises(ValidationError):
            decide_movie(self.db, self.group.id, self.alice.id, 9999)

    def test_rejects_non_member(self) -> None:
        movie = add_movie(self.db, self.bob, self.group)
        with self.assertRaises(NotGroupMemberError):
            decide_movie(self.db, self.group.id, self.mallory.id, movie.id)

    def test_unknown_group(self) -> None:
        with self.assertRaises(GroupNotFoundError):
            decide_movie(self.db, 9999, self.alice.id, None)


class TestAutoDecide(unittest.TestCase):
    def setUp(self) -> None:
        self.db = make_session()
        self.alice = add_user(self.db, "alice")
        self.bob = add_user(self.db, "bob")
        self.group = add_group(self.db, [self.alice, self.bob])

    def tearDown(self) -> None:
        self.db.close()

    def test_picks_highest_weighted_score(self) -> None:
        lukewarm = add_movie(self.db, self.alice, self.group, title="Cats", intent=2)
        favourite = add_movie(self.db, self.alice, self.group, title="Heat", intent=4)
        add_interest(self.db, lukewarm, self.bob, 4)
        add_interest(self.db, favourite, self.bob, 3)

        group, winner = auto_decide(self.db, self.group.id, self.bob.id)

        self.assertEqual(winner.id, favourite.id)
        self.assertEqual(group.decided_movie_id, favourite.id)

    def test_skips_watched_movies(self) -> None:
        add_movie(self.db, self.alice, self.group, title="Seen", intent=4, watched=True)
        pending = add_movie(self.db, self.alice, self.group, title="Pending", intent=1)

        _, winner = auto_decide(self.db, self.group.id, self.alice.id)

        self.assertEqual(winner.id, pending.id)

    def test_empty_group_reports_no_winner(self) -> None:
        group, winner = auto_decide(self.db, self.group.id, self.alice.id)

        self.assertIsNone(winner)
        self.assertIsNone(group.decided_movie_id)

    def test_no_candidates_keeps_existing_decision(self) -> None:
        movie = add_movie(self.db, self.bob, self.group)
        decide_movie(self.db, self.group.id, self.alice.id, movie.id)
        # Watched outside of mark_watched, so the decision is still in place
        movie.watched = True
        self.db.commit()

        group, winner = auto_decide(self.db, self.group.id, self.alice.id)

        self.assertIsNone(winner)
        self.assertEqual(group.decided_movie_id, movie.id)

    def test_ties_go_to_oldest_proposal(self) -> None:
        older = add_movie(self.db, self.alice, self.group, title="First", intent=3)
        add_movie(self.db, self.alice, self.group, title="Second", intent=3)

        _, winner = auto_decide(self.db, self.group.id, self.alice.id)

        self.assertEqual(winner.id, older.id)
