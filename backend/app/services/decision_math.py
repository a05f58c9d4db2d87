"""
Decision Math
─────────────
Pure scoring for picking the next movie.

Two rules live here:
  • decision score — used when a group decides its movie night:
        (2 × proposal_intent + 1 × average peer interest) / 3
  • top-pick score — dashboard highlight over individually rated movies:
        proposal_intent × interest_score, +4 for a (4, 4) match,
        −8 when interest_score is 1

Nothing in this module touches the database; candidates are any objects
exposing ``id``, ``group_id``, ``watched``, ``proposal_intent`` and
``interest_score`` (ORM rows in production, SimpleNamespace in tests).
"""
import logging
from collections.abc import Iterable, Mapping, Sequence
from decimal import Decimal
from typing import Any

logger = logging.getLogger(__name__)

# Proposer enthusiasm counts twice as much as aggregate peer interest
INTENT_WEIGHT = Decimal(2)
INTEREST_WEIGHT = Decimal(1)

MAX_SCORE = 4
TOP_PICK_MATCH_BONUS = 4
TOP_PICK_DISLIKE_PENALTY = 8


class DecisionMath:
    """
    Stateless scoring helpers.
    All methods are @staticmethod — instantiation is optional.
    """

    @staticmethod
    def average_interest(interest_scores: Sequence[int]) -> Decimal:
        """Mean of the recorded peer ratings; 0 when nobody has rated yet."""
        if not interest_scores:
            return Decimal(0)
        return Decimal(sum(interest_scores)) / Decimal(len(interest_scores))

    @staticmethod
    def decision_score(proposal_intent: int, interest_scores: Sequence[int]) -> Decimal:
        """
        Weighted decision score for one candidate.

        >>> DecisionMath.decision_score(4, [1])
        Decimal('3')
        """
        average = DecisionMath.average_interest(interest_scores)
        weighted = INTENT_WEIGHT * Decimal(proposal_intent) + INTEREST_WEIGHT * average
        return weighted / (INTENT_WEIGHT + INTEREST_WEIGHT)

    @staticmethod
    def top_pick_score(proposal_intent: int, interest_score: int) -> int:
        score = proposal_intent * interest_score
        if proposal_intent == MAX_SCORE and interest_score == MAX_SCORE:
            score += TOP_PICK_MATCH_BONUS
        if interest_score == 1:
            score -= TOP_PICK_DISLIKE_PENALTY
        return score

    @staticmethod
    def eligible_candidates(candidates: Iterable[Any], group_id: int) -> list[Any]:
        """
        Drop candidates that may never be decided for *group_id*.

        Watched movies and movies from another group are caller errors; they
        are logged and skipped rather than scored.
        """
        eligible = []
        for movie in candidates:
            if movie.watched:
                logger.warning(
                    "Skipping watched movie %s while deciding for group %s",
                    movie.id,
                    group_id,
                )
                continue
            if movie.group_id != group_id:
                logger.warning(
                    "Skipping movie %s from group %s while deciding for group %s",
                    movie.id,
                    movie.group_id,
                    group_id,
                )
                continue
            eligible.append(movie)
        return eligible

    @staticmethod
    def rank_candidates(
        candidates: Iterable[Any],
        group_id: int,
        interest_scores: Mapping[int, Sequence[int]] | None = None,
    ) -> list[tuple[Any, Decimal]]:
        """
        Return (movie, score) pairs, best first.

        Args:
            candidates: Movies to score, in the order ties should be broken.
            group_id: The group the decision is for.
            interest_scores: movie id → every recorded peer rating. When
                omitted, the movie's own interest_score (if any) is used.

        The sort is stable, so equal scores keep their input order.
        """
        scored = []
        for movie in DecisionMath.eligible_candidates(candidates, group_id):
            if interest_scores is not None:
                ratings = list(interest_scores.get(movie.id, ()))
            else:
                ratings = [] if movie.interest_score is None else [movie.interest_score]
            scored.append((movie, DecisionMath.decision_score(movie.proposal_intent, ratings)))

        return sorted(scored, key=lambda pair: pair[1], reverse=True)

    @staticmethod
    def decide(
        candidates: Iterable[Any],
        group_id: int,
        interest_scores: Mapping[int, Sequence[int]] | None = None,
    ) -> Any | None:
        """Return the best-scoring eligible movie, or None when there is none."""
        ranked = DecisionMath.rank_candidates(candidates, group_id, interest_scores)
        if not ranked:
            return None
        return ranked[0][0]

    @staticmethod
    def top_pick(movies: Iterable[Any]) -> Any | None:
        """
        Highest top-pick score among unwatched movies that have been rated.
        First maximum wins; None when nothing has an interest_score.
        """
        best = None
        best_score = None
        for movie in movies:
            if movie.watched or movie.interest_score is None:
                continue
            score = DecisionMath.top_pick_score(movie.proposal_intent, movie.interest_score)
            if best_score is None or score > best_score:
                best, best_score = movie, score
        return best
