"""
Session Composer.

Builds the ordered question plan for one practice session:

1. 70% of the slots (rounded down) come from the active stage pool
2. The rest come from the review pool (mastered lower tables), or from the
   active pool again while nothing has been mastered yet
3. Each drawn fact becomes a missing-factor question 20% of the time, but
   only once its streak has reached 5

Sampling is weighted and with replacement. The random source is injected
so tests can fix a seed; no module-level RNG is touched.

``compose_practice`` is the free-practice variant for tables the learner
picks by hand. It does not read the ledger.
"""

from __future__ import annotations

import math
import random
from collections.abc import Sequence

from loguru import logger

from mastery_path.core.errors import ValidationError
from mastery_path.core.models import Ledger, QuestionCandidate, QuestionType
from mastery_path.core.policy import (
    MISSING_FACTOR_MIN_STREAK,
    MISSING_FACTOR_PROBABILITY,
    Tier,
)
from mastery_path.learning.candidate_weighter import BASE_WEIGHT, WeightedFact, active_pool, review_pool

ACTIVE_SHARE = 0.7


class WeightedSampler:
    """Weighted sampling with replacement over a fixed pool."""

    def __init__(self, pool: Sequence[WeightedFact], rng: random.Random):
        if not pool:
            raise ValueError("cannot sample from an empty pool")
        self.pool = list(pool)
        self.rng = rng
        self._weights = [max(item.weight, 0.0) for item in self.pool]
        if sum(self._weights) <= 0:
            # All weights zero: fall back to uniform
            self._weights = [1.0] * len(self.pool)

    def draw(self) -> WeightedFact:
        return self.rng.choices(self.pool, weights=self._weights, k=1)[0]


def resolve_question_type(ledger: Ledger, fact: WeightedFact, rng: random.Random) -> QuestionType:
    """Missing-factor questions are gated behind a streak of 5."""
    streak = ledger.streak_for(fact.table, fact.multiplier)
    if streak is None or streak.streak < MISSING_FACTOR_MIN_STREAK:
        return QuestionType.DIRECT
    if rng.random() < MISSING_FACTOR_PROBABILITY:
        return QuestionType.MISSING_FACTOR
    return QuestionType.DIRECT


def split_slots(session_length: int) -> tuple[int, int]:
    """Return (active_slots, review_slots) for a session length."""
    active = math.floor(session_length * ACTIVE_SHARE)
    return active, session_length - active


def compose(
    ledger: Ledger,
    tier: Tier,
    session_length: int | None = None,
    rng: random.Random | None = None,
) -> list[QuestionCandidate]:
    """
    Plan a practice session.

    Args:
        ledger: Learner ledger snapshot (read only)
        tier: Caller-supplied learner tier
        session_length: Number of questions (tier default when None)
        rng: Random source; a fresh unseeded one when None

    Returns:
        Ordered QuestionCandidate list of exactly ``session_length`` items

    Raises:
        ValidationError: If session_length is negative
    """
    if session_length is None:
        session_length = tier.policy.session_length
    if isinstance(session_length, bool) or not isinstance(session_length, int) or session_length < 0:
        raise ValidationError(f"session_length must be a non-negative integer, got {session_length!r}")
    rng = rng or random.Random()

    active_slots, review_slots = split_slots(session_length)
    active = WeightedSampler(active_pool(ledger, tier), rng)
    review_facts = review_pool(ledger, tier)
    review = WeightedSampler(review_facts, rng) if review_facts else active

    drawn = [active.draw() for _ in range(active_slots)]
    drawn.extend(review.draw() for _ in range(review_slots))

    plan = [
        QuestionCandidate(
            table=fact.table,
            multiplier=fact.multiplier,
            weight=fact.weight,
            type=resolve_question_type(ledger, fact, rng),
        )
        for fact in drawn
    ]

    logger.debug(
        f"Composed {len(plan)} questions at stage {ledger.current_stage} "
        f"({active_slots} active, {review_slots} {'review' if review_facts else 'active fill'})"
    )
    return plan


PRACTICE_MULTIPLIERS = tuple(range(1, 13))
PRACTICE_SESSION_LENGTH = 20


def compose_practice(
    tables: Sequence[int],
    rng: random.Random | None = None,
    session_length: int = PRACTICE_SESSION_LENGTH,
) -> list[QuestionCandidate]:
    """
    Plan a free-practice session over tables the learner picked.

    Unlike :func:`compose` this ignores the ledger: every fact x1..x12 of
    each table is asked directly, and each one also gets a missing-factor
    variant 20% of the time. The deck is shuffled and cut to length.

    Args:
        tables: Chosen tables (duplicates are ignored)
        rng: Random source; a fresh unseeded one when None
        session_length: Maximum number of questions

    Returns:
        Up to ``session_length`` QuestionCandidates, each weighted at base

    Raises:
        ValidationError: No tables, a table that is not a positive integer,
            or a negative session length
    """
    chosen = list(dict.fromkeys(tables))
    if not chosen:
        raise ValidationError("choose at least one table to practice")
    for table in chosen:
        if isinstance(table, bool) or not isinstance(table, int) or table <= 0:
            raise ValidationError(f"tables must be positive integers, got {table!r}")
    if isinstance(session_length, bool) or not isinstance(session_length, int) or session_length < 0:
        raise ValidationError(f"session_length must be a non-negative integer, got {session_length!r}")
    rng = rng or random.Random()

    deck = []
    for table in chosen:
        for m in PRACTICE_MULTIPLIERS:
            deck.append(QuestionCandidate(table, m, BASE_WEIGHT, QuestionType.DIRECT))
            if rng.random() < MISSING_FACTOR_PROBABILITY:
                deck.append(QuestionCandidate(table, m, BASE_WEIGHT, QuestionType.MISSING_FACTOR))

    rng.shuffle(deck)
    logger.debug(f"Practice deck of {len(deck)} questions over tables {chosen}")
    return deck[:session_length]
