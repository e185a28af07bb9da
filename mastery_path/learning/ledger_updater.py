"""
Ledger Updater.

Applies one practice attempt to a learner's ledger and returns the new
ledger. The input ledger is never modified; every nested value that
changes is rebuilt.

Order of operations per attempt:
1. Fair start placement (advanced learners without history jump to 11)
2. Table statistics (exponential moving averages)
3. Status classification (recomputed every attempt, nothing is sticky)
4. Fact streak
5. Stage advancement (capped at the tier maximum)

Because the moving averages and streaks are path dependent, attempts for
one learner must be applied in chronological order by a single writer.
"""

from __future__ import annotations

import math
from collections.abc import Iterable
from dataclasses import replace

from loguru import logger

from mastery_path.core.errors import ValidationError
from mastery_path.core.models import Attempt, FactStreak, Ledger, TableStat, TableStatus
from mastery_path.core.policy import (
    ACCURACY_EMA_GAIN,
    ACCURACY_EMA_RETAIN,
    DEFAULT_STAGE,
    FAIR_START_STAGE,
    FAST_TRACK_ACCURACY,
    FAST_TRACK_MIN_ATTEMPTS,
    FAST_TRACK_TIME_MS,
    FOCUS_ACCURACY,
    FOCUS_TIME_MS,
    MASTERY_ACCURACY,
    MASTERY_MIN_ATTEMPTS,
    MASTERY_TIME_MS,
    STREAK_THRESHOLD_MS,
    TIME_EMA_WEIGHT,
    Tier,
)


def _is_positive_int(value: object) -> bool:
    return isinstance(value, int) and not isinstance(value, bool) and value > 0


def validate_attempt(attempt: Attempt) -> None:
    """
    Reject malformed attempts before anything is touched.

    Raises:
        ValidationError: table/multiplier not positive integers, or a
            negative or non-finite answer time.
    """
    if not _is_positive_int(attempt.table):
        raise ValidationError(f"table must be a positive integer, got {attempt.table!r}")
    if not _is_positive_int(attempt.multiplier):
        raise ValidationError(
            f"multiplier must be a positive integer, got {attempt.multiplier!r}"
        )
    if isinstance(attempt.time_taken_ms, bool) or not isinstance(attempt.time_taken_ms, (int, float)):
        raise ValidationError(f"time_taken_ms must be a number, got {attempt.time_taken_ms!r}")
    if not math.isfinite(attempt.time_taken_ms):
        raise ValidationError(f"time_taken_ms must be finite, got {attempt.time_taken_ms}")
    if attempt.time_taken_ms < 0:
        raise ValidationError(f"time_taken_ms must not be negative, got {attempt.time_taken_ms}")


def classify_status(stat: TableStat, tier: Tier) -> TableStatus:
    """
    Classify a table from its (already updated) statistics.

    Fast track lets advanced learners with perfect, quick answers master a
    table after 10 attempts instead of 21.
    """
    is_fast_track = (
        tier == Tier.ADVANCED
        and stat.accuracy == FAST_TRACK_ACCURACY
        and stat.avg_time < FAST_TRACK_TIME_MS
        and stat.total_attempts >= FAST_TRACK_MIN_ATTEMPTS
    )
    if is_fast_track:
        return TableStatus.MASTERED
    if (
        stat.accuracy >= MASTERY_ACCURACY
        and stat.avg_time < MASTERY_TIME_MS
        and stat.total_attempts > MASTERY_MIN_ATTEMPTS
    ):
        return TableStatus.MASTERED
    if stat.accuracy < FOCUS_ACCURACY or stat.avg_time > FOCUS_TIME_MS:
        return TableStatus.FOCUS_NEEDED
    return TableStatus.PRACTICING


def apply_table_attempt(stat: TableStat, attempt: Attempt, tier: Tier) -> TableStat:
    """Fold one attempt into a table's moving averages and reclassify it."""
    score = 100.0 if attempt.is_correct else 0.0

    if stat.total_attempts == 0:
        avg_time = float(attempt.time_taken_ms)
        accuracy = score
    else:
        avg_time = stat.avg_time * (1 - TIME_EMA_WEIGHT) + attempt.time_taken_ms * TIME_EMA_WEIGHT
        accuracy = stat.accuracy * ACCURACY_EMA_RETAIN + score * ACCURACY_EMA_GAIN

    updated = TableStat(
        status=stat.status,
        accuracy=accuracy,
        avg_time=avg_time,
        total_attempts=stat.total_attempts + 1,
        last_practiced=attempt.timestamp,
    )
    return replace(updated, status=classify_status(updated, tier))


def apply_streak_attempt(streak: FactStreak | None, attempt: Attempt) -> FactStreak:
    """Increment on a fast correct answer, otherwise reset (wrong or slow)."""
    current = streak.streak if streak else 0
    if attempt.is_correct and attempt.time_taken_ms < STREAK_THRESHOLD_MS:
        new_streak = current + 1
    else:
        new_streak = 0
    return FactStreak(streak=new_streak, last_attempt=attempt.timestamp)


def update(ledger: Ledger, attempt: Attempt, tier: Tier) -> Ledger:
    """
    Apply one attempt and return the new ledger.

    Args:
        ledger: Current ledger (left untouched)
        attempt: The answered question
        tier: Caller-supplied learner tier

    Returns:
        A new Ledger value

    Raises:
        ValidationError: If the attempt is malformed (ledger unchanged)
    """
    validate_attempt(attempt)
    policy = tier.policy
    stage = ledger.current_stage

    # 1. Fair start
    if policy.fair_start and stage == DEFAULT_STAGE and not ledger.has_history:
        logger.debug(f"Fair start: placing new {tier.value} learner at stage {FAIR_START_STAGE}")
        stage = FAIR_START_STAGE

    # 2-3. Table statistics and status
    previous = ledger.stat_for(attempt.table)
    stat = apply_table_attempt(previous, attempt, tier)
    if stat.status != previous.status:
        logger.debug(
            f"Table {attempt.table}: {previous.status.value} -> {stat.status.value} "
            f"(accuracy={stat.accuracy:.1f}, avg_time={stat.avg_time:.0f}ms)"
        )
    table_stats = {**ledger.table_stats, attempt.table: stat}

    # 4. Fact streak
    streak = apply_streak_attempt(ledger.streak_for(attempt.table, attempt.multiplier), attempt)
    fact_streaks = {**ledger.fact_streaks, attempt.fact: streak}

    # 5. Stage advancement
    if attempt.table == stage and stat.status == TableStatus.MASTERED and stage < policy.max_stage:
        logger.debug(f"Stage {stage} mastered, advancing to {stage + 1}")
        stage += 1

    return replace(
        ledger,
        current_stage=stage,
        table_stats=table_stats,
        fact_streaks=fact_streaks,
    )


def replay(attempts: Iterable[Attempt], tier: Tier, initial: Ledger | None = None) -> Ledger:
    """
    Rebuild a ledger from a learner's full attempt history.

    Attempts are applied in timestamp order (stable for equal timestamps).
    Policy constants of ``initial`` survive; its statistics are discarded.
    """
    base = initial or Ledger.initial()
    ledger = Ledger.initial(
        target_accuracy=base.target_accuracy,
        daily_goal_minutes=base.daily_goal_minutes,
    )
    ordered = sorted(attempts, key=lambda a: a.timestamp)
    for attempt in ordered:
        ledger = update(ledger, attempt, tier)

    logger.debug(f"Replayed {len(ordered)} attempts -> stage {ledger.current_stage}")
    return ledger
