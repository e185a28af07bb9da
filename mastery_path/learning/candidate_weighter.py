"""
Candidate Weighting for Session Planning.

Every drillable fact gets a sampling weight from its streak history:

    base                      10
    recently missed     x 3   (streak 0 but attempted before)
    well drilled        x 0.5 (streak above 5)

"Recently missed" is a proxy: the ledger keeps no last-outcome flag, so a
slow but correct answer (which also resets the streak) triggers the boost
as well.

Smart injection previews the next table: once the current stage's
accuracy passes 63 (70% of the 90 mastery threshold), facts x2 and x3 of
the next table join the active pool at a fixed weight of 20.
"""

from __future__ import annotations

from dataclasses import dataclass

from mastery_path.core.models import FactKey, Ledger, TableStatus
from mastery_path.core.policy import MASTERY_ACCURACY, Tier

BASE_WEIGHT = 10.0
MISSED_MULTIPLIER = 3.0
DRILLED_MULTIPLIER = 0.5
DRILLED_STREAK = 5  # strictly more than this

INJECTION_ACCURACY = MASTERY_ACCURACY * 0.7
INJECTION_MULTIPLIERS = (2, 3)
INJECTION_WEIGHT = 20.0


@dataclass(frozen=True)
class WeightedFact:
    """A fact together with its sampling weight."""

    table: int
    multiplier: int
    weight: float

    @property
    def fact(self) -> FactKey:
        return (self.table, self.multiplier)


def weight(ledger: Ledger, table: int, multiplier: int) -> float:
    """
    Sampling weight for one fact. Always >= 0.

    Args:
        ledger: Learner ledger snapshot
        table: Table of the fact
        multiplier: Multiplier of the fact

    Returns:
        Weight relative to the base of 10
    """
    w = BASE_WEIGHT
    streak = ledger.streak_for(table, multiplier)
    if streak is not None:
        if streak.streak == 0 and streak.attempted:
            w *= MISSED_MULTIPLIER
        if streak.streak > DRILLED_STREAK:
            w *= DRILLED_MULTIPLIER
    return w


def should_inject_next_table(ledger: Ledger, tier: Tier) -> bool:
    """True when the next table's easiest facts should be previewed."""
    stage = tier.policy.clamp_stage(ledger.current_stage)
    stat = ledger.table_stats.get(stage)
    return stat is not None and stat.accuracy > INJECTION_ACCURACY


def injected_facts(ledger: Ledger, tier: Tier) -> list[WeightedFact]:
    if not should_inject_next_table(ledger, tier):
        return []
    next_table = tier.policy.clamp_stage(ledger.current_stage) + 1
    return [WeightedFact(next_table, m, INJECTION_WEIGHT) for m in INJECTION_MULTIPLIERS]


def active_pool(ledger: Ledger, tier: Tier) -> list[WeightedFact]:
    """Current-stage facts for the tier, plus any injected next-table facts."""
    stage = tier.policy.clamp_stage(ledger.current_stage)
    pool = [
        WeightedFact(stage, m, weight(ledger, stage, m))
        for m in tier.policy.allowed_multipliers(stage)
    ]
    pool.extend(injected_facts(ledger, tier))
    return pool


def mastered_below_stage(ledger: Ledger, tier: Tier) -> list[int]:
    """Tables already MASTERED below the (clamped) current stage, ascending."""
    stage = tier.policy.clamp_stage(ledger.current_stage)
    return sorted(
        table
        for table, stat in ledger.table_stats.items()
        if stat.status == TableStatus.MASTERED and table < stage
    )


def review_pool(ledger: Ledger, tier: Tier) -> list[WeightedFact]:
    """
    Facts of mastered lower tables, used to keep cleared stages fresh.

    Uses the same multiplier range as the active stage. Empty while no
    lower table is mastered.
    """
    stage = tier.policy.clamp_stage(ledger.current_stage)
    multipliers = tier.policy.allowed_multipliers(stage)
    return [
        WeightedFact(table, m, weight(ledger, table, m))
        for table in mastered_below_stage(ledger, tier)
        for m in multipliers
    ]
