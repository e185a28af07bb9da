"""
Tier & Stage Policy.

A learner belongs to one of two policy buckets. The tier is always decided
by the caller (usually from the learner's school grade) and handed to the
scheduler; nothing in the scheduler guesses it.

    Tier      Max stage  Multipliers                 Session  Fair start
    BASIC     12         1..10                       20       no
    ADVANCED  20         2..max(9, stage), not 10    25       yes
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

# Mastery thresholds
MASTERY_ACCURACY = 90
MASTERY_TIME_MS = 4000
MASTERY_MIN_ATTEMPTS = 20  # strictly more than this
FOCUS_ACCURACY = 70
FOCUS_TIME_MS = 10000

# Fast track (advanced learners only)
FAST_TRACK_ACCURACY = 100
FAST_TRACK_TIME_MS = 2500
FAST_TRACK_MIN_ATTEMPTS = 10

# Moving averages
TIME_EMA_WEIGHT = 0.1
ACCURACY_EMA_RETAIN = 0.95
ACCURACY_EMA_GAIN = 0.05

# Fact streaks
STREAK_THRESHOLD_MS = 3000
MISSING_FACTOR_MIN_STREAK = 5
MISSING_FACTOR_PROBABILITY = 0.2

# Placement
DEFAULT_STAGE = 2
FAIR_START_STAGE = 11
ADVANCED_GRADE = 7


class Tier(str, Enum):
    """Learner policy bucket."""

    BASIC = "BASIC"
    ADVANCED = "ADVANCED"

    @property
    def policy(self) -> TierPolicy:
        return TIER_POLICIES[self]


@dataclass(frozen=True)
class TierPolicy:
    """Numeric policy that differs between tiers."""

    max_stage: int
    base_multiplier_limit: int
    excluded_multipliers: frozenset[int]
    session_length: int
    fair_start: bool
    # Multipliers grow with the stage (e.g. 14 x 13 at stage 14)
    multipliers_follow_stage: bool

    def clamp_stage(self, stage: int) -> int:
        """Clamp a stage into ``[1, max_stage]``."""
        return max(1, min(stage, self.max_stage))

    def allowed_multipliers(self, stage: int) -> list[int]:
        """Multipliers drilled for tables while the learner sits at ``stage``."""
        limit = self.base_multiplier_limit
        if self.multipliers_follow_stage:
            limit = max(limit, stage)
        return [m for m in range(1, limit + 1) if m not in self.excluded_multipliers]


TIER_POLICIES: dict[Tier, TierPolicy] = {
    Tier.BASIC: TierPolicy(
        max_stage=12,
        base_multiplier_limit=10,
        excluded_multipliers=frozenset(),
        session_length=20,
        fair_start=False,
        multipliers_follow_stage=False,
    ),
    Tier.ADVANCED: TierPolicy(
        max_stage=20,
        base_multiplier_limit=9,
        excluded_multipliers=frozenset({1, 10}),
        session_length=25,
        fair_start=True,
        multipliers_follow_stage=True,
    ),
}


def tier_for_grade(grade: int) -> Tier:
    """Map a school grade to a tier (grade 7 and above is advanced)."""
    return Tier.ADVANCED if grade >= ADVANCED_GRADE else Tier.BASIC
