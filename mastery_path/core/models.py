"""
Core Ledger Models.

Immutable value types shared by the scheduler and its collaborators.

Design:
- TableStatus: Enum for per-table mastery classification
- TableStat / FactStreak: per-table and per-fact state
- Ledger: the per-learner aggregate root (never mutated, only replaced)
- Attempt: one answered question
- QuestionCandidate: one planned question
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field, replace
from enum import Enum
from types import MappingProxyType

FactKey = tuple[int, int]


class TableStatus(str, Enum):
    """Mastery classification for a single multiplication table."""

    NOT_STARTED = "NOT_STARTED"
    PRACTICING = "PRACTICING"
    FOCUS_NEEDED = "FOCUS_NEEDED"
    MASTERED = "MASTERED"

    @property
    def display_name(self) -> str:
        """Human-readable name."""
        return self.value.replace("_", " ").title()

    @property
    def emoji(self) -> str:
        """Status glyph for CLI display."""
        return {
            TableStatus.NOT_STARTED: "○",
            TableStatus.PRACTICING: "◑",
            TableStatus.FOCUS_NEEDED: "◔",
            TableStatus.MASTERED: "●",
        }[self]

    @property
    def color(self) -> str:
        """Rich color for CLI display."""
        return {
            TableStatus.NOT_STARTED: "dim",
            TableStatus.PRACTICING: "cyan",
            TableStatus.FOCUS_NEEDED: "red",
            TableStatus.MASTERED: "green",
        }[self]


class QuestionType(str, Enum):
    """How a fact is asked."""

    DIRECT = "DIRECT"  # 7 x 8 = ?
    MISSING_FACTOR = "MISSING_FACTOR"  # 7 x ? = 56


@dataclass(frozen=True)
class TableStat:
    """
    Aggregate statistics for one table.

    Attributes:
        status: Current mastery classification.
        accuracy: Exponential moving average of 0/100 scores.
        avg_time: Exponential moving average of answer time (ms).
        total_attempts: Attempts recorded against this table.
        last_practiced: Timestamp of the latest attempt.
    """

    status: TableStatus = TableStatus.NOT_STARTED
    accuracy: float = 0.0
    avg_time: float = 0.0
    total_attempts: int = 0
    last_practiced: int | None = None


@dataclass(frozen=True)
class FactStreak:
    """Consecutive fast-correct answers for one fact."""

    streak: int = 0
    last_attempt: int = 0  # 0 = never attempted

    @property
    def attempted(self) -> bool:
        return self.last_attempt > 0


@dataclass(frozen=True)
class Ledger:
    """
    Complete scheduling state for one learner.

    Instances are values. The maps are copied on construction and exposed
    as read-only views, so every update has to build new ones.
    """

    current_stage: int = 2
    table_stats: Mapping[int, TableStat] = field(default_factory=dict)
    fact_streaks: Mapping[FactKey, FactStreak] = field(default_factory=dict)
    target_accuracy: int = 90
    daily_goal_minutes: int = 10

    def __post_init__(self) -> None:
        object.__setattr__(self, "table_stats", MappingProxyType(dict(self.table_stats)))
        object.__setattr__(self, "fact_streaks", MappingProxyType(dict(self.fact_streaks)))

    def __deepcopy__(self, memo: dict) -> Ledger:
        # Nested values are frozen, copying the maps is enough
        return replace(self)

    @classmethod
    def initial(cls, target_accuracy: int = 90, daily_goal_minutes: int = 10) -> Ledger:
        """Create the first-use ledger for a learner."""
        return cls(target_accuracy=target_accuracy, daily_goal_minutes=daily_goal_minutes)

    def stat_for(self, table: int) -> TableStat:
        """Stats for a table, defaulting to an untouched table."""
        return self.table_stats.get(table, TableStat())

    def streak_for(self, table: int, multiplier: int) -> FactStreak | None:
        return self.fact_streaks.get((table, multiplier))

    @property
    def has_history(self) -> bool:
        """True once any table has recorded an attempt."""
        return any(stat.total_attempts > 0 for stat in self.table_stats.values())

    @property
    def total_attempts(self) -> int:
        return sum(stat.total_attempts for stat in self.table_stats.values())


@dataclass(frozen=True)
class Attempt:
    """A single answered question, as submitted by the practice UI."""

    table: int
    multiplier: int
    is_correct: bool
    time_taken_ms: int
    timestamp: int
    question_type: QuestionType = QuestionType.DIRECT

    @property
    def fact(self) -> FactKey:
        return (self.table, self.multiplier)


@dataclass(frozen=True)
class QuestionCandidate:
    """One planned question in a practice session."""

    table: int
    multiplier: int
    weight: float
    type: QuestionType = QuestionType.DIRECT

    @property
    def fact(self) -> FactKey:
        return (self.table, self.multiplier)

    @property
    def product(self) -> int:
        return self.table * self.multiplier

    @property
    def correct_answer(self) -> int:
        """The number the learner must type."""
        if self.type == QuestionType.MISSING_FACTOR:
            return self.multiplier
        return self.product

    @property
    def question_id(self) -> str:
        """Stable id such as ``7-x-8-direct`` or ``7-x-8-missing``."""
        suffix = "missing" if self.type == QuestionType.MISSING_FACTOR else "direct"
        return f"{self.table}-x-{self.multiplier}-{suffix}"

    @property
    def prompt(self) -> str:
        if self.type == QuestionType.MISSING_FACTOR:
            return f"{self.table} × ? = {self.product}"
        return f"{self.table} × {self.multiplier} = ?"
