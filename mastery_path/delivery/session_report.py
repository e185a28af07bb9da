"""
Session Report.

Plain-accuracy summaries over attempt logs, shown after a practice
session and by the ``report`` and ``heatmap`` commands. Unlike the ledger
(moving averages), these are simple counts over the attempts passed in.
"""

from __future__ import annotations

from collections import Counter
from collections.abc import Sequence
from dataclasses import dataclass, field
from enum import Enum

from mastery_path.core.models import Attempt, FactKey

WEAK_TABLE_ACCURACY = 80
# Answers this slow are treated as interruptions, not speed samples
MAX_SPEED_SAMPLE_MS = 30000


@dataclass
class TableSummary:
    """Per-table counts for a set of attempts."""

    table: int
    total_attempts: int = 0
    correct: int = 0
    speed_time_ms: int = 0
    speed_samples: int = 0

    @property
    def accuracy(self) -> int:
        """Rounded percentage correct."""
        if self.total_attempts == 0:
            return 0
        return round(self.correct / self.total_attempts * 100)

    @property
    def avg_time_seconds(self) -> float:
        """Average time of correct answers, in seconds (one decimal)."""
        if self.speed_samples == 0:
            return 0.0
        return round(self.speed_time_ms / self.speed_samples / 1000, 1)


@dataclass
class SessionSummary:
    total_questions: int = 0
    correct_answers: int = 0
    tables: dict[int, TableSummary] = field(default_factory=dict)

    @property
    def accuracy(self) -> int:
        if self.total_questions == 0:
            return 0
        return round(self.correct_answers / self.total_questions * 100)

    @property
    def weak_tables(self) -> list[int]:
        """Tables under 80% plain accuracy, ascending."""
        return sorted(
            table
            for table, summary in self.tables.items()
            if summary.correct / summary.total_attempts * 100 < WEAK_TABLE_ACCURACY
        )

    @property
    def encouragement(self) -> str:
        if self.accuracy == 100:
            return "Perfect score! You're a maths wizard!"
        elif self.accuracy >= 80:
            return "Amazing job! Keep it up!"
        elif self.accuracy >= 60:
            return "Good effort! Practice makes perfect!"
        else:
            return "Don't give up! You're learning!"


def summarize(attempts: Sequence[Attempt]) -> SessionSummary:
    """Summarize a list of attempts (a session or a whole log)."""
    summary = SessionSummary()
    for attempt in attempts:
        table = summary.tables.setdefault(attempt.table, TableSummary(table=attempt.table))
        table.total_attempts += 1
        summary.total_questions += 1
        if attempt.is_correct:
            table.correct += 1
            summary.correct_answers += 1
            if attempt.time_taken_ms < MAX_SPEED_SAMPLE_MS:
                table.speed_time_ms += attempt.time_taken_ms
                table.speed_samples += 1
    return summary


def weakest_facts(attempts: Sequence[Attempt], limit: int = 10, window: int = 200) -> list[tuple[FactKey, int]]:
    """
    Facts with the most mistakes among the latest ``window`` attempts.

    Returns:
        ``[((table, multiplier), mistakes), ...]`` most mistakes first,
        ties in fact order. Facts without mistakes are left out.
    """
    recent = sorted(attempts, key=lambda a: a.timestamp)[-window:] if window > 0 else []
    mistakes = Counter(a.fact for a in recent if not a.is_correct)
    ranked = sorted(mistakes.items(), key=lambda item: (-item[1], item[0]))
    return ranked[:limit]


# =============================================================================
# Fluency Grid
# =============================================================================

GRID_MULTIPLIERS = tuple(range(1, 13))
GRID_DEFAULT_TABLES = tuple(range(2, 13))


class FluencyStatus(str, Enum):
    """Per-fact classification for the fluency grid."""

    MASTERED = "MASTERED"
    FLUENT = "FLUENT"
    REVIEW = "REVIEW"
    STRUGGLING = "STRUGGLING"
    WARNING = "WARNING"
    UNTESTED = "UNTESTED"

    @property
    def color(self) -> str:
        return {
            FluencyStatus.MASTERED: "bold green",
            FluencyStatus.FLUENT: "green",
            FluencyStatus.REVIEW: "yellow",
            FluencyStatus.STRUGGLING: "dark_orange",
            FluencyStatus.WARNING: "red",
            FluencyStatus.UNTESTED: "dim",
        }[self]


@dataclass
class FluencyCell:
    """Plain counts for one (table, multiplier) fact."""

    table: int
    multiplier: int
    total_attempts: int = 0
    correct: int = 0
    speed_time_ms: int = 0
    speed_samples: int = 0

    @property
    def accuracy(self) -> int:
        if self.total_attempts == 0:
            return 0
        return round(self.correct / self.total_attempts * 100)

    @property
    def avg_time_seconds(self) -> float:
        if self.speed_samples == 0:
            return 0.0
        return round(self.speed_time_ms / self.speed_samples / 1000, 1)

    @property
    def status(self) -> FluencyStatus:
        """
        Classify the fact. Speed only counts when there is at least one
        correct answer fast enough to be a sample.
        """
        if self.total_attempts == 0:
            return FluencyStatus.UNTESTED
        if self.accuracy < 50:
            return FluencyStatus.WARNING
        if self.accuracy <= 70:
            return FluencyStatus.STRUGGLING

        speed = self.avg_time_seconds
        if self.accuracy > 90 and 0 < speed < 3.0:
            return FluencyStatus.MASTERED
        if self.accuracy > 80 and 0 < speed < 5.0:
            return FluencyStatus.FLUENT
        return FluencyStatus.REVIEW


def fluency_grid(attempts: Sequence[Attempt]) -> dict[FactKey, FluencyCell]:
    """
    Per-fact accuracy and speed for every logged table, multipliers 1..12.

    Tables 2..12 are shown when nothing has been logged yet. Facts with
    multipliers above 12 are counted but only appear if logged.

    Returns:
        ``{(table, multiplier): FluencyCell}`` in table, multiplier order
    """
    cells: dict[FactKey, FluencyCell] = {}
    for attempt in attempts:
        cell = cells.setdefault(attempt.fact, FluencyCell(attempt.table, attempt.multiplier))
        cell.total_attempts += 1
        if attempt.is_correct:
            cell.correct += 1
            if attempt.time_taken_ms < MAX_SPEED_SAMPLE_MS:
                cell.speed_time_ms += attempt.time_taken_ms
                cell.speed_samples += 1

    tables = sorted({table for table, _ in cells}) or list(GRID_DEFAULT_TABLES)
    for table in tables:
        for multiplier in GRID_MULTIPLIERS:
            cells.setdefault((table, multiplier), FluencyCell(table, multiplier))
    return dict(sorted(cells.items()))
