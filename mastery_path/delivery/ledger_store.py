"""
JSON Ledger Store for Mastery Path.

Provides portable persistence for:
- The per-learner ledger document (one JSON file per learner)
- The append-only attempt log (JSON lines), the replay source used to
  rehydrate a ledger when the stored document is lost or suspect

Documents use the camelCase layout of the practice app, e.g.

    {"currentPathStage": 4,
     "tableStats": {"3": {"status": "MASTERED", "accuracy": 93.1, ...}},
     "factStreaks": {"3x7": {"streak": 6, "lastAttempt": 1718000000000}},
     "targetAccuracy": 90, "dailyGoalMinutes": 10}

Older documents stored the stage as ``activeTable``; they are migrated on
load.

Default location: ~/.mastery_path/
"""

from __future__ import annotations

import os
import re
import tempfile
from pathlib import Path
from typing import Any

from loguru import logger
from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic import ValidationError as PydanticValidationError

from mastery_path.core.errors import LedgerDocumentError, ValidationError
from mastery_path.core.models import (
    Attempt,
    FactKey,
    FactStreak,
    Ledger,
    QuestionType,
    TableStat,
    TableStatus,
)
from mastery_path.core.policy import DEFAULT_STAGE, Tier
from mastery_path.learning.ledger_updater import replay, update

FACT_KEY_PATTERN = re.compile(r"^(\d+)x(\d+)$")
LEARNER_ID_PATTERN = re.compile(r"^[A-Za-z0-9_.-]+$")


def format_fact_key(fact: FactKey) -> str:
    """(12, 7) -> "12x7"."""
    return f"{fact[0]}x{fact[1]}"


def parse_fact_key(key: str) -> FactKey:
    """"12x7" -> (12, 7)."""
    match = FACT_KEY_PATTERN.match(key)
    if not match:
        raise ValueError(f"invalid fact key {key!r}, expected e.g. '12x7'")
    return int(match.group(1)), int(match.group(2))


# =============================================================================
# Document Schemas
# =============================================================================


class _Document(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class TableStatDocument(_Document):
    status: TableStatus = TableStatus.NOT_STARTED
    accuracy: float = Field(default=0.0, ge=0)
    avg_time: float = Field(default=0.0, ge=0, alias="avgTime")
    total_attempts: int = Field(default=0, ge=0, alias="totalAttempts")
    last_practiced: int | None = Field(default=None, alias="lastPracticed")


class FactStreakDocument(_Document):
    streak: int = Field(default=0, ge=0)
    last_attempt: int = Field(default=0, alias="lastAttempt")


class LedgerDocument(_Document):
    """Stored form of a Ledger."""

    current_path_stage: int = Field(default=DEFAULT_STAGE, ge=1, alias="currentPathStage")
    table_stats: dict[int, TableStatDocument] = Field(default_factory=dict, alias="tableStats")
    fact_streaks: dict[str, FactStreakDocument] = Field(default_factory=dict, alias="factStreaks")
    target_accuracy: int = Field(default=90, alias="targetAccuracy")
    daily_goal_minutes: int = Field(default=10, alias="dailyGoalMinutes")

    @model_validator(mode="before")
    @classmethod
    def migrate_legacy_fields(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data
        data = dict(data)
        if data.get("currentPathStage") is None and data.get("current_path_stage") is None:
            data.pop("currentPathStage", None)
            if data.get("activeTable") is not None:
                logger.warning(f"Migrating legacy activeTable={data['activeTable']} to currentPathStage")
                data["currentPathStage"] = data["activeTable"]
        for key in ("tableStats", "factStreaks"):
            if data.get(key) is None:
                data.pop(key, None)
        return data

    @field_validator("fact_streaks")
    @classmethod
    def check_fact_keys(cls, value: dict[str, FactStreakDocument]) -> dict[str, FactStreakDocument]:
        for key in value:
            parse_fact_key(key)
        return value

    @classmethod
    def from_ledger(cls, ledger: Ledger) -> LedgerDocument:
        return cls(
            current_path_stage=ledger.current_stage,
            table_stats={
                table: TableStatDocument(
                    status=stat.status,
                    accuracy=stat.accuracy,
                    avg_time=stat.avg_time,
                    total_attempts=stat.total_attempts,
                    last_practiced=stat.last_practiced,
                )
                for table, stat in sorted(ledger.table_stats.items())
            },
            fact_streaks={
                format_fact_key(fact): FactStreakDocument(
                    streak=streak.streak, last_attempt=streak.last_attempt
                )
                for fact, streak in sorted(ledger.fact_streaks.items())
            },
            target_accuracy=ledger.target_accuracy,
            daily_goal_minutes=ledger.daily_goal_minutes,
        )

    def to_ledger(self) -> Ledger:
        return Ledger(
            current_stage=self.current_path_stage,
            table_stats={
                table: TableStat(
                    status=doc.status,
                    accuracy=doc.accuracy,
                    avg_time=doc.avg_time,
                    total_attempts=doc.total_attempts,
                    last_practiced=doc.last_practiced,
                )
                for table, doc in self.table_stats.items()
            },
            fact_streaks={
                parse_fact_key(key): FactStreak(streak=doc.streak, last_attempt=doc.last_attempt)
                for key, doc in self.fact_streaks.items()
            },
            target_accuracy=self.target_accuracy,
            daily_goal_minutes=self.daily_goal_minutes,
        )


class AttemptDocument(_Document):
    """One line of the attempt log."""

    table: int
    multiplier: int
    is_correct: bool = Field(alias="isCorrect")
    time_taken_ms: int = Field(alias="timeTaken")
    timestamp: int
    type: QuestionType = QuestionType.DIRECT

    @field_validator("type", mode="before")
    @classmethod
    def accept_legacy_type(cls, value: Any) -> Any:
        # Older logs call the missing-factor format MISSING_MULTIPLIER
        if value == "MISSING_MULTIPLIER":
            return QuestionType.MISSING_FACTOR
        return value

    @classmethod
    def from_attempt(cls, attempt: Attempt) -> AttemptDocument:
        return cls(
            table=attempt.table,
            multiplier=attempt.multiplier,
            is_correct=attempt.is_correct,
            time_taken_ms=attempt.time_taken_ms,
            timestamp=attempt.timestamp,
            type=attempt.question_type,
        )

    def to_attempt(self) -> Attempt:
        return Attempt(
            table=self.table,
            multiplier=self.multiplier,
            is_correct=self.is_correct,
            time_taken_ms=self.time_taken_ms,
            timestamp=self.timestamp,
            question_type=self.type,
        )


def ledger_to_json(ledger: Ledger) -> str:
    return LedgerDocument.from_ledger(ledger).model_dump_json(by_alias=True, indent=2)


def ledger_from_json(raw: str | bytes) -> Ledger:
    """
    Parse a stored ledger document.

    Raises:
        LedgerDocumentError: Invalid JSON or schema violations
    """
    try:
        if isinstance(raw, bytes):
            raw = raw.decode("utf-8")
        return LedgerDocument.model_validate_json(raw).to_ledger()
    except UnicodeDecodeError as e:
        raise LedgerDocumentError(f"Ledger document is not UTF-8 text: {e}") from e
    except PydanticValidationError as e:
        raise LedgerDocumentError(f"Invalid ledger document: {e}") from e


# =============================================================================
# Ledger Store
# =============================================================================


class LedgerStore:
    """
    File-backed ledger persistence, one document per learner.

    The store is the single writer for a learner: ``record`` loads,
    updates, logs and saves in one call, in attempt order.
    """

    DEFAULT_DATA_DIR = Path.home() / ".mastery_path"

    def __init__(self, data_dir: Path | None = None, target_accuracy: int = 90, daily_goal_minutes: int = 10):
        """
        Initialize the store.

        Args:
            data_dir: Directory for ledger and log files (defaults to ~/.mastery_path)
            target_accuracy: Policy constant for ledgers created on first use
            daily_goal_minutes: Policy constant for ledgers created on first use
        """
        self.data_dir = Path(data_dir) if data_dir else self.DEFAULT_DATA_DIR
        self.data_dir.mkdir(parents=True, exist_ok=True)
        self.target_accuracy = target_accuracy
        self.daily_goal_minutes = daily_goal_minutes
        logger.debug(f"LedgerStore initialized at {self.data_dir}")

    def _checked_id(self, learner_id: str) -> str:
        if not LEARNER_ID_PATTERN.match(learner_id or ""):
            raise ValidationError(f"invalid learner id {learner_id!r}")
        return learner_id

    def ledger_path(self, learner_id: str) -> Path:
        return self.data_dir / f"{self._checked_id(learner_id)}.ledger.json"

    def log_path(self, learner_id: str) -> Path:
        return self.data_dir / f"{self._checked_id(learner_id)}.attempts.jsonl"

    def load(self, learner_id: str) -> Ledger:
        """Load a learner's ledger, or a fresh one on first use."""
        path = self.ledger_path(learner_id)
        if not path.exists():
            return Ledger.initial(self.target_accuracy, self.daily_goal_minutes)
        try:
            return ledger_from_json(path.read_bytes())
        except LedgerDocumentError as e:
            raise LedgerDocumentError(f"{path}: {e}") from e

    def save(self, learner_id: str, ledger: Ledger) -> None:
        """Write the ledger atomically (temp file + rename)."""
        path = self.ledger_path(learner_id)
        fd, tmp_name = tempfile.mkstemp(dir=self.data_dir, prefix=f".{learner_id}.", suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(ledger_to_json(ledger))
            os.replace(tmp_name, path)
        except OSError:
            Path(tmp_name).unlink(missing_ok=True)
            raise
        logger.info(f"Saved ledger for {learner_id} (stage {ledger.current_stage})")

    def append_attempt(self, learner_id: str, attempt: Attempt) -> None:
        line = AttemptDocument.from_attempt(attempt).model_dump_json(by_alias=True)
        with self.log_path(learner_id).open("a", encoding="utf-8") as f:
            f.write(line + "\n")

    def attempts(self, learner_id: str) -> list[Attempt]:
        """All logged attempts for a learner, in chronological order."""
        path = self.log_path(learner_id)
        if not path.exists():
            return []

        records = []
        with path.open("rb") as f:
            for line_no, line in enumerate(f, start=1):
                if not line.strip():
                    continue
                try:
                    records.append(AttemptDocument.model_validate_json(line.decode("utf-8")).to_attempt())
                except (PydanticValidationError, UnicodeDecodeError) as e:
                    raise LedgerDocumentError(f"{path}:{line_no}: invalid attempt: {e}") from e
        return sorted(records, key=lambda a: a.timestamp)

    def record(self, learner_id: str, attempt: Attempt, tier: Tier) -> Ledger:
        """
        Apply an attempt, log it and persist the new ledger.

        Raises:
            ValidationError: Malformed attempt (nothing is written)
        """
        ledger = update(self.load(learner_id), attempt, tier)
        self.append_attempt(learner_id, attempt)
        self.save(learner_id, ledger)
        return ledger

    def rehydrate(self, learner_id: str, tier: Tier) -> Ledger:
        """
        Rebuild a learner's ledger from the attempt log and save it.

        Policy constants of the stored ledger are kept when it is readable.
        """
        try:
            stored = self.load(learner_id)
        except LedgerDocumentError as e:
            logger.warning(f"Stored ledger for {learner_id} unreadable, rebuilding from log: {e}")
            stored = Ledger.initial(self.target_accuracy, self.daily_goal_minutes)

        history = self.attempts(learner_id)
        ledger = replay(history, tier, initial=stored)
        self.save(learner_id, ledger)
        logger.info(f"Rehydrated {learner_id} from {len(history)} attempts")
        return ledger

