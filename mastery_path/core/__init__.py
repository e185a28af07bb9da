"""
Core Module - Shared ledger models, tier policy and errors.

Components:
- models: Ledger, TableStat, FactStreak, Attempt, QuestionCandidate
- policy: Tier, TierPolicy and the numeric thresholds
- errors: MasteryPathError hierarchy

Design Principle:
The learning and delivery packages import from mastery_path.core rather
than redefining shared concepts.
"""

from mastery_path.core.errors import LedgerDocumentError, MasteryPathError, ValidationError
from mastery_path.core.models import (
    Attempt,
    FactKey,
    FactStreak,
    Ledger,
    QuestionCandidate,
    QuestionType,
    TableStat,
    TableStatus,
)
from mastery_path.core.policy import TIER_POLICIES, Tier, TierPolicy, tier_for_grade

__all__ = [
    # Models
    "Attempt",
    "FactKey",
    "FactStreak",
    "Ledger",
    "QuestionCandidate",
    "QuestionType",
    "TableStat",
    "TableStatus",
    # Policy
    "Tier",
    "TierPolicy",
    "TIER_POLICIES",
    "tier_for_grade",
    # Errors
    "MasteryPathError",
    "ValidationError",
    "LedgerDocumentError",
]
