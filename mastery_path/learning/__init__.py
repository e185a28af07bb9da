"""
Learning: the adaptive times-table scheduler.

This package contains the scheduling logic:
- ledger_updater: apply attempts to a ledger, replay a full history
- candidate_weighter: per-fact sampling weights and candidate pools
- session_composer: weighted session planning with streak-gated formats,
  plus free practice over hand-picked tables
"""

# Re-export key components for convenience
from mastery_path.learning.candidate_weighter import (
    WeightedFact,
    active_pool,
    mastered_below_stage,
    review_pool,
    weight,
)
from mastery_path.learning.ledger_updater import classify_status, replay, update, validate_attempt
from mastery_path.learning.session_composer import WeightedSampler, compose, compose_practice

__all__ = [
    # Updater
    "update",
    "replay",
    "classify_status",
    "validate_attempt",
    # Weighting
    "weight",
    "WeightedFact",
    "active_pool",
    "review_pool",
    "mastered_below_stage",
    # Composition
    "compose",
    "compose_practice",
    "WeightedSampler",
]
