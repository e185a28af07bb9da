"""
Delivery: collaborators around the scheduler.

Components:
- LedgerStore: JSON ledger documents and the attempt log
- session_report: plain-accuracy summaries, most-missed facts, fluency grid
- cli: Rich/Typer terminal interface
"""

from .ledger_store import LedgerDocument, LedgerStore, ledger_from_json, ledger_to_json
from .session_report import (
    FluencyCell,
    FluencyStatus,
    SessionSummary,
    TableSummary,
    fluency_grid,
    summarize,
    weakest_facts,
)

__all__ = [
    # Persistence
    "LedgerStore",
    "LedgerDocument",
    "ledger_from_json",
    "ledger_to_json",
    # Reporting
    "SessionSummary",
    "TableSummary",
    "summarize",
    "weakest_facts",
    "FluencyCell",
    "FluencyStatus",
    "fluency_grid",
]
