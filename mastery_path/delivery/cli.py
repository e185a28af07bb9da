"""
Mastery Path: terminal interface for the times-table scheduler.

Commands:
- mastery-path plan      - Plan the next practice session
- mastery-path record    - Record one answered question
- mastery-path replay    - Rebuild a ledger from the attempt log
- mastery-path progress  - Show per-table progress
- mastery-path report    - Summarize logged attempts
- mastery-path heatmap   - Per-fact fluency grid
- mastery-path practice  - Free practice over chosen tables
"""
from __future__ import annotations

import random
import sys
import time
from typing import NoReturn, Optional

import typer
from loguru import logger
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from config import get_settings
from mastery_path.core.errors import LedgerDocumentError, ValidationError
from mastery_path.core.models import Attempt, Ledger, QuestionType, TableStatus
from mastery_path.core.policy import Tier
from mastery_path.delivery.ledger_store import LedgerStore
from mastery_path.delivery.session_report import FluencyStatus, fluency_grid, summarize, weakest_facts
from mastery_path.learning.session_composer import compose, compose_practice

# =============================================================================
# CLI Setup
# =============================================================================

app = typer.Typer(
    name="mastery-path",
    help="Mastery Path: adaptive times-table practice planner",
    no_args_is_help=True,
)
console = Console()

TYPE_STYLES = {
    QuestionType.DIRECT: "blue",
    QuestionType.MISSING_FACTOR: "magenta",
}


def _store() -> LedgerStore:
    settings = get_settings()
    return LedgerStore(
        settings.data_dir,
        target_accuracy=settings.target_accuracy,
        daily_goal_minutes=settings.daily_goal_minutes,
    )


def _tier(tier: Optional[Tier]) -> Tier:
    return tier or Tier(get_settings().default_tier)


def _fail(message: str) -> NoReturn:
    console.print(f"[bold red]{message}[/bold red]")
    raise typer.Exit(code=1)


def _load(store: LedgerStore, learner: str) -> Ledger:
    try:
        return store.load(learner)
    except (ValidationError, LedgerDocumentError) as e:
        _fail(str(e))


# =============================================================================
# Display Helpers
# =============================================================================


def display_stage_header(learner: str, ledger: Ledger, tier: Tier) -> None:
    console.print(Panel(
        f"Stage [bold cyan]{ledger.current_stage}[/bold cyan] of {tier.policy.max_stage}"
        f"  |  {ledger.total_attempts} attempts"
        f"  |  target {ledger.target_accuracy}%",
        title=f"[bold]{learner}[/bold] ({tier.value.lower()})",
        title_align="left",
        border_style="cyan",
    ))


# =============================================================================
# Commands
# =============================================================================


@app.command()
def plan(
    learner: str = typer.Argument(..., help="Learner id"),
    tier: Optional[Tier] = typer.Option(None, "--tier", "-t", case_sensitive=False, help="Learner tier"),
    length: Optional[int] = typer.Option(None, "--length", "-n", help="Number of questions"),
    seed: Optional[int] = typer.Option(None, "--seed", help="Fix the sampling seed"),
) -> None:
    """Plan the next practice session."""
    settings = get_settings()
    tier = _tier(tier)
    ledger = _load(_store(), learner)

    if seed is None:
        seed = settings.random_seed
    rng = random.Random(seed)

    try:
        questions = compose(ledger, tier, length if length is not None else settings.session_length, rng)
    except ValidationError as e:
        _fail(str(e))

    display_stage_header(learner, ledger, tier)

    table = Table(title=f"Session plan ({len(questions)} questions)")
    table.add_column("#", justify="right", style="dim")
    table.add_column("Question")
    table.add_column("Type")
    table.add_column("Answer", justify="right")
    table.add_column("Weight", justify="right", style="dim")

    for i, question in enumerate(questions, start=1):
        color = TYPE_STYLES[question.type]
        table.add_row(
            str(i),
            question.prompt,
            f"[{color}]{question.type.value.lower()}[/{color}]",
            str(question.correct_answer),
            f"{question.weight:g}",
        )
    console.print(table)


@app.command()
def record(
    learner: str = typer.Argument(..., help="Learner id"),
    table: int = typer.Argument(..., help="Table of the fact"),
    multiplier: int = typer.Argument(..., help="Multiplier of the fact"),
    correct: bool = typer.Option(True, "--correct/--wrong", help="Was the answer correct?"),
    time_ms: int = typer.Option(..., "--time-ms", help="Answer time in milliseconds"),
    tier: Optional[Tier] = typer.Option(None, "--tier", "-t", case_sensitive=False, help="Learner tier"),
    missing_factor: bool = typer.Option(False, "--missing-factor", help="Question asked for the factor"),
    timestamp: Optional[int] = typer.Option(None, "--timestamp", help="Epoch ms (defaults to now)"),
) -> None:
    """Record one answered question and update the ledger."""
    tier = _tier(tier)
    store = _store()
    before = _load(store, learner)

    attempt = Attempt(
        table=table,
        multiplier=multiplier,
        is_correct=correct,
        time_taken_ms=time_ms,
        timestamp=timestamp if timestamp is not None else int(time.time() * 1000),
        question_type=QuestionType.MISSING_FACTOR if missing_factor else QuestionType.DIRECT,
    )
    try:
        ledger = store.record(learner, attempt, tier)
    except ValidationError as e:
        _fail(f"Attempt rejected: {e}")

    stat = ledger.stat_for(table)
    streak = ledger.streak_for(table, multiplier)
    icon = "[green]✓[/green]" if correct else "[red]✗[/red]"
    console.print(
        f"{icon} {table} × {multiplier}  |  table {table}: "
        f"[{stat.status.color}]{stat.status.display_name}[/{stat.status.color}] "
        f"({stat.accuracy:.1f}%, {stat.avg_time / 1000:.1f}s)  |  streak {streak.streak if streak else 0}"
    )
    if ledger.current_stage != before.current_stage:
        console.print(
            f"[bold green]Stage {before.current_stage} → {ledger.current_stage}[/bold green]"
        )


@app.command()
def replay(
    learner: str = typer.Argument(..., help="Learner id"),
    tier: Optional[Tier] = typer.Option(None, "--tier", "-t", case_sensitive=False, help="Learner tier"),
) -> None:
    """Rebuild a learner's ledger from the attempt log."""
    tier = _tier(tier)
    try:
        ledger = _store().rehydrate(learner, tier)
    except (ValidationError, LedgerDocumentError) as e:
        _fail(str(e))

    console.print(f"[bold cyan]Rebuilt ledger for {learner}[/bold cyan]")
    display_stage_header(learner, ledger, tier)


@app.command()
def progress(
    learner: str = typer.Argument(..., help="Learner id"),
    tier: Optional[Tier] = typer.Option(None, "--tier", "-t", case_sensitive=False, help="Learner tier"),
) -> None:
    """Show per-table progress."""
    tier = _tier(tier)
    ledger = _load(_store(), learner)
    display_stage_header(learner, ledger, tier)

    table = Table()
    table.add_column("Table", justify="right")
    table.add_column("Status")
    table.add_column("Accuracy", justify="right")
    table.add_column("Avg time", justify="right")
    table.add_column("Attempts", justify="right")

    last = max([tier.policy.max_stage, *ledger.table_stats])
    for number in range(1, last + 1):
        stat = ledger.stat_for(number)
        status = stat.status
        marker = " ◀" if number == ledger.current_stage else ""
        table.add_row(
            f"{number}{marker}",
            f"[{status.color}]{status.emoji} {status.display_name}[/{status.color}]",
            f"{stat.accuracy:.0f}%" if status != TableStatus.NOT_STARTED else "-",
            f"{stat.avg_time / 1000:.1f}s" if status != TableStatus.NOT_STARTED else "-",
            str(stat.total_attempts),
        )
    console.print(table)


@app.command()
def report(
    learner: str = typer.Argument(..., help="Learner id"),
    limit: int = typer.Option(5, "--limit", help="Weakest facts to show"),
) -> None:
    """Summarize a learner's logged attempts."""
    try:
        attempts = _store().attempts(learner)
    except (ValidationError, LedgerDocumentError) as e:
        _fail(str(e))

    if not attempts:
        console.print("[yellow]No attempts recorded yet.[/yellow]")
        return

    summary = summarize(attempts)
    console.print(Panel(
        f"{summary.correct_answers}/{summary.total_questions} correct ({summary.accuracy}%)\n"
        f"{summary.encouragement}",
        title="[bold]Report[/bold]",
        border_style="green" if summary.accuracy >= 80 else "yellow",
    ))

    table = Table()
    table.add_column("Table", justify="right")
    table.add_column("Accuracy", justify="right")
    table.add_column("Avg correct time", justify="right")
    table.add_column("Attempts", justify="right")
    for number, tsum in sorted(summary.tables.items()):
        table.add_row(str(number), f"{tsum.accuracy}%", f"{tsum.avg_time_seconds}s", str(tsum.total_attempts))
    console.print(table)

    if summary.weak_tables:
        focus = ", ".join(str(t) for t in summary.weak_tables)
        console.print(f"Next time, try focusing on the [bold]{focus}[/bold] times tables.")

    weakest = weakest_facts(attempts, limit=limit)
    if weakest:
        facts = ", ".join(f"{t}×{m} ({n})" for (t, m), n in weakest)
        console.print(f"[dim]Most missed:[/dim] {facts}")


@app.command()
def heatmap(
    learner: str = typer.Argument(..., help="Learner id"),
) -> None:
    """Show per-fact accuracy as a table × multiplier grid."""
    try:
        attempts = _store().attempts(learner)
    except (ValidationError, LedgerDocumentError) as e:
        _fail(str(e))

    cells = fluency_grid(attempts)
    multipliers = sorted({m for _, m in cells})

    grid = Table(title=f"Fluency for {learner}")
    grid.add_column("×", justify="right", style="bold")
    for m in multipliers:
        grid.add_column(str(m), justify="center")

    for number in sorted({t for t, _ in cells}):
        row = []
        for m in multipliers:
            cell = cells.get((number, m))
            if cell is None or cell.status == FluencyStatus.UNTESTED:
                row.append("[dim]·[/dim]")
            else:
                row.append(f"[{cell.status.color}]{cell.accuracy}[/{cell.status.color}]")
        grid.add_row(str(number), *row)
    console.print(grid)

    legend = "  ".join(f"[{s.color}]■[/{s.color}] {s.value.lower()}" for s in FluencyStatus)
    console.print(legend)


def _parse_tables(raw: str) -> list[int]:
    try:
        return [int(part) for part in raw.split(",") if part.strip()]
    except ValueError:
        _fail(f"Tables must be comma-separated numbers, got {raw!r}")


@app.command()
def practice(
    learner: str = typer.Argument(..., help="Learner id"),
    tables: str = typer.Option(..., "--tables", help="Comma-separated tables, e.g. 3,4"),
    length: int = typer.Option(20, "--length", "-n", help="Maximum number of questions"),
    seed: Optional[int] = typer.Option(None, "--seed", help="Fix the shuffle seed"),
) -> None:
    """Plan a free-practice session over chosen tables (the ledger is not used)."""
    if seed is None:
        seed = get_settings().random_seed

    try:
        _store().ledger_path(learner)
        questions = compose_practice(_parse_tables(tables), random.Random(seed), length)
    except ValidationError as e:
        _fail(str(e))

    table = Table(title=f"Practice for {learner} ({len(questions)} questions)")
    table.add_column("#", justify="right", style="dim")
    table.add_column("Question")
    table.add_column("Type")
    table.add_column("Answer", justify="right")
    for i, question in enumerate(questions, start=1):
        color = TYPE_STYLES[question.type]
        table.add_row(
            str(i),
            question.prompt,
            f"[{color}]{question.type.value.lower()}[/{color}]",
            str(question.correct_answer),
        )
    console.print(table)


# =============================================================================
# Entry Point
# =============================================================================

def main() -> None:
    """CLI entry point."""
    settings = get_settings()

    # Configure logging
    logger.remove()
    logger.add(
        sys.stderr,
        level=settings.log_level,
        format="<level>{message}</level>",
    )
    if settings.log_file:
        logger.add(
            settings.log_file,
            level=settings.log_level,
            rotation="1 MB",
            format="{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | {name}:{function} - {message}",
        )

    app()


if __name__ == "__main__":
    main()
