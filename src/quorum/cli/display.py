"""Rich display for swarm runs.

Prints one line per round while a task runs, then a panel for the
verdict: a win with its rounds-to-converge, an exhaustion flagged as
low confidence, or a collapse shown as a distinct failure.
"""

from __future__ import annotations

import time
from typing import TYPE_CHECKING

from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from quorum.providers.base import ModelCapability
from quorum.swarm.models import SwarmOutcome

if TYPE_CHECKING:
    from collections.abc import Sequence

    from quorum.core.errors import SwarmCollapsedError
    from quorum.providers.base import ModelInfo
    from quorum.swarm.models import AtomicTask, SwarmResult, SwarmStatus, VoteLedger
    from quorum.swarm.plan import PlanOutcome

_TRUNCATE_LEN = 500


def _truncate(text: str, limit: int = _TRUNCATE_LEN) -> str:
    """Truncate text to *limit* characters with an ellipsis."""
    if len(text) <= limit:
        return text
    return text[:limit].rstrip() + " ..."


class SwarmDisplay:
    """Rich display for swarm progress and verdicts.

    Accepts an optional :class:`~rich.console.Console` for dependency
    injection in tests.
    """

    def __init__(self, console: Console | None = None, max_rounds: int = 0) -> None:
        self._console = console or Console()
        self._max_rounds = max_rounds
        self._start_time: float = 0.0
        self._last_killed = 0

    # ── Lifecycle ─────────────────────────────────────────────

    def start(self) -> None:
        self._start_time = time.monotonic()

    @property
    def elapsed(self) -> float:
        """Seconds elapsed since :meth:`start` was called."""
        if self._start_time == 0.0:
            return 0.0
        return time.monotonic() - self._start_time

    # ── Progress ──────────────────────────────────────────────

    def task_header(self, task: AtomicTask, index: int = 1, total: int = 1) -> None:
        """Print a separator before a task starts."""
        self._last_killed = 0
        title = f"[bold]Task {index}/{total}: {escape(task.id)}[/bold]"
        if task.description:
            title += f" ({escape(_truncate(task.description, 60))})"
        self._console.print()
        self._console.rule(title, style="cyan")

    def show_status(self, status: SwarmStatus) -> None:
        """Print one progress line for a round snapshot."""
        killed = status.killed_agents > self._last_killed
        self._last_killed = status.killed_agents

        line = Text()
        round_label = f"Round {status.total_attempts}"
        if self._max_rounds:
            round_label += f"/{self._max_rounds}"
        line.append(f"{round_label:<12}", style="dim")
        if killed:
            line.append("KILLED ", style="bold red")
        else:
            line.append("VOTE   ", style="green")
        line.append(f"gap {status.current_gap}/{status.target_gap}")
        line.append(f"  candidates {len(status.votes)}", style="dim")
        if status.killed_agents:
            line.append(f"  killed {status.killed_agents}", style="red")
        self._console.print(line)

    # ── Verdicts ──────────────────────────────────────────────

    def show_result(self, result: SwarmResult) -> None:
        """Display a win or an exhaustion (full, untruncated output)."""
        ledger = result.vote_ledger
        if result.outcome is SwarmOutcome.WON:
            title = "[bold green]CONSENSUS[/bold green]"
            border = "green"
            footer = (
                f"Converged in {ledger.total_rounds} rounds | "
                f"Lead: +{ledger.gap} | Confidence: {result.confidence}%"
            )
        else:
            title = "[bold yellow]LOW CONFIDENCE[/bold yellow] (round cap reached)"
            border = "yellow"
            footer = (
                f"No {ledger.total_rounds}-round consensus | "
                f"Lead: +{ledger.gap} | Confidence: {result.confidence}%"
            )

        self._console.print(
            Panel(Text(result.output), title=title, border_style=border)
        )
        self._console.print(
            f"{footer} | Agent: {result.agent_id} | {result.execution_time:.1f}s"
        )

    def show_collapse(self, error: SwarmCollapsedError) -> None:
        """Display a collapse. Never rendered as an empty answer."""
        self._console.print(
            Panel(
                f"All {error.rounds} attempts were killed. No answer was accepted.",
                title=(
                    f"[bold red]SWARM COLLAPSED[/bold red] ({escape(error.task_id)})"
                ),
                border_style="red",
            )
        )

    def show_ledger(self, ledger: VoteLedger) -> None:
        """Display the vote ledger as a table."""
        table = Table(title="Vote ledger", show_header=True)
        table.add_column("Role")
        table.add_column("Answer")
        table.add_column("Votes", justify="right")
        table.add_row(
            "winner", Text(_truncate(ledger.winner, 80)), str(ledger.count)
        )
        table.add_row(
            "runner-up",
            Text(_truncate(ledger.runner_up, 80) or "-"),
            str(ledger.runner_up_count),
        )
        table.caption = (
            f"{ledger.total_rounds} rounds, {ledger.killed_agents} killed"
        )
        self._console.print(table)

    def show_cancelled(self, task_id: str, rounds: int) -> None:
        self._console.print(
            f"[bold yellow]Cancelled[/bold yellow] task {escape(task_id)} "
            f"after {rounds} rounds"
        )

    # ── Plans and models ──────────────────────────────────────

    def show_plan_summary(self, outcomes: Sequence[PlanOutcome]) -> None:
        """Display one row per task of a finished plan."""
        table = Table(title="Plan summary", show_header=True)
        table.add_column("Task")
        table.add_column("Verdict")
        table.add_column("Confidence", justify="right")
        table.add_column("Rounds", justify="right")
        table.add_column("Killed", justify="right")
        table.add_column("Answer")

        for outcome in outcomes:
            if outcome.result is not None:
                r = outcome.result
                verdict = "won" if r.converged else "low confidence"
                table.add_row(
                    Text(outcome.task.id),
                    verdict,
                    f"{r.confidence}%",
                    str(r.vote_ledger.total_rounds),
                    str(r.vote_ledger.killed_agents),
                    Text(_truncate(r.output, 60)),
                )
            elif outcome.error is not None:
                table.add_row(
                    Text(outcome.task.id),
                    "[red]collapsed[/red]",
                    "-",
                    str(outcome.error.rounds),
                    str(outcome.error.killed),
                    "-",
                )

        self._console.print()
        self._console.print(table)
        self._console.print(f"Elapsed: {self.elapsed:.1f}s", style="dim")

    def show_models(self, models: Sequence[ModelInfo], default_ref: str) -> None:
        table = Table(show_header=True)
        table.add_column("Model")
        table.add_column("Name")
        table.add_column("JSON mode")
        table.add_column("$/Mtok in/out", justify="right")
        for m in models:
            ref = m.model_ref
            if ref == default_ref:
                ref += " (default)"
            json_mode = "yes" if ModelCapability.JSON_MODE in m.capabilities else "no"
            table.add_row(
                ref,
                m.display_name,
                json_mode,
                f"{m.input_cost_per_mtok:.2f}/{m.output_cost_per_mtok:.2f}",
            )
        self._console.print(table)
