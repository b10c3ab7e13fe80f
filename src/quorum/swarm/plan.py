"""Task plans: the planner's output shape, and a sequential driver.

A plan is a JSON array of task objects (or ``{"tasks": [...]}``)::

    [
      {"id": "t1", "description": "...", "instruction": "...",
       "isolated_input": "...", "weight": 5}
    ]

Tasks run one at a time, in plan order. A collapsed task is recorded
and the driver moves on; cancellation stops the whole plan.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING

from pydantic import AliasChoices, BaseModel, Field, ValidationError

from quorum.core.errors import PlanError, SwarmCollapsedError
from quorum.swarm.models import AtomicTask

if TYPE_CHECKING:
    import asyncio
    from collections.abc import Callable

    from quorum.swarm.engine import StatusCallback, SwarmEngine
    from quorum.swarm.models import SwarmResult

logger = logging.getLogger(__name__)


class _TaskEntry(BaseModel):
    id: str | None = None
    description: str = ""
    instruction: str = Field(min_length=1)
    isolated_input: str = Field(
        default="",
        validation_alias=AliasChoices("isolated_input", "isolatedInput"),
    )
    weight: float = 1.0


class _Plan(BaseModel):
    tasks: list[_TaskEntry]


@dataclass(frozen=True, slots=True)
class PlanOutcome:
    """What happened to one task of a plan."""

    task: AtomicTask
    result: SwarmResult | None = None
    error: SwarmCollapsedError | None = None

    @property
    def ok(self) -> bool:
        return self.result is not None


def parse_plan(text: str) -> list[AtomicTask]:
    """Parse plan JSON into atomic tasks.

    Tasks without an ``id`` get ``ATOM_<n>`` (1-based position).

    Raises:
        PlanError: Invalid JSON, schema violation, empty plan, or
            duplicate task ids.
    """
    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        msg = f"Plan is not valid JSON: {e}"
        raise PlanError(msg) from e

    if isinstance(data, list):
        data = {"tasks": data}

    try:
        plan = _Plan.model_validate(data)
    except ValidationError as e:
        msg = f"Plan validation failed: {e}"
        raise PlanError(msg) from e

    if not plan.tasks:
        msg = "Plan contains no tasks"
        raise PlanError(msg)

    tasks: list[AtomicTask] = []
    seen: set[str] = set()
    for i, entry in enumerate(plan.tasks, 1):
        task_id = entry.id or f"ATOM_{i}"
        if task_id in seen:
            msg = f"Duplicate task id in plan: {task_id}"
            raise PlanError(msg)
        seen.add(task_id)
        tasks.append(
            AtomicTask(
                id=task_id,
                description=entry.description,
                instruction=entry.instruction,
                isolated_input=entry.isolated_input,
                weight=entry.weight,
            )
        )
    return tasks


def load_plan(path: str | Path) -> list[AtomicTask]:
    """Read a plan file. See :func:`parse_plan`."""
    p = Path(path)
    try:
        text = p.read_text(encoding="utf-8")
    except OSError as e:
        msg = f"Cannot read plan file {p}: {e}"
        raise PlanError(msg) from e
    return parse_plan(text)


async def run_plan(
    engine: SwarmEngine,
    tasks: list[AtomicTask],
    *,
    on_status: StatusCallback | None = None,
    on_task_start: Callable[[AtomicTask, int, int], None] | None = None,
    on_outcome: Callable[[PlanOutcome], None] | None = None,
    cancel: asyncio.Event | None = None,
) -> list[PlanOutcome]:
    """Run every task through *engine* in order.

    Raises:
        SwarmCancelledError: *cancel* was set; earlier outcomes are lost
            to the caller unless collected through *on_outcome*.
    """
    outcomes: list[PlanOutcome] = []
    total = len(tasks)
    for index, task in enumerate(tasks, 1):
        if on_task_start is not None:
            on_task_start(task, index, total)
        try:
            result = await engine.run(task, on_status, cancel=cancel)
        except SwarmCollapsedError as e:
            outcome = PlanOutcome(task=task, error=e)
        else:
            outcome = PlanOutcome(task=task, result=result)

        outcomes.append(outcome)
        if on_outcome is not None:
            on_outcome(outcome)

    failed = sum(1 for o in outcomes if not o.ok)
    logger.info("Plan finished: %d tasks, %d collapsed", total, failed)
    return outcomes
