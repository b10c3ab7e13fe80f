"""Swarm data model: tasks, progress snapshots, ledgers, results.

Everything here is immutable. ``SwarmStatus`` snapshots are created and
thrown away once per round; ``SwarmResult`` is created once per task.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Mapping

AGENT_CONSENSUS = "SWARM_CONSENSUS"
AGENT_TIMEOUT = "SWARM_TIMEOUT"


class SwarmOutcome(enum.Enum):
    """States of one engine run."""

    RUNNING = "running"
    WON = "won"
    EXHAUSTED = "exhausted"
    COLLAPSED = "collapsed"
    CANCELLED = "cancelled"


class KillReason(enum.Enum):
    """Why an attempt was discarded without voting."""

    OVERSIZE = "oversize"
    MALFORMED = "malformed"
    MISSING_FIELD = "missing_field"
    EMPTY = "empty"
    TRANSPORT = "transport"


@dataclass(frozen=True, slots=True)
class AtomicTask:
    """A self-contained unit of work.

    ``instruction`` and ``isolated_input`` are the only things an
    attempt ever sees. ``description`` and ``weight`` are for callers.
    """

    id: str
    instruction: str
    isolated_input: str = ""
    description: str = ""
    weight: float = 1.0


# ── Watchdog verdicts ─────────────────────────────────────────


@dataclass(frozen=True, slots=True)
class Accepted:
    """An attempt whose answer is admissible as a vote."""

    text: str  # original answer, untruncated
    key: str  # normalized voting bucket


@dataclass(frozen=True, slots=True)
class Rejected:
    """An attempt that was killed. It never votes."""

    reason: KillReason
    detail: str = ""


Verdict = Accepted | Rejected


# ── Progress and results ──────────────────────────────────────


@dataclass(frozen=True, slots=True)
class SwarmStatus:
    """Point-in-time progress snapshot, emitted once per round."""

    task_id: str
    votes: Mapping[str, int]
    killed_agents: int
    current_gap: int
    target_gap: int
    total_attempts: int

    def __post_init__(self) -> None:
        # Detach from the live tally so later rounds cannot mutate it.
        object.__setattr__(self, "votes", MappingProxyType(dict(self.votes)))


@dataclass(frozen=True, slots=True)
class VoteLedger:
    """Audit record of the final tally."""

    winner: str
    count: int
    runner_up: str
    runner_up_count: int
    total_rounds: int
    killed_agents: int

    @property
    def gap(self) -> int:
        return self.count - self.runner_up_count


@dataclass(frozen=True, slots=True)
class SwarmResult:
    """The adjudicated answer for one task."""

    task_id: str
    output: str
    confidence: int  # 0-100
    agent_id: str
    execution_time: float  # seconds
    vote_ledger: VoteLedger
    outcome: SwarmOutcome = field(default=SwarmOutcome.WON)

    @property
    def converged(self) -> bool:
        """True when the win condition was met, False on exhaustion."""
        return self.outcome is SwarmOutcome.WON
