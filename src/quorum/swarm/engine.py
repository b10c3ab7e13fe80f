"""Swarm consensus engine: race-to-a-lead voting over stateless attempts.

Each round spawns one fresh attempt that sees only the task's
instruction and input. The red-flag watchdog either admits its answer
as a vote or kills it. The run stops as soon as the leading answer is
``target_gap`` votes ahead of the runner-up (gambler's-ruin stopping
rule), or when ``max_rounds`` attempts have been spent.

Terminal states:

    WON        leader ahead by >= K      -> SwarmResult, SWARM_CONSENSUS
    EXHAUSTED  round cap, some votes     -> SwarmResult, SWARM_TIMEOUT
    COLLAPSED  round cap, zero votes     -> SwarmCollapsedError
    CANCELLED  caller set the cancel event -> SwarmCancelledError
"""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass
from typing import TYPE_CHECKING

from quorum.core.errors import (
    CostLimitExceededError,
    SwarmCancelledError,
    SwarmCollapsedError,
)
from quorum.swarm.models import (
    AGENT_CONSENSUS,
    AGENT_TIMEOUT,
    KillReason,
    Rejected,
    SwarmOutcome,
    SwarmResult,
)
from quorum.swarm.tally import VoteTally
from quorum.swarm.watchdog import RedFlagWatchdog

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

    from quorum.config.schema import SwarmConfig
    from quorum.swarm.models import AtomicTask, SwarmStatus, Verdict

    InferenceFn = Callable[[str, str], Awaitable[str]]
    StatusCallback = Callable[[SwarmStatus], None]

logger = logging.getLogger(__name__)

SEQUENTIAL = "sequential"
POOL = "pool"


@dataclass(frozen=True, slots=True)
class SwarmSettings:
    """Constants for one engine. Defaults are the reference values."""

    target_gap: int = 3
    max_rounds: int = 15
    round_delay: float = 0.2
    max_response_chars: int = 3000
    max_key_chars: int = 200
    answer_field: str = "output"
    win_confidence_base: int = 80
    win_confidence_step: int = 5
    win_confidence_cap: int = 99
    attempt_timeout: float | None = 60.0
    scheduling: str = SEQUENTIAL
    workers: int = 4

    @classmethod
    def from_config(cls, config: SwarmConfig) -> SwarmSettings:
        return cls(
            target_gap=config.target_gap,
            max_rounds=config.max_rounds,
            round_delay=config.round_delay,
            max_response_chars=config.max_response_chars,
            max_key_chars=config.max_key_chars,
            answer_field=config.answer_field,
            win_confidence_base=config.win_confidence_base,
            win_confidence_step=config.win_confidence_step,
            win_confidence_cap=config.win_confidence_cap,
            attempt_timeout=config.attempt_timeout,
            scheduling=config.scheduling,
            workers=config.workers,
        )

    def win_confidence(self, gap: int) -> int:
        """Capped linear function of the gap. Not a calibrated probability."""
        return min(
            self.win_confidence_cap,
            self.win_confidence_base + gap * self.win_confidence_step,
        )

    @staticmethod
    def exhaustion_confidence(leader_count: int, rounds: int) -> int:
        """Plain empirical win rate as a floored percentage."""
        if rounds <= 0:
            return 0
        return leader_count * 100 // rounds


class SwarmEngine:
    """Runs the voting protocol for one atomic task at a time.

    The engine itself holds only configuration and the inference
    function. All per-run state lives in a fresh :class:`VoteTally`.
    """

    def __init__(
        self,
        infer: InferenceFn,
        settings: SwarmSettings | None = None,
    ) -> None:
        self._infer = infer
        self.settings = settings or SwarmSettings()
        self._watchdog = RedFlagWatchdog(
            max_response_chars=self.settings.max_response_chars,
            answer_field=self.settings.answer_field,
            max_key_chars=self.settings.max_key_chars,
        )

    async def run(
        self,
        task: AtomicTask,
        on_status: StatusCallback | None = None,
        *,
        cancel: asyncio.Event | None = None,
    ) -> SwarmResult:
        """Adjudicate *task* and return the winning answer.

        Args:
            task: The unit of work.
            on_status: Called synchronously with a snapshot after every
                round, whether the round voted or was killed.
            cancel: Optional event; once set, no new attempts are
                issued and :class:`SwarmCancelledError` is raised.

        Raises:
            SwarmCollapsedError: Every attempt was killed.
            SwarmCancelledError: *cancel* was set before a verdict.
            CostLimitExceededError: The provider budget ran out.
        """
        start = time.monotonic()
        tally = VoteTally()

        if self.settings.scheduling == POOL:
            won = await self._run_pool(task, tally, on_status, cancel)
        else:
            won = await self._run_sequential(task, tally, on_status, cancel)

        return self._conclude(task, tally, won, time.monotonic() - start)

    # ── Scheduling ───────────────────────────────────────────────

    async def _run_sequential(
        self,
        task: AtomicTask,
        tally: VoteTally,
        on_status: StatusCallback | None,
        cancel: asyncio.Event | None,
    ) -> bool:
        """One attempt in flight; each round finishes before the next."""
        s = self.settings
        while tally.rounds < s.max_rounds:
            self._check_cancel(task, tally, cancel)
            verdict = await self._attempt(task)
            self._check_cancel(task, tally, cancel)

            if self._absorb(task, tally, verdict, on_status):
                return True

            if tally.rounds < s.max_rounds and s.round_delay > 0:
                await asyncio.sleep(s.round_delay)
        return False

    async def _run_pool(
        self,
        task: AtomicTask,
        tally: VoteTally,
        on_status: StatusCallback | None,
        cancel: asyncio.Event | None,
    ) -> bool:
        """Up to ``workers`` attempts in flight at once.

        Snapshots are emitted in arrival order, not dispatch order.
        ``round_delay`` is not applied; the worker bound is the throttle.
        """
        s = self.settings
        pending: set[asyncio.Task[Verdict]] = set()
        dispatched = 0

        try:
            while True:
                self._check_cancel(task, tally, cancel)
                while dispatched < s.max_rounds and len(pending) < s.workers:
                    pending.add(asyncio.create_task(self._attempt(task)))
                    dispatched += 1
                if not pending:
                    return False

                done, pending = await asyncio.wait(
                    pending, return_when=asyncio.FIRST_COMPLETED
                )
                self._check_cancel(task, tally, cancel)

                for finished in done:
                    verdict = finished.result()
                    # Only this coroutine touches the tally, and _absorb never
                    # awaits, so the update and the win check are atomic.
                    if self._absorb(task, tally, verdict, on_status):
                        return True
        finally:
            for straggler in pending:
                straggler.cancel()
            if pending:
                await asyncio.gather(*pending, return_exceptions=True)

    # ── Per-round steps ──────────────────────────────────────────

    async def _attempt(self, task: AtomicTask) -> Verdict:
        """Run one stateless attempt and pass it through the watchdog.

        Only the instruction and isolated input reach the inference
        function. Transport failures become kills, never retries.
        """
        try:
            raw = await asyncio.wait_for(
                self._infer(task.instruction, task.isolated_input),
                timeout=self.settings.attempt_timeout,
            )
        except CostLimitExceededError:
            raise
        except Exception as e:
            logger.warning("Attempt on task %s failed: %s", task.id, e)
            return Rejected(KillReason.TRANSPORT, str(e) or type(e).__name__)
        return self._watchdog.inspect(raw)

    def _absorb(
        self,
        task: AtomicTask,
        tally: VoteTally,
        verdict: Verdict,
        on_status: StatusCallback | None,
    ) -> bool:
        """Record *verdict*, emit a snapshot, and report whether K is met."""
        tally.record(verdict)
        if isinstance(verdict, Rejected):
            logger.debug(
                "Task %s round %d killed (%s): %s",
                task.id,
                tally.rounds,
                verdict.reason.value,
                verdict.detail,
            )

        gap = tally.standing().gap
        if on_status is not None:
            status = tally.snapshot(task.id, self.settings.target_gap)
            try:
                on_status(status)
            except Exception:
                logger.exception("Status observer failed on task %s", task.id)

        return gap >= self.settings.target_gap

    def _check_cancel(
        self,
        task: AtomicTask,
        tally: VoteTally,
        cancel: asyncio.Event | None,
    ) -> None:
        if cancel is not None and cancel.is_set():
            logger.info("Task %s cancelled after %d rounds", task.id, tally.rounds)
            raise SwarmCancelledError(task.id, tally.rounds)

    # ── Termination ──────────────────────────────────────────────

    def _conclude(
        self,
        task: AtomicTask,
        tally: VoteTally,
        won: bool,
        elapsed: float,
    ) -> SwarmResult:
        standing = tally.standing()
        if standing.leader is None:
            logger.warning(
                "Task %s collapsed: all %d attempts killed", task.id, tally.rounds
            )
            raise SwarmCollapsedError(task.id, tally.rounds, tally.killed)

        ledger = tally.ledger()
        if won:
            outcome = SwarmOutcome.WON
            confidence = self.settings.win_confidence(ledger.gap)
            agent_id = AGENT_CONSENSUS
        else:
            outcome = SwarmOutcome.EXHAUSTED
            confidence = self.settings.exhaustion_confidence(
                ledger.count, tally.rounds
            )
            agent_id = AGENT_TIMEOUT

        logger.info(
            "Task %s %s after %d rounds (+%d, %d killed, confidence %d)",
            task.id,
            outcome.value,
            tally.rounds,
            ledger.gap,
            tally.killed,
            confidence,
        )
        return SwarmResult(
            task_id=task.id,
            output=ledger.winner,
            confidence=confidence,
            agent_id=agent_id,
            execution_time=elapsed,
            vote_ledger=ledger,
            outcome=outcome,
        )
