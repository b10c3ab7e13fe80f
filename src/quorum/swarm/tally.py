"""Run-scoped vote tally.

One ``VoteTally`` belongs to exactly one engine run. Nothing here is
shared between tasks or kept at module level.
"""

from __future__ import annotations

from dataclasses import dataclass

from quorum.swarm.models import Rejected, SwarmStatus, Verdict, VoteLedger


@dataclass(frozen=True, slots=True)
class Standing:
    """Leader and runner-up at one point in a run."""

    leader: str | None
    leader_count: int
    runner_up: str | None
    runner_up_count: int

    @property
    def gap(self) -> int:
        return self.leader_count - self.runner_up_count


class VoteTally:
    """Votes, rounds, and kills for a single task run.

    Ties are broken by first-seen order: candidates are kept in
    insertion order and ranked with a stable sort, so the earliest
    answer wins any tie at the top.
    """

    def __init__(self) -> None:
        self._votes: dict[str, int] = {}
        self._texts: dict[str, str] = {}  # key -> first-seen original text
        self.rounds = 0
        self.killed = 0

    @property
    def accepted(self) -> int:
        return self.rounds - self.killed

    def record(self, verdict: Verdict) -> None:
        """Count one completed attempt."""
        self.rounds += 1
        if isinstance(verdict, Rejected):
            self.killed += 1
            return
        self._votes[verdict.key] = self._votes.get(verdict.key, 0) + 1
        self._texts.setdefault(verdict.key, verdict.text)

    def ranked(self) -> list[tuple[str, int]]:
        """Candidates by count descending, ties in first-seen order."""
        return sorted(self._votes.items(), key=lambda item: -item[1])

    def standing(self) -> Standing:
        ranked = self.ranked()
        if not ranked:
            return Standing(None, 0, None, 0)
        leader, leader_count = ranked[0]
        if len(ranked) == 1:
            return Standing(leader, leader_count, None, 0)
        runner_up, runner_up_count = ranked[1]
        return Standing(leader, leader_count, runner_up, runner_up_count)

    def text_for(self, key: str) -> str:
        """Original (untruncated) answer text for a voting key."""
        return self._texts[key]

    def snapshot(self, task_id: str, target_gap: int) -> SwarmStatus:
        return SwarmStatus(
            task_id=task_id,
            votes=self._votes,
            killed_agents=self.killed,
            current_gap=self.standing().gap,
            target_gap=target_gap,
            total_attempts=self.rounds,
        )

    def ledger(self) -> VoteLedger:
        """Build the audit ledger. Requires at least one accepted vote."""
        standing = self.standing()
        if standing.leader is None:
            msg = "Cannot build a ledger without any accepted votes"
            raise ValueError(msg)
        return VoteLedger(
            winner=self.text_for(standing.leader),
            count=standing.leader_count,
            runner_up=(
                self.text_for(standing.runner_up)
                if standing.runner_up is not None
                else ""
            ),
            runner_up_count=standing.runner_up_count,
            total_rounds=self.rounds,
            killed_agents=self.killed,
        )
