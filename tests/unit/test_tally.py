"""Tests for the run-scoped vote tally."""

from __future__ import annotations

import pytest

from quorum.swarm.models import Accepted, KillReason, Rejected
from quorum.swarm.tally import Standing, VoteTally


def _vote(text: str) -> Accepted:
    return Accepted(text=text, key=text.strip().lower())


_KILL = Rejected(KillReason.MALFORMED)


class TestRecord:
    def test_empty(self):
        tally = VoteTally()
        assert tally.rounds == 0
        assert tally.killed == 0
        assert tally.accepted == 0
        assert tally.ranked() == []

    def test_vote_counts_round_and_bucket(self):
        tally = VoteTally()
        tally.record(_vote("A"))
        assert tally.rounds == 1
        assert tally.accepted == 1
        assert tally.ranked() == [("a", 1)]

    def test_kill_counts_round_not_vote(self):
        tally = VoteTally()
        tally.record(_KILL)
        assert tally.rounds == 1
        assert tally.killed == 1
        assert tally.accepted == 0
        assert tally.ranked() == []

    def test_same_key_accumulates(self):
        tally = VoteTally()
        tally.record(_vote("Paris"))
        tally.record(_vote("paris"))
        assert tally.ranked() == [("paris", 2)]

    def test_rounds_equal_accepted_plus_killed(self):
        tally = VoteTally()
        for v in [_vote("A"), _KILL, _vote("B"), _KILL, _vote("A")]:
            tally.record(v)
        assert tally.rounds == 5
        assert tally.rounds == tally.accepted + tally.killed
        assert sum(c for _, c in tally.ranked()) == tally.accepted


class TestStanding:
    def test_no_votes(self):
        assert VoteTally().standing() == Standing(None, 0, None, 0)

    def test_single_candidate_gap_is_its_count(self):
        tally = VoteTally()
        tally.record(_vote("A"))
        tally.record(_vote("A"))
        standing = tally.standing()
        assert standing.leader == "a"
        assert standing.runner_up is None
        assert standing.gap == 2

    def test_gap_is_top_minus_second(self):
        tally = VoteTally()
        for t in ["A", "B", "A", "C", "A"]:
            tally.record(_vote(t))
        standing = tally.standing()
        assert (standing.leader, standing.leader_count) == ("a", 3)
        assert (standing.runner_up, standing.runner_up_count) == ("b", 1)
        assert standing.gap == 2

    def test_tie_goes_to_first_seen(self):
        tally = VoteTally()
        for t in ["B", "A", "A", "B"]:
            tally.record(_vote(t))
        standing = tally.standing()
        assert standing.leader == "b"
        assert standing.runner_up == "a"
        assert standing.gap == 0

    def test_tie_for_second_goes_to_first_seen(self):
        tally = VoteTally()
        for t in ["C", "B", "A", "A"]:
            tally.record(_vote(t))
        assert tally.standing().runner_up == "c"

    def test_later_candidate_overtakes(self):
        tally = VoteTally()
        for t in ["A", "B", "B"]:
            tally.record(_vote(t))
        assert tally.standing().leader == "b"


class TestTexts:
    def test_first_seen_text_represents_bucket(self):
        tally = VoteTally()
        tally.record(Accepted(text="Paris", key="paris"))
        tally.record(Accepted(text="PARIS", key="paris"))
        assert tally.text_for("paris") == "Paris"

    def test_unknown_key(self):
        with pytest.raises(KeyError):
            VoteTally().text_for("nope")


class TestSnapshot:
    def test_snapshot_fields(self):
        tally = VoteTally()
        tally.record(_vote("A"))
        tally.record(_KILL)
        status = tally.snapshot("T1", 3)
        assert status.task_id == "T1"
        assert dict(status.votes) == {"a": 1}
        assert status.killed_agents == 1
        assert status.current_gap == 1
        assert status.target_gap == 3
        assert status.total_attempts == 2

    def test_snapshot_is_detached(self):
        tally = VoteTally()
        tally.record(_vote("A"))
        status = tally.snapshot("T1", 3)
        tally.record(_vote("A"))
        tally.record(_vote("B"))
        assert dict(status.votes) == {"a": 1}


class TestLedger:
    def test_requires_votes(self):
        tally = VoteTally()
        tally.record(_KILL)
        with pytest.raises(ValueError, match="without any accepted votes"):
            tally.ledger()

    def test_ledger_fields(self):
        tally = VoteTally()
        for v in [Accepted("Yes", "yes"), _KILL, Accepted("No", "no"), _vote("yes")]:
            tally.record(v)
        ledger = tally.ledger()
        assert ledger.winner == "Yes"
        assert ledger.count == 2
        assert ledger.runner_up == "No"
        assert ledger.runner_up_count == 1
        assert ledger.total_rounds == 4
        assert ledger.killed_agents == 1
        assert ledger.gap == 1

    def test_unopposed_runner_up_is_empty(self):
        tally = VoteTally()
        tally.record(_vote("A"))
        ledger = tally.ledger()
        assert ledger.runner_up == ""
        assert ledger.runner_up_count == 0

    def test_tallies_are_independent(self):
        first, second = VoteTally(), VoteTally()
        first.record(_vote("A"))
        assert second.rounds == 0
        assert second.ranked() == []
