"""Tests for plan parsing and the sequential plan driver."""

from __future__ import annotations

import asyncio
import json

import pytest

from quorum.core.errors import PlanError, SwarmCancelledError
from quorum.swarm.engine import SwarmEngine
from quorum.swarm.models import AtomicTask
from quorum.swarm.plan import PlanOutcome, load_plan, parse_plan, run_plan
from tests.fixtures.inference import ScriptedInference
from tests.fixtures.responses import ALL_KILLED_15, UNANIMOUS, B

# ── parse_plan ───────────────────────────────────────────────────


class TestParsePlan:
    def test_list_form(self):
        tasks = parse_plan(
            json.dumps(
                [
                    {
                        "id": "t1",
                        "description": "first",
                        "instruction": "Do one thing.",
                        "isolated_input": "data",
                        "weight": 5,
                    }
                ]
            )
        )
        assert tasks == [
            AtomicTask(
                id="t1",
                description="first",
                instruction="Do one thing.",
                isolated_input="data",
                weight=5,
            )
        ]

    def test_object_form(self):
        tasks = parse_plan(json.dumps({"tasks": [{"instruction": "x"}]}))
        assert len(tasks) == 1

    def test_missing_ids_are_positional(self):
        tasks = parse_plan(
            json.dumps(
                [
                    {"instruction": "a"},
                    {"id": "mine", "instruction": "b"},
                    {"instruction": "c"},
                ]
            )
        )
        assert [t.id for t in tasks] == ["ATOM_1", "mine", "ATOM_3"]

    def test_camel_case_input_accepted(self):
        tasks = parse_plan(json.dumps([{"instruction": "x", "isolatedInput": "y"}]))
        assert tasks[0].isolated_input == "y"

    def test_defaults(self):
        task = parse_plan(json.dumps([{"instruction": "x"}]))[0]
        assert task.isolated_input == ""
        assert task.description == ""
        assert task.weight == 1.0

    def test_invalid_json(self):
        with pytest.raises(PlanError, match="not valid JSON"):
            parse_plan("[{")

    def test_missing_instruction(self):
        with pytest.raises(PlanError, match="validation failed"):
            parse_plan(json.dumps([{"id": "t1"}]))

    def test_blank_instruction(self):
        with pytest.raises(PlanError):
            parse_plan(json.dumps([{"instruction": ""}]))

    def test_empty_plan(self):
        with pytest.raises(PlanError, match="no tasks"):
            parse_plan("[]")

    def test_duplicate_ids(self):
        text = json.dumps(
            [{"id": "t", "instruction": "a"}, {"id": "t", "instruction": "b"}]
        )
        with pytest.raises(PlanError, match="Duplicate task id in plan: t"):
            parse_plan(text)

    def test_not_a_plan(self):
        with pytest.raises(PlanError):
            parse_plan('"just a string"')


class TestLoadPlan:
    def test_reads_file(self, tmp_path):
        path = tmp_path / "plan.json"
        path.write_text(json.dumps([{"instruction": "x"}]))
        assert load_plan(path)[0].instruction == "x"

    def test_missing_file(self, tmp_path):
        with pytest.raises(PlanError, match="Cannot read plan file"):
            load_plan(tmp_path / "missing.json")


# ── run_plan ─────────────────────────────────────────────────────


class TestRunPlan:
    async def test_runs_in_order(self, make_task, settings):
        infer = ScriptedInference(UNANIMOUS + [B, B, B])
        tasks = [make_task(id="T1"), make_task(id="T2")]
        started = []
        outcomes = await run_plan(
            SwarmEngine(infer, settings),
            tasks,
            on_task_start=lambda task, i, n: started.append((task.id, i, n)),
        )
        assert started == [("T1", 1, 2), ("T2", 2, 2)]
        assert [o.result.output for o in outcomes] == ["A", "B"]
        assert all(o.ok for o in outcomes)

    async def test_collapse_is_recorded_and_plan_continues(self, make_task, settings):
        infer = ScriptedInference(ALL_KILLED_15 + UNANIMOUS)
        outcomes = await run_plan(
            SwarmEngine(infer, settings), [make_task(id="bad"), make_task(id="good")]
        )
        bad, good = outcomes
        assert not bad.ok
        assert bad.error is not None
        assert bad.error.rounds == 15
        assert good.ok

    async def test_outcomes_reported_as_they_finish(self, make_task, settings):
        infer = ScriptedInference(UNANIMOUS * 2)
        seen: list[PlanOutcome] = []
        outcomes = await run_plan(
            SwarmEngine(infer, settings),
            [make_task(id="T1"), make_task(id="T2")],
            on_outcome=seen.append,
        )
        assert seen == outcomes

    async def test_status_forwarded(self, make_task, settings):
        statuses = []
        await run_plan(
            SwarmEngine(ScriptedInference(UNANIMOUS), settings),
            [make_task()],
            on_status=statuses.append,
        )
        assert len(statuses) == 3

    async def test_cancel_stops_plan(self, make_task, settings):
        cancel = asyncio.Event()
        seen: list[PlanOutcome] = []

        def on_outcome(outcome):
            seen.append(outcome)
            cancel.set()

        infer = ScriptedInference(UNANIMOUS * 2)
        with pytest.raises(SwarmCancelledError) as exc_info:
            await run_plan(
                SwarmEngine(infer, settings),
                [make_task(id="T1"), make_task(id="T2")],
                on_outcome=on_outcome,
                cancel=cancel,
            )
        assert exc_info.value.task_id == "T2"
        assert [o.task.id for o in seen] == ["T1"]
        assert len(infer.calls) == 3
