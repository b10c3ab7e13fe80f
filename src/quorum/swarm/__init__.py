"""Swarm consensus: many stateless attempts, one adjudicated answer."""

from quorum.swarm.engine import SwarmEngine, SwarmSettings
from quorum.swarm.inference import ProviderInference
from quorum.swarm.models import (
    AGENT_CONSENSUS,
    AGENT_TIMEOUT,
    Accepted,
    AtomicTask,
    KillReason,
    Rejected,
    SwarmOutcome,
    SwarmResult,
    SwarmStatus,
    Verdict,
    VoteLedger,
)
from quorum.swarm.plan import PlanOutcome, load_plan, parse_plan, run_plan
from quorum.swarm.prompts import build_attempt_prompt
from quorum.swarm.tally import Standing, VoteTally
from quorum.swarm.watchdog import RedFlagWatchdog, normalize_answer

__all__ = [
    "AGENT_CONSENSUS",
    "AGENT_TIMEOUT",
    "Accepted",
    "AtomicTask",
    "KillReason",
    "PlanOutcome",
    "ProviderInference",
    "RedFlagWatchdog",
    "Rejected",
    "Standing",
    "SwarmEngine",
    "SwarmOutcome",
    "SwarmResult",
    "SwarmSettings",
    "SwarmStatus",
    "Verdict",
    "VoteLedger",
    "VoteTally",
    "build_attempt_prompt",
    "load_plan",
    "normalize_answer",
    "parse_plan",
    "run_plan",
]
