"""Exception hierarchy for quorum.

Every module imports from here. The hierarchy is:

    QuorumError
    ├── ProviderError(provider_id)
    │   ├── ProviderAuthError
    │   ├── ProviderRateLimitError(retry_after)
    │   ├── ProviderTimeoutError
    │   ├── ProviderOverloadedError
    │   └── ModelNotFoundError
    ├── ConsensusError
    │   ├── SwarmCollapsedError(task_id, rounds, killed)
    │   ├── SwarmCancelledError(task_id, rounds)
    │   └── CostLimitExceededError(limit, current)
    ├── ConfigError
    └── PlanError

Per-attempt failures (oversize or malformed output, transport errors)
are not exceptions at the engine boundary. They are absorbed into the
kill counter of a run and never reach the caller.
"""

from __future__ import annotations


class QuorumError(Exception):
    """Base exception for all quorum errors."""


# ─── Provider Errors ──────────────────────────────────────────


class ProviderError(QuorumError):
    """Base for provider-related errors."""

    def __init__(self, provider_id: str, message: str) -> None:
        self.provider_id = provider_id
        super().__init__(f"[{provider_id}] {message}")


class ProviderAuthError(ProviderError):
    """Invalid or missing API key."""


class ProviderRateLimitError(ProviderError):
    """Rate limit exceeded. Includes retry_after if available."""

    def __init__(self, provider_id: str, retry_after: float | None = None) -> None:
        self.retry_after = retry_after
        msg = "Rate limited"
        if retry_after is not None:
            msg += f" (retry after {retry_after}s)"
        super().__init__(provider_id, msg)


class ProviderTimeoutError(ProviderError):
    """Model call timed out."""


class ProviderOverloadedError(ProviderError):
    """Provider is overloaded (529, 503)."""


class ModelNotFoundError(ProviderError):
    """Requested model not available from this provider."""


# ─── Consensus Errors ─────────────────────────────────────────


class ConsensusError(QuorumError):
    """Base for swarm consensus errors."""


class SwarmCollapsedError(ConsensusError):
    """Every attempt in a run was killed; there is no answer to return."""

    def __init__(self, task_id: str, rounds: int, killed: int) -> None:
        self.task_id = task_id
        self.rounds = rounds
        self.killed = killed
        super().__init__(
            f"Swarm collapsed on task {task_id}: "
            f"{killed}/{rounds} attempts killed, no accepted answers"
        )


class SwarmCancelledError(ConsensusError):
    """The caller cancelled the run before it reached a verdict."""

    def __init__(self, task_id: str, rounds: int) -> None:
        self.task_id = task_id
        self.rounds = rounds
        super().__init__(f"Swarm cancelled on task {task_id} after {rounds} rounds")


class CostLimitExceededError(ConsensusError):
    """Hard cost limit reached."""

    def __init__(self, limit: float, current: float) -> None:
        self.limit = limit
        self.current = current
        super().__init__(f"Cost limit ${limit:.2f} exceeded (current: ${current:.2f})")


# ─── Configuration Errors ─────────────────────────────────────


class ConfigError(QuorumError):
    """Invalid configuration."""


class PlanError(QuorumError):
    """A task plan could not be parsed into atomic tasks."""
