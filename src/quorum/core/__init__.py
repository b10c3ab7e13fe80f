"""Core types and errors."""

from quorum.core.errors import (
    ConfigError,
    ConsensusError,
    CostLimitExceededError,
    ModelNotFoundError,
    PlanError,
    ProviderAuthError,
    ProviderError,
    ProviderOverloadedError,
    ProviderRateLimitError,
    ProviderTimeoutError,
    QuorumError,
    SwarmCancelledError,
    SwarmCollapsedError,
)

__all__ = [
    "ConfigError",
    "ConsensusError",
    "CostLimitExceededError",
    "ModelNotFoundError",
    "PlanError",
    "ProviderAuthError",
    "ProviderError",
    "ProviderOverloadedError",
    "ProviderRateLimitError",
    "ProviderTimeoutError",
    "QuorumError",
    "SwarmCancelledError",
    "SwarmCollapsedError",
]
