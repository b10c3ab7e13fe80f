"""Configuration loading and validation."""

from quorum.config.loader import load_config
from quorum.config.schema import (
    CostConfig,
    GeneralConfig,
    LoggingConfig,
    ProviderConfig,
    QuorumConfig,
    SwarmConfig,
)

__all__ = [
    "CostConfig",
    "GeneralConfig",
    "LoggingConfig",
    "ProviderConfig",
    "QuorumConfig",
    "SwarmConfig",
    "load_config",
]
