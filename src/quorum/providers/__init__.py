"""LLM provider adapters."""

from quorum.providers.base import (
    ModelCapability,
    ModelInfo,
    ModelProvider,
    ModelResponse,
    PromptMessage,
    TokenUsage,
)
from quorum.providers.manager import ProviderManager

__all__ = [
    "ModelCapability",
    "ModelInfo",
    "ModelProvider",
    "ModelResponse",
    "PromptMessage",
    "ProviderManager",
    "TokenUsage",
]
