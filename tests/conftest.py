"""Shared test fixtures for quorum."""

from __future__ import annotations

from typing import Any

import pytest

from quorum.providers.base import ModelCapability, ModelInfo, TokenUsage
from quorum.swarm.engine import SwarmSettings
from quorum.swarm.models import AtomicTask


@pytest.fixture
def make_task() -> Any:
    """Factory fixture for AtomicTask with sensible defaults."""

    def _make(**overrides: Any) -> AtomicTask:
        defaults: dict[str, Any] = {
            "id": "ATOM_1",
            "description": "Pick the letter",
            "instruction": "Return the first letter of the alphabet.",
            "isolated_input": "alphabet: latin",
            "weight": 5,
        }
        defaults.update(overrides)
        return AtomicTask(**defaults)

    return _make


@pytest.fixture
def settings() -> SwarmSettings:
    """Reference constants (K=3, 15 rounds) without the inter-round delay."""
    return SwarmSettings(round_delay=0.0)


@pytest.fixture
def make_model_info() -> Any:
    """Factory fixture for ModelInfo with sensible defaults."""

    def _make(**overrides: Any) -> ModelInfo:
        defaults: dict[str, Any] = {
            "provider_id": "test",
            "model_id": "test-model",
            "display_name": "Test Model",
            "capabilities": ModelCapability.TEXT | ModelCapability.JSON_MODE,
            "context_window": 128_000,
            "max_output_tokens": 4096,
            "input_cost_per_mtok": 3.0,
            "output_cost_per_mtok": 15.0,
        }
        defaults.update(overrides)
        return ModelInfo(**defaults)

    return _make


@pytest.fixture
def make_usage() -> Any:
    """Factory fixture for TokenUsage with sensible defaults."""

    def _make(**overrides: Any) -> TokenUsage:
        defaults: dict[str, Any] = {"input_tokens": 100, "output_tokens": 50}
        defaults.update(overrides)
        return TokenUsage(**defaults)

    return _make
