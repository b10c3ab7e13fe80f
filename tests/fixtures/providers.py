"""Mock provider for deterministic testing."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from quorum.providers.base import (
    ModelCapability,
    ModelInfo,
    ModelResponse,
    TokenUsage,
)

if TYPE_CHECKING:
    from collections.abc import Sequence

    from quorum.providers.base import PromptMessage


class MockProvider:
    """Deterministic provider for tests.

    Each model id maps to a sequence of responses returned in order,
    one per ``send`` call, repeating the last one once exhausted.
    Records all calls for assertion.
    """

    def __init__(
        self,
        provider_id: str = "mock",
        responses: dict[str, Sequence[str]] | None = None,
        *,
        json_mode: bool = True,
        input_cost: float = 0.0,
        output_cost: float = 0.0,
    ) -> None:
        self._provider_id = provider_id
        self._responses = {k: list(v) for k, v in (responses or {}).items()}
        self._json_mode = json_mode
        self._input_cost = input_cost
        self._output_cost = output_cost
        self._sent: dict[str, int] = {}
        self.call_log: list[dict[str, Any]] = []

    @property
    def provider_id(self) -> str:
        return self._provider_id

    def _model_info(self, model_id: str) -> ModelInfo:
        caps = ModelCapability.TEXT | ModelCapability.SYSTEM_PROMPT
        if self._json_mode:
            caps |= ModelCapability.JSON_MODE
        return ModelInfo(
            provider_id=self._provider_id,
            model_id=model_id,
            display_name=f"Mock {model_id}",
            capabilities=caps,
            context_window=128_000,
            max_output_tokens=4096,
            input_cost_per_mtok=self._input_cost,
            output_cost_per_mtok=self._output_cost,
        )

    async def list_models(self) -> list[ModelInfo]:
        return [self._model_info(mid) for mid in self._responses]

    async def send(
        self,
        messages: list[PromptMessage],
        model_id: str,
        *,
        max_tokens: int = 1024,
        temperature: float = 0.7,
        response_format: str | None = None,
    ) -> ModelResponse:
        self.call_log.append(
            {
                "model_id": model_id,
                "messages": messages,
                "max_tokens": max_tokens,
                "temperature": temperature,
                "response_format": response_format,
            }
        )
        script = self._responses.get(model_id) or ["Mock response"]
        index = self._sent.get(model_id, 0)
        self._sent[model_id] = index + 1
        content = script[min(index, len(script) - 1)]
        return ModelResponse(
            content=content,
            model_info=self._model_info(model_id),
            usage=TokenUsage(input_tokens=100, output_tokens=len(content.split())),
            finish_reason="stop",
            latency_ms=1.0,
        )
