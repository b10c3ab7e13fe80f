"""Anthropic (Claude) provider adapter.

Claude has no JSON response mode, and left to itself it tends to wrap
JSON in a code fence, which the watchdog kills.  In JSON mode the
adapter prefills the assistant turn with ``{`` so the completion starts
inside the object, then puts the brace back on the returned text.
"""

from __future__ import annotations

import contextlib
import time
from typing import TYPE_CHECKING

import anthropic

from quorum.core.errors import (
    ModelNotFoundError,
    ProviderAuthError,
    ProviderError,
    ProviderOverloadedError,
    ProviderRateLimitError,
    ProviderTimeoutError,
)
from quorum.providers.base import (
    ModelCapability,
    ModelInfo,
    ModelResponse,
    TokenUsage,
)

if TYPE_CHECKING:
    from quorum.providers.base import PromptMessage

PROVIDER_ID = "anthropic"

JSON_PREFILL = "{"

# model_id: (display name, max output tokens, $/Mtok in, $/Mtok out)
_CATALOG: dict[str, tuple[str, int, float, float]] = {
    "claude-haiku-4-5-20251001": ("Claude Haiku 4.5", 64_000, 1.0, 5.0),
    "claude-sonnet-4-5-20250929": ("Claude Sonnet 4.5", 64_000, 3.0, 15.0),
}

_CAPS = ModelCapability.TEXT | ModelCapability.SYSTEM_PROMPT | ModelCapability.JSON_MODE

_STOP_REASONS = {"max_tokens": "max_tokens"}


def _model_info(model_id: str) -> ModelInfo:
    """Catalog entry for *model_id*; unknown models are priced at zero."""
    name, max_out, cost_in, cost_out = _CATALOG.get(
        model_id, (f"Claude ({model_id})", 4096, 0.0, 0.0)
    )
    return ModelInfo(
        provider_id=PROVIDER_ID,
        model_id=model_id,
        display_name=name,
        capabilities=_CAPS,
        context_window=200_000,
        max_output_tokens=max_out,
        input_cost_per_mtok=cost_in,
        output_cost_per_mtok=cost_out,
    )


def _retry_after(e: anthropic.APIStatusError) -> float | None:
    raw = e.response.headers.get("retry-after")
    if raw is None:
        return None
    with contextlib.suppress(ValueError):
        return float(raw)
    return None


def _map_error(e: anthropic.APIError) -> ProviderError:
    """Translate an SDK error; the engine turns any of these into a kill."""
    if isinstance(e, anthropic.APITimeoutError):
        return ProviderTimeoutError(PROVIDER_ID, str(e))
    if isinstance(e, anthropic.RateLimitError):
        return ProviderRateLimitError(PROVIDER_ID, retry_after=_retry_after(e))
    if isinstance(e, (anthropic.AuthenticationError, anthropic.PermissionDeniedError)):
        return ProviderAuthError(PROVIDER_ID, str(e))
    if isinstance(e, anthropic.NotFoundError):
        return ModelNotFoundError(PROVIDER_ID, str(e))
    if isinstance(e, anthropic.BadRequestError):
        return ProviderError(PROVIDER_ID, str(e))
    return ProviderOverloadedError(PROVIDER_ID, str(e))


def _build_messages(
    messages: list[PromptMessage], *, json_mode: bool = False
) -> tuple[str | anthropic.NotGiven, list[dict[str, str]]]:
    """Split out the system prompt; append the prefill in JSON mode."""
    system: str | anthropic.NotGiven = anthropic.NOT_GIVEN
    turns: list[dict[str, str]] = []
    for msg in messages:
        if msg.role == "system":
            system = msg.content
        else:
            turns.append({"role": msg.role, "content": msg.content})
    if json_mode:
        turns.append({"role": "assistant", "content": JSON_PREFILL})
    return system, turns


class AnthropicProvider:
    """Provider adapter for Anthropic's Claude models."""

    def __init__(
        self,
        api_key: str | None = None,
        *,
        client: anthropic.AsyncAnthropic | None = None,
    ) -> None:
        self._client = client or anthropic.AsyncAnthropic(api_key=api_key)

    @property
    def provider_id(self) -> str:
        return PROVIDER_ID

    async def list_models(self) -> list[ModelInfo]:
        return [_model_info(model_id) for model_id in _CATALOG]

    async def send(
        self,
        messages: list[PromptMessage],
        model_id: str,
        *,
        max_tokens: int = 1024,
        temperature: float = 0.7,
        response_format: str | None = None,
    ) -> ModelResponse:
        json_mode = response_format == "json"
        system, turns = _build_messages(messages, json_mode=json_mode)

        start = time.monotonic()
        try:
            response = await self._client.messages.create(
                model=model_id,
                max_tokens=max_tokens,
                temperature=temperature,
                system=system,
                messages=turns,
            )
        except anthropic.APIError as e:
            raise _map_error(e) from e
        latency_ms = (time.monotonic() - start) * 1000

        text = "".join(
            block.text
            for block in response.content
            if isinstance(getattr(block, "text", None), str)
        )
        if json_mode:
            text = JSON_PREFILL + text

        return ModelResponse(
            content=text,
            model_info=_model_info(model_id),
            usage=TokenUsage(
                input_tokens=response.usage.input_tokens,
                output_tokens=response.usage.output_tokens,
            ),
            finish_reason=_STOP_REASONS.get(response.stop_reason or "", "stop"),
            latency_ms=latency_ms,
            raw_response=response,
        )
