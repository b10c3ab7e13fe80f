"""Google (Gemini) provider adapter.

Flash-class models are the natural swarm workers: cheap, fast, and
able to emit JSON directly via ``response_mime_type``.
"""

from __future__ import annotations

import time
from typing import TYPE_CHECKING, Any

from google import genai
from google.genai import errors as genai_errors

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

PROVIDER_ID = "google"

# model_id: (display name, $/Mtok in, $/Mtok out)
_CATALOG: dict[str, tuple[str, float, float]] = {
    "gemini-2.5-flash": ("Gemini 2.5 Flash", 0.30, 2.50),
    "gemini-2.5-flash-lite": ("Gemini 2.5 Flash-Lite", 0.10, 0.40),
    "gemini-2.5-pro": ("Gemini 2.5 Pro", 1.25, 10.00),
}

_CAPS = ModelCapability.TEXT | ModelCapability.SYSTEM_PROMPT | ModelCapability.JSON_MODE


def _model_info(model_id: str) -> ModelInfo:
    """Catalog entry for *model_id*; unknown models are priced at zero."""
    known = model_id in _CATALOG
    name, cost_in, cost_out = _CATALOG.get(model_id, (f"Gemini ({model_id})", 0.0, 0.0))
    return ModelInfo(
        provider_id=PROVIDER_ID,
        model_id=model_id,
        display_name=name,
        capabilities=_CAPS,
        context_window=1_048_576,
        max_output_tokens=65_536 if known else 8192,
        input_cost_per_mtok=cost_in,
        output_cost_per_mtok=cost_out,
    )


def _map_error(e: genai_errors.APIError) -> ProviderError:
    """Translate an SDK error by HTTP status code."""
    code = getattr(e, "code", None)
    msg = str(e)
    if code in (401, 403):
        return ProviderAuthError(PROVIDER_ID, msg)
    if code == 404:
        return ModelNotFoundError(PROVIDER_ID, msg)
    if code == 429:
        return ProviderRateLimitError(PROVIDER_ID)
    if code in (408, 504):
        return ProviderTimeoutError(PROVIDER_ID, msg)
    if isinstance(e, genai_errors.ServerError):
        return ProviderOverloadedError(PROVIDER_ID, msg)
    return ProviderError(PROVIDER_ID, msg)


def _build_contents(
    messages: list[PromptMessage],
) -> tuple[str | None, list[dict[str, Any]]]:
    """Split out the system instruction; Gemini calls the assistant ``model``."""
    system: str | None = None
    contents: list[dict[str, Any]] = []
    for msg in messages:
        if msg.role == "system":
            system = msg.content
            continue
        role = "model" if msg.role == "assistant" else "user"
        contents.append({"role": role, "parts": [{"text": msg.content}]})
    return system, contents


def _finish_reason(response: Any) -> str:
    candidates = getattr(response, "candidates", None) or []
    reason = getattr(candidates[0], "finish_reason", None) if candidates else None
    if getattr(reason, "name", reason) == "MAX_TOKENS":
        return "max_tokens"
    return "stop"


class GoogleProvider:
    """Provider adapter for Google Gemini models."""

    def __init__(
        self,
        api_key: str | None = None,
        *,
        client: genai.Client | None = None,
    ) -> None:
        self._client = client or genai.Client(api_key=api_key)

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
        system, contents = _build_contents(messages)
        mime_type = "application/json" if response_format == "json" else None
        config = genai.types.GenerateContentConfig(
            max_output_tokens=max_tokens,
            temperature=temperature,
            system_instruction=system,
            response_mime_type=mime_type,
        )

        start = time.monotonic()
        try:
            response = await self._client.aio.models.generate_content(
                model=model_id,
                contents=contents,
                config=config,
            )
        except genai_errors.APIError as e:
            raise _map_error(e) from e
        latency_ms = (time.monotonic() - start) * 1000

        meta = response.usage_metadata
        usage = TokenUsage(
            input_tokens=(meta.prompt_token_count or 0) if meta else 0,
            output_tokens=(meta.candidates_token_count or 0) if meta else 0,
        )
        return ModelResponse(
            content=response.text or "",
            model_info=_model_info(model_id),
            usage=usage,
            finish_reason=_finish_reason(response),
            latency_ms=latency_ms,
            raw_response=response,
        )
