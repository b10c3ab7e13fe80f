"""Provider-backed inference function for the swarm engine."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from quorum.providers.base import ModelCapability
from quorum.swarm.prompts import build_attempt_prompt

if TYPE_CHECKING:
    from quorum.config.schema import QuorumConfig
    from quorum.providers.manager import ProviderManager

logger = logging.getLogger(__name__)


class ProviderInference:
    """Stateless ``infer(instruction, isolated_input) -> str`` callable.

    Each call is a fresh single-turn request to ``model_ref``. Usage is
    reserved before the call and settled after it on the provider
    manager, so the cost hard limit applies even with attempts in flight.
    Provider errors propagate; the engine counts them as kills.
    """

    def __init__(
        self,
        provider_manager: ProviderManager,
        model_ref: str,
        *,
        temperature: float = 0.1,
        max_tokens: int = 1024,
        answer_field: str = "output",
    ) -> None:
        self._pm = provider_manager
        self.model_ref = model_ref
        self.temperature = temperature
        self.max_tokens = max_tokens
        self.answer_field = answer_field

    @classmethod
    def from_config(
        cls,
        provider_manager: ProviderManager,
        config: QuorumConfig,
        model_ref: str | None = None,
    ) -> ProviderInference:
        return cls(
            provider_manager,
            model_ref or config.general.model_ref,
            temperature=config.swarm.temperature,
            max_tokens=config.swarm.max_tokens,
            answer_field=config.swarm.answer_field,
        )

    async def __call__(self, instruction: str, isolated_input: str) -> str:
        route = self._pm.route(self.model_ref)
        info = route.info
        response_format = (
            "json" if ModelCapability.JSON_MODE in info.capabilities else None
        )

        messages = build_attempt_prompt(
            instruction, isolated_input, answer_field=self.answer_field
        )
        hold = self._pm.reserve(info, self.max_tokens)
        try:
            response = await route.provider.send(
                messages,
                info.model_id,
                max_tokens=self.max_tokens,
                temperature=self.temperature,
                response_format=response_format,
            )
        except BaseException:
            self._pm.release(hold)
            raise
        self._pm.settle(info, response.usage, hold)
        if response.finish_reason == "max_tokens":
            logger.debug(
                "Attempt on %s hit max_tokens=%d; output is likely truncated",
                self.model_ref,
                self.max_tokens,
            )
        return response.content
