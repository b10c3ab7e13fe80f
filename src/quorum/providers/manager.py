"""Provider manager: model routing and the swarm's spend ceiling.

A swarm run is many small, identical calls against one model, several
of them in flight at once in pool mode.  Costs are only known once a
call returns, so each attempt first reserves its worst-case output cost
against the hard limit.  Concurrent attempts therefore cannot jointly
overshoot the limit by more than their input tokens.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

from quorum.core.errors import CostLimitExceededError, ModelNotFoundError

if TYPE_CHECKING:
    from quorum.providers.base import ModelInfo, ModelProvider, TokenUsage

_MTOK = 1_000_000


def usage_cost(info: ModelInfo, usage: TokenUsage) -> float:
    """USD cost of one call's token usage."""
    return (
        usage.input_tokens * info.input_cost_per_mtok
        + usage.output_tokens * info.output_cost_per_mtok
    ) / _MTOK


@dataclass(frozen=True, slots=True)
class ModelRoute:
    """Where a ``provider_id:model_id`` ref is sent."""

    provider: ModelProvider
    info: ModelInfo


class ProviderManager:
    """Routes attempts to providers and holds the run's spend.

    ``cost_hard_limit`` of 0 disables the ceiling; spend is still
    tracked.
    """

    def __init__(self, *, cost_hard_limit: float = 0.0) -> None:
        self._providers: dict[str, ModelProvider] = {}
        self._routes: dict[str, ModelRoute] = {}
        self._cost_hard_limit = cost_hard_limit
        self._spent = 0.0
        self._held = 0.0
        self._call_count = 0

    # ── Registration and routing ─────────────────────────────────

    async def register(self, provider: ModelProvider) -> None:
        """Add *provider* and a route for each model it lists.

        Raises:
            ValueError: If the provider id is already registered.
        """
        pid = provider.provider_id
        if pid in self._providers:
            msg = f"Provider already registered: {pid}"
            raise ValueError(msg)

        self._providers[pid] = provider
        for info in await provider.list_models():
            self._routes[info.model_ref] = ModelRoute(provider, info)

    def available_models(self) -> list[ModelInfo]:
        return [route.info for route in self._routes.values()]

    def route(self, model_ref: str) -> ModelRoute:
        """Resolve *model_ref* to its provider and model metadata.

        Raises:
            ModelNotFoundError: If no registered provider lists the model.
        """
        route = self._routes.get(model_ref)
        if route is None:
            provider_id, _, model_id = model_ref.partition(":")
            raise ModelNotFoundError(
                provider_id or "unknown", f"Model not found: {model_id or model_ref}"
            )
        return route

    # ── Spend ────────────────────────────────────────────────────

    @property
    def total_cost(self) -> float:
        """Settled spend in USD, excluding open reservations."""
        return self._spent

    @property
    def held_cost(self) -> float:
        """Worst-case output cost reserved by attempts still in flight."""
        return self._held

    @property
    def call_count(self) -> int:
        """Number of settled calls."""
        return self._call_count

    def reserve(self, info: ModelInfo, max_tokens: int) -> float:
        """Hold one attempt's worst-case output cost before it is sent.

        Returns:
            The amount held, to pass back to :meth:`settle` or
            :meth:`release`.

        Raises:
            CostLimitExceededError: If settled spend plus open holds plus
                this hold would pass the hard limit.
        """
        tokens = min(max_tokens, info.max_output_tokens)
        hold = tokens * info.output_cost_per_mtok / _MTOK
        projected = self._spent + self._held + hold
        if self._cost_hard_limit > 0 and projected > self._cost_hard_limit:
            raise CostLimitExceededError(limit=self._cost_hard_limit, current=projected)
        self._held += hold
        return hold

    def release(self, hold: float) -> None:
        """Drop a reservation whose call never returned usage."""
        self._held = max(0.0, self._held - hold)

    def settle(self, info: ModelInfo, usage: TokenUsage, hold: float = 0.0) -> float:
        """Replace *hold* with the call's actual cost.

        Returns:
            The cost of this call in USD.

        Raises:
            CostLimitExceededError: If settled spend now passes the limit.
                The call is still counted.
        """
        self.release(hold)
        cost = usage_cost(info, usage)
        self._spent += cost
        self._call_count += 1

        if self._cost_hard_limit > 0 and self._spent > self._cost_hard_limit:
            raise CostLimitExceededError(
                limit=self._cost_hard_limit, current=self._spent
            )
        return cost
