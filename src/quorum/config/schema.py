"""Pydantic models for quorum configuration."""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, model_validator


class ProviderConfig(BaseModel):
    """Configuration for a single LLM provider."""

    enabled: bool = True
    api_key: str | None = None
    api_key_env: str | None = None


class SwarmConfig(BaseModel):
    """Swarm consensus settings.

    ``target_gap`` is K: the lead the top answer needs over the runner-up.
    Killed attempts consume rounds just like accepted ones.  Unknown keys
    are rejected.
    """

    model_config = ConfigDict(extra="forbid")

    target_gap: int = Field(default=3, ge=1)
    max_rounds: int = Field(default=15, ge=1)
    round_delay: float = Field(default=0.2, ge=0.0)

    # Red-flag watchdog
    max_response_chars: int = Field(default=3000, gt=0)
    max_key_chars: int = Field(default=200, gt=0)
    answer_field: str = "output"

    # Confidence on a win: min(cap, base + gap * step)
    win_confidence_base: int = Field(default=80, ge=0, le=100)
    win_confidence_step: int = Field(default=5, ge=0)
    win_confidence_cap: int = Field(default=99, ge=0, le=100)

    # Per-attempt inference knobs
    temperature: float = Field(default=0.1, ge=0.0, le=2.0)
    max_tokens: int = Field(default=1024, gt=0)
    attempt_timeout: float = Field(default=60.0, gt=0.0)

    scheduling: Literal["sequential", "pool"] = "sequential"
    workers: int = Field(default=4, ge=1)

    @model_validator(mode="after")
    def _check_confidence_bounds(self) -> SwarmConfig:
        if self.win_confidence_base > self.win_confidence_cap:
            msg = "win_confidence_base must not exceed win_confidence_cap"
            raise ValueError(msg)
        return self


class CostConfig(BaseModel):
    """Cost tracking and limits."""

    hard_limit: float = 1.00


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: str = "WARNING"
    file: str = ""


class GeneralConfig(BaseModel):
    """General engine settings."""

    model_ref: str = "google:gemini-2.5-flash"


class QuorumConfig(BaseModel):
    """Top-level configuration for quorum."""

    general: GeneralConfig = Field(default_factory=GeneralConfig)
    swarm: SwarmConfig = Field(default_factory=SwarmConfig)
    cost: CostConfig = Field(default_factory=CostConfig)
    providers: dict[str, ProviderConfig] = Field(
        default_factory=lambda: {
            "google": ProviderConfig(api_key_env="GOOGLE_API_KEY"),
            "anthropic": ProviderConfig(api_key_env="ANTHROPIC_API_KEY"),
        }
    )
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
