"""Configuration for the interrupt affinity planner."""

from __future__ import annotations

from functools import lru_cache
from typing import Literal

from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from irq_affinity.domain.services.allocation import (
    IMOD_DEFAULT_INTERVAL,
    AllocationSettings,
    TargetDiePolicy,
)


class AllocationConfig(BaseModel):
    """Allocation heuristic configuration."""

    imod_default_interval: int = Field(default=IMOD_DEFAULT_INTERVAL, ge=0, le=0xFFFF)
    target_die: Literal["highest", "lowest"] = Field(default="highest")
    speakers_primary_lp: int = Field(default=2, ge=0)
    speakers_fallback_lp: int = Field(default=10, ge=0)
    gpu_pair_min_pool: int = Field(default=4, ge=2)

    def to_settings(self) -> AllocationSettings:
        return AllocationSettings(
            imod_default_interval=self.imod_default_interval,
            target_die=TargetDiePolicy(self.target_die),
            speakers_primary_lp=self.speakers_primary_lp,
            speakers_fallback_lp=self.speakers_fallback_lp,
            gpu_pair_min_pool=self.gpu_pair_min_pool,
        )


class TopologyConfig(BaseModel):
    """Die map derivation configuration."""

    pair_ccx: bool = Field(default=False)


class ObservabilityConfig(BaseModel):
    """Observability configuration."""

    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(default="INFO")
    log_format: Literal["json", "console"] = Field(default="console")
    environment: str = Field(default="development")
    otlp_endpoint: str | None = Field(default=None)
    enable_tracing: bool = Field(default=False)
    enable_metrics: bool = Field(default=True)
    metrics_port: int = Field(default=8010, ge=1, le=65535)


class Config(BaseSettings):
    """Main configuration."""

    model_config = SettingsConfigDict(
        env_prefix="IRQ_AFFINITY_",
        env_nested_delimiter="__",
        case_sensitive=False,
    )

    allocation: AllocationConfig = Field(default_factory=AllocationConfig)
    topology: TopologyConfig = Field(default_factory=TopologyConfig)
    observability: ObservabilityConfig = Field(default_factory=ObservabilityConfig)


@lru_cache
def get_config() -> Config:
    return Config()
