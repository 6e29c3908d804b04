"""Application settings.

Settings are read from environment variables prefixed with `LIGHTHOUSE_`
(and optionally `.env`). The analysis itself never reads them: callers turn
them into an immutable `AnalysisConfig` and pass that in explicitly.
"""

from __future__ import annotations

from pathlib import Path
from typing import Optional

from pydantic import BaseModel, Field, ValidationError
from pydantic_settings import BaseSettings, SettingsConfigDict

from lighthouse.core.exceptions import ConfigurationError
from lighthouse.detectors.thresholds import DEFAULT_THRESHOLDS, DetectorThresholds
from lighthouse.pricing.tiers import (
    DEFAULT_PRICING_TABLE,
    PlanFamily,
    PricingTable,
    load_pricing_table,
)


class AnalysisConfig(BaseModel):
    """Explicit configuration for one analysis call."""
    plan: str = PlanFamily.PROFESSIONAL.value
    pricing_table: PricingTable = DEFAULT_PRICING_TABLE
    thresholds: DetectorThresholds = DEFAULT_THRESHOLDS
    # Unknown plans raise instead of falling back to the default price.
    strict_plan: bool = False
    max_workers: int = Field(default=1, ge=1)
    # Batches at or below this size are analysed on the calling thread.
    parallel_threshold: int = Field(default=64, ge=0)

    model_config = {"extra": "forbid", "frozen": True}


DEFAULT_CONFIG = AnalysisConfig()


class Settings(BaseSettings):
    """Typed environment-backed settings for Lighthouse."""

    model_config = SettingsConfigDict(
        env_prefix="LIGHTHOUSE_", env_file=".env", env_file_encoding="utf-8", extra="ignore"
    )

    log_level: str = "INFO"
    json_logs: bool = False

    default_plan: str = PlanFamily.PROFESSIONAL.value
    strict_plan: bool = False
    pricing_table_path: Optional[Path] = None

    max_workers: int = Field(default=4, ge=1)
    parallel_threshold: int = Field(default=64, ge=0)

    def analysis_config(self, *, plan: Optional[str] = None, strict_plan: Optional[bool] = None) -> AnalysisConfig:
        table = (
            load_pricing_table(self.pricing_table_path)
            if self.pricing_table_path
            else DEFAULT_PRICING_TABLE
        )
        return AnalysisConfig(
            plan=plan or self.default_plan,
            pricing_table=table,
            strict_plan=self.strict_plan if strict_plan is None else strict_plan,
            max_workers=self.max_workers,
            parallel_threshold=self.parallel_threshold,
        )


def load_settings() -> Settings:
    try:
        return Settings()
    except ValidationError as exc:
        raise ConfigurationError("Invalid settings", context={"error": str(exc)}) from exc
