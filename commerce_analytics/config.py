"""Run configuration for the analytics pipeline."""

from __future__ import annotations

from datetime import date
from typing import Optional

from pydantic import BaseModel, Field, field_validator, model_validator

#: Analyses the pipeline knows how to run, in execution order.
ANALYSES: tuple[str, ...] = (
    "customer_lifetime_value",
    "cohort_retention",
    "rfm_segments",
    "sales_trends",
    "purchase_forecasts",
    "category_hierarchy",
    "sales_cube",
    "product_performance",
)


class AnalyticsConfig(BaseModel):
    """Parameters of one analytics run.

    ``as_of`` is resolved once by the pipeline (today's date when omitted)
    and passed explicitly to every analysis that measures recency, so a run
    never reads the clock more than once.
    """

    as_of: Optional[date] = Field(
        default=None,
        description="Snapshot date for recency and forecasting (default: today)",
    )
    analyses: tuple[str, ...] = Field(
        default=ANALYSES, description="Subset of analyses to run"
    )
    rfm_buckets: int = Field(default=5, ge=1, description="NTILE buckets per RFM dimension")
    short_window: int = Field(default=7, ge=1, description="Short moving-average window (days with sales)")
    long_window: int = Field(default=30, ge=1, description="Long moving-average window (days with sales)")
    lag_days: int = Field(default=7, ge=1, description="Offset used for week-over-week growth")
    dense_retention: bool = Field(
        default=False,
        description="Zero-fill months with no active cohort customers",
    )
    parallel: bool = Field(
        default=True, description="Enable parallel RFM metrics for large populations"
    )
    parallel_threshold: int = Field(
        default=10_000_000, ge=1, description="Customers above which RFM uses worker processes"
    )
    n_workers: Optional[int] = Field(
        default=None, ge=1, description="Worker processes (default: CPU count)"
    )

    @field_validator("analyses")
    @classmethod
    def _known_analyses(cls, value: tuple[str, ...]) -> tuple[str, ...]:
        unknown = sorted(set(value) - set(ANALYSES))
        if unknown:
            raise ValueError(f"Unknown analyses {unknown}; expected a subset of {list(ANALYSES)}")
        # Preserve execution order regardless of how the caller listed them.
        return tuple(name for name in ANALYSES if name in value)

    @model_validator(mode="after")
    def _windows_ordered(self) -> "AnalyticsConfig":
        if self.short_window > self.long_window:
            raise ValueError(
                f"short_window ({self.short_window}) must not exceed long_window ({self.long_window})"
            )
        return self

    def resolved_as_of(self) -> date:
        return self.as_of or date.today()
