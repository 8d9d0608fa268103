"""Run every analysis over one snapshot and collect the result tables.

The pipeline validates the snapshot once, derives revenue once and hands the
same derived rows to each analysis. An integrity violation aborts the whole
run; a cycle in the category forest only fails the hierarchy analysis, which
is recorded in :attr:`AnalyticsReport.failures`.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field, fields, is_dataclass
from datetime import date
from decimal import Decimal
from enum import Enum
from typing import Any, Optional

from commerce_analytics.analyses.category_hierarchy import (
    CategoryPath,
    resolve_category_hierarchy,
)
from commerce_analytics.analyses.clv import (
    CustomerLifetimeValue,
    analyze_customer_lifetime_value,
)
from commerce_analytics.analyses.cube import CubeRow, build_sales_facts, sales_cube
from commerce_analytics.analyses.product_performance import (
    ProductPerformance,
    analyze_product_performance,
)
from commerce_analytics.analyses.purchase_intervals import (
    PurchaseForecast,
    forecast_next_purchases,
)
from commerce_analytics.analyses.sales_trends import DailySalesTrend, analyze_sales_trends
from commerce_analytics.config import AnalyticsConfig
from commerce_analytics.foundation.cohorts import CohortRetention, calculate_cohort_retention
from commerce_analytics.foundation.errors import CycleError
from commerce_analytics.foundation.revenue import (
    calculate_daily_revenue,
    calculate_line_revenue,
    calculate_order_revenue,
)
from commerce_analytics.foundation.rfm import CustomerSegment, segment_customers
from commerce_analytics.foundation.snapshot import Snapshot

logger = logging.getLogger(__name__)


@dataclass
class AnalyticsReport:
    """Result tables of one run. Analyses that were not requested stay ``None``."""

    as_of: date
    customer_lifetime_value: Optional[list[CustomerLifetimeValue]] = None
    cohort_retention: Optional[list[CohortRetention]] = None
    rfm_segments: Optional[list[CustomerSegment]] = None
    sales_trends: Optional[list[DailySalesTrend]] = None
    purchase_forecasts: Optional[list[PurchaseForecast]] = None
    category_hierarchy: Optional[list[CategoryPath]] = None
    sales_cube: Optional[list[CubeRow]] = None
    product_performance: Optional[list[ProductPerformance]] = None
    failures: dict[str, str] = field(default_factory=dict)

    def tables(self) -> dict[str, list[Any]]:
        """Return the computed tables keyed by analysis name."""
        return {
            f.name: getattr(self, f.name)
            for f in fields(self)
            if f.name not in ("as_of", "failures") and getattr(self, f.name) is not None
        }

    def as_dict(self) -> dict[str, Any]:
        """Return a JSON-serialisable representation of the report."""
        payload: dict[str, Any] = {"as_of": self.as_of.isoformat()}
        for name, rows in self.tables().items():
            payload[name] = [_serialise(row) for row in rows]
        if self.failures:
            payload["failures"] = dict(self.failures)
        return payload


def _serialise(value: Any) -> Any:
    if is_dataclass(value) and not isinstance(value, type):
        return {f.name: _serialise(getattr(value, f.name)) for f in fields(value)}
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, Decimal):
        return float(value)
    if isinstance(value, date):
        return value.isoformat()
    if isinstance(value, dict):
        return {str(key): _serialise(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [_serialise(item) for item in value]
    return value


def run_analytics(
    snapshot: Snapshot, config: AnalyticsConfig | None = None
) -> AnalyticsReport:
    """Compute the configured analyses over ``snapshot``.

    Raises
    ------
    IntegrityError
        If the snapshot has dangling references; no partial report is returned.
    """
    config = config or AnalyticsConfig()
    as_of = config.resolved_as_of()
    selected = set(config.analyses)
    started = time.perf_counter()

    lines = calculate_line_revenue(snapshot)
    order_revenue = calculate_order_revenue(lines)
    report = AnalyticsReport(as_of=as_of)

    if "customer_lifetime_value" in selected:
        report.customer_lifetime_value = analyze_customer_lifetime_value(
            order_revenue, snapshot.customers
        )
    if "cohort_retention" in selected:
        report.cohort_retention = calculate_cohort_retention(
            snapshot.orders,
            dense=config.dense_retention,
            through=as_of if config.dense_retention else None,
        )
    if "rfm_segments" in selected:
        report.rfm_segments = segment_customers(
            lines,
            as_of,
            snapshot.customers,
            buckets=config.rfm_buckets,
            parallel=config.parallel,
            parallel_threshold=config.parallel_threshold,
            n_workers=config.n_workers,
        )
    if "sales_trends" in selected:
        report.sales_trends = analyze_sales_trends(
            calculate_daily_revenue(lines),
            short_window=config.short_window,
            long_window=config.long_window,
            lag_days=config.lag_days,
        )
    if "purchase_forecasts" in selected:
        report.purchase_forecasts = forecast_next_purchases(
            snapshot.orders, as_of, snapshot.customers
        )
    if "category_hierarchy" in selected:
        try:
            report.category_hierarchy = resolve_category_hierarchy(snapshot.categories)
        except CycleError as exc:
            logger.warning("Category hierarchy skipped: %s", exc)
            report.failures["category_hierarchy"] = str(exc)
    if "sales_cube" in selected:
        report.sales_cube = sales_cube(build_sales_facts(snapshot, lines))
    if "product_performance" in selected:
        report.product_performance = analyze_product_performance(lines, snapshot.products)

    logger.info(
        "Analytics run as of %s finished %d analyses in %.3fs (%d failed)",
        as_of.isoformat(),
        len(config.analyses),
        time.perf_counter() - started,
        len(report.failures),
    )
    return report
