"""Foundational building blocks for the commerce analytics engine.

This package exposes the snapshot contract, the revenue calculator, the
shared window-function engine, and the cohort and RFM analyses built on
top of them.
"""

from .cohorts import CohortRetention, assign_cohorts, calculate_cohort_retention
from .errors import AnalyticsError, CycleError, IntegrityError
from .revenue import (
    DailyRevenue,
    LineRevenue,
    OrderRevenue,
    calculate_daily_revenue,
    calculate_line_revenue,
    calculate_order_revenue,
    net_line_revenue,
    round_money,
)
from .rfm import (
    CustomerMetrics,
    CustomerSegment,
    RFMScore,
    RFMSegment,
    calculate_customer_metrics,
    calculate_rfm_scores,
    classify_segment,
    segment_customers,
)
from .snapshot import (
    CategoryNode,
    Customer,
    Order,
    OrderItem,
    OrderStatus,
    Product,
    Snapshot,
    SnapshotLoader,
)
from .windows import (
    NO_VALUE,
    DenseRank,
    FrameAggregate,
    Lag,
    Lead,
    Ntile,
    PercentileCont,
    Rank,
    RowNumber,
    WindowResult,
    evaluate,
)

__all__ = [
    "AnalyticsError",
    "CategoryNode",
    "CohortRetention",
    "Customer",
    "CustomerMetrics",
    "CustomerSegment",
    "CycleError",
    "DailyRevenue",
    "DenseRank",
    "FrameAggregate",
    "IntegrityError",
    "Lag",
    "Lead",
    "LineRevenue",
    "NO_VALUE",
    "Ntile",
    "Order",
    "OrderItem",
    "OrderRevenue",
    "OrderStatus",
    "PercentileCont",
    "Product",
    "RFMScore",
    "RFMSegment",
    "Rank",
    "RowNumber",
    "Snapshot",
    "SnapshotLoader",
    "WindowResult",
    "assign_cohorts",
    "calculate_cohort_retention",
    "calculate_customer_metrics",
    "calculate_daily_revenue",
    "calculate_line_revenue",
    "calculate_order_revenue",
    "calculate_rfm_scores",
    "classify_segment",
    "evaluate",
    "net_line_revenue",
    "round_money",
    "segment_customers",
]
