"""RFM (Recency-Frequency-Monetary) scoring and segmentation.

RFM analysis segments customers based on three dimensions:
- Recency: How many days since the customer's last completed order?
- Frequency: How many distinct completed orders have they placed?
- Monetary: How much net revenue have they generated?

Each dimension is scored 1-5 with NTILE buckets, where 5 is always the best
bucket (most recent, most frequent, highest spend). The three scores are
then matched against an ordered list of segment rules; the first matching
rule names the segment. Segment names are consumed by downstream reports
and must not change.
"""

from __future__ import annotations

import logging
import multiprocessing
import os
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from enum import Enum
from typing import Callable, Optional, Sequence

from commerce_analytics.foundation.revenue import LineRevenue, round_money
from commerce_analytics.foundation.snapshot import Customer
from commerce_analytics.foundation.windows import Ntile, evaluate

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CustomerMetrics:
    """Raw RFM inputs for a single customer.

    Attributes
    ----------
    customer_id:
        Unique customer identifier
    last_order_date:
        Date of the most recent completed order
    frequency:
        Number of distinct completed orders
    monetary_value:
        Net revenue across all completed orders (full precision)
    days_since_last_order:
        Days from ``last_order_date`` to the as-of date
    """

    customer_id: str
    last_order_date: date
    frequency: int
    monetary_value: Decimal
    days_since_last_order: int

    def __post_init__(self) -> None:
        """Validate RFM metrics."""
        if self.days_since_last_order < 0:
            raise ValueError(
                f"Recency cannot be negative: {self.days_since_last_order} "
                f"(customer_id={self.customer_id})"
            )
        if self.frequency <= 0:
            raise ValueError(
                f"Frequency must be positive: {self.frequency} (customer_id={self.customer_id})"
            )
        if self.monetary_value < 0:
            raise ValueError(
                f"Monetary value cannot be negative: {self.monetary_value} "
                f"(customer_id={self.customer_id})"
            )


def _calculate_metrics_for_customers(
    customer_data_chunk: dict[str, dict], as_of: date
) -> list[CustomerMetrics]:
    """Build metrics for a chunk of customers.

    Module-level so that multiprocessing workers can pickle it.
    """
    return [
        CustomerMetrics(
            customer_id=customer_id,
            last_order_date=data["last_order_date"],
            frequency=len(data["orders"]),
            monetary_value=data["monetary_value"],
            days_since_last_order=(as_of - data["last_order_date"]).days,
        )
        for customer_id, data in customer_data_chunk.items()
    ]


def calculate_customer_metrics(
    lines: Sequence[LineRevenue],
    as_of: date,
    parallel: bool = True,
    parallel_threshold: int = 10_000_000,
    n_workers: Optional[int] = None,
) -> list[CustomerMetrics]:
    """Aggregate revenue lines into per-customer RFM inputs.

    **Parallel Processing**: Populations of at least ``parallel_threshold``
    customers are split into chunks processed by a ``multiprocessing.Pool``.
    Results are sorted by customer id afterwards, so the output never depends
    on worker scheduling.

    Parameters
    ----------
    lines:
        Revenue lines of completed orders.
    as_of:
        Snapshot date recency is measured against. Must not precede any
        order date.
    parallel:
        Enable parallel processing for large populations.
    parallel_threshold:
        Number of customers above which workers are used.
    n_workers:
        Worker processes; defaults to the CPU count.

    Returns
    -------
    list[CustomerMetrics]
        One row per customer, sorted by customer_id.
    """
    if not lines:
        return []

    customer_data: dict[str, dict] = {}
    for line in lines:
        if line.order_date > as_of:
            raise ValueError(
                f"Order date ({line.order_date}) cannot be after as_of ({as_of}) "
                f"for customer {line.customer_id}"
            )
        data = customer_data.setdefault(
            line.customer_id,
            {
                "last_order_date": line.order_date,
                "orders": set(),
                "monetary_value": Decimal("0"),
            },
        )
        if line.order_date > data["last_order_date"]:
            data["last_order_date"] = line.order_date
        data["orders"].add(line.order_id)
        data["monetary_value"] += line.net_revenue

    num_customers = len(customer_data)
    use_parallel = parallel and num_customers >= parallel_threshold

    if use_parallel:
        workers = max(1, n_workers) if n_workers is not None else (os.cpu_count() or 1)
        customer_items = list(customer_data.items())
        chunk_size = max(1, num_customers // workers)
        chunks = [
            (dict(customer_items[i : i + chunk_size]), as_of)
            for i in range(0, num_customers, chunk_size)
        ]
        logger.info(
            "Computing RFM metrics for %d customers with %d workers",
            num_customers,
            workers,
        )
        with multiprocessing.Pool(processes=workers) as pool:
            chunk_results = pool.starmap(_calculate_metrics_for_customers, chunks)
        metrics = [metric for chunk in chunk_results for metric in chunk]
    else:
        metrics = _calculate_metrics_for_customers(customer_data, as_of)

    metrics.sort(key=lambda m: m.customer_id)
    return metrics


class RFMSegment(str, Enum):
    """Named customer segments, in rule evaluation order."""

    CHAMPIONS = "Champions"
    LOYAL_CUSTOMERS = "Loyal Customers"
    NEW_CUSTOMERS = "New Customers"
    AT_RISK = "At Risk"
    LOST_CUSTOMERS = "Lost Customers"
    BIG_SPENDERS = "Big Spenders"
    POTENTIAL_LOYALISTS = "Potential Loyalists"


# First match wins. Rules overlap on purpose; reordering them reclassifies customers.
SEGMENT_RULES: tuple[tuple[RFMSegment, Callable[[int, int, int], bool]], ...] = (
    (RFMSegment.CHAMPIONS, lambda r, f, m: r >= 4 and f >= 4 and m >= 4),
    (RFMSegment.LOYAL_CUSTOMERS, lambda r, f, m: r >= 3 and f >= 3 and m >= 3),
    (RFMSegment.NEW_CUSTOMERS, lambda r, f, m: r >= 4 and f <= 2),
    (RFMSegment.AT_RISK, lambda r, f, m: r <= 2 and f >= 3 and m >= 3),
    (RFMSegment.LOST_CUSTOMERS, lambda r, f, m: r <= 2 and f <= 2),
    (RFMSegment.BIG_SPENDERS, lambda r, f, m: m >= 4),
)


def classify_segment(recency_score: int, frequency_score: int, monetary_score: int) -> RFMSegment:
    """Return the first segment whose rule matches the scores.

    >>> classify_segment(5, 5, 5).value
    'Champions'
    >>> classify_segment(1, 1, 1).value
    'Lost Customers'
    """
    for segment, rule in SEGMENT_RULES:
        if rule(recency_score, frequency_score, monetary_score):
            return segment
    return RFMSegment.POTENTIAL_LOYALISTS


@dataclass(frozen=True)
class RFMScore:
    """RFM scores for a single customer.

    Attributes
    ----------
    customer_id:
        Unique customer identifier
    recency_score:
        1-5, where 5 = most recent
    frequency_score:
        1-5, where 5 = most orders
    monetary_score:
        1-5, where 5 = highest spend
    total_score:
        Sum of the three scores (3-15 with five buckets)
    segment:
        Segment assigned by :func:`classify_segment`
    """

    customer_id: str
    recency_score: int
    frequency_score: int
    monetary_score: int
    total_score: int
    segment: RFMSegment

    @property
    def rfm_code(self) -> str:
        """Combined score string, e.g. ``"555"`` for the best customers."""
        return f"{self.recency_score}{self.frequency_score}{self.monetary_score}"


def _score(
    metrics: Sequence[CustomerMetrics],
    order_key: Callable[[CustomerMetrics], object],
    buckets: int,
    descending: bool,
) -> list[int]:
    """NTILE over the population ordered best-first, flipped so best = ``buckets``."""
    results = evaluate(metrics, None, order_key, Ntile(buckets), descending=descending)
    return [buckets + 1 - result.value for result in results]


def calculate_rfm_scores(
    metrics: Sequence[CustomerMetrics], buckets: int = 5
) -> list[RFMScore]:
    """Score customers into ``buckets`` quantiles per dimension.

    Recency is ordered by days since last order ascending, frequency and
    monetary value descending, so the first NTILE bucket always holds the
    best customers; it is then reported as the highest score. Customers with
    equal raw values keep their input order, which makes bucket boundaries
    deterministic for a given input.

    Returns
    -------
    list[RFMScore]
        One score per metric, in input order. Empty input yields an empty list.
    """
    if not metrics:
        return []

    recency = _score(metrics, lambda m: m.days_since_last_order, buckets, descending=False)
    frequency = _score(metrics, lambda m: m.frequency, buckets, descending=True)
    monetary = _score(metrics, lambda m: m.monetary_value, buckets, descending=True)

    return [
        RFMScore(
            customer_id=metric.customer_id,
            recency_score=r,
            frequency_score=f,
            monetary_score=m,
            total_score=r + f + m,
            segment=classify_segment(r, f, m),
        )
        for metric, r, f, m in zip(metrics, recency, frequency, monetary)
    ]


@dataclass(frozen=True)
class CustomerSegment:
    """Report row combining customer attributes, raw RFM values and scores."""

    customer_id: str
    customer_name: str | None
    original_segment: str | None
    rfm_segment: RFMSegment
    total_orders: int
    total_spent: Decimal
    days_since_last_order: int
    recency_score: int
    frequency_score: int
    monetary_score: int
    rfm_total_score: int


def segment_customers(
    lines: Sequence[LineRevenue],
    as_of: date,
    customers: Sequence[Customer] = (),
    *,
    buckets: int = 5,
    parallel: bool = True,
    parallel_threshold: int = 10_000_000,
    n_workers: Optional[int] = None,
) -> list[CustomerSegment]:
    """Run the full RFM pipeline: metrics, scores and segments.

    Returns rows ordered by total score (descending), then monetary value
    (descending, full precision), then customer id.
    """
    metrics = calculate_customer_metrics(
        lines,
        as_of,
        parallel=parallel,
        parallel_threshold=parallel_threshold,
        n_workers=n_workers,
    )
    scores = calculate_rfm_scores(metrics, buckets=buckets)
    directory = {customer.customer_id: customer for customer in customers}

    ranked = sorted(
        zip(metrics, scores),
        key=lambda pair: (-pair[1].total_score, -pair[0].monetary_value, pair[0].customer_id),
    )
    rows = []
    for metric, score in ranked:
        customer = directory.get(metric.customer_id)
        rows.append(
            CustomerSegment(
                customer_id=metric.customer_id,
                customer_name=customer.customer_name if customer else None,
                original_segment=customer.customer_segment if customer else None,
                rfm_segment=score.segment,
                total_orders=metric.frequency,
                total_spent=round_money(metric.monetary_value),
                days_since_last_order=metric.days_since_last_order,
                recency_score=score.recency_score,
                frequency_score=score.frequency_score,
                monetary_score=score.monetary_score,
                rfm_total_score=score.total_score,
            )
        )
    logger.debug("Segmented %d customers as of %s", len(rows), as_of.isoformat())
    return rows
