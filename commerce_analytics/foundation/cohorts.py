"""Acquisition cohorts and month-by-month retention.

A customer's cohort is the calendar month of their first completed order.
Retention for a cohort at ``months_since_cohort = k`` is the share of the
cohort with at least one completed order in the k-th month after the cohort
month.

Quick Start
-----------
>>> from datetime import date
>>> from commerce_analytics.foundation.snapshot import Order, OrderStatus
>>> orders = [
...     Order("O1", "C1", date(2024, 1, 5), None, OrderStatus.COMPLETED),
...     Order("O2", "C1", date(2024, 2, 9), None, OrderStatus.COMPLETED),
...     Order("O3", "C2", date(2024, 1, 20), None, OrderStatus.COMPLETED),
... ]
>>> assign_cohorts(orders)
{'C1': datetime.date(2024, 1, 1), 'C2': datetime.date(2024, 1, 1)}
>>> [(r.months_since_cohort, r.retention_rate) for r in calculate_cohort_retention(orders)]
[(0, Decimal('100.00')), (1, Decimal('50.00'))]
"""

from __future__ import annotations

import logging
from collections import Counter
from dataclasses import dataclass
from datetime import date
from decimal import Decimal, ROUND_HALF_UP
from typing import Iterable, Sequence

from commerce_analytics.foundation.periods import month_start, months_between
from commerce_analytics.foundation.snapshot import Order

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CohortRetention:
    """Retention of one cohort at a given number of months after acquisition.

    Attributes
    ----------
    cohort_month:
        First day of the cohort's acquisition month.
    months_since_cohort:
        Whole calendar months between the cohort month and the activity month.
    cohort_size:
        Customers in the cohort. Fixed for the snapshot.
    active_customers:
        Distinct cohort customers with a completed order in that month.
    retention_rate:
        ``100 * active_customers / cohort_size`` rounded to two decimals, or
        ``None`` when the cohort is empty.
    """

    cohort_month: date
    months_since_cohort: int
    cohort_size: int
    active_customers: int
    retention_rate: Decimal | None

    def __post_init__(self) -> None:
        if self.months_since_cohort < 0:
            raise ValueError(
                f"months_since_cohort must be >= 0, got {self.months_since_cohort}"
            )
        if self.active_customers > self.cohort_size:
            raise ValueError(
                f"active_customers ({self.active_customers}) exceeds cohort_size "
                f"({self.cohort_size}) for cohort {self.cohort_month.isoformat()}"
            )


def _completed(orders: Iterable[Order]) -> list[Order]:
    return [order for order in orders if order.is_completed]


def assign_cohorts(orders: Iterable[Order]) -> dict[str, date]:
    """Map each customer to the month of their earliest completed order."""
    first_orders: dict[str, date] = {}
    for order in _completed(orders):
        current = first_orders.get(order.customer_id)
        if current is None or order.order_date < current:
            first_orders[order.customer_id] = order.order_date
    return {
        customer_id: month_start(first_order)
        for customer_id, first_order in sorted(first_orders.items())
    }


def retention_rate(active_customers: int, cohort_size: int) -> Decimal | None:
    if cohort_size == 0:
        return None
    rate = Decimal(100 * active_customers) / Decimal(cohort_size)
    return rate.quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)


def calculate_cohort_retention(
    orders: Sequence[Order],
    *,
    dense: bool = False,
    through: date | None = None,
) -> list[CohortRetention]:
    """Compute retention per (cohort month, months since cohort).

    Parameters
    ----------
    orders:
        Orders of any status; only completed orders are counted.
    dense:
        By default months in which no cohort member was active are omitted.
        With ``dense=True`` every cohort gets a row for each month from 0 up
        to the last observed activity month (or ``through``), with zero
        active customers where nobody purchased.
    through:
        Last calendar month to include when ``dense`` is set. Defaults to the
        month of the latest completed order in ``orders``.

    Returns
    -------
    list[CohortRetention]
        Sorted by cohort month, then months since cohort.
    """
    completed = _completed(orders)
    cohorts = assign_cohorts(completed)
    if not cohorts:
        return []

    cohort_sizes = Counter(cohorts.values())

    active: dict[tuple[date, int], set[str]] = {}
    for order in completed:
        cohort_month = cohorts[order.customer_id]
        elapsed = months_between(cohort_month, order.order_date)
        active.setdefault((cohort_month, elapsed), set()).add(order.customer_id)

    if dense:
        last_month = through or max(order.order_date for order in completed)
        for cohort_month in cohort_sizes:
            for elapsed in range(months_between(cohort_month, last_month) + 1):
                active.setdefault((cohort_month, elapsed), set())

    results = [
        CohortRetention(
            cohort_month=cohort_month,
            months_since_cohort=elapsed,
            cohort_size=cohort_sizes[cohort_month],
            active_customers=len(customers),
            retention_rate=retention_rate(len(customers), cohort_sizes[cohort_month]),
        )
        for (cohort_month, elapsed), customers in active.items()
    ]
    results.sort(key=lambda row: (row.cohort_month, row.months_since_cohort))
    logger.debug(
        "Computed %d retention rows across %d cohorts", len(results), len(cohort_sizes)
    )
    return results
