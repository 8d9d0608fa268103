"""Historical customer lifetime value with running totals and ranking.

Lifetime value here is realised value: the cumulative net revenue of a
customer's completed orders. It is computed as a running total over each
customer's orders in date order, and the value at the last order is the
customer's lifetime value. Customers are then ranked by it with ties sharing
a rank.

Quick Start
-----------
>>> from datetime import date
>>> from decimal import Decimal
>>> from commerce_analytics.foundation.revenue import OrderRevenue
>>> orders = [
...     OrderRevenue("A", "O1", date(2024, 1, 1), Decimal("100"), 1, 1),
...     OrderRevenue("A", "O2", date(2024, 2, 1), Decimal("300"), 1, 1),
...     OrderRevenue("B", "O3", date(2024, 1, 15), Decimal("50"), 1, 1),
... ]
>>> [(row.customer_id, row.lifetime_value, row.clv_rank)
...  for row in analyze_customer_lifetime_value(orders)]
[('A', Decimal('400.00'), 1), ('B', Decimal('50.00'), 2)]
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Sequence

from commerce_analytics.foundation.revenue import OrderRevenue, round_money
from commerce_analytics.foundation.snapshot import Customer
from commerce_analytics.foundation.windows import FrameAggregate, Rank, RowNumber, evaluate


@dataclass(frozen=True)
class RunningLifetimeValue:
    """Cumulative revenue of a customer up to and including one order."""

    customer_id: str
    order_id: str
    order_date: date
    order_revenue: Decimal
    order_number: int
    running_total: Decimal


@dataclass(frozen=True)
class CustomerLifetimeValue:
    """Final lifetime value and rank of one customer.

    Attributes
    ----------
    total_orders:
        Completed orders placed by the customer.
    lifetime_value:
        Running total at the customer's last order, rounded to cents.
    clv_rank:
        Rank by lifetime value, descending. Equal values share a rank and
        the next distinct value skips accordingly (1, 1, 3).
    """

    customer_id: str
    customer_name: str | None
    customer_segment: str | None
    total_orders: int
    lifetime_value: Decimal
    clv_rank: int


def _customer_key(order: OrderRevenue) -> str:
    return order.customer_id


def _order_key(order: OrderRevenue) -> tuple[date, str]:
    return (order.order_date, order.order_id)


def calculate_running_lifetime_value(
    order_revenue: Sequence[OrderRevenue],
) -> list[RunningLifetimeValue]:
    """Running revenue per customer, one row per order in date order."""
    running = evaluate(
        order_revenue,
        _customer_key,
        _order_key,
        FrameAggregate(lambda order: order.revenue, "sum", preceding=None),
    )
    numbers = evaluate(order_revenue, _customer_key, _order_key, RowNumber())

    rows = [
        RunningLifetimeValue(
            customer_id=total.row.customer_id,
            order_id=total.row.order_id,
            order_date=total.row.order_date,
            order_revenue=total.row.revenue,
            order_number=number.value,
            running_total=total.value,
        )
        for total, number in zip(running, numbers)
    ]
    rows.sort(key=lambda row: (row.customer_id, row.order_number))
    return rows


def analyze_customer_lifetime_value(
    order_revenue: Sequence[OrderRevenue],
    customers: Sequence[Customer] = (),
) -> list[CustomerLifetimeValue]:
    """Rank customers by realised lifetime value.

    Parameters
    ----------
    order_revenue:
        Completed-order revenue rows.
    customers:
        Optional customer records used to attach name and segment.

    Returns
    -------
    list[CustomerLifetimeValue]
        One row per customer with at least one completed order, sorted by
        rank then customer id.
    """
    running = calculate_running_lifetime_value(order_revenue)

    order_counts: dict[str, int] = {}
    for row in running:
        order_counts[row.customer_id] = max(order_counts.get(row.customer_id, 0), row.order_number)
    final_rows = [row for row in running if row.order_number == order_counts[row.customer_id]]

    ranked = evaluate(final_rows, None, lambda row: row.running_total, Rank(), descending=True)
    directory = {customer.customer_id: customer for customer in customers}

    results = []
    for result in ranked:
        customer = directory.get(result.row.customer_id)
        results.append(
            CustomerLifetimeValue(
                customer_id=result.row.customer_id,
                customer_name=customer.customer_name if customer else None,
                customer_segment=customer.customer_segment if customer else None,
                total_orders=result.row.order_number,
                lifetime_value=round_money(result.row.running_total),
                clv_rank=result.value,
            )
        )
    results.sort(key=lambda row: (row.clv_rank, row.customer_id))
    return results
