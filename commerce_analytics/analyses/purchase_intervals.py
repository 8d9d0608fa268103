"""Next-purchase prediction from inter-purchase gaps.

For every customer with at least two completed orders, the gaps between
consecutive orders give a mean and a sample standard deviation. The next
order is expected ``mean`` days after the last one, and the customer's
status compares the time since their last order against those statistics.
Customers with a single order have no gap and are never reported.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, timedelta
from decimal import Decimal, ROUND_HALF_UP
from enum import Enum
from typing import Sequence

import numpy as np

from commerce_analytics.foundation.snapshot import Customer, Order
from commerce_analytics.foundation.windows import NO_VALUE, Lag, evaluate

logger = logging.getLogger(__name__)


class CustomerStatus(str, Enum):
    OVERDUE = "Overdue - High Churn Risk"
    DUE = "Due for Reorder"
    ON_TRACK = "On Track"


@dataclass(frozen=True)
class PurchaseForecast:
    """Purchase cadence and predicted next order of one repeat customer.

    Attributes
    ----------
    avg_days_between_orders:
        Mean gap between consecutive orders, rounded half-up to whole days.
    stddev_days_between_orders:
        Sample standard deviation of the gaps, rounded half-up to whole days;
        ``None`` when the customer has exactly one gap.
    predicted_next_order_date:
        ``last_order_date + avg_days_between_orders``.
    """

    customer_id: str
    customer_name: str | None
    total_orders: int
    avg_days_between_orders: int
    stddev_days_between_orders: int | None
    first_order_date: date
    last_order_date: date
    predicted_next_order_date: date
    days_since_last_order: int
    customer_status: CustomerStatus


def _round_days(value: float) -> int:
    return int(Decimal(str(value)).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def classify_status(
    days_since_last_order: int, avg_days: int, stddev_days: int | None
) -> CustomerStatus:
    """Overdue beyond one standard deviation past the mean, due past the mean."""
    if stddev_days is not None and days_since_last_order > avg_days + stddev_days:
        return CustomerStatus.OVERDUE
    if days_since_last_order > avg_days:
        return CustomerStatus.DUE
    return CustomerStatus.ON_TRACK


def forecast_next_purchases(
    orders: Sequence[Order],
    as_of: date,
    customers: Sequence[Customer] = (),
) -> list[PurchaseForecast]:
    """Predict each repeat customer's next order date.

    Parameters
    ----------
    orders:
        Orders of any status; only completed orders are considered.
    as_of:
        Date the time since last order is measured against.
    customers:
        Optional customer records used to attach names.

    Returns
    -------
    list[PurchaseForecast]
        Sorted by days since last order (descending), then customer id.

    Raises
    ------
    ValueError
        If a completed order is dated after ``as_of``.
    """
    completed = [order for order in orders if order.is_completed]
    previous_dates = evaluate(
        completed,
        lambda order: order.customer_id,
        lambda order: (order.order_date, order.order_id),
        Lag(lambda order: order.order_date),
    )

    history: dict[str, dict] = {}
    for result in previous_dates:
        order = result.row
        if order.order_date > as_of:
            raise ValueError(
                f"Order date ({order.order_date}) cannot be after as_of ({as_of}) "
                f"for customer {order.customer_id}"
            )
        data = history.setdefault(
            order.customer_id,
            {"dates": [], "gaps": []},
        )
        data["dates"].append(order.order_date)
        if result.value is not NO_VALUE:
            data["gaps"].append((order.order_date - result.value).days)

    directory = {customer.customer_id: customer for customer in customers}
    forecasts: list[PurchaseForecast] = []
    for customer_id, data in history.items():
        if len(data["dates"]) < 2:
            continue
        gaps = np.asarray(data["gaps"], dtype=float)
        avg_days = _round_days(float(np.mean(gaps)))
        stddev_days = _round_days(float(np.std(gaps, ddof=1))) if gaps.size > 1 else None
        first_order = min(data["dates"])
        last_order = max(data["dates"])
        days_since = (as_of - last_order).days
        customer = directory.get(customer_id)
        forecasts.append(
            PurchaseForecast(
                customer_id=customer_id,
                customer_name=customer.customer_name if customer else None,
                total_orders=len(data["dates"]),
                avg_days_between_orders=avg_days,
                stddev_days_between_orders=stddev_days,
                first_order_date=first_order,
                last_order_date=last_order,
                predicted_next_order_date=last_order + timedelta(days=avg_days),
                days_since_last_order=days_since,
                customer_status=classify_status(days_since, avg_days, stddev_days),
            )
        )

    forecasts.sort(key=lambda row: (-row.days_since_last_order, row.customer_id))
    logger.debug(
        "Forecast next purchase for %d of %d customers", len(forecasts), len(history)
    )
    return forecasts
