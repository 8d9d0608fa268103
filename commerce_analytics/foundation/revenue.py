"""Revenue derivation for completed orders.

Net line revenue is computed once from the order item's sale price and
discount, then summed to order level and day level. Every downstream
analysis consumes these derived rows instead of recomputing revenue.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date
from decimal import Decimal, ROUND_HALF_UP
from typing import Iterable, Sequence

from commerce_analytics.foundation.errors import IntegrityError
from commerce_analytics.foundation.snapshot import Snapshot

logger = logging.getLogger(__name__)

_CENT = Decimal("0.01")
_HUNDRED = Decimal("100")


def round_money(value: Decimal) -> Decimal:
    """Round a monetary amount to cents (half-up). Output boundary only."""
    return value.quantize(_CENT, rounding=ROUND_HALF_UP)


def net_line_revenue(
    quantity: int, unit_price: Decimal, discount_percent: Decimal
) -> Decimal:
    """quantity x unit_price x (1 - discount/100), full precision.

    >>> net_line_revenue(2, Decimal("10.00"), Decimal("25"))
    Decimal('15.0000')
    """
    return quantity * unit_price * (1 - discount_percent / _HUNDRED)


@dataclass(frozen=True)
class LineRevenue:
    """Net revenue of one order item belonging to a completed order."""

    order_id: str
    customer_id: str
    product_id: str
    order_date: date
    quantity: int
    discount_percent: Decimal
    net_revenue: Decimal
    line_cost: Decimal


@dataclass(frozen=True)
class OrderRevenue:
    """Revenue of a completed order (sum of its lines)."""

    customer_id: str
    order_id: str
    order_date: date
    revenue: Decimal
    total_quantity: int
    line_count: int


@dataclass(frozen=True)
class DailyRevenue:
    """Revenue of all completed orders sharing a calendar date.

    ``avg_order_value`` is the mean net revenue per order line on that day.
    """

    order_date: date
    orders_count: int
    unique_customers: int
    revenue: Decimal
    avg_order_value: Decimal


def calculate_line_revenue(snapshot: Snapshot) -> list[LineRevenue]:
    """Join order items to orders and products, keeping completed orders only.

    Raises
    ------
    IntegrityError
        If any order item, order or product reference cannot be resolved.
        Items of non-completed orders are checked too: a dangling reference
        anywhere means the snapshot cannot be trusted.
    """
    snapshot.validate_integrity()
    orders = snapshot.orders_by_id
    products = snapshot.products_by_id

    lines: list[LineRevenue] = []
    for idx, item in enumerate(snapshot.order_items):
        order = orders.get(item.order_id)
        product = products.get(item.product_id)
        if order is None or product is None:  # pragma: no cover - validated above
            raise IntegrityError(
                "Order item cannot be resolved", table="order_items", row_index=idx
            )
        if not order.is_completed:
            continue
        lines.append(
            LineRevenue(
                order_id=order.order_id,
                customer_id=order.customer_id,
                product_id=product.product_id,
                order_date=order.order_date,
                quantity=item.quantity,
                discount_percent=item.discount_percent,
                net_revenue=net_line_revenue(
                    item.quantity, item.unit_price, item.discount_percent
                ),
                line_cost=item.quantity * product.cost_price,
            )
        )

    lines.sort(key=lambda line: (line.order_date, line.order_id))
    logger.debug(
        "Derived %d revenue lines from %d order items",
        len(lines),
        len(snapshot.order_items),
    )
    return lines


def calculate_order_revenue(lines: Iterable[LineRevenue]) -> list[OrderRevenue]:
    """Sum line revenue per order."""
    grouped: dict[str, dict[str, object]] = {}
    for line in lines:
        bucket = grouped.setdefault(
            line.order_id,
            {
                "customer_id": line.customer_id,
                "order_date": line.order_date,
                "revenue": Decimal("0"),
                "total_quantity": 0,
                "line_count": 0,
            },
        )
        bucket["revenue"] += line.net_revenue
        bucket["total_quantity"] += line.quantity
        bucket["line_count"] += 1

    orders = [
        OrderRevenue(
            customer_id=str(payload["customer_id"]),
            order_id=order_id,
            order_date=payload["order_date"],
            revenue=payload["revenue"],
            total_quantity=int(payload["total_quantity"]),
            line_count=int(payload["line_count"]),
        )
        for order_id, payload in grouped.items()
    ]
    orders.sort(key=lambda order: (order.customer_id, order.order_date, order.order_id))
    return orders


def calculate_daily_revenue(lines: Sequence[LineRevenue]) -> list[DailyRevenue]:
    """Sum line revenue per order date."""
    grouped: dict[date, dict[str, object]] = {}
    for line in lines:
        bucket = grouped.setdefault(
            line.order_date,
            {
                "orders": set(),
                "customers": set(),
                "revenue": Decimal("0"),
                "line_count": 0,
            },
        )
        bucket["orders"].add(line.order_id)
        bucket["customers"].add(line.customer_id)
        bucket["revenue"] += line.net_revenue
        bucket["line_count"] += 1

    return [
        DailyRevenue(
            order_date=order_date,
            orders_count=len(payload["orders"]),
            unique_customers=len(payload["customers"]),
            revenue=payload["revenue"],
            avg_order_value=payload["revenue"] / payload["line_count"],
        )
        for order_date, payload in sorted(grouped.items())
    ]
