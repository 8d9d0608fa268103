"""Product performance: revenue, profit and standing within the category."""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal, ROUND_HALF_UP
from typing import Any, Sequence

from commerce_analytics.foundation.revenue import LineRevenue, round_money
from commerce_analytics.foundation.snapshot import Product
from commerce_analytics.foundation.windows import (
    NO_VALUE,
    Lag,
    Lead,
    PercentileCont,
    Rank,
    evaluate,
)

ABOVE_MEDIAN = "Above Median"
BELOW_MEDIAN = "Below Median"


@dataclass(frozen=True)
class ProductPerformance:
    """Completed-order performance of one product.

    Attributes
    ----------
    profit_margin_pct:
        Gross profit as a percentage of revenue, ``None`` for zero revenue.
    revenue_rank / category_rank:
        Rank by revenue (descending) overall and within the category.
    category_median_revenue:
        Interpolated median product revenue of the category.
    prev_product_revenue / next_product_revenue:
        Revenue of the next better / next worse product in the category,
        ``None`` at either end.
    """

    product_id: str
    product_name: str
    category: str
    subcategory: str | None
    times_ordered: int
    total_units_sold: int
    total_revenue: Decimal
    total_cost: Decimal
    gross_profit: Decimal
    profit_margin_pct: Decimal | None
    revenue_per_order: Decimal
    avg_discount_rate: Decimal
    revenue_rank: int
    category_rank: int
    category_median_revenue: Decimal
    prev_product_revenue: Decimal | None
    next_product_revenue: Decimal | None
    performance_vs_category: str


@dataclass(frozen=True)
class _ProductTotals:
    product: Product
    times_ordered: int
    units: int
    revenue: Decimal
    cost: Decimal
    avg_discount: Decimal


def _optional_money(value: Any) -> Decimal | None:
    return None if value is NO_VALUE else round_money(value)


def _totals(lines: Sequence[LineRevenue], products: dict[str, Product]) -> list[_ProductTotals]:
    grouped: dict[str, dict] = {}
    for line in lines:
        bucket = grouped.setdefault(
            line.product_id,
            {
                "orders": set(),
                "units": 0,
                "revenue": Decimal("0"),
                "cost": Decimal("0"),
                "discounts": [],
            },
        )
        bucket["orders"].add(line.order_id)
        bucket["units"] += line.quantity
        bucket["revenue"] += line.net_revenue
        bucket["cost"] += line.line_cost
        bucket["discounts"].append(line.discount_percent)

    return [
        _ProductTotals(
            product=products[product_id],
            times_ordered=len(data["orders"]),
            units=data["units"],
            revenue=data["revenue"],
            cost=data["cost"],
            avg_discount=sum(data["discounts"], Decimal("0")) / len(data["discounts"]),
        )
        for product_id, data in sorted(grouped.items())
    ]


def _by_category(total: _ProductTotals) -> str:
    return total.product.category


def _by_revenue(total: _ProductTotals) -> Decimal:
    return total.revenue


def analyze_product_performance(
    lines: Sequence[LineRevenue], products: Sequence[Product]
) -> list[ProductPerformance]:
    """Summarise and rank every product sold in a completed order.

    Returns
    -------
    list[ProductPerformance]
        Sorted by revenue (descending), then product id.
    """
    totals = _totals(lines, {product.product_id: product for product in products})
    if not totals:
        return []

    overall = evaluate(totals, None, _by_revenue, Rank(), descending=True)
    in_category = evaluate(totals, _by_category, _by_revenue, Rank(), descending=True)
    medians = evaluate(totals, _by_category, _by_revenue, PercentileCont(_by_revenue, 0.5))
    previous = evaluate(totals, _by_category, _by_revenue, Lag(_by_revenue), descending=True)
    following = evaluate(totals, _by_category, _by_revenue, Lead(_by_revenue), descending=True)

    results = []
    for total, rank, category_rank, median, prev, nxt in zip(
        totals, overall, in_category, medians, previous, following
    ):
        gross_profit = total.revenue - total.cost
        margin = None
        if total.revenue != 0:
            margin = (100 * gross_profit / total.revenue).quantize(
                Decimal("0.01"), rounding=ROUND_HALF_UP
            )
        results.append(
            ProductPerformance(
                product_id=total.product.product_id,
                product_name=total.product.product_name,
                category=total.product.category,
                subcategory=total.product.subcategory,
                times_ordered=total.times_ordered,
                total_units_sold=total.units,
                total_revenue=round_money(total.revenue),
                total_cost=round_money(total.cost),
                gross_profit=round_money(gross_profit),
                profit_margin_pct=margin,
                revenue_per_order=round_money(total.revenue / total.times_ordered),
                avg_discount_rate=round_money(total.avg_discount),
                revenue_rank=rank.value,
                category_rank=category_rank.value,
                category_median_revenue=round_money(median.value),
                prev_product_revenue=_optional_money(prev.value),
                next_product_revenue=_optional_money(nxt.value),
                performance_vs_category=(
                    ABOVE_MEDIAN if total.revenue > median.value else BELOW_MEDIAN
                ),
            )
        )
    results.sort(key=lambda row: (row.revenue_rank, row.product_id))
    return results
