"""Multi-dimensional sales cube (GROUP BY CUBE equivalent).

For up to three dimensions the cube aggregates every subset of them, from
the fully grouped rows down to the grand total. A dimension left out of a
subset is reported with its "all" label and a grouping flag set to
``True``.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from decimal import Decimal
from itertools import combinations
from typing import Callable, Hashable, Sequence

from commerce_analytics.foundation.periods import month_label
from commerce_analytics.foundation.revenue import LineRevenue, round_money
from commerce_analytics.foundation.snapshot import Snapshot

logger = logging.getLogger(__name__)

MAX_DIMENSIONS = 3


@dataclass(frozen=True)
class SalesFact:
    """One completed order line enriched with its reporting dimensions."""

    order_id: str
    customer_id: str
    category: str
    country: str
    order_month: str
    quantity: int
    revenue: Decimal


@dataclass(frozen=True)
class Dimension:
    """A grouping dimension of the cube.

    Attributes
    ----------
    name:
        Column name in the output.
    extractor:
        Maps a fact to its value for this dimension.
    all_label:
        Value reported for rows where the dimension is rolled up.
    """

    name: str
    extractor: Callable[[SalesFact], Hashable]
    all_label: str = "ALL"


DEFAULT_DIMENSIONS: tuple[Dimension, ...] = (
    Dimension("category", lambda fact: fact.category, "ALL CATEGORIES"),
    Dimension("country", lambda fact: fact.country, "ALL COUNTRIES"),
    Dimension("order_month", lambda fact: fact.order_month, "ALL MONTHS"),
)


@dataclass(frozen=True)
class CubeRow:
    """Aggregated measures for one grouping subset and value combination.

    ``dimensions`` maps each dimension name to its value or all-label, and
    ``grouping`` maps it to ``True`` when that dimension is rolled up.
    ``avg_order_value`` is the mean net revenue per order line.
    """

    dimensions: dict[str, Hashable] = field(hash=False)
    grouping: dict[str, bool] = field(hash=False)
    total_orders: int
    unique_customers: int
    total_units_sold: int
    total_revenue: Decimal
    avg_order_value: Decimal

    @property
    def rolled_up(self) -> int:
        """Number of dimensions reported as totals."""
        return sum(self.grouping.values())


def build_sales_facts(snapshot: Snapshot, lines: Sequence[LineRevenue]) -> list[SalesFact]:
    """Attach product category, customer country and order month to each line."""
    products = snapshot.products_by_id
    customers = snapshot.customers_by_id
    return [
        SalesFact(
            order_id=line.order_id,
            customer_id=line.customer_id,
            category=products[line.product_id].category,
            country=customers[line.customer_id].country,
            order_month=month_label(line.order_date),
            quantity=line.quantity,
            revenue=line.net_revenue,
        )
        for line in lines
    ]


def _measures(facts: Sequence[SalesFact]) -> dict[str, object]:
    revenue = sum((fact.revenue for fact in facts), Decimal("0"))
    return {
        "total_orders": len({fact.order_id for fact in facts}),
        "unique_customers": len({fact.customer_id for fact in facts}),
        "total_units_sold": sum(fact.quantity for fact in facts),
        "total_revenue": round_money(revenue),
        "avg_order_value": round_money(revenue / len(facts)),
    }


def _sort_value(value: Hashable) -> tuple[int, str]:
    # Mixed types compare by their string form; None sorts first.
    return (0, "") if value is None else (1, str(value))


def aggregate_cube(
    facts: Sequence[SalesFact], dimensions: Sequence[Dimension] = DEFAULT_DIMENSIONS
) -> list[CubeRow]:
    """Aggregate facts over every subset of ``dimensions``.

    Returns
    -------
    list[CubeRow]
        Rows with fewer rolled-up dimensions first (grand total last), then
        ordered by the grouping flags and the dimension values. No facts
        yields no rows.

    Raises
    ------
    ValueError
        If more than three dimensions are supplied or names repeat.
    """
    if len(dimensions) > MAX_DIMENSIONS:
        raise ValueError(
            f"At most {MAX_DIMENSIONS} dimensions are supported, got {len(dimensions)}"
        )
    names = [dimension.name for dimension in dimensions]
    if len(set(names)) != len(names):
        raise ValueError(f"Dimension names must be unique: {names}")
    if not facts:
        return []

    extracted = [tuple(dimension.extractor(fact) for dimension in dimensions) for fact in facts]

    rows: list[CubeRow] = []
    for size in range(len(dimensions), -1, -1):
        for active in combinations(range(len(dimensions)), size):
            groups: dict[tuple, list[SalesFact]] = {}
            for fact, values in zip(facts, extracted):
                key = tuple(values[i] for i in active)
                groups.setdefault(key, []).append(fact)
            for key, members in groups.items():
                values_by_index = dict(zip(active, key))
                rows.append(
                    CubeRow(
                        dimensions={
                            dimension.name: values_by_index.get(i, dimension.all_label)
                            for i, dimension in enumerate(dimensions)
                        },
                        grouping={
                            dimension.name: i not in values_by_index
                            for i, dimension in enumerate(dimensions)
                        },
                        **_measures(members),
                    )
                )

    rows.sort(
        key=lambda row: (
            row.rolled_up,
            tuple(row.grouping[name] for name in names),
            tuple(_sort_value(row.dimensions[name]) for name in names),
        )
    )
    logger.debug("Cube over %s produced %d rows", names, len(rows))
    return rows


def sales_cube(facts: Sequence[SalesFact]) -> list[CubeRow]:
    """Cube over category, customer country and order month."""
    return aggregate_cube(facts, DEFAULT_DIMENSIONS)
