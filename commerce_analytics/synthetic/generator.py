from __future__ import annotations

from dataclasses import dataclass
from datetime import date, timedelta
from decimal import Decimal
import math
import random
from typing import List, Optional, Sequence

from commerce_analytics.foundation.periods import next_month
from commerce_analytics.foundation.snapshot import (
    CategoryNode,
    Customer,
    Order,
    OrderItem,
    OrderStatus,
    Product,
    Snapshot,
)

COUNTRIES = ("USA", "UK", "Spain", "Japan", "Germany")
SEGMENTS = ("Premium", "Standard", "Basic")

# (category, subcategory, list price)
CATALOG: tuple[tuple[str, str, float], ...] = (
    ("Electronics", "Computers", 1299.99),
    ("Electronics", "Accessories", 29.99),
    ("Electronics", "Accessories", 49.99),
    ("Electronics", "Audio", 199.99),
    ("Furniture", "Seating", 349.99),
    ("Furniture", "Desks", 599.99),
    ("Furniture", "Storage", 129.99),
    ("Office Supplies", "Paper", 12.49),
    ("Office Supplies", "Writing", 8.99),
)


@dataclass(frozen=True)
class ScenarioConfig:
    """Configuration for the synthetic snapshot generator.

    Attributes
    ----------
    churn_hazard: Baseline monthly churn probability for existing customers.
    base_orders_per_month: Average orders per active customer per month.
    cancel_rate: Probability that an order is cancelled.
    return_rate: Probability that an order is returned.
    discount_rate: Probability that a line carries a discount.
    max_discount: Largest discount percent sampled (exclusive of 100).
    quantity_mean: Average quantity per order line.
    seed: Optional RNG seed for reproducibility.
    """

    churn_hazard: float = 0.08
    base_orders_per_month: float = 0.8
    cancel_rate: float = 0.05
    return_rate: float = 0.03
    discount_rate: float = 0.3
    max_discount: int = 30
    quantity_mean: float = 1.3
    seed: Optional[int] = None


def _month_range(start: date, end: date) -> List[date]:
    cur = date(start.year, start.month, 1)
    out: List[date] = []
    while cur <= end:
        out.append(cur)
        cur = next_month(cur)
    return out


def _poisson(rng: random.Random, lam: float) -> int:
    # Knuth's algorithm; fine for the small lambdas used here
    if lam <= 0:
        return 0
    limit = math.exp(-lam)
    k = 0
    p = 1.0
    while p > limit:
        k += 1
        p *= rng.random()
    return max(0, k - 1)


def _sample_quantity(rng: random.Random, mean_q: float) -> int:
    q = max(1.0, rng.lognormvariate(mu=math.log(max(mean_q, 0.1)), sigma=0.5))
    return max(1, int(round(q)))


def generate_products(catalog: Sequence[tuple[str, str, float]] = CATALOG) -> List[Product]:
    products = []
    for i, (category, subcategory, price) in enumerate(catalog):
        unit_price = Decimal(str(price))
        products.append(
            Product(
                product_id=f"P-{i + 1}",
                product_name=f"{subcategory} item {i + 1}",
                category=category,
                subcategory=subcategory,
                unit_price=unit_price,
                cost_price=(unit_price * Decimal("0.6")).quantize(Decimal("0.01")),
            )
        )
    return products


def generate_categories(products: Sequence[Product]) -> List[CategoryNode]:
    """Two-level forest: one root per category, one child per subcategory."""
    nodes: List[CategoryNode] = []
    roots: dict[str, str] = {}
    seen_children: set[tuple[str, str]] = set()
    for product in products:
        if product.category not in roots:
            roots[product.category] = f"CAT-{len(nodes) + 1}"
            nodes.append(CategoryNode(roots[product.category], product.category))
        key = (product.category, product.subcategory or "")
        if product.subcategory and key not in seen_children:
            seen_children.add(key)
            nodes.append(
                CategoryNode(f"CAT-{len(nodes) + 1}", product.subcategory, roots[product.category])
            )
    return nodes


def generate_snapshot(
    n_customers: int,
    start: date,
    end: date,
    *,
    seed: Optional[int] = None,
    scenario: Optional[ScenarioConfig] = None,
) -> Snapshot:
    """Generate a referentially consistent snapshot between ``start`` and ``end``.

    Customers register uniformly over the range, place a Poisson number of
    orders per month until they churn, and each order carries one to three
    lines from the catalogue. A share of orders is cancelled or returned.
    """
    if start > end:
        raise ValueError("start date must be <= end date")
    scenario = scenario or ScenarioConfig(seed=seed)
    rng = random.Random(seed if seed is not None else scenario.seed)

    products = generate_products()
    total_days = (end - start).days + 1
    customers = [
        Customer(
            customer_id=f"C-{i + 1}",
            customer_name=f"Customer {i + 1}",
            registration_date=start + timedelta(days=rng.randrange(total_days)),
            country=rng.choice(COUNTRIES),
            customer_segment=rng.choice(SEGMENTS),
        )
        for i in range(max(0, n_customers))
    ]

    orders: List[Order] = []
    items: List[OrderItem] = []
    active = {customer.customer_id: customer for customer in customers}
    for month in _month_range(start, end):
        month_end = min(next_month(month) - timedelta(days=1), end)
        churned = [cid for cid in active if rng.random() < scenario.churn_hazard]
        for cid in churned:
            active.pop(cid)

        for customer in list(active.values()):
            first_day = max(month, customer.registration_date)
            if first_day > month_end:
                continue
            for _ in range(_poisson(rng, scenario.base_orders_per_month)):
                order_date = first_day + timedelta(
                    days=rng.randrange((month_end - first_day).days + 1)
                )
                roll = rng.random()
                if roll < scenario.cancel_rate:
                    status = OrderStatus.CANCELLED
                elif roll < scenario.cancel_rate + scenario.return_rate:
                    status = OrderStatus.RETURNED
                else:
                    status = OrderStatus.COMPLETED
                order_id = f"O-{len(orders) + 1}"
                orders.append(
                    Order(
                        order_id=order_id,
                        customer_id=customer.customer_id,
                        order_date=order_date,
                        ship_date=order_date + timedelta(days=rng.randrange(1, 6)),
                        order_status=status,
                    )
                )
                for _line in range(1 + rng.randrange(3)):
                    product = rng.choice(products)
                    discount = (
                        Decimal(rng.randrange(5, scenario.max_discount + 1, 5))
                        if rng.random() < scenario.discount_rate
                        else Decimal("0")
                    )
                    items.append(
                        OrderItem(
                            order_id=order_id,
                            product_id=product.product_id,
                            quantity=_sample_quantity(rng, scenario.quantity_mean),
                            unit_price=product.unit_price,
                            discount_percent=discount,
                            order_item_id=f"OI-{len(items) + 1}",
                        )
                    )

    return Snapshot(
        customers=tuple(customers),
        products=tuple(products),
        orders=tuple(orders),
        order_items=tuple(items),
        categories=tuple(generate_categories(products)),
    )
