"""Snapshot contract for the order log consumed by every analysis.

A snapshot is the read-only, already-materialised view of the four source
tables (customers, products, orders, order items) plus the category forest.
The dataclasses here validate single records; :meth:`Snapshot.validate_integrity`
checks the references between tables. :class:`SnapshotLoader` turns raw
JSON/CSV-shaped mappings into validated records, mirroring the way upstream
systems hand data over.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Any, Callable, Iterable, Mapping, Sequence, TypeVar, cast

from commerce_analytics.foundation.errors import IntegrityError

T = TypeVar("T")


class OrderStatus(str, Enum):
    """Lifecycle state of an order. Only completed orders carry revenue."""

    COMPLETED = "Completed"
    CANCELLED = "Cancelled"
    RETURNED = "Returned"


@dataclass(frozen=True)
class Customer:
    customer_id: str
    customer_name: str
    registration_date: date | None
    country: str
    customer_segment: str | None = None
    email: str | None = None


@dataclass(frozen=True)
class Product:
    product_id: str
    product_name: str
    category: str
    subcategory: str | None
    unit_price: Decimal
    cost_price: Decimal

    def __post_init__(self) -> None:
        if self.unit_price < 0:
            raise ValueError(
                f"Unit price cannot be negative: {self.unit_price} (product_id={self.product_id})"
            )
        if self.cost_price < 0:
            raise ValueError(
                f"Cost price cannot be negative: {self.cost_price} (product_id={self.product_id})"
            )


@dataclass(frozen=True)
class Order:
    order_id: str
    customer_id: str
    order_date: date
    ship_date: date | None
    order_status: OrderStatus

    def __post_init__(self) -> None:
        if self.ship_date is not None and self.ship_date < self.order_date:
            raise ValueError(
                f"Ship date {self.ship_date} precedes order date {self.order_date} "
                f"(order_id={self.order_id})"
            )

    @property
    def is_completed(self) -> bool:
        return self.order_status is OrderStatus.COMPLETED


@dataclass(frozen=True)
class OrderItem:
    """One line of an order.

    ``unit_price`` is the price at the time of sale and is the only pricing
    source used for revenue; the product's list price is never consulted.
    """

    order_id: str
    product_id: str
    quantity: int
    unit_price: Decimal
    discount_percent: Decimal = Decimal("0")
    order_item_id: str | None = None

    def __post_init__(self) -> None:
        if self.quantity <= 0:
            raise ValueError(
                f"Quantity must be positive: {self.quantity} (order_id={self.order_id})"
            )
        if self.unit_price < 0:
            raise ValueError(
                f"Unit price cannot be negative: {self.unit_price} (order_id={self.order_id})"
            )
        if not Decimal("0") <= self.discount_percent < Decimal("100"):
            raise ValueError(
                f"Discount must be in [0, 100): {self.discount_percent} (order_id={self.order_id})"
            )


@dataclass(frozen=True)
class CategoryNode:
    category_id: str
    category_name: str
    parent_category_id: str | None = None


@dataclass(frozen=True)
class Snapshot:
    """Immutable bundle of the source tables for one analytics run."""

    customers: Sequence[Customer]
    products: Sequence[Product]
    orders: Sequence[Order]
    order_items: Sequence[OrderItem]
    categories: Sequence[CategoryNode] = field(default_factory=tuple)

    @property
    def customers_by_id(self) -> dict[str, Customer]:
        return {customer.customer_id: customer for customer in self.customers}

    @property
    def products_by_id(self) -> dict[str, Product]:
        return {product.product_id: product for product in self.products}

    @property
    def orders_by_id(self) -> dict[str, Order]:
        return {order.order_id: order for order in self.orders}

    def completed_orders(self) -> list[Order]:
        return [order for order in self.orders if order.is_completed]

    def validate_integrity(self) -> None:
        """Check primary-key uniqueness and every foreign key.

        Raises
        ------
        IntegrityError
            On the first duplicate id or dangling reference, naming the table,
            row and field involved.
        """
        customers = _index_unique(self.customers, "customers", "customer_id")
        products = _index_unique(self.products, "products", "product_id")
        orders = _index_unique(self.orders, "orders", "order_id")

        for idx, order in enumerate(self.orders):
            if order.customer_id not in customers:
                raise IntegrityError(
                    "Order references a missing customer",
                    table="orders",
                    row_index=idx,
                    field="customer_id",
                    value=order.customer_id,
                )

        for idx, item in enumerate(self.order_items):
            if item.order_id not in orders:
                raise IntegrityError(
                    "Order item references a missing order",
                    table="order_items",
                    row_index=idx,
                    field="order_id",
                    value=item.order_id,
                )
            if item.product_id not in products:
                raise IntegrityError(
                    "Order item references a missing product",
                    table="order_items",
                    row_index=idx,
                    field="product_id",
                    value=item.product_id,
                )


def _index_unique(rows: Sequence[Any], table: str, key: str) -> set[str]:
    seen: set[str] = set()
    for idx, row in enumerate(rows):
        value = getattr(row, key)
        if value in seen:
            raise IntegrityError(
                "Duplicate primary key", table=table, row_index=idx, field=key, value=value
            )
        seen.add(value)
    return seen


def parse_date(value: Any) -> date | None:
    """Coerce ISO strings, datetimes and dates to :class:`date`."""
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        return date.fromisoformat(value[:10])
    raise TypeError(f"Cannot interpret {value!r} as a date")


def parse_decimal(value: Any) -> Decimal:
    """Convert a numeric value to Decimal without binary float artefacts."""
    if isinstance(value, Decimal):
        return value
    if isinstance(value, bool) or value is None:
        raise TypeError(f"Expected numeric value, got {value!r}")
    try:
        return Decimal(str(value))
    except InvalidOperation as exc:
        raise ValueError(f"Cannot interpret {value!r} as a decimal") from exc


def _optional_str(value: Any) -> str | None:
    if value is None or value == "":
        return None
    return str(value)


class SnapshotLoader:
    """Validate raw table records and assemble a :class:`Snapshot`.

    Records are mappings as produced by ``json.load`` or
    ``DataFrame.to_dict("records")``. Missing required fields raise
    ``ValueError`` and malformed values ``TypeError``/``ValueError``, each
    carrying the table name and record index.
    """

    REQUIRED_FIELDS: dict[str, tuple[str, ...]] = {
        "customers": ("customer_id", "customer_name"),
        "products": ("product_id", "product_name", "category", "unit_price"),
        "orders": ("order_id", "customer_id", "order_date", "order_status"),
        "order_items": ("order_id", "product_id", "quantity", "unit_price"),
        "categories": ("category_id", "category_name"),
    }

    def from_records(
        self,
        *,
        customers: Iterable[Mapping[str, Any]],
        products: Iterable[Mapping[str, Any]],
        orders: Iterable[Mapping[str, Any]],
        order_items: Iterable[Mapping[str, Any]],
        categories: Iterable[Mapping[str, Any]] = (),
        validate: bool = True,
    ) -> Snapshot:
        snapshot = Snapshot(
            customers=tuple(self._convert(customers, "customers", _customer)),
            products=tuple(self._convert(products, "products", _product)),
            orders=tuple(self._convert(orders, "orders", _order)),
            order_items=tuple(self._convert(order_items, "order_items", _order_item)),
            categories=tuple(self._convert(categories, "categories", _category)),
        )
        if validate:
            snapshot.validate_integrity()
        return snapshot

    def _convert(
        self,
        records: Iterable[Mapping[str, Any]],
        table: str,
        factory: Callable[[Mapping[str, Any]], T],
    ) -> list[T]:
        required = self.REQUIRED_FIELDS[table]
        converted: list[T] = []
        for idx, record in enumerate(records):
            missing = [name for name in required if record.get(name) in (None, "")]
            if missing:
                raise ValueError(
                    "Record missing required fields",
                    {"table": table, "missing_fields": missing, "record_index": idx},
                )
            try:
                converted.append(factory(record))
            except (TypeError, ValueError) as exc:
                raise type(exc)(
                    f"Invalid {table} record at index {idx}: {exc}"
                ) from exc
        return converted


def _customer(record: Mapping[str, Any]) -> Customer:
    return Customer(
        customer_id=str(record["customer_id"]),
        customer_name=str(record["customer_name"]),
        registration_date=parse_date(record.get("registration_date")),
        country=str(record.get("country") or ""),
        customer_segment=_optional_str(record.get("customer_segment")),
        email=_optional_str(record.get("email")),
    )


def _product(record: Mapping[str, Any]) -> Product:
    return Product(
        product_id=str(record["product_id"]),
        product_name=str(record["product_name"]),
        category=str(record["category"]),
        subcategory=_optional_str(record.get("subcategory")),
        unit_price=parse_decimal(record["unit_price"]),
        cost_price=parse_decimal(record.get("cost_price") or 0),
    )


def _order(record: Mapping[str, Any]) -> Order:
    # REQUIRED_FIELDS rules out empty values, so parse_date never returns None here.
    order_date = cast(date, parse_date(record["order_date"]))
    return Order(
        order_id=str(record["order_id"]),
        customer_id=str(record["customer_id"]),
        order_date=order_date,
        ship_date=parse_date(record.get("ship_date")),
        order_status=OrderStatus(record["order_status"]),
    )


def _order_item(record: Mapping[str, Any]) -> OrderItem:
    return OrderItem(
        order_id=str(record["order_id"]),
        product_id=str(record["product_id"]),
        quantity=int(record["quantity"]),
        unit_price=parse_decimal(record["unit_price"]),
        discount_percent=parse_decimal(record.get("discount_percent") or 0),
        order_item_id=_optional_str(record.get("order_item_id")),
    )


def _category(record: Mapping[str, Any]) -> CategoryNode:
    return CategoryNode(
        category_id=str(record["category_id"]),
        category_name=str(record["category_name"]),
        parent_category_id=_optional_str(record.get("parent_category_id")),
    )
