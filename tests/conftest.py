"""Shared fixtures for the analytics test suite."""

from datetime import date
from decimal import Decimal

import pytest

from commerce_analytics.foundation.snapshot import (
    CategoryNode,
    Customer,
    Order,
    OrderItem,
    OrderStatus,
    Product,
    Snapshot,
)


def make_order(order_id, customer_id, order_date, status=OrderStatus.COMPLETED):
    return Order(
        order_id=order_id,
        customer_id=customer_id,
        order_date=order_date,
        ship_date=None,
        order_status=status,
    )


def make_item(order_id, product_id, quantity, unit_price, discount="0"):
    return OrderItem(
        order_id=order_id,
        product_id=product_id,
        quantity=quantity,
        unit_price=Decimal(str(unit_price)),
        discount_percent=Decimal(discount),
    )


@pytest.fixture
def scenario_snapshot():
    """Two customers: A orders $100 then $300, B orders $50 once.

    A also has a cancelled order that must never count.
    """
    return Snapshot(
        customers=(
            Customer("A", "Alice", date(2023, 12, 1), "USA", "Premium"),
            Customer("B", "Bob", date(2024, 1, 10), "UK", "Basic"),
        ),
        products=(
            Product("P1", "Widget", "Electronics", "Accessories", Decimal("50.00"), Decimal("20.00")),
            Product("P2", "Desk", "Furniture", "Desks", Decimal("300.00"), Decimal("180.00")),
        ),
        orders=(
            make_order("O1", "A", date(2024, 1, 1)),
            make_order("O2", "A", date(2024, 2, 1)),
            make_order("O3", "B", date(2024, 1, 15)),
            make_order("O4", "A", date(2024, 3, 1), OrderStatus.CANCELLED),
        ),
        order_items=(
            make_item("O1", "P1", 2, "50.00"),
            make_item("O2", "P2", 1, "300.00"),
            make_item("O3", "P1", 1, "50.00"),
            make_item("O4", "P2", 3, "300.00"),
        ),
        categories=(
            CategoryNode("1", "Electronics"),
            CategoryNode("2", "Computers", "1"),
            CategoryNode("3", "Laptops", "2"),
        ),
    )


@pytest.fixture
def retail_snapshot():
    """Five customers and five products with discounted, multi-line orders."""
    customers = (
        Customer("C1", "John Smith", date(2023, 1, 15), "USA", "Premium"),
        Customer("C2", "Emma Wilson", date(2023, 2, 20), "UK", "Standard"),
        Customer("C3", "Carlos Rodriguez", date(2023, 3, 10), "Spain", "Basic"),
        Customer("C4", "Yuki Tanaka", date(2023, 1, 25), "Japan", "Premium"),
        Customer("C5", "Sarah Johnson", date(2023, 4, 5), "USA", "Standard"),
    )
    products = (
        Product("P1", "Laptop Pro 15", "Electronics", "Computers", Decimal("1299.99"), Decimal("800.00")),
        Product("P2", "Wireless Mouse", "Electronics", "Accessories", Decimal("29.99"), Decimal("15.00")),
        Product("P3", "Office Chair Deluxe", "Furniture", "Seating", Decimal("349.99"), Decimal("200.00")),
        Product("P4", "Standing Desk", "Furniture", "Desks", Decimal("599.99"), Decimal("350.00")),
        Product("P5", "USB-C Hub", "Electronics", "Accessories", Decimal("49.99"), Decimal("25.00")),
    )
    orders = (
        make_order("O1", "C1", date(2023, 1, 20)),
        make_order("O2", "C1", date(2023, 2, 18)),
        make_order("O3", "C1", date(2023, 4, 2)),
        make_order("O4", "C2", date(2023, 2, 25)),
        make_order("O5", "C2", date(2023, 3, 30)),
        make_order("O6", "C3", date(2023, 3, 12)),
        make_order("O7", "C4", date(2023, 1, 28)),
        make_order("O8", "C4", date(2023, 3, 1), OrderStatus.RETURNED),
        make_order("O9", "C5", date(2023, 4, 8)),
        make_order("O10", "C5", date(2023, 4, 20)),
        make_order("O11", "C3", date(2023, 4, 25), OrderStatus.CANCELLED),
    )
    order_items = (
        make_item("O1", "P1", 1, "1299.99", "10"),
        make_item("O1", "P2", 2, "29.99"),
        make_item("O2", "P5", 1, "49.99"),
        make_item("O3", "P3", 1, "349.99", "5"),
        make_item("O4", "P4", 1, "599.99"),
        make_item("O5", "P2", 3, "29.99", "20"),
        make_item("O6", "P3", 2, "349.99"),
        make_item("O7", "P1", 1, "1299.99"),
        make_item("O8", "P4", 1, "599.99"),
        make_item("O9", "P5", 2, "49.99"),
        make_item("O10", "P2", 1, "29.99"),
        make_item("O11", "P1", 1, "1299.99"),
    )
    categories = (
        CategoryNode("10", "Electronics"),
        CategoryNode("11", "Computers", "10"),
        CategoryNode("12", "Accessories", "10"),
        CategoryNode("13", "Laptops", "11"),
        CategoryNode("20", "Furniture"),
        CategoryNode("21", "Seating", "20"),
        CategoryNode("22", "Desks", "20"),
    )
    return Snapshot(customers, products, orders, order_items, categories)
