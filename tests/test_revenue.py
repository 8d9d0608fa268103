"""Tests for line, order and daily revenue derivation."""

from dataclasses import replace
from datetime import date
from decimal import Decimal

import pytest

from commerce_analytics.foundation.errors import IntegrityError
from commerce_analytics.foundation.revenue import (
    calculate_daily_revenue,
    calculate_line_revenue,
    calculate_order_revenue,
    net_line_revenue,
    round_money,
)


class TestNetLineRevenue:
    """Per-line arithmetic."""

    def test_discount_applied_to_sale_price(self):
        """quantity x price x (1 - discount/100)."""
        assert net_line_revenue(1, Decimal("1299.99"), Decimal("10")) == Decimal("1169.991")

    def test_no_discount(self):
        """A zero discount leaves the extended price unchanged."""
        assert net_line_revenue(2, Decimal("29.99"), Decimal("0")) == Decimal("59.98")

    def test_round_money_is_half_up(self):
        """Rounding to cents uses half-up."""
        assert round_money(Decimal("0.125")) == Decimal("0.13")
        assert round_money(Decimal("1169.991")) == Decimal("1169.99")


class TestLineRevenue:
    """Joining items to completed orders."""

    def test_only_completed_orders_contribute(self, retail_snapshot):
        """Returned and cancelled orders never produce revenue lines."""
        lines = calculate_line_revenue(retail_snapshot)
        order_ids = {line.order_id for line in lines}
        assert "O8" not in order_ids
        assert "O11" not in order_ids
        assert len(lines) == 10

    def test_item_price_used_not_list_price(self, scenario_snapshot):
        """Revenue comes from the order item price even when the list price differs."""
        products = (replace(scenario_snapshot.products[0], unit_price=Decimal("999.00")),) + tuple(
            scenario_snapshot.products[1:]
        )
        lines = calculate_line_revenue(replace(scenario_snapshot, products=products))
        assert lines[0].net_revenue == Decimal("100.00")

    def test_lines_sorted_by_date_then_order(self, retail_snapshot):
        """Lines come back in chronological order."""
        lines = calculate_line_revenue(retail_snapshot)
        keys = [(line.order_date, line.order_id) for line in lines]
        assert keys == sorted(keys)

    def test_line_cost_uses_product_cost(self, retail_snapshot):
        """Line cost is quantity times the product cost price."""
        lines = calculate_line_revenue(retail_snapshot)
        mouse = next(line for line in lines if line.order_id == "O5")
        assert mouse.line_cost == Decimal("45.00")

    def test_dangling_reference_aborts(self, scenario_snapshot):
        """An item pointing at an unknown product raises IntegrityError."""
        items = scenario_snapshot.order_items[:-1] + (
            replace(scenario_snapshot.order_items[-1], product_id="P404"),
        )
        with pytest.raises(IntegrityError, match="P404"):
            calculate_line_revenue(replace(scenario_snapshot, order_items=items))


class TestOrderRevenue:
    """Order-level sums."""

    def test_lines_summed_per_order(self, retail_snapshot):
        """Multi-line orders sum every line at full precision."""
        orders = calculate_order_revenue(calculate_line_revenue(retail_snapshot))
        first = next(order for order in orders if order.order_id == "O1")
        assert first.revenue == Decimal("1229.971")
        assert first.total_quantity == 3
        assert first.line_count == 2

    def test_sorted_by_customer_then_date(self, scenario_snapshot):
        """Orders are grouped by customer in chronological order."""
        orders = calculate_order_revenue(calculate_line_revenue(scenario_snapshot))
        assert [order.order_id for order in orders] == ["O1", "O2", "O3"]
        assert [order.revenue for order in orders] == [Decimal("100.00"), Decimal("300.00"), Decimal("50.00")]


class TestDailyRevenue:
    """Day-level sums."""

    def test_one_row_per_date(self, retail_snapshot):
        """Each order date with completed orders yields one row."""
        daily = calculate_daily_revenue(calculate_line_revenue(retail_snapshot))
        dates = [row.order_date for row in daily]
        assert dates == sorted(set(dates))
        jan20 = daily[0]
        assert jan20.order_date == date(2023, 1, 20)
        assert jan20.orders_count == 1
        assert jan20.unique_customers == 1
        assert jan20.revenue == Decimal("1229.971")
        assert jan20.avg_order_value == Decimal("1229.971") / 2

    def test_empty_lines(self):
        """No lines produce no days."""
        assert calculate_daily_revenue([]) == []
