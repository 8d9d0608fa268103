"""Tests for acquisition cohorts and retention."""

from datetime import date
from decimal import Decimal

import pytest

from commerce_analytics.foundation.cohorts import (
    CohortRetention,
    assign_cohorts,
    calculate_cohort_retention,
    retention_rate,
)
from commerce_analytics.foundation.periods import month_label, months_between, next_month
from commerce_analytics.foundation.snapshot import Order, OrderStatus


def _order(order_id, customer_id, day, status=OrderStatus.COMPLETED):
    return Order(order_id, customer_id, day, None, status)


class TestPeriods:
    """Calendar month helpers."""

    def test_months_between_crosses_years(self):
        """Month differences ignore the day of month."""
        assert months_between(date(2023, 11, 30), date(2024, 2, 1)) == 3
        assert months_between(date(2024, 1, 31), date(2024, 1, 1)) == 0

    def test_next_month_handles_december(self):
        """December rolls over into January."""
        assert next_month(date(2023, 12, 15)) == date(2024, 1, 1)

    def test_month_label(self):
        """Labels are zero-padded YYYY-MM."""
        assert month_label(date(2024, 3, 9)) == "2024-03"


class TestAssignCohorts:
    """Cohort membership."""

    def test_cohort_is_month_of_first_completed_order(self):
        """Cancelled earlier orders do not set the cohort."""
        orders = [
            _order("O1", "C1", date(2024, 1, 5), OrderStatus.CANCELLED),
            _order("O2", "C1", date(2024, 3, 9)),
            _order("O3", "C2", date(2024, 2, 28)),
        ]
        assert assign_cohorts(orders) == {"C1": date(2024, 3, 1), "C2": date(2024, 2, 1)}

    def test_customers_without_completed_orders_are_excluded(self):
        """Customers whose orders were all returned belong to no cohort."""
        orders = [_order("O1", "C1", date(2024, 1, 5), OrderStatus.RETURNED)]
        assert assign_cohorts(orders) == {}


class TestRetention:
    """Retention rates per cohort and month offset."""

    def test_retention_rate_rounding(self):
        """Rates are percentages rounded half-up to two decimals."""
        assert retention_rate(1, 3) == Decimal("33.33")
        assert retention_rate(2, 3) == Decimal("66.67")
        assert retention_rate(0, 0) is None

    def test_sparse_retention(self, retail_snapshot):
        """Months without activity are omitted by default."""
        rows = calculate_cohort_retention(retail_snapshot.orders)
        january = [row for row in rows if row.cohort_month == date(2023, 1, 1)]
        assert [(row.months_since_cohort, row.active_customers, row.retention_rate) for row in january] == [
            (0, 2, Decimal("100.00")),
            (1, 1, Decimal("50.00")),
            (3, 1, Decimal("50.00")),
        ]
        assert all(row.cohort_size == 2 for row in january)

    def test_dense_retention_fills_gaps(self, retail_snapshot):
        """Dense mode reports zero-activity months up to the last order month."""
        rows = calculate_cohort_retention(retail_snapshot.orders, dense=True)
        january = [row for row in rows if row.cohort_month == date(2023, 1, 1)]
        assert [(row.months_since_cohort, row.active_customers) for row in january] == [
            (0, 2),
            (1, 1),
            (2, 0),
            (3, 1),
        ]
        april = [row for row in rows if row.cohort_month == date(2023, 4, 1)]
        assert [row.months_since_cohort for row in april] == [0]

    def test_dense_retention_through_date(self, scenario_snapshot):
        """An explicit through date extends every cohort's timeline."""
        rows = calculate_cohort_retention(
            scenario_snapshot.orders, dense=True, through=date(2024, 4, 30)
        )
        assert [row.months_since_cohort for row in rows] == [0, 1, 2, 3]

    def test_month_zero_is_always_full(self, retail_snapshot):
        """Every cohort is fully active in its own month."""
        rows = calculate_cohort_retention(retail_snapshot.orders)
        month_zero = [row for row in rows if row.months_since_cohort == 0]
        assert len(month_zero) == 4
        assert all(row.retention_rate == Decimal("100.00") for row in month_zero)

    def test_rates_are_bounded(self, retail_snapshot):
        """Active customers never exceed the cohort size."""
        for row in calculate_cohort_retention(retail_snapshot.orders, dense=True):
            assert 0 <= row.active_customers <= row.cohort_size
            assert Decimal("0") <= row.retention_rate <= Decimal("100")

    def test_rows_sorted(self, retail_snapshot):
        """Rows are ordered by cohort month then month offset."""
        rows = calculate_cohort_retention(retail_snapshot.orders)
        keys = [(row.cohort_month, row.months_since_cohort) for row in rows]
        assert keys == sorted(keys)

    def test_no_completed_orders(self):
        """Snapshots without completed orders yield no rows."""
        assert calculate_cohort_retention([_order("O1", "C1", date(2024, 1, 1), OrderStatus.CANCELLED)]) == []


class TestCohortRetentionValidation:
    """Record-level invariants."""

    def test_active_cannot_exceed_size(self):
        """More active customers than members is rejected."""
        with pytest.raises(ValueError, match="exceeds cohort_size"):
            CohortRetention(date(2024, 1, 1), 0, 1, 2, Decimal("200"))

    def test_negative_offset_rejected(self):
        """Activity cannot precede the cohort month."""
        with pytest.raises(ValueError, match="months_since_cohort"):
            CohortRetention(date(2024, 1, 1), -1, 1, 1, Decimal("100"))
