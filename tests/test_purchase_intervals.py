"""Tests for the inter-purchase interval forecaster."""

from datetime import date, timedelta

import pytest

from commerce_analytics.analyses.purchase_intervals import (
    CustomerStatus,
    classify_status,
    forecast_next_purchases,
)
from commerce_analytics.foundation.snapshot import Order, OrderStatus


def _orders(customer_id, *days, status=OrderStatus.COMPLETED):
    return [
        Order(f"{customer_id}-{idx}", customer_id, day, None, status)
        for idx, day in enumerate(days)
    ]


class TestClassifyStatus:
    """Status thresholds."""

    @pytest.mark.parametrize(
        "days_since, expected",
        [
            (15, CustomerStatus.ON_TRACK),
            (16, CustomerStatus.DUE),
            (22, CustomerStatus.DUE),
            (23, CustomerStatus.OVERDUE),
        ],
    )
    def test_thresholds_are_strict(self, days_since, expected):
        """Due strictly after the mean, overdue strictly after mean + stddev."""
        assert classify_status(days_since, 15, 7) is expected

    def test_single_gap_is_never_overdue(self):
        """Without a standard deviation only Due or On Track apply."""
        assert classify_status(1000, 15, None) is CustomerStatus.DUE

    def test_status_labels(self):
        """Labels are consumed verbatim by reports."""
        assert CustomerStatus.OVERDUE.value == "Overdue - High Churn Risk"
        assert CustomerStatus.DUE.value == "Due for Reorder"
        assert CustomerStatus.ON_TRACK.value == "On Track"


class TestForecastNextPurchases:
    """Forecast rows."""

    def test_two_customer_scenario(self, scenario_snapshot):
        """Only the repeat customer is forecast; B has a single order."""
        as_of = date(2024, 3, 15)
        (forecast,) = forecast_next_purchases(
            scenario_snapshot.orders, as_of, scenario_snapshot.customers
        )
        assert forecast.customer_id == "A"
        assert forecast.customer_name == "Alice"
        assert forecast.total_orders == 2
        assert forecast.avg_days_between_orders == 31
        assert forecast.stddev_days_between_orders is None
        assert forecast.predicted_next_order_date == date(2024, 3, 3)
        assert forecast.days_since_last_order == 43
        assert forecast.customer_status is CustomerStatus.DUE

    def test_retail_forecasts(self, retail_snapshot):
        """Returned orders do not count toward a customer's history."""
        forecasts = forecast_next_purchases(retail_snapshot.orders, date(2023, 5, 1))
        assert [row.customer_id for row in forecasts] == ["C2", "C1", "C5"]
        c1 = forecasts[1]
        assert c1.avg_days_between_orders == 36
        assert c1.stddev_days_between_orders == 10
        assert c1.first_order_date == date(2023, 1, 20)
        assert c1.last_order_date == date(2023, 4, 2)
        assert c1.predicted_next_order_date == date(2023, 5, 8)
        assert c1.customer_status is CustomerStatus.ON_TRACK

    def test_statistics_round_half_up(self):
        """A mean of 10.5 days rounds to 11, not to the even 10."""
        orders = _orders("C1", date(2024, 1, 1), date(2024, 1, 11), date(2024, 1, 22))
        (forecast,) = forecast_next_purchases(orders, date(2024, 1, 22))
        assert forecast.avg_days_between_orders == 11
        assert forecast.stddev_days_between_orders == 1

    def test_overdue_customer(self):
        """Gaps of 10 and 20 days: overdue once more than 22 days have passed."""
        last = date(2024, 1, 31)
        orders = _orders("C1", date(2024, 1, 1), date(2024, 1, 11), last)
        (forecast,) = forecast_next_purchases(orders, last + timedelta(days=23))
        assert forecast.avg_days_between_orders == 15
        assert forecast.stddev_days_between_orders == 7
        assert forecast.customer_status is CustomerStatus.OVERDUE

    def test_input_order_does_not_matter(self):
        """Orders are sorted by date before gaps are taken."""
        orders = _orders("C1", date(2024, 3, 1), date(2024, 1, 1), date(2024, 2, 1))
        (forecast,) = forecast_next_purchases(orders, date(2024, 3, 1))
        assert forecast.first_order_date == date(2024, 1, 1)
        assert forecast.avg_days_between_orders == 30

    def test_order_after_as_of_rejected(self):
        """An as-of date before the last completed order is an error, not a negative recency."""
        orders = _orders("A", date(2024, 1, 1), date(2024, 2, 1))
        with pytest.raises(ValueError, match="cannot be after as_of .* for customer A"):
            forecast_next_purchases(orders, date(2024, 1, 15))

    def test_cancelled_order_after_as_of_allowed(self):
        """Only completed orders are checked against the as-of date."""
        orders = _orders("A", date(2024, 1, 1), date(2024, 1, 11)) + _orders(
            "Ax", date(2024, 3, 1), status=OrderStatus.CANCELLED
        )
        (forecast,) = forecast_next_purchases(orders, date(2024, 1, 20))
        assert forecast.days_since_last_order == 9

    def test_non_completed_orders_ignored(self):
        """Cancelled orders are not purchases."""
        orders = _orders("C1", date(2024, 1, 1)) + _orders(
            "C1x", date(2024, 1, 5), status=OrderStatus.CANCELLED
        )
        assert forecast_next_purchases(orders, date(2024, 2, 1)) == []
