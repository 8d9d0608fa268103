"""Daily sales trends: moving averages, growth and month-to-date totals."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from decimal import Decimal, ROUND_HALF_UP
from typing import Sequence

from commerce_analytics.foundation.periods import month_start
from commerce_analytics.foundation.revenue import DailyRevenue, round_money
from commerce_analytics.foundation.windows import NO_VALUE, FrameAggregate, Lag, evaluate


@dataclass(frozen=True)
class DailySalesTrend:
    """One day of completed-order sales with smoothed trend columns.

    Attributes
    ----------
    moving_avg_short / moving_avg_long:
        Mean daily revenue over the current day and the preceding
        ``window - 1`` days with sales (row frames, not calendar frames).
    month_running_total:
        Cumulative revenue from the first sales day of the calendar month.
    week_over_week_growth_pct:
        Percent change against the revenue ``lag_days`` sales days earlier;
        ``None`` if there is no such day or its revenue was zero.
    """

    order_date: date
    day_of_week: str
    orders_count: int
    unique_customers: int
    daily_revenue: Decimal
    avg_order_value: Decimal
    moving_avg_short: Decimal
    moving_avg_long: Decimal
    month_running_total: Decimal
    week_over_week_growth_pct: Decimal | None


def _growth_pct(current: Decimal, previous: Decimal) -> Decimal | None:
    if previous is NO_VALUE or previous == 0:
        return None
    return (100 * (current - previous) / previous).quantize(
        Decimal("0.01"), rounding=ROUND_HALF_UP
    )


def _by_date(day: DailyRevenue) -> date:
    return day.order_date


def _revenue(day: DailyRevenue) -> Decimal:
    return day.revenue


def analyze_sales_trends(
    daily_revenue: Sequence[DailyRevenue],
    short_window: int = 7,
    long_window: int = 30,
    lag_days: int = 7,
) -> list[DailySalesTrend]:
    """Annotate daily revenue with trend columns.

    Returns
    -------
    list[DailySalesTrend]
        Newest day first.
    """
    for name, value in (("short_window", short_window), ("long_window", long_window)):
        if value < 1:
            raise ValueError(f"{name} must be >= 1, got {value}")

    short = evaluate(daily_revenue, None, _by_date, FrameAggregate(_revenue, "avg", short_window - 1))
    long = evaluate(daily_revenue, None, _by_date, FrameAggregate(_revenue, "avg", long_window - 1))
    previous = evaluate(daily_revenue, None, _by_date, Lag(_revenue, offset=lag_days))
    month_to_date = evaluate(
        daily_revenue,
        lambda day: month_start(day.order_date),
        _by_date,
        FrameAggregate(_revenue, "sum"),
    )

    trends = [
        DailySalesTrend(
            order_date=day.order_date,
            day_of_week=day.order_date.strftime("%A"),
            orders_count=day.orders_count,
            unique_customers=day.unique_customers,
            daily_revenue=round_money(day.revenue),
            avg_order_value=round_money(day.avg_order_value),
            moving_avg_short=round_money(s.value),
            moving_avg_long=round_money(lg.value),
            month_running_total=round_money(m.value),
            week_over_week_growth_pct=_growth_pct(day.revenue, p.value),
        )
        for day, s, lg, p, m in zip(daily_revenue, short, long, previous, month_to_date)
    ]
    trends.sort(key=lambda trend: trend.order_date, reverse=True)
    return trends
