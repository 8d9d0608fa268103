"""Report-level analyses built on the foundation package.

- CLV: running lifetime value and ranking
- Sales trends: moving averages and growth over daily revenue
- Purchase intervals: next-order prediction and churn status
- Category hierarchy: path and depth for every category
- Cube: power-set aggregation over up to three dimensions
- Product performance: revenue, margin and in-category standing
"""

from .category_hierarchy import CategoryPath, resolve_category_hierarchy
from .clv import (
    CustomerLifetimeValue,
    RunningLifetimeValue,
    analyze_customer_lifetime_value,
    calculate_running_lifetime_value,
)
from .cube import (
    DEFAULT_DIMENSIONS,
    CubeRow,
    Dimension,
    SalesFact,
    aggregate_cube,
    build_sales_facts,
    sales_cube,
)
from .product_performance import ProductPerformance, analyze_product_performance
from .purchase_intervals import (
    CustomerStatus,
    PurchaseForecast,
    classify_status,
    forecast_next_purchases,
)
from .sales_trends import DailySalesTrend, analyze_sales_trends

__all__ = [
    "CategoryPath",
    "CubeRow",
    "CustomerLifetimeValue",
    "CustomerStatus",
    "DEFAULT_DIMENSIONS",
    "DailySalesTrend",
    "Dimension",
    "ProductPerformance",
    "PurchaseForecast",
    "RunningLifetimeValue",
    "SalesFact",
    "aggregate_cube",
    "analyze_customer_lifetime_value",
    "analyze_product_performance",
    "analyze_sales_trends",
    "build_sales_facts",
    "calculate_running_lifetime_value",
    "classify_status",
    "forecast_next_purchases",
    "resolve_category_hierarchy",
    "sales_cube",
]
