"""Pandas DataFrame adapters for snapshots and result tables."""

from typing import Any, List, Optional, Sequence, Type

import pandas as pd  # type: ignore

from commerce_analytics.analyses.cube import DEFAULT_DIMENSIONS
from commerce_analytics.foundation.snapshot import Snapshot, SnapshotLoader
from ._utils import clean_record, row_to_dict, row_type_columns

ID_COLUMNS = (
    "customer_id",
    "product_id",
    "order_id",
    "order_item_id",
    "category_id",
    "parent_category_id",
)


def _normalise_id(value: Any) -> Any:
    # Integer ids read from a column with gaps arrive as floats (1.0).
    if isinstance(value, float) and value.is_integer():
        return int(value)
    return value


def _records(df: Optional[pd.DataFrame]) -> List[dict]:
    if df is None or df.empty:
        return []
    records = []
    for record in df.to_dict("records"):
        cleaned = clean_record(record)
        for column in ID_COLUMNS:
            if column in cleaned:
                cleaned[column] = _normalise_id(cleaned[column])
        records.append(cleaned)
    return records


def snapshot_from_dataframes(
    customers: pd.DataFrame,
    products: pd.DataFrame,
    orders: pd.DataFrame,
    order_items: pd.DataFrame,
    categories: Optional[pd.DataFrame] = None,
    validate: bool = True,
) -> Snapshot:
    """Build a validated snapshot from one DataFrame per source table.

    Args:
        customers: customer_id, customer_name, registration_date, country, customer_segment
        products: product_id, product_name, category, subcategory, unit_price, cost_price
        orders: order_id, customer_id, order_date, ship_date, order_status
        order_items: order_id, product_id, quantity, unit_price, discount_percent
        categories: Optional category_id, category_name, parent_category_id
        validate: Check referential integrity after loading

    Returns:
        Snapshot with typed records

    Raises:
        ValueError: If a required column value is missing or malformed
        IntegrityError: If ``validate`` is set and a reference cannot be resolved

    Example:
        >>> snapshot = snapshot_from_dataframes(
        ...     pd.read_csv("customers.csv"),
        ...     pd.read_csv("products.csv"),
        ...     pd.read_csv("orders.csv"),
        ...     pd.read_csv("order_items.csv"),
        ... )
    """
    return SnapshotLoader().from_records(
        customers=_records(customers),
        products=_records(products),
        orders=_records(orders),
        order_items=_records(order_items),
        categories=_records(categories),
        validate=validate,
    )


def results_to_dataframe(
    rows: Sequence[Any],
    row_type: Optional[Type[Any]] = None,
    dimension_names: Optional[Sequence[str]] = None,
) -> pd.DataFrame:
    """Convert result rows (dataclasses) to a DataFrame.

    Args:
        rows: Result rows from any analysis
        row_type: Dataclass of the rows; used to build an empty frame with
            the right columns when ``rows`` is empty
        dimension_names: Cube dimension names used to flatten an empty cube
            result; defaults to the standard sales cube dimensions

    Returns:
        DataFrame with one column per field; Decimal values become floats

    Example:
        >>> clv_df = results_to_dataframe(report.customer_lifetime_value)
        >>> clv_df.nsmallest(10, "clv_rank")
    """
    if not rows:
        if row_type is None:
            return pd.DataFrame()
        if dimension_names is None:
            dimension_names = [dimension.name for dimension in DEFAULT_DIMENSIONS]
        columns = row_type_columns(row_type, dimension_names)
        return pd.DataFrame(columns=columns)
    return pd.DataFrame([row_to_dict(row) for row in rows])
