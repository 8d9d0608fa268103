"""Shared utilities for pandas conversion operations."""

from dataclasses import fields, is_dataclass
from decimal import Decimal
from enum import Enum
from typing import Any, Mapping, Sequence

import pandas as pd  # type: ignore


def decimal_to_float(value: Decimal) -> float:
    """Convert Decimal to float for pandas compatibility."""
    return float(value)


def to_cell(value: Any) -> Any:
    """Convert a result value to something pandas stores natively.

    Decimals become floats and enums their value; other values pass through.
    """
    if isinstance(value, Decimal):
        return decimal_to_float(value)
    if isinstance(value, Enum):
        return value.value
    return value


def clean_record(record: Mapping[str, Any]) -> dict[str, Any]:
    """Replace pandas missing markers (NaN/NaT/None) with ``None``."""
    return {key: (None if _is_missing(value) else value) for key, value in record.items()}


def _is_missing(value: Any) -> bool:
    if isinstance(value, (list, tuple, dict, set)):
        return False
    try:
        return bool(pd.isna(value))
    except (TypeError, ValueError):
        return False


def row_to_dict(row: Any) -> dict[str, Any]:
    """Flatten a result dataclass into a column dict.

    Nested mappings (cube dimensions and grouping flags) are expanded into
    prefixed columns: ``category`` and ``category_grouping``.
    """
    if not is_dataclass(row):
        raise TypeError(f"Expected a dataclass row, got {type(row)}")
    flat: dict[str, Any] = {}
    for f in fields(row):
        value = getattr(row, f.name)
        if f.name == "dimensions" and isinstance(value, Mapping):
            flat.update({str(key): to_cell(item) for key, item in value.items()})
        elif f.name == "grouping" and isinstance(value, Mapping):
            flat.update({f"{key}_grouping": bool(item) for key, item in value.items()})
        else:
            flat[f.name] = to_cell(value)
    return flat


def row_type_columns(row_type: Any, dimension_names: Sequence[str]) -> list[str]:
    """Column names :func:`row_to_dict` produces for rows of ``row_type``.

    ``dimension_names`` stands in for the keys of the nested ``dimensions``
    and ``grouping`` mappings, which an empty result cannot supply.
    """
    columns: list[str] = []
    for f in fields(row_type):
        if f.name == "dimensions":
            columns.extend(dimension_names)
        elif f.name == "grouping":
            columns.extend(f"{name}_grouping" for name in dimension_names)
        else:
            columns.append(f.name)
    return columns
