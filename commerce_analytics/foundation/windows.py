"""Window functions over in-memory rows.

Every windowed computation in the package goes through :func:`evaluate`,
which partitions rows, orders each partition and applies one operation from
a small closed set. Keeping a single partition/sort/apply pipeline means all
analyses share identical tie-break semantics: rows with equal order keys
keep their input order (Python's sort is stable, including with
``reverse=True``).

Quick Start
-----------
>>> from commerce_analytics.foundation.windows import evaluate, Rank
>>> scores = [("a", 10), ("b", 30), ("c", 10)]
>>> [r.value for r in evaluate(scores, None, lambda s: s[1], Rank(), descending=True)]
[2, 1, 2]
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from decimal import Decimal
from enum import Enum
from typing import Any, Callable, Generic, Hashable, Iterable, Sequence, TypeVar, Union

R = TypeVar("R")


class _NoValue(Enum):
    NO_VALUE = "NO_VALUE"

    def __repr__(self) -> str:
        return "NO_VALUE"

    def __bool__(self) -> bool:
        return False


#: Returned by lag/lead when the offset row falls outside the partition.
NO_VALUE = _NoValue.NO_VALUE


@dataclass(frozen=True)
class RowNumber:
    """Sequential 1..n position within the partition."""


@dataclass(frozen=True)
class Rank:
    """Peers share a rank; the next rank skips by the size of the tie group."""


@dataclass(frozen=True)
class DenseRank:
    """Peers share a rank; ranks have no gaps."""


@dataclass(frozen=True)
class Lag:
    """Value ``offset`` rows before the current row."""

    value: Callable[[Any], Any]
    offset: int = 1
    default: Any = NO_VALUE

    def __post_init__(self) -> None:
        if self.offset < 0:
            raise ValueError(f"offset must be >= 0, got {self.offset}")


@dataclass(frozen=True)
class Lead:
    """Value ``offset`` rows after the current row."""

    value: Callable[[Any], Any]
    offset: int = 1
    default: Any = NO_VALUE

    def __post_init__(self) -> None:
        if self.offset < 0:
            raise ValueError(f"offset must be >= 0, got {self.offset}")


@dataclass(frozen=True)
class FrameAggregate:
    """Sum or average over a ROWS frame ending at the current row.

    Attributes
    ----------
    value:
        Extracts the aggregated value from a row.
    function:
        ``"sum"`` or ``"avg"``.
    preceding:
        ``None`` for UNBOUNDED PRECEDING, otherwise the number of rows before
        the current row included in the frame.
    """

    value: Callable[[Any], Any]
    function: str = "sum"
    preceding: int | None = None

    def __post_init__(self) -> None:
        if self.function not in _AGGREGATES:
            raise ValueError(
                f"Unsupported frame aggregate {self.function!r}; "
                f"expected one of {sorted(_AGGREGATES)}"
            )
        if self.preceding is not None and self.preceding < 0:
            raise ValueError(f"preceding must be >= 0, got {self.preceding}")


@dataclass(frozen=True)
class Ntile:
    """Split the ordered partition into ``buckets`` near-equal groups."""

    buckets: int

    def __post_init__(self) -> None:
        if self.buckets < 1:
            raise ValueError(f"buckets must be >= 1, got {self.buckets}")


@dataclass(frozen=True)
class PercentileCont:
    """Continuous percentile of ``value`` over the ordered partition.

    The partition must be ordered by the same value being interpolated.
    """

    value: Callable[[Any], Any]
    fraction: float

    def __post_init__(self) -> None:
        if not 0 <= self.fraction <= 1:
            raise ValueError(f"fraction must be within [0, 1], got {self.fraction}")


WindowOperation = Union[
    RowNumber, Rank, DenseRank, Lag, Lead, FrameAggregate, Ntile, PercentileCont
]


@dataclass(frozen=True)
class WindowResult(Generic[R]):
    """A source row paired with the computed window value."""

    row: R
    value: Any


def evaluate(
    rows: Iterable[R],
    partition_key: Callable[[R], Hashable] | None,
    order_key: Callable[[R], Any],
    operation: WindowOperation,
    *,
    descending: bool = False,
) -> list[WindowResult[R]]:
    """Apply a window operation to every row.

    Parameters
    ----------
    rows:
        Input rows of any type. They are never modified.
    partition_key:
        Maps a row to its partition; ``None`` treats all rows as one partition.
    order_key:
        Sort key within a partition. Rows with equal keys are peers for
        ranking purposes and keep their input order.
    operation:
        One of the window operation variants defined in this module.
    descending:
        Sort the partition in descending key order.

    Returns
    -------
    list[WindowResult]
        One result per input row, in input order.
    """
    handler = _HANDLERS.get(type(operation))
    if handler is None:
        raise TypeError(f"Unsupported window operation: {operation!r}")

    source = list(rows)
    partitions: dict[Hashable, list[int]] = {}
    for idx, row in enumerate(source):
        key = partition_key(row) if partition_key is not None else None
        partitions.setdefault(key, []).append(idx)

    values: list[Any] = [None] * len(source)
    for indices in partitions.values():
        ordered = sorted(
            indices, key=lambda i: order_key(source[i]), reverse=descending
        )
        ordered_rows = [source[i] for i in ordered]
        keys = [order_key(row) for row in ordered_rows]
        for idx, value in zip(ordered, handler(operation, ordered_rows, keys)):
            values[idx] = value

    return [WindowResult(row=row, value=value) for row, value in zip(source, values)]


def _row_number(_: RowNumber, rows: Sequence[Any], keys: Sequence[Any]) -> list[int]:
    return list(range(1, len(rows) + 1))


def _rank(_: Rank, rows: Sequence[Any], keys: Sequence[Any]) -> list[int]:
    ranks: list[int] = []
    for position, key in enumerate(keys):
        if position > 0 and key == keys[position - 1]:
            ranks.append(ranks[-1])
        else:
            ranks.append(position + 1)
    return ranks


def _dense_rank(_: DenseRank, rows: Sequence[Any], keys: Sequence[Any]) -> list[int]:
    ranks: list[int] = []
    for position, key in enumerate(keys):
        if position == 0:
            ranks.append(1)
        elif key == keys[position - 1]:
            ranks.append(ranks[-1])
        else:
            ranks.append(ranks[-1] + 1)
    return ranks


def _lag(operation: Lag, rows: Sequence[Any], keys: Sequence[Any]) -> list[Any]:
    return [
        operation.value(rows[position - operation.offset])
        if position - operation.offset >= 0
        else operation.default
        for position in range(len(rows))
    ]


def _lead(operation: Lead, rows: Sequence[Any], keys: Sequence[Any]) -> list[Any]:
    return [
        operation.value(rows[position + operation.offset])
        if position + operation.offset < len(rows)
        else operation.default
        for position in range(len(rows))
    ]


def _sum(values: Sequence[Any]) -> Any:
    return sum(values[1:], values[0])


def _avg(values: Sequence[Any]) -> Any:
    return _sum(values) / len(values)


_AGGREGATES: dict[str, Callable[[Sequence[Any]], Any]] = {"sum": _sum, "avg": _avg}


def _frame_aggregate(
    operation: FrameAggregate, rows: Sequence[Any], keys: Sequence[Any]
) -> list[Any]:
    aggregate = _AGGREGATES[operation.function]
    values = [operation.value(row) for row in rows]
    results = []
    for position in range(len(values)):
        start = 0 if operation.preceding is None else max(0, position - operation.preceding)
        results.append(aggregate(values[start : position + 1]))
    return results


def _ntile(operation: Ntile, rows: Sequence[Any], keys: Sequence[Any]) -> list[int]:
    n = len(rows)
    size, remainder = divmod(n, operation.buckets)
    buckets: list[int] = []
    for bucket in range(1, operation.buckets + 1):
        bucket_size = size + 1 if bucket <= remainder else size
        buckets.extend([bucket] * bucket_size)
    return buckets[:n]


def _percentile_cont(
    operation: PercentileCont, rows: Sequence[Any], keys: Sequence[Any]
) -> list[Any]:
    if not rows:
        return []
    values = [operation.value(row) for row in rows]
    position = operation.fraction * (len(values) - 1)
    lower = math.floor(position)
    upper = math.ceil(position)
    low_value, high_value = values[lower], values[upper]
    if lower == upper:
        result = low_value
    else:
        weight: Any = position - lower
        if isinstance(low_value, Decimal):
            weight = Decimal(str(weight))
        result = low_value + (high_value - low_value) * weight
    return [result] * len(rows)


_HANDLERS: dict[type, Callable[[Any, Sequence[Any], Sequence[Any]], list[Any]]] = {
    RowNumber: _row_number,
    Rank: _rank,
    DenseRank: _dense_rank,
    Lag: _lag,
    Lead: _lead,
    FrameAggregate: _frame_aggregate,
    Ntile: _ntile,
    PercentileCont: _percentile_cont,
}
