"""Exception types raised by the analytics engine.

Both error types subclass :class:`ValueError` so callers that already guard
record validation with ``except ValueError`` keep working, while pipelines
can tell an integrity violation apart from a broken category tree.
"""

from __future__ import annotations

from typing import Any, Sequence


class AnalyticsError(Exception):
    """Base class for engine failures."""


class IntegrityError(AnalyticsError, ValueError):
    """A snapshot row references a row that does not exist (or is duplicated).

    Attributes
    ----------
    table:
        Name of the table holding the offending row (e.g. ``"order_items"``).
    row_index:
        Position of the row within that table, if known.
    field:
        Column carrying the dangling reference.
    value:
        The referenced key that could not be resolved.
    """

    def __init__(
        self,
        message: str,
        *,
        table: str,
        row_index: int | None = None,
        field: str | None = None,
        value: Any = None,
    ) -> None:
        self.table = table
        self.row_index = row_index
        self.field = field
        self.value = value
        location = f"{table}[{row_index}]" if row_index is not None else table
        if field is not None:
            location = f"{location}.{field}={value!r}"
        super().__init__(f"{message} ({location})")


class CycleError(AnalyticsError, ValueError):
    """The category forest contains a node that is its own ancestor."""

    def __init__(self, cycle: Sequence[str]) -> None:
        self.cycle = list(cycle)
        path = " -> ".join(self.cycle + self.cycle[:1])
        super().__init__(f"Category hierarchy contains a cycle: {path}")
