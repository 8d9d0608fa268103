"""Resolve a parent-referencing category forest into path-annotated rows.

Quick Start
-----------
>>> from commerce_analytics.foundation.snapshot import CategoryNode
>>> nodes = [
...     CategoryNode("1", "Electronics"),
...     CategoryNode("2", "Computers", "1"),
...     CategoryNode("3", "Laptops", "2"),
... ]
>>> [(row.full_path, row.level) for row in resolve_category_hierarchy(nodes)][-1]
('Electronics > Computers > Laptops', 3)

Siblings sort by name at each level, so a subtree always follows its root.
This differs from sorting whole path strings when a sibling name sorts
before the separator: "A (old)" comes after the "A > x" subtree here, while
a plain string sort of full paths would put it first.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Sequence

from commerce_analytics.foundation.errors import CycleError, IntegrityError
from commerce_analytics.foundation.snapshot import CategoryNode

PATH_SEPARATOR = " > "


@dataclass(frozen=True)
class CategoryPath:
    """A category with its full ancestry path and depth (roots are level 1)."""

    category_id: str
    category_name: str
    parent_category_id: str | None
    full_path: str
    level: int
    indented_name: str


def _find_cycle(start: str, parents: dict[str, str | None]) -> list[str]:
    """Follow parent links from ``start`` until a node repeats."""
    seen: dict[str, int] = {}
    walk: list[str] = []
    node: str | None = start
    while node is not None and node not in seen:
        seen[node] = len(walk)
        walk.append(node)
        node = parents.get(node)
    if node is None:  # pragma: no cover - caller only passes unreachable nodes
        return walk
    return walk[seen[node] :]


def resolve_category_hierarchy(
    nodes: Sequence[CategoryNode], separator: str = PATH_SEPARATOR
) -> list[CategoryPath]:
    """Walk the forest from its roots and emit one row per node.

    The traversal is iterative with an explicit stack, so deep trees do not
    hit the recursion limit. Output is depth-first with siblings ordered by
    name (then id), which orders the output by path components.

    Raises
    ------
    IntegrityError
        On duplicate category ids or a parent id that does not exist.
    CycleError
        If any node is its own ancestor. Such nodes can never be reached
        from a root, so they are detected as nodes left unvisited.
    """
    by_id: dict[str, CategoryNode] = {}
    for idx, node in enumerate(nodes):
        if node.category_id in by_id:
            raise IntegrityError(
                "Duplicate category id",
                table="categories",
                row_index=idx,
                field="category_id",
                value=node.category_id,
            )
        by_id[node.category_id] = node

    children: dict[str | None, list[CategoryNode]] = {}
    for idx, node in enumerate(nodes):
        parent = node.parent_category_id
        if parent is not None and parent not in by_id:
            raise IntegrityError(
                "Category references a missing parent",
                table="categories",
                row_index=idx,
                field="parent_category_id",
                value=parent,
            )
        children.setdefault(parent, []).append(node)
    for siblings in children.values():
        siblings.sort(key=lambda node: (node.category_name, node.category_id))

    results: list[CategoryPath] = []
    visited: set[str] = set()
    # Stack holds (node, parent path, level); children pushed in reverse to pop in order.
    stack: list[tuple[CategoryNode, str | None, int]] = [
        (root, None, 1) for root in reversed(children.get(None, []))
    ]
    while stack:
        node, parent_path, level = stack.pop()
        if node.category_id in visited:  # pragma: no cover - single parent per node
            raise CycleError(_find_cycle(node.category_id, _parents(by_id)))
        visited.add(node.category_id)
        full_path = (
            node.category_name
            if parent_path is None
            else f"{parent_path}{separator}{node.category_name}"
        )
        results.append(
            CategoryPath(
                category_id=node.category_id,
                category_name=node.category_name,
                parent_category_id=node.parent_category_id,
                full_path=full_path,
                level=level,
                indented_name="  " * (level - 1) + node.category_name,
            )
        )
        for child in reversed(children.get(node.category_id, [])):
            stack.append((child, full_path, level + 1))

    if len(visited) != len(by_id):
        unreachable = next(node_id for node_id in by_id if node_id not in visited)
        raise CycleError(_find_cycle(unreachable, _parents(by_id)))

    return results


def _parents(by_id: dict[str, CategoryNode]) -> dict[str, str | None]:
    return {node_id: node.parent_category_id for node_id, node in by_id.items()}
