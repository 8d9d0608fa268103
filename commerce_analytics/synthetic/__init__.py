"""Synthetic data generation utilities.

This package produces realistic-but-fake order snapshots to exercise the
analytics pipeline without accessing production data.
"""

from .generator import (
    ScenarioConfig,
    generate_categories,
    generate_products,
    generate_snapshot,
)

__all__ = [
    "ScenarioConfig",
    "generate_categories",
    "generate_products",
    "generate_snapshot",
]
