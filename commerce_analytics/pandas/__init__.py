"""Pandas DataFrame adapters for commerce analytics components."""

from .tables import results_to_dataframe, snapshot_from_dataframes

__all__ = [
    "results_to_dataframe",
    "snapshot_from_dataframes",
]
