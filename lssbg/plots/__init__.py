"""Plotting modules for background tables."""

from .background import growth_index_approximation, plot_background_table, plot_growth

__all__ = [
    "growth_index_approximation",
    "plot_background_table",
    "plot_growth",
]
