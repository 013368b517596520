"""Visualization modules for portfolio simulation."""

from portfolio_sim.visualization.plots import plot_portfolios

__all__ = [
    "plot_portfolios",
]
