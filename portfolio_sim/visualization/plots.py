"""
Plotting Module for Portfolio Simulation
=========================================

Scatter chart of randomly generated portfolios on the risk-return plane:
- one cloud of portfolios per group of assets
- the most efficient portfolio (tip of the bullet-shaped cloud)
- the horizontal line splitting efficient and inefficient portfolios
- the efficient frontier points

Risk and return are plotted in percent.
"""

import matplotlib.pyplot as plt
from matplotlib.figure import Figure
from matplotlib.ticker import PercentFormatter
from typing import Dict, Optional, Tuple
import pandas as pd

from portfolio_sim.core.engine import RISK_COL, RETURN_COL
from portfolio_sim.core.frontier import FrontierResult

X_AXIS_LABEL = "Portfolio Risk"
Y_AXIS_LABEL = "Portfolio Return"
DEFAULT_TITLE = "Risk/Return Portfolios"


def chart_subtitle(n_portfolios: int) -> str:
    """Subtitle stating how many portfolios were generated per group."""
    return f"{n_portfolios} Randomly Generated Portfolio Combinations"


def plot_portfolios(
    portfolios_by_group: Dict[str, pd.DataFrame],
    result: Optional[FrontierResult] = None,
    n_portfolios: Optional[int] = None,
    title: str = DEFAULT_TITLE,
    figsize: Tuple[int, int] = (8, 6),
    dots_diameter: float = 4,
    save_path: Optional[str] = None
) -> Figure:
    """
    Create a scatter plot of the simulated portfolios.

    Each group of assets is drawn with a different color, so the
    diversification effect of adding assets can be compared.

    Args:
        portfolios_by_group: Risk/return dataset of each group, keyed by label
        result: Frontier extraction result to overlay (optional)
        n_portfolios: Portfolios per group, shown in the subtitle
        title: Plot title
        figsize: Figure size (width, height) in inches, 800x600 at 100 dpi
        dots_diameter: Marker size of the portfolio dots
        save_path: If provided, save the figure to this path as PNG

    Returns:
        matplotlib Figure object
    """
    fig, ax = plt.subplots(figsize=figsize)
    marker_size = dots_diameter ** 2

    for label, dataset in portfolios_by_group.items():
        ax.scatter(dataset[RISK_COL], dataset[RETURN_COL],
                   s=marker_size, alpha=0.6, label=label, zorder=2)

    if result is not None:
        boundary = result.boundary
        ax.plot(boundary[RISK_COL], boundary[RETURN_COL],
                'k--', linewidth=1,
                label='Division between efficient and inefficient portfolios', zorder=3)

        frontier = result.frontier
        ax.scatter(frontier[RISK_COL], frontier[RETURN_COL],
                   c='red', s=marker_size * 2, label='Efficient Frontier', zorder=4)

        efficient = result.efficient_portfolio
        ax.scatter([efficient.risk], [efficient.ret],
                   c='gold', s=200, marker='*', edgecolors='black',
                   label=f"Most Efficient Portfolio (σ={efficient.risk:.2f}%, "
                         f"r={efficient.ret:.2f}%)",
                   zorder=5)

    # Formatting
    ax.set_xlabel(X_AXIS_LABEL, fontsize=12)
    ax.set_ylabel(Y_AXIS_LABEL, fontsize=12)
    ax.xaxis.set_major_formatter(PercentFormatter(xmax=100, decimals=1))
    ax.yaxis.set_major_formatter(PercentFormatter(xmax=100, decimals=1))

    if n_portfolios is not None:
        fig.suptitle(title, fontsize=14, fontweight='bold')
        ax.set_title(chart_subtitle(n_portfolios), fontsize=10)
    else:
        ax.set_title(title, fontsize=14, fontweight='bold')

    ax.legend(loc='upper center', bbox_to_anchor=(0.5, -0.12), ncol=2, fontsize=8)
    ax.grid(True, alpha=0.3)

    plt.tight_layout()

    if save_path:
        fig.savefig(save_path, dpi=100, bbox_inches='tight')

    return fig
