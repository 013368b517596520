"""
Portfolio Simulation - Random Portfolios and the Efficient Frontier
===================================================================

Simulates a large population of randomly weighted long-only portfolios,
measures the risk and return of each one and extracts the efficient
frontier from the resulting cloud.

Usage:
    from portfolio_sim import PortfolioBatchEngine, FrontierExtractor, ReturnsProvider
    from portfolio_sim.visualization import plot_portfolios

Classes:
    PortfolioSampler - Random long-only weight vectors
    PortfolioBatchEngine - Risk/return of N random portfolios
    FrontierExtractor - Efficient frontier from a risk/return dataset
    ReturnsProvider - Daily/cumulative returns and covariance matrix
    ReturnsCache - CSV cache in front of a fetch function

Functions:
    evaluate - Risk and return of one portfolio
    generate_sample_returns - Create synthetic test data
"""

from portfolio_sim.core.sampler import PortfolioSampler
from portfolio_sim.core.evaluator import evaluate
from portfolio_sim.core.engine import PortfolioBatchEngine
from portfolio_sim.core.frontier import FrontierExtractor, FrontierResult, EfficientPortfolio
from portfolio_sim.core.loader import ReturnsProvider, ReturnsCache, generate_sample_returns

__version__ = "1.0.0"

__all__ = [
    "PortfolioSampler",
    "PortfolioBatchEngine",
    "FrontierExtractor",
    "FrontierResult",
    "EfficientPortfolio",
    "ReturnsProvider",
    "ReturnsCache",
    "evaluate",
    "generate_sample_returns",
]
