"""Core computational modules for portfolio simulation."""

from portfolio_sim.core.sampler import PortfolioSampler, normalize_weights
from portfolio_sim.core.evaluator import evaluate, evaluate_batch, align_inputs
from portfolio_sim.core.engine import PortfolioBatchEngine
from portfolio_sim.core.frontier import FrontierExtractor, FrontierResult, EfficientPortfolio
from portfolio_sim.core.loader import ReturnsProvider, ReturnsCache, generate_sample_returns

__all__ = [
    "PortfolioSampler",
    "normalize_weights",
    "evaluate",
    "evaluate_batch",
    "align_inputs",
    "PortfolioBatchEngine",
    "FrontierExtractor",
    "FrontierResult",
    "EfficientPortfolio",
    "ReturnsProvider",
    "ReturnsCache",
    "generate_sample_returns",
]
