"""
Portfolio Sampler - Random Long-Only Portfolio Generation
==========================================================

This module generates random portfolios over a fixed asset universe.

Every portfolio is long-only and fully invested:
- each raw weight is drawn independently from U[0, 1)
- each row is divided by its own sum, so the weights add up to 1 (100%)

The relative proportions of the uniform draw are kept by the normalization.
A row whose draw sums to exactly zero falls back to the equal-weight
portfolio (1/k per asset) instead of producing NaN.

The source of randomness is injected (a numpy Generator, or anything that
exposes ``random(size)``), so that tests can supply deterministic draws.
"""

import numpy as np
import pandas as pd
from typing import List, Optional, Sequence


def validate_asset_universe(assets: Sequence[str]) -> List[str]:
    """
    Check that an asset universe is usable and return it as a list.

    Args:
        assets: Ordered tickers defining the column order

    Returns:
        The tickers as a list

    Raises:
        ValueError: If the universe is empty or holds duplicate tickers
    """
    assets = list(assets)
    if len(assets) == 0:
        raise ValueError("empty asset universe: at least one asset is required")

    duplicates = sorted({a for a in assets if assets.count(a) > 1})
    if duplicates:
        raise ValueError(f"Duplicate assets in universe: {', '.join(duplicates)}")

    return assets


def normalize_weights(raw: np.ndarray) -> np.ndarray:
    """
    Normalize raw weights so that every row adds up to 1.

    Formula: w_i = x_i / sum(x)

    Rows whose sum is zero become the equal-weight portfolio.

    Args:
        raw: 2D array of non-negative raw draws (rows = portfolios, cols = assets)

    Returns:
        2D array of normalized weights with the same shape
    """
    raw = np.asarray(raw, dtype=float)
    if raw.ndim == 1:
        raw = raw.reshape(1, -1)

    n_assets = raw.shape[1]
    totals = raw.sum(axis=1, keepdims=True)
    degenerate = (totals == 0).ravel()

    weights = np.empty_like(raw)
    weights[~degenerate] = raw[~degenerate] / totals[~degenerate]
    weights[degenerate] = 1.0 / n_assets

    return weights


class PortfolioSampler:
    """
    Generates N random long-only portfolios whose weights add up to 1.

    Attributes:
        rng: Uniform random source, a numpy Generator by default

    Example:
        >>> sampler = PortfolioSampler(seed=42)
        >>> weights = sampler.generate(1000, ['VWO', 'VNQ', 'VEA'])
        >>> weights.shape
        (1000, 3)
    """

    def __init__(self, rng=None, seed: Optional[int] = None):
        """
        Initialize the sampler.

        Args:
            rng: Object exposing ``random(size)`` returning draws in [0, 1).
                 If omitted, ``np.random.default_rng(seed)`` is used.
            seed: Seed for the default generator (ignored when rng is given)
        """
        self.rng = rng if rng is not None else np.random.default_rng(seed)

    def draw(self, n: int, n_assets: int) -> np.ndarray:
        """Draw an (n x n_assets) block of raw uniform weights."""
        return np.asarray(self.rng.random((n, n_assets)), dtype=float)

    def generate(self, n: int, assets: Sequence[str]) -> pd.DataFrame:
        """
        Generate n random portfolios for the given assets.

        Args:
            n: Number of portfolios (rows)
            assets: Asset universe (columns, in order)

        Returns:
            DataFrame of weights indexed by portfolio number 0..n-1,
            one column per asset

        Raises:
            ValueError: If n < 1 or the asset universe is empty
        """
        if n < 1:
            raise ValueError(f"invalid sample count: {n} (must be at least 1)")
        assets = validate_asset_universe(assets)

        weights = normalize_weights(self.draw(n, len(assets)))

        return pd.DataFrame(
            weights,
            index=pd.RangeIndex(n, name='Portfolio'),
            columns=assets
        )
