"""
Frontier Extractor - Efficient Frontier from Simulated Portfolios
=================================================================

Extracts the efficient frontier from a cloud of randomly generated
portfolios, without any optimization solver.

Theory Background:
------------------
Plotted on the risk-return plane, random portfolios form a bullet-shaped
cloud. The tip of the bullet is the most efficient portfolio: the lowest
risk and, for that risk, the highest return. A horizontal line through the
tip splits the cloud into an upper and a lower half. For every risk level
in the upper half, the portfolio with the maximum return belongs to the
efficient frontier.

Algorithm:
1. Most efficient portfolio: order by risk ascending, then return
   descending, and take the first one.
2. Boundary line: the tip plus a twin point with the same return placed at
   the right edge of the risk axis, so a renderer can draw the split line.
3. Upper half: keep portfolios whose return is >= the tip's return.
4. Bucketing: risk values from independent random samples hardly ever
   repeat, so they are rounded to a few decimal places before grouping.
   Each bucket keeps its maximum return. Buckets sorted by risk form the
   frontier curve.

All values are expected in percent, as produced by PortfolioBatchEngine.
"""

import logging
from decimal import Decimal, ROUND_HALF_UP
from typing import NamedTuple, Optional

import numpy as np
import pandas as pd

from portfolio_sim.core.engine import RISK_COL, RETURN_COL, empty_dataset

logger = logging.getLogger(__name__)

DEFAULT_RISK_DECIMALS = 2
DEFAULT_RISK_MARGIN = 0.05

PORTFOLIO_COL = 'Portfolio'


class EfficientPortfolio(NamedTuple):
    """The tip of the portfolio cloud. ``portfolio`` is None for the empty-dataset sentinel."""
    portfolio: Optional[int]
    risk: float
    ret: float


class FrontierResult(NamedTuple):
    """Output of FrontierExtractor.extract()."""
    efficient_portfolio: EfficientPortfolio
    boundary: pd.DataFrame
    frontier: pd.DataFrame


EMPTY_PORTFOLIO = EfficientPortfolio(None, 0.0, 0.0)


def _round_half_up(value: float, quantum: Decimal) -> float:
    if not np.isfinite(value):
        return value
    # repr gives the shortest decimal form, so 5.25 rounds as written
    return float(Decimal(repr(float(value))).quantize(quantum, rounding=ROUND_HALF_UP))


def round_risk(risk, decimals: int = DEFAULT_RISK_DECIMALS):
    """
    Round risk values to the bucket precision, ties away from zero (5.25 -> 5.3).

    Accepts a scalar, a numpy array or a Series and returns the same kind.
    """
    quantum = Decimal(1).scaleb(-decimals)
    if isinstance(risk, pd.Series):
        return risk.map(lambda v: _round_half_up(v, quantum)).astype(float)
    if np.ndim(risk) > 0:
        return np.array([_round_half_up(v, quantum) for v in np.ravel(risk)],
                        dtype=float).reshape(np.shape(risk))
    return _round_half_up(risk, quantum)


def most_efficient_portfolio(dataset: pd.DataFrame) -> EfficientPortfolio:
    """
    Find the portfolio with the lowest risk and the highest return for that risk.

    Args:
        dataset: Risk/return dataset

    Returns:
        The most efficient portfolio, or EMPTY_PORTFOLIO (risk 0, return 0)
        if the dataset is empty
    """
    if dataset.empty:
        return EMPTY_PORTFOLIO

    ordered = dataset.sort_values(
        [RISK_COL, RETURN_COL], ascending=[True, False], kind='mergesort'
    )
    key = ordered.index[0]
    row = ordered.iloc[0]
    return EfficientPortfolio(int(key), float(row[RISK_COL]), float(row[RETURN_COL]))


def _frontier_frame(risks, returns, portfolios) -> pd.DataFrame:
    return pd.DataFrame({
        RISK_COL: np.asarray(risks, dtype=float),
        RETURN_COL: np.asarray(returns, dtype=float),
        PORTFOLIO_COL: pd.array(portfolios, dtype='Int64'),
    })


class FrontierExtractor:
    """
    Extracts the efficient frontier from a risk/return dataset.

    Attributes:
        risk_decimals (int): Decimal places the risk is rounded to before
            grouping. Fewer places give a smoother, sparser frontier.
        risk_extent (Optional[float]): Fixed right edge of the risk axis for
            the boundary line. If None, it is computed from the dataset.
        risk_margin (float): Margin added to the maximum risk when the
            extent is computed (0.05 = 5%)

    Example:
        >>> extractor = FrontierExtractor(risk_decimals=2)
        >>> result = extractor.extract(dataset)
        >>> result.efficient_portfolio.risk, len(result.frontier)
    """

    def __init__(
        self,
        risk_decimals: int = DEFAULT_RISK_DECIMALS,
        risk_extent: Optional[float] = None,
        risk_margin: float = DEFAULT_RISK_MARGIN
    ):
        if risk_decimals < 0:
            raise ValueError(f"risk_decimals must be non-negative, got {risk_decimals}")
        if risk_margin < 0:
            raise ValueError(f"risk_margin must be non-negative, got {risk_margin}")

        self.risk_decimals = risk_decimals
        self.risk_extent = risk_extent
        self.risk_margin = risk_margin

    def max_risk_extent(self, dataset: pd.DataFrame) -> float:
        """Right edge of the risk axis used by the boundary line."""
        if self.risk_extent is not None:
            return float(self.risk_extent)
        if dataset.empty:
            return 0.0
        return float(dataset[RISK_COL].max()) * (1 + self.risk_margin)

    def boundary_line(self, efficient: EfficientPortfolio, dataset: pd.DataFrame) -> pd.DataFrame:
        """
        Two points splitting the upper and lower half of the cloud.

        The second point has the same return as the most efficient portfolio
        and sits at the right edge of the risk axis.
        """
        return pd.DataFrame({
            RISK_COL: [efficient.risk, self.max_risk_extent(dataset)],
            RETURN_COL: [efficient.ret, efficient.ret],
        })

    @staticmethod
    def upper_half(dataset: pd.DataFrame, efficient: EfficientPortfolio) -> pd.DataFrame:
        """Portfolios whose return is at least the most efficient portfolio's return."""
        return dataset[dataset[RETURN_COL] >= efficient.ret]

    def frontier_curve(self, dataset: pd.DataFrame, efficient: EfficientPortfolio) -> pd.DataFrame:
        """
        Maximum return portfolio for each risk bucket of the upper half.

        Returns:
            DataFrame with Risk (the bucket value), Return and Portfolio
            (originating portfolio number), indexed 0..m-1 by ascending risk
        """
        upper = self.upper_half(dataset, efficient)

        if upper.empty:
            # Only reachable through the empty-dataset sentinel
            return _frontier_frame([efficient.risk], [efficient.ret], [efficient.portfolio])

        buckets = round_risk(upper[RISK_COL], self.risk_decimals)
        best = upper[RETURN_COL].groupby(buckets.to_numpy()).idxmax()

        frontier = _frontier_frame(
            best.index.to_numpy(),
            upper.loc[best.to_numpy(), RETURN_COL].to_numpy(),
            best.to_numpy()
        )

        logger.info(
            f"Portfolios at upper half of the curve: {len(upper)} "
            f"Max return portfolios: {len(frontier)}"
        )
        return frontier

    def extract(self, dataset: pd.DataFrame) -> FrontierResult:
        """
        Extract the most efficient portfolio, the boundary line and the frontier curve.

        Extraction is deterministic: the same dataset and precision always
        give the same frontier.

        Args:
            dataset: Risk/return dataset with 'Risk' and 'Return' columns

        Returns:
            FrontierResult(efficient_portfolio, boundary, frontier)
        """
        if dataset.empty:
            dataset = empty_dataset()

        missing = [c for c in (RISK_COL, RETURN_COL) if c not in dataset.columns]
        if missing:
            raise ValueError(f"Dataset is missing columns: {', '.join(missing)}")

        efficient = most_efficient_portfolio(dataset)
        logger.info(f"Efficient Portfolio Return: {efficient.ret}")

        return FrontierResult(
            efficient,
            self.boundary_line(efficient, dataset),
            self.frontier_curve(dataset, efficient)
        )
