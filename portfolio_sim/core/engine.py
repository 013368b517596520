"""
Portfolio Batch Engine - Monte Carlo Risk/Return Simulation
============================================================

Drives the sampler and the evaluator across N random portfolios and
collects the risk and return of each one into a dataset.

Each portfolio is evaluated independently against read-only inputs, so
the evaluation is split in chunks and mapped over a thread pool. The
gathered dataset always keeps the generation order (portfolio 0..N-1),
whatever the number of workers.
"""

import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Dict, Optional, Sequence, Tuple

import numpy as np
import pandas as pd

from portfolio_sim.core.sampler import PortfolioSampler, validate_asset_universe
from portfolio_sim.core.evaluator import align_inputs, evaluate_batch, MatrixLike, VectorLike

logger = logging.getLogger(__name__)

DEFAULT_PORTFOLIO_COUNT = 10000
DEFAULT_CHUNK_SIZE = 50000
PERCENT = 100.0

RISK_COL = 'Risk'
RETURN_COL = 'Return'


def empty_dataset() -> pd.DataFrame:
    """Risk/return dataset with no portfolios."""
    return pd.DataFrame(
        {RISK_COL: pd.Series(dtype=float), RETURN_COL: pd.Series(dtype=float)},
        index=pd.RangeIndex(0, name='Portfolio')
    )


def group_label(assets: Sequence[str]) -> str:
    """Legend label of a group of assets, e.g. '3 Assets'."""
    return f"{len(assets)} Assets"


class PortfolioBatchEngine:
    """
    Simulates N random portfolios and measures their risk and return.

    Risk and return are stored in percent (fraction * 100).

    Attributes:
        sampler (PortfolioSampler): Source of random weight vectors
        n_jobs (int): Number of worker threads for the evaluation
        chunk_size (int): Portfolios evaluated per task

    Example:
        >>> engine = PortfolioBatchEngine(PortfolioSampler(seed=1))
        >>> dataset = engine.simulate(10000, ['X', 'Y'], cov, cum)
        >>> dataset.columns.tolist()
        ['Risk', 'Return']
    """

    def __init__(
        self,
        sampler: Optional[PortfolioSampler] = None,
        n_jobs: int = 1,
        chunk_size: int = DEFAULT_CHUNK_SIZE
    ):
        if n_jobs < 1:
            raise ValueError(f"n_jobs must be at least 1, got {n_jobs}")
        if chunk_size < 1:
            raise ValueError(f"chunk_size must be at least 1, got {chunk_size}")

        self.sampler = sampler if sampler is not None else PortfolioSampler()
        self.n_jobs = n_jobs
        self.chunk_size = chunk_size

    def _evaluate(self, weights: np.ndarray, cov: np.ndarray, cum: np.ndarray) -> Tuple[np.ndarray, np.ndarray]:
        starts = range(0, len(weights), self.chunk_size)
        chunks = [weights[s:s + self.chunk_size] for s in starts]

        def run(chunk):
            return evaluate_batch(chunk, cov, cum)

        if self.n_jobs == 1 or len(chunks) == 1:
            results = [run(chunk) for chunk in chunks]
        else:
            # map() yields in submission order, which keeps portfolio order
            with ThreadPoolExecutor(max_workers=self.n_jobs) as executor:
                results = list(executor.map(run, chunks))

        risks = np.concatenate([r[0] for r in results])
        returns = np.concatenate([r[1] for r in results])
        return risks, returns

    def simulate_portfolios(
        self,
        n: int,
        assets: Sequence[str],
        cov_matrix: MatrixLike,
        cumulative_returns: VectorLike
    ) -> Tuple[pd.DataFrame, pd.DataFrame]:
        """
        Generate n portfolios and compute the risk and return of each one.

        Args:
            n: Number of portfolios
            assets: Asset universe
            cov_matrix: Annualized covariance matrix of the assets
            cumulative_returns: Cumulative return of each asset

        Returns:
            Tuple of (weights, dataset): the weights DataFrame (one row per
            portfolio) and the risk/return dataset with the same index

        Raises:
            ValueError: On an invalid sample count, an empty asset universe
                        or inputs that don't match the asset universe
        """
        if n < 1:
            raise ValueError(f"invalid sample count: {n} (must be at least 1)")
        assets = validate_asset_universe(assets)
        cov, cum = align_inputs(assets, cov_matrix, cumulative_returns)

        weights = self.sampler.generate(n, assets)
        risks, returns = self._evaluate(weights.to_numpy(), cov, cum)

        dataset = pd.DataFrame(
            {RISK_COL: risks * PERCENT, RETURN_COL: returns * PERCENT},
            index=weights.index
        )
        logger.debug(f"Simulated {n} portfolios of {group_label(assets)}")

        return weights, dataset

    def simulate(
        self,
        n: int,
        assets: Sequence[str],
        cov_matrix: MatrixLike,
        cumulative_returns: VectorLike
    ) -> pd.DataFrame:
        """
        Risk/return dataset of n random portfolios, indexed 0..n-1.

        See simulate_portfolios() for the arguments.
        """
        return self.simulate_portfolios(n, assets, cov_matrix, cumulative_returns)[1]

    def simulate_groups(
        self,
        n: int,
        groups: Sequence[Sequence[str]],
        cov_matrix: pd.DataFrame,
        cumulative_returns: pd.Series
    ) -> Dict[str, Tuple[pd.DataFrame, pd.DataFrame]]:
        """
        Simulate n portfolios for each group of assets.

        Plotting the groups together shows how the risk/return trade-off
        changes as the number of assets increases. The covariance matrix and
        cumulative returns must be labelled by ticker and cover every group.

        Args:
            n: Number of portfolios per group
            groups: Groups of assets, each one an asset universe
            cov_matrix: Covariance matrix over all tickers used by the groups
            cumulative_returns: Cumulative returns over all those tickers

        Returns:
            Dictionary mapping each group label to its (weights, dataset)
            pair, in group order.
            Groups with the same number of assets get their tickers appended
            to the label to stay distinct.
        """
        if not isinstance(cov_matrix, pd.DataFrame) or not isinstance(cumulative_returns, pd.Series):
            raise ValueError("Asset groups require a labelled covariance DataFrame "
                             "and a labelled cumulative returns Series")
        if len(groups) == 0:
            raise ValueError("At least one group of assets is required")

        results = {}
        for assets in groups:
            assets = validate_asset_universe(assets)
            unknown = [a for a in assets if a not in cov_matrix.columns or a not in cumulative_returns.index]
            if unknown:
                raise ValueError(f"No return data for assets: {', '.join(unknown)}")

            label = group_label(assets)
            if label in results:
                label = f"{label} ({', '.join(assets)})"

            results[label] = self.simulate_portfolios(
                n, assets,
                cov_matrix.loc[assets, assets],
                cumulative_returns.loc[assets]
            )

        return results
