"""
Risk/Return Evaluator - Portfolio Statistics
=============================================

Computes the overall risk and return of a portfolio from its weights,
the annualized covariance matrix and the cumulative return of each asset.

Formulas:
    return   = w^T * R          (R = cumulative return of each asset)
    variance = w^T * Sigma * w  (quadratic form over all asset pairs)
    risk     = sqrt(variance)   (portfolio volatility)

Values are fractions here; the batch engine scales them to percent.
"""

import warnings
import numpy as np
import pandas as pd
from typing import List, Sequence, Tuple, Union

from portfolio_sim.core.sampler import validate_asset_universe

MatrixLike = Union[pd.DataFrame, np.ndarray, Sequence[Sequence[float]]]
VectorLike = Union[pd.Series, pd.DataFrame, np.ndarray, Sequence[float]]


def _check_labels(kind: str, labels: List[str], assets: List[str]):
    missing = [a for a in assets if a not in labels]
    extra = [label for label in labels if label not in assets]
    if missing or extra or len(labels) != len(assets):
        raise ValueError(
            f"{kind} assets {labels} don't match the asset universe {assets} "
            f"(missing: {missing}, unexpected: {extra})"
        )


def _align_covariance(cov_matrix: MatrixLike, assets: List[str]) -> np.ndarray:
    if isinstance(cov_matrix, pd.DataFrame):
        _check_labels("Covariance matrix rows", [str(i) for i in cov_matrix.index], assets)
        _check_labels("Covariance matrix columns", [str(c) for c in cov_matrix.columns], assets)
        cov_matrix = cov_matrix.rename(index=str, columns=str).loc[assets, assets]

    cov = np.asarray(cov_matrix, dtype=float)
    n_assets = len(assets)
    if cov.shape != (n_assets, n_assets):
        raise ValueError(
            f"Covariance matrix shape {cov.shape} doesn't match "
            f"number of assets {n_assets}"
        )

    if not np.allclose(cov, cov.T):
        warnings.warn("Covariance matrix is not symmetric. Symmetrizing...")
        cov = (cov + cov.T) / 2

    eigenvalues = np.linalg.eigvalsh(cov)
    if np.any(eigenvalues < -1e-10):
        warnings.warn("Covariance matrix has negative eigenvalues. "
                      "Risk values may be unreliable.")

    return cov


def _align_cumulative(cumulative_returns: VectorLike, assets: List[str]) -> np.ndarray:
    if isinstance(cumulative_returns, pd.DataFrame):
        # A cumulative returns table: the last row holds the totals for the window
        if cumulative_returns.empty:
            raise ValueError("Cumulative returns table is empty")
        cumulative_returns = cumulative_returns.iloc[-1]

    if isinstance(cumulative_returns, pd.Series):
        _check_labels("Cumulative returns", [str(i) for i in cumulative_returns.index], assets)
        cumulative_returns = cumulative_returns.rename(index=str).loc[assets]

    cum = np.asarray(cumulative_returns, dtype=float)
    if cum.ndim == 2 and 1 in cum.shape:
        # A single row or column vector
        cum = cum.flatten()
    if cum.ndim != 1:
        raise ValueError(
            f"Cumulative returns must be a vector, got an array of shape {cum.shape}"
        )
    if cum.shape != (len(assets),):
        raise ValueError(
            f"Cumulative returns length {cum.shape[0]} doesn't match "
            f"number of assets {len(assets)}"
        )

    return cum


def align_inputs(
    assets: Sequence[str],
    cov_matrix: MatrixLike,
    cumulative_returns: VectorLike
) -> Tuple[np.ndarray, np.ndarray]:
    """
    Validate the covariance matrix and cumulative returns against an asset universe.

    Labelled inputs (DataFrame/Series) are re-ordered to the universe order.
    Plain arrays are taken to already be in universe order.

    Args:
        assets: Asset universe
        cov_matrix: k x k covariance matrix
        cumulative_returns: k cumulative returns

    Returns:
        Tuple of (cov_matrix, cumulative_returns) as numpy arrays

    Raises:
        ValueError: If the asset universe is empty or any dimension doesn't match
    """
    assets = [str(a) for a in validate_asset_universe(assets)]
    return _align_covariance(cov_matrix, assets), _align_cumulative(cumulative_returns, assets)


def portfolio_return(weights: np.ndarray, cumulative_returns: np.ndarray) -> float:
    """
    Calculate the portfolio return over the observation window.

    Formula: r_p = w^T * R = sum(w_i * R_i)

    Args:
        weights: Portfolio weights (sum to 1)
        cumulative_returns: Cumulative return of each asset

    Returns:
        Portfolio return as a fraction
    """
    return float(np.dot(weights, cumulative_returns))


def portfolio_variance(weights: np.ndarray, cov_matrix: np.ndarray) -> float:
    """
    Calculate portfolio variance using the quadratic form.

    Formula: sigma_p^2 = w^T * Sigma * w

    Args:
        weights: Portfolio weights
        cov_matrix: Covariance matrix

    Returns:
        Portfolio variance
    """
    return float(np.dot(weights, np.dot(cov_matrix, weights)))


def portfolio_risk(weights: np.ndarray, cov_matrix: np.ndarray) -> float:
    """
    Calculate portfolio risk (standard deviation).

    Round-off can make the variance of a near riskless portfolio a tiny
    negative number, so it is clipped at zero before the square root.
    """
    return float(np.sqrt(max(portfolio_variance(weights, cov_matrix), 0.0)))


def evaluate(
    weights: VectorLike,
    cov_matrix: MatrixLike,
    cumulative_returns: VectorLike
) -> Tuple[float, float]:
    """
    Compute the (risk, return) pair of one portfolio.

    Weights given as a Series labelled by ticker are matched to labelled
    covariance and cumulative returns by ticker. Labelled covariance or
    cumulative returns need labelled weights, since plain weights carry no
    asset order to align them with.

    Args:
        weights: Portfolio weights
        cov_matrix: Covariance matrix
        cumulative_returns: Cumulative return of each asset

    Returns:
        Tuple of (risk, return), both as fractions

    Raises:
        ValueError: If labelled inputs can't be matched to the weights
    """
    if isinstance(weights, pd.Series):
        assets = [str(a) for a in weights.index]
        cov_matrix, cumulative_returns = align_inputs(assets, cov_matrix, cumulative_returns)
    elif isinstance(cov_matrix, pd.DataFrame) or isinstance(cumulative_returns, (pd.Series, pd.DataFrame)):
        raise ValueError("Labelled covariance or cumulative returns require weights "
                         "given as a Series labelled by asset")
    weights = np.asarray(weights, dtype=float)
    return (portfolio_risk(weights, cov_matrix),
            portfolio_return(weights, cumulative_returns))


def evaluate_batch(
    weights: np.ndarray,
    cov_matrix: np.ndarray,
    cumulative_returns: np.ndarray
) -> Tuple[np.ndarray, np.ndarray]:
    """
    Vectorized version of evaluate() for a block of portfolios.

    Args:
        weights: 2D array (rows = portfolios, cols = assets)
        cov_matrix: Covariance matrix
        cumulative_returns: Cumulative return of each asset

    Returns:
        Tuple of (risks, returns) arrays, one value per row
    """
    weights = np.asarray(weights, dtype=float)
    # Row-wise w^T * Sigma * w
    variances = np.einsum('ij,jk,ik->i', weights, cov_matrix, weights)
    risks = np.sqrt(np.maximum(variances, 0.0))
    returns = weights @ cumulative_returns
    return risks, returns
