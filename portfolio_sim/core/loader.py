"""
Returns Loader Module for Portfolio Simulation
===============================================

This module supplies the return data the simulation runs on:
- daily returns of each asset (one row per trading day)
- cumulative (compounded) return of each asset over the whole window
- the annualized covariance matrix of the daily returns

Data can come from:
1. A DataFrame of daily returns or of prices
2. CSV files
3. Excel sheets
4. A local CSV cache in front of any fetch function (e.g. a market-data API)

Tables are indexed by date and have one column per asset (ticker).
"""

import logging
from pathlib import Path
from typing import Callable, List, Optional, Sequence, Union

import numpy as np
import pandas as pd

from portfolio_sim.core.sampler import validate_asset_universe

logger = logging.getLogger(__name__)

# The usual number of days the US stock exchanges work a year
TRADING_DAYS_PER_YEAR = 252

DAY_RETURNS_FILE = "day-returns-frame"
CUM_RETURNS_FILE = "cumulative-returns-frame"

DateLike = Union[str, pd.Timestamp, None]


def _clean_table(df: pd.DataFrame) -> pd.DataFrame:
    df = df.apply(pd.to_numeric, errors='coerce')
    df = df.replace([np.inf, -np.inf], np.nan)
    df = df.dropna(how='any')
    df.columns = [str(c).strip() for c in df.columns]
    return df.sort_index()


class ReturnsProvider:
    """
    Daily and cumulative returns for a set of assets.

    Example:
        >>> provider = ReturnsProvider.from_csv("day-returns.csv")
        >>> daily = provider.daily_returns(['VWO', 'VNQ'], '2017-03-17', '2018-03-17')
        >>> cov = ReturnsProvider.covariance_matrix(daily)
        >>> cum = provider.cumulative_returns(['VWO', 'VNQ'], '2017-03-17', '2018-03-17')
    """

    def __init__(self, daily_returns: pd.DataFrame):
        """
        Initialize the provider.

        Args:
            daily_returns: Fractional daily returns, indexed by date,
                           one column per asset

        Raises:
            ValueError: If the table has no usable rows
        """
        daily_returns = _clean_table(daily_returns)
        if daily_returns.empty:
            raise ValueError("No usable daily returns: the table is empty after removing NaN rows")
        self._daily = daily_returns

    @classmethod
    def from_prices(cls, prices: pd.DataFrame) -> "ReturnsProvider":
        """Build the provider from a price table (daily percent change)."""
        prices = _clean_table(prices)
        return cls(prices.pct_change().iloc[1:])

    @classmethod
    def from_csv(cls, file_path: Union[str, Path], prices: bool = False) -> "ReturnsProvider":
        """
        Load a CSV file whose first column is the date.

        Args:
            file_path: Path to CSV file
            prices: If True, the file holds prices instead of returns
        """
        df = _read_dated_csv(file_path)
        return cls.from_prices(df) if prices else cls(df)

    @classmethod
    def from_excel(
        cls,
        file_path: Union[str, Path],
        sheet: Union[str, int] = 0,
        prices: bool = False
    ) -> "ReturnsProvider":
        """
        Load an Excel sheet whose first column is the date.

        Args:
            file_path: Path to the Excel file
            sheet: Sheet name or position
            prices: If True, the sheet holds prices instead of returns
        """
        if not Path(file_path).exists():
            raise FileNotFoundError(f"Excel file not found: {file_path}")
        df = pd.read_excel(file_path, sheet_name=sheet, index_col=0, parse_dates=True, engine='openpyxl')
        return cls.from_prices(df) if prices else cls(df)

    @property
    def assets(self) -> List[str]:
        """Tickers available in the data."""
        return list(self._daily.columns)

    def daily_returns(
        self,
        assets: Optional[Sequence[str]] = None,
        start: DateLike = None,
        end: DateLike = None
    ) -> pd.DataFrame:
        """
        Daily returns of the given assets between start and end (inclusive).

        Args:
            assets: Tickers, in the column order wanted (default: all)
            start: First date of the window (default: first available)
            end: Last date of the window (default: last available)

        Returns:
            DataFrame indexed by date, one column per asset

        Raises:
            ValueError: If an asset is unknown or the window holds no data
        """
        assets = self.assets if assets is None else validate_asset_universe(assets)
        unknown = [a for a in assets if a not in self._daily.columns]
        if unknown:
            raise ValueError(f"No return data for assets: {', '.join(unknown)}")

        window = self._daily.loc[start:end, list(assets)]
        if window.empty:
            raise ValueError(f"No return data between {start} and {end}")
        return window

    def cumulative_returns(
        self,
        assets: Optional[Sequence[str]] = None,
        start: DateLike = None,
        end: DateLike = None
    ) -> pd.Series:
        """
        Total compounded return of each asset over the window.

        Formula: R = prod(1 + r_t) - 1

        Returns:
            Series indexed by ticker
        """
        daily = self.daily_returns(assets, start, end)
        cumulative = (1 + daily).prod() - 1
        cumulative.name = 'Cumulative Return'
        return cumulative

    def cumulative_returns_frame(
        self,
        assets: Optional[Sequence[str]] = None,
        start: DateLike = None,
        end: DateLike = None
    ) -> pd.DataFrame:
        """Running compounded return of each asset; the last row holds the totals."""
        daily = self.daily_returns(assets, start, end)
        return (1 + daily).cumprod() - 1

    @staticmethod
    def covariance_matrix(
        daily_returns: pd.DataFrame,
        periods_per_year: int = TRADING_DAYS_PER_YEAR
    ) -> pd.DataFrame:
        """
        Annualized covariance matrix of daily returns.

        Formula: Sigma = cov(daily) * 252

        Args:
            daily_returns: Daily returns table (rows = days, cols = assets)
            periods_per_year: Trading days per year

        Returns:
            k x k DataFrame labelled by ticker on both axes
        """
        if len(daily_returns) < 2:
            raise ValueError("At least two days of returns are needed for a covariance matrix")
        return daily_returns.cov() * periods_per_year


def _read_dated_csv(file_path: Union[str, Path]) -> pd.DataFrame:
    if not Path(file_path).exists():
        raise FileNotFoundError(f"CSV file not found: {file_path}")
    return pd.read_csv(file_path, index_col=0, parse_dates=True)


class ReturnsCache:
    """
    Reads/writes a returns table from/to a CSV file.

    If the file is not found, the table is fetched from any source
    (such as a market-data API) through a function, then saved so that
    the next run reads it locally.

    Example:
        >>> cache = ReturnsCache("cache", ['VWO', 'VNQ', 'VEA'])
        >>> daily = cache.load(DAY_RETURNS_FILE, lambda: fetch_daily_returns(...))
    """

    def __init__(self, cache_dir: Union[str, Path], assets: Sequence[str]):
        self.cache_dir = Path(cache_dir)
        self.assets = validate_asset_universe(assets)

    def file_path(self, base_name: str) -> Path:
        """Cache file of a table, e.g. day-returns-frame_VWO_VNQ.csv"""
        return self.cache_dir / f"{base_name}_{'_'.join(self.assets)}.csv"

    def save(self, base_name: str, df: pd.DataFrame) -> Path:
        """Write a table to its cache file."""
        path = self.file_path(base_name)
        self.cache_dir.mkdir(parents=True, exist_ok=True)
        df.to_csv(path, index_label='Date', float_format='%.10g')
        return path

    def load(self, base_name: str, fetch: Callable[[], pd.DataFrame]) -> pd.DataFrame:
        """
        Load a table from its cache file, or fetch and save it.

        Args:
            base_name: Table name (DAY_RETURNS_FILE or CUM_RETURNS_FILE)
            fetch: Function returning the table when the file doesn't exist

        Returns:
            The table, indexed by date
        """
        path = self.file_path(base_name)
        if path.exists():
            logger.info(f"Loaded DataFrame from file {path}")
            return _read_dated_csv(path)

        df = fetch()
        if df is None:
            raise ValueError(f"Fetching '{base_name}' returned no data")
        self.save(base_name, df)
        logger.info(f"Fetched DataFrame and saved it to {path}")
        return df

    def provider(self, fetch_daily: Callable[[], pd.DataFrame]) -> ReturnsProvider:
        """ReturnsProvider over the cached daily returns."""
        return ReturnsProvider(self.load(DAY_RETURNS_FILE, fetch_daily))


def generate_sample_returns(
    assets: Sequence[str] = ('VWO', 'VNQ', 'VEA'),
    n_days: int = TRADING_DAYS_PER_YEAR,
    end: str = '2018-03-16',
    seed: int = 42
) -> pd.DataFrame:
    """
    Generate sample daily returns for testing.

    Returns are drawn from a multivariate normal distribution with a
    positive semi-definite covariance, so assets are correlated the way
    real market data usually is.

    Args:
        assets: Tickers (columns)
        n_days: Number of trading days (rows)
        end: Last business day of the sample
        seed: Random seed for reproducibility

    Returns:
        DataFrame of daily returns indexed by business day
    """
    assets = validate_asset_universe(assets)
    rng = np.random.default_rng(seed)
    n_assets = len(assets)

    # Realistic annual drift of 2%-15% and volatility of 12%-30%
    drift = np.linspace(0.02, 0.15, n_assets) / TRADING_DAYS_PER_YEAR
    vols = np.linspace(0.12, 0.30, n_assets) / np.sqrt(TRADING_DAYS_PER_YEAR)

    # Random correlation matrix: A * A^T plus a diagonal, rescaled to unit diagonal
    A = rng.normal(size=(n_assets, n_assets))
    cov = A @ A.T + np.eye(n_assets) * n_assets
    d = np.sqrt(np.diag(cov))
    corr = cov / np.outer(d, d)
    cov = corr * np.outer(vols, vols)

    returns = rng.multivariate_normal(drift, cov, size=n_days)
    dates = pd.bdate_range(end=end, periods=n_days, name='Date')

    return pd.DataFrame(returns, index=dates, columns=assets)
