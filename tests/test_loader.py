import numpy as np
import pandas as pd
import pytest

from portfolio_sim.core.loader import (
    CUM_RETURNS_FILE,
    DAY_RETURNS_FILE,
    TRADING_DAYS_PER_YEAR,
    ReturnsCache,
    ReturnsProvider,
    generate_sample_returns,
)


@pytest.fixture
def daily():
    dates = pd.to_datetime(['2018-01-02', '2018-01-03', '2018-01-04', '2018-01-05'])
    return pd.DataFrame(
        {'X': [0.10, -0.05, 0.02, 0.01], 'Y': [0.00, 0.03, -0.01, 0.04]},
        index=pd.Index(dates, name='Date')
    )


def test_cumulative_returns_are_compounded(daily):
    provider = ReturnsProvider(daily)

    cumulative = provider.cumulative_returns(['X', 'Y'], end='2018-01-03')

    assert cumulative['X'] == pytest.approx(1.10 * 0.95 - 1)
    assert cumulative['Y'] == pytest.approx(1.03 - 1)


def test_cumulative_frame_last_row_holds_totals(daily):
    provider = ReturnsProvider(daily)

    frame = provider.cumulative_returns_frame()

    pd.testing.assert_series_equal(frame.iloc[-1], provider.cumulative_returns(), check_names=False)


def test_covariance_is_annualized(daily):
    cov = ReturnsProvider.covariance_matrix(daily)

    expected = np.cov(daily.to_numpy(), rowvar=False) * TRADING_DAYS_PER_YEAR
    np.testing.assert_allclose(cov.to_numpy(), expected)
    assert list(cov.index) == ['X', 'Y']
    assert list(cov.columns) == ['X', 'Y']


def test_covariance_needs_two_days(daily):
    with pytest.raises(ValueError, match="two days"):
        ReturnsProvider.covariance_matrix(daily.iloc[:1])


def test_daily_returns_window_and_column_order(daily):
    provider = ReturnsProvider(daily)

    window = provider.daily_returns(['Y', 'X'], '2018-01-03', '2018-01-04')

    assert list(window.columns) == ['Y', 'X']
    assert len(window) == 2


def test_unknown_asset_fails(daily):
    with pytest.raises(ValueError, match="No return data for assets: Z"):
        ReturnsProvider(daily).daily_returns(['X', 'Z'])


def test_empty_window_fails(daily):
    with pytest.raises(ValueError, match="No return data between"):
        ReturnsProvider(daily).daily_returns(['X'], '2019-01-01', '2019-02-01')


def test_nan_rows_are_dropped(daily):
    daily.iloc[1, 0] = np.nan

    assert len(ReturnsProvider(daily).daily_returns()) == 3


def test_empty_table_fails():
    with pytest.raises(ValueError, match="No usable daily returns"):
        ReturnsProvider(pd.DataFrame({'X': [np.nan]}))


def test_from_prices_uses_percent_change():
    prices = pd.DataFrame(
        {'X': [100.0, 110.0, 99.0]},
        index=pd.to_datetime(['2018-01-02', '2018-01-03', '2018-01-04'])
    )

    daily = ReturnsProvider.from_prices(prices).daily_returns()

    np.testing.assert_allclose(daily['X'], [0.10, -0.10])


def test_from_csv(tmp_path, daily):
    path = tmp_path / "day-returns.csv"
    daily.to_csv(path)

    provider = ReturnsProvider.from_csv(path)

    assert provider.assets == ['X', 'Y']
    np.testing.assert_allclose(provider.daily_returns().to_numpy(), daily.to_numpy())


def test_from_excel(tmp_path, daily):
    path = tmp_path / "prices.xlsx"
    prices = (1 + daily).cumprod() * 100
    prices.to_excel(path, sheet_name='Prices')

    provider = ReturnsProvider.from_excel(path, sheet='Prices', prices=True)

    np.testing.assert_allclose(provider.daily_returns().to_numpy(), daily.iloc[1:].to_numpy())


def test_missing_files_fail(tmp_path):
    with pytest.raises(FileNotFoundError):
        ReturnsProvider.from_csv(tmp_path / "missing.csv")
    with pytest.raises(FileNotFoundError):
        ReturnsProvider.from_excel(tmp_path / "missing.xlsx")


def test_cache_file_name(tmp_path):
    cache = ReturnsCache(tmp_path, ['VWO', 'VNQ', 'VEA'])

    assert cache.file_path(DAY_RETURNS_FILE).name == "day-returns-frame_VWO_VNQ_VEA.csv"
    assert cache.file_path(CUM_RETURNS_FILE).name == "cumulative-returns-frame_VWO_VNQ_VEA.csv"


def test_cache_fetches_once(tmp_path, daily):
    cache = ReturnsCache(tmp_path / "cache", ['X', 'Y'])
    calls = []

    def fetch():
        calls.append(1)
        return daily

    first = cache.load(DAY_RETURNS_FILE, fetch)
    second = cache.load(DAY_RETURNS_FILE, fetch)

    assert len(calls) == 1
    assert cache.file_path(DAY_RETURNS_FILE).exists()
    np.testing.assert_allclose(second.to_numpy(), first.to_numpy())
    assert list(second.columns) == ['X', 'Y']


def test_cache_provider(tmp_path, daily):
    provider = ReturnsCache(tmp_path, ['X', 'Y']).provider(lambda: daily)

    assert provider.assets == ['X', 'Y']


def test_cache_rejects_missing_data(tmp_path):
    with pytest.raises(ValueError, match="returned no data"):
        ReturnsCache(tmp_path, ['X']).load(DAY_RETURNS_FILE, lambda: None)


def test_sample_returns_are_reproducible():
    first = generate_sample_returns(['A', 'B', 'C'], n_days=100, seed=1)
    second = generate_sample_returns(['A', 'B', 'C'], n_days=100, seed=1)

    assert first.shape == (100, 3)
    pd.testing.assert_frame_equal(first, second)
    cov = ReturnsProvider.covariance_matrix(first)
    assert (np.linalg.eigvalsh(cov.to_numpy()) > 0).all()
