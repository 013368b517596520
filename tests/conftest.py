import matplotlib
matplotlib.use("Agg")

import numpy as np
import pandas as pd
import pytest

from portfolio_sim.core.loader import generate_sample_returns


class ConstantRandom:
    """Uniform source returning the same value for every draw."""

    def __init__(self, value):
        self.value = value

    def random(self, size):
        return np.full(size, self.value, dtype=float)


@pytest.fixture
def two_assets():
    # Annualized covariance and cumulative returns of two uncorrelated assets
    assets = ['X', 'Y']
    cov = pd.DataFrame([[0.04, 0.0], [0.0, 0.09]], index=assets, columns=assets)
    cum = pd.Series([0.10, 0.20], index=assets)
    return assets, cov, cum


@pytest.fixture
def sample_returns():
    return generate_sample_returns(['VWO', 'VNQ', 'VEA', 'SPY'], n_days=252, seed=7)


@pytest.fixture
def constant_rng():
    return ConstantRandom
