import numpy as np
import pytest

from portfolio_sim.core.sampler import PortfolioSampler, normalize_weights, validate_asset_universe


@pytest.mark.parametrize("n_assets", [1, 2, 3, 5, 12])
def test_weights_are_long_only_and_fully_invested(n_assets):
    assets = [f"A{i}" for i in range(n_assets)]
    weights = PortfolioSampler(seed=3).generate(500, assets)

    assert weights.shape == (500, n_assets)
    assert (weights.to_numpy() >= 0).all()
    np.testing.assert_allclose(weights.sum(axis=1), 1.0, atol=1e-9)


def test_weights_are_indexed_by_generation_order():
    weights = PortfolioSampler(seed=3).generate(10, ['VWO', 'VNQ', 'VEA'])

    assert list(weights.index) == list(range(10))
    assert weights.index.name == 'Portfolio'
    assert list(weights.columns) == ['VWO', 'VNQ', 'VEA']


def test_all_zero_draws_fall_back_to_equal_weights(constant_rng):
    weights = PortfolioSampler(rng=constant_rng(0.0)).generate(4, ['A', 'B', 'C', 'D'])

    np.testing.assert_allclose(weights.to_numpy(), 0.25)


def test_normalize_keeps_relative_proportions():
    raw = np.array([[1.0, 3.0], [0.0, 0.0], [0.2, 0.2]])

    weights = normalize_weights(raw)

    np.testing.assert_allclose(weights, [[0.25, 0.75], [0.5, 0.5], [0.5, 0.5]])


def test_normalize_accepts_a_single_vector():
    np.testing.assert_allclose(normalize_weights([2.0, 2.0, 4.0]), [[0.25, 0.25, 0.5]])


def test_same_seed_generates_same_portfolios():
    first = PortfolioSampler(seed=11).generate(100, ['X', 'Y'])
    second = PortfolioSampler(seed=11).generate(100, ['X', 'Y'])

    assert first.equals(second)


def test_injected_generator_is_used():
    rng = np.random.default_rng(5)
    expected = normalize_weights(np.random.default_rng(5).random((3, 2)))

    weights = PortfolioSampler(rng=rng).generate(3, ['X', 'Y'])

    np.testing.assert_allclose(weights.to_numpy(), expected)


@pytest.mark.parametrize("n", [0, -5])
def test_invalid_sample_count(n):
    with pytest.raises(ValueError, match="invalid sample count"):
        PortfolioSampler(seed=1).generate(n, ['X'])


def test_empty_asset_universe():
    with pytest.raises(ValueError, match="empty asset universe"):
        PortfolioSampler(seed=1).generate(10, [])


def test_duplicate_assets_are_rejected():
    with pytest.raises(ValueError, match="Duplicate assets"):
        validate_asset_universe(['X', 'Y', 'X'])
