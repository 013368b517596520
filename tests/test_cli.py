import logging

import matplotlib.pyplot as plt
import pytest

from portfolio_sim.cli.main import (
    DEFAULT_ASSETS,
    AnalysisCheckpoint,
    load_returns,
    main,
    parse_groups,
    run_simulation,
    setup_logger,
)
from portfolio_sim.core.loader import ReturnsProvider


@pytest.fixture
def logger(tmp_path):
    yield setup_logger("test_simulation", tmp_path / "logs")
    for handler in list(logging.getLogger("portfolio_sim").handlers):
        handler.close()
    logging.getLogger("portfolio_sim").handlers.clear()


def test_parse_groups():
    assert parse_groups(None) == [DEFAULT_ASSETS]
    assert parse_groups(['VNQ, VEA', 'VWO,VNQ,VEA']) == [['VNQ', 'VEA'], ['VWO', 'VNQ', 'VEA']]
    with pytest.raises(ValueError, match="Empty group"):
        parse_groups([' , '])


def test_setup_logger_writes_log_file(tmp_path, logger):
    logger.info("hello")

    log_files = list((tmp_path / "logs").glob("log_test_simulation_*.txt"))
    assert len(log_files) == 1


def test_final_report_names_unfinished_step(tmp_path, logger):
    checkpoint = AnalysisCheckpoint(logger)
    checkpoint.start_step("Load Returns")
    checkpoint.complete_step("Load Returns")
    checkpoint.start_step("Generate Plots")

    checkpoint.log_final_report()

    log_text = next((tmp_path / "logs").glob("log_test_simulation_*.txt")).read_text(encoding="utf-8")
    assert checkpoint.steps_completed == ["Load Returns"]
    assert "Steps completed: 1" in log_text
    assert "Unfinished step: Generate Plots" in log_text


def test_final_report_after_all_steps_has_no_unfinished_step(tmp_path, logger):
    checkpoint = AnalysisCheckpoint(logger)
    checkpoint.start_step("Load Returns")
    checkpoint.complete_step("Load Returns")

    checkpoint.log_final_report()

    log_text = next((tmp_path / "logs").glob("log_test_simulation_*.txt")).read_text(encoding="utf-8")
    assert checkpoint.current_step is None
    assert "Unfinished step" not in log_text


def test_run_simulation_with_groups(tmp_path, sample_returns, logger):
    provider = ReturnsProvider(sample_returns)

    results = run_simulation(
        provider, [['VNQ', 'VEA'], ['VWO', 'VNQ', 'VEA']],
        n_portfolios=500, seed=1, output_dir=str(tmp_path), logger=logger
    )
    plt.close('all')

    assert list(results['portfolios'].keys()) == ['2 Assets', '3 Assets']
    assert results['plot_path'].exists()
    frontier = results['frontier']
    efficient = frontier.efficient_portfolio
    assert efficient.risk == results['portfolios']['3 Assets']['Risk'].min()
    assert list(results['weights'].columns) == ['VWO', 'VNQ', 'VEA']


def test_run_simulation_is_reproducible(sample_returns, logger):
    provider = ReturnsProvider(sample_returns)

    first = run_simulation(provider, [['VWO', 'VEA']], 300, seed=8, save_plots=False, logger=logger)
    second = run_simulation(provider, [['VWO', 'VEA']], 300, seed=8, save_plots=False, logger=logger)

    assert first['frontier'].efficient_portfolio == second['frontier'].efficient_portfolio


def test_load_returns_uses_cache(tmp_path, logger):
    groups = [['VWO', 'VNQ']]

    provider = load_returns(groups, cache_dir=str(tmp_path / "cache"), seed=3, logger=logger)

    assert provider.assets == ['VWO', 'VNQ']
    assert (tmp_path / "cache" / "day-returns-frame_VWO_VNQ.csv").exists()


def test_load_returns_from_csv(tmp_path, sample_returns, logger):
    path = tmp_path / "day-returns.csv"
    sample_returns.to_csv(path)

    provider = load_returns([['SPY', 'VWO']], file_path=str(path), logger=logger)

    assert provider.assets == ['SPY', 'VWO']


def test_main_with_sample_data(tmp_path):
    code = main([
        '--count', '200', '--seed', '4',
        '--output-dir', str(tmp_path / 'out'),
        '--log-dir', str(tmp_path / 'logs'),
        '--risk-extent', '40',
    ])

    assert code == 0
    assert (tmp_path / 'out' / 'portfolios-analysis-200-assets.png').exists()


def test_main_reports_failures(tmp_path):
    code = main([
        '--file', str(tmp_path / 'missing.csv'),
        '--no-plots',
        '--log-dir', str(tmp_path / 'logs'),
    ])

    assert code == 1
