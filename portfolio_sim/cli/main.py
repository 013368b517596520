"""
Main Runner Script for Portfolio Simulation
============================================

This script runs the full simulation workflow:
1. Loading daily returns (CSV/Excel file, or sample data)
2. Computing the covariance matrix and cumulative returns
3. Generating N random portfolios for each group of assets
4. Extracting the efficient frontier
5. Plotting the portfolios

Usage:
    ps-simulate                                   # Run with sample data
    ps-simulate --file returns.csv                # Daily returns from CSV
    ps-simulate --file prices.xlsx --prices       # Prices from Excel
    ps-simulate --assets VNQ,VEA --assets VWO,VNQ,VEA
    ps-simulate --count 100000 --decimals 1
"""

import sys
import argparse
import logging
import traceback
from datetime import datetime
from typing import List, Optional, Sequence
from pathlib import Path

import matplotlib.pyplot as plt

from portfolio_sim.core.sampler import PortfolioSampler
from portfolio_sim.core.engine import PortfolioBatchEngine, DEFAULT_PORTFOLIO_COUNT
from portfolio_sim.core.frontier import FrontierExtractor, DEFAULT_RISK_DECIMALS, DEFAULT_RISK_MARGIN
from portfolio_sim.core.loader import (
    ReturnsProvider,
    ReturnsCache,
    DAY_RETURNS_FILE,
    generate_sample_returns
)
from portfolio_sim.visualization import plot_portfolios

DEFAULT_ASSETS = ['VWO', 'VNQ', 'VEA']


# =============================================================================
# LOGGING SETUP
# =============================================================================

def setup_logger(
    script_name: str = "portfolio_simulation",
    log_dir: Optional[Path] = None
) -> logging.Logger:
    """
    Sets up a logger that writes to both file and console.

    The handlers are attached to the ``portfolio_sim`` logger, so messages
    from the library modules end up in the same places.

    Args:
        script_name: Name of the script (used in log filename)
        log_dir: Directory for log files (default: <package root>/logs)

    Returns:
        Configured logger instance
    """
    if log_dir is None:
        package_root = Path(__file__).parent.parent.parent
        log_dir = package_root / "logs"
    log_dir = Path(log_dir)
    log_dir.mkdir(parents=True, exist_ok=True)

    # Generate unique log filename
    timestamp = datetime.now().strftime("%Y_%m_%d_%H%M")
    log_filename = log_dir / f"log_{script_name}_{timestamp}.txt"

    logger = logging.getLogger("portfolio_sim")
    logger.setLevel(logging.INFO)
    logger.propagate = False

    # Clear existing handlers (prevent duplicates)
    if logger.hasHandlers():
        for handler in list(logger.handlers):
            handler.close()
        logger.handlers.clear()

    formatter = logging.Formatter(
        '%(asctime)s - %(levelname)s - %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )

    file_handler = logging.FileHandler(log_filename, encoding='utf-8')
    file_handler.setLevel(logging.INFO)
    file_handler.setFormatter(formatter)
    logger.addHandler(file_handler)

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(logging.INFO)
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)

    return logger


# =============================================================================
# ANALYSIS CLASS
# =============================================================================

class AnalysisCheckpoint:
    """
    Tracks the progress of the simulation steps.
    """

    def __init__(self, logger: logging.Logger):
        self.logger = logger
        self.steps_completed = []
        self.start_time = datetime.now()
        self.current_step = None

    def start_step(self, step_name: str):
        """Mark a step as started."""
        self.current_step = step_name
        self.logger.info(f"[CHECKPOINT] Starting: {step_name}")

    def complete_step(self, step_name: str):
        """Mark a step as completed."""
        self.steps_completed.append(step_name)
        self.current_step = None
        self.logger.info(f"[CHECKPOINT] Completed: {step_name}")

    def elapsed_seconds(self) -> float:
        return (datetime.now() - self.start_time).total_seconds()

    def log_final_report(self):
        """Log final simulation report."""
        self.logger.info("=" * 60)
        self.logger.info("  SIMULATION COMPLETE")
        self.logger.info("=" * 60)
        self.logger.info(f"  Steps completed: {len(self.steps_completed)}")
        if self.current_step is not None:
            self.logger.warning(f"  Unfinished step: {self.current_step}")
        self.logger.info(f"  Total time: {self.elapsed_seconds():.2f} seconds")
        self.logger.info("=" * 60)


# =============================================================================
# MAIN SIMULATION FUNCTIONS
# =============================================================================

def get_output_dir(output_dir: Optional[str] = None) -> Path:
    """Get the output directory path, creating it if needed."""
    if output_dir is None:
        output_dir = Path(__file__).parent.parent.parent / "output"
    output_dir = Path(output_dir)
    output_dir.mkdir(parents=True, exist_ok=True)
    return output_dir


def parse_groups(values: Optional[Sequence[str]]) -> List[List[str]]:
    """Turn ['VNQ,VEA', 'VWO,VNQ,VEA'] into groups of tickers."""
    if not values:
        return [list(DEFAULT_ASSETS)]

    groups = []
    for value in values:
        group = [t.strip() for t in value.split(',') if t.strip()]
        if not group:
            raise ValueError(f"Empty group of assets: '{value}'")
        groups.append(group)
    return groups


def load_returns(
    groups: List[List[str]],
    file_path: Optional[str] = None,
    sheet: Optional[str] = None,
    prices: bool = False,
    cache_dir: Optional[str] = None,
    seed: Optional[int] = None,
    logger: Optional[logging.Logger] = None
) -> ReturnsProvider:
    """
    Build the ReturnsProvider for every ticker used by the groups.

    Without a file, sample returns are generated. With a cache directory,
    the daily returns are read from the cache and only loaded from the
    source on a cache miss.
    """
    logger = logger or logging.getLogger(__name__)
    tickers = list(dict.fromkeys(t for group in groups for t in group))

    def fetch():
        if file_path is None:
            logger.info("No file specified. Using sample data...")
            sample_seed = 42 if seed is None else seed
            return generate_sample_returns(tickers, seed=sample_seed)

        logger.info(f"Loading data from: {file_path}")
        if Path(file_path).suffix.lower() in ('.xlsx', '.xlsm', '.xls'):
            provider = ReturnsProvider.from_excel(file_path, sheet if sheet is not None else 0, prices)
        else:
            provider = ReturnsProvider.from_csv(file_path, prices)
        return provider.daily_returns(tickers)

    if cache_dir is None:
        return ReturnsProvider(fetch())

    return ReturnsCache(cache_dir, tickers).provider(fetch)


def run_simulation(
    provider: ReturnsProvider,
    groups: List[List[str]],
    n_portfolios: int = DEFAULT_PORTFOLIO_COUNT,
    start: Optional[str] = None,
    end: Optional[str] = None,
    seed: Optional[int] = None,
    risk_decimals: int = DEFAULT_RISK_DECIMALS,
    risk_extent: Optional[float] = None,
    risk_margin: float = DEFAULT_RISK_MARGIN,
    n_jobs: int = 1,
    save_plots: bool = True,
    output_dir: Optional[str] = None,
    logger: Optional[logging.Logger] = None
) -> dict:
    """
    Run the complete portfolio simulation.

    This function performs:
    1. Covariance matrix and cumulative returns calculation
    2. Random portfolio generation for every group of assets
    3. Efficient frontier extraction for the last group
    4. Visualization generation

    Args:
        provider: Source of daily and cumulative returns
        groups: Groups of assets; the frontier uses the last one
        n_portfolios: Number of random portfolios per group
        start: First date of the investment horizon
        end: Last date of the investment horizon
        seed: Random seed (None for a fresh one)
        risk_decimals: Decimal places of the risk buckets
        risk_extent: Fixed right edge of the risk axis (None to compute it)
        risk_margin: Margin over the maximum risk when the extent is computed
        n_jobs: Worker threads for the evaluation
        save_plots: If True, save the chart as PNG
        output_dir: Directory for output files
        logger: Logger instance

    Returns:
        Dictionary containing all simulation results
    """
    if logger is None:
        logger = setup_logger()

    checkpoint = AnalysisCheckpoint(logger)
    results = {}
    tickers = list(dict.fromkeys(t for group in groups for t in group))

    logger.info("=" * 70)
    logger.info("  RANDOM PORTFOLIO SIMULATION")
    logger.info("=" * 70)
    for group in groups:
        logger.info(f"  Assets: {', '.join(group)}")
    logger.info(f"  Portfolios per group: {n_portfolios}")
    logger.info(f"  Investment horizon: {start or 'first day'} to {end or 'last day'}")
    logger.info("=" * 70)

    # Step 1: Asset statistics
    checkpoint.start_step("Calculate Asset Statistics")
    daily = provider.daily_returns(tickers, start, end)
    cov_matrix = ReturnsProvider.covariance_matrix(daily)
    cumulative = provider.cumulative_returns(tickers, start, end)

    logger.info(f"{'Asset':<12} {'Cum. Return':>12} {'Volatility':>12}")
    logger.info("-" * 40)
    for ticker in tickers:
        vol = cov_matrix.loc[ticker, ticker] ** 0.5
        logger.info(f"{ticker:<12} {cumulative[ticker]*100:>11.2f}% {vol*100:>11.2f}%")

    results['cov_matrix'] = cov_matrix
    results['cumulative_returns'] = cumulative
    checkpoint.complete_step("Calculate Asset Statistics")

    # Step 2: Random portfolios
    checkpoint.start_step("Generate Random Portfolios")
    engine = PortfolioBatchEngine(PortfolioSampler(seed=seed), n_jobs=n_jobs)
    simulated = engine.simulate_groups(n_portfolios, groups, cov_matrix, cumulative)
    portfolios = {label: dataset for label, (_, dataset) in simulated.items()}

    # The frontier is extracted for the last group
    last_group = groups[-1]
    weights, dataset = list(simulated.values())[-1]

    results['portfolios'] = portfolios
    results['weights'] = weights
    checkpoint.complete_step("Generate Random Portfolios")

    # Step 3: Efficient frontier
    checkpoint.start_step("Extract Efficient Frontier")
    extractor = FrontierExtractor(risk_decimals, risk_extent, risk_margin)
    frontier_result = extractor.extract(dataset)
    efficient = frontier_result.efficient_portfolio

    logger.info(
        f"Most Efficient Portfolio {efficient.portfolio}: "
        f"Risk {efficient.risk:.2f} Return {efficient.ret:.2f}"
    )
    logger.info("Weights:")
    for ticker in last_group:
        logger.info(f"  {ticker}: {weights.loc[efficient.portfolio, ticker]*100:>8.2f}%")
    logger.info(f"Efficient frontier extracted with {len(frontier_result.frontier)} points")

    results['frontier'] = frontier_result
    checkpoint.complete_step("Extract Efficient Frontier")

    # Step 4: Plot
    if save_plots:
        checkpoint.start_step("Generate Plots")
        out_dir = get_output_dir(output_dir)
        path = out_dir / f"portfolios-analysis-{n_portfolios}-assets.png"
        title = "Risk/Return Portfolios"
        if len(groups) > 1:
            title += " with Increasing Number of Assets"

        results['figure'] = plot_portfolios(
            portfolios, frontier_result, n_portfolios,
            title=title, save_path=str(path)
        )
        results['plot_path'] = path
        logger.info(f"Saved: {path.name}")
        checkpoint.complete_step("Generate Plots")

    checkpoint.log_final_report()
    return results


# =============================================================================
# MAIN ENTRY POINT
# =============================================================================

def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description='Random Portfolio Simulation and Efficient Frontier Tool',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  ps-simulate                                       # Run with sample data
  ps-simulate --file "day-returns.csv"              # Daily returns from CSV
  ps-simulate --file "prices.xlsx" --prices         # Prices from Excel
  ps-simulate --assets VNQ,VEA --assets VWO,VNQ,VEA # Two groups of assets
  ps-simulate --risk-extent 13.5                    # Fixed right edge of the risk axis
        """
    )

    parser.add_argument('--file', '-f', type=str,
                        help='CSV or Excel file of daily returns (first column = date)')
    parser.add_argument('--sheet', '-s', type=str, default=None,
                        help='Excel sheet name (default: first sheet)')
    parser.add_argument('--prices', action='store_true',
                        help='The file holds prices instead of daily returns')
    parser.add_argument('--assets', '-a', action='append',
                        help='Comma separated tickers of a group (repeat for more groups)')
    parser.add_argument('--start', type=str, default=None,
                        help='First date of the investment horizon (YYYY-MM-DD)')
    parser.add_argument('--end', type=str, default=None,
                        help='Last date of the investment horizon (YYYY-MM-DD)')
    parser.add_argument('--count', '-n', type=int, default=DEFAULT_PORTFOLIO_COUNT,
                        help=f'Random portfolios per group (default: {DEFAULT_PORTFOLIO_COUNT})')
    parser.add_argument('--seed', type=int, default=None,
                        help='Random seed for reproducible portfolios')
    parser.add_argument('--decimals', '-d', type=int, default=DEFAULT_RISK_DECIMALS,
                        help=f'Decimal places of the risk buckets (default: {DEFAULT_RISK_DECIMALS})')
    parser.add_argument('--risk-extent', type=float, default=None,
                        help='Right edge of the risk axis in %% (default: max risk + 5%%)')
    parser.add_argument('--jobs', '-j', type=int, default=1,
                        help='Worker threads for the evaluation (default: 1)')
    parser.add_argument('--cache-dir', type=str, default=None,
                        help='Directory of cached daily returns CSV files')
    parser.add_argument('--output-dir', '-o', type=str, default=None,
                        help='Directory for the chart (default: output/)')
    parser.add_argument('--log-dir', type=str, default=None,
                        help='Directory for log files (default: logs/)')
    parser.add_argument('--no-plots', action='store_true',
                        help='Disable plot generation')
    parser.add_argument('--show-plots', action='store_true',
                        help='Show plots interactively (default: just save)')

    return parser


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Main entry point for the portfolio simulation script."""
    args = build_parser().parse_args(argv)

    logger = setup_logger("portfolio_simulation", args.log_dir)

    try:
        groups = parse_groups(args.assets)
        provider = load_returns(
            groups,
            file_path=args.file,
            sheet=args.sheet,
            prices=args.prices,
            cache_dir=args.cache_dir,
            seed=args.seed,
            logger=logger
        )

        run_simulation(
            provider, groups,
            n_portfolios=args.count,
            start=args.start,
            end=args.end,
            seed=args.seed,
            risk_decimals=args.decimals,
            risk_extent=args.risk_extent,
            n_jobs=args.jobs,
            save_plots=not args.no_plots,
            output_dir=args.output_dir,
            logger=logger
        )

        if args.show_plots and not args.no_plots:
            plt.show()
        plt.close('all')

        logger.info("Simulation completed successfully!")
        return 0

    except Exception as e:
        logger.error(f"Simulation failed: {e}")
        logger.error(traceback.format_exc())
        return 1


if __name__ == "__main__":
    sys.exit(main())
