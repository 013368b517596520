"""
CLI entry point for portfolio simulation.

Usage:
    python run_cli.py                              # Run with sample data
    python run_cli.py --file day-returns.csv       # Daily returns from CSV
    python run_cli.py --assets VNQ,VEA --assets VWO,VNQ,VEA
    python run_cli.py --count 100000 --seed 7      # More portfolios, reproducible

For installed package, use: ps-simulate
"""

import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent))

from portfolio_sim.cli.main import main

if __name__ == "__main__":
    sys.exit(main())
