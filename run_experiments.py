#!/usr/bin/env python3
"""
Main experiment runner for Monty Hall simulations
Plays batches of games, prints the proportion table and saves the results
"""

import os
import sys
import argparse
import json
import logging
from datetime import datetime
from typing import Optional

# Add parent directory to path
sys.path.append(os.path.dirname(os.path.abspath(__file__)))

from monty_suite import (
    Simulation, InvalidArgumentError,
    format_summary, summarize_multiple, plot_convergence, plot_win_rates
)
from monty_suite.utils import (
    load_env_vars, validate_positive_int, create_experiment_config,
    save_experiment_metadata, setup_logging, close_log_file, Timer
)

logger = logging.getLogger(__name__)


def run_experiment(n_games: int, seed: Optional[int] = None, n_simulations: int = 1,
                   max_concurrent: int = 1, output_dir: str = "results",
                   plot: bool = False, verbose: bool = True) -> str:
    """Run one or more batches of games and write all artefacts; return the experiment directory"""
    n_games = validate_positive_int(n_games, "number of games")
    n_simulations = validate_positive_int(n_simulations, "number of simulations")
    max_concurrent = validate_positive_int(max_concurrent, "max_concurrent")

    timestamp = datetime.now().strftime("%Y%m%d_%H%M%S_%f")
    experiment_dir = os.path.join(output_dir, f"experiment_{timestamp}")
    os.makedirs(experiment_dir)
    log_file = setup_logging(experiment_dir)
    try:
        _run_in_directory(experiment_dir, n_games, seed, n_simulations, max_concurrent, plot, verbose)
    finally:
        if log_file:
            logger.info(f"Log file: {log_file}")
        close_log_file(log_file)
    return experiment_dir


def _run_in_directory(experiment_dir: str, n_games: int, seed: Optional[int], n_simulations: int,
                      max_concurrent: int, plot: bool, verbose: bool):
    """Play the batches and write CSV, JSON and plot artefacts into experiment_dir"""
    logger.info(f"Experiment directory: {experiment_dir}")
    logger.info(f"Playing {n_simulations} x {n_games} games (seed={seed}, max_concurrent={max_concurrent})")

    config = create_experiment_config(n_games, seed, n_simulations, max_concurrent)
    save_experiment_metadata(config, os.path.join(experiment_dir, "config.json"))

    simulation = Simulation(n_games=n_games, seed=seed, verbose=verbose, max_concurrent=max_concurrent)
    with Timer("Simulation"):
        results = simulation.run_multiple_simulations(n_simulations)

    trial_tables = [result.to_dataframe() for result in results]
    summary = {
        'config': config,
        'simulations': [result.to_dict() for result in results],
    }

    for i, (result, df) in enumerate(zip(results, trial_tables), 1):
        suffix = f"_sim{i}" if n_simulations > 1 else ""
        result.save_to_csv(os.path.join(experiment_dir, f"trials{suffix}.csv"))
        print(f"\n{format_summary(df)}")

        if plot:
            plot_convergence(df, os.path.join(experiment_dir, f"convergence{suffix}.png"))
            plot_win_rates(df, os.path.join(experiment_dir, f"win_rates{suffix}.png"))

    if n_simulations > 1:
        spread = summarize_multiple(trial_tables)
        print(f"\nAcross {n_simulations} simulations:")
        print(spread.round(4).to_string())
        summary['across_simulations'] = json.loads(spread.to_json(orient='index'))

    with open(os.path.join(experiment_dir, "summary.json"), 'w') as f:
        json.dump(summary, f, indent=2)

    logger.info(f"Results saved to: {experiment_dir}")


def build_parser(settings: dict) -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Run Monty Hall simulations")
    parser.add_argument("--games", "-n", type=int, default=settings['MONTY_HALL_GAMES'],
                        help=f"Number of games per simulation (default: {settings['MONTY_HALL_GAMES']})")
    parser.add_argument("--seed", type=int, default=settings['MONTY_HALL_SEED'],
                        help="Random seed for reproducible runs")
    parser.add_argument("--simulations", type=int, default=1,
                        help="Number of independent simulations (default: 1)")
    parser.add_argument("--max-concurrent", type=int, default=settings['MONTY_HALL_MAX_CONCURRENT'],
                        help="Maximum number of games played concurrently (default: 1, sequential)")
    parser.add_argument("--output", type=str, default=settings['MONTY_HALL_OUTPUT'],
                        help="Output directory for results")
    parser.add_argument("--plot", action="store_true",
                        help="Save convergence and win rate plots")
    parser.add_argument("--quiet", "-q", action="store_true",
                        help="Hide progress bars")
    parser.add_argument("--env-file", type=str, default=None,
                        help="Path to a .env file with MONTY_HALL_* settings")
    return parser


def main(argv=None) -> int:
    # --env-file has to be known before the defaults are built
    pre_parser = argparse.ArgumentParser(add_help=False)
    pre_parser.add_argument("--env-file", type=str, default=None)
    pre_args, _ = pre_parser.parse_known_args(argv)

    try:
        settings = load_env_vars(pre_args.env_file)
    except InvalidArgumentError as e:
        print(f"Error in environment settings: {e}", file=sys.stderr)
        return 2

    parser = build_parser(settings)
    args = parser.parse_args(argv)

    try:
        run_experiment(
            n_games=args.games,
            seed=args.seed,
            n_simulations=args.simulations,
            max_concurrent=args.max_concurrent,
            output_dir=args.output,
            plot=args.plot,
            verbose=not args.quiet
        )
    except InvalidArgumentError as e:
        parser.error(str(e))
    return 0


if __name__ == "__main__":
    sys.exit(main())
