"""
Batch runner for Monty Hall experiments
Handles trial execution, result collection, and aggregation
"""

import asyncio
import logging
import random
from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, List, Optional

import pandas as pd
from tqdm import tqdm

from .analysis import format_summary, proportion_table, win_rates
from .game import TrialResult, play_game
from .utils import validate_positive_int

logger = logging.getLogger(__name__)

DEFAULT_N_GAMES = 100


@dataclass
class SimulationResult:
    """Every trial of one simulation run"""
    trials: List[TrialResult]
    n_games: int
    seed: Optional[int] = None
    timestamp: str = field(default_factory=lambda: datetime.now().isoformat())

    def to_dataframe(self) -> pd.DataFrame:
        """One row per trial-strategy pair"""
        rows = []
        for i, trial in enumerate(self.trials, 1):
            for row in trial.to_rows():
                rows.append({'trial': i, **row})
        return pd.DataFrame(rows, columns=['trial', 'strategy', 'outcome'])

    def save_to_csv(self, filepath: str):
        """Save trial outcomes together with the game layout to CSV"""
        rows = []
        for i, trial in enumerate(self.trials, 1):
            for strategy, outcome in trial.outcomes.items():
                rows.append({
                    'timestamp': self.timestamp,
                    'seed': self.seed,
                    'trial': i,
                    'game': '-'.join(trial.game),
                    'first_pick': trial.first_pick,
                    'opened_door': trial.opened_door,
                    'strategy': strategy.value,
                    'final_pick': trial.final_picks[strategy],
                    'outcome': outcome.value,
                })

        df = pd.DataFrame(rows)
        df.to_csv(filepath, index=False)

    def proportion_table(self, decimals: Optional[int] = None) -> pd.DataFrame:
        return proportion_table(self.to_dataframe(), decimals=decimals)

    def get_summary_stats(self) -> pd.DataFrame:
        """Win rate per strategy, best strategy first"""
        return win_rates(self.to_dataframe()).sort_values('win_rate', ascending=False)

    def to_dict(self) -> Dict:
        rates = win_rates(self.to_dataframe())
        return {
            'timestamp': self.timestamp,
            'seed': self.seed,
            'n_games': self.n_games,
            'win_rates': {
                strategy: {
                    'wins': int(row['wins']),
                    'games': int(row['games']),
                    'win_rate': float(row['win_rate']),
                    'ci_lower': float(row['ci_lower']),
                    'ci_upper': float(row['ci_upper']),
                }
                for strategy, row in rates.iterrows()
            },
        }


class Simulation:
    """Runs many independent games, optionally spread over a thread pool"""

    def __init__(self, n_games: int = DEFAULT_N_GAMES, seed: Optional[int] = None,
                 verbose: bool = True, max_concurrent: int = 1):
        self.n_games = validate_positive_int(n_games, "number of games")
        self.seed = seed
        self.verbose = verbose
        self.max_concurrent = validate_positive_int(max_concurrent, "max_concurrent")
        self._seed_stream = random.Random(seed)

    def _trial_seeds(self, n: int) -> List[int]:
        # Drawn up front so every trial owns its generator regardless of execution order
        return [self._seed_stream.getrandbits(64) for _ in range(n)]

    def run_trial(self, rng: Optional[random.Random] = None) -> TrialResult:
        """Run a single game"""
        return play_game(rng)

    def run(self) -> SimulationResult:
        """Run all games, concurrently when max_concurrent > 1"""
        if self.max_concurrent <= 1:
            return self._run_sync()

        try:
            asyncio.get_running_loop()
        except RuntimeError:
            return asyncio.run(self.run_async())

        # Called from inside a running event loop
        logger.info("Event loop already running, playing games sequentially")
        return self._run_sync()

    def _run_sync(self) -> SimulationResult:
        seeds = self._trial_seeds(self.n_games)
        trials = []

        pbar = tqdm(total=self.n_games, desc="Playing games", disable=not self.verbose)
        for trial_seed in seeds:
            trials.append(self.run_trial(random.Random(trial_seed)))
            pbar.update(1)
        pbar.close()

        return self._calculate_result(trials)

    async def run_async(self, max_concurrent: int = None) -> SimulationResult:
        """Run all games in the default executor, at most max_concurrent at a time"""
        if max_concurrent is None:
            max_concurrent = self.max_concurrent
        max_concurrent = validate_positive_int(max_concurrent, "max_concurrent")

        seeds = self._trial_seeds(self.n_games)
        loop = asyncio.get_running_loop()
        semaphore = asyncio.Semaphore(max_concurrent)
        pbar = tqdm(total=self.n_games, desc="Playing games concurrently", disable=not self.verbose)

        logger.info(f"Running {self.n_games} games with max {max_concurrent} concurrent")

        async def run_single_trial(trial_seed: int) -> TrialResult:
            async with semaphore:
                result = await loop.run_in_executor(None, self.run_trial, random.Random(trial_seed))
                pbar.update(1)
                return result

        # gather keeps trial order
        trials = await asyncio.gather(*(run_single_trial(s) for s in seeds))
        pbar.close()

        return self._calculate_result(list(trials))

    def _calculate_result(self, trials: List[TrialResult]) -> SimulationResult:
        result = SimulationResult(trials=trials, n_games=self.n_games, seed=self.seed)
        if self.verbose:
            rates = win_rates(result.to_dataframe())['win_rate']
            logger.info(f"Finished {self.n_games} games: stay {rates['stay']:.3f}, switch {rates['switch']:.3f}")
        return result

    def run_multiple_simulations(self, n_simulations: int = 10) -> List[SimulationResult]:
        """Independent batches of n_games each, for spread estimates"""
        n_simulations = validate_positive_int(n_simulations, "number of simulations")
        results = []
        for i in range(n_simulations):
            if self.verbose:
                logger.info(f"Simulation {i + 1}/{n_simulations}")
            results.append(self.run())
        return results


def play_n_games(n: int = DEFAULT_N_GAMES, seed: Optional[int] = None,
                 verbose: bool = True, max_concurrent: int = 1) -> pd.DataFrame:
    """
    Play n games and return every trial-strategy outcome.

    The returned DataFrame holds 2n rows with columns trial, strategy and
    outcome. When verbose, the row-normalised proportion table (rounded to
    two decimals) is printed as well.
    """
    n = validate_positive_int(n, "number of games")
    simulation = Simulation(n_games=n, seed=seed, verbose=verbose, max_concurrent=max_concurrent)
    results_df = simulation.run().to_dataframe()

    if verbose:
        print(format_summary(results_df, decimals=2))

    return results_df
