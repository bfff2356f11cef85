"""
Monty Hall Suite: simulate the three-door game and compare the
stay and switch strategies over many independent trials
"""

__version__ = "1.0.0"

from .game import (
    # Trial engine
    create_game, select_door, open_goat_door, change_door, determine_winner, play_game,

    # Types
    TrialResult, Strategy, Outcome, InvalidArgumentError, DOORS, GOAT, CAR
)

from .simulation import Simulation, SimulationResult, play_n_games
from .analysis import (
    proportion_table,
    outcome_counts,
    win_rates,
    cumulative_win_rates,
    format_summary,
    summarize_multiple,
    plot_convergence,
    plot_win_rates
)
from .utils import load_env_vars, validate_positive_int, Timer

__all__ = [
    # Trial engine
    "create_game", "select_door", "open_goat_door", "change_door",
    "determine_winner", "play_game",
    "TrialResult", "Strategy", "Outcome", "InvalidArgumentError",
    "DOORS", "GOAT", "CAR",

    # Simulation
    "Simulation", "SimulationResult", "play_n_games",

    # Analysis
    "proportion_table", "outcome_counts", "win_rates", "cumulative_win_rates",
    "format_summary", "summarize_multiple", "plot_convergence", "plot_win_rates",

    # Utils
    "load_env_vars", "validate_positive_int", "Timer"
]
