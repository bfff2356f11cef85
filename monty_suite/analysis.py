"""
Aggregation and reporting for Monty Hall simulations
Proportion tables, win rates with confidence intervals, convergence plots
"""

import logging
from statistics import NormalDist
from typing import List, Optional

import matplotlib
matplotlib.use("Agg")
import matplotlib.pyplot as plt
import numpy as np
import pandas as pd
import seaborn as sns

from .game import Outcome, Strategy

logger = logging.getLogger(__name__)

STRATEGY_ORDER = [s.value for s in Strategy]
OUTCOME_ORDER = [Outcome.LOSE.value, Outcome.WIN.value]
THEORETICAL_WIN_RATES = {Strategy.STAY.value: 1 / 3, Strategy.SWITCH.value: 2 / 3}
STRATEGY_COLORS = {Strategy.STAY.value: '#1f77b4', Strategy.SWITCH.value: '#ff7f0e'}


def _check_columns(df: pd.DataFrame):
    missing_cols = [col for col in ('strategy', 'outcome') if col not in df.columns]
    if missing_cols:
        raise ValueError(f"Missing columns in trial table: {missing_cols}")


def outcome_counts(df: pd.DataFrame) -> pd.DataFrame:
    """WIN/LOSE counts per strategy"""
    _check_columns(df)
    counts = pd.crosstab(df['strategy'], df['outcome'])
    return counts.reindex(index=STRATEGY_ORDER, columns=OUTCOME_ORDER, fill_value=0)


def proportion_table(df: pd.DataFrame, decimals: Optional[int] = None) -> pd.DataFrame:
    """Row-normalised outcome frequencies, one row per strategy"""
    _check_columns(df)
    table = pd.crosstab(df['strategy'], df['outcome'], normalize='index')
    table = table.reindex(index=STRATEGY_ORDER, columns=OUTCOME_ORDER, fill_value=0.0)
    if decimals is not None:
        table = table.round(decimals)
    return table


def win_rates(df: pd.DataFrame, confidence: float = 0.95) -> pd.DataFrame:
    """
    Win rate per strategy with standard error and a normal-approximation
    confidence interval.

    Returns a DataFrame indexed by strategy with columns wins, games,
    win_rate, std_error, ci_lower and ci_upper.
    """
    if not 0 < confidence < 1:
        raise ValueError(f"confidence must be in (0, 1), got {confidence}")

    counts = outcome_counts(df)
    wins = counts[Outcome.WIN.value].to_numpy(dtype=float)
    games = counts.sum(axis=1).to_numpy(dtype=float)

    with np.errstate(divide='ignore', invalid='ignore'):
        rate = np.where(games > 0, wins / games, np.nan)
        std_error = np.sqrt(rate * (1 - rate) / games)

    z = NormalDist().inv_cdf(0.5 + confidence / 2)
    return pd.DataFrame({
        'wins': wins.astype(int),
        'games': games.astype(int),
        'win_rate': rate,
        'std_error': std_error,
        'ci_lower': np.clip(rate - z * std_error, 0.0, 1.0),
        'ci_upper': np.clip(rate + z * std_error, 0.0, 1.0),
    }, index=counts.index)


def cumulative_win_rates(df: pd.DataFrame) -> pd.DataFrame:
    """Running win rate per strategy, indexed by trial number"""
    _check_columns(df)
    trials = df.copy()
    if 'trial' not in trials.columns:
        trials['trial'] = trials.groupby('strategy').cumcount() + 1

    trials['win'] = (trials['outcome'] == Outcome.WIN.value).astype(int)
    wide = trials.pivot(index='trial', columns='strategy', values='win')
    wide = wide.reindex(columns=STRATEGY_ORDER)
    running = wide.cumsum().div(np.arange(1, len(wide) + 1), axis=0)
    running.columns.name = None
    return running


def format_summary(df: pd.DataFrame, decimals: int = 2) -> str:
    """Human-readable proportion table plus the switching advantage"""
    table = proportion_table(df, decimals=decimals)
    rates = win_rates(df)
    n_games = int(rates['games'].max()) if len(df) else 0

    stay = rates.loc[Strategy.STAY.value, 'win_rate']
    switch = rates.loc[Strategy.SWITCH.value, 'win_rate']

    lines = [
        f"Monty Hall results over {n_games} games",
        table.to_string(),
        f"Switching wins {switch:.1%} of games vs {stay:.1%} when staying",
    ]
    return "\n".join(lines)


def summarize_multiple(trial_tables: List[pd.DataFrame]) -> pd.DataFrame:
    """Mean and spread of per-batch win rates across repeated simulations"""
    if not trial_tables:
        raise ValueError("No simulation results to summarize")

    per_batch = pd.DataFrame([
        win_rates(df)['win_rate'].rename(i) for i, df in enumerate(trial_tables, 1)
    ])
    summary = pd.DataFrame({
        'mean_win_rate': per_batch.mean(),
        'std_win_rate': per_batch.std(ddof=1) if len(per_batch) > 1 else 0.0,
        'min_win_rate': per_batch.min(),
        'max_win_rate': per_batch.max(),
        'batches': len(per_batch),
    })
    summary.index.name = 'strategy'
    return summary


def plot_convergence(df: pd.DataFrame, filepath: str, title: str = None) -> str:
    """Line chart of the running win rate per strategy against theory"""
    running = cumulative_win_rates(df)

    fig, ax = plt.subplots(figsize=(10, 6))
    for strategy in STRATEGY_ORDER:
        color = STRATEGY_COLORS[strategy]
        ax.plot(running.index, running[strategy], label=strategy, color=color, linewidth=1.5)
        ax.axhline(THEORETICAL_WIN_RATES[strategy], color=color, linestyle='--',
                   linewidth=1, alpha=0.7)

    ax.set_xscale('log')
    ax.set_ylim(0, 1)
    ax.set_xlabel('Games played')
    ax.set_ylabel('Cumulative win rate')
    ax.set_title(title or 'Monty Hall: convergence of win rates')
    ax.legend(title='Strategy')
    ax.grid(True, alpha=0.3)

    fig.tight_layout()
    fig.savefig(filepath, dpi=150)
    plt.close(fig)
    logger.info(f"Saved convergence plot: {filepath}")
    return filepath


def plot_win_rates(df: pd.DataFrame, filepath: str, title: str = None) -> str:
    """Bar chart of win rates with confidence intervals"""
    rates = win_rates(df).rename_axis('strategy').reset_index()

    fig, ax = plt.subplots(figsize=(6, 5))
    sns.barplot(data=rates, x='strategy', y='win_rate', hue='strategy',
                palette=STRATEGY_COLORS, order=STRATEGY_ORDER, legend=False, ax=ax)
    ax.errorbar(
        x=np.arange(len(rates)),
        y=rates['win_rate'],
        yerr=[rates['win_rate'] - rates['ci_lower'], rates['ci_upper'] - rates['win_rate']],
        fmt='none', ecolor='black', capsize=6,
    )
    for i, strategy in enumerate(rates['strategy']):
        ax.hlines(THEORETICAL_WIN_RATES[strategy], i - 0.4, i + 0.4,
                  colors='grey', linestyles='--')

    ax.set_ylim(0, 1)
    ax.set_xlabel('Strategy')
    ax.set_ylabel('Win rate')
    ax.set_title(title or 'Monty Hall: win rate by strategy')

    fig.tight_layout()
    fig.savefig(filepath, dpi=150)
    plt.close(fig)
    logger.info(f"Saved win rate plot: {filepath}")
    return filepath
