import asyncio
import os
import sys

import pandas as pd
import pytest

# Add the parent directory to the path so we can import monty_suite
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from monty_suite.game import InvalidArgumentError, Outcome, Strategy
from monty_suite.simulation import Simulation, SimulationResult, play_n_games


class TestPlayNGames:

    def test_returns_two_rows_per_game(self):
        df = play_n_games(50, seed=1, verbose=False)
        assert isinstance(df, pd.DataFrame)
        assert len(df) == 100
        assert list(df.columns) == ['trial', 'strategy', 'outcome']
        assert df['trial'].nunique() == 50

    def test_default_is_one_hundred_games(self):
        df = play_n_games(verbose=False)
        assert len(df) == 200

    def test_one_win_per_trial(self):
        df = play_n_games(500, seed=3, verbose=False)
        wins_per_trial = (df['outcome'] == Outcome.WIN.value).groupby(df['trial']).sum()
        assert (wins_per_trial == 1).all()

    def test_stay_row_before_switch_row(self):
        df = play_n_games(10, seed=5, verbose=False)
        assert list(df['strategy'][:4]) == ["stay", "switch", "stay", "switch"]

    @pytest.mark.parametrize("n", [0, -5, 2.5, "10", None, True])
    def test_invalid_n(self, n):
        with pytest.raises(InvalidArgumentError):
            play_n_games(n, verbose=False)

    def test_prints_proportion_table(self, capsys):
        play_n_games(20, seed=8, verbose=True)
        out = capsys.readouterr().out
        assert "stay" in out
        assert "switch" in out
        assert "WIN" in out and "LOSE" in out

    def test_quiet_run_prints_nothing(self, capsys):
        play_n_games(20, seed=8, verbose=False)
        assert capsys.readouterr().out == ""

    def test_seed_reproducible(self):
        pd.testing.assert_frame_equal(
            play_n_games(200, seed=42, verbose=False),
            play_n_games(200, seed=42, verbose=False),
        )

    def test_large_sample_convergence(self):
        df = play_n_games(100000, seed=2024, verbose=False)
        rates = (df['outcome'] == "WIN").groupby(df['strategy']).mean()
        assert rates['switch'] == pytest.approx(2 / 3, abs=0.01)
        assert rates['stay'] == pytest.approx(1 / 3, abs=0.01)


class TestSimulation:

    def test_run_returns_every_trial(self):
        result = Simulation(n_games=25, seed=1, verbose=False).run()
        assert isinstance(result, SimulationResult)
        assert len(result.trials) == 25
        assert result.n_games == 25
        assert result.seed == 1

    def test_concurrent_matches_sequential(self):
        sequential = Simulation(n_games=200, seed=7, verbose=False).run()
        concurrent = Simulation(n_games=200, seed=7, verbose=False, max_concurrent=8).run()
        assert concurrent.trials == sequential.trials

    def test_run_async(self):
        simulation = Simulation(n_games=40, seed=11, verbose=False)
        result = asyncio.run(simulation.run_async(max_concurrent=4))
        assert len(result.trials) == 40
        for trial in result.trials:
            assert [trial.outcome(s) for s in Strategy].count(Outcome.WIN) == 1

    def test_repeated_runs_are_independent(self):
        simulation = Simulation(n_games=100, seed=3, verbose=False)
        first, second = simulation.run(), simulation.run()
        assert first.trials != second.trials

    def test_run_multiple_simulations(self):
        results = Simulation(n_games=30, seed=5, verbose=False).run_multiple_simulations(3)
        assert len(results) == 3
        assert all(len(r.trials) == 30 for r in results)

    def test_invalid_arguments(self):
        with pytest.raises(InvalidArgumentError):
            Simulation(n_games=0)
        with pytest.raises(InvalidArgumentError):
            Simulation(n_games=10, max_concurrent=0)
        with pytest.raises(InvalidArgumentError):
            Simulation(n_games=10, verbose=False).run_multiple_simulations(0)

    @pytest.mark.parametrize("max_concurrent", [0, -3])
    def test_run_async_rejects_nonpositive_concurrency(self, max_concurrent):
        simulation = Simulation(n_games=5, seed=1, verbose=False)
        with pytest.raises(InvalidArgumentError):
            asyncio.run(simulation.run_async(max_concurrent=max_concurrent))

    def test_concurrent_run_inside_event_loop(self):
        async def caller():
            return play_n_games(50, seed=12, verbose=False, max_concurrent=2)

        df = asyncio.run(caller())
        assert len(df) == 100
        pd.testing.assert_frame_equal(df, play_n_games(50, seed=12, verbose=False))

    def test_simulation_run_inside_event_loop(self):
        async def caller():
            return Simulation(n_games=30, seed=4, verbose=False, max_concurrent=4).run()

        result = asyncio.run(caller())
        assert result.trials == Simulation(n_games=30, seed=4, verbose=False).run().trials


class TestSimulationResult:

    @pytest.fixture
    def result(self):
        return Simulation(n_games=60, seed=21, verbose=False).run()

    def test_to_dataframe(self, result):
        df = result.to_dataframe()
        assert len(df) == 120
        assert set(df['strategy']) == {"stay", "switch"}
        assert set(df['outcome']) <= {"WIN", "LOSE"}

    def test_proportion_table_rows_sum_to_one(self, result):
        table = result.proportion_table()
        assert list(table.index) == ["stay", "switch"]
        assert list(table.columns) == ["LOSE", "WIN"]
        assert table.sum(axis=1).tolist() == pytest.approx([1.0, 1.0])

    def test_stay_and_switch_win_counts_add_up(self, result):
        stats = result.get_summary_stats()
        assert stats['wins'].sum() == 60
        assert stats['win_rate'].is_monotonic_decreasing

    def test_save_to_csv(self, result, tmp_path):
        path = tmp_path / "trials.csv"
        result.save_to_csv(str(path))
        df = pd.read_csv(path)
        assert len(df) == 120
        assert {'trial', 'game', 'first_pick', 'opened_door', 'strategy',
                'final_pick', 'outcome'} <= set(df.columns)
        assert (df['opened_door'] != df['first_pick']).all()
        assert (df['opened_door'] != df['final_pick']).all()

    def test_to_dict(self, result):
        data = result.to_dict()
        assert data['n_games'] == 60
        rates = data['win_rates']
        assert rates['stay']['wins'] + rates['switch']['wins'] == 60
        assert rates['stay']['win_rate'] + rates['switch']['win_rate'] == pytest.approx(1.0)
