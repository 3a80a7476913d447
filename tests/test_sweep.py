"""
Tests for the sweep controller: counts, seeding and parallel determinism.
"""

import numpy as np
import pytest

from panelsim.data.missingness import MissingnessMechanism
from panelsim.engine.scenarios import Complexity, PanelShape, SweepDesign
from panelsim.engine.sweep import SweepController, trial_rng
from tests.fixtures.estimators import ScriptedEstimator, make_params


@pytest.fixture
def small_design():
    """2 complexities × 2 mechanisms × 2 rates; k=5 is infeasible at T=4."""
    return SweepDesign(
        panel_shapes=[PanelShape("Small Panel", 30, 4)],
        complexities=[Complexity("Simple", 1), Complexity("Complex", 5)],
        mechanisms=[MissingnessMechanism.RANDOM, MissingnessMechanism.EARLY_EXIT],
        dropout_rates=[0.1, 0.3],
    )


def _controller(design, **kwargs):
    kwargs.setdefault("n_replications", 3)
    kwargs.setdefault("estimator", ScriptedEstimator())
    return SweepController(design=design, **kwargs)


class TestTrialRng:
    """Test per-trial generator derivation."""

    def test_same_key_same_stream(self):
        a = trial_rng(42, 3, 7).random(5)
        b = trial_rng(42, 3, 7).random(5)
        np.testing.assert_array_equal(a, b)

    @pytest.mark.parametrize("key", [(43, 3, 7), (42, 4, 7), (42, 3, 8)])
    def test_any_key_change_changes_stream(self, key):
        a = trial_rng(42, 3, 7).random(5)
        b = trial_rng(*key).random(5)
        assert not np.array_equal(a, b)


class TestSweepCounts:
    """Test that the sweep runs exactly the feasible grid."""

    def test_small_design(self, small_design):
        result = _controller(small_design).run()
        assert result.n_feasible == 4
        assert len(result.infeasible) == 4
        assert len(result.results) == 4 * 3
        assert all(r.scenario.is_feasible for r in result.results)

    def test_infeasible_scenarios_never_run(self, small_design):
        result = _controller(small_design).run()
        df = result.results.to_dataframe()
        assert set(df["complexity"]) == {"Simple"}

    def test_reference_design(self):
        result = _controller(SweepDesign.reference(), n_replications=2).run()
        assert result.n_feasible == 144
        assert len(result.infeasible) == 48
        assert len(result.results) == 288

        df = result.results.to_dataframe()
        per_scenario = df.groupby(
            ["panel_shape", "complexity", "mechanism", "dropout_rate"]
        ).size()
        assert len(per_scenario) == 144
        assert (per_scenario == 2).all()

    def test_replications_are_numbered(self, small_design):
        result = _controller(small_design).run()
        df = result.results.to_dataframe()
        assert sorted(df["replication"].unique()) == [0, 1, 2]

    def test_summary(self, small_design):
        result = _controller(small_design).run()
        text = result.summary()
        assert "Feasible scenarios: 4" in text
        assert "Excluded scenarios: 4" in text
        assert "Success: 12" in text

    def test_rejects_zero_replications(self, small_design):
        with pytest.raises(ValueError):
            SweepController(design=small_design, n_replications=0)

    def test_rejects_zero_jobs(self, small_design):
        with pytest.raises(ValueError):
            SweepController(design=small_design, n_jobs=0)


class TestDeterminism:
    """Results depend only on the master seed."""

    def test_same_seed_same_results(self, small_design):
        a = _controller(small_design, master_seed=9).run()
        b = _controller(small_design, master_seed=9).run()
        assert a.results.records == b.results.records

    def test_different_seed_different_results(self, small_design):
        a = _controller(small_design, master_seed=9).run().results.to_dataframe()
        b = _controller(small_design, master_seed=10).run().results.to_dataframe()
        assert not a["p_value"].equals(b["p_value"])

    def test_parallel_matches_sequential(self, small_design):
        sequential = _controller(small_design, n_jobs=1).run()
        parallel = _controller(small_design, n_jobs=2, backend="threading").run()
        assert sequential.results.records == parallel.results.records

    def test_process_workers_match_sequential(self, small_design):
        """Default loky process pool with the real estimator."""
        sequential = _controller(small_design, estimator=None, n_jobs=1).run()
        parallel = _controller(small_design, estimator=None, n_jobs=2, backend="loky").run()
        a = sequential.results.to_dataframe()
        b = parallel.results.to_dataframe()
        assert len(a) == len(b) == 12
        assert a["failure_reason"].tolist() == b["failure_reason"].tolist()
        assert a["n_obs"].tolist() == b["n_obs"].tolist()
        assert b["p_value"].to_numpy() == pytest.approx(a["p_value"].to_numpy(), nan_ok=True)

    def test_single_scenario_matches_sweep(self, small_design):
        controller = _controller(small_design)
        feasible, _ = controller.plan()
        index, params = feasible[2]
        table = controller.run_scenario(params, scenario_index=index)
        from_sweep = [
            r for r in controller.run().results if r.scenario == params
        ]
        assert table.records == from_sweep


class TestRunScenario:
    """Test running one scenario on its own."""

    def test_replication_override(self, small_design):
        controller = _controller(small_design)
        table = controller.run_scenario(make_params(), n_replications=5)
        assert len(table) == 5

    def test_infeasible_raises(self, small_design):
        controller = _controller(small_design)
        with pytest.raises(ValueError):
            controller.run_scenario(make_params(n_periods=4, n_covariates=10))

    def test_explicit_zero_replications_rejected(self, small_design):
        controller = _controller(small_design)
        with pytest.raises(ValueError):
            controller.run_scenario(make_params(), n_replications=0)
