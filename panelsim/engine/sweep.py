"""
Scenario Sweep Controller.

Runs a fixed number of independent replications for every feasible
scenario of a sweep design. Each trial draws from its own generator

    default_rng(SeedSequence([master_seed, scenario_index, replication]))

so results do not depend on execution order or on the number of
workers. Parallel execution uses joblib with one full trial per task.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass

import numpy as np
from joblib import Parallel, delayed

from panelsim.engine.aggregator import ResultsTable
from panelsim.engine.scenarios import (
    InfeasibleScenario,
    ScenarioParams,
    SweepDesign,
    enumerate_scenarios,
)
from panelsim.engine.trial import DEFAULT_SIGNIFICANCE, TrialRecord, run_trial
from panelsim.model.base import PanelEstimator

logger = logging.getLogger(__name__)

DEFAULT_REPLICATIONS = 100
DEFAULT_SEED = 42


def trial_rng(master_seed: int, scenario_index: int, replication: int) -> np.random.Generator:
    """Independent, order-reproducible stream for one trial."""
    ss = np.random.SeedSequence([master_seed, scenario_index, replication])
    return np.random.default_rng(ss)


def _run_seeded_trial(
    params: ScenarioParams,
    master_seed: int,
    scenario_index: int,
    replication: int,
    estimator: PanelEstimator | None,
    significance_level: float,
) -> TrialRecord:
    rng = trial_rng(master_seed, scenario_index, replication)
    return run_trial(
        params,
        rng,
        estimator=estimator,
        significance_level=significance_level,
        replication=replication,
    )


@dataclass
class SweepResult:
    """Everything a sweep hands to reporting."""

    results: ResultsTable
    infeasible: list[InfeasibleScenario]
    n_feasible: int
    n_replications: int
    master_seed: int
    runtime_seconds: float = 0.0

    def summary(self) -> str:
        """Generate text summary of the run."""
        counts = self.results.status_counts()
        lines = []
        lines.append(f"\n{'='*70}")
        lines.append("Sweep Results")
        lines.append(f"{'='*70}")
        lines.append(f"\nFeasible scenarios: {self.n_feasible}")
        lines.append(f"Excluded scenarios: {len(self.infeasible)}")
        lines.append(f"Replications per scenario: {self.n_replications}")
        lines.append(f"Trial records: {len(self.results)}")
        lines.append(f"Master seed: {self.master_seed}")
        lines.append(f"Runtime: {self.runtime_seconds:.1f}s")
        lines.append("\nOutcomes:")
        for reason, n in counts.items():
            lines.append(f"  {reason}: {n}")
        return "\n".join(lines)


class SweepController:
    """
    Drives replications over the feasible scenarios of a design.

    No state is shared between trials; the only coupling is the master
    seed from which every trial's generator is derived.
    """

    def __init__(
        self,
        design: SweepDesign | None = None,
        n_replications: int = DEFAULT_REPLICATIONS,
        master_seed: int = DEFAULT_SEED,
        significance_level: float = DEFAULT_SIGNIFICANCE,
        n_jobs: int = 1,
        estimator: PanelEstimator | None = None,
        backend: str = "loky",
    ):
        """
        Initialize controller.

        Args:
            design: Sweep design (default: reference design)
            n_replications: Replications per feasible scenario
            master_seed: Single seeding point for the whole run
            significance_level: Threshold for the specificity indicator
            n_jobs: joblib workers; 1 runs sequentially in-process
            estimator: Estimation backend (default: linearmodels)
            backend: joblib backend used when n_jobs != 1
        """
        if n_replications < 1:
            raise ValueError(f"n_replications must be >= 1, got {n_replications}")
        if n_jobs == 0:
            raise ValueError("n_jobs must be non-zero")
        self.design = design or SweepDesign.reference()
        self.n_replications = n_replications
        self.master_seed = master_seed
        self.significance_level = significance_level
        self.n_jobs = n_jobs
        self.estimator = estimator
        self.backend = backend

    def plan(self) -> tuple[list[tuple[int, ScenarioParams]], list[InfeasibleScenario]]:
        """Feasible (index, params) pairs and excluded scenarios."""
        return enumerate_scenarios(self.design)

    def _execute(self, tasks: list[tuple[int, ScenarioParams, int]]) -> list[TrialRecord]:
        if self.n_jobs == 1:
            return [
                _run_seeded_trial(
                    params, self.master_seed, index, rep,
                    self.estimator, self.significance_level,
                )
                for index, params, rep in tasks
            ]

        return Parallel(n_jobs=self.n_jobs, backend=self.backend, verbose=0)(
            delayed(_run_seeded_trial)(
                params, self.master_seed, index, rep,
                self.estimator, self.significance_level,
            )
            for index, params, rep in tasks
        )

    def run_scenario(
        self,
        params: ScenarioParams,
        scenario_index: int = 0,
        n_replications: int | None = None,
    ) -> ResultsTable:
        """Run the replications of a single scenario.

        Raises:
            ValueError: If the scenario is infeasible or n_replications < 1.
        """
        if not params.is_feasible:
            raise ValueError(f"Scenario is infeasible: {params.label}")
        n_reps = self.n_replications if n_replications is None else n_replications
        if n_reps < 1:
            raise ValueError(f"n_replications must be >= 1, got {n_reps}")
        tasks = [(scenario_index, params, rep) for rep in range(n_reps)]
        table = ResultsTable()
        table.extend(self._execute(tasks))
        return table

    def run(self) -> SweepResult:
        """Run every replication of every feasible scenario."""
        start = time.perf_counter()
        feasible, infeasible = self.plan()

        for issue in infeasible:
            logger.info(f"Excluded {issue.params.label}: {issue.message}")

        table = ResultsTable()
        for i, (index, params) in enumerate(feasible, start=1):
            tasks = [(index, params, rep) for rep in range(self.n_replications)]
            records = self._execute(tasks)
            table.extend(records)
            n_ok = sum(r.outcome.status.is_success for r in records)
            logger.info(
                f"[{i}/{len(feasible)}] {params.label}: "
                f"{n_ok}/{len(records)} successful"
            )

        elapsed = time.perf_counter() - start
        logger.info(f"Sweep finished: {len(table)} trials in {elapsed:.1f}s")

        return SweepResult(
            results=table,
            infeasible=infeasible,
            n_feasible=len(feasible),
            n_replications=self.n_replications,
            master_seed=self.master_seed,
            runtime_seconds=elapsed,
        )
