"""
Simulation engine modules.
"""

from panelsim.engine.scenarios import (
    Complexity,
    InfeasibleScenario,
    PanelShape,
    ScenarioParams,
    SweepDesign,
    check_feasibility,
    enumerate_scenarios,
    load_sweep_design,
)
from panelsim.engine.trial import TrialOutcome, TrialRecord, TrialStatus, run_trial
from panelsim.engine.aggregator import (
    ResultsTable,
    failure_breakdown,
    failure_rates,
    infeasible_to_dataframe,
    specificity_table,
)
from panelsim.engine.sweep import SweepController, SweepResult, trial_rng

__all__ = [
    "Complexity",
    "InfeasibleScenario",
    "PanelShape",
    "ScenarioParams",
    "SweepDesign",
    "check_feasibility",
    "enumerate_scenarios",
    "load_sweep_design",
    "TrialOutcome",
    "TrialRecord",
    "TrialStatus",
    "run_trial",
    "ResultsTable",
    "failure_breakdown",
    "failure_rates",
    "infeasible_to_dataframe",
    "specificity_table",
    "SweepController",
    "SweepResult",
    "trial_rng",
]
