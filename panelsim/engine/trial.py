"""
Scenario Trial Runner.

One replication of one scenario:

    generate → inject missingness → viability filter
      → FE fit → RE fit → Hausman test → classify

Each stage has its own terminal failure status. A trial always returns
a TrialRecord; nothing raised inside a trial escapes to the sweep.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

import numpy as np
import pandas as pd

from panelsim.data.generator import OUTCOME, UNIT, covariate_names, generate_panel
from panelsim.data.missingness import inject_missingness
from panelsim.engine.scenarios import ScenarioParams
from panelsim.model.base import (
    FixedEffectsError,
    HausmanTestError,
    PanelEstimator,
    PanelFitRequest,
    RandomEffectsError,
)

logger = logging.getLogger(__name__)

DEFAULT_SIGNIFICANCE = 0.05
MIN_VIABLE_UNITS = 2

# Per-trial diagnostics exported as result columns
DIAGNOSTIC_COLUMNS = ["missing_share", "sigma2_effects", "sigma2_residual", "theta_mean"]


class TrialStatus(Enum):
    """Terminal trial outcomes, in pipeline-stage order."""

    DATA_FAILURE = "Data Failure: Insufficient individuals"
    FE_FAILURE = "Model Failure: FE model failed"
    RE_FAILURE = "Model Failure: RE model failed"
    HAUSMAN_FAILURE = "Hausman Test Failure"
    SYSTEM_ERROR = "System Error"
    SUCCESS = "Success"

    @property
    def is_success(self) -> bool:
        return self is TrialStatus.SUCCESS


@dataclass(frozen=True)
class TrialOutcome:
    """Result of one trial: a status plus the p-value when successful."""

    status: TrialStatus
    pvalue: float | None = None
    statistic: float | None = None
    detail: str = ""

    @classmethod
    def success(cls, pvalue: float, statistic: float) -> TrialOutcome:
        return cls(TrialStatus.SUCCESS, pvalue=pvalue, statistic=statistic)

    @classmethod
    def failure(cls, status: TrialStatus, detail: str = "") -> TrialOutcome:
        if status.is_success:
            raise ValueError("failure() requires a failure status")
        return cls(status, detail=detail)


@dataclass(frozen=True)
class TrialRecord:
    """Atomic output row: one replication of one scenario."""

    scenario: ScenarioParams
    replication: int
    outcome: TrialOutcome
    n_viable_units: int = 0
    n_obs: int = 0
    significance_level: float = DEFAULT_SIGNIFICANCE
    diagnostics: dict[str, Any] = field(default_factory=dict, compare=False)

    @property
    def pvalue(self) -> float | None:
        return self.outcome.pvalue

    @property
    def failure_reason(self) -> str:
        return self.outcome.status.value

    @property
    def specificity(self) -> int | None:
        """1 if the test fails to reject at the threshold, 0 if it rejects."""
        if self.pvalue is None:
            return None
        return int(self.pvalue > self.significance_level)

    def to_dict(self) -> dict[str, Any]:
        d = self.scenario.to_dict()
        d.update({
            "replication": self.replication,
            "p_value": self.pvalue,
            "hausman_statistic": self.outcome.statistic,
            "failure_reason": self.failure_reason,
            "specificity": self.specificity,
            "n_viable_units": self.n_viable_units,
            "n_obs": self.n_obs,
            "detail": self.outcome.detail,
        })
        for col in DIAGNOSTIC_COLUMNS:
            d[col] = self.diagnostics.get(col)
        return d


def viable_units(panel: pd.DataFrame, n_covariates: int) -> pd.Index:
    """Units whose non-missing outcome count exceeds max(1, k)."""
    counts = panel[OUTCOME].notna().groupby(panel[UNIT]).sum()
    return counts.index[counts > max(1, n_covariates)]


def filter_viable(panel: pd.DataFrame, n_covariates: int) -> pd.DataFrame:
    """Keep complete-case rows of viable units."""
    keep = viable_units(panel, n_covariates)
    cols = covariate_names(n_covariates) + [OUTCOME]
    out = panel[panel[UNIT].isin(keep)]
    return out.dropna(subset=cols)


def _default_estimator() -> PanelEstimator:
    from panelsim.model.linearmodels_adapter import LinearModelsEstimator

    return LinearModelsEstimator()


def run_trial(
    params: ScenarioParams,
    rng: np.random.Generator,
    estimator: PanelEstimator | None = None,
    significance_level: float = DEFAULT_SIGNIFICANCE,
    replication: int = 0,
) -> TrialRecord:
    """Run one replication of a scenario.

    Args:
        params: Scenario parameters
        rng: Random generator owned by this trial
        estimator: Estimation backend (default: linearmodels)
        significance_level: Threshold for the specificity indicator
        replication: Replication index, recorded on the output

    Returns:
        TrialRecord; failures are recorded, never raised.
    """
    estimator = estimator or _default_estimator()
    k = params.n_covariates
    n_viable = 0
    n_obs = 0
    diagnostics: dict[str, Any] = {}

    def record(outcome: TrialOutcome) -> TrialRecord:
        if not outcome.status.is_success:
            logger.debug(
                f"{params.label} rep {replication}: {outcome.status.value} "
                f"{outcome.detail}".rstrip()
            )
        return TrialRecord(
            scenario=params,
            replication=replication,
            outcome=outcome,
            n_viable_units=n_viable,
            n_obs=n_obs,
            significance_level=significance_level,
            diagnostics=diagnostics,
        )

    try:
        panel = generate_panel(params.n_units, params.n_periods, k, rng)
        if params.dropout > 0:
            panel = inject_missingness(panel, params.mechanism, params.dropout, rng)
        diagnostics["missing_share"] = float(panel[OUTCOME].isna().mean())

        data = filter_viable(panel, k)
        n_viable = int(data[UNIT].nunique())
        n_obs = len(data)
        if n_viable < MIN_VIABLE_UNITS:
            return record(TrialOutcome.failure(
                TrialStatus.DATA_FAILURE, f"{n_viable} viable units",
            ))

        req = PanelFitRequest(df=data, covariates=covariate_names(k))

        try:
            fe = estimator.fit_fixed_effects(req)
        except FixedEffectsError as e:
            return record(TrialOutcome.failure(TrialStatus.FE_FAILURE, str(e)))

        try:
            re = estimator.fit_random_effects(req)
        except RandomEffectsError as e:
            return record(TrialOutcome.failure(TrialStatus.RE_FAILURE, str(e)))

        try:
            test = estimator.hausman(fe, re)
        except HausmanTestError as e:
            return record(TrialOutcome.failure(TrialStatus.HAUSMAN_FAILURE, str(e)))

        diagnostics.update(re.diagnostics)
        return record(TrialOutcome.success(test.pvalue, test.statistic))

    except Exception as e:
        logger.warning(f"{params.label} rep {replication}: system error: {e!r}")
        return record(TrialOutcome.failure(TrialStatus.SYSTEM_ERROR, repr(e)))
