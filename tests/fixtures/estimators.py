"""
Deterministic stand-ins for the estimation backend.

ScriptedEstimator fails at a chosen stage or returns a p-value derived
from the data it receives, so trial classification and seeding can be
tested without fitting real models.
"""

from __future__ import annotations

import numpy as np
import pandas as pd

from panelsim.engine.scenarios import ScenarioParams
from panelsim.data.missingness import MissingnessMechanism
from panelsim.model.base import (
    FixedEffectsError,
    HausmanResult,
    HausmanTestError,
    PanelEstimator,
    PanelFit,
    PanelFitRequest,
    RandomEffectsError,
)


class ScriptedEstimator(PanelEstimator):
    """Estimator whose behaviour is fixed up front.

    Args:
        fail_at: None, "fe", "re" or "hausman" to raise the matching
            EstimationError at that stage
        crash_at: Stage at which to raise a plain RuntimeError instead
        pvalue: Fixed p-value; when None, derived from the data
    """

    def __init__(
        self,
        fail_at: str | None = None,
        crash_at: str | None = None,
        pvalue: float | None = None,
    ):
        self.fail_at = fail_at
        self.crash_at = crash_at
        self.pvalue = pvalue

    def _maybe_raise(self, stage: str, error_cls: type[Exception]) -> None:
        if self.crash_at == stage:
            raise RuntimeError(f"unexpected crash in {stage}")
        if self.fail_at == stage:
            raise error_cls(f"scripted {stage} failure")

    @staticmethod
    def _fit(req: PanelFitRequest, name: str) -> PanelFit:
        k = len(req.covariates)
        return PanelFit(
            params=pd.Series(np.ones(k), index=req.covariates),
            cov=pd.DataFrame(np.eye(k), index=req.covariates, columns=req.covariates),
            n_obs=len(req.df),
            n_units=int(req.df[req.unit].nunique()),
            method_name=name,
            library="test",
            library_version="1.0",
            diagnostics={"y_mean": float(req.df[req.outcome].mean())},
        )

    def fit_fixed_effects(self, req: PanelFitRequest) -> PanelFit:
        self._maybe_raise("fe", FixedEffectsError)
        return self._fit(req, "MOCK_FE")

    def fit_random_effects(self, req: PanelFitRequest) -> PanelFit:
        self._maybe_raise("re", RandomEffectsError)
        return self._fit(req, "MOCK_RE")

    def hausman(self, fe: PanelFit, re: PanelFit) -> HausmanResult:
        self._maybe_raise("hausman", HausmanTestError)
        if self.pvalue is not None:
            p = self.pvalue
        else:
            p = float(abs(fe.diagnostics["y_mean"]) % 1.0)
        return HausmanResult(statistic=1.0, df=len(fe.params), pvalue=p)


def make_params(
    n_units: int = 20,
    n_periods: int = 4,
    n_covariates: int = 1,
    mechanism: MissingnessMechanism | str = MissingnessMechanism.RANDOM,
    dropout: float = 0.10,
    panel_shape: str = "Test Panel",
    complexity: str = "Test",
) -> ScenarioParams:
    """Scenario parameters with small defaults."""
    return ScenarioParams(
        panel_shape=panel_shape,
        n_units=n_units,
        n_periods=n_periods,
        complexity=complexity,
        n_covariates=n_covariates,
        mechanism=MissingnessMechanism(mechanism),
        dropout=dropout,
    )
