"""
linearmodels Panel Estimator.

Fixed effects via linearmodels.PanelOLS with entity effects (within
transformation) and random effects via linearmodels.RandomEffects with
an explicit constant. Both use unadjusted (classical) covariances, as
the Hausman test assumes RE is fully efficient under H0.
"""

from __future__ import annotations

import numpy as np
import pandas as pd
import statsmodels.api as sm
import linearmodels
from linearmodels.panel import PanelOLS, RandomEffects

from panelsim.model.base import (
    FixedEffectsError,
    HausmanResult,
    PanelEstimator,
    PanelFit,
    PanelFitRequest,
    RandomEffectsError,
)
from panelsim.model.hausman import hausman_test


class LinearModelsEstimator(PanelEstimator):
    """PanelEstimator backed by linearmodels.

    Requires ``req.unit`` and ``req.time`` columns; they become the
    (entity, time) MultiIndex linearmodels expects. Any exception raised
    while building or fitting a model is re-raised as the stage error
    (FixedEffectsError / RandomEffectsError).
    """

    def fit_fixed_effects(self, req: PanelFitRequest) -> PanelFit:
        """Within estimator: y_it - ȳ_i on x_it - x̄_i."""
        y, X = self._prepare(req, FixedEffectsError)
        try:
            result = PanelOLS(y, X, entity_effects=True).fit(cov_type="unadjusted")
        except Exception as e:
            raise FixedEffectsError(f"PanelOLS failed: {e}") from e

        return PanelFit(
            params=result.params,
            cov=result.cov,
            n_obs=int(result.nobs),
            n_units=int(result.entity_info["total"]),
            method_name="FIXED_EFFECTS",
            library="linearmodels",
            library_version=self._get_linearmodels_version(),
            resid_var=float(result.s2),
            diagnostics={
                "r2_within": float(result.rsquared_within),
            },
        )

    def fit_random_effects(self, req: PanelFitRequest) -> PanelFit:
        """Swamy-Arora random-effects GLS with a constant."""
        y, X = self._prepare(req, RandomEffectsError)
        X = sm.add_constant(X, has_constant="add")
        try:
            result = RandomEffects(y, X).fit(cov_type="unadjusted")
        except Exception as e:
            raise RandomEffectsError(f"RandomEffects failed: {e}") from e

        variance = result.variance_decomposition
        return PanelFit(
            params=result.params,
            cov=result.cov,
            n_obs=int(result.nobs),
            n_units=int(result.entity_info["total"]),
            method_name="RANDOM_EFFECTS",
            library="linearmodels",
            library_version=self._get_linearmodels_version(),
            resid_var=float(result.s2),
            diagnostics={
                "sigma2_effects": float(variance["Effects"]),
                "sigma2_residual": float(variance["Residual"]),
                "theta_mean": float(np.asarray(result.theta).mean()),
            },
        )

    def hausman(self, fe: PanelFit, re: PanelFit) -> HausmanResult:
        return hausman_test(fe, re)

    @staticmethod
    def _prepare(
        req: PanelFitRequest,
        error_cls: type[Exception],
    ) -> tuple[pd.Series, pd.DataFrame]:
        errors = req.validate()
        if errors:
            raise error_cls("; ".join(errors))
        if req.df.empty:
            raise error_cls("No observations to estimate")

        df = req.df.set_index([req.unit, req.time])
        return df[req.outcome], df[req.covariates]

    @staticmethod
    def _get_linearmodels_version() -> str:
        return getattr(linearmodels, "__version__", "unknown")
