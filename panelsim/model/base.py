"""
Panel Estimator Base Classes.

Defines the PanelFitRequest/PanelFit/HausmanResult dataclasses, the
EstimationError hierarchy and the PanelEstimator ABC that estimation
backends implement.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any

import pandas as pd

from panelsim.data.generator import OUTCOME, TIME, UNIT


class EstimationError(Exception):
    """Base class for estimation failures on ill-conditioned input."""


class FixedEffectsError(EstimationError):
    """The fixed-effects (within) model could not be fitted."""


class RandomEffectsError(EstimationError):
    """The random-effects (GLS) model could not be fitted."""


class HausmanTestError(EstimationError):
    """The Hausman statistic could not be computed."""


@dataclass
class PanelFitRequest:
    """Standardized panel estimation request.

    ``df`` holds one row per (unit, time) observation with no missing
    values in the outcome or covariates.
    """

    df: pd.DataFrame
    covariates: list[str]
    outcome: str = OUTCOME
    unit: str = UNIT
    time: str = TIME

    def validate(self) -> list[str]:
        """Return a list of problems; empty means the request is usable."""
        errors = []
        for col in [self.outcome, self.unit, self.time, *self.covariates]:
            if col not in self.df.columns:
                errors.append(f"Column '{col}' not in DataFrame")
        if not self.covariates:
            errors.append("At least one covariate is required")
        return errors


@dataclass
class PanelFit:
    """Standardized result of a fitted panel model.

    ``params`` and ``cov`` are labelled by regressor name so that two
    fits can be aligned on their common coefficients. ``resid_var`` is
    the idiosyncratic error variance behind ``cov``; the Hausman test
    uses it to put both fits on a common scale.
    """

    params: pd.Series
    cov: pd.DataFrame
    n_obs: int
    n_units: int
    method_name: str
    library: str
    library_version: str
    resid_var: float | None = None
    diagnostics: dict[str, Any] = field(default_factory=dict)


@dataclass
class HausmanResult:
    """Hausman specification test comparing FE and RE estimates.

    H0: unit effects are uncorrelated with the regressors (RE consistent
    and efficient). A small p-value rejects RE in favour of FE.
    """

    statistic: float
    df: int
    pvalue: float

    def rejects(self, alpha: float = 0.05) -> bool:
        return self.pvalue <= alpha


class PanelEstimator(ABC):
    """Abstract estimation capability consumed by the trial runner.

    Each method may raise the matching EstimationError subclass when the
    input is rank deficient, singular or otherwise unusable. Any other
    exception is treated as a system error by callers.
    """

    @abstractmethod
    def fit_fixed_effects(self, req: PanelFitRequest) -> PanelFit:
        """Fit the within (unit fixed-effects) estimator."""
        ...

    @abstractmethod
    def fit_random_effects(self, req: PanelFitRequest) -> PanelFit:
        """Fit the random-effects GLS estimator."""
        ...

    @abstractmethod
    def hausman(self, fe: PanelFit, re: PanelFit) -> HausmanResult:
        """Compare the two fits with a Hausman test."""
        ...
