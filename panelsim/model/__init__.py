"""Panel Estimation Framework.

Provides a unified interface for fixed-effects, random-effects and
Hausman test backends.
"""

from panelsim.model.base import (
    EstimationError,
    FixedEffectsError,
    HausmanResult,
    HausmanTestError,
    PanelEstimator,
    PanelFit,
    PanelFitRequest,
    RandomEffectsError,
)
from panelsim.model.hausman import hausman_test
from panelsim.model.linearmodels_adapter import LinearModelsEstimator

__all__ = [
    "EstimationError",
    "FixedEffectsError",
    "HausmanResult",
    "HausmanTestError",
    "PanelEstimator",
    "PanelFit",
    "PanelFitRequest",
    "RandomEffectsError",
    "hausman_test",
    "LinearModelsEstimator",
]
