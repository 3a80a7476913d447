"""
Synthetic Panel Data Generator.

Balanced random-effects panel with a linear outcome:

    y_it = Σ_j x_jit + u_i + ε_it

    u_i   ~ N(0, 2)     (unit effect, constant within unit)
    x_jit ~ N(0, 1)     (j = 1..k)
    ε_it  ~ N(0, 1.5)

The unit effect is drawn independently of the covariates, so the
random-effects assumption holds by construction and the Hausman test
should fail to reject.
"""

from __future__ import annotations

import numpy as np
import pandas as pd

UNIT = "unit_id"
TIME = "time"
UNIT_EFFECT = "unit_effect"
OUTCOME = "y"

UNIT_EFFECT_SD = 2.0
ERROR_SD = 1.5


def covariate_names(n_covariates: int) -> list[str]:
    """Column names for k covariates: x1..xk."""
    return [f"x{j}" for j in range(1, n_covariates + 1)]


def generate_panel(
    n_units: int,
    n_periods: int,
    n_covariates: int,
    rng: np.random.Generator,
) -> pd.DataFrame:
    """Generate a complete balanced panel of n_units × n_periods rows.

    Args:
        n_units: Number of cross-sectional units (N)
        n_periods: Number of time periods per unit (T)
        n_covariates: Number of covariates (k)
        rng: Random generator; the only source of randomness

    Returns:
        DataFrame with columns unit_id, time, unit_effect, x1..xk, y,
        sorted by (unit_id, time). Unit ids and periods are 1-based.
    """
    for name, value in (
        ("n_units", n_units),
        ("n_periods", n_periods),
        ("n_covariates", n_covariates),
    ):
        if value < 1:
            raise ValueError(f"{name} must be >= 1, got {value}")

    n_rows = n_units * n_periods

    unit_effects = rng.normal(0.0, UNIT_EFFECT_SD, n_units)
    X = rng.standard_normal((n_rows, n_covariates))
    eps = rng.normal(0.0, ERROR_SD, n_rows)

    u = np.repeat(unit_effects, n_periods)
    y = X.sum(axis=1) + u + eps

    df = pd.DataFrame({
        UNIT: np.repeat(np.arange(1, n_units + 1), n_periods),
        TIME: np.tile(np.arange(1, n_periods + 1), n_units),
        UNIT_EFFECT: u,
    })
    for j, col in enumerate(covariate_names(n_covariates)):
        df[col] = X[:, j]
    df[OUTCOME] = y
    return df


def value_columns(panel: pd.DataFrame) -> list[str]:
    """Columns that missingness may overwrite: outcome and covariates."""
    covs = [
        c for c in panel.columns
        if isinstance(c, str) and c.startswith("x") and c[1:].isdigit()
    ]
    return covs + [OUTCOME]
