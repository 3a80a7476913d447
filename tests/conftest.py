"""
Pytest configuration file providing shared fixtures.
"""

import numpy as np
import pandas as pd
import pytest

from panelsim.data.generator import generate_panel


@pytest.fixture
def rng():
    """Fresh seeded generator per test."""
    return np.random.default_rng(42)


@pytest.fixture
def small_panel(rng):
    """Complete 50 × 4 panel with two covariates."""
    return generate_panel(n_units=50, n_periods=4, n_covariates=2, rng=rng)


@pytest.fixture
def large_panel():
    """Complete 2000 × 8 panel for checking missingness rates."""
    return generate_panel(
        n_units=2000, n_periods=8, n_covariates=1, rng=np.random.default_rng(7),
    )


@pytest.fixture
def tiny_panel():
    """Hand-built 3-unit panel with known missingness.

    unit 1: 3 observed outcomes, unit 2: 2 observed, unit 3: 1 observed.
    """
    nan = np.nan
    return pd.DataFrame({
        "unit_id": [1, 1, 1, 2, 2, 2, 3, 3, 3],
        "time": [1, 2, 3, 1, 2, 3, 1, 2, 3],
        "unit_effect": [0.5] * 3 + [-1.0] * 3 + [2.0] * 3,
        "x1": [0.1, 0.2, 0.3, 0.4, nan, 0.6, 0.7, nan, nan],
        "x2": [1.0, 1.1, 1.2, 1.3, nan, 1.5, 1.6, nan, nan],
        "y": [1.0, 2.0, 3.0, 4.0, nan, 6.0, 7.0, nan, nan],
    })
