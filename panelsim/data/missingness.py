"""
Missingness Injection Mechanisms.

Four interchangeable strategies that overwrite outcome and covariate
cells with NaN on selected rows of a complete panel:

- RANDOM (MCAR): a fixed share of rows drawn uniformly from the panel
- EARLY_EXIT: absorbing dropout; selected units vanish from an exit
  period onwards (right-censoring)
- LATE_MISSING (MAR): row probability grows linearly with time,
  p(t) = min(c·t, 0.95) with c = 2δ / (T + 1)
- CYCLICAL (MAR): a contiguous middle window of periods is three times
  as likely to be missing as the remaining periods

Rows are never removed and the unit/time columns are never touched.
Only RANDOM hits the target fraction δ exactly; the other mechanisms are
per-row stochastic and match δ in expectation only.
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import Callable

import numpy as np
import pandas as pd

from panelsim.data.generator import OUTCOME, TIME, UNIT, value_columns

logger = logging.getLogger(__name__)

MAX_ROW_PROBABILITY = 0.95
CYCLICAL_HIGH_MULTIPLIER = 3.0


class MissingnessMechanism(Enum):
    """Missing-data mechanisms, keyed by their display name."""

    RANDOM = "Random"
    EARLY_EXIT = "Early Exit"
    LATE_MISSING = "Late Missing"
    CYCLICAL = "Cyclical"


def _period_positions(panel: pd.DataFrame) -> tuple[pd.Series, int]:
    """Map each row's period to its 1-based position among sorted periods."""
    periods = np.sort(panel[TIME].unique())
    position = {p: i + 1 for i, p in enumerate(periods)}
    return panel[TIME].map(position).astype(int), len(periods)


def _apply_mask(panel: pd.DataFrame, mask: np.ndarray) -> pd.DataFrame:
    out = panel.copy()
    out.loc[mask, value_columns(out)] = np.nan
    return out


def inject_random(
    panel: pd.DataFrame, dropout: float, rng: np.random.Generator,
) -> pd.DataFrame:
    """MCAR: null out round(δ × rows) rows chosen without replacement."""
    n_rows = len(panel)
    n_drop = min(round(dropout * n_rows), n_rows)
    mask = np.zeros(n_rows, dtype=bool)
    mask[rng.choice(n_rows, size=n_drop, replace=False)] = True
    return _apply_mask(panel, mask)


def inject_early_exit(
    panel: pd.DataFrame, dropout: float, rng: np.random.Generator,
) -> pd.DataFrame:
    """Absorbing dropout of round(2·N·δ) units (at least 1, at most N).

    Each selected unit draws an exit period uniformly from the 2nd..T-th
    period and is missing in every period from the exit onwards, so the
    first period always survives.
    """
    positions, n_periods = _period_positions(panel)
    if n_periods < 2:
        raise ValueError("Early exit requires at least 2 periods")

    units = panel[UNIT].unique()
    n_units = len(units)
    n_drop = max(1, round(2 * n_units * dropout))
    if n_drop > n_units:
        logger.debug(f"Early exit capped at {n_units} units (requested {n_drop})")
        n_drop = n_units

    selected = rng.choice(units, size=n_drop, replace=False)
    exit_at = rng.integers(2, n_periods + 1, size=n_drop)

    unit_exit = panel[UNIT].map(pd.Series(exit_at, index=selected))
    mask = (positions >= unit_exit).to_numpy()
    return _apply_mask(panel, mask)


def inject_late_missing(
    panel: pd.DataFrame, dropout: float, rng: np.random.Generator,
) -> pd.DataFrame:
    """Time-increasing MAR: p(t) = min(2δ / (T + 1) · t, 0.95)."""
    positions, n_periods = _period_positions(panel)
    slope = 2.0 * dropout / (n_periods + 1)
    prob = np.minimum(slope * positions.to_numpy(), MAX_ROW_PROBABILITY)
    mask = rng.random(len(panel)) < prob
    return _apply_mask(panel, mask)


def cyclical_window(n_periods: int) -> tuple[int, int]:
    """Inclusive 1-based bounds of the high-missingness middle window."""
    return n_periods // 3 + 1, n_periods - n_periods // 3


def inject_cyclical(
    panel: pd.DataFrame, dropout: float, rng: np.random.Generator,
) -> pd.DataFrame:
    """Cyclical MAR with a high-risk middle window.

    p_low  = T·δ / (3·T_high + T_low)
    p_high = min(3·p_low, 0.95)

    so that the expected missing share over all periods is δ.
    """
    positions, n_periods = _period_positions(panel)
    lo, hi = cyclical_window(n_periods)
    n_high = hi - lo + 1
    n_low = n_periods - n_high

    p_low = n_periods * dropout / (CYCLICAL_HIGH_MULTIPLIER * n_high + n_low)
    p_high = min(CYCLICAL_HIGH_MULTIPLIER * p_low, MAX_ROW_PROBABILITY)

    pos = positions.to_numpy()
    prob = np.where((pos >= lo) & (pos <= hi), p_high, p_low)
    mask = rng.random(len(panel)) < prob
    return _apply_mask(panel, mask)


_INJECTORS: dict[
    MissingnessMechanism,
    Callable[[pd.DataFrame, float, np.random.Generator], pd.DataFrame],
] = {
    MissingnessMechanism.RANDOM: inject_random,
    MissingnessMechanism.EARLY_EXIT: inject_early_exit,
    MissingnessMechanism.LATE_MISSING: inject_late_missing,
    MissingnessMechanism.CYCLICAL: inject_cyclical,
}


def inject_missingness(
    panel: pd.DataFrame,
    mechanism: MissingnessMechanism | str,
    dropout: float,
    rng: np.random.Generator,
) -> pd.DataFrame:
    """Apply a missingness mechanism to a complete panel.

    Args:
        panel: Complete panel from generate_panel
        mechanism: Mechanism enum member or its display name
        dropout: Target missing fraction δ in [0, 1]
        rng: Random generator

    Returns:
        A new panel with the same rows; δ = 0 returns an unchanged copy.

    Raises:
        ValueError: If δ is outside [0, 1] or the mechanism is unknown.
    """
    mechanism = MissingnessMechanism(mechanism)
    if not 0.0 <= dropout <= 1.0:
        raise ValueError(f"Dropout fraction must be in [0, 1], got {dropout}")
    if dropout == 0:
        return panel.copy()
    return _INJECTORS[mechanism](panel, dropout, rng)


def missing_share(panel: pd.DataFrame) -> float:
    """Realized share of rows with a missing outcome."""
    if panel.empty:
        return 0.0
    return float(panel[OUTCOME].isna().mean())
