"""
Results Aggregator.

Collects trial records into one flat table tagged with scenario
parameters, plus the summaries the CLI prints:

    failure_rate = 1 - successful_runs / total_runs

Records are never filtered or dropped; failed trials stay in the table
with an empty p-value so that failure rates are computed over every
attempted trial.
"""

from __future__ import annotations

from collections import Counter
from typing import Iterable

import numpy as np
import pandas as pd

from panelsim.engine.scenarios import InfeasibleScenario
from panelsim.engine.trial import DIAGNOSTIC_COLUMNS, TrialRecord, TrialStatus

SCENARIO_COLUMNS = [
    "panel_shape",
    "n_units",
    "n_periods",
    "complexity",
    "n_covariates",
    "mechanism",
    "dropout_rate",
]

RESULT_COLUMNS = SCENARIO_COLUMNS + [
    "replication",
    "p_value",
    "hausman_statistic",
    "failure_reason",
    "specificity",
    "n_viable_units",
    "n_obs",
    "detail",
] + DIAGNOSTIC_COLUMNS

INFEASIBLE_COLUMNS = SCENARIO_COLUMNS + ["check", "reason", "required", "actual"]


class ResultsTable:
    """Ordered collection of trial records."""

    def __init__(self, records: Iterable[TrialRecord] | None = None):
        self._records: list[TrialRecord] = list(records or [])

    def add(self, record: TrialRecord) -> None:
        self._records.append(record)

    def extend(self, records: Iterable[TrialRecord]) -> None:
        self._records.extend(records)

    def __len__(self) -> int:
        return len(self._records)

    def __iter__(self):
        return iter(self._records)

    @property
    def records(self) -> list[TrialRecord]:
        return list(self._records)

    def status_counts(self) -> dict[str, int]:
        """Trial counts per failure reason, in pipeline-stage order."""
        counts = Counter(r.outcome.status for r in self._records)
        return {s.value: counts[s] for s in TrialStatus if counts[s]}

    def to_dataframe(self) -> pd.DataFrame:
        """One row per trial with scenario columns on every row."""
        df = pd.DataFrame([r.to_dict() for r in self._records], columns=RESULT_COLUMNS)
        df["p_value"] = df["p_value"].astype(float)
        df["hausman_statistic"] = df["hausman_statistic"].astype(float)
        for col in DIAGNOSTIC_COLUMNS:
            df[col] = df[col].astype(float)
        df["specificity"] = df["specificity"].astype("Int64")
        return df


def infeasible_to_dataframe(infeasible: Iterable[InfeasibleScenario]) -> pd.DataFrame:
    """Excluded-scenarios table: scenario parameters plus exclusion reason."""
    return pd.DataFrame([i.to_dict() for i in infeasible], columns=INFEASIBLE_COLUMNS)


def failure_rates(df: pd.DataFrame, by: str | list[str] = "mechanism") -> pd.DataFrame:
    """Success and failure rates over all attempted trials per group.

    Args:
        df: Results table from ResultsTable.to_dataframe()
        by: Grouping column(s)

    Returns:
        DataFrame with total_runs, successful_runs, success_rate and
        failure_rate (= 1 - success_rate) per group.
    """
    by = [by] if isinstance(by, str) else list(by)
    ok = df["failure_reason"] == TrialStatus.SUCCESS.value
    grouped = ok.groupby([df[c] for c in by])
    out = pd.DataFrame({
        "total_runs": grouped.size(),
        "successful_runs": grouped.sum().astype(int),
    })
    out["success_rate"] = out["successful_runs"] / out["total_runs"]
    out["failure_rate"] = 1 - out["success_rate"]
    return out.reset_index()


def failure_breakdown(df: pd.DataFrame, by: str | list[str] = "mechanism") -> pd.DataFrame:
    """Trial counts per failure reason within each group."""
    by = [by] if isinstance(by, str) else list(by)
    table = pd.crosstab([df[c] for c in by], df["failure_reason"])
    order = [s.value for s in TrialStatus if s.value in table.columns]
    return table[order].reset_index()


def specificity_table(df: pd.DataFrame, by: list[str] | None = None) -> pd.DataFrame:
    """Mean specificity over successful trials per scenario.

    Scenarios with no successful trial get NaN specificity.
    """
    by = by or SCENARIO_COLUMNS
    spec = pd.Series(
        df["specificity"].to_numpy(dtype=float, na_value=np.nan), index=df.index,
    )
    grouped = spec.groupby([df[c] for c in by])
    out = pd.DataFrame({
        "successful_runs": grouped.count(),
        "specificity": grouped.mean(),
    })
    return out.reset_index()
