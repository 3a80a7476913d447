"""
Scenario Design and Feasibility.

A sweep design is the cross-product

    panel shape (N, T) × complexity (k) × mechanism × dropout rate δ

A scenario is feasible only if T ≥ k + 1: with fewer periods than
covariates plus one, no unit can identify k slopes after the within
transformation. Infeasible scenarios are excluded before any trial
runs and reported with the reason.
"""

from __future__ import annotations

import logging
from dataclasses import asdict, dataclass
from itertools import product
from pathlib import Path
from typing import Any

import yaml

from panelsim.data.missingness import MissingnessMechanism

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PanelShape:
    """Named panel dimensions."""

    name: str
    n_units: int
    n_periods: int


@dataclass(frozen=True)
class Complexity:
    """Named covariate count."""

    name: str
    n_covariates: int


@dataclass(frozen=True)
class ScenarioParams:
    """One cell of the sweep design. Immutable and hashable."""

    panel_shape: str
    n_units: int
    n_periods: int
    complexity: str
    n_covariates: int
    mechanism: MissingnessMechanism
    dropout: float

    @property
    def is_feasible(self) -> bool:
        return self.n_periods >= self.n_covariates + 1

    @property
    def label(self) -> str:
        return (
            f"{self.panel_shape} / {self.complexity} / "
            f"{self.mechanism.value} / {self.dropout:.2f}"
        )

    def to_dict(self) -> dict[str, Any]:
        """Flat dictionary with the mechanism as its display name."""
        d = asdict(self)
        d["mechanism"] = self.mechanism.value
        d["dropout_rate"] = d.pop("dropout")
        return d


@dataclass(frozen=True)
class InfeasibleScenario:
    """A scenario excluded before execution."""

    params: ScenarioParams
    check: str
    message: str
    required: Any
    actual: Any

    def to_dict(self) -> dict[str, Any]:
        d = self.params.to_dict()
        d.update({
            "check": self.check,
            "reason": self.message,
            "required": self.required,
            "actual": self.actual,
        })
        return d


def check_feasibility(params: ScenarioParams) -> InfeasibleScenario | None:
    """Return the exclusion record for an infeasible scenario, else None."""
    if params.is_feasible:
        return None
    required = params.n_covariates + 1
    return InfeasibleScenario(
        params=params,
        check="periods_vs_covariates",
        message=(
            f"T ({params.n_periods}) < k + 1 ({required}): too few periods "
            f"to identify {params.n_covariates} covariates"
        ),
        required=required,
        actual=params.n_periods,
    )


@dataclass
class SweepDesign:
    """Axes of the experiment; the scenario grid is their cross-product."""

    panel_shapes: list[PanelShape]
    complexities: list[Complexity]
    mechanisms: list[MissingnessMechanism]
    dropout_rates: list[float]

    def __post_init__(self) -> None:
        for rate in self.dropout_rates:
            if not 0.0 <= rate <= 1.0:
                raise ValueError(f"Dropout rate must be in [0, 1], got {rate}")
        for axis in ("panel_shapes", "complexities", "mechanisms", "dropout_rates"):
            if not getattr(self, axis):
                raise ValueError(f"Sweep design axis '{axis}' is empty")

    @classmethod
    def reference(cls) -> SweepDesign:
        """Reference design: 3 shapes × 4 complexities × 4 mechanisms × 4 rates."""
        return cls(
            panel_shapes=[
                PanelShape("Wide Panel", 400, 4),
                PanelShape("Balanced Panel", 200, 8),
                PanelShape("Long Panel", 100, 16),
            ],
            complexities=[
                Complexity("Simple", 1),
                Complexity("Moderate", 3),
                Complexity("Complex", 5),
                Complexity("High-Dimensional", 10),
            ],
            mechanisms=list(MissingnessMechanism),
            dropout_rates=[0.10, 0.20, 0.30, 0.40],
        )

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> SweepDesign:
        try:
            return cls(
                panel_shapes=[
                    PanelShape(s["name"], int(s["n_units"]), int(s["n_periods"]))
                    for s in data["panel_shapes"]
                ],
                complexities=[
                    Complexity(c["name"], int(c["n_covariates"]))
                    for c in data["complexities"]
                ],
                mechanisms=[MissingnessMechanism(m) for m in data["mechanisms"]],
                dropout_rates=[float(r) for r in data["dropout_rates"]],
            )
        except (KeyError, TypeError) as e:
            raise ValueError(f"Malformed sweep design: {e}") from e

    @property
    def n_combinations(self) -> int:
        return (
            len(self.panel_shapes) * len(self.complexities)
            * len(self.mechanisms) * len(self.dropout_rates)
        )

    def scenarios(self) -> list[ScenarioParams]:
        """Full cross-product in a stable order (shape, complexity, mechanism, δ)."""
        return [
            ScenarioParams(
                panel_shape=shape.name,
                n_units=shape.n_units,
                n_periods=shape.n_periods,
                complexity=cx.name,
                n_covariates=cx.n_covariates,
                mechanism=mech,
                dropout=rate,
            )
            for shape, cx, mech, rate in product(
                self.panel_shapes, self.complexities, self.mechanisms, self.dropout_rates,
            )
        ]

    def find(
        self,
        panel_shape: str,
        complexity: str,
        mechanism: MissingnessMechanism | str,
        dropout: float,
    ) -> tuple[int, ScenarioParams]:
        """Look up a scenario and its index in the full cross-product."""
        mechanism = MissingnessMechanism(mechanism)
        for index, params in enumerate(self.scenarios()):
            if (
                params.panel_shape == panel_shape
                and params.complexity == complexity
                and params.mechanism is mechanism
                and abs(params.dropout - dropout) < 1e-9
            ):
                return index, params
        raise ValueError(
            f"No scenario ({panel_shape}, {complexity}, {mechanism.value}, {dropout}) "
            f"in design"
        )


def load_sweep_design(path: Path | str | None = None) -> SweepDesign:
    """Load a sweep design from YAML, or the reference design if path is None."""
    if path is None:
        return SweepDesign.reference()

    path = Path(path)
    with open(path) as f:
        data = yaml.safe_load(f) or {}
    design = SweepDesign.from_dict(data)
    logger.info(f"Loaded sweep design from {path}: {design.n_combinations} combinations")
    return design


def enumerate_scenarios(
    design: SweepDesign,
) -> tuple[list[tuple[int, ScenarioParams]], list[InfeasibleScenario]]:
    """Partition the cross-product into feasible and infeasible scenarios.

    Returns:
        (feasible, infeasible). Feasible entries carry their index in the
        full cross-product, which keys per-trial seeds.
    """
    feasible = []
    infeasible = []
    for index, params in enumerate(design.scenarios()):
        issue = check_feasibility(params)
        if issue is None:
            feasible.append((index, params))
        else:
            infeasible.append(issue)

    logger.info(
        f"Sweep design: {design.n_combinations} combinations, "
        f"{len(feasible)} feasible, {len(infeasible)} excluded"
    )
    return feasible, infeasible
