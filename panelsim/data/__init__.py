"""
Synthetic data modules.
"""

from panelsim.data.generator import (
    OUTCOME,
    TIME,
    UNIT,
    UNIT_EFFECT,
    covariate_names,
    generate_panel,
    value_columns,
)
from panelsim.data.missingness import (
    MissingnessMechanism,
    inject_missingness,
    missing_share,
)

__all__ = [
    "OUTCOME",
    "TIME",
    "UNIT",
    "UNIT_EFFECT",
    "covariate_names",
    "generate_panel",
    "value_columns",
    "MissingnessMechanism",
    "inject_missingness",
    "missing_share",
]
