"""
Hausman Specification Test.

    H = (b_FE - b_RE)' [V(b_FE) - V(b_RE)]^+ (b_FE - b_RE)  ~  χ²(q)

computed on the q slope coefficients common to both fits (the RE
intercept has no FE counterpart).

Both covariance matrices are put on the efficient (RE) estimate of the
idiosyncratic error variance before differencing:

    V(b_FE) ← V(b_FE) · σ²_ε(RE) / σ²_ε(FE)

With a common σ²_ε the variance difference is positive semi-definite,
so the quadratic form is a proper χ² statistic. A generalized inverse
handles rank-deficient differences; q is then the rank of the
difference.
"""

from __future__ import annotations

import logging

import numpy as np
from scipy import stats

from panelsim.model.base import HausmanResult, HausmanTestError, PanelFit

logger = logging.getLogger(__name__)

# Relative eigenvalue tolerance for rank and definiteness checks
EIGEN_TOL = 1e-8


def _common_scale(fe: PanelFit, re: PanelFit) -> float:
    """Factor putting V(b_FE) on the RE error variance (1.0 if unknown)."""
    if fe.resid_var is None or re.resid_var is None:
        return 1.0
    if not (np.isfinite(fe.resid_var) and np.isfinite(re.resid_var)) or fe.resid_var <= 0:
        raise HausmanTestError(
            f"Invalid residual variances: FE={fe.resid_var}, RE={re.resid_var}"
        )
    return re.resid_var / fe.resid_var


def hausman_test(fe: PanelFit, re: PanelFit) -> HausmanResult:
    """Hausman test of FE against RE.

    Args:
        fe: Fixed-effects fit (efficient under H1, consistent under both)
        re: Random-effects fit (efficient under H0)

    Returns:
        HausmanResult with the χ² statistic, degrees of freedom and p-value

    Raises:
        HausmanTestError: No common coefficients, non-finite values, or a
            variance difference that is zero or not positive semi-definite.
    """
    common = fe.params.index.intersection(re.params.index)
    if len(common) == 0:
        raise HausmanTestError("No common coefficients between FE and RE fits")

    scale = _common_scale(fe, re)
    coef_diff = (fe.params[common] - re.params[common]).to_numpy(dtype=float)
    var_diff = (
        fe.cov.loc[common, common] * scale - re.cov.loc[common, common]
    ).to_numpy(dtype=float)

    if not np.all(np.isfinite(var_diff)) or not np.all(np.isfinite(coef_diff)):
        raise HausmanTestError("Non-finite coefficients or covariances")

    var_diff = (var_diff + var_diff.T) / 2
    try:
        eigenvalues, eigenvectors = np.linalg.eigh(var_diff)
    except np.linalg.LinAlgError as e:
        raise HausmanTestError(f"Eigen-decomposition failed: {e}") from e

    largest = float(np.max(np.abs(eigenvalues)))
    if largest == 0.0:
        raise HausmanTestError("Variance difference is zero")
    tol = EIGEN_TOL * largest
    if eigenvalues.min() < -tol:
        raise HausmanTestError(
            f"Variance difference is not positive semi-definite "
            f"(min eigenvalue {eigenvalues.min():.3g})"
        )

    keep = eigenvalues > tol
    rank = int(keep.sum())
    if rank == 0:
        raise HausmanTestError("Variance difference has rank 0")

    # Generalized inverse over the non-null eigenvectors
    projected = eigenvectors[:, keep].T @ coef_diff
    chi2 = float(np.sum(projected**2 / eigenvalues[keep]))
    if not np.isfinite(chi2):
        raise HausmanTestError(f"Non-finite Hausman statistic: {chi2}")
    chi2 = max(chi2, 0.0)

    if rank < len(common):
        logger.debug(f"Hausman variance difference rank {rank} < {len(common)}")
    pvalue = float(stats.chi2.sf(chi2, rank))
    logger.debug(f"Hausman chi2={chi2:.4f}, df={rank}, p={pvalue:.4f}")

    return HausmanResult(statistic=chi2, df=rank, pvalue=pvalue)
