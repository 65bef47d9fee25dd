import numpy as np
import scipy.linalg
import warnings

from dataclasses import dataclass
from enum import Enum
from numpy.typing import NDArray
from scipy.linalg.lapack import get_lapack_funcs

from binarymle._utils import SingularCovarianceWarning


class CovarianceStatus(str, Enum):
    OK = "ok"
    SINGULAR = "singular"
    ILL_CONDITIONED = "ill_conditioned"
    RANK_DEFICIENT = "rank_deficient"
    NOT_FINITE = "not_finite"


@dataclass(frozen=True, eq=False)
class CovarianceEstimate:
    """Inverse Hessian at the optimum, or the reason it is unavailable"""

    matrix: NDArray[np.float64] | None  # (n_params, n_params) or None on failure
    status: CovarianceStatus
    rcond: float  # reciprocal 1-norm condition number estimate (nan if unknown)

    @property
    def ok(self) -> bool:
        return self.status is CovarianceStatus.OK

    def diagonal(self, n_params: int) -> NDArray[np.float64]:
        """Variances, NaN everywhere when the covariance is unavailable."""
        if self.matrix is None:
            return np.full(n_params, np.nan)
        return np.diag(self.matrix).copy()


def estimate_covariance(
    hessian: NDArray[np.float64],
    tol: float = 1e-24,
    design: NDArray[np.float64] | None = None,
) -> CovarianceEstimate:
    """
    Invert the Hessian of the negative log-likelihood at the optimum.

    Parameters
    ----------
    hessian : ndarray of shape (n_params, n_params)
        Hessian (or expected information) at the MLE.
    tol : float, default=1e-24
        Matrices whose reciprocal condition number is below `tol` are
        reported as ill-conditioned instead of inverted.
    design : ndarray of shape (n_samples, n_params), optional
        Augmented design matrix. When given, a rank-deficient design is
        reported as non-identifiable regardless of `tol`.

    Returns
    -------
    CovarianceEstimate
        Never raises on numerical failure; `status` describes the outcome and a
        SingularCovarianceWarning is emitted.
    """
    k = hessian.shape[0]

    if not np.all(np.isfinite(hessian)):
        return _failed(CovarianceStatus.NOT_FINITE, np.nan)

    if design is not None and np.linalg.matrix_rank(design) < k:
        return _failed(CovarianceStatus.RANK_DEFICIENT, 0.0)

    try:
        with warnings.catch_warnings():
            # exact singularity is detected below from the LU diagonal
            warnings.simplefilter("ignore", scipy.linalg.LinAlgWarning)
            lu, piv = scipy.linalg.lu_factor(hessian, check_finite=False)
    except (scipy.linalg.LinAlgError, ValueError):
        return _failed(CovarianceStatus.SINGULAR, 0.0)

    if np.any(np.diag(lu) == 0.0):
        return _failed(CovarianceStatus.SINGULAR, 0.0)

    # LAPACK dgecon, as used by R's solve(tol=)
    (gecon,) = get_lapack_funcs(("gecon",), (lu,))
    anorm = np.linalg.norm(hessian, 1)
    rcond, info = gecon(lu, anorm, norm="1")
    if info != 0 or not np.isfinite(rcond):
        return _failed(CovarianceStatus.SINGULAR, np.nan)
    if rcond < tol:
        return _failed(CovarianceStatus.ILL_CONDITIONED, float(rcond))

    cov = scipy.linalg.lu_solve((lu, piv), np.eye(k), check_finite=False)
    cov = 0.5 * (cov + cov.T)
    cov.flags.writeable = False
    if not np.all(np.isfinite(cov)):
        return _failed(CovarianceStatus.NOT_FINITE, float(rcond))
    return CovarianceEstimate(
        matrix=cov, status=CovarianceStatus.OK, rcond=float(rcond)
    )


def _failed(status: CovarianceStatus, rcond: float) -> CovarianceEstimate:
    warnings.warn(
        f"Covariance matrix is unavailable ({status.value}); standard errors, "
        "z-statistics and p-values are reported as NaN.",
        SingularCovarianceWarning,
        stacklevel=3,
    )
    return CovarianceEstimate(matrix=None, status=status, rcond=rcond)
