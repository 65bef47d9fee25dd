"""Fit configuration and likelihood backend selection.

Backend resolution order (first match wins):
    1. An explicit ``backend`` other than ``"auto"``.
    2. The ``BINARYMLE_BACKEND`` environment variable.
    3. ``"numba"`` if numba is importable, else ``"numpy"``.
"""

import os

from dataclasses import dataclass
from typing import Literal

_VALID_BACKENDS = ("auto", "numba", "numpy")
_VALID_HESSIANS = ("numeric", "expected")

BACKEND_ENV_VAR = "BINARYMLE_BACKEND"


def _numba_is_available() -> bool:
    try:
        import numba  # noqa: F401

        return True
    except ImportError:
        return False


NUMBA_AVAILABLE = _numba_is_available()


@dataclass(frozen=True)
class FitConfig:
    """
    Optimizer and covariance settings for a single fit.

    Parameters
    ----------
    max_iter : int, default=100_000
        Maximum number of BFGS iterations.
    gtol : float, default=1e-6
        Convergence tolerance on the max-abs gradient of the negative
        log-likelihood. Must be positive.
    hessian_solve_tol : float, default=1e-24
        Smallest reciprocal condition number accepted when inverting the
        Hessian at the optimum.
    hessian : {'numeric', 'expected'}, default='numeric'
        'numeric' differentiates the analytic gradient by central differences,
        'expected' uses the Fisher information X'WX.
    backend : {'auto', 'numba', 'numpy'}, default='auto'
        Likelihood evaluation backend.
    max_line_search : int, default=50
        Maximum number of objective evaluations per line search.
    """

    max_iter: int = 100_000
    gtol: float = 1e-6
    hessian_solve_tol: float = 1e-24
    hessian: Literal["numeric", "expected"] = "numeric"
    backend: Literal["auto", "numba", "numpy"] = "auto"
    max_line_search: int = 50

    def validate(self) -> "FitConfig":
        if self.max_iter <= 0:
            raise ValueError(f"max_iter must be positive, got {self.max_iter}")
        if not self.gtol > 0:
            raise ValueError(f"gtol must be positive, got {self.gtol}")
        if self.hessian_solve_tol < 0:
            raise ValueError(
                f"hessian_solve_tol must be non-negative, got {self.hessian_solve_tol}"
            )
        if self.hessian not in _VALID_HESSIANS:
            raise ValueError(
                f"hessian must be one of {_VALID_HESSIANS}, got '{self.hessian}'"
            )
        if self.backend not in _VALID_BACKENDS:
            raise ValueError(
                f"backend must be one of {_VALID_BACKENDS}, got '{self.backend}'"
            )
        if self.max_line_search <= 0:
            raise ValueError(
                f"max_line_search must be positive, got {self.max_line_search}"
            )
        return self


def resolve_backend(backend: str = "auto") -> str:
    """Return the concrete backend name (``"numba"`` or ``"numpy"``)."""
    backend = backend.strip().lower()
    if backend == "auto":
        env = os.environ.get(BACKEND_ENV_VAR, "").strip().lower()
        if env in ("numba", "numpy"):
            backend = env
        else:
            return "numba" if NUMBA_AVAILABLE else "numpy"

    if backend not in ("numba", "numpy"):
        raise ValueError(
            f"backend must be one of {_VALID_BACKENDS}, got '{backend}'"
        )
    if backend == "numba" and not NUMBA_AVAILABLE:
        raise ImportError(
            "backend='numba' requires numba. Install it with "
            "`pip install binarymle[numba]` or use backend='numpy'."
        )
    return backend
