import numpy as np

from dataclasses import dataclass
from enum import Enum
from numpy.typing import NDArray

# probabilities are clipped into [PROB_EPS, 1 - PROB_EPS] before taking logs
PROB_EPS = 1e-12


class FitStatus(str, Enum):
    """Terminal (and transient) states of the BFGS optimizer"""

    INITIALIZED = "initialized"
    ITERATING = "iterating"
    CONVERGED = "converged"
    MAX_ITERATIONS_REACHED = "max_iterations_reached"
    LINE_SEARCH_FAILED = "line_search_failed"
    CANCELLED = "cancelled"


@dataclass
class OptimizeResult:
    """Output from BFGS optimization"""

    beta: NDArray[np.float64]  # (n_params,) final iterate
    fun: float  # objective (negative log-likelihood) at beta
    grad: NDArray[np.float64]  # (n_params,) gradient at beta
    n_iter: int  # number of completed iterations
    status: FitStatus

    @property
    def converged(self) -> bool:
        return self.status is FitStatus.CONVERGED


class SingularCovarianceWarning(UserWarning):
    """Warning used when the Hessian at the optimum cannot be inverted."""
