import numpy as np
import warnings

from dataclasses import dataclass
from numpy.typing import NDArray
from sklearn.exceptions import ConvergenceWarning
from typing import Callable, Protocol

from binarymle._utils import FitStatus, OptimizeResult


class Quantities(Protocol):
    fun: float
    grad: NDArray[np.float64]


@dataclass(frozen=True)
class OptimizerState:
    """Read-only snapshot of the optimizer, passed to the per-iteration callback"""

    beta: NDArray[np.float64]
    fun: float
    grad: NDArray[np.float64]
    n_iter: int


# (alpha, fun, grad) at an accepted step
_Step = tuple[float, float, NDArray[np.float64]]

_EPS = np.finfo(np.float64).eps
# max|grad| at or below sqrt(eps) * max(1, |fun|) is indistinguishable from rounding
_GRAD_NOISE = np.sqrt(_EPS)


def bfgs(
    compute_quantities: Callable[[NDArray[np.float64]], Quantities],
    n_features: int,
    max_iter: int = 100_000,
    gtol: float = 1e-6,
    c1: float = 1e-4,
    c2: float = 0.9,
    max_line_search: int = 50,
    callback: Callable[[OptimizerState], bool] | None = None,
) -> OptimizeResult:
    """
    BFGS quasi-Newton minimizer started from beta = 0.

    Parameters
    ----------
    compute_quantities : Callable[[NDArray], Quantities]
        Function `callable(beta)` that returns an object with `fun` (objective) and
        `grad` (its gradient)
    n_features : int
        Number of parameters
    max_iter : int, default=100_000
        Maximum number of iterations
    gtol : float, default=1e-6
        Stop when max|grad| < gtol
    c1 : float, default=1e-4
        Sufficient-decrease constant of the Wolfe conditions
    c2 : float, default=0.9
        Curvature constant of the Wolfe conditions
    max_line_search : int, default=50
        Maximum number of objective evaluations per line search
    callback : Callable[[OptimizerState], bool], optional
        Called once per iteration; returning True stops the optimizer with
        status CANCELLED

    Returns
    -------
    OptimizeResult
        Last accepted iterate and the terminal state. Non-converged fits are
        returned, not raised, and emit a ConvergenceWarning.

    Notes
    -----
    An accepted step that does not lower the objective, or that is below
    machine precision relative to beta, ends the search. The fit is then
    CONVERGED if max|grad| is at the rounding level of the objective and
    LINE_SEARCH_FAILED otherwise, so a `gtol` below that level cannot spin
    until `max_iter`.
    """
    eye = np.eye(n_features, dtype=np.float64)
    beta = np.zeros(n_features, dtype=np.float64)
    inv_hessian = eye.copy()
    h_is_identity = True
    status = FitStatus.INITIALIZED

    q = compute_quantities(beta)
    fun, grad = q.fun, np.asarray(q.grad, dtype=np.float64)
    n_iter = 0

    status = FitStatus.ITERATING
    while status is FitStatus.ITERATING:
        if np.max(np.abs(grad)) < gtol:
            status = FitStatus.CONVERGED
            break
        if callback is not None and callback(
            OptimizerState(beta=beta.copy(), fun=fun, grad=grad.copy(), n_iter=n_iter)
        ):
            status = FitStatus.CANCELLED
            break
        if n_iter >= max_iter:
            status = FitStatus.MAX_ITERATIONS_REACHED
            break

        direction = -inv_hessian @ grad
        if grad @ direction >= 0:  # lost positive definiteness
            inv_hessian, h_is_identity = eye.copy(), True
            direction = -grad

        step = _wolfe_line_search(
            compute_quantities,
            beta,
            fun,
            grad,
            direction,
            alpha_init=_initial_step(grad, h_is_identity),
            c1=c1,
            c2=c2,
            max_evals=max_line_search,
        )
        if step is None and not h_is_identity:
            # retry once along steepest descent before giving up
            inv_hessian, h_is_identity = eye.copy(), True
            direction = -grad
            step = _wolfe_line_search(
                compute_quantities,
                beta,
                fun,
                grad,
                direction,
                alpha_init=_initial_step(grad, h_is_identity),
                c1=c1,
                c2=c2,
                max_evals=max_line_search,
            )
        if step is None:
            status = FitStatus.LINE_SEARCH_FAILED
            break

        alpha, fun_new, grad_new = step
        s = alpha * direction

        if not fun_new < fun or np.linalg.norm(s) <= _EPS * max(
            1.0, np.linalg.norm(beta)
        ):
            if fun_new < fun:
                beta, fun, grad = beta + s, fun_new, grad_new
                n_iter += 1
            if np.max(np.abs(grad)) <= _GRAD_NOISE * max(1.0, abs(fun)):
                status = FitStatus.CONVERGED
            else:
                status = FitStatus.LINE_SEARCH_FAILED
            break

        y = grad_new - grad
        sy = s @ y

        # skip the update when the curvature condition fails numerically
        if np.isfinite(sy) and sy > 1e-10 * np.linalg.norm(s) * np.linalg.norm(y):
            if h_is_identity:
                inv_hessian = (sy / (y @ y)) * eye
                h_is_identity = False
            rho = 1.0 / sy
            Hy = inv_hessian @ y
            inv_hessian = (
                inv_hessian
                - rho * (np.outer(s, Hy) + np.outer(Hy, s))
                + (rho * rho * (y @ Hy) + rho) * np.outer(s, s)
            )

        beta = beta + s
        fun, grad = fun_new, grad_new
        n_iter += 1

    if status is not FitStatus.CONVERGED:
        warnings.warn(
            f"BFGS stopped with status '{status.value}' after {n_iter} iterations "
            f"(max|grad| = {np.max(np.abs(grad)):.3g}). Returning the last accepted "
            "iterate.",
            ConvergenceWarning,
            stacklevel=2,
        )

    return OptimizeResult(
        beta=beta,
        fun=fun,
        grad=grad,
        n_iter=n_iter,
        status=status,
    )


def _initial_step(grad: NDArray[np.float64], h_is_identity: bool) -> float:
    # unscaled steepest descent can overshoot badly when the gradient is large
    if h_is_identity:
        return min(1.0, 1.0 / np.sum(np.abs(grad)))
    return 1.0


def _wolfe_line_search(
    compute_quantities: Callable[[NDArray[np.float64]], Quantities],
    beta: NDArray[np.float64],
    fun0: float,
    grad0: NDArray[np.float64],
    direction: NDArray[np.float64],
    alpha_init: float = 1.0,
    c1: float = 1e-4,
    c2: float = 0.9,
    max_evals: int = 50,
) -> _Step | None:
    """
    Strong Wolfe line search (Nocedal & Wright, Algorithm 3.5).

    Returns (alpha, fun, grad) at the accepted step, or None if no step with
    sufficient decrease was found within `max_evals` evaluations. When the zoom
    phase runs out of evaluations, the best step satisfying sufficient decrease
    is accepted even if the curvature condition does not hold.
    """
    dphi0 = grad0 @ direction
    # objective values within this band of fun0 are treated as ties
    f_tol = 1e-12 * (1.0 + abs(fun0))

    def phi(alpha: float) -> tuple[float, NDArray[np.float64], float]:
        q = compute_quantities(beta + alpha * direction)
        g = np.asarray(q.grad, dtype=np.float64)
        return q.fun, g, g @ direction

    def armijo_fails(alpha: float, fun: float) -> bool:
        return not np.isfinite(fun) or fun > fun0 + c1 * alpha * dphi0 + f_tol

    a_prev, f_prev, g_prev, d_prev = 0.0, fun0, grad0, dphi0
    alpha = alpha_init
    for n_evals in range(1, max_evals + 1):
        fun, grad, dphi = phi(alpha)
        if armijo_fails(alpha, fun) or (n_evals > 1 and fun >= f_prev + f_tol):
            return _zoom(
                phi,
                armijo_fails,
                lo=(a_prev, f_prev, g_prev, d_prev),
                hi=(alpha, fun),
                fun0=fun0,
                dphi0=dphi0,
                c2=c2,
                f_tol=f_tol,
                max_evals=max_evals - n_evals,
            )
        if abs(dphi) <= -c2 * dphi0:
            return alpha, fun, grad
        if dphi >= 0:
            return _zoom(
                phi,
                armijo_fails,
                lo=(alpha, fun, grad, dphi),
                hi=(a_prev, f_prev),
                fun0=fun0,
                dphi0=dphi0,
                c2=c2,
                f_tol=f_tol,
                max_evals=max_evals - n_evals,
            )
        a_prev, f_prev, g_prev, d_prev = alpha, fun, grad, dphi
        alpha *= 2.0

    if a_prev > 0 and f_prev < fun0:
        return a_prev, f_prev, g_prev
    return None


def _zoom(
    phi: Callable[[float], tuple[float, NDArray[np.float64], float]],
    armijo_fails: Callable[[float, float], bool],
    lo: tuple[float, float, NDArray[np.float64], float],
    hi: tuple[float, float],
    fun0: float,
    dphi0: float,
    c2: float,
    f_tol: float,
    max_evals: int,
) -> _Step | None:
    """Shrink the bracket [lo, hi] until a strong Wolfe step is found."""
    a_lo, f_lo, g_lo, d_lo = lo
    a_hi, f_hi = hi

    for _ in range(max_evals):
        alpha = _interpolate(a_lo, f_lo, d_lo, a_hi, f_hi)
        fun, grad, dphi = phi(alpha)
        if armijo_fails(alpha, fun) or fun >= f_lo + f_tol:
            a_hi, f_hi = alpha, fun
            continue
        if abs(dphi) <= -c2 * dphi0:
            return alpha, fun, grad
        if dphi * (a_hi - a_lo) >= 0:
            a_hi, f_hi = a_lo, f_lo
        a_lo, f_lo, g_lo, d_lo = alpha, fun, grad, dphi

    if a_lo > 0 and f_lo < fun0:
        return a_lo, f_lo, g_lo
    return None


def _interpolate(
    a_lo: float, f_lo: float, d_lo: float, a_hi: float, f_hi: float
) -> float:
    """Minimizer of the quadratic through (a_lo, f_lo, d_lo) and (a_hi, f_hi),
    safeguarded to the interior of the bracket; bisection otherwise."""
    delta = a_hi - a_lo
    mid = a_lo + 0.5 * delta
    if not np.isfinite(f_hi):
        return mid
    denom = 2.0 * (f_hi - f_lo - d_lo * delta)
    if denom <= 0 or not np.isfinite(denom):
        return mid
    alpha = a_lo - d_lo * delta * delta / denom
    low, high = sorted((a_lo + 0.1 * delta, a_hi - 0.1 * delta))
    if not (low <= alpha <= high):
        return mid
    return alpha
