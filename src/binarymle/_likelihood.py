import numpy as np

from dataclasses import dataclass
from numpy.typing import NDArray
from typing import Callable

from binarymle._utils import PROB_EPS
from binarymle.links import LinkFunction


def _clipped_probability(
    eta: NDArray[np.float64], link: LinkFunction
) -> tuple[NDArray[np.float64], NDArray[np.bool_]]:
    """Return p clipped into [eps, 1-eps] and a mask of unclipped entries."""
    p = link.probability(eta)
    interior = (p > PROB_EPS) & (p < 1.0 - PROB_EPS)
    return np.clip(p, PROB_EPS, 1.0 - PROB_EPS), interior


def neg_loglik(
    y: NDArray[np.float64],
    X: NDArray[np.float64],
    beta: NDArray[np.float64],
    link: LinkFunction,
) -> float:
    """
    Negative log-likelihood of a binary GLM.

    Parameters
    ----------
    y : ndarray of shape (n_samples,)
        Outcomes coded 0/1.
    X : ndarray of shape (n_samples, n_params)
        Augmented design matrix (intercept column included).
    beta : ndarray of shape (n_params,)
        Coefficients.
    link : LinkFunction
        Link mapping eta to a probability.

    Returns
    -------
    float
        -sum(y*log(p) + (1-y)*log(1-p)) with p clipped away from 0 and 1.
    """
    p, _ = _clipped_probability(X @ beta, link)
    return float(-np.sum(y * np.log(p) + (1.0 - y) * np.log1p(-p)))


def gradient(
    y: NDArray[np.float64],
    X: NDArray[np.float64],
    beta: NDArray[np.float64],
    link: LinkFunction,
) -> NDArray[np.float64]:
    """Gradient of `neg_loglik` with respect to beta."""
    return compute_likelihood_quantities(y, X, beta, link).grad


@dataclass
class LikelihoodQuantities:
    """Objective and gradient at one parameter vector"""

    fun: float
    grad: NDArray[np.float64]  # (n_params,)


def compute_likelihood_quantities(
    y: NDArray[np.float64],
    X: NDArray[np.float64],
    beta: NDArray[np.float64],
    link: LinkFunction,
) -> LikelihoodQuantities:
    """Compute objective and gradient sharing one pass over eta."""
    eta = X @ beta
    p, interior = _clipped_probability(eta, link)
    fun = float(-np.sum(y * np.log(p) + (1.0 - y) * np.log1p(-p)))
    # d(-loglik)/deta = (p - y) * f(eta) / (p(1-p)); zero where p is clipped
    weight = np.where(interior, (p - y) * link.density(eta) / (p * (1.0 - p)), 0.0)
    return LikelihoodQuantities(fun=fun, grad=X.T @ weight)


def numerical_hessian(
    grad_fn: Callable[[NDArray[np.float64]], NDArray[np.float64]],
    beta: NDArray[np.float64],
    step: float | None = None,
) -> NDArray[np.float64]:
    """
    Hessian by central differences of an analytic gradient.

    Parameters
    ----------
    grad_fn : Callable
        Function `callable(beta)` returning the gradient.
    beta : ndarray of shape (n_params,)
        Point at which to evaluate the Hessian.
    step : float, optional
        Relative step. Defaults to eps**(1/3).

    Returns
    -------
    ndarray of shape (n_params, n_params)
        Symmetrized Hessian.
    """
    if step is None:
        step = np.finfo(np.float64).eps ** (1.0 / 3.0)
    k = beta.shape[0]
    hessian = np.empty((k, k), dtype=np.float64)
    for j in range(k):
        h = step * max(1.0, abs(beta[j]))
        beta_up = beta.copy()
        beta_dn = beta.copy()
        beta_up[j] += h
        beta_dn[j] -= h
        hessian[:, j] = (grad_fn(beta_up) - grad_fn(beta_dn)) / (2.0 * h)
    return 0.5 * (hessian + hessian.T)


def expected_information(
    X: NDArray[np.float64],
    beta: NDArray[np.float64],
    link: LinkFunction,
) -> NDArray[np.float64]:
    """Fisher information X'WX with W = f(eta)^2 / (p(1-p))."""
    eta = X @ beta
    p, interior = _clipped_probability(eta, link)
    f = link.density(eta)
    w = np.where(interior, f * f / (p * (1.0 - p)), 0.0)

    # broadcast so we don't materialize (n, n) diag matrix
    XtW = X.T * np.sqrt(w)
    return XtW @ XtW.T
