import numpy as np

from numpy.typing import ArrayLike, NDArray
from typing import Callable, Sequence

from binarymle._config import FitConfig, resolve_backend
from binarymle._covariance import estimate_covariance
from binarymle._likelihood import (
    LikelihoodQuantities,
    compute_likelihood_quantities,
    expected_information,
    numerical_hessian,
)
from binarymle._solvers import OptimizerState, bfgs
from binarymle.links import LinkFunction, LogitLink, ProbitLink, get_link
from binarymle.results import INTERCEPT_NAME, FitResult, summarize


def fit_binary(
    y: ArrayLike,
    X: ArrayLike,
    link: str | LinkFunction = "logit",
    *,
    config: FitConfig | None = None,
    feature_names: Sequence[str] | None = None,
    callback: Callable[[OptimizerState], bool] | None = None,
) -> FitResult:
    """
    Fit a binary-outcome GLM by maximum likelihood.

    An intercept column is prepended to `X`, the coefficients start at zero and
    are estimated with BFGS. Standard errors come from the inverse Hessian of
    the negative log-likelihood at the optimum.

    Parameters
    ----------
    y : array-like of shape (n_samples,)
        Outcomes, each 0 or 1.
    X : array-like of shape (n_samples, n_features)
        Design matrix without an intercept column. Column names of a DataFrame
        are used as term names.
    link : {'logit', 'probit'} or LinkFunction, default='logit'
        Link function.
    config : FitConfig, optional
        Optimizer and covariance settings. Defaults to `FitConfig()`.
    feature_names : sequence of str, optional
        Names for the columns of `X`. Overrides DataFrame column names.
    callback : Callable[[OptimizerState], bool], optional
        Called once per BFGS iteration; returning True cancels the fit and the
        current iterate is summarized with status CANCELLED.

    Returns
    -------
    FitResult
        Estimates, standard errors, Wald statistics, fitted probabilities and
        the terminal status of the optimizer and covariance estimate.

    Examples
    --------
    >>> import numpy as np
    >>> from binarymle import fit_binary
    >>> y = np.array([0, 1, 1, 0])
    >>> X = np.array([[-1.0], [1.0], [2.0], [-2.0]])
    >>> result = fit_binary(y, X, link="logit")
    >>> result.status
    <FitStatus.CONVERGED: 'converged'>
    """
    config = (config if config is not None else FitConfig()).validate()
    link = get_link(link)
    names = _term_names(X, feature_names)
    y, X = validate_inputs(y, X)

    X_aug = np.column_stack([np.ones(X.shape[0]), X])
    X_aug.flags.writeable = False
    n_params = X_aug.shape[1]
    if len(names) != n_params - 1:
        raise ValueError(
            f"Got {len(names)} feature names for {n_params - 1} columns of X."
        )

    compute_quantities = _bind_likelihood(y, X_aug, link, config.backend)

    result = bfgs(
        compute_quantities=compute_quantities,
        n_features=n_params,
        max_iter=config.max_iter,
        gtol=config.gtol,
        max_line_search=config.max_line_search,
        callback=callback,
    )

    if config.hessian == "expected":
        hessian = expected_information(X_aug, result.beta, link)
    else:
        # covariance always comes from the numpy evaluator
        hessian = numerical_hessian(
            lambda beta: compute_likelihood_quantities(y, X_aug, beta, link).grad,
            result.beta,
        )
    covariance = estimate_covariance(
        hessian, tol=config.hessian_solve_tol, design=X_aug
    )

    return summarize(
        beta=result.beta,
        covariance=covariance,
        X=X_aug,
        y=y,
        link=link,
        term_names=[INTERCEPT_NAME, *names],
        status=result.status,
        n_iter=result.n_iter,
        loglik=-result.fun,
        gradient=result.grad,
    )


def validate_inputs(
    y: ArrayLike, X: ArrayLike
) -> tuple[NDArray[np.float64], NDArray[np.float64]]:
    """Check shapes and values, return float64 copies of y and X."""
    X = np.array(X, dtype=np.float64)
    y = np.array(y, dtype=np.float64)

    if X.ndim != 2:
        raise ValueError(f"X must be 2-dimensional, got {X.ndim} dimension(s).")
    if y.ndim != 1:
        y = y.squeeze()
        if y.ndim != 1:
            raise ValueError(f"y must be 1-dimensional, got shape {y.shape}.")
    n_samples, n_features = X.shape
    if n_features == 0:
        raise ValueError("X has no columns; at least one predictor is required.")
    if n_samples == 0:
        raise ValueError("X has no rows; at least one observation is required.")
    if y.shape[0] != n_samples:
        raise ValueError(
            f"y has {y.shape[0]} observations but X has {n_samples} rows."
        )
    if not np.all(np.isfinite(X)):
        raise ValueError("X contains NaN or infinite values.")
    if not np.all(np.isfinite(y)):
        raise ValueError("y contains NaN or infinite values.")
    bad = ~np.isin(y, (0.0, 1.0))
    if np.any(bad):
        raise ValueError(
            "y must contain only 0/1 values, got "
            f"{np.unique(y[bad])[:5].tolist()}."
        )
    return np.ascontiguousarray(y), np.ascontiguousarray(X)


def _term_names(X: ArrayLike, feature_names: Sequence[str] | None) -> list[str]:
    if feature_names is not None:
        return [str(name) for name in feature_names]
    if hasattr(X, "columns"):
        return [str(name) for name in X.columns]
    n_features = np.shape(X)[1] if np.ndim(X) == 2 else 0
    return [f"x{i + 1}" for i in range(n_features)]


def _bind_likelihood(
    y: NDArray[np.float64],
    X: NDArray[np.float64],
    link: LinkFunction,
    backend: str,
) -> Callable[[NDArray[np.float64]], LikelihoodQuantities]:
    """Return `callable(beta)` computing objective and gradient on one backend."""
    builtin = type(link) in (LogitLink, ProbitLink)
    if backend == "numba" and not builtin:
        raise ValueError(
            f"backend='numba' only supports the logit and probit links, got {link!r}"
        )
    if backend == "auto" and not builtin:
        backend = "numpy"

    if resolve_backend(backend) == "numba":
        from binarymle._numba.likelihood import LOGIT, PROBIT, neg_loglik_and_grad

        link_code = LOGIT if type(link) is LogitLink else PROBIT

        def compute_quantities(beta: NDArray[np.float64]) -> LikelihoodQuantities:
            grad = np.empty(X.shape[1], dtype=np.float64)
            fun = neg_loglik_and_grad(
                X, y, np.ascontiguousarray(beta, dtype=np.float64), link_code, grad
            )
            return LikelihoodQuantities(fun=fun, grad=grad)

    else:

        def compute_quantities(beta: NDArray[np.float64]) -> LikelihoodQuantities:
            return compute_likelihood_quantities(y, X, beta, link)

    return compute_quantities
