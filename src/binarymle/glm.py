import numpy as np

from numpy.typing import ArrayLike, NDArray
from sklearn.base import BaseEstimator, ClassifierMixin
from sklearn.utils._tags import ClassifierTags, Tags
from sklearn.utils.multiclass import type_of_target
from sklearn.utils.validation import check_is_fitted, validate_data
from typing import Literal, Self, cast

from binarymle._config import FitConfig
from binarymle.fit import fit_binary
from binarymle.links import get_link


class BinaryGLM(ClassifierMixin, BaseEstimator):
    """
    Binary-outcome GLM (logit or probit) fitted by maximum likelihood.

    Coefficients are estimated with a BFGS quasi-Newton search started from
    zero. Wald standard errors come from the inverse Hessian of the negative
    log-likelihood at the optimum; when that matrix cannot be inverted the
    standard errors, z-values and p-values are NaN and
    `result_.covariance.status` says why.

    Parameters
    ----------
    link : {'logit', 'probit'}, default='logit'
        Link function mapping the linear predictor to P(y = 1).
    max_iter : int, default=100_000
        Maximum number of BFGS iterations
    gtol : float, default=1e-6
        Convergence tolerance on max|gradient| of the negative log-likelihood
    hessian_solve_tol : float, default=1e-24
        Smallest reciprocal condition number accepted when inverting the Hessian
    hessian : {'numeric', 'expected'}, default='numeric'
        Hessian used for the covariance: central differences of the gradient, or
        the expected (Fisher) information
    backend : {'auto', 'numba', 'numpy'}, default='auto'
        Likelihood backend. 'auto' honours the BINARYMLE_BACKEND environment
        variable, then uses numba when it is installed.

    Attributes
    ----------
    classes_ : ndarray of shape (2,)
        A list of the class labels.
    coef_ : ndarray of shape (n_features,)
        The coefficients of the features.
    intercept_ : float
        Fitted intercept.
    bse_ : ndarray of shape (n_features,)
        Wald standard errors for the coefficient estimates.
    intercept_bse_ : float
        Wald standard error for the intercept.
    zvalues_ : ndarray of shape (n_features,)
        Wald z-statistics for the coefficients.
    pvalues_ : ndarray of shape (n_features,)
        Wald p-values for the coefficients.
    intercept_pvalue_ : float
        Wald p-value for the intercept.
    loglik_ : float
        Log-likelihood at the estimates.
    n_iter_ : int
        Number of iterations the solver ran.
    status_ : FitStatus
        Terminal state of the optimizer.
    converged_ : bool
        Whether the solver converged within `max_iter`.
    result_ : FitResult
        Full result, parameters ordered with the intercept first.
    n_features_in_ : int
        Number of features seen during `fit`.
    feature_names_in_ : ndarray of shape (n_features_in_,)
        Names of features seen during `fit`. Defined only when X has feature names that are all strings.

    Examples
    --------
    >>> import numpy as np
    >>> from binarymle import BinaryGLM
    >>> rng = np.random.default_rng(0)
    >>> X = rng.standard_normal((200, 2))
    >>> y = (X @ [1.0, -0.5] + rng.logistic(size=200) > 0).astype(int)
    >>> model = BinaryGLM(link="logit").fit(X, y)
    >>> model.converged_
    True
    """

    def __init__(
        self,
        link: Literal["logit", "probit"] = "logit",
        max_iter: int = 100_000,
        gtol: float = 1e-6,
        hessian_solve_tol: float = 1e-24,
        hessian: Literal["numeric", "expected"] = "numeric",
        backend: Literal["auto", "numba", "numpy"] = "auto",
    ) -> None:
        self.link = link
        self.max_iter = max_iter
        self.gtol = gtol
        self.hessian_solve_tol = hessian_solve_tol
        self.hessian = hessian
        self.backend = backend

    def __sklearn_tags__(self) -> Tags:
        tags = super().__sklearn_tags__()
        tags.classifier_tags = ClassifierTags()
        tags.classifier_tags.multi_class = False
        return tags

    def fit(self, X: ArrayLike, y: ArrayLike) -> Self:
        """
        Fit the model.

        Parameters
        ----------
        X : array-like of shape (n_samples, n_features)
            Feature matrix, without an intercept column.
        y : array-like of shape (n_samples,)
            Target labels; exactly two classes.

        Returns
        -------
        self : BinaryGLM
            Fitted estimator.
        """
        config = FitConfig(
            max_iter=self.max_iter,
            gtol=self.gtol,
            hessian_solve_tol=self.hessian_solve_tol,
            hessian=self.hessian,
            backend=self.backend,
        ).validate()
        link = get_link(self.link)
        X, y = self._validate_input(X, y)

        feature_names = (
            list(self.feature_names_in_)
            if hasattr(self, "feature_names_in_")
            else None
        )
        result = fit_binary(y, X, link, config=config, feature_names=feature_names)

        self.result_ = result
        self.coef_ = np.array(result.estimates[1:])
        self.intercept_ = float(result.estimates[0])
        self.bse_ = np.array(result.std_errors[1:])
        self.intercept_bse_ = float(result.std_errors[0])
        self.zvalues_ = np.array(result.statistics[1:])
        self.pvalues_ = np.array(result.p_values[1:])
        self.intercept_pvalue_ = float(result.p_values[0])
        self.loglik_ = result.loglik
        self.n_iter_ = result.n_iter
        self.status_ = result.status
        self.converged_ = result.converged
        return self

    def conf_int(self, alpha: float = 0.05) -> NDArray[np.float64]:
        """
        Wald confidence intervals.

        Returns
        -------
        ndarray, shape(n_features + 1, 2)
            Column 0: lower bounds, Column 1: upper bounds.
            Includes intercept as the first row.
        """
        check_is_fitted(self)
        return self.result_.conf_int(alpha=alpha)

    def decision_function(self, X: ArrayLike) -> NDArray[np.float64]:
        """Return linear predictor."""
        check_is_fitted(self)
        X = validate_data(self, X, dtype=np.float64, reset=False)
        X = cast(NDArray[np.float64], X)  # for mypy
        return X @ self.coef_ + self.intercept_

    def predict_proba(self, X: ArrayLike) -> NDArray[np.float64]:
        """Return class probabilities."""
        scores = self.decision_function(X)
        p1 = self.result_.link.probability(scores)
        return np.column_stack([1 - p1, p1])

    def predict(self, X: ArrayLike) -> NDArray[np.int_]:
        """Return predicted class labels."""
        proba = self.predict_proba(X)
        return self.classes_[np.argmax(proba, axis=1)]

    def predict_log_proba(self, X: ArrayLike) -> NDArray[np.float64]:
        """Return log class probabilities"""
        return np.log(self.predict_proba(X))

    def _validate_input(
        self, X: ArrayLike, y: ArrayLike
    ) -> tuple[NDArray[np.float64], NDArray[np.float64]]:
        """Validate inputs, encode y to 0/1"""
        X, y = validate_data(
            self, X, y, dtype=np.float64, y_numeric=False, ensure_min_samples=2
        )

        y_type = type_of_target(y)
        if y_type == "continuous":
            raise ValueError(
                "Unknown label type: continuous. Only binary classification is supported."
            )

        self.classes_ = np.unique(y)
        if len(self.classes_) != 2:
            raise ValueError(
                f"Got {len(self.classes_)} classes. Only binary classification is supported."
            )

        # encode y to 0/1
        y = (y == self.classes_[1]).astype(np.float64)

        X = cast(NDArray[np.float64], X)  # for mypy
        y = cast(NDArray[np.float64], y)
        return X, y
