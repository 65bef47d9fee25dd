import numpy as np
import scipy.stats

from dataclasses import dataclass, field
from numpy.typing import ArrayLike, NDArray
from typing import Sequence

from binarymle._covariance import CovarianceEstimate
from binarymle._utils import PROB_EPS, FitStatus
from binarymle.links import LinkFunction

INTERCEPT_NAME = "(Intercept)"


def _readonly(arr: ArrayLike) -> NDArray[np.float64]:
    out = np.array(arr, dtype=np.float64)
    out.flags.writeable = False
    return out


@dataclass(frozen=True, eq=False)
class FitResult:
    """
    Result of a binary GLM maximum-likelihood fit.

    All per-parameter arrays have length n_params = n_features + 1, with the
    intercept first. Arrays are read-only.

    Attributes
    ----------
    term_names : tuple of str
        Parameter names, starting with "(Intercept)".
    estimates : ndarray of shape (n_params,)
        Maximum-likelihood estimates.
    std_errors : ndarray of shape (n_params,)
        Standard errors from the inverse Hessian. NaN where unavailable.
    statistics : ndarray of shape (n_params,)
        Wald z-statistics, estimate / std_error.
    p_values : ndarray of shape (n_params,)
        Two-sided Wald p-values, unrounded.
    fitted : ndarray of shape (n_samples,)
        Fitted probabilities, strictly inside (0, 1).
    inference_available : ndarray of bool, shape (n_params,)
        False where std_errors, statistics and p_values are NaN because the
        covariance (or that parameter's variance) is unavailable.
    status : FitStatus
        Terminal optimizer state.
    covariance : CovarianceEstimate
        Inverse Hessian at the optimum, or the reason it is unavailable.
    link : LinkFunction
        Link used for the fit.
    n_iter : int
        Number of BFGS iterations.
    loglik : float
        Log-likelihood at the estimates.
    n_events : int
        Number of observations with y = 1.
    gradient : ndarray of shape (n_params,) or None
        Gradient of the negative log-likelihood at the estimates, as seen by
        the optimizer.
    """

    term_names: tuple[str, ...]
    estimates: NDArray[np.float64]
    std_errors: NDArray[np.float64]
    statistics: NDArray[np.float64]
    p_values: NDArray[np.float64]
    fitted: NDArray[np.float64]
    inference_available: NDArray[np.bool_]
    status: FitStatus
    covariance: CovarianceEstimate
    link: LinkFunction
    n_iter: int
    loglik: float
    n_events: int
    gradient: NDArray[np.float64] | None = field(default=None, repr=False)

    @property
    def converged(self) -> bool:
        return self.status is FitStatus.CONVERGED

    @property
    def nobs(self) -> int:
        return self.fitted.shape[0]

    @property
    def n_params(self) -> int:
        return self.estimates.shape[0]

    @property
    def df_model(self) -> int:
        return self.n_params - 1

    @property
    def df_resid(self) -> int:
        return self.nobs - self.n_params

    @property
    def aic(self) -> float:
        return -2.0 * self.loglik + 2.0 * self.n_params

    @property
    def bic(self) -> float:
        return -2.0 * self.loglik + np.log(self.nobs) * self.n_params

    @property
    def max_abs_gradient(self) -> float:
        """max|gradient| at the estimates, NaN if the gradient was not kept."""
        if self.gradient is None:
            return float("nan")
        return float(np.max(np.abs(self.gradient)))

    @property
    def intercept(self) -> float:
        return float(self.estimates[0])

    @property
    def coef(self) -> NDArray[np.float64]:
        return self.estimates[1:]

    def conf_int(self, alpha: float = 0.05) -> NDArray[np.float64]:
        """
        Wald confidence intervals.

        Returns
        -------
        ndarray, shape(n_params, 2)
            Column 0: lower bounds, Column 1: upper bounds. NaN where inference
            is unavailable.
        """
        if not 0 < alpha < 1:
            raise ValueError(f"alpha must be in (0, 1), got {alpha}")
        z = scipy.stats.norm.ppf(1 - alpha / 2)
        lower = self.estimates - z * self.std_errors
        upper = self.estimates + z * self.std_errors
        return np.column_stack([lower, upper])

    def predict_proba(self, X: ArrayLike) -> NDArray[np.float64]:
        """Probability of y = 1 for new rows (no intercept column)."""
        X = np.asarray(X, dtype=np.float64)
        if X.ndim == 1:
            X = X.reshape(1, -1)
        if X.ndim != 2 or X.shape[1] != self.n_params - 1:
            raise ValueError(
                f"X must have shape (n_samples, {self.n_params - 1}), got {X.shape}"
            )
        return fitted_probabilities(self.link, X @ self.coef + self.intercept)

    def tidy(self, decimals: int | None = 3):
        """
        Coefficient table as a pandas DataFrame.

        Columns are term, estimate, std.error, statistic and p.value. If
        `decimals` is not None the p-values are rounded for display; the
        arrays on the result are never rounded.
        """
        try:
            import pandas as pd
        except ImportError as e:
            raise ImportError("pandas is required for tidy()") from e

        p_values = self.p_values
        if decimals is not None:
            p_values = np.round(p_values, decimals)
        return pd.DataFrame(
            {
                "term": list(self.term_names),
                "estimate": self.estimates,
                "std.error": self.std_errors,
                "statistic": self.statistics,
                "p.value": p_values,
            }
        )

    def summary(self, alpha: float = 0.05) -> str:
        """Plain-text coefficient table."""
        ci = self.conf_int(alpha=alpha)
        width = 78

        def fmtval(x: float, width: int = 9) -> str:
            if np.isnan(x):
                return f"{'NaN':>{width}}"
            if x == 0:
                return f"{0.0:{width}.4f}"
            if abs(x) < 0.0001 or abs(x) >= 1e6:
                return f"{x:{width}.3e}"
            return f"{x:{width}.4f}"

        lines: list[str] = []
        lines.append(f"Binary GLM ({self.link.name}) Results".center(width))
        lines.append("=" * width)

        info_left = [
            ("Status:", self.status.value),
            ("No. Iterations:", str(self.n_iter)),
            ("Log-Likelihood:", f"{self.loglik:.3f}"),
            ("Covariance:", self.covariance.status.value),
            ("Max |grad|:", f"{self.max_abs_gradient:.3g}"),
        ]
        info_right = [
            ("No. Observations:", str(self.nobs)),
            ("No. Events:", str(self.n_events)),
            ("Df Model:", str(self.df_model)),
            ("Df Residual:", str(self.df_resid)),
            ("AIC:", f"{self.aic:.3f}"),
        ]
        for (l_lbl, l_val), (r_lbl, r_val) in zip(info_left, info_right):
            lines.append(f"{l_lbl:<18} {l_val:<20}{r_lbl:<18} {r_val:>10}")
        lines.append("=" * width)

        ci_lo_hdr = f"[{alpha / 2:.3g}"
        ci_hi_hdr = f"{1 - alpha / 2:.3g}]"
        lines.append(
            f"{'':>12} {'coef':>9} {'std err':>9} {'z':>9} {'P>|z|':>9} "
            f"{ci_lo_hdr:>9} {ci_hi_hdr:>9}"
        )
        lines.append("-" * width)
        for i, name in enumerate(self.term_names):
            lines.append(
                f"{name[:12]:>12} "
                f"{fmtval(self.estimates[i])} "
                f"{fmtval(self.std_errors[i])} "
                f"{fmtval(self.statistics[i])} "
                f"{fmtval(self.p_values[i])} "
                f"{fmtval(ci[i, 0])} "
                f"{fmtval(ci[i, 1])}"
            )
        lines.append("=" * width)
        return "\n".join(lines)

    def __str__(self) -> str:
        return self.summary()


def fitted_probabilities(link: LinkFunction, eta: ArrayLike) -> NDArray[np.float64]:
    """link.probability(eta), kept strictly inside (0, 1)."""
    return np.clip(link.probability(eta), PROB_EPS, 1.0 - PROB_EPS)


def summarize(
    beta: NDArray[np.float64],
    covariance: CovarianceEstimate,
    X: NDArray[np.float64],
    y: NDArray[np.float64],
    link: LinkFunction,
    term_names: Sequence[str],
    status: FitStatus,
    n_iter: int,
    loglik: float,
    gradient: NDArray[np.float64] | None = None,
) -> FitResult:
    """Derive standard errors, Wald statistics and fitted values at the MLE."""
    n_params = beta.shape[0]
    if len(term_names) != n_params:
        raise ValueError(
            f"Got {len(term_names)} term names for {n_params} parameters."
        )

    variances = covariance.diagonal(n_params)
    # a negative variance means the Hessian was not positive definite there
    available = np.isfinite(variances) & (variances >= 0)
    bse = np.where(available, np.sqrt(np.where(available, variances, 0.0)), np.nan)

    with np.errstate(divide="ignore", invalid="ignore"):
        z = np.where(available, beta / bse, np.nan)
    pvalues = np.where(available, 2 * scipy.stats.norm.sf(np.abs(z)), np.nan)

    inference_available = available.copy()
    inference_available.flags.writeable = False

    return FitResult(
        term_names=tuple(term_names),
        estimates=_readonly(beta),
        std_errors=_readonly(bse),
        statistics=_readonly(z),
        p_values=_readonly(pvalues),
        fitted=_readonly(fitted_probabilities(link, X @ beta)),
        inference_available=inference_available,
        status=status,
        covariance=covariance,
        link=link,
        n_iter=n_iter,
        loglik=loglik,
        n_events=int(np.sum(y)),
        gradient=None if gradient is None else _readonly(gradient),
    )
