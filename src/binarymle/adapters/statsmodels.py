from typing import Literal

import numpy as np
from numpy.typing import ArrayLike, NDArray

from binarymle._config import FitConfig
from binarymle.fit import fit_binary
from binarymle.links import get_link
from binarymle.results import INTERCEPT_NAME, FitResult


class BinaryMLE:
    """
    statsmodels-style wrapper around `fit_binary`.

    Unlike `statsmodels.api.Logit`, the intercept is added internally, so
    `exog` must not contain a constant column.
    """

    def __init__(
        self,
        endog: ArrayLike,
        exog: ArrayLike,
        *,
        link: Literal["logit", "probit"] = "logit",
        **kwargs,
    ):
        self.endog = np.asarray(endog)
        self.exog = np.asarray(exog)
        self.link = get_link(link)

        missing = kwargs.pop("missing", "none")

        if kwargs:
            raise TypeError(
                f"__init__() got unexpected keyword arguments: {list(kwargs.keys())}"
            )

        if missing == "drop":
            raise NotImplementedError("missing='drop' is not supported")
        elif missing == "raise":
            if np.isnan(self.endog).any() or np.isnan(self.exog).any():
                raise ValueError("Input contains NaN values")

        if self.exog.ndim != 2:
            raise ValueError(f"exog must be 2-dimensional, got {self.exog.ndim}")

        if hasattr(exog, "columns"):
            names = [str(c) for c in exog.columns]
        else:
            names = [f"x{i + 1}" for i in range(self.exog.shape[1])]
        self.exog_names = [INTERCEPT_NAME, *names]

    @property
    def nobs(self) -> int:
        return self.exog.shape[0]

    def __repr__(self) -> str:
        return (
            f"<BinaryMLE: link={self.link.name}, nobs={self.nobs}, "
            f"k={self.exog.shape[1]}>"
        )

    def fit(
        self,
        start_params: ArrayLike | None = None,
        method: Literal["bfgs"] = "bfgs",
        maxiter: int = 100_000,
        **kwargs,  # gtol, hessian_solve_tol, hessian, backend
    ) -> "BinaryMLEResults":
        if start_params is not None:
            raise NotImplementedError("start_params is not currently supported.")
        if method != "bfgs":
            raise ValueError("Only 'bfgs' method is currently supported.")

        config = FitConfig(
            max_iter=maxiter,
            gtol=kwargs.pop("gtol", 1e-6),
            hessian_solve_tol=kwargs.pop("hessian_solve_tol", 1e-24),
            hessian=kwargs.pop("hessian", "numeric"),
            backend=kwargs.pop("backend", "auto"),
        )
        if kwargs:
            raise TypeError(
                f"fit() got unexpected keyword arguments: {list(kwargs.keys())}"
            )

        result = fit_binary(
            self.endog,
            self.exog,
            self.link,
            config=config,
            feature_names=self.exog_names[1:],
        )
        return BinaryMLEResults(self, result)


class BinaryMLEResults:
    def __init__(self, model: BinaryMLE, result: FitResult):
        self.model = model
        self.result = result

    @property
    def params(self) -> NDArray[np.float64]:
        return self.result.estimates

    @property
    def bse(self) -> NDArray[np.float64]:
        return self.result.std_errors

    @property
    def tvalues(self) -> NDArray[np.float64]:
        return self.result.statistics

    @property
    def pvalues(self) -> NDArray[np.float64]:
        return self.result.p_values

    @property
    def llf(self) -> float:
        return self.result.loglik

    @property
    def aic(self) -> float:
        return self.result.aic

    @property
    def bic(self) -> float:
        return self.result.bic

    @property
    def converged(self) -> bool:
        return self.result.converged

    @property
    def nobs(self) -> int:
        return self.result.nobs

    @property
    def df_model(self) -> int:
        return self.result.df_model

    @property
    def df_resid(self) -> int:
        return self.result.df_resid

    @property
    def mle_retvals(self) -> dict:
        return {
            "converged": self.converged,
            "iterations": self.result.n_iter,
            "status": self.result.status.value,
            "covariance": self.result.covariance.status.value,
            "max_abs_gradient": self.result.max_abs_gradient,
        }

    @property
    def fittedvalues(self) -> NDArray[np.float64]:
        return self.result.fitted

    def __repr__(self) -> str:
        return (
            f"<BinaryMLEResults: link={self.result.link.name}, nobs={self.nobs}, "
            f"status={self.result.status.value}>"
        )

    def predict(
        self,
        exog: ArrayLike | None = None,
        **kwargs,
    ) -> NDArray[np.float64]:
        if exog is None:
            return np.array(self.result.fitted)

        exog = np.asarray(exog, dtype=np.float64)
        if kwargs.get("linear", False):
            return exog @ self.params[1:] + self.params[0]
        return self.result.predict_proba(exog)

    def conf_int(self, alpha: float = 0.05) -> NDArray[np.float64]:
        return self.result.conf_int(alpha=alpha)

    def cov_params(self) -> NDArray[np.float64]:
        """Covariance of the estimates; all NaN when it could not be computed."""
        cov = self.result.covariance.matrix
        if cov is None:
            k = len(self.params)
            return np.full((k, k), np.nan)
        return np.array(cov)

    def summary(self, alpha: float = 0.05) -> "BinaryMLESummary":
        """Generate a summary of the regression results."""
        return BinaryMLESummary(self.result.summary(alpha=alpha))

    def summary_frame(self, alpha: float = 0.05):
        """Return summary as a pandas DataFrame."""
        try:
            import pandas as pd
        except ImportError as e:
            raise ImportError("pandas is required for summary_frame()") from e

        ci = self.conf_int(alpha=alpha)
        ci_lower = alpha / 2
        ci_upper = 1 - alpha / 2

        return pd.DataFrame(
            {
                "coef": self.params,
                "std err": self.bse,
                "z": self.tvalues,
                "P>|z|": self.pvalues,
                f"[{ci_lower:.3g}": ci[:, 0],
                f"{ci_upper:.3g}]": ci[:, 1],
            },
            index=self.model.exog_names,
        )


class BinaryMLESummary:
    def __init__(self, text: str):
        self._text = text

    def __str__(self) -> str:
        return self._text

    def as_text(self) -> str:
        return self._text
