import numpy as np
from numba import njit
from numpy.typing import NDArray

from binarymle._numba._utils import expit, ndtr, norm_pdf
from binarymle._utils import PROB_EPS

LOGIT = 0
PROBIT = 1


@njit(cache=True)
def neg_loglik_and_grad(
    X: NDArray[np.float64],
    y: NDArray[np.float64],
    beta: NDArray[np.float64],
    link_code: int,
    grad: NDArray[np.float64],  # (k,) output, overwritten
) -> float:
    n = X.shape[0]
    k = X.shape[1]

    for j in range(k):
        grad[j] = 0.0

    total = 0.0
    for i in range(n):
        eta = 0.0
        for j in range(k):
            eta += X[i, j] * beta[j]

        if link_code == LOGIT:
            p = expit(eta)
            f = p * (1.0 - p)
        else:
            p = ndtr(eta)
            f = norm_pdf(eta)

        interior = p > PROB_EPS and p < 1.0 - PROB_EPS
        if p < PROB_EPS:
            p = PROB_EPS
        elif p > 1.0 - PROB_EPS:
            p = 1.0 - PROB_EPS

        total += y[i] * np.log(p) + (1.0 - y[i]) * np.log1p(-p)

        # d(-loglik)/deta; zero where p is clipped
        if interior:
            weight = (p - y[i]) * f / (p * (1.0 - p))
            for j in range(k):
                grad[j] += X[i, j] * weight

    return -total
