import math

import numpy as np
from numba import njit

_INV_SQRT_2 = 1.0 / math.sqrt(2.0)
_INV_SQRT_2PI = 1.0 / math.sqrt(2.0 * math.pi)


@njit(fastmath=True, cache=True)
def expit(x: float) -> float:
    if x >= 0.0:
        z = np.exp(-x)
        return 1.0 / (1.0 + z)
    z = np.exp(x)
    return z / (1.0 + z)


# no fastmath: probit probabilities are compared against the clip bound and
# must round the same way as scipy.special.ndtr
@njit(cache=True)
def ndtr(x: float) -> float:
    z = x * _INV_SQRT_2
    if abs(z) < _INV_SQRT_2:
        return 0.5 + 0.5 * math.erf(z)
    y = 0.5 * math.erfc(abs(z))
    if z > 0.0:
        return 1.0 - y
    return y


@njit(cache=True)
def norm_pdf(x: float) -> float:
    return _INV_SQRT_2PI * math.exp(-0.5 * x * x)
