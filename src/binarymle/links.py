"""
Link functions mapping a linear predictor to a probability.

Only the two binary-outcome links are provided. Both are stateless, so the
module-level instances ``LOGIT`` and ``PROBIT`` are shared by every fit.
"""

import numpy as np
import scipy.stats

from abc import ABC, abstractmethod
from numpy.typing import ArrayLike, NDArray
from scipy.special import expit, ndtr


class LinkFunction(ABC):
    """Base class for binary links: p = F(eta) with F a continuous CDF."""

    name: str

    @abstractmethod
    def probability(self, eta: ArrayLike) -> NDArray[np.float64]:
        """Inverse link: p = F(eta)"""

    @abstractmethod
    def density(self, eta: ArrayLike) -> NDArray[np.float64]:
        """Derivative: dp/deta = F'(eta)"""

    def __repr__(self) -> str:
        return f"{type(self).__name__}()"

    def __eq__(self, other: object) -> bool:
        return type(self) is type(other)

    def __hash__(self) -> int:
        return hash(type(self))


class LogitLink(LinkFunction):
    """Logistic link, p = 1 / (1 + exp(-eta))."""

    name = "logit"

    def probability(self, eta: ArrayLike) -> NDArray[np.float64]:
        # expit branches on sign, so large negative eta does not overflow
        return expit(np.asarray(eta, dtype=np.float64))

    def density(self, eta: ArrayLike) -> NDArray[np.float64]:
        p = self.probability(eta)
        return p * (1.0 - p)


class ProbitLink(LinkFunction):
    """Probit link, p = Phi(eta) with Phi the standard normal CDF."""

    name = "probit"

    def probability(self, eta: ArrayLike) -> NDArray[np.float64]:
        return ndtr(np.asarray(eta, dtype=np.float64))

    def density(self, eta: ArrayLike) -> NDArray[np.float64]:
        return scipy.stats.norm.pdf(np.asarray(eta, dtype=np.float64))


LOGIT = LogitLink()
PROBIT = ProbitLink()

_LINKS: dict[str, LinkFunction] = {LOGIT.name: LOGIT, PROBIT.name: PROBIT}


def get_link(link: str | LinkFunction) -> LinkFunction:
    """
    Resolve a link specification to a LinkFunction instance.

    Parameters
    ----------
    link : {'logit', 'probit'} or LinkFunction
        Name of the link (case-insensitive) or an instance.

    Returns
    -------
    LinkFunction
    """
    if isinstance(link, LinkFunction):
        return link
    if isinstance(link, str):
        try:
            return _LINKS[link.strip().lower()]
        except KeyError:
            pass
    raise ValueError(f"link must be one of {sorted(_LINKS)}, got {link!r}")
