from binarymle._config import NUMBA_AVAILABLE, FitConfig
from binarymle._covariance import CovarianceEstimate, CovarianceStatus
from binarymle._solvers import OptimizerState
from binarymle._utils import FitStatus, SingularCovarianceWarning
from binarymle.fit import fit_binary
from binarymle.glm import BinaryGLM
from binarymle.links import LOGIT, PROBIT, LinkFunction, LogitLink, ProbitLink, get_link
from binarymle.results import FitResult

__all__ = [
    "BinaryGLM",
    "CovarianceEstimate",
    "CovarianceStatus",
    "FitConfig",
    "FitResult",
    "FitStatus",
    "LOGIT",
    "LinkFunction",
    "LogitLink",
    "NUMBA_AVAILABLE",
    "OptimizerState",
    "PROBIT",
    "ProbitLink",
    "SingularCovarianceWarning",
    "fit_binary",
    "get_link",
]

__version__ = "0.1.0"
