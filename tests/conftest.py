import numpy as np
import pytest
from scipy.special import expit

TRUE_COEF = np.array([0.1, 0.2, -0.05, 0.3, 0.95])  # intercept, sex, age, edu, party


@pytest.fixture
def survey_data():
    """n=1000 draws from a known logit model with fixed seed."""
    rng = np.random.default_rng(20240101)
    n = 1000
    sex = rng.integers(0, 2, n).astype(np.float64)
    age = rng.integers(18, 80, n).astype(np.float64)
    edu = rng.integers(1, 6, n).astype(np.float64)
    party = rng.integers(0, 2, n).astype(np.float64)
    X = np.column_stack([sex, age, edu, party])
    eta = TRUE_COEF[0] + X @ TRUE_COEF[1:]
    y = rng.binomial(1, expit(eta)).astype(np.float64)
    return X, y


@pytest.fixture
def gaussian_data():
    """Well-conditioned standard-normal design with a logistic outcome."""
    rng = np.random.default_rng(0)
    n, k = 500, 3
    X = rng.standard_normal((n, k))
    eta = 0.3 + X @ np.array([1.0, -0.5, 0.25])
    y = rng.binomial(1, expit(eta)).astype(np.float64)
    return X, y


@pytest.fixture
def toy_data():
    y = np.array([0.0, 1.0, 1.0, 0.0])
    X = np.array([[-1.0], [1.0], [2.0], [-2.0]])
    return X, y
