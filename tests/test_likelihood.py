import numpy as np
import pytest
import scipy.stats
from scipy.optimize import approx_fprime
from scipy.special import expit

from binarymle._likelihood import (
    compute_likelihood_quantities,
    expected_information,
    gradient,
    neg_loglik,
    numerical_hessian,
)
from binarymle._utils import PROB_EPS
from binarymle.links import LOGIT, PROBIT


@pytest.fixture
def design():
    rng = np.random.default_rng(1)
    n, k = 60, 3
    X = np.column_stack([np.ones(n), rng.standard_normal((n, k))])
    y = rng.integers(0, 2, n).astype(np.float64)
    beta = np.array([0.2, -0.4, 0.7, 0.1])
    return X, y, beta


def test_neg_loglik_matches_formula(design):
    X, y, beta = design
    p = expit(X @ beta)
    expected = -np.sum(y * np.log(p) + (1 - y) * np.log(1 - p))
    np.testing.assert_allclose(neg_loglik(y, X, beta, LOGIT), expected, rtol=1e-12)

    p = scipy.stats.norm.cdf(X @ beta)
    expected = -np.sum(y * np.log(p) + (1 - y) * np.log(1 - p))
    np.testing.assert_allclose(neg_loglik(y, X, beta, PROBIT), expected, rtol=1e-12)


def test_neg_loglik_at_zero_is_n_log2(design):
    X, y, _ = design
    beta = np.zeros(X.shape[1])
    for link in (LOGIT, PROBIT):
        np.testing.assert_allclose(
            neg_loglik(y, X, beta, link), len(y) * np.log(2), rtol=1e-12
        )


@pytest.mark.parametrize("link", [LOGIT, PROBIT])
def test_gradient_matches_finite_differences(design, link):
    X, y, beta = design
    numeric = approx_fprime(beta, lambda b: neg_loglik(y, X, b, link), 1e-7)
    np.testing.assert_allclose(gradient(y, X, beta, link), numeric, rtol=1e-5, atol=1e-5)


def test_logit_gradient_is_residual_form(design):
    X, y, beta = design
    expected = X.T @ (expit(X @ beta) - y)
    np.testing.assert_allclose(gradient(y, X, beta, LOGIT), expected, rtol=1e-10)


@pytest.mark.parametrize("link", [LOGIT, PROBIT])
def test_saturated_probabilities_are_clipped(link):
    X = np.array([[1.0, 100.0], [1.0, -100.0]])
    y = np.array([0.0, 1.0])  # both observations predicted wrong with certainty
    beta = np.array([0.0, 1.0])

    q = compute_likelihood_quantities(y, X, beta, link)
    assert np.isfinite(q.fun)
    np.testing.assert_allclose(q.fun, -2 * np.log(PROB_EPS), rtol=1e-5)
    # clipped observations do not contribute to the gradient
    np.testing.assert_array_equal(q.grad, np.zeros(2))


def test_quantities_agree_with_separate_functions(design):
    X, y, beta = design
    q = compute_likelihood_quantities(y, X, beta, PROBIT)
    assert q.fun == neg_loglik(y, X, beta, PROBIT)
    np.testing.assert_array_equal(q.grad, gradient(y, X, beta, PROBIT))


def test_inputs_not_modified(design):
    X, y, beta = design
    X0, y0, beta0 = X.copy(), y.copy(), beta.copy()
    compute_likelihood_quantities(y, X, beta, LOGIT)
    numerical_hessian(lambda b: gradient(y, X, b, LOGIT), beta)
    np.testing.assert_array_equal(X, X0)
    np.testing.assert_array_equal(y, y0)
    np.testing.assert_array_equal(beta, beta0)


class TestHessian:
    def test_numeric_matches_logit_information(self, design):
        """For the canonical logit link observed and expected information agree."""
        X, y, beta = design
        numeric = numerical_hessian(lambda b: gradient(y, X, b, LOGIT), beta)
        p = expit(X @ beta)
        analytic = X.T @ (X * (p * (1 - p))[:, None])
        np.testing.assert_allclose(numeric, analytic, rtol=1e-6, atol=1e-8)
        np.testing.assert_allclose(
            expected_information(X, beta, LOGIT), analytic, rtol=1e-10, atol=1e-10
        )

    def test_numeric_is_symmetric(self, design):
        X, y, beta = design
        H = numerical_hessian(lambda b: gradient(y, X, b, PROBIT), beta)
        np.testing.assert_array_equal(H, H.T)

    def test_probit_expected_information(self, design):
        X, _, beta = design
        eta = X @ beta
        p = scipy.stats.norm.cdf(eta)
        w = scipy.stats.norm.pdf(eta) ** 2 / (p * (1 - p))
        np.testing.assert_allclose(
            expected_information(X, beta, PROBIT),
            X.T @ (X * w[:, None]),
            rtol=1e-10,
            atol=1e-10,
        )

    def test_quadratic_exact(self):
        A = np.array([[3.0, 1.0], [1.0, 2.0]])
        H = numerical_hessian(lambda b: A @ b, np.array([0.5, -1.0]))
        np.testing.assert_allclose(H, A, rtol=1e-8)
