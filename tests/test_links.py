import numpy as np
import pytest
import scipy.stats

from binarymle.links import LOGIT, PROBIT, LinkFunction, LogitLink, ProbitLink, get_link


@pytest.mark.parametrize("link", [LOGIT, PROBIT])
class TestLinkFunction:
    def test_half_at_zero(self, link):
        assert link.probability(0.0) == 0.5

    def test_monotonic(self, link):
        eta = np.linspace(-8, 8, 201)
        assert np.all(np.diff(link.probability(eta)) > 0)

    def test_bounded_for_extreme_eta(self, link):
        eta = np.array([-1e4, -745.0, -50.0, 50.0, 745.0, 1e4])
        p = link.probability(eta)
        assert np.all(np.isfinite(p))
        assert np.all((p >= 0) & (p <= 1))

    def test_density_is_derivative(self, link):
        eta = np.linspace(-4, 4, 17)
        h = 1e-6
        numeric = (link.probability(eta + h) - link.probability(eta - h)) / (2 * h)
        np.testing.assert_allclose(link.density(eta), numeric, rtol=1e-6, atol=1e-10)


def test_logit_matches_closed_form():
    eta = np.linspace(-10, 10, 41)
    np.testing.assert_allclose(
        LOGIT.probability(eta), np.exp(eta) / (np.exp(eta) + 1), rtol=1e-14
    )


def test_probit_matches_normal_cdf():
    eta = np.linspace(-5, 5, 41)
    np.testing.assert_allclose(
        PROBIT.probability(eta), scipy.stats.norm.cdf(eta), rtol=1e-14
    )


class TestGetLink:
    def test_by_name(self):
        assert get_link("logit") is LOGIT
        assert get_link("probit") is PROBIT

    def test_case_insensitive(self):
        assert get_link(" Probit ") is PROBIT

    def test_instance_passthrough(self):
        link = LogitLink()
        assert get_link(link) is link
        assert link == LOGIT

    def test_unknown_raises(self):
        with pytest.raises(ValueError, match="link must be one of"):
            get_link("cloglog")
        with pytest.raises(ValueError, match="link must be one of"):
            get_link(3)

    def test_variants_are_distinct(self):
        assert isinstance(LOGIT, LinkFunction)
        assert isinstance(PROBIT, ProbitLink)
        assert LOGIT != PROBIT
