import numpy as np
import pytest
from sklearn.utils.estimator_checks import estimator_checks_generator

from binarymle import BinaryGLM, FitStatus, fit_binary


class TestBinaryGLM:
    """Tests for BinaryGLM."""

    @pytest.mark.parametrize("link", ["logit", "probit"])
    def test_matches_fit_binary(self, gaussian_data, link):
        """Estimator attributes mirror the functional result."""
        X, y = gaussian_data
        model = BinaryGLM(link=link).fit(X, y)
        result = fit_binary(y, X, link)

        np.testing.assert_allclose(model.intercept_, result.intercept)
        np.testing.assert_allclose(model.coef_, result.coef)
        np.testing.assert_allclose(model.bse_, result.std_errors[1:])
        np.testing.assert_allclose(model.intercept_bse_, result.std_errors[0])
        np.testing.assert_allclose(model.pvalues_, result.p_values[1:])
        np.testing.assert_allclose(model.loglik_, result.loglik)
        assert model.converged_
        assert model.status_ is FitStatus.CONVERGED
        assert model.n_iter_ == result.n_iter

    def test_classes_encoded_correctly(self):
        """Handles arbitrary binary labels."""
        rng = np.random.default_rng(0)
        X = rng.standard_normal((50, 2))

        for labels in [(0, 1), (1, 2), (-1, 1)]:
            y = rng.choice(labels, 50)
            model = BinaryGLM()
            model.fit(X, y)
            np.testing.assert_array_equal(model.classes_, sorted(labels))
            assert set(model.predict(X)) <= set(labels)

    def test_string_labels(self, gaussian_data):
        X, y = gaussian_data
        labels = np.where(y == 1, "yes", "no")
        model = BinaryGLM().fit(X, labels)
        reference = BinaryGLM().fit(X, y)

        np.testing.assert_array_equal(model.classes_, ["no", "yes"])
        np.testing.assert_allclose(model.coef_, reference.coef_)

    def test_rejects_more_than_two_classes(self):
        X = np.arange(12.0).reshape(6, 2)
        with pytest.raises(ValueError, match="3 classes"):
            BinaryGLM().fit(X, [0, 1, 2, 0, 1, 2])

    def test_rejects_continuous_target(self):
        X = np.arange(12.0).reshape(6, 2)
        with pytest.raises(ValueError, match="continuous"):
            BinaryGLM().fit(X, [0.1, 0.5, 0.2, 0.9, 0.3, 0.7])

    def test_invalid_params_raise_at_fit(self, toy_data):
        X, y = toy_data
        with pytest.raises(ValueError, match="link"):
            BinaryGLM(link="cloglog").fit(X, y)
        with pytest.raises(ValueError, match="hessian"):
            BinaryGLM(hessian="bhhh").fit(X, y)

    def test_predict_proba_rows_sum_to_one(self, gaussian_data):
        X, y = gaussian_data
        model = BinaryGLM(link="probit").fit(X, y)
        proba = model.predict_proba(X)

        assert proba.shape == (len(y), 2)
        np.testing.assert_allclose(proba.sum(axis=1), 1.0)
        np.testing.assert_allclose(proba[:, 1], model.result_.fitted, atol=1e-12)
        np.testing.assert_array_equal(
            model.predict(X), (model.decision_function(X) > 0).astype(float)
        )

    def test_conf_int_shape(self, gaussian_data):
        X, y = gaussian_data
        model = BinaryGLM().fit(X, y)
        ci = model.conf_int()
        assert ci.shape == (X.shape[1] + 1, 2)
        assert np.all(ci[:, 0] < ci[:, 1])

    def test_feature_names_from_dataframe(self, gaussian_data):
        pd = pytest.importorskip("pandas")
        X, y = gaussian_data
        df = pd.DataFrame(X, columns=["a", "b", "c"])
        model = BinaryGLM().fit(df, y)

        np.testing.assert_array_equal(model.feature_names_in_, ["a", "b", "c"])
        assert model.result_.term_names == ("(Intercept)", "a", "b", "c")

    def test_sklearn_compatible(self):
        """Passes sklearn's estimator checks."""
        for estimator, check in estimator_checks_generator(BinaryGLM()):
            check(estimator)
