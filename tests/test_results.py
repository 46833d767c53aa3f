"""Tests for result containers and summary formatting."""

import numpy as np
import pytest


@pytest.fixture
def result():
    from rctadjust import Estimate, EstimatorResult
    from rctadjust.engine import compute_inference_results

    np.random.seed(0)
    parts = {}
    for name, center in (("arm1", [5.0, 6.0]), ("arm0", [4.0, 4.5])):
        eif = np.random.randn(100, 2)
        eif -= eif.mean(axis=0)
        inf = compute_inference_results(np.array(center), eif)
        parts[name] = Estimate(
            estimate=inf["estimate"], eif=eif, std_error=inf["se"],
            ci_lower=inf["ci_lower"], ci_upper=inf["ci_upper"],
        )
    eif = parts["arm1"].eif - parts["arm0"].eif
    inf = compute_inference_results(parts["arm1"].estimate - parts["arm0"].estimate, eif)
    effect = Estimate(
        estimate=inf["estimate"], eif=eif, std_error=inf["se"],
        ci_lower=inf["ci_lower"], ci_upper=inf["ci_upper"],
    )
    return EstimatorResult(
        estimand="rmst", index=(90.0, 180.0), effect=effect,
        arm1=parts["arm1"], arm0=parts["arm0"],
        estimator="tmle", iterated=True, n_obs=100, n_folds=5,
    )


class TestEstimate:
    """Test suite for Estimate."""

    def test_read_only(self, result):
        with pytest.raises(ValueError):
            result.effect.estimate[0] = 0.0
        with pytest.raises(ValueError):
            result.effect.eif[0, 0] = 0.0

    def test_z_and_pvalues(self, result):
        z, p = result.effect.z_and_pvalues()
        np.testing.assert_allclose(z, result.effect.estimate / result.effect.std_error)
        assert np.all((p >= 0) & (p <= 1))

    def test_zero_se_gives_nan(self):
        from rctadjust.utils import compute_z_and_pvalue

        z, p = compute_z_and_pvalue(1.0, 0.0)
        assert np.isnan(z) and np.isnan(p)


class TestEstimatorResult:
    """Test suite for EstimatorResult."""

    def test_shortcuts(self, result):
        np.testing.assert_array_equal(result.estimate, result.effect.estimate)
        np.testing.assert_array_equal(result.std_error, result.effect.std_error)

    def test_confint(self, result):
        ci = result.confint()
        assert list(ci.columns) == ["0.025", "0.975"]
        assert list(ci.index) == [90.0, 180.0]
        np.testing.assert_array_equal(ci["0.025"].values, result.effect.ci_lower)

    def test_to_frame(self, result):
        df = result.to_frame()
        assert len(df) == 6
        assert list(df.columns) == [
            "estimand", "quantity", "index", "estimate", "std_error",
            "z", "p_value", "ci_lower", "ci_upper",
        ]
        assert set(df["quantity"]) == {"effect", "arm1", "arm0"}
        effect = df[df["quantity"] == "effect"]
        np.testing.assert_allclose(effect["estimate"].values, [1.0, 1.5])

    def test_to_frame_without_arms(self, result):
        from dataclasses import replace

        df = replace(result, arm1=None, arm0=None).to_frame()
        assert len(df) == 2
        assert set(df["quantity"]) == {"effect"}

    def test_summary(self, result):
        text = result.summary()
        assert "Covariate-Adjusted Trial Estimates" in text
        assert "TMLE" in text
        assert "No. Folds:" in text
        assert "arm1[90.0]" in text
        assert "effect[180.0]" in text
        assert "Iterated:" in text

    def test_repr(self, result):
        text = repr(result)
        assert text.startswith("<EstimatorResult: rmst[90.0]")
        assert "(+1 more)" in text

    def test_fit_repr(self, survival_data):
        from rctadjust import fit_survival

        fit = fit_survival(survival_data, estimator="onestep")
        text = repr(fit)
        assert text.startswith("<SurvivalFit:")
        assert "learner=glm" in text
        assert "n_folds=1" in text
