"""End-to-end tests for the survival and ordinal estimands."""

import numpy as np
import pytest


@pytest.fixture
def survival_fit(survival_data):
    from rctadjust import fit_survival

    return fit_survival(survival_data, learner="glm")


@pytest.fixture
def ordinal_fit(ordinal_data):
    from rctadjust import fit_ordinal

    return fit_ordinal(ordinal_data, learner="glm")


class TestSurvivalEstimands:
    """Test suite for RMST and survival probability."""

    def test_rmst_is_area_under_survival(self, survival_fit):
        from rctadjust import rmst, survprob

        sp = survprob(survival_fit)
        area = rmst(survival_fit)
        for part in ("arm1", "arm0", "effect"):
            np.testing.assert_allclose(
                getattr(area, part).estimate, np.cumsum(getattr(sp, part).estimate)
            )
            np.testing.assert_allclose(
                getattr(area, part).eif, np.cumsum(getattr(sp, part).eif, axis=1)
            )

    def test_protective_treatment(self, survival_fit):
        from rctadjust import survprob

        result = survprob(survival_fit)
        assert result.effect.estimate[-1] > 0
        assert np.all(result.arm1.estimate <= 1)
        assert np.all(result.arm0.estimate >= 0)
        assert np.all(np.diff(result.arm0.estimate) <= 1e-6)

    def test_effect_is_arm_difference(self, survival_fit):
        from rctadjust import rmst

        result = rmst(survival_fit)
        np.testing.assert_allclose(
            result.effect.estimate, result.arm1.estimate - result.arm0.estimate
        )
        np.testing.assert_allclose(result.effect.eif, result.arm1.eif - result.arm0.eif)

    def test_horizon_selection(self, survival_fit):
        from rctadjust import rmst

        full = rmst(survival_fit)
        some = rmst(survival_fit, horizon=[2, 5])
        assert some.index == (2.0, 5.0)
        np.testing.assert_allclose(some.estimate, full.estimate[[1, 4]])

    def test_horizon_outside_grid_raises(self, survival_fit):
        from rctadjust import DataError, rmst

        with pytest.raises(DataError):
            rmst(survival_fit, horizon=100)

    def test_eif_mean_zero_onestep(self, survival_data):
        from rctadjust import fit_survival, survprob

        fit = fit_survival(survival_data, estimator="onestep")
        result = survprob(fit)
        assert fit.estimator == "onestep"
        assert not result.iterated
        for part in (result.arm1, result.arm0, result.effect):
            np.testing.assert_allclose(part.eif.mean(axis=0), 0.0, atol=1e-10)

    def test_eif_mean_small_tmle(self, survival_fit):
        from rctadjust import survprob

        result = survprob(survival_fit)
        n = survival_fit.data.n
        for part in (result.arm1, result.arm0):
            bound = part.eif.std(axis=0, ddof=1) / np.sqrt(n)
            assert np.all(np.abs(part.eif.mean(axis=0)) <= bound)

    def test_standard_errors(self, survival_fit):
        from rctadjust import rmst

        result = rmst(survival_fit)
        expected = result.effect.eif.std(axis=0, ddof=1) / np.sqrt(survival_fit.data.n)
        np.testing.assert_allclose(result.std_error, expected)
        assert np.all(result.effect.ci_lower < result.effect.estimate)
        assert np.all(result.effect.ci_upper > result.effect.estimate)

    def test_alpha_changes_width(self, survival_fit):
        from rctadjust import rmst

        wide = rmst(survival_fit, alpha=0.01)
        narrow = rmst(survival_fit, alpha=0.2)
        assert np.all(
            wide.effect.ci_upper - wide.effect.ci_lower
            > narrow.effect.ci_upper - narrow.effect.ci_lower
        )

    def test_identical_arms_no_effect(self, identical_survival_data):
        from rctadjust import fit_survival, rmst

        fit = fit_survival(identical_survival_data)
        result = rmst(fit)
        assert np.all(result.effect.ci_lower <= 0)
        assert np.all(result.effect.ci_upper >= 0)
        np.testing.assert_allclose(result.effect.estimate, 0.0, atol=0.05)

    def test_no_events_survival_is_one(self, no_event_data):
        from rctadjust import fit_survival, survprob

        fit = fit_survival(no_event_data)
        result = survprob(fit)
        np.testing.assert_allclose(result.arm1.estimate, 1.0)
        np.testing.assert_allclose(result.arm0.estimate, 1.0)
        np.testing.assert_allclose(result.effect.estimate, 0.0)
        assert result.iterated

    def test_wrong_fit_type_raises(self, ordinal_fit, ordinal_data):
        from rctadjust import fit_survival, rmst

        with pytest.raises(TypeError):
            rmst(ordinal_fit)
        with pytest.raises(TypeError):
            fit_survival(ordinal_data)


class TestOrdinalEstimands:
    """Test suite for log odds ratio, Mann-Whitney, CDF and PMF."""

    def test_shift_to_higher_levels(self, ordinal_fit):
        from rctadjust import log_or, mannwhitney

        lor = log_or(ordinal_fit)
        mw = mannwhitney(ordinal_fit)
        assert lor.estimate[0] > 0
        assert lor.effect.ci_lower[0] > 0
        assert 0.5 < mw.estimate[0] <= 1.0
        assert mw.arm1 is None and mw.arm0 is None

    def test_log_or_is_arm_difference(self, ordinal_fit):
        from rctadjust import log_or

        lor = log_or(ordinal_fit)
        np.testing.assert_allclose(lor.estimate, lor.arm1.estimate - lor.arm0.estimate)

    def test_cdf(self, ordinal_fit):
        from rctadjust import cdf

        result = cdf(ordinal_fit)
        assert result.index == (1, 2, 3, 4)
        for arm in (result.arm1, result.arm0):
            assert np.all(np.diff(arm.estimate) >= -1e-8)
            assert arm.estimate[-1] == 1.0
            np.testing.assert_array_equal(arm.eif[:, -1], 0.0)
        # arm 1 is stochastically larger
        assert np.all(result.effect.estimate[:-1] < 0)

    def test_pmf(self, ordinal_fit):
        from rctadjust import pmf

        result = pmf(ordinal_fit)
        for arm in (result.arm1, result.arm0):
            assert np.all(arm.estimate >= 0)
            np.testing.assert_allclose(arm.estimate.sum(), 1.0)
            np.testing.assert_allclose(arm.eif.sum(axis=1), 0.0, atol=1e-10)

    def test_identical_arms(self, identical_ordinal_data):
        from rctadjust import fit_ordinal, log_or, mannwhitney

        fit = fit_ordinal(identical_ordinal_data)
        np.testing.assert_allclose(mannwhitney(fit).estimate, 0.5, atol=5e-3)
        np.testing.assert_allclose(log_or(fit).estimate, 0.0, atol=0.05)

    def test_wrong_fit_type_raises(self, survival_fit):
        from rctadjust import cdf, log_or, mannwhitney, pmf

        for func in (log_or, mannwhitney, cdf, pmf):
            with pytest.raises(TypeError):
                func(survival_fit)


class TestOneStep:
    """The one-step estimator must satisfy the same properties as TMLE."""

    def test_survprob_matches_tmle(self, survival_data, survival_fit):
        from rctadjust import fit_survival, survprob

        one = survprob(fit_survival(survival_data, estimator="onestep"))
        full = survprob(survival_fit)
        for part in ("arm1", "arm0"):
            np.testing.assert_allclose(
                getattr(one, part).estimate, getattr(full, part).estimate, atol=0.02
            )

    def test_survival_curves_well_formed(self, survival_data):
        from rctadjust import fit_survival, survprob

        result = survprob(fit_survival(survival_data, estimator="onestep"))
        for arm in (result.arm1, result.arm0):
            assert np.all((arm.estimate >= 0) & (arm.estimate <= 1))
            assert np.all(np.diff(arm.estimate) <= 5e-3)

    def test_ordinal_shift(self, ordinal_data):
        from rctadjust import cdf, fit_ordinal, log_or, mannwhitney, pmf

        fit = fit_ordinal(ordinal_data, estimator="onestep")
        assert 0.5 < mannwhitney(fit).estimate[0] <= 1.0
        assert log_or(fit).estimate[0] > 0

        F = cdf(fit)
        p = pmf(fit)
        for arm in (F.arm1, F.arm0):
            assert np.all(np.diff(arm.estimate) >= -1e-8)
            assert arm.estimate[-1] == 1.0
        for arm in (p.arm1, p.arm0):
            assert np.all(arm.estimate >= 0)
            np.testing.assert_allclose(arm.estimate.sum(), 1.0)

    def test_ordinal_matches_tmle(self, ordinal_data, ordinal_fit):
        from rctadjust import cdf, fit_ordinal, mannwhitney

        one = fit_ordinal(ordinal_data, estimator="onestep")
        np.testing.assert_allclose(
            mannwhitney(one).estimate, mannwhitney(ordinal_fit).estimate, atol=0.02
        )
        np.testing.assert_allclose(
            cdf(one).arm0.estimate, cdf(ordinal_fit).arm0.estimate, atol=0.02
        )


class TestFitOptions:
    """Test suite for learner, fold and targeting options."""

    def test_simple_learner_never_crossfits(self, survival_data):
        from rctadjust import fit_survival, rmst

        single = fit_survival(survival_data, learner="glm", n_folds=1)
        many = fit_survival(survival_data, learner="glm", n_folds=5, random_state=3)
        assert many.n_folds == 1
        np.testing.assert_allclose(rmst(single).estimate, rmst(many).estimate)

    def test_crossfit_disabled(self, survival_data):
        from rctadjust import fit_survival
        from rctadjust.learners import ForestLearner

        fit = fit_survival(
            survival_data, learner=ForestLearner(n_estimators=30), crossfit=False,
            estimator="onestep",
        )
        assert fit.n_folds == 1
        assert fit.learner == "rf"

    def test_collapse_to_glm(self, survival_dgp):
        from rctadjust import DesignData, fit_survival

        d = survival_dgp
        data = DesignData.survival(d["A"], d["time"], d["status"], covariates=d["X"][:, :1])
        fit = fit_survival(data, learner="rf", n_folds=3)
        assert fit.diagnostics["learner_collapsed_to_glm"]
        assert fit.learner == "glm"
        assert fit.n_folds == 1

    def test_crossfit_forest(self, survival_data):
        from rctadjust import fit_survival, rmst
        from rctadjust.learners import ForestLearner

        fit = fit_survival(
            survival_data, learner=ForestLearner(n_estimators=30), n_folds=2,
            estimator="onestep", random_state=0,
        )
        assert fit.n_folds == 2
        assert sum(fit.diagnostics["fold_sizes"]) == survival_data.n
        assert not fit.diagnostics["learner_collapsed_to_glm"]
        result = rmst(fit)
        assert np.all(np.isfinite(result.estimate))
        assert np.all(result.std_error > 0)

    def test_parallel_matches_sequential(self, survival_data):
        from rctadjust import fit_survival, survprob
        from rctadjust.learners import ForestLearner

        kwargs = dict(n_folds=2, estimator="onestep", random_state=0)
        seq = fit_survival(survival_data, learner=ForestLearner(n_estimators=20), **kwargs)
        par = fit_survival(
            survival_data, learner=ForestLearner(n_estimators=20), n_jobs=2, **kwargs
        )
        np.testing.assert_allclose(survprob(seq).estimate, survprob(par).estimate)

    def test_non_convergence_warns(self, survival_data):
        from rctadjust import ConvergenceWarning, fit_survival, survprob

        with pytest.warns(ConvergenceWarning):
            fit = fit_survival(survival_data, max_iter=1, tol=1e-300)
        assert not fit.iterated
        assert not survprob(fit).iterated

    def test_converged_tmle_is_iterated(self, survival_data):
        from rctadjust import fit_survival

        fit = fit_survival(survival_data)
        assert fit.estimator == "tmle"
        assert fit.diagnostics["targeting_iterations"].shape == (1, 2, survival_data.n_times)

    def test_unknown_learner_raises(self, survival_data):
        from rctadjust import fit_survival

        with pytest.raises(ValueError, match="Unknown learner"):
            fit_survival(survival_data, learner="xgboost")

    def test_unknown_estimator_raises(self, survival_data):
        from rctadjust import fit_survival

        with pytest.raises(ValueError):
            fit_survival(survival_data, estimator="aipw")


class TestFormulaInterface:
    """Test suite for survrct and ordinalrct."""

    def test_survrct(self, survival_frame):
        from rctadjust import SurvivalFit, rmst, survprob, survrct

        fit = survrct(
            "Surv(days, event) ~ arm + age + bmi + sex", "arm ~ 1", survival_frame,
            coarsen=30,
        )
        assert isinstance(fit, SurvivalFit)
        assert fit.data.grid.coarsen == 30

        area = rmst(fit, horizon=90)
        assert area.index == (90.0,)
        assert np.all((area.arm1.estimate > 0) & (area.arm1.estimate <= 90))

        # 30-day intervals: RMST at 90 is 30 * (S(30) + S(60) + S(90))
        sp = survprob(fit, horizon=[30, 60, 90])
        np.testing.assert_allclose(area.arm0.estimate, 30 * sp.arm0.estimate.sum())

    def test_ordinalrct(self, ordinal_frame):
        from rctadjust import OrdinalFit, mannwhitney, ordinalrct, pmf

        fit = ordinalrct("score ~ arm + age + bmi", "arm ~ 1", ordinal_frame)
        assert isinstance(fit, OrdinalFit)
        assert pmf(fit).index == ("none", "mild", "moderate", "severe")
        assert mannwhitney(fit).estimate[0] > 0.5

    def test_verbose(self, ordinal_frame, capsys):
        from rctadjust import ordinalrct

        ordinalrct("score ~ arm + age + bmi", "arm ~ 1", ordinal_frame, verbose=True)
        out = capsys.readouterr().out
        assert "Fitting ordinal nuisance models" in out
        assert "Targeting (tmle)" in out
