"""Tests for LogDensityModel and the LogDensity evaluator."""

import math

import numpy as np
import pytest

from modefit import (
    EstimationMode,
    LogDensity,
    LogDensityModel,
    LogTransform,
    ParameterSpace,
    ParameterSpec,
    ParameterVector,
)


class TestModelDefinition:
    """Tests for subclass validation and defaults."""

    def test_params_must_be_space(self):
        """Test a non-ParameterSpace PARAMS fails at class definition."""
        with pytest.raises(TypeError, match="must be a ParameterSpace"):
            class BadModel(LogDensityModel):
                PARAMS = ["mu"]

                def log_likelihood(self, theta):
                    return 0.0

    def test_params_required_at_init(self):
        """Test instantiating without PARAMS fails."""
        class NoParams(LogDensityModel):
            def log_likelihood(self, theta):
                return 0.0

        with pytest.raises(TypeError, match="PARAMS must be set"):
            NoParams()

    def test_log_likelihood_abstract(self):
        """Test models must implement log_likelihood."""
        class Incomplete(LogDensityModel):
            PARAMS = ParameterSpace((ParameterSpec("x"),))

        with pytest.raises(TypeError):
            Incomplete()

    def test_default_initial_values(self):
        """Test the default starting point lies inside every domain."""
        class Bounded(LogDensityModel):
            PARAMS = ParameterSpace((
                ParameterSpec("free"),
                ParameterSpec("pos", lower=2.0),
                ParameterSpec("neg", upper=-1.0),
                ParameterSpec("unit", lower=0.0, upper=4.0),
            ))

            def log_likelihood(self, theta):
                return 0.0

        init = Bounded().initial_values()
        assert init.to_dict() == {"free": 0.0, "pos": 3.0, "neg": -2.0, "unit": 2.0}
        assert not init.linked

    def test_realize_returns_canonical_vector(self, normal_model):
        """Test the default realize reproduces the parameters in order."""
        theta = ParameterVector(normal_model.space, {"sigma": 1.0, "mu": 0.0})
        realized = normal_model.realize(theta)
        assert realized.names == ("mu", "sigma")
        assert realized.to_dict() == theta.to_dict()

    def test_coordinate_system_merges_transforms(self):
        """Test class TRANSFORMS and overrides are both applied."""
        class Shifted(LogDensityModel):
            PARAMS = ParameterSpace((ParameterSpec("a"), ParameterSpec("b")))
            TRANSFORMS = {"a": LogTransform(-10.0)}

            def log_likelihood(self, theta):
                return 0.0

        coords = Shifted().coordinate_system({"b": LogTransform(-5.0)})
        assert coords.transforms["a"] == LogTransform(-10.0)
        assert coords.transforms["b"] == LogTransform(-5.0)


class TestLogDensity:
    """Tests for the LogDensity evaluator."""

    def test_mle_is_likelihood(self, normal_prior_model):
        """Test MLE ignores the prior."""
        theta = ParameterVector(normal_prior_model.space, {"mu": 1.0})
        density = LogDensity(normal_prior_model, EstimationMode.MLE)
        assert density.log_density(theta) == pytest.approx(normal_prior_model.log_likelihood(theta))

    def test_map_adds_prior(self, normal_prior_model):
        """Test MAP evaluates likelihood plus prior."""
        theta = ParameterVector(normal_prior_model.space, {"mu": 1.0})
        density = LogDensity(normal_prior_model, EstimationMode.MAP)
        expected = normal_prior_model.log_likelihood(theta) + normal_prior_model.log_prior(theta)
        assert density.log_density(theta) == pytest.approx(expected)

    def test_flat_prior_map_equals_mle(self, normal_mean_model):
        """Test MAP with the default flat prior matches MLE."""
        theta = ParameterVector(normal_mean_model.space, {"mu": 0.7})
        mle = LogDensity(normal_mean_model, EstimationMode.MLE)
        map_ = LogDensity(normal_mean_model, EstimationMode.MAP)
        assert map_.log_density(theta) == mle.log_density(theta)
        assert map_.has_gradient

    def test_rejects_unconstrained_vectors(self, normal_mean_model):
        """Test the evaluator only accepts constrained values."""
        z = ParameterVector(normal_mean_model.space, {"mu": 0.0}, linked=True)
        with pytest.raises(ValueError, match="constrained"):
            LogDensity(normal_mean_model, EstimationMode.MLE).log_density(z)

    def test_analytic_gradient(self, normal_prior_model, data):
        """Test analytic likelihood and prior gradients are summed."""
        theta = ParameterVector(normal_prior_model.space, {"mu": 1.0})
        density = LogDensity(normal_prior_model, EstimationMode.MAP)
        expected = np.sum(data - 1.0) - 1.0 / 0.25
        np.testing.assert_allclose(density.gradient(theta), [expected])

    def test_finite_difference_gradient_fallback(self, normal_model, normal_gradient_model):
        """Test models without gradients are differenced numerically."""
        theta = ParameterVector(normal_model.space, {"mu": 1.5, "sigma": 1.2})
        numeric = LogDensity(normal_model, EstimationMode.MLE)
        analytic = LogDensity(normal_gradient_model, EstimationMode.MLE)

        assert not numeric.has_gradient
        assert analytic.has_gradient
        np.testing.assert_allclose(numeric.gradient(theta), analytic.gradient(theta), rtol=1e-6)

    def test_hessian(self, normal_prior_model, normal_model):
        """Test the analytic Hessian, and None when unavailable."""
        theta = ParameterVector(normal_prior_model.space, {"mu": 0.0})
        density = LogDensity(normal_prior_model, EstimationMode.MAP)
        n = normal_prior_model.data.size
        np.testing.assert_allclose(density.hessian(theta), [[-n - 4.0]])

        theta = ParameterVector(normal_model.space, {"mu": 0.0, "sigma": 1.0})
        assert LogDensity(normal_model, EstimationMode.MLE).hessian(theta) is None

    def test_gradient_length_checked(self):
        """Test a gradient of the wrong length is rejected."""
        class WrongGradient(LogDensityModel):
            PARAMS = ParameterSpace((ParameterSpec("a"), ParameterSpec("b")))

            def log_likelihood(self, theta):
                return -theta["a"] ** 2

            def grad_log_likelihood(self, theta):
                return np.array([1.0])

        model = WrongGradient()
        theta = ParameterVector(model.space, {"a": 0.0, "b": 0.0})
        with pytest.raises(ValueError, match="length 2"):
            LogDensity(model, EstimationMode.MLE).gradient(theta)

    def test_log_density_may_be_negative_infinity(self):
        """Test impossible parameter values give -inf rather than raising."""
        class Truncated(LogDensityModel):
            PARAMS = ParameterSpace((ParameterSpec("x"),))

            def log_likelihood(self, theta):
                return -math.inf if theta["x"] > 1.0 else 0.0

        model = Truncated()
        theta = ParameterVector(model.space, {"x": 2.0})
        assert LogDensity(model, EstimationMode.MLE).log_density(theta) == -math.inf
