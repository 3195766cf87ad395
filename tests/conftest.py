"""Shared models and fixtures for the modefit test-suite."""

import math

import numpy as np
import pytest

from modefit import (
    LogDensityModel,
    OptimizerDiagnostics,
    ParameterSpace,
    ParameterSpec,
    ParameterVector,
)

LOG_2PI = math.log(2.0 * math.pi)

# Fixed sample: 50 draws from N(2.0, 1.5)
NORMAL_DATA = np.random.default_rng(42).normal(loc=2.0, scale=1.5, size=50)


# ============================================================================
# Test models
# ============================================================================


class NormalMeanModel(LogDensityModel):
    """y_i ~ N(mu, 1) with analytic gradient and Hessian."""

    PARAMS = ParameterSpace((ParameterSpec("mu", doc="location"),))

    def __init__(self, data=NORMAL_DATA):
        super().__init__()
        self.data = np.asarray(data, dtype=float)

    def log_likelihood(self, theta):
        resid = self.data - theta["mu"]
        return float(-0.5 * self.data.size * LOG_2PI - 0.5 * np.sum(resid**2))

    def grad_log_likelihood(self, theta):
        return np.array([np.sum(self.data - theta["mu"])])

    def hessian_log_likelihood(self, theta):
        return np.array([[-float(self.data.size)]])


class NormalPriorModel(NormalMeanModel):
    """NormalMeanModel with an informative prior mu ~ N(prior_mean, prior_sd^2)."""

    def __init__(self, data=NORMAL_DATA, prior_mean=0.0, prior_sd=0.5):
        super().__init__(data)
        self.prior_mean = prior_mean
        self.prior_sd = prior_sd

    def log_prior(self, theta):
        z = (theta["mu"] - self.prior_mean) / self.prior_sd
        return float(-0.5 * LOG_2PI - math.log(self.prior_sd) - 0.5 * z * z)

    def grad_log_prior(self, theta):
        return np.array([-(theta["mu"] - self.prior_mean) / self.prior_sd**2])

    def hessian_log_prior(self, theta):
        return np.array([[-1.0 / self.prior_sd**2]])

    def initial_values(self):
        return ParameterVector(self.space, {"mu": self.prior_mean})


class NormalModel(LogDensityModel):
    """y_i ~ N(mu, sigma^2) with sigma > 0; no analytic derivatives."""

    PARAMS = ParameterSpace((
        ParameterSpec("mu", doc="location"),
        ParameterSpec("sigma", lower=0.0, doc="scale"),
    ))

    def __init__(self, data=NORMAL_DATA):
        super().__init__()
        self.data = np.asarray(data, dtype=float)

    def log_likelihood(self, theta):
        mu, sigma = theta["mu"], theta["sigma"]
        n = self.data.size
        return float(
            -0.5 * n * LOG_2PI - n * math.log(sigma)
            - 0.5 * np.sum((self.data - mu) ** 2) / sigma**2
        )


class NormalGradientModel(NormalModel):
    """NormalModel with an analytic gradient."""

    def grad_log_likelihood(self, theta):
        mu, sigma = theta["mu"], theta["sigma"]
        resid = self.data - mu
        return np.array([
            np.sum(resid) / sigma**2,
            -self.data.size / sigma + np.sum(resid**2) / sigma**3,
        ])


class UnidentifiedModel(LogDensityModel):
    """y_i ~ N(a, 1); parameter b never enters the likelihood."""

    PARAMS = ParameterSpace((ParameterSpec("a"), ParameterSpec("b")))

    def __init__(self, data=NORMAL_DATA):
        super().__init__()
        self.data = np.asarray(data, dtype=float)

    def log_likelihood(self, theta):
        return float(-0.5 * np.sum((self.data - theta["a"]) ** 2))

    def grad_log_likelihood(self, theta):
        return np.array([np.sum(self.data - theta["a"]), 0.0])


class StubOptimizer:
    """Optimizer that never moves and always reports non-convergence."""

    def __init__(self):
        self.calls = []

    def minimize(self, objective, x0, method, options):
        self.calls.append((method, options))
        return OptimizerDiagnostics(
            method=method,
            converged=False,
            status=1,
            message="Maximum number of iterations exceeded",
            n_iterations=0,
            n_function_evaluations=1,
            n_gradient_evaluations=0,
            minimum=objective(x0),
            minimizer=x0,
        )


# ============================================================================
# Fixtures
# ============================================================================


@pytest.fixture
def data():
    """The fixed Normal sample shared by the test models."""
    return NORMAL_DATA.copy()


@pytest.fixture
def normal_mean_model():
    """Single-parameter Normal mean model with analytic derivatives."""
    return NormalMeanModel()


@pytest.fixture
def normal_prior_model():
    """Normal mean model with an informative N(0, 0.5^2) prior."""
    return NormalPriorModel()


@pytest.fixture
def normal_model():
    """Normal model with positive scale and no analytic derivatives."""
    return NormalModel()


@pytest.fixture
def normal_gradient_model():
    """Normal model with positive scale and an analytic gradient."""
    return NormalGradientModel()


@pytest.fixture
def unidentified_model():
    """Model with a parameter the likelihood does not depend on."""
    return UnidentifiedModel()


@pytest.fixture
def stub_optimizer():
    """Optimizer reporting converged=False without moving."""
    return StubOptimizer()


@pytest.fixture
def normal_space():
    """Two-parameter space: unbounded mu and positive sigma."""
    return NormalModel.PARAMS
