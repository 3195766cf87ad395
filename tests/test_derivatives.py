"""Tests for finite-difference derivatives."""

import numpy as np
import pytest

from modefit.derivatives import finite_difference_gradient, finite_difference_hessian

A = np.array([[3.0, 1.0], [1.0, 2.0]])
B = np.array([1.0, -2.0])


def quadratic(x):
    return 0.5 * x @ A @ x + B @ x


def quadratic_grad(x):
    return A @ x + B


def rosenbrock(x):
    return (1.0 - x[0]) ** 2 + 100.0 * (x[1] - x[0] ** 2) ** 2


class TestGradient:
    """Tests for finite_difference_gradient."""

    def test_quadratic(self):
        """Test the gradient of a quadratic is exact up to rounding."""
        x = np.array([0.5, -1.5])
        np.testing.assert_allclose(finite_difference_gradient(quadratic, x), quadratic_grad(x), rtol=1e-8)

    def test_large_coordinates_use_relative_step(self):
        """Test accuracy holds far from the origin."""
        fun = lambda x: float(np.sum(np.log(x)))  # noqa: E731
        x = np.array([1e4, 2e6])
        np.testing.assert_allclose(finite_difference_gradient(fun, x), 1.0 / x, rtol=1e-6)

    @pytest.mark.parametrize("step", [0.0, -1e-3, float("nan")])
    def test_invalid_step(self, step):
        """Test non-positive or NaN steps are rejected."""
        with pytest.raises(ValueError, match="step"):
            finite_difference_gradient(quadratic, np.zeros(2), step=step)


class TestHessian:
    """Tests for finite_difference_hessian."""

    def test_from_gradient(self):
        """Test differencing an exact gradient recovers the Hessian."""
        hess = finite_difference_hessian(quadratic, np.array([0.3, 0.7]), gradient=quadratic_grad)
        np.testing.assert_allclose(hess, A, rtol=1e-7)

    def test_from_values(self):
        """Test second differences of values recover the Hessian."""
        hess = finite_difference_hessian(quadratic, np.array([0.3, 0.7]))
        np.testing.assert_allclose(hess, A, rtol=1e-4)

    def test_symmetric(self):
        """Test the result is exactly symmetric."""
        x = np.array([-1.2, 1.0])
        hess = finite_difference_hessian(rosenbrock, x)
        np.testing.assert_array_equal(hess, hess.T)

    def test_nonquadratic(self):
        """Test the Rosenbrock Hessian at its minimum."""
        expected = np.array([[802.0, -400.0], [-400.0, 200.0]])
        hess = finite_difference_hessian(rosenbrock, np.array([1.0, 1.0]))
        np.testing.assert_allclose(hess, expected, rtol=1e-4)


def positive_log_sum(x):
    if np.any(x <= 0.0):
        raise ValueError(f"log of non-positive value at {x.tolist()}")
    return float(np.sum(np.log(x)))


class TestBoundedSteps:
    """Tests for stencils that must stay inside parameter bounds."""

    def test_gradient_near_lower_bound(self):
        """Test a coordinate close to its bound is differenced inside the domain."""
        x = np.array([1e-7, 2.0])
        bounds = np.array([[0.0, np.inf], [0.0, np.inf]])
        grad = finite_difference_gradient(positive_log_sum, x, bounds=bounds)
        np.testing.assert_allclose(grad, 1.0 / x, rtol=1e-6)

    def test_hessian_near_bounds(self):
        """Test second differences near a lower and an upper bound."""
        x = np.array([1e-6, 0.5])
        bounds = np.array([[0.0, np.inf], [0.0, 1.0]])
        hess = finite_difference_hessian(lambda v: -positive_log_sum(v), x, bounds=bounds)

        np.testing.assert_allclose(np.diag(hess), 1.0 / x**2, rtol=1e-3)
        assert abs(hess[0, 1]) < 1e-6 * hess[0, 0]

    def test_hessian_from_gradient_near_bound(self):
        """Test gradient differencing also respects the bounds."""
        def gradient(v):
            if np.any(v <= 0.0):
                raise ValueError("outside domain")
            return 1.0 / v

        x = np.array([3e-6])
        hess = finite_difference_hessian(positive_log_sum, x, gradient=gradient, bounds=np.array([[0.0, np.inf]]))
        assert hess[0, 0] == pytest.approx(-1.0 / x[0] ** 2, rel=1e-6)

    def test_point_on_bound_gives_nan(self):
        """Test a coordinate exactly on its bound gets NaN derivatives without evaluation."""
        def fun(v):
            if v[0] < 0.0:
                raise ValueError("outside domain")
            return float(v[0] + v[1] ** 2)

        x = np.array([0.0, 1.0])
        bounds = np.array([[0.0, np.inf], [-np.inf, np.inf]])
        hess = finite_difference_hessian(fun, x, bounds=bounds)

        assert np.isnan(hess[0, 0]) and np.isnan(hess[0, 1]) and np.isnan(hess[1, 0])
        assert hess[1, 1] == pytest.approx(2.0, rel=1e-4)

    def test_unbounded_coordinates_unchanged(self):
        """Test infinite bounds leave the relative step as it was."""
        x = np.array([0.3, 0.7])
        bounds = np.array([[-np.inf, np.inf], [-np.inf, np.inf]])
        np.testing.assert_array_equal(
            finite_difference_hessian(quadratic, x, bounds=bounds),
            finite_difference_hessian(quadratic, x),
        )

    def test_point_outside_bounds(self):
        """Test a point outside its bounds is rejected."""
        with pytest.raises(ValueError, match="outside its bounds"):
            finite_difference_gradient(quadratic, np.array([-1.0, 0.0]), bounds=np.array([[0.0, 1.0], [-1.0, 1.0]]))
