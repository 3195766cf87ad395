"""Finite-difference derivatives.

Used when a model does not supply analytic gradients or Hessians, and as the
default Hessian provider of the statistical summary. Steps are relative:
h_i = step * max(1, |x_i|). When ``bounds`` are given, h_i is also capped at
``step`` times the distance to the nearest bound so every stencil point
stays inside the domain; a coordinate sitting exactly on a bound has no
central stencil and its derivatives are NaN.
"""

from typing import Callable, Dict, Optional

import numpy as np

from .constants import DEFAULT_FD_STEP

ScalarFn = Callable[[np.ndarray], float]
VectorFn = Callable[[np.ndarray], np.ndarray]

# Stencils reach x ± 2h, so h must stay below a quarter of the room to a bound
_MAX_ROOM_FRACTION = 0.25


def _steps(x: np.ndarray, step: float, bounds: Optional[np.ndarray] = None) -> np.ndarray:
    if not np.isfinite(step) or step <= 0.0:
        raise ValueError(f"finite-difference step must be finite and > 0, got {step}")
    h = step * np.maximum(1.0, np.abs(x))
    if bounds is None:
        return h

    bounds = np.asarray(bounds, dtype=float).reshape(-1, 2)
    if bounds.shape[0] != x.shape[0]:
        raise ValueError(f"Expected bounds for {x.shape[0]} coordinates, got {bounds.shape[0]}")
    room = np.minimum(x - bounds[:, 0], bounds[:, 1] - x)
    if np.any(room < 0.0):
        raise ValueError(f"Point {x.tolist()} lies outside its bounds")
    return np.minimum(h, min(step, _MAX_ROOM_FRACTION) * room)


def finite_difference_gradient(
    fun: ScalarFn,
    x: np.ndarray,
    step: float = DEFAULT_FD_STEP,
    bounds: Optional[np.ndarray] = None,
) -> np.ndarray:
    """Central-difference gradient of a scalar function.

    Args:
        fun: Scalar function of a 1-D array
        x: Evaluation point
        step: Relative step size
        bounds: Optional (k, 2) array of [lower, upper] the stencil must
            respect

    Returns:
        Gradient array with the shape of x
    """
    x = np.asarray(x, dtype=float).reshape(-1)
    h = _steps(x, step, bounds)
    grad = np.full_like(x, np.nan)
    for i in range(x.shape[0]):
        if h[i] == 0.0:
            continue
        e = np.zeros_like(x)
        e[i] = h[i]
        grad[i] = (float(fun(x + e)) - float(fun(x - e))) / (2.0 * h[i])
    return grad


def finite_difference_hessian(
    fun: ScalarFn,
    x: np.ndarray,
    *,
    gradient: Optional[VectorFn] = None,
    step: float = DEFAULT_FD_STEP,
    bounds: Optional[np.ndarray] = None,
) -> np.ndarray:
    """Central-difference Hessian, symmetrized.

    When ``gradient`` is given, the Hessian is built column by column from
    differences of the gradient, which needs 2k gradient calls and is far
    more accurate than second differences of ``fun``. Otherwise second
    differences of ``fun`` are used, reusing repeated evaluation points.

    Args:
        fun: Scalar function of a 1-D array
        x: Evaluation point
        gradient: Optional gradient of ``fun``
        step: Relative step size
        bounds: Optional (k, 2) array of [lower, upper] the stencil must
            respect

    Returns:
        Symmetric (k, k) Hessian

    Raises:
        ValueError: If step is invalid or x lies outside ``bounds``
    """
    x = np.asarray(x, dtype=float).reshape(-1)
    k = x.shape[0]
    h = _steps(x, step, bounds)
    hess = np.full((k, k), np.nan)

    if gradient is not None:
        for i in range(k):
            if h[i] == 0.0:
                continue
            e = np.zeros(k)
            e[i] = h[i]
            g_plus = np.asarray(gradient(x + e), dtype=float).reshape(-1)
            g_minus = np.asarray(gradient(x - e), dtype=float).reshape(-1)
            hess[:, i] = (g_plus - g_minus) / (2.0 * h[i])
        return 0.5 * (hess + hess.T)

    eval_cache: Dict[bytes, float] = {}

    def eval_point(point: np.ndarray) -> float:
        key = point.tobytes()
        if key not in eval_cache:
            eval_cache[key] = float(fun(point))
        return eval_cache[key]

    f0 = eval_point(x)
    for i in range(k):
        for j in range(i, k):
            if h[i] == 0.0 or h[j] == 0.0:
                continue
            ei = np.zeros(k)
            ej = np.zeros(k)
            ei[i] = h[i]
            ej[j] = h[j]

            if i == j:
                fpp = eval_point(x + ei + ei)
                fmm = eval_point(x - ei - ei)
                hess[i, i] = (fpp - 2.0 * f0 + fmm) / (4.0 * h[i] * h[i])
                continue

            fpp = eval_point(x + ei + ej)
            fpm = eval_point(x + ei - ej)
            fmp = eval_point(x - ei + ej)
            fmm = eval_point(x - ei - ej)
            hess[i, j] = (fpp - fpm - fmp + fmm) / (4.0 * h[i] * h[j])
            hess[j, i] = hess[i, j]

    return hess
