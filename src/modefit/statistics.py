"""Asymptotic statistics at a mode estimate.

Everything here is derived from the curvature of the negated log-density
with respect to the constrained parameters at ``result.values``:

- information_matrix: Hessian of the negated log-density
- covariance: its inverse
- std_errors: square roots of the covariance diagonal
- coefficient_table: estimates, standard errors, z-scores, two-sided
  p-values and normal confidence intervals as a polars DataFrame

Nothing is cached; each call recomputes from the result.
"""

import logging
from dataclasses import dataclass
from numbers import Real
from typing import Callable, Dict, Optional, Tuple

import numpy as np
import polars as pl
from scipy.stats import norm

from .constants import (
    CI_LOWER_COL,
    CI_UPPER_COL,
    DEFAULT_LEVEL,
    ESTIMATE_COL,
    P_VALUE_COL,
    PARAMETER_COL,
    STD_ERROR_COL,
    Z_COL,
)
from .derivatives import finite_difference_hessian
from .exceptions import InvalidInputError, SingularMatrixError
from .objective import ObjectiveAdapter, constrained_view
from .parameters import ParameterVector
from .result import ModeResult

logger = logging.getLogger(__name__)

HessianProvider = Callable[[ObjectiveAdapter, np.ndarray], np.ndarray]


@dataclass(frozen=True)
class NamedMatrix:
    """Square matrix whose rows and columns are labelled by parameter names.

    Attributes:
        names: Row/column labels in canonical parameter order
        array: (k, k) values (read-only copy)
    """
    names: Tuple[str, ...]
    array: np.ndarray

    def __post_init__(self):
        names = tuple(self.names)
        array = np.array(self.array, dtype=float)
        if array.shape != (len(names), len(names)):
            raise ValueError(f"Expected a {len(names)}x{len(names)} matrix, got shape {array.shape}")
        array.setflags(write=False)
        object.__setattr__(self, 'names', names)
        object.__setattr__(self, 'array', array)
        object.__setattr__(self, '_index', {name: i for i, name in enumerate(names)})

    def __getitem__(self, key: Tuple[str, str]) -> float:
        row, col = key
        return float(self.array[self._position(row), self._position(col)])

    def _position(self, name: str) -> int:
        if name not in self._index:
            raise KeyError(f"Unknown parameter: {name}. Available: {list(self.names)}")
        return self._index[name]

    def __len__(self) -> int:
        return len(self.names)

    def diagonal(self) -> np.ndarray:
        return np.diag(self.array).copy()

    def to_polars(self) -> pl.DataFrame:
        """One row per parameter: a ``parameter`` label column plus one column per name."""
        data = {PARAMETER_COL: list(self.names)}
        for j, name in enumerate(self.names):
            data[name] = self.array[:, j].tolist()
        return pl.DataFrame(data)


def _default_hessian(objective: ObjectiveAdapter, x: np.ndarray) -> np.ndarray:
    hess = objective.hessian(x)
    if hess is not None:
        logger.debug("Using the model's analytic Hessian")
        return hess

    logger.debug("No analytic Hessian; differencing the objective")
    gradient = objective.gradient if objective.has_gradient else None
    bounds = objective.coordinates.space.bounds()
    return finite_difference_hessian(objective, x, gradient=gradient, bounds=bounds)


def information_matrix(
    result: ModeResult,
    hessian_provider: Optional[HessianProvider] = None,
) -> NamedMatrix:
    """Observed information: Hessian of the negated log-density at the mode.

    The Hessian is taken with respect to constrained parameters. The
    objective is evaluated through a constrained view, so ``result.objective``
    stays linked even if the provider raises.

    Args:
        result: Mode estimate
        hessian_provider: ``f(objective, x) -> (k, k) array``; defaults to
            the model's analytic Hessian when it has one, otherwise central
            finite differences

    Returns:
        Symmetric NamedMatrix in canonical parameter order
    """
    provider = hessian_provider if hessian_provider is not None else _default_hessian
    x = result.values.to_array()

    with constrained_view(result.objective) as view:
        hess = np.asarray(provider(view, x), dtype=float)

    k = len(result.param_names)
    if hess.shape != (k, k):
        raise ValueError(f"Hessian provider returned shape {hess.shape}, expected ({k}, {k})")
    return NamedMatrix(result.param_names, 0.5 * (hess + hess.T))


def covariance(
    result: ModeResult,
    hessian_provider: Optional[HessianProvider] = None,
) -> NamedMatrix:
    """Asymptotic covariance: inverse of the information matrix.

    Raises:
        SingularMatrixError: If the information matrix is non-finite,
            numerically rank-deficient or not invertible
    """
    info = information_matrix(result, hessian_provider).array
    if not np.all(np.isfinite(info)):
        raise SingularMatrixError("Information matrix contains non-finite values")

    with np.errstate(divide='ignore', invalid='ignore'):
        cond = np.linalg.cond(info)
    if not np.isfinite(cond) or cond > 1.0 / np.finfo(float).eps:
        raise SingularMatrixError(
            f"Information matrix is singular (condition number {cond:.3g}); "
            f"a parameter may not be identified at the mode"
        )

    try:
        cov = np.linalg.inv(info)
    except np.linalg.LinAlgError as e:
        raise SingularMatrixError(f"Information matrix cannot be inverted: {e}") from e

    return NamedMatrix(result.param_names, 0.5 * (cov + cov.T))


def std_errors(
    result: ModeResult,
    hessian_provider: Optional[HessianProvider] = None,
) -> Dict[str, float]:
    """Standard errors: square roots of the covariance diagonal.

    A negative variance (the estimate is not a local maximum) yields NaN
    and a warning.

    Raises:
        SingularMatrixError: If the information matrix cannot be inverted
    """
    variances = covariance(result, hessian_provider).diagonal()
    negative = [name for name, v in zip(result.param_names, variances) if v < 0.0]
    if negative:
        logger.warning(f"Negative variance for {negative}; the estimate may not be a local maximum")

    with np.errstate(invalid='ignore'):
        ses = np.where(variances >= 0.0, np.sqrt(np.abs(variances)), np.nan)
    return dict(zip(result.param_names, ses.tolist()))


def _check_level(level: float) -> float:
    if isinstance(level, bool) or not isinstance(level, Real):
        raise InvalidInputError(f"level must be a number in (0, 1), got {level!r}")
    level = float(level)
    if not (0.0 < level < 1.0):
        raise InvalidInputError(f"level must be in (0, 1), got {level}")
    return level


def coefficient_table(
    result: ModeResult,
    level: float = DEFAULT_LEVEL,
    hessian_provider: Optional[HessianProvider] = None,
) -> pl.DataFrame:
    """Coefficient table with normal-approximation inference.

    Columns: parameter, estimate, std_error, z (estimate / std_error),
    p_value (two-sided, 2 * (1 - Phi(|z|))), ci_lower and ci_upper
    (estimate -/+ Phi^-1((1 + level) / 2) * std_error).

    Args:
        result: Mode estimate
        level: Confidence level, strictly between 0 and 1
        hessian_provider: Optional override of the Hessian computation

    Returns:
        DataFrame with one row per parameter in canonical order

    Raises:
        InvalidInputError: If level is outside (0, 1)
        SingularMatrixError: If the information matrix cannot be inverted
    """
    level = _check_level(level)

    names = list(result.param_names)
    estimates = result.values.to_array()
    se_map = std_errors(result, hessian_provider)
    ses = np.array([se_map[name] for name in names], dtype=float)

    with np.errstate(divide='ignore', invalid='ignore'):
        z = estimates / ses
    p_values = 2.0 * norm.sf(np.abs(z))
    quantile = critical_value(level)

    return pl.DataFrame({
        PARAMETER_COL: names,
        ESTIMATE_COL: estimates.tolist(),
        STD_ERROR_COL: ses.tolist(),
        Z_COL: z.tolist(),
        P_VALUE_COL: p_values.tolist(),
        CI_LOWER_COL: (estimates - quantile * ses).tolist(),
        CI_UPPER_COL: (estimates + quantile * ses).tolist(),
    })


def log_likelihood(result: ModeResult) -> float:
    """Log-density at the mode.

    For MAP results this is the joint log-density (likelihood plus prior),
    not the likelihood alone.
    """
    return result.log_density_at_mode


def point_estimate(result: ModeResult) -> ParameterVector:
    """The constrained estimate. Needs no curvature, so it always works."""
    return result.values


def parameter_names(result: ModeResult) -> Tuple[str, ...]:
    return result.param_names


def critical_value(level: float = DEFAULT_LEVEL) -> float:
    """Two-sided normal critical value Phi^-1((1 + level) / 2)."""
    return float(norm.ppf(0.5 * (1.0 + _check_level(level))))
