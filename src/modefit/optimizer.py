"""Optimizer protocol and the SciPy-backed default optimizer.

An optimizer minimizes an ObjectiveAdapter from a starting vector and
reports what happened in an OptimizerDiagnostics record. Non-convergence is
a normal outcome reported through ``converged``, never an exception.
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, Protocol

import numpy as np
from scipy.optimize import minimize

from .config import OptimizerOptions
from .exceptions import InvalidInputError
from .objective import ObjectiveAdapter

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class OptimizerDiagnostics:
    """What the optimizer reported about one minimization.

    Attributes:
        method: Optimization method used
        converged: Whether the optimizer reported successful termination
        status: Optimizer status code
        message: Optimizer termination message
        n_iterations: Number of optimizer iterations
        n_function_evaluations: Number of objective evaluations
        n_gradient_evaluations: Number of gradient evaluations (0 for
            derivative-free methods)
        minimum: Objective value at the minimizer
        minimizer: Final optimizer vector (read-only)
    """
    method: str
    converged: bool
    status: int
    message: str
    n_iterations: int
    n_function_evaluations: int
    n_gradient_evaluations: int
    minimum: float
    minimizer: np.ndarray

    def __post_init__(self):
        minimizer = np.array(self.minimizer, dtype=float).reshape(-1)
        minimizer.setflags(write=False)
        object.__setattr__(self, 'minimizer', minimizer)
        object.__setattr__(self, 'minimum', float(self.minimum))
        object.__setattr__(self, 'converged', bool(self.converged))

    def to_dict(self) -> Dict[str, Any]:
        """Export diagnostics as a plain dictionary."""
        return {
            "method": self.method,
            "converged": self.converged,
            "status": self.status,
            "message": self.message,
            "n_iterations": self.n_iterations,
            "n_function_evaluations": self.n_function_evaluations,
            "n_gradient_evaluations": self.n_gradient_evaluations,
            "minimum": self.minimum,
            "minimizer": self.minimizer.tolist(),
        }


class Optimizer(Protocol):
    """Protocol for minimizers used by the estimation driver."""

    def minimize(
        self,
        objective: ObjectiveAdapter,
        x0: np.ndarray,
        method: str,
        options: OptimizerOptions,
    ) -> OptimizerDiagnostics:
        """Minimize ``objective`` starting from ``x0``."""
        ...


# Methods that use the objective gradient, and the option names each
# accepts for (max_iterations, g_tol, f_tol, x_tol). None means unsupported.
_GRADIENT_METHODS = frozenset({"L-BFGS-B", "BFGS", "CG"})
_OPTION_NAMES = {
    "L-BFGS-B": ("maxiter", "gtol", "ftol", None),
    "BFGS": ("maxiter", "gtol", None, None),
    "CG": ("maxiter", "gtol", None, None),
    "Nelder-Mead": ("maxiter", None, "fatol", "xatol"),
    "Powell": ("maxiter", None, "ftol", "xtol"),
}

SUPPORTED_METHODS = tuple(_OPTION_NAMES)


def scipy_options(method: str, options: OptimizerOptions) -> Dict[str, Any]:
    """Translate OptimizerOptions into ``scipy.optimize.minimize`` options.

    Options the method has no equivalent for are dropped with a debug log.

    Raises:
        InvalidInputError: If method is not supported
    """
    if method not in _OPTION_NAMES:
        raise InvalidInputError(f"Unknown optimizer method {method!r}. Available: {list(SUPPORTED_METHODS)}")

    values = (options.max_iterations, options.g_tol, options.f_tol, options.x_tol)
    labels = ("max_iterations", "g_tol", "f_tol", "x_tol")

    translated: Dict[str, Any] = {}
    for label, scipy_name, value in zip(labels, _OPTION_NAMES[method], values):
        if value is None:
            continue
        if scipy_name is None:
            logger.debug(f"Option {label} has no {method} equivalent; ignoring")
            continue
        translated[scipy_name] = value
    return translated


class ScipyOptimizer:
    """Optimizer backed by ``scipy.optimize.minimize``.

    Supported methods: L-BFGS-B (default), BFGS, CG, Nelder-Mead, Powell.
    Gradient-based methods receive value and gradient from one call to
    ``objective.evaluate``; derivative-free methods receive only values.
    """

    def minimize(
        self,
        objective: ObjectiveAdapter,
        x0: np.ndarray,
        method: str,
        options: OptimizerOptions,
    ) -> OptimizerDiagnostics:
        scipy_opts = scipy_options(method, options)
        x0 = np.asarray(x0, dtype=float).reshape(-1)

        logger.debug(f"scipy.optimize.minimize(method={method}, options={scipy_opts}) from x0={x0.tolist()}")
        if method in _GRADIENT_METHODS:
            result = minimize(objective.evaluate, x0, method=method, jac=True, options=scipy_opts)
        else:
            result = minimize(objective, x0, method=method, options=scipy_opts)

        return OptimizerDiagnostics(
            method=method,
            converged=bool(result.success),
            status=int(getattr(result, "status", 0)),
            message=str(getattr(result, "message", "")),
            n_iterations=int(getattr(result, "nit", -1)),
            n_function_evaluations=int(getattr(result, "nfev", -1)),
            n_gradient_evaluations=int(getattr(result, "njev", 0)),
            minimum=float(result.fun),
            minimizer=np.asarray(result.x, dtype=float),
        )
