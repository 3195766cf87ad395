"""LogDensityModel base class and the LogDensity evaluator.

A model declares its parameters through the ``PARAMS`` class attribute and
supplies log-likelihood and (optionally) log-prior terms evaluated at
constrained parameter values. Gradients and Hessians are optional: a model
that returns ``None`` from the ``grad_*``/``hessian_*`` hooks gets finite
differences instead.

Key invariants:
- every evaluation takes a complete, constrained ParameterVector
- models are never mutated by estimation; they are only evaluated
- PARAMS order is the canonical parameter order
"""

import logging
import math
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Dict, Mapping, Optional

import numpy as np

from .config import EstimationMode
from .derivatives import finite_difference_gradient
from .parameters import CoordinateSystem, ParameterSpace, ParameterVector, Transform

logger = logging.getLogger(__name__)


class LogDensityModel(ABC):
    """Probabilistic model evaluated in its natural parameter space.

    Subclasses MUST set:
    - PARAMS: ParameterSpace defining the model's parameters

    Subclasses MAY set:
    - TRANSFORMS: per-parameter Transform overrides (otherwise inferred
      from the parameter bounds)

    Subclasses MUST implement ``log_likelihood`` and MAY override
    ``log_prior``, the gradient/Hessian hooks, ``initial_values`` and
    ``realize``.
    """

    PARAMS: Optional[ParameterSpace] = None

    TRANSFORMS: Mapping[str, Transform] = {}

    def __init_subclass__(cls, **kwargs):
        """Validate class attributes during class definition."""
        super().__init_subclass__(**kwargs)

        params = getattr(cls, 'PARAMS', None)
        if params is not None and not isinstance(params, ParameterSpace):
            raise TypeError(
                f"{cls.__name__}.PARAMS must be a ParameterSpace instance, "
                f"got {type(params).__name__}"
            )

    def __init__(self):
        space = type(self).PARAMS
        if space is None:
            raise TypeError(
                f"{type(self).__name__}.PARAMS must be set to a ParameterSpace. "
                f"Example: PARAMS = ParameterSpace((ParameterSpec(...), ...))"
            )
        self.space = space

    @abstractmethod
    def log_likelihood(self, theta: ParameterVector) -> float:
        """Log-likelihood of the data at constrained parameters ``theta``."""

    def log_prior(self, theta: ParameterVector) -> float:
        """Log-prior density at ``theta``; flat (0.0) unless overridden."""
        return 0.0

    def grad_log_likelihood(self, theta: ParameterVector) -> Optional[np.ndarray]:
        """Analytic gradient of the log-likelihood, or None."""
        return None

    def grad_log_prior(self, theta: ParameterVector) -> Optional[np.ndarray]:
        """Analytic gradient of the log-prior, or None."""
        return None

    def hessian_log_likelihood(self, theta: ParameterVector) -> Optional[np.ndarray]:
        """Analytic Hessian of the log-likelihood, or None."""
        return None

    def hessian_log_prior(self, theta: ParameterVector) -> Optional[np.ndarray]:
        """Analytic Hessian of the log-prior, or None."""
        return None

    def initial_values(self) -> ParameterVector:
        """Default starting point in constrained space.

        The base implementation picks an interior point of each parameter's
        domain: the midpoint of a finite interval, one unit inside a
        half-bounded domain, zero when unbounded. Models with priors
        typically override this with the prior means.
        """
        values: Dict[str, float] = {}
        for spec in self.space.specs:
            lower_ok = math.isfinite(spec.lower)
            upper_ok = math.isfinite(spec.upper)
            if lower_ok and upper_ok:
                values[spec.name] = 0.5 * (spec.lower + spec.upper)
            elif lower_ok:
                values[spec.name] = spec.lower + 1.0
            elif upper_ok:
                values[spec.name] = spec.upper - 1.0
            else:
                values[spec.name] = 0.0
        return ParameterVector(self.space, values)

    def realize(self, theta: ParameterVector) -> ParameterVector:
        """Run the model once at ``theta`` and report its parameters.

        Returns the parameters the model actually realized, in canonical
        order. The estimation driver calls this on the final estimate so
        the reported names and order come from the model rather than from
        the optimizer vector.
        """
        return ParameterVector(self.space, theta.to_dict())

    def coordinate_system(self, overrides: Optional[Mapping[str, Transform]] = None) -> CoordinateSystem:
        """CoordinateSystem for this model: TRANSFORMS plus ``overrides``."""
        transforms = dict(type(self).TRANSFORMS)
        transforms.update(overrides or {})
        return CoordinateSystem(self.space, transforms)

    def _overrides(self, name: str) -> bool:
        return getattr(type(self), name) is not getattr(LogDensityModel, name)


@dataclass(frozen=True)
class LogDensity:
    """Log-density evaluator for one model and one estimation mode.

    MLE evaluates the log-likelihood; MAP evaluates log-likelihood plus
    log-prior. All methods take constrained ParameterVectors.

    Attributes:
        model: The model being evaluated (referenced, not owned)
        mode: Which density to evaluate
    """
    model: LogDensityModel
    mode: EstimationMode

    @property
    def includes_prior(self) -> bool:
        return self.mode is EstimationMode.MAP and self.model._overrides('log_prior')

    @property
    def has_gradient(self) -> bool:
        """True when every term has an analytic gradient."""
        if not self.model._overrides('grad_log_likelihood'):
            return False
        return not self.includes_prior or self.model._overrides('grad_log_prior')

    def _check(self, theta: ParameterVector) -> None:
        if theta.linked:
            raise ValueError("LogDensity expects constrained parameters, got an unconstrained vector")

    def log_density(self, theta: ParameterVector) -> float:
        """Log-likelihood (MLE) or joint log-density (MAP) at ``theta``."""
        self._check(theta)
        value = float(self.model.log_likelihood(theta))
        if self.includes_prior:
            value += float(self.model.log_prior(theta))
        return value

    def gradient(self, theta: ParameterVector) -> np.ndarray:
        """Gradient of ``log_density`` with respect to constrained values.

        Terms without an analytic gradient are differenced numerically in
        constrained space.
        """
        self._check(theta)
        grad = self._term_gradient(theta, self.model.grad_log_likelihood, self.model.log_likelihood)
        if self.includes_prior:
            grad = grad + self._term_gradient(theta, self.model.grad_log_prior, self.model.log_prior)
        return grad

    def hessian(self, theta: ParameterVector) -> Optional[np.ndarray]:
        """Analytic Hessian of ``log_density``, or None if any term lacks one."""
        self._check(theta)
        hess = self.model.hessian_log_likelihood(theta)
        if hess is None:
            return None
        hess = np.asarray(hess, dtype=float)
        if self.includes_prior:
            prior_hess = self.model.hessian_log_prior(theta)
            if prior_hess is None:
                return None
            hess = hess + np.asarray(prior_hess, dtype=float)
        return hess

    def _term_gradient(self, theta, analytic, value_fn) -> np.ndarray:
        grad = analytic(theta)
        if grad is not None:
            grad = np.asarray(grad, dtype=float).reshape(-1)
            if grad.shape[0] != len(theta):
                raise ValueError(f"Expected gradient of length {len(theta)}, got {grad.shape[0]}")
            return grad

        logger.debug(f"No analytic {analytic.__name__}; using finite differences")
        space = theta.space
        return finite_difference_gradient(
            lambda x: float(value_fn(ParameterVector.from_array(space, x))),
            theta.to_array(),
            bounds=space.bounds(),
        )
