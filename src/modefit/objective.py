"""Objective adapter: the negated log-density as an optimizer objective.

The ObjectiveAdapter turns a model plus an estimation mode into a function
of a flat float vector. In the linked state the vector is in unconstrained
coordinates and is mapped through the CoordinateSystem before the model is
evaluated; in the unlinked state it is read directly as constrained values.

The log-Jacobian of the transform is NOT added to the objective. Its minimum
is therefore the mode of the density in the model's natural parameter space,
whatever transforms are used to reach it.
"""

import logging
import math
from contextlib import contextmanager
from dataclasses import dataclass, replace
from typing import Iterator, Optional, Tuple

import numpy as np

from .config import EstimationMode
from .derivatives import finite_difference_gradient
from .model import LogDensity, LogDensityModel
from .parameters import CoordinateSystem, ParameterVector

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ObjectiveAdapter:
    """Negated log-density of a model, as seen by an optimizer.

    Attributes:
        model: Model being evaluated
        mode: MLE (negated log-likelihood) or MAP (negated joint density)
        coordinates: CoordinateSystem used when ``linked`` is True
        linked: Whether input vectors are unconstrained coordinates
    """
    model: LogDensityModel
    mode: EstimationMode
    coordinates: CoordinateSystem
    linked: bool = True

    def __post_init__(self):
        object.__setattr__(self, 'mode', EstimationMode.parse(self.mode))
        if self.coordinates.space != self.model.space:
            raise ValueError("CoordinateSystem does not match the model's parameter space")

    @property
    def log_density(self) -> LogDensity:
        """Evaluator for the model's log-density in this mode."""
        return LogDensity(self.model, self.mode)

    @property
    def dim(self) -> int:
        return self.coordinates.dim

    @property
    def param_names(self) -> Tuple[str, ...]:
        return self.coordinates.param_names

    @property
    def has_gradient(self) -> bool:
        """True when gradients come from the model rather than differencing."""
        return self.log_density.has_gradient

    def to_constrained(self, x: np.ndarray) -> ParameterVector:
        """Interpret an input vector as constrained parameters."""
        if self.linked:
            return self.coordinates.vector_to_constrained(x)
        return ParameterVector.from_array(self.coordinates.space, x)

    def __call__(self, x: np.ndarray) -> float:
        """Objective value at ``x``; +inf wherever the log-density is not finite."""
        value = -self.log_density.log_density(self.to_constrained(x))
        if not np.isfinite(value):
            logger.debug(f"Non-finite log-density at x={np.asarray(x).tolist()}; objective is +inf")
            return math.inf
        return value

    def gradient(self, x: np.ndarray) -> np.ndarray:
        """Objective gradient at ``x`` in the adapter's own coordinates."""
        x = np.asarray(x, dtype=float).reshape(-1)
        density = self.log_density

        if self.linked and not density.has_gradient:
            # Differencing in unconstrained space never leaves the domain
            return finite_difference_gradient(self, x)

        theta = self.to_constrained(x)
        grad = -density.gradient(theta)
        if self.linked:
            grad = grad * self.coordinates.jacobian_diagonal(x)
        return grad

    def evaluate(self, x: np.ndarray) -> Tuple[float, np.ndarray]:
        """Objective value and gradient at ``x``.

        Returns:
            Tuple of (value, gradient)
        """
        value = self(x)
        if math.isinf(value):
            return value, np.zeros(self.dim)
        return value, self.gradient(x)

    def hessian(self, x: np.ndarray) -> Optional[np.ndarray]:
        """Analytic Hessian of the objective at ``x``, or None.

        Only available in the unlinked state, where it is the negated
        Hessian of the log-density with respect to constrained values.
        """
        if self.linked:
            return None
        hess = self.log_density.hessian(self.to_constrained(x))
        if hess is None:
            return None
        return -hess

    def with_linked(self, linked: bool) -> "ObjectiveAdapter":
        """Return a copy of this adapter in the requested coordinate state."""
        return replace(self, linked=bool(linked))

    def __repr__(self) -> str:
        state = "linked" if self.linked else "constrained"
        return f"ObjectiveAdapter({type(self.model).__name__}, mode={self.mode.value}, {state})"


@contextmanager
def constrained_view(objective: ObjectiveAdapter) -> Iterator[ObjectiveAdapter]:
    """Temporarily evaluate ``objective`` in constrained coordinates.

    Yields an unlinked copy of the adapter. The caller's adapter is never
    modified, so it keeps its coordinate state on every exit path.

    Example:
        >>> with constrained_view(result.objective) as view:
        ...     hess = view.hessian(result.values.to_array())
    """
    logger.debug(f"Entering constrained view of {objective!r}")
    view = objective.with_linked(False)
    try:
        yield view
    finally:
        logger.debug(f"Leaving constrained view; objective linked={objective.linked}")
