"""CoordinateSystem: the map between constrained and unconstrained space.

This module implements the CoordinateSystem abstraction that packages a
ParameterSpace together with one Transform per parameter, and defines the
bidirectional mappings:

- to_unconstrained: natural values → optimizer coordinates (link)
- to_constrained: optimizer coordinates → natural values (invlink)

Both maps preserve parameter names and canonical order and return new
ParameterVector instances; the input vector is never modified. The
coordinate system only calls transforms, it never inspects what kind of
constraint a transform encodes.
"""

from dataclasses import dataclass, field
from typing import Mapping, Tuple
from types import MappingProxyType
import math

import numpy as np

from ..exceptions import TransformStateError
from .transforms import Transform, default_transform
from .types import ParameterSpace, ParameterVector


@dataclass(frozen=True)
class CoordinateSystem:
    """Packages a parameter space with per-parameter transforms.

    The unconstrained vector z has length ``len(space)`` and follows the
    space's canonical ordering.

    Attributes:
        space: ParameterSpace defining names, order and natural bounds
        transforms: Mapping from parameter names to Transform instances;
            parameters without an entry get ``default_transform(spec)``

    Example:
        >>> space = ParameterSpace((ParameterSpec("mu"), ParameterSpec("sigma", 0.0)))
        >>> coords = CoordinateSystem(space)
        >>> theta = ParameterVector(space, {"mu": 1.0, "sigma": 2.0})
        >>> z = coords.to_unconstrained(theta)  # sigma → log(2.0)
        >>> coords.to_constrained(z)["sigma"]
        2.0
    """
    space: ParameterSpace
    transforms: Mapping[str, Transform] = field(default_factory=dict)

    def __post_init__(self):
        """Validate transforms and resolve defaults for every parameter."""
        unknown = sorted(set(self.transforms.keys()) - set(self.space.names()))
        if unknown:
            raise ValueError(
                f"Transforms specified for unknown parameters: {unknown}. "
                f"Parameters: {self.space.names()}"
            )

        for name, transform in self.transforms.items():
            if not (hasattr(transform, 'forward') and
                    hasattr(transform, 'backward') and
                    hasattr(transform, 'derivative')):
                raise TypeError(
                    f"Transform for '{name}' must implement Transform protocol "
                    f"(forward, backward, derivative methods)"
                )

        resolved = {
            name: self.transforms.get(name) or default_transform(self.space.get_spec(name))
            for name in self.space.names()
        }
        object.__setattr__(self, 'transforms', MappingProxyType(resolved))

    def _check_space(self, params: ParameterVector) -> None:
        if params.space != self.space:
            raise ValueError("ParameterVector belongs to a different parameter space")

    def to_unconstrained(self, params: ParameterVector) -> ParameterVector:
        """Link: map constrained values into optimizer coordinates.

        Raises:
            TransformStateError: If params is already unconstrained
            ValueError: If a value lies outside its transform's domain
        """
        self._check_space(params)
        if params.linked:
            raise TransformStateError("ParameterVector is already in unconstrained space")

        z = {name: self.transforms[name].forward(value) for name, value in params}
        return ParameterVector(self.space, z, linked=True)

    def to_constrained(self, params: ParameterVector) -> ParameterVector:
        """Invlink: map optimizer coordinates back to natural values.

        Raises:
            TransformStateError: If params is already constrained
        """
        self._check_space(params)
        if not params.linked:
            raise TransformStateError("ParameterVector is already in constrained space")

        theta = {name: self.transforms[name].backward(value) for name, value in params}
        return ParameterVector(self.space, theta, linked=False)

    def toggle(self, params: ParameterVector) -> ParameterVector:
        """Apply whichever map flips the vector's coordinate state."""
        if params.linked:
            return self.to_constrained(params)
        return self.to_unconstrained(params)

    def vector_to_constrained(self, z: np.ndarray) -> ParameterVector:
        """Map a raw optimizer vector straight to a constrained ParameterVector.

        Raises:
            ValueError: If z has wrong dimensionality
        """
        z = np.asarray(z, dtype=float).reshape(-1)
        if z.shape[0] != self.dim:
            raise ValueError(f"Expected z vector of length {self.dim}, got {z.shape[0]}")
        theta = {
            name: self.transforms[name].backward(float(z_i))
            for name, z_i in zip(self.space.names(), z)
        }
        return ParameterVector(self.space, theta, linked=False)

    def jacobian_diagonal(self, z: np.ndarray) -> np.ndarray:
        """Per-coordinate slope dθ_i/dz_i of the backward map.

        Transforms act coordinate-wise, so the Jacobian is diagonal.
        """
        z = np.asarray(z, dtype=float).reshape(-1)
        return np.array(
            [self.transforms[name].derivative(float(z_i)) for name, z_i in zip(self.space.names(), z)],
            dtype=float,
        )

    def log_abs_det_jacobian(self, z: np.ndarray) -> float:
        """log |det dθ/dz| at z (−inf where a transform saturates)."""
        with np.errstate(divide='ignore'):
            return float(np.sum(np.log(np.abs(self.jacobian_diagonal(z)))))

    def bounds_transformed(self) -> np.ndarray:
        """Get parameter bounds in unconstrained space.

        Returns:
            (dim, 2) array of [lower, upper] bounds; ±inf where unbounded
        """
        bounds = np.zeros((self.dim, 2))
        for i, spec in enumerate(self.space.specs):
            transform = self.transforms[spec.name]
            if hasattr(transform, 'bounds'):
                bounds[i] = transform.bounds((spec.lower, spec.upper), transformed=True)
            else:
                bounds[i] = (-math.inf, math.inf)
        return bounds

    @property
    def dim(self) -> int:
        """Dimensionality of the unconstrained space."""
        return len(self.space)

    @property
    def param_names(self) -> Tuple[str, ...]:
        """Ordered parameter names (matches z vector dimensions)."""
        return tuple(self.space.names())

    def __repr__(self) -> str:
        """Compact representation for debugging."""
        preview = [f"{name}:{type(t).__name__}" for name, t in list(self.transforms.items())[:3]]
        if len(self.transforms) > 3:
            preview.append("...")
        return f"CoordinateSystem(dim={self.dim}, transforms={preview})"
