"""Core parameter types for mode estimation.

This module implements the fundamental types for parameter management:
- ParameterSpec: Specification of a single continuous parameter with bounds
- ParameterSpace: Ordered set of parameter specifications (canonical order)
- ParameterVector: Immutable assignment of values, tagged with its coordinate
  state (constrained/"unlinked" or unconstrained/"linked")

All types are immutable; every transform step produces a new vector.
"""

from dataclasses import dataclass, field
from typing import Dict, List, Mapping, Any, Tuple, Iterator
from types import MappingProxyType
import math

import numpy as np


@dataclass(frozen=True)
class ParameterSpec:
    """Specification for a single continuous parameter.

    Bounds describe the parameter's natural (constrained) domain. Either
    bound may be infinite.

    Attributes:
        name: Parameter identifier
        lower: Lower bound of the natural domain (inclusive)
        upper: Upper bound of the natural domain (inclusive)
        doc: Human-readable description
    """
    name: str
    lower: float = -math.inf
    upper: float = math.inf
    doc: str = ""

    def __post_init__(self):
        """Validate parameter specification."""
        if not self.name:
            raise ValueError("ParameterSpec name cannot be empty")
        if math.isnan(self.lower) or math.isnan(self.upper):
            raise ValueError(f"Parameter {self.name}: bounds cannot be NaN")
        if self.lower > self.upper:
            raise ValueError(f"Parameter {self.name}: lower ({self.lower}) > upper ({self.upper})")

        object.__setattr__(self, 'lower', float(self.lower))
        object.__setattr__(self, 'upper', float(self.upper))

    def validate_value(self, value: float) -> None:
        """Validate a constrained value against this specification.

        Args:
            value: The value to validate

        Raises:
            TypeError: If value is not numeric
            ValueError: If value is out of bounds or non-finite
        """
        if isinstance(value, bool) or not isinstance(value, (int, float, np.floating, np.integer)):
            raise TypeError(f"Parameter {self.name} requires numeric value, got {type(value).__name__}")

        if not math.isfinite(value):
            raise ValueError(f"Parameter {self.name} must be finite, got {value}")

        if not (self.lower <= value <= self.upper):
            raise ValueError(f"Parameter {self.name}={value} outside bounds [{self.lower}, {self.upper}]")


@dataclass(frozen=True)
class ParameterSpace:
    """Ordered specification of a model's parameters.

    The order of ``specs`` is the canonical parameter order: it is shared by
    constrained estimates, unconstrained optimizer vectors and the axes of
    the information matrix.

    Attributes:
        specs: Parameter specifications in canonical order
    """
    specs: Tuple[ParameterSpec, ...] = field(default_factory=tuple)

    def __post_init__(self):
        """Validate space and build lookup structures."""
        names = [spec.name for spec in self.specs]
        if len(names) != len(set(names)):
            duplicates = [n for n in names if names.count(n) > 1]
            raise ValueError(f"Duplicate parameter names: {set(duplicates)}")

        spec_dict = {spec.name: spec for spec in self.specs}
        object.__setattr__(self, '_spec_dict', MappingProxyType(spec_dict))
        object.__setattr__(self, 'specs', tuple(self.specs))

    def names(self) -> List[str]:
        """Get ordered list of parameter names."""
        return [spec.name for spec in self.specs]

    def get_spec(self, name: str) -> ParameterSpec:
        """Get specification for a parameter.

        Raises:
            KeyError: If parameter not in space
        """
        if name not in self._spec_dict:
            raise KeyError(f"Unknown parameter: {name}. Available: {sorted(self._spec_dict.keys())}")
        return self._spec_dict[name]

    def bounds(self) -> np.ndarray:
        """Natural-domain bounds as a (dim, 2) array of [lower, upper]."""
        return np.array([(spec.lower, spec.upper) for spec in self.specs], dtype=float).reshape(-1, 2)

    def __contains__(self, name: str) -> bool:
        return name in self._spec_dict

    def __len__(self) -> int:
        return len(self.specs)

    def to_dict(self) -> Dict[str, Any]:
        """Export parameter space as serializable dictionary."""
        return {
            "parameters": [
                {
                    "name": spec.name,
                    "lower": spec.lower,
                    "upper": spec.upper,
                    "doc": spec.doc,
                }
                for spec in self.specs
            ]
        }


@dataclass(frozen=True)
class ParameterVector:
    """Immutable, complete assignment of parameter values.

    A ParameterVector is either constrained (``linked=False``: values in the
    model's natural domain, validated against the spec bounds) or
    unconstrained (``linked=True``: any finite reals, as seen by the
    optimizer). Exactly one state holds; CoordinateSystem toggles it by
    constructing a new vector.

    Values are always stored in the space's canonical order, whatever order
    the input mapping used.

    Attributes:
        space: The parameter space this vector belongs to
        values: Complete mapping of parameter names to values
        linked: True when values are in unconstrained coordinates
    """
    space: ParameterSpace
    values: Mapping[str, float]
    linked: bool = False

    def __post_init__(self):
        """Validate completeness, canonicalize order and freeze values."""
        required = set(self.space.names())
        provided = set(self.values.keys())

        extra = provided - required
        if extra:
            raise ValueError(f"Unknown parameters: {sorted(extra)}. Available: {sorted(required)}")

        missing = required - provided
        if missing:
            raise ValueError(f"Missing required parameters: {sorted(missing)}")

        ordered = {}
        for name in self.space.names():
            value = self.values[name]
            if self.linked:
                if isinstance(value, bool) or not np.isscalar(value):
                    raise TypeError(f"Parameter {name} requires numeric value, got {type(value).__name__}")
                if not math.isfinite(value):
                    raise ValueError(f"Unconstrained value for {name} must be finite, got {value}")
            else:
                try:
                    self.space.get_spec(name).validate_value(value)
                except (TypeError, ValueError) as e:
                    raise ValueError(f"Validation failed for {name}: {e}") from e
            ordered[name] = float(value)

        object.__setattr__(self, 'values', MappingProxyType(ordered))
        object.__setattr__(self, 'linked', bool(self.linked))

    @property
    def names(self) -> Tuple[str, ...]:
        """Parameter names in canonical order."""
        return tuple(self.values.keys())

    def __getitem__(self, name: str) -> float:
        if name not in self.values:
            raise KeyError(f"Parameter {name} not in vector. Available: {sorted(self.values.keys())}")
        return self.values[name]

    def __iter__(self) -> Iterator[Tuple[str, float]]:
        """Iterate (name, value) pairs in canonical order."""
        return iter(self.values.items())

    def __len__(self) -> int:
        return len(self.values)

    def to_array(self) -> np.ndarray:
        """Values as a float array in canonical order."""
        return np.fromiter(self.values.values(), dtype=float, count=len(self.values))

    def to_dict(self) -> Dict[str, float]:
        """Export values as regular dict (for serialization)."""
        return dict(self.values)

    def with_updates(self, **updates: float) -> 'ParameterVector':
        """Create new vector with updated values, in the same coordinate state."""
        new_values = dict(self.values)
        new_values.update(updates)
        return ParameterVector(self.space, new_values, linked=self.linked)

    @classmethod
    def from_array(cls, space: ParameterSpace, array: Any, linked: bool = False) -> 'ParameterVector':
        """Build a vector from values in canonical order.

        Raises:
            ValueError: If the array length differs from the space dimension
        """
        arr = np.asarray(array, dtype=float).reshape(-1)
        if arr.shape[0] != len(space):
            raise ValueError(f"Expected vector of length {len(space)}, got {arr.shape[0]}")
        return cls(space, dict(zip(space.names(), arr.tolist())), linked=linked)

    def __repr__(self) -> str:
        """Compact representation for debugging."""
        items = [f"{k}={v:.6g}" for k, v in self.values.items()]
        state = "linked" if self.linked else "constrained"
        return f"ParameterVector({', '.join(items[:4])}{', ...' if len(items) > 4 else ''}; {state})"
