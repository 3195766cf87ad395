"""Transform system for optimization coordinates.

Transforms provide bijective mappings between a parameter's natural
(constrained) domain and the real line used by unconstrained optimizers.
They never change dimensionality, only the coordinate system.

Besides forward/backward maps each transform reports ``derivative(y)``, the
slope of the backward map. The objective adapter uses it to carry gradients
across the transform boundary via the chain rule.

Log transforms saturate at exp(709) rather than overflowing, so a diverging
optimizer run still maps back to finite natural values.
"""

import math
from typing import Protocol, Tuple
from dataclasses import dataclass

from .types import ParameterSpec

# exp() of anything larger overflows a float
_MAX_EXP_ARG = 709.0


def _saturating_exp(y: float) -> float:
    """exp(y), saturating at exp(709) instead of raising OverflowError."""
    return math.exp(min(y, _MAX_EXP_ARG))


def _sigmoid(y: float) -> float:
    """Numerically stable logistic function."""
    if y >= 0:
        return 1.0 / (1.0 + math.exp(-y))
    e = math.exp(y)
    return e / (1.0 + e)


class Transform(Protocol):
    """Protocol for parameter transforms.

    Transforms provide forward (natural → optimization) and
    backward (optimization → natural) mappings.
    """

    def forward(self, x: float) -> float:
        """Transform from natural space to optimization space.

        Raises:
            ValueError: If x is outside valid domain
        """
        ...

    def backward(self, y: float) -> float:
        """Transform from optimization space to natural space."""
        ...

    def derivative(self, y: float) -> float:
        """Slope d backward(y) / dy of the backward map."""
        ...

    def bounds(self, natural_bounds: Tuple[float, float], transformed: bool = False) -> Tuple[float, float]:
        """Get bounds in natural or transformed space."""
        ...


@dataclass(frozen=True)
class Identity:
    """Identity transform for unbounded parameters."""

    def forward(self, x: float) -> float:
        return float(x)

    def backward(self, y: float) -> float:
        return float(y)

    def derivative(self, y: float) -> float:
        return 1.0

    def bounds(self, natural_bounds: Tuple[float, float], transformed: bool = False) -> Tuple[float, float]:
        return natural_bounds


@dataclass(frozen=True)
class LogTransform:
    """Shifted logarithmic transform for parameters bounded below.

    Maps (lower, ∞) → (-∞, ∞) via y = log(x - lower).
    """
    lower: float = 0.0

    def forward(self, x: float) -> float:
        """Natural → log space."""
        if x <= self.lower:
            raise ValueError(f"LogTransform requires x > {self.lower}, got {x}")
        return math.log(x - self.lower)

    def backward(self, y: float) -> float:
        """Log space → natural."""
        return self.lower + _saturating_exp(y)

    def derivative(self, y: float) -> float:
        return _saturating_exp(y)

    def bounds(self, natural_bounds: Tuple[float, float], transformed: bool = False) -> Tuple[float, float]:
        """Transform bounds to/from log space."""
        min_val, max_val = natural_bounds
        if min_val < self.lower:
            raise ValueError(f"LogTransform requires bounds above {self.lower}, got [{min_val}, {max_val}]")

        if not transformed:
            return natural_bounds
        lo = -math.inf if min_val == self.lower else math.log(min_val - self.lower)
        hi = math.inf if math.isinf(max_val) else math.log(max_val - self.lower)
        return (lo, hi)


@dataclass(frozen=True)
class UpperLogTransform:
    """Reflected logarithmic transform for parameters bounded above.

    Maps (-∞, upper) → (-∞, ∞) via y = log(upper - x).
    """
    upper: float = 0.0

    def forward(self, x: float) -> float:
        if x >= self.upper:
            raise ValueError(f"UpperLogTransform requires x < {self.upper}, got {x}")
        return math.log(self.upper - x)

    def backward(self, y: float) -> float:
        return self.upper - _saturating_exp(y)

    def derivative(self, y: float) -> float:
        return -_saturating_exp(y)

    def bounds(self, natural_bounds: Tuple[float, float], transformed: bool = False) -> Tuple[float, float]:
        min_val, max_val = natural_bounds
        if max_val > self.upper:
            raise ValueError(f"UpperLogTransform requires bounds below {self.upper}, got [{min_val}, {max_val}]")

        if not transformed:
            return natural_bounds
        # Decreasing map: the natural upper bound becomes the transformed lower bound
        lo = -math.inf if max_val == self.upper else math.log(self.upper - max_val)
        hi = math.inf if math.isinf(min_val) else math.log(self.upper - min_val)
        return (lo, hi)


@dataclass(frozen=True)
class LogitTransform:
    """Logit transform for (0, 1) bounded parameters.

    Maps (0, 1) → (-∞, ∞). Undefined at exact 0 and 1; use
    AffineSqueezedLogit when the closed interval must be accepted.
    """

    def forward(self, x: float) -> float:
        """Natural (0,1) → unbounded."""
        if not (0.0 < x < 1.0):
            raise ValueError(f"LogitTransform requires 0 < x < 1, got {x}")
        return math.log(x / (1.0 - x))

    def backward(self, y: float) -> float:
        """Unbounded → natural (0,1)."""
        return _sigmoid(y)

    def derivative(self, y: float) -> float:
        s = _sigmoid(y)
        return s * (1.0 - s)

    def bounds(self, natural_bounds: Tuple[float, float], transformed: bool = False) -> Tuple[float, float]:
        min_val, max_val = natural_bounds
        if not (0.0 <= min_val < max_val <= 1.0):
            raise ValueError(f"LogitTransform requires bounds in [0,1], got [{min_val}, {max_val}]")

        if not transformed:
            return natural_bounds
        lo = -math.inf if min_val == 0.0 else self.forward(min_val)
        hi = math.inf if max_val == 1.0 else self.forward(max_val)
        return (lo, hi)


@dataclass(frozen=True)
class IntervalLogit:
    """Scaled logit transform for parameters on an open interval (lower, upper).

    Maps x to logit((x - lower) / (upper - lower)).
    """
    lower: float
    upper: float

    def __post_init__(self):
        if not (math.isfinite(self.lower) and math.isfinite(self.upper)):
            raise ValueError(f"IntervalLogit requires finite bounds, got ({self.lower}, {self.upper})")
        if not self.lower < self.upper:
            raise ValueError(f"IntervalLogit requires lower < upper, got ({self.lower}, {self.upper})")

    @property
    def width(self) -> float:
        return self.upper - self.lower

    def forward(self, x: float) -> float:
        if not (self.lower < x < self.upper):
            raise ValueError(f"IntervalLogit requires {self.lower} < x < {self.upper}, got {x}")
        u = (x - self.lower) / self.width
        return math.log(u / (1.0 - u))

    def backward(self, y: float) -> float:
        return self.lower + self.width * _sigmoid(y)

    def derivative(self, y: float) -> float:
        s = _sigmoid(y)
        return self.width * s * (1.0 - s)

    def bounds(self, natural_bounds: Tuple[float, float], transformed: bool = False) -> Tuple[float, float]:
        min_val, max_val = natural_bounds
        if not (self.lower <= min_val < max_val <= self.upper):
            raise ValueError(
                f"IntervalLogit requires bounds in [{self.lower}, {self.upper}], got [{min_val}, {max_val}]"
            )

        if not transformed:
            return natural_bounds
        lo = -math.inf if min_val == self.lower else self.forward(min_val)
        hi = math.inf if max_val == self.upper else self.forward(max_val)
        return (lo, hi)


@dataclass(frozen=True)
class AffineSqueezedLogit:
    """Robust logit transform for closed [0,1] parameters.

    Squeezes the domain slightly away from 0 and 1 using epsilon,
    then applies logit transform:
    1. Affine squeeze: x → eps + (1-2*eps)*x  (maps [0,1] → [eps, 1-eps])
    2. Logit: p → log(p/(1-p))

    Values exactly at 0 or 1 are accepted by ``forward``.
    """
    eps: float = 1e-6

    def __post_init__(self):
        if not (0 < self.eps < 0.5):
            raise ValueError(f"eps must be in (0, 0.5), got {self.eps}")

    def forward(self, x: float) -> float:
        """Natural [0,1] → unbounded for optimizer."""
        if not (0.0 <= x <= 1.0):
            raise ValueError(f"AffineSqueezedLogit requires 0≤x≤1, got {x}")

        p = self.eps + (1.0 - 2.0 * self.eps) * x
        return math.log(p / (1.0 - p))

    def backward(self, y: float) -> float:
        """Unbounded → natural [0,1]."""
        s = _sigmoid(y)
        x = (s - self.eps) / (1.0 - 2.0 * self.eps)

        # Outside the squeezed image the inverse leaves [0, 1]; clamp
        return max(0.0, min(1.0, x))

    def derivative(self, y: float) -> float:
        s = _sigmoid(y)
        x = (s - self.eps) / (1.0 - 2.0 * self.eps)
        if x <= 0.0 or x >= 1.0:
            return 0.0
        return s * (1.0 - s) / (1.0 - 2.0 * self.eps)

    def bounds(self, natural_bounds: Tuple[float, float], transformed: bool = False) -> Tuple[float, float]:
        min_val, max_val = natural_bounds
        if not (0.0 <= min_val < max_val <= 1.0):
            raise ValueError(f"AffineSqueezedLogit requires bounds in [0,1], got [{min_val}, {max_val}]")

        if not transformed:
            return natural_bounds
        return (self.forward(min_val), self.forward(max_val))


def default_transform(spec: ParameterSpec) -> Transform:
    """Choose a transform from a parameter's natural bounds.

    - unbounded            → Identity
    - (lower, ∞)           → LogTransform(lower)
    - (-∞, upper)          → UpperLogTransform(upper)
    - (0, 1)               → LogitTransform
    - (lower, upper)       → IntervalLogit(lower, upper)

    Args:
        spec: Parameter specification

    Returns:
        Transform whose image of the real line is the open natural domain
    """
    has_lower = math.isfinite(spec.lower)
    has_upper = math.isfinite(spec.upper)

    if has_lower and has_upper:
        if spec.lower == spec.upper:
            raise ValueError(f"Parameter {spec.name} has a degenerate domain [{spec.lower}, {spec.upper}]")
        if spec.lower == 0.0 and spec.upper == 1.0:
            return LogitTransform()
        return IntervalLogit(spec.lower, spec.upper)
    if has_lower:
        return LogTransform(spec.lower)
    if has_upper:
        return UpperLogTransform(spec.upper)
    return Identity()
