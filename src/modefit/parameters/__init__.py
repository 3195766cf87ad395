"""Parameter system for mode estimation.

This module provides the immutable parameter types and the coordinate
transforms connecting a model's natural parameter space to the
unconstrained space used by optimizers.
"""

from .types import (
    ParameterSpec,
    ParameterSpace,
    ParameterVector,
)
from .coordinates import CoordinateSystem
from .transforms import (
    Transform,
    Identity,
    LogTransform,
    UpperLogTransform,
    LogitTransform,
    IntervalLogit,
    AffineSqueezedLogit,
    default_transform,
)

__all__ = [
    # Types
    "ParameterSpec",
    "ParameterSpace",
    "ParameterVector",
    # Coordinates
    "CoordinateSystem",
    # Transforms
    "Transform",
    "Identity",
    "LogTransform",
    "UpperLogTransform",
    "LogitTransform",
    "IntervalLogit",
    "AffineSqueezedLogit",
    "default_transform",
]
