"""Public API for modefit.

This module provides the complete public API for mode estimation: the
model contract, parameter management, configuration, the estimation driver
and the statistical summary.
"""

# Core modeling
from .model import LogDensityModel, LogDensity

# Parameters
from .parameters import (
    ParameterSpec,
    ParameterSpace,
    ParameterVector,
    CoordinateSystem,
    # Transforms
    Transform,
    Identity,
    LogTransform,
    UpperLogTransform,
    LogitTransform,
    IntervalLogit,
    AffineSqueezedLogit,
    default_transform,
)

# Configuration
from .config import (
    EstimationMode,
    OptimizerOptions,
    EstimationConfig,
    read_pyproject,
    load_config,
)

# Objective and optimizer
from .objective import ObjectiveAdapter, constrained_view
from .optimizer import Optimizer, OptimizerDiagnostics, ScipyOptimizer

# Estimation
from .result import ModeResult
from .estimation import (
    estimate,
    build_objective,
    maximum_likelihood,
    maximum_a_posteriori,
)

# Statistics
from .statistics import (
    NamedMatrix,
    information_matrix,
    covariance,
    std_errors,
    coefficient_table,
    log_likelihood,
    point_estimate,
    parameter_names,
)

# Errors
from .exceptions import (
    ModeFitError,
    InvalidInputError,
    TransformStateError,
    SingularMatrixError,
)

# Version
try:
    from importlib.metadata import version
    __version__ = version("modefit")
except Exception:
    __version__ = "0.1.0"

# Public API Export List
__all__ = [
    # Core
    "LogDensityModel",
    "LogDensity",

    # Parameters
    "ParameterSpec",
    "ParameterSpace",
    "ParameterVector",
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

    # Configuration
    "EstimationMode",
    "OptimizerOptions",
    "EstimationConfig",
    "read_pyproject",
    "load_config",

    # Objective and optimizer
    "ObjectiveAdapter",
    "constrained_view",
    "Optimizer",
    "OptimizerDiagnostics",
    "ScipyOptimizer",

    # Estimation
    "ModeResult",
    "estimate",
    "build_objective",
    "maximum_likelihood",
    "maximum_a_posteriori",

    # Statistics
    "NamedMatrix",
    "information_matrix",
    "covariance",
    "std_errors",
    "coefficient_table",
    "log_likelihood",
    "point_estimate",
    "parameter_names",

    # Errors
    "ModeFitError",
    "InvalidInputError",
    "TransformStateError",
    "SingularMatrixError",

    # Version
    "__version__",
]
