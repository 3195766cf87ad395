"""Estimation configuration.

A single immutable EstimationConfig replaces per-arity entry points: the
estimation mode, initial values, optimizer method and termination options
all live in one structure with defaults. Project-wide defaults can be read
from the ``[tool.modefit]`` table of a pyproject.toml:

    [tool.modefit]
    mode = "map"
    method = "BFGS"

    [tool.modefit.options]
    max_iterations = 500
    g_tol = 1e-6
"""

import enum
import logging
import math
import tomllib
from dataclasses import dataclass, field, fields, replace
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Union

from .constants import DEFAULT_METHOD
from .exceptions import InvalidInputError
from .parameters import ParameterVector, Transform

logger = logging.getLogger(__name__)


class EstimationMode(enum.Enum):
    """Which density the mode estimate maximizes.

    MLE maximizes the log-likelihood alone; MAP maximizes log-likelihood
    plus log-prior. This is the only difference between the two objectives.
    """
    MLE = "mle"
    MAP = "map"

    @classmethod
    def parse(cls, value: Union["EstimationMode", str]) -> "EstimationMode":
        """Accept an EstimationMode or a case-insensitive name ("mle"/"map").

        Raises:
            InvalidInputError: If value names no mode
        """
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            try:
                return cls(value.strip().lower())
            except ValueError:
                pass
        raise InvalidInputError(f"Unknown estimation mode {value!r}; expected 'mle' or 'map'")


@dataclass(frozen=True)
class OptimizerOptions:
    """Termination criteria forwarded to the optimizer.

    ``None`` leaves the optimizer's own default in place.

    Attributes:
        max_iterations: Maximum number of optimizer iterations
        g_tol: Gradient-norm tolerance
        f_tol: Objective-value change tolerance
        x_tol: Step-size tolerance (derivative-free methods)
    """
    max_iterations: Optional[int] = 1000
    g_tol: Optional[float] = 1e-8
    f_tol: Optional[float] = None
    x_tol: Optional[float] = None

    def __post_init__(self):
        """Validate option values."""
        if self.max_iterations is not None:
            if isinstance(self.max_iterations, bool) or int(self.max_iterations) != self.max_iterations:
                raise InvalidInputError(f"max_iterations must be an integer, got {self.max_iterations!r}")
            if self.max_iterations < 1:
                raise InvalidInputError(f"max_iterations must be >= 1, got {self.max_iterations}")
            object.__setattr__(self, 'max_iterations', int(self.max_iterations))

        for name in ("g_tol", "f_tol", "x_tol"):
            value = getattr(self, name)
            if value is None:
                continue
            value = float(value)
            if not math.isfinite(value) or value <= 0.0:
                raise InvalidInputError(f"{name} must be finite and > 0, got {value}")
            object.__setattr__(self, name, value)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "OptimizerOptions":
        """Build options from a mapping, rejecting unknown keys."""
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(data) - known)
        if unknown:
            raise InvalidInputError(f"Unknown optimizer options: {unknown}. Available: {sorted(known)}")
        return cls(**dict(data))

    def to_dict(self) -> Dict[str, Any]:
        return {f.name: getattr(self, f.name) for f in fields(self)}


InitValues = Union[ParameterVector, Mapping[str, float]]


@dataclass(frozen=True)
class EstimationConfig:
    """Everything that configures one mode-estimation run.

    Attributes:
        mode: MLE or MAP
        init_values: Constrained starting point; None uses the model's
            ``initial_values()``
        method: Optimizer method name (default quasi-Newton L-BFGS-B)
        options: Termination criteria for the optimizer
        transforms: Per-parameter transform overrides, on top of the
            model's own TRANSFORMS
    """
    mode: EstimationMode = EstimationMode.MLE
    init_values: Optional[InitValues] = None
    method: str = DEFAULT_METHOD
    options: OptimizerOptions = field(default_factory=OptimizerOptions)
    transforms: Mapping[str, Transform] = field(default_factory=dict)

    def __post_init__(self):
        object.__setattr__(self, 'mode', EstimationMode.parse(self.mode))
        if isinstance(self.options, Mapping):
            object.__setattr__(self, 'options', OptimizerOptions.from_dict(self.options))
        elif not isinstance(self.options, OptimizerOptions):
            raise InvalidInputError(f"options must be OptimizerOptions, got {type(self.options).__name__}")
        if not isinstance(self.method, str) or not self.method:
            raise InvalidInputError(f"method must be a non-empty string, got {self.method!r}")
        object.__setattr__(self, 'transforms', dict(self.transforms))

    @classmethod
    def mle(cls, **kwargs: Any) -> "EstimationConfig":
        """Configuration for maximum-likelihood estimation."""
        return cls(mode=EstimationMode.MLE, **kwargs)

    @classmethod
    def map(cls, **kwargs: Any) -> "EstimationConfig":
        """Configuration for maximum-a-posteriori estimation."""
        return cls(mode=EstimationMode.MAP, **kwargs)

    def with_updates(self, **updates: Any) -> "EstimationConfig":
        """Create new config with updated fields, leaving this one unchanged."""
        return replace(self, **updates)

    def to_dict(self) -> Dict[str, Any]:
        """Export the serializable part of the configuration."""
        init = self.init_values
        if isinstance(init, ParameterVector):
            init = init.to_dict()
        return {
            "mode": self.mode.value,
            "init_values": dict(init) if init is not None else None,
            "method": self.method,
            "options": self.options.to_dict(),
            "transforms": {name: type(t).__name__ for name, t in self.transforms.items()},
        }


_CONFIG_KEYS = frozenset({"mode", "method", "options"})


def read_pyproject(path: Optional[Path] = None) -> Dict[str, Any]:
    """Read the [tool.modefit] table of a pyproject.toml.

    Args:
        path: File to read; defaults to ./pyproject.toml

    Returns:
        The [tool.modefit] section, or empty dict if not present

    Raises:
        FileNotFoundError: If the file doesn't exist
        tomllib.TOMLDecodeError: If TOML is malformed
    """
    pyproject_path = Path(path) if path is not None else Path.cwd() / "pyproject.toml"
    if not pyproject_path.exists():
        raise FileNotFoundError(f"{pyproject_path} not found")

    with open(pyproject_path, "rb") as f:
        data = tomllib.load(f)

    return data.get("tool", {}).get("modefit", {})


def load_config(path: Optional[Path] = None) -> EstimationConfig:
    """Build an EstimationConfig from pyproject.toml defaults.

    Keys not present fall back to EstimationConfig defaults.

    Raises:
        FileNotFoundError: If the file doesn't exist
        InvalidInputError: If the table holds unknown keys or invalid values
    """
    section = read_pyproject(path)
    unknown = sorted(set(section) - _CONFIG_KEYS)
    if unknown:
        raise InvalidInputError(f"Unknown [tool.modefit] keys: {unknown}. Available: {sorted(_CONFIG_KEYS)}")

    kwargs: Dict[str, Any] = {}
    if "mode" in section:
        kwargs["mode"] = EstimationMode.parse(section["mode"])
    if "method" in section:
        kwargs["method"] = str(section["method"])
    if "options" in section:
        kwargs["options"] = OptimizerOptions.from_dict(section["options"])

    config = EstimationConfig(**kwargs)
    logger.debug(f"Loaded estimation config from pyproject: {config.to_dict()}")
    return config
