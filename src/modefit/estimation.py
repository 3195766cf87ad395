"""Mode estimation driver.

``estimate`` runs the whole pipeline for one model:

1. resolve the starting point and map it to unconstrained space
2. build the ObjectiveAdapter for the configured mode
3. minimize it with the optimizer
4. map the minimizer back, let the model realize the final parameters
5. package everything into an immutable ModeResult

Non-convergence is logged as a warning and the last iterate is returned.
Errors raised by transforms, the model or the optimizer propagate
unchanged.
"""

import logging
from typing import Any, Mapping, Optional, Tuple

import numpy as np

from .config import EstimationConfig, EstimationMode, InitValues
from .exceptions import InvalidInputError, ModeFitError
from .model import LogDensityModel
from .objective import ObjectiveAdapter
from .optimizer import Optimizer, ScipyOptimizer
from .parameters import CoordinateSystem, ParameterVector
from .result import ModeResult

logger = logging.getLogger(__name__)


def _resolve_init(model: LogDensityModel, init: Optional[InitValues]) -> ParameterVector:
    """Turn configured initial values into a constrained ParameterVector.

    Raises:
        InvalidInputError: If the values do not name exactly the model's
            parameters, or are out of bounds
    """
    space = model.space
    if init is None:
        init = model.initial_values()

    if isinstance(init, ParameterVector):
        if init.linked:
            raise InvalidInputError("Initial values must be in constrained space")
        init = init.to_dict()
    elif not isinstance(init, Mapping):
        raise InvalidInputError(
            f"Initial values must be a mapping or ParameterVector, got {type(init).__name__}"
        )

    expected = set(space.names())
    provided = set(init.keys())
    if provided != expected:
        raise InvalidInputError(
            f"Initial values must name exactly the model parameters. "
            f"Missing: {sorted(expected - provided)}, unknown: {sorted(provided - expected)}"
        )

    try:
        return ParameterVector(space, dict(init))
    except (TypeError, ValueError) as e:
        raise InvalidInputError(f"Invalid initial values: {e}") from e


def build_objective(
    model: LogDensityModel,
    config: Optional[EstimationConfig] = None,
) -> Tuple[ObjectiveAdapter, np.ndarray]:
    """Build the linked objective and the unconstrained starting vector.

    This is the setup half of ``estimate``, for callers that want to drive
    their own optimizer.

    Args:
        model: Model to estimate
        config: Estimation settings; defaults to ``EstimationConfig()``

    Returns:
        Tuple of (objective in linked state, z0)

    Raises:
        InvalidInputError: If initial values are invalid or lie on the
            boundary of their transform's domain
    """
    config = config if config is not None else EstimationConfig()
    coordinates: CoordinateSystem = model.coordinate_system(config.transforms)

    theta0 = _resolve_init(model, config.init_values)
    try:
        z0 = coordinates.to_unconstrained(theta0).to_array()
    except ValueError as e:
        raise InvalidInputError(f"Initial values cannot be transformed: {e}") from e

    objective = ObjectiveAdapter(model, config.mode, coordinates, linked=True)
    logger.debug(f"Built {objective!r} with z0={z0.tolist()}")
    return objective, z0


def estimate(
    model: LogDensityModel,
    config: Optional[EstimationConfig] = None,
    *,
    optimizer: Optional[Optimizer] = None,
) -> ModeResult:
    """Find the mode of a model's likelihood (MLE) or posterior (MAP).

    Args:
        model: Model to estimate
        config: Estimation settings; defaults to MLE from the model's
            initial values with L-BFGS-B
        optimizer: Minimizer to use; defaults to ScipyOptimizer

    Returns:
        ModeResult with constrained estimate, diagnostics and the maximized
        log-density

    Raises:
        InvalidInputError: If initial values, method or options are invalid
        ModeFitError: If the model realizes a different parameter set

    Example:
        >>> result = estimate(model, EstimationConfig.map(method="BFGS"))
        >>> result.values["mu"]
    """
    config = config if config is not None else EstimationConfig()
    optimizer = optimizer if optimizer is not None else ScipyOptimizer()

    objective, z0 = build_objective(model, config)
    logger.info(
        f"Starting {config.mode.value.upper()} estimation of {type(model).__name__} "
        f"({objective.dim} parameters, method={config.method})"
    )

    diagnostics = optimizer.minimize(objective, z0, config.method, config.options)
    if not diagnostics.converged:
        logger.warning(
            f"Optimizer did not converge ({diagnostics.method}, status={diagnostics.status}): "
            f"{diagnostics.message}. Returning the last iterate."
        )

    theta_hat = objective.coordinates.vector_to_constrained(diagnostics.minimizer)
    values = _realize(model, theta_hat)
    lp = -diagnostics.minimum

    logger.info(
        f"Finished {config.mode.value.upper()} estimation: lp={lp:.6g}, "
        f"converged={diagnostics.converged}, iterations={diagnostics.n_iterations}"
    )
    return ModeResult(
        values=values,
        optimizer_diagnostics=diagnostics,
        log_density_at_mode=lp,
        objective=objective,
        mode=config.mode,
    )


def _realize(model: LogDensityModel, theta: ParameterVector) -> ParameterVector:
    realized = model.realize(theta)
    if isinstance(realized, Mapping):
        realized = ParameterVector(model.space, dict(realized))
    if not isinstance(realized, ParameterVector):
        raise ModeFitError(f"realize() must return a ParameterVector, got {type(realized).__name__}")

    expected = tuple(model.space.names())
    if realized.names != expected:
        raise ModeFitError(f"realize() returned parameters {list(realized.names)}, expected {list(expected)}")
    if realized.space != model.space:
        raise ModeFitError("realize() returned a ParameterVector from a different ParameterSpace")
    if realized.linked:
        raise ModeFitError("realize() must return constrained parameters")
    return realized


def maximum_likelihood(model: LogDensityModel, **kwargs: Any) -> ModeResult:
    """Shorthand for ``estimate(model, EstimationConfig.mle(**kwargs))``.

    ``optimizer`` may be passed as a keyword and is forwarded to estimate.
    """
    optimizer = kwargs.pop("optimizer", None)
    return estimate(model, EstimationConfig(mode=EstimationMode.MLE, **kwargs), optimizer=optimizer)


def maximum_a_posteriori(model: LogDensityModel, **kwargs: Any) -> ModeResult:
    """Shorthand for ``estimate(model, EstimationConfig.map(**kwargs))``."""
    optimizer = kwargs.pop("optimizer", None)
    return estimate(model, EstimationConfig(mode=EstimationMode.MAP, **kwargs), optimizer=optimizer)
