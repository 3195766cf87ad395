"""Error types raised by modefit.

All library errors derive from ModeFitError. The concrete classes also
inherit from the matching builtin (or numpy) exception so that callers
catching ``ValueError`` or ``numpy.linalg.LinAlgError`` keep working.

Non-convergence of the optimizer is deliberately NOT an exception: it is
reported through ``OptimizerDiagnostics.converged`` and a logged warning.
"""

import numpy as np


class ModeFitError(Exception):
    """Base class for all modefit errors."""


class InvalidInputError(ModeFitError, ValueError):
    """Caller-supplied input is malformed.

    Raised for initial values whose parameter set does not match the model,
    confidence levels outside (0, 1), unknown optimizer methods and invalid
    option values.
    """


class TransformStateError(ModeFitError, ValueError):
    """A coordinate transform was applied to a vector already in that space."""


class SingularMatrixError(ModeFitError, np.linalg.LinAlgError):
    """The information matrix cannot be inverted.

    Typically a parameter is not identified at the mode, so the curvature in
    that direction is zero.
    """
