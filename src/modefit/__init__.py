"""modefit: maximum-likelihood and maximum-a-posteriori mode estimation.

This package finds the mode of a probabilistic model's likelihood or
posterior by optimizing in an unconstrained parameterization, and derives
asymptotic standard errors, p-values and confidence intervals from the
curvature at the estimate.
"""

# Export the public API
from .api import *  # noqa: F403, F401
from .api import __all__, __version__  # noqa: F401
