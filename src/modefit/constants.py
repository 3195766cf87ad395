"""Global constants for modefit.

This module centralizes defaults shared by the estimation driver, the
optimizer wrapper and the statistical summary.
"""

# Quasi-Newton method used when no optimizer method is configured
DEFAULT_METHOD: str = "L-BFGS-B"

# Confidence level of the coefficient table
DEFAULT_LEVEL: float = 0.95

# Relative step for finite-difference derivatives
DEFAULT_FD_STEP: float = 1e-5

# Coefficient table columns, in display order
PARAMETER_COL: str = "parameter"
ESTIMATE_COL: str = "estimate"
STD_ERROR_COL: str = "std_error"
Z_COL: str = "z"
P_VALUE_COL: str = "p_value"
CI_LOWER_COL: str = "ci_lower"
CI_UPPER_COL: str = "ci_upper"

COEFFICIENT_COLUMNS = (
    PARAMETER_COL,
    ESTIMATE_COL,
    STD_ERROR_COL,
    Z_COL,
    P_VALUE_COL,
    CI_LOWER_COL,
    CI_UPPER_COL,
)
