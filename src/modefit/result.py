"""ModeResult: the immutable outcome of one mode estimation."""

from dataclasses import dataclass
from typing import Tuple

from .config import EstimationMode
from .objective import ObjectiveAdapter
from .optimizer import OptimizerDiagnostics
from .parameters import ParameterVector


@dataclass(frozen=True)
class ModeResult:
    """Point estimate produced by ``estimate``.

    Attributes:
        values: Estimate in constrained space, canonical parameter order
        optimizer_diagnostics: What the optimizer reported
        log_density_at_mode: Log-density at the estimate (negated minimum);
            the log-likelihood for MLE, the joint log-density for MAP
        objective: Adapter that produced the estimate, in linked state
        mode: MLE or MAP
    """
    values: ParameterVector
    optimizer_diagnostics: OptimizerDiagnostics
    log_density_at_mode: float
    objective: ObjectiveAdapter
    mode: EstimationMode

    def __post_init__(self):
        if self.values.linked:
            raise ValueError("ModeResult.values must be in constrained space")
        object.__setattr__(self, 'log_density_at_mode', float(self.log_density_at_mode))

    @property
    def converged(self) -> bool:
        return self.optimizer_diagnostics.converged

    @property
    def param_names(self) -> Tuple[str, ...]:
        return self.values.names

    @property
    def lp(self) -> float:
        """Alias for ``log_density_at_mode``."""
        return self.log_density_at_mode

    def __repr__(self) -> str:
        width = max((len(name) for name in self.param_names), default=0)
        lines = [f"ModeResult with maximized lp of {self.log_density_at_mode:.2f}"]
        lines.extend(f"  {name:<{width}}  {value: .6g}" for name, value in self.values)
        return "\n".join(lines)
