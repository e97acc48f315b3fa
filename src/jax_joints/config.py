"""Configuration for joint kinematics diagnostics.

Diagnostics are on by default. Performance-oriented runs switch them off
with ``JAX_JOINTS_DIAGNOSTICS=0`` (or ``false``/``no``/``off``), in which
case the conditioning check is never traced or executed.
"""

import os
from dataclasses import dataclass, field

DIAGNOSTICS_ENV_VAR = "JAX_JOINTS_DIAGNOSTICS"

_FALSE_VALUES = {"0", "false", "no", "off"}


def diagnostics_enabled_from_env(default: bool = True) -> bool:
    """Read the diagnostics switch from the environment."""
    value = os.environ.get(DIAGNOSTICS_ENV_VAR)
    if value is None or not value.strip():
        return default
    return value.strip().lower() not in _FALSE_VALUES


@dataclass(frozen=True)
class DiagnosticsConfig:
    """Settings for the advisory singularity check.

    Attributes:
        enabled: Run the Jacobian conditioning check after every Jacobian
            evaluation. Defaults to the ``JAX_JOINTS_DIAGNOSTICS`` switch.
        singularity_threshold: Report when det(J^T J) falls below this value.
    """

    enabled: bool = field(default_factory=diagnostics_enabled_from_env)
    singularity_threshold: float = 1e-5

    def __post_init__(self):
        if not self.singularity_threshold > 0.0:
            raise ValueError(
                f"singularity_threshold must be positive, got {self.singularity_threshold}"
            )
