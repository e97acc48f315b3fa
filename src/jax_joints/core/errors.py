"""Exception types for joint kinematics."""


class JointKinematicsError(Exception):
    """Base exception for all jax_joints errors."""

    pass


class ConfigurationError(JointKinematicsError, ValueError):
    """A joint was configured with a value the kinematics cannot use,
    such as an unknown Euler axis order."""

    pass


class ContractViolation(JointKinematicsError):
    """A caller broke an API precondition."""

    pass


class AxisIndexError(ContractViolation, IndexError):
    """Per-axis query with an index outside 0..2."""

    pass


__all__ = [
    "JointKinematicsError",
    "ConfigurationError",
    "ContractViolation",
    "AxisIndexError",
]
