"""Core data structures and error types for JAX Joints.

This module provides the immutable joint description consumed by the
kinematics functions, and the exception hierarchy they raise.
"""

from .errors import (
    AxisIndexError,
    ConfigurationError,
    ContractViolation,
    JointKinematicsError,
)
from .joint_model import JointProperties, as_coordinates

__all__ = [
    "JointProperties",
    "as_coordinates",
    "JointKinematicsError",
    "ConfigurationError",
    "ContractViolation",
    "AxisIndexError",
]
