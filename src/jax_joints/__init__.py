"""
JAX Joints: closed-form kinematics for three-degree-of-freedom Euler joints.

This library provides JIT-compilable local transforms, analytic Jacobians,
Jacobian time derivatives and per-axis transform derivatives for Euler
joints, on top of a rotation group with lossless conversions between
matrix, quaternion, axis-angle, rotation-vector and Euler-angle encodings.
"""

import jax
jax.config.update("jax_enable_x64", True)

# core first: transforms.euler imports core.errors during package import
from . import core
from . import transforms
from . import config
from . import diagnostics
from .core import (
    AxisIndexError,
    ConfigurationError,
    ContractViolation,
    JointKinematicsError,
    JointProperties,
)
from .config import DiagnosticsConfig
from .diagnostics import DiagnosticEvent, EventKind, LoggingSink, NullSink
from .euler_joint import EulerJoint
from .transforms import AxisOrder, Rotation

__version__ = "0.1.0"
__all__ = [
    "transforms",
    "core",
    "config",
    "diagnostics",
    "EulerJoint",
    "JointProperties",
    "AxisOrder",
    "Rotation",
    "DiagnosticsConfig",
    "DiagnosticEvent",
    "EventKind",
    "LoggingSink",
    "NullSink",
    "JointKinematicsError",
    "ConfigurationError",
    "ContractViolation",
    "AxisIndexError",
]
