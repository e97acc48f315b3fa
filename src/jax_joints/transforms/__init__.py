"""
JAX-based rotation and rigid-transform library for joint kinematics.

This module provides JIT-compilable implementations of:
- SO(3) rotations (so3 module) and the canonical Rotation value (rotation module)
- SE(3) rigid body transforms and twist adjoints (se3 module)
- Euler angle conventions with closed-form kinematic tables (euler module)

All functions are pure and stateless.
"""

from . import so3
from . import se3
from . import euler
from .euler import AxisOrder, EulerConvention, get_convention, register_convention
from .rotation import Rotation

__all__ = [
    "so3",
    "se3",
    "euler",
    "AxisOrder",
    "EulerConvention",
    "get_convention",
    "register_convention",
    "Rotation",
]
