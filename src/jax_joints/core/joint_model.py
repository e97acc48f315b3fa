"""JointProperties PyTree data structure for an Euler joint.

This module defines the immutable description of a three-degree-of-freedom
rotational joint: its name, axis ordering and the two fixed offsets that
place the joint frame on the parent and child bodies. Coordinates and
velocities are not stored here; they belong to whoever owns the body tree
and are passed into the kinematics functions per evaluation.
"""

from typing import Optional, Union

import jax.numpy as jnp
from jax import Array
from flax import struct

from ..transforms.euler import AxisOrder


@struct.dataclass
class JointProperties:
    """Immutable PyTree representation of an Euler joint.

    Attributes:
        name: Joint identifier used in diagnostics.
                Marked as a static field for JIT compilation.
        axis_order: Euler axis ordering. Kept as given so that an unknown
                    ordering surfaces where a computation needs it.
                    Marked as a static field for JIT compilation.
        parent_to_joint: (4, 4) pose of the joint frame in the parent body frame.
        child_to_joint: (4, 4) pose of the joint frame in the child body frame.
    """
    name: str = struct.field(pytree_node=False)
    axis_order: Union[AxisOrder, str] = struct.field(pytree_node=False)
    parent_to_joint: Array
    child_to_joint: Array

    @classmethod
    def create(
        cls,
        name: str = "EulerJoint",
        axis_order: Union[AxisOrder, str] = AxisOrder.XYZ,
        parent_to_joint: Optional[Array] = None,
        child_to_joint: Optional[Array] = None,
    ) -> "JointProperties":
        """Build properties, defaulting both offsets to the identity."""
        return cls(
            name=name,
            axis_order=axis_order,
            parent_to_joint=_as_transform(parent_to_joint, "parent_to_joint"),
            child_to_joint=_as_transform(child_to_joint, "child_to_joint"),
        )


def _as_transform(T: Optional[Array], label: str) -> Array:
    if T is None:
        return jnp.eye(4)
    T = jnp.asarray(T, dtype=jnp.float64)
    if T.shape != (4, 4):
        raise ValueError(f"{label} must have shape (4, 4), got {T.shape}")
    return T


def as_coordinates(q: Array, label: str = "positions") -> Array:
    """Validate a coordinate or velocity triple and return it as an array."""
    q = jnp.asarray(q)
    if q.shape != (3,):
        raise ValueError(f"{label} must have shape (3,), got {q.shape}")
    if not jnp.issubdtype(q.dtype, jnp.floating):
        q = q.astype(jnp.float64)
    return q


__all__ = ["JointProperties", "as_coordinates"]
