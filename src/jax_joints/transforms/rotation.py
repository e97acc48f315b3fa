"""Canonical 3D rotation value implemented with JAX."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Tuple, Union

import jax
import jax.numpy as jnp
from jax.tree_util import register_pytree_node_class

from . import euler, so3

Array = jax.Array


@register_pytree_node_class  # let Rotation work with jit / grad / vmap …
@dataclass(frozen=True)
class Rotation:
    """Immutable rotation(s) stored canonically as rotation matrices.

    Every other encoding (quaternion, axis-angle, rotation vector, Euler
    angles) converts through the matrix, so a value built from one encoding
    and read back in another describes the same rotation up to floating
    point precision.
    """
    matrix: Array  # shape (..., 3, 3)

    # Constructors
    @classmethod
    def identity(cls, batch_shape: Tuple[int, ...] = (), *, dtype=jnp.float64) -> "Rotation":
        m = jnp.eye(3, dtype=dtype)
        return cls(jnp.broadcast_to(m, batch_shape + (3, 3)))

    @classmethod
    def from_matrix(cls, matrix: Array) -> "Rotation":
        matrix = jnp.asarray(matrix)
        if matrix.shape[-2:] != (3, 3):
            raise ValueError(f"matrix must have shape (...,3,3), got {matrix.shape}")
        return cls(matrix)

    @classmethod
    def from_quaternion(cls, quat: Array) -> "Rotation":
        """From (w, x, y, z) quaternion(s); normalized on the way in."""
        quat = jnp.asarray(quat)
        if quat.shape[-1] != 4:
            raise ValueError(f"quaternion must have shape (...,4), got {quat.shape}")
        return cls(so3.from_quaternion(quat))

    @classmethod
    def from_axis_angle(cls, axis: Array, angle: Union[float, Array]) -> "Rotation":
        return cls(so3.from_axis_angle(jnp.asarray(axis), jnp.asarray(angle)))

    @classmethod
    def from_rotvec(cls, rotvec: Array) -> "Rotation":
        """From Euler (rotation) vector(s): axis scaled by angle."""
        rotvec = jnp.asarray(rotvec)
        if rotvec.shape[-1] != 3:
            raise ValueError(f"rotation vector must have shape (...,3), got {rotvec.shape}")
        return cls(so3.exp(rotvec))

    exp = from_rotvec

    @classmethod
    def from_euler(cls, angles: Array, order: Union[euler.AxisOrder, str] = euler.AxisOrder.XYZ) -> "Rotation":
        return cls(euler.to_matrix(angles, order))

    # PyTree boiler-plate
    def tree_flatten(self):
        return (self.matrix,), None

    @classmethod
    def tree_unflatten(cls, aux, children):
        (matrix,) = children
        return cls(matrix)

    # Conversions
    def as_matrix(self) -> Array:
        return self.matrix

    def as_quaternion(self) -> Array:
        return so3.to_quaternion(self.matrix)

    def as_axis_angle(self) -> Tuple[Array, Array]:
        return so3.to_axis_angle(self.matrix)

    def as_rotvec(self) -> Array:
        return so3.log(self.matrix)

    log = as_rotvec

    def as_euler(self, order: Union[euler.AxisOrder, str] = euler.AxisOrder.XYZ) -> Array:
        return euler.from_matrix(self.matrix, order)

    # Group operations
    def compose(self, other: "Rotation") -> "Rotation":
        """Self ∘ other (apply *other* first, then self)."""
        return Rotation(so3.multiply(self.matrix, other.matrix))

    def __matmul__(self, other: "Rotation") -> "Rotation":
        return self.compose(other)

    def inverse(self) -> "Rotation":
        return Rotation(so3.inverse(self.matrix))

    def apply(self, vectors: Array) -> Array:
        """Rotate (..., 3) or (..., N, 3) vectors."""
        return so3.apply(self.matrix, jnp.asarray(vectors))

    def angle_to(self, other: "Rotation") -> Array:
        """Geodesic distance (radians) between self and *other*."""
        _, angle = so3.to_axis_angle(so3.multiply(so3.inverse(self.matrix), other.matrix))
        return angle

    def allclose(self, other: "Rotation", atol: float = 1e-9) -> bool:
        """True when both describe the same rotation(s) within *atol* radians."""
        return bool(jnp.all(self.angle_to(other) <= atol))
