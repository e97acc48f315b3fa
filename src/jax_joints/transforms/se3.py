"""SE(3) rigid body transforms and twist re-expression in JAX.

Transforms are (..., 4, 4) homogeneous matrices and twists are (..., 6)
vectors laid out as [vx, vy, vz, wx, wy, wz] (linear part first). The
adjoint functions re-express a twist given in one frame into a frame
related to it by a fixed transform; they are exact and O(1).
"""


import jax
import jax.numpy as jnp

from . import so3

Array = jax.Array


def from_position_and_rotation(p: Array, R: Array) -> Array:
    """
    Construct SE(3) transform from position and rotation.

    Args:
        p: (..., 3) position vector
        R: (..., 3, 3) rotation matrix

    Returns:
        (..., 4, 4) homogeneous transformation matrix
    """
    batch_shape = jnp.broadcast_shapes(p.shape[:-1], R.shape[:-2])
    dtype = jnp.result_type(p.dtype, R.dtype)
    p = jnp.broadcast_to(p, batch_shape + (3,))
    R = jnp.broadcast_to(R, batch_shape + (3, 3))

    T = jnp.zeros(batch_shape + (4, 4), dtype=dtype)
    T = T.at[..., :3, :3].set(R)
    T = T.at[..., :3, 3].set(p)
    T = T.at[..., 3, 3].set(1.0)

    return T


def from_rotation(R: Array) -> Array:
    """Pure rotation as a (..., 4, 4) transform."""
    return from_position_and_rotation(jnp.zeros(R.shape[:-2] + (3,), dtype=R.dtype), R)


def identity(dtype=jnp.float64) -> Array:
    """The (4, 4) identity transform."""
    return jnp.eye(4, dtype=dtype)


def multiply(T1: Array, T2: Array) -> Array:
    """
    Multiply two SE(3) transformation matrices.

    Args:
        T1: (..., 4, 4) first transformation matrix
        T2: (..., 4, 4) second transformation matrix

    Returns:
        (..., 4, 4) result of T1 @ T2
    """
    return jnp.matmul(T1, T2)


def inverse(T: Array) -> Array:
    """
    Compute inverse of SE(3) transformation matrix.

    Uses the block structure: T^-1 = [[R^T, -R^T @ t], [0, 1]]

    Args:
        T: (..., 4, 4) transformation matrix

    Returns:
        (..., 4, 4) inverse transformation matrix
    """
    R_inv = so3.inverse(get_rotation(T))
    t_inv = -jnp.einsum("...ij,...j->...i", R_inv, get_position(T))

    return from_position_and_rotation(t_inv, R_inv)


def apply(T: Array, points: Array) -> Array:
    """
    Apply SE(3) transformation to points.

    Args:
        T: (..., 4, 4) transformation matrix
        points: (..., 3) or (..., N, 3) points to transform

    Returns:
        (..., 3) or (..., N, 3) transformed points
    """
    return so3.apply(get_rotation(T), points) + (
        get_position(T) if points.ndim == T.ndim - 1 else get_position(T)[..., None, :]
    )


def get_position(T: Array) -> Array:
    """Extract the (..., 3) position from SE(3) transformation matrix."""
    return T[..., :3, 3]


def get_rotation(T: Array) -> Array:
    """Extract the (..., 3, 3) rotation matrix from SE(3) transformation matrix."""
    return T[..., :3, :3]


def adjoint(T: Array) -> Array:
    """
    Compute the adjoint matrix of SE(3) transformation.

    The adjoint matrix is used to transform twists between coordinate frames.

    Args:
        T: (..., 4, 4) transformation matrix

    Returns:
        (..., 6, 6) adjoint matrix
    """
    R = get_rotation(T)
    t_skew = so3.skew_symmetric(get_position(T))
    zeros = jnp.zeros_like(R)

    # Adjoint matrix is [[R, [t]_x R], [0, R]]
    top = jnp.concatenate([R, jnp.matmul(t_skew, R)], axis=-1)
    bottom = jnp.concatenate([zeros, R], axis=-1)

    return jnp.concatenate([top, bottom], axis=-2)


def adjoint_apply(T: Array, twist: Array) -> Array:
    """
    Re-express twist(s) through the adjoint of *T* without forming it.

    Equivalent to ``adjoint(T) @ twist``: the angular part is rotated and
    the linear part picks up the moment of the rotated angular part about
    the translation of *T*.

    Args:
        T: (4, 4) transformation matrix
        twist: (..., 6) twist(s), [v, w]

    Returns:
        (..., 6) re-expressed twist(s)
    """
    R = get_rotation(T)
    p = get_position(T)
    v, w = twist[..., :3], twist[..., 3:]

    w_new = jnp.einsum("ij,...j->...i", R, w)
    v_new = jnp.einsum("ij,...j->...i", R, v) + jnp.cross(p, w_new)

    return jnp.concatenate([v_new, w_new], axis=-1)


def adjoint_inverse_apply(T: Array, twist: Array) -> Array:
    """
    Inverse of :func:`adjoint_apply`, i.e. ``adjoint(inverse(T)) @ twist``.

    Args:
        T: (4, 4) transformation matrix
        twist: (..., 6) twist(s), [v, w]

    Returns:
        (..., 6) re-expressed twist(s)
    """
    R = get_rotation(T)
    p = get_position(T)
    v, w = twist[..., :3], twist[..., 3:]

    w_new = jnp.einsum("ji,...j->...i", R, w)
    v_new = jnp.einsum("ji,...j->...i", R, v - jnp.cross(p, w))

    return jnp.concatenate([v_new, w_new], axis=-1)


def vee(xi_hat: Array) -> Array:
    """
    Extract the twist from a (..., 4, 4) se(3) matrix [[w]_x, v; 0, 0].

    Args:
        xi_hat: (..., 4, 4) element of se(3)

    Returns:
        (..., 6) twist [v, w]
    """
    w = jnp.stack([xi_hat[..., 2, 1], xi_hat[..., 0, 2], xi_hat[..., 1, 0]], axis=-1)
    return jnp.concatenate([xi_hat[..., :3, 3], w], axis=-1)
