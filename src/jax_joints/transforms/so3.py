"""SO(3) and so(3) Lie group operations in JAX.

This module implements the array-level kernels behind the rotation group:
rotation matrices, rotation vectors (Euler vectors), axis-angle pairs and
unit quaternions, plus the elementary single-axis rotations used by the
Euler joint. All functions are pure, JIT-able, and operate on JAX arrays
with optional leading batch dimensions.
"""

import jax
import jax.numpy as jnp

Array = jax.Array

# Canonical axis returned for the identity rotation
_DEFAULT_AXIS = (1.0, 0.0, 0.0)


def exp(log_r: Array) -> Array:
    """
    SO(3) exponential map: convert axis-angle vector to rotation matrix.

    Implements Rodrigues' formula to convert a 3D rotation vector (so(3))
    to a rotation matrix (SO(3)). Total: zero maps to the identity.

    Args:
        log_r: (..., 3) array of rotation vectors

    Returns:
        (..., 3, 3) array of rotation matrices
    """
    angle = jnp.linalg.norm(log_r, axis=-1, keepdims=True)

    # Handle near-zero angles for numerical stability
    small_angle = angle < 1e-8

    # Use the unnormalized form sin(t)/t and (1-cos(t))/t^2 so the small
    # angle branch needs no division by the angle
    safe_angle = jnp.where(small_angle, 1.0, angle)
    a = jnp.where(small_angle, 1.0 - angle**2 / 6.0, jnp.sin(safe_angle) / safe_angle)
    b = jnp.where(small_angle, 0.5 - angle**2 / 24.0, (1.0 - jnp.cos(safe_angle)) / safe_angle**2)

    K = skew_symmetric(log_r)

    # Rodrigues formula: R = I + a * K + b * K²
    I = jnp.eye(3, dtype=K.dtype)
    I = jnp.broadcast_to(I, log_r.shape[:-1] + (3, 3))

    return I + a[..., None] * K + b[..., None] * jnp.matmul(K, K)


def log(R: Array) -> Array:
    """
    SO(3) logarithm map: convert rotation matrix to rotation vector.

    Goes through the unit quaternion so the result stays accurate close to
    a half turn, where the classic trace formula loses precision. The angle
    is in [0, π]. The identity maps to the zero vector; an exact half turn
    returns the axis whose largest-magnitude component is positive.

    Args:
        R: (..., 3, 3) array of rotation matrices

    Returns:
        (..., 3) array of rotation vectors
    """
    axis, angle = to_axis_angle(R)
    return angle[..., None] * axis


def to_axis_angle(R: Array) -> tuple:
    """
    Convert rotation matrices to (unit axis, angle) pairs.

    Args:
        R: (..., 3, 3) array of rotation matrices

    Returns:
        Tuple of (..., 3) unit axes and (...) angles in [0, π]
    """
    q = to_quaternion(R)
    w = q[..., 0]
    v = q[..., 1:]

    sin_half = jnp.linalg.norm(v, axis=-1)
    angle = 2.0 * jnp.arctan2(sin_half, w)

    # Half turn: w vanishes and q, -q are equally valid, pin the sign
    near_pi = w < 1e-12
    max_idx = jnp.argmax(jnp.abs(v), axis=-1)
    lead = jnp.take_along_axis(v, max_idx[..., None], axis=-1)
    sign = jnp.where(lead < 0.0, -1.0, 1.0)
    v = jnp.where(near_pi[..., None], v * sign, v)

    is_identity = sin_half < 1e-12
    safe_norm = jnp.where(is_identity, 1.0, sin_half)
    default_axis = jnp.broadcast_to(jnp.asarray(_DEFAULT_AXIS, dtype=v.dtype), v.shape)
    axis = jnp.where(is_identity[..., None], default_axis, v / safe_norm[..., None])
    angle = jnp.where(is_identity, 0.0, angle)

    return axis, angle


def from_axis_angle(axis: Array, angle: Array) -> Array:
    """
    Convert (axis, angle) pairs to rotation matrices.

    A zero axis yields the identity, matching :func:`exp` of a zero vector.

    Args:
        axis: (..., 3) rotation axes, normalized internally
        angle: (...) rotation angles in radians

    Returns:
        (..., 3, 3) array of rotation matrices
    """
    axis = jnp.asarray(axis)
    norm = jnp.linalg.norm(axis, axis=-1, keepdims=True)
    unit = axis / jnp.where(norm < 1e-12, 1.0, norm)
    return exp(unit * jnp.asarray(angle)[..., None])


def multiply(R1: Array, R2: Array) -> Array:
    """
    Multiply two rotation matrices.

    Args:
        R1: (..., 3, 3) first rotation matrix
        R2: (..., 3, 3) second rotation matrix

    Returns:
        (..., 3, 3) result of R1 @ R2
    """
    return jnp.matmul(R1, R2)


def inverse(R: Array) -> Array:
    """
    Compute inverse of rotation matrix.

    For rotation matrices, the inverse is simply the transpose.

    Args:
        R: (..., 3, 3) rotation matrix

    Returns:
        (..., 3, 3) inverse rotation matrix
    """
    return jnp.swapaxes(R, -1, -2)


def apply(R: Array, v: Array) -> Array:
    """
    Apply rotation to vector(s).

    Args:
        R: (..., 3, 3) rotation matrix
        v: (..., 3) or (..., N, 3) vector(s) to rotate

    Returns:
        (..., 3) or (..., N, 3) rotated vector(s)
    """
    if v.ndim == R.ndim - 1:  # Single vector case
        return jnp.einsum('...ij,...j->...i', R, v)
    else:  # Multiple vectors case
        return jnp.einsum('...ij,...nj->...ni', R, v)


def skew_symmetric(v: Array) -> Array:
    """
    Convert 3D vector to skew-symmetric matrix.

    Args:
        v: (..., 3) vector

    Returns:
        (..., 3, 3) skew-symmetric matrix
    """
    zeros = jnp.zeros(v.shape[:-1], dtype=v.dtype)

    return jnp.stack([
        jnp.stack([zeros, -v[..., 2], v[..., 1]], axis=-1),
        jnp.stack([v[..., 2], zeros, -v[..., 0]], axis=-1),
        jnp.stack([-v[..., 1], v[..., 0], zeros], axis=-1)
    ], axis=-2)


def normalize_quaternion(quaternions: Array) -> Array:
    """Normalize quaternions to unit length."""
    return quaternions / jnp.linalg.norm(quaternions, axis=-1, keepdims=True)


def from_quaternion(quaternions: Array) -> Array:
    """
    Convert quaternions to rotation matrices.

    Args:
        quaternions: (..., 4) array of quaternions in (w, x, y, z) format

    Returns:
        (..., 3, 3) array of rotation matrices
    """
    quaternions = normalize_quaternion(quaternions)

    w, x, y, z = jnp.moveaxis(quaternions, -1, 0)

    xx, yy, zz = x*x, y*y, z*z
    wx, wy, wz = w*x, w*y, w*z
    xy, xz, yz = x*y, x*z, y*z

    return jnp.stack([
        jnp.stack([1 - 2*(yy + zz), 2*(xy - wz), 2*(xz + wy)], axis=-1),
        jnp.stack([2*(xy + wz), 1 - 2*(xx + zz), 2*(yz - wx)], axis=-1),
        jnp.stack([2*(xz - wy), 2*(yz + wx), 1 - 2*(xx + yy)], axis=-1)
    ], axis=-2)


def to_quaternion(matrix: Array) -> Array:
    """
    Convert rotation matrices to quaternions (w, x, y, z).

    Selects among the four classic extraction formulas by the largest
    diagonal term, so every branch divides by a well-conditioned value.
    The returned scalar part is non-negative.

    Args:
        matrix: (..., 3, 3) array of rotation matrices

    Returns:
        (..., 4) array of quaternions in (w, x, y, z) format
    """
    m00, m01, m02 = matrix[..., 0, 0], matrix[..., 0, 1], matrix[..., 0, 2]
    m10, m11, m12 = matrix[..., 1, 0], matrix[..., 1, 1], matrix[..., 1, 2]
    m20, m21, m22 = matrix[..., 2, 0], matrix[..., 2, 1], matrix[..., 2, 2]

    trace = m00 + m11 + m22
    eps = jnp.finfo(matrix.dtype).eps

    # Four candidates, each scaled by 0.5 / sqrt(its pivot)
    candidates = [
        (jnp.stack([trace + 1.0, m21 - m12, m02 - m20, m10 - m01], axis=-1),
         1.0 + trace),
        (jnp.stack([m21 - m12, m00 - m11 - m22 + 1.0, m01 + m10, m02 + m20], axis=-1),
         1.0 + m00 - m11 - m22),
        (jnp.stack([m02 - m20, m01 + m10, m11 - m00 - m22 + 1.0, m12 + m21], axis=-1),
         1.0 + m11 - m00 - m22),
        (jnp.stack([m10 - m01, m02 + m20, m12 + m21, m22 - m00 - m11 + 1.0], axis=-1),
         1.0 + m22 - m00 - m11),
    ]
    scaled = [
        0.5 * q / jnp.sqrt(jnp.maximum(pivot, eps))[..., None]
        for q, pivot in candidates
    ]

    mask0 = trace > 0
    mask1 = (~mask0) & (m00 > m11) & (m00 > m22)
    mask2 = (~mask0) & (~mask1) & (m11 > m22)
    mask3 = (~mask0) & (~mask1) & (~mask2)

    quaternion = sum(
        jnp.where(mask[..., None], q, 0.0)
        for mask, q in zip((mask0, mask1, mask2, mask3), scaled)
    )

    quaternion = jnp.where(quaternion[..., 0:1] < 0, -quaternion, quaternion)
    return normalize_quaternion(quaternion)


# Elementary rotations and their derivatives


def rot_x(angle: Array) -> Array:
    """Rotation about the x axis by *angle* radians, shape (..., 3, 3)."""
    c, s = jnp.cos(angle), jnp.sin(angle)
    one, zero = jnp.ones_like(c), jnp.zeros_like(c)
    return jnp.stack([
        jnp.stack([one, zero, zero], axis=-1),
        jnp.stack([zero, c, -s], axis=-1),
        jnp.stack([zero, s, c], axis=-1),
    ], axis=-2)


def rot_y(angle: Array) -> Array:
    """Rotation about the y axis by *angle* radians, shape (..., 3, 3)."""
    c, s = jnp.cos(angle), jnp.sin(angle)
    one, zero = jnp.ones_like(c), jnp.zeros_like(c)
    return jnp.stack([
        jnp.stack([c, zero, s], axis=-1),
        jnp.stack([zero, one, zero], axis=-1),
        jnp.stack([-s, zero, c], axis=-1),
    ], axis=-2)


def rot_z(angle: Array) -> Array:
    """Rotation about the z axis by *angle* radians, shape (..., 3, 3)."""
    c, s = jnp.cos(angle), jnp.sin(angle)
    one, zero = jnp.ones_like(c), jnp.zeros_like(c)
    return jnp.stack([
        jnp.stack([c, -s, zero], axis=-1),
        jnp.stack([s, c, zero], axis=-1),
        jnp.stack([zero, zero, one], axis=-1),
    ], axis=-2)


def rot_x_deriv(angle: Array) -> Array:
    """d/dangle of :func:`rot_x`."""
    c, s = jnp.cos(angle), jnp.sin(angle)
    zero = jnp.zeros_like(c)
    return jnp.stack([
        jnp.stack([zero, zero, zero], axis=-1),
        jnp.stack([zero, -s, -c], axis=-1),
        jnp.stack([zero, c, -s], axis=-1),
    ], axis=-2)


def rot_y_deriv(angle: Array) -> Array:
    """d/dangle of :func:`rot_y`."""
    c, s = jnp.cos(angle), jnp.sin(angle)
    zero = jnp.zeros_like(c)
    return jnp.stack([
        jnp.stack([-s, zero, c], axis=-1),
        jnp.stack([zero, zero, zero], axis=-1),
        jnp.stack([-c, zero, -s], axis=-1),
    ], axis=-2)


def rot_z_deriv(angle: Array) -> Array:
    """d/dangle of :func:`rot_z`."""
    c, s = jnp.cos(angle), jnp.sin(angle)
    zero = jnp.zeros_like(c)
    return jnp.stack([
        jnp.stack([-s, -c, zero], axis=-1),
        jnp.stack([c, -s, zero], axis=-1),
        jnp.stack([zero, zero, zero], axis=-1),
    ], axis=-2)


ELEMENTARY_ROTATIONS = (rot_x, rot_y, rot_z)
ELEMENTARY_DERIVATIVES = (rot_x_deriv, rot_y_deriv, rot_z_deriv)
