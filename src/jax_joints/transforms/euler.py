"""Euler angle conventions and their closed-form kinematic tables.

Each supported axis ordering is an :class:`EulerConvention` record
registered once in ``_CONVENTIONS``. A record owns every formula that
depends on the ordering: the composed rotation, its inverse, the angular
motion subspace (Euler rates to body angular velocity) and the time
derivative of that subspace. Call sites look a convention up through
:func:`get_convention` and never branch on the ordering themselves.

Rotations are intrinsic: ``XYZ`` means ``R = Rx(q0) @ Ry(q1) @ Rz(q2)``.
"""

import enum
from typing import Callable, Dict, NamedTuple, Tuple, Union

import jax
import jax.numpy as jnp

from ..core.errors import ConfigurationError
from . import so3

Array = jax.Array

# Below this |cos(middle angle)| the first/third angles are not separable
_GIMBAL_EPS = 1e-10


class AxisOrder(str, enum.Enum):
    """Supported Euler axis orderings."""

    XYZ = "XYZ"
    ZYX = "ZYX"

    @classmethod
    def coerce(cls, value: Union["AxisOrder", str]) -> "AxisOrder":
        """Resolve *value* to a member, accepting names in any case.

        Raises:
            ConfigurationError: If *value* names no supported ordering.
        """
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            try:
                return cls(value.upper())
            except ValueError:
                pass
        supported = ", ".join(member.value for member in cls)
        raise ConfigurationError(f"Undefined Euler axis order {value!r} (supported: {supported})")


class EulerConvention(NamedTuple):
    """Formula set for one axis ordering.

    Attributes:
        order: The ordering this record implements.
        axes: Elementary axis (0=x, 1=y, 2=z) rotated by each coordinate.
        singular_index: Coordinate whose |q| = pi/2 is gimbal lock.
        to_matrix: q (..., 3) -> R (..., 3, 3).
        from_matrix: R (..., 3, 3) -> q (..., 3).
        motion_subspace: q (3,) -> S (3, 3); column i is the body angular
            velocity produced by a unit rate of coordinate i.
        motion_subspace_deriv: (q, dq) -> dS/dt (3, 3).
    """

    order: AxisOrder
    axes: Tuple[int, int, int]
    singular_index: int
    to_matrix: Callable[[Array], Array]
    from_matrix: Callable[[Array], Array]
    motion_subspace: Callable[[Array], Array]
    motion_subspace_deriv: Callable[[Array, Array], Array]


_CONVENTIONS: Dict[AxisOrder, EulerConvention] = {}


def register_convention(convention: EulerConvention) -> EulerConvention:
    """Add *convention* to the lookup table, replacing any previous entry."""
    _CONVENTIONS[convention.order] = convention
    return convention


def get_convention(order: Union[AxisOrder, str]) -> EulerConvention:
    """Look up the formula set for *order*.

    Raises:
        ConfigurationError: If *order* is unknown or has no registered formulas.
    """
    order = AxisOrder.coerce(order)
    try:
        return _CONVENTIONS[order]
    except KeyError:
        raise ConfigurationError(f"No formulas registered for Euler axis order {order.value}") from None


def supported_orders() -> Tuple[AxisOrder, ...]:
    return tuple(_CONVENTIONS)


def to_matrix(angles: Array, order: Union[AxisOrder, str]) -> Array:
    """Rotation matrix for Euler *angles* (..., 3) under *order*."""
    return get_convention(order).to_matrix(jnp.asarray(angles))


def from_matrix(R: Array, order: Union[AxisOrder, str]) -> Array:
    """Euler angles (..., 3) under *order* reproducing the rotation *R*."""
    return get_convention(order).from_matrix(jnp.asarray(R))


def axis_rotation(order: Union[AxisOrder, str], index: int, angle: Array) -> Array:
    """Elementary rotation of coordinate *index* alone."""
    axis = get_convention(order).axes[index]
    return so3.ELEMENTARY_ROTATIONS[axis](angle)


def axis_derivative(order: Union[AxisOrder, str], index: int, angle: Array) -> Array:
    """Derivative of the elementary rotation of coordinate *index*.

    Depends only on that coordinate's own angle.
    """
    axis = get_convention(order).axes[index]
    return so3.ELEMENTARY_DERIVATIVES[axis](angle)


def _trig(q: Array):
    """Return (c0, c1, c2, s0, s1, s2) for the three coordinates."""
    c = jnp.cos(q)
    s = jnp.sin(q)
    return c[..., 0], c[..., 1], c[..., 2], s[..., 0], s[..., 1], s[..., 2]


def _matrix(rows) -> Array:
    return jnp.stack([jnp.stack(row, axis=-1) for row in rows], axis=-2)


# XYZ: R = Rx(q0) Ry(q1) Rz(q2)


def _xyz_to_matrix(q: Array) -> Array:
    c0, c1, c2, s0, s1, s2 = _trig(q)
    return _matrix([
        [c1*c2, -c1*s2, s1],
        [c0*s2 + s0*s1*c2, c0*c2 - s0*s1*s2, -s0*c1],
        [s0*s2 - c0*s1*c2, s0*c2 + c0*s1*s2, c0*c1],
    ])


def _xyz_from_matrix(R: Array) -> Array:
    cos1 = jnp.sqrt(R[..., 0, 0]**2 + R[..., 0, 1]**2)
    q1 = jnp.arctan2(R[..., 0, 2], cos1)
    locked = cos1 < _GIMBAL_EPS
    q0 = jnp.where(locked, jnp.arctan2(R[..., 2, 1], R[..., 1, 1]),
                   jnp.arctan2(-R[..., 1, 2], R[..., 2, 2]))
    q2 = jnp.where(locked, 0.0, jnp.arctan2(-R[..., 0, 1], R[..., 0, 0]))
    return jnp.stack([q0, q1, q2], axis=-1)


def _xyz_motion_subspace(q: Array) -> Array:
    #  S = [  c1*c2,  s2,  0
    #        -c1*s2,  c2,  0
    #            s1,   0,  1 ]
    _, c1, c2, _, s1, s2 = _trig(q)
    zero, one = jnp.zeros_like(c1), jnp.ones_like(c1)
    return _matrix([
        [c1*c2, s2, zero],
        [-c1*s2, c2, zero],
        [s1, zero, one],
    ])


def _xyz_motion_subspace_deriv(q: Array, dq: Array) -> Array:
    #  dS = [ -dq1*s1*c2 - dq2*c1*s2,   dq2*c2,  0
    #          dq1*s1*s2 - dq2*c1*c2,  -dq2*s2,  0
    #                         dq1*c1,        0,  0 ]
    _, c1, c2, _, s1, s2 = _trig(q)
    dq1, dq2 = dq[..., 1], dq[..., 2]
    zero = jnp.zeros_like(c1)
    return _matrix([
        [-dq1*s1*c2 - dq2*c1*s2, dq2*c2, zero],
        [dq1*s1*s2 - dq2*c1*c2, -dq2*s2, zero],
        [dq1*c1, zero, zero],
    ])


# ZYX: R = Rz(q0) Ry(q1) Rx(q2)


def _zyx_to_matrix(q: Array) -> Array:
    c0, c1, c2, s0, s1, s2 = _trig(q)
    return _matrix([
        [c0*c1, c0*s1*s2 - s0*c2, c0*s1*c2 + s0*s2],
        [s0*c1, s0*s1*s2 + c0*c2, s0*s1*c2 - c0*s2],
        [-s1, c1*s2, c1*c2],
    ])


def _zyx_from_matrix(R: Array) -> Array:
    cos1 = jnp.sqrt(R[..., 0, 0]**2 + R[..., 1, 0]**2)
    q1 = jnp.arctan2(-R[..., 2, 0], cos1)
    locked = cos1 < _GIMBAL_EPS
    q0 = jnp.where(locked, jnp.arctan2(-R[..., 0, 1], R[..., 1, 1]),
                   jnp.arctan2(R[..., 1, 0], R[..., 0, 0]))
    q2 = jnp.where(locked, 0.0, jnp.arctan2(R[..., 2, 1], R[..., 2, 2]))
    return jnp.stack([q0, q1, q2], axis=-1)


def _zyx_motion_subspace(q: Array) -> Array:
    #  S = [    -s1,    0,  1
    #        s2*c1,   c2,  0
    #        c1*c2,  -s2,  0 ]
    _, c1, c2, _, s1, s2 = _trig(q)
    zero, one = jnp.zeros_like(c1), jnp.ones_like(c1)
    return _matrix([
        [-s1, zero, one],
        [s2*c1, c2, zero],
        [c1*c2, -s2, zero],
    ])


def _zyx_motion_subspace_deriv(q: Array, dq: Array) -> Array:
    #  dS = [                -c1*dq1,        0,  0
    #          c2*c1*dq2 - s2*s1*dq1,  -s2*dq2,  0
    #         -s1*c2*dq1 - c1*s2*dq2,  -c2*dq2,  0 ]
    _, c1, c2, _, s1, s2 = _trig(q)
    dq1, dq2 = dq[..., 1], dq[..., 2]
    zero = jnp.zeros_like(c1)
    return _matrix([
        [-c1*dq1, zero, zero],
        [c2*c1*dq2 - s2*s1*dq1, -s2*dq2, zero],
        [-s1*c2*dq1 - c1*s2*dq2, -c2*dq2, zero],
    ])


# det(S) is cos(q1) for XYZ and -cos(q1) for ZYX: both lock on the middle angle
register_convention(EulerConvention(
    order=AxisOrder.XYZ,
    axes=(0, 1, 2),
    singular_index=1,
    to_matrix=_xyz_to_matrix,
    from_matrix=_xyz_from_matrix,
    motion_subspace=_xyz_motion_subspace,
    motion_subspace_deriv=_xyz_motion_subspace_deriv,
))

register_convention(EulerConvention(
    order=AxisOrder.ZYX,
    axes=(2, 1, 0),
    singular_index=1,
    to_matrix=_zyx_to_matrix,
    from_matrix=_zyx_from_matrix,
    motion_subspace=_zyx_motion_subspace,
    motion_subspace_deriv=_zyx_motion_subspace_deriv,
))
