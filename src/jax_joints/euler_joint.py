"""Euler joint kinematics: local transform, Jacobian and their derivatives.

This module implements the heart of the jax_joints library. The pure
functions take a :class:`~jax_joints.core.JointProperties` together with
the generalized coordinates (and velocities) supplied by the caller, and
return closed-form results; they are JIT-compilable and keep no state.

:class:`EulerJoint` wraps them for a body-tree owner: it holds the joint
description, degrades gracefully on configuration errors and runs the
advisory singularity check after each Jacobian evaluation.

Twists follow the [v, w] layout of :mod:`jax_joints.transforms.se3`; the
Jacobian maps joint rates to the child body's velocity relative to the
parent, expressed in the child body frame.
"""

import functools
import logging
from typing import Optional, Union

import jax
import jax.numpy as jnp
import numpy as np
from jax import Array

from .config import DiagnosticsConfig
from .core import AxisIndexError, ConfigurationError, JointProperties, as_coordinates
from .diagnostics import (
    DiagnosticSink,
    LoggingSink,
    configuration_error_event,
    jacobian_conditioning,
    singular_jacobian_event,
)
from .transforms import euler, se3
from .transforms.euler import AxisOrder
from .transforms.rotation import Rotation

logger = logging.getLogger(__name__)

NUM_DOFS = 3


def _check_index(index: int) -> int:
    if isinstance(index, bool) or not isinstance(index, (int, np.integer)):
        raise AxisIndexError(f"Axis index must be an integer in [0, {NUM_DOFS}), got {index!r}")
    if not 0 <= index < NUM_DOFS:
        raise AxisIndexError(f"Axis index {index} out of range [0, {NUM_DOFS})")
    return int(index)


def _pad_rotation_block(block: Array) -> Array:
    """Embed a 3x3 block in an otherwise zero 4x4 matrix."""
    return jnp.zeros((4, 4), dtype=block.dtype).at[:3, :3].set(block)


def _joint_frame_twists(angular: Array) -> Array:
    """Turn the columns of a 3x3 angular block into (3, 6) pure-rotation twists."""
    return jnp.concatenate([jnp.zeros_like(angular), angular.T], axis=-1)


def local_transform(props: JointProperties, q: Array) -> Array:
    """Transform from the child body frame to the parent body frame.

    T = parent_to_joint @ R(q) @ inverse(child_to_joint)

    Args:
        props: Joint description
        q: (3,) generalized coordinates

    Returns:
        (4, 4) homogeneous transform
    """
    convention = euler.get_convention(props.axis_order)
    q = as_coordinates(q)
    R = se3.from_rotation(convention.to_matrix(q))
    return props.parent_to_joint @ R @ se3.inverse(props.child_to_joint)


def local_jacobian(props: JointProperties, q: Array) -> Array:
    """Analytic Jacobian of the joint.

    Column i is the twist produced by a unit rate of coordinate i, built in
    the joint frame from the convention's closed-form motion subspace and
    re-expressed in the child body frame through the child offset.

    Args:
        props: Joint description
        q: (3,) generalized coordinates

    Returns:
        (6, 3) Jacobian
    """
    convention = euler.get_convention(props.axis_order)
    S = convention.motion_subspace(as_coordinates(q))
    return se3.adjoint_apply(props.child_to_joint, _joint_frame_twists(S)).T


def local_jacobian_deriv(props: JointProperties, q: Array, dq: Array) -> Array:
    """Time derivative of :func:`local_jacobian` along the velocities *dq*.

    Args:
        props: Joint description
        q: (3,) generalized coordinates
        dq: (3,) generalized velocities

    Returns:
        (6, 3) Jacobian time derivative
    """
    convention = euler.get_convention(props.axis_order)
    dS = convention.motion_subspace_deriv(as_coordinates(q), as_coordinates(dq, "velocities"))
    return se3.adjoint_apply(props.child_to_joint, _joint_frame_twists(dS)).T


def axis_transform(props: JointProperties, q: Array, index: int) -> Array:
    """Elementary rotation of coordinate *index* with the other two zeroed, as (4, 4)."""
    index = _check_index(index)
    q = as_coordinates(q)
    return se3.from_rotation(euler.axis_rotation(props.axis_order, index, q[index]))


def axis_transform_derivative(props: JointProperties, q: Array, index: int) -> Array:
    """Derivative of :func:`axis_transform` with respect to ``q[index]``.

    Only the rotational block is non-zero, and it depends on ``q[index]`` alone.
    """
    index = _check_index(index)
    q = as_coordinates(q)
    return _pad_rotation_block(euler.axis_derivative(props.axis_order, index, q[index]))


def local_transform_derivative(props: JointProperties, q: Array, index: int) -> Array:
    """Partial derivative of :func:`local_transform` with respect to ``q[index]``."""
    index = _check_index(index)
    q = as_coordinates(q)
    factors = [
        euler.axis_derivative(props.axis_order, i, q[i]) if i == index
        else euler.axis_rotation(props.axis_order, i, q[i])
        for i in range(NUM_DOFS)
    ]
    dR = factors[0] @ factors[1] @ factors[2]
    return props.parent_to_joint @ _pad_rotation_block(dR) @ se3.inverse(props.child_to_joint)


def convert_to_positions(props: JointProperties, rotation: Union[Rotation, Array]) -> Array:
    """Coordinates that make the joint rotation equal to *rotation*.

    At gimbal lock the third coordinate is set to zero.
    """
    matrix = rotation.as_matrix() if isinstance(rotation, Rotation) else jnp.asarray(rotation)
    return euler.get_convention(props.axis_order).from_matrix(matrix)


def convert_to_rotation(props: JointProperties, q: Array) -> Rotation:
    """Joint rotation (without the fixed offsets) for coordinates *q*."""
    convention = euler.get_convention(props.axis_order)
    return Rotation(convention.to_matrix(as_coordinates(q)))


class EulerJoint:
    """Three-degree-of-freedom rotational joint driven by an external owner.

    Coordinates and velocities are passed into every query; nothing derived
    is cached. An unknown axis order is reported through the diagnostic sink
    at the computation that needed it, which then returns an identity or zero
    result. Out-of-range axis indices raise :class:`AxisIndexError`.

    Args:
        name: Joint identifier used in diagnostics.
        axis_order: Euler axis ordering.
        parent_to_joint: (4, 4) joint frame pose in the parent body. Identity if omitted.
        child_to_joint: (4, 4) joint frame pose in the child body. Identity if omitted.
        sink: Receives diagnostic events. Defaults to a :class:`LoggingSink`.
        config: Diagnostics settings. Defaults to :class:`DiagnosticsConfig`.
    """

    def __init__(
        self,
        name: str = "EulerJoint",
        axis_order: Union[AxisOrder, str] = AxisOrder.XYZ,
        parent_to_joint: Optional[Array] = None,
        child_to_joint: Optional[Array] = None,
        sink: Optional[DiagnosticSink] = None,
        config: Optional[DiagnosticsConfig] = None,
    ):
        self.properties = JointProperties.create(
            name=name,
            axis_order=axis_order,
            parent_to_joint=parent_to_joint,
            child_to_joint=child_to_joint,
        )
        self.axis_order = axis_order
        self.sink = sink if sink is not None else LoggingSink()
        self.config = config if config is not None else DiagnosticsConfig()

    def __repr__(self) -> str:
        return f"EulerJoint(name={self.name!r}, axis_order={self.axis_order!r})"

    @property
    def name(self) -> str:
        return self.properties.name

    @property
    def axis_order(self) -> Union[AxisOrder, str]:
        return self.properties.axis_order

    @axis_order.setter
    def axis_order(self, order: Union[AxisOrder, str]) -> None:
        try:
            order = AxisOrder.coerce(order)
        except ConfigurationError:
            # Kept verbatim; reported by the first computation that needs it
            logger.debug("Joint [%s] given unknown axis order %r", self.name, order)
        self.properties = self.properties.replace(axis_order=order)

    @property
    def parent_to_joint(self) -> Array:
        return self.properties.parent_to_joint

    @property
    def child_to_joint(self) -> Array:
        return self.properties.child_to_joint

    # Queries

    def transform(self, q: Array) -> Array:
        """Local transform, child body frame to parent body frame."""
        q = as_coordinates(q)
        try:
            return local_transform(self.properties, q)
        except ConfigurationError as error:
            return self._fallback(error, q, jnp.eye(4), "identity")

    def jacobian(self, q: Array) -> Array:
        """(6, 3) Jacobian, followed by the advisory conditioning check."""
        q = as_coordinates(q)
        try:
            J = local_jacobian(self.properties, q)
        except ConfigurationError as error:
            return self._fallback(error, q, jnp.zeros((6, NUM_DOFS)), "zero")
        if self.config.enabled:
            jax.debug.callback(self._report_conditioning, q, J, jacobian_conditioning(J))
        return J

    def jacobian_deriv(self, q: Array, dq: Array) -> Array:
        """(6, 3) time derivative of the Jacobian."""
        q = as_coordinates(q)
        try:
            return local_jacobian_deriv(self.properties, q, dq)
        except ConfigurationError as error:
            return self._fallback(error, q, jnp.zeros((6, NUM_DOFS)), "zero")

    def axis_transform(self, q: Array, index: int) -> Array:
        q = as_coordinates(q)
        try:
            return axis_transform(self.properties, q, index)
        except ConfigurationError as error:
            return self._fallback(error, q, jnp.eye(4), "identity")

    def axis_transform_derivative(self, q: Array, index: int) -> Array:
        q = as_coordinates(q)
        try:
            return axis_transform_derivative(self.properties, q, index)
        except ConfigurationError as error:
            return self._fallback(error, q, jnp.zeros((4, 4)), "zero")

    def transform_derivative(self, q: Array, index: int) -> Array:
        q = as_coordinates(q)
        try:
            return local_transform_derivative(self.properties, q, index)
        except ConfigurationError as error:
            return self._fallback(error, q, jnp.zeros((4, 4)), "zero")

    def convert_to_positions(self, rotation: Union[Rotation, Array]) -> Array:
        """Inverse of :meth:`convert_to_rotation`; raises on an unknown axis order."""
        return convert_to_positions(self.properties, rotation)

    def convert_to_rotation(self, q: Array) -> Rotation:
        return convert_to_rotation(self.properties, q)

    # Diagnostics

    def _fallback(self, error: ConfigurationError, q: Array, value: Array, label: str) -> Array:
        jax.debug.callback(functools.partial(self._report_configuration_error, error, label), q)
        return value

    def _report_configuration_error(self, error: ConfigurationError, label: str, q) -> None:
        self.sink(configuration_error_event(self.name, self.axis_order, q, error, label))

    def _report_conditioning(self, q, J, determinant) -> None:
        determinant = float(determinant)
        if determinant >= self.config.singularity_threshold:
            return
        convention = euler.get_convention(self.axis_order)
        rank = np.linalg.matrix_rank(np.asarray(J))
        self.sink(singular_jacobian_event(
            self.name, convention.order, q, determinant, rank, convention.singular_index,
        ))
