"""Tests for singularity diagnostics, sinks and configuration."""

import logging

import jax
import jax.numpy as jnp
import numpy as np
import pytest

from jax_joints import EulerJoint
from jax_joints.config import DIAGNOSTICS_ENV_VAR, DiagnosticsConfig, diagnostics_enabled_from_env
from jax_joints.diagnostics import (
    DiagnosticEvent,
    EventKind,
    LoggingSink,
    NullSink,
    jacobian_conditioning,
    singular_jacobian_event,
)
from jax_joints.transforms import AxisOrder, se3, so3

GIMBAL_LOCK = jnp.array([0.0, jnp.pi / 2, 0.0])


def _joint(order, events, **kwargs):
    return EulerJoint(name="hip", axis_order=order, sink=events.append, **kwargs)


def _evaluate(joint, q):
    J = joint.jacobian(q)
    jax.effects_barrier()
    return J


def test_zyx_gimbal_lock_fires():
    events = []
    _evaluate(_joint(AxisOrder.ZYX, events, config=DiagnosticsConfig(enabled=True)), GIMBAL_LOCK)

    assert len(events) == 1
    event = events[0]
    assert event.kind is EventKind.SINGULAR_JACOBIAN
    assert event.severity == logging.WARNING
    assert event.joint == "hip"
    assert event.axis_order == "ZYX"
    np.testing.assert_allclose(event.positions, (0.0, np.pi / 2, 0.0))
    assert event.detail["determinant"] < 1e-5
    assert event.detail["rank"] == 2
    assert event.detail["singular_index"] == 1


def test_xyz_gimbal_lock_is_on_the_same_coordinate():
    """Both orderings lose rank at |q1| = pi/2 (det S = +-cos q1)."""
    events = []
    _evaluate(_joint(AxisOrder.XYZ, events, config=DiagnosticsConfig(enabled=True)), GIMBAL_LOCK)

    assert len(events) == 1
    assert events[0].axis_order == "XYZ"
    assert events[0].detail["rank"] == 2


@pytest.mark.parametrize("order", [AxisOrder.XYZ, AxisOrder.ZYX])
@pytest.mark.parametrize("index", [0, 2])
def test_outer_coordinates_never_lock(order, index):
    events = []
    q = jnp.zeros(3).at[index].set(jnp.pi / 2)
    _evaluate(_joint(order, events, config=DiagnosticsConfig(enabled=True)), q)
    assert events == []


@pytest.mark.parametrize("order", [AxisOrder.XYZ, AxisOrder.ZYX])
def test_negative_right_angle_also_locks(order):
    events = []
    _evaluate(_joint(order, events, config=DiagnosticsConfig(enabled=True)), jnp.array([0.3, -jnp.pi / 2, -0.8]))
    assert len(events) == 1


def test_near_singular_band_uses_threshold():
    # det(J^T J) = cos(q1)^2 with identity offsets
    q = jnp.array([0.0, jnp.pi / 2 - 1e-2, 0.0])
    events = []
    _evaluate(_joint("XYZ", events, config=DiagnosticsConfig(enabled=True)), q)
    assert events == []

    _evaluate(_joint("XYZ", events, config=DiagnosticsConfig(enabled=True, singularity_threshold=1e-3)), q)
    assert len(events) == 1
    np.testing.assert_allclose(events[0].detail["determinant"], np.cos(np.pi / 2 - 1e-2) ** 2, rtol=1e-6)


def test_offsets_do_not_hide_singularity():
    events = []
    child = se3.from_position_and_rotation(jnp.array([0.3, -0.1, 0.2]), so3.exp(jnp.array([0.5, 0.1, -0.2])))
    _evaluate(_joint("ZYX", events, child_to_joint=child, config=DiagnosticsConfig(enabled=True)), GIMBAL_LOCK)
    assert len(events) == 1


def test_disabled_diagnostics_emit_nothing():
    events = []
    J = _evaluate(_joint(AxisOrder.ZYX, events, config=DiagnosticsConfig(enabled=False)), GIMBAL_LOCK)
    assert events == []
    assert J.shape == (6, 3)


def test_check_runs_under_jit():
    events = []
    joint = _joint(AxisOrder.ZYX, events, config=DiagnosticsConfig(enabled=True))
    jax.jit(joint.jacobian)(GIMBAL_LOCK)
    jax.effects_barrier()
    assert len(events) == 1
    np.testing.assert_allclose(events[0].positions, (0.0, np.pi / 2, 0.0))


def test_jacobian_conditioning():
    np.testing.assert_allclose(jacobian_conditioning(jnp.eye(6)[:, :3]), 1.0)
    J = jnp.zeros((6, 3)).at[3, 0].set(1.0).at[4, 1].set(2.0)
    np.testing.assert_allclose(jacobian_conditioning(J), 0.0)


def test_logging_sink_routes_structured_event(caplog):
    logger = logging.getLogger("jax_joints.test")
    event = singular_jacobian_event("elbow", AxisOrder.ZYX, [0.0, 1.5707963, 0.0], 1e-20, 2, 1)

    with caplog.at_level(logging.WARNING, logger="jax_joints.test"):
        LoggingSink(logger)(event)

    assert len(caplog.records) == 1
    record = caplog.records[0]
    assert record.levelno == logging.WARNING
    assert "elbow" in record.getMessage()
    assert "ZYX" in record.getMessage()
    assert record.extra_data["kind"] == "singular_jacobian"
    assert record.extra_data["severity"] == "WARNING"
    assert record.extra_data["joint"] == "elbow"
    assert record.extra_data["rank"] == 2
    assert record.extra_data["positions"] == [0.0, 1.5707963, 0.0]


def test_default_sink_logs_configuration_errors(caplog):
    joint = EulerJoint(name="knee", axis_order="XXX")
    with caplog.at_level(logging.ERROR, logger="jax_joints.diagnostics"):
        T = joint.transform(jnp.zeros(3))
        jax.effects_barrier()

    np.testing.assert_allclose(T, jnp.eye(4))
    errors = [r for r in caplog.records if r.levelno == logging.ERROR]
    assert len(errors) == 1
    assert "knee" in errors[0].getMessage()
    assert errors[0].extra_data["kind"] == "configuration_error"
    assert errors[0].extra_data["fallback"] == "identity"


def test_logging_sink_escapes_percent_in_detail(caplog):
    event = DiagnosticEvent(
        kind=EventKind.CONFIGURATION_ERROR, severity=logging.ERROR, joint="j",
        axis_order="X%sY", positions=(0.0, 0.0, 0.0), detail={"error": "bad %d value"},
    )
    with caplog.at_level(logging.ERROR, logger="jax_joints.diagnostics"):
        LoggingSink()(event)
    assert "bad %d value" in caplog.records[0].getMessage()


def test_null_sink():
    event = singular_jacobian_event("j", "XYZ", [0.0, 0.0, 0.0], 0.0, 2)
    assert NullSink()(event) is None
    assert "singular_index" not in event.detail


def test_event_as_dict():
    event = singular_jacobian_event("j", AxisOrder.XYZ, jnp.array([1.0, 2.0, 3.0]), 0.5, 3, 1)
    payload = event.as_dict()
    assert payload == {
        "kind": "singular_jacobian",
        "severity": "WARNING",
        "joint": "j",
        "axis_order": "XYZ",
        "positions": [1.0, 2.0, 3.0],
        "determinant": 0.5,
        "rank": 3,
        "singular_index": 1,
    }


@pytest.mark.parametrize("value, expected", [
    ("0", False), ("false", False), ("OFF", False), (" no ", False),
    ("1", True), ("true", True), ("yes", True), ("", True),
])
def test_env_switch(monkeypatch, value, expected):
    monkeypatch.setenv(DIAGNOSTICS_ENV_VAR, value)
    assert diagnostics_enabled_from_env() is expected
    assert DiagnosticsConfig().enabled is expected


def test_env_switch_unset(monkeypatch):
    monkeypatch.delenv(DIAGNOSTICS_ENV_VAR, raising=False)
    assert DiagnosticsConfig().enabled is True
    assert diagnostics_enabled_from_env(default=False) is False


def test_env_switch_disables_joint_check(monkeypatch):
    monkeypatch.setenv(DIAGNOSTICS_ENV_VAR, "0")
    events = []
    _evaluate(_joint(AxisOrder.ZYX, events), GIMBAL_LOCK)
    assert events == []


@pytest.mark.parametrize("threshold", [0.0, -1.0])
def test_threshold_must_be_positive(threshold):
    with pytest.raises(ValueError, match="singularity_threshold"):
        DiagnosticsConfig(singularity_threshold=threshold)
