"""Diagnostic events for joint kinematics.

The kinematics never print. When something is worth reporting, an
:class:`DiagnosticEvent` carrying the joint identifier and a snapshot of
its coordinates is handed to a sink. Formatting and routing are up to the
sink; the default :class:`LoggingSink` sends events through the standard
:mod:`logging` module with the structured payload attached under
``extra_data``, the same key a JSON-lines formatter would pick up.
"""

import enum
import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Optional, Sequence, Tuple

import jax
import jax.numpy as jnp
import numpy as np

Array = jax.Array

_logger = logging.getLogger(__name__)


class EventKind(str, enum.Enum):
    SINGULAR_JACOBIAN = "singular_jacobian"
    CONFIGURATION_ERROR = "configuration_error"


@dataclass(frozen=True)
class DiagnosticEvent:
    """One observation about a joint evaluation.

    Attributes:
        kind: What happened.
        severity: A :mod:`logging` level.
        joint: Name of the joint that produced the event.
        axis_order: Axis order the joint was configured with, as text.
        positions: Coordinate snapshot at the time of the event.
        detail: Kind-specific values (determinant, rank, ...).
    """

    kind: EventKind
    severity: int
    joint: str
    axis_order: str
    positions: Tuple[float, ...]
    detail: Dict[str, Any] = field(default_factory=dict)

    def as_dict(self) -> Dict[str, Any]:
        return {
            "kind": self.kind.value,
            "severity": logging.getLevelName(self.severity),
            "joint": self.joint,
            "axis_order": self.axis_order,
            "positions": list(self.positions),
            **self.detail,
        }


DiagnosticSink = Callable[[DiagnosticEvent], None]

_MESSAGES = {
    EventKind.SINGULAR_JACOBIAN: "Ill-conditioned Jacobian in joint [%s] (%s) at positions %s",
    EventKind.CONFIGURATION_ERROR: "Configuration error in joint [%s] (%s) at positions %s",
}


class LoggingSink:
    """Route events to a :class:`logging.Logger`.

    Args:
        logger: Target logger. Defaults to this module's logger.
    """

    def __init__(self, logger: Optional[logging.Logger] = None):
        self.logger = logger if logger is not None else _logger

    def __call__(self, event: DiagnosticEvent) -> None:
        message = _MESSAGES[event.kind]
        if event.detail:
            detail = ", ".join(f"{key}={value}" for key, value in event.detail.items())
            message += ": " + detail.replace("%", "%%")
        self.logger.log(
            event.severity,
            message,
            event.joint,
            event.axis_order,
            _format_positions(event.positions),
            extra={"extra_data": event.as_dict()},
        )


class NullSink:
    """Drop every event."""

    def __call__(self, event: DiagnosticEvent) -> None:
        return None


def _format_positions(positions: Sequence[float]) -> str:
    return "(" + ", ".join(f"{p:.6g}" for p in positions) + ")"


def _axis_order_text(axis_order) -> str:
    return getattr(axis_order, "value", str(axis_order))


def jacobian_conditioning(J: Array) -> Array:
    """Cheap rank proxy for a (6, n) Jacobian: det(J^T J)."""
    return jnp.linalg.det(jnp.matmul(J.T, J))


def singular_jacobian_event(
    joint: str,
    axis_order,
    positions,
    determinant: float,
    rank: int,
    singular_index: Optional[int] = None,
) -> DiagnosticEvent:
    detail = {"determinant": float(determinant), "rank": int(rank)}
    if singular_index is not None:
        detail["singular_index"] = singular_index
    return DiagnosticEvent(
        kind=EventKind.SINGULAR_JACOBIAN,
        severity=logging.WARNING,
        joint=joint,
        axis_order=_axis_order_text(axis_order),
        positions=tuple(float(p) for p in np.asarray(positions).ravel()),
        detail=detail,
    )


def configuration_error_event(joint: str, axis_order, positions, error: Exception, fallback: str) -> DiagnosticEvent:
    return DiagnosticEvent(
        kind=EventKind.CONFIGURATION_ERROR,
        severity=logging.ERROR,
        joint=joint,
        axis_order=_axis_order_text(axis_order),
        positions=tuple(float(p) for p in np.asarray(positions).ravel()),
        detail={"error": str(error), "fallback": fallback},
    )


__all__ = [
    "EventKind",
    "DiagnosticEvent",
    "DiagnosticSink",
    "LoggingSink",
    "NullSink",
    "jacobian_conditioning",
    "singular_jacobian_event",
    "configuration_error_event",
]
