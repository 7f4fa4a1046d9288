"""Core primitives: status enums, the readiness gate and outcome values."""

from autocert.core.readiness import ReadinessGate
from autocert.core.results import (
    AuthorizationFailure,
    AuthorizationOutcome,
    AuthorizationSuccess,
    FailureKind,
)

__all__ = [
    "AuthorizationFailure",
    "AuthorizationOutcome",
    "AuthorizationSuccess",
    "FailureKind",
    "ReadinessGate",
]
