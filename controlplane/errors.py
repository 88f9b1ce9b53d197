"""
Error taxonomy for the control-plane harness.

Every condition listed here is fatal to the calling test: nothing is retried
or recovered automatically. The one expected, non-fatal outcome (a schema
variant not recognizing a kind) is not an exception at all; see
SchemaDecoder.decode.
"""

from typing import Any


class HarnessError(Exception):
    """
    Base exception for harness failures.

    Carries structured error information for observability:
    - code: error category (e.g., 'NOT_FOUND', 'NO_ACCEPTOR')
    - message: human-readable error description
    - details: optional dict with debug information
    """

    code = "HARNESS_ERROR"

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        self.message = message
        self.details = details or {}
        super().__init__(f"{self.code}: {message}")


class MalformedObjectError(HarnessError):
    """Payload is structurally invalid for a variant that should recognize it."""

    code = "DECODE_MALFORMED"


class AlreadyExistsError(HarnessError):
    """Add was attempted for a coordinate that already exists."""

    code = "ALREADY_EXISTS"


class NotFoundError(HarnessError):
    """Lookup, update or delete of a coordinate that does not exist."""

    code = "NOT_FOUND"


class NoAcceptorError(HarnessError):
    """No registered schema variant accepted a mutated object."""

    code = "NO_ACCEPTOR"


class ConvergenceTimeoutError(HarnessError):
    """A predicate never succeeded before its deadline."""

    code = "CONVERGENCE_TIMEOUT"


class LifecycleError(HarnessError):
    """Double start, double stop, or stop before start."""

    code = "LIFECYCLE_MISUSE"


class UnknownVersionError(HarnessError):
    """No mocked API resource list exists for the requested k8s version."""

    code = "UNKNOWN_VERSION"


class TaskFailedError(HarnessError):
    """A single-shot task passed to ControlPlaneTest.execute failed."""

    code = "TASK_FAILED"


class NotReadyError(HarnessError):
    """A readiness signal has not fired yet."""

    code = "NOT_READY"
