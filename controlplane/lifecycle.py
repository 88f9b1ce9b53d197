"""
Process Lifecycle Manager

Tracks NOT_STARTED -> RUNNING -> STOPPED for each simulated process kind,
independently. Misuse (double start, stop before start, double stop) raises
LifecycleError instead of leaking or silently ignoring a process. A stopped
process may be started again explicitly; nothing restarts automatically.
"""

import logging
import threading
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Optional

from .convergence import ReadinessSignal
from .errors import LifecycleError

logger = logging.getLogger(__name__)


class ProcessKind(str, Enum):
    AGENT = "agent"
    CONTROLLER = "controller"


class ProcessState(str, Enum):
    NOT_STARTED = "NOT_STARTED"
    RUNNING = "RUNNING"
    STOPPED = "STOPPED"


@dataclass
class ProcessHandle:
    """
    One running simulated process.

    Created on start, dropped on stop, never reused: restarting builds a new
    handle with a fresh cancel event and readiness signal.
    """
    kind: ProcessKind
    cancel: threading.Event
    teardown: Callable[[], None]
    ready: ReadinessSignal
    process: Any = None
    loop: Any = None

    @property
    def error(self) -> Optional[BaseException]:
        """The exception that crashed the process loop, if any."""
        return getattr(self.loop, "error", None)


class LifecycleManager:
    """Enforces single-start/single-stop discipline per process kind."""

    def __init__(self):
        self._states: dict[ProcessKind, ProcessState] = {
            kind: ProcessState.NOT_STARTED for kind in ProcessKind
        }
        self._handles: dict[ProcessKind, ProcessHandle] = {}

    def state(self, kind: ProcessKind) -> ProcessState:
        return self._states[kind]

    def handle(self, kind: ProcessKind) -> Optional[ProcessHandle]:
        return self._handles.get(kind)

    def running(self) -> list[ProcessKind]:
        return [kind for kind in ProcessKind if self._states[kind] == ProcessState.RUNNING]

    def start(self, kind: ProcessKind, launcher: Callable[[], ProcessHandle]) -> ProcessHandle:
        """
        Start a process via launcher() and record it as RUNNING.

        Raises:
            LifecycleError: if the process is already running.
            ValueError: if launcher() returns a handle for another kind; the
                stray process is torn down first.
        """
        if self._states[kind] == ProcessState.RUNNING:
            raise LifecycleError(
                f"start_{kind.value}() already called",
                details={"kind": kind.value, "state": self._states[kind].value},
            )
        handle = launcher()
        if handle.kind != kind:
            handle.cancel.set()
            handle.teardown()
            raise ValueError(f"launcher for {kind.value} returned a {handle.kind.value} handle")
        self._handles[kind] = handle
        self._states[kind] = ProcessState.RUNNING
        logger.info("%s started", kind.value)
        return handle

    def stop(self, kind: ProcessKind) -> None:
        """
        Cancel a running process, run its teardown and discard its handle.

        Raises:
            LifecycleError: if the process was never started or is already stopped.
        """
        handle = self._handles.pop(kind, None)
        if handle is None:
            state = self._states[kind]
            reason = "was never started" if state == ProcessState.NOT_STARTED else "is already stopped"
            raise LifecycleError(
                f"stop_{kind.value}() called but the {kind.value} {reason}",
                details={"kind": kind.value, "state": state.value},
            )
        handle.cancel.set()
        try:
            handle.teardown()
        finally:
            self._states[kind] = ProcessState.STOPPED
            logger.info("%s stopped", kind.value)

    def stop_all(self) -> None:
        """Stop every running process. The first teardown failure is re-raised after all stop."""
        first_error: Optional[BaseException] = None
        for kind in self.running():
            try:
                self.stop(kind)
            except Exception as exc:
                logger.exception("teardown of %s failed", kind.value)
                if first_error is None:
                    first_error = exc
        if first_error is not None:
            raise first_error
