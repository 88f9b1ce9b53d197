"""
Background sync loops for the simulated processes.

Each process is a daemon thread that repeatedly runs one sync pass over the
trackers until its cancel event is set. The first clean pass fires the
process's readiness signal.

Store conflicts (an object added or removed by the test between a read and a
write) are expected under concurrent access: the pass is logged and retried
on the next tick. Any other exception crashes the loop. A crashed process
stays crashed until the test stops and starts it again.
"""

import logging
import threading
from typing import Any, Callable, Optional

from .convergence import ReadinessSignal
from .errors import AlreadyExistsError, NotFoundError
from .lifecycle import ProcessHandle, ProcessKind

logger = logging.getLogger(__name__)


class SyncLoop:
    def __init__(
        self,
        name: str,
        sync_once: Callable[[], None],
        interval: float,
        cancel: threading.Event,
        ready: ReadinessSignal,
    ):
        self.name = name
        self._sync_once = sync_once
        self._interval = interval
        self._cancel = cancel
        self._ready = ready
        self._thread: Optional[threading.Thread] = None
        self.error: Optional[BaseException] = None
        self.passes = 0

    def start(self) -> None:
        if self._thread is not None:
            raise RuntimeError(f"{self.name} loop already started")
        self._thread = threading.Thread(target=self._run, name=self.name, daemon=True)
        self._thread.start()

    def stop(self, timeout: float) -> None:
        self._cancel.set()
        if self._thread is None:
            return
        self._thread.join(timeout=timeout)
        if self._thread.is_alive():
            logger.warning("%s did not exit within %.1fs", self.name, timeout)

    def is_alive(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def _run(self) -> None:
        while not self._cancel.is_set():
            try:
                self._sync_once()
            except (AlreadyExistsError, NotFoundError) as exc:
                logger.warning("%s: store changed during sync, retrying: %s", self.name, exc)
            except Exception as exc:
                logger.exception("%s crashed", self.name)
                self.error = exc
                return
            else:
                self.passes += 1
                self._ready.fire()
            self._cancel.wait(self._interval)


def launch(
    kind: ProcessKind,
    process: Any,
    sync_once: Callable[[], None],
    interval: float,
    stop_timeout: float,
    on_teardown: Optional[Callable[[], None]] = None,
) -> ProcessHandle:
    """Start a SyncLoop thread for a process and wrap it in a ProcessHandle."""
    cancel = threading.Event()
    ready = ReadinessSignal(f"{kind.value} sync")
    loop = SyncLoop(f"{kind.value}-sync", sync_once, interval, cancel, ready)

    def teardown() -> None:
        loop.stop(stop_timeout)
        if on_teardown is not None:
            on_teardown()

    loop.start()
    return ProcessHandle(
        kind=kind,
        cancel=cancel,
        teardown=teardown,
        ready=ready,
        process=process,
        loop=loop,
    )
