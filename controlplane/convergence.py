"""
Convergence Checker Module

The harness's only retry primitive. The simulated processes react to store
mutations asynchronously, so any assertion about their effects must poll.

- retry_up_to_duration(): exponential backoff polling bounded by a deadline
- ReadinessSignal: single-fire completion flag for process startup
"""

import logging
import threading
import time
from typing import Callable, Optional

from .errors import ConvergenceTimeoutError, NotReadyError

logger = logging.getLogger(__name__)

DEFAULT_INITIAL_WAIT = 0.05


def retry_up_to_duration(
    check: Callable[[], object],
    max_duration: float,
    initial_wait: float = DEFAULT_INITIAL_WAIT,
    *,
    sleep: Callable[[float], None] = time.sleep,
    clock: Callable[[], float] = time.monotonic,
) -> None:
    """
    Call check() with exponential backoff until it succeeds or time runs out.

    check() succeeds by returning and fails by raising. Before each call the
    checker sleeps for the current interval, which starts at initial_wait and
    doubles after every failure (no jitter). Once the next interval would reach
    past the deadline, it sleeps for whatever time remains and calls check()
    exactly once more. That final call therefore happens at or after the
    deadline, and only its outcome decides the result.

    Args:
        check: Predicate to poll; any Exception counts as failure.
        max_duration: Seconds from now until the deadline.
        initial_wait: First backoff interval in seconds.
        sleep: Sleep function, injectable for tests.
        clock: Monotonic clock, injectable for tests.

    Raises:
        ConvergenceTimeoutError: if the final call fails; carries its message
            verbatim and chains the original exception.
    """
    wait = initial_wait
    end = clock() + max_duration
    attempts = 0

    while clock() + wait < end:
        sleep(wait)
        attempts += 1
        try:
            check()
            logger.debug("check succeeded after %d attempt(s)", attempts)
            return
        except Exception as exc:
            logger.debug("attempt %d failed: %s", attempts, exc)
        wait *= 2

    remaining = end - clock()
    if remaining > 0:
        sleep(remaining)
    attempts += 1
    try:
        check()
    except Exception as exc:
        raise ConvergenceTimeoutError(
            str(exc),
            details={"attempts": attempts, "max_duration": max_duration},
        ) from exc
    logger.debug("check succeeded on final attempt %d", attempts)


class ReadinessSignal:
    """
    Single-fire completion signal.

    A background loop fires it once its first sync pass completes. The signal
    cannot be reset; a restarted process gets a new one.
    """

    def __init__(self, name: str):
        self.name = name
        self._event = threading.Event()

    def fire(self) -> None:
        if not self._event.is_set():
            logger.debug("%s ready", self.name)
        self._event.set()

    def is_set(self) -> bool:
        return self._event.is_set()

    def wait(self, timeout: Optional[float] = None) -> bool:
        return self._event.wait(timeout)

    def check(self) -> None:
        """Raise NotReadyError until fired. Usable as an eventually() predicate."""
        if not self._event.is_set():
            raise NotReadyError(f"{self.name} has not completed its initial sync")
