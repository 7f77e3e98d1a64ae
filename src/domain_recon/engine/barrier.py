"""
Completion barrier between the coordinator and its workers.

A wait-group: the coordinator increments before dispatching each worker,
every worker decrements exactly once when it finishes, and the coordinator
blocks in wait() until the count returns to zero.
"""

import logging
import threading

from domain_recon.errors import InterruptedWaitError

logger = logging.getLogger(__name__)


class CompletionBarrier:
    """Counter of in-flight workers guarded by a single condition variable."""

    def __init__(self):
        self._condition = threading.Condition()
        self._in_flight = 0

    @property
    def in_flight(self) -> int:
        with self._condition:
            return self._in_flight

    def increment(self) -> None:
        """Register one worker about to be dispatched."""
        with self._condition:
            self._in_flight += 1

    def decrement(self) -> None:
        """
        Signal that one worker has finished.

        Raises:
            RuntimeError: If called more times than increment()
        """
        with self._condition:
            if self._in_flight <= 0:
                raise RuntimeError("CompletionBarrier decremented below zero")
            self._in_flight -= 1
            if self._in_flight == 0:
                self._condition.notify_all()

    def wait(self, timeout: float | None = None) -> bool:
        """
        Block until every dispatched worker has signalled.

        Args:
            timeout: Maximum seconds to wait (None waits indefinitely)

        Returns:
            True if the count reached zero, False on timeout

        Raises:
            InterruptedWaitError: If the waiting thread is interrupted (Ctrl-C)
        """
        try:
            with self._condition:
                completed = self._condition.wait_for(
                    lambda: self._in_flight == 0, timeout=timeout
                )
                if not completed:
                    logger.debug(f"Barrier wait timed out with {self._in_flight} in flight")
                return completed
        except KeyboardInterrupt as e:
            raise InterruptedWaitError(
                f"Interrupted while waiting on {self._in_flight} worker(s)"
            ) from e
