"""Cancellation and deadline token threaded through root-certificate I/O."""

import threading
import time
from typing import Optional

from asn_verifier.exceptions import FetchCancelled


class Context:
    """
    Cancellation/deadline token for a single verification.

    A context without a timeout never expires on its own but can still be
    cancelled from another thread with ``cancel()``.
    """

    def __init__(self, timeout: Optional[float] = None):
        self._deadline: Optional[float] = None
        if timeout is not None:
            self._deadline = time.monotonic() + timeout
        self._cancelled = threading.Event()

    def cancel(self) -> None:
        self._cancelled.set()

    @property
    def cancelled(self) -> bool:
        return self._cancelled.is_set()

    @property
    def expired(self) -> bool:
        return self._deadline is not None and time.monotonic() >= self._deadline

    def remaining(self) -> Optional[float]:
        """Seconds left before the deadline, or None if there is no deadline."""
        if self._deadline is None:
            return None
        return max(0.0, self._deadline - time.monotonic())

    def check(self, partial: Optional[list] = None) -> None:
        """
        Raise FetchCancelled if the context is done.

        Args:
            partial: Results collected so far, attached to the exception
        """
        if self.cancelled:
            raise FetchCancelled("context cancelled", partial=partial)
        if self.expired:
            raise FetchCancelled("context deadline exceeded", partial=partial)


def background() -> Context:
    """Return a fresh context with no deadline."""
    return Context()
