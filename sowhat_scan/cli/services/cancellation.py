"""Cooperative cancellation for long running scan loops."""

from __future__ import annotations

import threading
from typing import Callable, List

from .errors import ScanCancelledError


class CancellationToken:
    """Cancellation signal shared between a caller and one scan run.

    ``cancel()`` may be called from any thread. ``sleep()`` waits on the
    underlying event, so a pending sleep wakes the moment the token is
    cancelled instead of running out its interval.

    Usage:
        token = CancellationToken()
        threading.Timer(60.0, token.cancel).start()
        orchestrator.run_scan(request, cancel_token=token)
    """

    def __init__(self) -> None:
        self._event = threading.Event()
        self._lock = threading.Lock()
        self._callbacks: List[Callable[[], None]] = []

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def cancel(self) -> None:
        with self._lock:
            if self._event.is_set():
                return
            self._event.set()
            callbacks = list(self._callbacks)
            self._callbacks.clear()
        for callback in callbacks:
            callback()

    def add_callback(self, callback: Callable[[], None]) -> None:
        """Run ``callback`` once on cancellation, immediately if already cancelled."""
        with self._lock:
            if not self._event.is_set():
                self._callbacks.append(callback)
                return
        callback()

    def raise_if_cancelled(self) -> None:
        if self._event.is_set():
            raise ScanCancelledError()

    def sleep(self, seconds: float) -> None:
        """Wait ``seconds``, raising ScanCancelledError as soon as the token fires."""
        self.raise_if_cancelled()
        timeout = min(threading.TIMEOUT_MAX, max(0.0, seconds))
        if self._event.wait(timeout=timeout):
            raise ScanCancelledError()
