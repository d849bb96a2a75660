"""Cancellation token with an optional wall-clock deadline."""

from __future__ import annotations

import logging
import threading
import time
from collections.abc import Callable

logger = logging.getLogger(__name__)


class Deadline:
    """
    Shared cancellation signal for one aggregation call.

    Cancelled either explicitly via ``cancel()`` (from any thread) or
    implicitly once *timeout* seconds have elapsed.  ``remaining()`` feeds
    per-request HTTP timeouts; closers registered with ``add_closer()`` run on
    ``cancel()`` and tear down whatever in-flight queries are blocked on.
    """

    def __init__(
        self,
        timeout: float | None = None,
        *,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._clock = clock
        self._expires_at = clock() + timeout if timeout is not None else None
        self._cancelled = threading.Event()
        self._lock = threading.Lock()
        self._closers: list[Callable[[], object]] = []

    @classmethod
    def after(cls, seconds: float) -> Deadline:
        return cls(timeout=seconds)

    def add_closer(self, closer: Callable[[], object]) -> None:
        """Register *closer* to run on ``cancel()``; runs now if already cancelled."""
        with self._lock:
            if not self._cancelled.is_set():
                self._closers.append(closer)
                return
        self._run(closer)

    def cancel(self) -> None:
        """Signal cancellation and run each registered closer once."""
        with self._lock:
            self._cancelled.set()
            closers, self._closers = self._closers, []
        for closer in closers:
            self._run(closer)

    @staticmethod
    def _run(closer: Callable[[], object]) -> None:
        try:
            closer()
        except Exception:  # noqa: BLE001
            logger.warning("Deadline closer %r failed", closer, exc_info=True)

    @property
    def expired(self) -> bool:
        return self._expires_at is not None and self._clock() >= self._expires_at

    @property
    def cancelled(self) -> bool:
        return self._cancelled.is_set() or self.expired

    def remaining(self) -> float | None:
        """Seconds left, 0.0 once cancelled, or None when there is no time limit."""
        if self._cancelled.is_set():
            return 0.0
        if self._expires_at is None:
            return None
        return max(0.0, self._expires_at - self._clock())

    def __repr__(self) -> str:
        return f"Deadline(remaining={self.remaining()!r}, cancelled={self.cancelled})"
