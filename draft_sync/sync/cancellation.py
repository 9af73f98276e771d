"""
Cancellation scope for scheduled callbacks.

Every timer a league schedules is registered here, so tearing the league
down is a single cancel_all() call. No callback runs after cancellation.
"""

import logging
import threading
from typing import Callable, Optional, Set

logger = logging.getLogger(__name__)


class CancellationScope:
    """Owns a set of threading.Timer callbacks."""

    def __init__(self, name: str = ''):
        self.name = name
        self._timers: Set[threading.Timer] = set()
        self._cancelled = False
        self._lock = threading.Lock()

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    @property
    def pending_count(self) -> int:
        with self._lock:
            return len(self._timers)

    def schedule(self, delay_seconds: float, fn: Callable, *args) -> Optional[threading.Timer]:
        """
        Run fn(*args) after delay_seconds unless the scope is cancelled first.

        Returns:
            The started timer, or None if the scope is already cancelled
        """
        timer: Optional[threading.Timer] = None

        def fire():
            with self._lock:
                if self._cancelled or timer not in self._timers:
                    return
                self._timers.discard(timer)
            fn(*args)

        with self._lock:
            if self._cancelled:
                logger.debug(f"Scope {self.name} cancelled, not scheduling {getattr(fn, '__name__', fn)}")
                return None
            timer = threading.Timer(max(delay_seconds, 0), fire)
            timer.daemon = True
            self._timers.add(timer)

        timer.start()
        return timer

    def cancel(self, timer: threading.Timer) -> None:
        """Cancel one scheduled timer."""
        with self._lock:
            self._timers.discard(timer)
        timer.cancel()

    def cancel_all(self) -> None:
        """Cancel every pending timer and refuse new ones. Idempotent."""
        with self._lock:
            if self._cancelled:
                return
            self._cancelled = True
            timers = list(self._timers)
            self._timers.clear()

        for timer in timers:
            timer.cancel()

        if timers:
            logger.debug(f"Scope {self.name}: cancelled {len(timers)} pending timer(s)")
