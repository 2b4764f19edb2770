"""
Idle eviction policy.

Drops decrypted bookmarks from memory after a period without activity.
Each ``touch()`` restarts the countdown; when it expires the callback
(normally ``StoreCache.evict``) runs on a timer thread.
"""

import logging
import threading
from typing import Callable, Optional

logger = logging.getLogger(__name__)


class IdleEvictor:
    """Run ``evict`` after ``idle_seconds`` without a ``touch()``."""

    def __init__(self, evict: Callable[[], None], idle_seconds: float):
        if idle_seconds <= 0:
            raise ValueError(f"idle_seconds must be positive, got {idle_seconds!r}")
        self._evict = evict
        self.idle_seconds = idle_seconds
        self._timer: Optional[threading.Timer] = None
        self._lock = threading.Lock()

    @property
    def armed(self) -> bool:
        return self._timer is not None

    def touch(self) -> None:
        """Record activity and restart the idle countdown."""
        with self._lock:
            if self._timer is not None:
                self._timer.cancel()
            timer = threading.Timer(self.idle_seconds, self._fire)
            timer.daemon = True
            self._timer = timer
            timer.start()

    def cancel(self) -> None:
        """Stop the countdown without evicting."""
        with self._lock:
            if self._timer is not None:
                self._timer.cancel()
                self._timer = None

    def _fire(self) -> None:
        with self._lock:
            if self._timer is None or self._timer is not threading.current_thread():
                return  # superseded by a later touch()
            self._timer = None
        logger.info("Idle for %ss, clearing bookmark cache", self.idle_seconds)
        self._evict()
