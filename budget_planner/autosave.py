"""Debounced persistence for the budget manager.

:class:`SaveCoalescer` receives "dirty" notifications and calls the
supplied ``flush`` callback once no further notification has arrived
for ``delay`` seconds.  Each notification restarts the countdown.
"""

from __future__ import annotations

import logging
import threading
from functools import partial
from typing import Callable, Optional

from .config import get_save_delay

logger = logging.getLogger(__name__)

TimerFactory = Callable[[float, Callable[[], None]], threading.Timer]


class SaveCoalescer:
    """Coalesces bursts of changes into a single delayed save."""

    def __init__(
        self,
        flush: Callable[[], None],
        delay: Optional[float] = None,
        timer_factory: TimerFactory = threading.Timer,
    ) -> None:
        self._flush = flush
        self.delay = get_save_delay() if delay is None else max(0.0, delay)
        self._timer_factory = timer_factory
        self._timer: Optional[threading.Timer] = None
        self._generation = 0
        self._lock = threading.Lock()

    @property
    def pending(self) -> bool:
        with self._lock:
            return self._timer is not None

    def notify(self) -> None:
        """Restart the quiet period; the save runs when it elapses."""
        with self._lock:
            if self._timer is not None:
                self._timer.cancel()
            self._generation += 1
            timer = self._timer_factory(self.delay, partial(self._on_timer, self._generation))
            timer.daemon = True
            self._timer = timer
            timer.start()

    def cancel(self) -> bool:
        """Drop a pending save.  Returns ``True`` if one was pending."""
        with self._lock:
            timer, self._timer = self._timer, None
        if timer is None:
            return False
        timer.cancel()
        return True

    def flush(self) -> None:
        """Save immediately, cancelling any pending countdown.

        Errors raised by the callback propagate to the caller.
        """
        self.cancel()
        self._flush()

    def _on_timer(self, generation: int) -> None:
        with self._lock:
            if self._timer is None or generation != self._generation:
                return
            self._timer = None
        try:
            self._flush()
        except Exception:
            logger.exception("Auto-save failed")
