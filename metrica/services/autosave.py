"""
Debounced autosave for free-text step notes.

Each edit restarts a quiescence timer; when it fires, the last buffered value
is flushed to the step id that was captured when the edit was made. The timer
belongs to one editing session and is cancelled when the user navigates to
another step or the session is torn down.

    saver = DebouncedAutosave(1.5, flush=lambda step_id, value: ...)
    saver.schedule(step.id, "texto")   # restarts the timer
    saver.flush_now()                  # navigation: write immediately
    saver.cancel()                     # discard pending write
"""

import logging
import threading

logger = logging.getLogger(__name__)


class DebouncedAutosave:
    """One pending write at a time, keyed by the captured step id."""

    def __init__(self, delay: float, flush, timer_factory=threading.Timer):
        self.delay = delay
        self._flush = flush
        self._timer_factory = timer_factory
        self._lock = threading.Lock()
        self._timer = None
        self._pending = None  # (step_id, value)

    @property
    def pending(self):
        with self._lock:
            return self._pending

    def schedule(self, step_id, value) -> None:
        """Buffer ``value`` for ``step_id`` and restart the quiescence timer."""
        with self._lock:
            if self._timer is not None:
                self._timer.cancel()
            self._pending = (step_id, value)
            self._timer = self._timer_factory(self.delay, self._fire)
            self._timer.daemon = True
            self._timer.start()

    def _take(self):
        with self._lock:
            pending, self._pending = self._pending, None
            if self._timer is not None:
                self._timer.cancel()
                self._timer = None
            return pending

    def _fire(self):
        pending = self._take()
        if pending is None:
            return
        step_id, value = pending
        try:
            self._flush(step_id, value)
        except Exception:
            # Timer thread: nothing upstream to propagate to.
            logger.exception("Autosave flush failed", extra={"step_id": step_id})

    def flush_now(self) -> bool:
        """Write the buffered value immediately. Returns False when nothing was pending."""
        pending = self._take()
        if pending is None:
            return False
        step_id, value = pending
        self._flush(step_id, value)
        return True

    def cancel(self) -> None:
        dropped = self._take()
        if dropped is not None:
            logger.debug("Autosave for step %s discarded", dropped[0])
