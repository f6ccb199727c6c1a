"""
Cancellable periodic refresh driven by a single background thread
"""

import threading
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Callable, Optional

from logger import log


class SchedulerState(Enum):
    STOPPED = 'stopped'
    STARTING = 'starting'
    POLLING = 'polling'
    IDLE = 'idle'


class RefreshScheduler:
    """
    Runs ``task`` once immediately on ``start()`` and then every ``interval``
    seconds until ``stop()``.

    Each start opens a new run generation. A result (or error) is handed to
    ``on_result`` / ``on_error`` only while its generation is still the
    current one, so a poll that was in flight when ``stop()`` was called
    completes but is discarded. Ticks never overlap: the next wait only
    begins once the current poll has returned.

    ``guard`` is checked before every tick; when it returns False the tick is
    skipped (used to hold polling while logged out).
    """

    def __init__(self, name: str, interval: float, task: Callable[[], Any],
                 on_result: Optional[Callable[[Any], None]] = None,
                 on_error: Optional[Callable[[Exception], None]] = None,
                 guard: Optional[Callable[[], bool]] = None):
        self.name = name
        self.interval = interval
        self.task = task
        self.on_result = on_result
        self.on_error = on_error
        self.guard = guard

        self._lock = threading.RLock()
        self._generation = 0
        self._stop_event: Optional[threading.Event] = None
        self._wake_event: Optional[threading.Event] = None
        self._thread: Optional[threading.Thread] = None

        self.state = SchedulerState.STOPPED
        self.poll_count = 0
        self.last_poll_at: Optional[str] = None
        self.last_error: Optional[str] = None

    @property
    def running(self) -> bool:
        return self.state != SchedulerState.STOPPED

    def start(self):
        """Start polling; restarts cleanly if already running"""
        self.stop()
        with self._lock:
            self._generation += 1
            generation = self._generation
            self._stop_event = threading.Event()
            self._wake_event = threading.Event()
            self.state = SchedulerState.STARTING
            self._thread = threading.Thread(
                target=self._run,
                args=(generation, self._stop_event, self._wake_event),
                name=f"scheduler-{self.name}",
                daemon=True
            )
            self._thread.start()
        log(f"[DEBUG] Scheduler '{self.name}' started (every {self.interval}s)")

    def stop(self):
        """Stop issuing polls; results of an in-flight poll are discarded"""
        with self._lock:
            if self._stop_event is None:
                return
            self._generation += 1
            self._stop_event.set()
            self._wake_event.set()
            self._stop_event = None
            self._wake_event = None
            self._thread = None
            self.state = SchedulerState.STOPPED
        log(f"[DEBUG] Scheduler '{self.name}' stopped")

    def trigger(self):
        """Poll now without waiting for the rest of the interval"""
        with self._lock:
            if self._wake_event is not None:
                self._wake_event.set()

    def _is_current(self, generation: int) -> bool:
        return generation == self._generation

    def _set_state(self, generation: int, state: SchedulerState) -> bool:
        with self._lock:
            if not self._is_current(generation):
                return False
            self.state = state
            return True

    def _tick(self, generation: int):
        if self.guard is not None and not self.guard():
            log(f"[DEBUG] Scheduler '{self.name}': guard closed, skipping tick")
            return
        if not self._set_state(generation, SchedulerState.POLLING):
            return

        try:
            result = self.task()
        except Exception as e:
            # Keep the loop alive; the owner decides what an error means
            with self._lock:
                if not self._is_current(generation):
                    return
                self.last_error = str(e)
                log(f"[ERROR] Scheduler '{self.name}' poll failed: {e}")
                if self.on_error is not None:
                    self.on_error(e)
            return

        with self._lock:
            if not self._is_current(generation):
                log(f"[DEBUG] Scheduler '{self.name}': discarding result of cancelled poll")
                return
            self.poll_count += 1
            self.last_poll_at = datetime.now(timezone.utc).isoformat()
            self.last_error = None
            # Delivered under the lock so stop() cannot interleave with it
            if self.on_result is not None:
                try:
                    self.on_result(result)
                except Exception as e:
                    self.last_error = str(e)
                    log(f"[ERROR] Scheduler '{self.name}' could not apply result: {e}")
                    if self.on_error is not None:
                        self.on_error(e)

    def _run(self, generation: int, stop_event: threading.Event, wake_event: threading.Event):
        while not stop_event.is_set():
            self._tick(generation)
            if stop_event.is_set():
                break
            self._set_state(generation, SchedulerState.IDLE)
            wake_event.wait(timeout=self.interval)
            wake_event.clear()
