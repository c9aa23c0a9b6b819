"""Watchdog: fixed-length session countdown that fires once at zero."""

import logging
import threading
from typing import Callable

logger = logging.getLogger(__name__)


class Watchdog:
    """
    Hard session timer. Started on connect, never extended by activity.

    Each tick lowers `remaining` by `tick` seconds and calls on_tick(remaining);
    when it reaches zero on_expire() is called once and the watchdog goes
    inactive. Only stop() followed by a new start() resets it.
    """

    def __init__(self, tick: float = 1.0) -> None:
        if tick <= 0:
            raise ValueError(f"tick must be positive, got {tick}")
        self._tick = tick
        self._lock = threading.Lock()
        self._cancel = threading.Event()
        self._thread: threading.Thread | None = None
        self._remaining = 0.0

    @property
    def tick(self) -> float:
        return self._tick

    @property
    def remaining(self) -> float:
        return self._remaining

    @property
    def active(self) -> bool:
        return self._thread is not None

    def start(
        self,
        duration: float,
        on_tick: Callable[[float], None] | None = None,
        on_expire: Callable[[], None] | None = None,
    ) -> bool:
        """Begin the countdown. Returns False (no-op) while a countdown is already active."""
        if duration <= 0:
            raise ValueError(f"duration must be positive, got {duration}")
        with self._lock:
            if self._thread is not None:
                return False
            self._cancel = threading.Event()
            self._remaining = float(duration)
            self._thread = threading.Thread(
                target=self._run,
                args=(self._cancel, on_tick, on_expire),
                name="pyxbm-watchdog",
                daemon=True,
            )
            self._thread.start()
        logger.debug("Watchdog started: %.1fs", duration)
        return True

    def stop(self) -> bool:
        """Cancel the countdown and zero the remaining time. Idempotent."""
        with self._lock:
            thread = self._thread
            self._thread = None
            self._cancel.set()
            self._remaining = 0.0
        if thread is None:
            return False
        if thread is not threading.current_thread():
            thread.join(self._tick + 5.0)
        logger.debug("Watchdog stopped")
        return True

    def _run(
        self,
        cancel: threading.Event,
        on_tick: Callable[[float], None] | None,
        on_expire: Callable[[], None] | None,
    ) -> None:
        remaining = self._remaining
        while not cancel.wait(self._tick):
            remaining -= self._tick
            # float steps: treat a sub-microsecond remainder as zero
            if remaining <= 1e-6:
                remaining = 0.0
            with self._lock:
                if cancel.is_set():
                    return
                self._remaining = remaining
            if on_tick is not None:
                try:
                    on_tick(remaining)
                except Exception:
                    logger.exception("Watchdog tick callback raised")
            if remaining == 0.0:
                break
        else:
            return
        with self._lock:
            if cancel.is_set():
                return
            self._thread = None
            self._remaining = 0.0
        logger.info("Watchdog expired")
        if on_expire is not None:
            try:
                on_expire()
            except Exception:
                logger.exception("Watchdog expire callback raised")
