"""Shared sidebar collapse state with a fixed transition window.

Every chart on a page reads the same ``SidebarSyncStore`` so chart animation
timing follows the sidebar's CSS transition instead of each chart picking its
own delay. A toggle:

1. flips ``is_collapsed`` and opens the transition window (``is_transitioning``
   with a fresh ``transition_start``),
2. notifies every subscriber before returning,
3. persists the collapsed flag after a short debounce, and
4. closes the window exactly ``transition_ms`` later. A newer toggle cancels
   the pending close, so only the last toggle ends the transition.

Timers run on ``threading.Timer`` by default. Tests inject a scheduler and a
clock to drive time by hand.
"""

from __future__ import annotations

import json
import logging
import threading
import time
from dataclasses import dataclass, replace
from typing import Callable, Iterator, Optional, Protocol

from config import (
    SIDEBAR_DEFAULT_COLLAPSED,
    SIDEBAR_PERSIST_DEBOUNCE_MS,
    SIDEBAR_STORAGE_KEY,
    SIDEBAR_TRANSITION_MS,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SidebarState:
    is_collapsed: bool
    is_transitioning: bool = False
    transition_start: Optional[float] = None  # clock() seconds


class Storage(Protocol):
    def get(self, key: str) -> Optional[str]: ...
    def set(self, key: str, value: str) -> None: ...


class TimerHandle(Protocol):
    def cancel(self) -> None: ...


Scheduler = Callable[[float, Callable[[], None]], TimerHandle]
Subscriber = Callable[[SidebarState], None]


def thread_scheduler(delay: float, fn: Callable[[], None]) -> threading.Timer:
    """Run fn once after delay seconds on a daemon timer thread."""
    timer = threading.Timer(delay, fn)
    timer.daemon = True
    timer.start()
    return timer


class SidebarSyncStore:
    """Observable collapsed/transitioning state for one browser session."""

    def __init__(
        self,
        storage: Optional[Storage] = None,
        *,
        transition_ms: int = SIDEBAR_TRANSITION_MS,
        persist_debounce_ms: int = SIDEBAR_PERSIST_DEBOUNCE_MS,
        storage_key: str = SIDEBAR_STORAGE_KEY,
        default_collapsed: bool = SIDEBAR_DEFAULT_COLLAPSED,
        clock: Callable[[], float] = time.monotonic,
        scheduler: Optional[Scheduler] = None,
    ):
        if transition_ms < 0 or persist_debounce_ms < 0:
            raise ValueError("transition_ms and persist_debounce_ms must be >= 0")
        self.transition_ms = transition_ms
        self.persist_debounce_ms = persist_debounce_ms
        self.storage_key = storage_key
        self.default_collapsed = default_collapsed

        self._storage = storage
        self._clock = clock
        self._schedule = scheduler or thread_scheduler
        self._lock = threading.RLock()
        self._subscribers: list[Subscriber] = []

        self._transition_timer: Optional[TimerHandle] = None
        self._transition_token: Optional[object] = None
        self._persist_timer: Optional[TimerHandle] = None
        self._pending_persist: Optional[bool] = None

        self._state = SidebarState(is_collapsed=self._load_collapsed())

    # -- read side ---------------------------------------------------------

    @property
    def state(self) -> SidebarState:
        with self._lock:
            return self._state

    @property
    def is_collapsed(self) -> bool:
        return self.state.is_collapsed

    @property
    def is_transitioning(self) -> bool:
        return self.state.is_transitioning

    def get_transition_progress(self) -> float:
        """0..1 through the current transition; 1.0 when idle."""
        state = self.state
        if not state.is_transitioning or state.transition_start is None:
            return 1.0
        if self.transition_ms == 0:
            return 1.0
        elapsed_ms = (self._clock() - state.transition_start) * 1000
        return max(0.0, min(1.0, elapsed_ms / self.transition_ms))

    def frames(self, fps: int = 60, sleep: Callable[[float], None] = time.sleep) -> Iterator[float]:
        """Yield transition progress once per frame until the transition ends.

        Always yields at least once. Closing the generator stops the loop.
        """
        if fps <= 0:
            raise ValueError("fps must be positive")
        interval = 1.0 / fps
        while True:
            progress = self.get_transition_progress()
            yield progress
            if progress >= 1.0 or not self.is_transitioning:
                return
            sleep(interval)

    # -- subscriptions -----------------------------------------------------

    def subscribe(self, callback: Subscriber) -> Callable[[], None]:
        """Register callback for every state change. Returns an unsubscribe function."""
        with self._lock:
            self._subscribers.append(callback)

        def unsubscribe():
            with self._lock:
                if callback in self._subscribers:
                    self._subscribers.remove(callback)

        return unsubscribe

    def _notify(self, state: SidebarState):
        # Called with the lock held so every subscriber sees changes in order
        for callback in list(self._subscribers):
            try:
                callback(state)
            except Exception:
                logger.exception("Sidebar subscriber %r failed", callback)

    # -- mutations ---------------------------------------------------------

    def toggle(self) -> SidebarState:
        with self._lock:
            return self._apply(not self._state.is_collapsed)

    def set_state(self, collapsed: bool) -> SidebarState:
        with self._lock:
            return self._apply(bool(collapsed))

    def _apply(self, collapsed: bool) -> SidebarState:
        if self._transition_timer is not None:
            self._transition_timer.cancel()

        token = object()
        self._transition_token = token
        self._state = SidebarState(
            is_collapsed=collapsed,
            is_transitioning=True,
            transition_start=self._clock(),
        )
        self._transition_timer = self._schedule(
            self.transition_ms / 1000, lambda: self._end_transition(token),
        )
        self._schedule_persist(collapsed)
        logger.debug("Sidebar %s", "collapsed" if collapsed else "expanded")

        self._notify(self._state)
        return self._state

    def _end_transition(self, token: object):
        with self._lock:
            # A newer toggle owns the window now
            if token is not self._transition_token:
                return
            self._transition_timer = None
            self._transition_token = None
            self._state = replace(self._state, is_transitioning=False)
            self._notify(self._state)

    # -- persistence -------------------------------------------------------

    def _load_collapsed(self) -> bool:
        if self._storage is None:
            return self.default_collapsed
        try:
            raw = self._storage.get(self.storage_key)
        except Exception as e:
            logger.warning("Sidebar state not loaded, using default: %s", e)
            return self.default_collapsed
        if raw is None:
            return self.default_collapsed
        try:
            value = json.loads(raw)
        except ValueError:
            logger.warning("Ignoring unreadable sidebar state %r", raw)
            return self.default_collapsed
        if not isinstance(value, bool):
            logger.warning("Ignoring non-boolean sidebar state %r", raw)
            return self.default_collapsed
        return value

    def _schedule_persist(self, collapsed: bool):
        self._pending_persist = collapsed
        if self._persist_timer is not None:
            self._persist_timer.cancel()
        self._persist_timer = self._schedule(self.persist_debounce_ms / 1000, self.flush)

    def flush(self):
        """Write any pending collapsed value now."""
        with self._lock:
            value = self._pending_persist
            self._pending_persist = None
            if self._persist_timer is not None:
                self._persist_timer.cancel()
                self._persist_timer = None
        if value is None or self._storage is None:
            return
        try:
            self._storage.set(self.storage_key, json.dumps(value))
        except Exception as e:
            logger.warning("Sidebar state not persisted: %s", e)

    def close(self):
        """Cancel timers and flush. The state stays readable."""
        with self._lock:
            if self._transition_timer is not None:
                self._transition_timer.cancel()
                self._transition_timer = None
            self._transition_token = None
            if self._state.is_transitioning:
                self._state = replace(self._state, is_transitioning=False)
                self._notify(self._state)
        self.flush()
