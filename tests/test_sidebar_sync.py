"""Tests for the shared sidebar collapse/transition store."""

from __future__ import annotations

import logging
import time

import pytest

from state.storage import MemoryStorage, StorageUnavailable


class _Clock:
    def __init__(self, now: float = 1000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now


class _Timer:
    def __init__(self, due: float, fn):
        self.due = due
        self.fn = fn
        self.cancelled = False

    def cancel(self):
        self.cancelled = True


class _ManualScheduler:
    """Scheduler whose timers fire only when the test advances the clock."""

    def __init__(self, clock: _Clock):
        self.clock = clock
        self.timers: list[_Timer] = []

    def __call__(self, delay: float, fn) -> _Timer:
        timer = _Timer(self.clock.now + delay, fn)
        self.timers.append(timer)
        return timer

    def pending(self) -> list[_Timer]:
        return [t for t in self.timers if not t.cancelled]

    def advance(self, seconds: float):
        target = self.clock.now + seconds
        while True:
            due = [t for t in self.pending() if t.due <= target + 1e-9]
            if not due:
                break
            timer = min(due, key=lambda t: t.due)
            self.timers.remove(timer)
            self.clock.now = max(self.clock.now, timer.due)
            timer.fn()
        self.clock.now = target


class _FailingStorage:
    def __init__(self):
        self.set_calls = 0

    def get(self, key):
        raise StorageUnavailable("storage disabled")

    def set(self, key, value):
        self.set_calls += 1
        raise StorageUnavailable("quota exceeded")


class _BrokenStorage:
    """Backend that fails with ordinary exceptions, not StorageUnavailable."""

    def __init__(self):
        self.set_calls = 0

    def get(self, key):
        raise PermissionError("storage disabled")

    def set(self, key, value):
        self.set_calls += 1
        raise RuntimeError("quota exceeded")


class _RecordingStorage(MemoryStorage):
    def __init__(self, initial=None):
        super().__init__(initial)
        self.writes: list[tuple[str, str]] = []

    def set(self, key, value):
        self.writes.append((key, value))
        super().set(key, value)


@pytest.fixture
def clock():
    return _Clock()


@pytest.fixture
def scheduler(clock):
    return _ManualScheduler(clock)


@pytest.fixture
def make_store(clock, scheduler):
    from state.sidebar_sync import SidebarSyncStore

    def _make(storage=None, **kwargs):
        kwargs.setdefault("transition_ms", 300)
        kwargs.setdefault("persist_debounce_ms", 100)
        kwargs.setdefault("storage_key", "sidebar-collapsed")
        kwargs.setdefault("default_collapsed", False)
        return SidebarSyncStore(storage, clock=clock, scheduler=scheduler, **kwargs)

    return _make


# ---------------------------------------------------------------------------
# Initial state
# ---------------------------------------------------------------------------

class TestInitialState:
    def test_defaults_to_expanded(self, make_store):
        store = make_store()
        assert store.is_collapsed is False
        assert store.is_transitioning is False
        assert store.state.transition_start is None

    def test_loads_persisted_value(self, make_store):
        store = make_store(MemoryStorage({"sidebar-collapsed": "true"}))
        assert store.is_collapsed is True

    def test_missing_key_uses_default(self, make_store):
        store = make_store(MemoryStorage(), default_collapsed=True)
        assert store.is_collapsed is True

    @pytest.mark.parametrize("raw", ["not json", "1", '"true"', "null"])
    def test_unreadable_value_uses_default(self, make_store, raw, caplog):
        with caplog.at_level(logging.WARNING, logger="state.sidebar_sync"):
            store = make_store(MemoryStorage({"sidebar-collapsed": raw}))
        assert store.is_collapsed is False
        assert "Ignoring" in caplog.text

    def test_storage_unavailable_on_load(self, make_store, caplog):
        with caplog.at_level(logging.WARNING, logger="state.sidebar_sync"):
            store = make_store(_FailingStorage())
        assert store.is_collapsed is False
        assert "not loaded" in caplog.text

    def test_negative_durations_rejected(self, make_store):
        with pytest.raises(ValueError):
            make_store(transition_ms=-1)
        with pytest.raises(ValueError):
            make_store(persist_debounce_ms=-5)


# ---------------------------------------------------------------------------
# toggle / set_state and the transition window
# ---------------------------------------------------------------------------

class TestTransitionWindow:
    def test_toggle_flips_and_starts_transition(self, make_store, clock):
        store = make_store()
        state = store.toggle()
        assert state.is_collapsed is True
        assert state.is_transitioning is True
        assert state.transition_start == clock.now
        assert store.state == state

    def test_transition_ends_after_300ms(self, make_store, scheduler):
        store = make_store()
        store.toggle()
        scheduler.advance(0.299)
        assert store.is_transitioning is True
        scheduler.advance(0.001)
        assert store.is_transitioning is False
        assert store.is_collapsed is True

    def test_rapid_toggles_only_last_timer_fires(self, make_store, scheduler):
        store = make_store()
        store.toggle()
        scheduler.advance(0.2)
        store.toggle()
        # the first toggle's window would have closed here
        scheduler.advance(0.15)
        assert store.is_transitioning is True
        scheduler.advance(0.15)
        assert store.is_transitioning is False
        assert store.is_collapsed is False

    def test_superseded_timer_is_cancelled(self, make_store, scheduler):
        store = make_store()
        store.toggle()
        first = scheduler.pending()[0]
        store.toggle()
        assert first.cancelled is True

    def test_stale_end_is_ignored(self, make_store, scheduler):
        store = make_store()
        store.toggle()
        stale = scheduler.pending()[0]
        store.toggle()
        stale.fn()
        assert store.is_transitioning is True

    def test_set_state(self, make_store, scheduler):
        store = make_store()
        state = store.set_state(True)
        assert state.is_collapsed is True
        assert state.is_transitioning is True
        scheduler.advance(0.3)
        assert store.is_transitioning is False

    def test_set_state_same_value_still_opens_window(self, make_store):
        store = make_store()
        state = store.set_state(False)
        assert state.is_collapsed is False
        assert state.is_transitioning is True

    def test_zero_transition(self, make_store, scheduler):
        store = make_store(transition_ms=0)
        store.toggle()
        assert store.get_transition_progress() == 1.0
        scheduler.advance(0)
        assert store.is_transitioning is False


class TestTransitionProgress:
    def test_idle_progress_is_complete(self, make_store):
        assert make_store().get_transition_progress() == 1.0

    def test_progress_tracks_elapsed_time(self, make_store, scheduler):
        store = make_store()
        store.toggle()
        assert store.get_transition_progress() == 0.0
        scheduler.advance(0.15)
        assert store.get_transition_progress() == pytest.approx(0.5)
        scheduler.advance(0.075)
        assert store.get_transition_progress() == pytest.approx(0.75)

    def test_progress_clamped(self, make_store, clock):
        store = make_store()
        store.toggle()
        # timer not fired yet but the clock has run past the window
        clock.now += 1.0
        assert store.get_transition_progress() == 1.0

    def test_frames_run_until_done(self, make_store, scheduler):
        store = make_store()
        store.toggle()
        frames = list(store.frames(fps=20, sleep=scheduler.advance))
        assert frames[0] == 0.0
        assert frames[-1] == pytest.approx(1.0)
        assert frames == sorted(frames)
        assert store.is_transitioning is False

    def test_frames_when_idle_yields_once(self, make_store):
        assert list(make_store().frames(sleep=lambda s: None)) == [1.0]

    def test_frames_rejects_bad_fps(self, make_store):
        with pytest.raises(ValueError):
            next(make_store().frames(fps=0))


# ---------------------------------------------------------------------------
# Subscribers
# ---------------------------------------------------------------------------

class TestSubscribers:
    def test_notified_synchronously_on_toggle(self, make_store):
        store = make_store()
        seen = []
        store.subscribe(seen.append)
        returned = store.toggle()
        assert seen == [returned]

    def test_all_subscribers_see_same_state(self, make_store):
        store = make_store()
        a, b = [], []
        store.subscribe(a.append)
        store.subscribe(b.append)
        store.toggle()
        assert a == b
        assert len(a) == 1

    def test_notified_when_transition_ends(self, make_store, scheduler):
        store = make_store()
        seen = []
        store.subscribe(seen.append)
        store.toggle()
        scheduler.advance(0.3)
        assert [s.is_transitioning for s in seen] == [True, False]

    def test_unsubscribe(self, make_store):
        store = make_store()
        seen = []
        unsubscribe = store.subscribe(seen.append)
        unsubscribe()
        unsubscribe()
        store.toggle()
        assert seen == []

    def test_failing_subscriber_is_logged(self, make_store, caplog):
        store = make_store()
        seen = []

        def boom(state):
            raise RuntimeError("boom")

        store.subscribe(boom)
        store.subscribe(seen.append)
        with caplog.at_level(logging.ERROR, logger="state.sidebar_sync"):
            store.toggle()
        assert len(seen) == 1
        assert "subscriber" in caplog.text

    def test_subscriber_can_read_store(self, make_store):
        store = make_store()
        reads = []
        store.subscribe(lambda state: reads.append(store.is_collapsed))
        store.toggle()
        assert reads == [True]


# ---------------------------------------------------------------------------
# Persistence
# ---------------------------------------------------------------------------

class TestPersistence:
    def test_persist_is_debounced(self, make_store, scheduler):
        storage = _RecordingStorage()
        store = make_store(storage)
        store.toggle()
        assert storage.writes == []
        scheduler.advance(0.1)
        assert storage.writes == [("sidebar-collapsed", "true")]

    def test_rapid_toggles_coalesce_to_one_write(self, make_store, scheduler):
        storage = _RecordingStorage()
        store = make_store(storage)
        for _ in range(5):
            store.toggle()
            scheduler.advance(0.02)
        scheduler.advance(0.1)
        assert storage.writes == [("sidebar-collapsed", "true")]

    def test_round_trip_through_new_store(self, make_store, scheduler):
        storage = MemoryStorage()
        make_store(storage).set_state(True)
        scheduler.advance(0.5)
        assert make_store(storage).is_collapsed is True

    def test_flush_writes_immediately(self, make_store):
        storage = _RecordingStorage()
        store = make_store(storage)
        store.toggle()
        store.flush()
        assert storage.writes == [("sidebar-collapsed", "true")]
        store.flush()
        assert len(storage.writes) == 1

    def test_write_failure_is_logged_not_raised(self, make_store, scheduler, caplog):
        storage = _FailingStorage()
        store = make_store(storage)
        with caplog.at_level(logging.WARNING, logger="state.sidebar_sync"):
            store.toggle()
            scheduler.advance(0.5)
        assert storage.set_calls == 1
        assert store.is_collapsed is True
        assert "not persisted" in caplog.text

    def test_no_storage(self, make_store, scheduler):
        store = make_store(None)
        store.toggle()
        scheduler.advance(0.5)
        assert store.is_collapsed is True

    def test_close_cancels_and_flushes(self, make_store, scheduler):
        storage = _RecordingStorage()
        store = make_store(storage)
        seen = []
        store.subscribe(seen.append)
        store.toggle()
        store.close()
        assert store.is_transitioning is False
        assert storage.writes == [("sidebar-collapsed", "true")]
        assert scheduler.pending() == []
        assert seen[-1] == store.state
        assert seen[-1].is_transitioning is False

    def test_close_when_idle_does_not_notify(self, make_store, scheduler):
        store = make_store()
        store.toggle()
        scheduler.advance(0.5)
        seen = []
        store.subscribe(seen.append)
        store.close()
        assert seen == []

    def test_plain_exception_on_load_uses_default(self, make_store, caplog):
        with caplog.at_level(logging.WARNING, logger="state.sidebar_sync"):
            store = make_store(_BrokenStorage(), default_collapsed=True)
        assert store.is_collapsed is True
        assert "not loaded" in caplog.text

    def test_plain_exception_on_write_is_logged(self, make_store, caplog):
        storage = _BrokenStorage()
        store = make_store(storage)
        with caplog.at_level(logging.WARNING, logger="state.sidebar_sync"):
            store.toggle()
            store.flush()
            store.toggle()
            store.close()
        assert storage.set_calls == 2
        assert "quota exceeded" in caplog.text


# ---------------------------------------------------------------------------
# Real timers
# ---------------------------------------------------------------------------

class TestThreadTimers:
    def test_transition_clears_after_real_300ms(self):
        import threading

        from state.sidebar_sync import SidebarSyncStore

        storage = MemoryStorage()
        store = SidebarSyncStore(storage, transition_ms=300, persist_debounce_ms=100)
        ended = threading.Event()
        ended_at = []

        def on_change(state):
            if not state.is_transitioning:
                ended_at.append(time.monotonic())
                ended.set()

        store.subscribe(on_change)
        started_at = time.monotonic()
        store.toggle()
        assert store.is_transitioning is True

        assert ended.wait(1.0)
        elapsed_ms = (ended_at[0] - started_at) * 1000
        assert 300 <= elapsed_ms <= 320
        assert store.is_transitioning is False

        time.sleep(0.05)
        assert storage.get("sidebar-collapsed") == "true"
        store.close()

    def test_rapid_real_toggles_end_once(self):
        import threading

        from state.sidebar_sync import SidebarSyncStore

        store = SidebarSyncStore(MemoryStorage(), transition_ms=300, persist_debounce_ms=100)
        ends = []
        ended = threading.Event()

        def on_change(state):
            if not state.is_transitioning:
                ends.append(time.monotonic())
                ended.set()

        store.subscribe(on_change)
        store.toggle()
        time.sleep(0.1)
        last_toggle = time.monotonic()
        store.toggle()

        assert ended.wait(1.0)
        time.sleep(0.3)
        assert len(ends) == 1
        assert (ends[0] - last_toggle) * 1000 >= 300
        store.close()
