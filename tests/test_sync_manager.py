"""
Tests for SyncManager foreground/background reads.
"""
import threading
from datetime import timedelta

import pytest

from phasetrack.exceptions import NotFoundError
from phasetrack.models.base import Phase, ReadMode


@pytest.fixture
def sync(core):
    core.scope_project("acme")
    return core.sync


class TestForegroundRead:

    def test_returns_latest_state(self, core, sync):
        core.advance_phase("acme")
        snapshot = sync.foreground_read("acme")
        assert snapshot.current_substep == "market-research"
        assert snapshot.revision == 1

    def test_unknown_project(self, sync):
        with pytest.raises(NotFoundError):
            sync.foreground_read("ghost")

    def test_snapshot_consistent_with_state(self, core, sync):
        core.set_phase_and_substep("acme", Phase.DESIGN, "wireframing")
        snapshot = sync.foreground_read("acme")
        assert snapshot.phase_progress[Phase.DISCOVERY] == 100
        # wireframing is substep 2 of 6
        assert snapshot.phase_progress[Phase.DESIGN] == 16
        assert snapshot.overall_progress == 19

    def test_waits_for_in_flight_write(self, core, sync):
        result = {}
        reader = threading.Thread(target=lambda: result.setdefault("snap", sync.foreground_read("acme")))

        with core.locks.hold("acme"):
            reader.start()
            reader.join(timeout=0.2)
            assert reader.is_alive()

        reader.join(timeout=5)
        assert result["snap"].project_id == "acme"


class TestBackgroundRead:

    def test_reports_change_against_known_revision(self, core, sync):
        first = sync.background_read("acme")
        assert first.changed is True
        assert first.mode == ReadMode.BACKGROUND

        same = sync.background_read("acme", known_revision=first.snapshot.revision)
        assert same.changed is False
        assert same.snapshot == first.snapshot

        core.advance_phase("acme")
        moved = sync.background_read("acme", known_revision=first.snapshot.revision)
        assert moved.changed is True
        assert moved.snapshot.revision == first.snapshot.revision + 1

    def test_serves_last_snapshot_while_locked(self, core, sync):
        served = sync.foreground_read("acme")
        holder_ready = threading.Event()
        release = threading.Event()

        def hold_lock():
            with core.locks.hold("acme"):
                holder_ready.set()
                release.wait(5)

        holder = threading.Thread(target=hold_lock)
        holder.start()
        holder_ready.wait(5)
        try:
            result = sync.background_read("acme", known_revision=served.revision)
        finally:
            release.set()
            holder.join(5)

        assert result.from_cache is True
        assert result.snapshot == served
        assert result.changed is False

    def test_unknown_project(self, sync):
        with pytest.raises(NotFoundError):
            sync.background_read("ghost")

    def test_read_dispatches_on_mode(self, sync):
        assert sync.read("acme", ReadMode.BACKGROUND).project_id == "acme"
        assert sync.read("acme", "foreground").project_id == "acme"


class TestRefreshPolicy:

    def test_is_stale_after_poll_interval(self, sync, clock):
        served_at = clock()
        assert sync.is_stale(served_at) is False
        clock.advance(29)
        assert sync.is_stale(served_at) is False
        clock.advance(1)
        assert sync.is_stale(served_at) is True

    def test_next_poll_at(self, sync, clock):
        assert sync.next_poll_at(clock()) == clock() + timedelta(seconds=30)

    def test_forget_drops_cache(self, sync):
        sync.foreground_read("acme")
        sync.forget("acme")
        assert sync._cached("acme") is None
