import threading
from datetime import timedelta

import pytest

from conftest import NOW
from imd_reports.errors import DataFetchError
from imd_reports.services.refresh import SnapshotRefresher
from imd_reports.snapshots import SnapshotBatch


class Clock:
    def __init__(self, now):
        self.now = now

    def __call__(self):
        return self.now


def test_fresh_batch_is_reused():
    clock = Clock(NOW)
    refresher = SnapshotRefresher(fetch=lambda: SnapshotBatch(fetched_at=clock()), interval_seconds=300, clock=clock)

    first = refresher.get()
    clock.now += timedelta(seconds=299)
    second = refresher.get()

    assert first is second
    assert refresher.refresh_count == 1


def test_stale_batch_is_refetched():
    clock = Clock(NOW)
    refresher = SnapshotRefresher(fetch=lambda: SnapshotBatch(fetched_at=clock()), interval_seconds=300, clock=clock)

    first = refresher.get()
    clock.now += timedelta(seconds=300)
    second = refresher.get()

    assert first is not second
    assert refresher.refresh_count == 2


def test_force_refreshes_a_fresh_batch():
    refresher = SnapshotRefresher(fetch=SnapshotBatch, interval_seconds=300)

    refresher.get()
    refresher.get(force=True)

    assert refresher.refresh_count == 2


def test_overlapping_refresh_serves_previous_batch():
    started = threading.Event()
    release = threading.Event()
    calls = []

    def slow_fetch():
        calls.append(1)
        if len(calls) > 1:
            started.set()
            release.wait(5)
        return SnapshotBatch()

    refresher = SnapshotRefresher(fetch=slow_fetch, interval_seconds=300)
    old = refresher.get()

    worker = threading.Thread(target=refresher.get, kwargs={'force': True})
    worker.start()
    assert started.wait(5)

    assert refresher.is_refreshing
    assert refresher.get(force=True) is old

    release.set()
    worker.join(5)
    assert len(calls) == 2
    assert not refresher.is_refreshing


def test_failed_fetch_propagates_and_keeps_nothing():
    def failing_fetch():
        raise DataFetchError('Failed to fetch patients: connection refused')

    refresher = SnapshotRefresher(fetch=failing_fetch)

    with pytest.raises(DataFetchError):
        refresher.get()
    assert refresher.batch is None
    assert not refresher.is_refreshing


def test_init_app_reads_interval(app):
    refresher = app.extensions['snapshot_refresher']

    assert refresher.interval_seconds == 0
    assert refresher.is_stale()
