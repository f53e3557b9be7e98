"""
Snapshot Refresher
Keeps the latest SnapshotBatch and re-fetches it once it goes stale
"""
import logging
import threading
from typing import Callable, Optional

from flask import current_app

from imd_reports.errors import DataFetchError
from imd_reports.snapshots import SnapshotBatch
from imd_reports.utils.date_filters import utc_now

logger = logging.getLogger(__name__)

EXTENSION_KEY = 'snapshot_refresher'


class SnapshotRefresher:
    """
    Holds one immutable SnapshotBatch and refreshes it after ``interval_seconds``.

    Only one fetch runs at a time. While it runs, other callers get the
    previous batch; a caller with no batch to fall back on waits for it.
    """

    def __init__(self, fetch: Optional[Callable[[], SnapshotBatch]] = None, interval_seconds: int = 300, clock=utc_now):
        if fetch is None:
            from imd_reports.services.fetchers import fetch_snapshot_batch
            fetch = fetch_snapshot_batch
        self._fetch = fetch
        self.interval_seconds = interval_seconds
        self._clock = clock
        self._batch = None
        self._in_flight = threading.Lock()
        self.refresh_count = 0

    def init_app(self, app):
        self.interval_seconds = app.config.get('REFRESH_INTERVAL_SECONDS', self.interval_seconds)
        app.extensions[EXTENSION_KEY] = self

    @property
    def batch(self) -> Optional[SnapshotBatch]:
        return self._batch

    @property
    def is_refreshing(self) -> bool:
        return self._in_flight.locked()

    def is_stale(self, batch: Optional[SnapshotBatch] = None) -> bool:
        batch = batch if batch is not None else self._batch
        if batch is None:
            return True
        return batch.age_seconds(self._clock()) >= self.interval_seconds

    def get(self, force: bool = False) -> SnapshotBatch:
        """Return a batch, refreshing it first when it is stale or ``force`` is set."""
        batch = self._batch
        if batch is not None and not force and not self.is_stale(batch):
            return batch

        if self._in_flight.acquire(blocking=False):
            try:
                return self._refresh()
            finally:
                self._in_flight.release()

        if batch is not None:
            logger.debug("Refresh in flight, serving batch fetched at %s", batch.fetched_at.isoformat())
            return batch

        # Nothing to serve yet: wait for the running refresh to finish
        with self._in_flight:
            pass
        if self._batch is None:
            raise DataFetchError("Snapshot refresh failed")
        return self._batch

    def _refresh(self) -> SnapshotBatch:
        logger.info("Refreshing report snapshots")
        batch = self._fetch()
        self._batch = batch
        self.refresh_count += 1
        return batch


def get_refresher() -> SnapshotRefresher:
    """The refresher registered on the current app."""
    return current_app.extensions[EXTENSION_KEY]
