"""
Stale-while-revalidate refresh orchestration.

Decides, per scrape, whether to serve the cached snapshot, fetch synchronously,
or serve stale data while a single background refresh runs.
"""

import logging
import threading
import time

from ..client.errors import FetchError
from ..client.opencost import OpenCostClient
from ..collector.metrics import ExporterMetrics
from ..models import CloudCostResponse
from .store import SnapshotCache

logger = logging.getLogger(__name__)


class RefreshOrchestrator:
    """Serves cached snapshots and keeps at most one background refresh in flight."""

    def __init__(
        self,
        client: OpenCostClient,
        cache: SnapshotCache,
        metrics: ExporterMetrics,
        fetch_timeout: float = 30.0,
    ):
        """
        Initialize the orchestrator.

        Args:
            client: OpenCost API client
            cache: Snapshot cache shared with readiness checks
            metrics: Self-observability metrics updated on every fetch
            fetch_timeout: Deadline in seconds for one fetch including retries
        """
        self.client = client
        self.cache = cache
        self.metrics = metrics
        self.fetch_timeout = fetch_timeout

        # Guards the in-flight flag only; the cache has its own lock
        self._refresh_lock = threading.Lock()
        self._refreshing = False
        self._refresh_thread: threading.Thread | None = None

    @property
    def refreshing(self) -> bool:
        with self._refresh_lock:
            return self._refreshing

    def obtain(self) -> CloudCostResponse | None:
        """
        Return the snapshot a scrape should observe.

        Fresh data is returned as-is. Stale data is returned immediately and a
        background refresh is started unless one is already running. On a miss
        the snapshot is fetched inline; None is returned if that fetch fails.
        """
        lookup = self.cache.get()
        if lookup.found:
            self.metrics.cache_hits.inc()
            if lookup.is_stale:
                self._start_background_refresh()
            return lookup.snapshot

        self.metrics.cache_misses.inc()
        return self.fetch_and_cache()

    def fetch_and_cache(self) -> CloudCostResponse | None:
        """Fetch a snapshot and store it; failures are logged and counted."""
        start = time.perf_counter()
        try:
            snapshot = self.client.fetch_cloud_costs(timeout=self.fetch_timeout)
        except FetchError as e:
            self.metrics.scrape_errors.inc()
            logger.error(f"Failed to fetch cloud costs: {e}")
            return None
        finally:
            self.metrics.scrape_duration.observe(time.perf_counter() - start)

        self.cache.set(snapshot)
        self.metrics.last_successful_scrape.set_to_current_time()
        logger.info(f"Fetched cloud cost snapshot with {snapshot.item_count} items")
        return snapshot

    def wait_for_refresh(self, timeout: float | None = None) -> bool:
        """
        Wait for the current background refresh to finish.

        Returns:
            True if no refresh is running when this returns
        """
        with self._refresh_lock:
            thread = self._refresh_thread
        if thread is not None:
            thread.join(timeout)
        return not self.refreshing

    def _start_background_refresh(self) -> None:
        with self._refresh_lock:
            if self._refreshing:
                return
            self._refreshing = True
            self._refresh_thread = threading.Thread(
                target=self._refresh, name="cloudcost-refresh", daemon=True
            )
            thread = self._refresh_thread

        logger.debug("Cached data is stale, starting background refresh")
        try:
            thread.start()
        except RuntimeError:
            with self._refresh_lock:
                self._refreshing = False
            raise

    def _refresh(self) -> None:
        try:
            self.fetch_and_cache()
        except Exception as e:
            # Nothing above this thread can handle the error
            logger.exception(f"Background refresh failed unexpectedly: {e}")
        finally:
            with self._refresh_lock:
                self._refreshing = False
