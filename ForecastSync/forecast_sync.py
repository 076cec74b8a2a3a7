"""Forecast synchronizer: serve cached records, refresh them in the background, publish every state."""
import logging
import threading
import time
from concurrent.futures import Future, ThreadPoolExecutor
from contextlib import contextmanager
from typing import Callable, Dict, List, Optional

from forecast_provider import ForecastProviderBase, ForecastProviderError
from forecast_record import ForecastRecord, map_record
from forecast_resource import Error, FailureDetail, Loading, Resource, STORE, Success, TRANSPORT
from freshness import FreshnessPolicy
from record_store import RecordStoreBase, StoreError
from result_publisher import ResultPublisher, Subscription
from sync_settings import SyncSettings


def current_time() -> int:
    return int(time.time())


class SyncTask:
    """
    Handle for one ``synchronize`` call.

    ``cancel`` stops any further emission from this run. A run cancelled
    before it commits leaves the store untouched; a commit already under
    way always completes.
    """

    def __init__(self, place: str, count: int):
        self.place = place
        self.count = count
        self.future: Optional[Future] = None
        self._cancelled = threading.Event()

    @property
    def cancelled(self) -> bool:
        return self._cancelled.is_set()

    def cancel(self) -> None:
        self._cancelled.set()
        if self.future is not None:
            self.future.cancel()

    def done(self) -> bool:
        return self.future is not None and self.future.done()

    def result(self, timeout: Optional[float] = None) -> Optional[Resource]:
        """Final state of the run, or None if it was cancelled."""
        if self.future is None or self.future.cancelled():
            return None
        return self.future.result(timeout)


class _PlaceLock:
    def __init__(self):
        self.lock = threading.Lock()
        self.users = 0


class ForecastSynchronizer:
    """
    Stale-while-revalidate pipeline for daily forecasts.

    For a (place, count) request the cached records are served as Success
    when fresh. Otherwise they are published as Loading, the provider is
    called once, and on success the place's records are replaced and
    published as Success; on failure the unchanged cache is published as
    Error with the failure detail. No retries.

    Runs execute on a worker pool. Two runs for the same place may overlap
    unless ``serialize_per_place`` is set; ``replace_all`` is atomic either way
    and the last commit wins.
    """

    def __init__(
        self,
        store: RecordStoreBase,
        provider: ForecastProviderBase,
        publisher: Optional[ResultPublisher] = None,
        settings: Optional[SyncSettings] = None,
        clock: Callable[[], int] = current_time,
        max_workers: int = 4,
        serialize_per_place: bool = False
    ):
        """
        Initialize forecast synchronizer.

        Args:
            store: Record store holding the cached forecast
            provider: Forecast provider used on cache miss
            publisher: Where every state is published, keyed by place
            settings: Source of the cache timeout for ``request``
            clock: Returns the current UNIX time in seconds
            max_workers: Size of the background worker pool
            serialize_per_place: Run at most one refresh per place at a time
        """
        self.store = store
        self.provider = provider
        self.publisher = publisher or ResultPublisher()
        self.settings = settings or SyncSettings()
        self.clock = clock
        self.serialize_per_place = serialize_per_place
        self.freshness = FreshnessPolicy(store)

        self._executor = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="forecast-sync")
        self._place_locks: Dict[str, _PlaceLock] = {}
        self._place_locks_guard = threading.Lock()

    def subscribe(self, place: str, callback: Callable[[Resource], None]) -> Subscription:
        """Observe every state published for ``place``, starting with the latest one."""
        return self.publisher.subscribe(place, callback)

    def request(self, place: str, count: int) -> SyncTask:
        """Synchronize using the configured cache timeout and the current time."""
        return self.synchronize(place, count, self.settings.timeout_seconds, self.clock())

    def synchronize(self, place: str, count: int, timeout_seconds: int, now: int) -> SyncTask:
        """
        Start a synchronization in the background.

        Returns immediately; states are delivered through the publisher.

        Args:
            place: Place name, any string including empty
            count: Number of forecast days wanted (<= 0 never fetches)
            timeout_seconds: Maximum age of a cached record
            now: Current UNIX time, also stamped on fetched records

        Returns:
            SyncTask: handle to wait for or cancel the run
        """
        task = SyncTask(place, count)
        task.future = self._executor.submit(self._run, task, timeout_seconds, now)
        return task

    def close(self, wait: bool = True) -> None:
        self._executor.shutdown(wait=wait)

    def __enter__(self) -> "ForecastSynchronizer":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    @contextmanager
    def _place_lock(self, place: str):
        """Hold the lock for ``place``; it is forgotten once no run uses it."""
        with self._place_locks_guard:
            entry = self._place_locks.get(place)
            if entry is None:
                entry = self._place_locks[place] = _PlaceLock()
            entry.users += 1
        try:
            with entry.lock:
                yield
        finally:
            with self._place_locks_guard:
                entry.users -= 1
                if entry.users == 0:
                    del self._place_locks[place]

    def _run(self, task: SyncTask, timeout_seconds: int, now: int) -> Optional[Resource]:
        if self.serialize_per_place:
            with self._place_lock(task.place):
                return self._synchronize(task, timeout_seconds, now)
        return self._synchronize(task, timeout_seconds, now)

    def _synchronize(self, task: SyncTask, timeout_seconds: int, now: int) -> Optional[Resource]:
        place, count = task.place, task.count
        last_known: List[ForecastRecord] = []

        try:
            if self.freshness.is_fresh(place, count, timeout_seconds, now):
                logging.info(f"Cache hit for {place!r} (count={count}, timeout={timeout_seconds}s)")
                return self._emit(task, Success(self.store.get_records(place)))

            logging.info(f"Cache miss for {place!r} (count={count}, timeout={timeout_seconds}s), fetching")
            last_known = self.store.get_records(place)
            self._emit(task, Loading(last_known))

            items = self.provider.fetch(place, count)
            records = [map_record(place, item, now) for item in items]

            if task.cancelled:
                logging.info(f"Refresh for {place!r} cancelled, discarding {len(records)} records")
                return None

            self.store.replace_all(place, records)
            logging.info(f"Cached {len(records)} records for {place!r}")
            return self._emit(task, Success(self.store.get_records(place)))
        except ForecastProviderError as e:
            logging.warning(f"Forecast fetch for {place!r} failed: {e}")
            detail = e.to_detail()
        except StoreError as e:
            logging.error(f"Record store failed for {place!r}: {e}")
            detail = FailureDetail(kind=STORE, message=str(e))
        except Exception as e:
            logging.exception(f"Unexpected error synchronizing {place!r}: {e}")
            detail = FailureDetail(kind=TRANSPORT, message=str(e) or type(e).__name__)

        try:
            current = self.store.get_records(place)
        except StoreError as e:
            logging.error(f"Cannot re-read cache for {place!r}, using last snapshot: {e}")
            current = last_known
        return self._emit(task, Error(current, detail))

    def _emit(self, task: SyncTask, resource: Resource) -> Optional[Resource]:
        if task.cancelled:
            logging.debug(f"Dropping {resource.status} for {task.place!r}, request cancelled")
            return None
        logging.debug(f"Publishing {resource.status} for {task.place!r} ({len(resource.data)} records)")
        self.publisher.publish(task.place, resource)
        return resource
