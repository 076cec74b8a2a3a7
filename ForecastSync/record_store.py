"""Record store abstraction and the in-memory implementation."""
import logging
import threading
from abc import ABC, abstractmethod
from typing import Callable, Dict, Iterable, List, Tuple

from forecast_record import ForecastRecord
from freshness import records_fresh
from result_publisher import ResultPublisher, Subscription


class StoreError(Exception):
    """Exception raised when the persistence layer fails to read or write."""
    pass


class RecordStoreBase(ABC):
    """
    Keyed store of forecast records, one ordered set per place.

    ``get_records`` returns records in ascending ``date`` order. The only
    mutation is ``replace_all``, which swaps a place's whole set at once:
    readers and observers see either the old set or the new one.
    """

    def __init__(self):
        self._lock = threading.RLock()
        self._changes = ResultPublisher()

    @abstractmethod
    def _read(self, place: str) -> List[ForecastRecord]:
        """Records for ``place`` in ascending date order."""
        pass

    @abstractmethod
    def _write(self, place: str, records: List[ForecastRecord]) -> None:
        """Delete every record for ``place`` and insert ``records`` as one unit."""
        pass

    def get_records(self, place: str) -> List[ForecastRecord]:
        """
        Get the cached records for a place.

        Returns:
            List of records, empty if the place was never cached

        Raises:
            StoreError: If the store cannot be read
        """
        with self._lock:
            return self._read(place)

    def has_fresh_data(self, place: str, count: int, cutoff: int) -> bool:
        """True if the first ``count`` records exist and were all written at or after ``cutoff``."""
        return records_fresh(self.get_records(place), count, cutoff)

    def replace_all(self, place: str, records: Iterable[ForecastRecord]) -> None:
        """
        Atomically replace every record for ``place``.

        Other places are untouched. When several records share a date the
        last one wins.

        Raises:
            StoreError: If the write fails (the previous set is kept)
        """
        records = _normalize(place, records)
        with self._lock:
            self._write(place, records)
            logging.info(f"Stored {len(records)} records for {place!r}")
            self._changes.publish(place, self._read(place))

    def observe_records(self, place: str, callback: Callable[[List[ForecastRecord]], None]) -> Subscription:
        """
        Watch a place's records.

        ``callback`` gets the current records right away, then the new set
        after every ``replace_all`` for that place.
        """
        with self._lock:
            subscription = self._changes.subscribe(place, callback, replay=False)
            try:
                callback(self._read(place))
            except StoreError:
                subscription.unsubscribe()
                raise
            return subscription

    def close(self) -> None:
        pass


def _normalize(place: str, records: Iterable[ForecastRecord]) -> List[ForecastRecord]:
    by_date: Dict[int, ForecastRecord] = {}
    for record in records:
        if record.place != place:
            raise ValueError(f"Record for {record.place!r} cannot be stored under {place!r}")
        by_date[record.date] = record
    return [by_date[date] for date in sorted(by_date)]


class InMemoryRecordStore(RecordStoreBase):
    """Record store kept in a dict; each place maps to an immutable snapshot."""

    def __init__(self):
        super().__init__()
        self._records: Dict[str, Tuple[ForecastRecord, ...]] = {}

    def _read(self, place: str) -> List[ForecastRecord]:
        return list(self._records.get(place, ()))

    def _write(self, place: str, records: List[ForecastRecord]) -> None:
        self._records[place] = tuple(records)
