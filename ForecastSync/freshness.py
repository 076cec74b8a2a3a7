"""Cache freshness policy - decides whether stored records can be served without a refresh."""
import logging
from typing import Sequence, TYPE_CHECKING

from forecast_record import ForecastRecord

if TYPE_CHECKING:
    from record_store import RecordStoreBase


def records_fresh(records: Sequence[ForecastRecord], count: int, cutoff: int) -> bool:
    """
    Check the first ``count`` records against a write-time cutoff.

    Args:
        records: Records in store order (ascending date)
        count: Number of records required
        cutoff: Oldest acceptable ``fetched_at``

    Returns:
        True if there are at least ``count`` records and each selected one
        was written at or after ``cutoff``. Always True when ``count <= 0``.
    """
    if count <= 0:
        return True
    if len(records) < count:
        return False
    return all(record.fetched_at >= cutoff for record in records[:count])


class FreshnessPolicy:
    """Asks the record store whether a place holds enough fresh records."""

    def __init__(self, store: "RecordStoreBase"):
        self.store = store

    def is_fresh(self, place: str, count: int, timeout_seconds: int, now: int) -> bool:
        if count <= 0:
            logging.debug(f"count={count} for {place!r}, nothing to refresh")
            return True
        cutoff = now - timeout_seconds
        return self.store.has_fresh_data(place, count, cutoff)
