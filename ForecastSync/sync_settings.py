"""Runtime settings shared between the console and the synchronizer."""
import logging
import threading

DEFAULT_TIMEOUT_SECONDS = 5

# Choices offered by the cache settings command: seconds -> label
CACHE_DURATION_CHOICES = {
    0: "No cache",
    3: "3 seconds",
    7: "7 seconds",
}


class SyncSettings:
    """Mutable cache timeout, read once per forecast request."""

    def __init__(self, timeout_seconds: int = DEFAULT_TIMEOUT_SECONDS):
        self._lock = threading.Lock()
        self._timeout_seconds = self._validate(timeout_seconds)

    @staticmethod
    def _validate(timeout_seconds: int) -> int:
        timeout_seconds = int(timeout_seconds)
        if timeout_seconds < 0:
            raise ValueError(f"Cache timeout must be >= 0, got {timeout_seconds}")
        return timeout_seconds

    @property
    def timeout_seconds(self) -> int:
        with self._lock:
            return self._timeout_seconds

    @timeout_seconds.setter
    def timeout_seconds(self, value: int) -> None:
        value = self._validate(value)
        with self._lock:
            self._timeout_seconds = value
        logging.info(f"Cache timeout set to {value}s ({describe_timeout(value)})")


def describe_timeout(timeout_seconds: int) -> str:
    """Label for a cache timeout, e.g. "No cache" or "3 seconds"."""
    if timeout_seconds in CACHE_DURATION_CHOICES:
        return CACHE_DURATION_CHOICES[timeout_seconds]
    return f"{timeout_seconds} seconds"
