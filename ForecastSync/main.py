"""Console daily forecast viewer backed by the stale-while-revalidate cache."""
import argparse
import logging
import os
import signal
import sys
import threading
from dataclasses import dataclass
from typing import Optional, TextIO

from dotenv import load_dotenv

from duckdb_store import DuckDBRecordStore
from forecast_resource import Resource
from forecast_sync import ForecastSynchronizer
from forecast_view import render_resource
from openweather_provider import OpenWeatherForecastProvider
from record_store import InMemoryRecordStore, RecordStoreBase
from result_publisher import ResultPublisher, Subscription
from sync_settings import CACHE_DURATION_CHOICES, DEFAULT_TIMEOUT_SECONDS, SyncSettings, describe_timeout

BASE_DIR = os.path.dirname(os.path.abspath(__file__))
DEFAULT_LOG_FILE = os.path.join(BASE_DIR, "forecast-sync.log")
DEFAULT_COUNT = 7


@dataclass
class AppConfig:
    api_key: str
    lang: str
    count: int
    cache_timeout: int
    db_path: Optional[str]


def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser("Daily forecast viewer")
    parser.add_argument("places", nargs="*", help="Places to show once; interactive when omitted")
    parser.add_argument("--log-file", default=DEFAULT_LOG_FILE)
    parser.add_argument("--units", choices=["metric", "imperial", "standard"], default="metric")
    parser.add_argument("--count", type=int, default=None, help="Forecast days per request")
    parser.add_argument("--cache-timeout", type=int, default=None, help="Seconds a cached record stays fresh")
    parser.add_argument("--timeout", type=int, default=10, help="HTTP timeout in seconds")
    parser.add_argument("--workers", type=int, default=4)
    parser.add_argument("--serialize-per-place", action="store_true",
                        help="Never run two refreshes for the same place at once")
    parser.add_argument("--verbose", action="store_true")
    return parser.parse_args(argv)


def setup_logging(log_file: str, verbose: bool) -> None:
    log_level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=log_level,
        format="%(asctime)s - %(levelname)s - %(message)s",
        handlers=[
            logging.StreamHandler(sys.stderr),
            logging.FileHandler(log_file)
        ]
    )


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw == "":
        return default
    try:
        return int(raw)
    except ValueError as exc:
        raise SystemExit(f"Invalid {name}: {exc}") from exc


def load_config(args: argparse.Namespace) -> AppConfig:
    load_dotenv()
    api_key = os.getenv("WEATHER_API_KEY")
    if not api_key:
        raise SystemExit("Missing WEATHER_API_KEY in environment")

    count = args.count if args.count is not None else _env_int("FORECAST_DAYS", DEFAULT_COUNT)
    cache_timeout = (
        args.cache_timeout if args.cache_timeout is not None
        else _env_int("FORECAST_CACHE_TIMEOUT", DEFAULT_TIMEOUT_SECONDS)
    )
    if cache_timeout < 0:
        raise SystemExit(f"Invalid cache timeout: {cache_timeout}")

    config = AppConfig(
        api_key=api_key,
        lang=os.getenv("WEATHER_LANG", "en"),
        count=count,
        cache_timeout=cache_timeout,
        db_path=os.getenv("FORECAST_DB_PATH") or None,
    )
    logging.info(
        "Configuration loaded: count=%s cache_timeout=%s units=%s db=%s",
        config.count, config.cache_timeout, args.units, config.db_path or "memory",
    )
    return config


def build_store(db_path: Optional[str]) -> RecordStoreBase:
    if db_path:
        return DuckDBRecordStore(db_path)
    return InMemoryRecordStore()


def build_synchronizer(config: AppConfig, args: argparse.Namespace) -> ForecastSynchronizer:
    provider = OpenWeatherForecastProvider(
        api_key=config.api_key,
        units=args.units,
        lang=config.lang,
        timeout=args.timeout,
    )
    synchronizer = ForecastSynchronizer(
        store=build_store(config.db_path),
        provider=provider,
        publisher=ResultPublisher(),
        settings=SyncSettings(config.cache_timeout),
        max_workers=args.workers,
        serialize_per_place=args.serialize_per_place,
    )
    logging.info("Forecast synchronizer ready (cache timeout=%ss)", config.cache_timeout)
    return synchronizer


class ForecastConsole:
    """Shows the forecast of the place last asked for, like a single search screen."""

    def __init__(self, synchronizer: ForecastSynchronizer, count: int, out: TextIO = sys.stdout):
        self.synchronizer = synchronizer
        self.count = count
        self.out = out
        self._subscription: Optional[Subscription] = None
        self._write_lock = threading.Lock()

    def render(self, place: str, resource: Resource) -> None:
        with self._write_lock:
            self.out.write(render_resource(place, resource) + "\n\n")
            self.out.flush()

    def show(self, place: str):
        """Switch the screen to ``place`` and request its forecast."""
        if self._subscription is None or self._subscription.key != place:
            if self._subscription is not None:
                self._subscription.unsubscribe()
            self._subscription = self.synchronizer.subscribe(
                place, lambda resource: self.render(place, resource)
            )
        return self.synchronizer.request(place, self.count)

    def set_cache_timeout(self, raw: str) -> None:
        try:
            self.synchronizer.settings.timeout_seconds = int(raw)
        except ValueError as exc:
            self.out.write(f"Invalid cache timeout: {exc}\n")
            return
        self.out.write(f"Cache: {describe_timeout(self.synchronizer.settings.timeout_seconds)}\n")

    def handle_line(self, line: str) -> bool:
        """Handle one input line; returns False when the user wants to quit."""
        line = line.strip()
        if line in (":quit", ":q"):
            return False
        if line == ":cache":
            choices = ", ".join(f"{seconds} ({label})" for seconds, label in CACHE_DURATION_CHOICES.items())
            current = describe_timeout(self.synchronizer.settings.timeout_seconds)
            self.out.write(f"Cache: {current}. Choices: {choices}\n")
            return True
        if line.startswith(":cache "):
            self.set_cache_timeout(line[len(":cache "):].strip())
            return True
        self.show(line)
        return True

    def close(self) -> None:
        if self._subscription is not None:
            self._subscription.unsubscribe()
            self._subscription = None


def run_once(console: ForecastConsole, places) -> None:
    for place in places:
        task = console.show(place.strip())
        task.result()


def run_interactive(console: ForecastConsole, stream: TextIO = sys.stdin) -> None:
    console.out.write("Enter a place (:cache [seconds] to change the cache, :quit to exit)\n")
    for line in stream:
        if not console.handle_line(line):
            break


def signal_handler(signum, frame):
    logging.info("Received signal %s, shutting down", signum)
    raise KeyboardInterrupt()


def main(argv=None) -> None:
    args = parse_args(argv)
    setup_logging(args.log_file, args.verbose)
    config = load_config(args)

    synchronizer = build_synchronizer(config, args)
    console = ForecastConsole(synchronizer, config.count)

    signal.signal(signal.SIGINT, signal_handler)
    signal.signal(signal.SIGTERM, signal_handler)

    try:
        if args.places:
            run_once(console, args.places)
        else:
            run_interactive(console)
    except KeyboardInterrupt:
        logging.info("Stopping forecast viewer")
    finally:
        console.close()
        synchronizer.close(wait=False)
        synchronizer.store.close()
        logging.info("Forecast viewer closed")


if __name__ == "__main__":
    main()
