"""Tests for the console entry point - config loading and the forecast console."""
import io
import pytest
from unittest.mock import patch
from forecast_provider import ForecastProviderBase
from forecast_record import RawForecastItem
from forecast_sync import ForecastSynchronizer
from duckdb_store import DuckDBRecordStore
from record_store import InMemoryRecordStore
from sync_settings import SyncSettings
import main


class StaticProvider(ForecastProviderBase):
    def __init__(self):
        self.calls = []

    def fetch(self, place, count):
        self.calls.append((place, count))
        return [RawForecastItem(1584896400 + i * 86400, 20.0, 1010, 60, ["clear sky"]) for i in range(count)]


@pytest.fixture
def console():
    provider = StaticProvider()
    synchronizer = ForecastSynchronizer(
        store=InMemoryRecordStore(),
        provider=provider,
        settings=SyncSettings(5),
        clock=lambda: 1000,
    )
    out = io.StringIO()
    console = main.ForecastConsole(synchronizer, count=3, out=out)
    yield console
    console.close()
    synchronizer.close()


def test_show_renders_loading_then_data(console):
    console.show("saigon").result(5)

    output = console.out.getvalue()
    assert "[saigon] Loading..." in output
    assert "[saigon] 3 day(s)" in output
    assert output.index("Loading...") < output.index("3 day(s)")
    assert console.synchronizer.provider.calls == [("saigon", 3)]


def test_switching_place_stops_previous_output(console):
    console.show("saigon").result(5)
    console.show("hanoi").result(5)
    console.out.truncate(0)
    console.out.seek(0)

    console.synchronizer.synchronize("saigon", 3, 0, 2000).result(5)

    assert console.out.getvalue() == ""


def test_handle_line_trims_place(console):
    with patch.object(console, "show") as mock_show:
        assert console.handle_line("  saigon \n") is True
    mock_show.assert_called_once_with("saigon")


def test_handle_line_quit(console):
    assert console.handle_line(":quit\n") is False


def test_handle_line_cache_setting(console):
    assert console.handle_line(":cache 0") is True
    assert console.synchronizer.settings.timeout_seconds == 0
    assert "Cache: No cache" in console.out.getvalue()


def test_handle_line_cache_invalid(console):
    console.handle_line(":cache -4")
    assert console.synchronizer.settings.timeout_seconds == 5
    assert "Invalid cache timeout" in console.out.getvalue()


def test_handle_line_cache_choices(console):
    console.handle_line(":cache")
    assert "0 (No cache)" in console.out.getvalue()


def test_run_interactive_stops_on_quit(console):
    with patch.object(console, "show") as mock_show:
        main.run_interactive(console, io.StringIO("saigon\n:quit\nhanoi\n"))
    mock_show.assert_called_once_with("saigon")


def test_load_config_from_environment(monkeypatch):
    monkeypatch.setenv("WEATHER_API_KEY", "abc")
    monkeypatch.setenv("FORECAST_DAYS", "3")
    monkeypatch.setenv("FORECAST_CACHE_TIMEOUT", "7")
    monkeypatch.delenv("FORECAST_DB_PATH", raising=False)

    with patch("main.load_dotenv"):
        config = main.load_config(main.parse_args([]))

    assert config.api_key == "abc"
    assert config.count == 3
    assert config.cache_timeout == 7
    assert config.db_path is None


def test_load_config_args_override_environment(monkeypatch):
    monkeypatch.setenv("WEATHER_API_KEY", "abc")
    monkeypatch.setenv("FORECAST_DAYS", "3")

    with patch("main.load_dotenv"):
        config = main.load_config(main.parse_args(["--count", "10", "--cache-timeout", "0"]))

    assert config.count == 10
    assert config.cache_timeout == 0


def test_load_config_missing_key(monkeypatch):
    monkeypatch.delenv("WEATHER_API_KEY", raising=False)
    with patch("main.load_dotenv"):
        with pytest.raises(SystemExit):
            main.load_config(main.parse_args([]))


def test_load_config_invalid_number(monkeypatch):
    monkeypatch.setenv("WEATHER_API_KEY", "abc")
    monkeypatch.setenv("FORECAST_DAYS", "seven")
    with patch("main.load_dotenv"):
        with pytest.raises(SystemExit):
            main.load_config(main.parse_args([]))


def test_build_store(tmp_path):
    assert isinstance(main.build_store(None), InMemoryRecordStore)
    store = main.build_store(str(tmp_path / "cache" / "forecast.duckdb"))
    assert isinstance(store, DuckDBRecordStore)
    store.close()
