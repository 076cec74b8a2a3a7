"""Forecast domain model - cached daily records and the raw items they are built from."""
from dataclasses import dataclass, field
from typing import List


@dataclass(frozen=True)
class RawForecastItem:
    """One day of forecast as returned by a remote provider, before caching."""
    timestamp: int  # UNIX timestamp (UTC) of the forecast day
    day_temperature: float
    pressure: int
    humidity: int
    weather_descriptions: List[str] = field(default_factory=list)


@dataclass(frozen=True)
class ForecastRecord:
    """One day's cached forecast for one place."""
    place: str
    date: int  # UNIX timestamp of the forecast day
    average_temperature: float
    pressure: int  # hPa
    humidity: int  # percentage
    description: str  # e.g., "overcast clouds", may be empty
    fetched_at: int  # UNIX timestamp of the write, not of the forecast


def map_record(place: str, item: RawForecastItem, fetched_at: int) -> ForecastRecord:
    """
    Build the cached record for a raw provider item.

    The first weather description is used, or an empty string when the
    provider sent none.
    """
    description = item.weather_descriptions[0] if item.weather_descriptions else ""
    return ForecastRecord(
        place=place,
        date=item.timestamp,
        average_temperature=item.day_temperature,
        pressure=item.pressure,
        humidity=item.humidity,
        description=description,
        fetched_at=fetched_at,
    )
