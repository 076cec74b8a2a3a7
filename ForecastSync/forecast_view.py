"""Console rendering of forecast states - pure functions for testability."""
import time
from typing import List

from forecast_record import ForecastRecord
from forecast_resource import Error, Loading, Resource

DATE_FORMAT = "%a, %d %b %Y"


def format_date(timestamp: int) -> str:
    """Format a UNIX timestamp as a UTC day, e.g. "Sun, 22 Mar 2020"."""
    return time.strftime(DATE_FORMAT, time.gmtime(timestamp))


def format_record(record: ForecastRecord) -> str:
    """
    Render one forecast day as a list item.

    Args:
        record: Cached forecast record

    Returns:
        Multi-line block with date, temperature, pressure, humidity and description
    """
    return "\n".join([
        f"Date: {format_date(record.date)}",
        f"Average temperature: {round(record.average_temperature)}°C",
        f"Pressure: {record.pressure}",
        f"Humidity: {record.humidity}%",
        f"Description: {record.description}",
    ])


def render_resource(place: str, resource: Resource) -> str:
    """Render a state: busy line while loading, error text on failure, then the records."""
    lines: List[str] = []
    if isinstance(resource, Loading):
        lines.append(f"[{place}] Loading...")
    elif isinstance(resource, Error):
        lines.append(f"[{place}] Error: {resource.detail}")
    else:
        lines.append(f"[{place}] {len(resource.data)} day(s)")

    for record in resource.data:
        lines.append("")
        lines.append(format_record(record))
    return "\n".join(lines)
