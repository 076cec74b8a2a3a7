"""DuckDB-backed persistent record store."""
import logging
from pathlib import Path
from typing import List, Optional, Union

import duckdb

from forecast_record import ForecastRecord
from record_store import RecordStoreBase, StoreError

MEMORY = ":memory:"

SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS forecast_records (
    place VARCHAR NOT NULL,
    forecast_date BIGINT NOT NULL,
    average_temperature DOUBLE NOT NULL,
    pressure INTEGER NOT NULL,
    humidity INTEGER NOT NULL,
    description VARCHAR NOT NULL,
    fetched_at BIGINT NOT NULL
);

-- One row per (place, forecast_date) is kept by replace_all
CREATE INDEX IF NOT EXISTS idx_forecast_place ON forecast_records(place);
"""

SELECT_COLUMNS = "place, forecast_date, average_temperature, pressure, humidity, description, fetched_at"


class DuckDBRecordStore(RecordStoreBase):
    """
    Record store persisted in a DuckDB file.

    Example:
        >>> store = DuckDBRecordStore(Path("data/forecast.duckdb"))
        >>> store.get_records("saigon")
        [ForecastRecord(...), ...]

    One connection is shared; every access holds the store lock.
    """

    def __init__(self, db_path: Optional[Union[Path, str]] = None):
        """
        Open (or create) the database.

        Args:
            db_path: Path to the DuckDB file, None or ":memory:" for a
                throwaway in-memory database
        """
        super().__init__()
        self.db_path = str(db_path) if db_path else MEMORY
        if self.db_path != MEMORY:
            Path(self.db_path).parent.mkdir(parents=True, exist_ok=True)

        try:
            self._conn = duckdb.connect(self.db_path)
            for statement in SCHEMA_SQL.split(";"):
                statement = statement.strip()
                if statement:
                    self._conn.execute(statement)
        except duckdb.Error as e:
            raise StoreError(f"Cannot open forecast database {self.db_path}: {e}") from e
        logging.info(f"Forecast database initialized at {self.db_path}")

    @property
    def conn(self) -> duckdb.DuckDBPyConnection:
        if self._conn is None:
            raise StoreError("Forecast database is closed")
        return self._conn

    def _read(self, place: str) -> List[ForecastRecord]:
        try:
            rows = self.conn.execute(
                f"SELECT {SELECT_COLUMNS} FROM forecast_records WHERE place = ? ORDER BY forecast_date",
                [place],
            ).fetchall()
        except duckdb.Error as e:
            raise StoreError(f"Failed to read forecast for {place!r}: {e}") from e

        return [
            ForecastRecord(
                place=row[0],
                date=row[1],
                average_temperature=row[2],
                pressure=row[3],
                humidity=row[4],
                description=row[5],
                fetched_at=row[6],
            )
            for row in rows
        ]

    def _write(self, place: str, records: List[ForecastRecord]) -> None:
        conn = self.conn
        try:
            conn.begin()
            conn.execute("DELETE FROM forecast_records WHERE place = ?", [place])
            if records:
                conn.executemany(
                    f"INSERT INTO forecast_records ({SELECT_COLUMNS}) VALUES (?, ?, ?, ?, ?, ?, ?)",
                    [
                        [
                            r.place,
                            r.date,
                            r.average_temperature,
                            r.pressure,
                            r.humidity,
                            r.description,
                            r.fetched_at,
                        ]
                        for r in records
                    ],
                )
            conn.commit()
        except duckdb.Error as e:
            logging.error(f"Replacing forecast for {place!r} failed, rolling back: {e}")
            try:
                conn.rollback()
            except duckdb.Error as rollback_error:
                logging.error(f"Rollback failed: {rollback_error}")
            raise StoreError(f"Failed to store forecast for {place!r}: {e}") from e

    def has_fresh_data(self, place: str, count: int, cutoff: int) -> bool:
        """Freshness check in one query over the first ``count`` records by date."""
        if count <= 0:
            return True
        with self._lock:
            try:
                total, fresh = self.conn.execute(
                    f"""
                    SELECT COUNT(*), COUNT(*) FILTER (WHERE fetched_at >= ?)
                    FROM (
                        SELECT fetched_at FROM forecast_records
                        WHERE place = ?
                        ORDER BY forecast_date
                        LIMIT {int(count)}
                    )
                    """,
                    [cutoff, place],
                ).fetchone()
            except duckdb.Error as e:
                raise StoreError(f"Failed to check freshness for {place!r}: {e}") from e
        logging.debug(f"Freshness for {place!r}: {fresh}/{total} fresh of {count} required")
        return total == count and fresh == count

    def get_stats(self) -> dict:
        """Get cache statistics."""
        with self._lock:
            record_count, place_count = self.conn.execute(
                "SELECT COUNT(*), COUNT(DISTINCT place) FROM forecast_records"
            ).fetchone()
        return {
            "record_count": record_count,
            "place_count": place_count,
            "db_path": self.db_path,
        }

    def close(self) -> None:
        """Close database connection."""
        with self._lock:
            if self._conn is not None:
                self._conn.close()
                self._conn = None
