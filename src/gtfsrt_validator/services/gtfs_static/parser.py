"""GTFS CSV parser with column validation and streaming."""

from __future__ import annotations

import csv
from typing import TYPE_CHECKING, Any

from gtfsrt_validator.logging import get_logger

if TYPE_CHECKING:
    from collections.abc import Iterator

    from gtfsrt_validator.services.gtfs_static.reader import GtfsZipReader

logger = get_logger(__name__)

# Columns each file must carry for the validator to use it
REQUIRED_COLUMNS: dict[str, set[str]] = {
    "agency.txt": {"agency_name"},
    "stops.txt": {"stop_id"},
    "routes.txt": {"route_id"},
    "trips.txt": {"route_id", "trip_id"},
    "stop_times.txt": {"trip_id", "stop_id", "stop_sequence"},
    "shapes.txt": {"shape_id", "shape_pt_lat", "shape_pt_lon", "shape_pt_sequence"},
    "frequencies.txt": {"trip_id", "start_time", "end_time", "headway_secs"},
}


class MissingColumnError(Exception):
    """Raised when a required CSV column is missing."""


class GtfsParser:
    """Parses GTFS CSV files with column validation and streaming iteration."""

    def __init__(self, reader: GtfsZipReader) -> None:
        self._reader = reader

    def parse_file(self, filename: str) -> Iterator[dict[str, Any]]:
        """Parse a GTFS CSV file, yielding one dict per row.

        Optional files that are absent from the archive yield nothing.

        Raises:
            MissingColumnError: If required columns are missing.
        """
        if not self._reader.has_file(filename):
            logger.debug("Optional GTFS file not present", filename=filename)
            return

        with self._reader.open_file(filename) as text_io:
            csv_reader = csv.DictReader(text_io, skipinitialspace=True)

            if csv_reader.fieldnames is None:
                # Header-less files carry no rows
                logger.warning("Empty GTFS file", filename=filename)
                return

            csv_reader.fieldnames = [name.strip() for name in csv_reader.fieldnames]
            actual_columns = set(csv_reader.fieldnames)
            required = REQUIRED_COLUMNS.get(filename, set())
            missing = required - actual_columns
            if missing:
                msg = f"Missing required columns in {filename}: {sorted(missing)}"
                raise MissingColumnError(msg)

            logger.debug(
                "Parsing GTFS file",
                filename=filename,
                columns=sorted(actual_columns),
            )

            yield from csv_reader

    def parse_agencies(self) -> Iterator[dict[str, Any]]:
        """Parse agency.txt."""
        return self.parse_file("agency.txt")

    def parse_stops(self) -> Iterator[dict[str, Any]]:
        """Parse stops.txt."""
        return self.parse_file("stops.txt")

    def parse_routes(self) -> Iterator[dict[str, Any]]:
        """Parse routes.txt."""
        return self.parse_file("routes.txt")

    def parse_trips(self) -> Iterator[dict[str, Any]]:
        """Parse trips.txt."""
        return self.parse_file("trips.txt")

    def parse_stop_times(self) -> Iterator[dict[str, Any]]:
        """Parse stop_times.txt."""
        return self.parse_file("stop_times.txt")

    def parse_shapes(self) -> Iterator[dict[str, Any]]:
        """Parse shapes.txt."""
        return self.parse_file("shapes.txt")

    def parse_frequencies(self) -> Iterator[dict[str, Any]]:
        """Parse frequencies.txt."""
        return self.parse_file("frequencies.txt")
