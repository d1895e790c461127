"""GTFS data normalizer - cleans raw CSV rows into immutable records."""

from __future__ import annotations

from typing import Any, Optional

from gtfsrt_validator.logging import get_logger
from gtfsrt_validator.models.gtfs import (
    Agency,
    Frequency,
    Route,
    ShapePoint,
    Stop,
    StopTime,
    Trip,
)

logger = get_logger(__name__)


class TimeParseError(Exception):
    """Raised when a GTFS time string cannot be parsed."""


class NormalizationError(Exception):
    """Raised when a row cannot be normalized."""


class GtfsNormalizer:
    """Normalizes raw GTFS CSV rows into dataset records."""

    @staticmethod
    def normalize_agency(row: dict[str, Any]) -> Agency:
        """Normalize an agency.txt row. agency_id may be blank for single-agency feeds."""
        return Agency(
            agency_id=_clean_str(row.get("agency_id")),
            name=_clean_str(row.get("agency_name")),
            timezone=_clean_str(row.get("agency_timezone")),
        )

    @staticmethod
    def normalize_stop(row: dict[str, Any]) -> Stop:
        """Normalize a stops.txt row.

        Stations and entrances may omit coordinates, so lat/lon are optional.
        A blank location_type means 0 (stop or platform).

        Raises:
            NormalizationError: If stop_id is missing or a numeric field is invalid.
        """
        stop_id = _clean_str(row.get("stop_id"))
        if not stop_id:
            raise NormalizationError("Missing stop_id")

        lat_str = _clean_str(row.get("stop_lat"))
        lon_str = _clean_str(row.get("stop_lon"))
        try:
            lat = float(lat_str) if lat_str else None
            lon = float(lon_str) if lon_str else None
        except ValueError as exc:
            raise NormalizationError(
                f"Invalid lat/lon for stop_id={stop_id}: lat={lat_str!r}, lon={lon_str!r}"
            ) from exc

        location_type = _optional_int(row.get("location_type"), "location_type", stop_id)

        return Stop(
            stop_id=stop_id,
            name=_clean_str(row.get("stop_name")),
            lat=lat,
            lon=lon,
            location_type=location_type or 0,
            parent_station=_clean_str(row.get("parent_station")),
        )

    @staticmethod
    def normalize_route(row: dict[str, Any]) -> Route:
        """Normalize a routes.txt row.

        Raises:
            NormalizationError: If route_id is missing.
        """
        route_id = _clean_str(row.get("route_id"))
        if not route_id:
            raise NormalizationError("Missing route_id")

        return Route(
            route_id=route_id,
            agency_id=_clean_str(row.get("agency_id")),
            short_name=_clean_str(row.get("route_short_name")),
            long_name=_clean_str(row.get("route_long_name")),
            route_type=_optional_int(row.get("route_type"), "route_type", route_id),
        )

    @staticmethod
    def normalize_trip(row: dict[str, Any]) -> Trip:
        """Normalize a trips.txt row.

        direction_id stays None when blank so it can be compared with realtime data.

        Raises:
            NormalizationError: If trip_id or route_id is missing.
        """
        trip_id = _clean_str(row.get("trip_id"))
        route_id = _clean_str(row.get("route_id"))

        if not trip_id:
            raise NormalizationError("Missing trip_id")
        if not route_id:
            raise NormalizationError(f"Missing route_id for trip_id={trip_id}")

        direction_id = None
        direction_id_str = _clean_str(row.get("direction_id"))
        if direction_id_str:
            try:
                direction_id = int(direction_id_str)
            except ValueError:
                logger.warning(
                    "Non-integer direction_id, treating as unset",
                    trip_id=trip_id,
                    direction_id=direction_id_str,
                )

        return Trip(
            trip_id=trip_id,
            route_id=route_id,
            service_id=_clean_str(row.get("service_id")),
            direction_id=direction_id,
            block_id=_clean_str(row.get("block_id")),
            shape_id=_clean_str(row.get("shape_id")),
        )

    @staticmethod
    def normalize_stop_time(row: dict[str, Any]) -> StopTime:
        """Normalize a stop_times.txt row.

        Converts GTFS times (HH:MM:SS, may be >24:00:00) to seconds from midnight.
        Blank arrival/departure times (non-timepoint stops) stay None.

        Raises:
            NormalizationError: If required fields are missing/invalid.
        """
        trip_id = _clean_str(row.get("trip_id"))
        stop_id = _clean_str(row.get("stop_id"))
        seq_str = _clean_str(row.get("stop_sequence"))

        if not trip_id:
            raise NormalizationError("Missing trip_id in stop_times")
        if not stop_id:
            raise NormalizationError(f"Missing stop_id in stop_times for trip_id={trip_id}")
        if not seq_str:
            raise NormalizationError(
                f"Missing stop_sequence for trip_id={trip_id}, stop_id={stop_id}"
            )

        try:
            stop_sequence = int(seq_str)
        except ValueError as exc:
            raise NormalizationError(
                f"Invalid stop_sequence={seq_str!r} for trip_id={trip_id}"
            ) from exc

        arrival_str = _clean_str(row.get("arrival_time"))
        departure_str = _clean_str(row.get("departure_time"))

        return StopTime(
            trip_id=trip_id,
            stop_id=stop_id,
            stop_sequence=stop_sequence,
            arrival_time=parse_gtfs_time(arrival_str) if arrival_str else None,
            departure_time=parse_gtfs_time(departure_str) if departure_str else None,
            timepoint=_optional_int(row.get("timepoint"), "timepoint", trip_id),
        )

    @staticmethod
    def normalize_shape_point(row: dict[str, Any]) -> ShapePoint:
        """Normalize a shapes.txt row.

        Raises:
            NormalizationError: If a field is missing or not numeric.
        """
        shape_id = _clean_str(row.get("shape_id"))
        if not shape_id:
            raise NormalizationError("Missing shape_id")
        try:
            return ShapePoint(
                shape_id=shape_id,
                lat=float(_clean_str(row.get("shape_pt_lat"))),
                lon=float(_clean_str(row.get("shape_pt_lon"))),
                sequence=int(_clean_str(row.get("shape_pt_sequence"))),
            )
        except ValueError as exc:
            raise NormalizationError(f"Invalid shape point for shape_id={shape_id}") from exc

    @staticmethod
    def normalize_frequency(row: dict[str, Any]) -> Frequency:
        """Normalize a frequencies.txt row. Blank exact_times means 0.

        Raises:
            NormalizationError: If a field is missing or invalid.
        """
        trip_id = _clean_str(row.get("trip_id"))
        if not trip_id:
            raise NormalizationError("Missing trip_id in frequencies")
        headway_str = _clean_str(row.get("headway_secs"))
        try:
            headway_secs = int(headway_str)
        except ValueError as exc:
            raise NormalizationError(
                f"Invalid headway_secs={headway_str!r} for trip_id={trip_id}"
            ) from exc
        if headway_secs <= 0:
            raise NormalizationError(f"Non-positive headway_secs for trip_id={trip_id}")

        return Frequency(
            trip_id=trip_id,
            start_time=parse_gtfs_time(_clean_str(row.get("start_time"))),
            end_time=parse_gtfs_time(_clean_str(row.get("end_time"))),
            headway_secs=headway_secs,
            exact_times=_optional_int(row.get("exact_times"), "exact_times", trip_id) or 0,
        )


def parse_gtfs_time(time_str: str) -> int:
    """Parse a GTFS time string (HH:MM:SS) to seconds from midnight.

    Supports times >= 24:00:00 for trips spanning past midnight.

    Examples:
        "08:30:00" -> 30600
        "25:01:30" -> 90090

    Raises:
        TimeParseError: If the format is invalid.
    """
    time_str = time_str.strip()
    parts = time_str.split(":")
    if len(parts) != 3:
        msg = f"Invalid GTFS time format: {time_str!r} (expected HH:MM:SS)"
        raise TimeParseError(msg)

    try:
        hours = int(parts[0])
        minutes = int(parts[1])
        seconds = int(parts[2])
    except ValueError as exc:
        msg = f"Non-numeric components in GTFS time: {time_str!r}"
        raise TimeParseError(msg) from exc

    if minutes < 0 or minutes > 59 or seconds < 0 or seconds > 59:
        msg = f"Invalid minutes/seconds in GTFS time: {time_str!r}"
        raise TimeParseError(msg)

    if hours < 0:
        msg = f"Negative hours in GTFS time: {time_str!r}"
        raise TimeParseError(msg)

    return hours * 3600 + minutes * 60 + seconds


def _optional_int(value: Any, column: str, row_id: str) -> Optional[int]:
    text = _clean_str(value)
    if not text:
        return None
    try:
        return int(text)
    except ValueError as exc:
        raise NormalizationError(f"Invalid {column}={text!r} for {row_id}") from exc


def _clean_str(value: Any) -> str:
    """Trim whitespace from a value, return empty string for None."""
    if value is None:
        return ""
    return str(value).strip()
