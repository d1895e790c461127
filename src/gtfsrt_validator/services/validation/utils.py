"""Shared helpers for validators: time formatting, id text and geometry checks."""

from __future__ import annotations

import os
import re
import struct
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Iterable, Optional, Union

from google.transit import gtfs_realtime_pb2
from shapely.geometry import Point

if TYPE_CHECKING:
    from datetime import tzinfo

    from shapely.geometry.base import BaseGeometry

GTFS_RT_V1 = "1.0"
GTFS_RT_V2 = "2.0"

TripDescriptor = gtfs_realtime_pb2.TripDescriptor
StopTimeUpdate = gtfs_realtime_pb2.TripUpdate.StopTimeUpdate

# H:MM:SS or HH:MM:SS, hours up to 29
_TIME_PATTERN = re.compile(r"[0-2]?[0-9]:[0-5][0-9]:[0-5][0-9]")
_DATE_PATTERN = re.compile(r"[0-9]{8}")
_FILE_TIMESTAMP_PATTERN = re.compile(r"(\d{4}-\d{2}-\d{2})T(\d{2})-(\d{2})-(\d{2})Z$")

Entity = Union[gtfs_realtime_pb2.TripUpdate, gtfs_realtime_pb2.VehiclePosition]


# ---------------------------------------------------------------------------
# Time
# ---------------------------------------------------------------------------


def is_posix(timestamp: int, min_posix_time: int, max_posix_time: int) -> bool:
    return min_posix_time <= timestamp <= max_posix_time


def get_age_millis(current_time_millis: int, timestamp_sec: int) -> int:
    """Age of a POSIX timestamp (seconds) relative to now (ms). Negative is in the future."""
    return current_time_millis - timestamp_sec * 1000


def is_in_future(current_time_millis: int, timestamp_sec: int, tolerance_sec: int) -> bool:
    age = get_age_millis(current_time_millis, timestamp_sec)
    return age < 0 and abs(age) // 1000 > tolerance_sec


def format_age(age_millis: int) -> str:
    """Render an age magnitude as ``M min S sec`` (truncated, sign dropped)."""
    age = abs(age_millis)
    return f"{age // 60000} min {(age // 1000) % 60} sec"


def posix_to_clock(posix_time: int, tz: Optional[tzinfo]) -> str:
    """Format a POSIX time (seconds) as ``HH:MM:SS`` in the agency timezone.

    Times outside the datetime range (e.g. milliseconds sent as seconds) are
    rendered as UTC wall-clock time.
    """
    try:
        moment = datetime.fromtimestamp(posix_time, tz=tz or timezone.utc)
    except (OverflowError, OSError, ValueError):
        return seconds_after_midnight_to_clock(posix_time % 86400)
    return moment.strftime("%H:%M:%S")


def seconds_after_midnight_to_clock(seconds: int) -> str:
    """Format GTFS seconds-after-midnight as ``HH:MM:SS`` (hours may exceed 23)."""
    return f"{seconds // 3600:02d}:{(seconds // 60) % 60:02d}:{seconds % 60:02d}"


def is_valid_time_format(start_time: str) -> bool:
    """True for ``H:MM:SS`` or ``HH:MM:SS`` with minutes/seconds in range."""
    if len(start_time) not in (7, 8):
        return False
    return _TIME_PATTERN.fullmatch(start_time) is not None


def is_valid_date_format(start_date: str) -> bool:
    """True for a real calendar date written as ``YYYYMMDD``."""
    if not _DATE_PATTERN.fullmatch(start_date):
        return False
    try:
        datetime.strptime(start_date, "%Y%m%d")
    except ValueError:
        return False
    return True


def get_timestamp_from_file_name(file_name: str) -> int:
    """Parse the trailing ``YYYY-MM-DDTHH-MM-SSZ`` of a file name into POSIX milliseconds.

    Raises:
        ValueError: If the name does not end with such a timestamp.
    """
    stem = os.path.splitext(os.path.basename(file_name))[0]
    match = _FILE_TIMESTAMP_PATTERN.search(stem)
    if match is None:
        msg = f"No timestamp in file name: {file_name!r}"
        raise ValueError(msg)
    date_part, hours, minutes, seconds = match.groups()
    moment = datetime.strptime(f"{date_part} {hours}:{minutes}:{seconds}", "%Y-%m-%d %H:%M:%S")
    return int(moment.replace(tzinfo=timezone.utc).timestamp() * 1000)


# ---------------------------------------------------------------------------
# Header
# ---------------------------------------------------------------------------


def is_valid_version(header: gtfs_realtime_pb2.FeedHeader) -> bool:
    return not header.HasField("gtfs_realtime_version") or header.gtfs_realtime_version in (
        GTFS_RT_V1,
        GTFS_RT_V2,
    )


def is_v2_or_higher(header: gtfs_realtime_pb2.FeedHeader) -> bool:
    """True when ``gtfs_realtime_version`` is numerically >= 2.0.

    Raises:
        ValueError: If the version is not a number.
    """
    return float(header.gtfs_realtime_version) >= 2.0


# ---------------------------------------------------------------------------
# Descriptors and id text
# ---------------------------------------------------------------------------


def is_added_trip(trip: gtfs_realtime_pb2.TripDescriptor) -> bool:
    return trip.HasField("schedule_relationship") and trip.schedule_relationship == TripDescriptor.ADDED


def schedule_relationship_name(trip: gtfs_realtime_pb2.TripDescriptor) -> str:
    return TripDescriptor.ScheduleRelationship.Name(trip.schedule_relationship)


def trip_id_text(
    entity: gtfs_realtime_pb2.FeedEntity,
    trip: Optional[gtfs_realtime_pb2.TripDescriptor] = None,
) -> str:
    """``trip_id X`` when the trip descriptor has one, otherwise ``entity ID Y``.

    Without an explicit descriptor the entity's TripUpdate trip is used.
    """
    if trip is None:
        if not entity.trip_update.HasField("trip"):
            return f"entity ID {entity.id}"
        trip = entity.trip_update.trip
    if trip.HasField("trip_id"):
        return f"trip_id {trip.trip_id}"
    return f"entity ID {entity.id}"


def vehicle_id_text(entity: gtfs_realtime_pb2.FeedEntity) -> str:
    """``vehicle.id X`` for a VehiclePosition with a vehicle id, otherwise ``entity ID Y``."""
    vehicle_position = entity.vehicle
    if vehicle_position.HasField("vehicle") and vehicle_position.vehicle.HasField("id"):
        return f"vehicle.id {vehicle_position.vehicle.id}"
    return f"entity ID {entity.id}"


def stop_time_update_id(stop_time_update: gtfs_realtime_pb2.TripUpdate.StopTimeUpdate) -> str:
    if stop_time_update.HasField("stop_sequence"):
        return f"stop_sequence {stop_time_update.stop_sequence}"
    return f"stop_id {stop_time_update.stop_id}"


def vehicle_and_trip_id_text(entity: Entity) -> str:
    if isinstance(entity, gtfs_realtime_pb2.VehiclePosition):
        return f"vehicle_id {entity.vehicle.id} trip_id {entity.trip.trip_id}"
    return f"trip_id {entity.trip.trip_id}"


def vehicle_and_route_id_text(entity: Entity) -> str:
    if isinstance(entity, gtfs_realtime_pb2.VehiclePosition):
        return f"vehicle_id {entity.vehicle.id} route_id {entity.trip.route_id}"
    return f"route_id {entity.trip.route_id}"


def list_text(values: Iterable[object]) -> str:
    """Render values as ``[a, b, c]``."""
    return "[" + ", ".join(str(value) for value in values) + "]"


# ---------------------------------------------------------------------------
# Positions
# ---------------------------------------------------------------------------


def float_text(value: float) -> str:
    """Shortest decimal text that round-trips a 32-bit protobuf float (``28.0587``, ``1000.0``)."""
    if value != value or value in (float("inf"), float("-inf")):
        return str(value)
    shortest = float(f"{value:.9g}")
    for precision in range(1, 9):
        candidate = float(f"{value:.{precision}g}")
        if struct.unpack("f", struct.pack("f", candidate))[0] == value:
            shortest = candidate
            break
    return repr(shortest)


def to_miles_per_hour(meters_per_second: float) -> float:
    return meters_per_second * 2.23694


def to_miles(meters: float) -> float:
    return meters * 0.000621371


def is_position_valid(position: gtfs_realtime_pb2.Position) -> bool:
    return -90.0 <= position.latitude <= 90.0 and -180.0 <= position.longitude <= 180.0


def is_bearing_valid(position: gtfs_realtime_pb2.Position) -> bool:
    if not position.HasField("bearing"):
        return True
    return 0.0 <= position.bearing <= 360.0


def is_position_within_shape(position: gtfs_realtime_pb2.Position, shape: BaseGeometry) -> bool:
    """True when the position lies inside or on the boundary of ``shape``."""
    return shape.covers(Point(position.longitude, position.latitude))
