"""Static GTFS records and the read-only in-memory dataset."""

from __future__ import annotations

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Dict, List, Mapping, Optional, Tuple


@dataclass(frozen=True)
class Agency:
    """agency.txt row."""

    agency_id: str
    name: str = ""
    timezone: str = ""


@dataclass(frozen=True)
class Route:
    """routes.txt row."""

    route_id: str
    agency_id: str = ""
    short_name: str = ""
    long_name: str = ""
    route_type: Optional[int] = None


@dataclass(frozen=True)
class Trip:
    """trips.txt row. ``direction_id`` is None when the column is blank."""

    trip_id: str
    route_id: str
    service_id: str = ""
    direction_id: Optional[int] = None
    block_id: str = ""
    shape_id: str = ""


@dataclass(frozen=True)
class Stop:
    """stops.txt row."""

    stop_id: str
    name: str = ""
    lat: Optional[float] = None
    lon: Optional[float] = None
    location_type: int = 0
    parent_station: str = ""


@dataclass(frozen=True)
class StopTime:
    """stop_times.txt row, times in seconds after midnight (may exceed 86400)."""

    trip_id: str
    stop_id: str
    stop_sequence: int
    arrival_time: Optional[int] = None
    departure_time: Optional[int] = None
    timepoint: Optional[int] = None

    @property
    def is_arrival_time_set(self) -> bool:
        return self.arrival_time is not None

    @property
    def is_departure_time_set(self) -> bool:
        return self.departure_time is not None


@dataclass(frozen=True)
class ShapePoint:
    """shapes.txt row."""

    shape_id: str
    lat: float
    lon: float
    sequence: int


@dataclass(frozen=True)
class Frequency:
    """frequencies.txt row, start/end in seconds after midnight."""

    trip_id: str
    start_time: int
    end_time: int
    headway_secs: int
    exact_times: int = 0


@dataclass(frozen=True)
class GtfsDataset:
    """Read-only static GTFS tables with a trip lookup by id.

    Tables keep file order; the trip index is built once in
    ``__post_init__`` and exposed as a read-only view.
    """

    agencies: Tuple[Agency, ...] = ()
    routes: Tuple[Route, ...] = ()
    trips: Tuple[Trip, ...] = ()
    stops: Tuple[Stop, ...] = ()
    stop_times: Tuple[StopTime, ...] = ()
    shape_points: Tuple[ShapePoint, ...] = ()
    frequencies: Tuple[Frequency, ...] = ()

    _trips_by_id: Mapping[str, Trip] = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        # frozen dataclass: assign derived indexes through object.__setattr__
        object.__setattr__(
            self, "_trips_by_id", MappingProxyType({t.trip_id: t for t in self.trips})
        )

    def get_trip(self, trip_id: str) -> Optional[Trip]:
        return self._trips_by_id.get(trip_id)

    @property
    def trips_by_id(self) -> Mapping[str, Trip]:
        return self._trips_by_id

    def stop_times_by_trip(self) -> Dict[str, List[StopTime]]:
        """Group stop_times by trip_id, preserving file order within each trip."""
        grouped: Dict[str, List[StopTime]] = {}
        for stop_time in self.stop_times:
            grouped.setdefault(stop_time.trip_id, []).append(stop_time)
        return grouped

    def summary(self) -> Dict[str, int]:
        return {
            "agencies": len(self.agencies),
            "routes": len(self.routes),
            "trips": len(self.trips),
            "stops": len(self.stops),
            "stop_times": len(self.stop_times),
            "shape_points": len(self.shape_points),
            "frequencies": len(self.frequencies),
        }
