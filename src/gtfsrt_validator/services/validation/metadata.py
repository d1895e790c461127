"""Derived lookups and geometry for a static GTFS dataset.

GtfsMetadata is built once per dataset load and shared read-only by every
validator run against that dataset. Geometry is in lon/lat degrees (x=lon,
y=lat); buffer distances are converted from meters with 1 degree = 111.195 km.
"""

from __future__ import annotations

import math
import time
from dataclasses import dataclass, field
from datetime import timezone, tzinfo
from types import MappingProxyType
from typing import TYPE_CHECKING, Dict, FrozenSet, List, Mapping, Optional, Tuple
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

import shapely
from shapely.geometry import LineString, Point, Polygon, box
from shapely.geometry.base import BaseGeometry

from gtfsrt_validator.config import get_settings
from gtfsrt_validator.logging import get_logger

if TYPE_CHECKING:
    from gtfsrt_validator.models.gtfs import Frequency, GtfsDataset, ShapePoint, StopTime, Trip

logger = get_logger(__name__)

KM_TO_DEGREES = 1 / 111.195


def meters_to_degrees(meters: float) -> float:
    """Convert a ground distance to degrees of arc on the mean-radius sphere."""
    return (meters / 1000.0) * KM_TO_DEGREES


def buffer_bounding_box(bounds: Tuple[float, float, float, float], buffer_degrees: float) -> Polygon:
    """Grow a (min_lon, min_lat, max_lon, max_lat) box by ``buffer_degrees`` of ground distance.

    Longitude degrees shrink toward the poles, so the longitude margin is
    widened by 1/cos(latitude) at the box's most poleward edge.
    """
    min_lon, min_lat, max_lon, max_lat = bounds
    new_min_lat = max(min_lat - buffer_degrees, -90.0)
    new_max_lat = min(max_lat + buffer_degrees, 90.0)
    poleward = min(max(abs(new_min_lat), abs(new_max_lat)), 89.9)
    lon_buffer = buffer_degrees / math.cos(math.radians(poleward))
    return box(
        max(min_lon - lon_buffer, -180.0),
        new_min_lat,
        min(max_lon + lon_buffer, 180.0),
        new_max_lat,
    )


@dataclass(frozen=True, eq=False)
class GtfsMetadata:
    """Read-only reference data derived from a GtfsDataset.

    Bounding boxes are None when the dataset has no coordinates to bound
    (no located stops, or shapes absent/ignored). ``trip_shape_ids`` only
    contains trips whose shape has points, so a trip missing from it has no
    buffered shape.
    """

    label: str
    timezone: tzinfo
    agency_ids: FrozenSet[str]
    route_ids: FrozenSet[str]
    trips: Mapping[str, Trip]
    trip_stop_times: Mapping[str, Tuple[StopTime, ...]]
    stop_ids: FrozenSet[str]
    stop_location_types: Mapping[str, int]
    trips_with_multi_stops: Mapping[str, Tuple[str, ...]]
    exact_times_zero_trip_ids: FrozenSet[str]
    exact_times_one_trips: Mapping[str, Tuple[Frequency, ...]]
    shape_points: Mapping[str, Tuple[ShapePoint, ...]]
    stop_bounding_box: Optional[Polygon] = None
    stop_bounding_box_with_buffer: Optional[Polygon] = None
    shape_bounding_box: Optional[Polygon] = None
    shape_bounding_box_with_buffer: Optional[Polygon] = None
    trip_shape_ids: Mapping[str, str] = field(default_factory=dict)
    region_buffer_meters: float = 1609.0
    trip_buffer_meters: float = 200.0
    ignore_shapes: bool = False
    _buffered_shapes: Mapping[str, BaseGeometry] = field(
        default_factory=dict, repr=False, compare=False
    )

    @classmethod
    def build(
        cls,
        dataset: GtfsDataset,
        *,
        label: str = "gtfs",
        ignore_shapes: Optional[bool] = None,
        region_buffer_meters: Optional[float] = None,
        trip_buffer_meters: Optional[float] = None,
    ) -> GtfsMetadata:
        """Derive metadata from ``dataset``.

        Args:
            dataset: The loaded static GTFS dataset.
            label: Name of the dataset for logging.
            ignore_shapes: Skip shapes.txt entirely (disables E029 and the
                shape bounding box). Defaults to ``settings.ignore_shapes``.
            region_buffer_meters: Margin around the coverage bounding boxes.
            trip_buffer_meters: Margin around each trip's shape polyline.
        """
        settings = get_settings()
        ignore_shapes = settings.ignore_shapes if ignore_shapes is None else ignore_shapes
        region_buffer_meters = (
            settings.region_buffer_meters if region_buffer_meters is None else region_buffer_meters
        )
        trip_buffer_meters = (
            settings.trip_buffer_meters if trip_buffer_meters is None else trip_buffer_meters
        )

        started = time.monotonic()
        logger.info("Building GTFS metadata", label=label, ignore_shapes=ignore_shapes)

        region_buffer_degrees = meters_to_degrees(region_buffer_meters)

        # Shapes
        shape_points: Dict[str, List[ShapePoint]] = {}
        shape_bbox = shape_bbox_buffered = None
        if not ignore_shapes and len(dataset.shape_points) > 3:
            for point in dataset.shape_points:
                shape_points.setdefault(point.shape_id, []).append(point)
            for points in shape_points.values():
                points.sort(key=lambda p: p.sequence)
            lons = [p.lon for p in dataset.shape_points]
            lats = [p.lat for p in dataset.shape_points]
            shape_bbox = box(min(lons), min(lats), max(lons), max(lats))
            shape_bbox_buffered = buffer_bounding_box(shape_bbox.bounds, region_buffer_degrees)

        # Stop times per trip, sorted by stop_sequence
        grouped = dataset.stop_times_by_trip()
        trip_stop_times = {
            trip_id: tuple(sorted(stop_times, key=lambda st: st.stop_sequence))
            for trip_id, stop_times in grouped.items()
        }

        # Trips and their shapes
        trip_shape_ids: Dict[str, str] = {}
        for trip in dataset.trips:
            if trip.shape_id and trip.shape_id in shape_points:
                trip_shape_ids[trip.trip_id] = trip.shape_id

        trip_buffer_degrees = meters_to_degrees(trip_buffer_meters)
        buffered_shapes: Dict[str, BaseGeometry] = {}
        for shape_id in set(trip_shape_ids.values()):
            coords = [(p.lon, p.lat) for p in shape_points[shape_id]]
            line = LineString(coords) if len(coords) > 1 else Point(coords[0])
            buffered = line.buffer(trip_buffer_degrees)
            shapely.prepare(buffered)
            buffered_shapes[shape_id] = buffered

        # Stops visited more than once by the same trip (loop trips)
        trips_with_multi_stops: Dict[str, Tuple[str, ...]] = {}
        for trip_id, stop_times in trip_stop_times.items():
            seen = set()
            repeated: List[str] = []
            for stop_time in stop_times:
                if stop_time.stop_id in seen:
                    repeated.append(stop_time.stop_id)
                seen.add(stop_time.stop_id)
            if repeated:
                trips_with_multi_stops[trip_id] = tuple(repeated)

        # Stops
        located = [s for s in dataset.stops if s.lat is not None and s.lon is not None]
        stop_bbox = stop_bbox_buffered = None
        if located:
            lons = [s.lon for s in located]
            lats = [s.lat for s in located]
            stop_bbox = box(min(lons), min(lats), max(lons), max(lats))
            stop_bbox_buffered = buffer_bounding_box(stop_bbox.bounds, region_buffer_degrees)

        # Frequencies
        exact_times_zero = set()
        exact_times_one: Dict[str, List[Frequency]] = {}
        for frequency in dataset.frequencies:
            if frequency.exact_times == 0:
                exact_times_zero.add(frequency.trip_id)
            elif frequency.exact_times == 1:
                exact_times_one.setdefault(frequency.trip_id, []).append(frequency)

        metadata = cls(
            label=label,
            timezone=_agency_timezone(dataset),
            agency_ids=frozenset(a.agency_id or a.name for a in dataset.agencies),
            route_ids=frozenset(r.route_id for r in dataset.routes),
            trips=MappingProxyType(dict(dataset.trips_by_id)),
            trip_stop_times=MappingProxyType(trip_stop_times),
            stop_ids=frozenset(s.stop_id for s in dataset.stops),
            stop_location_types=MappingProxyType(
                {s.stop_id: s.location_type for s in dataset.stops}
            ),
            trips_with_multi_stops=MappingProxyType(trips_with_multi_stops),
            exact_times_zero_trip_ids=frozenset(exact_times_zero),
            exact_times_one_trips=MappingProxyType(
                {trip_id: tuple(freqs) for trip_id, freqs in exact_times_one.items()}
            ),
            shape_points=MappingProxyType(
                {shape_id: tuple(points) for shape_id, points in shape_points.items()}
            ),
            stop_bounding_box=stop_bbox,
            stop_bounding_box_with_buffer=stop_bbox_buffered,
            shape_bounding_box=shape_bbox,
            shape_bounding_box_with_buffer=shape_bbox_buffered,
            trip_shape_ids=MappingProxyType(trip_shape_ids),
            region_buffer_meters=region_buffer_meters,
            trip_buffer_meters=trip_buffer_meters,
            ignore_shapes=ignore_shapes,
            _buffered_shapes=MappingProxyType(buffered_shapes),
        )

        logger.info(
            "GTFS metadata built",
            label=label,
            duration_ms=int((time.monotonic() - started) * 1000),
            trips=len(metadata.trips),
            stops=len(metadata.stop_ids),
            shapes=len(buffered_shapes),
            trips_with_shapes=len(trip_shape_ids),
            loop_trips=len(trips_with_multi_stops),
        )
        return metadata

    def get_buffered_trip_shape(self, trip_id: str) -> Optional[BaseGeometry]:
        """Buffered polygon around the trip's shape, or None if the trip has no shape."""
        shape_id = self.trip_shape_ids.get(trip_id)
        if shape_id is None:
            return None
        return self._buffered_shapes.get(shape_id)

    def get_trip_stop_times(self, trip_id: str) -> Tuple[StopTime, ...]:
        return self.trip_stop_times.get(trip_id, ())


def _agency_timezone(dataset: GtfsDataset) -> tzinfo:
    """Timezone of the first agency in agency.txt, falling back to UTC."""
    name = dataset.agencies[0].timezone if dataset.agencies else ""
    if not name:
        return timezone.utc
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError):
        logger.warning("Unknown agency_timezone, using UTC", agency_timezone=name)
        return timezone.utc
