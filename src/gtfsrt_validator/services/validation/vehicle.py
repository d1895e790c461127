"""VehiclePosition rules: vehicle ids, speed, coordinates and shape adherence."""

from __future__ import annotations

from typing import TYPE_CHECKING, Optional, Sequence, Set

from google.transit import gtfs_realtime_pb2

from gtfsrt_validator import rules
from gtfsrt_validator.config import get_settings
from gtfsrt_validator.logging import get_logger
from gtfsrt_validator.models.validation import ValidationResult
from gtfsrt_validator.services.validation.utils import (
    float_text,
    is_bearing_valid,
    is_position_valid,
    is_position_within_shape,
    to_miles,
    to_miles_per_hour,
    trip_id_text,
    vehicle_id_text,
)

if TYPE_CHECKING:
    from gtfsrt_validator.services.validation.context import ValidationContext
    from gtfsrt_validator.services.validation.metadata import GtfsMetadata

logger = get_logger(__name__)


class VehicleValidator:
    """W002, W004, E026, E027, E028, E029, E052."""

    def __init__(self, *, max_realistic_speed_mps: Optional[float] = None) -> None:
        settings = get_settings()
        self.max_realistic_speed_mps = (
            max_realistic_speed_mps
            if max_realistic_speed_mps is not None
            else settings.max_realistic_speed_mps
        )

    def validate(self, context: ValidationContext) -> ValidationResult:
        result = ValidationResult()
        metadata = context.gtfs_metadata
        entities = context.feed_message.entity
        vehicle_ids: Set[str] = set()

        for entity in entities:
            if entity.HasField("trip_update") and not entity.trip_update.vehicle.id:
                result.add(rules.W002, trip_id_text(entity))

            if not entity.HasField("vehicle"):
                continue
            vehicle_position = entity.vehicle
            vehicle_id = vehicle_position.vehicle.id

            if not vehicle_id:
                result.add(rules.W002, f"entity ID {entity.id}")
            elif vehicle_id in vehicle_ids:
                result.add(rules.E052, f"entity ID {entity.id} has vehicle.id {vehicle_id}")
            else:
                vehicle_ids.add(vehicle_id)

            if vehicle_position.HasField("position"):
                self._check_speed(entity, result)
                self._check_position(entity, entities, metadata, result)

        return result

    def _check_speed(self, entity: gtfs_realtime_pb2.FeedEntity, result: ValidationResult) -> None:
        """W004 - speed must be non-negative and no faster than the realistic maximum."""
        position = entity.vehicle.position
        if not position.HasField("speed"):
            return
        speed = position.speed
        if speed > self.max_realistic_speed_mps or speed < 0:
            result.add(
                rules.W004,
                f"{vehicle_id_text(entity)} speed of {float_text(speed)} m/s "
                f"({to_miles_per_hour(speed):.2f} mph)",
            )

    def _check_position(
        self,
        entity: gtfs_realtime_pb2.FeedEntity,
        entities: Sequence[gtfs_realtime_pb2.FeedEntity],
        metadata: GtfsMetadata,
        result: ValidationResult,
    ) -> None:
        position = entity.vehicle.position
        vehicle_text = vehicle_id_text(entity)

        if not (position.HasField("latitude") and position.HasField("longitude")):
            result.add(rules.E026, f"{vehicle_text} position is missing lat/long")
        elif not is_position_valid(position):
            result.add(
                rules.E026,
                f"{vehicle_text} has latitude/longitude of "
                f"({float_text(position.latitude)},{float_text(position.longitude)})",
            )
        elif self._check_within_region(entity, metadata, result):
            self._check_within_trip_shape(entity, entities, metadata, result)

        if not is_bearing_valid(position):
            result.add(rules.E027, f"{vehicle_text} has bearing of {float_text(position.bearing)}")

    @staticmethod
    def _check_within_region(
        entity: gtfs_realtime_pb2.FeedEntity,
        metadata: GtfsMetadata,
        result: ValidationResult,
    ) -> bool:
        """E028 - position must lie within the buffered shapes.txt (else stops.txt) coverage.

        Returns whether the position is inside, so E029 is only checked for
        vehicles that are within the agency's region. Without any coverage
        area the position is treated as inside.
        """
        if metadata.shape_bounding_box_with_buffer is not None:
            coverage = metadata.shape_bounding_box_with_buffer
            source = "shapes.txt"
        else:
            coverage = metadata.stop_bounding_box_with_buffer
            source = "stops.txt"
        if coverage is None:
            return True

        position = entity.vehicle.position
        if is_position_within_shape(position, coverage):
            return True

        buffer_meters = float(metadata.region_buffer_meters)
        result.add(
            rules.E028,
            f"{vehicle_id_text(entity)} at "
            f"({float_text(position.latitude)},{float_text(position.longitude)}) is more than "
            f"{buffer_meters} meters ({to_miles(buffer_meters):.2f} mile(s)) outside entire "
            f"GTFS {source} coverage area",
        )
        return False

    @staticmethod
    def _check_within_trip_shape(
        entity: gtfs_realtime_pb2.FeedEntity,
        entities: Sequence[gtfs_realtime_pb2.FeedEntity],
        metadata: GtfsMetadata,
        result: ValidationResult,
    ) -> None:
        """E029 - position must lie within the buffered trip shape unless the trip is on detour."""
        vehicle_position = entity.vehicle
        trip = vehicle_position.trip
        if not (vehicle_position.HasField("trip") and trip.HasField("trip_id")):
            return
        trip_id = trip.trip_id
        route_id = trip.route_id if trip.HasField("route_id") else None

        shape = metadata.get_buffered_trip_shape(trip_id)
        if shape is None:
            return

        position = vehicle_position.position
        if is_position_within_shape(position, shape):
            return
        if _has_detour_alert(entities, trip_id, route_id):
            logger.debug("Vehicle off trip shape on detour", trip_id=trip_id, route_id=route_id)
            return

        buffer_meters = float(metadata.trip_buffer_meters)
        result.add(
            rules.E029,
            f"{vehicle_id_text(entity)} trip_id {trip_id} at "
            f"({float_text(position.latitude)},{float_text(position.longitude)}) is more than "
            f"{buffer_meters} meters ({to_miles(buffer_meters):.2f} mile(s)) from the GTFS trip shape",
        )


def _has_detour_alert(
    entities: Sequence[gtfs_realtime_pb2.FeedEntity], trip_id: str, route_id: Optional[str]
) -> bool:
    """True if any DETOUR alert in the feed informs this trip_id or route_id."""
    for entity in entities:
        if not entity.HasField("alert"):
            continue
        alert = entity.alert
        if not (alert.HasField("effect") and alert.effect == gtfs_realtime_pb2.Alert.DETOUR):
            continue
        for selector in alert.informed_entity:
            if not selector.HasField("trip"):
                continue
            if selector.trip.trip_id == trip_id:
                return True
            if route_id is not None and selector.trip.route_id == route_id:
                return True
    return False
