"""Rules that compare TripUpdates against VehiclePositions for the same iteration."""

from __future__ import annotations

from typing import TYPE_CHECKING, Dict, Set

from gtfsrt_validator import rules
from gtfsrt_validator.logging import get_logger
from gtfsrt_validator.models.validation import ValidationResult

if TYPE_CHECKING:
    from google.transit import gtfs_realtime_pb2

    from gtfsrt_validator.services.validation.context import ValidationContext
    from gtfsrt_validator.services.validation.metadata import GtfsMetadata

logger = get_logger(__name__)


class CrossFeedDescriptorValidator:
    """W003 and E047 across the TripUpdates and VehiclePositions of one iteration.

    Works on ``combined_feed_message`` when one is supplied, otherwise on the
    feed itself (a single feed carrying both entity types). When a trip_id or
    vehicle_id is repeated within a feed the last entity wins.
    """

    def validate(self, context: ValidationContext) -> ValidationResult:
        result = ValidationResult()
        feed = context.combined_feed_message
        if feed is None:
            feed = context.feed_message

        tu_trip_to_vehicle: Dict[str, str] = {}
        tu_vehicle_to_trip: Dict[str, str] = {}
        trips_without_vehicles: Set[str] = set()
        vp_vehicle_to_trip: Dict[str, str] = {}
        vp_trip_to_vehicle: Dict[str, str] = {}
        vehicles_without_trips: Set[str] = set()
        trip_update_count = vehicle_count = 0

        for entity in feed.entity:
            if entity.HasField("trip_update") and entity.trip_update.trip.HasField("trip_id"):
                trip_update_count += 1
                trip_id = entity.trip_update.trip.trip_id
                vehicle_id = entity.trip_update.vehicle.id
                if not vehicle_id:
                    trips_without_vehicles.add(trip_id)
                else:
                    tu_trip_to_vehicle[trip_id] = vehicle_id
                    tu_vehicle_to_trip[vehicle_id] = trip_id
            if entity.HasField("vehicle") and entity.vehicle.vehicle.HasField("id"):
                vehicle_count += 1
                vehicle_id = entity.vehicle.vehicle.id
                trip_id = entity.vehicle.trip.trip_id
                if not trip_id:
                    vehicles_without_trips.add(vehicle_id)
                else:
                    vp_vehicle_to_trip[vehicle_id] = trip_id
                    vp_trip_to_vehicle[trip_id] = vehicle_id

        if trip_update_count == 0 or vehicle_count == 0:
            logger.debug(
                "Skipping cross-feed checks, one entity type is absent",
                trip_updates=trip_update_count,
                vehicle_positions=vehicle_count,
            )
            return result

        for trip_id, vehicle_id in tu_trip_to_vehicle.items():
            if trip_id not in vp_trip_to_vehicle:
                result.add(
                    rules.W003,
                    f"trip_id {trip_id} is in TripUpdates but not in VehiclePositions feed",
                )
            if vehicle_id not in vp_vehicle_to_trip and vehicle_id not in vehicles_without_trips:
                result.add(
                    rules.W003,
                    f"vehicle_id {vehicle_id} is in TripUpdates but not in VehiclePositions feed",
                )
            vp_vehicle_id = vp_trip_to_vehicle.get(trip_id)
            if vp_vehicle_id and vp_vehicle_id != vehicle_id:
                result.add(
                    rules.E047,
                    f"vehicle_id {vehicle_id} and trip_id {trip_id} pairing in TripUpdates does "
                    f"not match vehicle_id {vp_vehicle_id} and trip_id {trip_id} pairing in "
                    "VehiclePositions feed",
                )

        for vehicle_id, trip_id in vp_vehicle_to_trip.items():
            if vehicle_id not in tu_vehicle_to_trip:
                result.add(
                    rules.W003,
                    f"vehicle_id {vehicle_id} is in VehiclePositions but not in TripUpdates feed",
                )
            if trip_id not in tu_trip_to_vehicle and trip_id not in trips_without_vehicles:
                result.add(
                    rules.W003,
                    f"trip_id {trip_id} is in VehiclePositions but not in TripUpdates feed",
                )
            tu_trip_id = tu_vehicle_to_trip.get(vehicle_id)
            if (
                tu_trip_id
                and tu_trip_id != trip_id
                and not _same_block(context.gtfs_metadata, trip_id, tu_trip_id)
            ):
                result.add(
                    rules.E047,
                    f"trip_id {trip_id} and vehicle_id {vehicle_id} pairing in VehiclePositions "
                    f"does not match trip_id {tu_trip_id} and vehicle_id {vehicle_id} pairing in "
                    "TripUpdates feed and trip block_ids aren't the same",
                )

        for trip_id in sorted(trips_without_vehicles):
            if trip_id not in vp_trip_to_vehicle:
                result.add(
                    rules.W003,
                    f"trip_id {trip_id} is in TripUpdates but not in VehiclePositions feed",
                )
        for vehicle_id in sorted(vehicles_without_trips):
            if vehicle_id not in tu_vehicle_to_trip:
                result.add(
                    rules.W003,
                    f"vehicle_id {vehicle_id} is in VehiclePositions but not in TripUpdates feed",
                )

        return result


def _same_block(metadata: GtfsMetadata, trip_id: str, other_trip_id: str) -> bool:
    """True when both trips are scheduled and share a non-empty block_id."""
    trip = metadata.trips.get(trip_id)
    other = metadata.trips.get(other_trip_id)
    if trip is None or other is None:
        return False
    return bool(trip.block_id) and trip.block_id == other.block_id
