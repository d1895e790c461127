"""Trip descriptor rules: static references, start time/date, direction and alert selectors."""

from __future__ import annotations

from typing import TYPE_CHECKING

from gtfsrt_validator import rules
from gtfsrt_validator.logging import get_logger
from gtfsrt_validator.models.validation import ValidationResult
from gtfsrt_validator.services.validation.utils import (
    Entity,
    is_added_trip,
    is_valid_date_format,
    is_valid_time_format,
    seconds_after_midnight_to_clock,
    stop_time_update_id,
    trip_id_text,
    vehicle_and_route_id_text,
    vehicle_and_trip_id_text,
)

if TYPE_CHECKING:
    from google.transit import gtfs_realtime_pb2

    from gtfsrt_validator.services.validation.context import ValidationContext
    from gtfsrt_validator.services.validation.metadata import GtfsMetadata

logger = get_logger(__name__)


class TripDescriptorValidator:
    """W006, W009, E003, E004, E016, E020, E021, E023, E024, E030-E035."""

    def validate(self, context: ValidationContext) -> ValidationResult:
        result = ValidationResult()
        metadata = context.gtfs_metadata

        for entity in context.feed_message.entity:
            if entity.HasField("trip_update"):
                self._check_trip_update(entity, metadata, result)
            if entity.HasField("vehicle") and entity.vehicle.HasField("trip"):
                self._check_vehicle(entity, metadata, result)
            if entity.HasField("alert"):
                self._check_alert(entity, metadata, result)

        return result

    # ------------------------------------------------------------------
    # TripUpdates and VehiclePositions
    # ------------------------------------------------------------------

    def _check_trip_update(
        self,
        entity: gtfs_realtime_pb2.FeedEntity,
        metadata: GtfsMetadata,
        result: ValidationResult,
    ) -> None:
        trip_update = entity.trip_update
        trip = trip_update.trip

        if not trip.HasField("trip_id"):
            result.add(rules.W006, f"entity ID {entity.id}")
        else:
            if metadata.trips.get(trip.trip_id) is None:
                if not is_added_trip(trip):
                    result.add(rules.E003, trip_id_text(entity))
            else:
                if is_added_trip(trip):
                    result.add(rules.E016, trip_id_text(entity))
                if trip.HasField("start_time"):
                    self._check_start_time_matches_schedule(trip_update, metadata, result)

        if trip.HasField("start_time"):
            self._check_start_time_format(trip_update, result)
        self._check_start_date_format(trip_update, result)
        self._check_route_exists(trip_update, metadata, result)
        self._check_direction_id(trip_update, metadata, result)
        self._check_trip_route(entity, trip, metadata, result)

        # At most one stop_time_update W009 per trip; the scan stops once any W009 exists
        for stop_time_update in trip_update.stop_time_update:
            if not stop_time_update.HasField("schedule_relationship"):
                result.add(
                    rules.W009,
                    f"{trip_id_text(entity, trip)} {stop_time_update_id(stop_time_update)} "
                    "(and potentially more for this trip)",
                )
            if rules.W009 in result:
                break
        if trip_update.HasField("trip"):
            self._check_schedule_relationship(entity, trip, result)

    def _check_vehicle(
        self,
        entity: gtfs_realtime_pb2.FeedEntity,
        metadata: GtfsMetadata,
        result: ValidationResult,
    ) -> None:
        vehicle_position = entity.vehicle
        trip = vehicle_position.trip

        if not trip.HasField("trip_id"):
            result.add(rules.W006, f"entity ID {entity.id}")
        elif trip.trip_id:
            prefix = f"vehicle_id {vehicle_position.vehicle.id} trip_id {trip.trip_id}"
            if metadata.trips.get(trip.trip_id) is None:
                if not is_added_trip(trip):
                    result.add(rules.E003, prefix)
            else:
                if is_added_trip(trip):
                    result.add(rules.E016, prefix)
                if trip.HasField("start_time"):
                    self._check_start_time_matches_schedule(vehicle_position, metadata, result)

        if trip.HasField("start_time"):
            self._check_start_time_format(vehicle_position, result)
        self._check_route_exists(vehicle_position, metadata, result)
        self._check_start_date_format(vehicle_position, result)
        self._check_direction_id(vehicle_position, metadata, result)
        self._check_trip_route(entity, trip, metadata, result)
        self._check_schedule_relationship(entity, trip, result)

    @staticmethod
    def _check_route_exists(entity: Entity, metadata: GtfsMetadata, result: ValidationResult) -> None:
        """E004 - route_id must be in routes.txt."""
        route_id = entity.trip.route_id
        if route_id and route_id not in metadata.route_ids:
            result.add(rules.E004, vehicle_and_route_id_text(entity))

    @staticmethod
    def _check_start_time_format(entity: Entity, result: ValidationResult) -> None:
        """E020 - start_time must be H:MM:SS or HH:MM:SS."""
        start_time = entity.trip.start_time
        if not is_valid_time_format(start_time):
            result.add(rules.E020, f"{vehicle_and_trip_id_text(entity)} start_time is {start_time}")

    @staticmethod
    def _check_start_date_format(entity: Entity, result: ValidationResult) -> None:
        """E021 - start_date must be YYYYMMDD."""
        trip = entity.trip
        if trip.HasField("start_date") and not is_valid_date_format(trip.start_date):
            result.add(
                rules.E021, f"{vehicle_and_trip_id_text(entity)} start_date is {trip.start_date}"
            )

    @staticmethod
    def _check_start_time_matches_schedule(
        entity: Entity, metadata: GtfsMetadata, result: ValidationResult
    ) -> None:
        """E023 - start_time must equal the first scheduled arrival of a non-frequency trip."""
        trip = entity.trip
        trip_id = trip.trip_id
        if trip_id in metadata.exact_times_zero_trip_ids or trip_id in metadata.exact_times_one_trips:
            return
        stop_times = metadata.get_trip_stop_times(trip_id)
        if not stop_times or not stop_times[0].is_arrival_time_set:
            return
        scheduled = seconds_after_midnight_to_clock(stop_times[0].arrival_time)
        if trip.start_time != scheduled:
            result.add(
                rules.E023,
                f"GTFS-rt {vehicle_and_trip_id_text(entity)} start_time is {trip.start_time} "
                f"and GTFS initial arrival_time is {scheduled}",
            )

    @staticmethod
    def _check_direction_id(entity: Entity, metadata: GtfsMetadata, result: ValidationResult) -> None:
        """E024 - direction_id must match trips.txt."""
        trip = entity.trip
        if not trip.HasField("direction_id"):
            return
        gtfs_trip = metadata.trips.get(trip.trip_id)
        if gtfs_trip is None:
            return
        if gtfs_trip.direction_id is None or gtfs_trip.direction_id != trip.direction_id:
            static_direction = "null" if gtfs_trip.direction_id is None else gtfs_trip.direction_id
            result.add(
                rules.E024,
                f"GTFS-rt {vehicle_and_trip_id_text(entity)} trip.direction_id is "
                f"{trip.direction_id} but GTFS trip.direction_id is {static_direction}",
            )

    @staticmethod
    def _check_trip_route(
        entity: gtfs_realtime_pb2.FeedEntity,
        trip: gtfs_realtime_pb2.TripDescriptor,
        metadata: GtfsMetadata,
        result: ValidationResult,
    ) -> None:
        """E035 - trip_id must belong to the given route_id (unknown ids are E003/E004's concern)."""
        if not (trip.HasField("trip_id") and trip.HasField("route_id")):
            return
        if trip.route_id not in metadata.route_ids:
            return
        gtfs_trip = metadata.trips.get(trip.trip_id)
        if gtfs_trip is None:
            return
        if gtfs_trip.route_id != trip.route_id:
            result.add(
                rules.E035,
                f"GTFS-rt entity ID {entity.id} trip_id {trip.trip_id} has route_id "
                f"{trip.route_id} but belongs to GTFS route_id {gtfs_trip.route_id}",
            )

    @staticmethod
    def _check_schedule_relationship(
        entity: gtfs_realtime_pb2.FeedEntity,
        trip: gtfs_realtime_pb2.TripDescriptor,
        result: ValidationResult,
    ) -> None:
        """W009 - trip schedule_relationship should be populated."""
        if not trip.HasField("schedule_relationship"):
            result.add(rules.W009, trip_id_text(entity, trip))

    # ------------------------------------------------------------------
    # Alerts
    # ------------------------------------------------------------------

    def _check_alert(
        self,
        entity: gtfs_realtime_pb2.FeedEntity,
        metadata: GtfsMetadata,
        result: ValidationResult,
    ) -> None:
        informed_entities = entity.alert.informed_entity
        if not informed_entities:
            result.add(rules.E032, f"alert ID {entity.id} does not have an informed_entity")
            return

        for selector in informed_entities:
            self._check_selector_specifier(entity, selector, result)
            if selector.HasField("agency_id") and selector.agency_id not in metadata.agency_ids:
                result.add(rules.E034, f"alert ID {entity.id} agency_id {selector.agency_id}")
            self._check_trip_route(entity, selector.trip, metadata, result)
            if selector.HasField("route_id") and selector.HasField("trip"):
                self._check_selector_trip_route(entity, selector, metadata, result)
            if selector.HasField("trip"):
                if not selector.trip.HasField("trip_id"):
                    result.add(rules.W006, f"entity ID {entity.id}")
                self._check_schedule_relationship(entity, selector.trip, result)

    @staticmethod
    def _check_selector_specifier(
        entity: gtfs_realtime_pb2.FeedEntity,
        selector: gtfs_realtime_pb2.EntitySelector,
        result: ValidationResult,
    ) -> None:
        """E033 - informed_entity must reference an agency, route, trip or stop."""
        if any(
            selector.HasField(name) for name in ("agency_id", "route_id", "route_type", "stop_id")
        ):
            return
        trip = selector.trip if selector.HasField("trip") else None
        if trip is None or not (trip.HasField("trip_id") or trip.HasField("route_id")):
            result.add(
                rules.E033,
                f"alert ID {entity.id} informed_entity and informed_entity.trip do not "
                "reference any agency, route, trip, or stop",
            )

    @staticmethod
    def _check_selector_trip_route(
        entity: gtfs_realtime_pb2.FeedEntity,
        selector: gtfs_realtime_pb2.EntitySelector,
        metadata: GtfsMetadata,
        result: ValidationResult,
    ) -> None:
        """E030 (trip belongs to informed route) and E031 (route ids agree)."""
        route_id = selector.route_id
        trip = selector.trip
        if trip.HasField("trip_id"):
            gtfs_trip = metadata.trips.get(trip.trip_id)
            if gtfs_trip is not None and gtfs_trip.route_id != route_id:
                result.add(
                    rules.E030,
                    f"alert ID {entity.id} informed_entity.trip.trip_id {trip.trip_id} does not "
                    f"belong to informed_entity.route_id {route_id} "
                    f"(GTFS says it belongs to route_id {gtfs_trip.route_id})",
                )
        if trip.HasField("route_id") and trip.route_id != route_id:
            result.add(
                rules.E031,
                f"alert ID {entity.id} informed_entity.route_id {route_id} does not equal "
                f"informed_entity.trip.route_id {trip.route_id}",
            )
