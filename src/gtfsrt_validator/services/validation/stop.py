"""Stop reference rules for realtime entities and the static stop_times.txt."""

from __future__ import annotations

from typing import TYPE_CHECKING, Set

from gtfsrt_validator import rules
from gtfsrt_validator.logging import get_logger
from gtfsrt_validator.models.validation import ValidationResult

if TYPE_CHECKING:
    from gtfsrt_validator.services.validation.context import ValidationContext
    from gtfsrt_validator.services.validation.metadata import GtfsMetadata

logger = get_logger(__name__)


def _is_boarding_location(metadata: GtfsMetadata, stop_id: str) -> bool:
    """False only for known stops whose location_type is not 0."""
    location_type = metadata.stop_location_types.get(stop_id)
    return location_type is None or location_type == 0


class StopValidator:
    """E011 (stop_id unknown) and E015 (stop_id is not a stop or platform)."""

    def validate(self, context: ValidationContext) -> ValidationResult:
        result = ValidationResult()
        metadata = context.gtfs_metadata

        for entity in context.feed_message.entity:
            if entity.HasField("trip_update"):
                trip_id = entity.trip_update.trip.trip_id
                for stop_time_update in entity.trip_update.stop_time_update:
                    if stop_time_update.HasField("stop_id"):
                        self._check_stop(
                            metadata,
                            stop_time_update.stop_id,
                            f"trip_id {trip_id} stop_id {stop_time_update.stop_id}",
                            result,
                        )

            if entity.HasField("vehicle") and entity.vehicle.HasField("stop_id"):
                vehicle_position = entity.vehicle
                prefix = f"stop_id {vehicle_position.stop_id}"
                if vehicle_position.HasField("vehicle") and vehicle_position.vehicle.HasField("id"):
                    prefix = f"vehicle_id {vehicle_position.vehicle.id} {prefix}"
                self._check_stop(metadata, vehicle_position.stop_id, prefix, result)

            if entity.HasField("alert"):
                for selector in entity.alert.informed_entity:
                    if selector.HasField("stop_id") and selector.stop_id not in metadata.stop_ids:
                        result.add(
                            rules.E011, f"alert entity ID {entity.id} stop_id {selector.stop_id}"
                        )

        return result

    @staticmethod
    def _check_stop(
        metadata: GtfsMetadata, stop_id: str, prefix: str, result: ValidationResult
    ) -> None:
        if stop_id not in metadata.stop_ids:
            result.add(rules.E011, prefix)
        if not _is_boarding_location(metadata, stop_id):
            result.add(rules.E015, prefix)


class StopLocationTypeValidator:
    """E010 - stops referenced by stop_times.txt must have location_type 0.

    A static-data check: the result depends only on the GTFS dataset, so it
    is the same for every realtime iteration.
    """

    def validate(self, context: ValidationContext) -> ValidationResult:
        result = ValidationResult()
        metadata = context.gtfs_metadata
        checked: Set[str] = set()

        for stop_time in context.gtfs_data.stop_times:
            if stop_time.stop_id in checked:
                continue
            checked.add(stop_time.stop_id)
            if not _is_boarding_location(metadata, stop_time.stop_id):
                result.add(rules.E010, f"stop_id {stop_time.stop_id}")

        return result
