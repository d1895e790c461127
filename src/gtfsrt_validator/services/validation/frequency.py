"""Rules for frequency-based trips (frequencies.txt exact_times = 0 and 1)."""

from __future__ import annotations

from typing import TYPE_CHECKING, Mapping, Optional, Sequence

from gtfsrt_validator import rules
from gtfsrt_validator.logging import get_logger
from gtfsrt_validator.models.validation import ValidationResult
from gtfsrt_validator.services.validation.utils import (
    TripDescriptor,
    schedule_relationship_name,
    seconds_after_midnight_to_clock,
)

if TYPE_CHECKING:
    from google.transit import gtfs_realtime_pb2

    from gtfsrt_validator.models.gtfs import Frequency
    from gtfsrt_validator.services.validation.context import ValidationContext

logger = get_logger(__name__)


def _is_unscheduled_or_empty(trip: gtfs_realtime_pb2.TripDescriptor) -> bool:
    return (
        not trip.HasField("schedule_relationship")
        or trip.schedule_relationship == TripDescriptor.UNSCHEDULED
    )


class FrequencyTypeZeroValidator:
    """E006, E013 and W005 for exact_times = 0 trips.

    Trips without a trip_id cannot be recognised as frequency-based here;
    those are reported by W006.
    """

    def validate(self, context: ValidationContext) -> ValidationResult:
        result = ValidationResult()
        frequency_trip_ids = context.gtfs_metadata.exact_times_zero_trip_ids

        for entity in context.feed_message.entity:
            if entity.HasField("trip_update"):
                trip_update = entity.trip_update
                trip = trip_update.trip
                if trip.trip_id in frequency_trip_ids:
                    prefix = f"trip_id {trip.trip_id}"
                    self._check_trip(prefix, trip, result)
                    if not (
                        trip_update.HasField("vehicle") and trip_update.vehicle.HasField("id")
                    ):
                        result.add(rules.W005, prefix)

            if entity.HasField("vehicle"):
                vehicle_position = entity.vehicle
                trip = vehicle_position.trip
                if vehicle_position.HasField("trip") and trip.trip_id in frequency_trip_ids:
                    self._check_trip(
                        f"vehicle_id {vehicle_position.vehicle.id} trip_id {trip.trip_id}",
                        trip,
                        result,
                    )
                    if not vehicle_position.vehicle.HasField("id"):
                        result.add(rules.W005, f"entity ID {entity.id} with trip_id {trip.trip_id}")

        return result

    @staticmethod
    def _check_trip(
        prefix: str, trip: gtfs_realtime_pb2.TripDescriptor, result: ValidationResult
    ) -> None:
        if not trip.HasField("start_date"):
            result.add(rules.E006, f"{prefix} is missing start_date")
        if not trip.HasField("start_time"):
            result.add(rules.E006, f"{prefix} is missing start_time")
        if not _is_unscheduled_or_empty(trip):
            result.add(
                rules.E013, f"{prefix} schedule_relationship {schedule_relationship_name(trip)}"
            )


class FrequencyTypeOneValidator:
    """E019 - exact_times = 1 start_time must fall on a headway multiple of a frequency start."""

    def validate(self, context: ValidationContext) -> ValidationResult:
        result = ValidationResult()
        frequency_trips = context.gtfs_metadata.exact_times_one_trips

        for entity in context.feed_message.entity:
            if entity.HasField("trip_update"):
                self._check_trip(entity.trip_update.trip, frequency_trips, result)
            if entity.HasField("vehicle"):
                self._check_trip(entity.vehicle.trip, frequency_trips, result)

        return result

    @staticmethod
    def _check_trip(
        trip: gtfs_realtime_pb2.TripDescriptor,
        frequency_trips: Mapping[str, Sequence[Frequency]],
        result: ValidationResult,
    ) -> None:
        frequencies = frequency_trips.get(trip.trip_id)
        if frequencies is None:
            return

        last_start: Optional[str] = None
        headway: Optional[int] = None
        for frequency in frequencies:
            start = frequency.start_time
            while start < frequency.end_time:
                last_start = seconds_after_midnight_to_clock(start)
                headway = frequency.headway_secs
                if trip.start_time == last_start:
                    return
                start += frequency.headway_secs

        logger.debug(
            "start_time is not on a frequency headway",
            trip_id=trip.trip_id,
            start_time=trip.start_time,
        )
        result.add(
            rules.E019,
            f"GTFS-rt trip_id {trip.trip_id} has start_time of {trip.start_time} and GTFS "
            f"frequencies.txt start_time is {last_start} with a headway of {headway} seconds",
        )
