"""StopTimeUpdate rules: ordering, repeats and agreement with stop_times.txt."""

from __future__ import annotations

from typing import TYPE_CHECKING, List, Optional, Sequence

from gtfsrt_validator import rules
from gtfsrt_validator.logging import get_logger
from gtfsrt_validator.models.validation import ValidationResult
from gtfsrt_validator.services.validation.utils import (
    StopTimeUpdate,
    TripDescriptor,
    list_text,
    stop_time_update_id,
    trip_id_text,
)

if TYPE_CHECKING:
    from google.transit import gtfs_realtime_pb2

    from gtfsrt_validator.models.gtfs import StopTime
    from gtfsrt_validator.services.validation.context import ValidationContext
    from gtfsrt_validator.services.validation.metadata import GtfsMetadata

logger = get_logger(__name__)


class StopTimeUpdateValidator:
    """E002, E009, E036, E037, E040-E046, E051."""

    def validate(self, context: ValidationContext) -> ValidationResult:
        result = ValidationResult()
        metadata = context.gtfs_metadata

        for entity in context.feed_message.entity:
            if entity.HasField("trip_update"):
                self._check_trip_update(entity, metadata, result)

        return result

    def _check_trip_update(
        self,
        entity: gtfs_realtime_pb2.FeedEntity,
        metadata: GtfsMetadata,
        result: ValidationResult,
    ) -> None:
        trip_update = entity.trip_update
        trip = trip_update.trip
        trip_id = trip.trip_id
        trip_text = trip_id_text(entity)
        updates = trip_update.stop_time_update

        if not updates and not (
            trip.HasField("schedule_relationship")
            and trip.schedule_relationship == TripDescriptor.CANCELED
        ):
            result.add(rules.E041, trip_text)

        gtfs_stop_times: Sequence[StopTime] = (
            metadata.get_trip_stop_times(trip_id) if trip.HasField("trip_id") else ()
        )
        # Walks forward through the schedule as updates are matched
        cursor = 0

        rt_sequences: List[int] = []
        rt_stop_ids: List[str] = []
        previous_sequence: Optional[int] = None
        previous_stop_id: Optional[str] = None
        found_e009 = False
        added_sequence = False

        for stop_time_update in updates:
            has_sequence = stop_time_update.HasField("stop_sequence")
            has_stop_id = stop_time_update.HasField("stop_id")

            if (
                not found_e009
                and trip.HasField("trip_id")
                and trip_id in metadata.trips_with_multi_stops
                and not has_sequence
            ):
                result.add(
                    rules.E009,
                    f"trip_id {trip_id} visits stop_id "
                    f"{list_text(metadata.trips_with_multi_stops[trip_id])}",
                )
                found_e009 = True

            self._check_repeats(
                entity, stop_time_update, previous_sequence, previous_stop_id, result
            )
            previous_sequence = stop_time_update.stop_sequence
            previous_stop_id = stop_time_update.stop_id

            if has_sequence:
                rt_sequences.append(stop_time_update.stop_sequence)
            if has_stop_id:
                rt_stop_ids.append(stop_time_update.stop_id)

            unknown_sequence = False
            while cursor < len(gtfs_stop_times):
                gtfs_stop_time = gtfs_stop_times[cursor]
                found_sequence = False
                found_stop_id = False
                if has_sequence and stop_time_update.stop_sequence == gtfs_stop_time.stop_sequence:
                    self._check_stop_id_matches(trip_text, stop_time_update, gtfs_stop_time, result)
                    self._check_time_when_unscheduled(
                        trip_text, stop_time_update, gtfs_stop_time, result
                    )
                    found_sequence = True
                if has_stop_id and stop_time_update.stop_id == gtfs_stop_time.stop_id:
                    found_stop_id = True
                cursor += 1
                if found_sequence:
                    break
                if has_sequence and cursor == len(gtfs_stop_times):
                    unknown_sequence = True
                if not has_sequence and found_stop_id:
                    # Infer the sequence from the schedule so ordering can be checked
                    rt_sequences.append(gtfs_stop_time.stop_sequence)
                    added_sequence = True
                    self._check_time_when_unscheduled(
                        trip_text, stop_time_update, gtfs_stop_times[cursor - 1], result
                    )
                    break

            self._check_stop_time_update_fields(trip_text, stop_time_update, result)

            if unknown_sequence:
                result.add(
                    rules.E051,
                    f"GTFS-rt {trip_text} contains stop_sequence {stop_time_update.stop_sequence}",
                )
                break

        if not _is_strictly_increasing(rt_sequences):
            result.add(rules.E002, f"{trip_text} stop_sequence {list_text(rt_sequences)}")
        elif added_sequence and len(rt_sequences) < len(updates):
            # Some stop_ids could not be placed in the schedule, so the order is unknown
            result.add(
                rules.E002, f"{trip_text} stop_sequence for stop_ids {list_text(rt_stop_ids)}"
            )

    @staticmethod
    def _check_repeats(
        entity: gtfs_realtime_pb2.FeedEntity,
        stop_time_update: gtfs_realtime_pb2.TripUpdate.StopTimeUpdate,
        previous_sequence: Optional[int],
        previous_stop_id: Optional[str],
        result: ValidationResult,
    ) -> None:
        """E036 (repeated stop_sequence) and E037 (repeated stop_id) between consecutive updates."""
        if (
            previous_sequence is not None
            and stop_time_update.HasField("stop_sequence")
            and previous_sequence == stop_time_update.stop_sequence
        ):
            result.add(
                rules.E036,
                f"{trip_id_text(entity)} has repeating stop_sequence {previous_sequence}",
            )
        if (
            previous_stop_id
            and stop_time_update.HasField("stop_id")
            and previous_stop_id == stop_time_update.stop_id
        ):
            prefix = f"{trip_id_text(entity)} has repeating stop_id {previous_stop_id}"
            if stop_time_update.HasField("stop_sequence"):
                prefix += f" at stop_sequence {stop_time_update.stop_sequence}"
            result.add(rules.E037, prefix)

    @staticmethod
    def _check_stop_id_matches(
        trip_text: str,
        stop_time_update: gtfs_realtime_pb2.TripUpdate.StopTimeUpdate,
        gtfs_stop_time: StopTime,
        result: ValidationResult,
    ) -> None:
        """E045 - stop_sequence and stop_id must name the same scheduled stop."""
        if stop_time_update.HasField("stop_id") and stop_time_update.stop_id != gtfs_stop_time.stop_id:
            sequence = stop_time_update.stop_sequence
            result.add(
                rules.E045,
                f"GTFS-rt {trip_text} stop_sequence {sequence} has stop_id "
                f"{stop_time_update.stop_id} but GTFS stop_sequence {sequence} has stop_id "
                f"{gtfs_stop_time.stop_id}",
            )

    @staticmethod
    def _check_time_when_unscheduled(
        trip_text: str,
        stop_time_update: gtfs_realtime_pb2.TripUpdate.StopTimeUpdate,
        gtfs_stop_time: StopTime,
        result: ValidationResult,
    ) -> None:
        """E046 - stops without a scheduled time need an absolute ``time`` in the update."""
        update_id = stop_time_update_id(stop_time_update)
        if (
            stop_time_update.HasField("arrival")
            and not stop_time_update.arrival.HasField("time")
            and not gtfs_stop_time.is_arrival_time_set
        ):
            result.add(rules.E046, f"GTFS-rt {trip_text} {update_id} arrival.time")
        if (
            stop_time_update.HasField("departure")
            and not stop_time_update.departure.HasField("time")
            and not gtfs_stop_time.is_departure_time_set
        ):
            result.add(rules.E046, f"GTFS-rt {trip_text} {update_id} departure.time")

    @staticmethod
    def _check_stop_time_update_fields(
        trip_text: str,
        stop_time_update: gtfs_realtime_pb2.TripUpdate.StopTimeUpdate,
        result: ValidationResult,
    ) -> None:
        """E040, E042, E043 and E044 on a single stop_time_update."""
        update_id = stop_time_update_id(stop_time_update)
        has_arrival = stop_time_update.HasField("arrival")
        has_departure = stop_time_update.HasField("departure")
        relationship = (
            stop_time_update.schedule_relationship
            if stop_time_update.HasField("schedule_relationship")
            else None
        )

        if not (stop_time_update.HasField("stop_sequence") or stop_time_update.HasField("stop_id")):
            result.add(rules.E040, trip_text)

        if relationship == StopTimeUpdate.NO_DATA:
            if has_arrival:
                result.add(rules.E042, f"{trip_text} {update_id} has arrival")
            if has_departure:
                result.add(rules.E042, f"{trip_text} {update_id} has departure")

        if relationship not in (StopTimeUpdate.SKIPPED, StopTimeUpdate.NO_DATA):
            if not has_arrival and not has_departure:
                result.add(rules.E043, f"{trip_text} {update_id}")

        if relationship != StopTimeUpdate.SKIPPED:
            arrival = stop_time_update.arrival
            if has_arrival and not (arrival.HasField("delay") or arrival.HasField("time")):
                result.add(rules.E044, f"{trip_text} {update_id} arrival")
            departure = stop_time_update.departure
            if has_departure and not (departure.HasField("delay") or departure.HasField("time")):
                result.add(rules.E044, f"{trip_text} {update_id} departure")


def _is_strictly_increasing(values: Sequence[int]) -> bool:
    return all(earlier < later for earlier, later in zip(values, values[1:]))
