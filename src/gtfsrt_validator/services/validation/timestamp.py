"""Timestamp rules: presence, POSIX range, ordering, freshness and refresh interval."""

from __future__ import annotations

from typing import TYPE_CHECKING, Optional

from gtfsrt_validator import rules
from gtfsrt_validator.config import get_settings
from gtfsrt_validator.logging import get_logger
from gtfsrt_validator.models.validation import ValidationResult
from gtfsrt_validator.services.validation.utils import (
    format_age,
    get_age_millis,
    is_in_future,
    is_posix,
    is_v2_or_higher,
    posix_to_clock,
    trip_id_text,
)

if TYPE_CHECKING:
    from datetime import tzinfo

    from google.transit import gtfs_realtime_pb2

    from gtfsrt_validator.services.validation.context import ValidationContext

logger = get_logger(__name__)


class IdenticalFeedMessageError(ValueError):
    """Raised when the current and previous FeedMessage are the same message."""


class TimestampValidator:
    """W001, W007, W008, E001, E012, E017, E018, E022, E025, E048, E050."""

    def __init__(
        self,
        *,
        min_posix_time: Optional[int] = None,
        max_posix_time: Optional[int] = None,
        minimum_refresh_interval_sec: Optional[int] = None,
        max_age_sec: Optional[int] = None,
        in_future_tolerance_sec: Optional[int] = None,
    ) -> None:
        settings = get_settings()
        self.min_posix_time = (
            min_posix_time if min_posix_time is not None else settings.min_posix_time
        )
        self.max_posix_time = (
            max_posix_time if max_posix_time is not None else settings.max_posix_time
        )
        self.minimum_refresh_interval_sec = (
            minimum_refresh_interval_sec
            if minimum_refresh_interval_sec is not None
            else settings.minimum_refresh_interval_sec
        )
        self.max_age_sec = max_age_sec if max_age_sec is not None else settings.max_age_sec
        self.in_future_tolerance_sec = (
            in_future_tolerance_sec
            if in_future_tolerance_sec is not None
            else settings.in_future_tolerance_sec
        )

    def validate(self, context: ValidationContext) -> ValidationResult:
        """Check every timestamp in the feed.

        Raises:
            IdenticalFeedMessageError: If ``previous_feed_message`` equals
                ``feed_message``; the cross-iteration rules need two distinct
                iterations.
        """
        feed = context.feed_message
        previous = context.previous_feed_message
        if previous is not None and (previous is feed or previous == feed):
            msg = "feed_message and previous_feed_message must not be the same"
            raise IdenticalFeedMessageError(msg)

        result = ValidationResult()
        now_ms = context.current_time_millis
        tz = context.gtfs_metadata.timezone
        now_text = posix_to_clock(context.current_time_seconds, tz)

        header_timestamp = feed.header.timestamp
        if header_timestamp == 0:
            self._check_missing_header_timestamp(feed.header, result)
        else:
            if not self._is_posix(header_timestamp):
                result.add(rules.E001, "header.timestamp")
            else:
                age = get_age_millis(now_ms, header_timestamp)
                if age > self.max_age_sec * 1000:
                    result.add(rules.W008, f"header.timestamp is {format_age(age)}")
                if is_in_future(now_ms, header_timestamp, self.in_future_tolerance_sec):
                    result.add(
                        rules.E050,
                        f"header.timestamp {self._future_text(header_timestamp, now_ms, now_text, tz)}",
                    )

            if previous is not None and previous.header.timestamp != 0:
                self._check_iteration_order(header_timestamp, previous.header.timestamp, result)

        for entity in feed.entity:
            if entity.HasField("trip_update"):
                self._check_trip_update(entity, header_timestamp, now_ms, now_text, tz, result)
            if entity.HasField("vehicle"):
                self._check_vehicle(entity.vehicle, header_timestamp, now_ms, now_text, tz, result)
            if entity.HasField("alert"):
                self._check_alert(entity, result)

        return result

    def _is_posix(self, timestamp: int) -> bool:
        return is_posix(timestamp, self.min_posix_time, self.max_posix_time)

    def _future_text(self, timestamp: int, now_ms: int, now_text: str, tz: tzinfo) -> str:
        age = get_age_millis(now_ms, timestamp)
        return (
            f"{posix_to_clock(timestamp, tz)} ({timestamp}) is {format_age(age)} "
            f"greater than {now_text} ({now_ms})"
        )

    def _check_missing_header_timestamp(
        self, header: gtfs_realtime_pb2.FeedHeader, result: ValidationResult
    ) -> None:
        # v2.0 requires header.timestamp, so E048 replaces W001 there
        try:
            v2_or_higher = is_v2_or_higher(header)
        except ValueError:
            logger.error(
                "Unparseable gtfs_realtime_version, reporting missing header timestamp as E048",
                gtfs_realtime_version=header.gtfs_realtime_version,
            )
            v2_or_higher = True
        if v2_or_higher:
            result.add(rules.E048, "")
        else:
            result.add(rules.W001, "header")

    def _check_iteration_order(
        self, current: int, previous: int, result: ValidationResult
    ) -> None:
        interval = current - previous
        if current == previous:
            result.add(rules.E017, f"header.timestamp of {current}")
        elif current < previous:
            result.add(
                rules.E018,
                f"header.timestamp of {current} is less than the header.timestamp of {previous}",
            )
        elif interval > self.minimum_refresh_interval_sec:
            result.add(rules.W007, f"{interval} second interval between consecutive header.timestamps")

    def _check_trip_update(
        self,
        entity: gtfs_realtime_pb2.FeedEntity,
        header_timestamp: int,
        now_ms: int,
        now_text: str,
        tz: tzinfo,
        result: ValidationResult,
    ) -> None:
        trip_update = entity.trip_update
        timestamp = trip_update.timestamp
        trip_id = trip_id_text(entity)

        if timestamp == 0:
            result.add(rules.W001, trip_id)
        else:
            if header_timestamp != 0 and timestamp > header_timestamp:
                result.add(rules.E012, f"{trip_id} timestamp {timestamp}")
            if not self._is_posix(timestamp):
                result.add(rules.E001, f"{trip_id} timestamp {timestamp}")
            elif is_in_future(now_ms, timestamp, self.in_future_tolerance_sec):
                result.add(
                    rules.E050,
                    f"{trip_id} timestamp {self._future_text(timestamp, now_ms, now_text, tz)}",
                )

        self._check_stop_time_updates(trip_update, trip_id, tz, result)

    def _check_stop_time_updates(
        self,
        trip_update: gtfs_realtime_pb2.TripUpdate,
        trip_id: str,
        tz: tzinfo,
        result: ValidationResult,
    ) -> None:
        """E001 on stop times, E022 across consecutive stops, E025 within a stop.

        Only ``time`` fields take part; ``delay``-only events are skipped, and
        the previous arrival/departure carry over stops that lack them.
        """
        previous_arrival: Optional[int] = None
        previous_departure: Optional[int] = None

        for stop_time_update in trip_update.stop_time_update:
            if stop_time_update.HasField("stop_sequence"):
                stop = f"{trip_id} stop_sequence {stop_time_update.stop_sequence}"
            else:
                stop = f"{trip_id} stop_id {stop_time_update.stop_id}"

            arrival = departure = None
            arrival_event = stop_time_update.arrival
            departure_event = stop_time_update.departure

            if stop_time_update.HasField("arrival") and arrival_event.HasField("time"):
                arrival = arrival_event.time
                if not self._is_posix(arrival):
                    result.add(rules.E001, f"{stop} arrival_time {arrival}")
                self._check_order(stop, "arrival_time", arrival, "arrival_time", previous_arrival, tz, result)
                self._check_order(stop, "arrival_time", arrival, "departure_time", previous_departure, tz, result)

            if stop_time_update.HasField("departure") and departure_event.HasField("time"):
                departure = departure_event.time
                if not self._is_posix(departure):
                    result.add(rules.E001, f"{stop} departure_time {departure}")
                self._check_order(stop, "departure_time", departure, "departure_time", previous_departure, tz, result)
                self._check_order(stop, "departure_time", departure, "arrival_time", previous_arrival, tz, result)
                if arrival_event.HasField("time") and departure < arrival_event.time:
                    result.add(
                        rules.E025,
                        f"{stop} departure_time {posix_to_clock(departure, tz)} ({departure}) "
                        f"is less than the same stop arrival_time "
                        f"{posix_to_clock(arrival_event.time, tz)} ({arrival_event.time})",
                    )

            if arrival is not None:
                previous_arrival = arrival
            if departure is not None:
                previous_departure = departure

    @staticmethod
    def _check_order(
        stop: str,
        field: str,
        value: int,
        previous_field: str,
        previous: Optional[int],
        tz: tzinfo,
        result: ValidationResult,
    ) -> None:
        if previous is None or value > previous:
            return
        relation = "less than" if value < previous else "equal to"
        result.add(
            rules.E022,
            f"{stop} {field} {posix_to_clock(value, tz)} ({value}) is {relation} previous stop "
            f"{previous_field} {posix_to_clock(previous, tz)} ({previous})",
        )

    def _check_vehicle(
        self,
        vehicle_position: gtfs_realtime_pb2.VehiclePosition,
        header_timestamp: int,
        now_ms: int,
        now_text: str,
        tz: tzinfo,
        result: ValidationResult,
    ) -> None:
        timestamp = vehicle_position.timestamp
        vehicle_id = f"vehicle_id {vehicle_position.vehicle.id}"

        if timestamp == 0:
            result.add(rules.W001, vehicle_id)
            return

        prefix = f"{vehicle_id} timestamp {timestamp}"
        if header_timestamp != 0 and timestamp > header_timestamp:
            result.add(rules.E012, prefix)
        if not self._is_posix(timestamp):
            result.add(rules.E001, prefix)
        elif is_in_future(now_ms, timestamp, self.in_future_tolerance_sec):
            result.add(
                rules.E050,
                f"{vehicle_id} timestamp {self._future_text(timestamp, now_ms, now_text, tz)}",
            )

    def _check_alert(self, entity: gtfs_realtime_pb2.FeedEntity, result: ValidationResult) -> None:
        for active_period in entity.alert.active_period:
            if active_period.HasField("start") and not self._is_posix(active_period.start):
                result.add(
                    rules.E001,
                    f"alert in entity {entity.id} active_period.start {active_period.start}",
                )
            if active_period.HasField("end") and not self._is_posix(active_period.end):
                result.add(
                    rules.E001,
                    f"alert in entity {entity.id} active_period.end {active_period.end}",
                )
