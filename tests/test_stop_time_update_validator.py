"""Tests for StopTimeUpdateValidator."""

from __future__ import annotations

import pytest

from gtfsrt_validator import rules
from gtfsrt_validator.services.validation.stop_time_update import StopTimeUpdateValidator

from .conftest import ContextFactory
from .fixtures.gtfs_rt_fixture import (
    NOW_SEC,
    StopTimeUpdate,
    TripDescriptor,
    add_stop_time_update,
    add_trip_update,
    new_feed,
)
from .fixtures.results import assert_results, prefixes


@pytest.fixture
def validator() -> StopTimeUpdateValidator:
    return StopTimeUpdateValidator()


class TestOrdering:
    """E002, E036, E037 and E051."""

    def test_sorted_matching_updates(
        self, validator: StopTimeUpdateValidator, make_context: ContextFactory
    ) -> None:
        feed = new_feed()
        trip_update = add_trip_update(feed, "1.1")
        add_stop_time_update(trip_update, stop_sequence=1, stop_id="A", arrival_delay=60)
        add_stop_time_update(trip_update, stop_sequence=2, stop_id="B", arrival_delay=60)
        add_stop_time_update(trip_update, stop_sequence=4, stop_id="D", arrival_delay=60)
        assert_results(validator.validate(make_context(feed)))

    def test_unsorted_sequences_are_e002(
        self, validator: StopTimeUpdateValidator, make_context: ContextFactory
    ) -> None:
        feed = new_feed()
        trip_update = add_trip_update(feed, "1.1")
        add_stop_time_update(trip_update, stop_sequence=2, arrival_delay=60)
        add_stop_time_update(trip_update, stop_sequence=1, arrival_delay=60)

        result = validator.validate(make_context(feed))

        # The schedule cursor has already passed stop_sequence 1
        assert_results(result, {rules.E002: 1, rules.E051: 1})
        assert prefixes(result, rules.E002) == ["trip_id 1.1 stop_sequence [2, 1]"]

    def test_unknown_sequence_is_e051(
        self, validator: StopTimeUpdateValidator, make_context: ContextFactory
    ) -> None:
        feed = new_feed()
        trip_update = add_trip_update(feed, "1.1")
        add_stop_time_update(trip_update, stop_sequence=1, arrival_delay=60)
        add_stop_time_update(trip_update, stop_sequence=9, arrival_delay=60)

        result = validator.validate(make_context(feed))

        assert_results(result, {rules.E051: 1})
        assert prefixes(result, rules.E051) == ["GTFS-rt trip_id 1.1 contains stop_sequence 9"]
        assert result.get(rules.E051)[0].render(rules.E051) == (
            "GTFS-rt trip_id 1.1 contains stop_sequence 9 that does not exist in GTFS "
            "stop_times.txt for this trip"
        )

    def test_unordered_stop_ids_are_e002(
        self, validator: StopTimeUpdateValidator, make_context: ContextFactory
    ) -> None:
        feed = new_feed()
        trip_update = add_trip_update(feed, "1.1")
        add_stop_time_update(trip_update, stop_id="C", arrival_delay=60)
        add_stop_time_update(trip_update, stop_id="B", arrival_delay=60)

        result = validator.validate(make_context(feed))

        assert_results(result, {rules.E002: 1})
        assert prefixes(result, rules.E002) == ["trip_id 1.1 stop_sequence for stop_ids [C, B]"]

    def test_ordered_stop_ids_are_fine(
        self, validator: StopTimeUpdateValidator, make_context: ContextFactory
    ) -> None:
        feed = new_feed()
        trip_update = add_trip_update(feed, "1.1")
        add_stop_time_update(trip_update, stop_id="B", arrival_delay=60)
        add_stop_time_update(trip_update, stop_id="E", arrival_delay=60)
        assert_results(validator.validate(make_context(feed)))

    def test_repeated_stop_sequence_and_stop_id(
        self, validator: StopTimeUpdateValidator, make_context: ContextFactory
    ) -> None:
        feed = new_feed()
        trip_update = add_trip_update(feed, "1.1")
        add_stop_time_update(trip_update, stop_sequence=1, stop_id="A", arrival_delay=60)
        add_stop_time_update(trip_update, stop_sequence=1, stop_id="A", arrival_delay=90)

        result = validator.validate(make_context(feed))

        assert_results(
            result, {rules.E036: 1, rules.E037: 1, rules.E051: 1, rules.E002: 1}
        )
        assert prefixes(result, rules.E036) == ["trip_id 1.1 has repeating stop_sequence 1"]
        assert prefixes(result, rules.E037) == [
            "trip_id 1.1 has repeating stop_id A at stop_sequence 1"
        ]

    def test_repeated_stop_id_without_sequence(
        self, validator: StopTimeUpdateValidator, make_context: ContextFactory
    ) -> None:
        feed = new_feed()
        trip_update = add_trip_update(feed, "1.1")
        add_stop_time_update(trip_update, stop_id="A", arrival_delay=60)
        add_stop_time_update(trip_update, stop_id="A", arrival_delay=90)

        result = validator.validate(make_context(feed))

        assert_results(result, {rules.E037: 1, rules.E002: 1})
        assert prefixes(result, rules.E037) == ["trip_id 1.1 has repeating stop_id A"]

    def test_unknown_trip_is_not_matched(
        self, validator: StopTimeUpdateValidator, make_context: ContextFactory
    ) -> None:
        feed = new_feed()
        trip_update = add_trip_update(feed, "99")
        add_stop_time_update(trip_update, stop_sequence=1, arrival_delay=60)
        add_stop_time_update(trip_update, stop_sequence=5, arrival_delay=60)
        assert_results(validator.validate(make_context(feed)))


class TestLoopTrips:
    """E009 for trips that visit a stop more than once."""

    def test_loop_trip_without_sequence_is_e009(
        self, validator: StopTimeUpdateValidator, make_context: ContextFactory
    ) -> None:
        feed = new_feed()
        trip_update = add_trip_update(feed, "loop.1")
        add_stop_time_update(trip_update, stop_id="B", arrival_delay=60)
        add_stop_time_update(trip_update, stop_id="C", arrival_delay=60)

        result = validator.validate(make_context(feed))

        assert_results(result, {rules.E009: 1})
        assert prefixes(result, rules.E009) == ["trip_id loop.1 visits stop_id [A]"]

    def test_loop_trip_with_sequence_is_fine(
        self, validator: StopTimeUpdateValidator, make_context: ContextFactory
    ) -> None:
        feed = new_feed()
        trip_update = add_trip_update(feed, "loop.1")
        add_stop_time_update(trip_update, stop_sequence=3, stop_id="C", arrival_delay=60)
        add_stop_time_update(trip_update, stop_sequence=4, stop_id="A", arrival_delay=60)
        assert_results(validator.validate(make_context(feed)))


class TestStopTimeUpdateFields:
    """E040-E046 on individual stop_time_updates."""

    def test_no_updates_is_e041(
        self, validator: StopTimeUpdateValidator, make_context: ContextFactory
    ) -> None:
        feed = new_feed()
        add_trip_update(feed, "1.1")
        add_trip_update(feed, entity_id="e2")

        result = validator.validate(make_context(feed))

        assert_results(result, {rules.E041: 2})
        assert prefixes(result, rules.E041) == ["trip_id 1.1", "entity ID e2"]

    def test_canceled_trip_without_updates_is_fine(
        self, validator: StopTimeUpdateValidator, make_context: ContextFactory
    ) -> None:
        feed = new_feed()
        add_trip_update(feed, "1.1", schedule_relationship=TripDescriptor.CANCELED)
        assert_results(validator.validate(make_context(feed)))

    def test_missing_stop_id_and_sequence_is_e040(
        self, validator: StopTimeUpdateValidator, make_context: ContextFactory
    ) -> None:
        feed = new_feed()
        trip_update = add_trip_update(feed, "1.1")
        add_stop_time_update(trip_update, arrival_delay=60)

        result = validator.validate(make_context(feed))

        assert_results(result, {rules.E040: 1})
        assert prefixes(result, rules.E040) == ["trip_id 1.1"]

    def test_no_data_with_times_is_e042(
        self, validator: StopTimeUpdateValidator, make_context: ContextFactory
    ) -> None:
        feed = new_feed()
        trip_update = add_trip_update(feed, "1.1")
        add_stop_time_update(
            trip_update,
            stop_sequence=1,
            arrival_delay=60,
            departure_delay=60,
            schedule_relationship=StopTimeUpdate.NO_DATA,
        )

        result = validator.validate(make_context(feed))

        assert_results(result, {rules.E042: 2})
        assert prefixes(result, rules.E042) == [
            "trip_id 1.1 stop_sequence 1 has arrival",
            "trip_id 1.1 stop_sequence 1 has departure",
        ]

    def test_no_data_without_times_is_fine(
        self, validator: StopTimeUpdateValidator, make_context: ContextFactory
    ) -> None:
        feed = new_feed()
        trip_update = add_trip_update(feed, "1.1")
        add_stop_time_update(
            trip_update, stop_sequence=1, schedule_relationship=StopTimeUpdate.NO_DATA
        )
        assert_results(validator.validate(make_context(feed)))

    def test_scheduled_without_times_is_e043(
        self, validator: StopTimeUpdateValidator, make_context: ContextFactory
    ) -> None:
        feed = new_feed()
        trip_update = add_trip_update(feed, "1.1")
        add_stop_time_update(trip_update, stop_sequence=1)
        add_stop_time_update(
            trip_update, stop_sequence=2, schedule_relationship=StopTimeUpdate.SKIPPED
        )

        result = validator.validate(make_context(feed))

        assert_results(result, {rules.E043: 1})
        assert prefixes(result, rules.E043) == ["trip_id 1.1 stop_sequence 1"]

    def test_event_without_delay_or_time_is_e044(
        self, validator: StopTimeUpdateValidator, make_context: ContextFactory
    ) -> None:
        feed = new_feed()
        trip_update = add_trip_update(feed, "1.1")
        stop_time_update = add_stop_time_update(trip_update, stop_sequence=1)
        stop_time_update.arrival.SetInParent()
        stop_time_update.departure.uncertainty = 30

        result = validator.validate(make_context(feed))

        assert_results(result, {rules.E044: 2})
        assert prefixes(result, rules.E044) == [
            "trip_id 1.1 stop_sequence 1 arrival",
            "trip_id 1.1 stop_sequence 1 departure",
        ]

    def test_stop_id_not_matching_sequence_is_e045(
        self, validator: StopTimeUpdateValidator, make_context: ContextFactory
    ) -> None:
        feed = new_feed()
        trip_update = add_trip_update(feed, "1.1")
        add_stop_time_update(trip_update, stop_sequence=2, stop_id="C", arrival_delay=60)

        result = validator.validate(make_context(feed))

        assert_results(result, {rules.E045: 1})
        assert prefixes(result, rules.E045) == [
            "GTFS-rt trip_id 1.1 stop_sequence 2 has stop_id C but GTFS stop_sequence 2 has "
            "stop_id B"
        ]


class TestUnscheduledTimes:
    """E046 for stops without times in stop_times.txt."""

    def test_delay_for_untimed_stop_is_e046(
        self, validator: StopTimeUpdateValidator, make_context: ContextFactory
    ) -> None:
        feed = new_feed()
        trip_update = add_trip_update(feed, "tp.1")
        add_stop_time_update(trip_update, stop_sequence=2, arrival_delay=60, departure_delay=60)

        result = validator.validate(make_context(feed))

        assert_results(result, {rules.E046: 2})
        assert prefixes(result, rules.E046) == [
            "GTFS-rt trip_id tp.1 stop_sequence 2 arrival.time",
            "GTFS-rt trip_id tp.1 stop_sequence 2 departure.time",
        ]

    def test_delay_for_untimed_stop_matched_by_stop_id(
        self, validator: StopTimeUpdateValidator, make_context: ContextFactory
    ) -> None:
        feed = new_feed()
        trip_update = add_trip_update(feed, "tp.1")
        add_stop_time_update(trip_update, stop_id="B", arrival_delay=60)

        result = validator.validate(make_context(feed))

        assert_results(result, {rules.E046: 1})
        assert prefixes(result, rules.E046) == ["GTFS-rt trip_id tp.1 stop_id B arrival.time"]

    def test_time_for_untimed_stop_is_fine(
        self, validator: StopTimeUpdateValidator, make_context: ContextFactory
    ) -> None:
        feed = new_feed()
        trip_update = add_trip_update(feed, "tp.1")
        add_stop_time_update(trip_update, stop_sequence=2, arrival_time=NOW_SEC + 60)
        assert_results(validator.validate(make_context(feed)))
