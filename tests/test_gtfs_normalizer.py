"""Tests for GtfsNormalizer and time parsing."""

from __future__ import annotations

import pytest

from gtfsrt_validator.services.gtfs_static.normalizer import (
    GtfsNormalizer,
    NormalizationError,
    TimeParseError,
    parse_gtfs_time,
)


class TestParseGtfsTime:
    """Tests for GTFS time string parsing (supports >24h)."""

    def test_normal_time(self) -> None:
        assert parse_gtfs_time("08:30:00") == 30600

    def test_midnight(self) -> None:
        assert parse_gtfs_time("00:00:00") == 0

    def test_single_digit_hour(self) -> None:
        assert parse_gtfs_time("7:05:00") == 25500

    def test_past_midnight_25h(self) -> None:
        assert parse_gtfs_time("25:01:30") == 90090

    def test_whitespace_stripped(self) -> None:
        assert parse_gtfs_time("  08:30:00  ") == 30600

    def test_invalid_format_too_few_parts(self) -> None:
        with pytest.raises(TimeParseError, match="Invalid GTFS time format"):
            parse_gtfs_time("08:30")

    def test_invalid_non_numeric(self) -> None:
        with pytest.raises(TimeParseError, match="Non-numeric"):
            parse_gtfs_time("ab:cd:ef")

    def test_invalid_minutes_over_59(self) -> None:
        with pytest.raises(TimeParseError, match="Invalid minutes"):
            parse_gtfs_time("08:60:00")

    def test_negative_hours(self) -> None:
        with pytest.raises(TimeParseError, match="Negative hours"):
            parse_gtfs_time("-1:00:00")


class TestNormalizeAgency:
    """Tests for agency normalization."""

    def test_valid_agency(self) -> None:
        row = {"agency_id": "USF", "agency_name": "Bull Runner", "agency_timezone": "America/New_York"}
        agency = GtfsNormalizer.normalize_agency(row)
        assert agency.agency_id == "USF"
        assert agency.name == "Bull Runner"
        assert agency.timezone == "America/New_York"

    def test_blank_agency_id_allowed(self) -> None:
        agency = GtfsNormalizer.normalize_agency({"agency_name": "Solo"})
        assert agency.agency_id == ""
        assert agency.timezone == ""


class TestNormalizeStop:
    """Tests for stop normalization."""

    def test_valid_stop(self) -> None:
        row = {
            "stop_id": "A",
            "stop_name": "Fowler Ave",
            "stop_lat": "28.05",
            "stop_lon": "-82.42",
            "location_type": "0",
        }
        stop = GtfsNormalizer.normalize_stop(row)
        assert stop.stop_id == "A"
        assert stop.name == "Fowler Ave"
        assert stop.lat == 28.05
        assert stop.lon == -82.42
        assert stop.location_type == 0

    def test_whitespace_trimmed(self) -> None:
        stop = GtfsNormalizer.normalize_stop({"stop_id": " A ", "stop_name": " Fowler "})
        assert stop.stop_id == "A"
        assert stop.name == "Fowler"

    def test_blank_location_type_is_zero(self) -> None:
        stop = GtfsNormalizer.normalize_stop({"stop_id": "C", "location_type": ""})
        assert stop.location_type == 0

    def test_station_location_type(self) -> None:
        stop = GtfsNormalizer.normalize_stop({"stop_id": "S", "location_type": "1"})
        assert stop.location_type == 1

    def test_missing_coordinates_allowed(self) -> None:
        stop = GtfsNormalizer.normalize_stop({"stop_id": "S", "stop_lat": "", "stop_lon": ""})
        assert stop.lat is None
        assert stop.lon is None

    def test_missing_stop_id_raises(self) -> None:
        with pytest.raises(NormalizationError, match="Missing stop_id"):
            GtfsNormalizer.normalize_stop({"stop_id": "", "stop_name": "Test"})

    def test_invalid_lat_raises(self) -> None:
        row = {"stop_id": "1", "stop_lat": "abc", "stop_lon": "-82"}
        with pytest.raises(NormalizationError, match="Invalid lat/lon"):
            GtfsNormalizer.normalize_stop(row)

    def test_invalid_location_type_raises(self) -> None:
        with pytest.raises(NormalizationError, match="location_type"):
            GtfsNormalizer.normalize_stop({"stop_id": "1", "location_type": "x"})


class TestNormalizeRoute:
    """Tests for route normalization."""

    def test_valid_route(self) -> None:
        row = {"route_id": "1", "route_short_name": "1", "route_long_name": "Crosstown", "route_type": "3"}
        route = GtfsNormalizer.normalize_route(row)
        assert route.route_id == "1"
        assert route.short_name == "1"
        assert route.route_type == 3

    def test_missing_route_id_raises(self) -> None:
        with pytest.raises(NormalizationError, match="Missing route_id"):
            GtfsNormalizer.normalize_route({"route_id": ""})


class TestNormalizeTrip:
    """Tests for trip normalization."""

    def test_valid_trip(self) -> None:
        row = {
            "trip_id": "1.1",
            "route_id": "1",
            "service_id": "WK",
            "direction_id": "1",
            "block_id": "b1",
            "shape_id": "s1",
        }
        trip = GtfsNormalizer.normalize_trip(row)
        assert trip.trip_id == "1.1"
        assert trip.direction_id == 1
        assert trip.block_id == "b1"
        assert trip.shape_id == "s1"

    def test_blank_direction_id_is_none(self) -> None:
        trip = GtfsNormalizer.normalize_trip({"trip_id": "t", "route_id": "r", "direction_id": ""})
        assert trip.direction_id is None

    def test_non_integer_direction_id_is_none(self) -> None:
        trip = GtfsNormalizer.normalize_trip({"trip_id": "t", "route_id": "r", "direction_id": "x"})
        assert trip.direction_id is None

    def test_missing_route_id_raises(self) -> None:
        with pytest.raises(NormalizationError, match="Missing route_id for trip_id=t"):
            GtfsNormalizer.normalize_trip({"trip_id": "t", "route_id": ""})


class TestNormalizeStopTime:
    """Tests for stop_time normalization."""

    def test_valid_stop_time(self) -> None:
        row = {
            "trip_id": "1.1",
            "stop_id": "A",
            "stop_sequence": "1",
            "arrival_time": "07:00:00",
            "departure_time": "07:01:00",
        }
        stop_time = GtfsNormalizer.normalize_stop_time(row)
        assert stop_time.stop_sequence == 1
        assert stop_time.arrival_time == 25200
        assert stop_time.departure_time == 25260
        assert stop_time.is_arrival_time_set

    def test_blank_times_are_none(self) -> None:
        row = {"trip_id": "tp.1", "stop_id": "B", "stop_sequence": "2", "arrival_time": "", "departure_time": ""}
        stop_time = GtfsNormalizer.normalize_stop_time(row)
        assert stop_time.arrival_time is None
        assert stop_time.departure_time is None
        assert not stop_time.is_departure_time_set

    def test_invalid_stop_sequence_raises(self) -> None:
        row = {"trip_id": "1.1", "stop_id": "A", "stop_sequence": "first"}
        with pytest.raises(NormalizationError, match="Invalid stop_sequence"):
            GtfsNormalizer.normalize_stop_time(row)

    def test_missing_stop_sequence_raises(self) -> None:
        with pytest.raises(NormalizationError, match="Missing stop_sequence"):
            GtfsNormalizer.normalize_stop_time({"trip_id": "1.1", "stop_id": "A"})


class TestNormalizeShapesAndFrequencies:
    """Tests for shapes.txt and frequencies.txt rows."""

    def test_shape_point(self) -> None:
        row = {"shape_id": "s", "shape_pt_lat": "28.0587", "shape_pt_lon": "-82.42", "shape_pt_sequence": "4"}
        point = GtfsNormalizer.normalize_shape_point(row)
        assert point.lat == 28.0587
        assert point.lon == -82.42
        assert point.sequence == 4

    def test_invalid_shape_point_raises(self) -> None:
        row = {"shape_id": "s", "shape_pt_lat": "", "shape_pt_lon": "-82.42", "shape_pt_sequence": "1"}
        with pytest.raises(NormalizationError, match="Invalid shape point"):
            GtfsNormalizer.normalize_shape_point(row)

    def test_frequency(self) -> None:
        row = {
            "trip_id": "16.1",
            "start_time": "06:00:00",
            "end_time": "07:00:00",
            "headway_secs": "900",
            "exact_times": "1",
        }
        frequency = GtfsNormalizer.normalize_frequency(row)
        assert frequency.start_time == 21600
        assert frequency.end_time == 25200
        assert frequency.headway_secs == 900
        assert frequency.exact_times == 1

    def test_blank_exact_times_is_zero(self) -> None:
        row = {"trip_id": "15.1", "start_time": "06:00:00", "end_time": "10:00:00", "headway_secs": "600"}
        assert GtfsNormalizer.normalize_frequency(row).exact_times == 0

    def test_zero_headway_raises(self) -> None:
        row = {"trip_id": "15.1", "start_time": "06:00:00", "end_time": "10:00:00", "headway_secs": "0"}
        with pytest.raises(NormalizationError, match="Non-positive headway_secs"):
            GtfsNormalizer.normalize_frequency(row)
