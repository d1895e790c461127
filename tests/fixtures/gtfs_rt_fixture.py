"""Test fixtures for GTFS-RT FeedMessages."""

from __future__ import annotations

from google.transit import gtfs_realtime_pb2

# Fixed "now" for every test iteration (2023-11-14T22:13:20Z)
NOW_SEC = 1_700_000_000
NOW_MILLIS = NOW_SEC * 1000

FeedHeader = gtfs_realtime_pb2.FeedHeader
TripDescriptor = gtfs_realtime_pb2.TripDescriptor
StopTimeUpdate = gtfs_realtime_pb2.TripUpdate.StopTimeUpdate
Alert = gtfs_realtime_pb2.Alert


def new_feed(
    timestamp: int | None = NOW_SEC,
    version: str | None = "2.0",
    incrementality: int | None = FeedHeader.FULL_DATASET,
) -> gtfs_realtime_pb2.FeedMessage:
    """Build an empty FeedMessage; None leaves a header field unset."""
    feed = gtfs_realtime_pb2.FeedMessage()
    feed.header.SetInParent()
    if version is not None:
        feed.header.gtfs_realtime_version = version
    if incrementality is not None:
        feed.header.incrementality = incrementality
    if timestamp:
        feed.header.timestamp = timestamp
    return feed


def _new_entity(
    feed: gtfs_realtime_pb2.FeedMessage, entity_id: str | None
) -> gtfs_realtime_pb2.FeedEntity:
    entity = feed.entity.add()
    entity.id = entity_id if entity_id is not None else str(len(feed.entity))
    return entity


def _set_trip(
    trip: gtfs_realtime_pb2.TripDescriptor,
    *,
    trip_id: str | None = None,
    route_id: str | None = None,
    start_time: str | None = None,
    start_date: str | None = None,
    direction_id: int | None = None,
    schedule_relationship: int | None = None,
) -> None:
    trip.SetInParent()
    if trip_id is not None:
        trip.trip_id = trip_id
    if route_id is not None:
        trip.route_id = route_id
    if start_time is not None:
        trip.start_time = start_time
    if start_date is not None:
        trip.start_date = start_date
    if direction_id is not None:
        trip.direction_id = direction_id
    if schedule_relationship is not None:
        trip.schedule_relationship = schedule_relationship


def add_trip_update(
    feed: gtfs_realtime_pb2.FeedMessage,
    trip_id: str | None = None,
    *,
    entity_id: str | None = None,
    route_id: str | None = None,
    vehicle_id: str | None = None,
    timestamp: int | None = None,
    start_time: str | None = None,
    start_date: str | None = None,
    direction_id: int | None = None,
    schedule_relationship: int | None = None,
) -> gtfs_realtime_pb2.TripUpdate:
    """Append a TripUpdate entity; only the given fields are set."""
    entity = _new_entity(feed, entity_id)
    trip_update = entity.trip_update
    _set_trip(
        trip_update.trip,
        trip_id=trip_id,
        route_id=route_id,
        start_time=start_time,
        start_date=start_date,
        direction_id=direction_id,
        schedule_relationship=schedule_relationship,
    )
    if vehicle_id is not None:
        trip_update.vehicle.id = vehicle_id
    if timestamp is not None:
        trip_update.timestamp = timestamp
    return trip_update


def add_stop_time_update(
    trip_update: gtfs_realtime_pb2.TripUpdate,
    *,
    stop_sequence: int | None = None,
    stop_id: str | None = None,
    arrival_time: int | None = None,
    departure_time: int | None = None,
    arrival_delay: int | None = None,
    departure_delay: int | None = None,
    schedule_relationship: int | None = StopTimeUpdate.SCHEDULED,
) -> gtfs_realtime_pb2.TripUpdate.StopTimeUpdate:
    """Append a StopTimeUpdate; arrival/departure are present only when given a time or delay."""
    stop_time_update = trip_update.stop_time_update.add()
    if stop_sequence is not None:
        stop_time_update.stop_sequence = stop_sequence
    if stop_id is not None:
        stop_time_update.stop_id = stop_id
    if arrival_time is not None:
        stop_time_update.arrival.time = arrival_time
    if arrival_delay is not None:
        stop_time_update.arrival.delay = arrival_delay
    if departure_time is not None:
        stop_time_update.departure.time = departure_time
    if departure_delay is not None:
        stop_time_update.departure.delay = departure_delay
    if schedule_relationship is not None:
        stop_time_update.schedule_relationship = schedule_relationship
    return stop_time_update


def add_vehicle_position(
    feed: gtfs_realtime_pb2.FeedMessage,
    vehicle_id: str | None = None,
    *,
    entity_id: str | None = None,
    trip_id: str | None = None,
    route_id: str | None = None,
    start_time: str | None = None,
    start_date: str | None = None,
    direction_id: int | None = None,
    schedule_relationship: int | None = None,
    lat: float | None = None,
    lon: float | None = None,
    bearing: float | None = None,
    speed: float | None = None,
    stop_id: str | None = None,
    timestamp: int | None = None,
) -> gtfs_realtime_pb2.VehiclePosition:
    """Append a VehiclePosition entity; the trip is set only when a trip field is given."""
    entity = _new_entity(feed, entity_id)
    vehicle_position = entity.vehicle
    vehicle_position.SetInParent()
    if vehicle_id is not None:
        vehicle_position.vehicle.id = vehicle_id
    trip_fields = (trip_id, route_id, start_time, start_date, direction_id, schedule_relationship)
    if any(value is not None for value in trip_fields):
        _set_trip(
            vehicle_position.trip,
            trip_id=trip_id,
            route_id=route_id,
            start_time=start_time,
            start_date=start_date,
            direction_id=direction_id,
            schedule_relationship=schedule_relationship,
        )
    if lat is not None:
        vehicle_position.position.latitude = lat
    if lon is not None:
        vehicle_position.position.longitude = lon
    if bearing is not None:
        vehicle_position.position.bearing = bearing
    if speed is not None:
        vehicle_position.position.speed = speed
    if stop_id is not None:
        vehicle_position.stop_id = stop_id
    if timestamp is not None:
        vehicle_position.timestamp = timestamp
    return vehicle_position


def add_alert(
    feed: gtfs_realtime_pb2.FeedMessage,
    *,
    entity_id: str | None = None,
    effect: int | None = None,
) -> gtfs_realtime_pb2.Alert:
    """Append an Alert entity with no informed entities."""
    entity = _new_entity(feed, entity_id)
    alert = entity.alert
    alert.SetInParent()
    if effect is not None:
        alert.effect = effect
    return alert


def add_informed_entity(
    alert: gtfs_realtime_pb2.Alert,
    *,
    agency_id: str | None = None,
    route_id: str | None = None,
    stop_id: str | None = None,
    trip_id: str | None = None,
    trip_route_id: str | None = None,
    trip_schedule_relationship: int | None = None,
) -> gtfs_realtime_pb2.EntitySelector:
    """Append an informed_entity; the selector trip is set when a trip field is given."""
    selector = alert.informed_entity.add()
    if agency_id is not None:
        selector.agency_id = agency_id
    if route_id is not None:
        selector.route_id = route_id
    if stop_id is not None:
        selector.stop_id = stop_id
    if trip_id is not None or trip_route_id is not None or trip_schedule_relationship is not None:
        _set_trip(
            selector.trip,
            trip_id=trip_id,
            route_id=trip_route_id,
            schedule_relationship=trip_schedule_relationship,
        )
    return selector


def build_trip_update_feed_bytes(
    trip_id: str = "1.1",
    feed_timestamp: int = NOW_SEC,
) -> bytes:
    """Serialized feed with one TripUpdate for trip_id, stops 1 and 2 of trip 1.1."""
    feed = new_feed(timestamp=feed_timestamp)
    trip_update = add_trip_update(
        feed,
        trip_id,
        vehicle_id="1",
        timestamp=feed_timestamp,
        start_time="07:00:00",
        start_date="20231114",
        schedule_relationship=TripDescriptor.SCHEDULED,
    )
    add_stop_time_update(trip_update, stop_sequence=1, stop_id="A", arrival_delay=60)
    add_stop_time_update(trip_update, stop_sequence=2, stop_id="B", arrival_delay=120)
    return feed.SerializeToString()


def build_vehicle_position_feed_bytes(
    vehicle_id: str = "1",
    trip_id: str = "1.1",
    feed_timestamp: int = NOW_SEC,
) -> bytes:
    """Serialized feed with one VehiclePosition near stop A."""
    feed = new_feed(timestamp=feed_timestamp)
    add_vehicle_position(
        feed,
        vehicle_id,
        trip_id=trip_id,
        start_time="07:00:00",
        start_date="20231114",
        schedule_relationship=TripDescriptor.SCHEDULED,
        lat=28.0500,
        lon=-82.4200,
        timestamp=feed_timestamp,
    )
    return feed.SerializeToString()


def build_combined_feed_bytes(feed_timestamp: int = NOW_SEC) -> bytes:
    """Serialized feed carrying both a TripUpdate and a VehiclePosition for trip 1.1."""
    feed = gtfs_realtime_pb2.FeedMessage()
    feed.ParseFromString(build_trip_update_feed_bytes(feed_timestamp=feed_timestamp))
    vehicles = gtfs_realtime_pb2.FeedMessage()
    vehicles.ParseFromString(build_vehicle_position_feed_bytes(feed_timestamp=feed_timestamp))
    entity = feed.entity.add()
    entity.CopyFrom(vehicles.entity[0])
    entity.id = "vp-1"
    return feed.SerializeToString()
