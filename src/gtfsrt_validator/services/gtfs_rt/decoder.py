"""Decoding of archived GTFS-realtime protobuf files."""

from __future__ import annotations

from collections import Counter
from typing import Dict

from google.protobuf.message import DecodeError
from google.transit import gtfs_realtime_pb2

from gtfsrt_validator.logging import get_logger

logger = get_logger(__name__)

# FeedEntity fields that carry a payload
ENTITY_KINDS = ("trip_update", "vehicle", "alert")


class FeedDecodeError(Exception):
    """Raised when a file is not a GTFS-realtime FeedMessage."""


class GtfsRtDecoder:
    """Turns raw bytes into FeedMessages and describes what they carry."""

    @staticmethod
    def decode(data: bytes, label: str = "feed") -> gtfs_realtime_pb2.FeedMessage:
        """Parse ``data`` as a FeedMessage.

        Args:
            data: Raw protobuf bytes.
            label: Name of the source for logging, usually the file name.

        Raises:
            FeedDecodeError: If the bytes are not a valid FeedMessage.
        """
        feed = gtfs_realtime_pb2.FeedMessage()
        try:
            feed.ParseFromString(data)
        except DecodeError as exc:
            msg = f"{label} is not a GTFS-realtime protobuf"
            logger.error("Feed decode failed", label=label, size=len(data), error=str(exc))
            raise FeedDecodeError(msg) from exc

        logger.info(
            "GTFS-RT feed decoded",
            label=label,
            feed_timestamp=GtfsRtDecoder.get_feed_timestamp(feed),
            gtfs_rt_version=feed.header.gtfs_realtime_version,
            **GtfsRtDecoder.entity_counts(feed),
        )
        return feed

    @staticmethod
    def get_feed_timestamp(feed: gtfs_realtime_pb2.FeedMessage) -> int:
        """Header timestamp in POSIX seconds, 0 when unset."""
        return feed.header.timestamp if feed.header.HasField("timestamp") else 0

    @staticmethod
    def entity_counts(feed: gtfs_realtime_pb2.FeedMessage) -> Dict[str, int]:
        """Number of entities of each kind, e.g. ``{"trip_update": 3, "vehicle": 0, "alert": 1}``."""
        counts: Counter[str] = Counter()
        for entity in feed.entity:
            for kind in ENTITY_KINDS:
                if entity.HasField(kind):
                    counts[kind] += 1
        return {kind: counts[kind] for kind in ENTITY_KINDS}

    @staticmethod
    def is_combined_feed(feed: gtfs_realtime_pb2.FeedMessage) -> bool:
        """True when the feed mixes TripUpdates, VehiclePositions and/or Alerts."""
        counts = GtfsRtDecoder.entity_counts(feed)
        return sum(1 for count in counts.values() if count) > 1
