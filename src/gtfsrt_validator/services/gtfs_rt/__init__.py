"""GTFS-Realtime feed decoding."""

from gtfsrt_validator.services.gtfs_rt.decoder import FeedDecodeError, GtfsRtDecoder

__all__ = [
    "FeedDecodeError",
    "GtfsRtDecoder",
]
