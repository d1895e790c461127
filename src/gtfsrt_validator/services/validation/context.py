"""Read-only inputs shared by every validator in one validation cycle."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Optional

if TYPE_CHECKING:
    from google.transit import gtfs_realtime_pb2

    from gtfsrt_validator.models.gtfs import GtfsDataset
    from gtfsrt_validator.services.validation.metadata import GtfsMetadata


@dataclass(frozen=True)
class ValidationContext:
    """Everything a validator may read for one feed iteration.

    Attributes:
        current_time_millis: Wall-clock time of the iteration, in milliseconds.
        feed_message: The FeedMessage under validation.
        gtfs_data: The static GTFS dataset.
        gtfs_metadata: Derived lookups and geometry for ``gtfs_data``.
        previous_feed_message: The preceding iteration of the same feed, if any.
        combined_feed_message: A message carrying both TripUpdates and
            VehiclePositions, for cross-feed rules.
    """

    current_time_millis: int
    feed_message: gtfs_realtime_pb2.FeedMessage
    gtfs_data: GtfsDataset
    gtfs_metadata: GtfsMetadata
    previous_feed_message: Optional[gtfs_realtime_pb2.FeedMessage] = None
    combined_feed_message: Optional[gtfs_realtime_pb2.FeedMessage] = None

    @property
    def current_time_seconds(self) -> int:
        return self.current_time_millis // 1000
