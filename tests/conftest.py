"""Pytest configuration and fixtures."""

from __future__ import annotations

from typing import Callable, Optional

import pytest
from google.transit import gtfs_realtime_pb2

from gtfsrt_validator.models.gtfs import GtfsDataset
from gtfsrt_validator.services.gtfs_static.loader import load_gtfs
from gtfsrt_validator.services.validation.context import ValidationContext
from gtfsrt_validator.services.validation.metadata import GtfsMetadata

from .fixtures.gtfs_fixture import build_bullrunner_zip, build_testagency_zip
from .fixtures.gtfs_rt_fixture import NOW_MILLIS

ContextFactory = Callable[..., ValidationContext]


@pytest.fixture(scope="session")
def testagency_dataset() -> GtfsDataset:
    """The testagency GTFS feed, loaded once."""
    return load_gtfs(build_testagency_zip())


@pytest.fixture(scope="session")
def testagency_metadata(testagency_dataset: GtfsDataset) -> GtfsMetadata:
    return GtfsMetadata.build(testagency_dataset, label="testagency")


@pytest.fixture(scope="session")
def bullrunner_dataset() -> GtfsDataset:
    """The Bull Runner GTFS feed (with shapes), loaded once."""
    return load_gtfs(build_bullrunner_zip())


@pytest.fixture(scope="session")
def bullrunner_metadata(bullrunner_dataset: GtfsDataset) -> GtfsMetadata:
    return GtfsMetadata.build(bullrunner_dataset, label="bullrunner")


def _context_factory(dataset: GtfsDataset, metadata: GtfsMetadata) -> ContextFactory:
    def make(
        feed: gtfs_realtime_pb2.FeedMessage,
        *,
        previous: Optional[gtfs_realtime_pb2.FeedMessage] = None,
        combined: Optional[gtfs_realtime_pb2.FeedMessage] = None,
        current_time_millis: int = NOW_MILLIS,
    ) -> ValidationContext:
        return ValidationContext(
            current_time_millis=current_time_millis,
            feed_message=feed,
            gtfs_data=dataset,
            gtfs_metadata=metadata,
            previous_feed_message=previous,
            combined_feed_message=combined,
        )

    return make


@pytest.fixture
def make_context(
    testagency_dataset: GtfsDataset, testagency_metadata: GtfsMetadata
) -> ContextFactory:
    """Build a ValidationContext against the testagency feed at a fixed "now"."""
    return _context_factory(testagency_dataset, testagency_metadata)


@pytest.fixture
def make_bullrunner_context(
    bullrunner_dataset: GtfsDataset, bullrunner_metadata: GtfsMetadata
) -> ContextFactory:
    """Build a ValidationContext against the Bull Runner feed at a fixed "now"."""
    return _context_factory(bullrunner_dataset, bullrunner_metadata)
