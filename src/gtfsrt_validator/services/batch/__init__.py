"""Batch validation of archived GTFS-realtime files."""

from gtfsrt_validator.services.batch.processor import (
    BatchProcessor,
    BatchSummary,
    IterationStatistics,
)

__all__ = [
    "BatchProcessor",
    "BatchSummary",
    "IterationStatistics",
]
