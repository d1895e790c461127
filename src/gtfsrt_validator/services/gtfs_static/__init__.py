"""Static GTFS loading: zip reading, CSV parsing and row normalization."""

from gtfsrt_validator.services.gtfs_static.loader import load_gtfs
from gtfsrt_validator.services.gtfs_static.normalizer import (
    GtfsNormalizer,
    NormalizationError,
    TimeParseError,
)
from gtfsrt_validator.services.gtfs_static.parser import GtfsParser, MissingColumnError
from gtfsrt_validator.services.gtfs_static.reader import GtfsZipReader, MissingRequiredFileError

__all__ = [
    "GtfsNormalizer",
    "GtfsParser",
    "GtfsZipReader",
    "MissingColumnError",
    "MissingRequiredFileError",
    "NormalizationError",
    "TimeParseError",
    "load_gtfs",
]
