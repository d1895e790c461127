"""Value types for static GTFS data and validation results."""

from gtfsrt_validator.models.gtfs import (
    Agency,
    Frequency,
    GtfsDataset,
    Route,
    ShapePoint,
    Stop,
    StopTime,
    Trip,
)
from gtfsrt_validator.models.validation import (
    Occurrence,
    Severity,
    ValidationResult,
    ValidationRule,
)

__all__ = [
    "Agency",
    "Frequency",
    "GtfsDataset",
    "Occurrence",
    "Route",
    "Severity",
    "ShapePoint",
    "Stop",
    "StopTime",
    "Trip",
    "ValidationResult",
    "ValidationRule",
]
