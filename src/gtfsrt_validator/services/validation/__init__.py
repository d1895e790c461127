"""GTFS-realtime rule validators and the engine that runs them."""

from gtfsrt_validator.services.validation.base import FeedValidator
from gtfsrt_validator.services.validation.context import ValidationContext
from gtfsrt_validator.services.validation.cross_feed import CrossFeedDescriptorValidator
from gtfsrt_validator.services.validation.engine import (
    ValidationEngine,
    ValidationReport,
    default_validators,
)
from gtfsrt_validator.services.validation.frequency import (
    FrequencyTypeOneValidator,
    FrequencyTypeZeroValidator,
)
from gtfsrt_validator.services.validation.header import HeaderValidator
from gtfsrt_validator.services.validation.metadata import GtfsMetadata
from gtfsrt_validator.services.validation.stop import StopLocationTypeValidator, StopValidator
from gtfsrt_validator.services.validation.stop_time_update import StopTimeUpdateValidator
from gtfsrt_validator.services.validation.timestamp import (
    IdenticalFeedMessageError,
    TimestampValidator,
)
from gtfsrt_validator.services.validation.trip_descriptor import TripDescriptorValidator
from gtfsrt_validator.services.validation.vehicle import VehicleValidator

__all__ = [
    "CrossFeedDescriptorValidator",
    "FeedValidator",
    "FrequencyTypeOneValidator",
    "FrequencyTypeZeroValidator",
    "GtfsMetadata",
    "HeaderValidator",
    "IdenticalFeedMessageError",
    "StopLocationTypeValidator",
    "StopTimeUpdateValidator",
    "StopValidator",
    "TimestampValidator",
    "TripDescriptorValidator",
    "ValidationContext",
    "ValidationEngine",
    "ValidationReport",
    "VehicleValidator",
    "default_validators",
]
