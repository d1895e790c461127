"""FeedHeader rules."""

from __future__ import annotations

from typing import TYPE_CHECKING

from google.transit import gtfs_realtime_pb2

from gtfsrt_validator import rules
from gtfsrt_validator.logging import get_logger
from gtfsrt_validator.models.validation import ValidationResult
from gtfsrt_validator.services.validation.utils import is_v2_or_higher, is_valid_version

if TYPE_CHECKING:
    from gtfsrt_validator.services.validation.context import ValidationContext

logger = get_logger(__name__)


class HeaderValidator:
    """E038, E039, E049."""

    def validate(self, context: ValidationContext) -> ValidationResult:
        result = ValidationResult()
        header = context.feed_message.header

        if not is_valid_version(header):
            result.add(rules.E038, f"header.gtfs_realtime_version of {header.gtfs_realtime_version}")

        try:
            if is_v2_or_higher(header) and not header.HasField("incrementality"):
                result.add(rules.E049, "")
        except ValueError:
            logger.error(
                "Unparseable gtfs_realtime_version, skipping incrementality check",
                gtfs_realtime_version=header.gtfs_realtime_version,
            )

        if header.incrementality == gtfs_realtime_pb2.FeedHeader.FULL_DATASET:
            for entity in context.feed_message.entity:
                if entity.HasField("is_deleted"):
                    result.add(
                        rules.E039,
                        f"entity ID {entity.id} has is_deleted={str(entity.is_deleted).lower()}",
                    )

        return result
