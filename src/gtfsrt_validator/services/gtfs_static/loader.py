"""GTFS static loader - reads, parses and normalizes a zip into a GtfsDataset."""

from __future__ import annotations

import os
import time
from typing import TYPE_CHECKING, Any, Callable, TypeVar, Union

from gtfsrt_validator.logging import get_logger
from gtfsrt_validator.models.gtfs import GtfsDataset
from gtfsrt_validator.services.gtfs_static.normalizer import GtfsNormalizer
from gtfsrt_validator.services.gtfs_static.parser import GtfsParser
from gtfsrt_validator.services.gtfs_static.reader import GtfsZipReader

if TYPE_CHECKING:
    from collections.abc import Iterable

logger = get_logger(__name__)

T = TypeVar("T")


def load_gtfs(source: Union[bytes, str, os.PathLike[str]]) -> GtfsDataset:
    """Load a static GTFS zip (bytes or path) into a read-only dataset.

    Raises:
        zipfile.BadZipFile: If the source is not a valid ZIP.
        MissingRequiredFileError: If required files are missing.
        MissingColumnError: If a file lacks a required column.
        NormalizationError: If a row cannot be normalized.
        TimeParseError: If a GTFS time is malformed.
    """
    started = time.monotonic()
    normalizer = GtfsNormalizer()

    with GtfsZipReader(source) as reader:
        parser = GtfsParser(reader)
        dataset = GtfsDataset(
            agencies=_normalize(parser.parse_agencies(), normalizer.normalize_agency),
            routes=_normalize(parser.parse_routes(), normalizer.normalize_route),
            trips=_normalize(parser.parse_trips(), normalizer.normalize_trip),
            stops=_normalize(parser.parse_stops(), normalizer.normalize_stop),
            stop_times=_normalize(parser.parse_stop_times(), normalizer.normalize_stop_time),
            shape_points=_normalize(parser.parse_shapes(), normalizer.normalize_shape_point),
            frequencies=_normalize(parser.parse_frequencies(), normalizer.normalize_frequency),
        )
        archive = reader.name

    logger.info(
        "GTFS dataset loaded",
        archive=archive,
        duration_ms=int((time.monotonic() - started) * 1000),
        **dataset.summary(),
    )
    return dataset


def _normalize(
    rows: Iterable[dict[str, Any]],
    normalize: Callable[[dict[str, Any]], T],
) -> tuple[T, ...]:
    return tuple(normalize(row) for row in rows)
