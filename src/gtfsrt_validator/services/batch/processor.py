"""Batch validation of archived GTFS-realtime files against one static GTFS zip."""

from __future__ import annotations

import hashlib
import json
import os
import time
from pathlib import Path
from typing import TYPE_CHECKING, List, Literal, Optional, Union

from google.protobuf import text_format
from pydantic import BaseModel, Field

from gtfsrt_validator.config import get_settings
from gtfsrt_validator.logging import bind_feed_context, clear_feed_context, get_logger
from gtfsrt_validator.services.gtfs_rt.decoder import FeedDecodeError, GtfsRtDecoder
from gtfsrt_validator.services.gtfs_static.loader import load_gtfs
from gtfsrt_validator.services.validation.context import ValidationContext
from gtfsrt_validator.services.validation.engine import ValidationEngine
from gtfsrt_validator.services.validation.metadata import GtfsMetadata
from gtfsrt_validator.services.validation.timestamp import IdenticalFeedMessageError
from gtfsrt_validator.services.validation.utils import get_timestamp_from_file_name

if TYPE_CHECKING:
    from google.transit import gtfs_realtime_pb2

    from gtfsrt_validator.models.gtfs import GtfsDataset

logger = get_logger(__name__)

SortBy = Literal["name", "date_modified"]

FEED_FILE_SUFFIX = ".pb"


class IterationStatistics(BaseModel):
    """Outcome of validating one archived feed file."""

    file_name: str
    current_time_millis: int
    entity_count: int
    combined: bool
    rule_ids: List[str] = Field(default_factory=list)
    error_count: int = 0
    warning_count: int = 0
    duration_ms: int = 0
    results_path: str


class BatchSummary(BaseModel):
    """Totals for a batch run."""

    gtfs_path: str
    realtime_dir: str
    sort_by: SortBy
    processed: int = 0
    skipped_duplicates: int = 0
    failed: int = 0
    duration_ms: int = 0
    iterations: List[IterationStatistics] = Field(default_factory=list)


class BatchProcessor:
    """Validates every archived ``.pb`` file in a directory, in order.

    Each file is one feed iteration; the previous decoded file is passed as
    the previous iteration, so the order of the files matters. Results are
    written next to each file as ``<file><results_file_extension>``.
    """

    def __init__(
        self,
        gtfs_path: Union[str, os.PathLike[str]],
        realtime_dir: Union[str, os.PathLike[str]],
        *,
        sort_by: SortBy = "date_modified",
        ignore_shapes: Optional[bool] = None,
        plain_text_extension: Optional[str] = None,
        engine: Optional[ValidationEngine] = None,
    ) -> None:
        if sort_by not in ("name", "date_modified"):
            msg = f"sort_by must be 'name' or 'date_modified', got {sort_by!r}"
            raise ValueError(msg)
        settings = get_settings()
        self.gtfs_path = Path(gtfs_path)
        self.realtime_dir = Path(realtime_dir)
        self.sort_by = sort_by
        self.ignore_shapes = settings.ignore_shapes if ignore_shapes is None else ignore_shapes
        self.plain_text_extension = plain_text_extension
        self.results_file_extension = settings.results_file_extension
        self.engine = engine or ValidationEngine()
        self._decoder = GtfsRtDecoder()

    def run(self) -> BatchSummary:
        """Load the static GTFS once, then validate each feed file in turn.

        Raises:
            FileNotFoundError: If the realtime directory does not exist.
            MissingRequiredFileError: If the GTFS zip lacks required files.
            NormalizationError: If a GTFS row cannot be normalized.
            TimeParseError: If a GTFS time is malformed.
        """
        if not self.realtime_dir.is_dir():
            msg = f"GTFS-realtime directory not found: {self.realtime_dir}"
            raise FileNotFoundError(msg)

        t0 = time.monotonic()
        logger.info(
            "Batch processing started",
            gtfs_path=str(self.gtfs_path),
            realtime_dir=str(self.realtime_dir),
            sort_by=self.sort_by,
        )

        dataset = load_gtfs(self.gtfs_path)
        metadata = GtfsMetadata.build(
            dataset, label=self.gtfs_path.name, ignore_shapes=self.ignore_shapes
        )

        summary = BatchSummary(
            gtfs_path=str(self.gtfs_path),
            realtime_dir=str(self.realtime_dir),
            sort_by=self.sort_by,
        )
        previous_message: Optional[gtfs_realtime_pb2.FeedMessage] = None
        previous_digest: Optional[bytes] = None

        for path in self._feed_files():
            try:
                data = path.read_bytes()
            except OSError as exc:
                logger.error("Cannot read feed file, skipping", file=path.name, error=str(exc))
                summary.failed += 1
                continue

            digest = hashlib.md5(data).digest()
            if digest == previous_digest:
                logger.info("Feed file identical to previous, skipping", file=path.name)
                summary.skipped_duplicates += 1
                continue

            bind_feed_context(feed_file=path.name, iteration=summary.processed + 1)
            try:
                message = self._decoder.decode(data, label=path.name)
                stats = self._process(path, message, previous_message, dataset, metadata)
            except (FeedDecodeError, IdenticalFeedMessageError) as exc:
                logger.error("Feed file not validated, skipping", file=path.name, error=str(exc))
                summary.failed += 1
                continue
            except Exception as exc:
                logger.error("Feed file validation failed unexpectedly", file=path.name, exc_info=exc)
                summary.failed += 1
                continue
            finally:
                clear_feed_context()

            summary.iterations.append(stats)
            summary.processed += 1
            previous_digest = digest
            previous_message = message

        summary.duration_ms = int((time.monotonic() - t0) * 1000)
        logger.info(
            "Batch processing completed",
            processed=summary.processed,
            skipped_duplicates=summary.skipped_duplicates,
            failed=summary.failed,
            duration_ms=summary.duration_ms,
        )
        return summary

    def _feed_files(self) -> List[Path]:
        files = [
            p for p in self.realtime_dir.rglob(f"*{FEED_FILE_SUFFIX}") if p.is_file()
        ]
        if self.sort_by == "date_modified":
            files.sort(key=lambda p: (p.stat().st_mtime, p.name))
        else:
            files.sort(key=lambda p: p.name)
        return files

    def _current_time_millis(self, path: Path) -> int:
        """Iteration time: mtime when sorting by date, else the file name timestamp."""
        mtime_millis = int(path.stat().st_mtime * 1000)
        if self.sort_by == "date_modified":
            return mtime_millis
        try:
            return get_timestamp_from_file_name(path.name)
        except ValueError:
            logger.error(
                "Cannot parse timestamp from file name, using date modified",
                file=path.name,
            )
            return mtime_millis

    def _process(
        self,
        path: Path,
        message: gtfs_realtime_pb2.FeedMessage,
        previous_message: Optional[gtfs_realtime_pb2.FeedMessage],
        dataset: GtfsDataset,
        metadata: GtfsMetadata,
    ) -> IterationStatistics:
        combined = self._decoder.is_combined_feed(message)
        context = ValidationContext(
            current_time_millis=self._current_time_millis(path),
            feed_message=message,
            gtfs_data=dataset,
            gtfs_metadata=metadata,
            previous_feed_message=previous_message,
            combined_feed_message=message if combined else None,
        )
        report = self.engine.run(context)

        results_path = path.with_name(path.name + self.results_file_extension)
        results_path.write_text(
            json.dumps(report.result.to_list(), indent=2), encoding="utf-8"
        )
        if self.plain_text_extension:
            text_path = path.with_name(f"{path.name}.{self.plain_text_extension}")
            text_path.write_text(text_format.MessageToString(message), encoding="utf-8")

        return IterationStatistics(
            file_name=path.name,
            current_time_millis=context.current_time_millis,
            entity_count=len(message.entity),
            combined=combined,
            rule_ids=report.result.rule_ids(),
            error_count=report.error_count,
            warning_count=report.warning_count,
            duration_ms=report.duration_ms,
            results_path=str(results_path),
        )
