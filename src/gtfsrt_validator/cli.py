"""Command-line interface for batch validation of archived GTFS-realtime files."""

from __future__ import annotations

import argparse
import sys
import zipfile
from typing import Optional, Sequence

from gtfsrt_validator.config import get_settings
from gtfsrt_validator.logging import get_logger, setup_logging
from gtfsrt_validator.services.batch.processor import BatchProcessor
from gtfsrt_validator.services.gtfs_static.normalizer import NormalizationError, TimeParseError
from gtfsrt_validator.services.gtfs_static.parser import MissingColumnError
from gtfsrt_validator.services.gtfs_static.reader import MissingRequiredFileError

logger = get_logger(__name__)

SORT_CHOICES = {"name": "name", "date": "date_modified"}


def build_parser() -> argparse.ArgumentParser:
    settings = get_settings()
    parser = argparse.ArgumentParser(
        prog="gtfsrt-validator",
        description="Validate archived GTFS-realtime protobuf files against a GTFS zip",
    )
    parser.add_argument(
        "--version", action="version", version=f"%(prog)s {settings.app_version}"
    )
    parser.add_argument(
        "-gtfs",
        dest="gtfs",
        required=True,
        help="Full path (including zip file name) of the GTFS data",
    )
    parser.add_argument(
        "-gtfsRealtimePath",
        dest="gtfs_realtime_path",
        required=True,
        help="Directory containing the archived GTFS-realtime files",
    )
    parser.add_argument(
        "-sort",
        dest="sort",
        default="date",
        help="'name' to order files (and take their time) from the file name, "
        "'date' to use the last modified date (default: date)",
    )
    parser.add_argument(
        "-plainText",
        dest="plain_text",
        default=None,
        help="Also write each file as plain text, using this file extension",
    )
    parser.add_argument(
        "-ignoreShapes",
        dest="ignore_shapes",
        nargs="?",
        const="yes",
        default=None,
        help="Ignore shapes.txt (disables the trip shape check)",
    )
    parser.add_argument(
        "-stats",
        dest="stats",
        nargs="?",
        const="yes",
        default=None,
        help="Log statistics for every validated file",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    return parser


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Main CLI entry point."""
    args = build_parser().parse_args(argv)
    setup_logging("DEBUG" if args.verbose else None)

    sort_by = SORT_CHOICES.get(args.sort)
    if sort_by is None:
        logger.warning("Unknown sort option, sorting by date modified", sort=args.sort)
        sort_by = "date_modified"

    processor = BatchProcessor(
        args.gtfs,
        args.gtfs_realtime_path,
        sort_by=sort_by,
        ignore_shapes=True if args.ignore_shapes is not None else None,
        plain_text_extension=args.plain_text,
    )

    try:
        summary = processor.run()
    except (
        FileNotFoundError,
        zipfile.BadZipFile,
        MissingRequiredFileError,
        MissingColumnError,
        NormalizationError,
        TimeParseError,
    ) as exc:
        logger.error("Batch processing failed", error=str(exc))
        print(f"Error: {exc}", file=sys.stderr)
        return 1

    if args.stats is not None:
        for iteration in summary.iterations:
            logger.info("Iteration statistics", **iteration.model_dump())

    print(
        f"Validated {summary.processed} file(s), skipped {summary.skipped_duplicates} "
        f"duplicate(s), {summary.failed} failed, in {summary.duration_ms} ms"
    )
    return 0 if summary.failed == 0 else 1


if __name__ == "__main__":
    sys.exit(main())
