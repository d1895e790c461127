"""GTFS ZIP reader - opens the archive and checks required files."""

from __future__ import annotations

import io
import os
import zipfile
from typing import Union

from gtfsrt_validator.logging import get_logger

logger = get_logger(__name__)

# Files the validator cannot work without
REQUIRED_FILES = {"stops.txt", "routes.txt", "trips.txt", "stop_times.txt"}

# Files consulted when present
OPTIONAL_FILES = {"agency.txt", "shapes.txt", "frequencies.txt"}


class MissingRequiredFileError(Exception):
    """Raised when a required GTFS file is missing from the ZIP."""


class GtfsZipReader:
    """Opens and validates a GTFS ZIP archive."""

    def __init__(self, source: Union[bytes, str, os.PathLike[str]]) -> None:
        """Initialize reader with ZIP bytes or a path to a ZIP file.

        Raises:
            zipfile.BadZipFile: If the source is not a valid ZIP.
            MissingRequiredFileError: If required files are missing.
        """
        if isinstance(source, (bytes, bytearray)):
            self._zip = zipfile.ZipFile(io.BytesIO(source))
            self.name = "<bytes>"
        else:
            self._zip = zipfile.ZipFile(os.fspath(source))
            self.name = os.path.basename(os.fspath(source))
        self._names = {os.path.basename(n): n for n in self._zip.namelist() if not n.endswith("/")}
        try:
            self._validate_required_files()
        except MissingRequiredFileError:
            self._zip.close()
            raise

    def _validate_required_files(self) -> None:
        missing = REQUIRED_FILES - set(self._names)
        if missing:
            msg = f"Missing required GTFS files: {sorted(missing)}"
            raise MissingRequiredFileError(msg)

        present_optional = OPTIONAL_FILES & set(self._names)
        logger.info(
            "GTFS ZIP validated",
            archive=self.name,
            optional_present=sorted(present_optional),
            total_files=len(self._names),
        )

    def has_file(self, filename: str) -> bool:
        return filename in self._names

    def open_file(self, filename: str) -> io.TextIOWrapper:
        """Open a file from the archive for text reading.

        Files nested in a single top-level folder are found by base name.

        Returns:
            TextIOWrapper suitable for csv.DictReader.
        """
        binary_stream = self._zip.open(self._names.get(filename, filename))
        return io.TextIOWrapper(binary_stream, encoding="utf-8-sig", newline="")

    def list_files(self) -> list[str]:
        """List all GTFS file names in the archive."""
        return sorted(self._names)

    def close(self) -> None:
        """Close the ZIP archive."""
        self._zip.close()

    def __enter__(self) -> GtfsZipReader:
        return self

    def __exit__(self, *args: object) -> None:
        self.close()
