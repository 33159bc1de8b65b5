"""Error taxonomy shared by ingestion and persistence layers."""

from __future__ import annotations


class ReportError(Exception):
    """Base class for all photo-report errors."""


class IngestError(ReportError):
    """A single file could not be turned into a photo card.

    Ingestion errors are scoped to one file and never abort a batch.
    """

    def __init__(self, message: str, file_name: str = "") -> None:
        super().__init__(message)
        self.file_name = file_name


class NotAnImage(IngestError):
    """The file is neither declared as an image nor carries an image extension."""


class ConversionUnavailable(IngestError):
    """HEIC/HEIF input arrived but no codec is available."""


class ConversionError(IngestError):
    """The HEIC/HEIF codec rejected the input."""


class DecodeError(IngestError):
    """The bytes could not be decoded into (or re-encoded from) a raster image."""


class PersistenceError(ReportError):
    """A report could not be written to or read from local storage."""


class StorageFull(PersistenceError):
    """Local storage ran out of space or quota; nothing was written."""


class LoadNotFound(ReportError):
    """No saved report exists for the requested client/property."""

    def __init__(self, key: str) -> None:
        super().__init__(f"No saved report found for {key}")
        self.key = key
