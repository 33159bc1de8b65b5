"""Core service interfaces and shared data structures.

This module defines the protocols the ingestion pipeline and the controller
depend on, plus the simple dataclasses describing ingestion outcomes. The
infrastructure layer provides the concrete implementations.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Protocol

from core.errors import IngestError
from core.models import IngestFile, PhotoCard, Report

OUTCOME_ADDED = "added"
OUTCOME_SKIPPED = "skipped"
OUTCOME_FAILED = "failed"


@dataclass(frozen=True)
class ImageVariants:
    """Encoded renditions of one ingested image.

    Attributes:
        preview_uri: Data URI used for on-screen display.
        print_uri: Data URI used for paginated print output (always JPEG).
    """

    preview_uri: str
    print_uri: str


@dataclass
class IngestOutcome:
    """Result of running one file through the pipeline.

    Attributes:
        file_name: Name of the input file as received.
        status: One of `added`, `skipped`, `failed`.
        card: Card data for `added` outcomes.
        error: The per-file error for `skipped`/`failed` outcomes.
    """

    file_name: str
    status: str
    card: PhotoCard | None = None
    error: Exception | None = None

    @property
    def ok(self) -> bool:
        """True when the file produced a card."""
        return self.status == OUTCOME_ADDED


@dataclass
class IngestBatchResult:
    """Per-file outcomes of a batch, in input order."""

    outcomes: list[IngestOutcome] = field(default_factory=list)

    @property
    def added(self) -> list[IngestOutcome]:
        """Outcomes that produced a card."""
        return [o for o in self.outcomes if o.status == OUTCOME_ADDED]

    @property
    def skipped(self) -> list[IngestOutcome]:
        """Outcomes rejected by validation."""
        return [o for o in self.outcomes if o.status == OUTCOME_SKIPPED]

    @property
    def failed(self) -> list[IngestOutcome]:
        """Outcomes that failed during conversion or decoding."""
        return [o for o in self.outcomes if o.status == OUTCOME_FAILED]


class HeicCodec(Protocol):
    """External HEIC/HEIF converter contract."""

    def convert(self, payload: bytes, target_type: str, quality: float) -> bytes | list[bytes]:
        """Convert `payload` to `target_type`; may return one payload or several."""
        ...


class FormatNormalizer(Protocol):
    """Stage converting container formats into decodable raster files."""

    async def normalize(self, file: IngestFile) -> IngestFile:
        """Return a decodable file or raise an `IngestError`."""
        ...


class ImageTransformer(Protocol):
    """Stage producing the preview and print variants."""

    async def read_variants(self, file: IngestFile) -> ImageVariants:
        """Return both variants or raise `DecodeError`."""
        ...


class ReportRepository(Protocol):
    """Async key-value store for whole-report snapshots."""

    async def get(self, key: str) -> Report | None:
        """Return the report saved under `key`, or None when absent."""
        ...

    async def put(self, key: str, report: Report) -> None:
        """Replace whatever is saved under `key`; raise `StorageFull` on quota errors."""
        ...


def describe_error(error: Exception | None) -> str:
    """Short, user-facing description of a per-file failure."""
    if error is None:
        return ""
    if isinstance(error, IngestError):
        return f"{type(error).__name__}: {error}"
    return f"Unexpected error: {error}"
