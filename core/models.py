"""Core domain models for photo reports, cards and ingested files."""

from __future__ import annotations

from dataclasses import dataclass, field
import mimetypes
from pathlib import Path
from typing import Any

REPORT_KEY_PREFIX = "photo-report"


@dataclass(frozen=True)
class IngestFile:
    """A file-like object handed to the ingestion pipeline."""

    name: str
    mime_type: str
    data: bytes
    size: int = -1

    def __post_init__(self) -> None:
        if self.size < 0:
            object.__setattr__(self, "size", len(self.data))

    @classmethod
    def from_path(cls, path: str | Path) -> IngestFile:
        """Read `path` from disk; the MIME type is guessed from the extension."""
        p = Path(path)
        mime, _ = mimetypes.guess_type(p.name)
        data = p.read_bytes()
        return cls(name=p.name, mime_type=mime or "", data=data, size=len(data))


@dataclass(eq=False)
class PhotoCard:
    """One photo slot: caption plus preview/print image payloads.

    Cards compare by identity so the same values can live in two slots.
    """

    preview_image: str = ""
    print_image: str = ""
    caption: str = ""
    size_label: str = ""

    @property
    def has_image(self) -> bool:
        """True if either image variant is present."""
        return bool(self.preview_image or self.print_image)

    @property
    def is_blank(self) -> bool:
        """True for an untouched placeholder (no image, no caption)."""
        return not self.has_image and not self.caption

    @property
    def display_image(self) -> str:
        """Print variant when present, else the preview variant."""
        return self.print_image or self.preview_image

    def copy(self) -> PhotoCard:
        """Return a detached card holding the same values."""
        return PhotoCard(
            preview_image=self.preview_image,
            print_image=self.print_image,
            caption=self.caption,
            size_label=self.size_label,
        )

    def to_dict(self) -> dict[str, str]:
        """Serialize with the saved-report field names."""
        return {
            "image": self.preview_image,
            "printImage": self.print_image,
            "caption": self.caption,
            "size": self.size_label,
        }

    @classmethod
    def from_dict(cls, raw: dict[str, Any]) -> PhotoCard:
        """Build a card from a saved photo entry; missing fields become empty."""
        return cls(
            preview_image=_as_text(raw.get("image")),
            print_image=_as_text(raw.get("printImage")),
            caption=_as_text(raw.get("caption")),
            size_label=_as_text(raw.get("size")),
        )


@dataclass
class Report:
    """Report aggregate: metadata fields plus the ordered photo cards."""

    client_name: str = ""
    property_name: str = ""
    report_date: str = ""
    prepared_by: str = ""
    summary: str = ""
    photos: list[PhotoCard] = field(default_factory=list)

    @property
    def key(self) -> str:
        """Persistence key derived from client and property names."""
        return report_key(self.client_name, self.property_name)

    def to_dict(self) -> dict[str, Any]:
        """Serialize to the JSON-compatible saved-report structure."""
        return {
            "clientName": self.client_name,
            "propertyName": self.property_name,
            "reportDate": self.report_date,
            "preparedBy": self.prepared_by,
            "summary": self.summary,
            "photos": [p.to_dict() for p in self.photos],
        }

    @classmethod
    def from_dict(cls, raw: dict[str, Any]) -> Report:
        """Deserialize a saved report, tolerating missing or null fields."""
        photos = raw.get("photos") or []
        return cls(
            client_name=_as_text(raw.get("clientName")),
            property_name=_as_text(raw.get("propertyName")),
            report_date=_as_text(raw.get("reportDate")),
            prepared_by=_as_text(raw.get("preparedBy")),
            summary=_as_text(raw.get("summary")),
            photos=[PhotoCard.from_dict(p) for p in photos if isinstance(p, dict)],
        )


def report_key(client_name: str, property_name: str) -> str:
    """Return the storage key for a client/property pair."""
    client = (client_name or "").strip() or "client"
    prop = (property_name or "").strip() or "property"
    return f"{REPORT_KEY_PREFIX}::{client}::{prop}"


def _as_text(value: Any) -> str:
    if value is None:
        return ""
    return str(value)
