"""Classify incoming files as acceptable images.

Decisions are made from the declared MIME type and the file name only; the
bytes are never inspected here.
"""

from __future__ import annotations

from core.models import IngestFile

IMAGE_EXTENSIONS = frozenset(
    {"jpg", "jpeg", "png", "gif", "webp", "bmp", "tif", "tiff", "heic", "heif"}
)
HEIC_EXTENSIONS = frozenset({"heic", "heif"})
HEIC_MIME_TYPES = frozenset({"image/heic", "image/heif"})


def file_extension(name: str) -> str:
    """Lowercase text after the last dot (the whole name when there is no dot)."""
    return (name or "").rsplit(".", 1)[-1].lower()


def is_image_file(file: IngestFile) -> bool:
    """True if `file` is declared as an image or carries an allowed extension."""
    if file.mime_type and file.mime_type.startswith("image/"):
        return True
    return file_extension(file.name) in IMAGE_EXTENSIONS


def is_heic_file(file: IngestFile) -> bool:
    """True if `file` is HEIC/HEIF by declared type or extension."""
    if file.mime_type and file.mime_type in HEIC_MIME_TYPES:
        return True
    return file_extension(file.name) in HEIC_EXTENSIONS
