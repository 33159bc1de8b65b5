"""HEIC/HEIF normalization backed by pillow-heif.

The codec is optional: when pillow-heif is missing, HEIC input fails with
`ConversionUnavailable` for that file only, and every other format still
passes through.
"""

from __future__ import annotations

import asyncio
import io
import re

from PIL import Image
from loguru import logger

from core.errors import ConversionError, ConversionUnavailable
from core.models import IngestFile
from core.services.file_validator import is_heic_file
from core.services.interfaces import HeicCodec
from infrastructure.image_service import jpeg_quality
from infrastructure.settings import setting_float

try:  # pragma: no cover - optional dependency
    from pillow_heif import register_heif_opener  # type: ignore

    register_heif_opener()
    PIL_HEIF_AVAILABLE = True
except ImportError:  # pragma: no cover - optional dependency
    PIL_HEIF_AVAILABLE = False

DEFAULT_HEIC_QUALITY = 0.9
TARGET_MIME = "image/jpeg"

_PIL_FORMATS = {"image/jpeg": "JPEG", "image/png": "PNG"}
_EXTENSION_RE = re.compile(r"\.[^.]+$")


class PillowHeifCodec:
    """Converts HEIC/HEIF payloads through Pillow's pillow-heif opener."""

    @property
    def available(self) -> bool:
        """True if pillow-heif was importable."""
        return PIL_HEIF_AVAILABLE

    def convert(self, payload: bytes, target_type: str, quality: float) -> bytes | list[bytes]:
        """Convert every image in the container; a single image returns bytes.

        Raises:
            ConversionUnavailable: if pillow-heif is not installed.
            ConversionError: if the payload cannot be decoded or encoded.
        """
        if not PIL_HEIF_AVAILABLE:
            raise ConversionUnavailable("pillow-heif is not available")
        fmt = _PIL_FORMATS.get(target_type)
        if fmt is None:
            raise ConversionError(f"Unsupported target type: {target_type}")

        outputs: list[bytes] = []
        try:
            with Image.open(io.BytesIO(payload)) as im:
                for index in range(getattr(im, "n_frames", 1)):
                    im.seek(index)
                    frame = im.convert("RGB")
                    buf = io.BytesIO()
                    if fmt == "JPEG":
                        frame.save(buf, format=fmt, quality=jpeg_quality(quality))
                    else:
                        frame.save(buf, format=fmt)
                    outputs.append(buf.getvalue())
        except (OSError, ValueError, RuntimeError, EOFError) as ex:
            raise ConversionError(f"HEIC conversion failed: {ex}") from ex

        if len(outputs) == 1:
            return outputs[0]
        return outputs


class HeicNormalizer:
    """Converts HEIC/HEIF files to JPEG; other files pass through unchanged."""

    def __init__(self, codec: HeicCodec | None = None, settings: object | None = None) -> None:
        """Create a normalizer.

        Args:
            codec: Converter honouring the `HeicCodec` contract; defaults to
                `PillowHeifCodec`. Use `without_codec` to model a missing
                dependency.
            settings: Optional settings providing `heic.quality`.
        """
        self._codec: HeicCodec | None = codec if codec is not None else PillowHeifCodec()
        self._quality = setting_float(settings, "heic.quality", DEFAULT_HEIC_QUALITY)

    @classmethod
    def without_codec(cls, settings: object | None = None) -> HeicNormalizer:
        """Normalizer with no codec installed."""
        normalizer = cls(settings=settings)
        normalizer._codec = None
        return normalizer

    async def normalize(self, file: IngestFile) -> IngestFile:
        """Return a JPEG `IngestFile` for HEIC/HEIF input, `file` otherwise."""
        if not is_heic_file(file):
            return file
        codec = self._codec
        if codec is None:
            raise ConversionUnavailable("No HEIC codec installed", file.name)

        try:
            converted = await asyncio.to_thread(
                codec.convert, file.data, TARGET_MIME, self._quality
            )
        except (ConversionUnavailable, ConversionError) as ex:
            ex.file_name = file.name
            raise
        except Exception as ex:  # pylint: disable=broad-exception-caught
            raise ConversionError(f"HEIC codec rejected input: {ex}", file.name) from ex

        if isinstance(converted, (list, tuple)):
            if not converted:
                raise ConversionError("HEIC codec returned no images", file.name)
            converted = converted[0]
        data = bytes(converted)
        name = f"{_EXTENSION_RE.sub('', file.name)}.jpg"
        logger.info("Converted HEIC {} -> {} ({} bytes)", file.name, name, len(data))
        return IngestFile(name=name, mime_type=TARGET_MIME, data=data, size=len(data))
