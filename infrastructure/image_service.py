"""Image decoding, downscaling and encoding for ingested photos.

Includes a small Pillow-backed `Bitmap` abstraction, data-URI helpers and the
`ImageService` that turns a normalized file into preview and print variants.
Pillow work runs in worker threads so the event loop stays responsive.
"""

from __future__ import annotations

import asyncio
import base64
import binascii
import io
import math
from urllib.parse import unquote_to_bytes

from PIL import Image, ImageOps
from loguru import logger

from core.errors import DecodeError
from core.models import IngestFile
from core.services.interfaces import ImageVariants
from infrastructure.settings import setting_float, setting_int

DEFAULT_PREVIEW_SIDE = 1800
DEFAULT_PREVIEW_QUALITY = 0.85
DEFAULT_PRINT_SIDE = 1800
DEFAULT_PRINT_QUALITY = 0.8

JPEG_MIME = "image/jpeg"
FALLBACK_MIME = "application/octet-stream"

_DECODE_ERRORS = (OSError, ValueError, SyntaxError, Image.DecompressionBombError)


def fit_within(width: int, height: int, max_side: float) -> tuple[int, int]:
    """Scale (width, height) so the long side is at most `max_side`.

    Sizes that already fit are returned unchanged. Otherwise both sides are
    divided by the same ratio and rounded half-up to whole pixels.
    """
    ratio = max(width, height) / max_side
    if ratio <= 1:
        return width, height
    return _round_half_up(width / ratio), _round_half_up(height / ratio)


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def to_data_uri(data: bytes, mime_type: str) -> str:
    """Encode `data` as a base64 data URI."""
    encoded = base64.b64encode(data).decode("ascii")
    return f"data:{mime_type or FALLBACK_MIME};base64,{encoded}"


def parse_data_uri(uri: str) -> tuple[str, bytes]:
    """Split a data URI into (mime_type, payload bytes).

    Raises:
        DecodeError: if `uri` is not a well-formed data URI.
    """
    if not uri or not uri.startswith("data:") or "," not in uri:
        raise DecodeError("Not an embedded image payload")
    header, _, payload = uri[5:].partition(",")
    params = header.split(";")
    mime_type = params[0] or FALLBACK_MIME
    try:
        if "base64" in params[1:]:
            data = base64.b64decode(payload, validate=True)
        else:
            data = unquote_to_bytes(payload)
    except (binascii.Error, ValueError) as ex:
        raise DecodeError(f"Malformed data URI payload: {ex}") from ex
    return mime_type, data


def jpeg_quality(quality: float) -> int:
    """Map a 0..1 quality factor to Pillow's 1..100 JPEG scale."""
    return max(1, min(100, int(round(quality * 100))))


class Bitmap:
    """Decoded raster image, independent of any UI surface."""

    def __init__(self, image: Image.Image, source_format: str | None = None) -> None:
        self._image = image
        self.source_format = source_format

    @classmethod
    def decode(cls, data: bytes, name: str = "") -> Bitmap:
        """Decode encoded bytes, applying EXIF orientation.

        Raises:
            DecodeError: if the bytes are not a decodable image.
        """
        try:
            with Image.open(io.BytesIO(data)) as im:
                im.load()
                fmt = im.format
                try:
                    oriented = ImageOps.exif_transpose(im)
                except (OSError, ValueError, AttributeError):
                    oriented = im
                if oriented is None or oriented is im:
                    oriented = im.copy()
        except _DECODE_ERRORS as ex:
            raise DecodeError(f"Could not decode image: {ex}", name) from ex
        return cls(oriented, fmt)

    @property
    def size(self) -> tuple[int, int]:
        """(width, height) in pixels."""
        return self._image.size

    @property
    def width(self) -> int:
        """Width in pixels."""
        return self._image.width

    @property
    def height(self) -> int:
        """Height in pixels."""
        return self._image.height

    def resize(self, width: int, height: int) -> Bitmap:
        """Resample the whole image onto a `width` x `height` surface in one pass."""
        image = self._image
        if image.mode not in ("RGB", "RGBA", "L"):
            has_alpha = "A" in image.getbands() or "transparency" in image.info
            image = image.convert("RGBA" if has_alpha else "RGB")
        if (width, height) != image.size:
            image = image.resize((width, height), Image.Resampling.LANCZOS)
        return Bitmap(image, self.source_format)

    def encode_jpeg(self, quality: float) -> bytes:
        """Encode as JPEG with a 0..1 `quality` factor.

        Raises:
            DecodeError: if Pillow cannot encode the raster.
        """
        image = self._image
        if image.mode not in ("RGB", "L"):
            image = image.convert("RGB")
        buf = io.BytesIO()
        try:
            image.save(buf, format="JPEG", quality=jpeg_quality(quality))
        except (OSError, ValueError) as ex:
            raise DecodeError(f"Could not encode JPEG: {ex}") from ex
        return buf.getvalue()


def probe_image_uri(uri: str) -> tuple[int, int]:
    """Decode an embedded image payload and return its (width, height).

    Raises:
        DecodeError: if the payload is malformed or not an image.
    """
    _, data = parse_data_uri(uri)
    return Bitmap.decode(data).size


class ImageService:
    """Produces preview and print variants for normalized image files."""

    def __init__(self, settings: object | None = None) -> None:
        """Read target sides and JPEG qualities from optional `settings`."""
        self._preview_side = setting_int(
            settings, "imaging.preview.max_side", DEFAULT_PREVIEW_SIDE
        )
        self._preview_quality = setting_float(
            settings, "imaging.preview.quality", DEFAULT_PREVIEW_QUALITY
        )
        self._print_side = setting_int(settings, "imaging.print.max_side", DEFAULT_PRINT_SIDE)
        self._print_quality = setting_float(
            settings, "imaging.print.quality", DEFAULT_PRINT_QUALITY
        )

    async def read_variants(self, file: IngestFile) -> ImageVariants:
        """Decode `file` once and build both variants off the event loop."""
        return await asyncio.to_thread(self.build_variants, file)

    def build_variants(self, file: IngestFile) -> ImageVariants:
        """Synchronous core of `read_variants`."""
        bitmap = Bitmap.decode(file.data, file.name)
        mime = file.mime_type or Image.MIME.get(bitmap.source_format or "", FALLBACK_MIME)
        original_uri = to_data_uri(file.data, mime)

        try:
            preview_uri = self._downscale(
                bitmap, original_uri, self._preview_side, self._preview_quality
            )
            print_uri = self._downscale(
                bitmap, original_uri, self._print_side, self._print_quality, force_jpeg=True
            )
        except DecodeError as ex:
            ex.file_name = file.name
            raise
        logger.debug(
            "Built variants for {} | source={}x{} preview={}B print={}B",
            file.name,
            bitmap.width,
            bitmap.height,
            len(preview_uri),
            len(print_uri),
        )
        return ImageVariants(preview_uri=preview_uri, print_uri=print_uri)

    def _downscale(
        self,
        bitmap: Bitmap,
        original_uri: str,
        max_side: int,
        quality: float,
        force_jpeg: bool = False,
    ) -> str:
        """Return a data URI bounded by `max_side`.

        The original payload is reused when no resize is needed, unless
        `force_jpeg` asks for an unconditional JPEG re-encode.
        """
        width, height = fit_within(bitmap.width, bitmap.height, max_side)
        if (width, height) == bitmap.size and not force_jpeg:
            return original_uri
        resized = bitmap.resize(width, height)
        return to_data_uri(resized.encode_jpeg(quality), JPEG_MIME)
