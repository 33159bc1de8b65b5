"""Tests for HEIC/HEIF normalization."""

import asyncio
import io

from PIL import Image
import pytest

from core.errors import ConversionError, ConversionUnavailable
from core.models import IngestFile
from infrastructure import heic_codec
from infrastructure.heic_codec import HeicNormalizer, PillowHeifCodec

from conftest import FakeCodec


def _heic(make_image, name="IMG_0042.HEIC", mime="image/heic") -> IngestFile:
    return IngestFile(name=name, mime_type=mime, data=make_image(size=(30, 20)))


def test_non_heic_passes_through_unchanged(make_file, fake_codec):
    file = make_file(name="a.png")
    result = asyncio.run(HeicNormalizer(codec=fake_codec).normalize(file))
    assert result is file
    assert fake_codec.calls == []


def test_heic_is_converted_to_jpeg(make_image, fake_codec):
    result = asyncio.run(HeicNormalizer(codec=fake_codec).normalize(_heic(make_image)))
    assert result.name == "IMG_0042.jpg"
    assert result.mime_type == "image/jpeg"
    assert result.size == len(result.data)
    with Image.open(io.BytesIO(result.data)) as im:
        assert im.format == "JPEG"
    assert fake_codec.calls[0][1:] == ("image/jpeg", 0.9)


def test_heic_detected_by_extension_only(make_image, fake_codec):
    file = _heic(make_image, name="pool.heif", mime="")
    result = asyncio.run(HeicNormalizer(codec=fake_codec).normalize(file))
    assert result.name == "pool.jpg"


def test_list_result_uses_first_payload(make_image):
    codec = FakeCodec(as_list=True)
    result = asyncio.run(HeicNormalizer(codec=codec).normalize(_heic(make_image)))
    assert result.data[:2] == b"\xff\xd8"


def test_empty_list_result_is_conversion_error(make_image):
    class _EmptyCodec:
        def convert(self, payload, target_type, quality):
            return []

    with pytest.raises(ConversionError):
        asyncio.run(HeicNormalizer(codec=_EmptyCodec()).normalize(_heic(make_image)))


def test_codec_failure_is_conversion_error(make_image):
    codec = FakeCodec(error=RuntimeError("bad bitstream"))
    with pytest.raises(ConversionError) as info:
        asyncio.run(HeicNormalizer(codec=codec).normalize(_heic(make_image)))
    assert info.value.file_name == "IMG_0042.HEIC"


def test_missing_codec_is_conversion_unavailable(make_image):
    with pytest.raises(ConversionUnavailable):
        asyncio.run(HeicNormalizer.without_codec().normalize(_heic(make_image)))


def test_missing_codec_still_passes_other_files(make_file):
    file = make_file(name="a.png")
    assert asyncio.run(HeicNormalizer.without_codec().normalize(file)) is file


def test_quality_from_settings(make_image, fake_codec):
    class _Settings:
        def get(self, key, default=None):
            return 0.5 if key == "heic.quality" else default

    asyncio.run(
        HeicNormalizer(codec=fake_codec, settings=_Settings()).normalize(_heic(make_image))
    )
    assert fake_codec.calls[0][2] == 0.5


def test_pillow_heif_codec_unavailable_at_call_time(monkeypatch, make_image):
    monkeypatch.setattr(heic_codec, "PIL_HEIF_AVAILABLE", False)
    codec = PillowHeifCodec()
    assert not codec.available
    with pytest.raises(ConversionUnavailable):
        codec.convert(b"whatever", "image/jpeg", 0.9)
    with pytest.raises(ConversionUnavailable):
        asyncio.run(HeicNormalizer(codec=codec).normalize(_heic(make_image)))


def test_pillow_heif_codec_rejects_corrupt_bytes():
    pytest.importorskip("pillow_heif")
    with pytest.raises(ConversionError):
        PillowHeifCodec().convert(b"not a heic container", "image/jpeg", 0.9)


def test_pillow_heif_codec_rejects_unknown_target():
    pytest.importorskip("pillow_heif")
    with pytest.raises(ConversionError):
        PillowHeifCodec().convert(b"", "image/x-unknown", 0.9)


def test_pillow_heif_codec_converts_readable_payload(make_image):
    pytest.importorskip("pillow_heif")
    out = PillowHeifCodec().convert(make_image(size=(12, 8)), "image/jpeg", 0.9)
    assert isinstance(out, bytes)
    with Image.open(io.BytesIO(out)) as im:
        assert im.format == "JPEG"
        assert im.size == (12, 8)
