"""Shared fixtures for photo-report tests."""

from __future__ import annotations

import io
import os

from PIL import Image
import pytest

os.environ.setdefault("QT_QPA_PLATFORM", "offscreen")

from app.viewmodels.report_vm import ReportVM  # noqa: E402
from app.views.print_view import PrintComposer  # noqa: E402
from core.models import IngestFile  # noqa: E402
from core.services.ingest_service import IngestService  # noqa: E402
from infrastructure.heic_codec import HeicNormalizer  # noqa: E402
from infrastructure.image_service import ImageService  # noqa: E402
from infrastructure.report_repository import MemoryReportStore  # noqa: E402


def _make_image(
    size: tuple[int, int] = (40, 30),
    fmt: str = "PNG",
    mode: str = "RGB",
    color: tuple[int, ...] = (200, 30, 30),
) -> bytes:
    buf = io.BytesIO()
    Image.new(mode, size, color).save(buf, format=fmt)
    return buf.getvalue()


class FakeCodec:
    """HEIC codec stand-in that re-encodes any Pillow-readable payload to JPEG."""

    def __init__(self, as_list: bool = False, error: Exception | None = None) -> None:
        self.as_list = as_list
        self.error = error
        self.calls: list[tuple[int, str, float]] = []

    def convert(self, payload: bytes, target_type: str, quality: float):
        self.calls.append((len(payload), target_type, quality))
        if self.error is not None:
            raise self.error
        with Image.open(io.BytesIO(payload)) as im:
            buf = io.BytesIO()
            im.convert("RGB").save(buf, format="JPEG", quality=int(quality * 100))
        data = buf.getvalue()
        return [data, b"second-image"] if self.as_list else data


@pytest.fixture
def make_image():
    """Factory producing encoded image bytes."""
    return _make_image


@pytest.fixture
def make_file(make_image):
    """Factory producing `IngestFile` objects with real image content."""

    def _factory(
        name: str = "photo.png",
        mime_type: str = "image/png",
        size: tuple[int, int] = (40, 30),
        fmt: str = "PNG",
        data: bytes | None = None,
    ) -> IngestFile:
        payload = data if data is not None else make_image(size=size, fmt=fmt)
        return IngestFile(name=name, mime_type=mime_type, data=payload)

    return _factory


@pytest.fixture
def fake_codec():
    return FakeCodec()


@pytest.fixture
def memory_repo():
    return MemoryReportStore()


@pytest.fixture
def ingest_service(fake_codec):
    return IngestService(HeicNormalizer(codec=fake_codec), ImageService())


@pytest.fixture
def vm(memory_repo, ingest_service):
    return ReportVM(memory_repo, ingest_service, composer=PrintComposer())
