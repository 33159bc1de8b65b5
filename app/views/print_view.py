"""Paginated, read-only print presentation built from a report snapshot.

`PrintComposer.build` is pure: every call produces a brand-new `PrintView`.
`PrintComposer.prepare` additionally waits until every embedded image has
settled (loaded or failed) so the export facility never receives a view with
images still pending.
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable, Iterator
from dataclasses import dataclass, field
from enum import Enum

from loguru import logger

from core.models import Report
from infrastructure.image_service import probe_image_uri

PHOTOS_PER_PAGE = 6

ImageLoader = Callable[[str], tuple[int, int]]


class ImageLoadState(Enum):
    """Lifecycle of an embedded image reference."""

    PENDING = "pending"
    LOADED = "loaded"
    FAILED = "failed"


@dataclass(eq=False)
class PrintImage:
    """Image reference inside the print view."""

    uri: str
    state: ImageLoadState = ImageLoadState.PENDING
    width: int = 0
    height: int = 0
    error: str = ""

    @property
    def settled(self) -> bool:
        """True once loading reached LOADED or FAILED."""
        return self.state is not ImageLoadState.PENDING


@dataclass
class PrintPhoto:
    """One printed photo cell: optional image and optional caption."""

    image: PrintImage | None = None
    caption: str = ""


@dataclass
class PrintPage:
    """A fixed-size group of photo cells."""

    photos: list[PrintPhoto] = field(default_factory=list)


@dataclass
class PrintView:
    """Header block plus photo pages, in report order."""

    client_name: str = ""
    property_name: str = ""
    report_date: str = ""
    prepared_by: str = ""
    summary: str = ""
    pages: list[PrintPage] = field(default_factory=list)

    @property
    def has_photos(self) -> bool:
        """True when at least one photo page exists."""
        return bool(self.pages)

    @property
    def photo_count(self) -> int:
        """Total printed cells across pages."""
        return sum(len(p.photos) for p in self.pages)

    def images(self) -> Iterator[PrintImage]:
        """Every image reference in page order."""
        for page in self.pages:
            for photo in page.photos:
                if photo.image is not None:
                    yield photo.image


class PrintComposer:
    """Builds `PrintView` trees from report snapshots."""

    def __init__(
        self,
        image_loader: ImageLoader | None = None,
        photos_per_page: int = PHOTOS_PER_PAGE,
    ) -> None:
        self._load_image = image_loader or probe_image_uri
        self._per_page = max(1, int(photos_per_page))

    def build(self, report: Report) -> PrintView:
        """Compose a fresh view; blank cards are skipped, the rest paginated."""
        view = PrintView(
            client_name=report.client_name,
            property_name=report.property_name,
            report_date=report.report_date,
            prepared_by=report.prepared_by,
            summary=report.summary,
        )
        page: PrintPage | None = None
        for card in report.photos:
            image_uri = card.print_image or card.preview_image
            caption = card.caption or ""
            if not image_uri and not caption:
                continue
            photo = PrintPhoto(
                image=PrintImage(uri=image_uri) if image_uri else None,
                caption=caption,
            )
            if page is None or len(page.photos) == self._per_page:
                page = PrintPage()
                view.pages.append(page)
            page.photos.append(photo)
        return view

    async def prepare(self, report: Report) -> PrintView:
        """Build a view and wait for all of its images to settle."""
        view = self.build(report)
        await self.wait_for_images(view)
        return view

    async def wait_for_images(self, view: PrintView) -> None:
        """Settle every pending image concurrently; never raises."""
        pending = [img for img in view.images() if not img.settled]
        if not pending:
            return
        await asyncio.gather(*(self._settle(img) for img in pending))
        failed = sum(1 for img in pending if img.state is ImageLoadState.FAILED)
        logger.info("Print images settled | total={} failed={}", len(pending), failed)

    async def _settle(self, image: PrintImage) -> None:
        try:
            width, height = await asyncio.to_thread(self._load_image, image.uri)
        except Exception as ex:  # pylint: disable=broad-exception-caught
            image.state = ImageLoadState.FAILED
            image.error = str(ex)
            logger.warning("Print image failed to load: {}", ex)
            return
        image.width, image.height = int(width), int(height)
        image.state = ImageLoadState.LOADED
