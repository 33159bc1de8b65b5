"""PDF export of a prepared print view using Qt's native PDF writer.

The first page carries the report header and summary; each photo page of the
view becomes one PDF page laid out as a grid with captions under the images.
"""

from __future__ import annotations

import math
from pathlib import Path

from PySide6.QtCore import QCoreApplication, QMarginsF, QRectF
from PySide6.QtCore import Qt
from PySide6.QtGui import (
    QFont,
    QFontMetricsF,
    QGuiApplication,
    QImage,
    QPageLayout,
    QPageSize,
    QPainter,
    QPdfWriter,
)
from loguru import logger

from app.views.print_view import ImageLoadState, PrintPhoto, PrintView
from core.errors import DecodeError
from infrastructure.image_service import parse_data_uri
from infrastructure.settings import setting_int, setting_str

DEFAULT_RESOLUTION = 150
DEFAULT_PAGE_SIZE = "A4"
GRID_COLUMNS = 2
MARGIN_MM = 12.0
CELL_GAP_RATIO = 0.03
CAPTION_LINES = 2
TITLE = "Photo Report"

_PAGE_SIZES = {
    "A4": QPageSize.PageSizeId.A4,
    "LETTER": QPageSize.PageSizeId.Letter,
    "LEGAL": QPageSize.PageSizeId.Legal,
    "A3": QPageSize.PageSizeId.A3,
}

_GUI_APP: QCoreApplication | None = None


def _ensure_gui_app() -> QCoreApplication:
    """Qt painting needs a QGuiApplication; create one when running headless."""
    global _GUI_APP  # pylint: disable=global-statement
    app = QCoreApplication.instance()
    if app is None:
        app = QGuiApplication(["photo-report"])
    _GUI_APP = app
    return app


def _flags(*values: object) -> int:
    result = 0
    for v in values:
        result |= int(getattr(v, "value", v))
    return result


class QtPdfExporter:
    """Renders `PrintView` trees to PDF files."""

    def __init__(
        self,
        page_size: str = DEFAULT_PAGE_SIZE,
        resolution: int = DEFAULT_RESOLUTION,
        photos_per_page: int = 6,
    ) -> None:
        self._page_size = _PAGE_SIZES.get(page_size.upper(), QPageSize.PageSizeId.A4)
        self._resolution = max(72, int(resolution))
        self._rows = max(1, math.ceil(max(1, photos_per_page) / GRID_COLUMNS))

    @classmethod
    def from_settings(cls, settings: object | None) -> QtPdfExporter:
        """Build an exporter from `print.*` settings."""
        return cls(
            page_size=setting_str(settings, "print.page_size", DEFAULT_PAGE_SIZE),
            resolution=setting_int(settings, "print.resolution", DEFAULT_RESOLUTION),
            photos_per_page=setting_int(settings, "print.photos_per_page", 6),
        )

    def export(self, view: PrintView, path: str | Path) -> int:
        """Write `view` to `path` and return the number of pages.

        Raises:
            OSError: if the PDF file cannot be opened for writing.
        """
        _ensure_gui_app()
        target = Path(path)
        target.parent.mkdir(parents=True, exist_ok=True)

        writer = QPdfWriter(str(target))
        writer.setResolution(self._resolution)
        writer.setPageSize(QPageSize(self._page_size))
        writer.setPageMargins(
            QMarginsF(MARGIN_MM, MARGIN_MM, MARGIN_MM, MARGIN_MM), QPageLayout.Unit.Millimeter
        )
        writer.setTitle(f"{TITLE} - {view.client_name}".strip(" -"))
        writer.setCreator("photo-report")

        painter = QPainter()
        if not painter.begin(writer):
            raise OSError(f"Could not open {target} for writing")
        pages = 1
        try:
            area = QRectF(writer.pageLayout().paintRectPixels(self._resolution))
            area.moveTo(0, 0)
            self._draw_header(painter, view, area)
            for page in view.pages:
                writer.newPage()
                pages += 1
                self._draw_photo_page(painter, page.photos, area)
        finally:
            painter.end()
        logger.info("Exported PDF {} | pages={} photos={}", target, pages, view.photo_count)
        return pages

    def _draw_header(self, painter: QPainter, view: PrintView, area: QRectF) -> None:
        title_font = QFont("Helvetica", 20)
        title_font.setBold(True)
        body_font = QFont("Helvetica", 11)

        painter.setFont(title_font)
        title_h = QFontMetricsF(title_font, painter.device()).height() * 1.6
        painter.drawText(
            QRectF(area.left(), area.top(), area.width(), title_h),
            _flags(Qt.AlignmentFlag.AlignLeft, Qt.AlignmentFlag.AlignVCenter),
            TITLE,
        )

        painter.setFont(body_font)
        line_h = QFontMetricsF(body_font, painter.device()).height() * 1.4
        y = area.top() + title_h
        for label, value in (
            ("Client", view.client_name),
            ("Property", view.property_name),
            ("Date", view.report_date),
            ("Prepared by", view.prepared_by),
        ):
            painter.drawText(
                QRectF(area.left(), y, area.width(), line_h),
                _flags(Qt.AlignmentFlag.AlignLeft, Qt.AlignmentFlag.AlignVCenter),
                f"{label}: {value}",
            )
            y += line_h

        if view.summary:
            y += line_h / 2
            painter.drawText(
                QRectF(area.left(), y, area.width(), area.bottom() - y),
                _flags(
                    Qt.AlignmentFlag.AlignLeft,
                    Qt.AlignmentFlag.AlignTop,
                    Qt.TextFlag.TextWordWrap,
                ),
                view.summary,
            )

    def _draw_photo_page(self, painter: QPainter, photos: list[PrintPhoto], area: QRectF) -> None:
        caption_font = QFont("Helvetica", 9)
        painter.setFont(caption_font)
        caption_h = QFontMetricsF(caption_font, painter.device()).height() * (CAPTION_LINES + 0.5)

        gap = area.width() * CELL_GAP_RATIO
        cell_w = (area.width() - gap * (GRID_COLUMNS - 1)) / GRID_COLUMNS
        cell_h = (area.height() - gap * (self._rows - 1)) / self._rows

        for index, photo in enumerate(photos):
            row, col = divmod(index, GRID_COLUMNS)
            cell = QRectF(
                area.left() + col * (cell_w + gap),
                area.top() + row * (cell_h + gap),
                cell_w,
                cell_h,
            )
            image_rect = QRectF(cell.left(), cell.top(), cell.width(), cell.height() - caption_h)
            qimg = self._to_qimage(photo)
            if qimg is not None:
                painter.drawImage(_fit_rect(image_rect, qimg.width(), qimg.height()), qimg)
            if photo.caption:
                painter.drawText(
                    QRectF(cell.left(), image_rect.bottom(), cell.width(), caption_h),
                    _flags(
                        Qt.AlignmentFlag.AlignHCenter,
                        Qt.AlignmentFlag.AlignTop,
                        Qt.TextFlag.TextWordWrap,
                    ),
                    photo.caption,
                )

    def _to_qimage(self, photo: PrintPhoto) -> QImage | None:
        image = photo.image
        if image is None or image.state is not ImageLoadState.LOADED:
            return None
        try:
            _, data = parse_data_uri(image.uri)
        except DecodeError as ex:
            logger.debug("Skipping print image: {}", ex)
            return None
        qimg = QImage.fromData(data)
        if qimg.isNull():
            logger.debug("Qt could not decode print image ({} bytes)", len(data))
            return None
        return qimg


def _fit_rect(box: QRectF, width: int, height: int) -> QRectF:
    """Largest rect with the image's aspect ratio centred inside `box`."""
    if width <= 0 or height <= 0 or box.width() <= 0 or box.height() <= 0:
        return QRectF(box)
    scale = min(box.width() / width, box.height() / height)
    w, h = width * scale, height * scale
    return QRectF(box.left() + (box.width() - w) / 2, box.top() + (box.height() - h) / 2, w, h)
