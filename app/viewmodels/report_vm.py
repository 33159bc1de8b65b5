"""ViewModel owning the active report: fields, photo cards, save/load and print."""

from __future__ import annotations

from collections.abc import Iterable
from pathlib import Path
from typing import Any

from loguru import logger

from app.viewmodels.photo_card_store import DEFAULT_DETACH_DELAY, PhotoCardStore
from app.views.print_view import PrintComposer, PrintView
from core.errors import LoadNotFound, PersistenceError
from core.models import IngestFile, PhotoCard, Report, report_key
from core.services.ingest_service import IngestService
from core.services.interfaces import (
    OUTCOME_ADDED,
    IngestBatchResult,
    IngestOutcome,
    ReportRepository,
)

DEFAULT_PHOTO_SLOTS = 6


class ReportVM:
    """Main application view-model.

    The single owner of the Report aggregate. Pipeline stages, the store and
    the composer receive it by reference; nothing is held globally.
    """

    def __init__(
        self,
        repo: ReportRepository,
        ingest: IngestService,
        composer: PrintComposer | None = None,
        default_slots: int = DEFAULT_PHOTO_SLOTS,
        detach_delay: float = DEFAULT_DETACH_DELAY,
    ) -> None:
        """Create a ReportVM seeded with `default_slots` empty cards.

        Args:
            repo: Async report repository (`get`/`put`).
            ingest: Ingestion service running validate/normalize/transform.
            composer: Print composer (defaults to `PrintComposer()`).
            default_slots: Empty cards shown for a new or cleared report.
            detach_delay: Cosmetic removal delay forwarded to views.
        """
        self._repo = repo
        self._ingest = ingest
        self._composer = composer or PrintComposer()
        self._default_slots = max(0, int(default_slots))
        self.store = PhotoCardStore(detach_delay=detach_delay)
        self.client_name = ""
        self.property_name = ""
        self.report_date = ""
        self.prepared_by = ""
        self.summary = ""
        self.print_view: PrintView | None = None
        self._seed_slots()

    # Cards
    def add_photo(self, data: PhotoCard | None = None) -> PhotoCard:
        """Append a card (empty placeholder when `data` is None)."""
        return self.store.append(data)

    def remove_photo(self, card: PhotoCard) -> bool:
        """Remove `card` from the report immediately."""
        return self.store.remove(card)

    def set_caption(self, card: PhotoCard, caption: str) -> None:
        """Update the caption of `card`."""
        card.caption = caption

    async def load_files(self, files: Iterable[IngestFile]) -> IngestBatchResult:
        """Ingest a bulk/drag selection.

        Cards are inserted as one run before the card that was first when the
        batch started, in the order the files were given. An empty store gets
        the run appended. Each card follows the previous card of the same
        batch, so the run stays contiguous even if the anchor is removed.
        """
        anchor = self.store[0] if len(self.store) else None
        previous: PhotoCard | None = None

        def _insert(card: PhotoCard) -> None:
            nonlocal previous
            if previous is not None and previous in self.store:
                index = self.store.index_of(previous) + 1
            elif anchor is not None and anchor in self.store:
                index = self.store.index_of(anchor)
            else:
                index = -1
            previous = self.store.insert_batch([card], index)[0]

        return await self._ingest.ingest(files, _insert)

    async def replace_photo(self, card: PhotoCard, file: IngestFile) -> IngestOutcome:
        """Re-select the image of an existing card in place.

        On failure the card is left untouched and the failed outcome returned.
        """
        outcome = await self._ingest.process_file(file)
        if outcome.status == OUTCOME_ADDED and outcome.card is not None:
            if card in self.store:
                self.store.replace(card, outcome.card)
            else:
                logger.warning("Card removed before {} finished processing", file.name)
        return outcome

    # Report
    def report_key(self) -> str:
        """Storage key for the current client/property fields."""
        return report_key(self.client_name, self.property_name)

    def snapshot(self) -> Report:
        """Detached Report built from current fields and cards."""
        return Report(
            client_name=self.client_name,
            property_name=self.property_name,
            report_date=self.report_date,
            prepared_by=self.prepared_by,
            summary=self.summary,
            photos=self.store.snapshot(),
        )

    def set_fields(self, **fields: Any) -> None:
        """Assign metadata fields by attribute name."""
        for name in ("client_name", "property_name", "report_date", "prepared_by", "summary"):
            if name in fields and fields[name] is not None:
                setattr(self, name, str(fields[name]))

    async def save(self) -> str:
        """Persist the current report under its key and return the key.

        Raises:
            StorageFull: storage quota/space exhausted; nothing was written.
            PersistenceError: any other storage failure.
        """
        key = self.report_key()
        report = self.snapshot()
        await self._repo.put(key, report)
        logger.info("Saved report {} | photos={}", key, len(report.photos))
        return key

    async def load(self) -> Report:
        """Replace fields and cards with the report saved under the current key.

        Raises:
            LoadNotFound: nothing saved for this key, or the read failed. The
                current state is left unchanged.
        """
        key = self.report_key()
        try:
            report = await self._repo.get(key)
        except PersistenceError as ex:
            logger.warning("Load failed for {}: {}", key, ex)
            raise LoadNotFound(key) from ex
        if report is None:
            raise LoadNotFound(key)

        self.client_name = report.client_name
        self.property_name = report.property_name
        self.report_date = report.report_date
        self.prepared_by = report.prepared_by
        self.summary = report.summary
        self.store.reset(report.photos)
        if not report.photos:
            self._seed_slots()
        logger.info("Loaded report {} | photos={}", key, len(report.photos))
        return report

    def clear(self) -> None:
        """Empty all fields and reset the cards to blank slots."""
        self.client_name = ""
        self.property_name = ""
        self.report_date = ""
        self.prepared_by = ""
        self.summary = ""
        self.store.reset()
        self._seed_slots()
        self.print_view = None

    # Print
    async def prepare_print(self) -> PrintView:
        """Rebuild the print view from a fresh snapshot and wait for its images."""
        self.print_view = None
        view = await self._composer.prepare(self.snapshot())
        self.print_view = view
        return view

    async def export_pdf(self, exporter: Any, path: str | Path) -> int:
        """Prepare the print view, then hand it to `exporter`. Returns page count."""
        view = await self.prepare_print()
        return exporter.export(view, path)

    def _seed_slots(self) -> None:
        for _ in range(self._default_slots):
            self.store.append()
