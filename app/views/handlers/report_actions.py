"""ReportActionsHandler: user-facing save/load/ingest/export workflows."""

from __future__ import annotations

from collections.abc import Iterable
from pathlib import Path
from typing import Any, Protocol

from loguru import logger

from app.viewmodels.report_vm import ReportVM
from core.errors import LoadNotFound, PersistenceError, StorageFull
from core.models import IngestFile
from core.services.interfaces import describe_error

MSG_SAVED = "Saved on this device."
MSG_SAVE_FAILED = "Could not save locally (storage may be full)."
MSG_NOT_FOUND = "No saved report found for this client/property."


class StatusReporter(Protocol):
    """Protocol for status reporting callback."""

    def show_status(self, message: str, timeout: int = 3000) -> None:
        """Show status message."""
        ...


class ReportActionsHandler:
    """Turns controller errors into notices; none of these methods raise them.

    Every action is retryable by simply invoking it again.
    """

    def __init__(self, vm: ReportVM, status_reporter: StatusReporter) -> None:
        self.vm = vm
        self.status_reporter = status_reporter

    async def save(self) -> bool:
        """Save the report; report the outcome."""
        try:
            key = await self.vm.save()
        except StorageFull as ex:
            logger.warning("Save failed, storage full: {}", ex)
            self.status_reporter.show_status(MSG_SAVE_FAILED)
            return False
        except PersistenceError as ex:
            logger.error("Save failed: {}", ex)
            self.status_reporter.show_status(MSG_SAVE_FAILED)
            return False
        logger.debug("Save completed for {}", key)
        self.status_reporter.show_status(MSG_SAVED)
        return True

    async def load(self) -> bool:
        """Load the report for the current fields; report a missing one."""
        try:
            await self.vm.load()
        except LoadNotFound as ex:
            logger.info("Load: {}", ex)
            self.status_reporter.show_status(MSG_NOT_FOUND)
            return False
        self.status_reporter.show_status(f"Loaded {len(self.vm.store)} photos")
        return True

    async def add_files(self, files: Iterable[IngestFile]) -> int:
        """Ingest files and report per-file failures. Returns cards added."""
        result = await self.vm.load_files(files)
        for outcome in result.failed:
            self.status_reporter.show_status(
                f"Skipped {outcome.file_name}: {describe_error(outcome.error)}"
            )
        added = len(result.added)
        self.status_reporter.show_status(
            f"Added {added} photo(s), skipped {len(result.skipped) + len(result.failed)}"
        )
        return added

    async def export_pdf(self, exporter: Any, path: str | Path) -> bool:
        """Render the print view to `path` through `exporter`."""
        try:
            pages = await self.vm.export_pdf(exporter, path)
        except OSError as ex:
            logger.exception("Export failed: {}", ex)
            self.status_reporter.show_status(f"Export failed: {ex}")
            return False
        self.status_reporter.show_status(f"Exported {pages} page(s) to {path}")
        return True
