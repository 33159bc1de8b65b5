"""Command-line driver for assembling, saving and exporting photo reports."""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import List, Optional

from loguru import logger
import typer

from app.viewmodels.report_vm import DEFAULT_PHOTO_SLOTS, ReportVM
from app.viewmodels.photo_card_store import DEFAULT_DETACH_DELAY
from app.views.handlers.report_actions import ReportActionsHandler
from app.views.print_view import PHOTOS_PER_PAGE, PrintComposer
from core.errors import LoadNotFound
from core.models import IngestFile
from core.services.ingest_service import IngestService
from infrastructure.heic_codec import HeicNormalizer
from infrastructure.image_service import ImageService
from infrastructure.logging import find_latest_log_file, init_logging
from infrastructure.report_repository import create_report_store
from infrastructure.settings import JsonSettings, setting_float, setting_int, setting_str

BASE_DIR = Path(__file__).parent

app = typer.Typer(
    help="Assemble, save and print photo-documentation reports.", no_args_is_help=True
)

CLIENT_OPT = typer.Option("", "--client", "-c", help="Client name")
PROPERTY_OPT = typer.Option("", "--property", "-p", help="Property name")
SETTINGS_OPT = typer.Option(None, "--settings", help="Path to settings.json")


class ConsoleStatus:
    """StatusReporter writing notices to the terminal."""

    def show_status(self, message: str, timeout: int = 3000) -> None:
        del timeout
        typer.echo(message)


def _load_settings(path: Optional[Path]) -> JsonSettings | None:
    settings_path = path or BASE_DIR / "settings.json"
    try:
        return JsonSettings(settings_path)
    except FileNotFoundError:
        if path is not None:
            raise
        return None


def _build_vm(settings: JsonSettings | None) -> ReportVM:
    repo = create_report_store(settings)
    ingest = IngestService(HeicNormalizer(settings=settings), ImageService(settings))
    composer = PrintComposer(
        photos_per_page=setting_int(settings, "print.photos_per_page", PHOTOS_PER_PAGE)
    )
    return ReportVM(
        repo,
        ingest,
        composer=composer,
        default_slots=setting_int(settings, "cards.default_slots", DEFAULT_PHOTO_SLOTS),
        detach_delay=setting_float(settings, "cards.detach_delay", DEFAULT_DETACH_DELAY),
    )


def _open(
    client: str, prop: str, settings_path: Optional[Path]
) -> tuple[ReportVM, ReportActionsHandler, JsonSettings | None]:
    settings = _load_settings(settings_path)
    log_dir = setting_str(settings, "logging.dir", "") or None
    init_logging(log_dir, level=setting_str(settings, "logging.level", "INFO"))
    vm = _build_vm(settings)
    vm.set_fields(client_name=client, property_name=prop)
    return vm, ReportActionsHandler(vm, ConsoleStatus()), settings


async def _load_or_new(vm: ReportVM) -> bool:
    try:
        await vm.load()
    except LoadNotFound:
        logger.info("Starting new report {}", vm.report_key())
        return False
    return True


def _card_at(vm: ReportVM, index: int):
    if index < 1 or index > len(vm.store):
        typer.echo(f"No photo #{index} (report has {len(vm.store)})", err=True)
        raise typer.Exit(code=1)
    return vm.store[index - 1]


@app.command()
def init(
    client: str = CLIENT_OPT,
    prop: str = PROPERTY_OPT,
    date: Optional[str] = typer.Option(None, "--date", help="Report date (YYYY-MM-DD)"),
    prepared_by: Optional[str] = typer.Option(None, "--prepared-by", help="Author name"),
    summary: Optional[str] = typer.Option(None, "--summary", help="Free-text summary"),
    settings_path: Optional[Path] = SETTINGS_OPT,
) -> None:
    """Create or update the metadata of a report."""
    vm, actions, _ = _open(client, prop, settings_path)

    async def _run() -> bool:
        await _load_or_new(vm)
        vm.set_fields(report_date=date, prepared_by=prepared_by, summary=summary)
        return await actions.save()

    if not asyncio.run(_run()):
        raise typer.Exit(code=1)


@app.command()
def add(
    files: List[Path] = typer.Argument(..., exists=True, dir_okay=False, help="Image files"),
    client: str = CLIENT_OPT,
    prop: str = PROPERTY_OPT,
    settings_path: Optional[Path] = SETTINGS_OPT,
) -> None:
    """Ingest image files into the report (inserted ahead of existing photos)."""
    vm, actions, _ = _open(client, prop, settings_path)

    async def _run() -> bool:
        await _load_or_new(vm)
        inputs = [IngestFile.from_path(f) for f in files]
        await actions.add_files(inputs)
        return await actions.save()

    if not asyncio.run(_run()):
        raise typer.Exit(code=1)


@app.command()
def replace(
    index: int = typer.Argument(..., help="1-based photo position"),
    file: Path = typer.Argument(..., exists=True, dir_okay=False, help="Replacement image"),
    client: str = CLIENT_OPT,
    prop: str = PROPERTY_OPT,
    settings_path: Optional[Path] = SETTINGS_OPT,
) -> None:
    """Swap the image of one photo, keeping its caption and position."""
    vm, actions, _ = _open(client, prop, settings_path)

    async def _run() -> bool:
        if not await actions.load():
            return False
        outcome = await vm.replace_photo(_card_at(vm, index), IngestFile.from_path(file))
        if not outcome.ok:
            typer.echo(f"Could not read {file.name}", err=True)
            return False
        return await actions.save()

    if not asyncio.run(_run()):
        raise typer.Exit(code=1)


@app.command()
def caption(
    index: int = typer.Argument(..., help="1-based photo position"),
    text: str = typer.Argument(..., help="Caption text"),
    client: str = CLIENT_OPT,
    prop: str = PROPERTY_OPT,
    settings_path: Optional[Path] = SETTINGS_OPT,
) -> None:
    """Set the caption of one photo."""
    vm, actions, _ = _open(client, prop, settings_path)

    async def _run() -> bool:
        if not await actions.load():
            return False
        vm.set_caption(_card_at(vm, index), text)
        return await actions.save()

    if not asyncio.run(_run()):
        raise typer.Exit(code=1)


@app.command()
def remove(
    index: int = typer.Argument(..., help="1-based photo position"),
    client: str = CLIENT_OPT,
    prop: str = PROPERTY_OPT,
    settings_path: Optional[Path] = SETTINGS_OPT,
) -> None:
    """Remove one photo slot."""
    vm, actions, _ = _open(client, prop, settings_path)

    async def _run() -> bool:
        if not await actions.load():
            return False
        vm.remove_photo(_card_at(vm, index))
        return await actions.save()

    if not asyncio.run(_run()):
        raise typer.Exit(code=1)


@app.command()
def show(
    client: str = CLIENT_OPT,
    prop: str = PROPERTY_OPT,
    settings_path: Optional[Path] = SETTINGS_OPT,
) -> None:
    """Print the saved report's fields and photo list."""
    vm, actions, _ = _open(client, prop, settings_path)
    if not asyncio.run(actions.load()):
        raise typer.Exit(code=1)
    typer.echo(f"Key:         {vm.report_key()}")
    typer.echo(f"Client:      {vm.client_name}")
    typer.echo(f"Property:    {vm.property_name}")
    typer.echo(f"Date:        {vm.report_date}")
    typer.echo(f"Prepared by: {vm.prepared_by}")
    typer.echo(f"Summary:     {vm.summary}")
    for i, card in enumerate(vm.store, start=1):
        state = "image" if card.has_image else "empty"
        typer.echo(f"{i:>3}. [{state:<5}] {card.size_label:>9}  {card.caption}")


@app.command()
def export(
    out: Path = typer.Argument(..., dir_okay=False, help="Output PDF path"),
    client: str = CLIENT_OPT,
    prop: str = PROPERTY_OPT,
    settings_path: Optional[Path] = SETTINGS_OPT,
) -> None:
    """Render the saved report to a paginated PDF."""
    from app.views.pdf_exporter import QtPdfExporter  # pylint: disable=import-outside-toplevel

    vm, actions, settings = _open(client, prop, settings_path)

    async def _run() -> bool:
        if not await actions.load():
            return False
        return await actions.export_pdf(QtPdfExporter.from_settings(settings), out)

    if not asyncio.run(_run()):
        raise typer.Exit(code=1)


@app.command()
def logs(settings_path: Optional[Path] = SETTINGS_OPT) -> None:
    """Print the path of the latest log file."""
    settings = _load_settings(settings_path)
    latest = find_latest_log_file(setting_str(settings, "logging.dir", "") or None)
    if latest is None:
        typer.echo("No log files yet.", err=True)
        raise typer.Exit(code=1)
    typer.echo(str(latest))


if __name__ == "__main__":
    app()
