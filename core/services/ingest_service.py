"""Sequential ingestion of image files into photo-card data.

Each file runs validate -> normalize -> transform to completion before the
next one starts. A failure is recorded on that file's outcome and the batch
moves on; nothing here aborts a batch.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable

from loguru import logger

from core.errors import IngestError, NotAnImage
from core.formatting import human_file_size
from core.models import IngestFile, PhotoCard
from core.services.file_validator import is_image_file
from core.services.interfaces import (
    OUTCOME_ADDED,
    OUTCOME_FAILED,
    OUTCOME_SKIPPED,
    FormatNormalizer,
    ImageTransformer,
    IngestBatchResult,
    IngestOutcome,
)


class IngestService:
    """Runs the ingestion stages over single files and batches."""

    def __init__(self, normalizer: FormatNormalizer, transformer: ImageTransformer) -> None:
        self._normalizer = normalizer
        self._transformer = transformer

    async def process_file(self, file: IngestFile) -> IngestOutcome:
        """Run one file through every stage and return its outcome."""
        try:
            if not is_image_file(file):
                raise NotAnImage("Not an image file", file.name)
            normalized = await self._normalizer.normalize(file)
            variants = await self._transformer.read_variants(normalized)
        except NotAnImage as ex:
            logger.debug("Skipping non-image file {}", file.name)
            return IngestOutcome(file_name=file.name, status=OUTCOME_SKIPPED, error=ex)
        except IngestError as ex:
            logger.warning("Skipping file (could not read image): {} | {}", file.name, ex)
            return IngestOutcome(file_name=file.name, status=OUTCOME_FAILED, error=ex)
        except Exception as ex:  # pylint: disable=broad-exception-caught
            logger.exception("Unexpected ingestion failure for {}: {}", file.name, ex)
            return IngestOutcome(file_name=file.name, status=OUTCOME_FAILED, error=ex)

        card = PhotoCard(
            preview_image=variants.preview_uri,
            print_image=variants.print_uri,
            caption="",
            size_label=human_file_size(normalized.size),
        )
        return IngestOutcome(file_name=file.name, status=OUTCOME_ADDED, card=card)

    async def ingest(
        self,
        files: Iterable[IngestFile],
        insert: Callable[[PhotoCard], object],
    ) -> IngestBatchResult:
        """Process `files` one at a time, calling `insert` for each produced card.

        `insert` runs before the next file starts, so callers observe cards in
        input order.
        """
        result = IngestBatchResult()
        for file in files:
            outcome = await self.process_file(file)
            if outcome.ok and outcome.card is not None:
                insert(outcome.card)
            result.outcomes.append(outcome)
        logger.info(
            "Ingest batch done | added={} skipped={} failed={}",
            len(result.added),
            len(result.skipped),
            len(result.failed),
        )
        return result
