"""Chunked alt text enrichment for one persistence batch."""

from __future__ import annotations

import logging
from collections.abc import Sequence

from .index_cache import IndexStore
from .ingest import partition
from .providers.generation import GENERATION_FAILED, AltTextProvider
from .rate_limiter import ChunkThrottle
from .schemas import EnrichmentRow, RowOutcome

logger = logging.getLogger("alt_text_enricher.enrich")


class ChunkedEnricher:
    """Resolves rows against the index and fills in missing alt text.

    Rows are handled one at a time; a fixed pause separates consecutive
    chunks so the aggregate request rate stays under the generation budget.
    """

    def __init__(
        self,
        store: IndexStore,
        provider: AltTextProvider,
        *,
        chunk_size: int = 30,
        throttle: ChunkThrottle | None = None,
    ) -> None:
        if chunk_size <= 0:
            raise ValueError("chunk_size must be > 0")
        self._store = store
        self._provider = provider
        self._chunk_size = chunk_size
        self._throttle = throttle or ChunkThrottle(0)

    def enrich_batch(self, rows: Sequence[EnrichmentRow], *, offset: int = 0) -> list[RowOutcome]:
        """Process a batch in place and return one outcome per row.

        ``offset`` is the batch's position in the input, used in log messages.
        """

        outcomes: list[RowOutcome] = []
        position = offset
        for chunk in partition(rows, self._chunk_size):
            self._throttle.before_chunk()
            logger.info("Processing chunk of %d row(s)", len(chunk))
            for row in chunk:
                position += 1
                outcomes.append(self.enrich_row(row, position))
            logger.info("Finished chunk of %d row(s)", len(chunk))

        for row in rows:
            row.resolved_url = None
        return outcomes

    def enrich_row(self, row: EnrichmentRow, position: int = 0) -> RowOutcome:
        file_name = row.file_name.strip()
        if not file_name:
            logger.warning("Skipping row %d: no file name found.", position)
            return RowOutcome.MISSING_FILE_NAME

        url, matched_key = self._store.resolve(file_name)
        if url is None:
            logger.warning("Skipping row %d: no matching Shopify file for '%s'", position, file_name)
            return RowOutcome.UNRESOLVED
        if matched_key != file_name:
            logger.info("Adjusted file name match: %s -> %s", file_name, matched_key)
        row.resolved_url = url

        if not row.needs_alt_text():
            return RowOutcome.PRESERVED

        row.alt_text = self._provider.generate(url)
        if row.alt_text == GENERATION_FAILED:
            return RowOutcome.FAILED
        return RowOutcome.GENERATED
