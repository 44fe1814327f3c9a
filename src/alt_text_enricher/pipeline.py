"""Batch orchestration: enrich each slice of the input, then persist it."""

from __future__ import annotations

import logging
from collections import Counter
from collections.abc import Sequence
from dataclasses import dataclass, field

from .enrich import ChunkedEnricher
from .ingest import partition
from .schemas import EnrichmentRow, RowOutcome
from .sinks import RowSink

logger = logging.getLogger("alt_text_enricher.pipeline")


@dataclass
class RunSummary:
    """Tallies for a single enrichment run."""

    total_rows: int = 0
    skipped_rows: int = 0
    batches: int = 0
    outcomes: Counter[RowOutcome] = field(default_factory=Counter)

    @property
    def processed_rows(self) -> int:
        return sum(self.outcomes.values())

    def count(self, outcome: RowOutcome) -> int:
        return self.outcomes.get(outcome, 0)


class EnrichmentPipeline:
    """Feeds fixed-size batches through the enricher and into the sink.

    Batches run strictly one after another, so at most one batch of work is
    ever unpersisted.
    """

    def __init__(self, enricher: ChunkedEnricher, sink: RowSink, *, batch_size: int = 500) -> None:
        if batch_size <= 0:
            raise ValueError("batch_size must be > 0")
        self._enricher = enricher
        self._sink = sink
        self._batch_size = batch_size

    def run(self, rows: Sequence[EnrichmentRow], *, skip: int = 0) -> RunSummary:
        """Enrich ``rows`` after skipping the first ``skip`` already-written ones."""

        summary = RunSummary(total_rows=len(rows), skipped_rows=min(skip, len(rows)))
        if summary.skipped_rows:
            logger.info("Resuming after %d previously written row(s)", summary.skipped_rows)
        pending = rows[summary.skipped_rows :]

        offset = summary.skipped_rows
        for batch in partition(pending, self._batch_size):
            logger.info("Processing batch from row %d to %d", offset + 1, offset + len(batch))
            outcomes = self._enricher.enrich_batch(batch, offset=offset)
            self._sink.write_batch(batch)
            summary.outcomes.update(outcomes)
            summary.batches += 1
            offset += len(batch)

        logger.info(
            "Finished processing %d row(s) in %d batch(es)",
            summary.processed_rows,
            summary.batches,
        )
        return summary
