"""Output sinks that persist completed batches."""

from __future__ import annotations

import csv
import io
import logging
import os
from collections.abc import Sequence
from pathlib import Path
from typing import Protocol

from .schemas import OUTPUT_COLUMNS, EnrichmentRow

logger = logging.getLogger("alt_text_enricher.sinks")


class RowSink(Protocol):
    """Minimal interface for appending a finished batch."""

    def write_batch(self, rows: Sequence[EnrichmentRow]) -> None:  # pragma: no cover
        ...


class CSVRowSink:
    """Appends batches to a CSV file with the Files export header.

    Each batch is rendered in memory and written with a single call, then
    synced, so an interrupted run leaves at most one torn trailing line.
    Opening in append mode cuts any such line before rows are counted.
    """

    def __init__(self, path: Path, *, append: bool = False) -> None:
        self._path = path
        self._path.parent.mkdir(parents=True, exist_ok=True)
        if not append:
            self._path.unlink(missing_ok=True)
        elif self._path.exists():
            self._drop_partial_line()

    def written_rows(self) -> int:
        """Number of data rows already present in the output file."""

        if not self._path.exists():
            return 0
        with self._path.open("r", encoding="utf-8", newline="") as handle:
            return sum(1 for _ in csv.DictReader(handle))

    def write_batch(self, rows: Sequence[EnrichmentRow]) -> None:
        if not rows:
            return

        buffer = io.StringIO()
        writer = csv.DictWriter(buffer, fieldnames=OUTPUT_COLUMNS)
        if not self._path.exists() or self._path.stat().st_size == 0:
            writer.writeheader()
        for row in rows:
            writer.writerow(row.to_output())

        with self._path.open("a", newline="", encoding="utf-8") as handle:
            handle.write(buffer.getvalue())
            handle.flush()
            os.fsync(handle.fileno())
        logger.info("Saved batch of %d row(s) to %s", len(rows), self._path)

    def _drop_partial_line(self) -> None:
        with self._path.open("rb+") as handle:
            data = handle.read()
            keep = data.rfind(b"\n") + 1
            if keep == len(data):
                return
            logger.warning(
                "Discarding %d byte(s) of an incomplete trailing row in %s",
                len(data) - keep,
                self._path,
            )
            handle.truncate(keep)
