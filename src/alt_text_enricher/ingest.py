"""Input helpers: read the Files export CSV and slice it into batches."""

from __future__ import annotations

import csv
from collections.abc import Iterator, Sequence
from pathlib import Path
from typing import TypeVar

from .errors import InputFormatError
from .schemas import EnrichmentRow

T = TypeVar("T")


def read_rows(path: Path | str) -> list[EnrichmentRow]:
    """Load every CSV record into memory, in file order.

    The whole file is buffered before processing starts, so memory grows with
    the export size.
    """

    source = Path(path)
    if source.suffix.lower() != ".csv":
        raise InputFormatError(f"Unsupported file format for {source}. Use a .csv export.")

    try:
        with source.open("r", encoding="utf-8-sig", newline="") as handle:
            reader = csv.DictReader(handle)
            return [EnrichmentRow.from_csv(record) for record in reader]
    except (UnicodeDecodeError, csv.Error) as exc:
        raise InputFormatError(f"Could not read {source} as a UTF-8 CSV export: {exc}") from exc


def partition(items: Sequence[T], size: int) -> Iterator[Sequence[T]]:
    """Yield consecutive slices of at most ``size`` items, preserving order."""

    if size <= 0:
        raise ValueError("size must be > 0")
    for start in range(0, len(items), size):
        yield items[start : start + size]
