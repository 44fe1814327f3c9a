from __future__ import annotations

import csv
from collections.abc import Callable
from pathlib import Path

import pytest

from alt_text_enricher.providers.generation import GENERATION_FAILED, AltTextProvider
from alt_text_enricher.schemas import OUTPUT_COLUMNS


class RecordingSleep:
    """Stand-in for time.sleep that only remembers the requested delays."""

    def __init__(self) -> None:
        self.calls: list[float] = []

    def __call__(self, seconds: float) -> None:
        self.calls.append(seconds)


class RecordingProvider(AltTextProvider):
    """Generator double that echoes the URL and records every call."""

    def __init__(self, failing: set[str] | None = None) -> None:
        self.calls: list[str] = []
        self._failing = failing or set()

    def generate(self, image_url: str) -> str:
        self.calls.append(image_url)
        if image_url in self._failing:
            return GENERATION_FAILED
        return f"alt for {image_url}"


@pytest.fixture()
def sleeps() -> RecordingSleep:
    return RecordingSleep()


@pytest.fixture()
def provider() -> RecordingProvider:
    return RecordingProvider()


@pytest.fixture()
def write_export(tmp_path: Path) -> Callable[..., Path]:
    def _write(rows: list[dict[str, str]], name: str = "images.csv") -> Path:
        path = tmp_path / name
        with path.open("w", encoding="utf-8", newline="") as handle:
            writer = csv.DictWriter(handle, fieldnames=OUTPUT_COLUMNS)
            writer.writeheader()
            for row in rows:
                writer.writerow(row)
        return path

    return _write


@pytest.fixture()
def provider_factory() -> Callable[..., RecordingProvider]:
    return RecordingProvider
