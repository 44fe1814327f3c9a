"""Durable key -> URL index used to reconcile CSV rows with Shopify assets."""

from __future__ import annotations

import json
import logging
import os
import re
import tempfile
from pathlib import Path
from urllib.parse import urlsplit

from .contracts import validate_index_cache
from .errors import IndexCacheError

logger = logging.getLogger("alt_text_enricher.index_cache")

COLLECTION_SUFFIX = "_collection"
PRODUCT_SUFFIX = "_product"
_CATEGORY_SUFFIX_RE = re.compile(rf"({PRODUCT_SUFFIX}|{COLLECTION_SUFFIX})$")


def derive_cache_key(url: str | None, suffix: str = "") -> str | None:
    """Return the cache key for an asset URL, or None when it has no file name.

    The key is the final path segment with query string and fragment removed,
    followed by ``suffix`` (``_collection`` / ``_product`` for images that
    come from those collections, so they never collide with content files
    sharing the same name).
    """

    if not url or not url.strip():
        return None
    path = urlsplit(url.strip()).path
    file_name = path.rsplit("/", maxsplit=1)[-1]
    if not file_name:
        return None
    return f"{file_name}{suffix}"


def strip_category_suffix(file_name: str) -> str:
    """Remove one trailing ``_product`` or ``_collection`` marker.

    ``shoe.jpg_product_product`` becomes ``shoe.jpg_product``; names where the
    marker is not at the very end (``my_product_shot.jpg``) are returned as is.
    """

    return _CATEGORY_SUFFIX_RE.sub("", file_name, count=1)


class IndexStore:
    """Owned key -> URL mapping with explicit load/merge/persist lifecycle."""

    def __init__(self, path: Path | str, entries: dict[str, str] | None = None) -> None:
        self._path = Path(path)
        self._entries: dict[str, str] = dict(entries or {})

    @classmethod
    def load(cls, path: Path | str) -> IndexStore:
        """Read the cache file if present; raise on corrupt content."""

        source = Path(path)
        if not source.exists():
            logger.info("No index cache at %s; starting empty", source)
            return cls(source)

        try:
            payload = json.loads(source.read_text(encoding="utf-8"))
        except (UnicodeDecodeError, json.JSONDecodeError) as exc:
            raise IndexCacheError(f"Index cache at {source} is not valid JSON: {exc}") from exc
        try:
            validate_index_cache(payload)
        except ValueError as exc:
            raise IndexCacheError(f"Index cache at {source} is malformed: {exc}") from exc

        logger.info("Loaded %d cached asset URL(s) from %s", len(payload), source)
        return cls(source, payload)

    def merge(self, key: str, url: str) -> None:
        """Insert or overwrite a single entry."""

        self._entries[key] = url

    def lookup(self, key: str) -> str | None:
        return self._entries.get(key)

    def resolve(self, file_name: str) -> tuple[str | None, str | None]:
        """Look up a file name, retrying once without its category suffix.

        Returns ``(url, matched_key)``; both are None on a miss.
        """

        url = self._entries.get(file_name)
        if url is not None:
            return url, file_name
        cleaned = strip_category_suffix(file_name)
        if cleaned != file_name:
            url = self._entries.get(cleaned)
            if url is not None:
                return url, cleaned
        return None, None

    def clear(self) -> None:
        self._entries.clear()

    def persist(self) -> None:
        """Overwrite the cache file with the full current mapping."""

        self._path.parent.mkdir(parents=True, exist_ok=True)
        payload = json.dumps(self._entries, indent=2, sort_keys=True)
        fd, tmp_name = tempfile.mkstemp(prefix=f".{self._path.name}.", dir=self._path.parent)
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                handle.write(payload)
            os.replace(tmp_name, self._path)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise
        logger.info("Persisted %d asset URL(s) to %s", len(self._entries), self._path)

    def as_dict(self) -> dict[str, str]:
        """Return a shallow copy of the mapping."""

        return dict(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: object) -> bool:
        return key in self._entries
