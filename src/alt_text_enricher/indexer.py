"""Builds the asset URL index by paging through Shopify's image collections."""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from .errors import SourceQueryError
from .index_cache import COLLECTION_SUFFIX, PRODUCT_SUFFIX, IndexStore, derive_cache_key
from .providers.source import SourceClient

logger = logging.getLogger("alt_text_enricher.indexer")

FILES_QUERY = """
query ContentFiles($first: Int!, $after: String) {
  files(first: $first, after: $after) {
    pageInfo { hasNextPage }
    edges {
      cursor
      node {
        ... on MediaImage {
          image { id url }
        }
      }
    }
  }
}
"""

COLLECTIONS_QUERY = """
query CollectionImages($first: Int!, $after: String) {
  collections(first: $first, after: $after) {
    pageInfo { hasNextPage }
    edges {
      cursor
      node {
        id
        image { id url }
      }
    }
  }
}
"""

PRODUCTS_QUERY = """
query ProductImages($first: Int!, $after: String, $imagesFirst: Int!) {
  products(first: $first, after: $after) {
    pageInfo { hasNextPage }
    edges {
      cursor
      node {
        id
        images(first: $imagesFirst) {
          edges {
            node { id url }
          }
        }
      }
    }
  }
}
"""


def _image_url(node: dict[str, Any]) -> list[str | None]:
    image = node.get("image") or {}
    return [image.get("url")]


def _product_image_urls(node: dict[str, Any]) -> list[str | None]:
    edges = (node.get("images") or {}).get("edges") or []
    return [(edge.get("node") or {}).get("url") for edge in edges]


@dataclass(frozen=True)
class SweepTarget:
    """One paginated source collection and how to turn its nodes into keys."""

    category: str
    connection: str
    query: str
    key_suffix: str
    extract_urls: Callable[[dict[str, Any]], list[str | None]]
    nested_images: bool = False


CONTENT_SWEEP = SweepTarget("content", "files", FILES_QUERY, "", _image_url)
COLLECTION_SWEEP = SweepTarget("collection", "collections", COLLECTIONS_QUERY, COLLECTION_SUFFIX, _image_url)
PRODUCT_SWEEP = SweepTarget(
    "product", "products", PRODUCTS_QUERY, PRODUCT_SUFFIX, _product_image_urls, nested_images=True
)
DEFAULT_SWEEPS = (CONTENT_SWEEP, COLLECTION_SWEEP, PRODUCT_SWEEP)


@dataclass
class SweepReport:
    """Counts gathered while draining one collection."""

    category: str
    pages: int = 0
    indexed: int = 0
    skipped: int = 0


class IndexBuilder:
    """Walks each sweep to exhaustion, persisting the store after every one."""

    def __init__(
        self,
        client: SourceClient,
        store: IndexStore,
        *,
        page_size: int = 100,
        product_images_per_page: int = 10,
        sweeps: tuple[SweepTarget, ...] = DEFAULT_SWEEPS,
    ) -> None:
        self._client = client
        self._store = store
        self._page_size = page_size
        self._product_images_per_page = product_images_per_page
        self._sweeps = sweeps

    def build(self) -> list[SweepReport]:
        """Run every sweep in order and return their reports."""

        return [self.sweep(target) for target in self._sweeps]

    def sweep(self, target: SweepTarget) -> SweepReport:
        logger.info("Fetching %s images (%s)", target.category, target.connection)
        report = SweepReport(category=target.category)
        cursor: str | None = None
        has_next_page = True

        while has_next_page:
            data = self._client.execute(target.query, self._variables(target, cursor))
            connection = data.get(target.connection) or {}
            edges = connection.get("edges") or []
            has_next_page = bool((connection.get("pageInfo") or {}).get("hasNextPage"))
            report.pages += 1

            for edge in edges:
                self._index_node(target, edge.get("node") or {}, report)

            if has_next_page:
                if not edges or not edges[-1].get("cursor"):
                    raise SourceQueryError(
                        f"{target.connection} reported another page but returned no cursor to follow."
                    )
                cursor = edges[-1]["cursor"]

            logger.info(
                "Collected %d %s image(s) over %d page(s); index holds %d",
                report.indexed,
                target.category,
                report.pages,
                len(self._store),
            )

        self._store.persist()
        return report

    def _variables(self, target: SweepTarget, cursor: str | None) -> dict[str, Any]:
        variables: dict[str, Any] = {"first": self._page_size, "after": cursor}
        if target.nested_images:
            variables["imagesFirst"] = self._product_images_per_page
        return variables

    def _index_node(self, target: SweepTarget, node: dict[str, Any], report: SweepReport) -> None:
        for url in target.extract_urls(node):
            key = derive_cache_key(url, target.key_suffix)
            if url is None or key is None:
                logger.warning("Missing URL for %s image: %s", target.category, node)
                report.skipped += 1
                continue
            self._store.merge(key, url)
            report.indexed += 1
