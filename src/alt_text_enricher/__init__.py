"""Alt Text Enricher package."""

from .enrich import ChunkedEnricher
from .index_cache import IndexStore
from .indexer import IndexBuilder
from .pipeline import EnrichmentPipeline, RunSummary

__all__ = ["ChunkedEnricher", "EnrichmentPipeline", "IndexBuilder", "IndexStore", "RunSummary"]
