"""Service-layer helpers that wire configuration into the index and enrichment stages."""

from __future__ import annotations

import logging
import time
from collections.abc import Callable

from .config import AppConfig
from .config import config as default_config
from .enrich import ChunkedEnricher
from .index_cache import IndexStore
from .indexer import IndexBuilder, SweepReport
from .ingest import read_rows
from .pipeline import EnrichmentPipeline, RunSummary
from .providers import AltTextProvider, MockAltTextProvider, OpenAIAltTextProvider, ShopifyGraphQLClient
from .providers.source import SourceClient
from .rate_limiter import ChunkThrottle
from .sinks import CSVRowSink

logger = logging.getLogger("alt_text_enricher.service_layer")

Sleep = Callable[[float], None]


def build_source_client(cfg: AppConfig = default_config, *, sleep: Sleep = time.sleep) -> ShopifyGraphQLClient:
    cfg.require_source_credentials()
    assert cfg.shopify_access_token is not None
    return ShopifyGraphQLClient(
        cfg.graphql_endpoint,
        cfg.shopify_access_token,
        retry_delay_s=cfg.source_retry_delay_s,
        timeout_s=cfg.request_timeout_s,
        sleep=sleep,
    )


def build_provider(
    cfg: AppConfig = default_config,
    *,
    mock: bool = False,
    sleep: Sleep = time.sleep,
) -> AltTextProvider:
    if mock:
        return MockAltTextProvider()
    cfg.require_generation_credentials()
    assert cfg.openai_api_key is not None
    return OpenAIAltTextProvider(
        cfg.openai_api_key,
        base_url=cfg.openai_base_url,
        model=cfg.model,
        prompt=cfg.prompt,
        max_tokens=cfg.max_tokens,
        tokens_per_minute=cfg.tokens_per_minute,
        tokens_per_call=cfg.tokens_per_call,
        timeout_s=cfg.request_timeout_s,
        sleep=sleep,
    )


def build_index(
    store: IndexStore,
    client: SourceClient,
    cfg: AppConfig = default_config,
) -> list[SweepReport]:
    """Run all three sweeps into ``store``; the store is persisted after each."""

    builder = IndexBuilder(
        client,
        store,
        page_size=cfg.page_size,
        product_images_per_page=cfg.product_images_per_page,
    )
    return builder.build()


def ensure_index(
    store: IndexStore,
    client_factory: Callable[[], SourceClient],
    cfg: AppConfig = default_config,
    *,
    refresh: bool = False,
) -> list[SweepReport]:
    """Populate the index from the source API unless a cached one is usable."""

    if len(store) and not refresh:
        logger.info("Using %d cached asset URL(s); skipping source sweeps", len(store))
        return []
    if refresh:
        store.clear()
    return build_index(store, client_factory(), cfg)


def run_enrichment(
    store: IndexStore,
    provider: AltTextProvider,
    cfg: AppConfig = default_config,
    *,
    resume: bool = False,
    sleep: Sleep = time.sleep,
) -> RunSummary:
    """Enrich ``cfg.input_csv`` into ``cfg.output_csv`` batch by batch."""

    rows = read_rows(cfg.input_csv)
    logger.info("Finished reading CSV. Total rows: %d", len(rows))

    sink = CSVRowSink(cfg.output_csv, append=resume)
    skip = sink.written_rows() if resume else 0

    enricher = ChunkedEnricher(
        store,
        provider,
        chunk_size=cfg.chunk_size,
        throttle=ChunkThrottle(cfg.chunk_delay_ms, sleep=sleep),
    )
    pipeline = EnrichmentPipeline(enricher, sink, batch_size=cfg.batch_size)
    return pipeline.run(rows, skip=skip)
