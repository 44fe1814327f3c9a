"""Runtime configuration and environment helpers for the alt text enricher."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from .errors import ConfigError

_DEFAULT_CACHE_PATH = Path("shopify_files_cache.json")
_DEFAULT_INPUT_CSV = Path("images.csv")
_DEFAULT_OUTPUT_CSV = Path("updated_images_with_alt_text.csv")
_DEFAULT_API_VERSION = "2023-01"
_DEFAULT_OPENAI_BASE_URL = "https://api.openai.com/v1"
_DEFAULT_MODEL = "gpt-4-turbo"
_DEFAULT_PROMPT = "Generate a short, descriptive alt text for this image."
_DEFAULT_MAX_TOKENS = 100
_DEFAULT_BATCH_SIZE = 500
_DEFAULT_CHUNK_SIZE = 30
_DEFAULT_CHUNK_DELAY_MS = 20_000
_DEFAULT_TOKENS_PER_MINUTE = 30_000
_DEFAULT_TOKENS_PER_CALL = 880
_DEFAULT_PAGE_SIZE = 100
_DEFAULT_PRODUCT_IMAGES_PER_PAGE = 10
_DEFAULT_SOURCE_RETRY_DELAY_S = 5.0
_DEFAULT_REQUEST_TIMEOUT_S = 60.0


@dataclass(frozen=True)
class AppConfig:
    """Immutable application configuration."""

    shop_domain: str | None
    shopify_access_token: str | None
    shopify_api_version: str
    openai_api_key: str | None
    openai_base_url: str
    model: str
    prompt: str
    max_tokens: int
    cache_path: Path
    input_csv: Path
    output_csv: Path
    batch_size: int
    chunk_size: int
    chunk_delay_ms: int
    tokens_per_minute: int
    tokens_per_call: int
    page_size: int
    product_images_per_page: int
    source_retry_delay_s: float
    request_timeout_s: float

    @property
    def graphql_endpoint(self) -> str:
        return f"https://{self.shop_domain}/admin/api/{self.shopify_api_version}/graphql.json"

    def require_source_credentials(self) -> None:
        """Fail when the Shopify domain or access token is unset."""

        missing = []
        if not self.shop_domain:
            missing.append("SHOPIFY_SHOP_DOMAIN")
        if not self.shopify_access_token:
            missing.append("SHOPIFY_API_KEY")
        if missing:
            raise ConfigError(f"Missing source API settings: {', '.join(missing)}")

    def require_generation_credentials(self) -> None:
        """Fail when the OpenAI API key is unset."""

        if not self.openai_api_key:
            raise ConfigError("Missing generation API settings: OPENAI_API_KEY")


def _parse_str(value: str | None) -> str | None:
    if value is None:
        return None
    stripped = value.strip()
    return stripped or None


def _parse_int(value: str | None, fallback: int, *, minimum: int = 1) -> int:
    if value is None:
        return fallback
    try:
        parsed = int(value)
    except ValueError:
        return fallback
    return fallback if parsed < minimum else parsed


def _parse_float(value: str | None, fallback: float, *, minimum: float | None = None) -> float:
    if value is None:
        return fallback
    try:
        parsed = float(value)
    except ValueError:
        return fallback
    if minimum is not None and parsed < minimum:
        return fallback
    return parsed


def load_config() -> AppConfig:
    """Load configuration from environment variables, applying defaults."""

    return AppConfig(
        shop_domain=_parse_str(os.getenv("SHOPIFY_SHOP_DOMAIN")),
        shopify_access_token=_parse_str(os.getenv("SHOPIFY_API_KEY")),
        shopify_api_version=os.getenv("SHOPIFY_API_VERSION", _DEFAULT_API_VERSION),
        openai_api_key=_parse_str(os.getenv("OPENAI_API_KEY")),
        openai_base_url=os.getenv("OPENAI_BASE_URL", _DEFAULT_OPENAI_BASE_URL).rstrip("/"),
        model=os.getenv("ATE_MODEL", _DEFAULT_MODEL),
        prompt=os.getenv("ATE_PROMPT", _DEFAULT_PROMPT),
        max_tokens=_parse_int(os.getenv("ATE_MAX_TOKENS"), _DEFAULT_MAX_TOKENS),
        cache_path=Path(os.getenv("ATE_CACHE_PATH", str(_DEFAULT_CACHE_PATH))),
        input_csv=Path(os.getenv("ATE_INPUT_CSV", str(_DEFAULT_INPUT_CSV))),
        output_csv=Path(os.getenv("ATE_OUTPUT_CSV", str(_DEFAULT_OUTPUT_CSV))),
        batch_size=_parse_int(os.getenv("ATE_BATCH_SIZE"), _DEFAULT_BATCH_SIZE),
        chunk_size=_parse_int(os.getenv("ATE_CHUNK_SIZE"), _DEFAULT_CHUNK_SIZE),
        chunk_delay_ms=_parse_int(os.getenv("ATE_CHUNK_DELAY_MS"), _DEFAULT_CHUNK_DELAY_MS, minimum=0),
        tokens_per_minute=_parse_int(os.getenv("ATE_TOKENS_PER_MINUTE"), _DEFAULT_TOKENS_PER_MINUTE),
        tokens_per_call=_parse_int(os.getenv("ATE_TOKENS_PER_CALL"), _DEFAULT_TOKENS_PER_CALL),
        page_size=_parse_int(os.getenv("ATE_PAGE_SIZE"), _DEFAULT_PAGE_SIZE),
        product_images_per_page=_parse_int(
            os.getenv("ATE_PRODUCT_IMAGES_PER_PAGE"),
            _DEFAULT_PRODUCT_IMAGES_PER_PAGE,
        ),
        source_retry_delay_s=_parse_float(
            os.getenv("ATE_SOURCE_RETRY_DELAY_S"),
            _DEFAULT_SOURCE_RETRY_DELAY_S,
            minimum=0.0,
        ),
        request_timeout_s=_parse_float(
            os.getenv("ATE_REQUEST_TIMEOUT_S"),
            _DEFAULT_REQUEST_TIMEOUT_S,
            minimum=0.1,
        ),
    )


config = load_config()
"""Singleton config loaded at import time for convenience."""
