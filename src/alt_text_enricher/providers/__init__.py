"""Provider interfaces for the source-of-truth and generation APIs."""

from .generation import (
    EMPTY_COMPLETION,
    GENERATION_FAILED,
    AltTextProvider,
    MockAltTextProvider,
    OpenAIAltTextProvider,
)
from .source import ShopifyGraphQLClient, SourceClient

__all__ = [
    "AltTextProvider",
    "OpenAIAltTextProvider",
    "MockAltTextProvider",
    "GENERATION_FAILED",
    "EMPTY_COMPLETION",
    "SourceClient",
    "ShopifyGraphQLClient",
]
