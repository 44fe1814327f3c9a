"""Exception hierarchy shared by the indexer, enrichment engine, and CLI."""

from __future__ import annotations


class AltTextEnricherError(Exception):
    """Base class for errors that abort a run."""


class ConfigError(AltTextEnricherError):
    """Raised when required settings (credentials, endpoints) are missing."""


class IndexCacheError(AltTextEnricherError):
    """Raised when the durable index cache exists but cannot be trusted."""


class SourceQueryError(AltTextEnricherError):
    """Raised when the source GraphQL API returns an unusable response."""

    def __init__(self, message: str, codes: list[str] | None = None) -> None:
        super().__init__(message)
        self.codes = codes or []


class GenerationError(AltTextEnricherError):
    """Raised by the generation provider for a failed completion request."""

    def __init__(self, message: str, code: str | None = None) -> None:
        super().__init__(message)
        self.code = code


class InputFormatError(AltTextEnricherError):
    """Raised when the Files export cannot be read as a UTF-8 CSV file."""
