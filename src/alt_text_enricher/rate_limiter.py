"""Pacing helpers derived from the generation API token budget."""

from __future__ import annotations

import logging
import time
from collections.abc import Callable

logger = logging.getLogger("alt_text_enricher.rate_limiter")


def per_call_delay_s(tokens_per_minute: int, tokens_per_call: int) -> float:
    """Seconds one call must wait to stay inside a tokens-per-minute budget.

    With the defaults (30k TPM, ~880 tokens per call) this is 1.76s.
    """

    if tokens_per_minute <= 0:
        raise ValueError("tokens_per_minute must be > 0")
    if tokens_per_call <= 0:
        raise ValueError("tokens_per_call must be > 0")
    delay_ms = -(-60_000 * tokens_per_call // tokens_per_minute)
    return delay_ms / 1000


class ChunkThrottle:
    """Enforces a fixed pause between consecutive request chunks."""

    def __init__(self, delay_ms: int, sleep: Callable[[float], None] = time.sleep) -> None:
        if delay_ms < 0:
            raise ValueError("delay_ms must be >= 0")
        self._delay_s = delay_ms / 1000
        self._sleep = sleep
        self._chunks_started = 0

    @property
    def chunks_started(self) -> int:
        return self._chunks_started

    def before_chunk(self) -> None:
        """Wait the configured delay unless this is the first chunk of the run."""

        if self._chunks_started and self._delay_s > 0:
            logger.info("Pausing %.1fs before next chunk", self._delay_s)
            self._sleep(self._delay_s)
        self._chunks_started += 1
