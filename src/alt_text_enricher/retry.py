"""Retrying request primitive shared by the source and generation clients.

Rate-limit responses are retried forever with a fixed or computed backoff;
every other exception propagates on the first attempt. The only terminal stop
for a rate-limited call is the server lifting the limit or the operator
interrupting the process.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum
from typing import TypeVar

logger = logging.getLogger("alt_text_enricher.retry")

T = TypeVar("T")

Backoff = float | Callable[[int], float]
"""Seconds to wait, either constant or computed from the attempt number."""


class CallState(str, Enum):
    """States a resilient call moves through."""

    ATTEMPTING = "attempting"
    BACKOFF = "backoff"
    SUCCEEDED = "succeeded"
    FAILED_TERMINAL = "failed_terminal"


@dataclass(frozen=True)
class CallEvent:
    """Diagnostic emitted on every state transition."""

    label: str
    attempt: int
    state: CallState
    delay_s: float | None = None
    error: str | None = None


def log_call_event(event: CallEvent) -> None:
    """Default observer: route call events to the module logger."""

    if event.state is CallState.ATTEMPTING:
        logger.debug("%s: attempt %d", event.label, event.attempt)
    elif event.state is CallState.SUCCEEDED:
        logger.debug("%s: succeeded on attempt %d", event.label, event.attempt)
    elif event.state is CallState.BACKOFF:
        logger.warning(
            "%s: rate limited (%s), retrying in %.2fs",
            event.label,
            event.error,
            event.delay_s or 0.0,
        )
    else:
        logger.error("%s: failed on attempt %d: %s", event.label, event.attempt, event.error)


class ResilientCall:
    """Runs a callable, backing off and retrying while it is rate limited."""

    def __init__(
        self,
        *,
        is_rate_limited: Callable[[BaseException], bool],
        backoff: Backoff,
        label: str = "remote-call",
        sleep: Callable[[float], None] = time.sleep,
        on_event: Callable[[CallEvent], None] = log_call_event,
    ) -> None:
        self._is_rate_limited = is_rate_limited
        self._backoff = backoff
        self._label = label
        self._sleep = sleep
        self._on_event = on_event

    def __call__(self, send: Callable[[], T]) -> T:
        attempt = 1
        while True:
            self._emit(attempt, CallState.ATTEMPTING)
            try:
                result = send()
            except Exception as exc:
                if not self._is_rate_limited(exc):
                    self._emit(attempt, CallState.FAILED_TERMINAL, error=str(exc))
                    raise
                delay = self._delay_for(attempt)
                self._emit(attempt, CallState.BACKOFF, delay_s=delay, error=str(exc))
                self._sleep(delay)
                attempt += 1
                continue
            self._emit(attempt, CallState.SUCCEEDED)
            return result

    def _delay_for(self, attempt: int) -> float:
        if callable(self._backoff):
            return float(self._backoff(attempt))
        return float(self._backoff)

    def _emit(
        self,
        attempt: int,
        state: CallState,
        *,
        delay_s: float | None = None,
        error: str | None = None,
    ) -> None:
        self._on_event(CallEvent(self._label, attempt, state, delay_s, error))
