from __future__ import annotations

import logging

import pytest

from alt_text_enricher.retry import CallEvent, CallState, ResilientCall


class RateLimited(Exception):
    pass


def _flaky(failures: int, exc: Exception):
    attempts = {"count": 0}

    def send() -> str:
        attempts["count"] += 1
        if attempts["count"] <= failures:
            raise exc
        return "ok"

    return send, attempts


def test_rate_limited_call_retries_until_success(sleeps) -> None:
    events: list[CallEvent] = []
    call = ResilientCall(
        is_rate_limited=lambda exc: isinstance(exc, RateLimited),
        backoff=2.5,
        sleep=sleeps,
        on_event=events.append,
    )
    send, attempts = _flaky(2, RateLimited("slow down"))

    assert call(send) == "ok"
    assert attempts["count"] == 3
    assert sleeps.calls == [2.5, 2.5]
    assert [event.state for event in events] == [
        CallState.ATTEMPTING,
        CallState.BACKOFF,
        CallState.ATTEMPTING,
        CallState.BACKOFF,
        CallState.ATTEMPTING,
        CallState.SUCCEEDED,
    ]
    assert events[1].error == "slow down"


def test_other_errors_propagate_without_retry(sleeps) -> None:
    events: list[CallEvent] = []
    call = ResilientCall(
        is_rate_limited=lambda exc: isinstance(exc, RateLimited),
        backoff=1.0,
        sleep=sleeps,
        on_event=events.append,
    )
    send, attempts = _flaky(1, RuntimeError("boom"))

    with pytest.raises(RuntimeError, match="boom"):
        call(send)

    assert attempts["count"] == 1
    assert sleeps.calls == []
    assert events[-1].state is CallState.FAILED_TERMINAL


def test_backoff_can_be_computed_per_attempt(sleeps) -> None:
    call = ResilientCall(
        is_rate_limited=lambda exc: True,
        backoff=lambda attempt: attempt * 1.5,
        sleep=sleeps,
        on_event=lambda event: None,
    )
    send, _ = _flaky(3, RateLimited())

    call(send)

    assert sleeps.calls == [1.5, 3.0, 4.5]


def test_default_observer_logs_backoff(sleeps, caplog) -> None:
    call = ResilientCall(
        is_rate_limited=lambda exc: True,
        backoff=0.5,
        label="unit-test",
        sleep=sleeps,
    )
    send, _ = _flaky(1, RateLimited("429"))

    with caplog.at_level(logging.WARNING, logger="alt_text_enricher.retry"):
        call(send)

    assert "unit-test: rate limited (429), retrying in 0.50s" in caplog.text
