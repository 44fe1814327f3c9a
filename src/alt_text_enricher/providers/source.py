"""Source-of-truth API clients (Shopify Admin GraphQL)."""

from __future__ import annotations

import time
from collections.abc import Callable
from typing import Any, Protocol

import requests

from ..errors import SourceQueryError
from ..retry import ResilientCall

_THROTTLED_CODE = "THROTTLED"


class SourceClient(Protocol):
    """Minimal interface required by the index builder."""

    def execute(self, query: str, variables: dict[str, Any] | None = None) -> dict[str, Any]:  # pragma: no cover
        """Run a GraphQL query and return its ``data`` object."""


def is_source_rate_limited(exc: BaseException) -> bool:
    """HTTP 429 or a GraphQL THROTTLED error means back off and retry."""

    if isinstance(exc, requests.HTTPError):
        return exc.response is not None and exc.response.status_code == 429
    if isinstance(exc, SourceQueryError):
        return _THROTTLED_CODE in exc.codes
    return False


class ShopifyGraphQLClient:
    """Sends GraphQL queries to a shop's Admin API with rate-limit retries."""

    def __init__(
        self,
        endpoint: str,
        access_token: str,
        *,
        retry_delay_s: float = 5.0,
        timeout_s: float = 60.0,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self._endpoint = endpoint
        self._timeout_s = timeout_s
        self._headers = {
            "X-Shopify-Access-Token": access_token,
            "Content-Type": "application/json",
            "Accept": "application/json",
        }
        self._call = ResilientCall(
            is_rate_limited=is_source_rate_limited,
            backoff=retry_delay_s,
            label="shopify-graphql",
            sleep=sleep,
        )

    def execute(self, query: str, variables: dict[str, Any] | None = None) -> dict[str, Any]:
        body = {"query": query, "variables": variables or {}}
        return self._call(lambda: self._post(body))

    def _post(self, body: dict[str, Any]) -> dict[str, Any]:
        response = requests.post(
            self._endpoint,
            json=body,
            headers=self._headers,
            timeout=self._timeout_s,
        )
        response.raise_for_status()
        payload = response.json()
        if not isinstance(payload, dict):
            raise SourceQueryError("GraphQL response body is not an object.")

        errors = payload.get("errors")
        if errors:
            if not isinstance(errors, list):
                errors = [errors]
            codes = [
                str((err.get("extensions") or {}).get("code"))
                for err in errors
                if isinstance(err, dict) and (err.get("extensions") or {}).get("code")
            ]
            messages = "; ".join(
                str(err.get("message", err)) if isinstance(err, dict) else str(err) for err in errors
            )
            raise SourceQueryError(f"GraphQL errors: {messages}", codes=codes)

        data = payload.get("data")
        if not isinstance(data, dict):
            raise SourceQueryError("GraphQL response is missing a data object.")
        return data
