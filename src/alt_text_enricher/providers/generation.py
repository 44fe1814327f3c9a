"""Alt text generation providers and deterministic mocks."""

from __future__ import annotations

import logging
import time
from abc import ABC, abstractmethod
from collections.abc import Callable
from pathlib import PurePosixPath
from typing import Any
from urllib.parse import urlsplit

import requests

from ..errors import GenerationError
from ..rate_limiter import per_call_delay_s
from ..retry import ResilientCall

logger = logging.getLogger("alt_text_enricher.providers.generation")

GENERATION_FAILED = "Error generating alt text"
"""Sentinel written as alt text when generation fails without a rate limit."""

EMPTY_COMPLETION = "Empty Alt Text"
"""Written when the API answers but the first choice has no content."""

_RATE_LIMIT_CODE = "rate_limit_exceeded"


class AltTextProvider(ABC):
    """Interface for models that turn an image URL into alt text."""

    @abstractmethod
    def generate(self, image_url: str) -> str:
        """Return alt text for an image, or ``GENERATION_FAILED``."""


def is_generation_rate_limited(exc: BaseException) -> bool:
    return isinstance(exc, GenerationError) and exc.code == _RATE_LIMIT_CODE


class OpenAIAltTextProvider(AltTextProvider):
    """Chat-completions client sending one multimodal message per image."""

    def __init__(
        self,
        api_key: str,
        *,
        base_url: str = "https://api.openai.com/v1",
        model: str = "gpt-4-turbo",
        prompt: str = "Generate a short, descriptive alt text for this image.",
        max_tokens: int = 100,
        tokens_per_minute: int = 30_000,
        tokens_per_call: int = 880,
        timeout_s: float = 60.0,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self._endpoint = f"{base_url.rstrip('/')}/chat/completions"
        self._headers = {"Authorization": f"Bearer {api_key}"}
        self._model = model
        self._prompt = prompt
        self._max_tokens = max_tokens
        self._timeout_s = timeout_s
        self._call = ResilientCall(
            is_rate_limited=is_generation_rate_limited,
            backoff=per_call_delay_s(tokens_per_minute, tokens_per_call),
            label="openai-chat",
            sleep=sleep,
        )

    def build_request(self, image_url: str) -> dict[str, Any]:
        return {
            "model": self._model,
            "messages": [
                {
                    "role": "user",
                    "content": [
                        {"type": "text", "text": self._prompt},
                        {"type": "image_url", "image_url": {"url": image_url}},
                    ],
                }
            ],
            "max_tokens": self._max_tokens,
        }

    def generate(self, image_url: str) -> str:
        body = self.build_request(image_url)
        logger.info("Requesting alt text for %s", image_url)
        try:
            payload = self._call(lambda: self._post(body))
            return _first_completion_text(payload)
        except (GenerationError, requests.RequestException) as exc:
            logger.error("Alt text generation failed for %s: %s", image_url, exc)
            return GENERATION_FAILED

    def _post(self, body: dict[str, Any]) -> dict[str, Any]:
        response = requests.post(
            self._endpoint,
            json=body,
            headers=self._headers,
            timeout=self._timeout_s,
        )
        if response.status_code >= 400:
            raise _error_from_response(response)
        payload = response.json()
        if not isinstance(payload, dict):
            raise GenerationError("Completion response body is not an object.")
        logger.debug("Completion response: %s", payload)
        return payload


class MockAltTextProvider(AltTextProvider):
    """Deterministic provider for offline runs; describes the file name."""

    def __init__(self) -> None:
        self.calls: list[str] = []

    def generate(self, image_url: str) -> str:
        self.calls.append(image_url)
        stem = PurePosixPath(urlsplit(image_url).path).stem
        words = " ".join(part for part in stem.replace("-", " ").replace("_", " ").split() if part)
        if not words:
            return "Catalog image"
        return f"Image of {words.lower()}"


def _first_completion_text(payload: dict[str, Any]) -> str:
    choices = payload.get("choices") or []
    if not isinstance(choices, list):
        raise GenerationError("Completion response has no list of choices.")
    if not choices:
        return EMPTY_COMPLETION
    message = choices[0].get("message") if isinstance(choices[0], dict) else None
    if not isinstance(message, dict):
        raise GenerationError("Completion choice carries no message object.")
    content = message.get("content")
    if not isinstance(content, str) or not content.strip():
        return EMPTY_COMPLETION
    return content.strip()


def _error_from_response(response: requests.Response) -> GenerationError:
    code = None
    message = f"HTTP {response.status_code}"
    try:
        body = response.json()
    except ValueError:
        body = None
    if isinstance(body, dict) and isinstance(body.get("error"), dict):
        code = body["error"].get("code")
        message = f"{message}: {body['error'].get('message', '')}".rstrip(": ")
    return GenerationError(message, code=code)
