"""JSON schema helpers for validating the durable index cache."""

from __future__ import annotations

import json
from functools import lru_cache
from pathlib import Path
from typing import Any

import jsonschema

_SCHEMA_FILENAME = "index_cache.schema.json"


def validate_index_cache(payload: Any) -> None:
    """Validate a decoded cache payload against the published JSON schema."""

    try:
        jsonschema.validate(instance=payload, schema=_load_index_cache_schema())
    except jsonschema.ValidationError as exc:
        raise ValueError(f"Index cache failed validation: {exc.message}") from exc


@lru_cache(maxsize=1)
def _load_index_cache_schema() -> dict[str, Any]:
    schema_path = Path(__file__).resolve().parent / "resources" / _SCHEMA_FILENAME
    if not schema_path.exists():  # pragma: no cover - packaging guard
        raise FileNotFoundError(f"Index cache schema not found at {schema_path}")
    return json.loads(schema_path.read_text(encoding="utf-8"))
