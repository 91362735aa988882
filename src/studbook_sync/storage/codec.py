"""Parse-or-default decoding for cached JSON entries."""

from __future__ import annotations

import json
import logging
from typing import Any, TypeVar

from pydantic import TypeAdapter, ValidationError

logger = logging.getLogger(__name__)

T = TypeVar("T")


def parse_or_default(
    raw: str | None,
    default: T,
    adapter: TypeAdapter[T] | None = None,
    *,
    key: str = "",
) -> T:
    """Decode ``raw`` or fall back to ``default``. Never raises.

    With an adapter the JSON is schema-validated; without one it is plain
    ``json.loads`` output. Missing entries return the default silently;
    corrupt or mismatching entries also log a warning.
    """
    if raw is None:
        return default
    try:
        if adapter is not None:
            return adapter.validate_json(raw)
        value: Any = json.loads(raw)
    except (ValidationError, ValueError) as e:
        logger.warning("Discarding unreadable cache entry %s: %s", key or "<unnamed>", e)
        return default
    return value  # type: ignore[no-any-return]


def dump(value: Any, adapter: TypeAdapter[Any] | None = None) -> str:
    """Serialize ``value`` to the local JSON shape (camelCase, no nulls)."""
    if adapter is not None:
        return adapter.dump_json(value, by_alias=True, exclude_none=True).decode("utf-8")
    return json.dumps(value, ensure_ascii=False)
