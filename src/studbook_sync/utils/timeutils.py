"""Time helpers."""

from __future__ import annotations

from datetime import UTC, datetime


def utcnow() -> datetime:
    """Naive UTC now, matching what gets persisted in ISO strings."""
    return datetime.now(UTC).replace(tzinfo=None)


def today_iso() -> str:
    """Today's UTC date as ``YYYY-MM-DD``."""
    return utcnow().date().isoformat()
