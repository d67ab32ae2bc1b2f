"""Timestamps and run identifiers."""

from __future__ import annotations

from datetime import datetime, timezone
from uuid import uuid4


def now_utc() -> datetime:
    """Return current timezone-aware UTC timestamp."""

    return datetime.now(timezone.utc)


def new_run_id(prefix: str = "bundle-run") -> str:
    """Return a short unique id for one pipeline invocation."""

    return f"{prefix}-{uuid4().hex[:12]}"
