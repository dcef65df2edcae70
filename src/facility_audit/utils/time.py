"""Time helpers."""

from __future__ import annotations

from datetime import datetime, timezone, tzinfo


def utc_now() -> datetime:
    return datetime.now(tz=timezone.utc)


def epoch_millis(moment: datetime | None = None) -> int:
    """Milliseconds since the epoch, the timestamp unit stored on records."""
    return int((moment or utc_now()).timestamp() * 1000)


def from_epoch_millis(value: int, tz: tzinfo | None = None) -> datetime:
    return datetime.fromtimestamp(value / 1000, tz=tz or timezone.utc)
