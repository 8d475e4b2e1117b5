"""Clock helpers for provenance timestamps."""

from __future__ import annotations

from datetime import datetime, timezone


def utc_now() -> datetime:
    """Return the current wall-clock time in UTC.

    History rows record when the event was processed, so this is read once per
    handled event rather than taken from the tracked instance.
    """
    return datetime.now(timezone.utc)
