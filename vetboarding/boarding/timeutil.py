"""Parsing helpers for the ISO timestamps stored on boarding rows."""

from __future__ import annotations

import datetime as dt

SECONDS_PER_DAY = 24 * 60 * 60

Instant = dt.datetime | dt.date | str


def parse_instant(value: Instant) -> dt.datetime:
    """Return ``value`` as a naive datetime in the clinic's local time.

    Dates become midnight. Aware datetimes are converted to local time and
    the offset dropped, matching ``dt.date.today()`` and ``dt.datetime.now()``.
    """

    if isinstance(value, str):
        text = value.strip()
        if not text:
            raise ValueError("Empty timestamp")
        value = dt.datetime.fromisoformat(text.replace("Z", "+00:00"))
    if isinstance(value, dt.datetime):
        if value.tzinfo is not None:
            value = value.astimezone().replace(tzinfo=None)
        return value
    if isinstance(value, dt.date):
        return dt.datetime.combine(value, dt.time.min)
    raise TypeError(f"Unsupported timestamp type: {type(value).__name__}")


def to_iso(value: Instant) -> str:
    return parse_instant(value).isoformat(timespec="seconds")
