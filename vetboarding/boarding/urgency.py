"""Urgency bands for the boarding board.

Every active stay is placed in one of three columns by the number of days
left until its expected checkout:

* ``RED``    - due today, tomorrow or overdue (``days <= 1``)
* ``YELLOW`` - approaching (``days <= 3``)
* ``GREEN``  - everything else, including stays with no expected checkout

Bands are derived on every read and never stored.
"""

from __future__ import annotations

import datetime as dt
import math
from typing import Iterable

from .timeutil import SECONDS_PER_DAY, Instant, parse_instant

RED = "RED"
YELLOW = "YELLOW"
GREEN = "GREEN"

RED_THRESHOLD_DAYS = 1
YELLOW_THRESHOLD_DAYS = 3

COLUMNS = {GREEN: "green", YELLOW: "yellow", RED: "red"}


def days_remaining(expected_check_out_date: Instant | None, today: Instant) -> int | None:
    if expected_check_out_date is None or expected_check_out_date == "":
        return None
    delta = parse_instant(expected_check_out_date) - parse_instant(today)
    return math.ceil(delta.total_seconds() / SECONDS_PER_DAY)


def band_for(days: int | None) -> str:
    if days is None:
        return GREEN
    if days <= RED_THRESHOLD_DAYS:
        return RED
    if days <= YELLOW_THRESHOLD_DAYS:
        return YELLOW
    return GREEN


def classify(session: dict, today: Instant) -> str:
    return band_for(days_remaining(session.get("expected_check_out_date"), today))


def _board_order(session: dict) -> tuple:
    expected = session.get("expected_check_out_date")
    return (
        expected is None,
        parse_instant(expected) if expected else dt.datetime.max,
        parse_instant(session["check_in_date"]),
        session["id"],
    )


def build_kanban(sessions: Iterable[dict], today: Instant | None = None) -> dict:
    """Partition active sessions into green/yellow/red columns.

    Each session is copied and annotated with ``days_remaining`` and
    ``column``. Within a column the most urgent stay comes first.
    """

    if today is None:
        today = dt.date.today()
    board: dict[str, list[dict]] = {column: [] for column in COLUMNS.values()}
    for session in sessions:
        if session["status"] != "ACTIVE":
            raise ValueError(f"Session {session['id']} is not active")
        days = days_remaining(session.get("expected_check_out_date"), today)
        column = COLUMNS[band_for(days)]
        entry = dict(session)
        entry["days_remaining"] = days
        entry["column"] = column
        board[column].append(entry)
    for entries in board.values():
        entries.sort(key=_board_order)
    counts = {column: len(entries) for column, entries in board.items()}
    counts["total"] = sum(counts.values())
    return {**board, "counts": counts}
