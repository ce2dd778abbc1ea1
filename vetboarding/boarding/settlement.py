"""Checkout settlement: stay length and charge, computed once per stay."""

from __future__ import annotations

import math

from .timeutil import SECONDS_PER_DAY, Instant, parse_instant


def stay_duration_days(check_in: Instant, check_out: Instant) -> int:
    """Whole days billed for a stay; any started day counts as a full day."""

    elapsed = parse_instant(check_out) - parse_instant(check_in)
    return max(1, math.ceil(elapsed.total_seconds() / SECONDS_PER_DAY))


def settle(session: dict, check_out: Instant) -> dict:
    """Return the billing payload for a stay ending at ``check_out``.

    ``total_amount`` is ``None`` for stays without a daily rate; those are
    invoiced by hand.
    """

    days = stay_duration_days(session["check_in_date"], check_out)
    rate = session.get("daily_rate")
    return {
        "session_id": session["id"],
        "pet_owner_id": session.get("owner_id"),
        "stay_duration_days": days,
        "daily_rate": rate,
        "total_amount": round(days * rate, 2) if rate is not None else None,
    }
