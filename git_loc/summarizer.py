"""Summarizing the ledger over a time range."""

from datetime import datetime, timezone
from typing import Optional

from .dates import parse_date, to_aware
from .ledger import Ledger
from .models import Summary


def parse_bucket_key(key: str) -> datetime:
    """Parse a ledger key: epoch seconds for numeric keys, a calendar date otherwise."""
    try:
        seconds = float(key)
    except ValueError:
        return parse_date(key)
    return datetime.fromtimestamp(seconds, tz=timezone.utc)


def summarize(ledger: Ledger, from_time: Optional[datetime] = None,
              to_time: Optional[datetime] = None) -> Summary:
    """Sum the ledger entries whose date falls within [from_time, to_time].

    Args:
        ledger: The ledger to read
        from_time: Inclusive lower bound (None for unbounded)
        to_time: Inclusive upper bound (None for unbounded)

    Returns:
        Summary with the authored and reviewed totals
    """
    from_time = to_aware(from_time) if from_time else None
    to_time = to_aware(to_time) if to_time else None
    summary = Summary()

    for key, entry in ledger.items():
        when = parse_bucket_key(key)
        if from_time and when < from_time:
            continue
        if to_time and when > to_time:
            continue
        summary.authored.add(entry)
        summary.reviewed.add(entry.reviewed)

    return summary
