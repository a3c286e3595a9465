"""Parsing of 'N units ago' and free-form date expressions."""

import re
from datetime import datetime

from dateutil import parser as date_parser
from dateutil.relativedelta import relativedelta

from .exceptions import ConfigError

AGO_EXPRESSION = re.compile(
    r'^(?P<amount>\d+) (?P<unit>y|Q|M|w|d|h|(?:year|quarter|month|week|day|hour)s?) ago$'
)

UNIT_DELTAS = {
    'y': lambda n: relativedelta(years=n),
    'Q': lambda n: relativedelta(months=3 * n),
    'M': lambda n: relativedelta(months=n),
    'w': lambda n: relativedelta(weeks=n),
    'd': lambda n: relativedelta(days=n),
    'h': lambda n: relativedelta(hours=n),
    'year': lambda n: relativedelta(years=n),
    'quarter': lambda n: relativedelta(months=3 * n),
    'month': lambda n: relativedelta(months=n),
    'week': lambda n: relativedelta(weeks=n),
    'day': lambda n: relativedelta(days=n),
    'hour': lambda n: relativedelta(hours=n),
}

def to_aware(value: datetime) -> datetime:
    """Attach the local timezone to naive datetimes."""
    if value.tzinfo is None:
        return value.astimezone()
    return value


def parse_date(text: str, now: datetime = None) -> datetime:
    """Parse a calendar date, filling missing fields from the start of the year.

    '2024-05' is May 1st and '2024' is January 1st, both at midnight.
    """
    year = (now or datetime.now()).year
    return to_aware(date_parser.parse(text, default=datetime(year, 1, 1)))


def parse_date_or_ago(text: str, now: datetime = None) -> datetime:
    """Parse '<n> <unit> ago' (e.g. '6 months ago', '2 w ago') or a date like '2024-05-01'.

    Raises:
        ConfigError: If the expression is neither form
    """
    text = text.strip()
    now = to_aware(now or datetime.now())

    match = AGO_EXPRESSION.match(text)
    if match:
        unit = match.group('unit')
        if len(unit) > 1:
            unit = unit.rstrip('s')
        return now - UNIT_DELTAS[unit](int(match.group('amount')))

    try:
        return parse_date(text, now)
    except (ValueError, OverflowError) as e:
        raise ConfigError(f"Could not understand the date '{text}': use a date or '<n> <unit> ago'") from e
