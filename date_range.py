"""Infer the calendar days a report has to cover from sparse sample streams."""

from datetime import datetime, timedelta, tzinfo
from typing import Iterable, List, Optional, Sequence, Tuple

from timestamps import date_key, safe_date

Sample = Tuple[object, object]


def first_and_last(samples: Sequence[Sample]) -> List[Sample]:
    """Return the first and last sample, the lone sample, or nothing."""

    if len(samples) == 0:
        return []
    if len(samples) == 1:
        return [samples[0]]
    return [samples[0], samples[-1]]


def get_dates_in_range(start: datetime, end: datetime) -> List[datetime]:
    """Step one calendar day at a time from ``start`` while not past ``end``."""

    dates: List[datetime] = []
    current = start
    while current <= end:
        dates.append(current)
        current = current + timedelta(days=1)
    return dates


def _extreme_dates(
    streams: Iterable[Sequence[Sample]], tz: Optional[tzinfo]
) -> Tuple[Optional[datetime], Optional[datetime]]:
    # Endpoints the normalizer would drop are skipped.
    low: List[datetime] = []
    high: List[datetime] = []
    for samples in streams:
        ends = first_and_last(samples)
        if not ends:
            continue
        first = safe_date(ends[0][0], tz)
        last = safe_date(ends[-1][0], tz)
        if first is not None:
            low.append(first)
        if last is not None:
            high.append(last)
    return (min(low) if low else None, max(high) if high else None)


def infer_date_keys(
    streams: Iterable[Sequence[Sample]], tz: Optional[tzinfo] = None
) -> List[str]:
    """Return every date-key between the earliest first and latest last sample.

    Only the endpoints of each stream are inspected. The window runs from noon
    of the earliest day to 23:59:59 of the latest day so both boundary days are
    always included whatever the time of the samples inside them.
    """

    start, end = _extreme_dates(streams, tz)
    if start is None or end is None:
        return []

    start = start.replace(hour=12, minute=0, second=0)
    end = end.replace(hour=23, minute=59, second=59)
    return [date_key(day) for day in get_dates_in_range(start, end)]


__all__ = ["first_and_last", "get_dates_in_range", "infer_date_keys"]
