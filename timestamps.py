"""Epoch/wall-clock conversions and the memoised row-label parser.

Every conversion takes an optional ``tz``. ``None`` keeps naive ``datetime``
semantics, i.e. the local zone of the running process.
"""

import math
import numbers
import threading
from collections import OrderedDict
from datetime import datetime, timezone, tzinfo
from typing import Callable, Optional

from settings import dprint

# Largest millisecond value a calendar date may carry (about 273,790 years).
MAX_EPOCH_MS = 8_640_000_000_000_000

WALL_CLOCK_FORMAT = "%Y-%m-%d %H:%M"

_DAY_NAMES = ("Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun")


def is_valid_epoch(ts: object) -> bool:
    """Return True for finite, positive millisecond values below ``MAX_EPOCH_MS``."""

    if isinstance(ts, bool) or not isinstance(ts, numbers.Real):
        return False
    value = float(ts)
    return math.isfinite(value) and 0 < value < MAX_EPOCH_MS


def from_epoch_ms(ts: float, tz: Optional[tzinfo] = None) -> datetime:
    seconds = float(ts) / 1000.0
    if tz is None:
        return datetime.fromtimestamp(seconds)
    return datetime.fromtimestamp(seconds, tz)


def safe_date(ts: object, tz: Optional[tzinfo] = None) -> Optional[datetime]:
    """Return the wall-clock datetime for ``ts`` or ``None`` when it is unusable.

    Epochs that pass :func:`is_valid_epoch` can still fall outside the years a
    ``datetime`` supports; those are rejected here as well.
    """

    if is_valid_epoch(ts):
        try:
            return from_epoch_ms(ts, tz)  # type: ignore[arg-type]
        except (OverflowError, OSError, ValueError):
            pass
    dprint("not safe date", ts)
    return None


def to_epoch_ms(dt: datetime, tz: Optional[tzinfo] = None) -> int:
    """Return epoch milliseconds, reading naive datetimes as wall-clock in ``tz``."""

    if dt.tzinfo is None and tz is not None:
        dt = dt.replace(tzinfo=tz)
    return int(round(dt.timestamp() * 1000))


def to_iso_utc(ts: int) -> str:
    """Return ``ts`` as ``YYYY-MM-DDTHH:MM:SS.mmmZ``."""

    moment = datetime.fromtimestamp(float(ts) / 1000.0, timezone.utc)
    return moment.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def date_key(dt: datetime) -> str:
    """Return the locale-stable ``YYYY-MM-DD`` key of ``dt``."""

    return f"{dt.year:04d}-{dt.month:02d}-{dt.day:02d}"


def parse_wall_clock(text: str, tz: Optional[tzinfo] = None) -> Optional[int]:
    """Parse ``"YYYY-MM-DD HH:MM"`` into epoch milliseconds, ``None`` if malformed."""

    try:
        parsed = datetime.strptime(str(text).strip(), WALL_CLOCK_FORMAT)
        return to_epoch_ms(parsed, tz)
    except (OverflowError, OSError, ValueError):
        return None


def format_label(ts: int, tz: Optional[tzinfo] = None) -> str:
    """Return the ``"<Dow> DD/MM/YY HH:MM"`` row label for ``ts``.

    The weekday comes from the UTC calendar while the date and time come from
    the wall clock in ``tz``.
    """

    local = from_epoch_ms(ts, tz)
    utc = datetime.fromtimestamp(float(ts) / 1000.0, timezone.utc)
    day_name = _DAY_NAMES[utc.weekday()]
    return (
        f"{day_name} {local.day:02d}/{local.month:02d}/{local.year % 100:02d} "
        f"{local.hour:02d}:{local.minute:02d}"
    )


def _label_to_epoch(label: str, tz: Optional[tzinfo]) -> Optional[int]:
    parts = str(label).split(" ")
    if len(parts) != 3:
        return None
    _day_name, date_part, time_part = parts
    try:
        day, month, year = (int(piece) for piece in date_part.split("/"))
        hours, minutes = (int(piece) for piece in time_part.split(":"))
        # Two-digit years always land in 2000-2099.
        return to_epoch_ms(datetime(2000 + year, month, day, hours, minutes), tz)
    except (OverflowError, OSError, ValueError):
        return None


class LabelCache:
    """Thread-safe memo of row label -> epoch milliseconds.

    With ``maxsize=None`` the cache is unbounded and lives as long as its
    owner; entries are never invalidated. With a ``maxsize`` the least
    recently used label is evicted first. Unparseable labels are cached as
    ``None``. A cache must only be shared by callers using the same ``tz``.
    """

    def __init__(self, maxsize: Optional[int] = None) -> None:
        if maxsize is not None and maxsize < 0:
            raise ValueError("maxsize must be None or a non-negative integer")
        self.maxsize = maxsize
        self.hits = 0
        self.misses = 0
        self._entries: "OrderedDict[str, Optional[int]]" = OrderedDict()
        self._lock = threading.Lock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def __contains__(self, label: object) -> bool:
        with self._lock:
            return label in self._entries

    def get_or_compute(self, label: str, compute: Callable[[], Optional[int]]) -> Optional[int]:
        with self._lock:
            if label in self._entries:
                self._entries.move_to_end(label)
                self.hits += 1
                return self._entries[label]

        value = compute()

        with self._lock:
            self.misses += 1
            self._entries[label] = value
            self._entries.move_to_end(label)
            if self.maxsize is not None:
                while len(self._entries) > self.maxsize:
                    self._entries.popitem(last=False)
        return value


def parse_label_to_epoch(
    label: str, cache: Optional[LabelCache] = None, tz: Optional[tzinfo] = None
) -> Optional[int]:
    """Convert a ``"<Dow> DD/MM/YY HH:MM"`` label back to epoch milliseconds.

    Malformed labels give ``None`` instead of raising. The weekday token is
    ignored.
    """

    if cache is None:
        return _label_to_epoch(label, tz)
    return cache.get_or_compute(label, lambda: _label_to_epoch(label, tz))


__all__ = [
    "MAX_EPOCH_MS",
    "LabelCache",
    "date_key",
    "format_label",
    "from_epoch_ms",
    "is_valid_epoch",
    "parse_label_to_epoch",
    "parse_wall_clock",
    "safe_date",
    "to_epoch_ms",
    "to_iso_utc",
]
