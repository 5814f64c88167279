"""Turn one device's raw samples into per-day buckets of readings."""

import math
import numbers
import re
import unicodedata
from dataclasses import dataclass, field
from datetime import tzinfo
from decimal import ROUND_HALF_UP, Context, Decimal
from typing import Dict, List, Optional, Sequence, Tuple, Union

from settings import DeviceSettings, dprint
from timestamps import date_key, safe_date, to_iso_utc

SampleValue = Union[float, int, str]
Sample = Tuple[object, SampleValue]

# parseFloat-style numeric prefix, optionally signed, with an exponent.
_NUMERIC_PREFIX_RE = re.compile(r"[-+]?(?:\d+(?:\.\d*)?|\.\d+)(?:[eE][-+]?\d+)?")

_ROUNDING_CONTEXT = Context(prec=1000)


@dataclass(frozen=True)
class Reading:
    """One measurement, real or synthesised for a missing day."""

    timestamp: Optional[int]
    value: Optional[float]
    is_offline: bool = False


OFFLINE_PLACEHOLDER = Reading(timestamp=0, value=0, is_offline=True)


@dataclass
class DeviceStream:
    """Raw samples for one device as delivered by the host.

    ``label`` is the display name; when it is ``None`` the device falls back to
    ``source_name``.
    """

    samples: Sequence[Sample]
    label: Optional[str] = None
    source_name: str = ""
    settings: DeviceSettings = field(default_factory=DeviceSettings)

    @property
    def device_name(self) -> str:
        return self.label if self.label is not None else self.source_name


@dataclass
class DateBounds:
    """Running earliest/latest valid sample time across a whole build."""

    min_ts: Optional[int] = None
    max_ts: Optional[int] = None

    def update(self, ts: int) -> None:
        if self.min_ts is None or ts < self.min_ts:
            self.min_ts = ts
        if self.max_ts is None or ts > self.max_ts:
            self.max_ts = ts

    @property
    def start_iso(self) -> str:
        return to_iso_utc(self.min_ts) if self.min_ts is not None else ""

    @property
    def end_iso(self) -> str:
        return to_iso_utc(self.max_ts) if self.max_ts is not None else ""


def coerce_value(raw: object) -> Optional[float]:
    """Return a finite float for a numeric or numeric-text sample value.

    Text is read like ``parseFloat``: surrounding whitespace is ignored and the
    leading numeric part is used, so ``"3.14 °C"`` gives ``3.14``. A comma is
    accepted as decimal separator.
    """

    if raw is None or isinstance(raw, bool):
        return None

    if isinstance(raw, numbers.Real):
        value = float(raw)
        return value if math.isfinite(value) else None

    text = unicodedata.normalize("NFKC", str(raw)).strip().replace(",", ".")
    match = _NUMERIC_PREFIX_RE.match(text)
    if not match:
        return None

    try:
        value = float(match.group(0))
    except ValueError:
        return None
    return value if math.isfinite(value) else None


def round_half_up(value: float, decimals: int) -> float:
    """Round to ``decimals`` places, halves away from zero on the exact binary value."""

    quantum = Decimal(1).scaleb(-int(decimals))
    rounded = Decimal(value).quantize(quantum, rounding=ROUND_HALF_UP, context=_ROUNDING_CONTEXT)
    return float(rounded)


def normalize_device(
    stream: DeviceStream,
    tz: Optional[tzinfo] = None,
    bounds: Optional[DateBounds] = None,
) -> Dict[str, List[Reading]]:
    """Bucket a device's usable samples by date-key.

    Samples with an unsafe timestamp or a value that cannot be read as a number
    are skipped. Every kept sample feeds ``bounds`` when one is supplied.
    """

    buckets: Dict[str, List[Reading]] = {}
    decimals = stream.settings.decimals

    for ts, raw_value in stream.samples:
        moment = safe_date(ts, tz)
        if moment is None:
            continue

        value = coerce_value(raw_value)
        if value is None:
            dprint(f"[normalize] {stream.device_name}: dropping non-numeric value {raw_value!r} at {ts}")
            continue

        timestamp = int(ts)  # type: ignore[call-overload]
        buckets.setdefault(date_key(moment), []).append(
            Reading(timestamp=timestamp, value=round_half_up(value, decimals), is_offline=False)
        )
        if bounds is not None:
            bounds.update(timestamp)

    return buckets


__all__ = [
    "OFFLINE_PLACEHOLDER",
    "DateBounds",
    "DeviceStream",
    "Reading",
    "coerce_value",
    "normalize_device",
    "round_half_up",
]
