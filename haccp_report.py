"""Assemble the per-device, per-day, per-checkpoint HACCP report grid."""

from dataclasses import dataclass, field
from datetime import tzinfo
from typing import Dict, List, Optional, Sequence

from checkpoints import get_closest_reading
from date_range import infer_date_keys
from normalizer import OFFLINE_PLACEHOLDER, DateBounds, DeviceStream, Reading, normalize_device
from settings import dprint

DateKey = str
Checkpoint = str


@dataclass
class DeviceReport:
    """Checkpoint grid for one device plus its alarm limits."""

    device_name: str
    hi: float
    lo: float
    readings: Dict[DateKey, Dict[Checkpoint, Reading]] = field(default_factory=dict)

    def reading_at(self, date_key: DateKey, checkpoint: Checkpoint) -> Reading:
        """Return the reading for a cell, raising ``KeyError`` when the grid has a hole."""

        return self.readings[date_key][checkpoint]


@dataclass
class Report:
    """Device grids plus the earliest/latest raw sample times (ISO-8601, UTC).

    ``start_date``/``end_date`` come from the samples actually seen while
    normalising, not from the inferred calendar range used for the grid.
    """

    start_date: str = ""
    end_date: str = ""
    devices: List[DeviceReport] = field(default_factory=list)


@dataclass(frozen=True)
class BuildResult:
    report: Optional[Report] = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None


def _build_device(
    stream: DeviceStream,
    date_keys: Sequence[DateKey],
    checkpoints: Sequence[Checkpoint],
    offline_window: int,
    tz: Optional[tzinfo],
    bounds: DateBounds,
) -> DeviceReport:
    buckets = normalize_device(stream, tz, bounds)
    readings: Dict[DateKey, Dict[Checkpoint, Reading]] = {}

    for key, bucket in buckets.items():
        readings[key] = {}
        for checkpoint in checkpoints:
            reading = get_closest_reading(bucket, checkpoint, key, offline_window, tz)
            if reading is None:
                raise ValueError(f"{stream.device_name}: no reading for {key} {checkpoint}")
            readings[key][checkpoint] = reading

    # Populate missing dates with offline readings
    for key in date_keys:
        if key not in buckets:
            readings[key] = {checkpoint: OFFLINE_PLACEHOLDER for checkpoint in checkpoints}

    return DeviceReport(
        device_name=stream.device_name,
        hi=stream.settings.max_haccp,
        lo=stream.settings.min_haccp,
        readings=readings,
    )


def build_report(
    streams: Sequence[DeviceStream],
    checkpoints: Sequence[Checkpoint],
    offline_window: int,
    tz: Optional[tzinfo] = None,
) -> BuildResult:
    """Build a fresh report from every device stream.

    Parameters
    ----------
    streams:
        One entry per device, in display order.
    checkpoints:
        ``"HH:MM"`` labels, in display order.
    offline_window:
        Minutes a nearest reading may be away from its checkpoint before it is
        flagged offline.
    tz:
        Wall-clock zone for date-keys and checkpoints (``None`` = local).

    Returns
    -------
    BuildResult
        ``report`` on success (an empty report when there is nothing to build),
        otherwise ``error`` describing why the build was abandoned. Never raises.
    """

    if not streams or len(streams[0].samples) == 0:
        return BuildResult(report=Report())

    try:
        date_keys = infer_date_keys((stream.samples for stream in streams), tz)
        bounds = DateBounds()
        devices = [
            _build_device(stream, date_keys, checkpoints, offline_window, tz, bounds)
            for stream in streams
        ]
        return BuildResult(
            report=Report(start_date=bounds.start_iso, end_date=bounds.end_iso, devices=devices)
        )
    except Exception as exc:
        dprint("Caught exception while building report:", exc)
        return BuildResult(error=f"{type(exc).__name__}: {exc}")


__all__ = ["BuildResult", "DeviceReport", "Report", "build_report"]
