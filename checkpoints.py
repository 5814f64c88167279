"""Nearest-reading selection for a configured checkpoint time."""

from dataclasses import replace
from datetime import tzinfo
from typing import Optional, Sequence

import numpy as np

from normalizer import Reading
from settings import dprint
from timestamps import parse_wall_clock

MS_PER_MINUTE = 60_000


def checkpoint_target(date_key: str, checkpoint: str, tz: Optional[tzinfo] = None) -> Optional[int]:
    """Return the epoch of ``checkpoint`` on the day ``date_key``."""

    return parse_wall_clock(f"{date_key} {checkpoint}", tz)


def get_closest_reading(
    readings: Sequence[Reading],
    checkpoint: str,
    date_key: str,
    offline_window: int,
    tz: Optional[tzinfo] = None,
) -> Optional[Reading]:
    """Return the reading nearest to the checkpoint, flagged offline when too far.

    Ties go to the earliest reading in bucket order. The distance is compared in
    whole minutes (floored), so a reading 30 min 59 s away still satisfies a 30
    minute window. Returns ``None`` when the bucket is empty or the checkpoint
    cannot be placed on the day.
    """

    target = checkpoint_target(date_key, checkpoint, tz)
    if target is None or not readings:
        dprint(f"Debug: No reading found for {date_key} {checkpoint}")
        return None

    times = np.fromiter((reading.timestamp for reading in readings), dtype=np.int64, count=len(readings))
    diffs = np.abs(times - np.int64(target))
    # argmin returns the first occurrence of the minimum.
    index = int(np.argmin(diffs))
    closest = readings[index]

    minutes = int(diffs[index]) // MS_PER_MINUTE
    if minutes > offline_window:
        return replace(closest, is_offline=True)
    return closest


__all__ = ["checkpoint_target", "get_closest_reading"]
