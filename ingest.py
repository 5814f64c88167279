"""Read sample exports into per-device streams for the report model.

Two table shapes are understood:

* long: a timestamp column, a device column and a value column, one sample per
  row (``DateTime,Device,Value``);
* wide: a timestamp column plus one value column per device.

Timestamps may be epoch milliseconds or date/time text. Naive date/time text is
read as wall-clock time in the report's zone.
"""

import io
import re
from datetime import tzinfo
from typing import Dict, Iterable, List, Mapping, Optional

import pandas as pd

from normalizer import DeviceStream, Sample
from settings import DeviceSettings, dprint
from timestamps import to_epoch_ms

_ZERO_WIDTH_CHARS = ("\ufeff", "\u200b", "\u200c", "\u200d")

SAMPLE_COLUMN_ALIASES: Dict[str, tuple] = {
    "DateTime": ("datetime", "date time", "timestamp", "time stamp", "ts"),
    "Device": (
        "device",
        "device name",
        "name",
        "serial",
        "serial number",
        "sensor",
        "source",
    ),
    "Value": ("value", "data", "reading"),
}


def _strip_bom_and_zero_width(text: str) -> str:
    for ch in _ZERO_WIDTH_CHARS:
        text = text.replace(ch, "")
    return text


def _normalize_header(value: object) -> str:
    """Return a normalized representation of a CSV header for matching."""

    cleaned = _strip_bom_and_zero_width(str(value)).strip().lower()
    cleaned = cleaned.replace("-", " ").replace("_", " ")
    return " ".join(cleaned.split())


def _alias_col(df: pd.DataFrame, aliases: Iterable[str]) -> Optional[str]:
    """Return the first column whose normalized header is one of ``aliases``."""

    lookup = {_normalize_header(col): col for col in df.columns}
    for alias in aliases:
        if alias in lookup:
            return lookup[alias]
    return None


def read_samples_csv(file_obj) -> pd.DataFrame:
    """Return a dataframe from a CSV or TSV stream, handling messy inputs."""

    raw = file_obj.read()
    if isinstance(raw, bytes):
        text = raw.decode("utf-8-sig", errors="replace")
    else:
        text = str(raw)
    text = _strip_bom_and_zero_width(text)

    for sep in (None, ",", "\t", ";"):
        try:
            df = pd.read_csv(
                io.StringIO(text),
                engine="python",
                sep=sep,
                on_bad_lines="skip",
                dtype=str,
                keep_default_na=False,
                index_col=False,
            )
            df.columns = [re.sub(r"\s+", " ", (col or "")).strip() for col in df.columns]
            return df
        except Exception:
            continue
    return pd.DataFrame()


def _is_blank(value: object) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    try:
        return bool(pd.isna(value))
    except (TypeError, ValueError):
        return False


def _parse_ts(value: object) -> pd.Timestamp:
    """Return a timestamp for one cell, trying deterministic formats first."""

    if _is_blank(value):
        return pd.NaT

    text = _strip_bom_and_zero_width(str(value)).strip()
    for fmt in (
        "%Y-%m-%d %H:%M:%S",
        "%Y-%m-%d %H:%M",
        "%Y/%m/%d %H:%M:%S",
        "%m/%d/%Y %H:%M:%S",
        "%m/%d/%Y %H:%M",
        "%d-%b-%Y %H:%M",
    ):
        try:
            return pd.to_datetime(text, format=fmt)
        except (TypeError, ValueError):
            continue
    return pd.to_datetime(text, errors="coerce")


def _epoch_values(series: pd.Series, tz: Optional[tzinfo]) -> List[Optional[int]]:
    """Convert a timestamp column to epoch milliseconds (``None`` when unreadable)."""

    non_blank = series[~series.map(_is_blank)]
    numeric = pd.to_numeric(non_blank, errors="coerce")
    if len(non_blank) and numeric.notna().all():
        as_numbers = pd.to_numeric(series, errors="coerce")
        return [None if pd.isna(value) else int(value) for value in as_numbers]

    epochs: List[Optional[int]] = []
    for value in series:
        stamp = _parse_ts(value)
        if pd.isna(stamp):
            dprint(f"[ingest] unreadable timestamp {value!r}")
            epochs.append(None)
        elif stamp.tzinfo is not None:
            epochs.append(int(stamp.value // 1_000_000))
        else:
            epochs.append(to_epoch_ms(stamp.to_pydatetime(), tz))
    return epochs


def streams_from_frame(
    df: pd.DataFrame,
    device_settings: Optional[Mapping[str, DeviceSettings]] = None,
    tz: Optional[tzinfo] = None,
    source_name: str = "",
) -> List[DeviceStream]:
    """Split a sample table into one :class:`DeviceStream` per device.

    Parameters
    ----------
    df:
        Long or wide sample table (see module docstring).
    device_settings:
        Optional per-device thresholds keyed by device name.
    tz:
        Zone used for naive date/time text (``None`` = local).
    source_name:
        Fallback label recorded on every stream.

    Returns
    -------
    List[DeviceStream]
        Devices in order of first appearance, samples in table order.
    """

    if df is None or df.empty:
        return []

    ts_col = _alias_col(df, SAMPLE_COLUMN_ALIASES["DateTime"])
    if ts_col is None:
        raise ValueError("Sample table has no timestamp column")

    epochs = _epoch_values(df[ts_col], tz)
    device_col = _alias_col(df, SAMPLE_COLUMN_ALIASES["Device"])
    value_col = _alias_col(df, SAMPLE_COLUMN_ALIASES["Value"])

    grouped: Dict[str, List[Sample]] = {}
    if device_col is not None and value_col is not None:
        for ts, device, value in zip(epochs, df[device_col], df[value_col]):
            if _is_blank(device):
                continue
            grouped.setdefault(str(device).strip(), []).append((ts, value))
    else:
        for col in df.columns:
            if col == ts_col:
                continue
            name = str(col).strip()
            grouped[name] = [(ts, value) for ts, value in zip(epochs, df[col]) if not _is_blank(value)]

    dprint(f"[ingest] {source_name or 'samples'}: {len(grouped)} device(s), {len(df)} row(s)")

    settings_map = device_settings or {}
    return [
        DeviceStream(
            samples=samples,
            label=name,
            source_name=source_name,
            settings=settings_map.get(name, DeviceSettings()),
        )
        for name, samples in grouped.items()
    ]


__all__ = ["read_samples_csv", "streams_from_frame"]
