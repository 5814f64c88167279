"""Pivot device grids into display rows, sort them and label their times."""

from dataclasses import dataclass, field, replace
from datetime import tzinfo
from typing import Dict, List, Optional, Sequence

import pandas as pd

from haccp_report import DeviceReport
from settings import ReportSettings
from timestamps import LabelCache, format_label, parse_label_to_epoch, parse_wall_clock

DATE_COLUMN = "Date"


@dataclass(frozen=True)
class Cell:
    value: str
    is_offline: bool
    colour: str


@dataclass
class Row:
    """One date/checkpoint across every device.

    ``time`` holds ``"YYYY-MM-DD HH:MM"`` until :func:`format_time` replaces it
    with the ``"<Dow> DD/MM/YY HH:MM"`` label.
    """

    time: str
    cells: Dict[str, Cell] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, object]:
        data: Dict[str, object] = {"time": self.time}
        for name, cell in self.cells.items():
            data[name] = {"value": cell.value, "isOffline": cell.is_offline, "colour": cell.colour}
        return data


def get_device_names(devices: Sequence[DeviceReport]) -> List[str]:
    return [device.device_name for device in devices]


def _is_oor_strict(value: float, lo: Optional[float], hi: Optional[float]) -> bool:
    """Return True when the value is strictly outside the provided bounds."""

    if lo is not None and value < lo:
        return True
    if hi is not None and value > hi:
        return True
    return False


def get_colour(value: float, hi: float, lo: float, ok_colour: str, danger_colour: str) -> str:
    """Danger colour outside ``[lo, hi]``, ok colour on or inside the limits."""

    return danger_colour if _is_oor_strict(value, lo, hi) else ok_colour


def format_number(value: float) -> str:
    """Shortest text for ``value``; whole numbers print without a decimal point."""

    number = float(value)
    if number.is_integer():
        return str(int(number))
    return repr(number)


def map_to_rows(devices: Sequence[DeviceReport], settings: ReportSettings) -> List[Row]:
    """Build sorted, labelled rows for every date-key and checkpoint.

    Raises ``KeyError`` when a device lacks a cell another device has, and
    ``ValueError`` when a row time cannot be parsed.
    """

    dates: Dict[str, None] = {}
    for device in devices:
        for key in device.readings:
            dates.setdefault(key, None)

    rows: List[Row] = []
    for key in dates:
        for checkpoint in settings.checkpoints:
            row = Row(time=f"{key} {checkpoint}")
            for device in devices:
                reading = device.reading_at(key, checkpoint)
                if reading.is_offline:
                    row.cells[device.device_name] = Cell(
                        value=settings.offline_text,
                        is_offline=True,
                        colour=settings.offline_colour,
                    )
                    continue
                row.cells[device.device_name] = Cell(
                    value=f"{format_number(reading.value)} {settings.unit}",  # type: ignore[arg-type]
                    is_offline=False,
                    colour=get_colour(
                        reading.value,  # type: ignore[arg-type]
                        device.hi,
                        device.lo,
                        settings.ok_colour,
                        settings.danger_colour,
                    ),
                )
            rows.append(row)

    # sort first: the label format does not order chronologically
    sort_rows_ascending(rows, settings.tz)
    return format_time(rows, settings.tz)


def _row_epoch(row: Row, tz: Optional[tzinfo]) -> int:
    ts = parse_wall_clock(row.time, tz)
    if ts is None:
        raise ValueError(f"Cannot parse row time {row.time!r}")
    return ts


def sort_rows_ascending(rows: List[Row], tz: Optional[tzinfo] = None) -> List[Row]:
    """Sort ``rows`` in place by real time; equal times keep their order."""

    rows.sort(key=lambda row: _row_epoch(row, tz))
    return rows


def format_time(rows: Sequence[Row], tz: Optional[tzinfo] = None) -> List[Row]:
    return [replace(row, time=format_label(_row_epoch(row, tz), tz)) for row in rows]


def filter_on_report_bounds(
    report_start: Optional[int],
    report_end: Optional[int],
    rows: Sequence[Row],
    cache: Optional[LabelCache] = None,
    tz: Optional[tzinfo] = None,
) -> List[Row]:
    """Keep labelled rows whose time lies in ``[report_start, report_end]``.

    A ``None`` bound leaves that side open. Rows whose label cannot be parsed
    are dropped.
    """

    kept: List[Row] = []
    for row in rows:
        ts = parse_label_to_epoch(row.time, cache, tz)
        if ts is None:
            continue
        if report_start is not None and ts < report_start:
            continue
        if report_end is not None and ts > report_end:
            continue
        kept.append(row)
    return kept


def rows_to_frame(rows: Sequence[Row], device_names: Optional[Sequence[str]] = None) -> pd.DataFrame:
    """Return a table of display values: a ``Date`` column plus one per device."""

    if device_names is None:
        names: List[str] = []
        for row in rows:
            for name in row.cells:
                if name not in names:
                    names.append(name)
    else:
        names = list(device_names)

    columns = [DATE_COLUMN, *names]
    records = [
        [row.time, *(row.cells[name].value if name in row.cells else "" for name in names)]
        for row in rows
    ]
    return pd.DataFrame(records, columns=columns)


def colours_to_frame(rows: Sequence[Row], device_names: Sequence[str]) -> pd.DataFrame:
    """Return cell colours aligned with :func:`rows_to_frame` (``Date`` left blank)."""

    records = [
        ["", *(row.cells[name].colour if name in row.cells else "" for name in device_names)]
        for row in rows
    ]
    return pd.DataFrame(records, columns=[DATE_COLUMN, *device_names])


__all__ = [
    "Cell",
    "Row",
    "colours_to_frame",
    "filter_on_report_bounds",
    "format_number",
    "format_time",
    "get_colour",
    "get_device_names",
    "map_to_rows",
    "rows_to_frame",
    "sort_rows_ascending",
]
