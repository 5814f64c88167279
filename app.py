from datetime import date, datetime, time, timedelta
from pathlib import Path
import sys
from typing import Dict, List, Optional

import pandas as pd
import streamlit as st

# Ensure imports work whether the app is executed as a module or as a script
# where the repository directory might not already be on ``sys.path``.
CURRENT_DIR = Path(__file__).resolve().parent
if str(CURRENT_DIR) not in sys.path:
    sys.path.insert(0, str(CURRENT_DIR))

from ingest import read_samples_csv, streams_from_frame
from normalizer import DeviceStream
from report_model import HaccpReportModel
from rows import colours_to_frame, rows_to_frame
from settings import (
    DEFAULT_CHECKPOINTS,
    DEFAULT_DANGER_COLOUR,
    DEFAULT_DECIMALS,
    DEFAULT_MAX_HACCP,
    DEFAULT_MIN_HACCP,
    DEFAULT_OFFLINE_COLOUR,
    DEFAULT_OFFLINE_TEXT,
    DEFAULT_OFFLINE_WINDOW,
    DEFAULT_OK_COLOUR,
    DEFAULT_UNIT,
    DeviceSettings,
    ReportSettings,
)
from timestamps import to_epoch_ms


st.set_page_config(page_title="HACCP Report", layout="wide", page_icon="🧊")

st.sidebar.header("🧊 Sample Upload & Configuration")
sample_files = st.sidebar.file_uploader(
    "Upload sample CSV files",
    accept_multiple_files=True,
    key="sample_uploader",
)


@st.cache_data(show_spinner=False, max_entries=16)
def _read_cached(file_name: str, file_bytes: bytes) -> pd.DataFrame:
    class _MemoryFile:
        def __init__(self, name: str, data: bytes):
            self.name = name
            self._data = data

        def read(self) -> bytes:
            return self._data

    return read_samples_csv(_MemoryFile(file_name, file_bytes))


def _settings_from_sidebar() -> ReportSettings:
    checkpoint_text = st.sidebar.text_input("Checkpoint times", ", ".join(DEFAULT_CHECKPOINTS))
    offline_window = st.sidebar.number_input(
        "Offline window (minutes)", min_value=0, value=DEFAULT_OFFLINE_WINDOW, step=5
    )
    unit = st.sidebar.text_input("Unit", DEFAULT_UNIT)
    offline_text = st.sidebar.text_input("Offline text", DEFAULT_OFFLINE_TEXT)
    ok_colour = st.sidebar.color_picker("OK colour", DEFAULT_OK_COLOUR)
    danger_colour = st.sidebar.color_picker("Danger colour", DEFAULT_DANGER_COLOUR)
    offline_colour = st.sidebar.color_picker("Offline colour", DEFAULT_OFFLINE_COLOUR)

    checkpoints = [part.strip() for part in checkpoint_text.split(",") if part.strip()]
    return ReportSettings(
        checkpoints=checkpoints,
        offline_window=int(offline_window),
        unit=unit,
        ok_colour=ok_colour,
        danger_colour=danger_colour,
        offline_colour=offline_colour,
        offline_text=offline_text,
    )


def _device_settings(names: List[str]) -> Dict[str, DeviceSettings]:
    st.sidebar.markdown("### Device Limits")
    result: Dict[str, DeviceSettings] = {}
    for name in names:
        with st.sidebar.expander(name):
            hi = st.number_input("Max", value=DEFAULT_MAX_HACCP, key=f"max_{name}")
            lo = st.number_input("Min", value=DEFAULT_MIN_HACCP, key=f"min_{name}")
            decimals = st.number_input(
                "Decimals", min_value=0, max_value=6, value=DEFAULT_DECIMALS, key=f"dec_{name}"
            )
        result[name] = DeviceSettings(max_haccp=hi, min_haccp=lo, decimals=int(decimals))
    return result


def _local_day(iso_utc: str) -> Optional[date]:
    """Return the local calendar day of a report bound, ``None`` when unset."""

    if not iso_utc:
        return None
    return datetime.fromisoformat(iso_utc.replace("Z", "+00:00")).astimezone().date()


if not sample_files:
    st.sidebar.info("Upload sample CSV files to begin.")
    st.stop()

try:
    report_settings = _settings_from_sidebar()
except ValueError as exc:
    st.sidebar.error(str(exc))
    st.stop()

streams: List[DeviceStream] = []
for uploaded in sample_files:
    try:
        frame = _read_cached(uploaded.name, uploaded.getvalue())
        streams.extend(streams_from_frame(frame, source_name=uploaded.name))
    except Exception as exc:  # pragma: no cover - Streamlit UI feedback
        st.sidebar.error(f"Failed to parse {uploaded.name}")
        st.sidebar.exception(exc)

limits = _device_settings([stream.device_name for stream in streams])
for stream in streams:
    stream.settings = limits.get(stream.device_name, stream.settings)

model_key = "haccp_model"
model = st.session_state.get(model_key)
if model is None or model.settings != report_settings:
    model = HaccpReportModel(report_settings)
    st.session_state[model_key] = model

report = model.build(streams)
rows = model.rows(report)
if not report.devices or rows is None:
    st.info(report_settings.empty_message)
    if model.last_error:
        st.caption(model.last_error)
    st.stop()

today = datetime.now().date()
first_day = _local_day(report.start_date) or today - timedelta(days=7)
last_day = _local_day(report.end_date) or today
window = st.sidebar.date_input("Report window", (first_day, last_day))
days = list(window) if isinstance(window, (list, tuple)) else [window]
if not days:
    st.stop()
start_day, end_day = days[0], days[-1]
report_start = to_epoch_ms(datetime.combine(start_day, time.min))
report_end = to_epoch_ms(datetime.combine(end_day, time.max))

names = [device.device_name for device in report.devices]
visible = model.filter_on_report_bounds(report_start, report_end, rows)
if not visible:
    st.info(report_settings.empty_message)
else:
    values = rows_to_frame(visible, names)
    css = colours_to_frame(visible, names).apply(
        lambda col: col.map(lambda colour: f"background-color: {colour}" if colour else "")
    )
    styled = values.style.apply(lambda _frame: css, axis=None)
    st.dataframe(styled, hide_index=True, use_container_width=True)

st.download_button(
    "Download report CSV",
    rows_to_frame(rows, names).to_csv(index=False).encode("utf-8"),
    file_name="haccp_report.csv",
    mime="text/csv",
)
