from datetime import datetime, timezone
from io import BytesIO
from pathlib import Path
import sys

import pandas as pd
import pytest

sys.path.append(str(Path(__file__).resolve().parents[1]))

from ingest import read_samples_csv, streams_from_frame
from settings import DeviceSettings

UTC = timezone.utc


def ms(day: int, hour: int = 0, minute: int = 0) -> int:
    return int(datetime(2024, 8, day, hour, minute, tzinfo=UTC).timestamp() * 1000)


class _BytesFile(BytesIO):
    def __init__(self, data: str, name: str = "samples.csv"):
        super().__init__(data.encode("utf-8"))
        self.name = name


def test_read_samples_csv_long_format() -> None:
    text = "\ufeffDateTime,Device,Value\n2024-08-12 12:05,Freezer1,3.14\n2024-08-12 12:07,Fridge,4\n"

    df = read_samples_csv(_BytesFile(text))
    streams = streams_from_frame(df, tz=UTC, source_name="samples.csv")

    assert [stream.device_name for stream in streams] == ["Freezer1", "Fridge"]
    assert list(streams[0].samples) == [(ms(12, 12, 5), "3.14")]
    assert list(streams[1].samples) == [(ms(12, 12, 7), "4")]
    assert streams[0].source_name == "samples.csv"


def test_streams_from_wide_frame_skip_blank_cells() -> None:
    df = pd.DataFrame(
        {
            "Timestamp": [ms(12, 9, 0), ms(12, 12, 0)],
            "Freezer1": [-18.5, None],
            "Fridge": [4.1, 4.3],
        }
    )
    limits = {"Fridge": DeviceSettings(max_haccp=8, min_haccp=2, decimals=1)}

    streams = streams_from_frame(df, device_settings=limits)

    assert [stream.device_name for stream in streams] == ["Freezer1", "Fridge"]
    assert list(streams[0].samples) == [(ms(12, 9, 0), -18.5)]
    assert list(streams[1].samples) == [(ms(12, 9, 0), 4.1), (ms(12, 12, 0), 4.3)]
    assert streams[0].settings == DeviceSettings()
    assert streams[1].settings == limits["Fridge"]


def test_streams_from_frame_reads_offsets_and_unparseable_times() -> None:
    df = pd.DataFrame(
        {
            "time_stamp": ["2024-08-12T14:05:00+02:00", "not a time"],
            "serial": ["SN-1", "SN-1"],
            "data": ["3.0", "3.5"],
        }
    )

    streams = streams_from_frame(df)

    assert list(streams[0].samples) == [(ms(12, 12, 5), "3.0"), (None, "3.5")]


def test_streams_from_frame_skips_rows_without_device() -> None:
    df = pd.DataFrame({"DateTime": [ms(12, 9, 0), ms(12, 10, 0)], "Device": ["", "Fridge"], "Value": [1, 2]})

    streams = streams_from_frame(df)

    assert [stream.device_name for stream in streams] == ["Fridge"]


def test_streams_from_frame_requires_timestamp_column() -> None:
    with pytest.raises(ValueError):
        streams_from_frame(pd.DataFrame({"Device": ["Fridge"], "Value": [1]}))

    assert streams_from_frame(pd.DataFrame()) == []


def test_streams_from_frame_reads_mixed_time_formats() -> None:
    df = pd.DataFrame(
        {
            "DateTime": ["2024-08-12 09:00", "2024-08-12 12:05:30", "08/12/2024 17:00"],
            "Device": ["Fridge", "Fridge", "Fridge"],
            "Value": ["1", "2", "3"],
        }
    )

    streams = streams_from_frame(df, tz=UTC)

    assert list(streams[0].samples) == [
        (ms(12, 9, 0), "1"),
        (ms(12, 12, 5) + 30_000, "2"),
        (ms(12, 17, 0), "3"),
    ]
