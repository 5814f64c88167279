import sys
from pathlib import Path

import pytest

sys.path.append(str(Path(__file__).resolve().parents[1]))

from settings import DEFAULT_CHECKPOINTS, DeviceSettings, ReportSettings


def test_report_settings_defaults() -> None:
    settings = ReportSettings.from_mapping({})

    assert settings.checkpoints == DEFAULT_CHECKPOINTS
    assert settings.offline_window == 30
    assert settings.unit == "°C"
    assert (settings.ok_colour, settings.danger_colour, settings.offline_colour) == (
        "#1EB478",
        "#964646",
        "#D3D3D3",
    )
    assert settings.offline_text == "N/A"
    assert settings.empty_message == "No data to display"


def test_report_settings_from_widget_mapping() -> None:
    settings = ReportSettings.from_mapping(
        {
            "units": "%RH",
            "Time": [{"timeValues": "08:30"}, {"timeValues": "16:45"}],
            "thresholdbut": {"okColour": "#00ff00", "dangerColour": "#ff0000"},
            "offlinebut": {"offlineColour": "#cccccc", "offlineText": "Offline", "offlineWindow": 15},
            "noDataDisplayMessage": "Nothing yet",
        }
    )

    assert settings.checkpoints == ["08:30", "16:45"]
    assert settings.unit == "%RH"
    assert settings.ok_colour == "#00ff00"
    assert settings.danger_colour == "#ff0000"
    assert settings.offline_colour == "#cccccc"
    assert settings.offline_text == "Offline"
    assert settings.offline_window == 15
    assert settings.empty_message == "Nothing yet"


def test_short_empty_message_is_ignored() -> None:
    assert ReportSettings.from_mapping({"noDataDisplayMessage": "x"}).empty_message == "No data to display"


@pytest.mark.parametrize("checkpoint", ["9:00", "24:00", "12:60", "noon", ""])
def test_invalid_checkpoints_are_rejected(checkpoint: str) -> None:
    with pytest.raises(ValueError):
        ReportSettings(checkpoints=[checkpoint])


@pytest.mark.parametrize("window", [-1, 2.5, True])
def test_invalid_offline_window_is_rejected(window) -> None:
    with pytest.raises(ValueError):
        ReportSettings(offline_window=window)


def test_device_settings_from_mapping() -> None:
    assert DeviceSettings.from_mapping(None) == DeviceSettings(max_haccp=5, min_haccp=-10, decimals=0)
    assert DeviceSettings.from_mapping({"maxHaccp": None, "minHaccp": -25, "decimals": 2}) == DeviceSettings(
        max_haccp=5, min_haccp=-25, decimals=2
    )


def test_device_settings_rejects_negative_decimals() -> None:
    with pytest.raises(ValueError):
        DeviceSettings(decimals=-1)
