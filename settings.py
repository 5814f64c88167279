"""Report configuration defaults and parsing of widget-style settings."""

import os
import re
from dataclasses import dataclass, field
from datetime import tzinfo
from typing import List, Mapping, Optional

# Debug toggler: set HACCP_DEBUG=1 to enable verbose report diagnostics
DEBUG = os.getenv("HACCP_DEBUG", "0") == "1"


def dprint(*args, **kwargs):
    if DEBUG:
        print(*args, **kwargs)


DEFAULT_CHECKPOINTS: List[str] = ["09:00", "12:00", "17:00"]
DEFAULT_OFFLINE_WINDOW = 30
DEFAULT_UNIT = "°C"
DEFAULT_OK_COLOUR = "#1EB478"
DEFAULT_DANGER_COLOUR = "#964646"
DEFAULT_OFFLINE_COLOUR = "#D3D3D3"
DEFAULT_OFFLINE_TEXT = "N/A"
DEFAULT_EMPTY_MESSAGE = "No data to display"

DEFAULT_MAX_HACCP = 5.0
DEFAULT_MIN_HACCP = -10.0
DEFAULT_DECIMALS = 0

_CHECKPOINT_RE = re.compile(r"^([01]\d|2[0-3]):[0-5]\d$")


def validate_checkpoint(label: str) -> str:
    """Return ``label`` stripped, raising ``ValueError`` unless it is ``HH:MM``."""

    text = str(label).strip()
    if not _CHECKPOINT_RE.match(text):
        raise ValueError(f"Checkpoint must be HH:MM, got {label!r}")
    return text


def _section(mapping: Mapping[str, object], key: str) -> Mapping[str, object]:
    value = mapping.get(key)
    return value if isinstance(value, Mapping) else {}


def _pick(section: Mapping[str, object], key: str, default):
    value = section.get(key)
    return default if value is None else value


@dataclass(frozen=True)
class DeviceSettings:
    """Alarm thresholds and display precision for a single device."""

    max_haccp: float = DEFAULT_MAX_HACCP
    min_haccp: float = DEFAULT_MIN_HACCP
    decimals: int = DEFAULT_DECIMALS

    def __post_init__(self) -> None:
        if int(self.decimals) < 0:
            raise ValueError("decimals must be zero or positive")

    @classmethod
    def from_mapping(cls, mapping: Optional[Mapping[str, object]]) -> "DeviceSettings":
        """Read ``maxHaccp``/``minHaccp``/``decimals``; missing keys use defaults."""

        mapping = mapping or {}
        return cls(
            max_haccp=float(_pick(mapping, "maxHaccp", DEFAULT_MAX_HACCP)),
            min_haccp=float(_pick(mapping, "minHaccp", DEFAULT_MIN_HACCP)),
            decimals=int(_pick(mapping, "decimals", DEFAULT_DECIMALS)),
        )


@dataclass(frozen=True)
class ReportSettings:
    """Report-wide settings shared by every device column.

    ``tz`` selects the wall-clock zone used for date-keys, checkpoints and row
    labels. ``None`` means the local zone of the running process.
    """

    checkpoints: List[str] = field(default_factory=lambda: list(DEFAULT_CHECKPOINTS))
    offline_window: int = DEFAULT_OFFLINE_WINDOW
    unit: str = DEFAULT_UNIT
    ok_colour: str = DEFAULT_OK_COLOUR
    danger_colour: str = DEFAULT_DANGER_COLOUR
    offline_colour: str = DEFAULT_OFFLINE_COLOUR
    offline_text: str = DEFAULT_OFFLINE_TEXT
    empty_message: str = DEFAULT_EMPTY_MESSAGE
    tz: Optional[tzinfo] = None

    def __post_init__(self) -> None:
        checkpoints = [validate_checkpoint(label) for label in self.checkpoints]
        object.__setattr__(self, "checkpoints", checkpoints)
        if isinstance(self.offline_window, bool) or int(self.offline_window) != self.offline_window:
            raise ValueError("offline_window must be a whole number of minutes")
        if self.offline_window < 0:
            raise ValueError("offline_window must not be negative")
        object.__setattr__(self, "offline_window", int(self.offline_window))

    @classmethod
    def from_mapping(
        cls, mapping: Optional[Mapping[str, object]], tz: Optional[tzinfo] = None
    ) -> "ReportSettings":
        """Build settings from a widget configuration mapping.

        Recognised keys: ``units``, ``Time`` (a list of ``{"timeValues": "HH:MM"}``),
        ``thresholdbut`` (``okColour``/``dangerColour``), ``offlinebut``
        (``offlineColour``/``offlineText``/``offlineWindow``) and
        ``noDataDisplayMessage``.
        """

        mapping = mapping or {}

        times = mapping.get("Time")
        if times:
            checkpoints = [
                str(item.get("timeValues", "")) if isinstance(item, Mapping) else str(item)
                for item in times  # type: ignore[union-attr]
            ]
        else:
            checkpoints = list(DEFAULT_CHECKPOINTS)

        colours = _section(mapping, "thresholdbut")
        offline = _section(mapping, "offlinebut")

        empty_message = mapping.get("noDataDisplayMessage")
        if not isinstance(empty_message, str) or len(empty_message) <= 1:
            empty_message = DEFAULT_EMPTY_MESSAGE

        return cls(
            checkpoints=checkpoints,
            offline_window=_pick(offline, "offlineWindow", DEFAULT_OFFLINE_WINDOW),
            unit=str(_pick(mapping, "units", DEFAULT_UNIT)),
            ok_colour=str(_pick(colours, "okColour", DEFAULT_OK_COLOUR)),
            danger_colour=str(_pick(colours, "dangerColour", DEFAULT_DANGER_COLOUR)),
            offline_colour=str(_pick(offline, "offlineColour", DEFAULT_OFFLINE_COLOUR)),
            offline_text=str(_pick(offline, "offlineText", DEFAULT_OFFLINE_TEXT)),
            empty_message=empty_message,
            tz=tz,
        )


__all__ = [
    "DEFAULT_CHECKPOINTS",
    "DEFAULT_OFFLINE_WINDOW",
    "DeviceSettings",
    "ReportSettings",
    "dprint",
    "validate_checkpoint",
]
