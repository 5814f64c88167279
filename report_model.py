"""Stateful report model: keeps the last good report and the label cache."""

from dataclasses import dataclass
from typing import List, Optional, Sequence

from haccp_report import BuildResult, Report, build_report
from normalizer import DeviceStream
from rows import DATE_COLUMN, Row, filter_on_report_bounds, get_device_names, map_to_rows
from settings import ReportSettings, dprint
from timestamps import LabelCache


@dataclass
class RefreshResult:
    """Output of one data-updated cycle.

    ``rows`` are all projected rows (for download), ``visible_rows`` only those
    inside the report window.
    """

    report: Report
    columns: List[str]
    rows: List[Row]
    visible_rows: List[Row]


class HaccpReportModel:
    """Rebuilds the report on every data delivery and falls back to the last good one."""

    def __init__(
        self, settings: Optional[ReportSettings] = None, cache: Optional[LabelCache] = None
    ) -> None:
        self.settings = settings or ReportSettings()
        self.cache = cache if cache is not None else LabelCache()
        self.last_error: Optional[str] = None
        self._report = Report()
        self._report_init = False

    @property
    def report(self) -> Report:
        return self._report

    def _build(self, streams: Sequence[DeviceStream]) -> BuildResult:
        result = build_report(
            streams,
            self.settings.checkpoints,
            self.settings.offline_window,
            self.settings.tz,
        )
        self.last_error = result.error
        if not result.ok:
            dprint("Keeping previous report:", result.error)
        return result

    def build(self, streams: Sequence[DeviceStream]) -> Report:
        """Return the new report, or the previous one if the build failed or was empty."""

        result = self._build(streams)
        if result.ok and result.report is not None and result.report.devices:
            self._report = result.report
        return self._report

    def rows(self, report: Optional[Report] = None) -> Optional[List[Row]]:
        """Project ``report`` (default: the current one) into rows, ``None`` on failure."""

        report = report if report is not None else self._report
        try:
            return map_to_rows(report.devices, self.settings)
        except Exception as exc:
            dprint("Caught exception while building rows for HACCP report:", exc)
            self.last_error = f"{type(exc).__name__}: {exc}"
            return None

    def filter_on_report_bounds(
        self, report_start: Optional[int], report_end: Optional[int], rows: Sequence[Row]
    ) -> List[Row]:
        return filter_on_report_bounds(report_start, report_end, rows, self.cache, self.settings.tz)

    def refresh(
        self,
        streams: Sequence[DeviceStream],
        report_start: Optional[int],
        report_end: Optional[int],
    ) -> Optional[RefreshResult]:
        """Run one update cycle for newly delivered data.

        Returns ``None`` when there is nothing new to show: the device grid is
        identical to the one already shown, or the rows could not be built.
        """

        previous_devices = self._report.devices
        result = self._build(streams)
        built = result.report if result.ok else None

        if built is not None and built.devices:
            if self._report_init and built.devices == previous_devices:
                return None
            self._report = built
            if built.start_date and built.end_date:
                self._report_init = True

        report = self._report
        rows = self.rows(report)
        if rows is None:
            return None

        return RefreshResult(
            report=report,
            columns=[DATE_COLUMN, *get_device_names(report.devices)],
            rows=rows,
            visible_rows=self.filter_on_report_bounds(report_start, report_end, rows),
        )


__all__ = ["HaccpReportModel", "RefreshResult"]
