"""
views.py: Chooses and materializes the chart layout for a range mode.

The ViewSelector owns the chart registry and its cursor synchronizer. Every
build tears down the previous charts first, so no cursor state survives a
mode switch or a data refresh.
"""

import datetime
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Dict, List, Optional, Sequence

import pandas as pd

from kitracker import config as cfg
from kitracker.core.chart_config import get_plot_area
from kitracker.core.cursor_sync import (
    ChartAdapter,
    ChartInstance,
    ChartRegistry,
    CursorSynchronizer,
)
from kitracker.core.day_series import bucket_by_day, normalize_day
from kitracker.core.opening_hours import OpeningHours, local_today
from kitracker.core.overlay import PlotArea
from kitracker.core.peaks import extract_peaks, peaks_by_day
from kitracker.models.occupancy import DailyPeak, NormalizedDaySeries, Sample
from kitracker.utils.log_util import app_logger

logger = app_logger(__name__)

AdapterFactory = Callable[[NormalizedDaySeries, str], ChartAdapter]

DRILLDOWN_KEY = "drilldown"


class ViewMode(str, Enum):
    SINGLE_DAY = "1d"
    TWO_DAY = "2d"
    SEVEN_DAY_GRID = "7d"
    PEAK_BAR_WEEK = "peak-week"
    PEAK_BAR_MONTH = "peak-month"

    @property
    def days(self) -> int:
        return {
            ViewMode.SINGLE_DAY: 1,
            ViewMode.TWO_DAY: 2,
            ViewMode.SEVEN_DAY_GRID: 7,
            ViewMode.PEAK_BAR_WEEK: 7,
            ViewMode.PEAK_BAR_MONTH: 30,
        }[self]

    @property
    def is_peak_bar(self) -> bool:
        return self in (ViewMode.PEAK_BAR_WEEK, ViewMode.PEAK_BAR_MONTH)


@dataclass
class DayChart:
    """A normalized day chart taking part in cursor sync."""

    label: str
    chart: ChartInstance
    peak: DailyPeak

    @property
    def date(self) -> datetime.date:
        return self.chart.date

    @property
    def series(self) -> NormalizedDaySeries:
        return self.chart.series

    @property
    def adapter(self) -> Optional[ChartAdapter]:
        return self.chart.adapter


@dataclass
class PeakBarChart:
    """One bar category per day, oldest first."""

    days: List[datetime.date]
    peaks: Dict[datetime.date, DailyPeak]


@dataclass
class View:
    mode: ViewMode
    charts: List[DayChart] = field(default_factory=list)
    bar: Optional[PeakBarChart] = None
    drilldown: Optional[DayChart] = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None


def day_label(day: datetime.date, today: datetime.date) -> str:
    if day == today:
        return "Today"
    if day == today - datetime.timedelta(days=1):
        return "Yesterday"
    return day.strftime("%A")


def window_days(today: datetime.date, count: int) -> List[datetime.date]:
    """Today and the count-1 days before it, newest first."""
    return [today - datetime.timedelta(days=i) for i in range(count)]


class ViewSelector:
    """
    Builds day charts or the peak bar summary for a range mode.

    :param hours: Opening hours table used for normalization.
    :param tz: Local timezone for day boundaries.
    :param adapter_factory: Creates a rendering adapter for a day series and
        its label; None builds charts without a rendering backend.
    :param plot_area: Pixel plot area shared by all day charts.
    """

    def __init__(
        self,
        hours: Optional[OpeningHours] = None,
        tz: str = cfg.TIMEZONE,
        adapter_factory: Optional[AdapterFactory] = None,
        plot_area: Optional[PlotArea] = None,
    ):
        self.hours = hours or OpeningHours.from_config()
        self.tz = tz
        self.adapter_factory = adapter_factory
        self.plot_area = plot_area or get_plot_area()
        self.registry = ChartRegistry()
        self.synchronizer = CursorSynchronizer(self.registry, tz)
        self.view: Optional[View] = None
        self._buckets: Dict[datetime.date, List[Sample]] = {}
        self._now: Optional[pd.Timestamp] = None

    def teardown(self) -> None:
        """Drop every chart and its cursor state."""
        self.registry.clear()
        self.view = None

    def build(
        self,
        mode,
        samples: Sequence[Sample],
        now: Optional[pd.Timestamp] = None,
    ) -> View:
        """
        Tear down the current charts and build the layout for mode.

        Failures are logged and returned as a View with an error message.

        :param mode: ViewMode or its id ("1d", "2d", "7d", "peak-week", "peak-month").
        :param samples: Snapshot of the sample store.
        :param now: Current time, defaults to now.
        :return: The materialized View.
        """
        self.teardown()
        try:
            mode = ViewMode(mode)
        except ValueError:
            logger.warning(f"Unknown range mode {mode!r}, using {cfg.DEFAULT_RANGE}")
            mode = ViewMode(cfg.DEFAULT_RANGE)

        self._now = now if now is not None else pd.Timestamp.now(tz="UTC")
        try:
            self._buckets = bucket_by_day(samples, self.tz)
            today = local_today(self._now, self.tz)
            days = window_days(today, mode.days)

            if mode.is_peak_bar:
                ordered = list(reversed(days))
                view = View(
                    mode=mode,
                    bar=PeakBarChart(days=ordered, peaks=peaks_by_day(self._buckets, ordered)),
                )
            else:
                view = View(
                    mode=mode,
                    charts=[
                        self._day_chart(day, f"day-{day.isoformat()}", day_label(day, today))
                        for day in days
                    ],
                )
        except Exception as e:
            logger.exception(f"Failed to build {mode.value} view: {e}")
            self.registry.clear()
            view = View(mode=mode, error=f"Could not render charts: {e}")

        self.view = view
        logger.debug(
            f"Built {mode.value} view with {len(view.charts)} charts from {len(samples)} samples"
        )
        return view

    def drill_down(self, day: datetime.date) -> Optional[DayChart]:
        """
        Build the single-day chart for a bar selection, replacing any earlier one.

        :param day: Date of the selected bar.
        :return: The drill-down DayChart, or None when not in a peak-bar view
                 or when building it failed (the view then carries the error).
        """
        if self.view is None or self.view.bar is None:
            logger.warning("Drill-down requested outside a peak bar view")
            return None

        self.synchronizer.detach(DRILLDOWN_KEY)
        self.view.drilldown = None
        try:
            today = local_today(self._now, self.tz)
            label = f"{day_label(day, today)}, {day.strftime('%d.%m.%Y')}"
            self.view.drilldown = self._day_chart(day, DRILLDOWN_KEY, label)
        except Exception as e:
            logger.exception(f"Failed to build drill-down for {day}: {e}")
            self.view.error = f"Could not render {day.isoformat()}: {e}"
        return self.view.drilldown

    def chart(self, key: str) -> Optional[ChartInstance]:
        return self.registry.get(key)

    def _day_chart(self, day: datetime.date, key: str, label: str) -> DayChart:
        bucket = self._buckets.get(day, [])
        series = normalize_day(bucket, day, self.hours, self._now, self.tz)
        adapter = self.adapter_factory(series, label) if self.adapter_factory else None
        chart = ChartInstance(key, series, self.plot_area, adapter=adapter, tz=self.tz)
        self.synchronizer.attach(chart)

        peak = extract_peaks(bucket)
        if adapter is not None:
            adapter.on_peaks_computed(peak)
        else:
            chart.peak = peak
            chart.redraw()
        return DayChart(label=label, chart=chart, peak=peak)
