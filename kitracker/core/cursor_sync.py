"""
cursor_sync.py: Linked crosshair cursors across several day charts.

Each rendered day chart is a ChartInstance with its own Idle/Active cursor.
A pointer on one chart is mapped to its local time-of-day and replayed on
every other chart in the registry on that chart's own date, so hovering
10:30 today highlights 10:30 on every other visible day.

Rendering is delegated to a ChartAdapter; the synchronizer and the overlay
computation never touch a charting library.
"""

import datetime
from abc import ABC, abstractmethod
from typing import Dict, Iterator, List, Optional

import pandas as pd

from kitracker import config as cfg
from kitracker.core.day_series import interpolate
from kitracker.core.opening_hours import local_instant, to_local
from kitracker.core.overlay import (
    LabelPlacement,
    LabelRequest,
    OverlayState,
    PeakMarker,
    PlotArea,
    clamp_label,
    estimate_text_width,
    layout_labels,
    pixel_to_time,
    time_to_pixel,
)
from kitracker.core.peaks import SERIES
from kitracker.models.occupancy import CursorState, DailyPeak, NormalizedDaySeries
from kitracker.utils.log_util import app_logger

logger = app_logger(__name__)


def format_clock(ts: pd.Timestamp, tz: str = cfg.TIMEZONE) -> str:
    return to_local(ts, tz).strftime("%H:%M")


class ChartAdapter(ABC):
    """
    Bridge between a charting backend and the cursor engine.

    Backends forward their pointer events through on_pointer_move and
    on_pointer_leave and implement render() to draw an OverlayState.
    """

    def __init__(self):
        self.chart: Optional["ChartInstance"] = None
        self.synchronizer: Optional["CursorSynchronizer"] = None

    def bind(self, chart: "ChartInstance", synchronizer: "CursorSynchronizer") -> None:
        self.chart = chart
        self.synchronizer = synchronizer

    def unbind(self) -> None:
        self.chart = None
        self.synchronizer = None

    def on_pointer_move(self, x: float, y: Optional[float] = None) -> None:
        if self.chart is None or self.synchronizer is None:
            return
        self.synchronizer.pointer_move(self.chart, x, y)

    def on_pointer_leave(self) -> None:
        if self.chart is None or self.synchronizer is None:
            return
        self.synchronizer.pointer_leave(self.chart)

    def on_peaks_computed(self, peak: DailyPeak) -> None:
        if self.chart is None:
            return
        self.chart.peak = peak
        self.chart.redraw()

    def measure_text(self, text: str) -> float:
        return estimate_text_width(text)

    @abstractmethod
    def render(self, overlay: OverlayState) -> None:
        """Draw (or clear) the overlay for the bound chart."""


class ChartInstance:
    """One rendered day chart and its cursor state."""

    def __init__(
        self,
        key: str,
        series: NormalizedDaySeries,
        plot_area: PlotArea,
        adapter: Optional[ChartAdapter] = None,
        peak: Optional[DailyPeak] = None,
        tz: str = cfg.TIMEZONE,
    ):
        self.key = key
        self.series = series
        self.plot_area = plot_area
        self.adapter = adapter
        self.peak = peak
        self.tz = tz
        self.cursor = CursorState()
        self.last_overlay: Optional[OverlayState] = None

    def __repr__(self) -> str:
        return f"ChartInstance({self.key!r}, {self.date}, active={self.cursor.active})"

    @property
    def date(self) -> datetime.date:
        return self.series.date

    @property
    def min_time(self) -> pd.Timestamp:
        return self.series.min_time

    @property
    def max_time(self) -> pd.Timestamp:
        return self.series.max_time

    def covers(self, ts: pd.Timestamp) -> bool:
        return self.min_time <= ts <= self.max_time

    def time_at(self, x: float) -> pd.Timestamp:
        return pixel_to_time(x, self.plot_area, self.min_time, self.max_time)

    def x_at(self, ts: pd.Timestamp) -> float:
        return time_to_pixel(ts, self.plot_area, self.min_time, self.max_time)

    def activate(self, query_time: pd.Timestamp) -> None:
        self.cursor.active = True
        self.cursor.query_time = query_time
        self.cursor.values = interpolate(self.series, query_time)
        self.redraw()

    def deactivate(self) -> None:
        was_active = self.cursor.active
        self.cursor.reset()
        if was_active:
            self.redraw()

    def _measure(self, text: str) -> float:
        if self.adapter is not None:
            return self.adapter.measure_text(text)
        return estimate_text_width(text)

    def overlay_state(self) -> OverlayState:
        """Compute the crosshair and peak overlay for the current state."""
        overlay = OverlayState()

        if self.cursor.active and self.cursor.query_time is not None:
            cursor_x = self.x_at(self.cursor.query_time)
            overlay.cursor_time = self.cursor.query_time
            overlay.cursor_x = cursor_x
            overlay.values = self.cursor.values

            time_text = format_clock(self.cursor.query_time, self.tz)
            time_width = self._measure(time_text)
            overlay.time_label = LabelPlacement(
                key="time",
                text=time_text,
                anchor_x=cursor_x,
                left=clamp_label(cursor_x, time_width, self.plot_area),
                width=time_width,
                row=0,
                y_offset=0,
            )

            if self.cursor.values is not None:
                requests = [
                    LabelRequest(
                        name,
                        f"{cfg.SERIES_LABELS[name]} {round(getattr(self.cursor.values, name))}%",
                        cursor_x,
                    )
                    for name in SERIES
                ]
                overlay.cursor_labels = layout_labels(
                    requests, self.plot_area, measure=self._measure
                )

        if self.peak is not None:
            requests = []
            for name in SERIES:
                value, ts = self.peak.value(name), self.peak.time(name)
                if value is None or ts is None:
                    continue
                x = self.x_at(ts)
                overlay.peak_markers.append(PeakMarker(name, value, ts, x))
                requests.append(
                    LabelRequest(
                        name,
                        f"{cfg.SERIES_LABELS[name]} max {value}% @ {format_clock(ts, self.tz)}",
                        x,
                    )
                )
            overlay.peak_labels = layout_labels(
                requests, self.plot_area, measure=self._measure
            )

        return overlay

    def redraw(self) -> None:
        self.last_overlay = self.overlay_state()
        if self.adapter is not None:
            self.adapter.render(self.last_overlay)


class ChartRegistry:
    """The set of live chart instances taking part in cursor sync."""

    def __init__(self):
        self._charts: Dict[str, ChartInstance] = {}

    def __len__(self) -> int:
        return len(self._charts)

    def __iter__(self) -> Iterator[ChartInstance]:
        return iter(list(self._charts.values()))

    def __contains__(self, key: str) -> bool:
        return key in self._charts

    def get(self, key: str) -> Optional[ChartInstance]:
        return self._charts.get(key)

    def add(self, chart: ChartInstance) -> None:
        if chart.key in self._charts:
            self.remove(chart.key)
        self._charts[chart.key] = chart

    def remove(self, key: str) -> Optional[ChartInstance]:
        chart = self._charts.pop(key, None)
        if chart is not None:
            chart.cursor.reset()
            if chart.adapter is not None:
                chart.adapter.unbind()
        return chart

    def clear(self) -> None:
        """Tear down every chart and its cursor state."""
        for key in list(self._charts):
            self.remove(key)


class CursorSynchronizer:
    """Drives cursor state transitions for all charts in a registry."""

    def __init__(self, registry: ChartRegistry, tz: str = cfg.TIMEZONE):
        self.registry = registry
        self.tz = tz

    def attach(self, chart: ChartInstance) -> ChartInstance:
        """Register a chart, bind its adapter and draw its initial overlay."""
        self.registry.add(chart)
        if chart.adapter is not None:
            chart.adapter.bind(chart, self)
        chart.redraw()
        return chart

    def detach(self, key: str) -> None:
        if self.registry.remove(key) is None:
            logger.debug(f"Detach of unknown chart {key}")

    def pointer_move(
        self, chart: ChartInstance, x: float, y: Optional[float] = None
    ) -> None:
        """Pointer moved to pixel (x, y) on chart."""
        if not chart.plot_area.contains(x, y):
            self.pointer_leave(chart)
            return
        self.pointer_at_time(chart, chart.time_at(x))

    def pointer_at_time(self, chart: ChartInstance, query_time: pd.Timestamp) -> None:
        """Pointer at a data-space time on chart, for backends reporting x as time."""
        if not chart.covers(query_time):
            self.pointer_leave(chart)
            return
        chart.activate(query_time)
        self.broadcast(chart, query_time)

    def pointer_leave(self, chart: ChartInstance) -> None:
        chart.deactivate()
        for peer in self._peers(chart):
            peer.deactivate()

    def broadcast(self, source: ChartInstance, query_time: pd.Timestamp) -> None:
        """Replay the source time-of-day on every other chart's own date."""
        for peer in self._peers(source):
            target = self.map_time_of_day(query_time, peer.date)
            if peer.covers(target):
                peer.activate(target)
            else:
                peer.deactivate()

    def map_time_of_day(
        self, query_time: pd.Timestamp, day: datetime.date
    ) -> pd.Timestamp:
        """Same local hour:minute as query_time, on another date."""
        local = to_local(query_time, self.tz)
        return local_instant(day, local.hour, local.minute, self.tz)

    def active_charts(self) -> List[ChartInstance]:
        return [c for c in self.registry if c.cursor.active]

    def _peers(self, chart: ChartInstance) -> List[ChartInstance]:
        return [c for c in self.registry if c is not chart]
