"""
Occupancy Visualizations
Plotly day charts, the daily peak bar chart, and the Plotly overlay adapter
that draws linked cursors and peak markers.
"""

import datetime
from typing import Dict, List, Optional, Sequence

import pandas as pd
import plotly.graph_objects as go

from kitracker import config as cfg
from kitracker.core.chart_config import (
    apply_bar_layout,
    apply_occupancy_axes,
    apply_time_series_layout,
    create_standard_annotation,
    get_series_colors,
)
from kitracker.core.cursor_sync import ChartAdapter, format_clock
from kitracker.core.opening_hours import local_instant, to_local
from kitracker.core.overlay import LabelPlacement, OverlayState, estimate_text_width
from kitracker.core.peaks import SERIES, peaks_to_frame
from kitracker.models.occupancy import DailyPeak, NormalizedDaySeries
from kitracker.utils.log_util import app_logger

logger = app_logger(__name__)

OVERLAY_NAME = "overlay"


def _local_times(timestamps: Sequence[pd.Timestamp], tz: str) -> List[pd.Timestamp]:
    # plotly draws tz-aware values in their own zone; hand it local wall time
    return [to_local(ts, tz).tz_localize(None) for ts in timestamps]


def from_plot_x(x, tz: str = cfg.TIMEZONE) -> pd.Timestamp:
    """
    Convert an x value reported by a plot event back to a UTC instant.

    Day figures plot local wall time, so naive values are read as local.

    :param x: Datetime string or Timestamp from the event payload.
    :return: tz-aware UTC Timestamp.
    """
    value = pd.Timestamp(x)
    if value.tzinfo is not None:
        return value.tz_convert("UTC")
    instant = local_instant(value.date(), value.hour, value.minute, tz)
    return (instant + pd.Timedelta(seconds=value.second)).tz_convert("UTC")


def create_day_figure(
    series: NormalizedDaySeries,
    title: Optional[str] = None,
    height: int = cfg.CHART_HEIGHT,
    width: Optional[int] = cfg.CHART_WIDTH,
    compact: bool = False,
    tz: str = cfg.TIMEZONE,
) -> go.Figure:
    """
    Create the lead/boulder line chart for one normalized day.

    Design:
    - X-axis: fixed to the opening-hours window (HH:MM ticks)
    - Y-axis: 0-100%
    - Lines: smoothed, lightly filled to zero, lead and boulder colors
    """
    colors = get_series_colors()
    x_values = _local_times(series.timestamps, tz)

    fig = go.Figure()
    for name, values in (("lead", series.lead_values), ("boulder", series.boulder_values)):
        fig.add_trace(
            go.Scatter(
                x=x_values,
                y=values,
                name=cfg.SERIES_LABELS[name],
                mode="lines",
                line=dict(color=colors[f"{name}_line"], width=2, shape="spline"),
                fill="tozeroy",
                fillcolor=colors[f"{name}_fill"],
                connectgaps=True,
                hovertemplate="%{y}%<extra>" + cfg.SERIES_LABELS[name] + "</extra>",
            )
        )

    apply_time_series_layout(
        fig, height=height, width=width, title=title, compact=compact
    )
    x_range = _local_times([series.min_time, series.max_time], tz)
    apply_occupancy_axes(fig, x_range=x_range)

    if len(series.points) <= 1:
        fig.add_annotation(
            create_standard_annotation("No data yet", position="center")
        )

    return fig


def create_peak_bar_figure(
    peaks: Dict[datetime.date, DailyPeak],
    title: Optional[str] = None,
    tz: str = cfg.TIMEZONE,
) -> go.Figure:
    """
    Create grouped bars of daily lead and boulder peaks, oldest day first.

    Each bar carries its ISO date in customdata so a click can drill down.
    Days without a positive reading have no bar.
    """
    colors = get_series_colors()
    df = peaks_to_frame(peaks)

    fig = go.Figure()
    if df.empty:
        logger.info("No daily peaks to plot")
        fig.add_annotation(create_standard_annotation("No data", position="center"))
        return apply_bar_layout(fig, title=title)

    labels = [day.strftime("%a %d.%m") for day in df["date"]]
    iso_dates = [day.isoformat() for day in df["date"]]

    for name in SERIES:
        values = [None if pd.isna(v) else int(v) for v in df[f"max_{name}"]]
        times = [
            format_clock(ts, tz) if ts is not None and not pd.isna(ts) else "-"
            for ts in df[f"max_{name}_time"]
        ]
        fig.add_trace(
            go.Bar(
                x=labels,
                y=values,
                name=cfg.SERIES_LABELS[name],
                marker_color=colors[f"{name}_line"],
                customdata=list(zip(iso_dates, times)),
                hovertemplate=(
                    "%{x}<br>"
                    + cfg.SERIES_LABELS[name]
                    + " peak %{y}% at %{customdata[1]}<extra></extra>"
                ),
            )
        )

    return apply_bar_layout(fig, title=title)


def create_empty_figure(message: str, height: int = cfg.CHART_HEIGHT) -> go.Figure:
    fig = go.Figure()
    fig.add_annotation(create_standard_annotation(message, position="center"))
    fig.update_layout(
        height=height,
        template="plotly_white",
        xaxis=dict(visible=False),
        yaxis=dict(visible=False),
    )
    return fig


class PlotlyChartAdapter(ChartAdapter):
    """
    Draws a chart's OverlayState onto a Plotly figure as shapes and annotations.

    Label pixel positions come from the shared layout routine; they are
    converted back to data x for placement and to yshift for the row offset.
    """

    def __init__(
        self,
        figure: go.Figure,
        tz: str = cfg.TIMEZONE,
        font_size: int = cfg.LABEL_FONT_SIZE,
    ):
        super().__init__()
        self.figure = figure
        self.tz = tz
        self.font_size = font_size
        self.line_height = font_size + 6
        self.render_count = 0
        self._base_annotations = list(figure.layout.annotations or [])
        self._base_shapes = list(figure.layout.shapes or [])

    def measure_text(self, text: str) -> float:
        return estimate_text_width(text, self.font_size)

    def _x_value(self, x_px: float):
        return to_local(self.chart.time_at(x_px), self.tz).tz_localize(None)

    def _vline(self, ts: pd.Timestamp, color: str, dash: str) -> dict:
        x = to_local(ts, self.tz).tz_localize(None)
        return dict(
            type="line",
            name=OVERLAY_NAME,
            xref="x",
            yref="paper",
            x0=x,
            x1=x,
            y0=0,
            y1=1,
            line=dict(color=color, width=1, dash=dash),
        )

    def _label(
        self, placement: LabelPlacement, color: str, y: float, yanchor: str, sign: int
    ) -> dict:
        return dict(
            name=OVERLAY_NAME,
            text=placement.text,
            xref="x",
            yref="paper",
            x=self._x_value(placement.center),
            y=y,
            xanchor="center",
            yanchor=yanchor,
            yshift=sign * placement.y_offset,
            showarrow=False,
            font=dict(size=self.font_size, color=color),
            bgcolor="rgba(255,255,255,0.85)",
        )

    def render(self, overlay: OverlayState) -> None:
        if self.chart is None:
            return
        colors = get_series_colors()
        shapes = list(self._base_shapes)
        annotations = list(self._base_annotations)

        for marker in overlay.peak_markers:
            shapes.append(self._vline(marker.time, colors[f"{marker.series}_line"], "dot"))
        for placement in overlay.peak_labels:
            annotations.append(
                self._label(placement, colors[f"{placement.key}_line"], 1, "top", -1)
            )

        if overlay.cursor_active:
            shapes.append(self._vline(overlay.cursor_time, colors["cursor_line"], "dash"))
            if overlay.time_label is not None:
                annotations.append(
                    self._label(overlay.time_label, colors["cursor_line"], 0, "bottom", 1)
                )
            for placement in overlay.cursor_labels:
                # value rows stack upward, starting one row above the time label
                label = self._label(
                    placement, colors[f"{placement.key}_line"], 0, "bottom", 1
                )
                label["yshift"] += self.line_height
                annotations.append(label)

        self.figure.layout.shapes = shapes
        self.figure.layout.annotations = annotations
        self.render_count += 1

