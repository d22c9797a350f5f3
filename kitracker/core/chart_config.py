"""
chart_config.py: Plotly layout presets shared by the occupancy charts.

The day charts, the drill-down chart and the peak bars all go through these
helpers, so margins here also define the pixel plot area the cursor overlay
lays its labels out in.
"""

from typing import Any, Dict, Optional

import plotly.graph_objects as go

from kitracker import config as cfg
from kitracker.core.overlay import PlotArea

MARGINS = dict(l=50, r=20, t=40, b=40)
COMPACT_MARGINS = dict(l=40, r=10, t=30, b=30)

ANNOTATION_POSITIONS = {
    "top_right": dict(x=0.98, y=0.95, xanchor="right", yanchor="top"),
    "top_left": dict(x=0.02, y=0.95, xanchor="left", yanchor="top"),
    "center": dict(x=0.5, y=0.5, xanchor="center", yanchor="middle"),
}

PEAK_BAR_HEIGHT = 360


def get_default_margins(compact: bool = False) -> Dict[str, int]:
    """
    Margins in pixels for a chart.

    :param compact: Smaller margins for charts shown side by side in a grid.
    :return: dict with l, r, t, b keys
    """
    return dict(COMPACT_MARGINS if compact else MARGINS)


def get_plot_area(
    width: int = cfg.CHART_WIDTH, height: int = cfg.CHART_HEIGHT, compact: bool = False
) -> PlotArea:
    """Pixel plot area of a chart laid out with get_default_margins()."""
    return PlotArea.from_margins(width, height, get_default_margins(compact))


def get_series_colors() -> Dict[str, str]:
    """Line, fill and level colors for lead and boulder."""
    return {
        "lead_line": "#818cf8",
        "lead_fill": "rgba(129, 140, 248, 0.1)",
        "boulder_line": "#fbbf24",
        "boulder_fill": "rgba(251, 191, 36, 0.1)",
        "cursor_line": "#6b6b80",
        "grid": "rgba(107, 107, 128, 0.15)",
        "occupancy_good": "#22c55e",
        "occupancy_medium": "#f59e0b",
        "occupancy_busy": "#ef4444",
    }


def apply_time_series_layout(
    fig: go.Figure,
    height: int = cfg.CHART_HEIGHT,
    width: Optional[int] = None,
    showlegend: bool = False,
    title: Optional[str] = None,
    compact: bool = False,
    hovermode: str = "x unified",
) -> go.Figure:
    """
    Size, margins and hover behaviour of an occupancy chart.

    :param fig: Figure to update in place
    :param height: Height in pixels
    :param width: Width in pixels; None lets Streamlit stretch the chart
    :param showlegend: Show the lead/boulder legend
    :param title: Optional chart title
    :param compact: Use the grid margins
    :param hovermode: Plotly hover mode
    :return: The same figure
    """
    layout: Dict[str, Any] = dict(
        template="plotly_white",
        height=height,
        margin=get_default_margins(compact),
        showlegend=showlegend,
        hovermode=hovermode,
    )
    if width:
        layout["width"] = width
    if title:
        layout["title"] = title

    fig.update_layout(**layout)
    return fig


def apply_occupancy_axes(
    fig: go.Figure,
    x_range: Optional[list] = None,
    xaxis_title: str = "",
    yaxis_title: str = "",
    type_x: Optional[str] = None,
) -> go.Figure:
    """
    Percentage y-axis fixed to 0-100, optionally a fixed time window on x.

    :param fig: Figure to update in place
    :param x_range: [open, close] of the day; ticks then show clock time
    :param xaxis_title: X-axis title
    :param yaxis_title: Y-axis title
    :param type_x: Plotly axis type, "category" for the peak bars
    :return: The same figure
    """
    grid = get_series_colors()["grid"]

    xaxis: Dict[str, Any] = dict(title=xaxis_title, showgrid=True, gridcolor=grid)
    if x_range is not None:
        xaxis.update(range=x_range, tickformat="%H:%M")
    if type_x:
        xaxis["type"] = type_x

    fig.update_xaxes(**xaxis)
    fig.update_yaxes(
        title=yaxis_title, range=[0, 100], ticksuffix="%", showgrid=True, gridcolor=grid
    )
    return fig


def create_standard_annotation(
    text: str,
    position: str = "top_right",
    xref: str = "paper",
    yref: str = "paper",
    showarrow: bool = False,
    **kwargs
) -> Dict[str, Any]:
    """
    Boxed text annotation at one of the ANNOTATION_POSITIONS presets.

    Unknown positions fall back to top_right. Extra keyword arguments are
    passed through to Plotly and override the defaults.
    """
    return {
        "text": text,
        "xref": xref,
        "yref": yref,
        "showarrow": showarrow,
        "bgcolor": "rgba(255,255,255,0.8)",
        "bordercolor": "gray",
        "borderwidth": 1,
        "borderpad": 4,
        **ANNOTATION_POSITIONS.get(position, ANNOTATION_POSITIONS["top_right"]),
        **kwargs,
    }


def apply_bar_layout(
    fig: go.Figure, title: Optional[str] = None, height: int = PEAK_BAR_HEIGHT
) -> go.Figure:
    """Grouped, click-selectable bars of daily peaks over category days."""
    apply_time_series_layout(
        fig, height=height, showlegend=True, title=title, hovermode="closest"
    )
    fig.update_layout(
        barmode="group",
        clickmode="event+select",
        legend=dict(orientation="h", y=1.1, x=1, xanchor="right"),
    )
    return apply_occupancy_axes(fig, type_x="category")
