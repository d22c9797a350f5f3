"""
occupancy.py rendering for the occupancy charts and best times

Day charts are rendered through streamlit-plotly-events so hovering one chart
moves a linked cursor across all visible days. Streamlit reruns the script on
every hover, so the last pointer position is kept in session state and
replayed through the synchronizer after each rebuild.
"""

import datetime
from typing import List, Optional, Sequence

import pandas as pd
import streamlit as st
from streamlit_plotly_events import plotly_events

from kitracker import config as cfg
from kitracker.core.best_times import best_times
from kitracker.core.chart_config import get_plot_area
from kitracker.core.occupancy_viz import (
    PlotlyChartAdapter,
    create_day_figure,
    create_empty_figure,
    create_peak_bar_figure,
    from_plot_x,
)
from kitracker.core.views import DayChart, View, ViewSelector
from kitracker.models.occupancy import NormalizedDaySeries, Sample
from kitracker.ui import components
from kitracker.utils.log_util import app_logger

logger = app_logger(__name__)

SELECTOR_KEY = "view_selector"
POINTER_KEY = "cursor_pointer"
CONTEXT_KEY = "cursor_context"

# day charts sit in a grid, so figures and the overlay layout share compact margins
COMPACT_CHARTS = True


def _adapter_factory(series: NormalizedDaySeries, label: str) -> PlotlyChartAdapter:
    return PlotlyChartAdapter(create_day_figure(series, title=label, compact=COMPACT_CHARTS))


def get_view_selector() -> ViewSelector:
    if SELECTOR_KEY not in st.session_state:
        st.session_state[SELECTOR_KEY] = ViewSelector(
            adapter_factory=_adapter_factory,
            plot_area=get_plot_area(compact=COMPACT_CHARTS),
        )
    return st.session_state[SELECTOR_KEY]


def _reset_cursor_on_change(mode: str) -> None:
    # a new range or a data refresh starts with every chart idle
    context = (mode, st.session_state.get("data_generation", 0))
    if st.session_state.get(CONTEXT_KEY) != context:
        st.session_state[CONTEXT_KEY] = context
        st.session_state.pop(POINTER_KEY, None)


def _replay_pointer(selector: ViewSelector) -> None:
    pointer = st.session_state.get(POINTER_KEY)
    if not pointer:
        return
    key, iso_time = pointer
    chart = selector.chart(key)
    if chart is None:
        st.session_state.pop(POINTER_KEY, None)
        return
    try:
        selector.synchronizer.pointer_at_time(chart, pd.Timestamp(iso_time))
    except Exception as e:
        logger.exception(f"Failed to draw cursor on {key}: {e}")
        st.session_state.pop(POINTER_KEY, None)
        st.error(f"Could not draw the cursor: {e}")


def _render_day_chart(day_chart: DayChart) -> None:
    """Render one day chart and record a new hover position, if any."""
    key = day_chart.chart.key
    events = plotly_events(
        day_chart.adapter.figure,
        click_event=False,
        hover_event=True,
        select_event=False,
        override_height=cfg.CHART_HEIGHT,
        key=f"events-{key}",
    )

    seen_key = f"seen-{key}"
    is_new = events and events != st.session_state.get(seen_key)
    st.session_state[seen_key] = events
    if not is_new:
        return

    try:
        query_time = from_plot_x(events[0]["x"])
    except (KeyError, ValueError, TypeError) as e:
        logger.warning(f"Ignoring hover event on {key}: {e}")
        return
    st.session_state[POINTER_KEY] = (key, query_time.isoformat())
    st.rerun()


def render_day_grid(charts: List[DayChart]) -> None:
    n_cols = 1 if len(charts) == 1 else 2
    for start in range(0, len(charts), n_cols):
        cols = st.columns(n_cols)
        for col, day_chart in zip(cols, charts[start : start + n_cols]):
            with col:
                _render_day_chart(day_chart)


def _selected_day(selection, days: List[datetime.date]) -> Optional[datetime.date]:
    """Date of the clicked bar, from its customdata or its category index."""
    points = (selection or {}).get("selection", {}).get("points", [])
    if not points:
        return None
    point = points[0]
    customdata = point.get("customdata")
    if customdata:
        return datetime.date.fromisoformat(customdata[0])
    index = point.get("point_index", point.get("point_number"))
    if index is None or not 0 <= index < len(days):
        return None
    return days[index]


def render_peak_bars(selector: ViewSelector, view: View) -> None:
    """Render the daily peak bars and the drill-down chart of the clicked day."""
    try:
        fig = create_peak_bar_figure(
            view.bar.peaks, title=f"Daily peaks, last {view.mode.days} days"
        )
    except Exception as e:
        logger.exception(f"Failed to build peak bars: {e}")
        st.error(f"Could not render the daily peaks: {e}")
        return

    selection = st.plotly_chart(
        fig,
        width="stretch",
        on_select="rerun",
        selection_mode="points",
        key=f"bars-{view.mode.value}",
    )

    day = _selected_day(selection, view.bar.days)
    if day is None:
        st.caption("Click a bar to see that day.")
        return

    drilldown = selector.drill_down(day)
    if drilldown is None:
        st.error(view.error or "Could not render the selected day")
        return

    _replay_pointer(selector)
    st.subheader(drilldown.label)
    if drilldown.peak.max_lead is None and drilldown.peak.max_boulder is None:
        st.caption("No positive reading on this day")
    _render_day_chart(drilldown)


def render_best_times(samples: Sequence[Sample]) -> None:
    st.subheader("Best times to visit")
    best = best_times(samples)
    if best.empty:
        st.caption("Not enough data yet")
        return

    cols = st.columns(len(best))
    for col, row in zip(cols, best.itertuples()):
        with col:
            st.metric(f"{row.hour:02d}:00", f"~{row.avg_occupancy}% avg")
            st.markdown(components.level_badge(row.level))


def render():
    store = st.session_state.get("sample_store")
    samples = store.snapshot() if store is not None else []

    mode = components.create_range_selector()
    _reset_cursor_on_change(mode)

    if st.button("Clear cursor", key="clear_cursor"):
        st.session_state.pop(POINTER_KEY, None)

    if not samples:
        st.plotly_chart(create_empty_figure("No data available"), width="stretch")
        return

    selector = get_view_selector()
    view = selector.build(mode, samples)

    if not view.ok:
        st.error(view.error)
        return

    if view.bar is not None:
        render_peak_bars(selector, view)
    else:
        _replay_pointer(selector)
        render_day_grid(view.charts)

    st.markdown("---")
    render_best_times(samples)
