"""
Header rendering module for the occupancy dashboard.

Shows the latest lead and boulder occupancy as metric cards with progress
bars, the open sectors, and the collector status line.
"""

from typing import Optional, Sequence

import streamlit as st

from kitracker import config as cfg
from kitracker.core.data_processing import describe_last_update
from kitracker.models.occupancy import RunStatus, Sample
from kitracker.utils.log_util import app_logger

logger = app_logger(__name__)


def render_header(
    samples: Sequence[Sample], status: Optional[RunStatus]
) -> None:
    """
    Render the title row and current occupancy cards.

    :param samples: Snapshot of the sample store, oldest first.
    :param status: Last collector run status, None when unavailable.
    """
    header_col1, header_col2 = st.columns([2, 1])
    with header_col1:
        st.header("Kletterzentrum Innsbruck")
    with header_col2:
        render_status_line(samples, status)

    latest = samples[-1] if samples else None
    cols = st.columns(3)
    with cols[0]:
        _render_card("lead", latest.lead if latest else None)
    with cols[1]:
        _render_card("boulder", latest.boulder if latest else None)
    with cols[2]:
        st.metric("Open sectors", (latest.open_sectors if latest else None) or "--")


def render_status_line(samples: Sequence[Sample], status: Optional[RunStatus]) -> None:
    """Render the "Updated ..." caption, in red when the last run failed."""
    text = describe_last_update(samples, status)
    if status is not None and not status.success:
        logger.warning(f"Collector reported failure: {status.message}")
        st.markdown(f":red[{text}]")
    else:
        st.caption(text)


def _render_card(series: str, value: Optional[int]) -> None:
    st.metric(cfg.SERIES_LABELS[series], "--" if value is None else f"{value}%")
    st.progress(value or 0)
