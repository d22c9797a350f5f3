"""
Reusable UI components for the occupancy dashboard.
"""

import streamlit as st

from kitracker import config as cfg

RANGE_KEY = "range_mode"


def create_range_selector(key: str = RANGE_KEY) -> str:
    """
    Range mode buttons (Today, 2 Days, 7 Days, Peaks 7d, Peaks 30d).

    :param key: Streamlit widget key.
    :return: The selected mode id; the default mode when the selection is cleared.
    """
    mode = st.segmented_control(
        "Range",
        options=list(cfg.RANGE_MODES),
        format_func=lambda m: cfg.RANGE_MODES[m],
        default=cfg.DEFAULT_RANGE,
        label_visibility="collapsed",
        key=key,
    )
    return mode or cfg.DEFAULT_RANGE


def level_badge(level: str) -> str:
    """Markdown color for a good/medium/busy occupancy level."""
    color = {"good": "green", "medium": "orange", "busy": "red"}.get(level, "gray")
    return f":{color}[{level}]"
