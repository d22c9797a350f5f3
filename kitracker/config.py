# config.py
"""
Configurations for the KI Tracker occupancy dashboard and collector.

This module holds the opening hours table, data locations, refresh and
retention settings, and chart settings shared across the application.
Deployment-specific values can be overridden through Streamlit secrets or
KITRACKER_* environment variables via get_setting().
"""

import os
from typing import Any

import streamlit as st

# Local timezone used for every day boundary, bucket key and time-of-day.
TIMEZONE = "Europe/Vienna"

# Data files written by the collector and read by the dashboard
DATA_DIR = "./data"
HISTORY_FILE = "history.json"
STATUS_FILE = "status.json"
RETENTION_DAYS = 7

# Dashboard refresh
REFRESH_MINUTES = 5
FETCH_TIMEOUT_SECONDS = 10

# Gym website
BASE_URL = "https://www.kletterzentrum-innsbruck.at"
MAIN_PAGE = f"{BASE_URL}/en/"
AJAX_URL = f"{BASE_URL}/wp-admin/admin-ajax.php"
AJAX_ACTION = "ki_get_opening_hours_desktop"
USER_AGENT = (
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
)

# Opening hours, exceptions keyed by MM-DD
HOURS = {
    "standard": {"start": 9, "end": 22},
    "exceptions": {
        "12-24": {"start": 9, "end": 14},  # Christmas Eve
        "12-25": {"start": 14, "end": 22},  # Christmas Day
        "12-31": {"start": 9, "end": 14},  # New Year's Eve
        "01-01": {"start": 14, "end": 22},  # New Year's Day
    },
}

# Range selector: mode id -> button label
RANGE_MODES = {
    "1d": "Today",
    "2d": "2 Days",
    "7d": "7 Days",
    "peak-week": "Peaks 7d",
    "peak-month": "Peaks 30d",
}
DEFAULT_RANGE = "1d"

SERIES_LABELS = {"lead": "Lead", "boulder": "Boulder"}

# Day chart geometry in pixels; the overlay label layout works in this space
CHART_HEIGHT = 280
CHART_WIDTH = 640
LABEL_FONT_SIZE = 11

BEST_TIMES_COUNT = 4


def get_setting(key: str, default: Any = None) -> Any:
    """
    Look up a deployment setting.

    Order: Streamlit secrets, then the KITRACKER_<KEY> environment variable,
    then the default. A missing secrets.toml is not an error.

    :param key: Setting name, e.g. "data_source".
    :param default: Value returned when the setting is not configured.
    :return: The configured value or default.
    """
    try:
        if key in st.secrets:
            return st.secrets[key]
    except Exception:
        # no secrets.toml; streamlit's error type for this varies by version
        pass

    env_value = os.environ.get(f"KITRACKER_{key.upper()}")
    if env_value is not None:
        return env_value
    return default
