"""data_processing.py
Session data loading and status helpers for the streamlit dashboard
"""

from typing import Optional, Sequence

import pandas as pd
import streamlit as st

from kitracker import config as cfg
from kitracker.api.dashboard_client import fetch_dashboard_data
from kitracker.core.opening_hours import to_local
from kitracker.core.sample_store import SampleStore
from kitracker.models.occupancy import RunStatus, Sample
from kitracker.utils.log_util import app_logger

logger = app_logger(__name__)


# ========================================
# Entry points
# ========================================
def load_or_update_data(
    source: str, refresh_minutes: int, auto_update: bool = True, force: bool = False
) -> None:
    """
    Load the sample snapshot into session state, refreshing when it is stale.

    Session keys set:
    - sample_store: SampleStore with the latest snapshot
    - run_status: RunStatus or None
    - last_fetch: pd.Timestamp of the last fetch
    - data_generation: int, bumped on every refresh so cursor state resets

    :param source: Data source (base URL, directory or s3:// prefix).
    :param refresh_minutes: Minimum age before the data is fetched again.
    :param auto_update: When False, only the first load and forced refreshes fetch.
    :param force: Fetch regardless of age (refresh button).
    :return: None - Updates Streamlit session state directly.
    """
    now = pd.Timestamp.now(tz="UTC")
    last_fetch = st.session_state.get("last_fetch")

    if not force and last_fetch is not None and not auto_update:
        return
    if not force and not should_refresh(last_fetch, now, refresh_minutes):
        return

    update_message = st.empty()
    update_message.text("Getting occupancy data...")

    samples, status = fetch_dashboard_data(source)

    store = st.session_state.get("sample_store")
    if store is None:
        store = SampleStore(retention_days=int(cfg.get_setting("retention_days", cfg.RETENTION_DAYS)))
        st.session_state["sample_store"] = store
    store.replace(samples)
    store.prune(now)

    st.session_state["run_status"] = status
    st.session_state["last_fetch"] = now
    st.session_state["data_generation"] = st.session_state.get("data_generation", 0) + 1

    status_text = "missing" if status is None else ("ok" if status.success else "failed")
    logger.info(
        f"Refresh #{st.session_state['data_generation']}: {len(store)} samples, "
        f"status {status_text}"
    )
    update_message.empty()


def should_refresh(
    last_fetch: Optional[pd.Timestamp], now: pd.Timestamp, refresh_minutes: int
) -> bool:
    """
    Determines if the data should be fetched again.

    :param last_fetch: Time of the previous fetch, None if never fetched.
    :param now: Current time.
    :param refresh_minutes: Refresh interval in minutes.
    :return: bool - True when never fetched or the interval has elapsed.
    """
    if last_fetch is None:
        return True
    return now - last_fetch >= pd.Timedelta(minutes=refresh_minutes)


def get_human_readable_duration(recent: pd.Timestamp, earlier: pd.Timestamp) -> str:
    """
    Returns a human-centric duration in minutes, hours, or days.

    Parameters:
    recent (pd.Timestamp): The later instant.
    earlier (pd.Timestamp): The earlier instant.

    Returns:
    str: A human-readable duration.
    """
    age_minutes = (recent - earlier).total_seconds() / 60

    if age_minutes < 60:
        return f"{age_minutes:.0f} minutes"
    elif age_minutes < 1440:
        return f"{age_minutes / 60:.1f} hours"
    else:
        return f"{age_minutes / 1440:.1f} days"


def describe_last_update(
    samples: Sequence[Sample],
    status: Optional[RunStatus],
    now: Optional[pd.Timestamp] = None,
    tz: str = cfg.TIMEZONE,
) -> str:
    """
    Status line for the header.

    The collector's lastRun is preferred; without a status the latest
    sample timestamp is used.

    :return: "No data available", "Error: ...", "Updated just now",
             "Updated N min ago" or "Updated at HH:MM".
    """
    if not samples:
        return "No data available"

    if status is not None and not status.success:
        return f"Error: {status.message or 'Collection failed'}"

    now = now if now is not None else pd.Timestamp.now(tz="UTC")
    last_run = status.last_run if status is not None else samples[-1].timestamp
    diff_minutes = int((now - last_run).total_seconds() // 60)

    if diff_minutes < 1:
        return "Updated just now"
    elif diff_minutes < 60:
        return f"Updated {diff_minutes} min ago"
    else:
        return f"Updated at {to_local(last_run, tz).strftime('%H:%M')}"
