"""
Main streamlit.io application
"""

import pandas as pd
import streamlit as st

import kitracker.core.data_processing as ki_dp
from kitracker import config as cfg
from kitracker.ui import header, occupancy
from kitracker.utils.log_util import app_logger

logger = app_logger(__name__)

st.set_page_config(
    page_title="KI Occupancy",
    layout="wide",
    initial_sidebar_state="collapsed",
)

# %%
# define variables
data_source = cfg.get_setting("data_source", cfg.DATA_DIR)
refresh_minutes = int(cfg.get_setting("refresh_minutes", cfg.REFRESH_MINUTES))


# Setup and get data ########################

auto_update = st.sidebar.checkbox("Auto-Update", value=True)

force_refresh = False
if st.sidebar.button("🔄 Refresh Data"):
    force_refresh = True

try:
    ki_dp.load_or_update_data(
        data_source, refresh_minutes, auto_update=auto_update, force=force_refresh
    )
    if force_refresh:
        st.sidebar.success("Data refreshed!")
except Exception as e:
    logger.exception(f"Failed to load data: {e}")
    st.sidebar.error("Failed to refresh data")

store = st.session_state.get("sample_store")
samples = store.snapshot() if store is not None else []
status = st.session_state.get("run_status")

last_fetch = st.session_state.get("last_fetch")
if last_fetch is not None:
    fetch_age = ki_dp.get_human_readable_duration(pd.Timestamp.now(tz="UTC"), last_fetch)
    st.sidebar.write(f"Last fetch: {fetch_age} ago")
st.sidebar.write(f"Samples loaded: {len(samples)}")
st.sidebar.write(f"Source: {data_source}")
# %%


# Present the dashboard ########################

header.render_header(samples, status)


@st.fragment(run_every=pd.Timedelta(minutes=refresh_minutes))
def auto_refresh():
    # reruns the whole app once the snapshot is stale
    last = st.session_state.get("last_fetch")
    now = pd.Timestamp.now(tz="UTC")
    if auto_update and ki_dp.should_refresh(last, now, refresh_minutes):
        st.rerun()


auto_refresh()
occupancy.render()
