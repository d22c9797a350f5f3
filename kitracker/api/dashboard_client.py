"""
dashboard_client.py: Loads the collector's history and status documents for
the dashboard.

The source is either an http(s) base URL serving history.json and
status.json, or a local directory / s3:// prefix holding them. Remote
fetches carry a cache-busting query parameter and a fixed timeout.

Functions:
- fetch_history(source): samples, or [] on any failure.
- fetch_status(source): RunStatus, or None on any failure.
- fetch_dashboard_data(source): both, independently.
"""

import time
from typing import Any, List, Optional, Tuple

import requests

from kitracker import config as cfg
from kitracker.core.sample_store import parse_samples
from kitracker.models.occupancy import RunStatus, Sample
from kitracker.storage import store
from kitracker.utils.log_util import app_logger

logger = app_logger(__name__)


def is_remote(source: str) -> bool:
    return source.startswith("http://") or source.startswith("https://")


def resource_path(source: str, name: str) -> str:
    return f"{source.rstrip('/')}/{name}"


def cache_busting_params(now_ms: Optional[int] = None) -> dict:
    return {"_": now_ms if now_ms is not None else int(time.time() * 1000)}


def fetch_json(
    source: str, name: str, timeout: float = cfg.FETCH_TIMEOUT_SECONDS
) -> Any:
    """
    Fetch one JSON document from the data source.

    :param source: Base URL, local directory or s3:// prefix.
    :param name: Document file name.
    :param timeout: Request timeout in seconds.
    :return: Parsed JSON.
    :raises requests.RequestException: on network errors and non-2xx responses.
    :raises ValueError: on malformed JSON.
    """
    path = resource_path(source, name)
    if not is_remote(source):
        return store.read_json(path)

    resp = requests.get(path, params=cache_busting_params(), timeout=timeout)
    resp.raise_for_status()
    return resp.json()


def fetch_history(
    source: str, timeout: float = cfg.FETCH_TIMEOUT_SECONDS
) -> List[Sample]:
    """
    Load the sample history.

    Any failure is logged and yields an empty list, so the dashboard renders
    its empty state instead of crashing.
    """
    try:
        records = fetch_json(source, cfg.HISTORY_FILE, timeout)
    except Exception as e:
        logger.error(f"Error fetching history from {source}: {e}")
        return []

    if not isinstance(records, list):
        logger.error(f"History from {source} is not a list: {type(records).__name__}")
        return []

    samples = parse_samples(records)
    logger.info(f"Loaded {len(samples)} samples from {source}")
    return samples


def fetch_status(
    source: str, timeout: float = cfg.FETCH_TIMEOUT_SECONDS
) -> Optional[RunStatus]:
    """Load the last collector run status; None when unavailable."""
    try:
        return RunStatus.from_dict(fetch_json(source, cfg.STATUS_FILE, timeout))
    except Exception as e:
        logger.warning(f"Status unavailable from {source}: {e}")
        return None


def fetch_dashboard_data(
    source: str, timeout: float = cfg.FETCH_TIMEOUT_SECONDS
) -> Tuple[List[Sample], Optional[RunStatus]]:
    """Fetch history and status; a status failure never affects the history."""
    return fetch_history(source, timeout), fetch_status(source, timeout)
