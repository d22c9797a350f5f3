"""
collector.py: One collection run of the occupancy history.

Reads history.json, appends a freshly scraped sample (or a single zero
marker while the gym is closed), prunes to the retention window and writes
history.json and status.json back. Meant to be triggered by cron via
kitracker-collect.

Functions:
- read_history: Load history, moving a corrupt file aside.
- prune_old_data: Retention filter for history records.
- is_gym_open: Opening-hours check for a point in time.
- collect: The full run, including the failure status.
"""

import traceback
from typing import Callable, List, Optional

import pandas as pd

from kitracker import config as cfg
from kitracker.api.scraper import scrape_occupancy
from kitracker.core.opening_hours import OpeningHours
from kitracker.core.sample_store import SampleStore, parse_samples, prune_old_samples
from kitracker.models.occupancy import RunStatus, Sample
from kitracker.storage import store
from kitracker.utils.log_util import app_logger

logger = app_logger(__name__)

Scraper = Callable[[], Sample]


def read_history(path: str, now: Optional[pd.Timestamp] = None) -> List[Sample]:
    """
    Read the stored history.

    A missing file is an empty history. A file that is not a JSON list is
    backed up to <path>.corrupt.<epoch ms> and treated as empty.

    :param path: History file path or s3:// URL.
    :param now: Used for the backup suffix.
    :return: Samples in stored order.
    """
    try:
        records = store.read_json(path)
        if isinstance(records, list):
            return parse_samples(records)
        logger.error(f"History file {path} does not hold a list")
    except FileNotFoundError:
        return []
    except ValueError as e:
        logger.error(f"History file {path} is not valid JSON: {e}")

    now = now if now is not None else pd.Timestamp.now(tz="UTC")
    suffix = f".corrupt.{int(now.timestamp() * 1000)}"
    try:
        backup = store.backup_file(path, suffix)
        logger.error(f"History file corrupt, backed up to {backup}")
    except store.StorageError as e:
        logger.error(f"Failed to back up corrupt history file: {e}")
    return []


def prune_old_data(
    samples: List[Sample], max_days: int, now: Optional[pd.Timestamp] = None
) -> List[Sample]:
    """Keep the last max_days of history, order preserved."""
    return prune_old_samples(samples, max_days, now)


def is_gym_open(
    now: Optional[pd.Timestamp] = None,
    hours: Optional[OpeningHours] = None,
    tz: str = cfg.TIMEZONE,
) -> bool:
    """
    Checks if the gym is open at the given time (local hour in [start, end)).

    :param now: Point in time, defaults to now.
    :param hours: Opening hours table, defaults to cfg.HOURS.
    :return: bool
    """
    hours = hours or OpeningHours.from_config()
    now = now if now is not None else pd.Timestamp.now(tz="UTC")
    return hours.is_open(now, tz)


def closed_marker(now: pd.Timestamp) -> Sample:
    """Zero occupancy sample recorded once when the gym closes."""
    return Sample(timestamp=now, lead=0, boulder=0, overall=0, open_sectors="0/0")


def collect(
    history_path: str,
    status_path: str,
    max_days: int = cfg.RETENTION_DAYS,
    now: Optional[pd.Timestamp] = None,
    hours: Optional[OpeningHours] = None,
    scraper: Optional[Scraper] = None,
    tz: str = cfg.TIMEZONE,
) -> Optional[RunStatus]:
    """
    Run one collection.

    :param history_path: history.json location.
    :param status_path: status.json location.
    :param max_days: Retention window in days.
    :param now: Time of the run, defaults to now.
    :param hours: Opening hours table.
    :param scraper: Callable returning a Sample, defaults to scrape_occupancy.
    :return: The written RunStatus, or None when a closed run was skipped.
    :raises Exception: Re-raises any failure after writing a failure status.
    """
    now = now if now is not None else pd.Timestamp.now(tz="UTC")
    logger.info(f"[{now.isoformat()}] Starting data collection...")

    try:
        history = SampleStore(read_history(history_path, now), retention_days=max_days)
        is_open = is_gym_open(now, hours, tz)

        if is_open:
            new_sample = (scraper or (lambda: scrape_occupancy(now)))()
            logger.info(f"Scraped data: {new_sample.to_dict()}")
        else:
            logger.info("Gym is closed.")
            last = history.latest
            if last is not None and last.overall == 0:
                logger.info("Zero occupancy already recorded. Skipping.")
                return None
            logger.info("Recording zero occupancy marker.")
            new_sample = closed_marker(now)

        history.append(new_sample)
        history.prune(now)

        store.write_json(history_path, [s.to_dict() for s in history])
        logger.info(f"Updated history with {len(history)} entries")

        status = RunStatus(
            last_run=now,
            success=True,
            message="Collection successful" if is_open else "Gym closed (0 recorded)",
            data=new_sample,
        )
        store.write_json(status_path, status.to_dict())
        logger.info("Status updated")
        return status

    except Exception as e:
        logger.error(f"Collection process failed: {e}")
        status = RunStatus(
            last_run=now,
            success=False,
            message=str(e),
            error=traceback.format_exc(),
        )
        try:
            store.write_json(status_path, status.to_dict())
        except store.StorageError as write_error:
            logger.error(f"Failed to write failure status: {write_error}")
        raise
