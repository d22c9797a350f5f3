import datetime
from typing import Union

import pandas as pd
from dateutil import parser

from kitracker.utils.log_util import app_logger

logger = app_logger(__name__)


def to_date(date_string: str) -> datetime.datetime:
    """
    Convert a date string to a datetime object.

    :param date_string: str - The date string to parse.
    :return: datetime - Parsed datetime object.
    :raises: Exception if date string parsing fails.
    """
    try:
        return parser.isoparse(date_string)
    except (ValueError, OverflowError):
        try:
            return parser.parse(date_string)
        except Exception as e:
            logger.error(f"Error parsing date string: {e}", exc_info=True)
            raise


def to_utc_timestamp(value: Union[str, datetime.datetime, pd.Timestamp]) -> pd.Timestamp:
    """
    Normalize an ISO string or datetime to a tz-aware UTC pandas Timestamp.

    Naive values are taken to be UTC, which is what the collector writes.

    :param value: ISO-8601 string, datetime or Timestamp.
    :return: pd.Timestamp in UTC.
    """
    if isinstance(value, str):
        value = to_date(value)
    ts = pd.Timestamp(value)
    if ts.tzinfo is None:
        return ts.tz_localize("UTC")
    return ts.tz_convert("UTC")


def to_iso_utc(ts: pd.Timestamp) -> str:
    """Format a Timestamp the way history.json stores it (UTC, millis, Z)."""
    ts = to_utc_timestamp(ts)
    return ts.strftime("%Y-%m-%dT%H:%M:%S.") + f"{ts.microsecond // 1000:03d}Z"
