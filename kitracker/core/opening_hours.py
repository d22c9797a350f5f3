"""
Opening hours lookup.

Resolves the gym's open/close window for a calendar day from the standard
hours and the MM-DD exception table, and converts it to tz-aware instants.
"""

import datetime
from dataclasses import dataclass
from typing import Dict, Optional, Tuple

import pandas as pd
import pytz

from kitracker import config as cfg


@dataclass(frozen=True)
class HourWindow:
    start: int
    end: int


@dataclass(frozen=True)
class OpeningHours:
    standard: HourWindow
    exceptions: Dict[str, HourWindow]

    @classmethod
    def from_config(cls, hours: Optional[dict] = None) -> "OpeningHours":
        """Build from a {"standard": {...}, "exceptions": {...}} mapping."""
        hours = hours or cfg.HOURS
        standard = HourWindow(**hours["standard"])
        exceptions = {
            key: HourWindow(**window)
            for key, window in hours.get("exceptions", {}).items()
        }
        return cls(standard=standard, exceptions=exceptions)

    def window_for(self, day: datetime.date) -> HourWindow:
        return self.exceptions.get(day.strftime("%m-%d"), self.standard)

    def open_close(
        self, day: datetime.date, tz: str = cfg.TIMEZONE
    ) -> Tuple[pd.Timestamp, pd.Timestamp]:
        """
        Open and close instants for a day in the given timezone.

        :param day: Local calendar date.
        :param tz: IANA timezone name.
        :return: (open_time, close_time) as tz-aware Timestamps.
        """
        window = self.window_for(day)
        return local_instant(day, window.start, 0, tz), local_instant(
            day, window.end, 0, tz
        )

    def is_open(self, now: pd.Timestamp, tz: str = cfg.TIMEZONE) -> bool:
        local_now = to_local(now, tz)
        window = self.window_for(local_now.date())
        return window.start <= local_now.hour < window.end


def to_local(ts: pd.Timestamp, tz: str = cfg.TIMEZONE) -> pd.Timestamp:
    ts = pd.Timestamp(ts)
    if ts.tzinfo is None:
        ts = ts.tz_localize("UTC")
    return ts.tz_convert(tz)


def local_date(ts: pd.Timestamp, tz: str = cfg.TIMEZONE) -> datetime.date:
    """Calendar date of an instant in the local timezone."""
    return to_local(ts, tz).date()


def local_instant(
    day: datetime.date, hour: int, minute: int = 0, tz: str = cfg.TIMEZONE
) -> pd.Timestamp:
    """
    Wall-clock time on a date in the local zone as a tz-aware Timestamp.

    Hour 24 is allowed and means midnight at the end of the day.
    """
    zone = pytz.timezone(tz)
    base = datetime.datetime.combine(day, datetime.time(0, 0))
    naive = base + datetime.timedelta(hours=hour, minutes=minute)
    return pd.Timestamp(zone.localize(naive))


def local_today(now: Optional[pd.Timestamp] = None, tz: str = cfg.TIMEZONE) -> datetime.date:
    now = now if now is not None else pd.Timestamp.now(tz="UTC")
    return local_date(now, tz)
