"""
Occupancy data models and type definitions.

This module provides the data structures shared by the collector, the
dashboard loader and the day-series engine: raw samples, collector run
status, and the derived per-day series, peaks and cursor state.
"""

import datetime
import math
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

import pandas as pd

from kitracker.utils.date_util import to_iso_utc, to_utc_timestamp


def compute_overall(lead: Optional[int], boulder: Optional[int]) -> Optional[int]:
    """
    Combined occupancy: half-up rounded mean of both, else whichever exists.

    :param lead: Lead percentage or None.
    :param boulder: Boulder percentage or None.
    :return: Overall percentage or None.
    """
    if lead is not None and boulder is not None:
        return int(math.floor((lead + boulder) / 2 + 0.5))
    return lead if lead is not None else boulder


def as_percentage(value: Any) -> Optional[int]:
    """Coerce a JSON value to an int in [0, 100]; None stays None."""
    if value is None:
        return None
    if isinstance(value, bool):
        raise ValueError(f"Not a percentage: {value!r}")
    number = int(value)
    if number != value and not isinstance(value, str):
        raise ValueError(f"Not an integer percentage: {value!r}")
    if not 0 <= number <= 100:
        raise ValueError(f"Percentage out of range: {number}")
    return number


@dataclass(frozen=True)
class Sample:
    """One scraped occupancy reading."""

    timestamp: pd.Timestamp
    lead: Optional[int] = None
    boulder: Optional[int] = None
    overall: Optional[int] = None
    open_sectors: Optional[str] = None

    @classmethod
    def create(
        cls,
        timestamp,
        lead: Optional[int] = None,
        boulder: Optional[int] = None,
        open_sectors: Optional[str] = None,
    ) -> "Sample":
        """Build a sample with overall derived from lead and boulder."""
        lead = as_percentage(lead)
        boulder = as_percentage(boulder)
        return cls(
            timestamp=to_utc_timestamp(timestamp),
            lead=lead,
            boulder=boulder,
            overall=compute_overall(lead, boulder),
            open_sectors=open_sectors,
        )

    @classmethod
    def from_dict(cls, record: Dict[str, Any]) -> "Sample":
        """
        Parse a history.json record.

        overall is always derived from lead and boulder; a stored value is
        ignored.

        :raises ValueError: on a missing timestamp or invalid percentage.
        """
        if not isinstance(record, dict) or not record.get("timestamp"):
            raise ValueError(f"Record has no timestamp: {record!r}")

        lead = as_percentage(record.get("lead"))
        boulder = as_percentage(record.get("boulder"))
        return cls(
            timestamp=to_utc_timestamp(record["timestamp"]),
            lead=lead,
            boulder=boulder,
            overall=compute_overall(lead, boulder),
            open_sectors=record.get("openSectors"),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "timestamp": to_iso_utc(self.timestamp),
            "lead": self.lead,
            "boulder": self.boulder,
            "overall": self.overall,
            "openSectors": self.open_sectors,
        }


@dataclass(frozen=True)
class RunStatus:
    """Outcome of the last collector run (status.json)."""

    last_run: pd.Timestamp
    success: bool
    message: str = ""
    data: Optional[Sample] = None
    error: Optional[str] = None

    @classmethod
    def from_dict(cls, record: Dict[str, Any]) -> "RunStatus":
        if not isinstance(record, dict) or not record.get("lastRun"):
            raise ValueError(f"Status has no lastRun: {record!r}")
        data = record.get("data")
        return cls(
            last_run=to_utc_timestamp(record["lastRun"]),
            success=bool(record.get("success", False)),
            message=record.get("message") or "",
            data=Sample.from_dict(data) if data else None,
            error=record.get("error"),
        )

    def to_dict(self) -> Dict[str, Any]:
        record = {
            "lastRun": to_iso_utc(self.last_run),
            "success": self.success,
            "message": self.message,
        }
        if self.success:
            record["data"] = self.data.to_dict() if self.data else None
        else:
            record["error"] = self.error
        return record


@dataclass(frozen=True)
class SeriesPoint:
    timestamp: pd.Timestamp
    lead: Optional[float]
    boulder: Optional[float]


@dataclass
class NormalizedDaySeries:
    """A day's points padded to the opening-hours window."""

    date: datetime.date
    points: List[SeriesPoint]
    min_time: pd.Timestamp
    max_time: pd.Timestamp

    @property
    def timestamps(self) -> List[pd.Timestamp]:
        return [p.timestamp for p in self.points]

    @property
    def lead_values(self) -> List[Optional[float]]:
        return [p.lead for p in self.points]

    @property
    def boulder_values(self) -> List[Optional[float]]:
        return [p.boulder for p in self.points]


@dataclass(frozen=True)
class DailyPeak:
    max_lead: Optional[int] = None
    max_lead_time: Optional[pd.Timestamp] = None
    max_boulder: Optional[int] = None
    max_boulder_time: Optional[pd.Timestamp] = None

    def value(self, series: str) -> Optional[int]:
        return getattr(self, f"max_{series}")

    def time(self, series: str) -> Optional[pd.Timestamp]:
        return getattr(self, f"max_{series}_time")


@dataclass(frozen=True)
class InterpolatedValues:
    lead: float
    boulder: float


@dataclass
class CursorState:
    """Per-chart pointer state; Idle when active is False."""

    active: bool = False
    query_time: Optional[pd.Timestamp] = None
    values: Optional[InterpolatedValues] = field(default=None, compare=False)

    def reset(self) -> None:
        self.active = False
        self.query_time = None
        self.values = None
