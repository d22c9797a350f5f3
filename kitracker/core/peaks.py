"""
Daily peak extraction for lead and boulder occupancy.
"""

import datetime
from typing import Dict, List, Optional, Sequence, Tuple

import pandas as pd

from kitracker.models.occupancy import DailyPeak, Sample

SERIES = ("lead", "boulder")


def _series_peak(
    samples: Sequence[Sample], series: str
) -> Tuple[Optional[int], Optional[pd.Timestamp]]:
    """Leftmost maximum of a series, ignoring None and non-positive values."""
    values = pd.Series([getattr(s, series) for s in samples], dtype="Float64")
    qualifying = values[values.notna() & (values > 0)]
    if qualifying.empty:
        return None, None

    # idxmax returns the first index holding the maximum
    position = qualifying.idxmax()
    return int(qualifying[position]), samples[position].timestamp


def extract_peaks(samples: Sequence[Sample]) -> DailyPeak:
    """
    Peak lead and boulder occupancy for one day's samples.

    Zero readings mean closed or unknown and never count as a peak. Ties go
    to the earliest sample.

    :param samples: One day bucket in time order.
    :return: DailyPeak with None fields for series without a positive value.
    """
    if not samples:
        return DailyPeak()

    max_lead, max_lead_time = _series_peak(samples, "lead")
    max_boulder, max_boulder_time = _series_peak(samples, "boulder")
    return DailyPeak(
        max_lead=max_lead,
        max_lead_time=max_lead_time,
        max_boulder=max_boulder,
        max_boulder_time=max_boulder_time,
    )


def peaks_by_day(
    buckets: Dict[datetime.date, List[Sample]], days: Sequence[datetime.date]
) -> Dict[datetime.date, DailyPeak]:
    """Peaks for each requested day; days without data get an empty peak."""
    return {day: extract_peaks(buckets.get(day, [])) for day in days}


def peaks_to_frame(peaks: Dict[datetime.date, DailyPeak]) -> pd.DataFrame:
    """
    Tabulate daily peaks, one row per day in the given order.

    :param peaks: date -> DailyPeak.
    :return: DataFrame with date, max_lead, max_lead_time, max_boulder,
             max_boulder_time columns.
    """
    rows = [
        {
            "date": day,
            "max_lead": peak.max_lead,
            "max_lead_time": peak.max_lead_time,
            "max_boulder": peak.max_boulder,
            "max_boulder_time": peak.max_boulder_time,
        }
        for day, peak in peaks.items()
    ]
    df = pd.DataFrame(
        rows,
        columns=["date", "max_lead", "max_lead_time", "max_boulder", "max_boulder_time"],
    )
    for col in ["max_lead", "max_boulder"]:
        df[col] = df[col].astype("Int64")
    return df
