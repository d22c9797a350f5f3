"""
best_times.py: Quietest hours to visit, from hourly average occupancy.
"""

from typing import Sequence

import numpy as np
import pandas as pd

from kitracker import config as cfg
from kitracker.core.sample_store import samples_to_frame
from kitracker.models.occupancy import Sample

GOOD_THRESHOLD = 30
MEDIUM_THRESHOLD = 60


def _round_half_up(series: pd.Series) -> pd.Series:
    return np.floor(series.astype("Float64") + 0.5).astype("Int64")


def classify_occupancy(avg: int) -> str:
    if avg < GOOD_THRESHOLD:
        return "good"
    elif avg < MEDIUM_THRESHOLD:
        return "medium"
    else:
        return "busy"


def hourly_averages(samples: Sequence[Sample], tz: str = cfg.TIMEZONE) -> pd.DataFrame:
    """
    Average lead and boulder occupancy per local hour of day.

    Each series is averaged over its own non-null readings. Hours with no
    reading in either series are dropped.

    :param samples: Samples to aggregate.
    :param tz: Local timezone for the hour of day.
    :return: DataFrame with hour, lead_avg, boulder_avg, avg_occupancy,
             sorted by avg_occupancy ascending (ties keep hour order).
    """
    df = samples_to_frame(samples)
    columns = ["hour", "lead_avg", "boulder_avg", "avg_occupancy"]
    if df.empty:
        return pd.DataFrame(columns=columns)

    df["hour"] = df["timestamp"].dt.tz_convert(tz).dt.hour
    grouped = (
        df.groupby("hour")[["lead", "boulder"]]
        .mean()
        .rename(columns={"lead": "lead_avg", "boulder": "boulder_avg"})
        .reset_index()
    )
    grouped["lead_avg"] = _round_half_up(grouped["lead_avg"])
    grouped["boulder_avg"] = _round_half_up(grouped["boulder_avg"])
    grouped = grouped[grouped["lead_avg"].notna() | grouped["boulder_avg"].notna()].copy()

    both = grouped["lead_avg"].fillna(0) + grouped["boulder_avg"].fillna(0)
    grouped["avg_occupancy"] = _round_half_up(both / 2).astype(int)

    return (
        grouped.sort_values(["avg_occupancy", "hour"], kind="stable")
        .reset_index(drop=True)[columns]
    )


def best_times(
    samples: Sequence[Sample], count: int = cfg.BEST_TIMES_COUNT, tz: str = cfg.TIMEZONE
) -> pd.DataFrame:
    """
    The count quietest hours, with a good/medium/busy class.

    :return: DataFrame with hour, avg_occupancy, level columns (may be empty).
    """
    hourly = hourly_averages(samples, tz)
    best = hourly.head(count).copy()
    best["level"] = best["avg_occupancy"].apply(classify_occupancy)
    return best[["hour", "avg_occupancy", "level"]].reset_index(drop=True)
