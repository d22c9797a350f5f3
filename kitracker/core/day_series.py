"""
day_series.py: Per-day bucketing, normalization and interpolation of
occupancy samples for charting.

All day boundaries use one timezone policy: the configured local zone
(cfg.TIMEZONE). Bucket keys are datetime.date values, never strings.
"""

import datetime
from collections import OrderedDict
from typing import Dict, List, Optional, Sequence

import pandas as pd

from kitracker import config as cfg
from kitracker.core.opening_hours import OpeningHours, local_date, local_today
from kitracker.models.occupancy import (
    InterpolatedValues,
    NormalizedDaySeries,
    Sample,
    SeriesPoint,
)
from kitracker.utils.log_util import app_logger

logger = app_logger(__name__)


# ========================================
# Bucketing
# ========================================
def bucket_by_day(
    samples: Sequence[Sample], tz: str = cfg.TIMEZONE
) -> Dict[datetime.date, List[Sample]]:
    """
    Group samples by local calendar date.

    Samples are stable-sorted by timestamp first, so equal timestamps keep
    their input order. Buckets are returned oldest date first.

    :param samples: Samples, normally already time-ordered.
    :param tz: Timezone defining the calendar day.
    :return: OrderedDict of date -> samples of that date.
    """
    buckets: Dict[datetime.date, List[Sample]] = {}
    for sample in sorted(samples, key=lambda s: s.timestamp):
        buckets.setdefault(local_date(sample.timestamp, tz), []).append(sample)
    return OrderedDict(sorted(buckets.items()))


# ========================================
# Normalization
# ========================================
def normalize_day(
    samples: Sequence[Sample],
    day: datetime.date,
    hours: Optional[OpeningHours] = None,
    now: Optional[pd.Timestamp] = None,
    tz: str = cfg.TIMEZONE,
) -> NormalizedDaySeries:
    """
    Pad a day's samples with zero points at opening and closing time.

    A leading (open, 0, 0) point is added when the day has no samples or
    starts after opening. A trailing (close, 0, 0) point is added only for
    days already over: past days, or today once closing time has passed,
    and only when the last point is before closing. A live day is never
    shown dropping to zero early.

    :param samples: The day's samples in time order.
    :param day: Local date of the bucket.
    :param hours: Opening hours table, defaults to cfg.HOURS.
    :param now: Current time, defaults to now.
    :param tz: Local timezone.
    :return: NormalizedDaySeries with min_time/max_time at open/close.
    """
    hours = hours or OpeningHours.from_config()
    now = now if now is not None else pd.Timestamp.now(tz="UTC")
    open_time, close_time = hours.open_close(day, tz)

    points = [SeriesPoint(s.timestamp, s.lead, s.boulder) for s in samples]

    if not points or points[0].timestamp > open_time:
        points.insert(0, SeriesPoint(open_time, 0, 0))

    today = local_today(now, tz)
    day_is_over = day < today or (day == today and now >= close_time)
    if day_is_over and points[-1].timestamp < close_time:
        points.append(SeriesPoint(close_time, 0, 0))

    logger.debug(f"Normalized {day}: {len(samples)} samples, {len(points)} points")

    return NormalizedDaySeries(
        date=day, points=points, min_time=open_time, max_time=close_time
    )


def normalize_buckets(
    buckets: Dict[datetime.date, List[Sample]],
    days: Sequence[datetime.date],
    hours: Optional[OpeningHours] = None,
    now: Optional[pd.Timestamp] = None,
    tz: str = cfg.TIMEZONE,
) -> Dict[datetime.date, NormalizedDaySeries]:
    """Normalize the requested days, treating missing buckets as empty."""
    return {
        day: normalize_day(buckets.get(day, []), day, hours, now, tz) for day in days
    }


# ========================================
# Interpolation
# ========================================
def _lerp(start: Optional[float], end: Optional[float], factor: float) -> float:
    # missing endpoints count as zero so the line stays continuous
    start = 0 if start is None else start
    end = 0 if end is None else end
    return start + (end - start) * factor


def interpolate(
    series: NormalizedDaySeries, query_time: pd.Timestamp
) -> Optional[InterpolatedValues]:
    """
    Linearly interpolated lead/boulder values at an instant.

    :param series: Normalized day series.
    :param query_time: Instant to evaluate.
    :return: InterpolatedValues, or None outside the series' time span.
    """
    points = series.points
    if not points:
        return None
    if query_time < points[0].timestamp or query_time > points[-1].timestamp:
        return None

    for start, end in zip(points, points[1:]):
        if start.timestamp <= query_time <= end.timestamp:
            span = (end.timestamp - start.timestamp).total_seconds()
            factor = (
                (query_time - start.timestamp).total_seconds() / span if span else 0.0
            )
            return InterpolatedValues(
                lead=_lerp(start.lead, end.lead, factor),
                boulder=_lerp(start.boulder, end.boulder, factor),
            )

    # single point series, query_time equals its timestamp
    only = points[0]
    return InterpolatedValues(
        lead=_lerp(only.lead, only.lead, 0.0),
        boulder=_lerp(only.boulder, only.boulder, 0.0),
    )
