"""
Unit tests for day bucketing, normalization and interpolation.

All times are built in Europe/Vienna local time so day boundaries match the
application's timezone policy.
"""

import datetime

import pandas as pd
import pytest

from kitracker.core.day_series import (
    bucket_by_day,
    interpolate,
    normalize_buckets,
    normalize_day,
)
from kitracker.core.opening_hours import OpeningHours, local_instant
from kitracker.core.peaks import extract_peaks
from kitracker.models.occupancy import NormalizedDaySeries, Sample, SeriesPoint

DAY = datetime.date(2024, 6, 12)
HOURS = OpeningHours.from_config()


def at(hour, minute=0, day=DAY):
    return local_instant(day, hour, minute).tz_convert("UTC")


def sample(hour, minute=0, lead=None, boulder=None, day=DAY):
    return Sample.create(at(hour, minute, day), lead=lead, boulder=boulder)


class TestBucketByDay:
    """Test grouping samples by local calendar date."""

    def test_groups_by_local_date(self):
        """Test that a UTC timestamp late in the evening lands on the next local day."""
        # 22:30 UTC on the 12th is 00:30 on the 13th in Vienna (UTC+2)
        late = Sample.create(pd.Timestamp("2024-06-12T22:30:00Z"), lead=5, boulder=5)
        early = Sample.create(pd.Timestamp("2024-06-12T08:00:00Z"), lead=10, boulder=10)

        buckets = bucket_by_day([early, late])

        assert list(buckets) == [DAY, datetime.date(2024, 6, 13)]
        assert buckets[DAY] == [early]
        assert buckets[datetime.date(2024, 6, 13)] == [late]

    def test_keys_are_dates(self):
        """Test that bucket keys are date values, not strings."""
        buckets = bucket_by_day([sample(10, lead=1)])
        assert all(isinstance(k, datetime.date) for k in buckets)

    def test_sorts_out_of_order_input(self):
        """Test that unsorted input comes out time-ordered per bucket."""
        s1 = sample(11, lead=20)
        s2 = sample(10, lead=10)
        buckets = bucket_by_day([s1, s2])
        assert buckets[DAY] == [s2, s1]

    def test_equal_timestamps_keep_input_order(self):
        """Test the sort is stable for equal timestamps."""
        first = sample(10, lead=1)
        second = sample(10, lead=2)
        buckets = bucket_by_day([first, second])
        assert [s.lead for s in buckets[DAY]] == [1, 2]

    def test_buckets_oldest_first(self):
        """Test bucket order is ascending by date."""
        later = sample(10, lead=1, day=datetime.date(2024, 6, 14))
        earlier = sample(10, lead=1, day=datetime.date(2024, 6, 11))
        assert list(bucket_by_day([later, earlier])) == [
            datetime.date(2024, 6, 11),
            datetime.date(2024, 6, 14),
        ]

    def test_empty_input(self):
        """Test empty input gives an empty mapping."""
        assert bucket_by_day([]) == {}


class TestNormalizeDay:
    """Test padding a day to its opening hours."""

    def test_empty_past_day_has_open_and_close(self):
        """Test an empty finished day yields exactly the two zero boundary points."""
        now = at(12, day=DAY + datetime.timedelta(days=1))
        series = normalize_day([], DAY, HOURS, now)

        assert series.points == [
            SeriesPoint(at(9), 0, 0),
            SeriesPoint(at(22), 0, 0),
        ]

    def test_empty_live_day_has_only_open(self):
        """Test an empty day still in progress yields only the opening point."""
        series = normalize_day([], DAY, HOURS, now=at(11))
        assert series.points == [SeriesPoint(at(9), 0, 0)]

    def test_bounds_are_open_and_close(self):
        """Test min_time and max_time match the opening hours."""
        series = normalize_day([sample(10, lead=1)], DAY, HOURS, now=at(11))
        assert series.min_time == at(9)
        assert series.max_time == at(22)

    def test_leading_zero_added_when_first_sample_after_open(self):
        """Test a leading zero point is synthesized at opening."""
        series = normalize_day([sample(10, lead=40, boulder=60)], DAY, HOURS, now=at(11))

        assert series.points[0] == SeriesPoint(at(9), 0, 0)
        assert series.points[1].lead == 40
        assert len(series.points) == 2

    def test_no_trailing_zero_while_open(self):
        """Test a live day is never shown dropping to zero early."""
        series = normalize_day([sample(10, lead=40)], DAY, HOURS, now=at(21, 59))
        assert series.points[-1].timestamp == at(10)

    def test_trailing_zero_after_close_today(self):
        """Test today gets its closing point once closing time has passed."""
        series = normalize_day([sample(10, lead=40)], DAY, HOURS, now=at(22, 5))
        assert series.points[-1] == SeriesPoint(at(22), 0, 0)

    def test_trailing_zero_on_past_day(self):
        """Test a past day always gets its closing point."""
        now = at(8, day=DAY + datetime.timedelta(days=3))
        series = normalize_day([sample(10, lead=40)], DAY, HOURS, now)
        assert series.points[-1] == SeriesPoint(at(22), 0, 0)

    def test_future_day_never_gets_trailing_zero(self):
        """Test a day after today is not treated as over."""
        now = at(12, day=DAY - datetime.timedelta(days=1))
        series = normalize_day([], DAY, HOURS, now)
        assert series.points == [SeriesPoint(at(9), 0, 0)]

    def test_holiday_hours(self):
        """Test exception hours narrow the window (Christmas Eve 9-14)."""
        xmas_eve = datetime.date(2024, 12, 24)
        now = at(9, day=datetime.date(2024, 12, 27))
        series = normalize_day([], xmas_eve, HOURS, now)

        assert series.min_time == at(9, day=xmas_eve)
        assert series.max_time == at(14, day=xmas_eve)

    def test_first_sample_at_open_not_padded(self):
        """Test no duplicate point when a sample sits exactly at opening."""
        series = normalize_day([sample(9, lead=0, boulder=0)], DAY, HOURS, now=at(11))
        assert len(series.points) == 1

    def test_normalize_buckets_fills_missing_days(self):
        """Test requested days without a bucket normalize as empty."""
        other = DAY - datetime.timedelta(days=1)
        result = normalize_buckets({DAY: [sample(10, lead=5)]}, [DAY, other], HOURS, at(12))

        assert set(result) == {DAY, other}
        assert result[other].points[0] == SeriesPoint(at(9, day=other), 0, 0)


class TestInterpolate:
    """Test linear interpolation over a normalized series."""

    @pytest.fixture
    def series(self):
        points = [
            SeriesPoint(at(9), 0, 0),
            SeriesPoint(at(10), 40, 60),
            SeriesPoint(at(11), 60, 20),
        ]
        return NormalizedDaySeries(DAY, points, at(9), at(22))

    def test_midpoint(self, series):
        """Test halfway between two points."""
        values = interpolate(series, at(10, 30))
        assert values.lead == pytest.approx(50)
        assert values.boulder == pytest.approx(40)

    def test_exact_sample_returns_its_values(self, series):
        """Test a query on an existing timestamp returns that sample's values."""
        values = interpolate(series, at(10))
        assert values.lead == pytest.approx(40)
        assert values.boulder == pytest.approx(60)

    def test_outside_bounds_is_none(self, series):
        """Test queries before the first or after the last point return None."""
        assert interpolate(series, at(8, 59)) is None
        assert interpolate(series, at(11, 1)) is None

    def test_empty_series_is_none(self):
        """Test an empty series returns None."""
        series = NormalizedDaySeries(DAY, [], at(9), at(22))
        assert interpolate(series, at(10)) is None

    def test_missing_endpoint_counts_as_zero(self):
        """Test a None value is interpolated as zero."""
        points = [SeriesPoint(at(10), None, 40), SeriesPoint(at(11), 60, 40)]
        series = NormalizedDaySeries(DAY, points, at(9), at(22))

        values = interpolate(series, at(10, 30))
        assert values.lead == pytest.approx(30)
        assert values.boulder == pytest.approx(40)

    def test_duplicate_timestamps_use_first_value(self):
        """Test a zero-length segment does not divide by zero."""
        points = [SeriesPoint(at(10), 10, 10), SeriesPoint(at(10), 90, 90)]
        series = NormalizedDaySeries(DAY, points, at(9), at(22))

        values = interpolate(series, at(10))
        assert values.lead == pytest.approx(10)

    def test_single_point_series(self):
        """Test a one-point series answers only at that instant."""
        series = NormalizedDaySeries(DAY, [SeriesPoint(at(9), 0, 0)], at(9), at(22))

        assert interpolate(series, at(9)).lead == 0
        assert interpolate(series, at(9, 1)) is None


class TestEndToEnd:
    """Bucket, normalize and extract peaks for a complete day."""

    def test_complete_day_needs_no_padding(self):
        """Test a day already spanning open to close is left unchanged."""
        samples = [
            sample(9, lead=0, boulder=0),
            sample(10, lead=40, boulder=60),
            sample(22, lead=0, boulder=0),
        ]
        now = at(23)

        bucket = bucket_by_day(samples)[DAY]
        series = normalize_day(bucket, DAY, HOURS, now)
        peak = extract_peaks(bucket)

        assert series.points == [
            SeriesPoint(s.timestamp, s.lead, s.boulder) for s in samples
        ]
        assert peak.max_lead == 40
        assert peak.max_lead_time == at(10)
        assert peak.max_boulder == 60
        assert peak.max_boulder_time == at(10)


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
