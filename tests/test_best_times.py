"""
Unit tests for hourly averages and best visiting times.
"""

import datetime

import pytest

from kitracker.core.best_times import best_times, classify_occupancy, hourly_averages
from kitracker.core.opening_hours import local_instant
from kitracker.models.occupancy import Sample

DAY = datetime.date(2024, 6, 12)


def sample(hour, minute=0, lead=None, boulder=None, day=DAY):
    return Sample.create(local_instant(day, hour, minute), lead=lead, boulder=boulder)


class TestClassify:
    """Test occupancy levels."""

    @pytest.mark.parametrize(
        "avg, level", [(0, "good"), (29, "good"), (30, "medium"), (59, "medium"), (60, "busy")]
    )
    def test_thresholds(self, avg, level):
        """Test the good/medium/busy boundaries."""
        assert classify_occupancy(avg) == level


class TestHourlyAverages:
    """Test grouping by local hour."""

    def test_averages_per_hour(self):
        """Test samples in the same local hour are averaged across days."""
        samples = [
            sample(10, lead=20, boulder=40),
            sample(10, 30, lead=30, boulder=50),
            sample(10, lead=10, boulder=30, day=DAY - datetime.timedelta(days=1)),
            sample(17, lead=80, boulder=90),
        ]
        df = hourly_averages(samples)

        assert list(df["hour"]) == [10, 17]
        row = df.iloc[0]
        assert row["lead_avg"] == 20
        assert row["boulder_avg"] == 40
        assert row["avg_occupancy"] == 30

    def test_half_up_rounding(self):
        """Test .5 averages round up."""
        df = hourly_averages([sample(11, lead=45, boulder=30)])
        assert df.iloc[0]["avg_occupancy"] == 38

    def test_missing_series_counts_as_zero_in_overall(self):
        """Test an hour with only boulder readings."""
        df = hourly_averages([sample(12, boulder=50)])
        assert df.iloc[0]["avg_occupancy"] == 25

    def test_empty(self):
        """Test no samples gives an empty frame with the expected columns."""
        df = hourly_averages([])
        assert df.empty
        assert list(df.columns) == ["hour", "lead_avg", "boulder_avg", "avg_occupancy"]


class TestBestTimes:
    """Test picking the quietest hours."""

    def test_quietest_first(self):
        """Test the four quietest hours in ascending order with levels."""
        samples = [sample(h, lead=occ, boulder=occ) for h, occ in [(9, 10), (12, 70), (15, 40), (18, 90), (20, 25)]]
        best = best_times(samples)

        assert list(best["hour"]) == [9, 20, 15, 12]
        assert list(best["level"]) == ["good", "good", "medium", "busy"]

    def test_ties_keep_hour_order(self):
        """Test equal averages are listed by hour."""
        samples = [sample(h, lead=20, boulder=20) for h in (14, 11)]
        assert list(best_times(samples)["hour"]) == [11, 14]

    def test_empty(self):
        """Test no data yields no best times."""
        assert best_times([]).empty


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
