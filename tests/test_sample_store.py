"""
Unit tests for the sample model and the rolling sample store.
"""

import pandas as pd
import pytest

from kitracker.core.sample_store import (
    SampleStore,
    parse_samples,
    prune_old_samples,
    samples_to_frame,
)
from kitracker.models.occupancy import RunStatus, Sample, compute_overall

NOW = pd.Timestamp("2024-06-12T12:00:00Z")


def days_ago(days, **kwargs):
    return Sample.create(NOW - pd.Timedelta(days=days), **kwargs)


class TestSample:
    """Test Sample parsing and the overall invariant."""

    @pytest.mark.parametrize(
        "lead, boulder, expected",
        [(45, 30, 38), (10, None, 10), (None, 20, 20), (None, None, None), (0, 1, 1)],
    )
    def test_compute_overall(self, lead, boulder, expected):
        """Test overall is the half-up rounded mean, or whichever value exists."""
        assert compute_overall(lead, boulder) == expected

    def test_create_derives_overall(self):
        """Test Sample.create fills overall."""
        s = Sample.create(NOW, lead=45, boulder=30, open_sectors="25/30")
        assert s.overall == 38
        assert s.timestamp == NOW

    def test_from_dict_round_trip(self):
        """Test history.json records survive parsing and serialization."""
        record = {
            "timestamp": "2024-06-12T10:00:00.000Z",
            "lead": 40,
            "boulder": 60,
            "overall": 50,
            "openSectors": "29/31",
        }
        assert Sample.from_dict(record).to_dict() == record

    def test_from_dict_derives_overall(self):
        """Test overall follows lead and boulder even when the record disagrees."""
        s = Sample.from_dict(
            {"timestamp": "2024-06-12T10:00:00Z", "lead": 40, "boulder": 60, "overall": 7}
        )
        assert s.overall == 50
        assert s.overall == compute_overall(s.lead, s.boulder)

    def test_from_dict_zero_marker(self):
        """Test the closed marker keeps overall 0."""
        s = Sample.from_dict({"timestamp": "2024-06-12T20:05:00Z", "lead": 0, "boulder": 0, "overall": 0})
        assert s.overall == 0

    def test_from_dict_without_timestamp(self):
        """Test a record without timestamp is rejected."""
        with pytest.raises(ValueError):
            Sample.from_dict({"lead": 10})

    @pytest.mark.parametrize("value", [101, -1, "abc", True, 12.5])
    def test_invalid_percentage(self, value):
        """Test out-of-range and non-integer values are rejected."""
        with pytest.raises(ValueError):
            Sample.from_dict({"timestamp": "2024-06-12T10:00:00Z", "lead": value})


class TestRunStatus:
    """Test status.json documents."""

    def test_success_document(self):
        """Test a successful status carries the sample and no error."""
        status = RunStatus(NOW, True, "Collection successful", data=Sample.create(NOW, lead=10))
        doc = status.to_dict()

        assert doc["success"] is True
        assert doc["data"]["lead"] == 10
        assert "error" not in doc
        assert RunStatus.from_dict(doc).data.lead == 10

    def test_failure_document(self):
        """Test a failed status carries the error and no data."""
        doc = RunStatus(NOW, False, "boom", error="Traceback ...").to_dict()

        assert doc == {
            "lastRun": "2024-06-12T12:00:00.000Z",
            "success": False,
            "message": "boom",
            "error": "Traceback ...",
        }


class TestPruning:
    """Test retention pruning."""

    def test_prune_removes_only_expired(self):
        """Test the 8-day-old sample goes and the rest keep their order."""
        recent = days_ago(2, lead=1)
        old = days_ago(8, lead=2)
        boundary = Sample.create(NOW - pd.Timedelta(days=7) + pd.Timedelta(seconds=1), lead=3)

        result = prune_old_samples([recent, old, boundary], 7, NOW)
        assert result == [recent, boundary]

    def test_cutoff_is_exclusive(self):
        """Test a sample exactly max_days old is dropped."""
        assert prune_old_samples([days_ago(7, lead=1)], 7, NOW) == []

    def test_prune_empty(self):
        """Test empty input."""
        assert prune_old_samples([], 7, NOW) == []


class TestSampleStore:
    """Test the snapshot semantics of SampleStore."""

    def test_snapshot_not_affected_by_append(self):
        """Test a snapshot taken earlier does not change."""
        store = SampleStore([days_ago(1, lead=1)])
        snapshot = store.snapshot()
        store.append(days_ago(0, lead=2))

        assert len(snapshot) == 1
        assert len(store) == 2
        assert store.latest.lead == 2

    def test_append_rejects_out_of_order(self):
        """Test an older sample is refused and the store stays time-ordered."""
        store = SampleStore([Sample.create("2024-06-12T10:00:00Z", lead=20)])

        with pytest.raises(ValueError):
            store.append(Sample.create("2024-06-12T09:00:00Z", lead=10))

        timestamps = [s.timestamp for s in store]
        assert timestamps == sorted(timestamps)
        assert len(store) == 1

    def test_append_equal_timestamp_allowed(self):
        """Test a sample at the same instant as the latest is accepted."""
        store = SampleStore([Sample.create("2024-06-12T10:00:00Z", lead=20)])
        store.append(Sample.create("2024-06-12T10:00:00Z", lead=25))
        assert [s.lead for s in store] == [20, 25]

    def test_prune_reports_removed(self):
        """Test prune returns the number removed."""
        store = SampleStore([days_ago(8, lead=1), days_ago(1, lead=2)], retention_days=7)
        assert store.prune(NOW) == 1
        assert [s.lead for s in store] == [2]

    def test_replace(self):
        """Test replace swaps the whole content."""
        store = SampleStore([days_ago(1, lead=1)])
        store.replace([])
        assert store.latest is None

    def test_parse_samples_skips_malformed(self):
        """Test malformed records are dropped and the rest kept."""
        samples = parse_samples(
            [
                {"timestamp": "2024-06-12T10:00:00Z", "lead": 10},
                {"lead": 10},
                {"timestamp": "2024-06-12T10:05:00Z", "lead": 500},
                "junk",
            ]
        )
        assert len(samples) == 1

    def test_to_frame(self):
        """Test the frame has nullable integer columns."""
        df = samples_to_frame([days_ago(1, lead=10), days_ago(0, boulder=5)])

        assert list(df.columns) == ["timestamp", "lead", "boulder", "overall", "open_sectors"]
        assert str(df["lead"].dtype) == "Int64"
        assert df["lead"].isna().tolist() == [False, True]
        assert samples_to_frame([]).empty


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
