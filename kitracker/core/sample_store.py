"""
sample_store.py: In-memory rolling store of occupancy samples.

The store keeps an immutable snapshot (a tuple) that is swapped wholesale on
every change, so chart builders holding an older snapshot never see it
mutate underneath them.
"""

from typing import Iterable, Iterator, List, Optional, Sequence, Tuple

import pandas as pd

from kitracker import config as cfg
from kitracker.models.occupancy import Sample
from kitracker.utils.log_util import app_logger

logger = app_logger(__name__)

FRAME_COLUMNS = ["timestamp", "lead", "boulder", "overall", "open_sectors"]


def prune_old_samples(
    samples: Sequence[Sample], max_days: int, now: Optional[pd.Timestamp] = None
) -> List[Sample]:
    """
    Keep only samples newer than now - max_days, preserving order.

    :param samples: Samples in any order.
    :param max_days: Retention window in days.
    :param now: Reference time, defaults to the current UTC time.
    :return: New list of retained samples.
    """
    now = now if now is not None else pd.Timestamp.now(tz="UTC")
    cutoff = now - pd.Timedelta(days=max_days)
    return [s for s in samples if s.timestamp > cutoff]


def parse_samples(records: Iterable[dict]) -> List[Sample]:
    """
    Parse history.json records, skipping malformed ones.

    :param records: Raw JSON objects.
    :return: Parsed samples in input order.
    """
    samples = []
    skipped = 0
    for record in records:
        try:
            samples.append(Sample.from_dict(record))
        except (ValueError, TypeError) as e:
            skipped += 1
            logger.warning(f"Skipping malformed sample record: {e}")
    if skipped:
        logger.info(f"Parsed {len(samples)} samples, skipped {skipped}")
    return samples


def samples_to_frame(samples: Sequence[Sample]) -> pd.DataFrame:
    """Flatten samples into a DataFrame with nullable integer columns."""
    if not samples:
        return pd.DataFrame(
            {
                "timestamp": pd.Series(dtype="datetime64[ns, UTC]"),
                "lead": pd.Series(dtype="Int64"),
                "boulder": pd.Series(dtype="Int64"),
                "overall": pd.Series(dtype="Int64"),
                "open_sectors": pd.Series(dtype="object"),
            }
        )

    df = pd.DataFrame(
        [
            (s.timestamp, s.lead, s.boulder, s.overall, s.open_sectors)
            for s in samples
        ],
        columns=FRAME_COLUMNS,
    )
    df["timestamp"] = pd.to_datetime(df["timestamp"], utc=True)
    for col in ["lead", "boulder", "overall"]:
        df[col] = df[col].astype("Int64")
    return df


class SampleStore:
    """Append-only, time-ordered samples pruned to a retention window."""

    def __init__(
        self,
        samples: Iterable[Sample] = (),
        retention_days: int = cfg.RETENTION_DAYS,
    ):
        self.retention_days = retention_days
        self._samples: Tuple[Sample, ...] = tuple(samples)

    def __len__(self) -> int:
        return len(self._samples)

    def __iter__(self) -> Iterator[Sample]:
        return iter(self._samples)

    def snapshot(self) -> Tuple[Sample, ...]:
        return self._samples

    @property
    def latest(self) -> Optional[Sample]:
        return self._samples[-1] if self._samples else None

    def append(self, sample: Sample) -> None:
        """
        Add a sample at the end.

        :raises ValueError: when the sample is older than the latest one.
        """
        if self._samples and sample.timestamp < self._samples[-1].timestamp:
            raise ValueError(
                f"Out-of-order sample {sample.timestamp} "
                f"after {self._samples[-1].timestamp}"
            )
        self._samples = self._samples + (sample,)

    def replace(self, samples: Iterable[Sample]) -> None:
        """Swap in a freshly loaded sample list."""
        self._samples = tuple(samples)

    def prune(self, now: Optional[pd.Timestamp] = None) -> int:
        """
        Drop samples older than the retention window.

        :return: Number of samples removed.
        """
        kept = prune_old_samples(self._samples, self.retention_days, now)
        removed = len(self._samples) - len(kept)
        if removed:
            logger.debug(f"Pruned {removed} samples older than {self.retention_days}d")
        self._samples = tuple(kept)
        return removed
