"""
Sample-level train/test partitioning.

Observations (pixels) within one sample are spatially and biologically
correlated, so the partition is drawn over sample identifiers, never over
individual rows. A sample's observations land entirely in train or in test.
"""

import logging
from collections.abc import Iterable
from dataclasses import dataclass

import numpy as np
import pandas as pd
from sklearn.model_selection import train_test_split

from amp_ml.data.schema import LABEL_COL, SAMPLE_COL
from amp_ml.exceptions import InsufficientSamplesError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SampleSplit:
    """Disjoint partition of sample identifiers."""

    train_samples: tuple[str, ...]
    test_samples: tuple[str, ...]
    seed: int
    train_frac: float
    stratified: bool = False

    def to_dict(self) -> dict:
        return {
            "train_samples": list(self.train_samples),
            "test_samples": list(self.test_samples),
            "seed": self.seed,
            "train_frac": self.train_frac,
            "stratified": self.stratified,
        }


def sample_majority_labels(df: pd.DataFrame) -> pd.Series:
    """
    Majority label per sample (ties resolve to 1).

    Returns:
        Series indexed by sample_id with int labels
    """
    mean_label = df.groupby(SAMPLE_COL, sort=True)[LABEL_COL].mean()
    return (mean_label >= 0.5).astype(int)


def _can_stratify(labels: np.ndarray, n_train: int, n_test: int) -> bool:
    """Every class needs >= 2 samples and both sides room for one sample per class."""
    _, counts = np.unique(labels, return_counts=True)
    n_classes = len(counts)
    return (
        n_classes > 1
        and counts.min() >= 2
        and n_train >= n_classes
        and n_test >= n_classes
    )


def split_samples(
    sample_ids: Iterable[str],
    train_frac: float = 2.0 / 3.0,
    seed: int = 0,
    sample_labels: dict[str, int] | pd.Series | None = None,
) -> SampleSplit:
    """
    Partition sample identifiers into train and test sets.

    Args:
        sample_ids: Sample identifiers (duplicates are collapsed)
        train_frac: Fraction of samples assigned to train (0, 1)
        seed: Random seed
        sample_labels: Optional per-sample label used for stratification

    Returns:
        SampleSplit with sorted, disjoint train/test sample tuples

    Raises:
        InsufficientSamplesError: If fewer than 2 distinct samples
        ValueError: If train_frac is outside (0, 1)
    """
    if not 0.0 < train_frac < 1.0:
        raise ValueError(f"train_frac must be in (0, 1), got {train_frac}")

    samples = np.array(sorted({str(s) for s in sample_ids}), dtype=object)
    n = len(samples)
    if n < 2:
        raise InsufficientSamplesError(
            f"Need at least 2 distinct samples to form train and test sets, got {n}",
            diagnostics={"n_samples": n, "samples": samples.tolist()},
        )

    n_train = int(min(max(round(train_frac * n), 1), n - 1))
    n_test = n - n_train

    stratify = None
    if sample_labels is not None:
        labels = np.array([int(sample_labels[s]) for s in samples])
        if _can_stratify(labels, n_train, n_test):
            stratify = labels
        else:
            logger.info("Sample labels too sparse for stratification; using seeded shuffle")

    train, test = train_test_split(
        samples,
        train_size=n_train,
        test_size=n_test,
        random_state=seed,
        shuffle=True,
        stratify=stratify,
    )

    split = SampleSplit(
        train_samples=tuple(sorted(train)),
        test_samples=tuple(sorted(test)),
        seed=seed,
        train_frac=train_frac,
        stratified=stratify is not None,
    )
    logger.info(
        f"Sample split (seed={seed}): {len(split.train_samples)} train, "
        f"{len(split.test_samples)} test samples"
    )
    return split


def apply_sample_split(
    df: pd.DataFrame, split: SampleSplit
) -> tuple[pd.DataFrame, pd.DataFrame]:
    """
    Select train and test observations for a SampleSplit.

    Returns:
        (train_df, test_df), each keeping the original row order
    """
    sample_col = df[SAMPLE_COL].astype(str)
    train_df = df[sample_col.isin(split.train_samples)].reset_index(drop=True)
    test_df = df[sample_col.isin(split.test_samples)].reset_index(drop=True)
    return train_df, test_df


def check_split_disjoint(split: SampleSplit) -> None:
    """Raise ValueError if any sample appears on both sides."""
    overlap = set(split.train_samples) & set(split.test_samples)
    if overlap:
        raise ValueError(f"Train/Test sample overlap: {sorted(overlap)}")
