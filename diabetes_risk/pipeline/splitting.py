"""
Train/test partitioning.

Each record is assigned to the test subset independently with probability
``test_fraction`` (Bernoulli partition), so subset sizes vary with the
seed. A fixed seed makes the partition reproducible; ``seed=None`` draws a
fresh partition on every call.
"""

from __future__ import annotations

import logging
import numbers
from dataclasses import dataclass
from typing import Optional

import numpy as np

from ..config import RANDOM_SEED
from ..data.records import Dataset
from ..exceptions import InvalidFraction

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SplitResult:
    """Positions of each record in the source Dataset plus the two views."""

    train_idx: np.ndarray
    test_idx: np.ndarray
    train: Dataset
    test: Dataset

    @property
    def train_size(self) -> int:
        return len(self.train_idx)

    @property
    def test_size(self) -> int:
        return len(self.test_idx)


def _validate_fraction(test_fraction: float) -> None:
    if not isinstance(test_fraction, numbers.Real) or not (0.0 < float(test_fraction) < 1.0):
        raise InvalidFraction(f"test_fraction must be in (0, 1) exclusive (got {test_fraction!r}).")


def bernoulli_mask(n: int, test_fraction: float, seed: Optional[int] = RANDOM_SEED) -> np.ndarray:
    """Boolean mask of length n, True where the row goes to the test subset."""
    _validate_fraction(test_fraction)
    rng = np.random.default_rng(seed)
    return rng.random(n) < test_fraction


def split_dataset(
    dataset: Dataset,
    test_fraction: float,
    seed: Optional[int] = RANDOM_SEED,
) -> SplitResult:
    """
    Partition dataset into train and test subsets.

    Both subsets keep source order. Indices are positions into ``dataset``;
    together they cover every position exactly once.
    """
    mask = bernoulli_mask(len(dataset), test_fraction, seed)

    test_idx = np.flatnonzero(mask)
    train_idx = np.flatnonzero(~mask)

    if seed is None:
        logger.warning("Splitting without a seed: partition is not reproducible")

    logger.info(
        f"Split {len(dataset)} records (test_fraction={test_fraction}, seed={seed}): "
        f"{len(train_idx)} train / {len(test_idx)} test"
    )

    return SplitResult(
        train_idx=train_idx,
        test_idx=test_idx,
        train=dataset.take(train_idx),
        test=dataset.take(test_idx),
    )
