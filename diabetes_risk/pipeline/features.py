"""
Feature assembly.

FEATURE_COLUMNS is the model's input contract: the same field-to-position
mapping is used when building the training matrix and when scoring a single
record. Do not reorder it.
"""

from __future__ import annotations

import logging
from typing import Iterable, Tuple

import numpy as np

from ..data.records import PatientMeasurements, PatientRecord

logger = logging.getLogger(__name__)

# Canonical order, train and inference
FEATURE_COLUMNS: Tuple[str, ...] = (
    "pregnancies",
    "glucose",
    "blood_pressure",
    "skin_thickness",
    "insulin",
    "bmi",
    "diabetes_pedigree_function",
    "age",
)

LABEL_COLUMN = "diabetes_value"

N_FEATURES = len(FEATURE_COLUMNS)


def to_features(record: PatientMeasurements) -> np.ndarray:
    """Map a record to its 8-element feature vector."""
    return np.array([getattr(record, name) for name in FEATURE_COLUMNS], dtype=np.float64)


def to_label(record: PatientRecord) -> float:
    return float(getattr(record, LABEL_COLUMN))


def build_inference_matrix(records: Iterable[PatientMeasurements]) -> np.ndarray:
    """Stack feature vectors into an (n, 8) matrix."""
    rows = [to_features(r) for r in records]
    if not rows:
        return np.empty((0, N_FEATURES), dtype=np.float64)
    return np.vstack(rows)


def build_feature_matrix(records: Iterable[PatientRecord]) -> Tuple[np.ndarray, np.ndarray]:
    """
    Build the (X, y) pair for training or evaluation.

    Returns:
      X of shape (n, 8) and y of shape (n,), row i of both taken from the
      i-th record.
    """
    records = list(records)
    X = build_inference_matrix(records)
    y = np.array([to_label(r) for r in records], dtype=np.float64)
    logger.debug(f"Assembled feature matrix {X.shape} and labels {y.shape}")
    return X, y
