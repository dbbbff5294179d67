"""
Single-record and batch inference.
"""

from __future__ import annotations

import logging
from typing import List, Optional, Sequence

from ..data.records import PatientMeasurements
from ..exceptions import ModelNotFitted
from .features import FEATURE_COLUMNS, build_inference_matrix, to_features
from .training import FittedModel

logger = logging.getLogger(__name__)


class Predictor:
    """Apply a fitted model to new records using the training-time feature order."""

    def __init__(self, model: Optional[FittedModel]):
        self.model = model

    def _require_model(self) -> FittedModel:
        if self.model is None:
            raise ModelNotFitted("No fitted model available; train the pipeline before predicting.")
        if tuple(self.model.feature_names) != FEATURE_COLUMNS:
            raise ValueError(
                f"Model was trained on features {list(self.model.feature_names)}, "
                f"expected {list(FEATURE_COLUMNS)}"
            )
        return self.model

    def predict(self, record: PatientMeasurements) -> float:
        model = self._require_model()
        value = model.predict(to_features(record))
        logger.debug(f"Predicted diabetes value {value:.4f}")
        return value

    def predict_batch(self, records: Sequence[PatientMeasurements]) -> List[float]:
        model = self._require_model()
        if not records:
            return []
        return [float(v) for v in model.predict_many(build_inference_matrix(records))]


def predict(model: Optional[FittedModel], record: PatientMeasurements) -> float:
    """Predict the diabetes value for one record."""
    return Predictor(model).predict(record)
