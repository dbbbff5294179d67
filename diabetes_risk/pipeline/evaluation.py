"""
Model evaluation on the held-out test subset.
"""

from __future__ import annotations

import logging
import math
from dataclasses import asdict, dataclass
from typing import Dict, Sequence, Union

import numpy as np
from sklearn.metrics import mean_absolute_error, mean_squared_error

from ..exceptions import EmptyTestSet
from .training import FittedModel

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class EvaluationMetrics:
    """Aggregate regression metrics over a test set."""

    r_squared: float
    rmse: float
    mae: float
    mse: float
    n_samples: int

    @property
    def r_squared_defined(self) -> bool:
        return not math.isnan(self.r_squared)

    def to_dict(self) -> Dict[str, Union[float, int]]:
        return asdict(self)


class RegressionEvaluator:
    """Compute regression metrics from (prediction, actual) pairs."""

    def calculate_metrics(self, y_true: np.ndarray, y_pred: np.ndarray) -> EvaluationMetrics:
        """
        Calculate evaluation metrics.

        Args:
            y_true: True labels
            y_pred: Predicted values, paired with y_true by position

        Returns:
            EvaluationMetrics. r_squared is NaN when every true label is the
            same (zero total variance).
        """
        yt = np.asarray(y_true, dtype=np.float64).reshape(-1)
        yp = np.asarray(y_pred, dtype=np.float64).reshape(-1)

        if yt.size == 0:
            raise EmptyTestSet("Cannot compute metrics on an empty test set.")
        if yt.shape != yp.shape:
            raise ValueError(f"Shape mismatch: y_true {yt.shape} vs y_pred {yp.shape}")

        mse = float(mean_squared_error(yt, yp))

        # Identical labels: the computed SS_tot can be a rounding residue, not 0
        if np.all(yt == yt[0]):
            r_squared = float("nan")
        else:
            ss_res = float(np.sum((yt - yp) ** 2))
            ss_tot = float(np.sum((yt - yt.mean()) ** 2))
            r_squared = 1.0 - ss_res / ss_tot

        return EvaluationMetrics(
            r_squared=r_squared,
            rmse=math.sqrt(mse),
            mae=float(mean_absolute_error(yt, yp)),
            mse=mse,
            n_samples=int(yt.size),
        )


def evaluate(model: FittedModel, test_features: Sequence[np.ndarray], test_labels: Sequence[float]) -> EvaluationMetrics:
    """Score ``model`` on the test subset."""
    y = np.array(test_labels, dtype=np.float64).reshape(-1)
    if y.size == 0 or len(test_features) == 0:
        raise EmptyTestSet("Cannot evaluate on an empty test set.")

    logger.info("Evaluating model...")
    X = np.array(test_features, dtype=np.float64)
    predictions = model.predict_many(X)

    metrics = RegressionEvaluator().calculate_metrics(y, predictions)
    if not metrics.r_squared_defined:
        logger.warning("All test labels are identical; R-squared is undefined (NaN)")
    logger.info(f"Evaluated on {metrics.n_samples} records: R2={metrics.r_squared:.4f}, RMSE={metrics.rmse:.4f}")
    return metrics
