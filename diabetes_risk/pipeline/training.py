"""
Model training.

Any estimator exposing ``fit(X, y)`` / ``predict(X)`` over fixed-length
numeric vectors can be trained here. ``create_regressor`` builds the one
named in the config; the decision forest is the default.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable, Dict, Optional, Protocol, Sequence, Tuple, runtime_checkable

import numpy as np
import lightgbm as lgb
import xgboost as xgb
from sklearn.base import clone
from sklearn.ensemble import RandomForestRegressor

from ..config import RANDOM_SEED
from ..exceptions import EmptyTrainingSet
from .features import FEATURE_COLUMNS, N_FEATURES

logger = logging.getLogger(__name__)

SUPPORTED_ALGORITHMS = ("random_forest", "lightgbm", "xgboost")


@runtime_checkable
class Regressor(Protocol):
    """Trainable regressor over (n, d) feature matrices and a scalar target."""

    def fit(self, X: Any, y: Any) -> Any: ...

    def predict(self, X: Any) -> Any: ...


@dataclass(frozen=True)
class FittedModel:
    """A trained regressor together with its input contract."""

    estimator: Regressor
    algorithm: str
    feature_names: Tuple[str, ...] = FEATURE_COLUMNS
    n_training_samples: int = 0
    trained_at: str = field(default_factory=lambda: datetime.now().isoformat())

    def predict(self, features: np.ndarray) -> float:
        """Predict a single feature vector."""
        vector = np.asarray(features, dtype=np.float64).reshape(1, -1)
        return float(self.predict_many(vector)[0])

    def predict_many(self, features: np.ndarray) -> np.ndarray:
        X = np.asarray(features, dtype=np.float64)
        if X.ndim != 2 or X.shape[1] != len(self.feature_names):
            raise ValueError(
                f"Feature shape mismatch: got {X.shape}, expected (n, {len(self.feature_names)})"
            )
        return np.asarray(self.estimator.predict(X), dtype=np.float64).reshape(-1)


def create_regressor(model_config: Optional[Dict[str, Any]] = None, random_seed: int = RANDOM_SEED) -> Regressor:
    """Build an unfitted regressor from the ``model`` section of the config."""
    model_cfg = model_config or {}
    algorithm = model_cfg.get("algorithm", "random_forest")
    logger.info(f"Creating model: {algorithm}")

    if algorithm == "random_forest":
        params = {
            **model_cfg.get("random_forest", {}),
            "random_state": random_seed,
            "n_jobs": -1,
        }
        return RandomForestRegressor(**params)

    if algorithm == "lightgbm":
        params = {
            **model_cfg.get("lightgbm", {}),
            "random_state": random_seed,
            "n_jobs": -1,
        }
        return lgb.LGBMRegressor(**params)

    if algorithm == "xgboost":
        params = {
            **model_cfg.get("xgboost", {}),
            "random_state": random_seed,
            "n_jobs": -1,
            "tree_method": model_cfg.get("xgboost", {}).get("tree_method", "hist"),
        }
        return xgb.XGBRegressor(**params)

    raise ValueError(f"Unknown algorithm: {algorithm} (supported: {SUPPORTED_ALGORITHMS})")


class Trainer:
    """One-shot trainer producing a FittedModel."""

    def __init__(self, regressor: Optional[Regressor] = None,
                 regressor_factory: Optional[Callable[[], Regressor]] = None,
                 algorithm: Optional[str] = None):
        """
        Args:
            regressor: Template estimator; cloned before every fit
            regressor_factory: Alternative to ``regressor``, called once per fit
            algorithm: Name recorded on the fitted model
        """
        if regressor is None and regressor_factory is None:
            regressor = create_regressor()
        self.regressor = regressor
        self.regressor_factory = regressor_factory
        if algorithm is None:
            algorithm = type(regressor).__name__ if regressor is not None else "custom"
        self.algorithm = algorithm

    @classmethod
    def from_config(cls, config: Dict[str, Any]) -> "Trainer":
        model_cfg = config.get("model", {})
        regressor = create_regressor(model_cfg, config.get("random_seed", RANDOM_SEED))
        return cls(regressor=regressor, algorithm=model_cfg.get("algorithm", "random_forest"))

    def _new_estimator(self) -> Regressor:
        if self.regressor_factory is not None:
            return self.regressor_factory()
        # safe=False deep-copies objects that are not scikit-learn estimators
        return clone(self.regressor, safe=False)

    def fit(self, features: Sequence[np.ndarray], labels: Sequence[float]) -> FittedModel:
        """Fit a fresh estimator on (features, labels) and wrap it."""
        X = np.array(features, dtype=np.float64)
        y = np.array(labels, dtype=np.float64).reshape(-1)

        if len(X) == 0 or len(y) == 0:
            raise EmptyTrainingSet("Cannot train on an empty training set.")
        if X.ndim != 2 or X.shape[1] != N_FEATURES:
            raise ValueError(f"Expected feature matrix of shape (n, {N_FEATURES}), got {X.shape}")
        if len(X) != len(y):
            raise EmptyTrainingSet(f"Features/labels length mismatch: {len(X)} vs {len(y)}")

        estimator = self._new_estimator()

        logger.info(f"Training process is starting. {datetime.now().strftime('%H:%M:%S')}")
        estimator.fit(X, y)
        logger.info(f"Training process has finished. {datetime.now().strftime('%H:%M:%S')}")

        return FittedModel(
            estimator=estimator,
            algorithm=self.algorithm,
            feature_names=FEATURE_COLUMNS,
            n_training_samples=len(X),
        )
