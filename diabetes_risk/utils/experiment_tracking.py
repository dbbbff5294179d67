"""
MLflow tracking for pipeline runs.

One tracked run records the training config as params, the evaluation
metrics and the feature order the model was trained on.
"""

from __future__ import annotations

import logging
import math
import time
from typing import TYPE_CHECKING, Any, Dict, Optional, Sequence

import mlflow

if TYPE_CHECKING:
    from ..pipeline.evaluation import EvaluationMetrics

logger = logging.getLogger(__name__)

DEFAULT_TRACKING_URI = "file:./mlruns"
DEFAULT_EXPERIMENT_NAME = "diabetes_risk"
FEATURE_NAMES_ARTIFACT = "feature_names.yaml"


def flatten_params(params: Dict[str, Any], prefix: str = "") -> Dict[str, str]:
    """Nested config -> {"split.test_fraction": "0.2", ...}"""
    flat: Dict[str, str] = {}
    for key, value in params.items():
        name = f"{prefix}.{key}" if prefix else str(key)
        if isinstance(value, dict):
            flat.update(flatten_params(value, name))
        else:
            flat[name] = str(value)
    return flat


class ExperimentTracker:
    """Logs pipeline runs to one MLflow experiment."""

    def __init__(self, experiment_name: str = DEFAULT_EXPERIMENT_NAME,
                 tracking_uri: str = DEFAULT_TRACKING_URI):
        self.tracking_uri = tracking_uri
        self.experiment_name = experiment_name

        mlflow.set_tracking_uri(self.tracking_uri)
        self._activate_experiment()

    @classmethod
    def from_config(cls, mlflow_config: Dict[str, Any]) -> "ExperimentTracker":
        """Build from the ``experiment_tracking.mlflow`` section of the training config."""
        return cls(
            experiment_name=mlflow_config.get("experiment_name", DEFAULT_EXPERIMENT_NAME),
            tracking_uri=mlflow_config.get("tracking_uri", DEFAULT_TRACKING_URI),
        )

    def _activate_experiment(self) -> None:
        # A deleted experiment keeps its name reserved until purged
        existing = mlflow.get_experiment_by_name(self.experiment_name)
        if existing is not None and existing.lifecycle_stage == "deleted":
            renamed = f"{self.experiment_name}_{int(time.time())}"
            logger.warning(f"Experiment '{self.experiment_name}' is deleted, logging to '{renamed}'")
            self.experiment_name = renamed

        experiment = mlflow.set_experiment(self.experiment_name)
        logger.info(f"Tracking to MLflow experiment '{self.experiment_name}' "
                    f"({getattr(experiment, 'experiment_id', '?')}) at {self.tracking_uri}")

    def start_run(self, run_name: Optional[str] = None):
        """Context manager for one tracked pipeline run."""
        return mlflow.start_run(run_name=run_name)

    def log_config(self, config: Dict[str, Any]) -> None:
        """Record the training config as run params."""
        for key, value in flatten_params(config).items():
            try:
                mlflow.log_param(key, value)
            except Exception as e:
                logger.warning(f"Failed to log param {key}: {e}")

    def log_evaluation(self, metrics: "EvaluationMetrics") -> None:
        """Record test-set metrics. An undefined R-squared is left out."""
        values = {
            "rmse": metrics.rmse,
            "mae": metrics.mae,
            "mse": metrics.mse,
            "n_test_samples": metrics.n_samples,
        }
        if metrics.r_squared_defined:
            values["r_squared"] = metrics.r_squared

        for key, value in values.items():
            if isinstance(value, float) and not math.isfinite(value):
                continue
            try:
                mlflow.log_metric(key, value)
            except Exception as e:
                logger.warning(f"Failed to log metric {key}: {e}")

    def log_feature_names(self, feature_names: Sequence[str]) -> None:
        """Store the model's input order as a run artifact."""
        try:
            mlflow.log_dict({"feature_names": list(feature_names)}, FEATURE_NAMES_ARTIFACT)
        except Exception as e:
            logger.warning(f"Failed to log feature names: {e}")


def setup_experiment_tracking(config: Dict[str, Any]) -> Optional[ExperimentTracker]:
    """Tracker for ``experiment_tracking.backend == "mlflow"``, else None."""
    tracking_config = config.get("experiment_tracking", {})
    backend = tracking_config.get("backend", "none")

    if backend == "mlflow":
        return ExperimentTracker.from_config(tracking_config.get("mlflow", {}))
    if backend not in (None, "none"):
        logger.warning(f"Unknown experiment tracking backend '{backend}', tracking disabled")
    return None
