"""
Main Training Pipeline

Load -> Split -> Train -> Evaluate -> Serve, with the pipeline state held
as an explicit value on each DiabetesRiskPipeline instance.
"""

from __future__ import annotations

import argparse
import dataclasses
import logging
import sys
from dataclasses import dataclass
from datetime import datetime
from enum import IntEnum
from pathlib import Path
from typing import Any, Dict, List, Optional, Protocol, Union

import yaml
from pydantic import ValidationError

from ..config import RANDOM_SEED, TEST_FRACTION, load_config, load_connection_string
from ..data.record_source import DatabaseRecordSource
from ..data.records import Dataset, PatientMeasurements
from ..exceptions import (
    ConfigurationError,
    EmptyTestSet,
    EmptyTrainingSet,
    InvalidFraction,
    ModelNotFitted,
    PipelineError,
    PipelineStateError,
    SchemaMismatch,
    SourceUnavailable,
)
from ..utils.experiment_tracking import setup_experiment_tracking
from .evaluation import EvaluationMetrics, evaluate
from .features import build_feature_matrix
from .prediction import Predictor
from .preprocessing import DataValidator
from .splitting import SplitResult, split_dataset
from .training import FittedModel, Trainer

logger = logging.getLogger(__name__)

# Sample patient scored when no record is supplied on the command line
SAMPLE_PATIENT = PatientMeasurements(
    pregnancies=1,
    glucose=120,
    blood_pressure=81,
    skin_thickness=26,
    insulin=100,
    bmi=30.1,
    diabetes_pedigree_function=0.987,
    age=42,
)


class RecordSource(Protocol):
    def load(self) -> Dataset: ...


class PipelineStage(IntEnum):
    UNLOADED = 0
    LOADED = 1
    SPLIT = 2
    TRAINED = 3
    EVALUATED = 4
    SERVING = 5


@dataclass(frozen=True)
class PipelineState:
    """Everything one pipeline run has produced so far."""

    stage: PipelineStage = PipelineStage.UNLOADED
    dataset: Optional[Dataset] = None
    split: Optional[SplitResult] = None
    model: Optional[FittedModel] = None
    metrics: Optional[EvaluationMetrics] = None


# =====================
# DiabetesRiskPipeline
# =====================
class DiabetesRiskPipeline:
    """Regression pipeline predicting a continuous diabetes risk score."""

    def __init__(self, config: Optional[Dict[str, Any]] = None, trainer: Optional[Trainer] = None):
        self.config = config if config is not None else load_config(None)
        self.state = PipelineState()

        split_cfg = self.config.get("split", {})
        self.test_fraction = split_cfg.get("test_fraction", TEST_FRACTION)
        self.seed = split_cfg.get("seed", self.config.get("random_seed", RANDOM_SEED))

        self.trainer = trainer or Trainer.from_config(self.config)
        self.experiment_tracker = setup_experiment_tracking(self.config)

    @property
    def stage(self) -> PipelineStage:
        return self.state.stage

    def _require_stage(self, *allowed: PipelineStage, action: str) -> None:
        if self.state.stage not in allowed:
            expected = " or ".join(s.name for s in allowed)
            raise PipelineStateError(
                f"Cannot {action} in stage {self.state.stage.name} (expected {expected})"
            )

    def _advance(self, stage: PipelineStage, **changes: Any) -> None:
        if stage < self.state.stage:
            raise PipelineStateError(f"Cannot move back from {self.state.stage.name} to {stage.name}")
        self.state = dataclasses.replace(self.state, stage=stage, **changes)

    # ---------- Data ----------
    def load_data(self, source: RecordSource) -> Dataset:
        self._require_stage(PipelineStage.UNLOADED, action="load data")

        dataset = source.load()
        logger.info(f"Data loaded: {len(dataset)} patients")
        self.validate_data(dataset)

        self._advance(PipelineStage.LOADED, dataset=dataset)
        return dataset

    def validate_data(self, dataset: Dataset) -> Dict[str, List[str]]:
        logger.info("Validating data quality...")
        validator = DataValidator()
        validator.setup_clinical_rules()
        violations = validator.validate(dataset.to_frame())
        if violations:
            logger.warning(f"Found {len(violations)} data quality issues")
            for feature, messages in violations.items():
                logger.warning(f"  {feature}: {'; '.join(messages)}")
        else:
            logger.info("Data validation passed")
        return violations

    # ---------- Splits ----------
    def split_data(self) -> SplitResult:
        self._require_stage(PipelineStage.LOADED, action="split data")

        split = split_dataset(self.state.dataset, self.test_fraction, seed=self.seed)
        logger.info(f"Training Set: {split.train_size} patients")

        self._advance(PipelineStage.SPLIT, split=split)
        return split

    # ---------- Training ----------
    def train_model(self) -> FittedModel:
        self._require_stage(PipelineStage.SPLIT, action="train")

        X_train, y_train = build_feature_matrix(self.state.split.train)
        if len(X_train) == 0:
            raise EmptyTrainingSet(
                f"Split produced no training records (test_fraction={self.test_fraction}, seed={self.seed})"
            )

        logger.info("Preparing training operations...")
        model = self.trainer.fit(X_train, y_train)

        self._advance(PipelineStage.TRAINED, model=model)
        return model

    # ---------- Evaluation ----------
    def evaluate_model(self) -> EvaluationMetrics:
        self._require_stage(PipelineStage.TRAINED, action="evaluate")

        logger.info(f"Test Set: {self.state.split.test_size} patients")
        X_test, y_test = build_feature_matrix(self.state.split.test)
        metrics = evaluate(self.state.model, X_test, y_test)

        self._advance(PipelineStage.EVALUATED, metrics=metrics)
        return metrics

    # ---------- Serving ----------
    def predict(self, record: PatientMeasurements) -> float:
        if self.state.stage < PipelineStage.TRAINED or self.state.model is None:
            raise ModelNotFitted(f"Cannot predict in stage {self.state.stage.name}: no model trained yet")

        value = Predictor(self.state.model).predict(record)
        if self.state.stage != PipelineStage.SERVING:
            self._advance(PipelineStage.SERVING)
        return value

    # ---------- Orchestration ----------
    def _run_stages(self, source: RecordSource) -> None:
        self.load_data(source)
        self.split_data()
        self.train_model()
        try:
            self.evaluate_model()
        except EmptyTestSet as e:
            # The fitted model stays usable for predictions
            logger.error(f"Evaluation skipped: {e}")

    def run(self, source: RecordSource) -> PipelineState:
        """Run load, split, train and evaluate. Returns the resulting state."""
        logger.info("Starting diabetes risk pipeline...")

        if self.experiment_tracker is None:
            self._run_stages(source)
        else:
            run_name = f"{self.trainer.algorithm}_{datetime.now().strftime('%Y%m%d_%H%M%S')}"
            with self.experiment_tracker.start_run(run_name):
                self.experiment_tracker.log_config(self.config)
                self._run_stages(source)
                if self.state.metrics is not None:
                    self.experiment_tracker.log_evaluation(self.state.metrics)
                self.experiment_tracker.log_feature_names(self.state.model.feature_names)

        logger.info("Pipeline completed successfully!")
        return self.state


# =====================
# Console report
# =====================

def format_metrics_report(metrics: EvaluationMetrics) -> str:
    lines = [
        "*************************************************",
        "*       Model quality metrics evaluation         ",
        "*------------------------------------------------",
        f"*       RSquared Score:      {metrics.r_squared:.2f}",
        f"*       Root Mean Squared Error:      {metrics.rmse:.2f}",
        "*************************************************",
    ]
    return "\n".join(lines)


def load_record(path: Union[str, Path]) -> PatientMeasurements:
    """Read one patient record from a YAML or JSON file."""
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except OSError as e:
        raise ConfigurationError(f"Cannot read record file {path}: {e}") from e
    except yaml.YAMLError as e:
        raise SchemaMismatch(f"Record file {path} is not valid YAML/JSON: {e}") from e

    try:
        return PatientMeasurements.model_validate(data)
    except ValidationError as e:
        raise SchemaMismatch(f"Record in {path} does not match the patient schema: {e}") from e


ERROR_MESSAGES = {
    ConfigurationError: "Configuration error",
    SourceUnavailable: "Patient data source unavailable",
    SchemaMismatch: "Patient data does not match the expected schema",
    InvalidFraction: "Invalid test fraction",
    EmptyTrainingSet: "No training records available",
    EmptyTestSet: "No test records available",
    ModelNotFitted: "No fitted model available",
    PipelineStateError: "Pipeline stages invoked out of order",
}


def describe_error(error: Exception) -> str:
    for kind, message in ERROR_MESSAGES.items():
        if isinstance(error, kind):
            return f"{message}: {error}"
    return f"Pipeline failed: {error}"


# =====================
# CLI entrypoint
# =====================

def build_arg_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Train and evaluate the diabetes risk regression model")
    parser.add_argument("--config", type=str, default=None, help="Path to training configuration file")
    parser.add_argument("--settings", type=str, default=None, help="Path to settings file holding the connection string")
    parser.add_argument("--test-fraction", type=float, default=None, help="Fraction of records held out for testing")
    seed_group = parser.add_mutually_exclusive_group()
    seed_group.add_argument("--seed", type=int, default=None, help="Seed for the train/test partition")
    seed_group.add_argument("--no-seed", action="store_true", help="Draw a non-reproducible train/test partition")
    parser.add_argument("--predict-record", type=str, default=None, help="YAML/JSON file with one patient to score")
    parser.add_argument("--serve", action="store_true", help="Serve predictions over HTTP after training")
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = build_arg_parser().parse_args(argv)
    logging.basicConfig(level=logging.INFO, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s")

    try:
        config = load_config(args.config)
        if args.test_fraction is not None:
            config["split"]["test_fraction"] = args.test_fraction
        if args.no_seed:
            config["split"]["seed"] = None
        elif args.seed is not None:
            config["split"]["seed"] = args.seed

        connection_string = load_connection_string(args.settings)
        record = load_record(args.predict_record) if args.predict_record else SAMPLE_PATIENT

        pipeline = DiabetesRiskPipeline(config)
        state = pipeline.run(DatabaseRecordSource(connection_string))

        if state.metrics is not None:
            print(format_metrics_report(state.metrics))

        prediction = pipeline.predict(record)
        print(f"Predicted diabetes value: {prediction:.4f}")
    except (PipelineError, ConfigurationError) as e:
        logger.error(describe_error(e))
        print(describe_error(e), file=sys.stderr)
        return 1

    if args.serve:
        import uvicorn
        from ..serving.api import create_app

        server_cfg = config.get("serving", {})
        uvicorn.run(
            create_app(pipeline.state.model),
            host=server_cfg.get("host", "0.0.0.0"),
            port=server_cfg.get("port", 8000),
        )

    return 0


if __name__ == "__main__":
    sys.exit(main())
