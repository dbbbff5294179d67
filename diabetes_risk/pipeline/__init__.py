"""Pipeline stages and orchestration."""

from .features import (
    FEATURE_COLUMNS,
    LABEL_COLUMN,
    to_features,
    to_label,
    build_feature_matrix,
    build_inference_matrix,
)

from .splitting import SplitResult, split_dataset

from .training import FittedModel, Regressor, Trainer, create_regressor

from .evaluation import EvaluationMetrics, RegressionEvaluator, evaluate

from .prediction import Predictor, predict

from .preprocessing import DataValidator

from .training_pipeline import DiabetesRiskPipeline, PipelineStage, PipelineState

__all__ = [
    'FEATURE_COLUMNS',
    'LABEL_COLUMN',
    'to_features',
    'to_label',
    'build_feature_matrix',
    'build_inference_matrix',
    'SplitResult',
    'split_dataset',
    'FittedModel',
    'Regressor',
    'Trainer',
    'create_regressor',
    'EvaluationMetrics',
    'RegressionEvaluator',
    'evaluate',
    'Predictor',
    'predict',
    'DataValidator',
    'DiabetesRiskPipeline',
    'PipelineStage',
    'PipelineState',
]
