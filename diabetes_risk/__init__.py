"""
Diabetes Risk Pipeline

Trains a regression model predicting a continuous diabetes risk score from
eight clinical measurements, evaluates it on a held-out split and serves
single-record predictions.
"""

__version__ = "1.0.0"
__author__ = "Clinical ML Team"
__email__ = "ml-team@clinical.ai"

from .data import Dataset, DatabaseRecordSource, PatientMeasurements, PatientRecord
from .exceptions import (
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
from .pipeline import (
    DiabetesRiskPipeline,
    EvaluationMetrics,
    FittedModel,
    Predictor,
    Trainer,
    evaluate,
    split_dataset,
)

__all__ = [
    'Dataset',
    'DatabaseRecordSource',
    'PatientMeasurements',
    'PatientRecord',
    'ConfigurationError',
    'EmptyTestSet',
    'EmptyTrainingSet',
    'InvalidFraction',
    'ModelNotFitted',
    'PipelineError',
    'PipelineStateError',
    'SchemaMismatch',
    'SourceUnavailable',
    'DiabetesRiskPipeline',
    'EvaluationMetrics',
    'FittedModel',
    'Predictor',
    'Trainer',
    'evaluate',
    'split_dataset',
]
