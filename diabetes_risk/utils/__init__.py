"""Utility modules for the ML pipeline."""

from .experiment_tracking import ExperimentTracker, setup_experiment_tracking

__all__ = [
    'ExperimentTracker',
    'setup_experiment_tracking',
]
