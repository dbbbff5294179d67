"""Serving utilities and API components."""

from .api import create_app, PredictionRequest, PredictionResponse

__all__ = ['create_app', 'PredictionRequest', 'PredictionResponse']
