"""
FastAPI serving endpoint for the diabetes risk model.

The app is built around a model that was fitted in the same process
(``create_app(model)``); there is no model file to load. The model is kept
on ``app.state`` and only read by the endpoints, so concurrent requests
share it safely.

Endpoints:
- GET  /health         service and model status
- POST /predict        score one patient
- POST /predict/batch  score up to MAX_BATCH_SIZE patients
- GET  /model/info     algorithm and feature order
"""

import logging
import time
from datetime import datetime
from typing import List, Optional

from fastapi import FastAPI, HTTPException, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from ..data.records import PatientMeasurements
from ..exceptions import ModelNotFitted
from ..pipeline.prediction import Predictor
from ..pipeline.training import FittedModel

logger = logging.getLogger(__name__)

MAX_BATCH_SIZE = 1000


class PredictionRequest(PatientMeasurements):
    """Input schema: the eight measurements plus an optional caller reference."""

    patient_id: Optional[str] = Field(None, description="Caller-side patient reference, echoed back")


class PredictionResponse(BaseModel):
    """Response schema for predictions."""

    patient_id: Optional[str] = Field(None, description="Patient reference from the request")
    prediction: float = Field(..., description="Predicted diabetes value")
    timestamp: str = Field(..., description="Prediction timestamp")
    model_version: str = Field(..., description="Algorithm of the fitted model")


class HealthResponse(BaseModel):
    """Health check response schema."""

    status: str = Field(..., description="Service status")
    model_loaded: bool = Field(..., description="Whether a fitted model is available")
    timestamp: str = Field(..., description="Health check timestamp")
    uptime_seconds: float = Field(..., description="Service uptime in seconds")


class BatchPredictionRequest(BaseModel):
    """Batch prediction request schema."""

    patients: List[PredictionRequest] = Field(..., description="List of patient records")


class BatchPredictionResponse(BaseModel):
    """Batch prediction response schema."""

    predictions: List[PredictionResponse] = Field(..., description="List of predictions")
    total_processed: int = Field(..., description="Total number of patients processed")
    processing_time_seconds: float = Field(..., description="Total processing time")


def create_app(model: Optional[FittedModel], title: str = "Diabetes Risk Prediction API") -> FastAPI:
    """Create a FastAPI application serving ``model``."""

    app = FastAPI(
        title=title,
        description="Regression of a continuous diabetes risk score from clinical measurements",
        version="1.0.0",
        docs_url="/docs",
        redoc_url="/redoc",
    )
    app.state.model = model
    app.state.startup_time = time.time()

    def get_predictor() -> Predictor:
        if app.state.model is None:
            raise HTTPException(status_code=503, detail="Model not loaded")
        return Predictor(app.state.model)

    def model_version() -> str:
        return app.state.model.algorithm if app.state.model is not None else "unknown"

    @app.get("/health", response_model=HealthResponse)
    async def health_check():
        """Health check endpoint."""
        return HealthResponse(
            status="healthy" if app.state.model is not None else "unhealthy",
            model_loaded=app.state.model is not None,
            timestamp=datetime.now().isoformat(),
            uptime_seconds=time.time() - app.state.startup_time,
        )

    @app.post("/predict", response_model=PredictionResponse)
    def predict(patient: PredictionRequest):
        """Make prediction for a single patient."""
        predictor = get_predictor()

        start_time = time.time()
        value = predictor.predict(patient)
        processing_time = time.time() - start_time

        logger.info(f"Prediction for {patient.patient_id or '<anonymous>'}: "
                    f"value={value:.4f}, time={processing_time:.3f}s")

        return PredictionResponse(
            patient_id=patient.patient_id,
            prediction=value,
            timestamp=datetime.now().isoformat(),
            model_version=model_version(),
        )

    @app.post("/predict/batch", response_model=BatchPredictionResponse)
    def predict_batch(request: BatchPredictionRequest):
        """Make predictions for multiple patients."""
        predictor = get_predictor()

        if len(request.patients) > MAX_BATCH_SIZE:
            raise HTTPException(status_code=400, detail=f"Batch size too large (max {MAX_BATCH_SIZE})")

        start_time = time.time()
        values = predictor.predict_batch(request.patients)
        timestamp = datetime.now().isoformat()

        predictions = [
            PredictionResponse(
                patient_id=patient.patient_id,
                prediction=value,
                timestamp=timestamp,
                model_version=model_version(),
            )
            for patient, value in zip(request.patients, values)
        ]
        processing_time = time.time() - start_time

        logger.info(f"Batch prediction completed: {len(predictions)} patients "
                    f"in {processing_time:.3f}s")

        return BatchPredictionResponse(
            predictions=predictions,
            total_processed=len(predictions),
            processing_time_seconds=processing_time,
        )

    @app.get("/model/info")
    async def model_info():
        """Get model information."""
        if app.state.model is None:
            raise HTTPException(status_code=503, detail="Model not loaded")

        fitted = app.state.model
        return {
            "model_type": type(fitted.estimator).__name__,
            "algorithm": fitted.algorithm,
            "feature_names": list(fitted.feature_names),
            "num_features": len(fitted.feature_names),
            "n_training_samples": fitted.n_training_samples,
            "trained_at": fitted.trained_at,
        }

    @app.exception_handler(ModelNotFitted)
    async def model_not_fitted_handler(request: Request, exc: ModelNotFitted):
        return JSONResponse(status_code=503, content={"detail": str(exc)})

    @app.exception_handler(ValueError)
    async def value_error_handler(request: Request, exc: ValueError):
        """Handle validation errors."""
        return JSONResponse(
            status_code=400,
            content={"detail": f"Validation error: {str(exc)}"}
        )

    return app
