"""
Record source backed by a SQL database.

The query is a constant; the only input taken from outside is the
connection string, which is an SQLAlchemy URL.
"""

from __future__ import annotations

import logging
import time
from typing import List

import pandas as pd
from pydantic import ValidationError
from sqlalchemy import create_engine, text
from sqlalchemy.exc import SQLAlchemyError

from ..exceptions import SchemaMismatch, SourceUnavailable
from .records import SOURCE_COLUMNS, Dataset, PatientRecord

logger = logging.getLogger(__name__)

PATIENT_QUERY = (
    "SELECT CAST(Id AS REAL) AS Id, Pregnancies, Glucose, BloodPressure, SkinThickness, "
    "Insulin, BMI, DiabetesPedigreeFunction, Age, DiabetesValue FROM Patient"
)


def records_from_frame(df: pd.DataFrame) -> Dataset:
    """Coerce every row of a DataFrame into a PatientRecord, keeping row order."""
    missing = [c for c in SOURCE_COLUMNS if c not in df.columns]
    if missing:
        raise SchemaMismatch(f"Missing required columns: {missing}")

    records: List[PatientRecord] = []
    for position, row in enumerate(df[list(SOURCE_COLUMNS)].to_dict(orient="records")):
        try:
            records.append(PatientRecord.model_validate(row))
        except ValidationError as e:
            fields = sorted({str(err["loc"][0]) for err in e.errors() if err.get("loc")})
            raise SchemaMismatch(
                f"Row {position} cannot be coerced to PatientRecord (bad fields: {fields})"
            ) from e

    return Dataset.from_records(records)


class DatabaseRecordSource:
    """Load the Patient table through SQLAlchemy."""

    def __init__(self, connection_string: str, query: str = PATIENT_QUERY):
        self.connection_string = connection_string
        self.query = query

    def _read_frame(self) -> pd.DataFrame:
        try:
            engine = create_engine(self.connection_string)
        except (SQLAlchemyError, ImportError) as e:
            raise SourceUnavailable(f"Cannot create database engine: {e}") from e

        try:
            with engine.connect() as conn:
                return pd.read_sql(text(self.query), conn)
        # Newer pandas wraps query failures in its own DatabaseError
        except (SQLAlchemyError, pd.errors.DatabaseError) as e:
            raise SourceUnavailable(f"Cannot read patients from database: {e}") from e
        finally:
            engine.dispose()

    def load(self) -> Dataset:
        """Read all patient rows in source order and return them as a Dataset."""
        logger.info("Loading data from database...")
        start_time = time.time()

        df = self._read_frame()
        dataset = records_from_frame(df)

        elapsed_time = time.time() - start_time
        logger.info(f"Loaded {len(dataset)} patient records in {elapsed_time:.2f} seconds")
        return dataset
