"""Test configuration and fixtures."""

import copy

import numpy as np
import pandas as pd
import pytest

from diabetes_risk.config import DEFAULT_CONFIG
from diabetes_risk.data.generate_patient_data import PatientDataGenerator, write_to_database
from diabetes_risk.data.records import Dataset, PatientRecord


def make_record(i: float, label: float = None, **overrides) -> PatientRecord:
    """Record whose eight measurements all equal i."""
    values = {
        "Id": i,
        "Pregnancies": i,
        "Glucose": i,
        "BloodPressure": i,
        "SkinThickness": i,
        "Insulin": i,
        "BMI": i,
        "DiabetesPedigreeFunction": i,
        "Age": i,
        "DiabetesValue": i if label is None else label,
    }
    values.update(overrides)
    return PatientRecord.model_validate(values)


@pytest.fixture(autouse=True)
def no_connection_env(monkeypatch):
    """Keep a developer's connection string out of the tests."""
    monkeypatch.delenv("DIABETES_DB_CONNECTION", raising=False)


@pytest.fixture
def linear_dataset():
    """10 records with features [i]*8 and label i."""
    return Dataset.from_records(make_record(float(i)) for i in range(10))


@pytest.fixture
def sample_patient_frame():
    """Synthetic Patient table with a learnable risk signal."""
    generator = PatientDataGenerator(seed=42)
    return generator.generate_dataset(num_patients=300)


@pytest.fixture
def sample_dataset(sample_patient_frame):
    from diabetes_risk.data.record_source import records_from_frame
    return records_from_frame(sample_patient_frame)


@pytest.fixture
def sqlite_url(tmp_path, sample_patient_frame):
    """SQLite database with a populated Patient table."""
    url = f"sqlite:///{tmp_path / 'patients.db'}"
    write_to_database(sample_patient_frame, url)
    return url


@pytest.fixture
def sample_config():
    """Small, fast configuration for testing."""
    config = copy.deepcopy(DEFAULT_CONFIG)
    config["model"]["random_forest"] = {"n_estimators": 20, "min_samples_leaf": 1}
    config["experiment_tracking"] = {"backend": "none"}
    return config


@pytest.fixture
def random_frame():
    """Small DataFrame in the Patient table layout."""
    rng = np.random.RandomState(0)
    n = 20
    return pd.DataFrame({
        "Id": np.arange(n),
        "Pregnancies": rng.randint(0, 10, n),
        "Glucose": rng.normal(120, 20, n),
        "BloodPressure": rng.normal(70, 10, n),
        "SkinThickness": rng.normal(25, 5, n),
        "Insulin": rng.normal(100, 30, n),
        "BMI": rng.normal(30, 5, n),
        "DiabetesPedigreeFunction": rng.uniform(0.1, 2.0, n),
        "Age": rng.randint(21, 80, n),
        "DiabetesValue": rng.normal(1.0, 0.5, n),
    })


@pytest.fixture
def record_factory():
    return make_record
