"""
Tests for patient records, the database record source and the data generator.
"""

from unittest.mock import patch

import numpy as np
import pandas as pd
import pytest
from pydantic import ValidationError
from sqlalchemy.exc import OperationalError

from diabetes_risk.data.generate_patient_data import PatientDataGenerator, main, write_to_database
from diabetes_risk.data.record_source import DatabaseRecordSource, records_from_frame
from diabetes_risk.data.records import SOURCE_COLUMNS, Dataset, PatientMeasurements, PatientRecord
from diabetes_risk.exceptions import SchemaMismatch, SourceUnavailable


class TestPatientRecords:
    """Test the typed record models."""

    def test_aliases_and_field_names(self):
        by_alias = PatientMeasurements.model_validate({
            "Pregnancies": 1, "Glucose": 120, "BloodPressure": 81, "SkinThickness": 26,
            "Insulin": 100, "BMI": 30.1, "DiabetesPedigreeFunction": 0.987, "Age": 42,
        })
        by_name = PatientMeasurements(
            pregnancies=1, glucose=120, blood_pressure=81, skin_thickness=26,
            insulin=100, bmi=30.1, diabetes_pedigree_function=0.987, age=42,
        )
        assert by_alias == by_name
        assert by_alias.glucose == 120.0

    def test_records_are_immutable(self, record_factory):
        record = record_factory(1.0)
        with pytest.raises(ValidationError):
            record.glucose = 200.0

    def test_non_finite_values_rejected(self, record_factory):
        with pytest.raises(ValidationError):
            record_factory(1.0, Glucose=float("nan"))
        with pytest.raises(ValidationError):
            record_factory(1.0, BMI=float("inf"))

    def test_label_required_on_record(self):
        with pytest.raises(ValidationError):
            PatientRecord.model_validate({c: 1.0 for c in SOURCE_COLUMNS if c != "DiabetesValue"})


class TestDataset:
    """Test the immutable Dataset container."""

    def test_indexing_and_slicing(self, linear_dataset):
        assert len(linear_dataset) == 10
        assert linear_dataset[3].id == 3.0
        head = linear_dataset[:4]
        assert isinstance(head, Dataset)
        assert [r.id for r in head] == [0.0, 1.0, 2.0, 3.0]

    def test_take_keeps_given_order(self, linear_dataset):
        taken = linear_dataset.take(np.array([7, 2, 5]))
        assert [r.id for r in taken] == [7.0, 2.0, 5.0]
        assert len(linear_dataset) == 10

    def test_to_frame_uses_source_columns(self, linear_dataset):
        df = linear_dataset.to_frame()
        assert list(df.columns) == list(SOURCE_COLUMNS)
        assert len(df) == 10
        assert df["DiabetesValue"].tolist() == [float(i) for i in range(10)]


class TestRecordsFromFrame:
    """Test DataFrame to Dataset coercion."""

    def test_coerces_numeric_types(self, sample_patient_frame):
        dataset = records_from_frame(sample_patient_frame)
        assert len(dataset) == len(sample_patient_frame)
        first = dataset[0]
        assert isinstance(first.id, float)
        assert first.glucose == float(sample_patient_frame.loc[0, "Glucose"])

    def test_missing_column(self, random_frame):
        with pytest.raises(SchemaMismatch, match="Missing required columns"):
            records_from_frame(random_frame.drop(columns=["Insulin"]))

    def test_null_value(self, random_frame):
        df = random_frame.copy()
        df.loc[4, "Glucose"] = np.nan
        with pytest.raises(SchemaMismatch, match="Row 4"):
            records_from_frame(df)

    def test_non_numeric_value(self, random_frame):
        df = random_frame.astype(object)
        df.loc[2, "BMI"] = "abc"
        with pytest.raises(SchemaMismatch, match="BMI"):
            records_from_frame(df)

    def test_extra_columns_ignored(self, random_frame):
        df = random_frame.assign(Comment="x")
        assert len(records_from_frame(df)) == len(random_frame)


class TestDatabaseRecordSource:
    """Test loading the Patient table through SQLAlchemy."""

    def test_load(self, sqlite_url, sample_patient_frame):
        dataset = DatabaseRecordSource(sqlite_url).load()

        assert len(dataset) == len(sample_patient_frame)
        assert [r.id for r in dataset] == sample_patient_frame["Id"].astype(float).tolist()
        assert dataset[10].diabetes_value == pytest.approx(sample_patient_frame.loc[10, "DiabetesValue"])

    def test_source_order_preserved(self, tmp_path, random_frame):
        url = f"sqlite:///{tmp_path / 'reversed.db'}"
        reversed_frame = random_frame.iloc[::-1].reset_index(drop=True)
        write_to_database(reversed_frame, url)

        dataset = DatabaseRecordSource(url).load()
        assert [r.id for r in dataset] == reversed_frame["Id"].astype(float).tolist()

    def test_empty_table(self, tmp_path, random_frame):
        url = f"sqlite:///{tmp_path / 'empty.db'}"
        write_to_database(random_frame.iloc[0:0], url)
        assert len(DatabaseRecordSource(url).load()) == 0

    def test_missing_table(self, tmp_path):
        url = f"sqlite:///{tmp_path / 'no_table.db'}"
        with pytest.raises(SourceUnavailable):
            DatabaseRecordSource(url).load()

    def test_unreachable_database(self, tmp_path):
        url = f"sqlite:///{tmp_path / 'missing_dir' / 'patients.db'}"
        with pytest.raises(SourceUnavailable):
            DatabaseRecordSource(url).load()

    def test_unknown_dialect(self):
        with pytest.raises(SourceUnavailable):
            DatabaseRecordSource("nosuchdialect://user@host/db").load()

    def test_query_failure_wrapped_by_pandas(self, sqlite_url):
        error = pd.errors.DatabaseError("Execution failed on sql: no such table: Patient")
        with patch("diabetes_risk.data.record_source.pd.read_sql", side_effect=error):
            with pytest.raises(SourceUnavailable, match="no such table"):
                DatabaseRecordSource(sqlite_url).load()

    def test_query_failure_from_sqlalchemy(self, sqlite_url):
        error = OperationalError("SELECT ...", {}, Exception("disk I/O error"))
        with patch("diabetes_risk.data.record_source.pd.read_sql", side_effect=error):
            with pytest.raises(SourceUnavailable):
                DatabaseRecordSource(sqlite_url).load()

    def test_null_in_table(self, tmp_path, random_frame):
        url = f"sqlite:///{tmp_path / 'nulls.db'}"
        df = random_frame.copy()
        df.loc[3, "Age"] = np.nan
        write_to_database(df, url)

        with pytest.raises(SchemaMismatch):
            DatabaseRecordSource(url).load()

    def test_text_in_numeric_column(self, tmp_path, random_frame):
        url = f"sqlite:///{tmp_path / 'text.db'}"
        df = random_frame.astype(object)
        df.loc[0, "Insulin"] = "abc"
        write_to_database(df, url)

        with pytest.raises(SchemaMismatch):
            DatabaseRecordSource(url).load()


class TestPatientDataGenerator:
    """Test synthetic data generation."""

    def test_generate_dataset(self):
        df = PatientDataGenerator(seed=1).generate_dataset(num_patients=50)

        assert list(df.columns) == list(SOURCE_COLUMNS)
        assert len(df) == 50
        assert df["Id"].tolist() == list(range(1, 51))
        assert not df.isnull().any().any()
        assert df["Glucose"].between(44, 199).all()
        assert df["Age"].between(21, 81).all()

    def test_reproducible(self):
        first = PatientDataGenerator(seed=7).generate_dataset(num_patients=20)
        second = PatientDataGenerator(seed=7).generate_dataset(num_patients=20)
        pd.testing.assert_frame_equal(first, second)

    def test_target_tracks_glucose(self):
        df = PatientDataGenerator(seed=3, noise_std=0.0).generate_dataset(num_patients=400)
        assert np.corrcoef(df["Glucose"], df["DiabetesValue"])[0, 1] > 0.5

    def test_invalid_size(self):
        with pytest.raises(ValueError):
            PatientDataGenerator().generate_dataset(num_patients=0)

    def test_main_writes_database(self, tmp_path):
        db_path = tmp_path / "out" / "patients.db"
        main(["--num_patients", "25", "--db", f"sqlite:///{db_path}", "--seed", "5"])

        assert db_path.exists()
        dataset = DatabaseRecordSource(f"sqlite:///{db_path}").load()
        assert len(dataset) == 25


if __name__ == "__main__":
    pytest.main([__file__])
