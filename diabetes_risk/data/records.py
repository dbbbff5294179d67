"""
Typed patient records and the immutable Dataset container.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Iterator, List, Sequence, Tuple, Union, overload

import numpy as np
import pandas as pd
from pydantic import BaseModel, ConfigDict, Field

# Column names as they appear in the Patient table
SOURCE_COLUMNS = (
    "Id",
    "Pregnancies",
    "Glucose",
    "BloodPressure",
    "SkinThickness",
    "Insulin",
    "BMI",
    "DiabetesPedigreeFunction",
    "Age",
    "DiabetesValue",
)


class PatientMeasurements(BaseModel):
    """The eight clinical measurements used as model inputs."""

    model_config = ConfigDict(
        frozen=True,
        populate_by_name=True,
        allow_inf_nan=False,
        json_schema_extra={
            "example": {
                "Pregnancies": 1,
                "Glucose": 120,
                "BloodPressure": 81,
                "SkinThickness": 26,
                "Insulin": 100,
                "BMI": 30.1,
                "DiabetesPedigreeFunction": 0.987,
                "Age": 42,
            }
        },
    )

    pregnancies: float = Field(..., alias="Pregnancies", description="Number of pregnancies")
    glucose: float = Field(..., alias="Glucose", description="Plasma glucose concentration")
    blood_pressure: float = Field(..., alias="BloodPressure", description="Diastolic blood pressure (mm Hg)")
    skin_thickness: float = Field(..., alias="SkinThickness", description="Triceps skin fold thickness (mm)")
    insulin: float = Field(..., alias="Insulin", description="2-hour serum insulin (mu U/ml)")
    bmi: float = Field(..., alias="BMI", description="Body mass index")
    diabetes_pedigree_function: float = Field(
        ..., alias="DiabetesPedigreeFunction", description="Diabetes pedigree function score"
    )
    age: float = Field(..., alias="Age", description="Age in years")


class PatientRecord(PatientMeasurements):
    """One row of the Patient table: measurements, identifier and target."""

    id: float = Field(..., alias="Id", description="Row identifier, not a feature")
    diabetes_value: float = Field(..., alias="DiabetesValue", description="Diabetes risk score (label)")


@dataclass(frozen=True)
class Dataset:
    """Immutable, ordered sequence of PatientRecord."""

    records: Tuple[PatientRecord, ...]

    @classmethod
    def from_records(cls, records: Iterable[PatientRecord]) -> "Dataset":
        return cls(records=tuple(records))

    def __len__(self) -> int:
        return len(self.records)

    def __iter__(self) -> Iterator[PatientRecord]:
        return iter(self.records)

    @overload
    def __getitem__(self, index: int) -> PatientRecord: ...

    @overload
    def __getitem__(self, index: slice) -> "Dataset": ...

    def __getitem__(self, index: Union[int, slice]) -> Union[PatientRecord, "Dataset"]:
        if isinstance(index, slice):
            return Dataset(self.records[index])
        return self.records[index]

    def take(self, indices: Union[Sequence[int], np.ndarray]) -> "Dataset":
        """Return a new Dataset with the records at the given positions, in that order."""
        return Dataset(tuple(self.records[int(i)] for i in indices))

    def to_frame(self) -> pd.DataFrame:
        """DataFrame view using the source column names."""
        rows: List[dict] = [r.model_dump(by_alias=True) for r in self.records]
        return pd.DataFrame(rows, columns=list(SOURCE_COLUMNS))
