"""
Synthetic Patient Data Generator

Generates Pima-style patient measurements with a continuous diabetes risk
score and writes them to the Patient table of a database, so the training
pipeline can be run end-to-end without access to real patient data.
"""

import argparse
import logging
from pathlib import Path
from typing import Optional

import numpy as np
import pandas as pd
from sqlalchemy import create_engine

from .records import SOURCE_COLUMNS

# Set up logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

PATIENT_TABLE = "Patient"


class PatientDataGenerator:
    """Generate synthetic patient records in the Patient table layout."""

    def __init__(self, seed: int = 42, noise_std: float = 0.3):
        """Initialize the generator.

        Args:
            seed: Random seed for reproducibility
            noise_std: Standard deviation of the noise added to the risk score
        """
        self.seed = seed
        self.noise_std = noise_std
        self.rng = np.random.RandomState(seed)

    def generate_measurements(self, num_patients: int) -> pd.DataFrame:
        """Draw the eight clinical measurements for num_patients patients."""
        rng = self.rng

        age = np.clip(rng.gamma(shape=4.0, scale=8.0, size=num_patients) + 21, 21, 81).round()
        pregnancies = np.clip(rng.poisson(lam=1 + (age - 21) * 0.08), 0, 17)

        bmi = np.clip(rng.normal(32.0, 7.0, num_patients), 15, 67).round(1)
        glucose = np.clip(rng.normal(95 + bmi * 0.8, 25), 44, 199).round()
        blood_pressure = np.clip(rng.normal(60 + age * 0.3, 11), 24, 122).round()
        skin_thickness = np.clip(rng.normal(bmi * 0.9, 8), 7, 99).round()
        insulin = np.clip(rng.lognormal(mean=np.log(60 + glucose * 0.5), sigma=0.5), 14, 846).round()
        pedigree = np.clip(rng.lognormal(mean=np.log(0.4), sigma=0.6, size=num_patients), 0.078, 2.42).round(3)

        return pd.DataFrame({
            "Pregnancies": pregnancies.astype(float),
            "Glucose": glucose,
            "BloodPressure": blood_pressure,
            "SkinThickness": skin_thickness,
            "Insulin": insulin,
            "BMI": bmi,
            "DiabetesPedigreeFunction": pedigree,
            "Age": age,
        })

    def generate_target_variable(self, data: pd.DataFrame) -> pd.Series:
        """Continuous risk score driven mostly by glucose, BMI, age and pedigree."""
        glucose_risk = (data["Glucose"] - 100) / 25
        bmi_risk = (data["BMI"] - 25) / 7
        age_risk = (data["Age"] - 30) / 15
        pedigree_risk = data["DiabetesPedigreeFunction"] * 1.5
        pregnancy_risk = data["Pregnancies"] * 0.05

        weights = np.array([0.45, 0.25, 0.15, 0.10, 0.05])
        risk_df = pd.DataFrame({
            "glucose_risk": glucose_risk,
            "bmi_risk": bmi_risk,
            "age_risk": age_risk,
            "pedigree_risk": pedigree_risk,
            "pregnancy_risk": pregnancy_risk,
        }, index=data.index)

        total_risk = risk_df.values.dot(weights)
        noise = self.rng.normal(0.0, self.noise_std, len(data))
        return pd.Series(np.round(total_risk + noise, 4), index=data.index, name="DiabetesValue")

    def generate_dataset(self, num_patients: int = 500) -> pd.DataFrame:
        """Generate a complete Patient table."""
        if num_patients <= 0:
            raise ValueError(f"num_patients must be positive, got {num_patients}")

        logger.info(f"Generating {num_patients} synthetic patients (seed={self.seed})")
        df = self.generate_measurements(num_patients)
        df.insert(0, "Id", np.arange(1, num_patients + 1))
        df["DiabetesValue"] = self.generate_target_variable(df)

        logger.info(f"Risk score mean={df['DiabetesValue'].mean():.3f}, std={df['DiabetesValue'].std():.3f}")
        return df[list(SOURCE_COLUMNS)]


def write_to_database(df: pd.DataFrame, connection_string: str, table: str = PATIENT_TABLE) -> int:
    """Create or replace the Patient table with the rows of df."""
    engine = create_engine(connection_string)
    try:
        df.to_sql(table, engine, if_exists="replace", index=False)
    finally:
        engine.dispose()
    logger.info(f"Wrote {len(df)} rows to table '{table}'")
    return len(df)


def main(argv: Optional[list] = None):
    """Main function to generate synthetic patient data."""
    parser = argparse.ArgumentParser(description="Generate synthetic diabetes patient data")
    parser.add_argument("--num_patients", type=int, default=500,
                        help="Number of patients to generate")
    parser.add_argument("--db", type=str, default="sqlite:///data/patients.db",
                        help="SQLAlchemy URL of the target database")
    parser.add_argument("--seed", type=int, default=42,
                        help="Random seed")
    args = parser.parse_args(argv)

    if args.db.startswith("sqlite:///"):
        db_file = Path(args.db[len("sqlite:///"):])
        if db_file.parent != Path("."):
            db_file.parent.mkdir(parents=True, exist_ok=True)

    generator = PatientDataGenerator(seed=args.seed)
    df = generator.generate_dataset(num_patients=args.num_patients)
    write_to_database(df, args.db)


if __name__ == "__main__":
    main()
