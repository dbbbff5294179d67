"""
Data plausibility checks for loaded patient data.

Schema problems (missing or non-numeric values) are rejected at load time.
The rules here only flag values that are numeric but clinically implausible;
they are reported, never used to drop or alter rows.
"""

import logging
from typing import Dict, List

import pandas as pd

logger = logging.getLogger(__name__)


class DataValidator:
    """Validate data quality and consistency."""

    def __init__(self):
        self.validation_rules = {}

    def add_rule(self, feature: str, rule_type: str, **kwargs):
        """Add validation rule for a feature."""
        if feature not in self.validation_rules:
            self.validation_rules[feature] = []

        self.validation_rules[feature].append({
            'type': rule_type,
            'params': kwargs
        })

    def validate(self, df: pd.DataFrame) -> Dict[str, List[str]]:
        """Validate dataframe against rules."""
        violations = {}

        for feature, rules in self.validation_rules.items():
            if feature not in df.columns:
                continue

            feature_violations = []

            for rule in rules:
                if rule['type'] == 'range':
                    min_val = rule['params'].get('min')
                    max_val = rule['params'].get('max')

                    if min_val is not None:
                        violation_count = (df[feature] < min_val).sum()
                        if violation_count > 0:
                            feature_violations.append(f"{violation_count} values below minimum {min_val}")

                    if max_val is not None:
                        violation_count = (df[feature] > max_val).sum()
                        if violation_count > 0:
                            feature_violations.append(f"{violation_count} values above maximum {max_val}")

                elif rule['type'] == 'zero_rate':
                    # Pima-style data encodes unmeasured values as 0
                    max_rate = rule['params'].get('max_rate', 0.1)
                    zero_rate = (df[feature] == 0).mean()

                    if zero_rate > max_rate:
                        feature_violations.append(f"Zero rate {zero_rate:.2%} exceeds {max_rate:.2%}")

                elif rule['type'] == 'unique':
                    duplicate_count = df[feature].duplicated().sum()
                    if duplicate_count > 0:
                        feature_violations.append(f"{duplicate_count} duplicated values")

            if feature_violations:
                violations[feature] = feature_violations

        return violations

    def setup_clinical_rules(self):
        """Setup validation rules for diabetes patient data."""
        self.add_rule('Id', 'unique')

        self.add_rule('Pregnancies', 'range', min=0, max=20)
        self.add_rule('Glucose', 'range', min=0, max=300)
        self.add_rule('BloodPressure', 'range', min=0, max=200)
        self.add_rule('SkinThickness', 'range', min=0, max=100)
        self.add_rule('Insulin', 'range', min=0, max=900)
        self.add_rule('BMI', 'range', min=0, max=80)
        self.add_rule('DiabetesPedigreeFunction', 'range', min=0, max=3)
        self.add_rule('Age', 'range', min=0, max=120)

        # Zero means "not measured" for these
        for feature in ['Glucose', 'BloodPressure', 'BMI']:
            self.add_rule(feature, 'zero_rate', max_rate=0.05)
