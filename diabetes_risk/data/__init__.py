"""Patient records and the sources that supply them."""

from .records import SOURCE_COLUMNS, Dataset, PatientMeasurements, PatientRecord
from .record_source import PATIENT_QUERY, DatabaseRecordSource, records_from_frame

__all__ = [
    'SOURCE_COLUMNS',
    'Dataset',
    'PatientMeasurements',
    'PatientRecord',
    'PATIENT_QUERY',
    'DatabaseRecordSource',
    'records_from_frame',
]
