"""
Error kinds raised by the diabetes risk pipeline.

Every stage raises one of these and lets it propagate to its caller.
Nothing in the pipeline retries internally.
"""


class PipelineError(Exception):
    """Base class for errors raised by a pipeline stage."""


class SourceUnavailable(PipelineError):
    """The row source (database) could not be opened or queried."""


class SchemaMismatch(PipelineError):
    """A row returned by the source cannot be coerced to a PatientRecord."""


class InvalidFraction(PipelineError, ValueError):
    """Test fraction outside the open interval (0, 1)."""


class EmptyTrainingSet(PipelineError):
    """Training was requested with zero training records."""


class EmptyTestSet(PipelineError):
    """Evaluation was requested with zero test records."""


class ModelNotFitted(PipelineError):
    """A prediction was requested before a model exists."""


class PipelineStateError(PipelineError):
    """A pipeline stage was invoked out of order."""


class ConfigurationError(Exception):
    """Settings are missing or malformed."""
