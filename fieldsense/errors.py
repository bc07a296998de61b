"""Exceptions raised inside fieldsense.

None of these escape the public classification API: each one marks a
degradation point where the caller falls back to a weaker answer.
"""


class FieldSenseError(Exception):
    """Base exception for all fieldsense errors."""
    pass


class ConfigurationError(FieldSenseError):
    """Configuration is invalid or missing."""
    pass


class InputError(FieldSenseError):
    """Signal text is empty or unusable after normalization."""
    pass


class ModelError(FieldSenseError):
    """Base class for generative model failures."""
    pass


class ModelUnavailableError(ModelError):
    """The generative model service is absent or disabled."""
    pass


class ModelTimeoutError(ModelError):
    """The model did not answer within the allowed time."""
    pass


class ModelFailureError(ModelError):
    """Any other model runtime failure."""
    pass


class PersistenceError(FieldSenseError):
    """Key-value storage read or write failed."""
    pass
