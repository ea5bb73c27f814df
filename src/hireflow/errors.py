from __future__ import annotations


class HireflowError(Exception):
    """Base class for pipeline errors that callers are expected to handle."""


class RegistryError(HireflowError):
    """The document registry could not be read or written."""


class ExtractionError(HireflowError):
    """Text extraction failed; the document is terminally failed."""


class StorageError(ExtractionError):
    """Object bytes could not be fetched from storage."""


class JobNotFoundError(HireflowError):
    pass


class ApplicationNotFoundError(HireflowError):
    pass


class JobAccessError(HireflowError):
    """The caller does not own the job or application."""


class ValidationError(HireflowError):
    pass


class RetryPolicyError(HireflowError):
    """The configured retry policy forbids resetting failed documents."""
