"""Exception hierarchy for the worker platform helpers."""

from __future__ import annotations


class WorkerPlatformError(Exception):
    """Base class for errors raised by this package."""


class RecordNotFoundError(WorkerPlatformError):
    """A record that is required to exist is missing from the store."""

    def __init__(self, table: str, key: str):
        super().__init__(f"No record in {table} for key {key}")
        self.table = table
        self.key = key


class DeserializationError(WorkerPlatformError):
    """A JSON payload could not be decoded into the expected structure."""


class SynapseError(WorkerPlatformError):
    """The warehouse REST API returned a non-success response."""

    def __init__(self, status_code: int, message: str):
        super().__init__(f"Synapse returned {status_code}: {message}")
        self.status_code = status_code
        self.message = message

    @property
    def retryable(self) -> bool:
        return self.status_code == 429 or self.status_code >= 500


class UnsupportedAssessmentError(WorkerPlatformError, ValueError):
    """No summarizer handles the assessment's framework identifier."""
