"""Exception hierarchy for the air quality backend and viewer client."""

from typing import Optional


class AirwatchError(Exception):
    """Base exception for all airwatch errors."""


class ValidationError(AirwatchError):
    """
    A reading payload or query parameter was missing or malformed.

    Nothing is persisted or broadcast when this is raised.
    """

    def __init__(self, message: str, fields: Optional[list[str]] = None):
        self.fields = fields or []
        super().__init__(message)


class StoreUnavailableError(AirwatchError):
    """The persistence layer could not be read or written."""


class DeliveryFailure(AirwatchError):
    """A push to one viewer session failed. Never surfaced beyond that session."""

    def __init__(self, session_id: str, message: str):
        self.session_id = session_id
        super().__init__(message)
