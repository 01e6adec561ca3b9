"""Exception types raised across the dashboard."""

from typing import Optional


class ProudProfitsError(Exception):
    """Base class for all dashboard errors."""


class ApiError(ProudProfitsError):
    """A request to the signals backend failed."""

    def __init__(self, message: str, status: Optional[int] = None, endpoint: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.status = status
        self.endpoint = endpoint

    def __str__(self):
        if self.status is not None:
            return f"{self.message} (status {self.status}, {self.endpoint})"
        return f"{self.message} ({self.endpoint})"


class SessionExpiredError(ApiError):
    """The backend answered 401 and the caller asked for an exception."""


class ApiConnectionError(ApiError):
    """The backend could not be reached (timeout, DNS, refused connection)."""


class ChartGeometryError(ProudProfitsError, ValueError):
    """Chart coordinates cannot be computed from the given input."""


class StreamError(ProudProfitsError):
    """The live price stream failed."""
