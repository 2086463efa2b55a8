"""
TravelPlaces Backend — Custom Exception Hierarchy
===================================================

What:  Application-specific exceptions, each tagged with one ErrorKind.
How:   Each exception class carries a message, an optional context dict, and a
       `kind`. The single exception handler registered in main.py looks up the
       HTTP status for that kind in STATUS_BY_KIND.
Who:   Raised by services and dependencies; caught by the global handler.
When:  During request processing when a request cannot be completed.

Exception Hierarchy:
    TravelPlacesError (base)
    ├── InvalidInputError         → 400 Bad Request
    ├── NotFoundError             → 404 Not Found
    ├── QueryFailedError          → 500 Internal Server Error
    └── UpstreamUnavailableError  → 503 Service Unavailable

Every failure is terminal for its request and never fatal to the process.
"""

from enum import Enum
from typing import Any, Dict, Optional


class ErrorKind(str, Enum):
    """Machine-readable error categories; the value is the `error` field of responses."""

    NOT_FOUND = "not_found"
    UPSTREAM_UNAVAILABLE = "upstream_unavailable"
    QUERY_FAILED = "query_failed"
    INVALID_INPUT = "invalid_input"


# The one place where error kinds become HTTP status codes
STATUS_BY_KIND: Dict[ErrorKind, int] = {
    ErrorKind.INVALID_INPUT: 400,
    ErrorKind.NOT_FOUND: 404,
    ErrorKind.QUERY_FAILED: 500,
    ErrorKind.UPSTREAM_UNAVAILABLE: 503,
}


class TravelPlacesError(Exception):
    """
    Base exception for all TravelPlaces application errors.

    Attributes:
        message:  User-facing error description (returned in the API response)
        context:  Additional debug info (logged; returned only as `details`
                  for kinds that opt in)
        kind:     ErrorKind used to pick the HTTP status
    """

    kind: ErrorKind = ErrorKind.QUERY_FAILED

    def __init__(
        self,
        message: str = "An unexpected error occurred",
        context: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.context = context or {}
        super().__init__(self.message)

    @property
    def status_code(self) -> int:
        return STATUS_BY_KIND[self.kind]


class InvalidInputError(TravelPlacesError):
    """
    Raised when client input fails validation.

    When:    Malformed country code, unknown sort order, duplicate username,
             wrong credentials, out-of-range query parameters.
    HTTP:    400 Bad Request
    """

    kind = ErrorKind.INVALID_INPUT

    def __init__(
        self,
        message: str = "Invalid input",
        field: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        if field:
            ctx["field"] = field
        super().__init__(message=message, context=ctx)
        self.field = field


class NotFoundError(TravelPlacesError):
    """
    Raised when a requested resource does not exist.

    When:    GET /attraction/{country}/{id} with an id absent from the dataset.
    HTTP:    404 Not Found
    """

    kind = ErrorKind.NOT_FOUND

    def __init__(
        self,
        resource: str = "resource",
        resource_id: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        message = f"The requested {resource} was not found"
        if resource_id:
            message = f"{resource} with ID '{resource_id}' was not found"
        ctx = context or {}
        ctx["resource"] = resource
        if resource_id:
            ctx["resource_id"] = resource_id
        super().__init__(message=message, context=ctx)


class QueryFailedError(TravelPlacesError):
    """
    Raised when a query against a dataset or the credential store fails.

    When:    Corrupt or partial dataset download, missing table/column,
             credential store errors.
    HTTP:    500 Internal Server Error

    The underlying driver message travels in `context["reason"]` and is
    returned to the client when settings.expose_error_details is on.
    """

    kind = ErrorKind.QUERY_FAILED

    def __init__(
        self,
        message: str = "The database query failed",
        reason: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        if reason:
            ctx["reason"] = reason
        super().__init__(message=message, context=ctx)
        self.reason = reason


class UpstreamUnavailableError(TravelPlacesError):
    """
    Raised when a required object could not be fetched from object storage.

    When:    The `{country}.db` snapshot is missing, unreadable, or S3 is down.
             Missing images never raise; they resolve to null instead.
    HTTP:    503 Service Unavailable
    """

    kind = ErrorKind.UPSTREAM_UNAVAILABLE

    def __init__(
        self,
        message: str = "Could not connect to the dataset. Please try again later.",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)
