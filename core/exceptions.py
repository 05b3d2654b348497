"""Custom exception classes for the application.

Every error the API can return is an `AppException` subclass carrying its
HTTP status; the handlers in `core.error_handlers` turn them into the
standard error envelope.
"""

from typing import Optional, Any, Dict, Iterable, List, Sequence


def describe_validation_errors(errors: Iterable[Dict[str, Any]], location: Sequence[str] = ()) -> List[Dict[str, str]]:
    """Flatten pydantic error dicts into `{field, message, type}` entries.

    `location` is prepended to each error's `loc`, e.g. `("body",)` for a
    payload validated after the request was parsed.
    """
    return [
        {
            "field": ".".join(str(part) for part in (*location, *error["loc"])),
            "message": error["msg"],
            "type": error["type"],
        }
        for error in errors
    ]


class AppException(Exception):
    """Base exception class for all application exceptions.

    Attributes:
        message: Human-readable error message.
        status_code: HTTP status code to return.
        details: Optional additional error details.
    """

    def __init__(
        self,
        message: str,
        status_code: int = 500,
        details: Optional[Dict[str, Any]] = None
    ):
        self.message = message
        self.status_code = status_code
        self.details = details or {}
        super().__init__(self.message)


class NotFoundError(AppException):
    """Raised when a requested resource does not exist."""

    def __init__(self, resource: str, identifier: Any):
        """Initialize not found error.

        Args:
            resource: Type of resource (e.g., 'Meal').
            identifier: ID that was not found.
        """
        message = f"{resource} not found"
        super().__init__(message, status_code=404, details={"resource": resource, "id": identifier})


class ValidationError(AppException):
    """Raised when client input is malformed or missing."""

    def __init__(
        self,
        message: str,
        field: Optional[str] = None,
        errors: Optional[List[Dict[str, str]]] = None,
    ):
        details: Dict[str, Any] = {"field": field} if field else {}
        if errors:
            details["validation_errors"] = errors
        super().__init__(message, status_code=400, details=details)


class UpstreamAuthError(AppException):
    """The estimation provider rejected the supplied API key."""

    def __init__(self, upstream_message: Optional[str] = None):
        details = {"upstream_message": upstream_message} if upstream_message else {}
        super().__init__(
            "Invalid API key for the estimation provider. Please check your API key.",
            status_code=401,
            details=details,
        )


class UpstreamRateLimitError(AppException):
    """The estimation provider is throttling requests."""

    def __init__(self, retry_after: Optional[str] = None):
        details = {"retry_after": retry_after} if retry_after else {}
        super().__init__("Rate limit exceeded", status_code=429, details=details)


class UpstreamBadRequestError(AppException):
    """The estimation provider refused the request (4xx other than 401/429)."""

    def __init__(self, upstream_status: int, upstream_message: Optional[str] = None):
        details: Dict[str, Any] = {"upstream_status": upstream_status}
        if upstream_message:
            details["upstream_message"] = upstream_message
        super().__init__("Invalid request to LLM API", status_code=400, details=details)


class UpstreamServiceError(AppException):
    """The estimation provider failed, timed out or was unreachable."""

    def __init__(self, reason: str):
        super().__init__(
            "Estimation service unavailable",
            status_code=500,
            details={"type": "upstream_error", "reason": reason},
        )


class EstimationError(AppException):
    """The provider answered but no usable estimate could be extracted."""

    def __init__(self, message: str = "Failed to parse calorie estimation from LLM response"):
        super().__init__(message, status_code=500, details={"type": "estimation_error"})
