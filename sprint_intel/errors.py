"""
Custom exception classes for the sprint intelligence core.

Provides structured error handling with helpful messages for configuration
problems, sprint resolution failures and upstream (Jira, Azure DevOps,
GitHub) API errors.
"""

from typing import Optional, Any, List


class SprintIntelError(Exception):
    """
    Base exception for all sprint intelligence errors.

    Attributes:
        status_code: HTTP status code from the upstream response, if any
        message: Human-readable error message
        original_error: The original exception that was caught
        details: Additional error details
    """

    def __init__(
        self,
        message: str = "Sprint intelligence error",
        status_code: Optional[int] = None,
        original_error: Optional[Exception] = None,
        details: Optional[Any] = None
    ):
        self.status_code = status_code
        self.message = message
        self.original_error = original_error
        self.details = details
        super().__init__(message)

    def __str__(self) -> str:
        """String representation of the error."""
        if self.status_code:
            return f"[{self.status_code}] {self.message}"
        return self.message

    def to_dict(self) -> dict:
        """Convert error to dictionary for JSON serialization."""
        return {
            'error': self.__class__.__name__,
            'status_code': self.status_code,
            'message': self.message,
            'details': str(self.details) if self.details else None
        }


class ConfigurationError(SprintIntelError):
    """
    Raised when required configuration is missing.

    Always raised before any network call is attempted.
    """

    def __init__(self, missing: Optional[List[str]] = None, system: str = "Jira"):
        self.missing = list(missing or [])
        if self.missing:
            message = (
                f"{system} is not configured. Missing: {', '.join(self.missing)}"
            )
        else:
            message = f"{system} is not configured."

        super().__init__(
            message=message,
            details={'system': system, 'missing': self.missing}
        )


class SprintNotFoundError(SprintIntelError):
    """Raised when no sprint on the board matches the requested label."""

    def __init__(self, label: str, board_id: Optional[str] = None):
        self.label = label
        message = f"Sprint '{label}' not found"
        if board_id:
            message += f" on board {board_id}"
        message += ". Check the sprint label and board configuration."

        super().__init__(
            message=message,
            status_code=404,
            details={'label': label, 'board_id': board_id}
        )


class SprintAmbiguousError(SprintIntelError):
    """
    Raised when a sprint label matches several sprints and no candidate
    can be preferred.

    This typically happens with labels such as "21" that match
    "FY24-21" and "FY25-21". Use a more specific label.
    """

    def __init__(self, label: str, candidates: Optional[List[str]] = None):
        self.label = label
        self.candidates = list(candidates or [])
        message = (
            f"Sprint label '{label}' is ambiguous; it matches "
            f"{len(self.candidates)} sprints: {', '.join(self.candidates)}. "
            "Please use a more specific label."
        )

        super().__init__(
            message=message,
            status_code=409,
            details={'label': label, 'candidates': self.candidates}
        )


class UpstreamUnavailableError(SprintIntelError):
    """
    Raised when an upstream system cannot be reached or refuses a request.

    Subclasses describe the specific HTTP status families.
    """

    def __init__(
        self,
        system: str = "upstream",
        message: Optional[str] = None,
        status_code: Optional[int] = None,
        original_error: Optional[Exception] = None,
        details: Optional[Any] = None
    ):
        self.system = system
        super().__init__(
            message=message or f"{system} is unavailable",
            status_code=status_code,
            original_error=original_error,
            details=details
        )


class AuthenticationError(UpstreamUnavailableError):
    """
    Raised when authentication fails (HTTP 401).

    This can occur when:
    - Token has expired
    - Token is invalid
    - Basic auth e-mail does not match the token
    """

    def __init__(
        self,
        system: str = "upstream",
        message: Optional[str] = None,
        original_error: Optional[Exception] = None
    ):
        super().__init__(
            system=system,
            message=message or (
                f"{system} authentication failed. "
                "Your token may have expired. Please refresh credentials."
            ),
            status_code=401,
            original_error=original_error
        )


class PermissionDeniedError(UpstreamUnavailableError):
    """Raised when the credentials lack permission (HTTP 403)."""

    def __init__(
        self,
        system: str = "upstream",
        operation: Optional[str] = None,
        original_error: Optional[Exception] = None
    ):
        if operation:
            message = f"Permission denied by {system} for {operation}. Please check your token scopes."
        else:
            message = f"Permission denied by {system}. Please check your credentials and project permissions."

        super().__init__(
            system=system,
            message=message,
            status_code=403,
            original_error=original_error,
            details={'operation': operation}
        )


class ResourceNotFoundError(UpstreamUnavailableError):
    """Raised when an upstream resource does not exist (HTTP 404)."""

    def __init__(
        self,
        system: str = "upstream",
        resource: Optional[str] = None,
        original_error: Optional[Exception] = None
    ):
        if resource:
            message = f"{system} resource not found: {resource}. Please verify it exists and you have access."
        else:
            message = f"{system} resource not found. Please verify it exists and you have access."

        super().__init__(
            system=system,
            message=message,
            status_code=404,
            original_error=original_error,
            details={'resource': resource}
        )


class BadRequestError(UpstreamUnavailableError):
    """Raised for malformed requests (HTTP 400), e.g. invalid JQL or branch names."""

    def __init__(
        self,
        system: str = "upstream",
        message: Optional[str] = None,
        original_error: Optional[Exception] = None,
        details: Optional[Any] = None
    ):
        super().__init__(
            system=system,
            message=message or f"Bad request to {system}. Please check your input values.",
            status_code=400,
            original_error=original_error,
            details=details
        )


class RateLimitError(UpstreamUnavailableError):
    """
    Raised when an upstream rate limit is exceeded (HTTP 429).

    Includes retry-after information when the server provided it.
    """

    def __init__(
        self,
        system: str = "upstream",
        retry_after: Optional[int] = None,
        original_error: Optional[Exception] = None
    ):
        if retry_after:
            message = f"{system} rate limit exceeded. Please retry after {retry_after} seconds."
        else:
            message = f"{system} rate limit exceeded. Please retry after a brief delay."

        super().__init__(
            system=system,
            message=message,
            status_code=429,
            original_error=original_error,
            details={'retry_after': retry_after}
        )
        self.retry_after = retry_after


class TransientError(UpstreamUnavailableError):
    """
    Raised for temporary service errors (HTTP 500, 502, 503, 504)
    and dropped connections. These are retried automatically.
    """

    def __init__(
        self,
        system: str = "upstream",
        status_code: Optional[int] = None,
        original_error: Optional[Exception] = None
    ):
        if status_code:
            message = (
                f"{system} temporarily unavailable (HTTP {status_code}). "
                "This error is transient and will be retried automatically."
            )
        else:
            message = f"Connection to {system} failed. This error is transient and will be retried automatically."

        super().__init__(
            system=system,
            message=message,
            status_code=status_code,
            original_error=original_error
        )


class UpstreamTimeoutError(UpstreamUnavailableError):
    """Raised when a request exceeds its time budget."""

    def __init__(
        self,
        system: str = "upstream",
        timeout_seconds: float = 30,
        original_error: Optional[Exception] = None
    ):
        super().__init__(
            system=system,
            message=f"{system} request timed out after {timeout_seconds} seconds.",
            status_code=408,
            original_error=original_error,
            details={'timeout_seconds': timeout_seconds}
        )
        self.timeout_seconds = timeout_seconds


class ValidationError(SprintIntelError):
    """Raised when input validation fails."""

    def __init__(self, field: str, message: str):
        self.field = field
        super().__init__(message=message, status_code=400, details={'field': field})


class ToolInputError(ValidationError):
    """Raised when a tool receives missing or mistyped arguments."""


def map_status_code_to_error(
    status_code: int,
    system: str = "upstream",
    original_error: Optional[Exception] = None,
    **kwargs
) -> UpstreamUnavailableError:
    """
    Map HTTP status code to appropriate error class.

    Args:
        status_code: HTTP status code from the upstream API
        system: Name of the upstream system (Jira, Azure DevOps, GitHub)
        original_error: The original exception
        **kwargs: Additional error-specific parameters (retry_after, resource)

    Returns:
        Appropriate UpstreamUnavailableError subclass instance
    """
    if status_code == 400:
        return BadRequestError(system=system, original_error=original_error)
    elif status_code == 401:
        return AuthenticationError(system=system, original_error=original_error)
    elif status_code == 403:
        return PermissionDeniedError(system=system, original_error=original_error)
    elif status_code == 404:
        return ResourceNotFoundError(
            system=system, resource=kwargs.get('resource'), original_error=original_error
        )
    elif status_code == 408:
        return UpstreamTimeoutError(system=system, original_error=original_error)
    elif status_code == 429:
        return RateLimitError(
            system=system, retry_after=kwargs.get('retry_after'), original_error=original_error
        )
    elif status_code in [500, 502, 503, 504]:
        return TransientError(system=system, status_code=status_code, original_error=original_error)
    else:
        return UpstreamUnavailableError(
            system=system,
            message=f"{system} API error: HTTP {status_code}",
            status_code=status_code,
            original_error=original_error
        )
