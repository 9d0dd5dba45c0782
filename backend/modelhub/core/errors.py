"""API error classes.

HTTP status codes and error codes for every client-facing failure.

WHY CUSTOM ERROR CLASSES:
- Consistent error response format across all endpoints
- Easy to map to HTTP status codes in exception handlers
- Type-safe error handling in services/repositories
"""


class ConfigurationError(Exception):
    """Process configuration is missing or malformed.

    Startup-class failure (e.g., DEEP_LINK_SECRET absent or not 64 hex
    characters). Not an APIError: routes depending on the misconfigured
    component answer 503 and the operator fixes the environment.
    """


class APIError(Exception):
    """Base class for API errors.

    All API errors have a code, message, and HTTP status.
    Subclasses set default status_code.

    Attributes:
        code: Machine-readable error code (e.g., "NOT_FOUND").
        message: Human-readable error message.
        status_code: HTTP status code to return.
        details: Optional list of additional error details.
    """

    def __init__(
        self,
        code: str,
        message: str,
        status_code: int = 500,
        details: list[dict] | None = None,
    ) -> None:
        self.code = code
        self.message = message
        self.status_code = status_code
        self.details = details
        super().__init__(message)


class ValidationError(APIError):
    """Field validation failed (400).

    Use for request body validation errors, query param errors, etc.
    """

    def __init__(
        self,
        message: str,
        details: list[dict] | None = None,
    ) -> None:
        super().__init__(
            code="VALIDATION_ERROR",
            message=message,
            status_code=400,
            details=details,
        )


class BusinessRuleError(APIError):
    """Recognized business-rule violation (400).

    Raised when an atomic ledger operation refuses a request for a known
    reason: auction not active, bid too low, self-dealing, and so on.
    """

    def __init__(self, message: str) -> None:
        super().__init__(
            code="BUSINESS_RULE_VIOLATION",
            message=message,
            status_code=400,
        )


class InsufficientFundsError(APIError):
    """Coin balance too low for the requested operation (400)."""

    def __init__(self, message: str = "Insufficient coin balance") -> None:
        super().__init__(
            code="INSUFFICIENT_FUNDS",
            message=message,
            status_code=400,
        )


class UnauthorizedError(APIError):
    """Authentication required (401).

    Use when no valid auth credentials provided.
    """

    def __init__(self, message: str = "Authentication required") -> None:
        super().__init__(
            code="UNAUTHORIZED",
            message=message,
            status_code=401,
        )


class ForbiddenError(APIError):
    """Not allowed to perform the action (403).

    Use when auth is valid but the actor has the wrong role or does not own
    the target.
    """

    def __init__(self, message: str = "Access denied") -> None:
        super().__init__(
            code="FORBIDDEN",
            message=message,
            status_code=403,
        )


class NotFoundError(APIError):
    """Resource not found (404)."""

    def __init__(self, resource: str, resource_id: str | None = None) -> None:
        if resource_id:
            message = f"{resource} with id '{resource_id}' not found"
        else:
            message = f"{resource} not found"
        super().__init__(
            code="NOT_FOUND",
            message=message,
            status_code=404,
        )


class InternalError(APIError):
    """Unexpected server error (500).

    Use for unrecognized failures. Never expose internal details to clients.
    """

    def __init__(self, message: str = "An unexpected error occurred") -> None:
        super().__init__(
            code="INTERNAL_ERROR",
            message=message,
            status_code=500,
        )
