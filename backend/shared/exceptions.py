"""
Base exception classes for the TutorLink backend.

Each module should define its own exceptions that inherit from these bases.
This enables consistent error handling across the application.
"""

from typing import Optional, Any


class TutorLinkError(Exception):
    """
    Base exception for all TutorLink errors.

    All custom exceptions should inherit from this class.
    """

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        details: Optional[dict[str, Any]] = None,
    ):
        super().__init__(message)
        self.message = message
        self.code = code or self.__class__.__name__
        self.details = details or {}

    def to_dict(self) -> dict[str, Any]:
        """Convert exception to a dictionary for API responses."""
        return {
            "error": self.code,
            "message": self.message,
            "details": self.details,
        }


class NotFoundError(TutorLinkError):
    """Resource not found."""

    pass


class ValidationError(TutorLinkError):
    """Input validation failed."""

    pass


class AuthenticationError(TutorLinkError):
    """Authentication failed (invalid or missing credentials)."""

    pass


class AuthorizationError(TutorLinkError):
    """Authorization failed (insufficient permissions)."""

    pass


class ExternalServiceError(TutorLinkError):
    """Error communicating with an external service."""

    def __init__(
        self,
        message: str,
        service: str,
        code: Optional[str] = None,
        details: Optional[dict[str, Any]] = None,
    ):
        super().__init__(message, code, details)
        self.service = service
        self.details["service"] = service


class StoreUnavailableError(ExternalServiceError):
    """
    The data store could not complete an operation.

    Transient by nature. Callers surface it and rely on upstream retries
    (webhook redelivery, or the user pressing the button again).
    """

    def __init__(self, operation: str, reason: str):
        super().__init__(
            f"Data store unavailable during {operation}: {reason}",
            service="supabase",
            code="STORE_UNAVAILABLE",
            details={"operation": operation, "reason": reason},
        )


class StoreRejectedError(ValidationError):
    """
    The data store refused an operation.

    Permanent: bad input (malformed IDs, constraint violations) or an
    explicit RAISE from a database function. Retrying cannot succeed.
    """

    def __init__(self, operation: str, reason: str, sqlstate: Optional[str] = None):
        super().__init__(
            f"Data store rejected {operation}: {reason}",
            code="STORE_REJECTED",
            details={"operation": operation, "reason": reason, "sqlstate": sqlstate},
        )
        self.operation = operation
        self.sqlstate = sqlstate or ""

    @property
    def is_invalid_input(self) -> bool:
        """True for SQLSTATE class 22 (data exception, e.g. a malformed UUID)."""
        return self.sqlstate.startswith("22")
