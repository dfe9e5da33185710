from __future__ import annotations
from typing import Any, Dict, Optional


class AccountServiceError(Exception):
    status_code: int = 500
    error: str = "Internal Server Error"
    default_message: str = "Internal server error"

    def __init__(self, message: Optional[str] = None):
        self.message = message or self.default_message
        super().__init__(self.message)

    def to_payload(self) -> Dict[str, Any]:
        return {
            "statusCode": self.status_code,
            "message": self.message,
            "error": self.error,
        }


class ConflictError(AccountServiceError):
    """Raised when a record with the same unique key already exists."""
    status_code = 409
    error = "Conflict"
    default_message = "Conflict"


class NotFoundError(AccountServiceError):
    status_code = 404
    error = "Not Found"
    default_message = "User not found"


class UnauthorizedError(AccountServiceError):
    """Bad credentials, bad token, or a masked signup/refresh failure."""
    status_code = 401
    error = "Unauthorized"
    default_message = "Unauthorized"


class InvalidTokenError(UnauthorizedError):
    """Raised by token verification: bad signature, malformed or expired."""
    default_message = "Invalid token"


class ValidationFailedError(AccountServiceError):
    status_code = 422
    error = "Unprocessable Entity"
    default_message = "Validation failed"
