# account_service/core/errors.py
"""
Error taxonomy for the account core.

Every failure a use case can report is an ``AccountError`` subclass carrying a
caller-safe message and the HTTP status the routing layer answers with.
Not-found and auth failures are deliberately flattened to 400.
"""
from http import HTTPStatus


class AccountError(Exception):
    status: HTTPStatus = HTTPStatus.BAD_REQUEST
    message: str = "Request failed"

    def __init__(self, message: str | None = None):
        if message is not None:
            self.message = message
        super().__init__(self.message)

    def to_dict(self) -> dict:
        return {"error": self.message}


# ========== Validation (400) ==========
class ValidationError(AccountError):
    message = "Invalid request"


class PasswordMismatch(ValidationError):
    message = "Passwords do not match"


class RegistrationFailed(ValidationError):
    message = "Error occurred! Try Again"


# ========== Not found (400) ==========
class NotFoundError(AccountError):
    message = "Not found"


class UserNotFound(NotFoundError):
    message = "User not found"


class TokenNotFound(NotFoundError):
    message = "Invalid token"


# ========== Auth (400) ==========
class AuthError(AccountError):
    message = "Authentication failed"


class InvalidCredentials(AuthError):
    message = "Invalid username or password"


class TokenExpired(AuthError):
    message = "Token has expired"


class SignatureInvalid(AuthError):
    message = "Invalid token signature"


class Unauthorized(AuthError):
    message = "Invalid access token or token expired"


# ========== Infrastructure (500) ==========
class InfrastructureError(AccountError):
    status = HTTPStatus.INTERNAL_SERVER_ERROR
    message = "Internal server error"


class MalformedHashError(InfrastructureError):
    message = "Stored password hash is malformed"


class NotificationError(InfrastructureError):
    message = "Email delivery failed"


class StorageError(InfrastructureError):
    message = "Image storage failed"
