"""Error taxonomy shared by the services and the HTTP error translation layer."""

from __future__ import annotations

from typing import Any, Dict, List, Optional


class AppError(Exception):
    """Base class for errors that map onto an HTTP status and a JSON body."""

    status_code = 500

    def __init__(self, message: str, **details: Any) -> None:
        super().__init__(message)
        self.message = message
        self.details: Dict[str, Any] = details


class ValidationError(AppError):
    status_code = 400

    def __init__(self, message: str, errors: Optional[List[Dict[str, str]]] = None, **details: Any) -> None:
        if errors:
            details["errors"] = errors
        super().__init__(message, **details)


class CastError(AppError):
    status_code = 400


class DuplicateKey(AppError):
    status_code = 400


class AlreadyVerified(AppError):
    status_code = 400


class InvalidOrExpiredOTP(AppError):
    status_code = 400

    def __init__(self, message: str = "Invalid or expired OTP", **details: Any) -> None:
        super().__init__(message, **details)


class AuthenticationRequired(AppError):
    status_code = 401


class InvalidCredentials(AuthenticationRequired):
    def __init__(self, message: str = "Invalid email or password", **details: Any) -> None:
        super().__init__(message, **details)


class AccountDeactivated(AuthenticationRequired):
    def __init__(self, message: str = "Account is deactivated", **details: Any) -> None:
        super().__init__(message, **details)


class EmailNotVerified(AuthenticationRequired):
    def __init__(self, email: str) -> None:
        super().__init__(
            "Please verify your email before logging in",
            requiresVerification=True,
            email=email,
        )


class Forbidden(AppError):
    status_code = 403


class NotFound(AppError):
    status_code = 404


class MailDeliveryError(AppError):
    status_code = 500
