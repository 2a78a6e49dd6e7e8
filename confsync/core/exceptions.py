# confsync/core/exceptions.py
"""
Domain-specific exceptions for configuration resolution and propagation.

Startup errors (``StartupConfigError`` subclasses) are fatal: the process
reports them and exits. Runtime errors are logged and surface to callers
only through return values or the admin API.
"""

from typing import Any, Dict, Optional

from fastapi import HTTPException, status


class DomainException(Exception):
    """Base exception for all domain-specific errors."""

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        self.message = message
        self.code = code or self.__class__.__name__
        self.details = details or {}
        super().__init__(self.message)

    def to_http_exception(self) -> HTTPException:
        """Default conversion to HTTPException (override in subclasses)."""
        return HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail={
                "message": self.message,
                "code": self.code,
                "details": self.details,
            },
        )


class ValidationException(DomainException):
    """Raised when a configuration value fails validation."""

    def to_http_exception(self) -> HTTPException:
        return HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={
                "message": self.message,
                "code": self.code,
                "details": self.details,
            },
        )


class ServiceException(DomainException):
    """Raised when a service operation fails."""

    def to_http_exception(self) -> HTTPException:
        return HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail={
                "message": self.message or "An error occurred processing your request",
                "code": self.code,
                "details": self.details if self.details else {},
            },
        )


# Startup errors


class StartupConfigError(DomainException):
    """Configuration could not be resolved; the process must not start."""


class SourceUnreadable(StartupConfigError):
    """Raised when a configuration document is missing, unreadable or malformed."""

    def __init__(self, path: str, reason: str) -> None:
        super().__init__(
            message=f"Unable to read configuration from {path}: {reason}",
            code="SOURCE_UNREADABLE",
            details={"path": path, "reason": reason},
        )


class EnvParseError(StartupConfigError):
    """Raised when DATABASE_URL cannot be parsed."""

    def __init__(self, reason: str) -> None:
        super().__init__(
            message=f"Failed to parse DATABASE_URL environment variable: {reason}",
            code="ENV_PARSE_ERROR",
            details={"reason": reason},
        )


class SecretUnreadable(StartupConfigError):
    """Raised when the database password secret file cannot be read."""

    def __init__(self, path: str, reason: str) -> None:
        super().__init__(
            message=f"Failed to read secret file defined in DB_PASS_FILE ({path}): {reason}",
            code="SECRET_UNREADABLE",
            details={"path": path, "reason": reason},
        )


# Runtime errors


class UnsupportedScheme(ValidationException):
    """Raised (and logged, never fatal) for an unknown connection URL scheme."""

    def __init__(self, scheme: str) -> None:
        super().__init__(
            message=f"Unsupported database scheme '{scheme}', connection override skipped",
            code="UNSUPPORTED_SCHEME",
            details={"scheme": scheme},
        )


class StoreWriteFailure(ServiceException):
    """Raised when a batch of settings could not be persisted."""

    def __init__(self, key: Optional[str], reason: str) -> None:
        super().__init__(
            message=f"Failed to save configuration to DB: {reason}",
            code="STORE_WRITE_FAILURE",
            details={"key": key, "reason": reason},
        )


class StoreReadEmpty(DomainException):
    """The settings store holds no usable configuration (setup mode)."""

    def __init__(self) -> None:
        super().__init__(
            message="DB Configuration is empty or incomplete. Switching to Setup mode...",
            code="STORE_READ_EMPTY",
        )


class RepositoryException(Exception):
    """
    Exception raised for repository layer errors.

    This exception is used when data access operations fail,
    such as database connection issues, query failures, or
    constraint violations.
    """
