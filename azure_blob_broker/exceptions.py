"""Custom exception classes for the Azure Storage Blob broker."""

from typing import Optional, Dict, Any
from enum import Enum


class ErrorCode(str, Enum):
    """Error codes for different types of failures."""

    # General errors
    INTERNAL_ERROR = "INTERNAL_ERROR"
    VALIDATION_ERROR = "VALIDATION_ERROR"
    CONFIGURATION_ERROR = "CONFIGURATION_ERROR"

    # Backend errors
    BACKEND_ERROR = "BACKEND_ERROR"
    BACKEND_UNAVAILABLE = "BACKEND_UNAVAILABLE"

    # Service Broker errors
    INVALID_PROVISIONING_RESULT = "INVALID_PROVISIONING_RESULT"
    UNKNOWN_OPERATION = "UNKNOWN_OPERATION"


class BlobBrokerError(Exception):
    """Base exception class for the broker."""

    def __init__(
        self,
        message: str,
        error_code: ErrorCode = ErrorCode.INTERNAL_ERROR,
        details: Optional[Dict[str, Any]] = None,
        cause: Optional[Exception] = None
    ):
        """Initialize the exception.

        Args:
            message: Human-readable error message
            error_code: Specific error code for the failure
            details: Additional context about the error
            cause: The underlying exception that caused this error
        """
        super().__init__(message)
        self.message = message
        self.error_code = error_code
        self.details = details or {}
        self.cause = cause

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for API responses."""
        result = {
            'error': self.error_code.value,
            'message': self.message,
            'details': self.details
        }

        if self.cause:
            result['cause'] = str(self.cause)

        return result

    def __str__(self) -> str:
        """String representation of the exception."""
        base_str = f"{self.error_code.value}: {self.message}"

        if self.details:
            details_str = ", ".join(f"{k}={v}" for k, v in self.details.items())
            base_str += f" ({details_str})"

        if self.cause:
            base_str += f" [caused by: {self.cause}]"

        return base_str


class BackendError(BlobBrokerError):
    """Failure reported by the resource-management backend with an HTTP status."""

    def __init__(
        self,
        message: str,
        status_code: int,
        code: Optional[str] = None,
        cause: Optional[Exception] = None
    ):
        details = {'status_code': status_code}
        if code:
            details['code'] = code

        super().__init__(
            message=message,
            error_code=ErrorCode.BACKEND_ERROR,
            details=details,
            cause=cause
        )
        self.status_code = status_code
        self.code = code

    @property
    def is_not_found(self) -> bool:
        return self.status_code == 404


class GenericError(BlobBrokerError):
    """Backend failure that carries no status code (network, auth, client-side)."""

    def __init__(self, message: str, cause: Optional[Exception] = None):
        super().__init__(
            message=message,
            error_code=ErrorCode.BACKEND_UNAVAILABLE,
            cause=cause
        )


class ValidationError(BlobBrokerError):
    """Exception for validation failures."""

    def __init__(self, message: str, field: Optional[str] = None, value: Optional[Any] = None):
        details = {}
        if field:
            details['field'] = field
        if value is not None:
            details['value'] = str(value)

        super().__init__(
            message=message,
            error_code=ErrorCode.VALIDATION_ERROR,
            details=details
        )


class InvalidProvisioningResultError(ValidationError):
    """The provisioning result passed back by the caller cannot be read."""

    def __init__(self, message: str, field: Optional[str] = None):
        super().__init__(message, field=field)
        self.error_code = ErrorCode.INVALID_PROVISIONING_RESULT


class UnknownOperationError(ValidationError):
    """A handler or last operation name the broker does not know."""

    def __init__(self, operation: Any):
        super().__init__(f"Unknown operation: {operation}", field='operation', value=operation)
        self.error_code = ErrorCode.UNKNOWN_OPERATION


class ConfigurationError(BlobBrokerError):
    """Exception for configuration-related errors."""

    def __init__(self, message: str, config_key: Optional[str] = None):
        details = {}
        if config_key:
            details['config_key'] = config_key

        super().__init__(
            message=message,
            error_code=ErrorCode.CONFIGURATION_ERROR,
            details=details
        )

