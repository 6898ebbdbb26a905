"""
Custom exceptions for the helper.

Transport errors are never retried here; retry policy belongs to the caller
or to the botocore client configuration.
"""

from typing import Any, Optional

from botocore.exceptions import BotoCoreError, ClientError


class HelperError(Exception):
    """Base helper exception."""

    def __init__(
        self,
        message: str,
        code: str = "HELPER_ERROR",
        details: Optional[dict[str, Any]] = None,
    ):
        self.message = message
        self.code = code
        self.details = details or {}
        super().__init__(message)


class ConfigurationError(HelperError):
    """Missing or invalid account identity, queue name, bucket or credentials."""

    def __init__(
        self,
        message: str,
        setting: Optional[str] = None,
        details: Optional[dict[str, Any]] = None,
    ):
        super().__init__(message=message, code="CONFIGURATION_ERROR", details=details)
        self.setting = setting


class ValidationError(HelperError):
    """Validation error raised before any backend call is attempted."""

    def __init__(
        self,
        message: str,
        field: Optional[str] = None,
        details: Optional[dict[str, Any]] = None,
    ):
        super().__init__(message=message, code="VALIDATION_ERROR", details=details)
        self.field = field


class TransportError(HelperError):
    """Queue or object store call failure."""

    def __init__(
        self,
        message: str,
        service: Optional[str] = None,
        operation: Optional[str] = None,
        aws_code: Optional[str] = None,
        details: Optional[dict[str, Any]] = None,
    ):
        super().__init__(message=message, code="TRANSPORT_ERROR", details=details)
        self.service = service
        self.operation = operation
        self.aws_code = aws_code


class NotFoundError(TransportError):
    """Queue or stored payload does not exist."""

    def __init__(
        self,
        resource_type: str,
        resource_id: Optional[str] = None,
        service: Optional[str] = None,
        operation: Optional[str] = None,
        aws_code: Optional[str] = None,
        details: Optional[dict[str, Any]] = None,
    ):
        message = f"{resource_type} not found"
        if resource_id:
            message = f"{resource_type} '{resource_id}' not found"
        super().__init__(
            message=message,
            service=service,
            operation=operation,
            aws_code=aws_code,
            details=details,
        )
        self.code = "NOT_FOUND"
        self.resource_type = resource_type
        self.resource_id = resource_id


class BatchDeleteError(TransportError):
    """Both the store deletion and the queue deletion of a batch failed."""

    def __init__(self, store_error: BaseException, queue_error: BaseException):
        super().__init__(
            message=(
                f"batch delete failed in store ({store_error}) "
                f"and queue ({queue_error})"
            ),
            operation="delete_message_batch",
        )
        self.store_error = store_error
        self.queue_error = queue_error


class HandleDecodeError(HelperError):
    """Encoded receipt handle or pointer record could not be parsed."""

    def __init__(self, message: str, details: Optional[dict[str, Any]] = None):
        super().__init__(message=message, code="HANDLE_DECODE_ERROR", details=details)


def aws_error_code(exc: BaseException) -> Optional[str]:
    """Return the AWS error code carried by a botocore ClientError."""
    if isinstance(exc, ClientError):
        return exc.response.get("Error", {}).get("Code")
    return None


def transport_error(
    exc: BotoCoreError | ClientError,
    service: str,
    operation: str,
    details: Optional[dict[str, Any]] = None,
) -> TransportError:
    """Wrap a botocore failure; callers raise it ``from`` the original."""
    return TransportError(
        message=f"{service} {operation} failed: {exc}",
        service=service,
        operation=operation,
        aws_code=aws_error_code(exc),
        details=details,
    )
