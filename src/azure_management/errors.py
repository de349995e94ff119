"""
Error types for the Azure Service Management client.

Every error raised by this package derives from ManagementError so callers
can tell "the operation failed" apart from "the client could not find out"
and from "the caller gave up".

Classes:
    RequestPhase: Stage of a request at which an error happened
    ManagementError: Base class for all client errors
    ConfigurationError: Invalid client configuration or credentials
    TransportError: Network/TLS level failure sending a request
    RemoteError: Well-formed error response from the service
    OperationStatusError: Operation status could not be determined
    OperationFailedError: Long-running operation finished with Failed
"""

from enum import Enum
from typing import Optional


class RequestPhase(Enum):
    """Stage of a request in which an error occurred."""
    PREPARING = "preparing"
    SENDING = "sending"
    RESPONDING = "responding"

    @property
    def description(self) -> str:
        if self is RequestPhase.RESPONDING:
            return "Failure responding to request"
        return f"Failure {self.value} request"


class ManagementError(Exception):
    """Base exception for the management client.

    Attributes:
        message: Human-readable error message
        operation_name: Name of the client operation that failed, if known
        phase: Request phase in which the failure happened, if known
    """

    def __init__(
        self,
        message: str,
        operation_name: Optional[str] = None,
        phase: Optional[RequestPhase] = None,
    ):
        self.message = message
        self.operation_name = operation_name
        self.phase = phase
        super().__init__(message)

    def __str__(self) -> str:
        if self.operation_name and self.phase:
            return f"{self.operation_name}: {self.phase.description}: {self.message}"
        if self.operation_name:
            return f"{self.operation_name}: {self.message}"
        return self.message


class ConfigurationError(ManagementError, ValueError):
    """Raised when a client cannot be built from the given inputs."""
    pass


class TransportError(ManagementError):
    """Raised when a request could not be delivered to the service.

    Attributes:
        original: The underlying exception raised by the HTTP transport
    """

    def __init__(
        self,
        message: str,
        original: Optional[BaseException] = None,
        operation_name: Optional[str] = None,
        phase: Optional[RequestPhase] = RequestPhase.SENDING,
    ):
        self.original = original
        super().__init__(message, operation_name, phase)


class RemoteError(ManagementError):
    """Raised for an error response returned by the management API.

    Attributes:
        status_code: HTTP status code
        error_code: Service error code (e.g. ResourceNotFound), if present
    """

    def __init__(
        self,
        status_code: int,
        error_code: Optional[str],
        message: str,
        operation_name: Optional[str] = None,
        phase: Optional[RequestPhase] = RequestPhase.RESPONDING,
    ):
        self.status_code = status_code
        self.error_code = error_code
        super().__init__(message, operation_name, phase)

    def __str__(self) -> str:
        code = self.error_code or "Unknown"
        return f"[{code}] {super().__str__()} (HTTP {self.status_code})"


class OperationStatusError(ManagementError):
    """Raised when an operation status response cannot be interpreted.

    This is not a terminal outcome of the operation; re-polling may succeed.
    """

    def __init__(self, operation_id: str, message: str):
        self.operation_id = operation_id
        super().__init__(
            f"could not determine status of operation {operation_id}: {message}",
            operation_name="GetOperationStatus",
            phase=RequestPhase.RESPONDING,
        )


class OperationFailedError(ManagementError):
    """Raised when a long-running operation reaches the Failed state.

    Attributes:
        operation_id: Identifier of the failed operation
        code: Error code reported by the service, if any
        http_status_code: HTTP status the operation finished with, if reported
    """

    def __init__(
        self,
        operation_id: str,
        code: Optional[str] = None,
        message: Optional[str] = None,
        http_status_code: Optional[int] = None,
    ):
        self.operation_id = operation_id
        self.code = code
        self.http_status_code = http_status_code
        if message is None:
            message = f"Azure operation (x-ms-request-id={operation_id}) has failed"
        super().__init__(message, operation_name="WaitForOperation")

    def __str__(self) -> str:
        if self.code:
            return f"[{self.code}] {self.message}"
        return self.message


def is_resource_not_found_error(error: BaseException) -> bool:
    """Check whether an error means the requested resource does not exist.

    Args:
        error: The exception to check

    Returns:
        True if the error is a RemoteError with HTTP 404
    """
    return isinstance(error, RemoteError) and error.status_code == 404
