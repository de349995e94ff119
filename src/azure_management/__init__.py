"""
Client for the Microsoft Azure Service Management REST API.

This package provides the base management client and the long-running
operation machinery shared by service-specific clients:

- Client construction and configuration (ManagementClient, ClientConfig)
- Certificate-authenticated request sending (RequestHandler, RequestsTransport)
- Operation status tracking (OperationTracker, OperationStatus)
- Polling with cooperative cancellation (LROHandler, CancellationToken)

Usage:
    from azure_management import new_client, CancellationToken

    client = new_client(subscription_id, pem_bytes)
    operation_id = client.send_delete_request("services/hostedservices/example")
    if operation_id is not None:
        token = CancellationToken()
        token.cancel_after(900)
        client.wait_for_operation(operation_id, token)
"""

__version__ = "1.0.0"

# Client
from .client import (
    ManagementClient,
    new_client,
    new_client_from_config,
    new_anonymous_client,
)

# Configuration
from .config import (
    ClientConfig,
    DEFAULT_CONFIG,
    DEFAULT_MANAGEMENT_URL,
    DEFAULT_OPERATION_POLL_INTERVAL,
    DEFAULT_API_VERSION,
    DEFAULT_USER_AGENT,
    default_config,
)

# Cancellation handling
from .cancellation import (
    CancellationToken,
    CancellationTokenSource,
    OperationCancelledException,
)

# Errors
from .errors import (
    RequestPhase,
    ManagementError,
    ConfigurationError,
    TransportError,
    RemoteError,
    OperationStatusError,
    OperationFailedError,
    is_resource_not_found_error,
)

# Requests and operations
from .http_client import OperationID, RequestHandler, ResponseHandler
from .operations import (
    OperationState,
    OperationStatus,
    OperationErrorDetail,
    OperationTracker,
    parse_operation_status,
)
from .lro_handler import LROHandler, PollRetryPolicy
from .transport import CertificateInjector, RequestsTransport, load_management_certificate


__all__ = [
    # Client
    "ManagementClient",
    "new_client",
    "new_client_from_config",
    "new_anonymous_client",
    # Configuration
    "ClientConfig",
    "DEFAULT_CONFIG",
    "DEFAULT_MANAGEMENT_URL",
    "DEFAULT_OPERATION_POLL_INTERVAL",
    "DEFAULT_API_VERSION",
    "DEFAULT_USER_AGENT",
    "default_config",
    # Cancellation
    "CancellationToken",
    "CancellationTokenSource",
    "OperationCancelledException",
    # Errors
    "RequestPhase",
    "ManagementError",
    "ConfigurationError",
    "TransportError",
    "RemoteError",
    "OperationStatusError",
    "OperationFailedError",
    "is_resource_not_found_error",
    # Requests and operations
    "OperationID",
    "RequestHandler",
    "ResponseHandler",
    "OperationState",
    "OperationStatus",
    "OperationErrorDetail",
    "OperationTracker",
    "parse_operation_status",
    "LROHandler",
    "PollRetryPolicy",
    # Transport
    "CertificateInjector",
    "RequestsTransport",
    "load_management_certificate",
]
