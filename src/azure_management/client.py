"""
Azure Service Management API client.

ManagementClient is the base client from which service-specific clients are
built. It sends certificate-authenticated requests to the management
endpoint and tracks the long-running operations those requests start.

Usage:
    client = new_client(subscription_id, pem_bytes)
    operation_id = client.send_delete_request("services/hostedservices/example")
    if operation_id is not None:
        client.wait_for_operation(operation_id)
"""

import logging
from typing import Any, Optional

from .cancellation import CancellationToken
from .config import DEFAULT_CONFIG, ClientConfig, default_config
from .errors import ConfigurationError
from .http_client import OperationID, RequestHandler
from .lro_handler import LROHandler, PollRetryPolicy
from .operations import OperationStatus, OperationTracker
from .transport import RequestsTransport, apply_certificate, load_management_certificate

logger = logging.getLogger(__name__)


class ManagementClient:
    """
    Client for the Azure Service Management REST API.

    All state is fixed at construction, so one client may be shared by
    several threads, each sending requests or waiting for operations.

    Example:
        >>> client = ManagementClient(subscription_id, pem_bytes)
        >>> op_id = client.send_post_request("services/hostedservices", body)
        >>> client.wait_for_operation(op_id)
    """

    def __init__(
        self,
        subscription_id: str,
        management_cert: bytes,
        config: ClientConfig = DEFAULT_CONFIG,
    ):
        """
        Create a client bound to a subscription and management certificate.

        Args:
            subscription_id: Azure subscription identifier
            management_cert: PEM encoded management certificate and private key
            config: Client configuration (defaults to DEFAULT_CONFIG)

        Raises:
            ConfigurationError: If any input is missing or invalid
        """
        if not subscription_id:
            raise ConfigurationError("azure: subscription ID required")
        if not management_cert:
            raise ConfigurationError("azure: management certificate required")
        if not isinstance(config, ClientConfig):
            raise ConfigurationError(
                f"azure: config must be a ClientConfig, got {type(config).__name__}"
            )

        ssl_context = load_management_certificate(management_cert)
        transport = config.transport if config.transport is not None else RequestsTransport()
        apply_certificate(transport, ssl_context)

        self._setup(subscription_id, config, transport)
        logger.debug(f"Created management client for subscription {subscription_id}")

    @classmethod
    def anonymous(cls, config: ClientConfig = DEFAULT_CONFIG) -> "ManagementClient":
        """Create a client without subscription or credentials.

        Such a client can only call endpoints that need no authentication;
        it cannot query operation status.
        """
        client = cls.__new__(cls)
        transport = config.transport if config.transport is not None else RequestsTransport()
        client._setup(None, config, transport)
        return client

    def _setup(self, subscription_id: Optional[str], config: ClientConfig, transport: Any) -> None:
        self._subscription_id = subscription_id
        self._config = config
        self._transport = transport
        self._request_handler = RequestHandler(transport, config)
        self._tracker = OperationTracker(self._request_handler, subscription_id)
        self._lro_handler = LROHandler(self._tracker, config.operation_poll_interval)

    @property
    def subscription_id(self) -> Optional[str]:
        return self._subscription_id

    @property
    def config(self) -> ClientConfig:
        return self._config

    @property
    def transport(self) -> Any:
        return self._transport

    def send_get_request(self, url: str) -> bytes:
        """Send a GET request and return the response body."""
        response = self._request_handler.execute("GET", url, "SendAzureGetRequest")
        return response.content

    def send_post_request(self, url: str, data: Optional[bytes]) -> Optional[OperationID]:
        """Send a POST request.

        Returns:
            The operation ID to poll, or None if the service completed the
            request synchronously
        """
        return self._request_handler.submit("POST", url, "SendAzurePostRequest", data=data)

    def send_post_request_with_returned_response(self, url: str, data: Optional[bytes]) -> bytes:
        """Send a POST request and return the response body."""
        response = self._request_handler.execute(
            "POST", url, "SendAzurePostRequestWithReturnedResponse", data=data
        )
        return response.content

    def send_put_request(
        self,
        url: str,
        content_type: Optional[str],
        data: Optional[bytes],
    ) -> Optional[OperationID]:
        """Send a PUT request.

        An empty content type means application/xml.

        Returns:
            The operation ID to poll, or None if completed synchronously
        """
        return self._request_handler.submit(
            "PUT", url, "SendAzurePutRequest", data=data, content_type=content_type or None
        )

    def send_delete_request(self, url: str) -> Optional[OperationID]:
        """Send a DELETE request.

        Returns:
            The operation ID to poll, or None if completed synchronously
        """
        return self._request_handler.submit("DELETE", url, "SendAzureDeleteRequest")

    def get_operation_status(self, operation_id: OperationID) -> OperationStatus:
        """Get the current status of a long-running operation.

        wait_for_operation() polls this until the operation completes.
        """
        return self._tracker.get_operation_status(operation_id)

    def wait_for_operation(
        self,
        operation_id: OperationID,
        cancellation_token: Optional[CancellationToken] = None,
        retry_policy: Optional[PollRetryPolicy] = None,
        show_progress: bool = False,
    ) -> OperationStatus:
        """Poll an operation every ``config.operation_poll_interval`` seconds
        until it completes.

        Polling runs until the operation succeeds or fails. To stop earlier
        (for instance on a timeout) cancel the token; see
        CancellationToken.cancel_after().

        Raises:
            OperationFailedError: If the operation failed
            OperationCancelledException: If the token was cancelled
        """
        return self._lro_handler.wait_for_operation(
            operation_id,
            cancellation_token=cancellation_token,
            retry_policy=retry_policy,
            show_progress=show_progress,
        )

    def close(self) -> None:
        """Release the transport's connections if it supports closing."""
        close = getattr(self._transport, "close", None)
        if callable(close):
            close()

    def __enter__(self) -> "ManagementClient":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()


def new_client(subscription_id: str, management_cert: bytes) -> ManagementClient:
    """Create a client with the default configuration."""
    return new_client_from_config(subscription_id, management_cert, default_config())


def new_client_from_config(
    subscription_id: str,
    management_cert: bytes,
    config: ClientConfig,
) -> ManagementClient:
    """Create a client with the given configuration."""
    return ManagementClient(subscription_id, management_cert, config)


def new_anonymous_client() -> ManagementClient:
    """Create a client with no subscription or credentials."""
    return ManagementClient.anonymous()
