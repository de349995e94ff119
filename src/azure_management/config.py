"""
Client configuration for the Azure Service Management API.

ClientConfig is an immutable value validated once when it is created. The
module-level DEFAULT_CONFIG holds the production defaults and is shared by
every client that does not supply its own configuration.
"""

import dataclasses
import logging
import math
from dataclasses import dataclass
from typing import Any, Dict, Optional

from .errors import ConfigurationError

logger = logging.getLogger(__name__)

DEFAULT_MANAGEMENT_URL = "https://management.core.windows.net"
DEFAULT_OPERATION_POLL_INTERVAL = 30.0
DEFAULT_API_VERSION = "2014-10-01"
DEFAULT_USER_AGENT = "azure-service-management-python"

# Accepted spellings for from_dict()
_KEY_ALIASES = {
    "ManagementURL": "management_url",
    "managementUrl": "management_url",
    "OperationPollInterval": "operation_poll_interval",
    "operationPollInterval": "operation_poll_interval",
    "APIVersion": "api_version",
    "apiVersion": "api_version",
    "UserAgent": "user_agent",
    "userAgent": "user_agent",
    "Client": "transport",
    "RequestTimeout": "request_timeout",
    "requestTimeout": "request_timeout",
}


@dataclass(frozen=True)
class ClientConfig:
    """Configuration used by a ManagementClient.

    Attributes:
        management_url: Base endpoint every request path is appended to
        operation_poll_interval: Seconds between operation status queries
        api_version: Value sent in the x-ms-version header
        user_agent: Value sent in the User-Agent header (empty means default)
        transport: Preconfigured HTTP transport (a requests.Session or an
            object implementing the CertificateInjector capability). When
            None, a new RequestsTransport is created for each client.
        request_timeout: Per-request timeout in seconds (None: no timeout)
    """
    management_url: str = DEFAULT_MANAGEMENT_URL
    operation_poll_interval: float = DEFAULT_OPERATION_POLL_INTERVAL
    api_version: str = DEFAULT_API_VERSION
    user_agent: str = DEFAULT_USER_AGENT
    transport: Optional[Any] = dataclasses.field(default=None, compare=False, repr=False)
    request_timeout: Optional[float] = None

    def __post_init__(self):
        """Validate configuration values."""
        if not self.management_url:
            raise ConfigurationError("azure: base URL required")
        interval = self.operation_poll_interval
        if (
            isinstance(interval, bool)
            or not isinstance(interval, (int, float))
            or not math.isfinite(interval)
            or interval <= 0
        ):
            raise ConfigurationError(
                "azure: operation polling interval must be a positive duration"
            )
        if not self.api_version:
            raise ConfigurationError("azure: client configuration must specify an API version")
        timeout = self.request_timeout
        if timeout is not None and (
            isinstance(timeout, bool)
            or not isinstance(timeout, (int, float))
            or not math.isfinite(timeout)
            or timeout <= 0
        ):
            raise ConfigurationError("azure: request timeout must be positive when set")
        if not self.user_agent:
            object.__setattr__(self, "user_agent", DEFAULT_USER_AGENT)

    def with_overrides(self, **changes: Any) -> "ClientConfig":
        """Return a validated copy of this configuration with fields replaced.

        Raises:
            ConfigurationError: If the resulting configuration is invalid
        """
        return dataclasses.replace(self, **changes)

    @classmethod
    def from_dict(cls, config_dict: Optional[Dict[str, Any]]) -> "ClientConfig":
        """Create a configuration from a plain mapping.

        Keys may use the field names (``management_url``) or the service's
        spelling (``ManagementURL``). Missing keys keep their defaults.

        Args:
            config_dict: Configuration mapping (None for defaults)

        Returns:
            ClientConfig instance

        Raises:
            ConfigurationError: On unknown keys or invalid values
        """
        if config_dict is None:
            return DEFAULT_CONFIG

        field_names = {f.name for f in dataclasses.fields(cls)}
        values: Dict[str, Any] = {}
        for key, value in config_dict.items():
            name = _KEY_ALIASES.get(key, key)
            if name not in field_names:
                raise ConfigurationError(f"azure: unknown configuration option '{key}'")
            values[name] = value

        if isinstance(values.get("operation_poll_interval"), str):
            try:
                values["operation_poll_interval"] = float(values["operation_poll_interval"])
            except ValueError:
                raise ConfigurationError(
                    "azure: operation polling interval must be a positive duration"
                ) from None

        logger.debug(f"Building client configuration from options: {sorted(values)}")
        return cls(**values)


DEFAULT_CONFIG = ClientConfig()


def default_config() -> ClientConfig:
    """Return the default client configuration.

    The value is immutable; use ClientConfig.with_overrides() to derive a
    modified configuration.
    """
    return DEFAULT_CONFIG
