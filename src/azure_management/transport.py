"""
HTTP transports and management certificate handling.

The management API authenticates callers with a client certificate over
mutual TLS. The certificate is loaded once into an ssl.SSLContext and handed
to the transport, either through the CertificateInjector capability or, for a
plain requests.Session, by mounting a certificate-bearing adapter on it.

Classes:
    CertificateInjector: Capability implemented by transports that accept a certificate
    RequestsTransport: requests.Session based transport implementing the capability
"""

import logging
import os
import ssl
import tempfile
from typing import Any, Dict, Optional, Protocol, runtime_checkable

import requests
from requests.adapters import HTTPAdapter

from .errors import ConfigurationError

logger = logging.getLogger(__name__)


@runtime_checkable
class CertificateInjector(Protocol):
    """Capability of a transport that can take over a client certificate."""

    def supports_certificate_injection(self) -> bool:
        """Return True if inject_certificate() may be called."""
        ...

    def inject_certificate(self, ssl_context: ssl.SSLContext) -> None:
        """Use the given TLS context (holding the client certificate) for HTTPS."""
        ...


def load_management_certificate(pem_data: bytes) -> ssl.SSLContext:
    """Load a PEM management certificate and its private key into a TLS context.

    The same PEM blob supplies both the certificate and the key, which is how
    management certificates are distributed in publish settings.

    Args:
        pem_data: PEM encoded certificate and private key

    Returns:
        Client TLS context presenting the certificate

    Raises:
        ConfigurationError: If the material is empty or cannot be loaded
    """
    if not pem_data:
        raise ConfigurationError("azure: management certificate required")
    if not isinstance(pem_data, (bytes, bytearray)):
        raise ConfigurationError(
            f"azure: management certificate must be PEM bytes, not {type(pem_data).__name__}"
        )

    context = ssl.create_default_context(ssl.Purpose.SERVER_AUTH)
    # load_cert_chain only reads from the filesystem
    fd, path = tempfile.mkstemp(suffix=".pem")
    try:
        with os.fdopen(fd, "wb") as f:
            f.write(pem_data)
        context.load_cert_chain(certfile=path)
    except (ssl.SSLError, ValueError) as e:
        raise ConfigurationError(f"azure: invalid management certificate: {e}") from e
    finally:
        os.unlink(path)

    logger.debug("Loaded management certificate into TLS context")
    return context


class _CertificateAdapter(HTTPAdapter):
    """HTTPAdapter whose connection pools use a fixed TLS context."""

    def __init__(self, ssl_context: ssl.SSLContext, **kwargs: Any):
        self._ssl_context = ssl_context
        super().__init__(**kwargs)

    def init_poolmanager(self, *args: Any, **kwargs: Any) -> None:
        kwargs["ssl_context"] = self._ssl_context
        super().init_poolmanager(*args, **kwargs)

    def proxy_manager_for(self, *args: Any, **kwargs: Any) -> Any:
        kwargs["ssl_context"] = self._ssl_context
        return super().proxy_manager_for(*args, **kwargs)


def mount_certificate(session: requests.Session, ssl_context: ssl.SSLContext) -> None:
    """Configure a requests.Session to present the certificate on HTTPS requests."""
    session.mount("https://", _CertificateAdapter(ssl_context))


class RequestsTransport:
    """
    Default transport: a requests.Session with certificate injection support.

    The session's connection pool is shared by every request the client
    makes, including concurrent operation polls from several threads.
    Proxy settings are taken from the environment, as requests does.

    Example:
        >>> transport = RequestsTransport()
        >>> config = ClientConfig(transport=transport)
    """

    def __init__(self, session: Optional[requests.Session] = None):
        self._session = session or requests.Session()
        self._certificate_injected = False

    @property
    def session(self) -> requests.Session:
        return self._session

    @property
    def has_certificate(self) -> bool:
        return self._certificate_injected

    def supports_certificate_injection(self) -> bool:
        return True

    def inject_certificate(self, ssl_context: ssl.SSLContext) -> None:
        mount_certificate(self._session, ssl_context)
        self._certificate_injected = True

    def request(
        self,
        method: str,
        url: str,
        headers: Optional[Dict[str, str]] = None,
        data: Optional[bytes] = None,
        timeout: Optional[float] = None,
    ) -> requests.Response:
        """Send a request through the underlying session."""
        return self._session.request(method, url, headers=headers, data=data, timeout=timeout)

    def close(self) -> None:
        self._session.close()


def apply_certificate(transport: Any, ssl_context: ssl.SSLContext) -> None:
    """Bind the management certificate to a transport.

    Transports implementing CertificateInjector receive the TLS context
    directly; a plain requests.Session gets a certificate adapter mounted.

    Raises:
        ConfigurationError: If the transport offers neither option
    """
    if isinstance(transport, CertificateInjector) and transport.supports_certificate_injection():
        logger.debug(f"Injecting management certificate into {type(transport).__name__}")
        transport.inject_certificate(ssl_context)
        return

    if isinstance(transport, requests.Session):
        logger.debug("Mounting management certificate adapter on requests.Session")
        mount_certificate(transport, ssl_context)
        return

    raise ConfigurationError(
        f"azure: transport {type(transport).__name__} does not support certificate injection"
    )
