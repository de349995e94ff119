"""
HTTP request helpers for the management client.

This module builds versioned requests against the configured management
endpoint, sends them over the client's transport, and turns transport
failures and error responses into the package's error types.

Classes:
    RequestHandler: Builds and sends requests with consistent error handling
    ResponseHandler: Response inspection (errors, bodies, operation IDs)
"""

import json
import logging
import xml.etree.ElementTree as ET
from typing import Any, Dict, Literal, NewType, Optional, Tuple

import requests

from .config import ClientConfig
from .errors import RemoteError, RequestPhase, TransportError

logger = logging.getLogger(__name__)

# Type aliases
HttpMethod = Literal["GET", "POST", "PUT", "DELETE"]
OperationID = NewType("OperationID", str)

DEFAULT_CONTENT_TYPE = "application/xml"
OPERATION_ID_HEADER = "x-ms-request-id"
API_VERSION_HEADER = "x-ms-version"
MUTATING_METHODS = ("POST", "PUT", "DELETE")

_PREPARATION_ERRORS = (
    requests.exceptions.MissingSchema,
    requests.exceptions.InvalidSchema,
    requests.exceptions.InvalidURL,
    requests.exceptions.InvalidHeader,
)


def local_name(tag: str) -> str:
    """Strip the ``{namespace}`` prefix ElementTree puts on tag names."""
    return tag.rsplit("}", 1)[-1]


def child_text(element: ET.Element, name: str) -> Optional[str]:
    """Return the text of the first direct child with the given local name."""
    for child in element:
        if local_name(child.tag) == name:
            return (child.text or "").strip()
    return None


def find_child(element: ET.Element, name: str) -> Optional[ET.Element]:
    for child in element:
        if local_name(child.tag) == name:
            return child
    return None


class ResponseHandler:
    """Inspects management API responses.

    Example:
        >>> ResponseHandler.raise_for_status(response, "GetRole")
        >>> operation_id = ResponseHandler.operation_id_from(response)
    """

    @staticmethod
    def is_success(response: requests.Response) -> bool:
        return 200 <= response.status_code < 300

    @staticmethod
    def parse_error(response: requests.Response) -> Tuple[Optional[str], str]:
        """Extract the service error code and message from an error response.

        Understands the XML ``<Error><Code/><Message/></Error>`` document of
        the Service Management API and the JSON error envelopes of the
        resource manager APIs.

        Returns:
            Tuple of (error code or None, message)
        """
        body = response.content or b""
        text = body.decode("utf-8", errors="replace").strip()
        fallback = text or getattr(response, "reason", None) or f"HTTP {response.status_code}"

        if text.startswith("<"):
            try:
                root = ET.fromstring(body)
            except ET.ParseError as e:
                logger.debug(f"Could not parse XML error body: {e}")
                return None, fallback
            code = child_text(root, "Code")
            message = child_text(root, "Message")
            return code or None, message or fallback

        if text.startswith("{"):
            try:
                error_data = json.loads(text)
            except json.JSONDecodeError as e:
                logger.debug(f"Could not parse JSON error body: {e}")
                return None, fallback
            error = error_data.get("error", error_data)
            if isinstance(error, dict):
                code = error.get("code") or error.get("Code")
                message = error.get("message") or error.get("Message")
                return code, message or fallback

        return None, fallback

    @classmethod
    def raise_for_status(cls, response: requests.Response, operation_name: str) -> None:
        """Raise RemoteError unless the response has a 2xx status."""
        if cls.is_success(response):
            return

        error_code, message = cls.parse_error(response)
        logger.debug(
            f"{operation_name}: service returned HTTP {response.status_code} "
            f"[{error_code or 'Unknown'}] {message}"
        )
        raise RemoteError(
            status_code=response.status_code,
            error_code=error_code,
            message=message,
            operation_name=operation_name,
            phase=RequestPhase.RESPONDING,
        )

    @staticmethod
    def operation_id_from(response: requests.Response) -> Optional[OperationID]:
        """Return the operation identifier of an accepted asynchronous request.

        Returns:
            The x-ms-request-id header value, or None when the service
            completed the request synchronously
        """
        operation_id = response.headers.get(OPERATION_ID_HEADER)
        if operation_id:
            return OperationID(operation_id)
        return None


class RequestHandler:
    """Builds signed, versioned requests and sends them over a transport.

    The handler never retries. Transport failures surface as TransportError
    and non-2xx responses as RemoteError, each tagged with the operation name
    and the phase in which they happened.

    Example:
        >>> handler = RequestHandler(transport, config)
        >>> response = handler.execute("GET", "services/hostedservices", "ListHostedServices")
    """

    def __init__(self, transport: Any, config: ClientConfig):
        """Initialize the request handler.

        Args:
            transport: Object with a requests-compatible ``request()`` method
            config: Validated client configuration
        """
        self._transport = transport
        self._config = config

    def build_url(self, path: str) -> str:
        """Join a request path onto the management URL.

        Absolute http(s) URLs are returned unchanged.
        """
        if path.startswith(("https://", "http://")):
            return path
        return f"{self._config.management_url.rstrip('/')}/{path.lstrip('/')}"

    def build_headers(self, content_type: Optional[str] = None, has_body: bool = False) -> Dict[str, str]:
        headers = {
            API_VERSION_HEADER: self._config.api_version,
            "User-Agent": self._config.user_agent,
        }
        if has_body or content_type:
            headers["Content-Type"] = content_type or DEFAULT_CONTENT_TYPE
        return headers

    def execute(
        self,
        method: HttpMethod,
        path: str,
        operation_name: str,
        data: Optional[bytes] = None,
        content_type: Optional[str] = None,
    ) -> requests.Response:
        """Send a request and check its status.

        Args:
            method: HTTP method
            path: Path relative to the management URL (or an absolute URL)
            operation_name: Description of the operation (for logs and errors)
            data: Optional request body
            content_type: Body content type (application/xml if omitted)

        Returns:
            The successful (2xx) response

        Raises:
            TransportError: If the request could not be prepared or delivered
            RemoteError: If the service answered with a non-2xx status
        """
        url = self.build_url(path)
        headers = self.build_headers(content_type, has_body=data is not None)
        timeout = self._config.request_timeout

        try:
            logger.debug(f"{operation_name}: {method} {url}")
            response = self._transport.request(
                method, url, headers=headers, data=data, timeout=timeout
            )

        except _PREPARATION_ERRORS as e:
            logger.debug(f"{operation_name}: Invalid request: {e}")
            raise TransportError(
                f"invalid request to {url}: {e}",
                original=e,
                operation_name=operation_name,
                phase=RequestPhase.PREPARING,
            ) from e

        except requests.exceptions.Timeout as e:
            logger.debug(f"{operation_name}: Request timeout after {timeout}s")
            raise TransportError(
                f"timed out after {timeout} seconds: {e}",
                original=e,
                operation_name=operation_name,
            ) from e

        except requests.exceptions.SSLError as e:
            logger.debug(f"{operation_name}: TLS error: {e}")
            raise TransportError(
                f"TLS handshake with {url} failed: {e}",
                original=e,
                operation_name=operation_name,
            ) from e

        except requests.exceptions.ConnectionError as e:
            logger.debug(f"{operation_name}: Connection error: {e}")
            raise TransportError(
                f"failed to connect to management API: {e}",
                original=e,
                operation_name=operation_name,
            ) from e

        except requests.exceptions.RequestException as e:
            logger.debug(f"{operation_name}: Request error: {e}")
            raise TransportError(
                f"request failed: {e}",
                original=e,
                operation_name=operation_name,
            ) from e

        ResponseHandler.raise_for_status(response, operation_name)
        return response

    def submit(
        self,
        method: HttpMethod,
        path: str,
        operation_name: str,
        data: Optional[bytes] = None,
        content_type: Optional[str] = None,
    ) -> Optional[OperationID]:
        """Send a mutating request and return its operation identifier.

        Returns:
            The OperationID to poll, or None if the request completed
            synchronously
        """
        if method not in MUTATING_METHODS:
            raise ValueError(f"{method} is not a mutating method")
        response = self.execute(method, path, operation_name, data=data, content_type=content_type)
        operation_id = ResponseHandler.operation_id_from(response)
        if operation_id is None:
            logger.debug(f"{operation_name}: completed synchronously (HTTP {response.status_code})")
        else:
            logger.debug(f"{operation_name}: accepted as operation {operation_id}")
        return operation_id
