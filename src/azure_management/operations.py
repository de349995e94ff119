"""
Long-running operation status tracking.

Mutating management requests that the service does not complete right away
return an operation identifier. The OperationTracker queries the service's
operation status endpoint for that identifier and maps the answer onto one
of three states: in progress, succeeded, or failed.

Classes:
    OperationState: Known operation states
    OperationErrorDetail: Error code and message of a failed operation
    OperationStatus: Parsed status of one operation
    OperationTracker: Queries operation status from the service
"""

import json
import logging
import xml.etree.ElementTree as ET
from urllib.parse import quote
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional

from .errors import ConfigurationError, OperationStatusError
from .http_client import OperationID, RequestHandler, child_text, find_child, local_name

logger = logging.getLogger(__name__)


class OperationState(Enum):
    """Operation states reported by the status endpoint."""
    IN_PROGRESS = "InProgress"
    SUCCEEDED = "Succeeded"
    FAILED = "Failed"

    @classmethod
    def from_wire(cls, value: str) -> "OperationState":
        """Map a status string to a state.

        Anything other than the two terminal values counts as in progress,
        so status strings added by the service later keep the poll going.
        """
        if value == cls.SUCCEEDED.value:
            return cls.SUCCEEDED
        if value == cls.FAILED.value:
            return cls.FAILED
        if value != cls.IN_PROGRESS.value:
            logger.debug(f"Unrecognized operation status '{value}', treating as in progress")
        return cls.IN_PROGRESS


@dataclass(frozen=True)
class OperationErrorDetail:
    code: Optional[str]
    message: Optional[str]


@dataclass(frozen=True)
class OperationStatus:
    """Status of a long-running operation.

    Attributes:
        operation_id: Identifier the status was requested for
        state: Current state
        http_status_code: HTTP status the operation reported, if any
        error: Failure detail, set when the service reports one
        result: Raw status payload returned by the service
    """
    operation_id: OperationID
    state: OperationState
    http_status_code: Optional[int] = None
    error: Optional[OperationErrorDetail] = None
    result: Optional[bytes] = None

    @property
    def is_terminal(self) -> bool:
        return self.state is not OperationState.IN_PROGRESS


def _to_int(value: Any) -> Optional[int]:
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def _parse_xml_status(operation_id: OperationID, body: bytes) -> OperationStatus:
    try:
        root = ET.fromstring(body)
    except ET.ParseError as e:
        raise OperationStatusError(operation_id, f"malformed XML: {e}") from e

    if local_name(root.tag) != "Operation":
        raise OperationStatusError(
            operation_id, f"unexpected root element <{local_name(root.tag)}>"
        )

    status = child_text(root, "Status")
    if not status:
        raise OperationStatusError(operation_id, "response has no Status element")

    error = None
    error_element = find_child(root, "Error")
    if error_element is not None:
        error = OperationErrorDetail(
            code=child_text(error_element, "Code") or None,
            message=child_text(error_element, "Message") or None,
        )

    return OperationStatus(
        operation_id=operation_id,
        state=OperationState.from_wire(status),
        http_status_code=_to_int(child_text(root, "HttpStatusCode")),
        error=error,
        result=body,
    )


def _parse_json_status(operation_id: OperationID, body: bytes) -> OperationStatus:
    try:
        data = json.loads(body)
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise OperationStatusError(operation_id, f"malformed JSON: {e}") from e

    if not isinstance(data, dict):
        raise OperationStatusError(operation_id, "status document is not an object")

    status = data.get("status") or data.get("Status")
    if not status or not isinstance(status, str):
        raise OperationStatusError(operation_id, "response has no status field")

    error = None
    error_data: Dict[str, Any] = data.get("error") or data.get("Error") or {}
    if isinstance(error_data, dict) and error_data:
        error = OperationErrorDetail(
            code=error_data.get("code") or error_data.get("Code"),
            message=error_data.get("message") or error_data.get("Message"),
        )

    return OperationStatus(
        operation_id=operation_id,
        state=OperationState.from_wire(status),
        http_status_code=_to_int(data.get("httpStatusCode") or data.get("HttpStatusCode")),
        error=error,
        result=body,
    )


def parse_operation_status(operation_id: OperationID, body: Optional[bytes]) -> OperationStatus:
    """Parse an operation status document.

    Args:
        operation_id: Identifier the document belongs to
        body: Raw response body (XML ``Operation`` document or JSON object)

    Returns:
        Parsed OperationStatus

    Raises:
        OperationStatusError: If the body is empty, malformed, or has no status
    """
    stripped = (body or b"").lstrip()
    if not stripped:
        raise OperationStatusError(operation_id, "empty response body")
    if stripped.startswith(b"<"):
        return _parse_xml_status(operation_id, stripped)
    if stripped.startswith(b"{"):
        return _parse_json_status(operation_id, stripped)
    raise OperationStatusError(operation_id, "response is neither XML nor JSON")


class OperationTracker:
    """Queries the status of long-running operations.

    Example:
        >>> tracker = OperationTracker(request_handler, subscription_id)
        >>> status = tracker.get_operation_status(operation_id)
        >>> status.state
        <OperationState.IN_PROGRESS: 'InProgress'>
    """

    def __init__(self, request_handler: RequestHandler, subscription_id: Optional[str]):
        self._request_handler = request_handler
        self._subscription_id = subscription_id

    def status_path(self, operation_id: OperationID) -> str:
        subscription = quote(self._subscription_id, safe="")
        return f"{subscription}/operations/" + quote(operation_id, safe="")

    def get_operation_status(self, operation_id: OperationID) -> OperationStatus:
        """Query the current status of an operation.

        Raises:
            ConfigurationError: If the client has no subscription ID
            TransportError: If the status request could not be delivered
            RemoteError: If the service answered with an error status
            OperationStatusError: If the status document cannot be interpreted
        """
        if not self._subscription_id:
            raise ConfigurationError("azure: subscription ID required to query operation status")
        if not operation_id:
            raise ValueError("operation_id must not be empty")

        response = self._request_handler.execute(
            "GET", self.status_path(operation_id), "GetOperationStatus"
        )
        status = parse_operation_status(operation_id, response.content)
        logger.debug(f"Operation {operation_id} status: {status.state.value}")
        return status
