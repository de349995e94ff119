"""
Tests for operation status parsing and the OperationTracker.

Reference format: GET https://management.core.windows.net/{subscriptionId}/operations/{operationId}
returns an ``Operation`` document with ID, Status, HttpStatusCode and,
for failed operations, an Error element.
"""

import pytest
import requests

from azure_management import (
    OperationErrorDetail,
    OperationState,
    OperationStatusError,
    RemoteError,
    TransportError,
    parse_operation_status,
)
from fixtures.management_responses import (
    MANAGEMENT_URL,
    SAMPLE_OPERATION_ID,
    SAMPLE_SUBSCRIPTION_ID,
    FakeTransport,
    create_error_response,
    create_json_status_response,
    create_mock_response,
    create_operation_xml,
    create_status_response,
)


@pytest.mark.unit
class TestParseOperationStatus:

    def test_in_progress(self):
        status = parse_operation_status(SAMPLE_OPERATION_ID, create_operation_xml("InProgress"))
        assert status.state is OperationState.IN_PROGRESS
        assert status.is_terminal is False
        assert status.error is None

    def test_succeeded_keeps_payload(self):
        body = create_operation_xml("Succeeded", http_status_code=200)
        status = parse_operation_status(SAMPLE_OPERATION_ID, body)

        assert status.state is OperationState.SUCCEEDED
        assert status.is_terminal is True
        assert status.http_status_code == 200
        assert status.result == body

    def test_failed_with_error_detail(self):
        body = create_operation_xml(
            "Failed",
            http_status_code=400,
            error_code="BadRequest",
            error_message="The specified deployment slot Production is occupied.",
        )
        status = parse_operation_status(SAMPLE_OPERATION_ID, body)

        assert status.state is OperationState.FAILED
        assert status.http_status_code == 400
        assert status.error == OperationErrorDetail(
            code="BadRequest",
            message="The specified deployment slot Production is occupied.",
        )

    def test_unknown_status_is_in_progress(self):
        status = parse_operation_status(SAMPLE_OPERATION_ID, create_operation_xml("Throttled"))
        assert status.state is OperationState.IN_PROGRESS

    def test_xml_without_namespace(self):
        body = b"<Operation><ID>x</ID><Status>Succeeded</Status></Operation>"
        assert parse_operation_status(SAMPLE_OPERATION_ID, body).state is OperationState.SUCCEEDED

    def test_json_status(self):
        body = b'{"status": "Failed", "error": {"code": "Conflict", "message": "busy"}}'
        status = parse_operation_status(SAMPLE_OPERATION_ID, body)

        assert status.state is OperationState.FAILED
        assert status.error == OperationErrorDetail(code="Conflict", message="busy")

    @pytest.mark.parametrize("body, match", [
        (b"", "empty response body"),
        (None, "empty response body"),
        (b"<Operation><Status>InProgress", "malformed XML"),
        (b"<Error><Code>x</Code></Error>", "unexpected root element"),
        (b"<Operation><ID>x</ID></Operation>", "no Status element"),
        (b"{not json", "malformed JSON"),
        (b'{"percentComplete": 10}', "no status field"),
        (b"[1, 2]", "neither XML nor JSON"),
        (b"OK", "neither XML nor JSON"),
    ])
    def test_malformed_documents_raise(self, body, match):
        with pytest.raises(OperationStatusError, match=match) as exc_info:
            parse_operation_status(SAMPLE_OPERATION_ID, body)
        assert exc_info.value.operation_id == SAMPLE_OPERATION_ID


@pytest.mark.unit
class TestOperationTracker:

    def test_queries_status_endpoint(self, make_client):
        transport = FakeTransport([create_status_response("InProgress")])
        client = make_client(transport)

        status = client.get_operation_status(SAMPLE_OPERATION_ID)

        assert status.state is OperationState.IN_PROGRESS
        assert status.operation_id == SAMPLE_OPERATION_ID
        sent = transport.requests[0]
        assert sent.method == "GET"
        assert sent.url == f"{MANAGEMENT_URL}/{SAMPLE_SUBSCRIPTION_ID}/operations/{SAMPLE_OPERATION_ID}"
        assert sent.headers["x-ms-version"] == "2014-10-01"

    def test_json_status_endpoint(self, make_client):
        client = make_client(FakeTransport([create_json_status_response("Succeeded")]))
        assert client.get_operation_status(SAMPLE_OPERATION_ID).state is OperationState.SUCCEEDED

    def test_failed_status_is_not_an_error(self, make_client):
        response = create_status_response("Failed", error_code="InternalError", error_message="boom")
        client = make_client(FakeTransport([response]))

        status = client.get_operation_status(SAMPLE_OPERATION_ID)

        assert status.state is OperationState.FAILED
        assert status.error.code == "InternalError"

    def test_malformed_response_is_an_error(self, make_client):
        client = make_client(FakeTransport([create_mock_response(200, b"<html>oops</html>")]))

        with pytest.raises(OperationStatusError):
            client.get_operation_status(SAMPLE_OPERATION_ID)

    def test_remote_error_propagates(self, make_client):
        client = make_client(FakeTransport([
            create_error_response(404, "ResourceNotFound", "Operation not found")
        ]))

        with pytest.raises(RemoteError) as exc_info:
            client.get_operation_status(SAMPLE_OPERATION_ID)

        assert exc_info.value.operation_name == "GetOperationStatus"

    def test_transport_error_propagates(self, make_client):
        client = make_client(FakeTransport([requests.exceptions.ConnectionError("reset")]))

        with pytest.raises(TransportError):
            client.get_operation_status(SAMPLE_OPERATION_ID)

    def test_empty_operation_id_rejected(self, make_client):
        transport = FakeTransport([create_status_response("Succeeded")])
        client = make_client(transport)

        with pytest.raises(ValueError):
            client.get_operation_status("")
        assert transport.requests == []

    def test_operation_id_escaped_in_status_path(self, make_client):
        transport = FakeTransport([create_status_response("Succeeded")])
        client = make_client(transport)

        client.get_operation_status("a/b c?d")

        assert transport.requests[0].url == (
            f"{MANAGEMENT_URL}/{SAMPLE_SUBSCRIPTION_ID}/operations/a%2Fb%20c%3Fd"
        )
