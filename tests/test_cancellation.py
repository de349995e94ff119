"""
Tests for the cancellation module.

Tests cover the CancellationToken class, CancellationTokenSource,
deadline-based cancellation, and the exception type.
"""

import pytest
import threading
import time

from azure_management.cancellation import (
    CancellationToken,
    CancellationTokenSource,
    OperationCancelledException,
)
from azure_management.errors import ManagementError


class TestOperationCancelledException:
    """Tests for OperationCancelledException."""

    def test_basic_exception(self):
        exc = OperationCancelledException()
        assert str(exc) == "Operation was cancelled"
        assert exc.message == "Operation was cancelled"
        assert exc.operation is None

    def test_exception_with_operation(self):
        exc = OperationCancelledException("Cancelled", operation="waiting for operation")
        assert "waiting for operation" in str(exc)
        assert exc.operation == "waiting for operation"

    def test_is_management_error(self):
        """Cancellation is caught by handlers for client errors."""
        assert isinstance(OperationCancelledException(), ManagementError)


@pytest.mark.unit
class TestCancellationToken:
    """Tests for CancellationToken class."""

    def test_initial_state(self):
        token = CancellationToken()
        assert token.is_cancelled() is False
        assert token.cancel_reason is None

    def test_cancel_with_reason(self):
        token = CancellationToken()
        token.cancel(reason="shutting down")
        assert token.is_cancelled() is True
        assert token.cancel_reason == "shutting down"

    def test_cancel_idempotent(self):
        """Only the first cancel() records a reason."""
        token = CancellationToken()
        token.cancel("First")
        token.cancel("Second")
        assert token.cancel_reason == "First"

    def test_throw_if_cancelled_when_not_cancelled(self):
        token = CancellationToken()
        token.throw_if_cancelled()
        token.throw_if_cancelled("some operation")

    def test_throw_if_cancelled_includes_reason_and_operation(self):
        token = CancellationToken()
        token.cancel("deadline")

        with pytest.raises(OperationCancelledException) as exc_info:
            token.throw_if_cancelled("waiting for operation")

        assert exc_info.value.operation == "waiting for operation"
        assert "deadline" in exc_info.value.message

    def test_callbacks_executed_in_order(self):
        token = CancellationToken()
        call_order = []

        token.register_callback(lambda: call_order.append(1))
        token.register_callback(lambda: call_order.append(2))
        token.cancel()

        assert call_order == [1, 2]

    def test_callback_exception_does_not_prevent_others(self):
        token = CancellationToken()
        results = []

        def callback_error():
            raise RuntimeError("Callback failed")

        token.register_callback(lambda: results.append("ok"))
        token.register_callback(callback_error)
        token.register_callback(lambda: results.append("ok"))

        token.cancel()

        assert results == ["ok", "ok"]

    def test_unregister_callback(self):
        token = CancellationToken()
        called = []

        def on_cancel():
            called.append(True)

        token.register_callback(on_cancel)
        assert token.unregister_callback(on_cancel) is True
        assert token.unregister_callback(on_cancel) is False

        token.cancel()
        assert called == []

    def test_wait_returns_true_when_cancelled(self):
        token = CancellationToken()

        def cancel_later():
            time.sleep(0.05)
            token.cancel()

        thread = threading.Thread(target=cancel_later)
        thread.start()
        result = token.wait(timeout=2.0)
        thread.join()

        assert result is True

    def test_wait_returns_false_on_timeout(self):
        token = CancellationToken()
        assert token.wait(timeout=0.05) is False
        assert token.is_cancelled() is False

    def test_cancel_after_fires(self):
        token = CancellationToken()
        token.cancel_after(0.05)

        assert token.wait(timeout=2.0) is True
        assert "deadline" in token.cancel_reason

    def test_cancel_after_rearm_replaces_previous_timer(self):
        token = CancellationToken()
        token.cancel_after(0.05)
        token.cancel_after(10)

        assert token.wait(timeout=0.2) is False
        token.cancel()


@pytest.mark.unit
class TestCancellationTokenSource:
    """Tests for CancellationTokenSource class."""

    def test_source_cancel_cancels_token(self):
        source = CancellationTokenSource()
        assert source.is_cancelled() is False

        source.cancel()

        assert source.is_cancelled() is True
        assert source.token.is_cancelled() is True

    def test_linked_tokens_cancelled_with_parent(self):
        source = CancellationTokenSource()
        children = [source.create_linked_token() for _ in range(3)]

        source.cancel("parent cancelled")

        for child in children:
            assert child.is_cancelled() is True
            assert child.cancel_reason == "parent cancelled"

    def test_child_cancel_does_not_affect_parent_or_siblings(self):
        source = CancellationTokenSource()
        first = source.create_linked_token()
        second = source.create_linked_token()

        first.cancel()

        assert source.is_cancelled() is False
        assert second.is_cancelled() is False

    def test_child_cancelled_on_its_own_detaches_from_source(self):
        source = CancellationTokenSource()
        first = source.create_linked_token()
        second = source.create_linked_token()

        first.cancel()

        assert len(source.token._callbacks) == 1
        source.cancel("stop")
        assert second.cancel_reason == "stop"
        assert first.cancel_reason is None
        assert source.token._callbacks == []

    def test_token_linked_after_cancel_is_cancelled(self):
        source = CancellationTokenSource()
        source.cancel("already stopped")

        child = source.create_linked_token()

        assert child.is_cancelled() is True
