"""
Cooperative cancellation for operation polling.

A CancellationToken is handed to ManagementClient.wait_for_operation and is
checked at every suspension point of the poll loop. Cancelling the token from
any thread stops the wait promptly with OperationCancelledException.

Example:
    ```python
    token = CancellationToken()
    token.cancel_after(600)  # give up after ten minutes

    try:
        client.wait_for_operation(operation_id, token)
    except OperationCancelledException:
        print("Stopped waiting")
    ```
"""

import threading
import logging
from typing import Callable, List, Optional

from .errors import ManagementError

logger = logging.getLogger(__name__)


class OperationCancelledException(ManagementError):
    """
    Raised when waiting for an operation is cancelled by the caller.

    Cancellation only stops the client from waiting; the remote operation
    itself keeps running on the service.

    Attributes:
        message: Human-readable description of the cancellation.
        operation: Optional name of the step that observed the cancellation.
    """

    def __init__(
        self,
        message: str = "Operation was cancelled",
        operation: Optional[str] = None
    ):
        self.operation = operation
        super().__init__(message)

    def __str__(self) -> str:
        if self.operation:
            return f"{self.message} (operation: {self.operation})"
        return self.message


class CancellationToken:
    """
    Thread-safe token for cooperative cancellation.

    Backed by a threading.Event so waiters can block on the token with a
    timeout and wake up as soon as it is cancelled.
    """

    def __init__(self):
        self._cancelled = threading.Event()
        self._callbacks: List[Callable[[], None]] = []
        self._lock = threading.Lock()
        self._cancel_reason: Optional[str] = None
        self._timer: Optional[threading.Timer] = None

    def cancel(self, reason: Optional[str] = None) -> None:
        """
        Mark the token as cancelled and run registered callbacks.

        Only the first call has an effect.

        Args:
            reason: Optional reason for the cancellation.
        """
        with self._lock:
            if self._cancelled.is_set():
                return

            self._cancel_reason = reason
            self._cancelled.set()
            callbacks = list(self._callbacks)

        logger.info(f"Cancellation requested: {reason or 'caller initiated'}")

        for callback in callbacks:
            try:
                callback()
            except Exception as e:
                logger.error(f"Cancellation callback failed: {e}")

    def cancel_after(self, seconds: float) -> None:
        """
        Cancel the token automatically once the given delay has elapsed.

        Args:
            seconds: Delay before cancellation.
        """
        with self._lock:
            if self._timer is not None:
                self._timer.cancel()
            self._timer = threading.Timer(
                seconds, self.cancel, kwargs={"reason": f"deadline of {seconds}s exceeded"}
            )
            self._timer.daemon = True
            self._timer.start()

    def is_cancelled(self) -> bool:
        """Return True if cancel() has been called."""
        return self._cancelled.is_set()

    def throw_if_cancelled(self, operation: Optional[str] = None) -> None:
        """
        Raise OperationCancelledException if cancellation was requested.

        Args:
            operation: Optional name of the current step for the error message.

        Raises:
            OperationCancelledException: If cancel() has been called.
        """
        if self.is_cancelled():
            message = "Operation was cancelled"
            if self._cancel_reason:
                message = f"Operation was cancelled: {self._cancel_reason}"
            raise OperationCancelledException(message, operation)

    def register_callback(self, callback: Callable[[], None]) -> None:
        """
        Register a callback to run when the token is cancelled.

        Callbacks run in registration order; a failing callback is logged and
        does not stop the others.
        """
        with self._lock:
            self._callbacks.append(callback)

    def unregister_callback(self, callback: Callable[[], None]) -> bool:
        """
        Remove a previously registered callback.

        Returns:
            True if the callback was found and removed, False otherwise.
        """
        with self._lock:
            try:
                self._callbacks.remove(callback)
                return True
            except ValueError:
                return False

    def wait(self, timeout: Optional[float] = None) -> bool:
        """
        Block until the token is cancelled or the timeout expires.

        Args:
            timeout: Maximum time to wait in seconds. None means wait forever.

        Returns:
            True if cancelled, False if the timeout expired first.
        """
        return self._cancelled.wait(timeout)

    @property
    def cancel_reason(self) -> Optional[str]:
        """The reason given to cancel(), if any."""
        return self._cancel_reason


class CancellationTokenSource:
    """
    Parent of linked cancellation tokens.

    Cancelling the source cancels every token created from it, which lets a
    caller stop several concurrent waits at once while still being able to
    cancel each one on its own.

    Example:
        ```python
        source = CancellationTokenSource()
        tokens = [source.create_linked_token() for _ in operation_ids]
        ...
        source.cancel("shutting down")
        ```
    """

    def __init__(self):
        self._token = CancellationToken()

    @property
    def token(self) -> CancellationToken:
        """The source's own token."""
        return self._token

    def create_linked_token(self) -> CancellationToken:
        """
        Create a child token that is cancelled together with this source.

        A child cancelled on its own detaches from the source, so the source
        holds no reference to it afterwards.

        Returns:
            A new CancellationToken linked to this source.
        """
        child = CancellationToken()

        def cancel_child():
            child.cancel(self._token.cancel_reason)

        def detach():
            self._token.unregister_callback(cancel_child)

        self._token.register_callback(cancel_child)
        child.register_callback(detach)

        if self._token.is_cancelled():
            child.cancel(self._token.cancel_reason)

        return child

    def cancel(self, reason: Optional[str] = None) -> None:
        """Cancel the source token and all linked tokens."""
        self._token.cancel(reason)

    def is_cancelled(self) -> bool:
        return self._token.is_cancelled()
