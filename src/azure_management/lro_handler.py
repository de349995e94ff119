"""
Long-running operation (LRO) polling for the management API.

This module provides the wait loop that polls an operation's status at a
fixed interval until it succeeds, fails, or the caller cancels.

Classes:
    PollRetryPolicy: Optional retry of transient status query failures
    LROHandler: Polls operation status until a terminal state
"""

import time
import logging
from dataclasses import dataclass, field
from typing import FrozenSet, Optional

from tenacity import Retrying, retry_if_exception, stop_after_attempt, wait_fixed
from tqdm import tqdm

from .cancellation import CancellationToken
from .errors import OperationFailedError, OperationStatusError, RemoteError, TransportError
from .http_client import OperationID
from .operations import OperationState, OperationStatus, OperationTracker

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PollRetryPolicy:
    """Retry policy for status queries that fail while polling.

    Without a policy the first failed status query ends the wait. With one,
    transient failures are retried up to ``max_retries`` times, ``delay``
    seconds apart.

    Attributes:
        max_retries: Extra attempts after the first failed query
        delay: Seconds to wait before each retry
        retryable_status_codes: HTTP statuses of RemoteError worth retrying
    """
    max_retries: int = 3
    delay: float = 5.0
    retryable_status_codes: FrozenSet[int] = field(
        default_factory=lambda: frozenset({408, 429, 500, 502, 503, 504})
    )

    def __post_init__(self):
        if self.max_retries < 0:
            raise ValueError("max_retries must be >= 0")
        if self.delay < 0:
            raise ValueError("delay must be >= 0")

    def is_retryable(self, exception: BaseException) -> bool:
        """Check if a status query failure is transient.

        Args:
            exception: The exception raised by the status query

        Returns:
            True if the query should be issued again
        """
        if isinstance(exception, (TransportError, OperationStatusError)):
            return True
        if isinstance(exception, RemoteError):
            return exception.status_code in self.retryable_status_codes
        return False


class LROHandler:
    """Waits for long-running operations to finish.

    One handler serves any number of concurrent waits: each call keeps its
    state on its own stack and shares only the tracker and the interval.

    Example:
        >>> handler = LROHandler(tracker, poll_interval=30)
        >>> status = handler.wait_for_operation(operation_id, token)
    """

    def __init__(self, tracker: OperationTracker, poll_interval: float):
        """Initialize the LRO handler.

        Args:
            tracker: Tracker used to query operation status
            poll_interval: Seconds between status queries
        """
        self._tracker = tracker
        self._poll_interval = poll_interval

    @property
    def poll_interval(self) -> float:
        return self._poll_interval

    def wait_for_operation(
        self,
        operation_id: OperationID,
        cancellation_token: Optional[CancellationToken] = None,
        retry_policy: Optional[PollRetryPolicy] = None,
        show_progress: bool = False,
    ) -> OperationStatus:
        """Poll an operation until it succeeds, fails, or is cancelled.

        The first status query is issued immediately. There is no overall
        time limit; use the cancellation token to bound the wait.

        Args:
            operation_id: Operation to wait for
            cancellation_token: Optional token that stops the wait when cancelled
            retry_policy: Optional retry of transient status query failures
            show_progress: Render a progress indicator on stderr

        Returns:
            The final (Succeeded) operation status

        Raises:
            OperationFailedError: If the operation finished with Failed
            OperationCancelledException: If the token was cancelled
            TransportError, RemoteError, OperationStatusError: If a status
                query failed and was not retried
        """
        logger.info(
            f"Waiting for operation {operation_id} to complete... "
            f"(polling every {self._poll_interval}s)"
        )

        with tqdm(
            desc=f"Operation {operation_id}",
            unit="poll",
            disable=not show_progress,
            bar_format="{desc}: {n_fmt} polls [{elapsed}]{postfix}",
        ) as pbar:
            while True:
                self._throw_if_cancelled(cancellation_token)

                status = self._query_status(operation_id, cancellation_token, retry_policy)

                # A status that arrives after cancellation is discarded
                self._throw_if_cancelled(cancellation_token)

                pbar.update(1)
                pbar.set_postfix_str(f"Status: {status.state.value}")

                if status.state is OperationState.SUCCEEDED:
                    logger.info(f"Operation {operation_id} succeeded")
                    return status

                if status.state is OperationState.FAILED:
                    raise self._failure(status)

                self._interruptible_sleep(self._poll_interval, cancellation_token)

    def _query_status(
        self,
        operation_id: OperationID,
        cancellation_token: Optional[CancellationToken],
        retry_policy: Optional[PollRetryPolicy],
    ) -> OperationStatus:
        if retry_policy is None:
            return self._tracker.get_operation_status(operation_id)

        retrying = Retrying(
            stop=stop_after_attempt(retry_policy.max_retries + 1),
            wait=wait_fixed(retry_policy.delay),
            retry=retry_if_exception(retry_policy.is_retryable),
            sleep=lambda seconds: self._interruptible_sleep(seconds, cancellation_token),
            before_sleep=self._log_retry,
            reraise=True,
        )
        return retrying(self._tracker.get_operation_status, operation_id)

    @staticmethod
    def _log_retry(retry_state) -> None:
        exception = retry_state.outcome.exception()
        logger.warning(
            f"Operation status query failed (attempt {retry_state.attempt_number}), "
            f"retrying: {exception}"
        )

    @staticmethod
    def _throw_if_cancelled(cancellation_token: Optional[CancellationToken]) -> None:
        if cancellation_token is not None:
            cancellation_token.throw_if_cancelled("waiting for operation")

    @staticmethod
    def _interruptible_sleep(
        seconds: float,
        cancellation_token: Optional[CancellationToken] = None,
    ) -> None:
        """Sleep until the delay elapses or the token is cancelled, whichever is first.

        Raises:
            OperationCancelledException: If the token is cancelled
        """
        if cancellation_token is None:
            time.sleep(seconds)
            return
        if cancellation_token.wait(seconds):
            cancellation_token.throw_if_cancelled("waiting for operation")

    @staticmethod
    def _failure(status: OperationStatus) -> OperationFailedError:
        error = status.error
        logger.info(
            f"Operation {status.operation_id} failed: "
            f"{error.code if error else 'no error detail'}"
        )
        if error is None:
            return OperationFailedError(
                status.operation_id, http_status_code=status.http_status_code
            )
        return OperationFailedError(
            status.operation_id,
            code=error.code,
            message=error.message,
            http_status_code=status.http_status_code,
        )
