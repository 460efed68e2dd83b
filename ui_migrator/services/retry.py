"""Retry state machine with exponential backoff and cooperative cancellation."""

import asyncio
import logging
import threading
import time
from enum import Enum
from typing import Any, Awaitable, Callable, Optional

from ..errors import MigrationCancelled, MigrationError, OperationTimeout
from ..models.migration import OperationKind, RetryPolicy

logger = logging.getLogger(__name__)

CANCEL_POLL_INTERVAL = 0.05  # Seconds


class RetryState(str, Enum):
    IDLE = "idle"
    WAITING = "waiting"
    RETRYING = "retrying"
    CANCELLED = "cancelled"
    FAILED = "failed"
    SUCCEEDED = "succeeded"


TERMINAL_STATES = (RetryState.CANCELLED, RetryState.FAILED, RetryState.SUCCEEDED)


class CancellationToken:
    """Shared flag checked between attempts and while waiting."""

    def __init__(self):
        self._event = threading.Event()
        self.reason: Optional[str] = None

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def cancel(self, reason: str = "cancelled") -> None:
        if not self._event.is_set():
            self.reason = reason
            self._event.set()

    def raise_if_cancelled(self, component_id: Optional[str] = None) -> None:
        if self.cancelled:
            raise MigrationCancelled(f"Operation cancelled: {self.reason}", component_id)

    async def sleep(self, seconds: float, component_id: Optional[str] = None) -> None:
        """Sleep for `seconds`, waking early with MigrationCancelled on cancel."""
        deadline = time.monotonic() + max(0.0, seconds)
        while True:
            self.raise_if_cancelled(component_id)
            remaining = deadline - time.monotonic()
            if remaining <= 0:
                return
            await asyncio.sleep(min(remaining, CANCEL_POLL_INTERVAL))


def is_transient(error: BaseException) -> bool:
    """Whether an error may go away on retry."""
    if isinstance(error, MigrationError):
        return error.retryable
    if isinstance(error, (FileNotFoundError, IsADirectoryError, NotADirectoryError, PermissionError)):
        return False
    return isinstance(error, (OSError, TimeoutError))


class RetryController:
    """
    Explicit state machine for retrying one operation.

    Transitions:
        idle --start--> retrying
        retrying --success--> succeeded
        retrying --transient failure, attempts left--> waiting
        retrying --permanent failure or attempts exhausted--> failed
        waiting --resume, once the backoff delay has elapsed--> retrying
        any non-terminal --cancel--> cancelled
    """

    def __init__(
        self,
        policy: RetryPolicy,
        operation: OperationKind,
        token: Optional[CancellationToken] = None,
        clock: Callable[[], float] = time.monotonic,
        component_id: Optional[str] = None,
    ):
        self.policy = policy
        self.operation = operation
        self.token = token or CancellationToken()
        self.clock = clock
        self.component_id = component_id

        self.state = RetryState.IDLE
        self.attempts = 0
        self.last_error: Optional[BaseException] = None
        self.next_attempt_at: Optional[float] = None

    @property
    def finished(self) -> bool:
        return self.state in TERMINAL_STATES

    def start(self) -> None:
        if self.state != RetryState.IDLE:
            raise RuntimeError(f"Cannot start a retry controller in state {self.state.value}")
        if self._cancel_if_requested():
            return
        self.state = RetryState.RETRYING
        self.attempts = 1

    def record_success(self) -> None:
        self._require(RetryState.RETRYING)
        self.state = RetryState.SUCCEEDED
        self.next_attempt_at = None

    def record_failure(self, error: BaseException) -> RetryState:
        """Record a failed attempt and move to waiting, failed or cancelled."""
        self._require(RetryState.RETRYING)
        self.last_error = error
        if self._cancel_if_requested():
            return self.state

        retryable = self.policy.is_retryable(self.operation) and is_transient(error)
        if not retryable or self.attempts >= self.policy.max_attempts:
            self.state = RetryState.FAILED
            self.next_attempt_at = None
            return self.state

        delay = self.policy.delay_for(self.attempts)
        self.state = RetryState.WAITING
        self.next_attempt_at = self.clock() + delay
        logger.debug(
            f"{self.operation.value} attempt {self.attempts} failed for {self.component_id}: {error}; "
            f"retrying in {delay:.2f}s"
        )
        return self.state

    def remaining_delay(self) -> float:
        if self.state != RetryState.WAITING or self.next_attempt_at is None:
            return 0.0
        return max(0.0, self.next_attempt_at - self.clock())

    def ready(self) -> bool:
        """True once the backoff delay of a waiting controller has elapsed."""
        return self.state == RetryState.WAITING and self.remaining_delay() <= 0

    def resume(self) -> None:
        self._require(RetryState.WAITING)
        if self._cancel_if_requested():
            return
        if not self.ready():
            raise RuntimeError(f"Backoff not elapsed; {self.remaining_delay():.2f}s remaining")
        self.state = RetryState.RETRYING
        self.attempts += 1
        self.next_attempt_at = None

    def cancel(self, reason: str = "cancelled") -> None:
        self.token.cancel(reason)
        if not self.finished:
            self.state = RetryState.CANCELLED
            self.next_attempt_at = None

    async def run(
        self,
        call_factory: Callable[[], Awaitable[Any]],
        timeout: Optional[float] = None,
    ) -> Any:
        """
        Drive the state machine until the operation succeeds or gives up.

        Args:
            call_factory: Returns a fresh awaitable for each attempt
            timeout: Per-attempt time limit in seconds

        Raises:
            The last error when retries are exhausted or the error is permanent;
            MigrationCancelled when the token is cancelled.
        """
        self.start()
        while True:
            if self.state == RetryState.CANCELLED:
                raise MigrationCancelled(f"{self.operation.value} cancelled", self.component_id)
            try:
                if timeout:
                    result = await asyncio.wait_for(call_factory(), timeout)
                else:
                    result = await call_factory()
            except asyncio.TimeoutError:
                error: BaseException = OperationTimeout(
                    f"{self.operation.value} exceeded {timeout}s", self.component_id
                )
            except MigrationCancelled:
                self.cancel()
                raise
            except Exception as e:
                error = e
            else:
                self.record_success()
                return result

            state = self.record_failure(error)
            if state == RetryState.FAILED:
                raise error
            if state == RetryState.CANCELLED:
                raise MigrationCancelled(f"{self.operation.value} cancelled", self.component_id)

            try:
                await self.token.sleep(self.remaining_delay(), self.component_id)
            except MigrationCancelled:
                self.cancel()
                raise
            self.resume()

    def _cancel_if_requested(self) -> bool:
        if self.token.cancelled:
            self.state = RetryState.CANCELLED
            self.next_attempt_at = None
            return True
        return False

    def _require(self, state: RetryState) -> None:
        if self.state != state:
            raise RuntimeError(f"Expected state {state.value}, controller is {self.state.value}")
