"""Shared polling engine for the negotiation and transfer drivers.

Both drivers follow the same lifecycle:

    initiate -> [terminal already?] -> poll every interval -> terminal

    - Each status request is retried on TransportError with a linearly
      increasing delay (retry_delay * attempt) up to retry_attempts calls.
    - The poll loop stops after max_poll_attempts status responses without
      a terminal state and reports a PollTimeoutError.
    - Success and failure are captured into ``error`` / the outcome value;
      nothing is raised to the caller.

Concurrency: one driver instance owns one run at a time. The poll loop is a
single asyncio task, so polls for a handle never overlap. Every continuation
carries the CancellationToken of its run and checks it at the top and after
each awaited request; a new ``initiate`` or ``cancel`` cancels the token, so
late responses from an abandoned run never touch driver state.
"""

from __future__ import annotations

import asyncio
import functools
import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, ClassVar, Generic, TypeVar

from tenacity import (
    AsyncRetrying,
    retry_if_exception_type,
    stop_after_attempt,
    wait_incrementing,
)

from dataspace_client.config import Settings, get_settings
from dataspace_client.domain.enums import FlowPhase, NegotiationState, TransferState
from dataspace_client.domain.exceptions import (
    DataspaceClientError,
    InitiationError,
    PollRetryExhaustedError,
    PollTimeoutError,
    RemoteTerminationError,
    TransportError,
    TransportErrorKind,
)
from dataspace_client.domain.models import (
    DriverOutcome,
    NegotiationHandle,
    StateChange,
    TransferHandle,
)
from dataspace_client.logging_config import get_logger
from dataspace_client.observability.metrics import FlowMetrics, FlowSample, get_metrics
from dataspace_client.scheduling import CancellationToken, OperationCancelled

if TYPE_CHECKING:
    from tenacity import RetryCallState

    from dataspace_client.domain.backend_protocol import DataspaceBackend

logger = get_logger(__name__)

StateT = TypeVar("StateT", NegotiationState, TransferState)
HandleT = TypeVar("HandleT", NegotiationHandle, TransferHandle)
StateListener = Callable[[StateChange], None]


@dataclass(frozen=True)
class DriverOptions:
    """Polling and retry policy for one driver instance.

    Attributes:
        poll_interval: Seconds between status polls.
        max_poll_attempts: Status responses allowed before a PollTimeoutError.
        retry_attempts: Calls per status request before giving up.
        retry_delay: Base backoff in seconds; the n-th retry waits n * retry_delay.
        data_fetch_retry_attempts: Calls to the payload endpoint before a DataFetchError.
        data_fetch_retry_delay: Base backoff for payload retrieval.
    """

    poll_interval: float = 2.0
    max_poll_attempts: int = 30
    retry_attempts: int = 3
    retry_delay: float = 1.0
    data_fetch_retry_attempts: int = 3
    data_fetch_retry_delay: float = 1.0

    def __post_init__(self) -> None:
        for name in ("max_poll_attempts", "retry_attempts", "data_fetch_retry_attempts"):
            if getattr(self, name) < 1:
                raise ValueError(f"{name} must be >= 1")
        for name in ("poll_interval", "retry_delay", "data_fetch_retry_delay"):
            if getattr(self, name) < 0:
                raise ValueError(f"{name} must be >= 0")

    @classmethod
    def from_settings(cls, settings: Settings | None = None) -> DriverOptions:
        settings = settings or get_settings()
        return cls(
            poll_interval=settings.poll_interval_seconds,
            max_poll_attempts=settings.max_poll_attempts,
            retry_attempts=settings.retry_attempts,
            retry_delay=settings.retry_delay_seconds,
            data_fetch_retry_attempts=settings.data_fetch_retry_attempts,
            data_fetch_retry_delay=settings.data_fetch_retry_delay_seconds,
        )


class PollingDriver(Generic[StateT, HandleT]):
    """Base class that drives one remote state machine to a terminal state."""

    phase: ClassVar[FlowPhase]
    subject: ClassVar[str]
    state_type: ClassVar[type[NegotiationState] | type[TransferState]]
    termination_message: ClassVar[str]

    def __init__(
        self,
        backend: DataspaceBackend,
        options: DriverOptions | None = None,
        metrics: FlowMetrics | None = None,
    ) -> None:
        self._backend = backend
        self._options = options or DriverOptions.from_settings()
        self._metrics = metrics
        self._listeners: list[StateListener] = []

        self._token: CancellationToken | None = None
        self._task: asyncio.Task[None] | None = None
        self._handle: HandleT | None = None
        self._state: StateT = self.state_type.IDLE
        self._error: DataspaceClientError | None = None
        self._message: str | None = None
        self._value: Any = None
        self._is_active = False
        self._poll_count = 0
        self._started_at = 0.0

    # ------------------------------------------------------------------
    # Observable state
    # ------------------------------------------------------------------

    @property
    def state(self) -> StateT:
        return self._state

    @property
    def error(self) -> DataspaceClientError | None:
        return self._error

    @property
    def message(self) -> str | None:
        return self._message

    @property
    def is_active(self) -> bool:
        return self._is_active

    @property
    def handle(self) -> HandleT | None:
        return self._handle

    @property
    def poll_count(self) -> int:
        """Status responses received during the current run."""
        return self._poll_count

    @property
    def options(self) -> DriverOptions:
        return self._options

    def subscribe(self, listener: StateListener) -> Callable[[], None]:
        """Register a state-change listener; returns an unsubscribe callable.

        Listeners are called in order, on the event loop, once per observed
        state change.
        """
        self._listeners.append(listener)

        def _unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _unsubscribe

    # ------------------------------------------------------------------
    # Public operations
    # ------------------------------------------------------------------

    async def wait(self) -> DriverOutcome:
        """Wait for the current run to reach a terminal state (or be cancelled)."""
        task, token = self._task, self._token
        if task is not None:
            try:
                await task
            except asyncio.CancelledError:
                if not (task.cancelled() and token is not None and token.cancelled):
                    raise
        return DriverOutcome(
            handle=self._handle,
            value=self._value,
            error=self._error,
            cancelled=token is not None and token.cancelled,
        )

    def cancel(self) -> None:
        """Stop any pending poll and mark the driver IDLE.

        Safe at any time and idempotent; performs no network activity.
        """
        was_active = self._is_active
        self._discard_pending()
        self._is_active = False
        self._observe(self.state_type.IDLE)
        if was_active:
            logger.info(f"{self.phase}.cancelled", resource_id=self._resource_id())
            self._record("cancelled")

    def reset(self) -> None:
        """Cancel, then forget the handle and any error or message."""
        self.cancel()
        self._task = None
        self._handle = None
        self._error = None
        self._message = None
        self._value = None
        self._poll_count = 0

    # ------------------------------------------------------------------
    # Subclass hooks
    # ------------------------------------------------------------------

    async def _get_status(self, resource_id: str) -> Any:
        raise NotImplementedError

    def _make_handle(self, response: Any, state: StateT) -> HandleT:
        raise NotImplementedError

    def _absorb(self, response: Any) -> None:
        """Copy extra response fields onto the handle after a poll."""

    async def _on_success(self, token: CancellationToken, response: Any) -> None:
        raise NotImplementedError

    def _resource_id(self) -> str | None:
        raise NotImplementedError

    # ------------------------------------------------------------------
    # Run lifecycle
    # ------------------------------------------------------------------

    def _begin(self) -> CancellationToken:
        """Discard any previous run and start a fresh one."""
        self._discard_pending()
        token = CancellationToken()
        self._token = token
        self._handle = None
        self._error = None
        self._message = None
        self._value = None
        self._poll_count = 0
        self._started_at = time.monotonic()
        return token

    def _discard_pending(self) -> None:
        if self._token is not None:
            self._token.cancel()
        if self._task is not None and not self._task.done():
            self._task.cancel()
        self._task = None

    async def _start(
        self,
        token: CancellationToken,
        send: Callable[[], Awaitable[Any]],
    ) -> HandleT | None:
        """Send the initiation request and schedule polling if needed."""
        self._is_active = True
        self._observe(self.state_type.INITIAL)

        try:
            response, state = await self._checked(send)
        except TransportError as exc:
            if token.cancelled:
                return None
            self._finish(
                InitiationError(
                    f"Failed to initiate {self.subject.lower()}: {exc.message}",
                    cause=exc,
                ),
                state=self.state_type.IDLE,
            )
            return None

        if token.cancelled:
            return None

        handle = self._make_handle(response, state)
        self._handle = handle
        self._observe(state, response.message)
        logger.info(
            f"{self.phase}.initiated",
            resource_id=self._resource_id(),
            state=state.value,
        )

        if token.cancelled:
            return handle
        if not await self._settle(token, response, state):
            self._task = asyncio.create_task(
                self._poll_loop(token, self._resource_id() or ""),
                name=f"{self.phase}-poll-{self._resource_id()}",
            )
        return handle

    async def _poll_loop(self, token: CancellationToken, resource_id: str) -> None:
        while True:
            if not await token.sleep(self._options.poll_interval):
                return

            try:
                response, state = await self._with_retry(
                    token,
                    self._options.retry_attempts,
                    self._options.retry_delay,
                    "poll_retry",
                    self._checked,
                    functools.partial(self._get_status, resource_id),
                )
            except OperationCancelled:
                return
            except TransportError as exc:
                if token.cancelled:
                    return
                self._finish(PollRetryExhaustedError(self._options.retry_attempts, cause=exc))
                return

            if token.cancelled:
                return

            self._poll_count += 1
            self._absorb(response)
            self._observe(state, response.message)
            logger.debug(
                f"{self.phase}.polled",
                resource_id=resource_id,
                state=state.value,
                poll=self._poll_count,
            )
            if token.cancelled:
                return

            if await self._settle(token, response, state):
                return
            if self._poll_count >= self._options.max_poll_attempts:
                self._finish(PollTimeoutError(self.subject, self._poll_count))
                return

    async def _settle(self, token: CancellationToken, response: Any, state: StateT) -> bool:
        """Handle a terminal state. Returns False if polling must continue."""
        if state.is_success:
            await self._on_success(token, response)
            return True
        if state.is_failure:
            self._finish(RemoteTerminationError(response.message or self.termination_message))
            return True
        return False

    async def _checked(self, call: Callable[[], Awaitable[Any]]) -> tuple[Any, StateT]:
        """Run a status-bearing call and map its raw state onto the enum."""
        response = await call()
        try:
            state = self.state_type(response.state)
        except ValueError as exc:
            raise TransportError(
                TransportErrorKind.INVALID_RESPONSE,
                f"Unknown {self.subject.lower()} state '{response.state}'",
            ) from exc
        return response, state

    async def _with_retry(
        self,
        token: CancellationToken,
        attempts: int,
        delay: float,
        event: str,
        fn: Callable[..., Awaitable[Any]],
        *args: Any,
    ) -> Any:
        """Call ``fn`` with linear backoff on TransportError.

        Raises the last TransportError once ``attempts`` calls have failed,
        or OperationCancelled if the token is cancelled during a backoff.
        """
        retrying = AsyncRetrying(
            stop=stop_after_attempt(attempts),
            wait=wait_incrementing(start=delay, increment=delay),
            retry=retry_if_exception_type(TransportError),
            sleep=token.retry_sleep,
            before_sleep=functools.partial(self._log_retry, event, attempts),
            reraise=True,
        )
        return await retrying(fn, *args)

    def _log_retry(self, event: str, attempts: int, retry_state: RetryCallState) -> None:
        exc = retry_state.outcome.exception() if retry_state.outcome else None
        logger.warning(
            f"{self.phase}.{event}",
            resource_id=self._resource_id(),
            attempt=retry_state.attempt_number,
            max_attempts=attempts,
            next_delay=retry_state.next_action.sleep if retry_state.next_action else None,
            error=str(exc) if exc else None,
        )

    def _observe(self, state: StateT, message: str | None = None) -> None:
        """Record an observed state and notify listeners if it changed."""
        changed = state is not self._state
        self._state = state
        if state is not self.state_type.IDLE or message is not None:
            self._message = message
        if self._handle is not None:
            self._handle.current_state = state
            if message is not None:
                self._handle.last_message = message
        if not changed:
            return
        change = StateChange(
            phase=self.phase,
            state=state,
            resource_id=self._resource_id(),
            message=message,
        )
        for listener in list(self._listeners):
            listener(change)

    def _finish(
        self,
        error: DataspaceClientError | None = None,
        *,
        state: StateT | None = None,
    ) -> None:
        """End the run: capture the error (if any), go inactive, record metrics."""
        self._error = error
        self._is_active = False
        if state is not None:
            self._observe(state, error.message if error is not None else None)

        if error is None:
            logger.info(
                f"{self.phase}.succeeded",
                resource_id=self._resource_id(),
                polls=self._poll_count,
            )
            self._record("success")
        else:
            logger.warning(
                f"{self.phase}.failed",
                resource_id=self._resource_id(),
                code=error.code,
                error=error.message,
                polls=self._poll_count,
            )
            self._record("failure", error_code=error.code)

    def _record(self, outcome: str, error_code: str | None = None) -> None:
        metrics = self._metrics or get_metrics()
        metrics.record(
            FlowSample(
                phase=self.phase,
                outcome=outcome,
                duration_ms=int((time.monotonic() - self._started_at) * 1000),
                poll_count=self._poll_count,
                error_code=error_code,
            )
        )
