"""Domain exceptions for the dataspace flow client.

Drivers never raise these across their public boundary: they are captured
into the driver's ``error`` field and into the returned outcome, so callers
branch on state instead of catching. Each carries a display-ready message.
"""

from __future__ import annotations

import enum


class DataspaceClientError(Exception):
    """Base exception for all client errors."""

    def __init__(self, message: str, code: str = "DATASPACE_CLIENT_ERROR") -> None:
        self.message = message
        self.code = code
        super().__init__(self.message)

    @property
    def status(self) -> int | None:
        return None

    def to_dict(self) -> dict:
        """Serialize for display or structured logs."""
        return {"code": self.code, "message": self.message, "status": self.status}


# --- Transport Errors ---


class TransportErrorKind(enum.StrEnum):
    NETWORK = "network"
    REMOTE = "remote"
    INVALID_RESPONSE = "invalid_response"


class TransportError(DataspaceClientError):
    """Raised by the transport when a request cannot produce a usable body.

    kind=network: the request never got a response.
    kind=remote: the backend answered with a non-2xx status.
    kind=invalid_response: the body was not the JSON shape we expected.
    """

    def __init__(
        self,
        kind: TransportErrorKind,
        message: str,
        status: int | None = None,
    ) -> None:
        super().__init__(message=message, code=f"TRANSPORT_{kind.value.upper()}")
        self.kind = kind
        self._status = status

    @property
    def status(self) -> int | None:
        return self._status


# --- Initiation Errors ---


class InitiationError(DataspaceClientError):
    """The initiating request failed. Never retried."""

    def __init__(
        self,
        message: str,
        cause: DataspaceClientError | None = None,
        code: str = "INITIATION_FAILED",
    ) -> None:
        super().__init__(message=message, code=code)
        self.cause = cause

    @property
    def status(self) -> int | None:
        return self.cause.status if self.cause is not None else None


class MissingAgreementError(InitiationError):
    """Raised when a transfer is started without a contract agreement."""

    def __init__(self) -> None:
        super().__init__(
            message="A contract agreement id is required to start a transfer",
            code="MISSING_CONTRACT_AGREEMENT",
        )


# --- Polling Errors ---


class TransientPollError(DataspaceClientError):
    """A single status request failed; subject to retry."""

    def __init__(self, message: str, cause: TransportError | None = None) -> None:
        super().__init__(message=message, code="TRANSIENT_POLL_ERROR")
        self.cause = cause


class PollRetryExhaustedError(TransientPollError):
    """Status requests kept failing until the retry budget ran out."""

    def __init__(self, attempts: int, cause: TransportError | None = None) -> None:
        detail = cause.message if cause is not None else "unknown error"
        super().__init__(
            message=f"Status polling failed after {attempts} attempts: {detail}",
            cause=cause,
        )
        self.code = "POLL_RETRY_EXHAUSTED"
        self.attempts = attempts

    @property
    def status(self) -> int | None:
        return self.cause.status if self.cause is not None else None


class RemoteTerminationError(DataspaceClientError):
    """The protocol engine reported TERMINATED."""

    def __init__(self, message: str) -> None:
        super().__init__(message=message, code="REMOTE_TERMINATED")


class PollTimeoutError(DataspaceClientError):
    """No terminal state was reached within the poll attempt ceiling."""

    def __init__(self, subject: str, attempts: int) -> None:
        super().__init__(
            message=f"{subject} polling timeout - maximum attempts ({attempts}) reached",
            code="POLL_TIMEOUT",
        )
        self.attempts = attempts


class DataFetchError(DataspaceClientError):
    """The payload could not be retrieved after the transfer completed."""

    def __init__(self, transfer_id: str, attempts: int, cause: DataspaceClientError | None = None) -> None:
        detail = cause.message if cause is not None else "unknown error"
        super().__init__(
            message=f"Failed to fetch data for transfer {transfer_id} after {attempts} attempts: {detail}",
            code="DATA_FETCH_FAILED",
        )
        self.transfer_id = transfer_id
        self.attempts = attempts
        self.cause = cause

    @property
    def status(self) -> int | None:
        return self.cause.status if self.cause is not None else None


# --- Flow Errors ---


class FlowCancelledError(DataspaceClientError):
    """The flow was cancelled before reaching a terminal stage."""

    def __init__(self, stage: str) -> None:
        super().__init__(message=f"Flow cancelled during {stage}", code="FLOW_CANCELLED")
        self.stage = stage


class InvalidFlowTransitionError(DataspaceClientError):
    """Raised when the composed flow attempts an illegal stage transition.

    Example: IDLE -> TRANSFERRING (must finish negotiation first)
    """

    def __init__(self, current_state: str, attempted_event: str) -> None:
        super().__init__(
            message=f"Invalid flow transition: {current_state} -> {attempted_event}",
            code="INVALID_FLOW_TRANSITION",
        )
        self.current_state = current_state
        self.attempted_event = attempted_event
