"""Domain enumerations for the dataspace flow client.

These enums define the canonical modes and protocol states used throughout
the client. They are framework-agnostic (no httpx, no pydantic imports).
State values match the strings the protocol engine reports on the wire.
"""

import enum


class OperatingMode(enum.StrEnum):
    """Which backend the client talks to.

    Fixed for the lifetime of a client session.
    """

    DIRECT_MOCK = "direct-mock"
    HYBRID = "hybrid"
    FULL_PROTOCOL = "full-protocol"


class NegotiationState(enum.StrEnum):
    """Contract negotiation states as reported by the protocol engine.

    FINALIZED is terminal success, TERMINATED is terminal failure.
    IDLE is client-side only: no negotiation is running.
    """

    IDLE = "IDLE"
    INITIAL = "INITIAL"
    REQUESTING = "REQUESTING"
    REQUESTED = "REQUESTED"
    OFFERING = "OFFERING"
    OFFERED = "OFFERED"
    ACCEPTING = "ACCEPTING"
    ACCEPTED = "ACCEPTED"
    AGREEING = "AGREEING"
    AGREED = "AGREED"
    VERIFYING = "VERIFYING"
    VERIFIED = "VERIFIED"
    FINALIZING = "FINALIZING"
    FINALIZED = "FINALIZED"
    TERMINATING = "TERMINATING"
    TERMINATED = "TERMINATED"

    @property
    def is_success(self) -> bool:
        return self is NegotiationState.FINALIZED

    @property
    def is_failure(self) -> bool:
        return self is NegotiationState.TERMINATED

    @property
    def is_terminal(self) -> bool:
        return self.is_success or self.is_failure


class TransferState(enum.StrEnum):
    """Transfer process states as reported by the protocol engine.

    COMPLETED and DEPROVISIONED both count as success for data retrieval.
    TERMINATED is terminal failure.
    """

    IDLE = "IDLE"
    INITIAL = "INITIAL"
    PROVISIONING = "PROVISIONING"
    PROVISIONED = "PROVISIONED"
    REQUESTING = "REQUESTING"
    REQUESTED = "REQUESTED"
    STARTING = "STARTING"
    STARTED = "STARTED"
    SUSPENDING = "SUSPENDING"
    SUSPENDED = "SUSPENDED"
    RESUMING = "RESUMING"
    COMPLETING = "COMPLETING"
    COMPLETED = "COMPLETED"
    DEPROVISIONING = "DEPROVISIONING"
    DEPROVISIONED = "DEPROVISIONED"
    TERMINATING = "TERMINATING"
    TERMINATED = "TERMINATED"

    @property
    def is_success(self) -> bool:
        return self in (TransferState.COMPLETED, TransferState.DEPROVISIONED)

    @property
    def is_failure(self) -> bool:
        return self is TransferState.TERMINATED

    @property
    def is_terminal(self) -> bool:
        return self.is_success or self.is_failure


class FlowState(enum.StrEnum):
    """Composed state of one end-to-end flow run.

    Transitions are enforced by FlowStateMachine.
    See domain/state_machine.py for the transition table.
    """

    IDLE = "IDLE"
    NEGOTIATING = "NEGOTIATING"
    NEGOTIATION_COMPLETE = "NEGOTIATION_COMPLETE"
    TRANSFERRING = "TRANSFERRING"
    TRANSFER_COMPLETE = "TRANSFER_COMPLETE"
    COMPLETE = "COMPLETE"
    ERROR = "ERROR"


class FlowPhase(enum.StrEnum):
    """Which driver a step log entry or metrics sample belongs to."""

    NEGOTIATION = "negotiation"
    TRANSFER = "transfer"
    FLOW = "flow"
