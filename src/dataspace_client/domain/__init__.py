"""Domain layer: protocol states, errors, handles and the flow guard."""

from dataspace_client.domain.backend_protocol import DataspaceBackend
from dataspace_client.domain.enums import (
    FlowPhase,
    FlowState,
    NegotiationState,
    OperatingMode,
    TransferState,
)
from dataspace_client.domain.exceptions import (
    DataFetchError,
    DataspaceClientError,
    FlowCancelledError,
    InitiationError,
    InvalidFlowTransitionError,
    MissingAgreementError,
    PollRetryExhaustedError,
    PollTimeoutError,
    RemoteTerminationError,
    TransportError,
    TransportErrorKind,
)
from dataspace_client.domain.models import (
    DriverOutcome,
    FlowResult,
    NegotiationHandle,
    StateChange,
    StepLogEntry,
    TransferHandle,
)
from dataspace_client.domain.state_machine import FlowStateMachine

__all__ = [
    "DataspaceBackend",
    "FlowPhase",
    "FlowState",
    "NegotiationState",
    "OperatingMode",
    "TransferState",
    "DataFetchError",
    "DataspaceClientError",
    "FlowCancelledError",
    "InitiationError",
    "InvalidFlowTransitionError",
    "MissingAgreementError",
    "PollRetryExhaustedError",
    "PollTimeoutError",
    "RemoteTerminationError",
    "TransportError",
    "TransportErrorKind",
    "DriverOutcome",
    "FlowResult",
    "NegotiationHandle",
    "StateChange",
    "StepLogEntry",
    "TransferHandle",
    "FlowStateMachine",
]
