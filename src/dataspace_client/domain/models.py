"""Handles, outcomes and step log records.

Handles are owned and replaced by exactly one driver; everything a caller
receives (outcomes, flow results, step entries) is frozen.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any

from dataspace_client.domain.enums import FlowPhase, NegotiationState, TransferState
from dataspace_client.domain.exceptions import DataspaceClientError


@dataclass
class NegotiationHandle:
    """The client's view of one remote contract negotiation.

    Attributes:
        negotiation_id: Opaque id assigned by the protocol engine.
        current_state: Last state observed for this negotiation.
        contract_agreement_id: Set once the negotiation is FINALIZED.
        last_message: Last human-readable message reported by the remote.
    """

    negotiation_id: str
    current_state: NegotiationState
    contract_agreement_id: str | None = None
    last_message: str | None = None


@dataclass
class TransferHandle:
    """The client's view of one remote transfer process.

    Attributes:
        transfer_id: Opaque id assigned by the protocol engine.
        current_state: Last state observed for this transfer.
        contract_agreement_id: Agreement that authorized the transfer.
        last_message: Last human-readable message reported by the remote.
    """

    transfer_id: str
    current_state: TransferState
    contract_agreement_id: str
    last_message: str | None = None


@dataclass(frozen=True)
class DriverOutcome:
    """Result of running a driver to a terminal state.

    Exactly one of ``value``/``error`` is meaningful: ``ok`` tells which.
    ``value`` is the contract agreement id for a negotiation and the
    payload for a transfer.
    """

    handle: NegotiationHandle | TransferHandle | None
    value: Any = None
    error: DataspaceClientError | None = None
    cancelled: bool = False

    @property
    def ok(self) -> bool:
        return self.error is None and not self.cancelled


@dataclass(frozen=True)
class StepLogEntry:
    """One observed state transition, for progress display only."""

    phase: FlowPhase
    label: str
    raw_state: str
    timestamp: datetime
    is_terminal: bool
    is_error: bool
    detail: str | None = None

    @property
    def status(self) -> str:
        if self.is_error:
            return "error"
        if self.is_terminal:
            return "complete"
        return "active"

    def to_dict(self) -> dict:
        return {
            "phase": self.phase.value,
            "label": self.label,
            "raw_state": self.raw_state,
            "timestamp": self.timestamp.isoformat(),
            "is_terminal": self.is_terminal,
            "is_error": self.is_error,
            "status": self.status,
            "detail": self.detail,
        }


@dataclass(frozen=True)
class FlowResult:
    """Outcome of one ``run_full_flow`` invocation.

    Attributes:
        ehr_data: The transferred payload, or None when the flow did not complete.
        contract_agreement_id: Set as soon as negotiation finalized, even if
            the transfer failed afterwards.
        transfer_id: Set once the transfer was initiated.
        error: First error encountered; None on success.
    """

    ehr_data: Any = None
    contract_agreement_id: str | None = None
    transfer_id: str | None = None
    error: DataspaceClientError | None = None
    negotiation_steps: tuple[StepLogEntry, ...] = field(default_factory=tuple)
    transfer_steps: tuple[StepLogEntry, ...] = field(default_factory=tuple)

    @property
    def ok(self) -> bool:
        return self.error is None

    def to_dict(self) -> dict:
        return {
            "ehr_data": self.ehr_data,
            "contract_agreement_id": self.contract_agreement_id,
            "transfer_id": self.transfer_id,
            "error": self.error.to_dict() if self.error is not None else None,
            "negotiation_steps": [s.to_dict() for s in self.negotiation_steps],
            "transfer_steps": [s.to_dict() for s in self.transfer_steps],
        }


def utcnow() -> datetime:
    return datetime.now(UTC)


@dataclass(frozen=True)
class StateChange:
    """Notification published by a driver when its observed state changes."""

    phase: FlowPhase
    state: NegotiationState | TransferState
    resource_id: str | None = None
    message: str | None = None
    timestamp: datetime = field(default_factory=utcnow)
