"""Append-only step logs for progress display.

One entry per observed state transition, labelled from a fixed
state -> label table. The logs are for display only; the orchestrator never
branches on them.
"""

from __future__ import annotations

from dataspace_client.domain.enums import FlowPhase, NegotiationState, TransferState
from dataspace_client.domain.models import StateChange, StepLogEntry, utcnow

NEGOTIATION_STATE_LABELS: dict[str, str] = {
    NegotiationState.INITIAL: "Initializing",
    NegotiationState.REQUESTING: "Requesting Contract",
    NegotiationState.REQUESTED: "Contract Requested",
    NegotiationState.OFFERING: "Provider Offering",
    NegotiationState.OFFERED: "Offer Received",
    NegotiationState.ACCEPTING: "Accepting Offer",
    NegotiationState.ACCEPTED: "Offer Accepted",
    NegotiationState.AGREEING: "Finalizing Agreement",
    NegotiationState.AGREED: "Agreement Ready",
    NegotiationState.VERIFYING: "Verifying Credentials",
    NegotiationState.VERIFIED: "Credentials Verified",
    NegotiationState.FINALIZING: "Finalizing Contract",
    NegotiationState.FINALIZED: "Contract Finalized",
    NegotiationState.TERMINATED: "Negotiation Failed",
}

TRANSFER_STATE_LABELS: dict[str, str] = {
    TransferState.INITIAL: "Initializing Transfer",
    TransferState.PROVISIONING: "Provisioning Resources",
    TransferState.PROVISIONED: "Resources Ready",
    TransferState.REQUESTING: "Requesting Data",
    TransferState.REQUESTED: "Request Sent",
    TransferState.STARTING: "Starting Transfer",
    TransferState.STARTED: "Transfer In Progress",
    TransferState.COMPLETING: "Completing Transfer",
    TransferState.COMPLETED: "Transfer Complete",
    TransferState.DEPROVISIONING: "Cleaning Up",
    TransferState.DEPROVISIONED: "Cleanup Complete",
    TransferState.TERMINATED: "Transfer Failed",
}

_FAILURE_LABELS: dict[FlowPhase, str] = {
    FlowPhase.NEGOTIATION: NEGOTIATION_STATE_LABELS[NegotiationState.TERMINATED],
    FlowPhase.TRANSFER: TRANSFER_STATE_LABELS[TransferState.TERMINATED],
}


def label_for(phase: FlowPhase, raw_state: str) -> str:
    """Display label for a state; unknown states fall back to the raw value."""
    table = NEGOTIATION_STATE_LABELS if phase is FlowPhase.NEGOTIATION else TRANSFER_STATE_LABELS
    return table.get(raw_state, raw_state)


class StepLog:
    """Ordered, append-only record of the states one driver went through."""

    def __init__(self, phase: FlowPhase) -> None:
        self._phase = phase
        self._entries: list[StepLogEntry] = []

    @property
    def phase(self) -> FlowPhase:
        return self._phase

    @property
    def entries(self) -> tuple[StepLogEntry, ...]:
        return tuple(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    @property
    def last(self) -> StepLogEntry | None:
        return self._entries[-1] if self._entries else None

    def record(self, change: StateChange) -> StepLogEntry:
        """Append the entry for an observed state change."""
        state = change.state
        entry = StepLogEntry(
            phase=self._phase,
            label=label_for(self._phase, state.value),
            raw_state=state.value,
            timestamp=change.timestamp,
            is_terminal=state.is_terminal,
            is_error=state.is_failure,
            detail=change.message,
        )
        self._entries.append(entry)
        return entry

    def record_failure(self, detail: str, label: str | None = None) -> StepLogEntry:
        """Append a client-side failure (initiation error, timeout, ...)."""
        entry = StepLogEntry(
            phase=self._phase,
            label=label or _FAILURE_LABELS.get(self._phase, "Failed"),
            raw_state="ERROR",
            timestamp=utcnow(),
            is_terminal=True,
            is_error=True,
            detail=detail,
        )
        self._entries.append(entry)
        return entry

    def clear(self) -> None:
        self._entries.clear()
