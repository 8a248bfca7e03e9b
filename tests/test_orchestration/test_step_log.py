"""Tests for step log labelling."""

from __future__ import annotations

from dataspace_client.domain.enums import FlowPhase, NegotiationState, TransferState
from dataspace_client.domain.models import StateChange
from dataspace_client.orchestration.step_log import (
    NEGOTIATION_STATE_LABELS,
    TRANSFER_STATE_LABELS,
    StepLog,
    label_for,
)


class TestLabels:
    def test_known_labels(self) -> None:
        assert label_for(FlowPhase.NEGOTIATION, "REQUESTING") == "Requesting Contract"
        assert label_for(FlowPhase.TRANSFER, "PROVISIONING") == "Provisioning Resources"
        assert label_for(FlowPhase.TRANSFER, "DEPROVISIONED") == "Cleanup Complete"

    def test_unlabelled_state_falls_back_to_raw_value(self) -> None:
        assert label_for(FlowPhase.TRANSFER, "SUSPENDED") == "SUSPENDED"
        assert label_for(FlowPhase.NEGOTIATION, "TERMINATING") == "TERMINATING"

    def test_tables_cover_terminal_states(self) -> None:
        assert NEGOTIATION_STATE_LABELS[NegotiationState.FINALIZED] == "Contract Finalized"
        assert TRANSFER_STATE_LABELS[TransferState.COMPLETED] == "Transfer Complete"


class TestStepLog:
    def test_record_appends_in_order(self) -> None:
        log = StepLog(FlowPhase.NEGOTIATION)
        log.record(StateChange(FlowPhase.NEGOTIATION, NegotiationState.REQUESTED, "neg-1"))
        log.record(
            StateChange(
                FlowPhase.NEGOTIATION,
                NegotiationState.TERMINATED,
                "neg-1",
                message="Policy not satisfied",
            )
        )

        first, last = log.entries
        assert first.label == "Contract Requested"
        assert first.status == "active"
        assert last.is_error
        assert last.is_terminal
        assert last.detail == "Policy not satisfied"
        assert log.last is last
        assert len(log) == 2

    def test_record_failure_uses_phase_label(self) -> None:
        log = StepLog(FlowPhase.TRANSFER)
        entry = log.record_failure("Transfer polling timeout - maximum attempts (30) reached")

        assert entry.label == "Transfer Failed"
        assert entry.raw_state == "ERROR"
        assert entry.status == "error"

    def test_record_failure_custom_label(self) -> None:
        log = StepLog(FlowPhase.TRANSFER)
        assert log.record_failure("boom", label="Data Retrieval Failed").label == "Data Retrieval Failed"

    def test_clear(self) -> None:
        log = StepLog(FlowPhase.TRANSFER)
        log.record_failure("boom")
        log.clear()
        assert log.entries == ()
        assert log.last is None
