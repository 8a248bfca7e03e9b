"""Tests for domain enumerations."""

from __future__ import annotations

import pytest

from dataspace_client.domain.enums import (
    FlowPhase,
    FlowState,
    NegotiationState,
    OperatingMode,
    TransferState,
)


class TestOperatingMode:
    def test_all_modes_exist(self) -> None:
        assert {m.value for m in OperatingMode} == {"direct-mock", "hybrid", "full-protocol"}

    def test_mode_is_str_enum(self) -> None:
        assert isinstance(OperatingMode.HYBRID, str)
        assert OperatingMode.HYBRID == "hybrid"


class TestNegotiationState:
    def test_wire_values_match_names(self) -> None:
        for state in NegotiationState:
            assert state.value == state.name

    def test_finalized_is_only_success(self) -> None:
        assert [s for s in NegotiationState if s.is_success] == [NegotiationState.FINALIZED]

    def test_terminated_is_only_failure(self) -> None:
        assert [s for s in NegotiationState if s.is_failure] == [NegotiationState.TERMINATED]

    @pytest.mark.parametrize("state", ["REQUESTED", "AGREED", "TERMINATING", "IDLE"])
    def test_in_progress_states_are_not_terminal(self, state: str) -> None:
        assert not NegotiationState(state).is_terminal

    def test_unknown_wire_state_is_rejected(self) -> None:
        with pytest.raises(ValueError):
            NegotiationState("NEGOTIATING")


class TestTransferState:
    def test_completed_and_deprovisioned_are_success(self) -> None:
        success = {s for s in TransferState if s.is_success}
        assert success == {TransferState.COMPLETED, TransferState.DEPROVISIONED}

    def test_terminated_is_failure(self) -> None:
        assert TransferState.TERMINATED.is_failure
        assert TransferState.TERMINATED.is_terminal

    @pytest.mark.parametrize("state", ["SUSPENDED", "STARTED", "DEPROVISIONING", "TERMINATING"])
    def test_in_progress_states_are_not_terminal(self, state: str) -> None:
        assert not TransferState(state).is_terminal


class TestFlowEnums:
    def test_all_flow_states_exist(self) -> None:
        expected = {
            "IDLE", "NEGOTIATING", "NEGOTIATION_COMPLETE",
            "TRANSFERRING", "TRANSFER_COMPLETE", "COMPLETE", "ERROR",
        }
        assert {s.value for s in FlowState} == expected

    def test_phases(self) -> None:
        assert FlowPhase.NEGOTIATION == "negotiation"
        assert FlowPhase.TRANSFER == "transfer"
        assert {p.value for p in FlowPhase} == {"negotiation", "transfer", "flow"}
