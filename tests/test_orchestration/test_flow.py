"""Tests for the FlowOrchestrator end-to-end flow.

These tests verify that:
    1. A successful flow negotiates, transfers and returns the payload.
    2. The first failure stops the flow and later stages never run.
    3. An agreement obtained before a transfer failure is still returned.
    4. Cancellation and reset leave the orchestrator IDLE.
"""

from __future__ import annotations

import asyncio
import dataclasses

import pytest

from dataspace_client.backends import MockBackend
from dataspace_client.domain.enums import FlowPhase, FlowState
from dataspace_client.domain.exceptions import (
    DataFetchError,
    FlowCancelledError,
    InitiationError,
    RemoteTerminationError,
    TransportError,
    TransportErrorKind,
)
from dataspace_client.drivers import DriverOptions
from dataspace_client.observability.metrics import FlowMetrics
from dataspace_client.orchestration import FlowOrchestrator
from scripted import ScriptedBackend, negotiation, network_error, transfer


@pytest.fixture
def orchestrator(
    backend: ScriptedBackend, fast_options: DriverOptions, metrics: FlowMetrics
) -> FlowOrchestrator:
    return FlowOrchestrator(backend, fast_options, metrics)


def _script_negotiation_success(backend: ScriptedBackend) -> None:
    backend.script("initiate_negotiation", negotiation("REQUESTED"))
    backend.script("get_negotiation", negotiation("FINALIZED", agreement="agr-1"))


class TestHappyPath:
    @pytest.mark.asyncio
    async def test_full_flow(
        self, orchestrator: FlowOrchestrator, backend: ScriptedBackend, sample_payload: dict
    ) -> None:
        _script_negotiation_success(backend)
        backend.script("initiate_transfer", transfer("STARTED"))
        backend.script("get_transfer", transfer("COMPLETED"))
        backend.script("fetch_transfer_data", sample_payload)

        result = await orchestrator.run_full_flow("ehr:EHR001", "offer:123")

        assert result.ok
        assert result.ehr_data == sample_payload
        assert result.contract_agreement_id == "agr-1"
        assert result.transfer_id == "tp-1"
        assert orchestrator.result is result
        assert orchestrator.flow_state is FlowState.COMPLETE
        assert not orchestrator.is_running
        assert backend.calls[2] == ("initiate_transfer", "agr-1", "ehr:EHR001")

    @pytest.mark.asyncio
    async def test_step_logs(
        self, orchestrator: FlowOrchestrator, backend: ScriptedBackend, sample_payload: dict
    ) -> None:
        _script_negotiation_success(backend)
        backend.script("initiate_transfer", transfer("PROVISIONING"))
        backend.script("get_transfer", transfer("STARTED"), transfer("COMPLETED"))
        backend.script("fetch_transfer_data", sample_payload)

        result = await orchestrator.run_full_flow("ehr:EHR001", "offer:123")

        assert [s.label for s in result.negotiation_steps] == [
            "Initializing",
            "Contract Requested",
            "Contract Finalized",
        ]
        assert [s.label for s in result.transfer_steps] == [
            "Initializing Transfer",
            "Provisioning Resources",
            "Transfer In Progress",
            "Transfer Complete",
        ]
        assert result.negotiation_steps[-1].is_terminal
        assert not any(s.is_error for s in result.transfer_steps)
        assert orchestrator.negotiation_steps == result.negotiation_steps

    @pytest.mark.asyncio
    async def test_offer_defaults_to_asset(
        self, orchestrator: FlowOrchestrator, backend: ScriptedBackend, sample_payload: dict
    ) -> None:
        backend.script("initiate_negotiation", negotiation("FINALIZED", agreement="agr-1"))
        backend.script("initiate_transfer", transfer("COMPLETED"))
        backend.script("fetch_transfer_data", sample_payload)

        await orchestrator.run_full_flow("ehr:EHR001")

        assert backend.calls[0] == ("initiate_negotiation", "ehr:EHR001", "ehr:EHR001", None)

    @pytest.mark.asyncio
    async def test_mock_mode_flow(self, fast_options: DriverOptions) -> None:
        orchestrator = FlowOrchestrator(MockBackend(), fast_options, FlowMetrics())

        result = await orchestrator.run_full_flow("ehr:EHR001", "offer:123")

        assert result.ok
        assert result.contract_agreement_id.startswith("mock-agreement-")
        assert result.transfer_id.startswith("mock-transfer-")
        assert result.ehr_data["credentialSubject"]["ehrId"] == "EHR001"
        assert [s.raw_state for s in result.negotiation_steps] == ["INITIAL", "FINALIZED"]
        assert [s.raw_state for s in result.transfer_steps] == ["INITIAL", "COMPLETED"]


class TestShortCircuit:
    @pytest.mark.asyncio
    async def test_negotiation_failure_skips_transfer(
        self, orchestrator: FlowOrchestrator, backend: ScriptedBackend
    ) -> None:
        backend.script("initiate_negotiation", negotiation("REQUESTED"))
        backend.script("get_negotiation", negotiation("TERMINATED", message="Policy not satisfied"))

        result = await orchestrator.run_full_flow("ehr:EHR001", "offer:123")

        assert isinstance(result.error, RemoteTerminationError)
        assert result.error.message == "Policy not satisfied"
        assert backend.count("initiate_transfer") == 0
        assert orchestrator.flow_state is FlowState.ERROR
        assert result.transfer_steps == ()
        assert [s.label for s in result.negotiation_steps][-1] == "Negotiation Failed"
        assert sum(s.is_error for s in result.negotiation_steps) == 1

    @pytest.mark.asyncio
    async def test_negotiation_initiation_failure(
        self, orchestrator: FlowOrchestrator, backend: ScriptedBackend
    ) -> None:
        backend.script(
            "initiate_negotiation",
            TransportError(TransportErrorKind.REMOTE, "Asset not found", status=404),
        )

        result = await orchestrator.run_full_flow("ehr:EHR404", "offer:123")

        assert isinstance(result.error, InitiationError)
        assert result.contract_agreement_id is None
        last = result.negotiation_steps[-1]
        assert last.raw_state == "ERROR"
        assert last.label == "Negotiation Failed"
        assert last.detail == "Failed to initiate negotiation: Asset not found"
        assert backend.count("initiate_transfer") == 0

    @pytest.mark.asyncio
    async def test_transfer_failure_keeps_agreement(
        self, orchestrator: FlowOrchestrator, backend: ScriptedBackend
    ) -> None:
        _script_negotiation_success(backend)
        backend.script("initiate_transfer", transfer("PROVISIONING"))
        backend.script("get_transfer", transfer("TERMINATED"))

        result = await orchestrator.run_full_flow("ehr:EHR001", "offer:123")

        assert result.error is not None
        assert result.contract_agreement_id == "agr-1"
        assert result.transfer_id == "tp-1"
        assert result.ehr_data is None
        assert orchestrator.flow_state is FlowState.ERROR
        assert result.transfer_steps[-1].label == "Transfer Failed"

    @pytest.mark.asyncio
    async def test_data_fetch_failure(
        self, orchestrator: FlowOrchestrator, backend: ScriptedBackend
    ) -> None:
        _script_negotiation_success(backend)
        backend.script("initiate_transfer", transfer("COMPLETED"))
        backend.script("fetch_transfer_data", network_error())

        result = await orchestrator.run_full_flow("ehr:EHR001", "offer:123")

        assert isinstance(result.error, DataFetchError)
        assert result.transfer_steps[-1].label == "Data Retrieval Failed"
        assert result.transfer_steps[-1].is_error
        assert orchestrator.flow_state is FlowState.ERROR


class TestCancelAndReset:
    @pytest.mark.asyncio
    async def test_cancel_during_negotiation(self, fast_options: DriverOptions) -> None:
        gate = asyncio.Event()

        class SlowBackend(ScriptedBackend):
            async def get_negotiation(self, negotiation_id: str):
                response = await super().get_negotiation(negotiation_id)
                await gate.wait()
                return response

        backend = SlowBackend()
        _script_negotiation_success(backend)
        orchestrator = FlowOrchestrator(backend, fast_options, FlowMetrics())

        run = asyncio.create_task(orchestrator.run_full_flow("ehr:EHR001", "offer:123"))
        while backend.count("get_negotiation") == 0:
            await asyncio.sleep(0)
        assert orchestrator.is_running
        orchestrator.cancel()
        result = await run

        assert isinstance(result.error, FlowCancelledError)
        assert result.error.stage == "NEGOTIATING"
        assert orchestrator.flow_state is FlowState.IDLE
        assert backend.count("initiate_transfer") == 0

    @pytest.mark.asyncio
    async def test_cancel_during_transfer_polling(
        self, backend: ScriptedBackend, fast_options: DriverOptions
    ) -> None:
        _script_negotiation_success(backend)
        backend.script("initiate_transfer", transfer("STARTED"))
        backend.script("get_transfer", transfer("STARTED"))
        orchestrator = FlowOrchestrator(
            backend, dataclasses.replace(fast_options, poll_interval=0.01), FlowMetrics()
        )

        run = asyncio.create_task(orchestrator.run_full_flow("ehr:EHR001", "offer:123"))
        while backend.count("get_transfer") < 2:
            await asyncio.sleep(0.005)
        orchestrator.cancel()
        result = await run
        polls = backend.count("get_transfer")
        await asyncio.sleep(0.05)

        assert isinstance(result.error, FlowCancelledError)
        assert result.error.stage == "TRANSFERRING"
        assert result.contract_agreement_id == "agr-1"
        assert backend.count("get_transfer") == polls
        assert backend.count("fetch_transfer_data") == 0
        assert orchestrator.flow_state is FlowState.IDLE
        assert not orchestrator.is_running

    @pytest.mark.asyncio
    async def test_reset_during_transfer_polling(
        self, backend: ScriptedBackend, fast_options: DriverOptions
    ) -> None:
        _script_negotiation_success(backend)
        backend.script("initiate_transfer", transfer("STARTED"))
        backend.script("get_transfer", transfer("STARTED"))
        orchestrator = FlowOrchestrator(
            backend, dataclasses.replace(fast_options, poll_interval=0.01), FlowMetrics()
        )

        run = asyncio.create_task(orchestrator.run_full_flow("ehr:EHR001", "offer:123"))
        while backend.count("get_transfer") < 2:
            await asyncio.sleep(0.005)
        orchestrator.reset()
        result = await run
        polls = backend.count("get_transfer")
        await asyncio.sleep(0.05)

        assert isinstance(result.error, FlowCancelledError)
        assert result.error.stage == "TRANSFERRING"
        assert result.contract_agreement_id == "agr-1"
        assert backend.count("get_transfer") == polls
        assert backend.count("fetch_transfer_data") == 0
        assert orchestrator.result is None
        assert orchestrator.transfer_steps == ()
        assert orchestrator.flow_state is FlowState.IDLE

    @pytest.mark.asyncio
    async def test_cancel_when_idle_is_noop(self, orchestrator: FlowOrchestrator) -> None:
        orchestrator.cancel()
        assert orchestrator.flow_state is FlowState.IDLE

    @pytest.mark.asyncio
    async def test_reset_supersedes_running_flow(self, fast_options: DriverOptions) -> None:
        gate = asyncio.Event()

        class SlowBackend(ScriptedBackend):
            async def get_negotiation(self, negotiation_id: str):
                response = await super().get_negotiation(negotiation_id)
                await gate.wait()
                return response

        backend = SlowBackend()
        _script_negotiation_success(backend)
        orchestrator = FlowOrchestrator(backend, fast_options, FlowMetrics())

        run = asyncio.create_task(orchestrator.run_full_flow("ehr:EHR001", "offer:123"))
        while backend.count("get_negotiation") == 0:
            await asyncio.sleep(0)
        orchestrator.reset()
        result = await run

        assert isinstance(result.error, FlowCancelledError)
        assert orchestrator.result is None
        assert orchestrator.negotiation_steps == ()
        assert orchestrator.flow_state is FlowState.IDLE

    @pytest.mark.asyncio
    async def test_reset_after_completion(
        self, orchestrator: FlowOrchestrator, backend: ScriptedBackend, sample_payload: dict
    ) -> None:
        backend.script("initiate_negotiation", negotiation("FINALIZED", agreement="agr-1"))
        backend.script("initiate_transfer", transfer("COMPLETED"))
        backend.script("fetch_transfer_data", sample_payload)
        await orchestrator.run_full_flow("ehr:EHR001")

        orchestrator.reset()

        assert orchestrator.flow_state is FlowState.IDLE
        assert orchestrator.result is None
        assert orchestrator.negotiation_steps == ()
        assert orchestrator.transfer_steps == ()
        assert orchestrator.transfer_driver.data is None

    @pytest.mark.asyncio
    async def test_second_run_starts_clean(
        self, orchestrator: FlowOrchestrator, backend: ScriptedBackend, sample_payload: dict
    ) -> None:
        backend.script(
            "initiate_negotiation",
            negotiation("TERMINATED", message="Rejected"),
            negotiation("FINALIZED", agreement="agr-2"),
        )
        backend.script("initiate_transfer", transfer("COMPLETED"))
        backend.script("fetch_transfer_data", sample_payload)

        first = await orchestrator.run_full_flow("ehr:EHR001")
        second = await orchestrator.run_full_flow("ehr:EHR001")

        assert not first.ok
        assert second.ok
        assert not any(s.is_error for s in second.negotiation_steps)
        assert orchestrator.flow_state is FlowState.COMPLETE


class TestMetrics:
    @pytest.mark.asyncio
    async def test_flow_sample_recorded(
        self,
        orchestrator: FlowOrchestrator,
        backend: ScriptedBackend,
        metrics: FlowMetrics,
    ) -> None:
        backend.script("initiate_negotiation", negotiation("TERMINATED"))

        await orchestrator.run_full_flow("ehr:EHR001")

        [sample] = metrics.snapshot(FlowPhase.FLOW)
        assert sample.outcome == "remote_terminated"
        assert sample.error_code == "REMOTE_TERMINATED"
