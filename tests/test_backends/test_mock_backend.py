"""Unit tests for the MockBackend strategy."""

from __future__ import annotations

import pytest

from dataspace_client.backends import MockBackend
from dataspace_client.domain.backend_protocol import DataspaceBackend
from dataspace_client.domain.enums import OperatingMode


class TestMockBackend:
    def test_satisfies_protocol(self) -> None:
        assert isinstance(MockBackend(), DataspaceBackend)
        assert MockBackend().mode is OperatingMode.DIRECT_MOCK

    @pytest.mark.asyncio
    async def test_negotiation_finalizes_instantly(self) -> None:
        response = await MockBackend().initiate_negotiation("ehr:EHR001", "offer:123")
        assert response.state == "FINALIZED"
        assert response.negotiation_id.startswith("mock-neg-")
        assert response.contract_agreement_id.startswith("mock-agreement-")
        assert response.message == "Mock negotiation completed instantly"

    @pytest.mark.asyncio
    async def test_negotiation_lookup_reports_terminal_state(self) -> None:
        response = await MockBackend().get_negotiation("mock-neg-1")
        assert response.state == "FINALIZED"
        assert response.contract_agreement_id == "mock-agreement-mock-neg-1"

    @pytest.mark.asyncio
    async def test_transfer_completes_instantly(self) -> None:
        response = await MockBackend().initiate_transfer("mock-agreement-1", "ehr:EHR001")
        assert response.state == "COMPLETED"
        assert response.transfer_id.startswith("mock-transfer-")
        assert response.contract_agreement_id == "mock-agreement-1"

    @pytest.mark.asyncio
    async def test_payload_names_transferred_asset(self) -> None:
        backend = MockBackend()
        transfer = await backend.initiate_transfer("mock-agreement-1", "ehr:EHR042")
        data = await backend.fetch_transfer_data(transfer.transfer_id)

        assert data["credentialSubject"]["ehrId"] == "EHR042"
        assert data["_meta"]["source"] == "mock"
        assert data["_meta"]["mode"] == "direct-mock"
        assert data["_meta"]["transferId"] == transfer.transfer_id

    @pytest.mark.asyncio
    async def test_health_without_network(self) -> None:
        assert await MockBackend().health() == {"status": "ok", "mode": "mock"}

    def test_describe(self) -> None:
        info = MockBackend(base_url="http://localhost:3001").describe()
        assert info["mode"] == "direct-mock"
        assert info["base_url"] == "http://localhost:3001"
        assert "Mock mode" in info["description"]
