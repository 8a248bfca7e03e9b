"""MockBackend: synthesized protocol responses with zero network calls.

Initiation short-circuits straight to the terminal success state
(FINALIZED / COMPLETED), status lookups report that terminal state, and
the payload is a small synthesized EHR-shaped record. This lets the
drivers and the orchestrator be exercised without a protocol engine.
"""

from __future__ import annotations

import time
from typing import Any

from dataspace_client.domain.enums import NegotiationState, OperatingMode, TransferState
from dataspace_client.logging_config import get_logger
from dataspace_client.schemas.protocol import NegotiationResponse, TransferResponse

logger = get_logger(__name__)


def _timestamp_ms() -> int:
    return int(time.time() * 1000)


class MockBackend:
    """Backend strategy for the direct-mock operating mode."""

    def __init__(self, base_url: str = "") -> None:
        self._base_url = base_url
        # transfer_id -> asset_id, so synthesized payloads name the right record
        self._transfer_assets: dict[str, str] = {}

    @property
    def mode(self) -> OperatingMode:
        return OperatingMode.DIRECT_MOCK

    async def initiate_negotiation(
        self, asset_id: str, offer_id: str, policy_id: str | None = None
    ) -> NegotiationResponse:
        ts = _timestamp_ms()
        response = NegotiationResponse(
            negotiation_id=f"mock-neg-{ts}",
            state=NegotiationState.FINALIZED.value,
            contract_agreement_id=f"mock-agreement-{ts}",
            message="Mock negotiation completed instantly",
        )
        logger.debug(
            "mock.negotiation_finalized",
            asset_id=asset_id,
            negotiation_id=response.negotiation_id,
        )
        return response

    async def get_negotiation(self, negotiation_id: str) -> NegotiationResponse:
        return NegotiationResponse(
            negotiation_id=negotiation_id,
            state=NegotiationState.FINALIZED.value,
            contract_agreement_id=f"mock-agreement-{negotiation_id}",
        )

    async def initiate_transfer(
        self, contract_agreement_id: str, asset_id: str
    ) -> TransferResponse:
        transfer_id = f"mock-transfer-{_timestamp_ms()}"
        self._transfer_assets[transfer_id] = asset_id
        logger.debug("mock.transfer_completed", asset_id=asset_id, transfer_id=transfer_id)
        return TransferResponse(
            transfer_id=transfer_id,
            state=TransferState.COMPLETED.value,
            contract_agreement_id=contract_agreement_id,
            message="Mock transfer completed instantly",
        )

    async def get_transfer(self, transfer_id: str) -> TransferResponse:
        return TransferResponse(transfer_id=transfer_id, state=TransferState.COMPLETED.value)

    async def fetch_transfer_data(self, transfer_id: str) -> Any:
        asset_id = self._transfer_assets.get(transfer_id, "ehr:MOCK")
        ehr_id = asset_id.removeprefix("ehr:")
        return {
            "credentialSubject": {
                "ehrId": ehr_id,
                "diagnosis": "Synthetic record",
                "diagnosisCode": "Z00.0",
                "ageBand": "40-49",
                "biologicalSex": "unknown",
            },
            "_meta": {
                "source": "mock",
                "mode": self.mode.value,
                "transferId": transfer_id,
                "fromCache": False,
                "fetchedAt": time.strftime("%Y-%m-%dT%H:%M:%SZ", time.gmtime()),
            },
        }

    async def health(self) -> dict:
        return {"status": "ok", "mode": "mock"}

    def describe(self) -> dict:
        return {
            "mode": self.mode.value,
            "description": "Mock mode: negotiation and transfer complete instantly, no network calls",
            "base_url": self._base_url,
        }

    async def aclose(self) -> None:
        self._transfer_assets.clear()
