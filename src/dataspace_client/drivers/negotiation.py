"""Negotiation Driver: drives a remote contract negotiation to FINALIZED.

    initiate(asset, offer) -> REQUESTED ... -> FINALIZED  (agreement id)
                                           or -> TERMINATED  (RemoteTerminationError)

In direct-mock mode the backend answers the initiation with FINALIZED, so
the driver settles immediately and never polls.

Usage:
    driver = NegotiationDriver(backend)
    outcome = await driver.run("ehr:EHR001", "offer:123")
    if outcome.ok:
        print(driver.contract_agreement_id)
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from dataspace_client.domain.enums import FlowPhase, NegotiationState
from dataspace_client.domain.exceptions import InitiationError
from dataspace_client.domain.models import DriverOutcome, NegotiationHandle
from dataspace_client.drivers.base import PollingDriver
from dataspace_client.logging_config import get_logger

if TYPE_CHECKING:
    from dataspace_client.schemas.protocol import NegotiationResponse
    from dataspace_client.scheduling import CancellationToken

logger = get_logger(__name__)


class NegotiationDriver(PollingDriver[NegotiationState, NegotiationHandle]):
    """Owns at most one negotiation handle at a time."""

    phase = FlowPhase.NEGOTIATION
    subject = "Negotiation"
    state_type = NegotiationState
    termination_message = "negotiation terminated"

    @property
    def contract_agreement_id(self) -> str | None:
        return self._value

    @property
    def negotiation_id(self) -> str | None:
        return self._handle.negotiation_id if self._handle else None

    async def initiate(
        self,
        asset_id: str,
        offer_id: str,
        policy_id: str | None = None,
    ) -> NegotiationHandle | None:
        """Start a negotiation; polling continues in the background.

        Returns the new handle, or None if initiation failed (see ``error``)
        or the driver was cancelled while the request was in flight.
        """
        token = self._begin()
        if not asset_id or not offer_id:
            self._finish(
                InitiationError("asset_id and offer_id must be non-empty", code="INVALID_INPUT"),
                state=NegotiationState.IDLE,
            )
            return None

        logger.info(
            "negotiation.initiating",
            asset_id=asset_id,
            offer_id=offer_id,
            policy_id=policy_id,
        )
        return await self._start(
            token,
            lambda: self._backend.initiate_negotiation(asset_id, offer_id, policy_id),
        )

    async def run(
        self,
        asset_id: str,
        offer_id: str,
        policy_id: str | None = None,
    ) -> DriverOutcome:
        """Initiate and wait for the terminal outcome."""
        await self.initiate(asset_id, offer_id, policy_id)
        return await self.wait()

    async def _get_status(self, resource_id: str) -> NegotiationResponse:
        return await self._backend.get_negotiation(resource_id)

    def _make_handle(
        self, response: NegotiationResponse, state: NegotiationState
    ) -> NegotiationHandle:
        return NegotiationHandle(
            negotiation_id=response.negotiation_id,
            current_state=state,
            contract_agreement_id=response.contract_agreement_id,
            last_message=response.message,
        )

    def _absorb(self, response: NegotiationResponse) -> None:
        if self._handle is not None and response.contract_agreement_id:
            self._handle.contract_agreement_id = response.contract_agreement_id

    async def _on_success(self, token: CancellationToken, response: NegotiationResponse) -> None:
        self._value = response.contract_agreement_id
        if self._handle is not None:
            self._handle.contract_agreement_id = response.contract_agreement_id
        if not response.contract_agreement_id:
            logger.warning("negotiation.finalized_without_agreement", negotiation_id=self.negotiation_id)
        self._finish()

    def _resource_id(self) -> str | None:
        return self.negotiation_id
