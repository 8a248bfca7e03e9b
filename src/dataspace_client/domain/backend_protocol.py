"""Dataspace Backend Protocol.

Defines the interface every operating-mode strategy must implement. The
drivers only ever talk to this shape, so the mock and live backends are
interchangeable and the mode is checked exactly once, when the backend is
built.

This is a Protocol (structural subtyping): test doubles don't need to
inherit from anything, they just need to match the shape.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

if TYPE_CHECKING:
    from dataspace_client.domain.enums import OperatingMode
    from dataspace_client.schemas.protocol import NegotiationResponse, TransferResponse


@runtime_checkable
class DataspaceBackend(Protocol):
    """Protocol that all backend strategies must satisfy.

    Concrete implementations:
        - backends/mock.py  (synthesized terminal responses, no network)
        - backends/live.py  (hybrid and full-protocol, over HTTP)

    Every method may raise TransportError.
    """

    @property
    def mode(self) -> OperatingMode:
        """The operating mode this backend serves."""
        ...

    async def initiate_negotiation(
        self, asset_id: str, offer_id: str, policy_id: str | None = None
    ) -> NegotiationResponse:
        """Start a contract negotiation for an asset offer."""
        ...

    async def get_negotiation(self, negotiation_id: str) -> NegotiationResponse:
        """Fetch the current state of a negotiation."""
        ...

    async def initiate_transfer(
        self, contract_agreement_id: str, asset_id: str
    ) -> TransferResponse:
        """Start a transfer process under an agreement."""
        ...

    async def get_transfer(self, transfer_id: str) -> TransferResponse:
        """Fetch the current state of a transfer process."""
        ...

    async def fetch_transfer_data(self, transfer_id: str) -> Any:
        """Retrieve the payload of a completed transfer."""
        ...

    async def health(self) -> dict:
        """Report backend liveness."""
        ...

    def describe(self) -> dict:
        """Describe the mode and endpoint for display."""
        ...

    async def aclose(self) -> None:
        """Release any held connections."""
        ...
