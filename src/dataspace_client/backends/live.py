"""LiveBackend: talks to the EDC-facing backend over HTTP.

Serves both the hybrid mode (mock records behind real protocol metadata)
and the full-protocol mode. The two differ only on the server side, so the
client strategy is the same and just reports which mode it was built for.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, TypeVar
from urllib.parse import quote

from pydantic import BaseModel, ValidationError

from dataspace_client.domain.enums import OperatingMode
from dataspace_client.domain.exceptions import TransportError, TransportErrorKind
from dataspace_client.schemas.protocol import (
    NegotiationRequest,
    NegotiationResponse,
    TransferRequest,
    TransferResponse,
)

if TYPE_CHECKING:
    from dataspace_client.infrastructure.transport import TransportClient

_ModelT = TypeVar("_ModelT", bound=BaseModel)


class LiveBackend:
    """Backend strategy for the hybrid and full-protocol operating modes."""

    def __init__(
        self,
        transport: TransportClient,
        mode: OperatingMode = OperatingMode.FULL_PROTOCOL,
        path_prefix: str = "/api",
    ) -> None:
        if mode is OperatingMode.DIRECT_MOCK:
            raise ValueError("LiveBackend cannot serve the direct-mock mode")
        self._transport = transport
        self._mode = mode
        self._prefix = "/" + path_prefix.strip("/") if path_prefix.strip("/") else ""

    @property
    def mode(self) -> OperatingMode:
        return self._mode

    def _path(self, *segments: str) -> str:
        return self._prefix + "".join("/" + quote(s, safe=":") for s in segments)

    async def initiate_negotiation(
        self, asset_id: str, offer_id: str, policy_id: str | None = None
    ) -> NegotiationResponse:
        body = NegotiationRequest(asset_id=asset_id, offer_id=offer_id, policy_id=policy_id)
        raw = await self._transport.request(
            self._path("negotiations"), method="POST", json=body.to_wire()
        )
        return _parse(NegotiationResponse, raw)

    async def get_negotiation(self, negotiation_id: str) -> NegotiationResponse:
        raw = await self._transport.request(self._path("negotiations", negotiation_id))
        return _parse(NegotiationResponse, raw)

    async def initiate_transfer(
        self, contract_agreement_id: str, asset_id: str
    ) -> TransferResponse:
        body = TransferRequest(contract_agreement_id=contract_agreement_id, asset_id=asset_id)
        raw = await self._transport.request(
            self._path("transfers"), method="POST", json=body.to_wire()
        )
        return _parse(TransferResponse, raw)

    async def get_transfer(self, transfer_id: str) -> TransferResponse:
        raw = await self._transport.request(self._path("transfers", transfer_id))
        return _parse(TransferResponse, raw)

    async def fetch_transfer_data(self, transfer_id: str) -> Any:
        return await self._transport.request(self._path("transfers", transfer_id, "data"))

    async def health(self) -> dict:
        return await self._transport.health()

    def describe(self) -> dict:
        description = (
            "Hybrid mode: mock records served through protocol metadata"
            if self._mode is OperatingMode.HYBRID
            else "Full mode: complete contract negotiation and transfer flow"
        )
        return {
            "mode": self._mode.value,
            "description": description,
            "base_url": self._transport.base_url,
        }

    async def aclose(self) -> None:
        await self._transport.aclose()


def _parse(model: type[_ModelT], raw: Any) -> _ModelT:
    """Validate a response body, mapping schema mismatches to TransportError."""
    try:
        return model.model_validate(raw)
    except ValidationError as exc:
        raise TransportError(
            TransportErrorKind.INVALID_RESPONSE,
            f"Unexpected {model.__name__} payload: {exc.error_count()} validation error(s)",
        ) from exc
