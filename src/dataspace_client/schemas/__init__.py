"""Pydantic wire schemas."""

from dataspace_client.schemas.protocol import (
    NegotiationRequest,
    NegotiationResponse,
    TransferRequest,
    TransferResponse,
)

__all__ = [
    "NegotiationRequest",
    "NegotiationResponse",
    "TransferRequest",
    "TransferResponse",
]
