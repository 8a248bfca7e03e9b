"""Pydantic schemas for the protocol backend's request/response shapes.

Field names are snake_case in Python and camelCase on the wire. Only the
fields the drivers act on are modelled; anything else the backend sends is
ignored.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class _WireModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
    )

    def to_wire(self) -> dict:
        """Serialize with camelCase keys, dropping unset optionals."""
        return self.model_dump(by_alias=True, exclude_none=True)


# ---------------------------------------------------------------------------
# Request Schemas
# ---------------------------------------------------------------------------


class NegotiationRequest(_WireModel):
    """Body of ``POST /negotiations``."""

    asset_id: str = Field(..., min_length=1, examples=["ehr:EHR001"])
    offer_id: str = Field(..., min_length=1, examples=["offer:123"])
    policy_id: str | None = None


class TransferRequest(_WireModel):
    """Body of ``POST /transfers``."""

    contract_agreement_id: str = Field(..., min_length=1)
    asset_id: str = Field(..., min_length=1)


# ---------------------------------------------------------------------------
# Response Schemas
# ---------------------------------------------------------------------------


class NegotiationResponse(_WireModel):
    """Body of ``POST /negotiations`` and ``GET /negotiations/{id}``.

    ``state`` is kept as the raw string; the driver maps it onto
    NegotiationState.
    """

    negotiation_id: str
    state: str
    contract_agreement_id: str | None = None
    message: str | None = None


class TransferResponse(_WireModel):
    """Body of ``POST /transfers`` and ``GET /transfers/{id}``."""

    transfer_id: str
    state: str
    contract_agreement_id: str | None = None
    message: str | None = None
