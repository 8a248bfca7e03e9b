"""Transfer Driver: drives a remote transfer process and retrieves the data.

    initiate(agreement, asset) -> PROVISIONING ... -> COMPLETED | DEPROVISIONED
                                                  -> fetch payload (own retries)
                                                or -> TERMINATED  (RemoteTerminationError)

The payload endpoint can lag behind the control plane: a transfer may
report COMPLETED before its data is retrievable. Payload retrieval
therefore has its own retry budget, and its failure is a DataFetchError,
not a transfer error.

DEPROVISIONED is accepted as completion, the same as COMPLETED.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from dataspace_client.domain.enums import FlowPhase, TransferState
from dataspace_client.domain.exceptions import (
    DataFetchError,
    InitiationError,
    MissingAgreementError,
    TransportError,
)
from dataspace_client.domain.models import DriverOutcome, TransferHandle
from dataspace_client.drivers.base import PollingDriver
from dataspace_client.logging_config import get_logger
from dataspace_client.scheduling import OperationCancelled

if TYPE_CHECKING:
    from dataspace_client.schemas.protocol import TransferResponse
    from dataspace_client.scheduling import CancellationToken

logger = get_logger(__name__)


class TransferDriver(PollingDriver[TransferState, TransferHandle]):
    """Owns at most one transfer handle at a time."""

    phase = FlowPhase.TRANSFER
    subject = "Transfer"
    state_type = TransferState
    termination_message = "transfer terminated"

    def __init__(self, *args: Any, **kwargs: Any) -> None:
        super().__init__(*args, **kwargs)
        self._agreement_id: str | None = None
        self._fetch_attempts = 0

    @property
    def data(self) -> Any:
        return self._value

    @property
    def transfer_id(self) -> str | None:
        return self._handle.transfer_id if self._handle else None

    @property
    def fetch_attempts(self) -> int:
        """Payload requests issued during the current run."""
        return self._fetch_attempts

    async def initiate(
        self,
        contract_agreement_id: str | None,
        asset_id: str,
    ) -> TransferHandle | None:
        """Start a transfer under an agreement; polling continues in the background.

        When the backend answers with a completion state (always, in
        direct-mock mode) the payload is fetched before this returns.
        """
        token = self._begin()
        self._fetch_attempts = 0
        if not contract_agreement_id:
            self._finish(MissingAgreementError(), state=TransferState.IDLE)
            return None
        if not asset_id:
            self._finish(
                InitiationError("asset_id must be non-empty", code="INVALID_INPUT"),
                state=TransferState.IDLE,
            )
            return None

        self._agreement_id = contract_agreement_id
        logger.info(
            "transfer.initiating",
            contract_agreement_id=contract_agreement_id,
            asset_id=asset_id,
        )
        return await self._start(
            token,
            lambda: self._backend.initiate_transfer(contract_agreement_id, asset_id),
        )

    async def run(self, contract_agreement_id: str | None, asset_id: str) -> DriverOutcome:
        """Initiate and wait for the terminal outcome (payload included)."""
        await self.initiate(contract_agreement_id, asset_id)
        return await self.wait()

    def reset(self) -> None:
        super().reset()
        self._agreement_id = None
        self._fetch_attempts = 0

    async def fetch_transfer_data(self, token: CancellationToken, transfer_id: str) -> Any:
        """Retrieve the payload with the data-fetch retry policy.

        Raises:
            TransportError: After data_fetch_retry_attempts failed calls.
            OperationCancelled: If cancelled during a backoff.
        """
        return await self._with_retry(
            token,
            self._options.data_fetch_retry_attempts,
            self._options.data_fetch_retry_delay,
            "data_fetch_retry",
            self._fetch_once,
            transfer_id,
        )

    async def _fetch_once(self, transfer_id: str) -> Any:
        self._fetch_attempts += 1
        return await self._backend.fetch_transfer_data(transfer_id)

    async def _get_status(self, resource_id: str) -> TransferResponse:
        return await self._backend.get_transfer(resource_id)

    def _make_handle(self, response: TransferResponse, state: TransferState) -> TransferHandle:
        return TransferHandle(
            transfer_id=response.transfer_id,
            current_state=state,
            contract_agreement_id=response.contract_agreement_id or self._agreement_id or "",
            last_message=response.message,
        )

    async def _on_success(self, token: CancellationToken, response: TransferResponse) -> None:
        transfer_id = self.transfer_id or response.transfer_id
        logger.info("transfer.fetching_data", transfer_id=transfer_id, state=self._state.value)
        try:
            data = await self.fetch_transfer_data(token, transfer_id)
        except OperationCancelled:
            return
        except TransportError as exc:
            if token.cancelled:
                return
            self._finish(
                DataFetchError(
                    transfer_id,
                    attempts=self._options.data_fetch_retry_attempts,
                    cause=exc,
                )
            )
            return

        if token.cancelled:
            return
        self._value = data
        self._finish()

    def _resource_id(self) -> str | None:
        return self.transfer_id
