"""Flow Orchestrator: negotiate, transfer and retrieve data in one call.

Composes the two drivers for "one click" demo flows:

    IDLE -> NEGOTIATING -> NEGOTIATION_COMPLETE -> TRANSFERRING
         -> TRANSFER_COMPLETE -> COMPLETE

    NEGOTIATING / TRANSFERRING -> ERROR on the first failure.

The orchestrator only calls the drivers' public operations and listens to
their state notifications to build the step logs. Errors never escape
``run_full_flow``: the first one is returned in the FlowResult and no later
stage runs. A contract agreement obtained before a transfer failure is
still returned.

Usage:
    from dataspace_client.orchestration import FlowOrchestrator

    orchestrator = FlowOrchestrator(BackendFactory.create())
    result = await orchestrator.run_full_flow("ehr:EHR001", "offer:123")
    if result.ok:
        render(result.ehr_data)
"""

from __future__ import annotations

import time
import uuid
from typing import TYPE_CHECKING, Any

import structlog

from dataspace_client.domain.enums import FlowPhase, FlowState
from dataspace_client.domain.exceptions import (
    DataFetchError,
    DataspaceClientError,
    FlowCancelledError,
)
from dataspace_client.domain.models import FlowResult
from dataspace_client.domain.state_machine import FlowStateMachine
from dataspace_client.drivers.negotiation import NegotiationDriver
from dataspace_client.drivers.transfer import TransferDriver
from dataspace_client.logging_config import get_logger
from dataspace_client.observability.metrics import FlowMetrics, FlowSample, get_metrics
from dataspace_client.orchestration.step_log import StepLog

if TYPE_CHECKING:
    from dataspace_client.domain.backend_protocol import DataspaceBackend
    from dataspace_client.domain.models import StateChange, StepLogEntry
    from dataspace_client.drivers.base import DriverOptions, PollingDriver

logger = get_logger(__name__)


class FlowOrchestrator:
    """Runs the end-to-end negotiate -> transfer -> data flow."""

    def __init__(
        self,
        backend: DataspaceBackend,
        options: DriverOptions | None = None,
        metrics: FlowMetrics | None = None,
        negotiation_driver: NegotiationDriver | None = None,
        transfer_driver: TransferDriver | None = None,
    ) -> None:
        self._backend = backend
        self._metrics = metrics
        self._negotiation = negotiation_driver or NegotiationDriver(backend, options, metrics)
        self._transfer = transfer_driver or TransferDriver(backend, options, metrics)
        self._negotiation.subscribe(self._on_negotiation_change)
        self._transfer.subscribe(self._on_transfer_change)

        self._sm = FlowStateMachine()
        self._negotiation_steps = StepLog(FlowPhase.NEGOTIATION)
        self._transfer_steps = StepLog(FlowPhase.TRANSFER)
        self._result: FlowResult | None = None
        self._active: PollingDriver[Any, Any] | None = None
        self._cancelled = False
        self._run_id = 0

    # ------------------------------------------------------------------
    # Observable state
    # ------------------------------------------------------------------

    @property
    def flow_state(self) -> FlowState:
        return FlowState(self._sm.status)

    @property
    def negotiation_steps(self) -> tuple[StepLogEntry, ...]:
        return self._negotiation_steps.entries

    @property
    def transfer_steps(self) -> tuple[StepLogEntry, ...]:
        return self._transfer_steps.entries

    @property
    def result(self) -> FlowResult | None:
        return self._result

    @property
    def negotiation_driver(self) -> NegotiationDriver:
        return self._negotiation

    @property
    def transfer_driver(self) -> TransferDriver:
        return self._transfer

    @property
    def is_running(self) -> bool:
        return self._active is not None

    # ------------------------------------------------------------------
    # Public operations
    # ------------------------------------------------------------------

    async def run_full_flow(
        self,
        asset_id: str,
        offer_id: str | None = None,
        policy_id: str | None = None,
    ) -> FlowResult:
        """Negotiate, transfer and retrieve the payload for one asset.

        Args:
            asset_id: Catalog asset to obtain, e.g. "ehr:EHR001".
            offer_id: Offer to negotiate; defaults to the asset id.
            policy_id: Optional policy to negotiate under.

        Returns:
            The FlowResult of this invocation (also kept as ``result``).
        """
        self.reset()
        run_id = self._run_id
        started = time.monotonic()

        with structlog.contextvars.bound_contextvars(flow_id=uuid.uuid4().hex[:12]):
            logger.info("flow.started", asset_id=asset_id, mode=self._backend.mode.value)
            result = await self._execute(run_id, asset_id, offer_id or asset_id, policy_id)

            if run_id == self._run_id:
                self._result = result
                self._active = None
                outcome = "success" if result.ok else result.error.code.lower()
                (self._metrics or get_metrics()).record(
                    FlowSample(
                        phase=FlowPhase.FLOW,
                        outcome=outcome,
                        duration_ms=int((time.monotonic() - started) * 1000),
                        error_code=None if result.ok else result.error.code,
                    )
                )
                logger.info(
                    "flow.finished",
                    flow_state=self.flow_state.value,
                    ok=result.ok,
                    contract_agreement_id=result.contract_agreement_id,
                    transfer_id=result.transfer_id,
                )
        return result

    def cancel(self) -> None:
        """Cancel whichever driver is running; the flow stops at its current stage."""
        if self._active is None:
            return
        self._cancelled = True
        logger.info("flow.cancelling", flow_state=self.flow_state.value)
        self._active.cancel()

    def reset(self) -> None:
        """Abandon any running flow and clear logs, result and state."""
        if self._active is not None:
            self._active.cancel()
        self._run_id += 1
        self._active = None
        self._cancelled = False
        self._negotiation.reset()
        self._transfer.reset()
        self._negotiation_steps.clear()
        self._transfer_steps.clear()
        self._result = None
        self._sm = FlowStateMachine()

    # ------------------------------------------------------------------
    # Stages
    # ------------------------------------------------------------------

    async def _execute(
        self,
        run_id: int,
        asset_id: str,
        offer_id: str,
        policy_id: str | None,
    ) -> FlowResult:
        # --- Stage 1: Negotiate ---
        self._sm.fire("start_negotiation")
        self._active = self._negotiation
        negotiation = await self._negotiation.run(asset_id, offer_id, policy_id)

        if run_id != self._run_id:
            return self._abandoned(FlowState.NEGOTIATING)
        if self._cancelled or negotiation.cancelled:
            return self._stop_cancelled(FlowState.NEGOTIATING)
        if not negotiation.ok:
            return self._stop_failed(self._negotiation_steps, negotiation.error)

        agreement_id = negotiation.value
        self._sm.fire("negotiation_finalized")
        logger.info("flow.negotiation_complete", contract_agreement_id=agreement_id)

        # --- Stage 2: Transfer (payload retrieval included) ---
        self._sm.fire("start_transfer")
        self._active = self._transfer
        transfer = await self._transfer.run(agreement_id, asset_id)

        if run_id != self._run_id:
            return self._abandoned(FlowState.TRANSFERRING, agreement_id)
        transfer_id = self._transfer.transfer_id
        if self._cancelled or transfer.cancelled:
            return self._stop_cancelled(FlowState.TRANSFERRING, agreement_id, transfer_id)
        if not transfer.ok:
            return self._stop_failed(
                self._transfer_steps, transfer.error, agreement_id, transfer_id
            )

        self._sm.fire("transfer_completed")

        # --- Stage 3: Data received ---
        self._sm.fire("data_received")
        return self._build_result(
            ehr_data=transfer.value,
            contract_agreement_id=agreement_id,
            transfer_id=transfer_id,
        )

    def _stop_failed(
        self,
        steps: StepLog,
        error: DataspaceClientError | None,
        contract_agreement_id: str | None = None,
        transfer_id: str | None = None,
    ) -> FlowResult:
        error = error or DataspaceClientError("Flow failed")
        last = steps.last
        if last is None or not last.is_error:
            label = "Data Retrieval Failed" if isinstance(error, DataFetchError) else None
            steps.record_failure(error.message, label=label)
        self._sm.fire("fail")
        logger.warning(
            "flow.failed",
            stage=steps.phase.value,
            code=error.code,
            error=error.message,
        )
        return self._build_result(
            contract_agreement_id=contract_agreement_id,
            transfer_id=transfer_id,
            error=error,
        )

    def _stop_cancelled(
        self,
        stage: FlowState,
        contract_agreement_id: str | None = None,
        transfer_id: str | None = None,
    ) -> FlowResult:
        self._sm.fire("cancel")
        logger.info("flow.cancelled", stage=stage.value)
        return self._build_result(
            contract_agreement_id=contract_agreement_id,
            transfer_id=transfer_id,
            error=FlowCancelledError(stage.value),
        )

    def _abandoned(self, stage: FlowState, contract_agreement_id: str | None = None) -> FlowResult:
        """Result for a run superseded by reset() or a newer run; touches no state."""
        logger.info("flow.superseded", stage=stage.value)
        return FlowResult(
            contract_agreement_id=contract_agreement_id,
            error=FlowCancelledError(stage.value),
        )

    def _build_result(self, **fields: Any) -> FlowResult:
        return FlowResult(
            negotiation_steps=self._negotiation_steps.entries,
            transfer_steps=self._transfer_steps.entries,
            **fields,
        )

    # ------------------------------------------------------------------
    # Driver notifications
    # ------------------------------------------------------------------

    def _on_negotiation_change(self, change: StateChange) -> None:
        if change.state.value != FlowState.IDLE and self._active is self._negotiation:
            self._negotiation_steps.record(change)

    def _on_transfer_change(self, change: StateChange) -> None:
        if change.state.value != FlowState.IDLE and self._active is self._transfer:
            self._transfer_steps.record(change)
