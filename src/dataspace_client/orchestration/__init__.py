"""Orchestration layer: end-to-end negotiate, transfer and fetch flows."""

from dataspace_client.orchestration.flow import FlowOrchestrator
from dataspace_client.orchestration.step_log import StepLog, label_for

__all__ = ["FlowOrchestrator", "StepLog", "label_for"]
