#!/usr/bin/env python3
"""Dataspace Flow Client: End-to-End Simulation.

Runs three scenarios against the configured backend (API_MODE):

    Scenario 1: One-click flow
        - FlowOrchestrator negotiates, transfers and fetches one EHR
        - Prints both step logs and the received payload

    Scenario 2: Driver by driver
        - NegotiationDriver runs to FINALIZED
        - TransferDriver runs under the resulting agreement

    Scenario 3: Transfer without an agreement
        - TransferDriver is started with no contract agreement id
        - Fails with MissingAgreementError before any request is sent

Usage:
    # Mock mode (no network, instant):
    uv run python simulation.py

    # Against a running EDC backend:
    API_MODE=full EDC_API_URL=http://localhost:3002 uv run python simulation.py

    # Pick the mode on the command line instead:
    uv run python simulation.py --mode hybrid

    # Run a specific scenario with a chosen asset:
    uv run python simulation.py --scenario 1 --asset ehr:EHR042
"""

from __future__ import annotations

import argparse
import asyncio
import json

# ---------------------------------------------------------------------------
# Configure structured logging BEFORE importing app modules
# ---------------------------------------------------------------------------
from dataspace_client.config import get_settings
from dataspace_client.logging_config import configure_logging, get_logger

settings = get_settings()
configure_logging(settings)
logger = get_logger("simulation")

from dataspace_client.backends import BackendFactory  # noqa: E402
from dataspace_client.domain.backend_protocol import DataspaceBackend  # noqa: E402
from dataspace_client.domain.enums import FlowPhase  # noqa: E402
from dataspace_client.domain.models import FlowResult, StepLogEntry  # noqa: E402
from dataspace_client.drivers import DriverOptions, NegotiationDriver, TransferDriver  # noqa: E402
from dataspace_client.mode import parse_mode, resolve_mode  # noqa: E402
from dataspace_client.observability import get_metrics  # noqa: E402
from dataspace_client.orchestration import FlowOrchestrator  # noqa: E402

# ---------------------------------------------------------------------------
# Display helpers
# ---------------------------------------------------------------------------


def banner(text: str) -> None:
    width = 70
    print("\n" + "=" * width)
    print(f"  {text}")
    print("=" * width + "\n")


def section(text: str) -> None:
    print(f"\n--- {text} ---\n")


def print_steps(title: str, steps: tuple[StepLogEntry, ...]) -> None:
    print(f"  {title}:")
    if not steps:
        print("    (none)")
    for i, step in enumerate(steps, 1):
        icon = {"error": "❌", "complete": "✅"}.get(step.status, "⏳")
        detail = f"  ({step.detail})" if step.detail else ""
        print(f"    {i}. {icon} {step.label} [{step.raw_state}]{detail}")


def print_result(result: FlowResult) -> None:
    status_icon = "✅" if result.ok else "❌"
    print(f"  {status_icon} Flow: {'COMPLETE' if result.ok else 'FAILED'}")
    print(f"  Agreement: {result.contract_agreement_id}")
    print(f"  Transfer:  {result.transfer_id}")
    if result.error is not None:
        print(f"  Error: [{result.error.code}] {result.error.message}")
    if result.ehr_data is not None:
        print("  Payload:")
        for line in json.dumps(result.ehr_data, indent=2).splitlines():
            print(f"    {line}")


# ---------------------------------------------------------------------------
# Scenarios
# ---------------------------------------------------------------------------


async def scenario_1_full_flow(backend: DataspaceBackend, asset_id: str, offer_id: str | None) -> None:
    banner("SCENARIO 1: One-click flow")
    orchestrator = FlowOrchestrator(backend, DriverOptions.from_settings())

    section("Negotiate -> Transfer -> Fetch")
    result = await orchestrator.run_full_flow(asset_id, offer_id)

    print_steps("Negotiation steps", result.negotiation_steps)
    print_steps("Transfer steps", result.transfer_steps)
    print()
    print_result(result)
    print(f"\n  Final flow state: {orchestrator.flow_state}")


async def scenario_2_driver_by_driver(
    backend: DataspaceBackend, asset_id: str, offer_id: str | None
) -> None:
    banner("SCENARIO 2: Driver by driver")
    options = DriverOptions.from_settings()

    section("Step 1: Negotiate")
    negotiation = NegotiationDriver(backend, options)
    outcome = await negotiation.run(asset_id, offer_id or asset_id)
    print(f"  State: {negotiation.state}  polls: {negotiation.poll_count}")
    if not outcome.ok:
        print(f"  ❌ {outcome.error.message if outcome.error else 'cancelled'}")
        return
    print(f"  ✅ Agreement: {outcome.value}")

    section("Step 2: Transfer")
    transfer = TransferDriver(backend, options)
    outcome = await transfer.run(outcome.value, asset_id)
    print(f"  State: {transfer.state}  polls: {transfer.poll_count}")
    print(f"  Payload requests: {transfer.fetch_attempts}")
    if outcome.ok:
        print(f"  ✅ Payload keys: {sorted(outcome.value or {})}")
    else:
        print(f"  ❌ {outcome.error.message if outcome.error else 'cancelled'}")


async def scenario_3_missing_agreement(backend: DataspaceBackend, asset_id: str) -> None:
    banner("SCENARIO 3: Transfer without an agreement")
    transfer = TransferDriver(backend, DriverOptions.from_settings())

    section("Initiate with no contract agreement id")
    outcome = await transfer.run(None, asset_id)
    error = outcome.error
    print(f"  State: {transfer.state}")
    print(f"  ❌ [{error.code if error else '-'}] {error.message if error else ''}")


# ---------------------------------------------------------------------------
# Main
# ---------------------------------------------------------------------------


async def run(scenario: int, asset_id: str, offer_id: str | None, mode: str | None) -> None:
    selected = parse_mode(mode) if mode else resolve_mode()
    backend = BackendFactory.create(selected)
    info = backend.describe()
    logger.info("simulation.starting", env=settings.app_env, mode=selected.value, scenario=scenario)

    print("\n" + "🚀" * 35)
    print("  DATASPACE FLOW CLIENT: SIMULATION")
    print(f"  Mode: {selected.value}")
    print(f"  {info['description']}")
    print("🚀" * 35 + "\n")

    scenarios = {
        1: lambda: scenario_1_full_flow(backend, asset_id, offer_id),
        2: lambda: scenario_2_driver_by_driver(backend, asset_id, offer_id),
        3: lambda: scenario_3_missing_agreement(backend, asset_id),
    }

    try:
        if scenario and scenario not in scenarios:
            print(f"Unknown scenario {scenario}. Available: 1, 2, 3")
            return
        for num in [scenario] if scenario else sorted(scenarios):
            await scenarios[num]()

        section("Metrics")
        metrics = get_metrics()
        for phase in FlowPhase:
            if metrics.snapshot(phase):
                print(f"  {phase}: {metrics.summary(phase)}")
    finally:
        await backend.aclose()


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Dataspace Flow Client Simulation")
    parser.add_argument(
        "--scenario",
        type=int,
        default=0,
        help="Run a specific scenario (1, 2, or 3). Default: run all.",
    )
    parser.add_argument(
        "--mode",
        default=None,
        help="Operating mode (mock, hybrid, full). Default: API_MODE from the environment.",
    )
    parser.add_argument("--asset", default="ehr:EHR001", help="Asset id to obtain.")
    parser.add_argument("--offer", default=None, help="Offer id (defaults to the asset id).")
    args = parser.parse_args()

    asyncio.run(run(args.scenario, args.asset, args.offer, args.mode))
