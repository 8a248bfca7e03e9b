"""Shared test fixtures for the dataspace flow client test suite.

Provides:
    - ScriptedBackend: an in-memory backend whose responses are queued per call
    - Zero-delay driver options so polling tests run instantly
    - A private metrics buffer per test
    - Async test support via pytest-asyncio
"""

from __future__ import annotations

import pytest

from dataspace_client.config import Settings
from dataspace_client.drivers.base import DriverOptions
from dataspace_client.observability.metrics import FlowMetrics
from scripted import ScriptedBackend

# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def backend() -> ScriptedBackend:
    return ScriptedBackend()


@pytest.fixture
def fast_options() -> DriverOptions:
    """Zero delays everywhere; default attempt budgets."""
    return DriverOptions(
        poll_interval=0,
        max_poll_attempts=30,
        retry_attempts=3,
        retry_delay=0,
        data_fetch_retry_attempts=3,
        data_fetch_retry_delay=0,
    )


@pytest.fixture
def metrics() -> FlowMetrics:
    return FlowMetrics(max_samples=100)


@pytest.fixture
def settings() -> Settings:
    """Settings isolated from the environment and any .env file."""
    return Settings(_env_file=None)


@pytest.fixture
def sample_payload() -> dict:
    return {
        "credentialSubject": {"ehrId": "EHR001", "diagnosis": "Hypertension"},
        "_meta": {"source": "edc", "transferId": "tp-1"},
    }
