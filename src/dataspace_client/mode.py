"""Operating mode resolution.

Pure lookups over Settings: no I/O, no error path. An absent or
unrecognized mode resolves to DIRECT_MOCK so a misconfigured client can
never reach a live protocol engine by accident.
"""

from __future__ import annotations

from dataspace_client.config import (
    DEFAULT_EDC_API_URL,
    DEFAULT_MOCK_API_URL,
    Settings,
    get_settings,
)
from dataspace_client.domain.enums import OperatingMode

_MODE_ALIASES: dict[str, OperatingMode] = {
    "mock": OperatingMode.DIRECT_MOCK,
    "direct-mock": OperatingMode.DIRECT_MOCK,
    "direct_mock": OperatingMode.DIRECT_MOCK,
    "hybrid": OperatingMode.HYBRID,
    "full": OperatingMode.FULL_PROTOCOL,
    "full-protocol": OperatingMode.FULL_PROTOCOL,
    "full_protocol": OperatingMode.FULL_PROTOCOL,
}


def parse_mode(raw: str | None) -> OperatingMode:
    """Map a configuration string onto an OperatingMode, defaulting to mock."""
    if not raw:
        return OperatingMode.DIRECT_MOCK
    return _MODE_ALIASES.get(raw.strip().lower(), OperatingMode.DIRECT_MOCK)


def resolve_mode(settings: Settings | None = None) -> OperatingMode:
    """Return the operating mode selected by configuration."""
    settings = settings or get_settings()
    return parse_mode(settings.api_mode)


def resolve_base_url(mode: OperatingMode, settings: Settings | None = None) -> str:
    """Return the backend base URL for a mode.

    Hybrid and full-protocol both go through the EDC backend; blank URLs
    fall back to the local defaults.
    """
    settings = settings or get_settings()
    if mode is OperatingMode.DIRECT_MOCK:
        url = settings.mock_api_url.strip() or DEFAULT_MOCK_API_URL
    else:
        url = settings.edc_api_url.strip() or DEFAULT_EDC_API_URL
    return url.rstrip("/")
