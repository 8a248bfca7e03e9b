"""Operating-mode backend strategies and factory.

Two strategies:
    - MockBackend:  synthesized terminal responses, no network (direct-mock)
    - LiveBackend:  HTTP calls to the EDC backend (hybrid, full-protocol)

The BackendFactory picks the strategy once, from the resolved mode, so no
driver ever re-checks the mode flag.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from dataspace_client.backends.live import LiveBackend
from dataspace_client.backends.mock import MockBackend
from dataspace_client.config import Settings, get_settings
from dataspace_client.domain.backend_protocol import DataspaceBackend
from dataspace_client.domain.enums import OperatingMode
from dataspace_client.infrastructure.transport import TransportClient
from dataspace_client.mode import resolve_base_url, resolve_mode

if TYPE_CHECKING:
    import httpx


class BackendFactory:
    """Factory that creates the backend strategy for an operating mode.

    Usage:
        backend = BackendFactory.create()                          # from settings
        backend = BackendFactory.create(OperatingMode.HYBRID)
    """

    @classmethod
    def create(
        cls,
        mode: OperatingMode | None = None,
        settings: Settings | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> DataspaceBackend:
        """Create the backend for ``mode`` (or the configured mode).

        Args:
            mode: Operating mode; resolved from settings when None.
            settings: Optional settings override.
            transport: Optional httpx transport for the live strategy.
        """
        settings = settings or get_settings()
        mode = mode or resolve_mode(settings)

        if mode is OperatingMode.DIRECT_MOCK:
            return MockBackend(base_url=resolve_base_url(mode, settings))

        client = TransportClient.from_settings(mode=mode, settings=settings, transport=transport)
        return LiveBackend(client, mode=mode, path_prefix=settings.api_path_prefix)

    @classmethod
    def get_supported_modes(cls) -> list[str]:
        """Return the list of supported mode strings."""
        return [m.value for m in OperatingMode]


__all__ = [
    "BackendFactory",
    "DataspaceBackend",
    "LiveBackend",
    "MockBackend",
]
