"""HTTP transport shared by every live backend call.

Wraps one ``httpx.AsyncClient`` and normalizes every failure into a
TransportError, so the drivers only ever see one exception type from the
wire:

    network failure          -> TransportError(kind=network)
    non-2xx response         -> TransportError(kind=remote, status=...)
    2xx with a non-JSON body -> TransportError(kind=invalid_response)

Request and response bodies are never logged.

Usage:
    async with TransportClient("http://localhost:3002") as transport:
        body = await transport.request("/api/negotiations/neg-1")
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

import httpx

from dataspace_client.config import Settings, get_settings
from dataspace_client.domain.exceptions import TransportError, TransportErrorKind
from dataspace_client.logging_config import get_logger
from dataspace_client.mode import resolve_base_url, resolve_mode

if TYPE_CHECKING:
    from types import TracebackType

    from dataspace_client.domain.enums import OperatingMode

logger = get_logger(__name__)


class TransportClient:
    """Uniform JSON request executor against one backend base URL."""

    def __init__(
        self,
        base_url: str,
        *,
        timeout: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """Initialize the transport.

        Args:
            base_url: Backend origin, e.g. "http://localhost:3002".
            timeout: Per-request timeout in seconds.
            transport: Optional httpx transport (tests pass httpx.MockTransport).
        """
        self._base_url = base_url.rstrip("/")
        self._client = httpx.AsyncClient(
            base_url=self._base_url,
            timeout=timeout,
            headers={"Content-Type": "application/json", "Accept": "application/json"},
            transport=transport,
        )

    @classmethod
    def from_settings(
        cls,
        mode: OperatingMode | None = None,
        settings: Settings | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> TransportClient:
        """Build a transport pointed at the base URL of the configured mode."""
        settings = settings or get_settings()
        mode = mode or resolve_mode(settings)
        return cls(
            resolve_base_url(mode, settings),
            timeout=settings.http_timeout_seconds,
            transport=transport,
        )

    @property
    def base_url(self) -> str:
        return self._base_url

    async def request(
        self,
        path: str,
        method: str = "GET",
        json: Any = None,
    ) -> Any:
        """Issue a request and return the parsed JSON body.

        Args:
            path: Resource path relative to the base URL (leading slash).
            method: HTTP verb.
            json: Optional JSON-serializable request body.

        Returns:
            The decoded JSON body, or None for an empty response.

        Raises:
            TransportError: On network failure, non-2xx status, or a body
                that is not valid JSON.
        """
        try:
            response = await self._client.request(method, path, json=json)
        except httpx.RequestError as exc:
            logger.warning(
                "transport.network_error",
                method=method,
                path=path,
                error_type=type(exc).__name__,
            )
            raise TransportError(
                TransportErrorKind.NETWORK,
                f"Network error calling {method} {path}: {exc.__class__.__name__}",
            ) from exc

        if not response.is_success:
            message = _extract_error_message(response)
            logger.warning(
                "transport.request_failed",
                method=method,
                path=path,
                status=response.status_code,
            )
            raise TransportError(
                TransportErrorKind.REMOTE,
                message,
                status=response.status_code,
            )

        logger.debug(
            "transport.request_ok",
            method=method,
            path=path,
            status=response.status_code,
        )

        if not response.content:
            return None
        try:
            return response.json()
        except ValueError as exc:
            raise TransportError(
                TransportErrorKind.INVALID_RESPONSE,
                f"Response from {method} {path} is not valid JSON",
                status=response.status_code,
            ) from exc

    async def health(self) -> dict:
        """Call the backend's ``/health`` endpoint."""
        body = await self.request("/health")
        return body if isinstance(body, dict) else {"status": str(body)}

    async def aclose(self) -> None:
        await self._client.aclose()

    async def __aenter__(self) -> TransportClient:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.aclose()


def _extract_error_message(response: httpx.Response) -> str:
    """Pull ``message`` (then ``error``) from an error body, else a status message."""
    try:
        body = response.json()
    except ValueError:
        body = None
    if isinstance(body, dict):
        for key in ("message", "error"):
            value = body.get(key)
            if isinstance(value, str) and value:
                return value
    return f"HTTP {response.status_code}: {response.reason_phrase or 'Request failed'}"
