"""Infrastructure: HTTP transport to the dataspace backend."""

from dataspace_client.infrastructure.transport import TransportClient

__all__ = ["TransportClient"]
