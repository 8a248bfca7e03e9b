"""Dataspace protocol client: contract negotiation, transfer and data retrieval."""

__version__ = "0.1.0"
