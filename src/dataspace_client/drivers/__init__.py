"""Protocol drivers: negotiation and transfer polling."""

from dataspace_client.drivers.base import DriverOptions, PollingDriver
from dataspace_client.drivers.negotiation import NegotiationDriver
from dataspace_client.drivers.transfer import TransferDriver

__all__ = ["DriverOptions", "NegotiationDriver", "PollingDriver", "TransferDriver"]
