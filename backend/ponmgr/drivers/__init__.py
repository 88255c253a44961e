"""Device communication layer: command catalogs, Telnet, SNMP."""
from .errors import (
    AuthenticationError,
    CommandError,
    DeviceConnectionError,
    DeviceTimeoutError,
    DriverError,
    ProtocolError,
)
from .olt_driver import OltDriver, SimulatedExecutor, TelnetExecutor, create_olt_driver
from .records import Vendor

__all__ = [
    "AuthenticationError",
    "CommandError",
    "DeviceConnectionError",
    "DeviceTimeoutError",
    "DriverError",
    "OltDriver",
    "ProtocolError",
    "SimulatedExecutor",
    "TelnetExecutor",
    "Vendor",
    "create_olt_driver",
]
