"""Failure taxonomy shared by the Telnet, SNMP and CWMP layers."""
from __future__ import annotations


class DriverError(Exception):
    """Base class for classified device communication failures."""

    kind = "driver"

    def __init__(self, message: str, *, host: str | None = None):
        super().__init__(message)
        self.message = message
        self.host = host

    def to_dict(self) -> dict:
        return {"kind": self.kind, "message": self.message, "host": self.host}


class DeviceConnectionError(DriverError):
    kind = "connection"


class AuthenticationError(DriverError):
    kind = "authentication"


class CommandError(DriverError):
    kind = "command"

    def __init__(self, message: str, *, host: str | None = None, command: str | None = None):
        super().__init__(message, host=host)
        self.command = command


class ProtocolError(DriverError):
    kind = "protocol"


class DeviceTimeoutError(DriverError, TimeoutError):
    kind = "timeout"
