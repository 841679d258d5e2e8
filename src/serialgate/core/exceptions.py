"""
Exception hierarchy for the serial gateway.
"""


class SerialGateError(Exception):
    """Base class for all gateway errors."""


class ConfigError(SerialGateError):
    """Invalid gateway or connection-supplied configuration."""


class PortError(SerialGateError):
    """Error reported by the serial driver layer."""


class PortOpenError(PortError):
    """Port could not be opened (missing, busy, or already open)."""


class PortClosedError(PortError):
    """Operation requires an open port."""
