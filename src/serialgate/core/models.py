"""
Data models for the serial gateway.

Defines the connection handshake configuration, structured record fields,
and port lifecycle events.
"""

import json
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional, Union

from serialgate.core.exceptions import ConfigError

logger = logging.getLogger(__name__)

PARITIES = ("none", "even", "odd", "mark", "space")
DATA_BITS = (5, 6, 7, 8)
STOP_BITS = (1, 1.5, 2)

# Handshake keys consumed by the session itself, not the port
_SESSION_KEYS = ("DisplayName", "delimiter", "EOL")
_PORT_KEYS = (
    "path",
    "baudRate",
    "dataBits",
    "stopBits",
    "parity",
    "rtscts",
    "xon",
    "xoff",
)


class _Absent:
    """Marks a record field interval the device did not send."""

    def __repr__(self) -> str:
        return "ABSENT"


ABSENT = _Absent()


class PortState(Enum):
    """Port session lifecycle states."""

    CLOSED = "closed"
    OPENING = "opening"
    OPEN = "open"
    CLOSING = "closing"
    CLOSED_ERROR = "closed-error"


class LifecycleAction(Enum):
    """Port lifecycle event kinds."""

    OPEN_PORT = "openPort"
    CLOSE_PORT = "closePort"
    SUDDEN_PORT_DISC = "suddenPortDisc"
    PORT_ERROR = "portError"


@dataclass
class PortConfig:
    """Serial port parameters supplied by a client at connection time."""

    path: str
    baud_rate: int = 115200
    data_bits: int = 8
    stop_bits: float = 1
    parity: str = "none"
    rtscts: bool = False
    xon: bool = False
    xoff: bool = False

    @classmethod
    def from_dict(cls, data: dict[str, Any], default_baud: int = 115200) -> "PortConfig":
        """Create PortConfig from client-style keys (path, baudRate, ...)."""
        path = data.get("path")
        if not isinstance(path, str) or not path:
            raise ConfigError("Port path is required")

        baud_rate = data.get("baudRate", default_baud)
        if isinstance(baud_rate, bool) or not isinstance(baud_rate, int) or baud_rate <= 0:
            raise ConfigError(f"Invalid baudRate: {baud_rate!r}")

        data_bits = data.get("dataBits", 8)
        if data_bits not in DATA_BITS:
            raise ConfigError(f"Invalid dataBits: {data_bits!r}")

        stop_bits = data.get("stopBits", 1)
        if stop_bits not in STOP_BITS:
            raise ConfigError(f"Invalid stopBits: {stop_bits!r}")

        parity = data.get("parity", "none")
        if parity not in PARITIES:
            raise ConfigError(f"Invalid parity: {parity!r}")

        unknown = set(data) - set(_PORT_KEYS)
        if unknown:
            logger.debug(f"Ignoring unknown port options: {sorted(unknown)}")

        return cls(
            path=path,
            baud_rate=baud_rate,
            data_bits=data_bits,
            stop_bits=stop_bits,
            parity=parity,
            rtscts=bool(data.get("rtscts", False)),
            xon=bool(data.get("xon", False)),
            xoff=bool(data.get("xoff", False)),
        )


@dataclass
class SessionConfig:
    """Per-connection configuration taken from the handshake."""

    port: PortConfig
    display_name: str = ""
    delimiter: str = "\n"
    eol: str = "\n"

    @classmethod
    def from_auth(
        cls,
        auth: Optional[dict[str, Any]],
        default_baud: int = 115200,
        default_delimiter: str = "\n",
        default_eol: str = "\n",
    ) -> "SessionConfig":
        """
        Parse a handshake payload.

        Expected shape: {DisplayName, delimiter, EOL, ...serialPortConfig}

        Raises:
            ConfigError: If the payload is missing or invalid
        """
        if not isinstance(auth, dict):
            raise ConfigError("Connection configuration is required")

        display_name = auth.get("DisplayName", "")
        if not isinstance(display_name, str):
            raise ConfigError("DisplayName must be a string")

        delimiter = auth.get("delimiter", default_delimiter)
        if not isinstance(delimiter, str) or not delimiter:
            raise ConfigError("delimiter must be a non-empty string")

        eol = auth.get("EOL", default_eol)
        if not isinstance(eol, str):
            raise ConfigError("EOL must be a string")

        port_data = {k: v for k, v in auth.items() if k not in _SESSION_KEYS}
        port = PortConfig.from_dict(port_data, default_baud=default_baud)

        return cls(port=port, display_name=display_name, delimiter=delimiter, eol=eol)


@dataclass(frozen=True)
class ScalarField:
    """Record field reported as a bare value."""

    value: Any

    @property
    def interval(self) -> _Absent:
        return ABSENT


@dataclass(frozen=True)
class IntervalField:
    """Record field reported as {value, interval}."""

    value: Any
    interval: Any = ABSENT


RecordField = Union[ScalarField, IntervalField]


@dataclass
class Record:
    """Structured record parsed from one device line."""

    fields: dict[str, RecordField]
    timestamp: int

    def to_dict(self) -> dict[str, dict[str, Any]]:
        """Normalize every field to {value, interval, timestamp}.

        Absent intervals are omitted; an explicit null is kept.
        """
        result = {}
        for name, f in self.fields.items():
            entry: dict[str, Any] = {"value": f.value}
            if f.interval is not ABSENT:
                entry["interval"] = f.interval
            entry["timestamp"] = self.timestamp
            result[name] = entry
        return result

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), separators=(",", ":"), allow_nan=False)


@dataclass
class LifecycleEvent:
    """Port lifecycle change announced to other sessions."""

    action: LifecycleAction
    path: str
    display_name: str
    message: Optional[str] = None
    source_sid: Optional[str] = field(default=None, compare=False)

    def to_payload(self) -> dict[str, Any]:
        """Wire payload for the notifyClients event."""
        payload: dict[str, Any] = {
            "action": self.action.value,
            "path": self.path,
            "DisplayName": self.display_name,
        }
        if self.message is not None:
            payload["err"] = self.message
        return payload
