"""
Serial port handling for the gateway.

Line framing, structured record parsing, the pyserial port handle,
and the per-connection port session state machine.
"""

from serialgate.serial.framer import LineFramer
from serialgate.serial.port import PortClosed, PortHandle, list_ports
from serialgate.serial.records import RecordClock, is_record, parse_record
from serialgate.serial.session import PortSession

__all__ = [
    "LineFramer",
    "PortClosed",
    "PortHandle",
    "PortSession",
    "RecordClock",
    "is_record",
    "list_ports",
    "parse_record",
]
