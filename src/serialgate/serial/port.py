"""
pyserial-backed port handle.

Wraps a single serial.Serial connection, runs a background reader thread,
and reports data, errors, and closes through callbacks.
"""

import logging
import threading
from dataclasses import dataclass
from typing import Any, Callable, Optional

import serial
from serial.tools import list_ports as _list_ports

from serialgate.core.exceptions import PortClosedError, PortOpenError
from serialgate.core.models import PortConfig

logger = logging.getLogger(__name__)

PARITY_MAP = {
    "none": serial.PARITY_NONE,
    "even": serial.PARITY_EVEN,
    "odd": serial.PARITY_ODD,
    "mark": serial.PARITY_MARK,
    "space": serial.PARITY_SPACE,
}

STOPBITS_MAP = {
    1: serial.STOPBITS_ONE,
    1.5: serial.STOPBITS_ONE_POINT_FIVE,
    2: serial.STOPBITS_TWO,
}

BYTESIZE_MAP = {
    5: serial.FIVEBITS,
    6: serial.SIXBITS,
    7: serial.SEVENBITS,
    8: serial.EIGHTBITS,
}


@dataclass
class PortClosed:
    """Close notification from the driver layer."""

    disconnected: bool = False
    message: Optional[str] = None


def serial_kwargs(config: PortConfig, timeout: float = 0.1) -> dict[str, Any]:
    """Translate client port configuration to serial.Serial arguments."""
    return {
        "port": config.path,
        "baudrate": config.baud_rate,
        "bytesize": BYTESIZE_MAP[config.data_bits],
        "stopbits": STOPBITS_MAP[config.stop_bits],
        "parity": PARITY_MAP[config.parity],
        "rtscts": config.rtscts,
        "xonxoff": config.xon or config.xoff,
        "timeout": timeout,
    }


def _hex_id(value: Optional[int]) -> Optional[str]:
    return f"{value:04x}" if value is not None else None


def list_ports() -> list[dict[str, Optional[str]]]:
    """List serial ports currently visible on the host."""
    ports = []
    for p in _list_ports.comports():
        ports.append({
            "path": p.device,
            "manufacturer": p.manufacturer,
            "serialNumber": p.serial_number,
            "pnpId": p.hwid,
            "locationId": p.location,
            "vendorId": _hex_id(p.vid),
            "productId": _hex_id(p.pid),
            "description": p.description,
        })
    return ports


class PortHandle:
    """
    One serial device connection.

    Created unopened. open() starts a reader thread that passes raw bytes to
    on_data. A read failure that was not caused by close() is reported as
    on_close(PortClosed(disconnected=True)).
    """

    def __init__(
        self,
        config: PortConfig,
        on_data: Optional[Callable[[bytes], None]] = None,
        on_error: Optional[Callable[[Exception], None]] = None,
        on_close: Optional[Callable[[PortClosed], None]] = None,
        read_timeout: float = 0.1,
        serial_factory: Callable[..., serial.Serial] = serial.Serial,
    ):
        self.config = config
        self.on_data = on_data
        self.on_error = on_error
        self.on_close = on_close
        self.read_timeout = read_timeout
        self._serial_factory = serial_factory

        self._serial: Optional[serial.Serial] = None
        self._reader_thread: Optional[threading.Thread] = None
        self._close_requested = False
        self._lock = threading.Lock()

    @property
    def path(self) -> str:
        return self.config.path

    @property
    def is_open(self) -> bool:
        ser = self._serial
        return ser is not None and ser.is_open

    def open(self) -> None:
        """
        Open the device and start reading.

        Raises:
            PortOpenError: If the port is already open or cannot be opened
        """
        with self._lock:
            if self.is_open:
                raise PortOpenError(f"Port is already open: {self.path}")
            try:
                ser = self._serial_factory(
                    **serial_kwargs(self.config, timeout=self.read_timeout)
                )
            except (serial.SerialException, OSError, ValueError) as e:
                raise PortOpenError(str(e)) from e

            self._serial = ser
            self._close_requested = False
            self._reader_thread = threading.Thread(
                target=self._read_loop,
                args=(ser,),
                name=f"serial-reader:{self.path}",
                daemon=True,
            )
            self._reader_thread.start()

        logger.info(f"Opened {self.path} at {self.config.baud_rate} baud")

    def close(self) -> None:
        """
        Close the device and stop the reader.

        Raises:
            PortClosedError: If the port is not open
        """
        with self._lock:
            ser = self._serial
            if ser is None or not ser.is_open:
                raise PortClosedError(f"Port is not open: {self.path}")
            self._close_requested = True
            self._serial = None
            thread = self._reader_thread
            self._reader_thread = None
            if hasattr(ser, "cancel_read"):
                try:
                    ser.cancel_read()
                except (serial.SerialException, OSError):
                    pass
            ser.close()

        if thread is not None and thread is not threading.current_thread():
            thread.join(timeout=1.0)

        logger.info(f"Closed {self.path}")
        if self.on_close:
            self.on_close(PortClosed(disconnected=False))

    def write(self, data: bytes) -> None:
        """
        Write bytes to the device.

        Driver failures are reported through on_error, not raised.

        Raises:
            PortClosedError: If the port is not open
        """
        ser = self._serial
        if ser is None or not ser.is_open:
            raise PortClosedError(f"Port is not open: {self.path}")
        try:
            ser.write(data)
        except (serial.SerialException, OSError) as e:
            self._report_error(e)

    def _report_error(self, exc: Exception) -> None:
        logger.error(f"Port error on {self.path}: {exc}")
        if self.on_error:
            self.on_error(exc)

    def _read_loop(self, ser: serial.Serial) -> None:
        """Read from the device until closed or lost."""
        while True:
            try:
                data = ser.read(ser.in_waiting or 1)
            except (serial.SerialException, OSError, TypeError) as e:
                if self._close_requested:
                    return
                self._handle_lost(ser, e)
                return

            if self._close_requested or not ser.is_open:
                return

            if data and self.on_data:
                try:
                    self.on_data(data)
                except Exception as e:
                    # Reader stays alive after a handler failure
                    self._report_error(e)

    def _handle_lost(self, ser: serial.Serial, exc: Exception) -> None:
        """Device went away without a close request."""
        with self._lock:
            if self._serial is not ser or self._close_requested:
                return
            self._serial = None
            self._reader_thread = None
            try:
                ser.close()
            except (serial.SerialException, OSError):
                pass

        logger.warning(f"Port {self.path} disconnected: {exc}")
        if self.on_close:
            self.on_close(PortClosed(disconnected=True, message=str(exc)))
