"""
Per-connection serial port session.

Owns exactly one port handle and drives it through an explicit state machine:

    closed -> opening -> open -> closing -> closed
                           \\-> closed-error  (unsolicited disconnect)

Device bytes are framed into lines; every line is emitted as rawData and,
when it is a structured record, as parsedData.
"""

import logging
import threading
from typing import Any, Callable, Optional, Protocol

from serialgate.core.exceptions import PortClosedError, PortError
from serialgate.core.models import (
    LifecycleAction,
    LifecycleEvent,
    PortState,
    SessionConfig,
)
from serialgate.serial.framer import LineFramer
from serialgate.serial.port import PortClosed, PortHandle
from serialgate.serial.records import RecordClock, parse_record

logger = logging.getLogger(__name__)

BUSY_MESSAGE = "Port operation already in progress"

Emitter = Callable[..., None]


class Notifier(Protocol):
    def broadcast(self, event: LifecycleEvent) -> object: ...


class PortSession:
    """
    Server-side state for one connected client.

    Args:
        sid: Unique session identifier
        config: Handshake configuration
        emit: Callable(event, *args) delivering to this client only
        notifier: Fan-out for lifecycle events to other sessions
        port_factory: Builds the port handle (PortHandle by default)
        read_timeout: Reader poll interval passed to the handle
        clock: Receipt clock for record timestamps
    """

    def __init__(
        self,
        sid: str,
        config: SessionConfig,
        emit: Emitter,
        notifier: Optional[Notifier] = None,
        port_factory: Callable[..., PortHandle] = PortHandle,
        read_timeout: float = 0.1,
        clock: Optional[RecordClock] = None,
    ):
        self.sid = sid
        self.config = config
        self.emit = emit
        self.notifier = notifier
        self.clock = clock or RecordClock()
        self.framer = LineFramer(config.delimiter)
        self.handle = port_factory(
            config.port,
            on_data=self.handle_data,
            on_error=self.handle_error,
            on_close=self.handle_close,
            read_timeout=read_timeout,
        )
        self.state = PortState.CLOSED
        self._disposed = False
        self._lock = threading.Lock()

    @property
    def display_name(self) -> str:
        return self.config.display_name

    @property
    def path(self) -> str:
        return self.handle.path

    # --- Client commands ---

    def open_port(self) -> dict[str, Any]:
        """Open the port. Returns {errorMsg, path}."""
        with self._lock:
            if self._disposed:
                return self._open_reply("Session closed")
            if self.state in (PortState.OPENING, PortState.CLOSING):
                logger.warning(f"[{self.sid}] openPort rejected while {self.state.value}")
                return self._open_reply(BUSY_MESSAGE)
            if self.handle.is_open:
                return self._open_reply(None)
            self.state = PortState.OPENING
            self.framer.reset()

        try:
            self.handle.open()
        except PortError as e:
            with self._lock:
                self.state = PortState.CLOSED
            logger.info(f"[{self.sid}] Failed to open {self.path}: {e}")
            return self._open_reply(str(e))

        with self._lock:
            disposed = self._disposed
            if not disposed:
                self.state = PortState.OPEN

        if disposed:
            self._close_quietly()
            with self._lock:
                self.state = PortState.CLOSED
            return self._open_reply("Session closed")

        logger.info(f"[{self.sid}] {self.display_name!r} opened {self.path}")
        self._broadcast(LifecycleAction.OPEN_PORT)
        return self._open_reply(None)

    def write(self, command: str) -> None:
        """Send a command line to the device. Dropped unless open."""
        if self.state is not PortState.OPEN:
            return
        payload = (command.strip() + self.config.eol).encode("utf-8")
        try:
            self.handle.write(payload)
        except PortClosedError:
            return

    def close_port(self) -> str:
        """Close the port at the client's request. Returns the port path."""
        with self._lock:
            if self.state in (PortState.OPENING, PortState.CLOSING):
                logger.warning(f"[{self.sid}] closePort rejected while {self.state.value}")
                return self.path
            if not self.handle.is_open:
                return self.path
            self.state = PortState.CLOSING

        try:
            self.handle.close()
        except PortClosedError:
            # Lost between the check and the close; handle_close reported it
            with self._lock:
                if self.state is PortState.CLOSING:
                    self.state = PortState.CLOSED
            return self.path

        with self._lock:
            self.state = PortState.CLOSED

        logger.info(f"[{self.sid}] {self.display_name!r} closed {self.path}")
        self._broadcast(LifecycleAction.CLOSE_PORT)
        return self.path

    def dispose(self) -> None:
        """Tear down on client disconnect. Best-effort close, no events."""
        with self._lock:
            self._disposed = True
            busy = self.state is PortState.OPENING
        if not busy:
            self._close_quietly()
        with self._lock:
            if self.state is not PortState.OPENING:
                self.state = PortState.CLOSED

    # --- Driver events ---

    def handle_data(self, data: bytes) -> None:
        """Frame device bytes and emit rawData/parsedData per line."""
        for line in self.framer.feed(data):
            logger.debug(f"[{self.sid}] {self.path} >> {line}")
            self.emit("rawData", line)
            record = parse_record(line, self.clock.now())
            if record is not None:
                self.emit("parsedData", record.to_json())

    def handle_error(self, exc: Exception) -> None:
        """Surface a driver error to the owning client only."""
        if self._disposed:
            return
        error = {"name": type(exc).__name__, "message": str(exc)}
        self.emit(LifecycleAction.PORT_ERROR.value, error, self.path)

    def handle_close(self, event: PortClosed) -> None:
        """React to a close reported by the driver."""
        if not event.disconnected:
            return

        with self._lock:
            self.state = PortState.CLOSED_ERROR
            disposed = self._disposed

        if disposed:
            return

        logger.warning(f"[{self.sid}] {self.path} disconnected: {event.message}")
        self.emit(LifecycleAction.SUDDEN_PORT_DISC.value, event.message, self.path)
        self._broadcast(LifecycleAction.SUDDEN_PORT_DISC, event.message)

    # --- Helpers ---

    def _open_reply(self, error: Optional[str]) -> dict[str, Any]:
        return {"errorMsg": error, "path": self.path}

    def _broadcast(self, action: LifecycleAction, message: Optional[str] = None) -> None:
        if self.notifier is None:
            return
        self.notifier.broadcast(
            LifecycleEvent(
                action=action,
                path=self.path,
                display_name=self.display_name,
                message=message,
                source_sid=self.sid,
            )
        )

    def _close_quietly(self) -> None:
        if not self.handle.is_open:
            return
        try:
            self.handle.close()
        except PortError as e:
            logger.debug(f"[{self.sid}] close during teardown failed: {e}")

