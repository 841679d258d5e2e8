"""
Socket.IO gateway between browser clients and serial port sessions.

Each connection supplies its session configuration in the handshake auth
payload and gets its own PortSession. Commands are acknowledged through
Socket.IO callbacks; device output and lifecycle events are pushed.
"""

import logging
from typing import Any, Callable, Optional

from flask import request
from flask_socketio import ConnectionRefusedError, SocketIO

from serialgate.core.config import Config
from serialgate.core.exceptions import ConfigError
from serialgate.core.models import SessionConfig
from serialgate.serial.port import PortHandle, list_ports
from serialgate.serial.session import PortSession
from serialgate.web.notifier import BroadcastNotifier
from serialgate.web.registry import SessionRegistry

logger = logging.getLogger(__name__)


def init_socketio(
    app,
    config: Config,
    registry: Optional[SessionRegistry] = None,
    port_factory: Callable[..., PortHandle] = PortHandle,
    port_lister: Callable[[], list[dict]] = list_ports,
    **kwargs,
) -> SocketIO:
    """Initialize SocketIO with Flask app."""
    kwargs.setdefault("async_mode", "threading")
    kwargs.setdefault("cors_allowed_origins", config.server.cors_allowed_origins)
    sio = SocketIO(app, **kwargs)
    registry = registry if registry is not None else SessionRegistry()
    register_handlers(sio, config, registry, port_factory, port_lister)
    app.extensions["serialgate.registry"] = registry
    return sio


def _emitter(sio: SocketIO, sid: str) -> Callable[..., None]:
    """Bind emit to a single client. Multiple args are sent as a tuple."""

    def emit(event: str, *args: Any) -> None:
        data = args[0] if len(args) == 1 else args
        sio.emit(event, data, to=sid)

    return emit


def register_handlers(
    sio: SocketIO,
    config: Config,
    registry: SessionRegistry,
    port_factory: Callable[..., PortHandle] = PortHandle,
    port_lister: Callable[[], list[dict]] = list_ports,
) -> None:
    """Register SocketIO event handlers."""
    notifier = BroadcastNotifier(registry)

    def current_session(command: str) -> Optional[PortSession]:
        session = registry.get(request.sid)
        if session is None:
            logger.warning(f"{command} from unknown session {request.sid}")
        return session

    @sio.on("connect")
    def handle_connect(auth=None):
        """Create and register a port session from the handshake."""
        sid = request.sid
        try:
            session_config = SessionConfig.from_auth(
                auth,
                default_baud=config.serial.default_baud,
                default_delimiter=config.serial.default_delimiter,
                default_eol=config.serial.default_eol,
            )
        except ConfigError as e:
            logger.warning(f"Rejecting client {sid}: {e}")
            raise ConnectionRefusedError(str(e))

        session = PortSession(
            sid,
            session_config,
            emit=_emitter(sio, sid),
            notifier=notifier,
            port_factory=port_factory,
            read_timeout=config.serial.read_timeout,
        )
        registry.register(session)
        logger.info(
            f"Client connected: {sid} ({session_config.display_name!r}, "
            f"{session_config.port.path})"
        )

    @sio.on("disconnect")
    def handle_disconnect(*args):
        """Drop the session and release its port."""
        sid = request.sid
        session = registry.unregister(sid)
        logger.info(f"Client disconnected: {sid}")
        if session is not None:
            session.dispose()

    @sio.on("listPorts")
    def handle_list_ports():
        """Reply with the serial ports visible on the host."""
        return port_lister()

    @sio.on("openPort")
    def handle_open_port():
        session = current_session("openPort")
        if session is None:
            return None
        return session.open_port()

    @sio.on("writeToPort")
    def handle_write_to_port(command):
        session = current_session("writeToPort")
        if session is None or not isinstance(command, str):
            return
        session.write(command)

    @sio.on("closePort")
    def handle_close_port():
        session = current_session("closePort")
        if session is None:
            return None
        return session.close_port()
