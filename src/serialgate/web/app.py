"""
Flask application factory for the serial gateway.
"""

from typing import Callable, Optional

from flask import Flask
from flask_socketio import SocketIO

from serialgate.core.config import Config, load_config
from serialgate.serial.port import PortHandle, list_ports
from serialgate.web.registry import SessionRegistry
from serialgate.web.websocket import init_socketio


def create_app(
    config: Optional[Config] = None,
    port_factory: Callable[..., PortHandle] = PortHandle,
    port_lister: Callable[[], list[dict]] = list_ports,
) -> tuple[Flask, SocketIO]:
    """
    Create and configure the Flask application and its Socket.IO server.

    Args:
        config: Optional Config instance. If None, loads from default location.
        port_factory: Builds port handles for new sessions
        port_lister: Returns the host's serial port descriptors

    Returns:
        (Flask application, SocketIO server)
    """
    app = Flask(__name__)

    if config is None:
        config = load_config()

    app.config["SERIALGATE_CONFIG"] = config

    sio = init_socketio(
        app,
        config,
        registry=SessionRegistry(),
        port_factory=port_factory,
        port_lister=port_lister,
    )

    @app.route("/health")
    def health():
        """Liveness probe with the connected session count."""
        registry = app.extensions["serialgate.registry"]
        return {"status": "ok", "sessions": len(registry)}

    return app, sio


def get_registry(app: Flask) -> SessionRegistry:
    """Get the session registry attached to an app."""
    return app.extensions["serialgate.registry"]
