"""
Socket.IO interface for the serial gateway.

Hosts the per-connection port sessions, the session registry, and the
lifecycle broadcast notifier.
"""

from serialgate.web.app import create_app

__all__ = ["create_app"]
