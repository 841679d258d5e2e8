"""
Serial Gateway (serialgate).

Bridges physical serial devices to real-time Socket.IO clients.
Provides per-connection port sessions, line framing with structured record
parsing, and cross-client port lifecycle notifications.
"""

__version__ = "0.1.0"
