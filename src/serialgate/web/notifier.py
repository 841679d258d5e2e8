"""
Cross-session broadcast of port lifecycle events.
"""

import logging

from serialgate.core.models import LifecycleEvent
from serialgate.serial.session import PortSession
from serialgate.web.registry import SessionRegistry

logger = logging.getLogger(__name__)

NOTIFY_EVENT = "notifyClients"


class BroadcastNotifier:
    """
    Delivers lifecycle events to every session except the one that produced it.

    Best-effort and fire-and-forget: a failed delivery is logged and the
    remaining sessions are still notified.
    """

    def __init__(self, registry: SessionRegistry):
        self.registry = registry

    def broadcast(self, event: LifecycleEvent) -> int:
        """Send event to all other sessions. Returns the delivery count."""
        payload = event.to_payload()
        delivered = 0

        def deliver(session: PortSession) -> None:
            nonlocal delivered
            try:
                session.emit(NOTIFY_EVENT, payload)
                delivered += 1
            except Exception as e:
                logger.warning(f"Failed to notify session {session.sid}: {e}")

        self.registry.for_each(deliver, exclude=event.source_sid)
        logger.info(
            f"Broadcast {event.action.value} on {event.path} "
            f"from {event.display_name!r} to {delivered} session(s)"
        )
        return delivered
