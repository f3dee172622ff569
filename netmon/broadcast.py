"""Fan-out of notifications to every live websocket client."""

from __future__ import annotations

import logging

from .messages import Notification
from .registry import Connection, SessionRegistry

LOGGER = logging.getLogger(__name__)


class Broadcaster:
    def __init__(self, registry: SessionRegistry):
        self.registry = registry

    def broadcast(self, notification: Notification) -> int:
        """Send ``notification`` to all live clients; returns how many got it.

        Connections whose write fails are evicted before this returns. Raises
        ``EncodingFailure`` without touching any connection if the frame
        cannot be serialized.
        """
        payload = notification.encode()

        def deliver(conn: Connection) -> None:
            conn.send_raw(payload)

        delivered = self.registry.for_each_live(deliver)
        LOGGER.debug("Broadcast %s to %d client(s)", notification.kind.value, delivered)
        return delivered
