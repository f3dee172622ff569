"""Websocket session handling.

Each client gets its own thread from the ``websockets`` sync server. The
session replays the measurement history once, then treats every inbound
frame, whatever it contains, as a request for a new measurement.
"""

from __future__ import annotations

import logging
import threading
from http import HTTPStatus
from typing import Any, Optional

from websockets.sync.server import Server, ServerConnection, serve

from ..config import WebSocketConfig
from ..errors import EncodingFailure, TransportFailure
from ..messages import Notification
from ..pipeline import TriggerChannel
from ..registry import Connection, SessionRegistry

LOGGER = logging.getLogger(__name__)


class SessionHandler:
    def __init__(self, registry: SessionRegistry, channel: TriggerChannel):
        self.registry = registry
        self.channel = channel

    def __call__(self, transport: Any) -> None:
        conn = Connection(transport, remote=getattr(transport, "remote_address", None))

        # Hold the send lock across register + init so no broadcast can reach
        # this client ahead of its history.
        with conn.lock:
            history = self.registry.register(conn)
            try:
                conn.send(Notification.init(history))
            except (TransportFailure, EncodingFailure) as exc:
                LOGGER.warning("Could not send history to %r: %s", conn, exc)
                self.registry.mark_dead(conn)
                return

        while True:
            try:
                message = conn.receive()
            except TransportFailure as exc:
                LOGGER.info("%s", exc)
                # Eviction is left to the next broadcast
                self.registry.mark_dead(conn)
                return
            LOGGER.info("recv from %r: %.80s", conn, message)
            self.channel.offer("client")


class WebSocketService:
    """Runs the websocket endpoint on a background thread.

    Origin checking and the endpoint path are fixed when the service is
    built; requests on any other path are answered with 404.
    """

    def __init__(self, config: WebSocketConfig, handler: SessionHandler):
        self.config = config
        self.handler = handler
        self._server: Optional[Server] = None
        self._thread: Optional[threading.Thread] = None

    def _process_request(self, connection: ServerConnection, request: Any) -> Any:
        if request.path.split("?", 1)[0] != self.config.path:
            return connection.respond(HTTPStatus.NOT_FOUND, "Not Found\n")
        return None

    def start(self) -> None:
        if self._server is not None:
            LOGGER.warning("Websocket service already running")
            return
        # Binding happens here; a failure propagates to the caller
        self._server = serve(
            self.handler,
            self.config.host,
            self.config.port,
            origins=list(self.config.allowed_origins) if self.config.allowed_origins else None,
            process_request=self._process_request,
        )
        self._thread = threading.Thread(
            target=self._server.serve_forever, name="websocket-server", daemon=True
        )
        self._thread.start()
        LOGGER.info(
            "Websocket endpoint listening on ws://%s:%s%s",
            self.config.host,
            self.port,
            self.config.path,
        )

    @property
    def port(self) -> int:
        if self._server is None:
            return self.config.port
        return self._server.socket.getsockname()[1]

    def stop(self) -> None:
        if self._server is None:
            return
        self._server.shutdown()
        if self._thread and self._thread.is_alive():
            self._thread.join(timeout=2.0)
        self._server = None
        self._thread = None
        LOGGER.info("Websocket endpoint stopped")
