"""Registry of live client connections and the measurement history.

All shared state lives here behind a single lock:

* the connection table, ``Connection -> live flag``,
* the append-only history of completed measurements.

Liveness is two-phase. Any thread may mark a connection dead after a failed
read or write; only ``for_each_live`` (the broadcast fan-out) removes entries.
The lock is held for the table update only, never while talking to a client.
"""

from __future__ import annotations

import itertools
import logging
import threading
from typing import Any, Callable, Dict, List, Optional, Tuple

from websockets.exceptions import ConnectionClosed

from .errors import TransportFailure
from .measurements.models import PerformanceRecord
from .messages import Notification

LOGGER = logging.getLogger(__name__)

_connection_ids = itertools.count(1)


class Connection:
    """One client transport.

    ``transport`` is anything with ``send(str)``, ``recv()`` and ``close()``;
    in production a ``websockets`` sync ``ServerConnection``. Sends go through
    a re-entrant lock so a session can hold it while it registers and writes
    its ``init`` frame, keeping broadcasts behind that frame.
    """

    def __init__(self, transport: Any, remote: Optional[Any] = None):
        self.id = next(_connection_ids)
        self.transport = transport
        self.remote = remote
        self.lock = threading.RLock()

    def __repr__(self) -> str:
        if self.remote is None:
            return f"<Connection #{self.id}>"
        return f"<Connection #{self.id} {self.remote}>"

    def send(self, notification: Notification) -> None:
        self.send_raw(notification.encode())

    def send_raw(self, payload: str) -> None:
        with self.lock:
            try:
                self.transport.send(payload)
            except (ConnectionClosed, OSError) as exc:
                raise TransportFailure(f"write to {self!r} failed: {exc}") from exc

    def receive(self) -> Any:
        try:
            return self.transport.recv()
        except (ConnectionClosed, OSError) as exc:
            raise TransportFailure(f"read from {self!r} failed: {exc}") from exc

    def close(self) -> None:
        try:
            self.transport.close()
        except (ConnectionClosed, OSError) as exc:
            LOGGER.debug("Closing %r failed: %s", self, exc)


class SessionRegistry:
    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._connections: Dict[Connection, bool] = {}
        self._history: List[PerformanceRecord] = []

    def register(self, conn: Connection) -> Tuple[PerformanceRecord, ...]:
        """Add ``conn`` as live and return the history to replay to it.

        Both happen under one lock acquisition, so every record is either in
        the returned snapshot or broadcast to ``conn`` later, never both.
        """
        with self._lock:
            if conn in self._connections:
                raise ValueError(f"{conn!r} is already registered")
            self._connections[conn] = True
            snapshot = tuple(self._history)
        LOGGER.info("New websocket connection %r (%d registered)", conn, len(self))
        return snapshot

    def mark_dead(self, conn: Connection) -> None:
        with self._lock:
            if conn in self._connections:
                self._connections[conn] = False

    def is_live(self, conn: Connection) -> bool:
        with self._lock:
            return self._connections.get(conn, False)

    def evict(self, conn: Connection) -> bool:
        """Remove ``conn`` and close its transport. Returns False if already gone."""
        with self._lock:
            removed = self._connections.pop(conn, None) is not None
        if removed:
            conn.close()
            LOGGER.info("Evicted websocket connection %r", conn)
        return removed

    def for_each_live(self, fn: Callable[[Connection], None]) -> int:
        """Call ``fn`` on every live connection, evicting dead and failing ones.

        Entries already marked dead are evicted first. A ``TransportFailure``
        raised by ``fn`` marks that connection dead and evicts it before this
        returns. Connections registered while this runs may be skipped.
        """
        with self._lock:
            dead = [conn for conn, live in self._connections.items() if not live]
            live = [conn for conn, is_live in self._connections.items() if is_live]
        for conn in dead:
            self.evict(conn)

        delivered = 0
        for conn in live:
            try:
                fn(conn)
            except TransportFailure as exc:
                LOGGER.warning("%s", exc)
                self.mark_dead(conn)
                self.evict(conn)
            else:
                delivered += 1
        return delivered

    def record(self, record: PerformanceRecord) -> int:
        """Append a completed measurement; returns the new history length."""
        with self._lock:
            self._history.append(record)
            return len(self._history)

    def history(self) -> Tuple[PerformanceRecord, ...]:
        with self._lock:
            return tuple(self._history)

    def history_size(self) -> int:
        with self._lock:
            return len(self._history)

    def live_count(self) -> int:
        with self._lock:
            return sum(1 for live in self._connections.values() if live)

    def __len__(self) -> int:
        with self._lock:
            return len(self._connections)

    def __contains__(self, conn: object) -> bool:
        with self._lock:
            return conn in self._connections
