"""Wire messages exchanged with websocket clients.

Every server-to-client frame is a JSON object ``{"type": ..., "data": ...}``
where ``data`` is always a string:

* ``status`` - free text,
* ``init``   - a JSON array of performance records (``"[]"`` when empty),
* ``result`` - a single JSON performance record.

Clients may send anything; the content of client frames is never inspected.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from enum import Enum
from typing import Any, Iterable, List

from .errors import EncodingFailure
from .measurements.models import PerformanceRecord

REQUEST_MADE = "Request made. Waiting for response."


class NotificationKind(str, Enum):
    STATUS = "status"
    INIT = "init"
    RESULT = "result"


def _dumps(payload: Any) -> str:
    try:
        return json.dumps(payload, allow_nan=False)
    except (TypeError, ValueError) as exc:
        raise EncodingFailure(f"Could not encode payload: {exc}") from exc


@dataclass(frozen=True)
class Notification:
    kind: NotificationKind
    data: str

    @classmethod
    def status(cls, text: str) -> "Notification":
        return cls(NotificationKind.STATUS, text)

    @classmethod
    def init(cls, records: Iterable[PerformanceRecord]) -> "Notification":
        return cls(NotificationKind.INIT, _dumps([record.to_dict() for record in records]))

    @classmethod
    def result(cls, record: PerformanceRecord) -> "Notification":
        return cls(NotificationKind.RESULT, _dumps(record.to_dict()))

    def encode(self) -> str:
        return _dumps({"type": self.kind.value, "data": self.data})

    @classmethod
    def decode(cls, raw: str) -> "Notification":
        """Parse a server frame; raises ``ValueError`` on anything malformed."""
        message = json.loads(raw)
        if not isinstance(message, dict):
            raise ValueError("Notification must be a JSON object")
        data = message.get("data")
        if not isinstance(data, str):
            raise ValueError("Notification data must be a string")
        return cls(NotificationKind(message.get("type")), data)

    def records(self) -> List[PerformanceRecord]:
        """Records carried by an ``init`` or ``result`` notification."""
        if self.kind is NotificationKind.STATUS:
            return []
        payload = json.loads(self.data)
        if self.kind is NotificationKind.RESULT:
            return [PerformanceRecord.from_dict(payload)]
        if not isinstance(payload, list):
            raise ValueError("init payload must be a JSON array")
        return [PerformanceRecord.from_dict(item) for item in payload]
