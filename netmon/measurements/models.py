"""Shared dataclasses for measurements."""

from __future__ import annotations

import math
from dataclasses import asdict, dataclass, field
from typing import Any, Dict, List

from ..errors import DecodeFailure


def _as_float(section: Dict[str, Any], key: str) -> float:
    value = section.get(key)
    if value is None:
        return 0.0
    if isinstance(value, bool):
        raise DecodeFailure(f"Field {key!r} must be numeric, got {value!r}")
    try:
        number = float(value)
    except (TypeError, ValueError) as exc:
        raise DecodeFailure(f"Field {key!r} must be numeric, got {value!r}") from exc
    # NaN and Infinity decode fine but can never be sent to a client
    if not math.isfinite(number):
        raise DecodeFailure(f"Field {key!r} must be finite, got {value!r}")
    return number


def _as_text(section: Dict[str, Any], key: str) -> str:
    value = section.get(key)
    if value is None:
        return ""
    if isinstance(value, (dict, list)):
        raise DecodeFailure(f"Field {key!r} must be a scalar, got {type(value).__name__}")
    return str(value)


@dataclass(frozen=True)
class ServerInfo:
    id: str = ""
    sponsor: str = ""
    name: str = ""
    country: str = ""
    cc: str = ""
    url: str = ""
    host: str = ""
    lon: str = ""
    lat: str = ""
    d: float = 0.0
    latency: float = 0.0
    share: str = ""

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ServerInfo":
        return cls(
            id=_as_text(data, "id"),
            sponsor=_as_text(data, "sponsor"),
            name=_as_text(data, "name"),
            country=_as_text(data, "country"),
            cc=_as_text(data, "cc"),
            url=_as_text(data, "url"),
            host=_as_text(data, "host"),
            lon=_as_text(data, "lon"),
            lat=_as_text(data, "lat"),
            d=_as_float(data, "d"),
            latency=_as_float(data, "latency"),
            share=_as_text(data, "share"),
        )


@dataclass(frozen=True)
class PerformanceRecord:
    """One completed speedtest-cli run.

    Field names follow the tool's JSON output so that ``to_dict`` is the wire
    encoding sent to clients. Rates are bits per second, latencies
    milliseconds, distance kilometres.
    """

    server: ServerInfo = field(default_factory=ServerInfo)
    bytes_sent: float = 0.0
    bytes_received: float = 0.0
    upload: float = 0.0
    download: float = 0.0
    timestamp: str = ""
    ping: float = 0.0

    @classmethod
    def from_dict(cls, data: Any) -> "PerformanceRecord":
        if not isinstance(data, dict):
            raise DecodeFailure(f"Expected a JSON object, got {type(data).__name__}")
        server = data.get("server") or {}
        if not isinstance(server, dict):
            raise DecodeFailure(f"Expected 'server' to be an object, got {type(server).__name__}")
        return cls(
            server=ServerInfo.from_dict(server),
            bytes_sent=_as_float(data, "bytes_sent"),
            bytes_received=_as_float(data, "bytes_received"),
            upload=_as_float(data, "upload"),
            download=_as_float(data, "download"),
            timestamp=_as_text(data, "timestamp"),
            ping=_as_float(data, "ping"),
        )

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @property
    def download_mbps(self) -> float:
        return self.download / 1_000_000

    @property
    def upload_mbps(self) -> float:
        return self.upload / 1_000_000

    def summary_lines(self) -> List[str]:
        return [
            "---",
            f"ServerID: {self.server.id}",
            f"ServerName: {self.server.sponsor}",
            f"Location: {self.server.name}",
            f"Date: {self.timestamp}",
            f"Distance: {self.server.d:.2f} km",
            f"PingLatency: {self.ping:.2f} ms",
            f"DownloadRate: {self.download_mbps:.2f} Mb/s",
            f"UploadRate: {self.upload_mbps:.2f} Mb/s",
        ]
