"""Configuration loading helpers for the network monitor."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional, Tuple
import yaml


@dataclass(frozen=True)
class PathsConfig:
    logs_dir: Path


@dataclass(frozen=True)
class SpeedtestConfig:
    binary: str = "speedtest-cli"
    server_id: Optional[int] = None
    extra_args: List[str] = field(default_factory=list)

    def __post_init__(self) -> None:
        # -1 is the conventional "let the tool choose" value
        if self.server_id is not None:
            server_id = int(self.server_id)
            object.__setattr__(self, "server_id", server_id if server_id >= 0 else None)
        object.__setattr__(self, "extra_args", [str(arg) for arg in self.extra_args or []])


@dataclass(frozen=True)
class SchedulerConfig:
    enabled: bool = True
    interval_minutes: int = 60
    trigger_buffer: int = 1

    def __post_init__(self) -> None:
        if int(self.interval_minutes) < 1:
            raise ValueError("scheduler.interval_minutes must be at least 1")
        if int(self.trigger_buffer) < 1:
            raise ValueError("scheduler.trigger_buffer must be at least 1")


@dataclass(frozen=True)
class WebSocketConfig:
    host: str = "0.0.0.0"
    port: int = 8081
    path: str = "/ws"
    allowed_origins: Optional[Tuple[str, ...]] = None

    def __post_init__(self) -> None:
        if self.allowed_origins is not None:
            object.__setattr__(self, "allowed_origins", tuple(self.allowed_origins))


@dataclass(frozen=True)
class WebConfig:
    host: str = "0.0.0.0"
    port: int = 8080
    static_dir: str = "www"


@dataclass(frozen=True)
class LoggingConfig:
    level: str = "INFO"
    file_name: str = "netmon.log"
    max_bytes: int = 5 * 1024 * 1024
    backup_count: int = 5
    console: bool = True
    # Libraries that log every connection or scheduler tick at INFO
    quiet_loggers: Tuple[str, ...] = ("websockets", "apscheduler.executors.default")

    def __post_init__(self) -> None:
        object.__setattr__(self, "quiet_loggers", tuple(self.quiet_loggers or ()))


@dataclass(frozen=True)
class AppConfig:
    root_dir: Path
    paths: PathsConfig
    speedtest: SpeedtestConfig
    scheduler: SchedulerConfig
    websocket: WebSocketConfig
    web: WebConfig
    logging: LoggingConfig

    @property
    def static_path(self) -> Path:
        return (self.root_dir / self.web.static_dir).resolve()


def _as_path(base: Path, maybe_path: Optional[str]) -> Path:
    if not maybe_path:
        raise ValueError("Path configuration entries cannot be empty")
    path = (base / maybe_path).resolve()
    path.mkdir(parents=True, exist_ok=True)
    return path


def load_config(path: Optional[str] = None) -> AppConfig:
    """Load application configuration from YAML file."""

    root_dir = Path(path).resolve().parent if path else Path.cwd()
    source_path = Path(path) if path else root_dir / "config.yaml"
    if not source_path.exists():
        raise FileNotFoundError(f"Missing configuration file at {source_path}")

    with source_path.open("r", encoding="utf-8") as handle:
        data = yaml.safe_load(handle) or {}

    paths_data = data.get("paths", {})
    paths = PathsConfig(
        logs_dir=_as_path(root_dir, paths_data.get("logs_dir", "logs")),
    )

    config = AppConfig(
        root_dir=root_dir,
        paths=paths,
        speedtest=SpeedtestConfig(**data.get("speedtest", {})),
        scheduler=SchedulerConfig(**data.get("scheduler", {})),
        websocket=WebSocketConfig(**data.get("websocket", {})),
        web=WebConfig(**data.get("web", {})),
        logging=LoggingConfig(**data.get("logging", {})),
    )

    return config
