"""Application bootstrap helpers."""

from __future__ import annotations

from .broadcast import Broadcaster
from .config import AppConfig
from .logging_setup import configure_logging
from .measurements.speedtest_runner import SpeedtestRunner
from .pipeline import RequestPipeline, TriggerChannel
from .registry import SessionRegistry
from .scheduler import SchedulerService
from .web.app import create_web_app
from .web.sessions import SessionHandler, WebSocketService

__version__ = "3.0.0"


class ApplicationContext:
    """Holds shared singletons for the service."""

    def __init__(self, config: AppConfig):
        self.config = config
        configure_logging(config)
        self.registry = SessionRegistry()
        self.channel = TriggerChannel(config.scheduler.trigger_buffer)
        self.broadcaster = Broadcaster(self.registry)
        self.runner = SpeedtestRunner(config.speedtest)
        self.pipeline = RequestPipeline(self.registry, self.broadcaster, self.runner, self.channel)
        self.scheduler = SchedulerService(config.scheduler, self.channel)
        self.websocket = WebSocketService(
            config.websocket, SessionHandler(self.registry, self.channel)
        )
        self.web_app = create_web_app(
            config=config,
            registry=self.registry,
            channel=self.channel,
            pipeline=self.pipeline,
        )

    def start(self) -> None:
        self.pipeline.start()
        self.websocket.start()
        self.scheduler.start()

    def shutdown(self) -> None:
        self.scheduler.shutdown()
        self.websocket.stop()
        self.pipeline.stop()

