"""Entry point for running the monitoring service."""

from __future__ import annotations

import argparse
import dataclasses
import logging

from netmon import ApplicationContext, __version__
from netmon.config import AppConfig, load_config

LOGGER = logging.getLogger("netmon")


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Network performance monitor")
    parser.add_argument("--config", help="Path to config.yaml", default="config.yaml")
    parser.add_argument(
        "--server",
        type=int,
        default=None,
        help="speedtest-cli server ID; -1 lets speedtest-cli pick the best server",
    )
    parser.add_argument(
        "--period", type=int, default=None, help="Minutes between periodic measurements"
    )
    parser.add_argument("--host", default=None, help="Override web server host")
    parser.add_argument("--port", type=int, default=None, help="Override web server port")
    parser.add_argument("--ws-port", type=int, default=None, help="Override websocket port")
    parser.add_argument("--debug", action="store_true", help="Enable Flask debug mode")
    return parser.parse_args()


def apply_overrides(config: AppConfig, args: argparse.Namespace) -> AppConfig:
    if args.server is not None:
        config = dataclasses.replace(
            config, speedtest=dataclasses.replace(config.speedtest, server_id=args.server)
        )
    if args.period is not None:
        config = dataclasses.replace(
            config, scheduler=dataclasses.replace(config.scheduler, interval_minutes=args.period)
        )
    if args.ws_port is not None:
        config = dataclasses.replace(
            config, websocket=dataclasses.replace(config.websocket, port=args.ws_port)
        )
    return config


def main() -> None:
    args = parse_args()
    config = apply_overrides(load_config(args.config), args)
    context = ApplicationContext(config)
    LOGGER.info("netmon, Version %s", __version__)
    context.start()

    host = args.host or context.config.web.host
    port = args.port or context.config.web.port
    try:
        # use_reloader would start a second copy of the pipeline and websocket server
        context.web_app.run(host=host, port=port, debug=args.debug, use_reloader=False)
    finally:
        context.shutdown()


if __name__ == "__main__":
    main()
