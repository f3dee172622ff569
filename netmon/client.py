"""Terminal client for the netmon websocket endpoint.

Prints every status message and measurement the server broadcasts, and asks
for a new measurement each time a line is entered on stdin.
"""

from __future__ import annotations

import argparse
import sys
import threading
from typing import Callable, Iterable, TextIO

from websockets.exceptions import ConnectionClosed, InvalidHandshake
from websockets.sync.client import ClientConnection, connect

from .errors import DecodeFailure
from .messages import Notification, NotificationKind

REQUEST_MESSAGE = "Start-CLI"


def render(notification: Notification) -> Iterable[str]:
    """Lines to print for one server notification."""
    if notification.kind is NotificationKind.STATUS:
        return [f"Status: {notification.data}"]
    lines = []
    for record in notification.records():
        lines.extend(record.summary_lines())
    return lines


def receive_results(
    conn: ClientConnection, output: Callable[[str], None], done: threading.Event
) -> None:
    while not done.is_set():
        try:
            raw = conn.recv()
        except ConnectionClosed as exc:
            if not done.is_set():
                output(f"Error reading WebSocket: {exc}")
            done.set()
            return
        try:
            notification = Notification.decode(raw)
            lines = render(notification)
        except (ValueError, DecodeFailure) as exc:
            output(f"Error unmarshalling message: {exc}")
            continue
        for line in lines:
            output(line)


def run_client(url: str, stdin: TextIO = sys.stdin) -> None:
    print(f"Connecting to {url}")
    done = threading.Event()
    with connect(url) as conn:
        receiver = threading.Thread(
            target=receive_results, args=(conn, print, done), name="receiver", daemon=True
        )
        receiver.start()
        try:
            for _ in stdin:
                if done.is_set():
                    break
                print("CLI: Requesting test.")
                try:
                    conn.send(REQUEST_MESSAGE)
                except ConnectionClosed as exc:
                    print(f"Error writing request message: {exc}")
                    break
        except KeyboardInterrupt:
            print("Received interrupt.  Quitting...")
        finally:
            done.set()
        # Leaving the context manager performs a normal (1000) close


def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="netmon terminal client")
    parser.add_argument("--ip", default="localhost", help="IP address or name of netmon server")
    parser.add_argument(
        "--port", type=int, default=8081, help="TCP port of the netmon websocket endpoint"
    )
    parser.add_argument("--path", default="/ws", help="Websocket endpoint path")
    return parser.parse_args(argv)


def main(argv=None) -> None:
    args = parse_args(argv)
    try:
        run_client(f"ws://{args.ip}:{args.port}{args.path}")
    except (OSError, InvalidHandshake) as exc:
        print(f"Error connecting to server: {exc}")
        sys.exit(1)


if __name__ == "__main__":
    main()
