"""Exception types shared by the measurement and broadcast layers."""

from __future__ import annotations

from typing import Optional


class NetmonError(Exception):
    """Base class for netmon errors."""


class TransportFailure(NetmonError):
    """A read or write on one client connection failed."""


class EncodingFailure(NetmonError):
    """A notification payload could not be serialized."""


class MeasurementFailure(NetmonError):
    """The external measurement could not produce a record.

    ``user_message`` is the fixed text shown to clients; the exception's own
    message carries the detail and only goes to the log.
    """

    user_message = "Error executing SpeedTest."

    def __init__(self, detail: str, stderr: Optional[str] = None):
        super().__init__(detail)
        self.stderr = stderr


class LaunchFailure(MeasurementFailure):
    user_message = "Error executing SpeedTest. The speedtest tool could not be started."


class NoOutput(MeasurementFailure):
    user_message = "Error executing SpeedTest. No output provided from test."


class DecodeFailure(MeasurementFailure):
    user_message = "Error executing SpeedTest. The test output could not be read."


class ExitFailure(MeasurementFailure):
    user_message = "Error executing SpeedTest. The speedtest tool exited with an error."

    def __init__(self, detail: str, returncode: int, stderr: Optional[str] = None):
        super().__init__(detail, stderr=stderr)
        self.returncode = returncode
