"""speedtest-cli measurement runner."""

from __future__ import annotations

import json
import logging
import subprocess
from typing import List, Optional

from ..config import SpeedtestConfig
from ..errors import DecodeFailure, ExitFailure, LaunchFailure, NoOutput
from .models import PerformanceRecord

LOGGER = logging.getLogger(__name__)


class SpeedtestRunner:
    """Runs ``speedtest-cli --json`` and turns its output into a record.

    There is no timeout on the child process. A tool that hangs blocks the
    caller until it exits or is killed from outside, and since the request
    pipeline calls ``run`` synchronously that stalls every measurement.
    """

    def __init__(self, config: SpeedtestConfig):
        self.config = config

    def build_command(self, server_id: Optional[int] = None) -> List[str]:
        command = [self.config.binary, "--json"]
        if server_id is not None and server_id >= 0:
            command += ["--server", str(server_id)]
        if self.config.extra_args:
            command += list(self.config.extra_args)
        return command

    def run(self, server_id: Optional[int] = None) -> PerformanceRecord:
        """Run one measurement.

        ``server_id`` defaults to the configured server; ``None`` lets the tool
        pick the closest one. Raises a ``MeasurementFailure`` subclass on any
        failure, never retries.
        """
        if server_id is None:
            server_id = self.config.server_id
        command = self.build_command(server_id)
        LOGGER.debug("Running %s", " ".join(command))

        try:
            completed = subprocess.run(
                command,
                check=False,
                capture_output=True,
                text=True,
            )
        except OSError as exc:
            raise LaunchFailure(f"Could not start {command[0]}: {exc}") from exc

        stderr = (completed.stderr or "").strip() or None
        # An empty stdout is what the tool produces on transient network
        # failures, so it is reported apart from malformed output.
        if not (completed.stdout or "").strip():
            raise NoOutput(
                f"{command[0]} exited with status {completed.returncode} and no output",
                stderr=stderr,
            )

        record = parse_output(completed.stdout)

        if completed.returncode != 0:
            raise ExitFailure(
                f"{command[0]} exited with status {completed.returncode}",
                returncode=completed.returncode,
                stderr=stderr,
            )

        _log_summary(record)
        return record


def _reject_constant(name: str) -> float:
    raise ValueError(f"non-finite number {name} is not valid JSON")


def parse_output(stdout: str) -> PerformanceRecord:
    """Decode the first JSON document in ``stdout``; trailing text is ignored.

    Python's decoder accepts ``NaN`` and ``Infinity`` by default; those are
    rejected here so that every stored record can be re-encoded for clients.
    """
    decoder = json.JSONDecoder(parse_constant=_reject_constant)
    try:
        data, _ = decoder.raw_decode(stdout.lstrip())
    except ValueError as exc:
        raise DecodeFailure(f"Could not decode speedtest output: {exc}") from exc
    return PerformanceRecord.from_dict(data)


def _log_summary(record: PerformanceRecord) -> None:
    try:
        for line in record.summary_lines():
            LOGGER.info(line)
    except Exception as exc:  # pylint: disable=broad-except
        LOGGER.debug("Could not render measurement summary: %s", exc)
