"""
Command Channel for simgate.

Runs one AT request/response transaction at a time against a freshly
opened TransportEndpoint:

1. Acquire the DeviceLease for the endpoint's target
2. Open the endpoint and write the command(s)
3. Read lines until one contains "OK" (success) or "ERROR" (device error)
4. Give up when the deadline fires (timeout)
5. Close the endpoint and release the lease on every exit path

Terminal detection is substring based: a response line that merely
contains "OK" or "ERROR" (for example inside an SMS body) ends the
transaction.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Sequence

from .lease import DeviceLease
from .result import CommandResult, EndpointIOError, Outcome
from .transports.protocol import EndpointFactory, TransportEndpoint

logger = logging.getLogger(__name__)

SUCCESS_MARKER = "OK"
ERROR_MARKER = "ERROR"
CTRL_Z = "\x1a"

Command = str | Sequence[str]


def describe_command(command: Command) -> str:
    """Printable form of a command for logs and results."""
    if isinstance(command, str):
        return command.strip()
    return " | ".join(part.replace(CTRL_Z, "^Z").strip() for part in command)


def frame_command(command: Command, encoding: str = "utf-8") -> list[bytes]:
    """
    Turn a command into the byte writes sent to the device.

    A single command is CR-terminated. A plural command (SMS submission) is
    written element by element exactly as given: the header carries its own
    CR and the last element ends with Ctrl-Z.
    """
    if isinstance(command, str):
        return [f"{command}\r".encode(encoding)]
    if not command:
        raise ValueError("Command sequence is empty")
    return [part.encode(encoding) for part in command]


class CommandChannel:
    """
    Executes AT transactions with a deadline and guaranteed release.

    Example:
        channel = CommandChannel(
            endpoint_factory=partial(SerialEndpoint, "/dev/ttyUSB2", 115200),
            lease=DeviceLease(),
            timeout=60.0,
        )
        result = await channel.send("AT+CPIN?")
        if result.success:
            print(result.lines)
    """

    def __init__(
        self,
        endpoint_factory: EndpointFactory,
        lease: DeviceLease,
        *,
        timeout: float = 60.0,
        encoding: str = "utf-8",
        logger: logging.Logger | None = None,
    ):
        self._endpoint_factory = endpoint_factory
        self._lease = lease
        self._timeout = timeout
        self._encoding = encoding
        self._logger = logger or logging.getLogger(__name__)

    @property
    def timeout(self) -> float:
        return self._timeout

    @property
    def lease(self) -> DeviceLease:
        return self._lease

    async def send(self, command: Command, timeout: float | None = None) -> CommandResult:
        """
        Run one transaction.

        Args:
            command: A single AT command, or a sequence written without
                waiting for intermediate acknowledgement
            timeout: Deadline in seconds (defaults to the channel timeout)

        Returns:
            CommandResult tagged SUCCESS, DEVICE_ERROR, TIMEOUT or IO_ERROR
        """
        label = describe_command(command)
        deadline = self._timeout if timeout is None else timeout
        payload = frame_command(command, self._encoding)
        endpoint = self._endpoint_factory()
        transcript: list[str] = []

        async with self._lease.acquire(endpoint.target):
            try:
                return await asyncio.wait_for(
                    self._transact(endpoint, label, payload, transcript),
                    timeout=deadline,
                )
            except asyncio.TimeoutError:
                self._logger.error(f"AT command timed out after {deadline}s: {label}")
                return CommandResult.failure(
                    Outcome.TIMEOUT,
                    label,
                    f"timeout after {deadline}s",
                    transcript,
                )
            except EndpointIOError as e:
                self._logger.error(f"AT command I/O failure for {label}: {e}")
                return CommandResult.failure(Outcome.IO_ERROR, label, str(e), transcript)
            finally:
                await endpoint.close()

    async def _transact(
        self,
        endpoint: TransportEndpoint,
        label: str,
        payload: list[bytes],
        transcript: list[str],
    ) -> CommandResult:
        await endpoint.open()

        for data in payload:
            self._logger.debug(f"Sending {data!r} to {endpoint.target}")
            await endpoint.write(data)

        collected: list[str] = []
        async for line in endpoint.lines():
            transcript.append(line)
            self._logger.debug(f"Received line: {line!r}")

            if len(line) > 1 and line != SUCCESS_MARKER:
                collected.append(line)

            if SUCCESS_MARKER in line:
                self._logger.debug(f"AT command successful: {label} ({len(collected)} lines)")
                return CommandResult.ok(label, collected, transcript)

            if ERROR_MARKER in line:
                self._logger.error(f"AT command returned ERROR: {label}")
                return CommandResult.failure(
                    Outcome.DEVICE_ERROR,
                    label,
                    line.strip() or ERROR_MARKER,
                    transcript,
                )

        raise EndpointIOError(
            f"{endpoint.target} closed before a terminal response", command=label
        )
