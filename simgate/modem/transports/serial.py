"""
Local serial device endpoint.

pyserial is blocking, so every device call runs in the default executor
to keep the event loop free.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import AsyncIterator
from typing import Any

import serial

from ..result import EndpointIOError

logger = logging.getLogger(__name__)

# readline() returns early after this many seconds so a cancelled
# transaction never blocks close() for long.
READ_POLL_INTERVAL = 0.2


class SerialEndpoint:
    """
    TransportEndpoint backed by a local serial device.

    Example:
        endpoint = SerialEndpoint("/dev/ttyUSB2", baud_rate=115200)
        await endpoint.open()
        await endpoint.write(b"AT\\r")
        async for line in endpoint.lines():
            ...
        await endpoint.close()
    """

    def __init__(
        self,
        path: str,
        baud_rate: int = 115200,
        *,
        encoding: str = "utf-8",
        poll_interval: float = READ_POLL_INTERVAL,
    ):
        self._path = path
        self._baud_rate = baud_rate
        self._encoding = encoding
        self._poll_interval = poll_interval
        self._serial: serial.Serial | None = None
        self._closed = False
        self._iterated = False

    @property
    def target(self) -> str:
        return self._path

    @property
    def baud_rate(self) -> int:
        return self._baud_rate

    @property
    def is_open(self) -> bool:
        return self._serial is not None and not self._closed

    async def _run(self, func: Any, *args: Any) -> Any:
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, func, *args)

    async def open(self) -> None:
        if self._closed:
            raise EndpointIOError(f"Endpoint {self._path} is closed")
        if self._serial is not None:
            return

        try:
            self._serial = await self._run(self._open_port)
        except (serial.SerialException, OSError, ValueError) as e:
            raise EndpointIOError(f"Failed to open serial port {self._path}: {e}") from e

        logger.debug(f"Opened serial port {self._path} at {self._baud_rate} baud")

    def _open_port(self) -> serial.Serial:
        return serial.Serial(
            port=self._path,
            baudrate=self._baud_rate,
            timeout=self._poll_interval,
        )

    async def write(self, data: bytes) -> None:
        if not self.is_open:
            raise EndpointIOError(f"Serial port {self._path} is not open")

        try:
            await self._run(self._serial.write, data)
            await self._run(self._serial.flush)
        except (serial.SerialException, OSError) as e:
            raise EndpointIOError(f"Failed to write to {self._path}: {e}") from e

    async def lines(self) -> AsyncIterator[str]:
        if self._iterated:
            raise RuntimeError("lines() can only be iterated once per endpoint")
        self._iterated = True

        pending = b""
        while self.is_open:
            try:
                chunk = await self._run(self._serial.readline)
            except (serial.SerialException, OSError) as e:
                if self._closed:
                    return
                raise EndpointIOError(f"Failed to read from {self._path}: {e}") from e

            if not chunk:
                continue

            pending += chunk
            if not pending.endswith(b"\n"):
                # Poll interval elapsed mid-line
                continue

            line = pending.decode(self._encoding, errors="replace").rstrip("\r\n")
            pending = b""
            yield line

    async def close(self) -> None:
        if self._closed:
            return
        self._closed = True

        port, self._serial = self._serial, None
        if port is None:
            return

        try:
            await self._run(port.close)
            logger.debug(f"Closed serial port {self._path}")
        except (serial.SerialException, OSError) as e:
            logger.warning(f"Error during serial port cleanup for {self._path}: {e}")

    def __repr__(self) -> str:
        return f"SerialEndpoint(path='{self._path}', baud_rate={self._baud_rate})"
