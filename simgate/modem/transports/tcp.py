"""
Remote endpoint reached through a TunnelBridge (or any line-oriented
TCP relay). One connection is opened per transaction.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import AsyncIterator

from ..result import EndpointIOError

logger = logging.getLogger(__name__)


class TcpEndpoint:
    """
    TransportEndpoint backed by a TCP connection.

    The remote side speaks the device wire format: commands in, CRLF
    delimited lines out. EOF from the peer ends the line sequence.
    """

    def __init__(
        self,
        host: str,
        port: int,
        *,
        connect_timeout: float = 10.0,
        encoding: str = "utf-8",
    ):
        self._host = host
        self._port = port
        self._connect_timeout = connect_timeout
        self._encoding = encoding
        self._reader: asyncio.StreamReader | None = None
        self._writer: asyncio.StreamWriter | None = None
        self._closed = False
        self._iterated = False

    @property
    def target(self) -> str:
        return f"tcp://{self._host}:{self._port}"

    @property
    def is_open(self) -> bool:
        return self._writer is not None and not self._closed

    async def open(self) -> None:
        if self._closed:
            raise EndpointIOError(f"Endpoint {self.target} is closed")
        if self._writer is not None:
            return

        try:
            self._reader, self._writer = await asyncio.wait_for(
                asyncio.open_connection(self._host, self._port),
                timeout=self._connect_timeout,
            )
        except (OSError, asyncio.TimeoutError) as e:
            raise EndpointIOError(f"Failed to connect to {self.target}: {e}") from e

        logger.debug(f"Connected to remote tunnel {self.target}")

    async def write(self, data: bytes) -> None:
        if not self.is_open:
            raise EndpointIOError(f"Connection to {self.target} is not open")

        try:
            self._writer.write(data)
            await self._writer.drain()
        except OSError as e:
            raise EndpointIOError(f"Failed to write to {self.target}: {e}") from e

    async def lines(self) -> AsyncIterator[str]:
        if self._iterated:
            raise RuntimeError("lines() can only be iterated once per endpoint")
        self._iterated = True

        while self.is_open:
            try:
                raw = await self._reader.readline()
            except OSError as e:
                raise EndpointIOError(f"Failed to read from {self.target}: {e}") from e
            except (ValueError, asyncio.LimitOverrunError) as e:
                # Line longer than the stream buffer limit
                raise EndpointIOError(f"Oversized line from {self.target}: {e}") from e

            if not raw:
                logger.debug(f"Remote tunnel {self.target} closed the connection")
                return

            yield raw.decode(self._encoding, errors="replace").rstrip("\r\n")

    async def close(self) -> None:
        if self._closed:
            return
        self._closed = True

        writer, self._writer = self._writer, None
        self._reader = None
        if writer is None:
            return

        writer.close()
        try:
            await writer.wait_closed()
        except OSError as e:
            logger.warning(f"Error while closing connection to {self.target}: {e}")
        logger.debug(f"Remote tunnel connection to {self.target} closed")

    def __repr__(self) -> str:
        return f"TcpEndpoint(host='{self._host}', port={self._port})"
