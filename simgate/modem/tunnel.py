"""
Tunnel Bridge for simgate.

TCP server that relays AT commands from remote clients (typically reached
through an SSH port forward) to the local modem. Each CR-terminated
command runs as one transaction on a private CommandChannel; the channel
shares the process DeviceLease, so tunnel clients queue behind local
callers instead of opening the device concurrently. An AT+CMGS header and
the Ctrl-Z terminated body that follows it run together as one plural
transaction.

Wire protocol:
    client -> server:  <command>\\r
                       AT+CMGS="<number>"\\r<body>\\x1a  (SMS submission)
    server -> client:  every inbound line of the transaction, each + \\r\\n

A reply always ends with a line carrying a terminal marker. Transactions
that time out or fail on I/O are answered with a trailing ERROR line.
"""

from __future__ import annotations

import asyncio
import logging

from .channel import (
    CTRL_Z,
    ERROR_MARKER,
    SUCCESS_MARKER,
    Command,
    CommandChannel,
    describe_command,
)
from .result import CommandResult

logger = logging.getLogger(__name__)

CR = b"\r"
CRLF = "\r\n"
READ_CHUNK_SIZE = 1024
SMS_SUBMIT_PREFIX = "AT+CMGS"


def render_reply(result: CommandResult) -> bytes:
    """Serialise a transaction transcript for a tunnel client."""
    lines = list(result.transcript)
    last = lines[-1] if lines else ""
    if SUCCESS_MARKER not in last and ERROR_MARKER not in last:
        lines.append(ERROR_MARKER)
    return "".join(f"{line}{CRLF}" for line in lines).encode("utf-8")


def split_request(buffer: bytes) -> tuple[Command | None, bytes]:
    """
    Take the next complete request off the front of buffer.

    Returns (None, buffer) while the request is still incomplete. An SMS
    submission is complete only once its Ctrl-Z arrives, and is returned as
    the plural command [header + CR, body + Ctrl-Z]. Blank requests come
    back as an empty string.
    """
    if CR not in buffer:
        return None, buffer

    raw, _, rest = buffer.partition(CR)
    command = raw.decode("utf-8", errors="replace").strip()

    if command.upper().startswith(SMS_SUBMIT_PREFIX):
        terminator = CTRL_Z.encode()
        if terminator not in rest:
            return None, buffer
        body, _, rest = rest.partition(terminator)
        return [f"{command}\r", body.decode("utf-8", errors="replace") + CTRL_Z], rest

    return command, rest


class TunnelBridge:
    """
    Network listener exposing CommandChannel transactions to remote callers.

    The bridge does no authentication; bind it to localhost and reach it
    through an SSH tunnel.

    Example:
        bridge = TunnelBridge(channel, host="localhost", port=3000)
        await bridge.start()
        ...
        await bridge.stop()
    """

    def __init__(
        self,
        channel: CommandChannel,
        host: str = "localhost",
        port: int = 3000,
        *,
        logger: logging.Logger | None = None,
    ):
        self._channel = channel
        self._host = host
        self._port = port
        self._logger = logger or logging.getLogger(__name__)
        self._server: asyncio.Server | None = None
        self._clients: set[asyncio.Task] = set()

    @property
    def host(self) -> str:
        return self._host

    @property
    def port(self) -> int:
        """Bound port (resolves port 0 to the OS-assigned port once started)."""
        if self._server is not None and self._server.sockets:
            return self._server.sockets[0].getsockname()[1]
        return self._port

    @property
    def is_running(self) -> bool:
        return self._server is not None and self._server.is_serving()

    async def start(self) -> None:
        if self._server is not None:
            return

        self._server = await asyncio.start_server(self._handle_client, self._host, self._port)
        self._logger.info(f"Remote tunnel server started on {self._host}:{self.port}")
        self._logger.warning(
            "SECURITY: Tunnel server is running. Ensure it is only accessible via SSH tunnel!"
        )

    async def serve_forever(self) -> None:
        await self.start()
        await self._server.serve_forever()

    async def stop(self) -> None:
        server, self._server = self._server, None
        if server is None:
            return

        server.close()
        for task in list(self._clients):
            task.cancel()
        if self._clients:
            await asyncio.gather(*self._clients, return_exceptions=True)
        await server.wait_closed()
        self._logger.info("Remote tunnel server stopped")

    async def execute(self, command: Command) -> bytes:
        """Run one command and return the reply bytes for the client."""
        label = describe_command(command)
        self._logger.debug(f"Received command from remote client: {label}")
        result = await self._channel.send(command)
        if not result.success:
            self._logger.error(
                f"Error executing remote command {label}: "
                f"{result.outcome.value} ({result.error})"
            )
        return render_reply(result)

    async def _handle_client(
        self,
        reader: asyncio.StreamReader,
        writer: asyncio.StreamWriter,
    ) -> None:
        task = asyncio.current_task()
        if task is not None:
            self._clients.add(task)

        peer = writer.get_extra_info("peername")
        self._logger.info(f"Remote client connected: {peer}")
        buffer = b""

        try:
            while True:
                chunk = await reader.read(READ_CHUNK_SIZE)
                if not chunk:
                    break

                buffer += chunk
                while True:
                    command, buffer = split_request(buffer)
                    if command is None:
                        break
                    if not command:
                        continue

                    writer.write(await self.execute(command))
                    await writer.drain()
        except ConnectionError as e:
            self._logger.error(f"Socket error from {peer}: {e}")
        finally:
            if task is not None:
                self._clients.discard(task)
            writer.close()
            try:
                await writer.wait_closed()
            except ConnectionError as e:
                self._logger.debug(f"Connection to {peer} closed uncleanly: {e}")
            self._logger.info(f"Remote client disconnected: {peer}")
