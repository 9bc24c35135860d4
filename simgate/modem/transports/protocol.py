"""
Transport Endpoint Protocol for simgate.

A TransportEndpoint owns one physical or remote channel for the lifetime
of exactly one transaction. CommandChannel asks an EndpointFactory for a
fresh endpoint per transaction and never reuses it, so no framing state
survives from one command to the next.

Implementations:
- SerialEndpoint: local serial device (pyserial)
- TcpEndpoint: remote tunnel reached over TCP
"""

from __future__ import annotations

from collections.abc import AsyncIterator, Callable
from typing import Protocol, runtime_checkable


@runtime_checkable
class TransportEndpoint(Protocol):
    """
    One exclusive, line-oriented channel to a modem.

    Contract:
    - open() raises EndpointIOError when the channel cannot be opened
    - write() sends raw bytes; framing (CR, Ctrl-Z) is the caller's job
    - lines() yields decoded lines without their CRLF; it runs until the
      endpoint is closed and may only be iterated once
    - close() is idempotent and safe on an endpoint that never opened
    """

    @property
    def target(self) -> str:
        """
        Identifier of the physical target (e.g. "/dev/ttyUSB2").

        DeviceLease serialises transactions by this key.
        """
        ...

    @property
    def is_open(self) -> bool:
        ...

    async def open(self) -> None:
        ...

    async def write(self, data: bytes) -> None:
        ...

    def lines(self) -> AsyncIterator[str]:
        ...

    async def close(self) -> None:
        ...


EndpointFactory = Callable[[], TransportEndpoint]
