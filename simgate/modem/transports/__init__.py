"""
simgate Transport Layer.

Line-oriented endpoints the AT engine runs transactions against.

Core Components:
- TransportEndpoint: Protocol every endpoint implements
- EndpointFactory: Zero-argument callable returning a fresh endpoint

Built-in Endpoints:
- SerialEndpoint: Local serial device (pyserial)
- TcpEndpoint: Remote device behind a TunnelBridge

Usage:
    from functools import partial
    from simgate.modem.transports import SerialEndpoint

    factory = partial(SerialEndpoint, "/dev/ttyUSB2", 115200)
    channel = CommandChannel(factory, lease)

Adding New Endpoints:
    1. Implement target, is_open, open(), write(), lines(), close()
    2. Make close() idempotent and safe before open()
    3. Raise EndpointIOError for every I/O failure
"""

from .protocol import EndpointFactory, TransportEndpoint
from .serial import SerialEndpoint
from .tcp import TcpEndpoint

__all__ = [
    "EndpointFactory",
    "SerialEndpoint",
    "TcpEndpoint",
    "TransportEndpoint",
]
