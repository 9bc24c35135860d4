"""
simgate AT-Command Engine

Serialises command/response exchanges with a cellular modem over an
exclusive, half-duplex, line-oriented channel.

Core Components:
- TransportEndpoint: One channel per transaction (serial device or TCP)
- DeviceLease: Process-wide FIFO lease per physical target
- CommandChannel: Send, collect lines, detect OK/ERROR, enforce deadline
- RetryingChannel: Bounded retries with exponential backoff
- SMSListDecoder: AT+CMGL response -> SMSRecord list
- TunnelBridge: TCP server relaying transactions to remote callers

Usage:
    lease = DeviceLease()
    channel = CommandChannel(partial(SerialEndpoint, "/dev/ttyUSB2"), lease)
    modem = RetryingChannel(channel, RetryPolicy.exponential(3, 1.0))

    result = await modem.send('AT+CMGL="REC UNREAD"')
    records = SMSListDecoder().decode(result.lines)
"""

from .channel import CommandChannel, describe_command, frame_command
from .lease import DeviceLease
from .result import (
    CommandResult,
    CommandTimeout,
    DeviceError,
    EndpointIOError,
    ModemError,
    Outcome,
    ParseError,
)
from .retry import (
    DEFAULT_RETRY,
    NO_RETRY,
    BackoffStrategy,
    ConstantBackoff,
    ExponentialBackoff,
    NoBackoff,
    RetryingChannel,
    RetryPolicy,
)
from .sms import SMSListDecoder, SMSRecord, decode_sms_list, parse_modem_timestamp
from .transports import EndpointFactory, SerialEndpoint, TcpEndpoint, TransportEndpoint
from .tunnel import TunnelBridge

__all__ = [
    # Results
    "CommandResult",
    "Outcome",
    # Errors
    "CommandTimeout",
    "DeviceError",
    "EndpointIOError",
    "ModemError",
    "ParseError",
    # Transports
    "EndpointFactory",
    "SerialEndpoint",
    "TcpEndpoint",
    "TransportEndpoint",
    # Engine
    "CommandChannel",
    "DeviceLease",
    "describe_command",
    "frame_command",
    # Retry
    "DEFAULT_RETRY",
    "NO_RETRY",
    "BackoffStrategy",
    "ConstantBackoff",
    "ExponentialBackoff",
    "NoBackoff",
    "RetryPolicy",
    "RetryingChannel",
    # SMS
    "SMSListDecoder",
    "SMSRecord",
    "decode_sms_list",
    "parse_modem_timestamp",
    # Tunnel
    "TunnelBridge",
]
