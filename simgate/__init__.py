"""
simgate - Call forwarding and SMS automation for cellular modems.

simgate drives a modem that is only reachable through a line-oriented
AT-command transport (a local serial device or a forwarded TCP socket):

- **AT Engine**: Leased, deadline-bound command transactions with retries
- **SMS Decoding**: AT+CMGL listings turned into message records
- **Tunnel Bridge**: Expose the local modem to remote callers over TCP
- **Services**: SIM unlock, call forwarding, SMS send/list/delete/forward
- **Jobs**: Roster-driven forwarding updates and SMS monitoring

Quick Start:
    >>> from functools import partial
    >>> from simgate.modem import (
    ...     CommandChannel, DeviceLease, RetryingChannel, RetryPolicy, SerialEndpoint,
    ... )
    >>>
    >>> channel = CommandChannel(partial(SerialEndpoint, "/dev/ttyUSB2"), DeviceLease())
    >>> modem = RetryingChannel(channel, RetryPolicy.exponential(3, 1.0))
    >>> result = await modem.send("AT+CPIN?")
"""

__version__ = "0.1.0"
__license__ = "MIT"

# Core exports for convenient imports
from simgate.modem import (
    CommandChannel,
    CommandResult,
    DeviceLease,
    Outcome,
    RetryingChannel,
    RetryPolicy,
    SMSListDecoder,
    SMSRecord,
    TunnelBridge,
)

__all__ = [
    # Version info
    "__version__",
    "__license__",
    # Core engine
    "CommandChannel",
    "CommandResult",
    "DeviceLease",
    "Outcome",
    "RetryPolicy",
    "RetryingChannel",
    "SMSListDecoder",
    "SMSRecord",
    "TunnelBridge",
]
