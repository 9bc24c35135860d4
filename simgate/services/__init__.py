"""
simgate Services

Callers above the AT engine: SIM and call forwarding control, SMS.
"""

from .modem import ModemResetError, ModemService
from .sms import SMSService, build_send_command

__all__ = [
    "ModemResetError",
    "ModemService",
    "SMSService",
    "build_send_command",
]
