"""
simgate Utilities

Common utilities used across the application.
"""

from .validators import (
    SMSCommand,
    SMSCommandType,
    is_valid_officer_name,
    is_valid_phone_number,
    parse_sms_command,
    sanitize_for_log,
)

__all__ = [
    "SMSCommand",
    "SMSCommandType",
    "is_valid_officer_name",
    "is_valid_phone_number",
    "parse_sms_command",
    "sanitize_for_log",
]
