"""
Input validation helpers.

Phone numbers, roster names, SMS commands, and log sanitising for text
that came off the modem.
"""
from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum

PHONE_PATTERN = re.compile(r"^\+?[0-9]{10,15}$")
OFFICER_NAME_PATTERN = re.compile(r"^[a-zA-Z\s\-']{2,50}$")
CONTROL_CHARS = re.compile(r"[\x00-\x1f\x7f]")

MAX_LOG_LENGTH = 200


class SMSCommandType(str, Enum):
    WHO_IS = "who_is"
    CHANGE_TO = "change_to"


@dataclass(frozen=True, slots=True)
class SMSCommand:
    """A recognised command found in an incoming SMS."""

    type: SMSCommandType
    argument: str | None = None


def is_valid_phone_number(phone_number: str | None) -> bool:
    """Allow an optional + prefix followed by 10-15 digits."""
    if not phone_number or not isinstance(phone_number, str):
        return False
    return PHONE_PATTERN.fullmatch(phone_number) is not None


def is_valid_officer_name(name: str | None) -> bool:
    """Letters, spaces, hyphens and apostrophes, 2-50 characters."""
    if not name or not isinstance(name, str):
        return False
    return OFFICER_NAME_PATTERN.fullmatch(name.strip()) is not None


def parse_sms_command(message: str | None) -> SMSCommand | None:
    """
    Recognise an SMS command.

    Supported:
        "who is"             -> WHO_IS
        "change to: <Name>"  -> CHANGE_TO with the name as argument

    Returns:
        SMSCommand, or None when the message is not a command
    """
    if not message or not isinstance(message, str):
        return None

    trimmed = message.strip().lower()

    if trimmed == "who is":
        return SMSCommand(SMSCommandType.WHO_IS)

    if trimmed.startswith("change to:"):
        name = message[message.index(":") + 1 :].strip()
        if is_valid_officer_name(name):
            return SMSCommand(SMSCommandType.CHANGE_TO, name)

    return None


def sanitize_for_log(value: object) -> str:
    """Strip control characters and cap length."""
    if value is None:
        return ""
    return CONTROL_CHARS.sub("", str(value))[:MAX_LOG_LENGTH]
