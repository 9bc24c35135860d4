"""
SMS listing decoder.

Turns the response lines of an AT+CMGL transaction into SMSRecord objects.
Decoding is a two-state scan:

- a meta line  +CMGL: <id>,"<status>","<sender>",[<alpha>],"<timestamp>"
  opens a new record
- every following line is appended to that record's body until the next
  meta line or the end of input

Echoes of AT commands are dropped so they never leak into bodies. A meta
line that does not parse is logged and skipped together with its body;
the remaining records are still returned.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Iterable
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any

from ..utils.validators import sanitize_for_log
from .result import ParseError

logger = logging.getLogger(__name__)

META_PREFIX = "+CMGL:"
COMMAND_ECHO_PREFIX = "AT+"

META_PATTERN = re.compile(
    r'^\+CMGL:\s*(?P<id>\d+),'
    r'"(?P<status>[^"]*)",'
    r'"(?P<sender>[^"]*)",'
    r'(?:"[^"]*"|[^,"]*),'
    r'"(?P<timestamp>[^"]*)"'
)

TIMESTAMP_PATTERN = re.compile(
    r"^(?P<date>\d{2}/\d{2}/\d{2}),(?P<time>\d{2}:\d{2}:\d{2})"
    r"(?:(?P<sign>[+-])(?P<quarters>\d{1,2}))?$"
)


def parse_modem_timestamp(value: str) -> datetime | None:
    """
    Parse a modem timestamp of the form yy/MM/dd,hh:mm:ss±zz.

    The zone offset is expressed in quarters of an hour. Returns None for
    values of any other shape.
    """
    match = TIMESTAMP_PATTERN.match(value.strip())
    if not match:
        return None

    try:
        naive = datetime.strptime(f"{match['date']},{match['time']}", "%y/%m/%d,%H:%M:%S")
    except ValueError:
        return None

    offset = timedelta(0)
    if match["quarters"] is not None:
        offset = timedelta(minutes=15 * int(match["quarters"]))
        if match["sign"] == "-":
            offset = -offset

    return naive.replace(tzinfo=timezone(offset))


@dataclass(frozen=True, slots=True)
class SMSRecord:
    """
    One stored message.

    Attributes:
        id: Modem storage index (used with AT+CMGD)
        status: Storage status, e.g. "REC UNREAD"
        sender: Originating address
        timestamp: Raw service-centre timestamp
        body: Message text, multi-line bodies joined with newlines
    """

    id: int
    sender: str
    timestamp: str
    body: str
    status: str = ""

    @property
    def sent_at(self) -> datetime | None:
        return parse_modem_timestamp(self.timestamp)

    def to_dict(self) -> dict[str, Any]:
        sent_at = self.sent_at
        return {
            "id": self.id,
            "status": self.status,
            "sender": self.sender,
            "timestamp": self.timestamp,
            "sent_at": sent_at.isoformat() if sent_at else None,
            "body": self.body,
        }


def parse_meta_line(line: str) -> dict[str, str]:
    """
    Parse a +CMGL meta line.

    Raises:
        ParseError: If the line does not match the listing format
    """
    match = META_PATTERN.match(line.strip())
    if not match:
        raise ParseError(f"Unrecognised SMS listing line: {sanitize_for_log(line)}", line)
    return match.groupdict()


def is_command_echo(line: str) -> bool:
    return line.strip().upper().startswith(COMMAND_ECHO_PREFIX)


class SMSListDecoder:
    """
    Stateless decoder for AT+CMGL responses.

    Example:
        decoder = SMSListDecoder()
        records = decoder.decode(result.lines)
    """

    def __init__(self, logger: logging.Logger | None = None):
        self._logger = logger or logging.getLogger(__name__)

    def decode(self, lines: Iterable[str]) -> list[SMSRecord]:
        records: list[SMSRecord] = []
        current: dict[str, str] | None = None
        body: list[str] = []
        skipping = False

        for line in lines:
            if line.lstrip().startswith(META_PREFIX):
                if current is not None:
                    records.append(self._build(current, body))
                current, body, skipping = None, [], False

                try:
                    current = parse_meta_line(line)
                except ParseError as e:
                    self._logger.warning(f"Skipping SMS record: {e}")
                    skipping = True
                continue

            if is_command_echo(line):
                self._logger.debug(f"Dropping command echo from listing: {line!r}")
                continue

            if current is None:
                if not skipping and line.strip():
                    self._logger.debug(f"Dropping line outside any SMS record: {line!r}")
                continue

            body.append(line)

        if current is not None:
            records.append(self._build(current, body))

        return records

    def _build(self, meta: dict[str, str], body: list[str]) -> SMSRecord:
        return SMSRecord(
            id=int(meta["id"]),
            status=meta["status"],
            sender=meta["sender"],
            timestamp=meta["timestamp"],
            body="\n".join(body),
        )


def decode_sms_list(lines: Iterable[str]) -> list[SMSRecord]:
    """Decode with a default SMSListDecoder."""
    return SMSListDecoder().decode(lines)
