"""
SMS Service

Sending, listing, deleting and forwarding text-mode SMS through the
AT engine.
"""

from __future__ import annotations

import logging

from ..modem.channel import CTRL_Z
from ..modem.retry import RetryingChannel
from ..modem.sms import SMSListDecoder, SMSRecord
from ..utils.validators import SMSCommand, parse_sms_command

logger = logging.getLogger(__name__)

UNREAD = "REC UNREAD"
ALL = "ALL"


def build_send_command(phone_number: str, message: str) -> list[str]:
    """AT+CMGS header followed by the body terminated with Ctrl-Z."""
    return [f'AT+CMGS="{phone_number}"\r', f"{message}{CTRL_Z}"]


class SMSService:
    """
    Text-mode SMS operations.

    Example:
        sms = SMSService(retrying_channel)
        for record in await sms.get_unread_sms():
            await sms.forward_sms(record, "+48500100200")
            await sms.delete_sms(record.id)
    """

    def __init__(self, modem: RetryingChannel, decoder: SMSListDecoder | None = None):
        self._modem = modem
        self._decoder = decoder or SMSListDecoder()

    async def enable_text_mode(self) -> bool:
        result = await self._modem.send("AT+CMGF=1")
        if not result.success:
            logger.error(f"Failed to switch modem to SMS text mode: {result.error}")
        return result.success

    async def send_sms(self, phone_number: str, message: str) -> bool:
        logger.info(f"Sending SMS to {phone_number} ({len(message)} chars)")

        result = await self._modem.send(build_send_command(phone_number, message))
        if result.success:
            logger.info(f"SMS sent successfully to {phone_number}")
        else:
            logger.error(f"Failed to send SMS to {phone_number}: {result.error}")
        return result.success

    async def list_messages(self, status: str = ALL) -> list[SMSRecord]:
        result = await self._modem.send(f'AT+CMGL="{status}"')

        if not result.success:
            logger.error(f"Failed to list SMS ({status}): {result.error}")
            return []
        if not result.lines:
            logger.debug(f"No SMS found ({status})")
            return []

        records = self._decoder.decode(result.lines)
        logger.info(f"Retrieved {len(records)} SMS ({status})")
        return records

    async def get_unread_sms(self) -> list[SMSRecord]:
        return await self.list_messages(UNREAD)

    async def delete_sms(self, message_id: int) -> bool:
        logger.debug(f"Deleting SMS {message_id}")
        result = await self._modem.send(f"AT+CMGD={message_id}")
        if not result.success:
            logger.error(f"Failed to delete SMS {message_id}: {result.error}")
        return result.success

    async def forward_sms(self, record: SMSRecord, forward_to: str) -> bool:
        logger.info(f"Forwarding SMS {record.id} from {record.sender} to {forward_to}")
        return await self.send_sms(
            forward_to,
            f"Forwarded SMS from {record.sender}:\n{record.body}",
        )

    def parse_command(self, message: str) -> SMSCommand | None:
        return parse_sms_command(message)
