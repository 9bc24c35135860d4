"""
SMS Monitor Job

Polls unread SMS, answers roster commands, forwards everything else to the
current target, and deletes each processed message.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from ..modem.sms import SMSRecord
from ..services.modem import ModemService
from ..services.sms import SMSService
from ..utils.validators import SMSCommandType, sanitize_for_log
from .roster import Roster

logger = logging.getLogger(__name__)


@dataclass
class MonitorReport:
    """Summary of one monitor_sms run."""

    processed: int = 0
    forwarded: int = 0
    commands: int = 0
    failed: list[int] = field(default_factory=list)


async def handle_who_is(sender: str, modem: ModemService, sms: SMSService, roster: Roster) -> None:
    """Reply with the forwarding target on the device and the scheduled one."""
    current_number = await modem.get_forwarding_number()
    current_name = roster.name_for(current_number) or current_number
    scheduled = roster.current_target()
    scheduled_name = roster.name_for(scheduled) or scheduled

    if current_number == scheduled:
        response = f"Current duty officer: {scheduled_name}"
    else:
        response = (
            f"Current redirect: {current_name or 'Unknown'}\n"
            f"Scheduled duty officer: {scheduled_name}"
        )

    await sms.send_sms(sender, response)
    logger.info(f"Sent 'who is' response to {sender}")


async def handle_change_to(
    sender: str,
    name: str,
    modem: ModemService,
    sms: SMSService,
    roster: Roster,
) -> None:
    """Manually redirect calls to a named roster member."""
    phone_number = roster.number_for(name)
    if not phone_number:
        logger.warning(f"Officer not found: {name}")
        await sms.send_sms(sender, f'Officer "{name}" not found in roster.')
        return

    if await modem.set_forwarding_number(phone_number):
        await sms.send_sms(sender, f"Duty officer redirect updated to {name} ({phone_number})")
        logger.info(f"Duty officer manually changed to {name} by {sender}")
    else:
        await sms.send_sms(sender, "Failed to update redirect. Please try again.")
        logger.error(f"Failed to change duty officer to {name} ({phone_number})")


async def process_sms(
    record: SMSRecord,
    modem: ModemService,
    sms: SMSService,
    roster: Roster,
    report: MonitorReport,
) -> None:
    logger.info(
        f"Processing SMS {record.id} from {record.sender}: "
        f"{sanitize_for_log(record.body[:50])}"
    )

    if not record.body.strip():
        logger.warning(f"Empty SMS message, skipping content of {record.id}")
    else:
        command = sms.parse_command(record.body)
        if command is None:
            target = roster.current_target()
            if await sms.forward_sms(record, target):
                report.forwarded += 1
            else:
                logger.error(f"Failed to forward SMS {record.id} to {target}")
        else:
            report.commands += 1
            logger.info(f"Processing SMS command {command.type.value} from {record.sender}")
            if command.type is SMSCommandType.WHO_IS:
                await handle_who_is(record.sender, modem, sms, roster)
            elif command.type is SMSCommandType.CHANGE_TO:
                await handle_change_to(record.sender, command.argument, modem, sms, roster)

    if not await sms.delete_sms(record.id):
        logger.warning(f"Failed to delete SMS {record.id}")


async def monitor_sms(modem: ModemService, sms: SMSService, roster: Roster) -> MonitorReport:
    """Process every unread SMS; one failing message does not stop the rest."""
    logger.info("=== Starting SMS Monitor Job ===")
    report = MonitorReport()

    records = await sms.get_unread_sms()
    if not records:
        logger.debug("No unread SMS messages")
        return report

    logger.info(f"Found {len(records)} unread SMS messages")
    for record in records:
        try:
            await process_sms(record, modem, sms, roster, report)
        except Exception as e:
            logger.error(f"Error processing SMS {record.id}: {e}", exc_info=True)
            report.failed.append(record.id)
        report.processed += 1

    logger.info(f"SMS monitoring completed: {report.processed} processed")
    return report
