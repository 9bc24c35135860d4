"""
Forwarding Update Job

Keeps the modem's unconditional call forwarding pointed at the roster's
current target. A failed run triggers the modem reset recovery action and
re-raises as JobError.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from ..services.modem import ModemResetError, ModemService
from ..services.sms import SMSService
from .roster import Roster

logger = logging.getLogger(__name__)

ON_DUTY_MESSAGE = (
    "You are now on duty. All calls will be forwarded to you until your shift ends."
)


class JobError(Exception):
    """A scheduled job could not complete."""


@dataclass(frozen=True, slots=True)
class ForwardingUpdate:
    """Outcome of one update_forwarding run."""

    updated: bool
    target: str
    officer: str | None = None
    previous: str | None = None


async def update_forwarding(
    modem: ModemService,
    sms: SMSService,
    roster: Roster,
    admin_number: str | None = None,
) -> ForwardingUpdate:
    """
    Point call forwarding at roster.current_target().

    Steps:
    1. Unlock the SIM if it is waiting for its PIN
    2. Read the current forwarding number
    3. If it differs, set it and notify the admin and the new target

    Raises:
        JobError: If any step fails (after attempting a modem reset)
    """
    logger.info("=== Starting Forwarding Update Job ===")
    target = roster.current_target()
    officer = roster.name_for(target)
    logger.info(f"Current target from roster: {officer or 'unknown'} ({target})")

    try:
        if await modem.is_sim_locked():
            logger.warning("SIM is locked, unlocking...")
            if not await modem.unlock_sim():
                raise JobError("Failed to unlock SIM")
        else:
            logger.debug("SIM is not locked")

        current = await modem.get_forwarding_number()
        logger.info(f"Current redirect number on device: {current}")

        if current == target:
            logger.info(f"Redirect number already correct, no update needed: {target}")
            return ForwardingUpdate(updated=False, target=target, officer=officer, previous=current)

        logger.info(f"Redirect number mismatch, updating {current} -> {target}")
        if not await modem.set_forwarding_number(target):
            raise JobError("Failed to set redirect number")

        label = f"{officer} ({target})" if officer else target
        if admin_number:
            await sms.send_sms(admin_number, f"Duty officer redirect updated to {label}")
        await sms.send_sms(target, ON_DUTY_MESSAGE)

        logger.info(f"Forwarding update completed: {label}")
        return ForwardingUpdate(updated=True, target=target, officer=officer, previous=current)

    except JobError as e:
        logger.error(f"Forwarding update job failed: {e}")
        try:
            await modem.reset_modem()
            logger.info("Modem reset initiated after failure")
        except ModemResetError as reset_error:
            logger.error(f"Failed to reset modem: {reset_error}")
        raise
