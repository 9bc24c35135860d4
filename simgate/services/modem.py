"""
Modem Service

High-level SIM and call-forwarding operations on top of the AT engine.
Methods report failure through their return value and log the cause;
only reset_modem() raises.
"""

from __future__ import annotations

import asyncio
import logging
import re
import shlex

from ..modem.retry import RetryingChannel
from ..utils.validators import sanitize_for_log

logger = logging.getLogger(__name__)

QUOTED_VALUE = re.compile(r'"([^"]+)"')
FORWARDING_PREFIX = "+CCFC:"

# 3GPP TS 24.008 type-of-address values
INTERNATIONAL_NUMBER = 145
NATIONAL_NUMBER = 129


class ModemResetError(Exception):
    """Raised when the modem reset command fails."""

    def __init__(self, command: str, returncode: int | None, stderr: str = ""):
        self.command = command
        self.returncode = returncode
        self.stderr = stderr
        super().__init__(
            f"Modem reset command '{command}' failed with exit code {returncode}: {stderr}"
        )


class ModemService:
    """
    SIM lock handling and unconditional call forwarding (AT+CCFC reason 0).

    Example:
        service = ModemService(retrying_channel, sim_pin="1234")
        if await service.is_sim_locked():
            await service.unlock_sim()
        await service.set_forwarding_number("+48500100200")
    """

    def __init__(
        self,
        modem: RetryingChannel,
        *,
        sim_pin: str | None = None,
        reset_command: str = "sudo systemctl stop ModemManager.service",
    ):
        self._modem = modem
        self._sim_pin = sim_pin
        self._reset_command = reset_command

    @property
    def modem(self) -> RetryingChannel:
        return self._modem

    async def is_sim_locked(self) -> bool:
        """True when the SIM is waiting for its PIN."""
        result = await self._modem.send("AT+CPIN?")
        logger.debug(f"SIM lock status check: {result.outcome.value} {list(result.lines)}")
        if not result.success:
            logger.error(f"Failed to check SIM lock status: {result.error}")
            return False
        return any("SIM PIN" in line for line in result.lines)

    async def unlock_sim(self, pin: str | None = None) -> bool:
        pin = pin or self._sim_pin
        if not pin:
            logger.error("Cannot unlock SIM: no PIN configured")
            return False

        logger.info("Unlocking SIM...")
        result = await self._modem.send(f"AT+CPIN={pin}")
        if result.success:
            logger.info("SIM unlocked successfully")
        else:
            logger.error(f"Failed to unlock SIM: {result.outcome.value}")
        return result.success

    async def get_forwarding_number(self) -> str | None:
        """
        Read the current unconditional forwarding target.

        Parses the first +CCFC: line, e.g. +CCFC: 1,1,"+1234567890",145.
        Command echoes and other lines are ignored.
        """
        result = await self._modem.send("AT+CCFC=0,2")
        if not result.success:
            logger.error(f"Failed to get current redirect number: {result.error}")
            return None
        status = next(
            (line for line in result.lines if line.lstrip().startswith(FORWARDING_PREFIX)),
            None,
        )
        if status is None:
            logger.warning("No redirect number found")
            return None

        match = QUOTED_VALUE.search(status)
        phone_number = match.group(1) if match else None
        logger.debug(f"Current redirect number: {phone_number}")
        return phone_number

    async def set_forwarding_number(self, phone_number: str) -> bool:
        number_type = INTERNATIONAL_NUMBER if phone_number.startswith("+") else NATIONAL_NUMBER
        logger.info(f"Setting redirect number: {phone_number}")

        result = await self._modem.send(f'AT+CCFC=0,3,"{phone_number}",{number_type}')
        if result.success:
            logger.info(f"Redirect number set successfully: {phone_number}")
        else:
            logger.error(f"Failed to set redirect number {phone_number}: {result.error}")
        return result.success

    async def disable_forwarding(self) -> bool:
        result = await self._modem.send("AT+CCFC=0,0")
        if not result.success:
            logger.error(f"Failed to disable forwarding: {result.error}")
        return result.success

    async def reset_modem(self) -> None:
        """
        Run the configured reset command.

        Raises:
            ModemResetError: If the command cannot be started or exits non-zero
        """
        logger.warning(f"Resetting modem: {self._reset_command}")
        args = shlex.split(self._reset_command)

        try:
            process = await asyncio.create_subprocess_exec(
                *args,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as e:
            raise ModemResetError(self._reset_command, None, str(e)) from e

        stdout, stderr = await process.communicate()
        if process.returncode != 0:
            error = ModemResetError(
                self._reset_command,
                process.returncode,
                sanitize_for_log(stderr.decode(errors="replace")),
            )
            logger.error(str(error))
            raise error

        logger.info(f"Modem reset successful: {sanitize_for_log(stdout.decode(errors='replace'))}")
