"""
Transaction outcomes for the AT-command engine.

Every transaction ends in exactly one Outcome. CommandChannel never raises
for modem or transport failures; it returns a CommandResult tagged with the
outcome instead. Callers that prefer exceptions use CommandResult.unwrap().
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from enum import Enum
from typing import Any


class Outcome(str, Enum):
    """Terminal state of a transaction."""

    PENDING = "pending"
    SUCCESS = "success"
    DEVICE_ERROR = "device_error"
    TIMEOUT = "timeout"
    IO_ERROR = "io_error"


# =============================================================================
# Errors
# =============================================================================


class ModemError(Exception):
    """Base class for AT-command engine errors."""

    outcome: Outcome = Outcome.PENDING

    def __init__(self, message: str, command: str | None = None):
        self.command = command
        super().__init__(message)


class EndpointIOError(ModemError):
    """Endpoint failed to open, write or read."""

    outcome = Outcome.IO_ERROR


class CommandTimeout(ModemError):
    """No terminal line arrived before the deadline."""

    outcome = Outcome.TIMEOUT


class DeviceError(ModemError):
    """The modem answered with an ERROR line."""

    outcome = Outcome.DEVICE_ERROR


class ParseError(ModemError):
    """A listing meta line did not match the expected pattern."""

    def __init__(self, message: str, line: str):
        self.line = line
        super().__init__(message)


_ERRORS: dict[Outcome, type[ModemError]] = {
    Outcome.DEVICE_ERROR: DeviceError,
    Outcome.TIMEOUT: CommandTimeout,
    Outcome.IO_ERROR: EndpointIOError,
}


# =============================================================================
# Result
# =============================================================================


@dataclass(frozen=True, slots=True)
class CommandResult:
    """
    Result of one AT transaction.

    Attributes:
        outcome: Terminal outcome tag
        command: Printable form of the command that was sent
        lines: Response content (only populated on SUCCESS)
        transcript: Every inbound line in arrival order, terminal line included
        error: Error description for failed outcomes
        attempts: Number of transactions spent producing this result
    """

    outcome: Outcome
    command: str
    lines: tuple[str, ...] = ()
    transcript: tuple[str, ...] = ()
    error: str | None = None
    attempts: int = 1

    @classmethod
    def ok(
        cls,
        command: str,
        lines: Sequence[str],
        transcript: Sequence[str] = (),
    ) -> CommandResult:
        return cls(
            outcome=Outcome.SUCCESS,
            command=command,
            lines=tuple(lines),
            transcript=tuple(transcript),
        )

    @classmethod
    def failure(
        cls,
        outcome: Outcome,
        command: str,
        error: str,
        transcript: Sequence[str] = (),
    ) -> CommandResult:
        if outcome in (Outcome.SUCCESS, Outcome.PENDING):
            raise ValueError(f"{outcome.value} is not a failure outcome")
        return cls(
            outcome=outcome,
            command=command,
            transcript=tuple(transcript),
            error=error,
        )

    @property
    def success(self) -> bool:
        return self.outcome is Outcome.SUCCESS

    def unwrap(self) -> tuple[str, ...]:
        """
        Return the response lines or raise the matching ModemError.

        Raises:
            DeviceError, CommandTimeout, EndpointIOError
        """
        if self.success:
            return self.lines
        raise _ERRORS[self.outcome](self.error or self.outcome.value, command=self.command)

    def to_dict(self) -> dict[str, Any]:
        """Serialize for logging and HTTP responses."""
        return {
            "success": self.success,
            "outcome": self.outcome.value,
            "command": self.command,
            "lines": list(self.lines),
            "error": self.error,
            "attempts": self.attempts,
        }


__all__ = [
    "CommandResult",
    "CommandTimeout",
    "DeviceError",
    "EndpointIOError",
    "ModemError",
    "Outcome",
    "ParseError",
]
