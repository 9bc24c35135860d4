"""
Retry Patterns for the AT-command engine.

Provides mechanisms for riding out transient modem failures:
- BackoffStrategy: Delay calculation between retries
- RetryPolicy: Attempt limit and backoff for one logical call
- RetryingChannel: CommandChannel wrapper that applies a RetryPolicy

Every failed outcome (IO_ERROR, TIMEOUT and DEVICE_ERROR alike) is
retried. A command the modem rejects is resent identically rather than
treated as final. Each retry is a brand new transaction.
"""

from __future__ import annotations

import asyncio
import logging
import random
from abc import ABC, abstractmethod
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field, replace

from .channel import CommandChannel, Command, describe_command
from .result import CommandResult

logger = logging.getLogger(__name__)


# =============================================================================
# Backoff Strategies
# =============================================================================


class BackoffStrategy(ABC):
    """
    Abstract base for backoff delay calculation.

    Backoff strategies determine how long to wait between retry attempts.
    """

    @abstractmethod
    def get_delay(self, attempt: int) -> float:
        """
        Calculate delay before next retry attempt.

        Args:
            attempt: Number of the attempt that just failed (1-indexed)

        Returns:
            Delay in seconds before next attempt
        """
        ...


@dataclass
class NoBackoff(BackoffStrategy):
    """
    No delay between retries.

    Use for:
    - Testing
    - Commands that should fail fast
    """

    def get_delay(self, attempt: int) -> float:
        return 0.0


@dataclass
class ConstantBackoff(BackoffStrategy):
    """
    Fixed delay between retries.

    Example:
        backoff = ConstantBackoff(delay=1.0)
        # Always waits 1 second between retries
    """

    delay: float = 1.0

    def get_delay(self, attempt: int) -> float:
        return self.delay


@dataclass
class ExponentialBackoff(BackoffStrategy):
    """
    Exponentially increasing delay between retries.

    delay = base * (multiplier ^ (attempt - 1))

    Jitter is off by default so retries land at predictable offsets.

    Example:
        backoff = ExponentialBackoff(base=1.0)
        # After failure 1: 1s, after failure 2: 2s, after failure 3: 4s, ...
    """

    base: float = 1.0
    multiplier: float = 2.0
    max_delay: float = 60.0
    jitter: bool = False
    jitter_factor: float = 0.25  # +/- 25%

    def get_delay(self, attempt: int) -> float:
        delay = self.base * (self.multiplier ** (attempt - 1))
        delay = min(delay, self.max_delay)

        if self.jitter:
            jitter_range = delay * self.jitter_factor
            delay += random.uniform(-jitter_range, jitter_range)
            delay = max(0, delay)

        return delay


# =============================================================================
# Retry Policy
# =============================================================================


@dataclass
class RetryPolicy:
    """
    Attempt limit and backoff for one logical modem call.

    Example:
        policy = RetryPolicy(
            max_attempts=3,
            backoff=ExponentialBackoff(base=1.0),
        )
    """

    max_attempts: int = 3
    backoff: BackoffStrategy = field(default_factory=ExponentialBackoff)

    def __post_init__(self) -> None:
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")

    @classmethod
    def exponential(cls, max_attempts: int = 3, base_delay: float = 1.0) -> RetryPolicy:
        """Policy waiting base_delay * 2^(attempt-1) between attempts, uncapped."""
        return cls(
            max_attempts=max_attempts,
            backoff=ExponentialBackoff(base=base_delay, multiplier=2.0, max_delay=float("inf")),
        )

    def should_retry(self, attempt: int, result: CommandResult) -> bool:
        """
        Determine if another attempt should be made.

        Args:
            attempt: Number of the attempt that produced result (1-indexed)
            result: Outcome of that attempt
        """
        if result.success:
            return False
        return attempt < self.max_attempts

    def get_delay(self, attempt: int) -> float:
        """Get delay before next retry attempt."""
        return self.backoff.get_delay(attempt)


NO_RETRY = RetryPolicy(max_attempts=1, backoff=NoBackoff())

DEFAULT_RETRY = RetryPolicy.exponential(max_attempts=3, base_delay=1.0)


# =============================================================================
# Retrying Channel
# =============================================================================


class RetryingChannel:
    """
    Wraps a CommandChannel with bounded retries and backoff.

    On exhaustion the final attempt's result is returned unchanged apart
    from its attempts count.

    Example:
        modem = RetryingChannel(channel, RetryPolicy.exponential(3, 1.0))
        result = await modem.send("AT+CCFC=0,2")
        if not result.success:
            ...  # trigger recovery
    """

    def __init__(
        self,
        channel: CommandChannel,
        policy: RetryPolicy | None = None,
        *,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        logger: logging.Logger | None = None,
    ):
        self._channel = channel
        self._policy = policy or DEFAULT_RETRY
        self._sleep = sleep
        self._logger = logger or logging.getLogger(__name__)

    @property
    def channel(self) -> CommandChannel:
        return self._channel

    @property
    def policy(self) -> RetryPolicy:
        return self._policy

    async def send(
        self,
        command: Command,
        timeout: float | None = None,
        policy: RetryPolicy | None = None,
    ) -> CommandResult:
        """
        Run command, retrying failed transactions per policy.

        Args:
            command: Single command or plural command sequence
            timeout: Per-transaction deadline override
            policy: Per-call policy override
        """
        policy = policy or self._policy
        label = describe_command(command)
        attempt = 0

        while True:
            attempt += 1
            self._logger.info(f"Sending AT command (attempt {attempt}/{policy.max_attempts}): {label}")

            result = await self._channel.send(command, timeout=timeout)

            if not policy.should_retry(attempt, result):
                break

            delay = policy.get_delay(attempt)
            self._logger.warning(
                f"AT command failed with {result.outcome.value} "
                f"(attempt {attempt}/{policy.max_attempts}), "
                f"retrying in {delay:.2f}s: {label}"
            )
            await self._sleep(delay)

        if not result.success:
            self._logger.error(
                f"AT command failed after {attempt} attempts, "
                f"last outcome: {result.outcome.value}: {label}"
            )

        return replace(result, attempts=attempt)


__all__ = [
    "DEFAULT_RETRY",
    "NO_RETRY",
    "BackoffStrategy",
    "ConstantBackoff",
    "ExponentialBackoff",
    "NoBackoff",
    "RetryPolicy",
    "RetryingChannel",
]
