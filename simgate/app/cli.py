"""Interactive AT console.

Runs AT commands typed at an ``AT>`` prompt against the local modem, or
against a remote TunnelBridge with --remote HOST:PORT. Every command goes
through the same RetryingChannel the services use.

Examples:
    # Local serial device from SIMGATE_SERIAL_PORT
    python -m simgate.app.cli

    # Remote modem behind an SSH-forwarded tunnel
    python -m simgate.app.cli --remote localhost:3000
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from functools import partial

import click

from simgate.app.dependencies import default_endpoint_factory, get_settings
from simgate.modem import (
    NO_RETRY,
    CommandChannel,
    DeviceLease,
    RetryingChannel,
    RetryPolicy,
    TcpEndpoint,
)

logger = logging.getLogger(__name__)

EXIT_WORDS = ("exit", "quit")


def parse_remote(ctx: click.Context | None, param: click.Parameter | None, value: str | None):
    """Click callback turning HOST:PORT into a (host, port) tuple."""
    if value is None:
        return None

    host, sep, port = value.rpartition(":")
    if not sep or not host or not port.isdigit() or not 0 < int(port) < 65536:
        raise click.BadParameter("Invalid remote format. Use: host:port")
    return host, int(port)


def read_command() -> str | None:
    """Prompt for one command; None on EOF or Ctrl-C."""
    try:
        return click.prompt("AT", prompt_suffix="> ", default="", show_default=False)
    except click.Abort:
        return None


async def run_console(
    modem: RetryingChannel,
    read: Callable[[], str | None] = read_command,
) -> int:
    """
    Read-eval-print loop over modem.

    Returns:
        Number of commands executed
    """
    loop = asyncio.get_running_loop()
    executed = 0

    while True:
        line = await loop.run_in_executor(None, read)
        if line is None:
            break

        command = line.strip()
        if command.lower() in EXIT_WORDS:
            break
        if not command:
            continue

        result = await modem.send(command)
        executed += 1
        for response in result.transcript:
            if response:
                click.echo(response)
        if not result.success:
            click.echo(f"Error: {result.outcome.value} ({result.error})", err=True)

    click.echo("Goodbye!")
    return executed


@click.command()
@click.option(
    "--remote",
    "-r",
    callback=parse_remote,
    metavar="HOST:PORT",
    help="Connect to a remote tunnel (e.g. localhost:3000)",
)
@click.option(
    "--timeout",
    type=float,
    default=None,
    help="Per-command deadline in seconds (default: SIMGATE_SERIAL_TIMEOUT)",
)
@click.option(
    "--no-retry",
    is_flag=True,
    help="Send each command once instead of using the configured retry policy",
)
def main(remote: tuple[str, int] | None, timeout: float | None, no_retry: bool):
    """Interactive AT command console for the simgate modem."""
    settings = get_settings()
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    if remote:
        factory = partial(TcpEndpoint, *remote)
        click.echo(f"Connected to: {remote[0]}:{remote[1]}")
    else:
        factory = default_endpoint_factory(settings)
        click.echo(f"Local modem: {settings.serial_port}")
    click.echo('Type AT commands or "exit" to quit')

    channel = CommandChannel(
        factory,
        DeviceLease(),
        timeout=timeout or settings.command_timeout,
    )
    policy = NO_RETRY if no_retry else RetryPolicy.exponential(
        max_attempts=settings.retry_attempts,
        base_delay=settings.retry_base_delay,
    )

    asyncio.run(run_console(RetryingChannel(channel, policy)))


if __name__ == "__main__":
    main()
