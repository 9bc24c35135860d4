"""
Tests for the interactive AT console.
"""
import socket

import click
import pytest
from click.testing import CliRunner

from simgate.app.cli import main, parse_remote, run_console
from simgate.modem import NO_RETRY, RetryingChannel


def scripted_input(*lines):
    """Reader returning each line in turn, then None (EOF)."""
    remaining = list(lines)
    return lambda: remaining.pop(0) if remaining else None


def unused_port():
    with socket.socket() as sock:
        sock.bind(("127.0.0.1", 0))
        return sock.getsockname()[1]


class TestParseRemote:
    """Tests for the --remote option callback."""

    def test_host_and_port(self):
        assert parse_remote(None, None, "localhost:3000") == ("localhost", 3000)

    def test_not_given(self):
        assert parse_remote(None, None, None) is None

    @pytest.mark.parametrize("value", ["localhost", ":3000", "localhost:abc", "localhost:70000"])
    def test_invalid(self, value):
        with pytest.raises(click.BadParameter):
            parse_remote(None, None, value)


class TestRunConsole:
    """Tests for the read-eval-print loop."""

    @pytest.mark.asyncio
    async def test_prints_transcript(self, make_modem, make_channel, capsys):
        modem = make_modem({"AT+CSQ": ["+CSQ: 20,99", "", "OK"]})
        console = RetryingChannel(make_channel(modem), NO_RETRY)

        executed = await run_console(console, read=scripted_input("AT+CSQ", "exit"))

        out = capsys.readouterr().out
        assert executed == 1
        assert "+CSQ: 20,99\nOK\n" in out
        assert out.endswith("Goodbye!\n")

    @pytest.mark.asyncio
    async def test_blank_lines_are_skipped(self, make_modem, make_channel):
        modem = make_modem({"AT": ["OK"]})
        console = RetryingChannel(make_channel(modem), NO_RETRY)

        executed = await run_console(console, read=scripted_input("", "  ", " AT ", "QUIT", "AT"))

        assert executed == 1
        assert modem.writes == ["AT\r"]

    @pytest.mark.asyncio
    async def test_failure_reported_on_stderr(self, make_modem, make_channel, capsys):
        modem = make_modem({"AT+CPIN=0000": ["+CME ERROR: 16"]})
        console = RetryingChannel(make_channel(modem), NO_RETRY)

        await run_console(console, read=scripted_input("AT+CPIN=0000"))

        captured = capsys.readouterr()
        assert "+CME ERROR: 16" in captured.out
        assert "Error: device_error (+CME ERROR: 16)" in captured.err


class TestMainCommand:
    """Tests for the click entry point."""

    def test_rejects_bad_remote(self):
        result = CliRunner().invoke(main, ["--remote", "nowhere"])

        assert result.exit_code == 2
        assert "host:port" in result.output

    def test_unreachable_remote_reports_io_error(self):
        port = unused_port()

        result = CliRunner().invoke(
            main,
            ["--remote", f"127.0.0.1:{port}", "--no-retry", "--timeout", "2"],
            input="AT\nexit\n",
        )

        assert result.exit_code == 0
        assert f"Connected to: 127.0.0.1:{port}" in result.output
        assert "io_error" in result.output
        assert "Goodbye!" in result.output
