"""
Tests for CommandChannel.

Covers terminal detection, deadline handling, endpoint release on every
exit path, and plural (SMS submission) writes.
"""
import asyncio

import pytest

from simgate.modem import (
    CommandChannel,
    CommandResult,
    CommandTimeout,
    DeviceError,
    EndpointIOError,
    Outcome,
    describe_command,
    frame_command,
)


# =============================================================================
# Framing Tests
# =============================================================================


class TestFraming:
    """Tests for command framing helpers."""

    def test_single_command_is_cr_terminated(self):
        assert frame_command("AT+CPIN?") == [b"AT+CPIN?\r"]

    def test_plural_command_written_verbatim(self):
        frames = frame_command(['AT+CMGS="+1555"\r', "hello\x1a"])
        assert frames == [b'AT+CMGS="+1555"\r', b"hello\x1a"]

    def test_empty_sequence_rejected(self):
        with pytest.raises(ValueError):
            frame_command([])

    def test_describe_plural_command(self):
        label = describe_command(['AT+CMGS="+1555"\r', "hello\x1a"])
        assert label == 'AT+CMGS="+1555" | hello^Z'


# =============================================================================
# Terminal Detection Tests
# =============================================================================


class TestTerminalDetection:
    """Tests for OK / ERROR handling."""

    @pytest.mark.asyncio
    async def test_success_collects_lines(self, make_modem, make_channel):
        modem = make_modem({"AT+CPIN?": ["AT+CPIN?", "+CPIN: READY", "", "OK"]})
        channel = make_channel(modem)

        result = await channel.send("AT+CPIN?")

        assert result.success is True
        assert result.outcome is Outcome.SUCCESS
        assert result.lines == ("AT+CPIN?", "+CPIN: READY")
        assert modem.writes == ["AT+CPIN?\r"]

    @pytest.mark.asyncio
    async def test_short_lines_are_skipped(self, make_modem, make_channel):
        modem = make_modem({"AT": ["", ">", "x1", "OK"]})
        result = await make_channel(modem).send("AT")

        assert result.lines == ("x1",)

    @pytest.mark.asyncio
    async def test_transcript_keeps_every_line(self, make_modem, make_channel):
        modem = make_modem({"AT": ["AT", "", "OK"]})
        result = await make_channel(modem).send("AT")

        assert result.transcript == ("AT", "", "OK")

    @pytest.mark.asyncio
    async def test_error_discards_partial_buffer(self, make_modem, make_channel):
        modem = make_modem({"AT+CCFC=0,2": ["+CCFC: partial", "+CME ERROR: 30"]})
        result = await make_channel(modem).send("AT+CCFC=0,2")

        assert result.success is False
        assert result.outcome is Outcome.DEVICE_ERROR
        assert result.lines == ()
        assert result.error == "+CME ERROR: 30"

    @pytest.mark.asyncio
    async def test_ok_before_error_wins(self, make_modem, make_channel):
        modem = make_modem({"AT": ["OK", "ERROR"]})
        result = await make_channel(modem).send("AT")

        assert result.success is True

    @pytest.mark.asyncio
    async def test_error_before_ok_fails(self, make_modem, make_channel):
        modem = make_modem({"AT": ["ERROR", "OK"]})
        result = await make_channel(modem).send("AT")

        assert result.outcome is Outcome.DEVICE_ERROR

    @pytest.mark.asyncio
    async def test_substring_ok_terminates(self, make_modem, make_channel):
        """A body line containing OK ends the transaction early."""
        modem = make_modem({'AT+CMGL="ALL"': [
            '+CMGL: 1,"REC READ","+1555",,"25/01/21"',
            "LOOKS OK TO ME",
            "second line",
            "OK",
        ]})
        result = await make_channel(modem).send('AT+CMGL="ALL"')

        assert result.success is True
        assert result.lines[-1] == "LOOKS OK TO ME"
        assert "second line" not in result.lines


# =============================================================================
# Deadline and Release Tests
# =============================================================================


class TestDeadlineAndRelease:
    """Tests for timeout handling and endpoint release."""

    @pytest.mark.asyncio
    async def test_timeout_when_no_terminal_line(self, make_modem, make_channel):
        modem = make_modem({"AT": ["AT"]})
        channel = make_channel(modem, timeout=0.05)

        result = await channel.send("AT")

        assert result.outcome is Outcome.TIMEOUT
        assert result.transcript == ("AT",)
        assert modem.all_closed

    @pytest.mark.asyncio
    async def test_per_call_timeout_override(self, make_modem, make_channel):
        modem = make_modem()
        channel = make_channel(modem, timeout=30.0)

        result = await channel.send("AT", timeout=0.05)

        assert result.outcome is Outcome.TIMEOUT

    @pytest.mark.asyncio
    async def test_timeout_releases_lease_for_next_transaction(
        self, make_modem, make_channel, lease
    ):
        modem = make_modem({"AT": ["OK"]})
        channel = make_channel(modem, timeout=0.05)

        first = await channel.send("AT+HANG")
        assert first.outcome is Outcome.TIMEOUT
        assert lease.is_held(modem.target) is False

        second = await asyncio.wait_for(channel.send("AT"), timeout=0.5)
        assert second.success is True

    @pytest.mark.asyncio
    async def test_open_failure_is_io_error(self, make_modem, make_channel):
        modem = make_modem(fail_open=True)
        result = await make_channel(modem).send("AT")

        assert result.outcome is Outcome.IO_ERROR
        assert "no such device" in result.error
        assert modem.endpoints[0].close_calls == 1

    @pytest.mark.asyncio
    async def test_endpoint_closed_without_terminal_is_io_error(
        self, make_modem, make_channel
    ):
        modem = make_modem({"AT": ["AT"]})
        channel = make_channel(modem, timeout=1.0)

        async def close_soon():
            await asyncio.sleep(0.02)
            await modem.endpoints[0].close()

        closer = asyncio.create_task(close_soon())
        result = await channel.send("AT")
        await closer

        assert result.outcome is Outcome.IO_ERROR

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "responses,outcome",
        [
            (["OK"], Outcome.SUCCESS),
            (["ERROR"], Outcome.DEVICE_ERROR),
            ([], Outcome.TIMEOUT),
        ],
    )
    async def test_every_outcome_closes_endpoint(
        self, make_modem, make_channel, responses, outcome
    ):
        modem = make_modem({"AT": responses})
        result = await make_channel(modem, timeout=0.05).send("AT")

        assert result.outcome is outcome
        assert len(modem.endpoints) == 1
        assert modem.endpoints[0].closed is True

    @pytest.mark.asyncio
    async def test_fresh_endpoint_per_transaction(self, make_modem, make_channel):
        modem = make_modem({"AT": ["OK"]})
        channel = make_channel(modem)

        await channel.send("AT")
        await channel.send("AT")

        assert len(modem.endpoints) == 2
        assert modem.endpoints[0] is not modem.endpoints[1]


# =============================================================================
# Serialisation Tests
# =============================================================================


class TestLeaseSerialisation:
    """Concurrent callers must never have the device open at the same time."""

    @pytest.mark.asyncio
    async def test_concurrent_sends_do_not_overlap(self, make_modem, lease):
        modem = make_modem({"AT": ["OK"]}, open_delay=0.02)
        first = CommandChannel(modem.factory, lease, timeout=1.0)
        second = CommandChannel(modem.factory, lease, timeout=1.0)

        results = await asyncio.gather(
            first.send("AT"),
            second.send("AT"),
            first.send("AT"),
        )

        assert all(result.success for result in results)
        assert modem.max_active == 1

    @pytest.mark.asyncio
    async def test_different_targets_run_independently(self, make_modem, lease):
        usb2 = make_modem({"AT": ["OK"]}, target="/dev/ttyUSB2", open_delay=0.02)
        usb3 = make_modem({"AT": ["OK"]}, target="/dev/ttyUSB3", open_delay=0.02)

        await asyncio.gather(
            CommandChannel(usb2.factory, lease).send("AT"),
            CommandChannel(usb3.factory, lease).send("AT"),
        )

        assert usb2.max_active == 1
        assert usb3.max_active == 1


# =============================================================================
# Plural Command Tests
# =============================================================================


class TestPluralCommands:
    """Tests for SMS-style multi-part submissions."""

    @pytest.mark.asyncio
    async def test_all_parts_written_before_reading(self, make_modem, make_channel):
        modem = make_modem({
            'AT+CMGS="+1555"': ["> "],
            "hello\x1a": ["+CMGS: 12", "", "OK"],
        })
        result = await make_channel(modem).send(['AT+CMGS="+1555"\r', "hello\x1a"])

        assert result.success is True
        assert modem.writes == ['AT+CMGS="+1555"\r', "hello\x1a"]
        assert result.lines == ("> ", "+CMGS: 12")


# =============================================================================
# CommandResult Tests
# =============================================================================


class TestCommandResult:
    """Tests for CommandResult helpers."""

    def test_unwrap_success(self):
        result = CommandResult.ok("AT", ["a", "b"])
        assert result.unwrap() == ("a", "b")

    @pytest.mark.parametrize(
        "outcome,error_type",
        [
            (Outcome.DEVICE_ERROR, DeviceError),
            (Outcome.TIMEOUT, CommandTimeout),
            (Outcome.IO_ERROR, EndpointIOError),
        ],
    )
    def test_unwrap_failure_raises(self, outcome, error_type):
        result = CommandResult.failure(outcome, "AT", "boom")
        with pytest.raises(error_type) as exc_info:
            result.unwrap()
        assert exc_info.value.command == "AT"
        assert exc_info.value.outcome is outcome

    def test_failure_rejects_success_outcome(self):
        with pytest.raises(ValueError):
            CommandResult.failure(Outcome.SUCCESS, "AT", "nope")

    def test_is_immutable(self):
        result = CommandResult.ok("AT", [])
        with pytest.raises(Exception):  # frozen dataclass
            result.outcome = Outcome.TIMEOUT

    def test_to_dict(self):
        data = CommandResult.ok("AT+CPIN?", ["+CPIN: READY"]).to_dict()
        assert data == {
            "success": True,
            "outcome": "success",
            "command": "AT+CPIN?",
            "lines": ["+CPIN: READY"],
            "error": None,
            "attempts": 1,
        }
