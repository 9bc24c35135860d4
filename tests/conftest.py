"""
Pytest configuration and fixtures for simgate tests.
"""

import asyncio
import sys
from pathlib import Path

import pytest

# Add the repository root to path for imports
# This allows `from simgate.modem import ...` to work
repo_root = Path(__file__).parent.parent
if str(repo_root) not in sys.path:
    sys.path.insert(0, str(repo_root))

from simgate.modem import CommandChannel, DeviceLease, EndpointIOError  # noqa: E402


class FakeModem:
    """
    Scripted modem shared by every endpoint it hands out.

    responses maps a written command (without its trailing CR) to the lines
    the modem answers with, or to a callable returning them. Unknown
    commands get no answer at all, which lets tests provoke timeouts. With
    echo set, every CR-terminated write is echoed back first, as a modem in
    ATE1 mode does.
    """

    def __init__(
        self,
        responses=None,
        *,
        target="/dev/ttyFAKE",
        fail_open=False,
        open_delay=0.0,
        echo=False,
    ):
        self.responses = dict(responses or {})
        self.target = target
        self.fail_open = fail_open
        self.open_delay = open_delay
        self.echo = echo
        self.writes = []
        self.endpoints = []
        self.active = 0
        self.max_active = 0

    def respond(self, data):
        value = self.responses.get(data.rstrip("\r"), [])
        if callable(value):
            value = value()
        return list(value)

    def factory(self):
        endpoint = FakeEndpoint(self)
        self.endpoints.append(endpoint)
        return endpoint

    @property
    def all_closed(self):
        return all(endpoint.closed for endpoint in self.endpoints)


class FakeEndpoint:
    """In-memory TransportEndpoint driven by a FakeModem."""

    def __init__(self, modem):
        self._modem = modem
        self._queue = asyncio.Queue()
        self._iterated = False
        self.opened = False
        self.closed = False
        self.close_calls = 0

    @property
    def target(self):
        return self._modem.target

    @property
    def is_open(self):
        return self.opened and not self.closed

    async def open(self):
        if self._modem.fail_open:
            raise EndpointIOError(f"Failed to open serial port {self.target}: no such device")
        self.opened = True
        self._modem.active += 1
        self._modem.max_active = max(self._modem.max_active, self._modem.active)
        if self._modem.open_delay:
            await asyncio.sleep(self._modem.open_delay)

    async def write(self, data):
        if not self.is_open:
            raise EndpointIOError("not open")
        text = data.decode("utf-8")
        self._modem.writes.append(text)
        if self._modem.echo and text.endswith("\r"):
            self._queue.put_nowait(text.rstrip("\r"))
        for line in self._modem.respond(text):
            self._queue.put_nowait(line)

    async def lines(self):
        if self._iterated:
            raise RuntimeError("lines() can only be iterated once per endpoint")
        self._iterated = True
        while True:
            line = await self._queue.get()
            if line is None:
                return
            yield line

    async def close(self):
        self.close_calls += 1
        if self.closed:
            return
        self.closed = True
        if self.opened:
            self._modem.active -= 1
        self._queue.put_nowait(None)


def scripted_replies(*sequence):
    """Callable answering with each reply in turn, repeating the last one."""
    remaining = list(sequence)

    def next_reply():
        if len(remaining) > 1:
            return remaining.pop(0)
        return remaining[0]

    return next_reply


@pytest.fixture
def replies():
    """Build a response callable that changes between calls."""
    return scripted_replies


@pytest.fixture
def make_modem():
    """Factory for FakeModem instances."""
    return FakeModem


@pytest.fixture
def lease():
    return DeviceLease()


@pytest.fixture
def make_channel(lease):
    """Build a CommandChannel over a FakeModem."""

    def build(modem, timeout=1.0):
        return CommandChannel(modem.factory, lease, timeout=timeout)

    return build


@pytest.fixture
def sample_listing():
    """Raw AT+CMGL response lines for two unread messages."""
    return [
        '+CMGL: 3,"REC UNREAD","+1555",,"25/01/21"',
        "hello",
        "world",
        '+CMGL: 4,"REC UNREAD","+1777",,"25/01/22"',
        "hi",
    ]


@pytest.fixture
def sample_phone():
    """Sample phone number for testing."""
    return "+48500100200"
