"""
Roster interface consumed by the jobs.

Rotation arithmetic lives outside simgate; the jobs only need the target
number for the current period and name/number lookups for SMS commands.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Protocol, runtime_checkable


@runtime_checkable
class Roster(Protocol):
    """Source of the forwarding target for the current period."""

    def current_target(self) -> str:
        """Phone number calls should be forwarded to right now."""
        ...

    def number_for(self, name: str) -> str | None:
        ...

    def name_for(self, phone_number: str | None) -> str | None:
        ...


class StaticRoster:
    """
    Roster with a fixed target and a phonebook.

    Example:
        roster = StaticRoster("+48500100200", {"Anna": "+48500100200"})
    """

    def __init__(self, target: str, phonebook: Mapping[str, str] | None = None):
        self._target = target
        self._phonebook = dict(phonebook or {})

    def current_target(self) -> str:
        return self._target

    def number_for(self, name: str) -> str | None:
        wanted = name.strip().lower()
        for entry, number in self._phonebook.items():
            if entry.lower() == wanted:
                return number
        return None

    def name_for(self, phone_number: str | None) -> str | None:
        if not phone_number:
            return None
        for name, number in self._phonebook.items():
            if number == phone_number:
                return name
        return None
