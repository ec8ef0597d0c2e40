"""
surface.py - Command surface

Positional-parameter entry point: each command takes a fixed ordered list of
raw parameters and returns a hex string, the transaction id in auto-commit
mode or the unsigned transaction encoding otherwise.
"""

from __future__ import annotations
from typing import Any, List, Sequence

from .commands import COMMANDS
from .coordinator import SubmissionCoordinator
from .core import InvalidParameter


class CommandSurface:
    """
    Example:
        surface = CommandSurface(coordinator)
        txid = surface.execute("send", [alice, bob, 3, "1.5"])
        print(surface.help("send"))
    """

    def __init__(self, coordinator: SubmissionCoordinator):
        self.coordinator = coordinator

    def commands(self) -> List[str]:
        return sorted(COMMANDS)

    def help(self, command: str) -> str:
        spec = COMMANDS.get(command)
        if spec is None:
            raise InvalidParameter("command", f"Unknown command: {command!r}")
        return spec.usage

    def execute(self, command: str, params: Sequence[Any]) -> str:
        result = self.coordinator.call(command, params)
        return result.value or ""
