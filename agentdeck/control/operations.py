"""
Operation tracker — which lifecycle commands are currently in flight.
Busy is a single aggregate signal over every command kind.
"""

from contextlib import asynccontextmanager
from enum import Enum


class CommandKind(Enum):
    START = "start"
    STOP = "stop"
    PAUSE = "pause"
    RESUME = "resume"
    RESET = "reset"


class OperationTracker:
    """Set of issued-but-unsettled command kinds."""

    def __init__(self):
        self._in_flight: set[CommandKind] = set()

    @property
    def busy(self) -> bool:
        return len(self._in_flight) > 0

    @property
    def in_flight(self) -> frozenset[CommandKind]:
        return frozenset(self._in_flight)

    def is_pending(self, kind: CommandKind) -> bool:
        return kind in self._in_flight

    def begin(self, kind: CommandKind) -> None:
        # Idempotent: a kind already present stays present
        self._in_flight.add(kind)

    def finish(self, kind: CommandKind) -> None:
        # Idempotent: duplicate settlement signals are ignored
        self._in_flight.discard(kind)

    @asynccontextmanager
    async def track(self, kind: CommandKind):
        """Mark `kind` in flight for the duration of the block."""
        self.begin(kind)
        try:
            yield
        finally:
            self.finish(kind)
