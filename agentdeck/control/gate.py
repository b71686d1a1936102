"""
Command gate — the single choke point for lifecycle commands.
Decides which commands the current status permits, refuses everything while
another command is in flight, and forwards accepted commands to the service.
"""

import logging
from dataclasses import dataclass
from typing import Awaitable, Callable, Optional

from agentdeck.client.agent_api import AgentCommandError, AgentCommandService
from agentdeck.control.operations import CommandKind, OperationTracker
from agentdeck.control.status import AgentStatus, StatusModel

logger = logging.getLogger(__name__)


class InvalidTransitionError(Exception):
    """Raised when a command or transition is not allowed right now."""
    pass


# Whitelist of permitted commands per status. Every status must be listed.
PERMITTED_COMMANDS: dict[AgentStatus, frozenset[CommandKind]] = {
    AgentStatus.STOPPED: frozenset({CommandKind.START, CommandKind.RESET}),
    AgentStatus.CRASHED: frozenset({CommandKind.START, CommandKind.RESET}),
    AgentStatus.RUNNING: frozenset({CommandKind.PAUSE, CommandKind.STOP}),
    AgentStatus.PAUSED: frozenset({CommandKind.RESUME, CommandKind.STOP}),
}


def permitted_for(status: AgentStatus) -> frozenset[CommandKind]:
    """Commands a status allows, ignoring busy. Unknown statuses raise KeyError."""
    return PERMITTED_COMMANDS[status]


@dataclass(frozen=True)
class CommandOutcome:
    """Settlement of one accepted command."""

    kind: CommandKind
    ok: bool
    error: Optional[str] = None


class CommandGate:
    """Validates and dispatches lifecycle commands for one project."""

    def __init__(
        self,
        project_name: str,
        status_model: StatusModel,
        tracker: OperationTracker,
        service: AgentCommandService,
    ):
        self.project_name = project_name
        self.status_model = status_model
        self.tracker = tracker
        self.service = service

    def permitted(self) -> frozenset[CommandKind]:
        """Commands that would be accepted right now."""
        if self.tracker.busy or not self.status_model.observed:
            return frozenset()
        return permitted_for(self.status_model.status)

    async def start(self, yolo: bool) -> CommandOutcome:
        return await self._dispatch(
            CommandKind.START,
            lambda: self.service.start_agent(self.project_name, yolo),
            detail="yolo" if yolo else "",
        )

    async def stop(self) -> CommandOutcome:
        return await self._dispatch(
            CommandKind.STOP, lambda: self.service.stop_agent(self.project_name)
        )

    async def pause(self) -> CommandOutcome:
        return await self._dispatch(
            CommandKind.PAUSE, lambda: self.service.pause_agent(self.project_name)
        )

    async def resume(self) -> CommandOutcome:
        return await self._dispatch(
            CommandKind.RESUME, lambda: self.service.resume_agent(self.project_name)
        )

    async def reset_project(self, project_name: str) -> CommandOutcome:
        return await self._dispatch(
            CommandKind.RESET, lambda: self.service.reset_project(project_name)
        )

    def check(self, kind: CommandKind) -> None:
        """
        Verify a command may be issued now.

        Raises:
            InvalidTransitionError: If busy, no status has been observed yet,
                or the status does not permit `kind`.
        """
        if self.tracker.busy:
            pending = sorted(k.value for k in self.tracker.in_flight)
            raise InvalidTransitionError(
                f"Cannot {kind.value}: command already in flight ({', '.join(pending)})"
            )
        status = self.status_model.status
        if status is None:
            raise InvalidTransitionError(
                f"Cannot {kind.value}: agent status has not been observed yet"
            )
        if kind not in permitted_for(status):
            allowed = sorted(k.value for k in permitted_for(status))
            raise InvalidTransitionError(
                f"Cannot {kind.value} while {status.value}. Allowed: {allowed}"
            )

    async def _dispatch(
        self,
        kind: CommandKind,
        call: Callable[[], Awaitable[None]],
        detail: str = "",
    ) -> CommandOutcome:
        # Check and registration happen before the first await, so two
        # concurrent callers can never both get through.
        self.check(kind)
        async with self.tracker.track(kind):
            logger.info(
                f"[{self.project_name}] issuing {kind.value}"
                f"{f' ({detail})' if detail else ''}"
            )
            try:
                await call()
            except AgentCommandError as e:
                logger.warning(f"[{self.project_name}] {kind.value} failed: {e}")
                return CommandOutcome(kind, ok=False, error=str(e))
            except Exception as e:
                logger.error(
                    f"[{self.project_name}] {kind.value} failed unexpectedly: {e}",
                    exc_info=True,
                )
                return CommandOutcome(kind, ok=False, error=f"Unexpected error: {e}")

        logger.info(f"[{self.project_name}] {kind.value} settled")
        return CommandOutcome(kind, ok=True)
