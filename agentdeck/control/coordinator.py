"""
Agent control coordinator — one per active project.
Wires status, tracker, gate, reset workflow and YOLO toggle together and
exposes a snapshot for whatever surface renders the controls.
"""

import logging
from dataclasses import dataclass, field
from typing import Optional

from agentdeck.client.agent_api import AgentCommandService
from agentdeck.control.gate import (
    CommandGate,
    CommandOutcome,
    InvalidTransitionError,
)
from agentdeck.control.mode_toggle import ModeToggle
from agentdeck.control.operations import CommandKind, OperationTracker
from agentdeck.control.reset_workflow import ResetState, ResetWorkflow
from agentdeck.control.status import AgentStatus, StatusIndicator, StatusModel

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ControlView:
    """Everything a surface needs to draw the controls for one project."""

    project_name: str
    status: Optional[AgentStatus]
    indicator: StatusIndicator
    show_yolo_badge: bool
    yolo_enabled: bool
    yolo_toggle_visible: bool
    busy: bool
    in_flight: frozenset[CommandKind]
    enabled: dict[CommandKind, bool] = field(default_factory=dict)
    reset_state: ResetState = ResetState.IDLE
    reset_dialog_open: bool = False
    reset_error: Optional[str] = None
    reset_confirm_enabled: bool = False
    reset_cancel_enabled: bool = False
    last_error: Optional[str] = None


class AgentControl:
    """Lifecycle controls for one project's agent."""

    def __init__(self, project_name: str, service: AgentCommandService):
        self.project_name = project_name
        self.status_model = StatusModel(project_name)
        self.tracker = OperationTracker()
        self.gate = CommandGate(project_name, self.status_model, self.tracker, service)
        self.reset_workflow = ResetWorkflow(project_name, self.gate, self.tracker)
        self.mode_toggle = ModeToggle(self.status_model)
        self._last_error: Optional[str] = None

    @property
    def last_error(self) -> Optional[str]:
        """Most recent start/stop/pause/resume failure, until the next accepted command."""
        return self._last_error

    def observe(self, status: AgentStatus, yolo_mode: bool = False) -> None:
        self.status_model.observe(status, yolo_mode)

    def view(self) -> ControlView:
        permitted = self.gate.permitted()
        workflow = self.reset_workflow
        return ControlView(
            project_name=self.project_name,
            status=self.status_model.status,
            indicator=self.status_model.indicator,
            show_yolo_badge=self.status_model.show_yolo_badge,
            yolo_enabled=self.mode_toggle.enabled,
            yolo_toggle_visible=self.mode_toggle.editable,
            busy=self.tracker.busy,
            in_flight=self.tracker.in_flight,
            enabled={kind: kind in permitted for kind in CommandKind},
            reset_state=workflow.state,
            reset_dialog_open=workflow.dialog_open,
            reset_error=workflow.error,
            reset_confirm_enabled=workflow.can_confirm,
            reset_cancel_enabled=workflow.can_cancel,
            last_error=self._last_error,
        )

    async def start(self) -> Optional[CommandOutcome]:
        # The staged flag is read exactly once, here
        yolo = self.mode_toggle.enabled
        return await self._issue(CommandKind.START, lambda: self.gate.start(yolo))

    async def stop(self) -> Optional[CommandOutcome]:
        return await self._issue(CommandKind.STOP, self.gate.stop)

    async def pause(self) -> Optional[CommandOutcome]:
        return await self._issue(CommandKind.PAUSE, self.gate.pause)

    async def resume(self) -> Optional[CommandOutcome]:
        return await self._issue(CommandKind.RESUME, self.gate.resume)

    def toggle_yolo(self) -> Optional[bool]:
        try:
            return self.mode_toggle.toggle()
        except InvalidTransitionError as e:
            logger.warning(f"[{self.project_name}] YOLO toggle refused: {e}")
            return None

    def open_reset(self) -> bool:
        try:
            self.reset_workflow.request()
        except InvalidTransitionError as e:
            logger.warning(f"[{self.project_name}] reset refused: {e}")
            return False
        return True

    def cancel_reset(self) -> bool:
        try:
            self.reset_workflow.cancel()
        except InvalidTransitionError as e:
            logger.warning(f"[{self.project_name}] reset cancel refused: {e}")
            return False
        return True

    async def confirm_reset(self) -> bool:
        try:
            return await self.reset_workflow.confirm()
        except InvalidTransitionError as e:
            logger.warning(f"[{self.project_name}] reset confirm refused: {e}")
            return False

    async def _issue(self, kind: CommandKind, command) -> Optional[CommandOutcome]:
        try:
            self.gate.check(kind)
        except InvalidTransitionError as e:
            logger.warning(f"[{self.project_name}] {kind.value} refused: {e}")
            return None

        self._last_error = None
        outcome = await command()
        if not outcome.ok:
            self._last_error = outcome.error
        return outcome
