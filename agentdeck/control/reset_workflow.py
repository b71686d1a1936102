"""
Reset workflow — two-step confirm-then-execute state machine for the
destructive project reset. Every transition is explicit and logged.
"""

import logging
from datetime import datetime, timezone
from enum import Enum
from typing import Optional

from agentdeck.control.gate import CommandGate, InvalidTransitionError
from agentdeck.control.operations import CommandKind, OperationTracker
from agentdeck.control.status import status_name

logger = logging.getLogger(__name__)

DEFAULT_RESET_ERROR = "Failed to reset project"


class ResetState(Enum):
    IDLE = "IDLE"
    CONFIRMING = "CONFIRMING"
    EXECUTING = "EXECUTING"
    ERROR = "ERROR"


# Whitelist of allowed transitions: from_state -> [to_states]
ALLOWED_TRANSITIONS: dict[ResetState, list[ResetState]] = {
    ResetState.IDLE: [ResetState.CONFIRMING],
    ResetState.CONFIRMING: [
        ResetState.IDLE,  # user cancels
        ResetState.EXECUTING,  # user confirms
    ],
    ResetState.EXECUTING: [
        ResetState.IDLE,  # reset succeeded
        ResetState.ERROR,  # reset failed
    ],
    ResetState.ERROR: [
        ResetState.EXECUTING,  # retry
        ResetState.IDLE,  # user cancels
    ],
}

# States in which the confirmation dialog is shown
DIALOG_STATES = {ResetState.CONFIRMING, ResetState.EXECUTING, ResetState.ERROR}


class ResetWorkflow:
    """
    Confirmation dialog plus execution for one project's reset.

    A failed reset keeps the dialog open with the error shown, and waits for
    the user to retry or cancel. It never retries on its own.
    """

    def __init__(
        self,
        project_name: str,
        gate: CommandGate,
        tracker: OperationTracker,
    ):
        self.project_name = project_name
        self.gate = gate
        self.tracker = tracker
        self._state = ResetState.IDLE
        self._error: Optional[str] = None
        self._history: list[dict] = []

    @property
    def state(self) -> ResetState:
        return self._state

    @property
    def error(self) -> Optional[str]:
        return self._error

    @property
    def dialog_open(self) -> bool:
        return self._state in DIALOG_STATES

    @property
    def can_confirm(self) -> bool:
        return self._state in (ResetState.CONFIRMING, ResetState.ERROR) and not self.tracker.busy

    @property
    def can_cancel(self) -> bool:
        return self._state in (ResetState.CONFIRMING, ResetState.ERROR)

    def request(self) -> None:
        """
        Open the confirmation dialog.

        Raises:
            InvalidTransitionError: If the agent is live, a command is in
                flight, or the dialog is already open.
        """
        status_model = self.gate.status_model
        if not status_model.is_terminal():
            raise InvalidTransitionError(
                f"Reset is only available while stopped or crashed "
                f"(agent is {status_name(status_model.status)})"
            )
        if self.tracker.busy:
            raise InvalidTransitionError("Cannot open reset while a command is in flight")
        self._transition(ResetState.CONFIRMING, "user requested reset")
        self._error = None

    def cancel(self) -> None:
        """
        Close the dialog and discard any error.

        Raises:
            InvalidTransitionError: While the reset is executing or if no dialog is open.
        """
        if self._state == ResetState.EXECUTING:
            raise InvalidTransitionError("Cannot cancel while the reset is executing")
        self._transition(ResetState.IDLE, "user cancelled")
        self._error = None

    async def confirm(self) -> bool:
        """
        Execute the reset. Returns True once the project has been reset.

        Confirming while another command is in flight is a no-op and returns
        False with the dialog still confirming.

        Raises:
            InvalidTransitionError: If the dialog is not open for confirmation.
        """
        if self._state not in (ResetState.CONFIRMING, ResetState.ERROR):
            raise InvalidTransitionError(
                f"Cannot confirm reset from {self._state.value}"
            )
        if self.tracker.busy:
            logger.info(f"[{self.project_name}] reset confirm ignored: busy")
            return False

        self._transition(ResetState.EXECUTING, "user confirmed")
        # Cleared on entry so a retry never shows the previous error
        self._error = None

        try:
            outcome = await self.gate.reset_project(self.project_name)
        except InvalidTransitionError as e:
            self._fail(str(e))
            return False

        if outcome.ok:
            self._transition(ResetState.IDLE, "reset succeeded")
            self._error = None
            return True

        self._fail(outcome.error)
        return False

    def get_history(self) -> list[dict]:
        """Get the full transition history."""
        return self._history.copy()

    def _fail(self, message: Optional[str]) -> None:
        message = message or DEFAULT_RESET_ERROR
        self._transition(ResetState.ERROR, f"reset failed: {message}")
        self._error = message

    def _transition(self, to_state: ResetState, reason: str) -> None:
        from_state = self._state
        allowed = ALLOWED_TRANSITIONS.get(from_state, [])
        if to_state not in allowed:
            raise InvalidTransitionError(
                f"Illegal reset transition: {from_state.value} → {to_state.value}. "
                f"Allowed: {[s.value for s in allowed]}"
            )

        self._history.append({
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "from": from_state.value,
            "to": to_state.value,
            "reason": reason,
        })
        self._state = to_state

        logger.info(
            f"[Reset {self.project_name}] "
            f"{from_state.value} → {to_state.value} ({reason})"
        )
