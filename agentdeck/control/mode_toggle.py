"""
YOLO mode toggle — the locally staged flag for the next start.
Once the agent is live, the runtime's reported flag wins.
"""

import logging

from agentdeck.control.gate import InvalidTransitionError
from agentdeck.control.status import ACTIVE_STATUSES, StatusModel, status_name

logger = logging.getLogger(__name__)


class ModeToggle:
    """Staged YOLO preference, editable only while the agent is down."""

    def __init__(self, status_model: StatusModel):
        self.status_model = status_model
        self._enabled = False

    @property
    def enabled(self) -> bool:
        return self._enabled

    @property
    def editable(self) -> bool:
        return self.status_model.is_terminal()

    def set(self, value: bool) -> None:
        """
        Stage the YOLO flag for the next start.

        Raises:
            InvalidTransitionError: If the agent is running or paused, or its
                status has not been observed yet.
        """
        if not self.editable:
            raise InvalidTransitionError(
                f"YOLO mode can only be changed while stopped or crashed "
                f"(agent is {status_name(self.status_model.status)})"
            )
        self._enabled = value
        logger.info(
            f"[{self.status_model.project_name}] YOLO staged "
            f"{'on' if value else 'off'}"
        )

    def toggle(self) -> bool:
        self.set(not self._enabled)
        return self._enabled

    def effective(self) -> bool:
        """The YOLO flag that currently applies: reported while live, staged otherwise."""
        if self.status_model.status in ACTIVE_STATUSES:
            return self.status_model.yolo_mode
        return self._enabled
