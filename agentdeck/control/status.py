"""
Agent status model — the last observed lifecycle status and YOLO flag.
The coordinator never infers status; it only stores what it is told.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Optional

logger = logging.getLogger(__name__)


class AgentStatus(Enum):
    STOPPED = "stopped"
    RUNNING = "running"
    PAUSED = "paused"
    CRASHED = "crashed"


# Statuses with no live process — start, reset and the YOLO toggle live here
TERMINAL_STATUSES = {AgentStatus.STOPPED, AgentStatus.CRASHED}

# Statuses where the runtime's reported YOLO flag is authoritative
ACTIVE_STATUSES = {AgentStatus.RUNNING, AgentStatus.PAUSED}


@dataclass(frozen=True)
class StatusIndicator:
    """Presentation triple for a status."""

    color_class: str
    label: str
    pulse: bool


INDICATORS: dict[AgentStatus, StatusIndicator] = {
    AgentStatus.STOPPED: StatusIndicator("neo-text-secondary", "Stopped", False),
    AgentStatus.RUNNING: StatusIndicator("neo-done", "Running", True),
    AgentStatus.PAUSED: StatusIndicator("neo-pending", "Paused", False),
    AgentStatus.CRASHED: StatusIndicator("neo-danger", "Crashed", True),
}


# Shown until the first observation arrives
UNKNOWN_INDICATOR = StatusIndicator("neo-text-secondary", "Unknown", False)


def indicator_for(status: Optional[AgentStatus]) -> StatusIndicator:
    if status is None:
        return UNKNOWN_INDICATOR
    return INDICATORS[status]


def status_name(status: Optional[AgentStatus]) -> str:
    return status.value if status is not None else "unknown"


@dataclass(frozen=True)
class AgentObservation:
    """One status report from the agent runtime."""

    status: AgentStatus
    yolo_mode: bool = False


class StatusModel:
    """
    Holds the most recent observation, exactly as supplied.
    Status is None until the first observation; nothing is assumed before that.
    """

    def __init__(self, project_name: str):
        self.project_name = project_name
        self._status: Optional[AgentStatus] = None
        self._yolo_mode = False

    @property
    def status(self) -> Optional[AgentStatus]:
        return self._status

    @property
    def yolo_mode(self) -> bool:
        return self._yolo_mode

    @property
    def indicator(self) -> StatusIndicator:
        return indicator_for(self._status)

    @property
    def show_yolo_badge(self) -> bool:
        """True when the runtime reports it is running or paused in YOLO mode."""
        return self._status in ACTIVE_STATUSES and self._yolo_mode

    def observe(self, status: AgentStatus, yolo_mode: bool = False) -> None:
        if status != self._status or yolo_mode != self._yolo_mode:
            logger.info(
                f"[{self.project_name}] observed {status.value}"
                f"{' (yolo)' if yolo_mode else ''}"
            )
        self._status = status
        self._yolo_mode = yolo_mode

    @property
    def observed(self) -> bool:
        return self._status is not None

    def is_terminal(self) -> bool:
        return self._status in TERMINAL_STATUSES
