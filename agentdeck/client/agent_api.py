"""
Agent API client — async httpx wrapper for the agent-command service.
Issues lifecycle commands for a project and reads its current status.
"""

import logging
from typing import Optional, Protocol
from urllib.parse import quote

import httpx

from agentdeck.control.status import AgentObservation, AgentStatus

logger = logging.getLogger(__name__)


class AgentCommandError(Exception):
    """Raised when the agent API rejects a command or cannot be reached."""
    pass


class AgentCommandService(Protocol):
    """Backend interface for issuing lifecycle commands to one agent."""

    async def start_agent(self, project_name: str, yolo_mode: bool = False) -> None: ...

    async def stop_agent(self, project_name: str) -> None: ...

    async def pause_agent(self, project_name: str) -> None: ...

    async def resume_agent(self, project_name: str) -> None: ...

    async def reset_project(self, project_name: str) -> None: ...


class AgentApiClient:
    """Async client for the agent server's REST API."""

    def __init__(
        self,
        base_url: str = "http://localhost:8888",
        timeout: float = 30.0,
    ):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout

    def _project_url(self, project_name: str) -> str:
        return f"{self.base_url}/api/projects/{quote(project_name, safe='')}"

    async def start_agent(self, project_name: str, yolo_mode: bool = False) -> None:
        """
        Start the agent for a project.

        Args:
            project_name: Project whose agent should start.
            yolo_mode: Skip the testing step for this run.

        Raises:
            AgentCommandError: If the API call fails.
        """
        await self._request(
            "POST",
            f"{self._project_url(project_name)}/agent/start",
            json={"yolo_mode": yolo_mode},
        )

    async def stop_agent(self, project_name: str) -> None:
        await self._request("POST", f"{self._project_url(project_name)}/agent/stop")

    async def pause_agent(self, project_name: str) -> None:
        await self._request("POST", f"{self._project_url(project_name)}/agent/pause")

    async def resume_agent(self, project_name: str) -> None:
        await self._request("POST", f"{self._project_url(project_name)}/agent/resume")

    async def reset_project(self, project_name: str) -> None:
        """
        Delete all features for a project and mark it for re-initialisation.
        The app spec and project files are preserved server-side.
        """
        await self._request("POST", f"{self._project_url(project_name)}/reset")

    async def get_status(self, project_name: str) -> AgentObservation:
        """
        Read the agent's current status.

        Raises:
            AgentCommandError: If the API call fails or reports an unknown status.
        """
        data = await self._request(
            "GET", f"{self._project_url(project_name)}/agent/status"
        )
        try:
            status = AgentStatus(data.get("status"))
        except ValueError:
            raise AgentCommandError(f"Unknown agent status: {data.get('status')!r}")
        return AgentObservation(status=status, yolo_mode=bool(data.get("yolo_mode", False)))

    async def _request(
        self,
        method: str,
        url: str,
        json: Optional[dict] = None,
    ) -> dict:
        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.request(method, url, json=json)
                response.raise_for_status()
                logger.debug(f"{method} {url} -> {response.status_code}")
                if not response.content:
                    return {}
                data = response.json()
                return data if isinstance(data, dict) else {}

        except httpx.TimeoutException:
            raise AgentCommandError(
                f"Agent API timed out after {self.timeout}s"
            )
        except httpx.ConnectError:
            raise AgentCommandError(
                f"Cannot connect to agent API at {self.base_url}"
            )
        except httpx.HTTPStatusError as e:
            raise AgentCommandError(_error_detail(e.response))
        except Exception as e:
            raise AgentCommandError(f"Unexpected error: {e}")


def _error_detail(response: httpx.Response) -> str:
    """Prefer the server's `detail` message over a bare status code."""
    try:
        detail = response.json().get("detail")
    except Exception:
        detail = None
    if isinstance(detail, str) and detail:
        return detail
    return f"Agent API error: {response.status_code}"
