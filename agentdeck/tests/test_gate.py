"""Tests for the command gate."""

import asyncio

import pytest
from unittest.mock import AsyncMock

from agentdeck.client.agent_api import AgentCommandError
from agentdeck.control.gate import (
    CommandGate,
    InvalidTransitionError,
    PERMITTED_COMMANDS,
    permitted_for,
)
from agentdeck.control.operations import CommandKind, OperationTracker
from agentdeck.control.status import AgentStatus, StatusModel

EXPECTED = {
    AgentStatus.STOPPED: {CommandKind.START, CommandKind.RESET},
    AgentStatus.CRASHED: {CommandKind.START, CommandKind.RESET},
    AgentStatus.RUNNING: {CommandKind.PAUSE, CommandKind.STOP},
    AgentStatus.PAUSED: {CommandKind.RESUME, CommandKind.STOP},
}


@pytest.fixture
def gate():
    model = StatusModel("demo")
    model.observe(AgentStatus.STOPPED)
    return CommandGate("demo", model, OperationTracker(), AsyncMock())


async def _invoke(gate, kind):
    if kind == CommandKind.START:
        return await gate.start(False)
    if kind == CommandKind.STOP:
        return await gate.stop()
    if kind == CommandKind.PAUSE:
        return await gate.pause()
    if kind == CommandKind.RESUME:
        return await gate.resume()
    return await gate.reset_project("demo")


def _calls(service) -> int:
    return sum(
        getattr(service, name).await_count
        for name in ("start_agent", "stop_agent", "pause_agent", "resume_agent", "reset_project")
    )


def test_table_covers_every_status():
    assert set(PERMITTED_COMMANDS) == set(AgentStatus)


@pytest.mark.parametrize("status", list(AgentStatus))
def test_permitted_matches_table(gate, status):
    gate.status_model.observe(status)
    assert set(permitted_for(status)) == EXPECTED[status]
    assert set(gate.permitted()) == EXPECTED[status]


@pytest.mark.asyncio
@pytest.mark.parametrize("status", list(AgentStatus))
async def test_non_permitted_commands_rejected(gate, status):
    gate.status_model.observe(status)
    for kind in set(CommandKind) - EXPECTED[status]:
        with pytest.raises(InvalidTransitionError):
            await _invoke(gate, kind)
        assert gate.tracker.busy is False
    assert _calls(gate.service) == 0


@pytest.mark.asyncio
async def test_start_passes_yolo_flag(gate):
    outcome = await gate.start(True)
    assert outcome.ok is True
    assert outcome.kind == CommandKind.START
    gate.service.start_agent.assert_awaited_once_with("demo", True)
    assert gate.tracker.busy is False


@pytest.mark.asyncio
async def test_reset_uses_given_project_name(gate):
    await gate.reset_project("other")
    gate.service.reset_project.assert_awaited_once_with("other")


@pytest.mark.asyncio
async def test_busy_for_whole_flight_and_excludes_others(gate):
    release = asyncio.Event()

    async def slow_start(*args):
        await release.wait()

    gate.service.start_agent.side_effect = slow_start
    task = asyncio.create_task(gate.start(False))
    await asyncio.sleep(0)

    assert gate.tracker.busy is True
    assert gate.tracker.is_pending(CommandKind.START)
    assert gate.permitted() == frozenset()
    with pytest.raises(InvalidTransitionError, match="in flight"):
        await gate.reset_project("demo")
    with pytest.raises(InvalidTransitionError):
        await gate.start(False)

    release.set()
    outcome = await task
    assert outcome.ok is True
    assert gate.tracker.busy is False
    assert gate.service.start_agent.await_count == 1
    assert gate.service.reset_project.await_count == 0


@pytest.mark.asyncio
async def test_concurrent_callers_only_one_accepted(gate):
    async def yielding_start(*args):
        await asyncio.sleep(0)

    gate.service.start_agent.side_effect = yielding_start
    results = await asyncio.gather(
        gate.start(False), gate.start(True), return_exceptions=True
    )
    accepted = [r for r in results if not isinstance(r, Exception)]
    refused = [r for r in results if isinstance(r, InvalidTransitionError)]
    assert len(accepted) == 1
    assert len(refused) == 1
    assert gate.service.start_agent.await_count == 1


@pytest.mark.asyncio
async def test_failure_clears_busy_and_reports_message(gate):
    gate.status_model.observe(AgentStatus.RUNNING)
    gate.service.pause_agent.side_effect = AgentCommandError("agent not responding")
    outcome = await gate.pause()
    assert outcome.ok is False
    assert outcome.error == "agent not responding"
    assert gate.tracker.busy is False


@pytest.mark.asyncio
async def test_unexpected_exception_is_contained(gate):
    gate.status_model.observe(AgentStatus.PAUSED)
    gate.service.resume_agent.side_effect = RuntimeError("socket closed")
    outcome = await gate.resume()
    assert outcome.ok is False
    assert "socket closed" in outcome.error
    assert gate.tracker.busy is False
    # Still usable afterwards
    gate.service.resume_agent.side_effect = None
    assert (await gate.resume()).ok is True


@pytest.mark.asyncio
async def test_status_not_advanced_by_settlement(gate):
    gate.status_model.observe(AgentStatus.RUNNING, True)
    await gate.pause()
    assert gate.status_model.status == AgentStatus.RUNNING
    assert gate.status_model.yolo_mode is True


@pytest.mark.asyncio
async def test_nothing_permitted_before_first_observation():
    gate = CommandGate("demo", StatusModel("demo"), OperationTracker(), AsyncMock())
    assert gate.permitted() == frozenset()
    for kind in CommandKind:
        with pytest.raises(InvalidTransitionError, match="not been observed"):
            await _invoke(gate, kind)
    assert _calls(gate.service) == 0
    assert gate.tracker.busy is False
