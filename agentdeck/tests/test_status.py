"""Tests for the status model and YOLO toggle."""

import pytest
from agentdeck.control.gate import InvalidTransitionError
from agentdeck.control.mode_toggle import ModeToggle
from agentdeck.control.status import (
    AgentStatus,
    StatusModel,
    TERMINAL_STATUSES,
    indicator_for,
)


@pytest.fixture
def model():
    model = StatusModel("demo")
    model.observe(AgentStatus.STOPPED)
    return model


# ── Status model ──

def test_initial_status_is_unobserved():
    model = StatusModel("demo")
    assert model.status is None
    assert model.observed is False
    assert model.is_terminal() is False
    assert model.yolo_mode is False
    assert model.indicator.label == "Unknown"
    assert model.indicator.pulse is False


def test_toggle_refused_before_first_observation():
    model = StatusModel("demo")
    toggle = ModeToggle(model)
    assert toggle.editable is False
    with pytest.raises(InvalidTransitionError, match="unknown"):
        toggle.toggle()
    assert toggle.enabled is False


def test_observe_stores_exactly(model):
    model.observe(AgentStatus.RUNNING, True)
    assert model.status == AgentStatus.RUNNING
    assert model.yolo_mode is True
    model.observe(AgentStatus.CRASHED)
    assert model.status == AgentStatus.CRASHED
    assert model.yolo_mode is False


@pytest.mark.parametrize("status,label,pulse", [
    (AgentStatus.STOPPED, "Stopped", False),
    (AgentStatus.RUNNING, "Running", True),
    (AgentStatus.PAUSED, "Paused", False),
    (AgentStatus.CRASHED, "Crashed", True),
])
def test_indicator_table(status, label, pulse):
    indicator = indicator_for(status)
    assert indicator.label == label
    assert indicator.pulse is pulse
    assert indicator.color_class.startswith("neo-")


def test_every_status_has_indicator():
    for status in AgentStatus:
        assert indicator_for(status) is not None


def test_yolo_badge_only_when_live(model):
    model.observe(AgentStatus.STOPPED, True)
    assert model.show_yolo_badge is False
    model.observe(AgentStatus.RUNNING, True)
    assert model.show_yolo_badge is True
    model.observe(AgentStatus.PAUSED, True)
    assert model.show_yolo_badge is True
    model.observe(AgentStatus.PAUSED, False)
    assert model.show_yolo_badge is False


def test_unknown_status_rejected():
    with pytest.raises(ValueError):
        AgentStatus("starting")


def test_terminal_statuses():
    assert TERMINAL_STATUSES == {AgentStatus.STOPPED, AgentStatus.CRASHED}


# ── Mode toggle ──

def test_toggle_while_stopped(model):
    toggle = ModeToggle(model)
    assert toggle.enabled is False
    assert toggle.toggle() is True
    assert toggle.enabled is True


def test_toggle_while_crashed(model):
    model.observe(AgentStatus.CRASHED)
    toggle = ModeToggle(model)
    toggle.set(True)
    assert toggle.enabled is True


@pytest.mark.parametrize("status", [AgentStatus.RUNNING, AgentStatus.PAUSED])
def test_toggle_refused_while_live(model, status):
    toggle = ModeToggle(model)
    model.observe(status)
    with pytest.raises(InvalidTransitionError):
        toggle.toggle()
    assert toggle.enabled is False


def test_staged_value_survives_run_and_is_not_synced(model):
    toggle = ModeToggle(model)
    toggle.set(True)
    model.observe(AgentStatus.RUNNING, False)
    assert toggle.enabled is True
    model.observe(AgentStatus.STOPPED, False)
    assert toggle.enabled is True


def test_effective_prefers_reported_flag_while_live(model):
    toggle = ModeToggle(model)
    toggle.set(True)
    assert toggle.effective() is True
    model.observe(AgentStatus.RUNNING, False)
    assert toggle.effective() is False
    model.observe(AgentStatus.PAUSED, True)
    assert toggle.effective() is True
