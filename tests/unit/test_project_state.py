"""Tests for the project state machine."""

import pytest

from scriptboard.core.errors import InvalidTransition
from scriptboard.models.schemas import ProjectStatus
from scriptboard.services import project_state


def test_happy_path_succeeds():
    path = [
        ProjectStatus.DRAFT,
        ProjectStatus.PROCESSING,
        ProjectStatus.READY,
        ProjectStatus.RENDERING,
        ProjectStatus.COMPLETED,
    ]
    for current, target in zip(path, path[1:]):
        project_state.ensure_transition(current, target)


def test_draft_to_ready_is_rejected_naming_both_states():
    with pytest.raises(InvalidTransition) as exc_info:
        project_state.ensure_transition(ProjectStatus.DRAFT, ProjectStatus.READY)

    assert exc_info.value.details == {"current": "draft", "requested": "ready"}
    assert "draft" in str(exc_info.value) and "ready" in str(exc_info.value)


@pytest.mark.parametrize("status", list(ProjectStatus))
def test_any_state_can_fail(status):
    assert project_state.can_transition(status, ProjectStatus.FAILED)


@pytest.mark.parametrize("terminal", [ProjectStatus.COMPLETED, ProjectStatus.FAILED])
def test_terminal_states_go_nowhere_else(terminal):
    assert project_state.is_terminal(terminal)
    for target in ProjectStatus:
        if target != ProjectStatus.FAILED:
            assert not project_state.can_transition(terminal, target)


def test_permissions():
    for status in ProjectStatus:
        assert project_state.can_edit(status) == (status == ProjectStatus.READY)
        assert project_state.can_render(status) == (status == ProjectStatus.READY)
        assert project_state.can_delete(status) == (status != ProjectStatus.RENDERING)


def test_accepts_string_values():
    assert project_state.can_transition("draft", "processing")
    assert not project_state.can_transition("ready", "draft")


def test_reoptimize_only_from_ready():
    project_state.ensure_reoptimizable(ProjectStatus.READY)
    with pytest.raises(InvalidTransition):
        project_state.ensure_reoptimizable(ProjectStatus.PROCESSING)
