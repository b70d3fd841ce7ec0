"""Project State Machine - legal status transitions and status-derived permissions."""

from scriptboard.core.errors import InvalidTransition
from scriptboard.models.schemas import ProjectStatus

TRANSITIONS: dict[ProjectStatus, frozenset[ProjectStatus]] = {
    ProjectStatus.DRAFT: frozenset({ProjectStatus.PROCESSING}),
    ProjectStatus.PROCESSING: frozenset({ProjectStatus.READY}),
    ProjectStatus.READY: frozenset({ProjectStatus.RENDERING}),
    ProjectStatus.RENDERING: frozenset({ProjectStatus.COMPLETED}),
    ProjectStatus.COMPLETED: frozenset(),
    ProjectStatus.FAILED: frozenset(),
}

TERMINAL_STATES = frozenset({ProjectStatus.COMPLETED, ProjectStatus.FAILED})


def can_transition(current: ProjectStatus, target: ProjectStatus) -> bool:
    """
    Check a status change against the transition table.

    Any state may move to failed, so a crash handler can mark a project
    failed unconditionally. Apart from that, completed and failed are terminal.
    """
    current = ProjectStatus(current)
    target = ProjectStatus(target)
    if target == ProjectStatus.FAILED:
        return True
    return target in TRANSITIONS[current]


def ensure_transition(current: ProjectStatus, target: ProjectStatus) -> None:
    if not can_transition(current, target):
        raise InvalidTransition(ProjectStatus(current).value, ProjectStatus(target).value)


def is_terminal(status: ProjectStatus) -> bool:
    return ProjectStatus(status) in TERMINAL_STATES


def can_edit(status: ProjectStatus) -> bool:
    return ProjectStatus(status) == ProjectStatus.READY


def can_render(status: ProjectStatus) -> bool:
    return ProjectStatus(status) == ProjectStatus.READY


def can_delete(status: ProjectStatus) -> bool:
    return ProjectStatus(status) != ProjectStatus.RENDERING


def ensure_reoptimizable(status: ProjectStatus) -> None:
    """
    Auto-optimize is the only path back to draft, and only from ready.

    The improved script replaces the original and the whole pipeline runs
    again from segmentation.
    """
    if ProjectStatus(status) != ProjectStatus.READY:
        raise InvalidTransition(ProjectStatus(status).value, ProjectStatus.DRAFT.value)
