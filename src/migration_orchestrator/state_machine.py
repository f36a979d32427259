"""Project phase state machine using the ``transitions`` library.

Defines the 7 pipeline phases and the triggers that move a project
between them.  Start triggers may fire from any phase so that a stage can
be re-run; every transition is guarded by the artifacts it needs.
"""

from __future__ import annotations

import logging
from typing import Any

from transitions.extensions.asyncio import AsyncMachine, AsyncState

from src.shared.models.migration import Project, ProjectPhase, ProjectStatus

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# States -- one per phase
# ---------------------------------------------------------------------------
STATES: list[AsyncState] = [AsyncState(phase.value) for phase in ProjectPhase]

# Status always moves together with the phase.
STATUS_BY_PHASE: dict[ProjectPhase, ProjectStatus] = {
    ProjectPhase.PENDING: ProjectStatus.CREATED,
    ProjectPhase.ARCHAEOLOGIST: ProjectStatus.ANALYZING,
    ProjectPhase.ARCHAEOLOGIST_COMPLETE: ProjectStatus.ANALYZED,
    ProjectPhase.ARCHITECT: ProjectStatus.DESIGNING,
    ProjectPhase.ARCHITECT_COMPLETE: ProjectStatus.DESIGNED,
    ProjectPhase.BUILDER: ProjectStatus.BUILDING,
    ProjectPhase.BUILDER_COMPLETE: ProjectStatus.BUILT,
}

# ---------------------------------------------------------------------------
# Transitions
# ---------------------------------------------------------------------------
TRANSITIONS: list[dict[str, Any]] = [
    {
        "trigger": "start_analysis",
        "source": "*",
        "dest": ProjectPhase.ARCHAEOLOGIST.value,
    },
    {
        "trigger": "finish_analysis",
        "source": ProjectPhase.ARCHAEOLOGIST.value,
        "dest": ProjectPhase.ARCHAEOLOGIST_COMPLETE.value,
        "conditions": ["has_audit_report"],
    },
    {
        "trigger": "start_design",
        "source": "*",
        "dest": ProjectPhase.ARCHITECT.value,
        "conditions": ["has_audit_report"],
    },
    {
        "trigger": "finish_design",
        "source": ProjectPhase.ARCHITECT.value,
        "dest": ProjectPhase.ARCHITECT_COMPLETE.value,
        "conditions": ["has_blueprint"],
    },
    {
        # Internal: approval does not change the phase.
        "trigger": "approve_blueprint",
        "source": "*",
        "dest": None,
        "conditions": ["has_blueprint"],
        "after": ["mark_approved"],
    },
    {
        "trigger": "start_build",
        "source": "*",
        "dest": ProjectPhase.BUILDER.value,
        "conditions": ["has_blueprint", "blueprint_is_approved"],
    },
    {
        "trigger": "finish_build",
        "source": ProjectPhase.BUILDER.value,
        "dest": ProjectPhase.BUILDER_COMPLETE.value,
        "conditions": ["has_build_output"],
    },
]


class ProjectPhaseModel:
    """State-machine model wrapping a :class:`Project`.

    The machine keeps its state in ``self.state``; after every transition
    the project's phase, status and ``updated_at`` are synchronised.
    """

    state: str

    def __init__(self, project: Project) -> None:
        self.project = project

    # -- guards ------------------------------------------------------------

    def has_audit_report(self, event: Any) -> bool:
        return self.project.audit_report is not None

    def has_blueprint(self, event: Any) -> bool:
        return self.project.blueprint is not None

    def blueprint_is_approved(self, event: Any) -> bool:
        return self.project.blueprint_approved

    def has_build_output(self, event: Any) -> bool:
        return self.project.generated_code is not None and bool(self.project.build_iterations)

    # -- callbacks ---------------------------------------------------------

    def mark_approved(self, event: Any) -> None:
        self.project.blueprint_approved = True
        self.project.blueprint_modifications = event.kwargs.get("modifications") or None

    def sync_project(self, event: Any) -> None:
        phase = ProjectPhase(self.state)
        self.project.current_phase = phase
        self.project.status = STATUS_BY_PHASE[phase]
        self.project.touch()
        logger.info(
            "Project %s: %s -> %s (%s)",
            self.project.id, event.transition.source, phase.value, event.event.name,
            extra={"project_id": self.project.id},
        )


def create_project_machine(model: ProjectPhaseModel) -> AsyncMachine:
    """Create and return an ``AsyncMachine`` bound to *model*.

    The machine starts in the project's current phase.

    Args:
        model: The wrapper whose state the machine manages.

    Returns:
        Configured ``AsyncMachine`` instance.
    """
    machine = AsyncMachine(
        model=model,
        states=STATES,
        transitions=TRANSITIONS,
        initial=model.project.current_phase.value,
        auto_transitions=False,
        send_event=True,
        queued=True,
        ignore_invalid_triggers=True,
        after_state_change="sync_project",
    )
    return machine
