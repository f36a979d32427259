"""Pipeline orchestrator: the operations behind the project API.

Every operation loads the project, checks the phase preconditions, drives
the state machine and persists the project.  The in-progress phase is
written before a stage runs; the stage's artifact is written together
with the completed phase in a single update.
"""

from __future__ import annotations

import asyncio
import json
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Protocol, TypeVar

from src.migration_orchestrator.agents import StageAgents
from src.migration_orchestrator.config import PipelineConfig
from src.migration_orchestrator.execution import ExecutionCheck, HeuristicExecutionCheck
from src.migration_orchestrator.healing import SelfHealingBuildLoop
from src.migration_orchestrator.state_machine import ProjectPhaseModel, create_project_machine
from src.shared.constants import (
    AUDIT_DOWNLOAD_NAME,
    BLUEPRINT_DOWNLOAD_NAME,
    CODE_DOWNLOAD_NAME,
    PROJECT_LIST_LIMIT,
)
from src.shared.errors import (
    AppError,
    InternalError,
    NotFoundError,
    PreconditionFailedError,
    ValidationError,
)
from src.shared.models.migration import (
    AuditReport,
    Blueprint,
    BuildRun,
    Project,
    ProjectLogs,
)

logger = logging.getLogger(__name__)

R = TypeVar("R")


class ProjectRepository(Protocol):
    """Blocking project storage; the orchestrator calls it off the event loop."""

    def insert(self, project: Project) -> None: ...

    def get(self, project_id: str) -> Project | None: ...

    def update(self, project: Project) -> None: ...

    def list(self, limit: int) -> list[Project]: ...


class ArtifactKind(str, Enum):
    """Downloadable artifacts of a project."""

    AUDIT = "audit"
    BLUEPRINT = "blueprint"
    CODE = "code"


@dataclass(frozen=True)
class ArtifactDownload:
    filename: str
    media_type: str
    content: str


def _to_json(model: Any) -> str:
    return json.dumps(model.model_dump(by_alias=True, mode="json"), indent=2)


class PipelineOrchestrator:
    """Runs the Analyze, Design and Build stages for stored projects."""

    def __init__(
        self,
        repository: ProjectRepository,
        agents: StageAgents,
        execution_check: ExecutionCheck | None = None,
        config: PipelineConfig | None = None,
        list_limit: int = PROJECT_LIST_LIMIT,
    ) -> None:
        self._repository = repository
        self._agents = agents
        self._config = config or PipelineConfig()
        self._list_limit = list_limit
        self._build_loop = SelfHealingBuildLoop(
            agents.builder,
            execution_check or HeuristicExecutionCheck(),
            max_attempts=self._config.build.max_attempts,
        )

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    async def _storage(self, call: Callable[..., R], *args: Any) -> R:
        try:
            return await asyncio.to_thread(call, *args)
        except AppError:
            raise
        except Exception as exc:
            logger.exception("Project storage call %s failed", getattr(call, "__name__", call))
            raise InternalError("Project storage failed") from exc

    @staticmethod
    async def _fire(model: ProjectPhaseModel, trigger: str, **kwargs: Any) -> None:
        accepted = await getattr(model, trigger)(**kwargs)
        if not accepted:
            logger.error(
                "Transition %s refused for project %s in phase %s",
                trigger, model.project.id, model.state,
                extra={"project_id": model.project.id},
            )
            raise InternalError(f"Transition '{trigger}' refused in phase '{model.state}'")

    @staticmethod
    def _machine_for(project: Project) -> ProjectPhaseModel:
        model = ProjectPhaseModel(project)
        create_project_machine(model)
        return model

    # ------------------------------------------------------------------
    # Projects
    # ------------------------------------------------------------------

    async def create_project(self, project_name: str, legacy_code: str) -> Project:
        """Store a new project in phase ``pending``.

        Raises:
            ValidationError: If the name or the legacy code is empty.
        """
        if not (project_name or "").strip() or not (legacy_code or "").strip():
            raise ValidationError("projectName and legacyCode are required")
        project = Project(project_name=project_name, legacy_code=legacy_code)
        project.updated_at = project.created_at
        await self._storage(self._repository.insert, project)
        logger.info(
            "Project created: id=%s name=%s", project.id, project.project_name,
            extra={"project_id": project.id},
        )
        return project

    async def get_project(self, project_id: str) -> Project:
        project = await self._storage(self._repository.get, project_id)
        if project is None:
            raise NotFoundError("Project not found")
        return project

    async def list_projects(self, limit: int | None = None) -> list[Project]:
        """Return up to *limit* projects, most recently created first."""
        limit = min(limit or self._list_limit, self._list_limit)
        return await self._storage(self._repository.list, limit)

    async def get_logs(self, project_id: str) -> ProjectLogs:
        project = await self.get_project(project_id)
        return ProjectLogs(
            project_id=project.id,
            project_name=project.project_name,
            status=project.status,
            current_phase=project.current_phase,
            build_iterations=project.build_iterations,
            created_at=project.created_at,
            updated_at=project.updated_at,
        )

    # ------------------------------------------------------------------
    # Stages
    # ------------------------------------------------------------------

    async def run_analysis(self, project_id: str) -> AuditReport:
        """Run the Analyzer; a repeated run overwrites the audit report."""
        project = await self.get_project(project_id)
        phases = self._machine_for(project)

        await self._fire(phases, "start_analysis")
        await self._storage(self._repository.update, project)

        report = await self._agents.analyzer.run(project.project_name, project.legacy_code)
        project.audit_report = report
        await self._fire(phases, "finish_analysis")
        await self._storage(self._repository.update, project)
        return report

    async def run_design(self, project_id: str) -> Blueprint:
        """Run the Designer; the new blueprint starts unapproved."""
        project = await self.get_project(project_id)
        if project.audit_report is None:
            raise PreconditionFailedError("Project must be analyzed first")
        phases = self._machine_for(project)

        await self._fire(phases, "start_design")
        await self._storage(self._repository.update, project)

        blueprint = await self._agents.designer.run(project.audit_report)
        project.blueprint = blueprint
        project.blueprint_approved = False
        project.blueprint_modifications = None
        await self._fire(phases, "finish_design")
        await self._storage(self._repository.update, project)
        return blueprint

    async def approve_blueprint(
        self, project_id: str, modifications: str | None = None
    ) -> Project:
        """Record human approval, with optional modification notes for the Builder."""
        project = await self.get_project(project_id)
        if project.blueprint is None:
            raise PreconditionFailedError("Blueprint must be created first")
        phases = self._machine_for(project)

        await self._fire(phases, "approve_blueprint", modifications=modifications)
        await self._storage(self._repository.update, project)
        logger.info(
            "Blueprint approved for project %s (modifications=%s)",
            project.id, bool(project.blueprint_modifications),
            extra={"project_id": project.id},
        )
        return project

    async def run_build(self, project_id: str) -> BuildRun:
        """Generate code and run the self-healing loop on it."""
        project = await self.get_project(project_id)
        if project.blueprint is None:
            raise PreconditionFailedError("Blueprint must be created first")
        if not project.blueprint_approved:
            raise PreconditionFailedError("Blueprint must be approved first")
        phases = self._machine_for(project)

        await self._fire(phases, "start_build")
        await self._storage(self._repository.update, project)

        bundle = await self._agents.builder.run(
            project.blueprint,
            project.legacy_code,
            phase=self._config.build.phase,
            modifications=project.blueprint_modifications,
        )
        run = await self._build_loop.run(bundle)

        project.generated_code = run.code_bundle
        project.build_iterations = run.iterations
        project.build_success = run.success
        await self._fire(phases, "finish_build")
        await self._storage(self._repository.update, project)
        logger.info(
            "Build finished for project %s: success=%s executions=%d",
            project.id, run.success, len(run.execution_results),
            extra={"project_id": project.id},
        )
        return run

    # ------------------------------------------------------------------
    # Downloads
    # ------------------------------------------------------------------

    async def get_artifact(self, project_id: str, kind: ArtifactKind) -> ArtifactDownload:
        """Render a stage artifact as a downloadable file.

        Raises:
            NotFoundError: If the project or the artifact does not exist yet.
        """
        project = await self.get_project(project_id)
        if kind is ArtifactKind.AUDIT:
            if project.audit_report is None:
                raise NotFoundError("Audit report not available")
            return ArtifactDownload(AUDIT_DOWNLOAD_NAME, "application/json", _to_json(project.audit_report))
        if kind is ArtifactKind.BLUEPRINT:
            if project.blueprint is None or not project.blueprint.blueprint_markdown:
                raise NotFoundError("Blueprint not available")
            return ArtifactDownload(
                BLUEPRINT_DOWNLOAD_NAME, "text/markdown", project.blueprint.blueprint_markdown
            )
        if project.generated_code is None:
            raise NotFoundError("Generated code not available")
        return ArtifactDownload(CODE_DOWNLOAD_NAME, "application/json", _to_json(project.generated_code))
