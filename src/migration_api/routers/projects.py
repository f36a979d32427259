"""Project lifecycle router for the migration service."""
from __future__ import annotations

from fastapi import APIRouter, Request, Response

from src.migration_orchestrator.orchestrator import ArtifactKind, PipelineOrchestrator
from src.shared.models.migration import (
    AnalysisResponse,
    ApprovalResponse,
    ApproveBlueprintRequest,
    BuildResponse,
    CreateProjectRequest,
    DesignResponse,
    Project,
    ProjectLogs,
)

router = APIRouter(prefix="/api/projects", tags=["projects"])


def _orchestrator(request: Request) -> PipelineOrchestrator:
    return request.app.state.orchestrator


@router.post("", status_code=201)
async def create_project(body: CreateProjectRequest, request: Request) -> Project:
    """Submit legacy code as a new project."""
    return await _orchestrator(request).create_project(body.project_name, body.legacy_code)


@router.get("")
async def list_projects(request: Request) -> list[Project]:
    """List projects, most recently created first."""
    return await _orchestrator(request).list_projects()


@router.get("/{project_id}")
async def get_project(project_id: str, request: Request) -> Project:
    return await _orchestrator(request).get_project(project_id)


@router.post("/{project_id}/analyze")
async def analyze_project(project_id: str, request: Request) -> AnalysisResponse:
    """Run the Analyze stage and return the audit report."""
    report = await _orchestrator(request).run_analysis(project_id)
    return AnalysisResponse(project_id=project_id, audit_report=report)


@router.post("/{project_id}/design")
async def design_blueprint(project_id: str, request: Request) -> DesignResponse:
    """Run the Design stage; the project must have been analyzed."""
    blueprint = await _orchestrator(request).run_design(project_id)
    return DesignResponse(project_id=project_id, blueprint=blueprint)


@router.post("/{project_id}/approve-blueprint")
async def approve_blueprint(
    project_id: str,
    request: Request,
    body: ApproveBlueprintRequest | None = None,
) -> ApprovalResponse:
    """Approve the blueprint, optionally with modification notes."""
    modifications = body.modifications if body else None
    await _orchestrator(request).approve_blueprint(project_id, modifications)
    return ApprovalResponse(project_id=project_id)


@router.post("/{project_id}/build")
async def build_project(project_id: str, request: Request) -> BuildResponse:
    """Run the Build stage with self-healing; the blueprint must be approved."""
    run = await _orchestrator(request).run_build(project_id)
    return BuildResponse(
        project_id=project_id,
        code_output=run.code_bundle,
        build_iterations=run.iterations,
        success=run.success,
    )


@router.get("/{project_id}/logs")
async def project_logs(project_id: str, request: Request) -> ProjectLogs:
    return await _orchestrator(request).get_logs(project_id)


@router.get("/{project_id}/artifacts/{kind}")
async def download_artifact(project_id: str, kind: ArtifactKind, request: Request) -> Response:
    """Download the audit report, blueprint markdown or generated code."""
    artifact = await _orchestrator(request).get_artifact(project_id, kind)
    return Response(
        content=artifact.content,
        media_type=artifact.media_type,
        headers={"Content-Disposition": f'attachment; filename="{artifact.filename}"'},
    )
