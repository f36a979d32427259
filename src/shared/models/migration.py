"""Migration pipeline Pydantic v2 data models.

Artifacts travel over the wire, to storage and to and from the generative
model with camelCase keys (``detectedLanguage``, ``currentPhase``); Python
code uses the snake_case attribute names.
"""
from __future__ import annotations

import uuid
from enum import Enum
from typing import Any, Literal

from pydantic import BaseModel, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel

from src.shared.utils import now_iso


class CamelModel(BaseModel):
    """Base model serialised with camelCase aliases."""

    model_config = {
        "alias_generator": to_camel,
        "populate_by_name": True,
        "from_attributes": True,
    }


# ---------------------------------------------------------------------------
# Enumerations
# ---------------------------------------------------------------------------


class ProjectPhase(str, Enum):
    """Pipeline phase of a project."""
    PENDING = "pending"
    ARCHAEOLOGIST = "archaeologist"
    ARCHAEOLOGIST_COMPLETE = "archaeologist-complete"
    ARCHITECT = "architect"
    ARCHITECT_COMPLETE = "architect-complete"
    BUILDER = "builder"
    BUILDER_COMPLETE = "builder-complete"


class ProjectStatus(str, Enum):
    """Human-readable progress, always paired with a phase."""
    CREATED = "created"
    ANALYZING = "analyzing"
    ANALYZED = "analyzed"
    DESIGNING = "designing"
    DESIGNED = "designed"
    BUILDING = "building"
    BUILT = "built"


class ArtifactMode(str, Enum):
    """Provenance tag of a stage artifact."""
    AI_POWERED = "AI_POWERED"
    SIMULATED = "SIMULATED"


class Severity(str, Enum):
    """Severity of a security finding."""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


# ---------------------------------------------------------------------------
# Audit report (Analyze stage)
# ---------------------------------------------------------------------------


class SecurityIssue(CamelModel):
    """A security finding in the legacy code."""
    severity: Severity
    issue: str
    location: str = ""
    recommendation: str = ""

    @field_validator("severity", mode="before")
    @classmethod
    def _normalise_severity(cls, value: Any) -> Any:
        if isinstance(value, str):
            return value.strip().lower()
        return value


class DeprecatedDependency(CamelModel):
    """An outdated library or API used by the legacy code."""
    name: str
    current_version: str = ""
    recommended_version: str = ""
    security_risk: str = ""


class BusinessLogic(CamelModel):
    """Business rules extracted from the legacy code."""
    description: str = ""
    key_features: list[str] = Field(default_factory=list)
    workflows: list[str] = Field(default_factory=list)


class DatabaseSchemaSummary(CamelModel):
    """Database structure detected in the legacy code."""
    detected: bool = False
    tables: list[str] = Field(default_factory=list)
    relationships: list[str] = Field(default_factory=list)


class GraphNode(CamelModel):
    """Node of the legacy dependency graph."""
    id: str
    label: str = ""
    type: str = "module"


class GraphEdge(CamelModel):
    """Directed edge between two graph nodes."""
    source: str
    target: str
    label: str = ""


class DependencyGraph(CamelModel):
    """Node/edge view of the legacy code's internal dependencies.

    Every edge must reference node ids present in ``nodes``.
    """
    nodes: list[GraphNode] = Field(default_factory=list)
    edges: list[GraphEdge] = Field(default_factory=list)

    @model_validator(mode="after")
    def _edges_reference_nodes(self) -> DependencyGraph:
        known = {node.id for node in self.nodes}
        dangling = [
            f"{edge.source}->{edge.target}"
            for edge in self.edges
            if edge.source not in known or edge.target not in known
        ]
        if dangling:
            raise ValueError(
                "Dependency graph edges reference unknown nodes: "
                + ", ".join(dangling)
            )
        return self


class AuditReport(CamelModel):
    """Structured audit of a legacy code submission."""
    project_name: str = ""
    detected_language: str = Field(..., min_length=1)
    frameworks: list[str] = Field(default_factory=list)
    code_quality_score: int = Field(default=0, ge=0, le=100)
    business_logic: BusinessLogic = Field(default_factory=BusinessLogic)
    security_issues: list[SecurityIssue] = Field(default_factory=list)
    deprecated_dependencies: list[DeprecatedDependency] = Field(default_factory=list)
    code_smells: list[str] = Field(default_factory=list)
    database_schema: DatabaseSchemaSummary = Field(default_factory=DatabaseSchemaSummary)
    api_endpoints: list[str] = Field(default_factory=list)
    dependency_graph: DependencyGraph = Field(default_factory=DependencyGraph)
    migration_complexity: str = ""
    estimated_effort: str = ""
    mode: ArtifactMode = ArtifactMode.SIMULATED

    @field_validator("code_quality_score", mode="before")
    @classmethod
    def _round_score(cls, value: Any) -> Any:
        # Models often answer "72" or 72.5 for an integer score.
        if isinstance(value, (str, float)):
            try:
                return round(float(value))
            except (ValueError, OverflowError):
                return value
        return value


# ---------------------------------------------------------------------------
# Blueprint (Design stage)
# ---------------------------------------------------------------------------


class TargetStack(CamelModel):
    """Technology choices of the modernised system."""
    backend: str = ""
    frontend: str = ""
    database: str = ""
    authentication: str = ""
    deployment: str = ""


class ArchitecturalDesign(CamelModel):
    """Architectural pattern, its rationale and main components."""
    pattern: str = Field(..., min_length=1)
    reasoning: str = ""
    components: list[str] = Field(default_factory=list)


class ModelField(CamelModel):
    """Typed field of a database model."""
    name: str
    type: str
    constraints: str = ""


class DatabaseModel(CamelModel):
    """A table/model of the target database."""
    name: str
    fields: list[ModelField] = Field(default_factory=list)
    relationships: list[str] = Field(default_factory=list)


class DatabaseDesign(CamelModel):
    models: list[DatabaseModel] = Field(default_factory=list)
    migrations: str = ""


class ApiEndpoint(CamelModel):
    method: str
    path: str
    description: str = ""
    authentication: str = ""


class ApiDesign(CamelModel):
    endpoints: list[ApiEndpoint] = Field(default_factory=list)
    authentication: str = ""


class FrontendStructure(CamelModel):
    pages: list[str] = Field(default_factory=list)
    components: list[str] = Field(default_factory=list)
    state_management: str = ""


class FileStructure(CamelModel):
    backend: list[str] = Field(default_factory=list)
    frontend: list[str] = Field(default_factory=list)


class ImplementationPhase(CamelModel):
    """One step of the phased implementation plan."""
    phase: str
    description: str = ""
    files: list[str] = Field(default_factory=list)
    duration: str = ""


class DecisionLog(CamelModel):
    """Key decisions, tradeoffs and overall reasoning behind a blueprint."""
    key_decisions: list[str] = Field(default_factory=list)
    tradeoffs: list[str] = Field(default_factory=list)
    reasoning: str = ""


class Blueprint(CamelModel):
    """Modernisation blueprint designed from an audit report."""
    project_name: str = ""
    target_stack: TargetStack
    architectural_design: ArchitecturalDesign
    database_design: DatabaseDesign = Field(default_factory=DatabaseDesign)
    api_design: ApiDesign = Field(default_factory=ApiDesign)
    frontend_structure: FrontendStructure = Field(default_factory=FrontendStructure)
    file_structure: FileStructure = Field(default_factory=FileStructure)
    implementation_phases: list[ImplementationPhase] = Field(default_factory=list)
    thought_signatures: DecisionLog = Field(default_factory=DecisionLog)
    security_considerations: list[str] = Field(default_factory=list)
    testing_strategy: str = ""
    blueprint_markdown: str = ""
    mode: ArtifactMode = ArtifactMode.SIMULATED


# ---------------------------------------------------------------------------
# Code bundle and build log (Build stage)
# ---------------------------------------------------------------------------


class GeneratedFile(CamelModel):
    """A generated source or test file."""
    path: str = Field(..., min_length=1)
    content: str = ""
    description: str = ""


class CodeBundle(CamelModel):
    """Generated code for one implementation phase.

    A bundle without at least one file is structurally invalid.
    """
    phase: int = Field(default=1, ge=1)
    files: list[GeneratedFile] = Field(..., min_length=1)
    tests: list[GeneratedFile] = Field(default_factory=list)
    dependencies: list[str] = Field(default_factory=list)
    setup_instructions: str = ""
    next_steps: str = ""
    mode: ArtifactMode = ArtifactMode.SIMULATED


class FixResult(CamelModel):
    """Patch proposed by the Builder for a failing file."""
    fixed_code: str
    changes_made: list[str] = Field(default_factory=list)
    reasoning: str = ""


class ExecutionResult(CamelModel):
    """Verdict of one execution check."""
    success: bool
    stdout: str = ""
    stderr: str = ""
    execution_time: float = Field(default=0.0, ge=0, description="milliseconds")
    memory_usage: float = Field(default=0.0, ge=0, description="megabytes")
    tests_passed: int = Field(default=0, ge=0)
    tests_failed: int = Field(default=0, ge=0)


class BuildIteration(CamelModel):
    """Append-only build log entry: an execution or an applied fix."""
    attempt: int = Field(..., ge=1)
    action: Literal["execute", "fix_applied"] = "execute"
    execution_result: ExecutionResult | None = None
    changes: list[str] = Field(default_factory=list)
    reasoning: str | None = None
    timestamp: str = Field(default_factory=now_iso)

    model_config = {"frozen": True}

    @model_validator(mode="after")
    def _matches_action(self) -> BuildIteration:
        if self.action == "execute" and self.execution_result is None:
            raise ValueError("An execute iteration needs an execution result")
        if self.action == "fix_applied" and self.execution_result is not None:
            raise ValueError("A fix iteration cannot carry an execution result")
        return self


class BuildRun(CamelModel):
    """Outcome of one build: the healed bundle and its iteration log."""
    code_bundle: CodeBundle
    iterations: list[BuildIteration] = Field(default_factory=list)
    success: bool = False

    @property
    def execution_results(self) -> list[ExecutionResult]:
        return [
            item.execution_result
            for item in self.iterations
            if item.execution_result is not None
        ]


# ---------------------------------------------------------------------------
# Project aggregate
# ---------------------------------------------------------------------------


class Project(CamelModel):
    """A legacy code submission and everything the pipeline produced for it."""
    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    project_name: str = Field(..., min_length=1)
    legacy_code: str = Field(..., min_length=1)
    status: ProjectStatus = ProjectStatus.CREATED
    current_phase: ProjectPhase = ProjectPhase.PENDING
    audit_report: AuditReport | None = None
    blueprint: Blueprint | None = None
    blueprint_approved: bool = False
    blueprint_modifications: str | None = None
    generated_code: CodeBundle | None = None
    build_iterations: list[BuildIteration] = Field(default_factory=list)
    build_success: bool | None = Field(default=None, alias="success")
    created_at: str = Field(default_factory=now_iso)
    updated_at: str = Field(default_factory=now_iso)

    def touch(self) -> None:
        """Refresh ``updated_at``; it never moves backwards."""
        stamp = now_iso()
        if stamp > self.updated_at:
            self.updated_at = stamp


# ---------------------------------------------------------------------------
# Request / response payloads
# ---------------------------------------------------------------------------


class CreateProjectRequest(CamelModel):
    project_name: str = ""
    legacy_code: str = ""


class ApproveBlueprintRequest(CamelModel):
    modifications: str | None = None


class AnalysisResponse(CamelModel):
    project_id: str
    phase: str = "archaeologist"
    status: str = "complete"
    audit_report: AuditReport


class DesignResponse(CamelModel):
    project_id: str
    phase: str = "architect"
    status: str = "complete"
    blueprint: Blueprint


class ApprovalResponse(CamelModel):
    project_id: str
    message: str = "Blueprint approved"
    approved: bool = True


class BuildResponse(CamelModel):
    project_id: str
    phase: str = "builder"
    status: str = "complete"
    code_output: CodeBundle
    build_iterations: list[BuildIteration]
    success: bool


class ProjectLogs(CamelModel):
    """Lifecycle view of a project used for progress polling."""
    project_id: str
    project_name: str
    status: ProjectStatus
    current_phase: ProjectPhase
    build_iterations: list[BuildIteration] = Field(default_factory=list)
    created_at: str
    updated_at: str
