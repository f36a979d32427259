"""Tests for the pipeline orchestrator operations."""
from __future__ import annotations

import json

import pytest

from src.migration_orchestrator.config import BuildConfig, PipelineConfig
from src.migration_orchestrator.exceptions import TransientProviderError
from src.migration_orchestrator.orchestrator import ArtifactKind, PipelineOrchestrator
from src.shared.errors import NotFoundError, PreconditionFailedError, ValidationError
from src.shared.models.migration import ArtifactMode, ProjectPhase, ProjectStatus
from tests.fixtures.pipeline import (
    AI_AUDIT,
    AI_BLUEPRINT,
    AI_CODE_BUNDLE,
    PHP_LEGACY_CODE,
    ScriptedModelClient,
    build_orchestrator,
    model_text,
)

BROKEN_BUNDLE = {
    "phase": 1,
    "files": [{"path": "app/main.py", "content": "import os\nprint(os.name)\n"}],
}

FIXED_CODE = {
    "fixedCode": "import os\n\n\ndef main():\n    print(os.name)\n",
    "changesMade": ["Wrapped script body in main()"],
    "reasoning": "Entry point was missing",
}


async def _designed(orchestrator: PipelineOrchestrator) -> str:
    project = await orchestrator.create_project("Legacy Shop", PHP_LEGACY_CODE)
    await orchestrator.run_analysis(project.id)
    await orchestrator.run_design(project.id)
    return project.id


class TestCreateProject:
    async def test_initial_state(self, offline_orchestrator):
        project = await offline_orchestrator.create_project("Legacy Shop", PHP_LEGACY_CODE)
        assert project.status is ProjectStatus.CREATED
        assert project.current_phase is ProjectPhase.PENDING
        assert project.blueprint_approved is False
        assert project.created_at == project.updated_at

        stored = await offline_orchestrator.get_project(project.id)
        assert stored == project

    async def test_ids_unique(self, offline_orchestrator):
        first = await offline_orchestrator.create_project("a", "x")
        second = await offline_orchestrator.create_project("a", "x")
        assert first.id != second.id

    @pytest.mark.parametrize("name,code", [("", "x"), ("p", ""), ("   ", "x"), ("p", "\n")])
    async def test_blank_input_rejected(self, offline_orchestrator, name, code):
        with pytest.raises(ValidationError, match="projectName and legacyCode are required"):
            await offline_orchestrator.create_project(name, code)

    async def test_unknown_project(self, offline_orchestrator):
        with pytest.raises(NotFoundError, match="Project not found"):
            await offline_orchestrator.get_project("does-not-exist")


class TestListProjects:
    async def test_newest_first(self, offline_orchestrator):
        ids = [(await offline_orchestrator.create_project(f"p{i}", "x")).id for i in range(3)]
        listed = await offline_orchestrator.list_projects()
        assert [p.id for p in listed] == list(reversed(ids))

    async def test_limit(self, offline_orchestrator):
        for i in range(4):
            await offline_orchestrator.create_project(f"p{i}", "x")
        assert len(await offline_orchestrator.list_projects(limit=2)) == 2

    async def test_configured_cap(self, store, sleep):
        orchestrator, agents = build_orchestrator(store, ScriptedModelClient(), sleep)
        capped = PipelineOrchestrator(store, agents, list_limit=2)
        for i in range(3):
            await orchestrator.create_project(f"p{i}", "x")
        assert len(await capped.list_projects()) == 2
        assert len(await capped.list_projects(limit=50)) == 2


class TestAnalysis:
    async def test_simulated_when_model_unavailable(self, offline_orchestrator):
        project = await offline_orchestrator.create_project("Legacy Shop", PHP_LEGACY_CODE)
        report = await offline_orchestrator.run_analysis(project.id)

        assert report.mode is ArtifactMode.SIMULATED
        assert report.detected_language == "PHP"
        assert report.project_name == "Legacy Shop"

        stored = await offline_orchestrator.get_project(project.id)
        assert stored.status is ProjectStatus.ANALYZED
        assert stored.current_phase is ProjectPhase.ARCHAEOLOGIST_COMPLETE
        assert stored.audit_report == report

    async def test_ai_report_after_transient_failure(self, store, sleep):
        client = ScriptedModelClient(
            [TransientProviderError("overloaded", status_code=503), model_text(AI_AUDIT)]
        )
        orchestrator, _ = build_orchestrator(store, client, sleep)
        project = await orchestrator.create_project("Legacy Shop", PHP_LEGACY_CODE)

        report = await orchestrator.run_analysis(project.id)

        assert report.mode is ArtifactMode.AI_POWERED
        assert report.detected_language == "PHP 5"
        assert sleep.delays == [2.0]
        assert len(client.calls) == 2

    @pytest.mark.parametrize(
        "text",
        [
            '{"detectedLanguage": "PHP", "codeQualityScore": Infinity}',
            '{"detectedLanguage": "PHP", "x": ' + "[" * 100000 + "]" * 100000 + "}",
        ],
    )
    async def test_unusable_ai_reply_still_completes(self, store, sleep, text):
        orchestrator, _ = build_orchestrator(store, ScriptedModelClient([text]), sleep)
        project = await orchestrator.create_project("Legacy Shop", PHP_LEGACY_CODE)

        report = await orchestrator.run_analysis(project.id)

        assert report.mode is ArtifactMode.SIMULATED
        stored = await orchestrator.get_project(project.id)
        assert stored.status is ProjectStatus.ANALYZED
        assert stored.current_phase is ProjectPhase.ARCHAEOLOGIST_COMPLETE

    async def test_rerun_overwrites_report(self, store, sleep):
        client = ScriptedModelClient([model_text(AI_AUDIT)])
        orchestrator, _ = build_orchestrator(store, client, sleep)
        project = await orchestrator.create_project("Legacy Shop", PHP_LEGACY_CODE)

        first = await orchestrator.run_analysis(project.id)
        second = await orchestrator.run_analysis(project.id)

        assert first.mode is ArtifactMode.AI_POWERED
        assert second.mode is ArtifactMode.SIMULATED
        stored = await orchestrator.get_project(project.id)
        assert stored.audit_report == second
        assert stored.status is ProjectStatus.ANALYZED


class TestDesign:
    async def test_requires_analysis(self, offline_orchestrator):
        project = await offline_orchestrator.create_project("p", "x")
        with pytest.raises(PreconditionFailedError, match="Project must be analyzed first"):
            await offline_orchestrator.run_design(project.id)
        stored = await offline_orchestrator.get_project(project.id)
        assert stored.status is ProjectStatus.CREATED

    async def test_blueprint_starts_unapproved(self, offline_orchestrator):
        project_id = await _designed(offline_orchestrator)
        stored = await offline_orchestrator.get_project(project_id)
        assert stored.status is ProjectStatus.DESIGNED
        assert stored.current_phase is ProjectPhase.ARCHITECT_COMPLETE
        assert stored.blueprint is not None
        assert stored.blueprint_approved is False

    async def test_ai_blueprint(self, store, sleep):
        client = ScriptedModelClient([model_text(AI_AUDIT), model_text(AI_BLUEPRINT)])
        orchestrator, _ = build_orchestrator(store, client, sleep)
        project_id = await _designed(orchestrator)
        stored = await orchestrator.get_project(project_id)
        assert stored.blueprint.mode is ArtifactMode.AI_POWERED
        assert stored.blueprint.architectural_design.pattern == "Modular monolith"
        assert client.calls[1][1] == 0.6

    async def test_redesign_resets_approval(self, offline_orchestrator):
        project_id = await _designed(offline_orchestrator)
        await offline_orchestrator.approve_blueprint(project_id, "Keep MySQL")

        await offline_orchestrator.run_design(project_id)

        stored = await offline_orchestrator.get_project(project_id)
        assert stored.blueprint_approved is False
        assert stored.blueprint_modifications is None


class TestApproval:
    async def test_requires_blueprint(self, offline_orchestrator):
        project = await offline_orchestrator.create_project("p", "x")
        await offline_orchestrator.run_analysis(project.id)
        with pytest.raises(PreconditionFailedError, match="Blueprint must be created first"):
            await offline_orchestrator.approve_blueprint(project.id)

    async def test_records_modifications(self, offline_orchestrator):
        project_id = await _designed(offline_orchestrator)
        project = await offline_orchestrator.approve_blueprint(project_id, "Use Postgres 16")
        assert project.blueprint_approved is True
        assert project.blueprint_modifications == "Use Postgres 16"
        assert project.current_phase is ProjectPhase.ARCHITECT_COMPLETE

        stored = await offline_orchestrator.get_project(project_id)
        assert stored.blueprint_modifications == "Use Postgres 16"

    async def test_without_modifications(self, offline_orchestrator):
        project_id = await _designed(offline_orchestrator)
        project = await offline_orchestrator.approve_blueprint(project_id)
        assert project.blueprint_approved is True
        assert project.blueprint_modifications is None


class TestBuild:
    async def test_requires_blueprint(self, offline_orchestrator):
        project = await offline_orchestrator.create_project("p", "x")
        with pytest.raises(PreconditionFailedError, match="Blueprint must be created first"):
            await offline_orchestrator.run_build(project.id)

    async def test_requires_approval(self, offline_orchestrator):
        project_id = await _designed(offline_orchestrator)
        with pytest.raises(PreconditionFailedError, match="Blueprint must be approved first"):
            await offline_orchestrator.run_build(project_id)

        stored = await offline_orchestrator.get_project(project_id)
        assert stored.build_iterations == []
        assert stored.generated_code is None
        assert stored.status is ProjectStatus.DESIGNED

    async def test_simulated_bundle_passes_first_attempt(self, offline_orchestrator):
        project_id = await _designed(offline_orchestrator)
        await offline_orchestrator.approve_blueprint(project_id)

        run = await offline_orchestrator.run_build(project_id)

        assert run.success is True
        assert len(run.execution_results) == 1
        stored = await offline_orchestrator.get_project(project_id)
        assert stored.status is ProjectStatus.BUILT
        assert stored.current_phase is ProjectPhase.BUILDER_COMPLETE
        assert stored.build_success is True
        assert stored.generated_code.mode is ArtifactMode.SIMULATED
        assert len(stored.build_iterations) == 1

    async def test_heals_on_second_attempt(self, store, sleep):
        client = ScriptedModelClient(
            [
                model_text(AI_AUDIT),
                model_text(AI_BLUEPRINT),
                model_text(BROKEN_BUNDLE),
                model_text(FIXED_CODE),
            ]
        )
        orchestrator, _ = build_orchestrator(store, client, sleep)
        project_id = await _designed(orchestrator)
        await orchestrator.approve_blueprint(project_id)

        run = await orchestrator.run_build(project_id)

        assert run.success is True
        assert [i.action for i in run.iterations] == ["execute", "fix_applied", "execute"]
        assert run.iterations[1].changes == ["Wrapped script body in main()"]
        assert run.code_bundle.files[0].content == FIXED_CODE["fixedCode"]

    async def test_stops_after_max_attempts(self, store, sleep):
        client = ScriptedModelClient(
            [model_text(AI_AUDIT), model_text(AI_BLUEPRINT), model_text(BROKEN_BUNDLE)]
        )
        orchestrator, _ = build_orchestrator(store, client, sleep)
        project_id = await _designed(orchestrator)
        await orchestrator.approve_blueprint(project_id)

        run = await orchestrator.run_build(project_id)

        assert run.success is False
        assert len(run.execution_results) == 3
        assert len(run.iterations) == 5
        stored = await orchestrator.get_project(project_id)
        assert stored.build_success is False
        assert stored.status is ProjectStatus.BUILT

    async def test_configured_attempts(self, store, sleep):
        config = PipelineConfig(build=BuildConfig(max_attempts=1))
        client = ScriptedModelClient(
            [model_text(AI_AUDIT), model_text(AI_BLUEPRINT), model_text(BROKEN_BUNDLE)]
        )
        orchestrator, _ = build_orchestrator(store, client, sleep, config)
        project_id = await _designed(orchestrator)
        await orchestrator.approve_blueprint(project_id)

        run = await orchestrator.run_build(project_id)

        assert run.success is False
        assert [i.action for i in run.iterations] == ["execute"]

    async def test_modifications_reach_builder(self, store, sleep):
        client = ScriptedModelClient(
            [model_text(AI_AUDIT), model_text(AI_BLUEPRINT), model_text(AI_CODE_BUNDLE)]
        )
        orchestrator, _ = build_orchestrator(store, client, sleep)
        project_id = await _designed(orchestrator)
        await orchestrator.approve_blueprint(project_id, "Use Postgres 16")

        run = await orchestrator.run_build(project_id)

        build_prompt, temperature = client.calls[2]
        assert "Reviewer Modifications" in build_prompt
        assert "Use Postgres 16" in build_prompt
        assert temperature == 0.3
        assert run.success is True
        assert run.code_bundle.mode is ArtifactMode.AI_POWERED


class TestLogs:
    async def test_logs_mirror_project(self, offline_orchestrator):
        project_id = await _designed(offline_orchestrator)
        await offline_orchestrator.approve_blueprint(project_id)
        await offline_orchestrator.run_build(project_id)

        logs = await offline_orchestrator.get_logs(project_id)

        assert logs.project_id == project_id
        assert logs.status is ProjectStatus.BUILT
        assert len(logs.build_iterations) == 1

    async def test_unknown_project(self, offline_orchestrator):
        with pytest.raises(NotFoundError):
            await offline_orchestrator.get_logs("nope")


class TestArtifacts:
    async def test_not_available_before_stage(self, offline_orchestrator):
        project = await offline_orchestrator.create_project("p", "x")
        with pytest.raises(NotFoundError, match="Audit report not available"):
            await offline_orchestrator.get_artifact(project.id, ArtifactKind.AUDIT)
        with pytest.raises(NotFoundError, match="Blueprint not available"):
            await offline_orchestrator.get_artifact(project.id, ArtifactKind.BLUEPRINT)
        with pytest.raises(NotFoundError, match="Generated code not available"):
            await offline_orchestrator.get_artifact(project.id, ArtifactKind.CODE)

    async def test_downloads(self, offline_orchestrator):
        project_id = await _designed(offline_orchestrator)
        await offline_orchestrator.approve_blueprint(project_id)
        await offline_orchestrator.run_build(project_id)

        audit = await offline_orchestrator.get_artifact(project_id, ArtifactKind.AUDIT)
        assert audit.filename == "LegacyAudit.json"
        assert json.loads(audit.content)["detectedLanguage"] == "PHP"

        blueprint = await offline_orchestrator.get_artifact(project_id, ArtifactKind.BLUEPRINT)
        assert blueprint.filename == "Blueprint.md"
        assert blueprint.media_type == "text/markdown"
        assert "Legacy Shop" in blueprint.content

        code = await offline_orchestrator.get_artifact(project_id, ArtifactKind.CODE)
        assert code.filename == "GeneratedCode.json"
        assert json.loads(code.content)["files"][0]["path"] == "backend/app/main.py"
