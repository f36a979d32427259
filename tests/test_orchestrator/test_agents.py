"""Tests for the Analyzer, Designer and Builder stage agents."""
from __future__ import annotations

import pytest
from pydantic import BaseModel, field_validator

from src.migration_orchestrator.agents import create_stage_agents
from src.migration_orchestrator.config import PipelineConfig
from src.migration_orchestrator.exceptions import TransientProviderError
from src.migration_orchestrator.fallbacks import simulated_audit_report, simulated_blueprint
from src.migration_orchestrator.outcome import FailureKind
from src.shared.models.migration import ArtifactMode, AuditReport
from tests.fixtures.pipeline import (
    AI_AUDIT,
    AI_BLUEPRINT,
    AI_CODE_BUNDLE,
    PHP_LEGACY_CODE,
    RecordingSleep,
    ScriptedModelClient,
    model_text,
)


def _agents(client: ScriptedModelClient, sleep: RecordingSleep):
    return create_stage_agents(client, PipelineConfig(), sleep=sleep)


@pytest.fixture
def audit() -> AuditReport:
    return simulated_audit_report("Legacy Shop", PHP_LEGACY_CODE)


class TestAnalyzerAgent:
    async def test_ai_report_is_tagged(self, sleep):
        client = ScriptedModelClient([model_text(AI_AUDIT)])
        report = await _agents(client, sleep).analyzer.run("Legacy Shop", PHP_LEGACY_CODE)
        assert report.mode is ArtifactMode.AI_POWERED
        assert report.detected_language == "PHP 5"
        assert client.calls[0][1] == 0.4
        assert PHP_LEGACY_CODE in client.calls[0][0]

    async def test_mode_from_model_is_overridden(self, sleep):
        client = ScriptedModelClient([model_text({**AI_AUDIT, "mode": "SIMULATED"})])
        report = await _agents(client, sleep).analyzer.run("Legacy Shop", PHP_LEGACY_CODE)
        assert report.mode is ArtifactMode.AI_POWERED

    async def test_missing_project_name_is_filled(self, sleep):
        payload = {k: v for k, v in AI_AUDIT.items() if k != "projectName"}
        client = ScriptedModelClient([model_text(payload)])
        report = await _agents(client, sleep).analyzer.run("Legacy Shop", PHP_LEGACY_CODE)
        assert report.project_name == "Legacy Shop"

    async def test_malformed_response_falls_back(self, sleep):
        client = ScriptedModelClient(["I am unable to analyze this code."])
        report = await _agents(client, sleep).analyzer.run("Legacy Shop", PHP_LEGACY_CODE)
        assert report.mode is ArtifactMode.SIMULATED
        assert report.detected_language == "PHP"
        assert report.frameworks == ["None (Procedural PHP)"]

    async def test_schema_invalid_falls_back(self, sleep):
        client = ScriptedModelClient([model_text({"frameworks": ["Laravel"]})])
        report = await _agents(client, sleep).analyzer.run("Legacy Shop", PHP_LEGACY_CODE)
        assert report.mode is ArtifactMode.SIMULATED

    async def test_exhausted_retries_fall_back(self, sleep):
        client = ScriptedModelClient([TransientProviderError(status_code=503)] * 3)
        report = await _agents(client, sleep).analyzer.run("Legacy Shop", PHP_LEGACY_CODE)
        assert report.mode is ArtifactMode.SIMULATED
        assert len(client.calls) == 3
        assert sleep.delays == [2.0, 2.0]

    async def test_transient_then_success(self, sleep):
        client = ScriptedModelClient([TransientProviderError(status_code=429), model_text(AI_AUDIT)])
        report = await _agents(client, sleep).analyzer.run("Legacy Shop", PHP_LEGACY_CODE)
        assert report.mode is ArtifactMode.AI_POWERED
        assert sleep.delays == [2.0]

    async def test_fallback_is_logged(self, sleep, caplog):
        client = ScriptedModelClient([])
        with caplog.at_level("WARNING"):
            await _agents(client, sleep).analyzer.run("Legacy Shop", PHP_LEGACY_CODE)
        assert "provider_error" in caplog.text


class TestAttemptOutcome:
    async def test_unexpected_error_is_folded(self, sleep):
        client = ScriptedModelClient([RuntimeError("socket exploded")])
        agents = _agents(client, sleep)
        outcome = await agents.analyzer.attempt("prompt", AuditReport, "analysis")
        assert not outcome.ok
        assert outcome.failure is FailureKind.UNEXPECTED

    async def test_schema_failure_kind(self, sleep):
        client = ScriptedModelClient(['{"codeQualityScore": 10}'])
        outcome = await _agents(client, sleep).analyzer.attempt("p", AuditReport, "analysis")
        assert outcome.failure is FailureKind.SCHEMA_INVALID

    async def test_exhausted_kind(self, sleep):
        client = ScriptedModelClient([TransientProviderError(status_code=503)] * 3)
        outcome = await _agents(client, sleep).analyzer.attempt("p", AuditReport, "analysis")
        assert outcome.failure is FailureKind.RETRIES_EXHAUSTED


class TestDesignerAgent:
    async def test_ai_blueprint(self, sleep, audit):
        client = ScriptedModelClient([model_text(AI_BLUEPRINT)])
        blueprint = await _agents(client, sleep).designer.run(audit)
        assert blueprint.mode is ArtifactMode.AI_POWERED
        assert blueprint.architectural_design.pattern == "Modular monolith"
        assert client.calls[0][1] == 0.6
        assert '"detectedLanguage": "PHP"' in client.calls[0][0]

    async def test_fallback_blueprint(self, sleep, audit):
        client = ScriptedModelClient(['{"projectName": "x"}'])
        blueprint = await _agents(client, sleep).designer.run(audit)
        assert blueprint == simulated_blueprint(audit)


class TestBuilderAgent:
    async def test_ai_bundle(self, sleep, audit):
        client = ScriptedModelClient([model_text(AI_CODE_BUNDLE)])
        bundle = await _agents(client, sleep).builder.run(
            simulated_blueprint(audit), PHP_LEGACY_CODE, phase=1
        )
        assert bundle.mode is ArtifactMode.AI_POWERED
        assert bundle.files[0].path == "app/main.py"
        assert client.calls[0][1] == 0.3

    @pytest.mark.parametrize(
        "payload",
        [
            {"phase": 1, "dependencies": ["fastapi"]},
            {"phase": 1, "files": []},
            {"phase": 1, "files": "app/main.py"},
        ],
    )
    async def test_missing_files_fall_back(self, sleep, audit, payload):
        client = ScriptedModelClient([model_text(payload)])
        bundle = await _agents(client, sleep).builder.run(
            simulated_blueprint(audit), PHP_LEGACY_CODE, phase=1
        )
        assert bundle.mode is ArtifactMode.SIMULATED
        assert bundle.files[0].path == "backend/app/main.py"

    async def test_modifications_reach_prompt(self, sleep, audit):
        client = ScriptedModelClient([model_text(AI_CODE_BUNDLE)])
        await _agents(client, sleep).builder.run(
            simulated_blueprint(audit), PHP_LEGACY_CODE, modifications="Use MySQL instead"
        )
        assert "Use MySQL instead" in client.calls[0][0]

    async def test_fix_code_ai(self, sleep):
        client = ScriptedModelClient(
            [model_text({"fixedCode": "def main():\n    pass\n", "changesMade": ["Added main"],
                         "reasoning": "needs an entry point"})]
        )
        fix = await _agents(client, sleep).builder.fix_code("import os", "No main function or class defined")
        assert fix.fixed_code.startswith("def main")
        assert fix.changes_made == ["Added main"]
        assert "No main function or class defined" in client.calls[0][0]

    async def test_fix_code_fallback(self, sleep):
        client = ScriptedModelClient([])
        fix = await _agents(client, sleep).builder.fix_code("import urllib2", "boom")
        assert fix.fixed_code == "import sys\nimport os"
        assert fix.reasoning == "Applied common Python fixes for missing imports"


DEEPLY_NESTED = '{"detectedLanguage": "PHP", "x": ' + "[" * 100000 + "]" * 100000 + "}"

UNUSABLE_RESPONSES = [
    '{"detectedLanguage": "PHP", "codeQualityScore": Infinity}',
    '{"detectedLanguage": "PHP", "codeQualityScore": -Infinity}',
    '{"detectedLanguage": "PHP", "codeQualityScore": 1e400}',
    '{"detectedLanguage": "PHP", "codeQualityScore": NaN}',
    DEEPLY_NESTED,
    "[1, 2, 3]",
    '"just a string"',
]


class _ExplodingArtifact(BaseModel):
    value: int = 0

    @field_validator("value", mode="before")
    @classmethod
    def _explode(cls, value):
        raise RuntimeError("validator crashed")


class TestUnusableResponses:
    @pytest.mark.parametrize("text", UNUSABLE_RESPONSES)
    async def test_analyzer_falls_back(self, sleep, text):
        client = ScriptedModelClient([text])
        report = await _agents(client, sleep).analyzer.run("Legacy Shop", PHP_LEGACY_CODE)
        assert report.mode is ArtifactMode.SIMULATED
        assert report == simulated_audit_report("Legacy Shop", PHP_LEGACY_CODE)

    @pytest.mark.parametrize("text", [DEEPLY_NESTED, "[1, 2, 3]"])
    async def test_designer_falls_back(self, sleep, audit, text):
        blueprint = await _agents(ScriptedModelClient([text]), sleep).designer.run(audit)
        assert blueprint.mode is ArtifactMode.SIMULATED

    @pytest.mark.parametrize("text", [DEEPLY_NESTED, '{"phase": Infinity, "files": []}'])
    async def test_builder_falls_back(self, sleep, audit, text):
        bundle = await _agents(ScriptedModelClient([text]), sleep).builder.run(
            simulated_blueprint(audit), PHP_LEGACY_CODE
        )
        assert bundle.mode is ArtifactMode.SIMULATED

    async def test_fix_falls_back(self, sleep):
        fix = await _agents(ScriptedModelClient([DEEPLY_NESTED]), sleep).builder.fix_code(
            "import urllib2", "boom"
        )
        assert fix.fixed_code == "import sys\nimport os"

    async def test_overflowing_score_kind(self, sleep):
        client = ScriptedModelClient(['{"detectedLanguage": "PHP", "codeQualityScore": 1e400}'])
        outcome = await _agents(client, sleep).analyzer.attempt("p", AuditReport, "analysis")
        assert outcome.failure is FailureKind.SCHEMA_INVALID

    async def test_deep_nesting_kind(self, sleep):
        client = ScriptedModelClient([DEEPLY_NESTED])
        outcome = await _agents(client, sleep).analyzer.attempt("p", AuditReport, "analysis")
        assert outcome.failure is FailureKind.MALFORMED

    async def test_crashing_validator_is_folded(self, sleep):
        client = ScriptedModelClient(['{"value": 1}'])
        outcome = await _agents(client, sleep).analyzer.attempt("p", _ExplodingArtifact, "analysis")
        assert outcome.failure is FailureKind.SCHEMA_INVALID
        assert "validator crashed" in outcome.detail
