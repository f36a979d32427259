"""Stage agents: Analyzer, Designer and Builder.

Each agent builds a prompt, runs it through the :class:`ResilientInvoker`,
extracts and validates the JSON artifact, and falls back to the matching
simulated artifact when any of that fails.  A stage call never raises.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import TypeVar

from pydantic import BaseModel
from pydantic import ValidationError as SchemaValidationError

from src.migration_orchestrator import fallbacks, prompts
from src.migration_orchestrator.config import PipelineConfig
from src.migration_orchestrator.exceptions import (
    MalformedResponseError,
    ProviderError,
)
from src.migration_orchestrator.extractor import extract_json_object
from src.migration_orchestrator.invoker import ResilientInvoker, is_transient
from src.migration_orchestrator.model_client import ModelClient
from src.migration_orchestrator.outcome import FailureKind, StageOutcome, resolve_artifact
from src.shared.models.migration import (
    ArtifactMode,
    AuditReport,
    Blueprint,
    CodeBundle,
    FixResult,
)

logger = logging.getLogger(__name__)

M = TypeVar("M", bound=BaseModel)


class StageAgent:
    """Shared AI path of the stage agents."""

    stage = "stage"

    def __init__(
        self,
        client: ModelClient,
        invoker: ResilientInvoker,
        temperature: float,
    ) -> None:
        self._client = client
        self._invoker = invoker
        self.temperature = temperature

    async def attempt(self, prompt: str, schema: type[M], label: str) -> StageOutcome[M]:
        """Run the AI path once (with retries) and report what came back.

        Never raises: every failure is folded into a :class:`StageOutcome`.
        """
        try:
            text = await self._invoker.invoke(
                lambda: self._client.generate(prompt, self.temperature),
                label=label,
            )
        except MalformedResponseError as exc:
            return StageOutcome.failed(FailureKind.MALFORMED, str(exc))
        except ProviderError as exc:
            return StageOutcome.failed(FailureKind.PROVIDER_ERROR, str(exc))
        except Exception as exc:
            if is_transient(exc):
                return StageOutcome.failed(FailureKind.RETRIES_EXHAUSTED, str(exc))
            logger.warning("Unexpected error in %s", label, exc_info=True)
            return StageOutcome.failed(FailureKind.UNEXPECTED, repr(exc))

        try:
            data = extract_json_object(text)
        except MalformedResponseError as exc:
            return StageOutcome.failed(FailureKind.MALFORMED, str(exc))
        except Exception as exc:
            logger.warning("Unreadable response in %s", label, exc_info=True)
            return StageOutcome.failed(FailureKind.MALFORMED, repr(exc))

        try:
            artifact = schema.model_validate(data)
        except SchemaValidationError as exc:
            return StageOutcome.failed(
                FailureKind.SCHEMA_INVALID,
                f"{exc.error_count()} validation error(s), first: {exc.errors()[0]['msg']}",
            )
        except Exception as exc:
            logger.warning("Unusable artifact in %s", label, exc_info=True)
            return StageOutcome.failed(FailureKind.SCHEMA_INVALID, repr(exc))

        if "mode" in schema.model_fields:
            artifact = artifact.model_copy(update={"mode": ArtifactMode.AI_POWERED})
        return StageOutcome.success(artifact)

    def settle(self, outcome: StageOutcome[M], fallback: Callable[[], M], label: str) -> M:
        """Keep the AI artifact or substitute the simulated one."""
        artifact, used_fallback = resolve_artifact(outcome, fallback)
        if used_fallback:
            logger.warning(
                "%s fell back to simulated output (%s): %s",
                label, outcome.failure.value if outcome.failure else "empty", outcome.detail,
            )
        else:
            logger.info("%s produced an AI artifact", label)
        return artifact


class AnalyzerAgent(StageAgent):
    """Produces the audit report for a legacy code submission."""

    stage = "analysis"

    async def run(self, project_name: str, legacy_code: str) -> AuditReport:
        outcome = await self.attempt(
            prompts.analysis_prompt(project_name, legacy_code), AuditReport, self.stage
        )
        report = self.settle(
            outcome,
            lambda: fallbacks.simulated_audit_report(project_name, legacy_code),
            self.stage,
        )
        if not report.project_name:
            report = report.model_copy(update={"project_name": project_name})
        return report


class DesignerAgent(StageAgent):
    """Designs the modernisation blueprint from an audit report."""

    stage = "design"

    async def run(self, audit_report: AuditReport) -> Blueprint:
        outcome = await self.attempt(
            prompts.design_prompt(audit_report), Blueprint, self.stage
        )
        blueprint = self.settle(
            outcome, lambda: fallbacks.simulated_blueprint(audit_report), self.stage
        )
        if not blueprint.project_name:
            blueprint = blueprint.model_copy(update={"project_name": audit_report.project_name})
        return blueprint


class BuilderAgent(StageAgent):
    """Generates code from an approved blueprint and patches failing files."""

    stage = "build"

    async def run(
        self,
        blueprint: Blueprint,
        legacy_code: str,
        phase: int = 1,
        modifications: str | None = None,
    ) -> CodeBundle:
        outcome = await self.attempt(
            prompts.build_prompt(blueprint, legacy_code, phase, modifications),
            CodeBundle,
            self.stage,
        )
        return self.settle(
            outcome, lambda: fallbacks.simulated_code_bundle(blueprint, phase), self.stage
        )

    async def fix_code(self, content: str, stderr: str) -> FixResult:
        outcome = await self.attempt(prompts.fix_prompt(content, stderr), FixResult, "fix")
        return self.settle(outcome, lambda: fallbacks.simulated_fix(content), "fix")


@dataclass
class StageAgents:
    """The three agents wired to one model client and retry policy."""

    analyzer: AnalyzerAgent
    designer: DesignerAgent
    builder: BuilderAgent


def create_stage_agents(
    client: ModelClient,
    config: PipelineConfig | None = None,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
) -> StageAgents:
    """Build the stage agents from the pipeline configuration."""
    config = config or PipelineConfig()
    invoker = ResilientInvoker(
        max_attempts=config.retry.max_attempts,
        base_delay=config.retry.base_delay,
        sleep=sleep,
    )
    return StageAgents(
        analyzer=AnalyzerAgent(client, invoker, config.model.analyzer_temperature),
        designer=DesignerAgent(client, invoker, config.model.designer_temperature),
        builder=BuilderAgent(client, invoker, config.model.builder_temperature),
    )
