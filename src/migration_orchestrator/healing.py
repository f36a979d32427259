"""Self-healing build loop: execute, and on failure ask the Builder for a fix."""

from __future__ import annotations

import logging
from typing import Protocol

from src.migration_orchestrator.execution import ExecutionCheck, language_for_path
from src.shared.models.migration import BuildIteration, BuildRun, CodeBundle, FixResult

logger = logging.getLogger(__name__)

# Only this file of a bundle is executed and patched.
PROBE_FILE_INDEX = 0


class CodeFixer(Protocol):
    async def fix_code(self, content: str, stderr: str) -> FixResult: ...


class SelfHealingBuildLoop:
    """Bounded execute/fix loop over the primary file of a code bundle.

    Each attempt executes the probed file and appends an ``execute``
    iteration.  The loop stops on the first success.  After a failure, if
    attempts remain, the fixer's patch replaces the file content and a
    ``fix_applied`` iteration is appended.  The run succeeds when the last
    execution succeeded.
    """

    def __init__(
        self,
        builder: CodeFixer,
        execution_check: ExecutionCheck,
        max_attempts: int = 3,
    ) -> None:
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        self._builder = builder
        self._check = execution_check
        self.max_attempts = max_attempts

    async def run(self, bundle: CodeBundle) -> BuildRun:
        """Heal a deep copy of *bundle*; the input is left untouched."""
        healed = bundle.model_copy(deep=True)
        probe = healed.files[PROBE_FILE_INDEX]
        language = language_for_path(probe.path)
        iterations: list[BuildIteration] = []
        success = False

        for attempt in range(1, self.max_attempts + 1):
            result = await self._check.execute(probe.content, language)
            iterations.append(BuildIteration(attempt=attempt, execution_result=result))
            success = result.success
            if success:
                logger.info("Build attempt %d/%d passed for %s", attempt, self.max_attempts, probe.path)
                break

            logger.info(
                "Build attempt %d/%d failed for %s: %s",
                attempt, self.max_attempts, probe.path, result.stderr,
            )
            if attempt < self.max_attempts:
                fix = await self._builder.fix_code(probe.content, result.stderr)
                probe.content = fix.fixed_code
                iterations.append(
                    BuildIteration(
                        attempt=attempt,
                        action="fix_applied",
                        changes=list(fix.changes_made),
                        reasoning=fix.reasoning,
                    )
                )

        return BuildRun(code_bundle=healed, iterations=iterations, success=success)
