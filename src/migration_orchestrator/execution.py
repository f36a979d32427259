"""Execution checks run against generated code by the build loop.

Generated code is never actually executed.  :class:`HeuristicExecutionCheck`
is a deterministic static check: the same source always gets the same
verdict.  Only the timing and memory figures vary between runs.
"""

from __future__ import annotations

import ast
import time
import tracemalloc
from pathlib import PurePosixPath
from typing import Protocol

from src.shared.models.migration import ExecutionResult

LANGUAGE_BY_SUFFIX: dict[str, str] = {
    ".py": "python",
    ".js": "javascript",
    ".jsx": "javascript",
    ".mjs": "javascript",
    ".ts": "typescript",
    ".tsx": "typescript",
}

_BRACKETS = {")": "(", "]": "[", "}": "{"}


def language_for_path(path: str) -> str:
    """Map a generated file path to a check language (``text`` if unknown)."""
    return LANGUAGE_BY_SUFFIX.get(PurePosixPath(path).suffix.lower(), "text")


class ExecutionCheck(Protocol):
    """Judges whether a piece of generated code would run."""

    async def execute(self, code: str, language: str) -> ExecutionResult: ...


def _python_checks(code: str) -> list[tuple[bool, str]]:
    try:
        tree = ast.parse(code)
    except SyntaxError as exc:
        return [(False, f"SyntaxError: {exc.msg} (line {exc.lineno})")]

    checks = [(True, "syntax")]
    has_imports = any(isinstance(node, (ast.Import, ast.ImportFrom)) for node in tree.body)
    defines = any(
        isinstance(node, (ast.FunctionDef, ast.AsyncFunctionDef, ast.ClassDef))
        for node in ast.walk(tree)
    )
    if has_imports and not defines:
        checks.append((False, "No main function or class defined"))
    else:
        checks.append((True, "structure"))
    return checks


def _unbalanced_bracket(code: str) -> str | None:
    """Return a description of the first bracket mismatch, or None.

    String, template literal and comment contents are skipped.
    """
    stack: list[tuple[str, int]] = []
    line = 1
    i = 0
    n = len(code)
    while i < n:
        ch = code[i]
        if ch == "\n":
            line += 1
        elif code.startswith("//", i):
            end = code.find("\n", i)
            i = n if end == -1 else end
            continue
        elif code.startswith("/*", i):
            end = code.find("*/", i + 2)
            stop = n if end == -1 else end + 2
            line += code.count("\n", i, stop)
            i = stop
            continue
        elif ch in "'\"`":
            j = i + 1
            while j < n and code[j] != ch:
                if code[j] == "\\":
                    j += 1
                elif code[j] == "\n" and ch != "`":
                    # Unterminated quote; JSX text such as "don't" lands here.
                    break
                j += 1
            line += code.count("\n", i, j)
            i = j + 1 if j < n and code[j] == ch else j
            continue
        elif ch in "([{":
            stack.append((ch, line))
        elif ch in _BRACKETS:
            if not stack or stack[-1][0] != _BRACKETS[ch]:
                return f"SyntaxError: unexpected '{ch}' (line {line})"
            stack.pop()
        i += 1
    if stack:
        opener, opened_at = stack[-1]
        return f"SyntaxError: unclosed '{opener}' (line {opened_at})"
    return None


def _script_checks(code: str) -> list[tuple[bool, str]]:
    problem = _unbalanced_bracket(code)
    if problem:
        return [(False, problem)]
    return [(True, "brackets")]


class HeuristicExecutionCheck:
    """Static stand-in for a sandboxed runner.

    Python sources must parse and, when they import anything, define at
    least one function or class.  JavaScript and TypeScript sources must
    have balanced brackets.  Empty sources always fail.
    """

    async def execute(self, code: str, language: str) -> ExecutionResult:
        started_tracing = not tracemalloc.is_tracing()
        if started_tracing:
            tracemalloc.start()
        start = time.perf_counter()
        try:
            if not code.strip():
                checks = [(False, "Runtime error: empty source file")]
            elif language == "python":
                checks = _python_checks(code)
            elif language in ("javascript", "typescript"):
                checks = _script_checks(code)
            else:
                checks = [(True, "non-empty")]
            _, peak = tracemalloc.get_traced_memory()
        finally:
            elapsed_ms = (time.perf_counter() - start) * 1000
            if started_tracing:
                tracemalloc.stop()

        failures = [message for ok, message in checks if not ok]
        success = not failures
        return ExecutionResult(
            success=success,
            stdout="Code executed successfully\nAll checks passed" if success else "",
            stderr="\n".join(failures),
            execution_time=round(elapsed_ms, 3),
            memory_usage=round(peak / (1024 * 1024), 3),
            tests_passed=len(checks) - len(failures),
            tests_failed=len(failures),
        )
