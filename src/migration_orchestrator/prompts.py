"""Prompt builders for the three stage agents and the fix request."""

from __future__ import annotations

import json

from src.shared.models.migration import AuditReport, Blueprint

_JSON_ONLY = "Return ONLY the JSON object, no additional text."

_AUDIT_SCHEMA = """\
{
  "projectName": "%(project_name)s",
  "detectedLanguage": "string",
  "frameworks": ["array of frameworks"],
  "codeQualityScore": "number 0-100",
  "businessLogic": {
    "description": "string",
    "keyFeatures": ["array of features"],
    "workflows": ["array of workflows"]
  },
  "securityIssues": [
    {
      "severity": "critical/high/medium/low",
      "issue": "description",
      "location": "file/line",
      "recommendation": "fix suggestion"
    }
  ],
  "deprecatedDependencies": [
    {
      "name": "library name",
      "currentVersion": "version",
      "recommendedVersion": "version",
      "securityRisk": "high/medium/low"
    }
  ],
  "codeSmells": ["array of issues"],
  "databaseSchema": {
    "detected": "boolean",
    "tables": ["array of table names"],
    "relationships": ["array of relationships"]
  },
  "apiEndpoints": ["array of endpoints"],
  "dependencyGraph": {
    "nodes": [{"id": "string", "label": "string", "type": "string"}],
    "edges": [{"source": "node id", "target": "node id", "label": "string"}]
  },
  "migrationComplexity": "low/medium/high/very-high",
  "estimatedEffort": "string (e.g., 2-3 weeks)"
}"""

_BLUEPRINT_SCHEMA = """\
{
  "projectName": "string",
  "targetStack": {
    "backend": "Python 3.12 + FastAPI",
    "frontend": "React (Next.js) + TypeScript",
    "database": "PostgreSQL / MongoDB",
    "authentication": "JWT + OAuth2",
    "deployment": "Docker + Kubernetes"
  },
  "architecturalDesign": {
    "pattern": "string (e.g., Microservices, Monolithic, etc.)",
    "reasoning": "explanation of why this pattern",
    "components": ["array of major components"]
  },
  "databaseDesign": {
    "models": [
      {
        "name": "ModelName",
        "fields": [{"name": "field", "type": "string", "constraints": "string"}],
        "relationships": ["array"]
      }
    ],
    "migrations": "migration strategy"
  },
  "apiDesign": {
    "endpoints": [
      {
        "method": "GET/POST/etc",
        "path": "/api/path",
        "description": "what it does",
        "authentication": "required/optional/none"
      }
    ],
    "authentication": "auth strategy"
  },
  "frontendStructure": {
    "pages": ["array of pages"],
    "components": ["array of reusable components"],
    "stateManagement": "approach"
  },
  "fileStructure": {
    "backend": ["array of file paths"],
    "frontend": ["array of file paths"]
  },
  "implementationPhases": [
    {
      "phase": "Phase 1",
      "description": "what to build",
      "files": ["files to create"],
      "duration": "estimated time"
    }
  ],
  "thoughtSignatures": {
    "keyDecisions": ["array of major architectural decisions"],
    "tradeoffs": ["array of tradeoffs considered"],
    "reasoning": "overall reasoning summary"
  },
  "securityConsiderations": ["array of security measures"],
  "testingStrategy": "testing approach",
  "blueprintMarkdown": "# Complete blueprint in markdown format for user review"
}"""

_CODE_SCHEMA = """\
{
  "phase": %(phase)d,
  "files": [
    {
      "path": "relative/path/to/file.py",
      "content": "complete file content",
      "description": "what this file does"
    }
  ],
  "tests": [
    {
      "path": "tests/test_file.py",
      "content": "test code",
      "description": "what it tests"
    }
  ],
  "dependencies": ["list of required packages"],
  "setupInstructions": "how to run this code",
  "nextSteps": "what to do next"
}"""

_FIX_SCHEMA = """\
{
  "fixedCode": "corrected code",
  "changesMade": ["list of changes"],
  "reasoning": "why these fixes work"
}"""


def _artifact_json(artifact: AuditReport | Blueprint) -> str:
    # The provenance tag means nothing to the model.
    return json.dumps(artifact.model_dump(by_alias=True, exclude={"mode"}), indent=2)


def analysis_prompt(project_name: str, legacy_code: str) -> str:
    return (
        "You are the Archaeologist Agent in a legacy code migration system. "
        "Your task is to thoroughly analyze the provided legacy codebase.\n\n"
        f"Legacy Code:\n{legacy_code}\n\n"
        "Perform a comprehensive analysis and generate a structured audit report with:\n\n"
        "1. Language & Framework Detection: identify the programming language(s) and frameworks used\n"
        "2. Business Logic Extraction: extract core business rules and functionality\n"
        "3. Security Vulnerabilities: hard-coded secrets, SQL injection risks, etc.\n"
        "4. Deprecated Dependencies: outdated libraries and their security status\n"
        "5. Code Smells: anti-patterns, code duplication, circular dependencies\n"
        "6. Database Schema: database models and relationships if present\n"
        "7. API Endpoints: all endpoints/routes if it's a web application\n"
        "8. Dependency Graph: a node-edge representation of file dependencies\n\n"
        "Return a JSON object with this exact structure:\n"
        + _AUDIT_SCHEMA % {"project_name": project_name.replace('"', '\\"')}
        + "\n\nBe thorough and extract as much information as possible. "
        + _JSON_ONLY
    )


def design_prompt(audit_report: AuditReport) -> str:
    return (
        "You are the Architect Agent with Deep Reasoning capabilities. "
        "You've received an audit report from the Archaeologist Agent.\n\n"
        f"Audit Report:\n{_artifact_json(audit_report)}\n\n"
        "Your task is to design a comprehensive Migration Blueprint for converting "
        "this legacy code to a modern Python/FastAPI + React (Next.js) stack.\n\n"
        "Use your deep reasoning to:\n"
        "1. Analyze the legacy architecture and business requirements\n"
        "2. Design a modern, scalable architecture\n"
        "3. Plan the data model and API structure\n"
        "4. Create a detailed implementation roadmap\n"
        "5. Explain your architectural decisions (thought signatures)\n\n"
        "Generate a Migration Blueprint in this JSON structure:\n"
        + _BLUEPRINT_SCHEMA
        + "\n\n"
        + _JSON_ONLY
    )


def build_prompt(
    blueprint: Blueprint,
    legacy_code: str,
    phase: int = 1,
    modifications: str | None = None,
) -> str:
    overrides = ""
    if modifications:
        overrides = (
            "3. Reviewer Modifications (these override the blueprint where they conflict):\n"
            f"{modifications}\n\n"
        )
    return (
        "You are the Builder Agent in a code migration system. You have received:\n\n"
        f"1. Migration Blueprint:\n{_artifact_json(blueprint)}\n\n"
        f"2. Original Legacy Code:\n{legacy_code}\n\n"
        + overrides
        + f"Your task is to generate the modern code for Phase {phase}.\n\n"
        "Generate production-ready code following the blueprint's architecture and "
        "thought signatures. Include:\n"
        "- Complete, working code files\n"
        "- Proper error handling\n"
        "- Security best practices\n"
        "- Comments explaining business logic\n"
        "- Unit tests for critical functions\n\n"
        "Return a JSON object with this structure:\n"
        + _CODE_SCHEMA % {"phase": phase}
        + "\n\n"
        + _JSON_ONLY
    )


def fix_prompt(code: str, errors: str) -> str:
    return (
        "You are the Builder Agent in self-healing mode. The generated code has errors:\n\n"
        f"Original Code:\n{code}\n\n"
        f"Errors:\n{errors}\n\n"
        "Analyze the errors and provide a fixed version of the code. Return JSON:\n"
        + _FIX_SCHEMA
        + "\n\n"
        + _JSON_ONLY
    )
