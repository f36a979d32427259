"""Shared constants used across the service and the orchestrator."""
from __future__ import annotations

# Application version
VERSION: str = "1.0.0"

# Service identity
SERVICE_NAME: str = "code-archaeologist"
SERVICE_TITLE: str = "CodeArcheologist API"
INTERNAL_PORT: int = 8000

# Database settings
DB_BUSY_TIMEOUT_MS: int = 30000

# Listing bound for ``GET /api/projects``
PROJECT_LIST_LIMIT: int = 100

# Download file names for the produced artifacts
AUDIT_DOWNLOAD_NAME: str = "LegacyAudit.json"
BLUEPRINT_DOWNLOAD_NAME: str = "Blueprint.md"
CODE_DOWNLOAD_NAME: str = "GeneratedCode.json"
