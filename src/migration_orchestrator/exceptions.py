"""Internal exceptions for the migration pipeline.

None of these reach API callers: the stage agents absorb them and fall
back to simulated artifacts.
"""

from __future__ import annotations


class PipelineError(Exception):
    """Base exception for all pipeline errors."""

    pass


class ConfigurationError(PipelineError):
    """Raised for invalid pipeline configuration values."""

    pass


class TransientProviderError(PipelineError):
    """Raised when the model provider is overloaded or rate limited."""

    def __init__(self, message: str = "", status_code: int | None = None) -> None:
        self.status_code = status_code
        super().__init__(message or f"Transient provider error ({status_code})")


class ProviderError(PipelineError):
    """Raised for provider failures that retrying will not fix."""

    def __init__(self, message: str = "", status_code: int | None = None) -> None:
        self.status_code = status_code
        super().__init__(message or f"Provider error ({status_code})")


class MalformedResponseError(PipelineError):
    """Raised when a model response holds no parseable JSON object."""

    def __init__(self, message: str = "", raw: str = "") -> None:
        self.raw = raw
        super().__init__(message or "Model response holds no JSON object")
