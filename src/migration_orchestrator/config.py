"""Configuration dataclasses and loader for the migration pipeline."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from src.migration_orchestrator.exceptions import ConfigurationError


@dataclass
class RetryConfig:
    """Retry policy for model invocations."""

    max_attempts: int = 3
    base_delay: float = 2.0


@dataclass
class BuildConfig:
    """Configuration for the self-healing build loop."""

    max_attempts: int = 3
    phase: int = 1


@dataclass
class ModelConfig:
    """Generative model settings shared by the stage agents."""

    name: str = "gemini-3-flash-preview"
    api_base: str = "https://generativelanguage.googleapis.com/v1beta"
    timeout: float = 120.0
    max_output_tokens: int = 8192
    analyzer_temperature: float = 0.4
    designer_temperature: float = 0.6
    builder_temperature: float = 0.3


@dataclass
class PipelineConfig:
    """Top-level configuration composing all sub-configs."""

    retry: RetryConfig = field(default_factory=RetryConfig)
    build: BuildConfig = field(default_factory=BuildConfig)
    model: ModelConfig = field(default_factory=ModelConfig)


def _validate(cfg: PipelineConfig) -> None:
    if cfg.retry.max_attempts < 1:
        raise ConfigurationError("retry.max_attempts must be at least 1")
    if cfg.retry.base_delay < 0:
        raise ConfigurationError("retry.base_delay must not be negative")
    if cfg.build.max_attempts < 1:
        raise ConfigurationError("build.max_attempts must be at least 1")
    if cfg.build.phase < 1:
        raise ConfigurationError("build.phase must be at least 1")
    if cfg.model.timeout <= 0:
        raise ConfigurationError("model.timeout must be positive")
    if cfg.model.max_output_tokens < 1:
        raise ConfigurationError("model.max_output_tokens must be at least 1")


def load_pipeline_config(path: Path | str | None = None) -> PipelineConfig:
    """Load pipeline configuration from a YAML file.

    Missing sections fall back to defaults.  Unknown keys are silently
    ignored so that forward-compatible config files work.

    Args:
        path: Path to config YAML.  If ``None`` or the file does not
              exist, returns full defaults.

    Returns:
        Populated configuration dataclass.

    Raises:
        ConfigurationError: If the file is not a YAML mapping or a value
            is out of range.
    """
    if path is None:
        return PipelineConfig()

    path = Path(path)
    if not path.exists():
        return PipelineConfig()

    with open(path, "r", encoding="utf-8") as f:
        raw = yaml.safe_load(f) or {}
    if not isinstance(raw, dict):
        raise ConfigurationError(f"Pipeline config {path} must be a mapping")

    def _pick(data: Any, cls: type) -> dict[str, Any]:
        """Filter *data* to only keys accepted by *cls*."""
        if not isinstance(data, dict):
            return {}
        valid = {f.name for f in cls.__dataclass_fields__.values()}
        return {k: v for k, v in data.items() if k in valid}

    try:
        cfg = PipelineConfig(
            retry=RetryConfig(**_pick(raw.get("retry"), RetryConfig)),
            build=BuildConfig(**_pick(raw.get("build"), BuildConfig)),
            model=ModelConfig(**_pick(raw.get("model"), ModelConfig)),
        )
        _validate(cfg)
    except TypeError as exc:
        # Comparisons against a non-numeric YAML value.
        raise ConfigurationError(f"Invalid pipeline config {path}: {exc}") from exc

    return cfg
