"""Harness configuration with YAML support."""

from __future__ import annotations

from pathlib import Path

import yaml
from pydantic import Field

from harness.schemas import BaseSchema
from sandbox import policy
from sandbox.executor import SandboxExecutor


class HarnessConfig(BaseSchema):
    """Sandbox limits and policy for a verification run."""

    timeout_seconds: float = Field(default=SandboxExecutor.DEFAULT_TIMEOUT_SECONDS, gt=0)
    memory_limit_mb: int = Field(default=SandboxExecutor.DEFAULT_MEMORY_LIMIT_MB, ge=16)
    allowed_modules: list[str] = Field(default_factory=lambda: list(policy.ALLOWED_MODULES))

    def build_executor(self) -> SandboxExecutor:
        return SandboxExecutor(
            memory_limit_mb=self.memory_limit_mb,
            timeout_seconds=self.timeout_seconds,
            allowed_modules=self.allowed_modules,
        )


def load_config(yaml_path: str | Path) -> HarnessConfig:
    """Load harness configuration from YAML file.

    Args:
        yaml_path: Path to YAML configuration file

    Returns:
        HarnessConfig instance

    Raises:
        FileNotFoundError: If YAML file doesn't exist
        ValueError: If YAML is invalid or has invalid fields
    """
    yaml_path = Path(yaml_path)

    if not yaml_path.exists():
        raise FileNotFoundError(f"Config file not found: {yaml_path}")

    with open(yaml_path, "r", encoding="utf-8") as f:
        try:
            data = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ValueError(f"Invalid YAML in {yaml_path}: {e}") from e

    if data is None:
        return HarnessConfig()
    if not isinstance(data, dict):
        raise ValueError(f"Config must be a mapping: {yaml_path}")

    try:
        return HarnessConfig.from_dict(data)
    except Exception as e:
        raise ValueError(f"Invalid configuration in {yaml_path}: {e}") from e


def save_config(config: HarnessConfig, yaml_path: str | Path) -> None:
    """Save harness configuration to YAML file."""
    yaml_path = Path(yaml_path)
    yaml_path.parent.mkdir(parents=True, exist_ok=True)

    data = config.to_dict()

    with open(yaml_path, "w", encoding="utf-8") as f:
        yaml.dump(data, f, default_flow_style=False, sort_keys=False, indent=2)
