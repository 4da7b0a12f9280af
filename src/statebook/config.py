"""Configuration management for statebook.

Loads and validates statebook.yaml configuration files.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field, field_validator

from statebook.compiler.ir import Mode, SelectionBehavior


class CommandsConfig(BaseModel):
    """Names of the editor commands generated suites invoke."""

    namespace: str = "dance"
    """Prefix applied to commands written with a leading "."."""

    selection_behavior: str = "dance.dev.setSelectionBehavior"
    """Command receiving {"mode": ..., "value": ...} for behavior flags."""

    type: str = "type"
    """Command receiving {"text": ...} for type:<char> operations."""


class DefaultBehaviorConfig(BaseModel):
    """Selection behavior applied when a suite opens its editor."""

    mode: Mode = Mode.NORMAL
    behavior: SelectionBehavior = SelectionBehavior.CARET


class GeneratorConfig(BaseModel):
    """Configuration for generated test modules."""

    output_suffix: str = "_test.py"
    """Generated module name: <spec stem><output_suffix>, beside the spec."""

    host_fixture: str = "statebook_host"
    """pytest fixture providing the Host that opens editors."""

    type_stagger_ms: int = Field(default=20, ge=0)
    """Delay between successive typed characters of one group."""

    wait_timeout_ms: int | None = Field(default=None, gt=0)
    """Fail instead of waiting forever on a predecessor. None disables."""

    default_behavior: DefaultBehaviorConfig = Field(default_factory=DefaultBehaviorConfig)

    @field_validator("default_behavior", mode="before")
    @classmethod
    def empty_section(cls, v: Any) -> Any:
        return {} if v is None else v

    @field_validator("host_fixture")
    @classmethod
    def ensure_identifier(cls, v: str) -> str:
        if not v.isidentifier():
            raise ValueError(f"host_fixture must be a Python identifier, got {v!r}")
        return v

    @field_validator("output_suffix")
    @classmethod
    def ensure_python_module(cls, v: str) -> str:
        if not v.endswith(".py"):
            raise ValueError(f"output_suffix must end with .py, got {v!r}")
        return v


class StatebookConfig(BaseModel):
    """Root configuration for statebook."""

    version: str = "0.1"
    """Config file version."""

    spec_paths: list[str] = Field(default_factory=lambda: ["tests/specs"])
    """Directories to search for spec files."""

    spec_extension: str = ".md"
    """Extension of spec files."""

    commands: CommandsConfig = Field(default_factory=CommandsConfig)

    generator: GeneratorConfig = Field(default_factory=GeneratorConfig)

    @field_validator("spec_paths", mode="before")
    @classmethod
    def ensure_list(cls, v: Any) -> list[str]:
        if isinstance(v, str):
            return [v]
        return v

    @field_validator("spec_extension")
    @classmethod
    def ensure_dot(cls, v: str) -> str:
        return v if v.startswith(".") else f".{v}"

    @field_validator("commands", "generator", mode="before")
    @classmethod
    def empty_section(cls, v: Any) -> Any:
        # A section whose keys are all commented out loads as None
        return {} if v is None else v


CONFIG_NAMES = ("statebook.yaml", "statebook.yml", ".statebook.yaml", ".statebook.yml")


def load_config(config_path: Path | None = None, project_root: Path | None = None) -> StatebookConfig:
    """Load configuration from a YAML file.

    Args:
        config_path: Explicit path to config file. If None, searches for statebook.yaml.
        project_root: Project root directory. Defaults to cwd.

    Returns:
        Parsed configuration. Returns default config if no file found.
    """
    project_root = project_root or Path.cwd()

    # Find config file
    if config_path is None:
        for name in CONFIG_NAMES:
            candidate = project_root / name
            if candidate.exists():
                config_path = candidate
                break

    # No config file - return defaults
    if config_path is None or not config_path.exists():
        return StatebookConfig()

    # Load and parse YAML
    with open(config_path) as f:
        data = yaml.safe_load(f) or {}

    return StatebookConfig.model_validate(data)


def resolve_paths(config: StatebookConfig, project_root: Path) -> StatebookConfig:
    """Resolve relative spec paths in config to absolute paths.

    Args:
        config: The configuration to update.
        project_root: Base directory for relative paths.

    Returns:
        Config with resolved paths (new instance).
    """
    resolved_spec_paths = [
        str((project_root / p).resolve()) if not Path(p).is_absolute() else p for p in config.spec_paths
    ]
    return config.model_copy(update={"spec_paths": resolved_spec_paths})
