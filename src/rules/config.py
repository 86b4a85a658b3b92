from __future__ import annotations

import tomllib
from pathlib import Path
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

from rules.layers import DEFAULT_LAYER_ORDER, DEFAULT_LAYER_REFERENCES

CONFIG_FILENAME = "codetower.toml"

CycleMode = Literal["reachable", "through_source"]


class LayersConfig(BaseModel):
    """Layer ordering and the references wired into generated layers."""

    model_config = ConfigDict(extra="forbid")

    order: list[str] = Field(
        default_factory=lambda: list(DEFAULT_LAYER_ORDER),
        description="Layer names from innermost to outermost",
    )
    references: dict[str, list[str]] = Field(
        default_factory=lambda: {
            name: list(refs) for name, refs in DEFAULT_LAYER_REFERENCES.items()
        },
        description="Layer name -> layers it references when generated",
    )

    @field_validator("order")
    @classmethod
    def validate_order(cls, v: list[str]) -> list[str]:
        lowered = [name.lower() for name in v]
        if len(set(lowered)) != len(lowered):
            msg = "layers.order must not repeat a layer name"
            raise ValueError(msg)
        if any(not name or "." in name for name in v):
            msg = "layers.order entries must be single, non-empty segments"
            raise ValueError(msg)
        return v


class CodeTowerConfig(BaseModel):
    """Configuration read from codetower.toml at the codebase root."""

    model_config = ConfigDict(extra="forbid")

    backup_dir: str = Field(
        default=".codetower_backup",
        description="Folder (inside the root) holding timestamped backups",
    )
    source_root: str = Field(
        default=".",
        description="Folder (inside the root) whose sub-folders are top-level packages",
    )
    include: list[str] = Field(
        default_factory=list,
        description="Glob patterns for files to include (empty = all Python files)",
    )
    exclude: list[str] = Field(
        default_factory=list,
        description="Glob patterns for files to exclude",
    )
    nested_gitignore: bool = Field(
        default=False,
        description="Honor .gitignore files below the root as well",
    )
    cycle_mode: CycleMode = Field(
        default="reachable",
        description=(
            "'reachable' reports any cycle reachable from a dependency; "
            "'through_source' only cycles that lead back to the moved namespace"
        ),
    )
    layers: LayersConfig = Field(
        default_factory=LayersConfig,
        description="Layer ranking and generated-layer references",
    )


class ConfigError(Exception):
    """Raised when a configuration file exists but cannot be used."""


def resolve_within_root(root: Path, relative: str, *, option: str) -> Path:
    """Resolve a config-provided folder, refusing anything outside ``root``.

    The value must be a relative path that stays within the codebase root
    after resolution. "." resolves to the root itself.
    """
    if not relative:
        msg = f"{option} must be a non-empty relative path"
        raise ConfigError(msg)

    if relative.startswith("~") or Path(relative).is_absolute():
        msg = f"{option} must be a relative path within the codebase root"
        raise ConfigError(msg)

    try:
        resolved_root = root.resolve()
        resolved = (resolved_root / relative).resolve()
    except OSError as exc:
        msg = f"Failed to resolve {option} '{relative}': {exc}"
        raise ConfigError(msg) from exc

    try:
        resolved.relative_to(resolved_root)
    except ValueError as exc:
        msg = f"{option} '{relative}' escapes the codebase root"
        raise ConfigError(msg) from exc

    return resolved


def normalized_source_root(root: Path, config: CodeTowerConfig) -> str:
    """Source root as a posix path relative to ``root`` ("" for the root)."""
    resolved = resolve_within_root(root, config.source_root, option="source_root")
    relative = resolved.relative_to(root.resolve()).as_posix()
    return "" if relative == "." else relative


def backup_folder_name(root: Path, config: CodeTowerConfig) -> str:
    """Backup folder relative to ``root``; it must not be the root itself."""
    resolved = resolve_within_root(root, config.backup_dir, option="backup_dir")
    relative = resolved.relative_to(root.resolve()).as_posix()
    if relative == ".":
        msg = "backup_dir must not be the codebase root"
        raise ConfigError(msg)
    return relative


def load_config(root: Path) -> CodeTowerConfig:
    """Load configuration from codetower.toml if it exists."""
    config_path = Path(root) / CONFIG_FILENAME

    if not config_path.is_file():
        return CodeTowerConfig()

    try:
        with config_path.open("rb") as f:
            data = tomllib.load(f)
    except tomllib.TOMLDecodeError as e:
        msg = f"Invalid TOML in {config_path}: {e}"
        raise ConfigError(msg) from e

    try:
        return CodeTowerConfig.model_validate(data)
    except Exception as e:
        msg = f"Invalid config in {config_path}: {e}"
        raise ConfigError(msg) from e
