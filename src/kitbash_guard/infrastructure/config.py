"""Configuration management for the kitbash guard."""

import os
from importlib import resources
from pathlib import Path
from typing import Any, Literal

import yaml
from pydantic import BaseModel, Field, ValidationError, field_validator

from ..domain.models import ErrorCode, GuardError
from ..domain.rules import Rule

CONFIG_ENV_VAR = "KITBASH_GUARD_CONFIG"
LOG_LEVEL_ENV_VAR = "KITBASH_GUARD_LOG_LEVEL"
DEFAULT_CONFIG_RESOURCE = "default.yaml"

DEFAULT_EXCLUDE_DIRS = [
    "node_modules",
    "target",
    ".git",
    "dist",
    "build",
    ".jj",
    ".venv",
    "__pycache__",
]


class GuardSettings(BaseModel):
    """Process-level settings."""

    log_level: str = Field(default="WARNING", description="Logging level")
    json_logs: bool = Field(default=False, description="Emit JSON log lines")
    version_timeout_seconds: float = Field(
        default=2.0,
        gt=0,
        le=10,
        description="Timeout for tool version and listing commands",
    )


class ToolCheckConfig(BaseModel):
    """An external tool expected on PATH."""

    name: str
    version_args: list[str] | None = Field(
        default_factory=lambda: ["--version"],
        description="Arguments printing the tool version; null skips the query",
    )
    install_hint: str | None = None


class MarkerCheckConfig(BaseModel):
    """A directory or control file showing a subsystem is initialized."""

    name: str
    paths: list[str] = Field(..., min_length=1)
    kind: Literal["any", "dir", "file"] = "any"
    contains: str | None = Field(
        default=None, description="Regex a marker file must contain"
    )
    search_parents: bool = Field(
        default=False, description="Also look in parent directories of cwd"
    )
    present: str | None = Field(default=None, description="Status text when found")
    absent: str | None = Field(default=None, description="Status text when missing")
    remediation: str | None = None
    remediate_if: Literal["not_found", "content_mismatch"] = Field(
        default="not_found",
        description="content_mismatch advises only when the file exists without `contains`",
    )

    @field_validator("paths", mode="before")
    @classmethod
    def coerce_paths(cls, v: Any) -> Any:
        if isinstance(v, str):
            return [v]
        return v


class CommandCheckConfig(BaseModel):
    """Output of a read-only listing command, shown as a block under the section."""

    name: str
    command: list[str] = Field(..., min_length=1, description="Executable and arguments")
    max_lines: int | None = Field(default=None, gt=0)
    overflow: str | None = Field(
        default=None, description="Shown after truncation; may use {remaining}"
    )
    fallback: str | None = Field(
        default=None, description="Shown when the command fails or prints nothing"
    )


class LanguageConfig(BaseModel):
    """A file category counted by extension."""

    name: str
    extensions: list[str] = Field(..., min_length=1)

    @field_validator("extensions")
    @classmethod
    def strip_dots(cls, v: list[str]) -> list[str]:
        return [ext.lstrip(".").lower() for ext in v]


class ProbeSectionConfig(BaseModel):
    """One advisory line of the session-start context."""

    name: str
    title: str | None = None
    enabled: bool = True
    when: Literal["always", "marker_present"] = Field(
        default="always",
        description="marker_present reports the section only if a marker exists",
    )
    tools: list[ToolCheckConfig] = Field(default_factory=list)
    markers: list[MarkerCheckConfig] = Field(default_factory=list)
    languages: list[LanguageConfig] = Field(default_factory=list)
    commands: list[CommandCheckConfig] = Field(default_factory=list)
    hint: str | None = None

    @property
    def heading(self) -> str:
        return self.title or self.name


class SessionStartConfig(BaseModel):
    """Context probe configuration."""

    sections: list[ProbeSectionConfig] = Field(default_factory=list)
    exclude_dirs: list[str] = Field(default_factory=lambda: list(DEFAULT_EXCLUDE_DIRS))
    max_scan_files: int = Field(
        default=20000, gt=0, description="Stop counting files after this many"
    )


class GuardConfig(BaseModel):
    """Complete guard configuration."""

    settings: GuardSettings = Field(default_factory=GuardSettings)
    rules: list[Rule] = Field(default_factory=list)
    session_start: SessionStartConfig = Field(default_factory=SessionStartConfig)


class ConfigManager:
    """Loads the guard configuration.

    Lookup order: explicit path, ``KITBASH_GUARD_CONFIG``, then the default
    configuration shipped with the package.
    """

    def __init__(self, config_file: str | Path | None = None):
        self.config_file = config_file or os.environ.get(CONFIG_ENV_VAR) or None

    def _read_yaml(self) -> tuple[dict[str, Any], str]:
        try:
            if self.config_file:
                path = Path(self.config_file).expanduser()
                source = str(path)
                text = path.read_text(encoding="utf-8")
            else:
                resource = resources.files("kitbash_guard").joinpath(
                    "config", DEFAULT_CONFIG_RESOURCE
                )
                source = str(resource)
                text = resource.read_text(encoding="utf-8")
            data = yaml.safe_load(text) or {}
        except (OSError, yaml.YAMLError) as e:
            raise GuardError(
                ErrorCode.INVALID_CONFIGURATION,
                f"Failed to read configuration: {e}",
                "Guard configuration could not be read",
                context={"config_file": str(self.config_file)},
            ) from e

        if not isinstance(data, dict):
            raise GuardError(
                ErrorCode.INVALID_CONFIGURATION,
                f"Configuration root must be a mapping: {source}",
                "Guard configuration is invalid",
            )
        return data, source

    def load_config(self) -> GuardConfig:
        """Load configuration from YAML and apply environment overrides.

        Raises:
            GuardError: If the file cannot be read or fails validation
        """
        data, source = self._read_yaml()
        try:
            config = GuardConfig.model_validate(data)
        except ValidationError as e:
            raise GuardError(
                ErrorCode.INVALID_CONFIGURATION,
                f"Invalid configuration in {source}: {e}",
                "Guard configuration is invalid",
                context={"config_file": source},
            ) from e

        log_level = os.environ.get(LOG_LEVEL_ENV_VAR)
        if log_level:
            config = config.model_copy(
                update={
                    "settings": config.settings.model_copy(
                        update={"log_level": log_level}
                    )
                }
            )

        return config
