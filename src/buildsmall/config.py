"""Process configuration collected once from the environment and YAML."""

from __future__ import annotations

import os
import shlex
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Tuple

import yaml
from pydantic import ValidationError
from pydantic.type_adapter import TypeAdapter

from .errors import ConfigurationError
from .schema import IssueContext, RunMetadata

DEFAULT_MODEL = "gemini-1.5-flash-latest"
DEFAULT_BASE_URL = "https://generativelanguage.googleapis.com/v1beta"
DEFAULT_CONFIG_PATH = Path(".agent") / "config.yaml"


@dataclass(frozen=True, slots=True)
class ModelSettings:
    """Generative model endpoint settings."""

    name: str = DEFAULT_MODEL
    base_url: str = DEFAULT_BASE_URL
    timeout: float = 120.0


@dataclass(frozen=True, slots=True)
class CommandSettings:
    """External commands used by the build validator."""

    install: Tuple[str, ...] = ("npm", "ci")
    build: Tuple[str, ...] = ("npm", "run", "build")


@dataclass(frozen=True, slots=True)
class ContextSettings:
    """Where the context collector looks for repository metadata."""

    docs_dir: str = ".agent"
    source_dir: str = "src"
    manifest: str = "package.json"
    root_depth: int = 2
    source_depth: int = 5


@dataclass(frozen=True, slots=True)
class PatchSettings:
    """Scope policy and ``git apply`` options for proposed diffs."""

    allowed_paths: Tuple[str, ...] = ("src/", "README.md")
    directory: Optional[str] = None
    strict_scope: bool = False


@dataclass(frozen=True, slots=True)
class ReportSettings:
    tail_lines: int = 120


@dataclass(frozen=True, slots=True)
class PathSettings:
    output: str = "."


@dataclass(frozen=True, slots=True)
class FileConfig:
    """Schema of the optional ``.agent/config.yaml`` file."""

    model: ModelSettings = field(default_factory=ModelSettings)
    commands: CommandSettings = field(default_factory=CommandSettings)
    context: ContextSettings = field(default_factory=ContextSettings)
    patch: PatchSettings = field(default_factory=PatchSettings)
    report: ReportSettings = field(default_factory=ReportSettings)
    paths: PathSettings = field(default_factory=PathSettings)


@dataclass(frozen=True, slots=True)
class AgentSettings:
    """Immutable settings value threaded explicitly through the pipeline."""

    api_key: str
    issue: IssueContext
    repo_root: Path
    output_dir: Path
    model: ModelSettings = field(default_factory=ModelSettings)
    commands: CommandSettings = field(default_factory=CommandSettings)
    context: ContextSettings = field(default_factory=ContextSettings)
    patch: PatchSettings = field(default_factory=PatchSettings)
    report: ReportSettings = field(default_factory=ReportSettings)

    @classmethod
    def from_env(
        cls,
        environ: Mapping[str, str] | None = None,
        *,
        config_path: Path | str | None = None,
        repo_root: Path | str | None = None,
        output_dir: Path | str | None = None,
        require_api_key: bool = True,
    ) -> "AgentSettings":
        """Build settings from ``environ`` (default ``os.environ``) and YAML.

        Raises :class:`ConfigurationError` before any other work happens when
        the model credential is missing or the config file is malformed.
        """
        env: Mapping[str, str] = os.environ if environ is None else environ

        api_key = env.get("GEMINI_API_KEY", "").strip()
        if require_api_key and not api_key:
            raise ConfigurationError("Missing GEMINI_API_KEY (add repo secret).")

        root = Path(repo_root or ".").resolve()
        file_config = load_file_config(config_path, repo_root=root)

        overrides: Dict[str, Any] = {}
        model_override = env.get("GEMINI_MODEL", "").strip()
        if model_override:
            overrides["name"] = model_override
        base_url_override = env.get("GEMINI_BASE_URL", "").strip()
        if base_url_override:
            overrides["base_url"] = base_url_override
        timeout_override = env.get("GEMINI_TIMEOUT")
        if timeout_override:
            try:
                parsed = float(timeout_override)
                if parsed > 0:
                    overrides["timeout"] = parsed
            except ValueError:
                pass
        model = replace(file_config.model, **overrides)

        output = Path(output_dir) if output_dir is not None else Path(file_config.paths.output)
        if not output.is_absolute():
            output = (root / output).resolve()

        return cls(
            api_key=api_key,
            issue=issue_from_env(env),
            repo_root=root,
            output_dir=output,
            model=model,
            commands=file_config.commands,
            context=file_config.context,
            patch=file_config.patch,
            report=file_config.report,
        )

    def run_metadata(self) -> RunMetadata:
        return RunMetadata(
            model=self.model.name,
            trigger_label=self.issue.trigger_label,
            branch_name=self.issue.branch_name,
            run_url=self.issue.run_url,
        )


def issue_from_env(env: Mapping[str, str]) -> IssueContext:
    """Read the issue and run parameters exported by the CI trigger."""
    return IssueContext(
        number=env.get("ISSUE_NUMBER", ""),
        title=env.get("ISSUE_TITLE", ""),
        body=env.get("ISSUE_BODY", ""),
        repo=env.get("REPO", ""),
        run_id=env.get("RUN_ID", ""),
        trigger_label=env.get("TRIGGER_LABEL", ""),
        branch_name=env.get("BRANCH_NAME", ""),
    )


def load_file_config(config_path: Path | str | None, *, repo_root: Path) -> FileConfig:
    """Load and validate the YAML config file.

    An explicit ``config_path`` must exist; the default location is optional.
    """
    if config_path is None:
        candidate = repo_root / DEFAULT_CONFIG_PATH
        if not candidate.exists():
            return FileConfig()
    else:
        candidate = Path(config_path)
        if not candidate.is_absolute():
            candidate = repo_root / candidate
        if not candidate.exists():
            raise ConfigurationError(f"Config file not found: {candidate}")

    try:
        with candidate.open("r", encoding="utf-8") as handle:
            data = yaml.safe_load(handle) or {}
    except yaml.YAMLError as error:
        raise ConfigurationError(f"Failed to parse config {candidate}: {error}") from error

    if not isinstance(data, dict):
        raise ConfigurationError("Configuration must be a mapping at the top level.")

    try:
        return TypeAdapter(FileConfig).validate_python(_normalise_commands(data))
    except ValidationError as error:
        raise ConfigurationError(f"Invalid config {candidate}: {error}") from error


def _normalise_commands(data: Dict[str, Any]) -> Dict[str, Any]:
    """Allow commands to be written as shell strings in YAML."""
    commands = data.get("commands")
    if not isinstance(commands, dict):
        return data
    normalised = dict(commands)
    for key, value in commands.items():
        if isinstance(value, str):
            normalised[key] = shlex.split(value)
    return {**data, "commands": normalised}


__all__ = [
    "AgentSettings",
    "CommandSettings",
    "ContextSettings",
    "DEFAULT_MODEL",
    "FileConfig",
    "ModelSettings",
    "PatchSettings",
    "ReportSettings",
    "issue_from_env",
    "load_file_config",
]
