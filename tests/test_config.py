from __future__ import annotations

import textwrap
from pathlib import Path

import pytest

from buildsmall.config import DEFAULT_MODEL, AgentSettings
from buildsmall.errors import EXIT_CONFIGURATION, ConfigurationError


def _env(**overrides: str) -> dict[str, str]:
    env = {
        "GEMINI_API_KEY": "secret",
        "ISSUE_NUMBER": "42",
        "ISSUE_TITLE": "Fix header color",
        "ISSUE_BODY": "",
        "REPO": "octo/site",
        "RUN_ID": "9001",
        "TRIGGER_LABEL": "agent:build-small",
        "BRANCH_NAME": "agent/issue-42",
    }
    env.update(overrides)
    return env


def test_from_env_requires_api_key(tmp_path: Path) -> None:
    with pytest.raises(ConfigurationError) as excinfo:
        AgentSettings.from_env(_env(GEMINI_API_KEY="  "), repo_root=tmp_path)

    assert excinfo.value.exit_code == EXIT_CONFIGURATION
    assert "GEMINI_API_KEY" in str(excinfo.value)


def test_from_env_collects_issue_and_defaults(tmp_path: Path) -> None:
    settings = AgentSettings.from_env(_env(), repo_root=tmp_path)

    assert settings.model.name == DEFAULT_MODEL
    assert settings.issue.number == "42"
    assert settings.issue.safe_body == "_(No issue description provided)_"
    assert settings.commands.install == ("npm", "ci")
    assert settings.commands.build == ("npm", "run", "build")
    assert settings.patch.allowed_paths == ("src/", "README.md")
    assert settings.output_dir == tmp_path.resolve()
    assert settings.run_metadata().run_url == "https://github.com/octo/site/actions/runs/9001"


def test_settings_are_immutable(tmp_path: Path) -> None:
    settings = AgentSettings.from_env(_env(), repo_root=tmp_path)

    with pytest.raises(AttributeError):
        settings.api_key = "other"  # type: ignore[misc]
    with pytest.raises(AttributeError):
        settings.model.name = "other"  # type: ignore[misc]
    with pytest.raises(AttributeError):
        settings.commands.build = ("rm", "-rf", "/")  # type: ignore[misc]
    assert settings.model.name == DEFAULT_MODEL


def test_config_file_is_loaded_and_env_wins(tmp_path: Path) -> None:
    config_dir = tmp_path / ".agent"
    config_dir.mkdir()
    (config_dir / "config.yaml").write_text(
        textwrap.dedent(
            """
            model:
              name: gemini-from-file
              timeout: 30
            commands:
              install: pnpm install --frozen-lockfile
              build: [pnpm, build]
            patch:
              allowed_paths: [web/src/]
              strict_scope: true
            report:
              tail_lines: 40
            paths:
              output: artifacts
            """
        ),
        encoding="utf-8",
    )

    settings = AgentSettings.from_env(_env(GEMINI_MODEL="gemini-from-env", GEMINI_TIMEOUT="12"), repo_root=tmp_path)

    assert settings.model.name == "gemini-from-env"
    assert settings.model.timeout == 12.0
    assert settings.commands.install == ("pnpm", "install", "--frozen-lockfile")
    assert settings.commands.build == ("pnpm", "build")
    assert settings.patch.allowed_paths == ("web/src/",)
    assert settings.patch.strict_scope is True
    assert settings.report.tail_lines == 40
    assert settings.output_dir == (tmp_path / "artifacts").resolve()


def test_invalid_config_raises_configuration_error(tmp_path: Path) -> None:
    config_path = tmp_path / "agent.yaml"
    config_path.write_text("report:\n  tail_lines: lots\n", encoding="utf-8")

    with pytest.raises(ConfigurationError):
        AgentSettings.from_env(_env(), config_path=config_path, repo_root=tmp_path)


def test_explicit_missing_config_raises(tmp_path: Path) -> None:
    with pytest.raises(ConfigurationError, match="not found"):
        AgentSettings.from_env(_env(), config_path="nope.yaml", repo_root=tmp_path)


def test_malformed_yaml_raises(tmp_path: Path) -> None:
    config_path = tmp_path / "agent.yaml"
    config_path.write_text("model: [unclosed\n", encoding="utf-8")

    with pytest.raises(ConfigurationError, match="Failed to parse"):
        AgentSettings.from_env(_env(), config_path=config_path, repo_root=tmp_path)
