from __future__ import annotations

import subprocess
import sys
import textwrap
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Sequence, Tuple

import pytest

ROOT = Path(__file__).resolve().parents[1]
SRC = ROOT / "src"

if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))

from buildsmall.config import AgentSettings  # noqa: E402
from buildsmall.models.llm_client import LLMClient, LLMRequest  # noqa: E402
from buildsmall.schema import CommandResult, IssueContext  # noqa: E402


APP_CSS = textwrap.dedent(
    """
    header {
      color: black;
    }
    """
).lstrip()

HEADER_DIFF = textwrap.dedent(
    """
    --- a/src/App.css
    +++ b/src/App.css
    @@ -1,3 +1,3 @@
     header {
    -  color: black;
    +  color: rebeccapurple;
     }
    """
).strip()

PLAN_AND_PATCH = f"## Plan\nChange header color.\n\n## Patch\n```diff\n{HEADER_DIFF}\n```"


@dataclass(slots=True)
class RecordedCall:
    argv: Tuple[str, ...]
    cwd: Path | None
    input: str | None


@dataclass(slots=True)
class FakeRunner:
    """Command runner that records argv and replays scripted results.

    Results are matched on the longest scripted argv prefix; unscripted
    commands succeed with empty output.
    """

    scripted: Dict[Tuple[str, ...], CommandResult] = field(default_factory=dict)
    calls: List[RecordedCall] = field(default_factory=list)

    def script(self, *argv: str, exit_code: int = 0, stdout: str = "", stderr: str = "") -> None:
        self.scripted[tuple(argv)] = CommandResult(argv=tuple(argv), exit_code=exit_code, stdout=stdout, stderr=stderr)

    def run(self, argv: Sequence[str], *, cwd: Path | None = None, input: str | None = None) -> CommandResult:
        command = tuple(argv)
        self.calls.append(RecordedCall(argv=command, cwd=cwd, input=input))
        best: CommandResult | None = None
        best_length = -1
        for prefix, result in self.scripted.items():
            if command[: len(prefix)] == prefix and len(prefix) > best_length:
                best, best_length = result, len(prefix)
        if best is None:
            return CommandResult(argv=command, exit_code=0)
        return CommandResult(argv=command, exit_code=best.exit_code, stdout=best.stdout, stderr=best.stderr)

    @property
    def commands(self) -> List[Tuple[str, ...]]:
        return [call.argv for call in self.calls]

    def ran(self, *prefix: str) -> bool:
        return any(argv[: len(prefix)] == prefix for argv in self.commands)


class StubClient(LLMClient):
    """LLM client returning a canned response and counting invocations."""

    def __init__(self, response: str = PLAN_AND_PATCH, *, error: Exception | None = None) -> None:
        super().__init__("stub-model")
        self.response = response
        self.error = error
        self.requests: List[LLMRequest] = []

    def invoke(self, request: LLMRequest) -> str:
        self.requests.append(request)
        if self.error is not None:
            raise self.error
        return self.response


@pytest.fixture()
def fake_runner() -> FakeRunner:
    return FakeRunner()


@pytest.fixture()
def issue() -> IssueContext:
    return IssueContext(
        number="42",
        title="Fix header color",
        body="",
        repo="octo/site",
        run_id="9001",
        trigger_label="agent:build-small",
        branch_name="agent/issue-42",
    )


@pytest.fixture()
def app_repo(tmp_path: Path) -> Path:
    """Create a small React-style working tree (not a git repository)."""
    repo_root = tmp_path / "app"
    (repo_root / "src" / "components").mkdir(parents=True)
    (repo_root / "src" / "App.css").write_text(APP_CSS, encoding="utf-8")
    (repo_root / "src" / "main.jsx").write_text("import './App.css';\n", encoding="utf-8")
    (repo_root / "src" / "components" / "Header.jsx").write_text("export default () => null;\n", encoding="utf-8")
    (repo_root / "node_modules" / "react").mkdir(parents=True)
    (repo_root / "dist").mkdir()
    (repo_root / ".agent").mkdir()
    (repo_root / ".agent" / "conventions.md").write_text("Use plain CSS.\n", encoding="utf-8")
    (repo_root / "package.json").write_text(
        '{"name": "site", "version": "1.0.0", "scripts": {"build": "vite build"}, "dependencies": {"react": "18"}}\n',
        encoding="utf-8",
    )
    return repo_root


@pytest.fixture()
def git_repo(app_repo: Path) -> Path:
    """Turn :func:`app_repo` into a git repository with one commit."""

    def run_git(*cmd: str) -> None:
        subprocess.run(["git", *cmd], cwd=app_repo, check=True, capture_output=True, text=True)

    (app_repo / ".gitignore").write_text("node_modules/\ndist/\n", encoding="utf-8")
    run_git("init")
    run_git("config", "user.email", "agent@example.com")
    run_git("config", "user.name", "Build Small Agent")
    run_git("add", ".")
    run_git("commit", "-m", "Initial app state")
    return app_repo


def make_settings(repo_root: Path, issue: IssueContext, **overrides: object) -> AgentSettings:
    values: Dict[str, object] = {
        "api_key": "test-key",
        "issue": issue,
        "repo_root": repo_root,
        "output_dir": repo_root / "out",
    }
    values.update(overrides)
    return AgentSettings(**values)  # type: ignore[arg-type]
