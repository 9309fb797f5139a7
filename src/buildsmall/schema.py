"""Typed records passed between the build-small pipeline stages."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Tuple

NO_DESCRIPTION_PLACEHOLDER = "_(No issue description provided)_"
MISSING_DOCUMENT_MARKER = "(missing)"


@dataclass(frozen=True, slots=True)
class IssueContext:
    """Issue and run parameters supplied by the triggering CI job."""

    number: str = ""
    title: str = ""
    body: str = ""
    repo: str = ""
    run_id: str = ""
    trigger_label: str = ""
    branch_name: str = ""

    @property
    def safe_body(self) -> str:
        """Return the issue body, substituting a placeholder when blank."""
        if self.body and self.body.strip():
            return self.body
        return NO_DESCRIPTION_PLACEHOLDER

    @property
    def run_url(self) -> str:
        return f"https://github.com/{self.repo}/actions/runs/{self.run_id}"


@dataclass(frozen=True, slots=True)
class RepoContext:
    """Read-only text snapshot of the repository used to ground the prompt.

    Every document field holds ``""`` when the file is absent; the prompt
    builder renders those as :data:`MISSING_DOCUMENT_MARKER`.
    """

    root_tree: str = ""
    source_tree: str = ""
    summary: str = ""
    conventions: str = ""
    how_to_test: str = ""
    limits: str = ""
    manifest: str = ""
    docs_dir: str = ".agent"
    source_dir: str = "src"
    root_depth: int = 2
    source_depth: int = 5
    manifest_name: str = "package.json"


@dataclass(frozen=True, slots=True)
class ParsedProposal:
    """Plan narrative and unified diff extracted from a model response."""

    plan_text: str
    diff_text: str | None = None

    @property
    def has_patch(self) -> bool:
        return self.diff_text is not None


@dataclass(frozen=True, slots=True)
class CommandResult:
    """Exit status and captured output of an external command."""

    argv: Tuple[str, ...]
    exit_code: int
    stdout: str = ""
    stderr: str = ""

    @property
    def ok(self) -> bool:
        return self.exit_code == 0

    @property
    def output(self) -> str:
        """Combined stdout and stderr, in that order."""
        return "\n".join(part for part in (self.stdout, self.stderr) if part)

    @property
    def command_line(self) -> str:
        return " ".join(self.argv)


@dataclass(slots=True)
class PatchOutcome:
    """Outcome of applying a proposed diff to the working tree."""

    success: bool
    stdout: str = ""
    stderr: str = ""
    paths: Tuple[Path, ...] = ()
    created_paths: Tuple[Path, ...] = ()
    scope_violations: Tuple[Path, ...] = ()

    @property
    def message(self) -> str:
        return self.stderr.strip() or self.stdout.strip() or "unknown error"


@dataclass(slots=True)
class BuildOutcome:
    """Result of the install + build validation step."""

    success: bool
    log: str
    tail: str
    build_command: str = ""
    install: CommandResult | None = None
    build: CommandResult | None = None


@dataclass(frozen=True, slots=True)
class DiffSummary:
    """Changed-file list and diffstat queried from version control."""

    changed_files: str = ""
    diffstat: str = ""


@dataclass(frozen=True, slots=True)
class RunMetadata:
    """Provenance information rendered at the bottom of the report."""

    model: str
    trigger_label: str
    branch_name: str
    run_url: str


@dataclass(frozen=True, slots=True)
class Report:
    """Final outcome artifact handed to the pull-request publisher."""

    issue: IssueContext
    plan_text: str
    diff_summary: DiffSummary
    build: BuildOutcome
    metadata: RunMetadata
    scope_violations: Tuple[Path, ...] = field(default=())

    @property
    def build_passed(self) -> bool:
        return self.build.success

    def render(self) -> str:
        from .report import render_report

        return render_report(self)


__all__ = [
    "BuildOutcome",
    "CommandResult",
    "DiffSummary",
    "IssueContext",
    "MISSING_DOCUMENT_MARKER",
    "NO_DESCRIPTION_PLACEHOLDER",
    "ParsedProposal",
    "PatchOutcome",
    "Report",
    "RepoContext",
    "RunMetadata",
]
