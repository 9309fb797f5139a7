"""Version-control queries describing what actually landed in the tree."""

from __future__ import annotations

import logging
from pathlib import Path

from ..schema import DiffSummary
from .runner import CommandRunner

LOGGER = logging.getLogger(__name__)


def _git_output(runner: CommandRunner, args: list[str], cwd: Path | None) -> str:
    result = runner.run(["git", *args], cwd=cwd)
    if not result.ok:
        message = result.stderr.strip() or result.stdout.strip() or "unknown git error"
        LOGGER.warning("git %s failed: %s", " ".join(args), message)
        return ""
    return result.stdout.strip()


def changed_files(runner: CommandRunner, *, cwd: Path | None = None) -> str:
    return _git_output(runner, ["diff", "--name-only"], cwd)


def diffstat(runner: CommandRunner, *, cwd: Path | None = None) -> str:
    return _git_output(runner, ["diff", "--stat"], cwd)


def summarise_changes(runner: CommandRunner, *, cwd: Path | None = None) -> DiffSummary:
    """Query the working tree for the changed-file list and diffstat."""
    return DiffSummary(
        changed_files=changed_files(runner, cwd=cwd),
        diffstat=diffstat(runner, cwd=cwd),
    )


__all__ = ["changed_files", "diffstat", "summarise_changes"]
