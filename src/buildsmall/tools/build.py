"""Dependency install + build validation for an applied patch."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Sequence

from ..errors import EnvironmentSetupError
from ..schema import BuildOutcome
from .runner import CommandRunner

LOGGER = logging.getLogger(__name__)

DEFAULT_TAIL_LINES = 120
NO_OUTPUT_PLACEHOLDER = "(no output captured)"


def tail(text: str, lines: int = DEFAULT_TAIL_LINES) -> str:
    """Return the last ``lines`` lines of ``text``."""
    if lines <= 0:
        return ""
    parts = text.split("\n")
    return "\n".join(parts[max(0, len(parts) - lines) :])


def validate_build(
    runner: CommandRunner,
    *,
    install_command: Sequence[str] = ("npm", "ci"),
    build_command: Sequence[str] = ("npm", "run", "build"),
    cwd: Path | None = None,
    tail_lines: int = DEFAULT_TAIL_LINES,
) -> BuildOutcome:
    """Install dependencies, then run the build.

    A failed install raises :class:`EnvironmentSetupError`; a failed build is
    reported through ``BuildOutcome.success`` and never raises.
    """
    LOGGER.info("Installing dependencies (%s) ...", " ".join(install_command))
    install = runner.run(list(install_command), cwd=cwd)
    if not install.ok:
        LOGGER.error("Install failed with exit code %s:\n%s", install.exit_code, install.output.strip())
        raise EnvironmentSetupError(
            f"{install.command_line} failed with exit code {install.exit_code}.",
            result=install,
        )

    LOGGER.info("Running build (%s) ...", " ".join(build_command))
    build = runner.run(list(build_command), cwd=cwd)
    log = build.output
    if not build.ok:
        LOGGER.warning("Build failed with exit code %s.", build.exit_code)

    return BuildOutcome(
        success=build.ok,
        log=log,
        tail=tail(log or NO_OUTPUT_PLACEHOLDER, tail_lines),
        build_command=build.command_line,
        install=install,
        build=build,
    )


__all__ = ["DEFAULT_TAIL_LINES", "NO_OUTPUT_PLACEHOLDER", "tail", "validate_build"]
