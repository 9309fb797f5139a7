"""Command-runner capability used for every external process invocation."""

from __future__ import annotations

import logging
import subprocess
from pathlib import Path
from typing import Mapping, Protocol, Sequence

from ..schema import CommandResult

LOGGER = logging.getLogger(__name__)


class CommandRunner(Protocol):
    """Run ``argv`` to completion and report its exit status and output."""

    def run(
        self,
        argv: Sequence[str],
        *,
        cwd: Path | None = None,
        input: str | None = None,
    ) -> CommandResult:
        ...


class SubprocessRunner:
    """:class:`CommandRunner` backed by :func:`subprocess.run`."""

    def __init__(self, *, env: Mapping[str, str] | None = None, timeout: float | None = None) -> None:
        self._env = dict(env) if env is not None else None
        self._timeout = timeout

    def run(
        self,
        argv: Sequence[str],
        *,
        cwd: Path | None = None,
        input: str | None = None,
    ) -> CommandResult:
        command = [str(part) for part in argv]
        LOGGER.debug("Running %s (cwd=%s)", " ".join(command), cwd)
        try:
            process = subprocess.run(  # noqa: S603 - argv is sourced from settings
                command,
                cwd=cwd,
                input=input.encode("utf-8") if input is not None else None,
                capture_output=True,
                text=False,
                check=False,
                env=self._env,
                timeout=self._timeout,
            )
        except FileNotFoundError as error:
            return CommandResult(
                argv=tuple(command),
                exit_code=127,
                stdout="",
                stderr=f"Executable not available: {command[0]} ({error})",
            )
        except OSError as error:
            # Not executable, or cwd is unusable.
            return CommandResult(
                argv=tuple(command),
                exit_code=126,
                stdout="",
                stderr=f"Could not run {command[0]}: {error}",
            )
        stdout = process.stdout.decode("utf-8", errors="replace") if process.stdout else ""
        stderr = process.stderr.decode("utf-8", errors="replace") if process.stderr else ""
        return CommandResult(
            argv=tuple(command),
            exit_code=process.returncode,
            stdout=stdout,
            stderr=stderr,
        )


__all__ = ["CommandRunner", "SubprocessRunner"]
