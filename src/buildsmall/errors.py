"""Terminal pipeline failures and the process exit codes they map to."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .schema import CommandResult, PatchOutcome

EXIT_OK = 0
EXIT_CONFIGURATION = 1
EXIT_BUILD_FAILED = 2
EXIT_TRANSPORT = 3
EXIT_NO_PATCH = 4
EXIT_APPLY_FAILED = 5
EXIT_INSTALL_FAILED = 6


class PipelineError(RuntimeError):
    """Base class for conditions that halt the pipeline without a report."""

    exit_code: int = 1


class ConfigurationError(PipelineError):
    """Raised when mandatory configuration is missing or malformed."""

    exit_code = EXIT_CONFIGURATION


class TransportError(PipelineError):
    """Raised when the model call does not return usable text."""

    exit_code = EXIT_TRANSPORT

    def __init__(self, message: str, *, status: int | None = None, body: str = "") -> None:
        super().__init__(message)
        self.status = status
        self.body = body


class ParseError(PipelineError):
    """Raised when the model response does not contain a fenced diff block."""

    exit_code = EXIT_NO_PATCH

    def __init__(self, message: str, *, raw_response: str) -> None:
        super().__init__(message)
        self.raw_response = raw_response


class ApplyError(PipelineError):
    """Raised when the proposed diff cannot be applied to the working tree."""

    exit_code = EXIT_APPLY_FAILED

    def __init__(self, message: str, *, diff_text: str, outcome: "PatchOutcome | None" = None) -> None:
        super().__init__(message)
        self.diff_text = diff_text
        self.outcome = outcome


class EnvironmentSetupError(PipelineError):
    """Raised when dependency installation fails before the build can run."""

    exit_code = EXIT_INSTALL_FAILED

    def __init__(self, message: str, *, result: "CommandResult") -> None:
        super().__init__(message)
        self.result = result


__all__ = [
    "ApplyError",
    "ConfigurationError",
    "EXIT_APPLY_FAILED",
    "EXIT_BUILD_FAILED",
    "EXIT_CONFIGURATION",
    "EXIT_INSTALL_FAILED",
    "EXIT_NO_PATCH",
    "EXIT_OK",
    "EXIT_TRANSPORT",
    "EnvironmentSetupError",
    "ParseError",
    "PipelineError",
    "TransportError",
]
