"""Tool integrations: external commands, patching, builds and git queries."""

from .build import tail, validate_build
from .patch import apply_patch, collect_patch_operations, find_scope_violations
from .runner import CommandRunner, SubprocessRunner
from .vcs import summarise_changes

__all__ = [
    "CommandRunner",
    "SubprocessRunner",
    "apply_patch",
    "collect_patch_operations",
    "find_scope_violations",
    "summarise_changes",
    "tail",
    "validate_build",
]
