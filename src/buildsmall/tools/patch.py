"""Apply model-proposed unified diffs with ``git apply``."""

from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Iterable, List, Mapping, Sequence, Tuple

from ..schema import PatchOutcome
from .runner import CommandRunner

TELEMETRY_LOGGER = logging.getLogger("buildsmall.telemetry")
LOGGER = logging.getLogger(__name__)

_OLD_HEADER = re.compile(r"^--- (?P<path>[^\t]+)")
_NEW_HEADER = re.compile(r"^\+\+\+ (?P<path>[^\t]+)")
_PATCH_FAILED_RE = re.compile(r"error: patch failed: (?P<path>.+?)(?::(?P<line>\d+))?$")
_PATCH_DOES_NOT_APPLY_RE = re.compile(r"error: (?P<path>.+?): patch does not apply")


@dataclass(slots=True)
class PatchOperation:
    """Single file operation described by a diff section."""

    path: Path
    change_type: str  # "add", "modify", or "delete"


def _serialise_event_value(value: Any) -> Any:
    """Convert telemetry payload values into JSON-friendly representations."""
    if isinstance(value, (str, int, float, bool)) or value is None:
        return value
    if isinstance(value, Path):
        return value.as_posix()
    if isinstance(value, (list, tuple, set)):
        return [_serialise_event_value(item) for item in value]
    if isinstance(value, Mapping):
        return {str(key): _serialise_event_value(child) for key, child in value.items()}
    return str(value)


def _emit_patch_event(event: str, **fields: Any) -> None:
    """Log structured telemetry events when applying patches."""
    payload = {"event": event, "timestamp": datetime.now(timezone.utc).isoformat()}
    for key, value in fields.items():
        payload[key] = _serialise_event_value(value)
    TELEMETRY_LOGGER.info(json.dumps(payload, separators=(",", ":"), ensure_ascii=True))


def _unquote(entry: str) -> str:
    """Undo git's C-style quoting of header paths (``"a/caf\\303\\251.css"``)."""
    if len(entry) < 2 or not (entry.startswith('"') and entry.endswith('"')):
        return entry
    inner = entry[1:-1]
    try:
        return inner.encode("utf-8").decode("unicode_escape").encode("latin-1").decode("utf-8")
    except UnicodeError:
        return inner


def _normalise_diff_path(entry: str) -> Path | None:
    """Translate diff header operands into repository-relative paths.

    The leading component is dropped the way ``git apply`` does with its
    default ``-p1``, whether or not it is the conventional ``a/``/``b/``.
    """
    entry = _unquote(entry.strip())
    if entry == "/dev/null":
        return None
    if "/" in entry:
        entry = entry.split("/", 1)[1]
    if not entry:
        return None
    return Path(entry)


def collect_patch_operations(patch: str) -> List[PatchOperation]:
    """Summarise each ``---``/``+++`` file pair within a unified diff."""
    operations: List[PatchOperation] = []
    pending_old: str | None = None
    for line in patch.splitlines():
        old_match = _OLD_HEADER.match(line)
        if old_match:
            pending_old = old_match.group("path")
            continue
        new_match = _NEW_HEADER.match(line)
        if new_match and pending_old is not None:
            left = _normalise_diff_path(pending_old)
            right = _normalise_diff_path(new_match.group("path"))
            pending_old = None
            if left is None and right is not None:
                operations.append(PatchOperation(path=right, change_type="add"))
            elif right is None and left is not None:
                operations.append(PatchOperation(path=left, change_type="delete"))
            elif right is not None:
                operations.append(PatchOperation(path=right, change_type="modify"))
            continue
        pending_old = None
    return operations


def _is_unsafe(path: Path) -> bool:
    return path.is_absolute() or ".." in path.parts or (bool(path.parts) and path.parts[0] == ".git")


def find_scope_violations(paths: Iterable[Path], allowed_paths: Sequence[str]) -> Tuple[Path, ...]:
    """Return the paths that fall outside every allowed prefix.

    Absolute paths, ``..`` segments and ``.git`` targets are always violations.
    An empty ``allowed_paths`` allows every safe path.
    """
    prefixes = [Path(entry.strip().strip("/")) for entry in allowed_paths if entry.strip().strip("/")]
    violations: List[Path] = []
    for path in paths:
        if _is_unsafe(path):
            violations.append(path)
            continue
        if prefixes and not any(path.is_relative_to(prefix) for prefix in prefixes):
            violations.append(path)
    return tuple(sorted(set(violations), key=lambda item: item.as_posix()))


def parse_apply_failures(output: str) -> Tuple[Mapping[str, Any], ...]:
    """Parse git apply stderr for the files that did not apply."""
    entries: List[dict[str, Any]] = []
    for raw_line in output.splitlines():
        line = raw_line.strip()
        match = _PATCH_FAILED_RE.match(line)
        if match:
            line_text = match.group("line")
            entries.append(
                {
                    "path": match.group("path"),
                    "line": int(line_text) if line_text is not None else None,
                    "reason": "patch_failed",
                }
            )
            continue
        match = _PATCH_DOES_NOT_APPLY_RE.match(line)
        if match:
            entries.append({"path": match.group("path"), "reason": "does_not_apply"})
    return tuple(entries)


def apply_patch(
    diff_text: str,
    *,
    runner: CommandRunner,
    repo_root: Path | str = ".",
    allowed_paths: Sequence[str] = (),
    directory: str | None = None,
    strict_scope: bool = False,
) -> PatchOutcome:
    """Apply ``diff_text`` to ``repo_root`` and report the outcome.

    The diff goes through ``git apply --check`` first, so a failing patch
    leaves the working tree untouched. Out-of-scope paths are flagged on the
    outcome; they only block application when ``strict_scope`` is set.
    """
    root = Path(repo_root)
    operations = collect_patch_operations(diff_text)
    base = Path(directory.strip("/")) if directory and directory.strip("/") else None

    def _rooted(path: Path) -> Path:
        return base / path if base is not None else path

    paths = tuple(sorted({_rooted(op.path) for op in operations}, key=lambda item: item.as_posix()))
    created = tuple(
        sorted({_rooted(op.path) for op in operations if op.change_type == "add"}, key=lambda item: item.as_posix())
    )
    violations = find_scope_violations(paths, allowed_paths)

    if violations:
        LOGGER.warning(
            "Patch touches paths outside the allowed scope: %s",
            ", ".join(path.as_posix() for path in violations),
        )
        _emit_patch_event("patch_scope_violation", paths=violations, strict=strict_scope)
        if strict_scope:
            return PatchOutcome(
                success=False,
                stderr="Patch touches paths outside the allowed scope: "
                + ", ".join(path.as_posix() for path in violations),
                paths=paths,
                created_paths=created,
                scope_violations=violations,
            )

    patch_input = diff_text if diff_text.endswith("\n") else diff_text + "\n"
    options = ["--whitespace=fix"]
    if base is not None:
        options.append(f"--directory={base.as_posix()}")

    dry_run = runner.run(["git", "apply", "--check", *options, "-"], cwd=root, input=patch_input)
    if not dry_run.ok:
        _emit_patch_event(
            "patch_validation_failed",
            stage="git-apply-check",
            returncode=dry_run.exit_code,
            failures=parse_apply_failures(dry_run.output),
        )
        return PatchOutcome(
            success=False,
            stdout=dry_run.stdout,
            stderr=dry_run.stderr,
            paths=paths,
            created_paths=created,
            scope_violations=violations,
        )

    result = runner.run(["git", "apply", *options, "-"], cwd=root, input=patch_input)
    if not result.ok:
        _emit_patch_event(
            "patch_apply_failed",
            returncode=result.exit_code,
            failures=parse_apply_failures(result.output),
        )
        return PatchOutcome(
            success=False,
            stdout=result.stdout,
            stderr=result.stderr,
            paths=paths,
            created_paths=created,
            scope_violations=violations,
        )

    if created:
        intent = runner.run(
            ["git", "add", "--intent-to-add", "--", *(path.as_posix() for path in created)],
            cwd=root,
        )
        if not intent.ok:
            LOGGER.warning("Could not register new files with git: %s", intent.output.strip())

    _emit_patch_event("patch_apply_succeeded", paths=paths, created=created)
    return PatchOutcome(
        success=True,
        stdout=result.stdout,
        stderr=result.stderr,
        paths=paths,
        created_paths=created,
        scope_violations=violations,
    )


__all__ = [
    "PatchOperation",
    "apply_patch",
    "collect_patch_operations",
    "find_scope_violations",
    "parse_apply_failures",
]
