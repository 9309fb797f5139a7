"""Collect bounded repository context used to ground the model prompt."""

from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from typing import AbstractSet, List

from .config import ContextSettings
from .schema import RepoContext

LOGGER = logging.getLogger(__name__)

NOISE_DIRS: frozenset[str] = frozenset(
    {
        ".git",
        ".hg",
        ".svn",
        "node_modules",
        "dist",
        "__pycache__",
    }
)

_MANIFEST_KEYS = ("name", "scripts")


def list_tree(
    root: Path | str,
    max_depth: int = 4,
    *,
    display_root: str = "",
    exclude: AbstractSet[str] = NOISE_DIRS,
) -> str:
    """Render a sorted, indented listing of ``root``.

    Each line holds the entry path prefixed with ``display_root``; directories
    end with ``/``. Entries deeper than ``max_depth`` are dropped, and any
    entry whose name is in ``exclude`` is skipped at every level. An unreadable
    or missing ``root`` yields ``""``.
    """
    lines: List[str] = []
    _walk(Path(root), display_root.strip("/"), 0, max_depth, exclude, lines)
    if not lines:
        return ""
    return "\n".join(lines) + "\n"


def _walk(
    directory: Path,
    display: str,
    depth: int,
    max_depth: int,
    exclude: AbstractSet[str],
    lines: List[str],
) -> None:
    if depth > max_depth:
        return
    try:
        with os.scandir(directory) as iterator:
            entries = sorted(iterator, key=lambda entry: entry.name)
    except OSError:
        return

    for entry in entries:
        if entry.name in exclude:
            continue
        relative = f"{display}/{entry.name}" if display else entry.name
        try:
            is_dir = entry.is_dir(follow_symlinks=False)
        except OSError:
            is_dir = False
        lines.append(f"{'  ' * depth}{relative}{'/' if is_dir else ''}")
        if is_dir:
            _walk(Path(entry.path), relative, depth + 1, max_depth, exclude, lines)


def read_text_if_exists(path: Path | str) -> str:
    """Return the file's text, or ``""`` when it is missing or unreadable."""
    try:
        return Path(path).read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError):
        return ""


def summarise_manifest(text: str) -> str:
    """Reduce a ``package.json`` to its name and scripts.

    Manifests that are not JSON objects are returned unchanged.
    """
    if not text.strip():
        return ""
    try:
        data = json.loads(text)
    except json.JSONDecodeError:
        return text
    if not isinstance(data, dict):
        return text
    summary = {key: data[key] for key in _MANIFEST_KEYS if key in data}
    return json.dumps(summary, indent=2)


def collect_repo_context(root: Path | str, settings: ContextSettings | None = None) -> RepoContext:
    """Snapshot trees, advisory documents and the manifest under ``root``."""
    settings = settings or ContextSettings()
    root_path = Path(root)
    docs = root_path / settings.docs_dir

    context = RepoContext(
        root_tree=list_tree(root_path, settings.root_depth),
        source_tree=list_tree(
            root_path / settings.source_dir,
            settings.source_depth,
            display_root=settings.source_dir,
        ),
        summary=read_text_if_exists(docs / "repo_summary.md"),
        conventions=read_text_if_exists(docs / "conventions.md"),
        how_to_test=read_text_if_exists(docs / "how_to_test.md"),
        limits=read_text_if_exists(docs / "limits.md"),
        manifest=summarise_manifest(read_text_if_exists(root_path / settings.manifest)),
        docs_dir=settings.docs_dir,
        source_dir=settings.source_dir,
        root_depth=settings.root_depth,
        source_depth=settings.source_depth,
        manifest_name=settings.manifest,
    )
    missing = [
        name
        for name, value in (
            ("repo_summary.md", context.summary),
            ("conventions.md", context.conventions),
            ("how_to_test.md", context.how_to_test),
            ("limits.md", context.limits),
        )
        if not value
    ]
    if missing:
        LOGGER.debug("Advisory documents missing under %s: %s", docs, ", ".join(missing))
    return context


__all__ = [
    "NOISE_DIRS",
    "collect_repo_context",
    "list_tree",
    "read_text_if_exists",
    "summarise_manifest",
]
