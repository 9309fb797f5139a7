"""Prompt templates and the deterministic build-small prompt builder."""

from __future__ import annotations

from typing import Sequence

from .schema import MISSING_DOCUMENT_MARKER, IssueContext, RepoContext

DEFAULT_ALLOWED_PATHS: tuple[str, ...] = ("src/", "README.md")


def _scope(allowed_paths: Sequence[str]) -> str:
    return ", ".join(allowed_paths) if allowed_paths else "src/"


def render_system_instruction(allowed_paths: Sequence[str] = DEFAULT_ALLOWED_PATHS) -> str:
    """Return the fixed engineer instruction, scoped to ``allowed_paths``."""
    scope = _scope(allowed_paths)
    return (
        "You are a senior engineer making a SMALL change to a React + Vite repo.\n"
        "\n"
        "Hard constraints:\n"
        f"- ONLY modify files under: {scope}\n"
        "- Do NOT modify .github/, .agent/, package.json, lockfiles, or configs.\n"
        "- Keep it SMALL: max ~200 lines changed total, max 1-3 files.\n"
        "- Output MUST include a unified diff in a ```diff block that can be applied with `git apply`.\n"
        "- If you are unsure, choose the smallest safe implementation.\n"
        "\n"
        "You MUST:\n"
        "- Provide a short Plan section\n"
        "- Provide a Patch section with unified diff"
    )


def render_output_contract(allowed_paths: Sequence[str] = DEFAULT_ALLOWED_PATHS) -> str:
    """Return the required response layout, scoped to ``allowed_paths``."""
    return (
        "## Required output format\n"
        "Return markdown with exactly:\n"
        "\n"
        "## Plan\n"
        "...\n"
        "\n"
        "## Patch\n"
        "```diff\n"
        f"(unified diff; ONLY {_scope(allowed_paths)} files)\n"
        "```"
    )


SYSTEM_INSTRUCTION = render_system_instruction()
OUTPUT_FORMAT_CONTRACT = render_output_contract()


def _document(heading: str, text: str) -> str:
    body = text.strip() if text and text.strip() else MISSING_DOCUMENT_MARKER
    return f"### {heading}\n{body}"


def render_repo_context(repo: RepoContext) -> str:
    """Render the ``## Repo context`` block from a :class:`RepoContext`."""
    docs_dir = repo.docs_dir.rstrip("/")
    sections = [
        "## Repo context",
        _document(f"{docs_dir}/repo_summary.md", repo.summary),
        _document(f"{docs_dir}/conventions.md", repo.conventions),
        _document(f"{docs_dir}/how_to_test.md", repo.how_to_test),
        _document(f"{docs_dir}/limits.md", repo.limits),
        _document(f"{repo.manifest_name} (scripts only)", repo.manifest),
        _document(f"repo tree (depth {repo.root_depth})", repo.root_tree),
        _document(f"{repo.source_dir}/ tree (depth {repo.source_depth})", repo.source_tree),
    ]
    return "\n\n".join(sections)


def render_issue(issue: IssueContext) -> str:
    return f"## Issue\n### #{issue.number}: {issue.title}\n{issue.safe_body.strip()}"


def build_prompt(
    issue: IssueContext,
    repo: RepoContext,
    *,
    instruction: str = SYSTEM_INSTRUCTION,
    allowed_paths: Sequence[str] = DEFAULT_ALLOWED_PATHS,
) -> str:
    """Assemble the single prompt string sent to the model."""
    blocks = [
        instruction.strip(),
        render_repo_context(repo),
        render_issue(issue),
        render_output_contract(allowed_paths),
    ]
    return "\n\n".join(blocks).strip()


__all__ = [
    "DEFAULT_ALLOWED_PATHS",
    "OUTPUT_FORMAT_CONTRACT",
    "SYSTEM_INSTRUCTION",
    "build_prompt",
    "render_issue",
    "render_output_contract",
    "render_repo_context",
    "render_system_instruction",
]
