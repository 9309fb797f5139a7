"""Markdown renderers for the pull-request body and plan comment."""

from __future__ import annotations

from pathlib import Path
from typing import Sequence

from .schema import (
    BuildOutcome,
    DiffSummary,
    IssueContext,
    ParsedProposal,
    Report,
    RunMetadata,
)

NO_PLAN_PLACEHOLDER = "_(no plan text)_"
PR_BODY_MODES = ("smoke", "research", "build")


def compose_report(
    issue: IssueContext,
    proposal: ParsedProposal,
    diff_summary: DiffSummary,
    build: BuildOutcome,
    metadata: RunMetadata,
    *,
    scope_violations: Sequence[Path] = (),
) -> Report:
    """Bundle the pipeline artifacts into an immutable :class:`Report`."""
    return Report(
        issue=issue,
        plan_text=proposal.plan_text,
        diff_summary=diff_summary,
        build=build,
        metadata=metadata,
        scope_violations=tuple(scope_violations),
    )


def _fenced(text: str, placeholder: str) -> str:
    return f"```\n{text.strip() or placeholder}\n```"


def _issue_header(issue: IssueContext) -> str:
    return (
        "## Context\n"
        f"Closes #{issue.number}\n"
        "\n"
        "### Issue title\n"
        f"{issue.title}\n"
        "\n"
        "### Issue description\n"
        f"{issue.safe_body}"
    )


def render_build_status(build: BuildOutcome) -> str:
    command = build.build_command or "build"
    if build.success:
        return f"✅ `{command}` passed"
    return f"❌ `{command}` failed"


def render_report(report: Report) -> str:
    """Render the final report markdown consumed by the PR publisher."""
    summary = report.diff_summary
    metadata = report.metadata
    sections = [
        _issue_header(report.issue),
        "## Plan (from agent)\n" + (report.plan_text.strip() or NO_PLAN_PLACEHOLDER),
        "## What changed\n"
        "**Files changed:**\n"
        f"{_fenced(summary.changed_files, '(none)')}\n"
        "\n"
        "**Diffstat:**\n"
        f"{_fenced(summary.diffstat, '(no diffstat)')}",
    ]
    if report.scope_violations:
        listed = "\n".join(f"- `{path.as_posix()}`" for path in report.scope_violations)
        sections.append(
            "## Scope warnings\n"
            "The patch touched paths outside the allowed scope:\n"
            f"{listed}"
        )
    sections.extend(
        [
            "## Build result\n"
            f"{render_build_status(report.build)}\n"
            "\n"
            "<details>\n"
            "<summary>Build output (tail)</summary>\n"
            "\n"
            f"{_fenced(report.build.tail, '(no output captured)')}\n"
            "\n"
            "</details>",
            "## Run metadata\n"
            f"- Model: `{metadata.model}`\n"
            f"- Trigger: `{metadata.trigger_label}`\n"
            f"- Branch: `{metadata.branch_name}`\n"
            f"- Workflow run: {metadata.run_url}",
        ]
    )
    return "\n\n---\n\n".join(sections).strip() + "\n"


def render_plan_comment(issue: IssueContext) -> str:
    """Render the placeholder plan comment posted without calling a model."""
    return (
        "## Agent plan (placeholder, no LLM yet)\n"
        "\n"
        f"**Issue:** #{issue.number}: {issue.title}\n"
        "\n"
        "### Issue description\n"
        f"{issue.safe_body}\n"
        "\n"
        "---\n"
        "\n"
        "## Proposed approach\n"
        "1. Confirm current behavior and reproduce (if applicable)\n"
        "2. Identify the minimal set of files likely involved\n"
        "3. Implement the smallest correct change\n"
        "4. Add/update tests\n"
        "5. Run:\n"
        "   - `npm run build`\n"
        "   - `npm run test` (or `npm test`)\n"
        "\n"
        "---\n"
        "\n"
        "## Files to inspect (likely)\n"
        "- `src/App.*`\n"
        "- `src/main.*`\n"
        "- `src/components/**` (if UI change)\n"
        "- `src/**` relevant module for the feature/bug\n"
        "- Any existing test files in `src/**` or `tests/**`\n"
        "\n"
        "---\n"
        "\n"
        "## Acceptance criteria (draft)\n"
        "- Change matches issue requirements\n"
        "- No unrelated refactors\n"
        "- Build passes\n"
        "- Tests pass (or explanation if no tests exist)\n"
        "\n"
        "---\n"
        "\n"
        "## Run metadata\n"
        f"- Trigger: `{issue.trigger_label}`\n"
        f"- Workflow run: {issue.run_url}\n"
    )


_MODE_SUMMARIES = {
    "smoke": (
        "## What this PR does\n"
        "- ✅ Smoke-test change (**no LLM**)\n"
        "- ✅ Validates: label → runner → branch → PR"
    ),
    "research": (
        "## What this PR does\n"
        "- 📚 Adds research findings and recommendations\n"
        "- ❗ No production code changes (unless explicitly stated)"
    ),
    "build": (
        "## What this PR does\n"
        "- ✅ Implements the requested change\n"
        "- ✅ Includes tests/updates where appropriate"
    ),
}


def render_pr_body(issue: IssueContext, mode: str = "smoke") -> str:
    """Render the PR body used by the smoke and research variants.

    Unknown modes use the ``build`` wording.
    """
    summary = _MODE_SUMMARIES.get(mode.strip().lower(), _MODE_SUMMARIES["build"])
    checklist = (
        "## Review checklist\n"
        "- [ ] PR is scoped to the issue\n"
        "- [ ] No unrelated changes\n"
        "- [ ] Build passes (`npm run build`)\n"
        "- [ ] Tests pass (`npm run test` / `npm test`) if configured"
    )
    meta = (
        "## Run metadata\n"
        f"- Repo: {issue.repo}\n"
        f"- Issue: #{issue.number}\n"
        f"- Trigger: `{issue.trigger_label}`\n"
        f"- Branch: `{issue.branch_name}`\n"
        f"- Workflow run: {issue.run_url}"
    )
    return "\n\n---\n\n".join([_issue_header(issue), summary, checklist, meta]) + "\n"


__all__ = [
    "NO_PLAN_PLACEHOLDER",
    "PR_BODY_MODES",
    "compose_report",
    "render_build_status",
    "render_plan_comment",
    "render_pr_body",
    "render_report",
]
