from __future__ import annotations

from pathlib import Path

from buildsmall.report import compose_report, render_plan_comment, render_pr_body
from buildsmall.schema import BuildOutcome, DiffSummary, IssueContext, ParsedProposal, RunMetadata


def _metadata(issue: IssueContext) -> RunMetadata:
    return RunMetadata(
        model="gemini-1.5-flash-latest",
        trigger_label=issue.trigger_label,
        branch_name=issue.branch_name,
        run_url=issue.run_url,
    )


def test_report_includes_every_section(issue: IssueContext) -> None:
    report = compose_report(
        issue,
        ParsedProposal(plan_text="## Plan\nChange header color.", diff_text="--- a/x"),
        DiffSummary(changed_files="src/App.css", diffstat=" src/App.css | 2 +-"),
        BuildOutcome(success=True, log="built", tail="built", build_command="npm run build"),
        _metadata(issue),
    )

    text = report.render()

    assert text.startswith("## Context\nCloses #42")
    assert "_(No issue description provided)_" in text
    assert "## Plan (from agent)\n## Plan\nChange header color." in text
    assert "**Files changed:**\n```\nsrc/App.css\n```" in text
    assert "src/App.css | 2 +-" in text
    assert "✅ `npm run build` passed" in text
    assert "- Model: `gemini-1.5-flash-latest`" in text
    assert "- Workflow run: https://github.com/octo/site/actions/runs/9001" in text
    assert "Scope warnings" not in text
    assert text.endswith("\n")


def test_report_for_failed_build_keeps_plan_and_placeholders(issue: IssueContext) -> None:
    report = compose_report(
        issue,
        ParsedProposal(plan_text="", diff_text="--- a/x"),
        DiffSummary(),
        BuildOutcome(success=False, log="", tail="boom", build_command="npm run build"),
        _metadata(issue),
        scope_violations=[Path("package.json")],
    )

    text = report.render()

    assert not report.build_passed
    assert "_(no plan text)_" in text
    assert "```\n(none)\n```" in text
    assert "```\n(no diffstat)\n```" in text
    assert "❌ `npm run build` failed" in text
    assert "<summary>Build output (tail)</summary>\n\n```\nboom\n```" in text
    assert "## Scope warnings" in text
    assert "- `package.json`" in text


def test_render_plan_comment_uses_issue_fields(issue: IssueContext) -> None:
    comment = render_plan_comment(issue)

    assert "**Issue:** #42: Fix header color" in comment
    assert "- Trigger: `agent:build-small`" in comment
    assert "## Acceptance criteria (draft)" in comment


def test_render_pr_body_switches_on_mode(issue: IssueContext) -> None:
    smoke = render_pr_body(issue, "smoke")
    research = render_pr_body(issue, "research")
    unknown = render_pr_body(issue, "something-else")

    assert "Smoke-test change (**no LLM**)" in smoke
    assert "Adds research findings" in research
    assert "Implements the requested change" in unknown
    assert "- Repo: octo/site" in smoke
    assert "## Review checklist" in smoke
