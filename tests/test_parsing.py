from __future__ import annotations

import pytest

from buildsmall.errors import ParseError
from buildsmall.parsing import parse_response, require_diff

from conftest import HEADER_DIFF, PLAN_AND_PATCH


def test_parse_response_splits_plan_and_diff() -> None:
    proposal = parse_response(PLAN_AND_PATCH)

    assert proposal.plan_text == "## Plan\nChange header color.\n\n## Patch"
    assert proposal.diff_text == HEADER_DIFF
    assert "```" not in proposal.diff_text


def test_parse_response_without_diff_block_keeps_raw_text() -> None:
    raw = "## Plan\nI would change the header color.\n\n```css\nheader { color: red; }\n```"

    proposal = parse_response(raw)

    assert proposal.diff_text is None
    assert proposal.plan_text == raw
    with pytest.raises(ParseError) as excinfo:
        require_diff(proposal)
    assert excinfo.value.raw_response == raw


def test_parse_response_takes_first_diff_block_only() -> None:
    raw = "intro\n```diff\nfirst\n```\nmiddle\n```diff\nsecond\n```\n"

    proposal = parse_response(raw)

    assert proposal.diff_text == "first"
    assert proposal.plan_text == "intro\n\nmiddle\n```diff\nsecond\n```"


def test_parse_response_fence_tag_is_case_insensitive() -> None:
    proposal = parse_response("Plan\n```DIFF\n--- a/x\n+++ b/x\n```")

    assert proposal.diff_text == "--- a/x\n+++ b/x"
    assert proposal.plan_text == "Plan"


def test_parse_response_treats_empty_diff_block_as_missing() -> None:
    raw = "## Plan\nNothing to do.\n```diff\n\n```"

    proposal = parse_response(raw)

    assert proposal.diff_text is None
    assert proposal.plan_text == raw


def test_parse_response_of_empty_text_has_no_patch() -> None:
    proposal = parse_response("")

    assert not proposal.has_patch
    assert proposal.plan_text == ""
