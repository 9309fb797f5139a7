"""Split a model response into its plan narrative and unified diff."""

from __future__ import annotations

import re

from .errors import ParseError
from .schema import ParsedProposal

_DIFF_FENCE = re.compile(r"```diff\s*(?P<body>[\s\S]*?)```", re.IGNORECASE)


def parse_response(raw: str) -> ParsedProposal:
    """Extract the first fenced ``diff`` block from ``raw``.

    The trimmed block interior becomes ``diff_text`` and the response with the
    block removed becomes ``plan_text``. When no block exists, or the block is
    empty, ``diff_text`` is ``None`` and ``plan_text`` is ``raw`` unchanged.
    """
    match = _DIFF_FENCE.search(raw)
    if match is None:
        return ParsedProposal(plan_text=raw, diff_text=None)
    diff = match.group("body").strip()
    if not diff:
        return ParsedProposal(plan_text=raw, diff_text=None)
    plan = (raw[: match.start()] + raw[match.end() :]).strip()
    return ParsedProposal(plan_text=plan, diff_text=diff)


def require_diff(proposal: ParsedProposal) -> str:
    """Return the diff or raise :class:`ParseError` carrying the raw response."""
    if proposal.diff_text is None:
        raise ParseError(
            "Model did not return a ```diff block.",
            raw_response=proposal.plan_text,
        )
    return proposal.diff_text


__all__ = ["parse_response", "require_diff"]
