"""Single-shot generate -> parse -> apply -> validate -> report pipeline."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict

from .config import AgentSettings
from .context import collect_repo_context
from .errors import EXIT_BUILD_FAILED, EXIT_OK, ApplyError, ParseError, TransportError
from .models import LLMClient, LLMClientError, LLMTransportError
from .models.llm_client import LLMRequest
from .parsing import parse_response, require_diff
from .prompts import build_prompt, render_system_instruction
from .report import compose_report
from .schema import BuildOutcome, ParsedProposal, PatchOutcome, Report
from .tools.build import validate_build
from .tools.patch import apply_patch
from .tools.runner import CommandRunner
from .tools.vcs import summarise_changes

LOGGER = logging.getLogger(__name__)

PLAN_ARTIFACT = "agent_plan.md"
RESPONSE_ARTIFACT = "agent_response.md"
PATCH_FAILED_ARTIFACT = "patch_failed.diff"
REPORT_ARTIFACT = "pr_body.md"


@dataclass(slots=True)
class PipelineResult:
    """Outcome of a pipeline run that reached the build validator."""

    exit_code: int
    report: Report
    proposal: ParsedProposal
    patch: PatchOutcome
    build: BuildOutcome
    artifacts: Dict[str, Path] = field(default_factory=dict)

    @property
    def build_passed(self) -> bool:
        return self.build.success


class Pipeline:
    """Coordinate the build-small stages over injected collaborators.

    Every stage before the build validator raises a
    :class:`~buildsmall.errors.PipelineError` subclass and produces no report.
    From the build validator onward a report is always written, and a broken
    build is signalled through :attr:`PipelineResult.exit_code`.
    """

    def __init__(self, *, settings: AgentSettings, client: LLMClient, runner: CommandRunner) -> None:
        self.settings = settings
        self.client = client
        self.runner = runner
        self.artifacts: Dict[str, Path] = {}

    # ------------------------------------------------------------------ stages
    def build_prompt(self) -> str:
        settings = self.settings
        repo_context = collect_repo_context(settings.repo_root, settings.context)
        allowed_paths = settings.patch.allowed_paths
        instruction = render_system_instruction(allowed_paths)
        return build_prompt(settings.issue, repo_context, instruction=instruction, allowed_paths=allowed_paths)

    def generate(self, prompt: str) -> str:
        """Call the model once; client failures surface as :class:`TransportError`."""
        request = LLMRequest(
            prompt=prompt,
            model=self.settings.model.name,
        )
        try:
            return self.client.invoke(request)
        except LLMTransportError as error:
            raise TransportError(str(error), status=error.status, body=error.body) from error
        except LLMClientError as error:
            raise TransportError(str(error)) from error

    def parse(self, response: str) -> ParsedProposal:
        proposal = parse_response(response)
        try:
            require_diff(proposal)
        except ParseError:
            self._write_artifact(RESPONSE_ARTIFACT, response + "\n")
            LOGGER.error("Model did not return a ```diff block. Full response:\n%s", response)
            raise
        self._write_artifact(PLAN_ARTIFACT, proposal.plan_text + "\n")
        return proposal

    def apply(self, diff_text: str) -> PatchOutcome:
        patch_settings = self.settings.patch
        LOGGER.info("Applying patch via git apply ...")
        outcome = apply_patch(
            diff_text,
            runner=self.runner,
            repo_root=self.settings.repo_root,
            allowed_paths=patch_settings.allowed_paths,
            directory=patch_settings.directory,
            strict_scope=patch_settings.strict_scope,
        )
        if not outcome.success:
            self._write_artifact(PATCH_FAILED_ARTIFACT, diff_text + "\n")
            LOGGER.error("git apply failed: %s\nPatch was:\n%s", outcome.message, diff_text)
            raise ApplyError(f"git apply failed: {outcome.message}", diff_text=diff_text, outcome=outcome)
        return outcome

    def validate(self) -> BuildOutcome:
        commands = self.settings.commands
        return validate_build(
            self.runner,
            install_command=commands.install,
            build_command=commands.build,
            cwd=self.settings.repo_root,
            tail_lines=self.settings.report.tail_lines,
        )

    # --------------------------------------------------------------------- run
    def run(self) -> PipelineResult:
        """Execute every stage in order and return the reported outcome."""
        prompt = self.build_prompt()
        response = self.generate(prompt)
        proposal = self.parse(response)
        diff_text = require_diff(proposal)
        patch = self.apply(diff_text)
        build = self.validate()

        summary = summarise_changes(self.runner, cwd=self.settings.repo_root)
        report = compose_report(
            self.settings.issue,
            proposal,
            summary,
            build,
            self.settings.run_metadata(),
            scope_violations=patch.scope_violations,
        )
        self._write_artifact(REPORT_ARTIFACT, report.render())

        exit_code = EXIT_OK if build.success else EXIT_BUILD_FAILED
        if build.success:
            LOGGER.info("Agent build-small completed successfully.")
        else:
            LOGGER.error("Build failed. PR body generated; stopping so CI is honest.")
        return PipelineResult(
            exit_code=exit_code,
            report=report,
            proposal=proposal,
            patch=patch,
            build=build,
            artifacts=dict(self.artifacts),
        )

    def _write_artifact(self, name: str, content: str) -> Path:
        output_dir = self.settings.output_dir
        output_dir.mkdir(parents=True, exist_ok=True)
        path = output_dir / name
        path.write_text(content, encoding="utf-8")
        self.artifacts[name] = path
        return path


def run_pipeline(settings: AgentSettings, *, client: LLMClient, runner: CommandRunner) -> PipelineResult:
    """Run the build-small pipeline with explicit collaborators."""
    return Pipeline(settings=settings, client=client, runner=runner).run()


__all__ = [
    "PATCH_FAILED_ARTIFACT",
    "PLAN_ARTIFACT",
    "Pipeline",
    "PipelineResult",
    "REPORT_ARTIFACT",
    "RESPONSE_ARTIFACT",
    "run_pipeline",
]
