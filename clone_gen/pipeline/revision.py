"""
Single refinement pass over a generated file set.

The reviser sees the essential source files, the color guidance and the
markup sample, and answers with full-file writes or diffs. Any failure here
is soft: the run continues with the pre-revision files.
"""

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, List, Optional

from clone_gen.exceptions import RevisionFailure
from clone_gen.models import ColorInfo, GeneratedFile, GenerationContext, Stage
from clone_gen.pipeline.diffs import DiffSkipped, dedupe_files, merge_files, reconcile
from clone_gen.pipeline.model_client import ModelClient
from clone_gen.pipeline.parser import ParsedOutput, parse_actions
from clone_gen.pipeline.prompts import PromptBuilder
from clone_gen.utils.llm_logger import LLMLogger

if TYPE_CHECKING:
    from clone_gen.orchestration.progress import ProgressReporter


@dataclass
class RevisionOutcome:
    """Files after revision, plus how they got there."""
    files: List[GeneratedFile]
    degraded: bool = False
    error: Optional[RevisionFailure] = None
    applied: List[str] = field(default_factory=list)
    skipped: List[DiffSkipped] = field(default_factory=list)
    rewritten: List[str] = field(default_factory=list)


def reply_is_incomplete(parsed: ParsedOutput) -> bool:
    """A revision reply with no actions, or without its wrapper close."""
    return (not parsed.files and not parsed.diffs) or not parsed.wrapper_closed


class RevisionPass:
    """Runs one revision turn with at most one continuation."""

    def __init__(
        self,
        client: ModelClient,
        builder: PromptBuilder,
        reporter: "ProgressReporter",
        logger: Optional[LLMLogger] = None,
    ):
        self.client = client
        self.builder = builder
        self.reporter = reporter
        self.logger = logger or LLMLogger()

    def run(
        self,
        files: List[GeneratedFile],
        context: GenerationContext,
        colors: List[ColorInfo],
        markup: str,
    ) -> RevisionOutcome:
        """
        Refine files toward the visual reference.

        Args:
            files: Pre-revision file set.
            context: Run input.
            colors: Color guidance from the generate stage.
            markup: Sanitized markup.

        Returns:
            RevisionOutcome. On any failure, degraded=True and files is the
            unchanged input list.
        """
        project_id = context.project_id
        self.reporter.advance(project_id, Stage.REVISING, 0.0)
        self.logger.log_event(project_id, "Starting revision phase...")

        try:
            outcome = self._revise(files, context, colors, markup)
        except Exception as e:
            failure = RevisionFailure(
                f"Revision failed: {e}",
                details={"cause": type(e).__name__},
            )
            failure.__cause__ = e
            self.logger.log_error(project_id, "Error during revision, continuing with original files", e)
            self.reporter.advance(project_id, Stage.REVISING, 1.0)
            return RevisionOutcome(files=list(files), degraded=True, error=failure)

        self.reporter.advance(project_id, Stage.REVISING, 1.0)
        self.logger.log_event(
            project_id,
            f"Revision complete: {len(outcome.applied)} diffs applied, "
            f"{len(outcome.skipped)} skipped, {len(outcome.rewritten)} files rewritten",
        )
        return outcome

    def _revise(
        self,
        files: List[GeneratedFile],
        context: GenerationContext,
        colors: List[ColorInfo],
        markup: str,
    ) -> RevisionOutcome:
        project_id = context.project_id
        messages = self.builder.build_revision_messages(context, files, colors, markup)

        self.reporter.advance(project_id, Stage.REVISING, 0.25)
        reply = self.client.complete(messages, project_id, component="revision")
        content = reply.content
        parsed = parse_actions(content)

        if reply_is_incomplete(parsed):
            self.logger.log_event(project_id, "Revision response seems incomplete. Continuing...")
            self.reporter.advance(project_id, Stage.REVISING, 0.5)
            conversation = PromptBuilder.build_continuation_messages(messages, content)
            continued = self.client.complete(conversation, project_id, component="revision continuation")
            content += continued.content
            parsed = parse_actions(content)

        self.reporter.advance(project_id, Stage.REVISING, 0.75)

        reconciled = reconcile(files, parsed.diffs, logger=self.logger, project_id=project_id)
        rewrites = dedupe_files(parsed.files)
        revised = merge_files(reconciled.files, rewrites)

        return RevisionOutcome(
            files=revised,
            applied=reconciled.applied,
            skipped=reconciled.skipped,
            rewritten=[file.path for file in rewrites],
        )
