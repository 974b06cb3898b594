"""
Bounded multi-turn continuation of truncated model output.

    INITIAL -> COMPLETE
    INITIAL -> NEEDS_CONTINUATION -> CONTINUING -> COMPLETE | FAILED

When a turn ends inside an action, the raw text of that action is carried
into the next turn and parsed together with the new fragment, so a file cut
off mid-body is recovered whole once the model finishes it.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, List, Optional

from langchain_core.messages import BaseMessage

from clone_gen.exceptions import NoFilesExtractedError
from clone_gen.models import GeneratedFile, Stage
from clone_gen.pipeline.model_client import ModelClient
from clone_gen.pipeline.parser import FileAction, ParsedOutput, parse_actions
from clone_gen.pipeline.prompts import PromptBuilder
from clone_gen.utils.llm_logger import LLMLogger

if TYPE_CHECKING:
    from clone_gen.orchestration.progress import ProgressReporter


DEFAULT_MAX_ATTEMPTS = 5


class ContinuationState(str, Enum):
    """Controller states."""
    INITIAL = "initial"
    NEEDS_CONTINUATION = "needs_continuation"
    CONTINUING = "continuing"
    COMPLETE = "complete"
    FAILED = "failed"


@dataclass
class ContinuationResult:
    """Files accumulated over the initial turn and all continuations."""
    files: List[GeneratedFile] = field(default_factory=list)
    attempts: int = 0
    state: ContinuationState = ContinuationState.COMPLETE
    degraded: bool = False
    content: str = ""


def needs_continuation(parsed: ParsedOutput) -> bool:
    """
    Decide whether a first turn is incomplete.

    True when no file was extracted, the wrapper close is missing, input
    ended inside an action or its opening marker, or some action was opened
    but never closed.
    """
    return (
        not parsed.files
        or not parsed.wrapper_closed
        or parsed.truncated
        or parsed.unterminated > 0
    )


def count_new_files(turn: ParsedOutput, carried: bool) -> int:
    """
    Count files this turn contributed.

    A carried-over action that is still open does not count: the model has
    not finished it yet.
    """
    count = 0
    for action in turn.actions:
        if not isinstance(action, FileAction) or action.to_file() is None:
            continue
        if carried and action.start == 0 and not action.terminated:
            continue
        count += 1
    return count


class ContinuationController:
    """Drives additional model turns until output is judged complete."""

    def __init__(
        self,
        client: ModelClient,
        reporter: Optional["ProgressReporter"] = None,
        logger: Optional[LLMLogger] = None,
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
    ):
        """
        Initialize the controller.

        Args:
            client: Model client used for continuation turns.
            reporter: Progress reporter; each attempt advances the
                continuation band by an equal share.
            logger: Logger for turn outcomes.
            max_attempts: Maximum number of continuation turns.
        """
        self.client = client
        self.reporter = reporter
        self.logger = logger or LLMLogger()
        self.max_attempts = max_attempts
        self.state = ContinuationState.INITIAL

    def run(
        self,
        messages: List[BaseMessage],
        initial_content: str,
        project_id: Optional[str] = None,
    ) -> ContinuationResult:
        """
        Extract files from the first turn and continue while incomplete.

        Args:
            messages: Conversation that produced initial_content.
            initial_content: Text of the first model turn.
            project_id: Project being generated.

        Returns:
            ContinuationResult; degraded=True when the attempt cap was hit
            with at least one file.

        Raises:
            NoFilesExtractedError: The cap was hit with no files at all.
        """
        self.state = ContinuationState.INITIAL
        parsed = parse_actions(initial_content)
        files = list(parsed.files)

        if not needs_continuation(parsed):
            self.state = ContinuationState.COMPLETE
            self.logger.log_event(project_id, f"Initial response is complete, found {len(files)} files")
            return ContinuationResult(files=files, content=initial_content)

        self.state = ContinuationState.NEEDS_CONTINUATION
        self.logger.log_event(
            project_id,
            "Initial response seems incomplete. Continuing generation...",
            files=len(files),
            wrapper_closed=parsed.wrapper_closed,
            end_state=parsed.end_state.value,
        )

        all_content = initial_content
        tail = parsed.pending_tail
        attempts = 0
        complete = False

        self.state = ContinuationState.CONTINUING
        while attempts < self.max_attempts:
            attempts += 1
            self.logger.log_event(project_id, f"Continuation attempt {attempts}")
            if self.reporter is not None:
                self.reporter.advance(project_id, Stage.CONTINUATION, attempts / self.max_attempts)

            conversation = PromptBuilder.build_continuation_messages(messages, all_content)
            reply = self.client.complete(conversation, project_id, component=f"continuation {attempts}")
            fragment = reply.content
            all_content += fragment

            turn = parse_actions(tail + fragment)
            new_files = count_new_files(turn, carried=bool(tail))
            files.extend(turn.files)
            tail = turn.pending_tail

            self.logger.log_event(
                project_id,
                f"Extracted {new_files} files from continuation {attempts}",
            )

            # A turn cut mid-action still owes the rest of that action
            if not turn.truncated and (turn.wrapper_closed or new_files > 0):
                complete = True
                break

        if not files:
            self.state = ContinuationState.FAILED
            self.logger.log_error(project_id, f"No files found after {attempts} continuation attempts")
            raise NoFilesExtractedError(
                "No files found in the generated response after continuation attempts",
                attempts=attempts,
            )

        self.state = ContinuationState.COMPLETE
        if complete:
            self.logger.log_event(project_id, f"Continuation complete after {attempts} attempts")
        else:
            self.logger.log_event(
                project_id,
                f"Continuation cap reached after {attempts} attempts; keeping {len(files)} files",
            )

        return ContinuationResult(
            files=files,
            attempts=attempts,
            state=self.state,
            degraded=not complete,
            content=all_content,
        )
