"""
Pipeline orchestrator: turns a reference bundle into a persisted project.

Stages run in order as named workflow steps:

    prepare -> generate -> revise -> persist -> complete

Each stage has its own error boundary and produces a StageResult. Revise is
soft-failing; any other failed stage marks the project failed, resets its
progress and re-raises the stage error to the workflow engine.
"""

from functools import partial
from typing import Any, Callable, Dict, List, Optional, Union

from clone_gen.config import PipelineConfig
from clone_gen.exceptions import PersistenceRejected
from clone_gen.io.markup import sanitize_markup
from clone_gen.io.project_store import ProjectStore
from clone_gen.io.reference_loader import ReferenceLoader
from clone_gen.models import GeneratedFile, GenerationContext, ProjectStatus, Stage
from clone_gen.orchestration.progress import PROGRESS_STAGES, ProgressReporter
from clone_gen.orchestration.state import PipelineResult, RunState, StageResult
from clone_gen.orchestration.workflow import LocalWorkflow, WorkflowContext
from clone_gen.pipeline.colors import ColorAnalyzer
from clone_gen.pipeline.continuation import ContinuationController
from clone_gen.pipeline.diffs import dedupe_files
from clone_gen.pipeline.model_client import ModelClient
from clone_gen.pipeline.prompts import PromptBuilder
from clone_gen.pipeline.revision import RevisionPass
from clone_gen.utils.llm_logger import LLMLogger


STEP_PREPARE = "prepare"
STEP_GENERATE = "generate"
STEP_REVISE = "revise"
STEP_PERSIST = "persist"
STEP_COMPLETE = "complete"

STEPS = (STEP_PREPARE, STEP_GENERATE, STEP_REVISE, STEP_PERSIST, STEP_COMPLETE)


def persist_files(store: ProjectStore, project_id: str, files: Any) -> List[GeneratedFile]:
    """
    Hand the final file list to the store.

    Raises:
        PersistenceRejected: files is not a non-empty list of GeneratedFile.
            The store is not called.
    """
    if not isinstance(files, list) or not files:
        raise PersistenceRejected(
            "No files to persist",
            details={"type": type(files).__name__},
        )
    if not all(isinstance(file, GeneratedFile) for file in files):
        raise PersistenceRejected("File list contains entries that are not generated files")

    final = dedupe_files(files)
    store.append_files(project_id, final)
    return final


class GenerationPipeline:
    """Runs the five generation stages for one project at a time."""

    def __init__(
        self,
        store: ProjectStore,
        client: ModelClient,
        config: Optional[PipelineConfig] = None,
        logger: Optional[LLMLogger] = None,
        loader: Optional[ReferenceLoader] = None,
        color_analyzer: Optional[ColorAnalyzer] = None,
    ):
        """
        Initialize the pipeline.

        Args:
            store: Project store receiving status, progress and files.
            client: Model client for generation and revision turns.
            config: Pipeline limits; defaults to PipelineConfig().
            logger: Logger shared by every component.
            loader: Image loader for prompts and color sampling.
            color_analyzer: Overrides the default color analyzer.
        """
        self.store = store
        self.client = client
        self.config = config or PipelineConfig()
        self.logger = logger or LLMLogger()
        self.loader = loader or ReferenceLoader(timeout=self.config.image_timeout_seconds)

        self.builder = PromptBuilder(
            loader=self.loader,
            max_images=self.config.max_images,
            markup_sample_chars=self.config.markup_sample_chars,
            max_revision_files=self.config.max_revision_files,
        )
        self.color_analyzer = color_analyzer or ColorAnalyzer(
            loader=self.loader,
            logger=self.logger,
            max_images=self.config.max_color_images,
            max_workers=self.config.color_workers,
        )

    def run(
        self,
        payload: Union[GenerationContext, Dict[str, Any]],
        workflow: Optional[WorkflowContext] = None,
    ) -> PipelineResult:
        """
        Run every stage for one project.

        Args:
            payload: GenerationContext or a raw workflow payload dict.
            workflow: Workflow engine context; a LocalWorkflow by default.

        Returns:
            PipelineResult with the persisted files and the stage table.

        Raises:
            The error of the first failed stage other than revise.
        """
        context = payload if isinstance(payload, GenerationContext) else GenerationContext.from_payload(payload)
        workflow = workflow or LocalWorkflow()
        state = RunState(context=context, workflow_run_id=workflow.workflow_run_id)
        reporter = ProgressReporter(self.store, self.logger)

        self.logger.log_event(
            context.project_id,
            f"Starting workflow for project {context.project_id}",
            workflow_run_id=state.workflow_run_id,
            images=len(context.images),
        )

        stages: Dict[str, Callable[[RunState, ProgressReporter], Any]] = {
            STEP_PREPARE: self._prepare,
            STEP_GENERATE: self._generate,
            STEP_REVISE: self._revise,
            STEP_PERSIST: self._persist,
            STEP_COMPLETE: self._complete,
        }

        for name in STEPS:
            result = workflow.run(name, partial(self._run_stage, name, stages[name], state, reporter))
            state.results[name] = result
            if not result.ok:
                self._fail(state, reporter, result)
                raise result.error

        self.logger.log_event(
            context.project_id,
            f"Workflow completed with {len(state.files)} files",
            degraded=state.degraded,
        )
        return PipelineResult(
            project_id=context.project_id,
            files=state.files,
            results=state.results,
            workflow_run_id=state.workflow_run_id,
            continuation_attempts=state.continuation_attempts,
        )

    def _run_stage(
        self,
        name: str,
        stage_fn: Callable[[RunState, ProgressReporter], Any],
        state: RunState,
        reporter: ProgressReporter,
    ) -> StageResult:
        """Error boundary around one stage."""
        self.logger.log_event(state.project_id, f"Stage {name} started")
        try:
            value = stage_fn(state, reporter)
        except Exception as e:
            self.logger.log_error(state.project_id, f"Stage {name} failed", e)
            return StageResult.failure(name, e)

        if isinstance(value, StageResult):
            return value
        return StageResult.success(name, value)

    def _fail(self, state: RunState, reporter: ProgressReporter, result: StageResult) -> None:
        self.logger.log_error(
            state.project_id,
            f"Workflow failed at stage {result.stage}",
            result.error,
            error_kind=result.error_kind.value if result.error_kind else None,
        )
        self.store.set_status(state.project_id, ProjectStatus.FAILED)
        reporter.reset(state.project_id)

    def _prepare(self, state: RunState, reporter: ProgressReporter) -> str:
        project_id = state.project_id
        self.store.set_status(project_id, ProjectStatus.PROCESSING)
        reporter.update_progress(project_id, PROGRESS_STAGES[Stage.PREPARING][0], Stage.PREPARING)
        self.store.set_workflow_run_id(project_id, state.workflow_run_id)

        state.sanitized_markup = sanitize_markup(state.context.raw_markup, self.config.max_markup_chars)
        self.logger.log_event(
            project_id,
            f"Sanitized markup: {len(state.context.raw_markup)} -> {len(state.sanitized_markup)} chars",
        )

        reporter.update_progress(project_id, PROGRESS_STAGES[Stage.PREPARING][1], Stage.PREPARING)
        return state.sanitized_markup

    def _generate(self, state: RunState, reporter: ProgressReporter) -> StageResult:
        project_id = state.project_id
        reporter.update_progress(project_id, PROGRESS_STAGES[Stage.GENERATING][0], Stage.GENERATING)

        state.colors = self.color_analyzer.analyze(state.context.images, project_id)
        messages = self.builder.build_generation_messages(state.context, state.colors, state.sanitized_markup)
        reporter.advance(project_id, Stage.GENERATING, 1 / 3)

        self.logger.log_event(project_id, "Calling model for initial generation...")
        reply = self.client.complete(messages, project_id, component="generation")
        reporter.advance(project_id, Stage.GENERATING, 1.0)

        controller = ContinuationController(
            self.client,
            reporter=reporter,
            logger=self.logger,
            max_attempts=self.config.max_continuation_attempts,
        )
        outcome = controller.run(messages, reply.content, project_id)

        state.files = dedupe_files(outcome.files)
        state.continuation_attempts = outcome.attempts
        self.logger.log_event(project_id, f"Generated {len(state.files)} files")

        return StageResult(stage=STEP_GENERATE, ok=True, value=state.files, degraded=outcome.degraded)

    def _revise(self, state: RunState, reporter: ProgressReporter) -> StageResult:
        if not self.config.enable_revision:
            self.logger.log_event(state.project_id, "Revision disabled, keeping generated files")
            return StageResult.success(STEP_REVISE, state.files)

        reviser = RevisionPass(self.client, self.builder, reporter, self.logger)
        outcome = reviser.run(state.files, state.context, state.colors, state.sanitized_markup)
        state.files = outcome.files

        if outcome.degraded:
            return StageResult.degraded_success(STEP_REVISE, outcome.files, outcome.error)
        return StageResult.success(STEP_REVISE, outcome.files)

    def _persist(self, state: RunState, reporter: ProgressReporter) -> List[GeneratedFile]:
        project_id = state.project_id
        reporter.update_progress(project_id, PROGRESS_STAGES[Stage.FINALIZING][0], Stage.FINALIZING)
        state.files = persist_files(self.store, project_id, state.files)
        self.logger.log_event(project_id, f"Saved {len(state.files)} files")
        return state.files

    def _complete(self, state: RunState, reporter: ProgressReporter) -> None:
        project_id = state.project_id
        self.store.set_status(project_id, ProjectStatus.COMPLETED)
        reporter.update_progress(project_id, 100, Stage.COMPLETED)
