"""
Staged orchestration of a generation run.

This module wires the pipeline components into a five-stage run with
per-stage error boundaries, progress reporting and a workflow engine seam.
"""

from clone_gen.orchestration.pipeline import GenerationPipeline, persist_files
from clone_gen.orchestration.progress import PROGRESS_STAGES, ProgressReporter
from clone_gen.orchestration.state import PipelineResult, RunState, StageResult
from clone_gen.orchestration.utils import get_project_summary, get_run_summary
from clone_gen.orchestration.workflow import LocalWorkflow, WorkflowContext, run_with_retries

__all__ = [
    "GenerationPipeline",
    "persist_files",
    "PROGRESS_STAGES",
    "ProgressReporter",
    "PipelineResult",
    "RunState",
    "StageResult",
    "get_project_summary",
    "get_run_summary",
    "LocalWorkflow",
    "WorkflowContext",
    "run_with_retries",
]
