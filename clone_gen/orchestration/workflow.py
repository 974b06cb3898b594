"""
Workflow engine interface.

A durable engine runs each pipeline stage as a named step and owns whole-run
retries. LocalWorkflow is the in-process stand-in used by the CLI and tests.
"""

import uuid
from typing import Any, Callable, Dict, List, Optional, Protocol, TypeVar

from clone_gen.utils.llm_logger import LLMLogger


T = TypeVar("T")

DEFAULT_RUN_ATTEMPTS = 3


class WorkflowContext(Protocol):
    """What the pipeline needs from a workflow engine."""

    workflow_run_id: str

    def run(self, step_name: str, fn: Callable[[], T]) -> T:
        ...


class LocalWorkflow:
    """Runs steps immediately and records them in order."""

    def __init__(self, run_id: Optional[str] = None):
        self.workflow_run_id = run_id or f"wfr_{uuid.uuid4().hex[:16]}"
        self.steps: List[str] = []
        self.step_results: Dict[str, Any] = {}

    def run(self, step_name: str, fn: Callable[[], T]) -> T:
        self.steps.append(step_name)
        value = fn()
        self.step_results[step_name] = value
        return value


def run_with_retries(
    pipeline: Any,
    payload: Any,
    max_attempts: int = DEFAULT_RUN_ATTEMPTS,
    workflow_factory: Callable[[], WorkflowContext] = LocalWorkflow,
    logger: Optional[LLMLogger] = None,
):
    """
    Re-invoke a whole pipeline run until it succeeds or attempts run out.

    Each attempt gets a fresh workflow context. The last error is re-raised
    when every attempt fails.

    Args:
        pipeline: Object with a run(payload, workflow) method.
        payload: Run input passed to every attempt.
        max_attempts: Maximum number of whole-run attempts.
        workflow_factory: Builds the workflow context for an attempt.
        logger: Logger for retry events.
    """
    if max_attempts < 1:
        raise ValueError("max_attempts must be at least 1")

    logger = logger or LLMLogger()
    last_error: Optional[Exception] = None

    for attempt in range(1, max_attempts + 1):
        workflow = workflow_factory()
        try:
            return pipeline.run(payload, workflow)
        except Exception as e:
            last_error = e
            logger.log_error(None, f"Workflow attempt {attempt}/{max_attempts} failed", e)

    raise last_error
