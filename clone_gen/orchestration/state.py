"""
Run state and stage results for the pipeline orchestrator.

Every stage produces a StageResult. The orchestrator keeps them in a
per-run table keyed by stage name and decides from that table whether the
run continues.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from clone_gen.exceptions import ErrorKind, classify_error
from clone_gen.models import ColorInfo, GeneratedFile, GenerationContext


@dataclass
class StageResult:
    """Outcome of one pipeline stage."""
    stage: str
    ok: bool
    value: Any = None
    error: Optional[BaseException] = None
    error_kind: Optional[ErrorKind] = None
    degraded: bool = False

    @classmethod
    def success(cls, stage: str, value: Any = None) -> "StageResult":
        return cls(stage=stage, ok=True, value=value)

    @classmethod
    def failure(cls, stage: str, error: BaseException) -> "StageResult":
        return cls(stage=stage, ok=False, error=error, error_kind=classify_error(error))

    @classmethod
    def degraded_success(cls, stage: str, value: Any, error: BaseException) -> "StageResult":
        """A stage that recovered from an error and still produced a value."""
        return cls(
            stage=stage,
            ok=True,
            value=value,
            error=error,
            error_kind=classify_error(error),
            degraded=True,
        )


@dataclass
class RunState:
    """
    Mutable state of one pipeline run.

    Fields are filled in by the stages in order: prepare sets the
    sanitized markup, generate the colors and files, revise replaces the
    files.
    """
    context: GenerationContext
    workflow_run_id: str = ""
    sanitized_markup: str = ""
    colors: List[ColorInfo] = field(default_factory=list)
    files: Any = None
    continuation_attempts: int = 0
    results: Dict[str, StageResult] = field(default_factory=dict)

    @property
    def project_id(self) -> str:
        return self.context.project_id

    @property
    def degraded(self) -> bool:
        return any(result.degraded for result in self.results.values())


@dataclass
class PipelineResult:
    """Value returned by a successful pipeline run."""
    project_id: str
    files: List[GeneratedFile]
    results: Dict[str, StageResult]
    workflow_run_id: str = ""
    continuation_attempts: int = 0

    @property
    def degraded(self) -> bool:
        return any(result.degraded for result in self.results.values())
