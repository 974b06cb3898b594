"""
Progress reporting for pipeline runs.

Each named stage owns a fixed percentage band. Within one run progress only
moves forward; the single way down is reset() after a hard failure.
"""

import math
from typing import Dict, Optional, Tuple

from clone_gen.io.project_store import ProjectStore
from clone_gen.models import ProgressState, Stage
from clone_gen.utils.llm_logger import LLMLogger, LogLevel


PROGRESS_STAGES: Dict[Stage, Tuple[int, int]] = {
    Stage.PREPARING: (0, 10),
    Stage.GENERATING: (10, 40),
    Stage.CONTINUATION: (40, 70),
    Stage.REVISING: (70, 90),
    Stage.FINALIZING: (90, 100),
}


def band_value(stage: Stage, fraction: float) -> float:
    """
    Map a fraction of a stage's band to a percentage.

    Args:
        stage: Stage whose band is used.
        fraction: Position inside the band, clamped to [0, 1].
    """
    low, high = PROGRESS_STAGES[stage]
    fraction = min(max(fraction, 0.0), 1.0)
    return low + (high - low) * fraction


class ProgressReporter:
    """Writes floor-rounded, monotonic progress values to a project store."""

    def __init__(self, store: ProjectStore, logger: Optional[LLMLogger] = None):
        self.store = store
        self.logger = logger or LLMLogger()
        self._states: Dict[str, ProgressState] = {}

    def state(self, project_id: str) -> ProgressState:
        """Last progress written for a project in this run."""
        return self._states.get(project_id, ProgressState(project_id=project_id))

    def update_progress(self, project_id: str, value: float, stage: Optional[Stage] = None) -> int:
        """
        Persist a progress value.

        The value is floored and clamped to [0, 100]. A value below the last
        one written in this run is raised to it.

        Returns:
            The progress value actually written.
        """
        progress = min(max(int(math.floor(value)), 0), 100)
        previous = self._states.get(project_id)
        if previous is not None and progress < previous.progress:
            progress = previous.progress

        current_stage = stage if stage is not None else (previous.stage if previous else None)
        self.store.set_progress(project_id, progress, stage)
        self._states[project_id] = ProgressState(
            project_id=project_id,
            progress=progress,
            stage=current_stage,
        )

        self.logger.log_event(
            project_id,
            f"Progress updated to {progress}%" + (f", stage: {stage.value}" if stage else ""),
            LogLevel.DEBUG,
        )
        return progress

    def advance(self, project_id: str, stage: Stage, fraction: float) -> int:
        """Write the progress at `fraction` of a stage's band."""
        return self.update_progress(project_id, band_value(stage, fraction), stage)

    def reset(self, project_id: str) -> int:
        """Reset progress to 0 after a hard failure."""
        self.store.set_progress(project_id, 0, Stage.FAILED)
        self._states[project_id] = ProgressState(project_id=project_id, progress=0, stage=Stage.FAILED)
        self.logger.log_event(project_id, "Progress reset to 0%, stage: failed", LogLevel.DEBUG)
        return 0
