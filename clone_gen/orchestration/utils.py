"""
Utility functions for the orchestration layer.
"""

from typing import Any, Dict, List, Optional

from clone_gen.models import GeneratedFile
from clone_gen.orchestration.state import PipelineResult


def get_run_summary(result: PipelineResult) -> str:
    """
    Get a human-readable summary of a finished run.

    Args:
        result: PipelineResult returned by GenerationPipeline.run

    Returns:
        Formatted string summary
    """
    summary = []
    summary.append(f"Project: {result.project_id}")
    summary.append(f"Workflow run: {result.workflow_run_id or 'N/A'}")
    summary.append(f"Files: {len(result.files)}")
    summary.append(f"Continuation attempts: {result.continuation_attempts}")
    summary.append(f"Degraded: {result.degraded}")

    for name, stage in result.results.items():
        line = f"  {name}: {'ok' if stage.ok else 'failed'}"
        if stage.degraded:
            line += " (degraded)"
        if stage.error_kind:
            line += f" [{stage.error_kind.value}]"
        summary.append(line)

    return "\n".join(summary)


def get_project_summary(record: Optional[Dict[str, Any]], files: List[GeneratedFile]) -> str:
    """Summarize a stored project record and its files."""
    if record is None:
        return "Project not found"

    summary = []
    summary.append(f"Project: {record.get('id')}")
    summary.append(f"Status: {record.get('status', 'N/A')}")
    summary.append(f"Progress: {record.get('progress', 0)}%")
    summary.append(f"Stage: {record.get('stage') or 'N/A'}")
    summary.append(f"Workflow run: {record.get('workflow_run_id') or 'N/A'}")
    summary.append(f"Files: {len(files)}")
    for file in files:
        summary.append(f"  {file.path} ({len(file.content)} chars)")

    return "\n".join(summary)
