"""
Reconciliation of diff edits and full-file overwrites against a file set.

All functions here are pure: they return new lists and never mutate the
files or diffs they are given. Files that no edit touches are passed through
as the same objects.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional

from clone_gen.models import FileDiff, GeneratedFile
from clone_gen.utils.llm_logger import LLMLogger, LogLevel


class SkipReason(str, Enum):
    """Why a diff was not applied."""
    MISSING_FILE = "missing_file"
    OLD_CONTENT_NOT_FOUND = "old_content_not_found"


@dataclass(frozen=True)
class DiffSkipped:
    """A diff that was not applied. Not an error."""
    path: str
    reason: SkipReason


@dataclass
class ReconcileResult:
    """Outcome of applying a batch of diffs."""
    files: List[GeneratedFile]
    applied: List[str] = field(default_factory=list)
    skipped: List[DiffSkipped] = field(default_factory=list)


def reconcile(
    files: List[GeneratedFile],
    diffs: List[FileDiff],
    logger: Optional[LLMLogger] = None,
    project_id: Optional[str] = None,
) -> ReconcileResult:
    """
    Apply diffs in order by exact substring replacement.

    Only the first literal occurrence of old_content is replaced. A diff
    against a missing path, or whose old_content does not occur verbatim,
    is skipped and reported.

    Args:
        files: Current file set.
        diffs: Diffs to apply, in order.
        logger: Optional logger for skip/apply events.
        project_id: Project the files belong to, for logging.

    Returns:
        ReconcileResult with the updated files and per-diff outcomes.
    """
    updated = list(files)
    result = ReconcileResult(files=updated)

    for diff in diffs:
        index = next((i for i, file in enumerate(updated) if file.path == diff.path), None)

        if index is None:
            result.skipped.append(DiffSkipped(diff.path, SkipReason.MISSING_FILE))
            if logger:
                logger.log_event(project_id, f"Cannot apply diff to missing file: {diff.path}", LogLevel.DEBUG)
            continue

        current = updated[index]
        if diff.old_content not in current.content:
            result.skipped.append(DiffSkipped(diff.path, SkipReason.OLD_CONTENT_NOT_FOUND))
            if logger:
                logger.log_event(project_id, f"No changes applied to file: {diff.path}", LogLevel.DEBUG)
            continue

        updated[index] = GeneratedFile(
            path=current.path,
            content=current.content.replace(diff.old_content, diff.new_content, 1),
        )
        result.applied.append(diff.path)
        if logger:
            logger.log_event(project_id, f"Applied diff to file: {diff.path}", LogLevel.DEBUG)

    return result


def apply_diffs(
    files: List[GeneratedFile],
    diffs: List[FileDiff],
    logger: Optional[LLMLogger] = None,
    project_id: Optional[str] = None,
) -> List[GeneratedFile]:
    """Apply diffs and return the updated file list."""
    return reconcile(files, diffs, logger=logger, project_id=project_id).files


def merge_files(base: List[GeneratedFile], overlay: List[GeneratedFile]) -> List[GeneratedFile]:
    """
    Overlay full-file writes onto a file set.

    Existing paths are replaced in place; new paths are appended.
    """
    merged = list(base)
    positions: Dict[str, int] = {}
    for i, file in enumerate(merged):
        positions.setdefault(file.path, i)

    for file in overlay:
        if file.path in positions:
            merged[positions[file.path]] = file
        else:
            positions[file.path] = len(merged)
            merged.append(file)

    return merged


def dedupe_files(files: List[GeneratedFile]) -> List[GeneratedFile]:
    """Keep the last write per path, in order of first appearance."""
    latest: Dict[str, GeneratedFile] = {}
    for file in files:
        latest[file.path] = file
    return list(latest.values())
