"""
Project store collaborators.

The pipeline only talks to the ProjectStore protocol. Two implementations are
provided: an in-memory store for tests and embedding, and a filesystem store
that lays each project out under an output directory.
"""

import json
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional, Protocol, Union

from clone_gen.models import GeneratedFile, ProjectStatus, Stage


class ProjectStore(Protocol):
    """Persistent project record. Every call must be safe to repeat."""

    def set_status(self, project_id: str, status: ProjectStatus) -> None:
        ...

    def set_progress(self, project_id: str, progress: int, stage: Optional[Stage] = None) -> None:
        ...

    def append_files(self, project_id: str, files: List[GeneratedFile]) -> None:
        ...

    def set_workflow_run_id(self, project_id: str, run_id: str) -> None:
        ...


def _new_record(project_id: str) -> Dict[str, Any]:
    return {
        "id": project_id,
        "status": ProjectStatus.PENDING.value,
        "progress": 0,
        "stage": None,
        "workflow_run_id": None,
        "updated_at": None,
    }


class InMemoryProjectStore:
    """Keeps project records and files in dictionaries."""

    def __init__(self):
        self.projects: Dict[str, Dict[str, Any]] = {}
        self.files: Dict[str, Dict[str, str]] = {}
        self.progress_history: Dict[str, List[int]] = {}

    def _record(self, project_id: str) -> Dict[str, Any]:
        if project_id not in self.projects:
            self.projects[project_id] = _new_record(project_id)
        return self.projects[project_id]

    def set_status(self, project_id: str, status: ProjectStatus) -> None:
        self._record(project_id)["status"] = ProjectStatus(status).value

    def set_progress(self, project_id: str, progress: int, stage: Optional[Stage] = None) -> None:
        record = self._record(project_id)
        record["progress"] = progress
        if stage is not None:
            record["stage"] = Stage(stage).value
        self.progress_history.setdefault(project_id, []).append(progress)

    def append_files(self, project_id: str, files: List[GeneratedFile]) -> None:
        stored = self.files.setdefault(project_id, {})
        for file in files:
            stored[file.path] = file.content

    def set_workflow_run_id(self, project_id: str, run_id: str) -> None:
        self._record(project_id)["workflow_run_id"] = run_id

    def get_project(self, project_id: str) -> Optional[Dict[str, Any]]:
        return self.projects.get(project_id)

    def get_files(self, project_id: str) -> List[GeneratedFile]:
        return [
            GeneratedFile(path=path, content=content)
            for path, content in self.files.get(project_id, {}).items()
        ]


class FileProjectStore:
    """Manages project records and generated files on disk."""

    RECORD_FILENAME = "project.json"
    FILES_DIRNAME = "files"

    def __init__(self, output_dir: Union[str, Path] = "outputs"):
        """
        Initialize the store.

        Args:
            output_dir: Root directory for project outputs.
        """
        self.output_dir = Path(output_dir)
        self.output_dir.mkdir(parents=True, exist_ok=True)

    def create_project_directory(self, project_id: str) -> Path:
        """
        Create output directory for a project.

        Args:
            project_id: Project identifier.

        Returns:
            Path to project directory.
        """
        project_dir = self.output_dir / project_id
        project_dir.mkdir(parents=True, exist_ok=True)
        (project_dir / self.FILES_DIRNAME).mkdir(exist_ok=True)
        (project_dir / "logs").mkdir(exist_ok=True)
        return project_dir

    def _record_path(self, project_id: str) -> Path:
        return self.create_project_directory(project_id) / self.RECORD_FILENAME

    def _update_record(self, project_id: str, **changes: Any) -> Dict[str, Any]:
        record = self.get_project(project_id) or _new_record(project_id)
        record.update(changes)
        record["updated_at"] = datetime.now().isoformat()
        self._record_path(project_id).write_text(json.dumps(record, indent=2), encoding="utf-8")
        return record

    def resolve_file_path(self, project_id: str, relative_path: str) -> Path:
        """
        Map a generated file path into the project's files directory.

        Raises:
            ValueError: If the path would escape the files directory.
        """
        files_dir = (self.create_project_directory(project_id) / self.FILES_DIRNAME).resolve()
        target = (files_dir / relative_path.lstrip("/")).resolve()
        if files_dir not in target.parents:
            raise ValueError(f"File path escapes project directory: {relative_path}")
        return target

    def set_status(self, project_id: str, status: ProjectStatus) -> None:
        self._update_record(project_id, status=ProjectStatus(status).value)

    def set_progress(self, project_id: str, progress: int, stage: Optional[Stage] = None) -> None:
        changes: Dict[str, Any] = {"progress": progress}
        if stage is not None:
            changes["stage"] = Stage(stage).value
        self._update_record(project_id, **changes)

    def append_files(self, project_id: str, files: List[GeneratedFile]) -> None:
        # Resolve everything first so a bad path rejects the whole batch
        targets = [(self.resolve_file_path(project_id, file.path), file) for file in files]
        for target, file in targets:
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_text(file.content, encoding="utf-8")

        record = self.get_project(project_id) or _new_record(project_id)
        paths = list(record.get("files", []))
        for file in files:
            if file.path not in paths:
                paths.append(file.path)
        self._update_record(project_id, files=paths)

    def set_workflow_run_id(self, project_id: str, run_id: str) -> None:
        self._update_record(project_id, workflow_run_id=run_id)

    def get_project(self, project_id: str) -> Optional[Dict[str, Any]]:
        """Load a project record, or None if it does not exist."""
        record_path = self.output_dir / project_id / self.RECORD_FILENAME
        if not record_path.exists():
            return None
        return json.loads(record_path.read_text(encoding="utf-8"))

    def load_files(self, project_id: str) -> List[GeneratedFile]:
        """Load the generated files recorded for a project."""
        record = self.get_project(project_id)
        if record is None:
            raise FileNotFoundError(f"Project not found: {project_id}")

        files = []
        for path in record.get("files", []):
            target = self.resolve_file_path(project_id, path)
            files.append(GeneratedFile(path=path, content=target.read_text(encoding="utf-8")))
        return files
