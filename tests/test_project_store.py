"""
Tests for project stores.
"""

import json

import pytest

from clone_gen.io.project_store import FileProjectStore, InMemoryProjectStore
from clone_gen.models import GeneratedFile, ProjectStatus, Stage


def test_in_memory_store_upserts_files():
    """Test that repeated writes replace files by path."""
    store = InMemoryProjectStore()
    store.append_files("p1", [GeneratedFile(path="a.ts", content="v1")])
    store.append_files("p1", [GeneratedFile(path="a.ts", content="v2"), GeneratedFile(path="b.ts", content="b")])

    assert [(f.path, f.content) for f in store.get_files("p1")] == [("a.ts", "v2"), ("b.ts", "b")]


def test_in_memory_store_record():
    """Test status, progress and workflow run id on the record."""
    store = InMemoryProjectStore()
    store.set_status("p1", ProjectStatus.PROCESSING)
    store.set_progress("p1", 10, Stage.PREPARING)
    store.set_workflow_run_id("p1", "wfr_1")

    record = store.get_project("p1")
    assert record["status"] == "processing"
    assert record["progress"] == 10
    assert record["stage"] == "preparing"
    assert record["workflow_run_id"] == "wfr_1"


def test_file_store_layout(tmp_path):
    """Test the on-disk layout of a project."""
    store = FileProjectStore(tmp_path)
    store.set_status("p1", ProjectStatus.COMPLETED)
    store.set_progress("p1", 100, Stage.COMPLETED)
    store.append_files("p1", [GeneratedFile(path="app/page.tsx", content="page")])

    project_dir = tmp_path / "p1"
    assert (project_dir / "files" / "app" / "page.tsx").read_text() == "page"
    assert (project_dir / "logs").is_dir()

    record = json.loads((project_dir / "project.json").read_text())
    assert record["status"] == "completed"
    assert record["progress"] == 100
    assert record["files"] == ["app/page.tsx"]


def test_file_store_round_trip(tmp_path):
    """Test that stored files load back in order."""
    store = FileProjectStore(tmp_path)
    store.append_files("p1", [GeneratedFile(path="a.ts", content="a"), GeneratedFile(path="lib/b.ts", content="b")])
    store.append_files("p1", [GeneratedFile(path="a.ts", content="a2")])

    loaded = store.load_files("p1")
    assert [(f.path, f.content) for f in loaded] == [("a.ts", "a2"), ("lib/b.ts", "b")]


@pytest.mark.parametrize("path", ["../escape.ts", "app/../../escape.ts"])
def test_file_store_rejects_escaping_paths(tmp_path, path):
    """Test that paths outside the files directory are refused."""
    store = FileProjectStore(tmp_path / "out")

    with pytest.raises(ValueError):
        store.append_files("p1", [GeneratedFile(path="ok.ts", content="ok"), GeneratedFile(path=path, content="x")])

    assert not (tmp_path / "out" / "p1" / "files" / "ok.ts").exists()
    assert not (tmp_path / "out" / "escape.ts").exists()


def test_file_store_missing_project(tmp_path):
    """Test lookups of unknown projects."""
    store = FileProjectStore(tmp_path)
    assert store.get_project("nope") is None
    with pytest.raises(FileNotFoundError):
        store.load_files("nope")
