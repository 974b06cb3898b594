"""
End-to-end tests for the generation pipeline with a stub model client.
"""

import pytest

from clone_gen.config import PipelineConfig
from clone_gen.exceptions import (
    ErrorKind,
    ModelRequestError,
    NoFilesExtractedError,
    PersistenceRejected,
)
from clone_gen.io.project_store import InMemoryProjectStore
from clone_gen.models import GeneratedFile, Stage
from clone_gen.orchestration import (
    GenerationPipeline,
    LocalWorkflow,
    get_run_summary,
    persist_files,
    run_with_retries,
)
from clone_gen.orchestration.pipeline import STEPS
from clone_gen.pipeline.model_client import ModelReply
from clone_gen.utils.llm_logger import LLMLogger


GENERATED = (
    "<artifact>"
    '<action type="file" path="app/layout.tsx">export default function Layout() {}</action>'
    '<action type="file" path="app/page.tsx"><h1>Hello</h1></action>'
    "</artifact>"
)

REVISED = (
    "<artifact>"
    '<action type="diff" path="app/page.tsx"><oldContent>Hello</oldContent><newContent>Hi</newContent></action>'
    "</artifact>"
)

PAYLOAD = {
    "projectId": "p1",
    "siteUrl": "https://example.com",
    "markup": "<html><body><h1>Hello</h1><script>var x = 1;</script></body></html>",
    "images": [],
}


class ScriptedClient:
    """Model client stub; exceptions in the script are raised."""

    def __init__(self, replies, default=None):
        self.replies = list(replies)
        self.default = default
        self.calls = []

    def complete(self, messages, project_id=None, component="generation"):
        self.calls.append(component)
        if self.replies:
            reply = self.replies.pop(0)
        elif self.default is not None:
            reply = self.default
        else:
            raise AssertionError("Unexpected model call")
        if isinstance(reply, Exception):
            raise reply
        return ModelReply(content=reply, model="stub")


class RecordingStore(InMemoryProjectStore):
    """In-memory store that also records every (progress, stage) write."""

    def __init__(self):
        super().__init__()
        self.writes = []

    def set_progress(self, project_id, progress, stage=None):
        self.writes.append((progress, stage))
        super().set_progress(project_id, progress, stage)


def _pipeline(client, store=None, **config):
    store = store or RecordingStore()
    pipeline = GenerationPipeline(
        store,
        client,
        config=PipelineConfig(**config),
        logger=LLMLogger(level="NONE"),
    )
    return pipeline, store


def test_successful_run():
    """Test a full run: generate, revise with a diff, persist, complete."""
    client = ScriptedClient([GENERATED, REVISED])
    pipeline, store = _pipeline(client)
    workflow = LocalWorkflow(run_id="wfr_test")

    result = pipeline.run(PAYLOAD, workflow)

    assert [(f.path, f.content) for f in result.files] == [
        ("app/layout.tsx", "export default function Layout() {}"),
        ("app/page.tsx", "<h1>Hi</h1>"),
    ]
    assert not result.degraded
    assert workflow.steps == list(STEPS)
    assert client.calls == ["generation", "revision"]

    record = store.get_project("p1")
    assert record["status"] == "completed"
    assert record["progress"] == 100
    assert record["stage"] == "completed"
    assert record["workflow_run_id"] == "wfr_test"
    assert store.files["p1"]["app/page.tsx"] == "<h1>Hi</h1>"
    assert "Files: 2" in get_run_summary(result)


def test_progress_is_monotonic_and_generate_stays_in_band():
    """Test progress ordering across a run with continuation."""
    client = ScriptedClient([
        '<artifact><action type="file" path="app/page.tsx">part',
        " two</action></artifact>",
        REVISED,
    ])
    pipeline, store = _pipeline(client)

    result = pipeline.run(PAYLOAD)

    values = [progress for progress, _ in store.writes]
    assert values == sorted(values)
    assert values[0] == 0
    assert values[-1] == 100

    generate_values = [
        progress for progress, stage in store.writes
        if stage in (Stage.GENERATING, Stage.CONTINUATION)
    ]
    assert generate_values
    assert all(10 <= value <= 70 for value in generate_values)
    assert result.continuation_attempts == 1
    assert store.files["p1"]["app/page.tsx"] == "part two"


def test_markup_is_sanitized_before_prompting():
    """Test that the prepare stage redacts inline scripts."""
    client = ScriptedClient([GENERATED, REVISED])
    pipeline, _ = _pipeline(client)

    result = pipeline.run(PAYLOAD)

    assert "var x = 1" not in result.results["prepare"].value


def test_generation_failure_marks_project_failed():
    """Test that a hard failure sets status failed, progress 0, and re-raises."""
    client = ScriptedClient([ModelRequestError("Model API returned 500", status_code=500)])
    pipeline, store = _pipeline(client)

    with pytest.raises(ModelRequestError):
        pipeline.run(PAYLOAD)

    record = store.get_project("p1")
    assert record["status"] == "failed"
    assert record["progress"] == 0
    assert record["stage"] == "failed"
    assert "p1" not in store.files


def test_no_files_after_continuation_fails_run():
    """Test that exhausted continuation aborts the run."""
    client = ScriptedClient([], default="I cannot help with that.")
    pipeline, store = _pipeline(client)

    with pytest.raises(NoFilesExtractedError):
        pipeline.run(PAYLOAD)

    assert len(client.calls) == 6
    assert store.get_project("p1")["status"] == "failed"


def test_revision_failure_degrades_but_completes():
    """Test that revision errors keep the generated files."""
    client = ScriptedClient([GENERATED, ModelRequestError("timed out")])
    pipeline, store = _pipeline(client)

    result = pipeline.run(PAYLOAD)

    assert result.degraded
    revise = result.results["revise"]
    assert revise.ok
    assert revise.error_kind == ErrorKind.REVISION_FAILURE
    assert store.files["p1"]["app/page.tsx"] == "<h1>Hello</h1>"
    assert store.get_project("p1")["status"] == "completed"


def test_revision_can_be_disabled():
    """Test that the revise stage passes files through when disabled."""
    client = ScriptedClient([GENERATED])
    pipeline, _ = _pipeline(client, enable_revision=False)

    result = pipeline.run(PAYLOAD)

    assert client.calls == ["generation"]
    assert len(result.files) == 2


@pytest.mark.parametrize("files", [[], None, "app/page.tsx", [{"path": "a", "content": "b"}]])
def test_persist_rejects_bad_file_lists(files):
    """Test that persist refuses empty or malformed lists without touching the store."""
    store = RecordingStore()

    with pytest.raises(PersistenceRejected):
        persist_files(store, "p1", files)

    assert store.files == {}


def test_persist_dedupes_before_writing():
    """Test that the final list is deduplicated by path."""
    store = RecordingStore()
    files = [GeneratedFile(path="a.ts", content="1"), GeneratedFile(path="a.ts", content="2")]

    persisted = persist_files(store, "p1", files)

    assert [(f.path, f.content) for f in persisted] == [("a.ts", "2")]
    assert store.files["p1"] == {"a.ts": "2"}


def test_run_with_retries_recovers():
    """Test that a failed run is re-invoked with a fresh workflow."""
    client = ScriptedClient([ModelRequestError("Model request failed"), GENERATED, REVISED])
    pipeline, store = _pipeline(client)
    run_ids = []

    def factory():
        workflow = LocalWorkflow(run_id=f"wfr_{len(run_ids)}")
        run_ids.append(workflow.workflow_run_id)
        return workflow

    result = run_with_retries(pipeline, PAYLOAD, workflow_factory=factory, logger=LLMLogger(level="NONE"))

    assert run_ids == ["wfr_0", "wfr_1"]
    assert result.workflow_run_id == "wfr_1"
    assert store.get_project("p1")["status"] == "completed"


def test_run_with_retries_gives_up():
    """Test that the last error is raised after every attempt fails."""
    client = ScriptedClient([], default="")
    client.replies = [ModelRequestError(f"failure {i}") for i in range(3)]
    pipeline, _ = _pipeline(client)

    with pytest.raises(ModelRequestError) as exc_info:
        run_with_retries(pipeline, PAYLOAD, max_attempts=3, logger=LLMLogger(level="NONE"))

    assert exc_info.value.message == "failure 2"
