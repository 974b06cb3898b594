"""
Tests for prompt construction.
"""

from langchain_core.messages import AIMessage, HumanMessage, SystemMessage

from clone_gen.models import ColorInfo, GeneratedFile, GenerationContext
from clone_gen.pipeline.prompts import (
    CONTINUE_PROMPT,
    SYSTEM_PROMPT,
    PromptBuilder,
    build_color_guidance,
    format_file_contents,
    select_essential_files,
)


def _context(images=3, user_prompt=None):
    return GenerationContext(
        project_id="p1",
        site_url="https://example.com",
        user_prompt=user_prompt,
        images=[f"https://example.com/shot-{i}.png" for i in range(images)],
    )


RED = ColorInfo(hex="#ff0000", rgb="rgb(255,0,0)", is_dark=True, is_light=False, description="red")


def test_color_guidance():
    """Test color guidance text."""
    assert build_color_guidance([]) == ""

    guidance = build_color_guidance([RED])
    assert "- red: #ff0000 (rgb(255,0,0))" in guidance
    assert "exact hex color codes" in guidance


def test_generation_messages():
    """Test the initial generation turn."""
    builder = PromptBuilder()
    messages = builder.build_generation_messages(
        _context(user_prompt="Make it dark themed"),
        [RED],
        "<main>" + "x" * 2000 + "</main>",
    )

    assert isinstance(messages[0], SystemMessage)
    assert messages[0].content == SYSTEM_PROMPT
    assert isinstance(messages[1], HumanMessage)

    parts = messages[1].content
    text = parts[0]["text"]
    assert "https://example.com" in text
    assert "#ff0000" in text
    assert "Make it dark themed" in text
    assert "captured in 3 screenshots" in text
    assert "<main>" + "x" * 994 + "..." in text
    assert [p["type"] for p in parts[1:]] == ["image_url"] * 3


def test_generation_messages_cap_images():
    """Test that at most max_images images are attached."""
    builder = PromptBuilder(max_images=5)
    messages = builder.build_generation_messages(_context(images=8), [], "")

    image_parts = [p for p in messages[1].content if p["type"] == "image_url"]
    assert len(image_parts) == 5
    assert "(no markup captured)" in messages[1].content[0]["text"]


def test_select_essential_files():
    """Test that only source files are chosen, up to the limit."""
    files = [GeneratedFile(path="package.json", content="{}")]
    files += [GeneratedFile(path=f"components/c{i}.tsx", content="c") for i in range(12)]

    selected = select_essential_files(files, limit=10)

    assert len(selected) == 10
    assert all(f.path.endswith(".tsx") for f in selected)


def test_revision_messages_include_file_contents():
    """Test that the revision turn serializes the current files."""
    files = [
        GeneratedFile(path="app/page.tsx", content="export default function Page() {}"),
        GeneratedFile(path="README.md", content="readme"),
    ]
    messages = PromptBuilder().build_revision_messages(_context(), files, [RED], "<div></div>")
    text = messages[1].content[0]["text"]

    assert "File: app/page.tsx\n```typescript\nexport default function Page() {}\n```" in text
    assert "README.md" not in text
    assert "diff" in text


def test_format_file_contents_unknown_extension():
    """Test fencing of files without a known language."""
    block = format_file_contents([GeneratedFile(path="Makefile", content="all:")])
    assert block == "File: Makefile\n```\nall:\n```"


def test_continuation_messages_do_not_mutate_input():
    """Test that the continuation conversation is a new list."""
    messages = [SystemMessage(content="s"), HumanMessage(content="u")]
    extended = PromptBuilder.build_continuation_messages(messages, "so far")

    assert len(messages) == 2
    assert isinstance(extended[2], AIMessage)
    assert extended[2].content == "so far"
    assert extended[3].content == CONTINUE_PROMPT
